"""Command-line entrypoint for building synthesis reports from a fixture."""

import argparse
import json
import logging
import sys
from pathlib import Path

from synthesis.citations.resolver import build_resolver
from synthesis.config import settings
from synthesis.errors.exceptions import SynthesisPhaseError
from synthesis.errors.handlers import create_error_response
from synthesis.graphs.engine import SynthesisEngine
from synthesis.memory.store import InMemoryRunStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_engine(fixture_path: str) -> SynthesisEngine:
    """Create an engine over the runs of a JSON fixture file."""
    data = json.loads(Path(fixture_path).read_text(encoding="utf-8"))
    run_store = InMemoryRunStore.from_fixture(data)
    resolver = build_resolver(settings.resolver_mode, settings.resolver_timeout)
    return SynthesisEngine(run_store, resolver=resolver, settings=settings)


def write_outputs(run_id: str, markdown: str, html: str, payload: dict) -> Path:
    """Write the three renderings under the configured output directory."""
    out_dir = Path(settings.output_dir) / run_id
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / "report.md").write_text(markdown, encoding="utf-8")
    (out_dir / "report.html").write_text(html, encoding="utf-8")
    (out_dir / "report.json").write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out_dir


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Build intelligence playbook reports from completed analysis runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "command",
        choices=["build", "diagnostics"],
        help="build a report, or build and print the diagnostics report",
    )
    parser.add_argument("run_id", help="Run identifier")
    parser.add_argument(
        "--fixture",
        required=True,
        help="Path to a JSON fixture with organizations and runs",
    )
    parser.add_argument(
        "--write",
        action="store_true",
        help="Write report.md, report.html and report.json to OUTPUT_DIR",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Rebuild even when a cached bundle exists",
    )

    args = parser.parse_args(argv)
    configure_logging(settings.log_level)

    errors = settings.validate()
    if errors:
        print("Configuration errors:\n" + "\n".join(f"- {e}" for e in errors), file=sys.stderr)
        return 2

    engine = load_engine(args.fixture)

    try:
        result = engine.build_report(args.run_id, force_regenerate=args.force)
    except SynthesisPhaseError as e:
        print(f"Synthesis failed: {e}", file=sys.stderr)
        print(json.dumps(create_error_response(e, phase=e.phase), indent=2, default=str), file=sys.stderr)
        if args.command == "diagnostics":
            report = engine.diagnostics.get_diagnostics(args.run_id) or engine.run_diagnostics(args.run_id)
            print(json.dumps(report.model_dump(mode="json"), indent=2))
        return 1

    if args.command == "diagnostics":
        report = result.health or engine.run_diagnostics(args.run_id)
        print(json.dumps(report.model_dump(mode="json"), indent=2))
        return 0

    bundle = result.bundle
    if args.write:
        out_dir = write_outputs(args.run_id, bundle.markdown, bundle.html, bundle.json_payload)
        logger.info(f"Outputs written to {out_dir}")
    print(bundle.markdown)
    if result.health is not None:
        print(f"Health: {result.health.health.value} - {result.health.summary}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
