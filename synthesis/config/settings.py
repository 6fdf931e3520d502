"""Application settings and environment configuration."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Pipeline behaviour
    # Safe mode converts section contract violations into warnings plus fallback text
    pipeline_safe_mode: bool = _env_flag("PIPELINE_SAFE_MODE")
    enable_trace_mode: bool = _env_flag("ENABLE_TRACE_MODE")
    enable_detailed_trace_logging: bool = _env_flag("ENABLE_DETAILED_TRACE_LOGGING")

    # Optional phases
    enable_coherence_engine: bool = _env_flag("ENABLE_COHERENCE_ENGINE")
    enable_pattern_comparator: bool = _env_flag("ENABLE_PATTERN_COMPARATOR")
    enable_enhanced_citations: bool = _env_flag("ENABLE_ENHANCED_CITATIONS")

    # Diagnostics run after every build unless disabled
    auto_run_diagnostics: bool = _env_flag("AUTO_RUN_DIAGNOSTICS", "true")

    # Bundle cache keyed by run id
    cache_enabled: bool = _env_flag("CACHE_ENABLED", "true")

    # Citation resolver (metadata enrichment)
    # none, url (no I/O) or http
    resolver_mode: str = os.getenv("RESOLVER_MODE", "url")
    resolver_batch_size: int = int(os.getenv("RESOLVER_BATCH_SIZE", "20"))
    resolver_max_batches: int = int(os.getenv("RESOLVER_MAX_BATCHES", "3"))
    resolver_timeout: float = float(os.getenv("RESOLVER_TIMEOUT", "10.0"))

    # Executive summary word ceiling
    executive_word_limit: int = int(os.getenv("EXECUTIVE_WORD_LIMIT", "140"))

    # Output artifacts
    output_dir: str = os.getenv("OUTPUT_DIR", str(PROJECT_ROOT / "data" / "outputs"))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def validate(self) -> list[str]:
        """Validate settings values."""
        errors = []
        if self.resolver_mode.lower() not in ("none", "url", "http"):
            errors.append("RESOLVER_MODE must be one of none, url, http")
        if self.resolver_batch_size <= 0:
            errors.append("RESOLVER_BATCH_SIZE must be positive")
        if self.resolver_max_batches < 0:
            errors.append("RESOLVER_MAX_BATCHES must not be negative")
        if self.resolver_timeout <= 0:
            errors.append("RESOLVER_TIMEOUT must be positive")
        if self.executive_word_limit <= 0:
            errors.append("EXECUTIVE_WORD_LIMIT must be positive")
        return errors


# Global settings instance
settings = Settings()
