"""Section contract validation.

``section_ok`` is the strict emptiness check; ``section_ok_tolerant``
applies each section's shape contract and, in safe mode, converts
violations into warnings plus a fallback request instead of raising.
"""

import logging
from dataclasses import dataclass
from typing import Any

from synthesis.errors.exceptions import SectionContractViolation
from synthesis.state.models import Section, SectionItem

logger = logging.getLogger(__name__)


@dataclass
class SectionContract:
    """Shape requirements of one section."""

    max_words: int | None = None
    min_items: int | None = None
    max_items: int | None = None
    items_need_title_and_body: bool = False


SECTION_CONTRACTS: dict[str, SectionContract] = {
    "executive_insight": SectionContract(max_words=140),
    "growth_levers": SectionContract(min_items=2, max_items=4, items_need_title_and_body=True),
    "risk_signals": SectionContract(min_items=3, max_items=5, items_need_title_and_body=True),
}


class ValidationResult:
    """Result of a section validation."""

    def __init__(self, section: str):
        self.section = section
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.is_valid: bool = True
        self.needs_fallback: bool = False

    def add_error(self, message: str) -> None:
        """Add a contract violation."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a soft finding."""
        self.warnings.append(message)

    def __bool__(self) -> bool:
        return self.is_valid


def is_empty(value: Any) -> bool:
    """
    True for None, empty or blank strings, empty collections, and
    collections whose items are all empty.
    """
    if value is None:
        return True
    if isinstance(value, Section):
        return is_empty(value.text) and is_empty(value.items)
    if isinstance(value, SectionItem):
        return is_empty(value.title) and is_empty(value.body)
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, dict):
        return not value or all(is_empty(v) for v in value.values())
    if isinstance(value, (list, tuple, set)):
        return not value or all(is_empty(v) for v in value)
    return False


def section_ok(name: str, value: Any) -> ValidationResult:
    """
    Check that a section value is present and non-empty.

    Returns:
        ValidationResult; invalid when the value is empty.
    """
    result = ValidationResult(name)
    if is_empty(value):
        result.add_error(f"{name} is empty")
    return result


def _word_count(value: Any) -> int:
    if isinstance(value, Section):
        return value.word_count
    if isinstance(value, str):
        return len(value.split())
    return 0


def _items(value: Any) -> list[Any] | None:
    if isinstance(value, Section):
        return value.items
    if isinstance(value, (list, tuple)):
        return list(value)
    return None


def _item_field(item: Any, key: str) -> Any:
    if isinstance(item, SectionItem):
        return getattr(item, key)
    if isinstance(item, dict):
        return item.get(key)
    return None


def _check_contract(name: str, value: Any, result: ValidationResult) -> None:
    if is_empty(value):
        result.add_error(f"{name} is empty")
        return

    if not isinstance(value, (str, Section, list, tuple)):
        result.add_error(f"{name} has unexpected type {type(value).__name__}")
        return

    contract = SECTION_CONTRACTS.get(name)
    if contract is None:
        return

    if contract.max_words is not None:
        words = _word_count(value)
        if words > contract.max_words:
            result.add_warning(f"{name} has {words} words (limit {contract.max_words})")

    if contract.min_items is not None or contract.max_items is not None:
        items = _items(value) or []
        count = len([i for i in items if not is_empty(i)])
        if contract.min_items is not None and count < contract.min_items:
            result.add_error(f"{name} has {count} items (minimum {contract.min_items})")
        if contract.max_items is not None and count > contract.max_items:
            result.add_error(f"{name} has {count} items (maximum {contract.max_items})")
        if contract.items_need_title_and_body:
            for index, item in enumerate(items, 1):
                if is_empty(_item_field(item, "title")) or is_empty(_item_field(item, "body")):
                    result.add_error(f"{name} item {index} needs a title and a body")


def section_ok_tolerant(name: str, value: Any, safe_mode: bool = False) -> ValidationResult:
    """
    Apply a section's contract.

    Args:
        name: Section name.
        value: Section, text, or list of items.
        safe_mode: Downgrade violations to warnings plus fallback.

    Returns:
        ValidationResult. In safe mode ``needs_fallback`` is set when the
        contract was violated.

    Raises:
        SectionContractViolation: On a violation outside safe mode.
    """
    result = ValidationResult(name)
    _check_contract(name, value, result)

    if result.is_valid:
        return result

    if not safe_mode:
        raise SectionContractViolation(
            f"Section {name} violates its contract: {'; '.join(result.errors)}",
            section=name,
            constraint=result.errors[0],
            word_count=_word_count(value) or None,
        )

    for error in result.errors:
        logger.warning(f"VALIDATION: {error} (safe mode, using fallback)")
        result.add_warning(error)
    result.errors = []
    result.is_valid = True
    result.needs_fallback = True
    return result
