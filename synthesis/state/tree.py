"""Typed tree for structured module payloads.

Every external payload is converted into this tree exactly once, at the
ingestion boundary. Downstream code walks ``Scalar``, ``ListNode`` and
``MapNode`` values instead of probing untyped dictionaries.

Usage:
    tree = parse_json('{"Acme": {"Overview": {"Focus": "Payments"}}}')
    focus = tree.get("Acme").get("Overview").get("Focus").text()
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union


ScalarValue = Union[str, int, float, bool, None]


@dataclass
class Scalar:
    """A leaf value."""

    value: ScalarValue = None

    def text(self) -> str | None:
        """Return the value when it is a string, else None."""
        return self.value if isinstance(self.value, str) else None

    def get(self, key: str) -> "Node | None":
        return None

    def is_empty(self) -> bool:
        if self.value is None:
            return True
        if isinstance(self.value, str):
            return not self.value.strip()
        return False

    def walk(self, path: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], "Scalar"]]:
        yield path, self


@dataclass
class ListNode:
    """An ordered sequence of nodes."""

    items: list["Node"] = field(default_factory=list)

    def text(self) -> str | None:
        return None

    def get(self, key: str) -> "Node | None":
        return None

    def is_empty(self) -> bool:
        return all(item.is_empty() for item in self.items)

    def walk(self, path: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Scalar]]:
        for index, item in enumerate(self.items):
            yield from item.walk(path + (str(index),))

    def __iter__(self) -> Iterator["Node"]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class MapNode:
    """A string-keyed mapping of nodes, preserving insertion order."""

    entries: dict[str, "Node"] = field(default_factory=dict)

    def text(self) -> str | None:
        return None

    def get(self, key: str) -> "Node | None":
        return self.entries.get(key)

    def keys(self) -> list[str]:
        return list(self.entries.keys())

    def items(self) -> list[tuple[str, "Node"]]:
        return list(self.entries.items())

    def is_empty(self) -> bool:
        return all(node.is_empty() for node in self.entries.values())

    def walk(self, path: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Scalar]]:
        """Depth-first traversal yielding ``(path, scalar)`` pairs."""
        for key, node in self.entries.items():
            yield from node.walk(path + (key,))

    def __len__(self) -> int:
        return len(self.entries)


Node = Union[Scalar, ListNode, MapNode]


def from_python(value: Any) -> Node:
    """Convert decoded JSON (or any plain Python structure) into a tree."""
    if isinstance(value, (Scalar, ListNode, MapNode)):
        return value
    if isinstance(value, dict):
        return MapNode({str(k): from_python(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return ListNode([from_python(v) for v in value])
    if value is None or isinstance(value, (str, int, float, bool)):
        return Scalar(value)
    return Scalar(str(value))


def parse_json(text: str | bytes | None) -> Node | None:
    """Decode JSON text into a tree.

    Returns:
        The tree, or None when the text is empty or not valid JSON.
    """
    if text is None:
        return None
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if not text.strip():
        return None
    try:
        return from_python(json.loads(text))
    except (json.JSONDecodeError, TypeError, ValueError):
        return None


def to_python(node: Node) -> Any:
    """Convert a tree back into plain Python values."""
    if isinstance(node, MapNode):
        return {k: to_python(v) for k, v in node.entries.items()}
    if isinstance(node, ListNode):
        return [to_python(v) for v in node.items]
    return node.value
