"""Dot-path parsing and nested tree access."""

from __future__ import annotations

from typing import Any

from readerstore._constants import PATH_SEPARATOR
from readerstore.exceptions import InvalidPathError

_MISSING = object()


def split_path(path: str) -> tuple[str, ...]:
    """Split ``"a.b.c"`` into segments.

    Raises :class:`InvalidPathError` for empty paths or empty segments.
    """
    if not isinstance(path, str) or not path:
        raise InvalidPathError(f"path must be a non-empty string, got {path!r}")
    segments = tuple(path.split(PATH_SEPARATOR))
    if any(not segment for segment in segments):
        raise InvalidPathError(f"path has an empty segment: {path!r}")
    return segments


def is_valid_path(path: Any) -> bool:
    try:
        split_path(path)
    except InvalidPathError:
        return False
    return True


def ancestors(path: str) -> list[str]:
    """Strict ancestors of *path*, immediate parent first."""
    segments = split_path(path)
    return [PATH_SEPARATOR.join(segments[:i]) for i in range(len(segments) - 1, 0, -1)]


def is_related(path: str, other: str) -> bool:
    """Whether one path equals, contains, or lies under the other (segment-wise)."""
    a = split_path(path)
    b = split_path(other)
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


def _child(node: Any, segment: str) -> Any:
    if isinstance(node, dict):
        return node.get(segment, _MISSING)
    if isinstance(node, list) and segment.isdigit():
        index = int(segment)
        if index < len(node):
            return node[index]
    return _MISSING


def lookup(tree: dict[str, Any], segments: tuple[str, ...]) -> Any:
    """Return the node at *segments*, or the module's missing sentinel."""
    node: Any = tree
    for segment in segments:
        node = _child(node, segment)
        if node is _MISSING:
            return _MISSING
    return node


def get_in(tree: dict[str, Any], segments: tuple[str, ...]) -> Any | None:
    node = lookup(tree, segments)
    return None if node is _MISSING else node


def has_in(tree: dict[str, Any], segments: tuple[str, ...]) -> bool:
    return lookup(tree, segments) is not _MISSING


def set_in(tree: dict[str, Any], segments: tuple[str, ...], value: Any) -> None:
    """Assign *value* at *segments*, creating or replacing intermediate nodes.

    Intermediate nodes that are neither dicts nor in-range list slots are
    replaced by empty dicts.
    """
    node: Any = tree
    for segment in segments[:-1]:
        child = _child(node, segment)
        if not isinstance(child, (dict, list)):
            child = {}
            _assign(node, segment, child)
        node = child
    _assign(node, segments[-1], value)


def _assign(node: dict[str, Any] | list[Any], segment: str, value: Any) -> None:
    if isinstance(node, list):
        if not segment.isdigit() or int(segment) >= len(node):
            raise InvalidPathError(f"cannot assign {segment!r} into a list of {len(node)} items")
        node[int(segment)] = value
        return
    node[segment] = value
