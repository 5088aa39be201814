"""Path and pointer pattern matching over Redfish resources.

A path pattern is matched against a resource path; ``{name}`` segments
capture the literal segment as a label. A pointer pattern addresses values
inside a resource document; ``{name}`` segments iterate an array and bind
``name`` to the element index.

Pointer evaluation never raises: hardware models differ, so an absent
property is logged and produces no match.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..utils.errors import PointerMismatch


logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class MatchedProperty:
    """Value found by a pointer and the array indexes used to reach it."""

    value: Any
    indexes: Dict[str, int] = field(default_factory=dict)


def _bracketed(segment: str) -> bool:
    return len(segment) >= 2 and segment[0] == "{" and segment[-1] == "}"


def match_path(pattern: str, path: str) -> Tuple[bool, Dict[str, str]]:
    """
    Match a resource path against a path pattern.

    Args:
        pattern: ``/``-separated template, e.g. ``/redfish/v1/Chassis/{chassis}``
        path: Resource path, e.g. ``/redfish/v1/Chassis/System.Embedded.1``

    Returns:
        Tuple of (matched, labels captured by ``{name}`` segments)
    """
    pattern_segments = pattern.split("/")
    path_segments = path.split("/")

    if len(pattern_segments) != len(path_segments):
        return False, {}

    labels = {}
    for expected, actual in zip(pattern_segments, path_segments):
        if _bracketed(expected):
            labels[expected[1:-1]] = actual
        elif expected != actual:
            return False, {}

    return True, labels


def split_pointer(pointer: str) -> Optional[Tuple[str, str, str]]:
    """
    Split a pointer at its first ``{name}`` segment.

    Returns:
        ``(subpath, index_name, remainder)`` or None without bracketed segment.
        ``remainder`` keeps its leading ``/`` and is empty when the bracket
        is the last segment.
    """
    segments = pointer.split("/")
    for i, segment in enumerate(segments):
        if _bracketed(segment):
            subpath = "/".join(segments[:i])
            remainder = ""
            if i != len(segments) - 1:
                remainder = "/" + "/".join(segments[i + 1:])
            return subpath, segment[1:-1], remainder
    return None


def _lookup(document: Any, pointer: str) -> Any:
    """Walk object fields named by a bracket-free pointer."""
    current = document
    for segment in pointer.split("/")[1:]:
        if not isinstance(current, dict) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def _warn(message: str, pointer: str) -> None:
    logger.warning(
        message,
        extra={"pointer": pointer, "error_type": PointerMismatch.__name__}
    )


def match_pointer(pointer: str, document: Any) -> List[MatchedProperty]:
    """
    Find every value addressed by a pointer pattern.

    Args:
        pointer: ``/``-separated template, e.g. ``/Fans/{fan}/Reading``
        document: Decoded JSON document

    Returns:
        List[MatchedProperty]: One entry per resolved value; a pointer with
        bracketed segments over arrays of sizes a1..an yields a1*...*an
        entries. Empty when the pointer does not resolve.
    """
    return _match_pointer(pointer, document, pointer)


def _match_pointer(pointer: str, document: Any, root_pointer: str) -> List[MatchedProperty]:
    if pointer == "":
        return [MatchedProperty(document)]

    if not pointer.startswith("/"):
        _warn("pointer must begin with '/'", root_pointer)
        return []

    split = split_pointer(pointer)
    if split is None:
        value = _lookup(document, pointer)
        if value is _MISSING:
            _warn("cannot find pointed value", root_pointer)
            return []
        return [MatchedProperty(value)]

    subpath, index_name, remainder = split
    children = _lookup(document, subpath) if subpath else document
    if children is _MISSING:
        _warn("cannot find pointed value", root_pointer)
        return []

    if not isinstance(children, list):
        _warn("index pattern is used, but parent is not array", root_pointer)
        return []

    result = []
    for i, child in enumerate(children):
        for matched in _match_pointer(remainder, child, root_pointer):
            matched.indexes[index_name] = i
            result.append(matched)

    return result
