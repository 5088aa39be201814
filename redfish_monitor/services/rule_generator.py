"""Infer collection rules from a captured snapshot.

Given the keys to export (``Health:health``, ``Reading:number``, ...), every
document of the snapshot is scanned and a property rule is emitted wherever
one of the keys occurs. Arrays are assumed to be uniform: only their first
element is inspected, and the pointer gets an index segment named after the
singular form of the array's field.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

import yaml

from ..config.models import CollectRule, MetricRule, PropertyRule, TraverseRule
from ..utils.status import ValueKind
from .snapshot_cache import Snapshot


logger = logging.getLogger(__name__)

_NON_NAME_CHARS = re.compile(r"[^a-z0-9_]")


@dataclass
class KeyType:
    """A property key to look for and the value type to export it as."""
    key: str
    type: str


def parse_key_types(pairs: Iterable[str]) -> List[KeyType]:
    """
    Parse ``key:type`` strings.

    Raises:
        ValueError: If a pair is not of the form ``key:type``
        UnknownConverter: If the type has no converter
    """
    key_types = []
    for pair in pairs:
        parts = pair.split(":")
        if len(parts) != 2 or not parts[0]:
            raise ValueError(f"key must be given as 'key:type': {pair}")
        ValueKind.from_type_name(parts[1])
        key_types.append(KeyType(key=parts[0], type=parts[1]))
    return key_types


def normalize(key: str) -> str:
    """
    Turn a key into a hint for a Prometheus metric name part.

    Lower-cases ASCII letters and drops everything outside ``[a-z0-9_]``.
    The result may still be unusable on its own (empty, leading digit).
    """
    lowered = "".join(c.lower() if "A" <= c <= "Z" else c for c in key)
    return _NON_NAME_CHARS.sub("", lowered)


def singularize(name: str) -> str:
    if name.endswith("ies"):
        return name[:-3] + "y"
    if name.endswith("s"):
        return name[:-1]
    return name


def _find_key_type(key: str, key_types: List[KeyType]) -> Optional[KeyType]:
    for key_type in key_types:
        if key_type.key == key:
            return key_type
    return None


def _scan(
    document: Any,
    key_types: List[KeyType],
    pointer: str,
    name: str,
    rules: List[PropertyRule]
) -> None:
    if isinstance(document, dict):
        for key, value in document.items():
            key_type = _find_key_type(key, key_types)
            if key_type is not None:
                rules.append(PropertyRule(
                    pointer=f"{pointer}/{key}",
                    name=f"{name}_{normalize(key)}"[1:],  # drop the leading "_"
                    type=key_type.type,
                ))
            else:
                _scan(value, key_types, f"{pointer}/{key}", f"{name}_{normalize(key)}", rules)
        return

    if isinstance(document, list) and document:
        parent = singularize(pointer.split("/")[-1])
        _scan(document[0], key_types, f"{pointer}/{{{parent.lower()}}}", name, rules)


def generate_property_rules(document: Any, key_types: List[KeyType], prefix: str = "") -> List[PropertyRule]:
    """
    Scan one document for the requested keys.

    Args:
        document: Decoded JSON document
        key_types: Keys to look for
        prefix: Metric name prefix derived from the resource path

    Returns:
        List[PropertyRule]: Rules sorted by pointer
    """
    rules: List[PropertyRule] = []
    _scan(document, key_types, "", prefix, rules)
    rules.sort(key=lambda r: r.pointer)
    return rules


def _name_prefix(path: str, root: str) -> str:
    relative = path[len(root):] if root and path.startswith(root) else path
    return normalize(relative.replace("/", "_"))


def generate_rules(
    snapshot: Snapshot,
    key_types: List[KeyType],
    base_rule: Optional[CollectRule] = None,
    root: str = ""
) -> List[MetricRule]:
    """
    Infer metric rules for every resource of a snapshot.

    When a base rule is given, each of its metric rules claims the resource
    paths it matches: the first claiming rule in declaration order wins, the
    path is replaced by the rule's pattern, and only the first path claimed by
    a rule is scanned.

    Args:
        snapshot: Resource path to document
        key_types: Keys to look for
        base_rule: Existing rule whose patterns should be reused
        root: Traversal root stripped from paths when naming metrics;
              defaults to the base rule's root

    Returns:
        List[MetricRule]: Rules sorted by path
    """
    if base_rule is not None and not root:
        root = base_rule.traverse.root

    claimed: Set[str] = set()
    rules: List[MetricRule] = []

    for path in sorted(snapshot):
        rule_path = path
        if base_rule is not None:
            owner = next((r for r in base_rule.metrics if r.match_path(path)[0]), None)
            if owner is not None:
                if owner.path in claimed:
                    continue
                claimed.add(owner.path)
                rule_path = owner.path

        properties = generate_property_rules(snapshot[path], key_types, _name_prefix(rule_path, root))
        if properties:
            rules.append(MetricRule(path=rule_path, properties=properties))
        else:
            logger.debug(f"No requested keys found in {path}")

    rules.sort(key=lambda r: r.path)
    return rules


def render_rule_document(
    rules: List[MetricRule],
    base_rule: Optional[CollectRule] = None,
    root: str = ""
) -> str:
    """Render generated rules as a YAML rule document."""
    if base_rule is not None:
        traverse = base_rule.traverse
    else:
        traverse = TraverseRule(root=root)

    document = CollectRule(traverse=traverse, metrics=rules)
    return yaml.safe_dump(
        document.model_dump(by_alias=True),
        sort_keys=False,
        default_flow_style=False
    )
