"""Pydantic models for exporter configuration and collection rules."""

import re
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

from ..collectors.matcher import match_path
from ..utils.errors import InvalidRule
from ..utils.status import ValueKind


# ---------------------------------------------------------------------------
# Collection rules
# ---------------------------------------------------------------------------

class _RuleModel(BaseModel):
    """Rule documents use capitalised keys; Python code uses field names."""

    model_config = ConfigDict(populate_by_name=True)


class TraverseRule(_RuleModel):
    """Where traversal starts and which resources it must never fetch."""

    root: str = Field(default="", alias="Root")
    excludes: List[str] = Field(default_factory=list, alias="Excludes")

    _exclude_regexp: Optional[re.Pattern] = PrivateAttr(default=None)
    _compiled: bool = PrivateAttr(default=False)

    @field_validator('excludes', mode='before')
    @classmethod
    def null_as_empty_list(cls, v):
        """An empty ``Excludes:`` key parses as null."""
        return [] if v is None else v

    def validate_rule(self) -> None:
        if not self.root:
            raise InvalidRule("Root is mandatory for traverse rule")

    def compile(self) -> None:
        """Join all exclusion patterns into one alternation regex."""
        regexp = None
        if self.excludes:
            try:
                regexp = re.compile("|".join(self.excludes))
            except re.error as e:
                raise InvalidRule(f"invalid exclude pattern: {e}") from e
        self._exclude_regexp = regexp
        self._compiled = True

    def is_excluded(self, path: str) -> bool:
        """
        Return True if the path matches any exclusion pattern.

        Rules built in code are compiled on first use.

        Raises:
            InvalidRule: If an exclusion pattern is not a valid regex
        """
        if not self._compiled:
            self.compile()
        return self._exclude_regexp is not None and self._exclude_regexp.search(path) is not None


class PropertyRule(_RuleModel):
    """Where a value lives inside a document and how to export it."""

    pointer: str = Field(default="", alias="Pointer")
    name: str = Field(default="", alias="Name")
    description: str = Field(default="", alias="Description")
    type: str = Field(default="", alias="Type")

    _kind: Optional[ValueKind] = PrivateAttr(default=None)

    @field_validator('description', mode='before')
    @classmethod
    def null_as_empty_string(cls, v):
        return "" if v is None else v

    def validate_rule(self) -> None:
        if not self.pointer:
            raise InvalidRule("Pointer is mandatory for property rule")
        if not self.name:
            raise InvalidRule("Name is mandatory for property rule")
        if not self.type:
            raise InvalidRule(f"Type is mandatory for property rule {self.name}")

    def compile(self) -> None:
        self._kind = ValueKind.from_type_name(self.type)

    @property
    def kind(self) -> ValueKind:
        """Compiled value kind; resolved lazily for rules built in code."""
        if self._kind is None:
            self.compile()
        return self._kind

    def index_labels(self) -> List[str]:
        """Names bound by ``{name}`` segments of the pointer, in order."""
        return _bracketed_names(self.pointer)


class MetricRule(_RuleModel):
    """Resource path pattern and the properties exported for each match."""

    path: str = Field(default="", alias="Path")
    properties: List[PropertyRule] = Field(default_factory=list, alias="Properties")

    @field_validator('properties', mode='before')
    @classmethod
    def null_as_empty_list(cls, v):
        return [] if v is None else v

    def validate_rule(self) -> None:
        if not self.path:
            raise InvalidRule("Path is mandatory for metric rule")
        path_labels = set(self.path_labels())
        for property_rule in self.properties:
            property_rule.validate_rule()
            # Every label of a sample must come from exactly one segment
            index_labels = property_rule.index_labels()
            clashing = path_labels.intersection(index_labels)
            if clashing or len(set(index_labels)) != len(index_labels):
                duplicated = sorted(clashing) or sorted(
                    name for name in set(index_labels) if index_labels.count(name) > 1
                )
                raise InvalidRule(
                    f"label {', '.join(duplicated)} of property rule {property_rule.name} "
                    f"is already bound in {self.path}{property_rule.pointer}"
                )

    def compile(self) -> None:
        for property_rule in self.properties:
            property_rule.compile()

    def path_labels(self) -> List[str]:
        """Names captured by ``{name}`` segments of the path, in order."""
        return _bracketed_names(self.path)

    def match_path(self, path: str) -> Tuple[bool, Dict[str, str]]:
        return match_path(self.path, path)


class CollectRule(_RuleModel):
    """A complete rule document: one traverse rule and ordered metric rules."""

    traverse: TraverseRule = Field(default_factory=TraverseRule, alias="Traverse")
    metrics: List[MetricRule] = Field(default_factory=list, alias="Metrics")

    def validate_rule(self) -> None:
        """
        Check mandatory fields of the whole document.

        Raises:
            InvalidRule: If Root, a metric Path or a property field is missing
        """
        self.traverse.validate_rule()
        for metric_rule in self.metrics:
            metric_rule.validate_rule()

    def compile(self) -> None:
        """
        Build the exclusion regex and resolve every converter.

        Raises:
            InvalidRule: If an exclusion pattern is not a valid regex
            UnknownConverter: If a property Type is not recognised
        """
        self.traverse.compile()
        for metric_rule in self.metrics:
            metric_rule.compile()


def _bracketed_names(pattern: str) -> List[str]:
    return [
        segment[1:-1]
        for segment in pattern.split("/")
        if len(segment) >= 2 and segment[0] == "{" and segment[-1] == "}"
    ]


# ---------------------------------------------------------------------------
# Exporter configuration
# ---------------------------------------------------------------------------

class RedfishConfig(BaseModel):
    """Connection settings for the management controller."""
    address: str
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    scheme: str = "https"
    username: str = "support"
    password: str = ""
    timeout_seconds: float = Field(default=5.0, gt=0)

    @field_validator('scheme')
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Only plain HTTP(S) endpoints are supported."""
        if v not in ('http', 'https'):
            raise ValueError('scheme must be http or https')
        return v

    @property
    def base_url(self) -> str:
        if self.port:
            return f"{self.scheme}://{self.address}:{self.port}"
        return f"{self.scheme}://{self.address}"


class ExporterConfig(BaseModel):
    """Metrics endpoint and polling settings."""
    listen_address: str = "0.0.0.0"
    listen_port: int = Field(default=9105, ge=1, le=65535)
    interval_seconds: int = Field(default=60, ge=1)
    namespace: str = "hw"
    rule_file: str
    dummy_data_file: Optional[str] = None  # Serve a captured snapshot instead of polling


class ExporterSystemConfig(BaseModel):
    """Root configuration model for the exporter."""
    redfish: RedfishConfig
    exporter: ExporterConfig
