"""
Journal configuration models for OneiroMetrics.

These records describe what a well-formed journal note looks like. They are
built once from configuration and are read-only to the parsing core.
"""

import re
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .diagnostics import Severity


class StructureType(str, Enum):
    FLAT = "flat"
    NESTED = "nested"


class ContentSearch(str, Enum):
    """Where the content callout of a nested structure is looked for."""

    DIRECT = "direct"
    DEEPEST = "deepest"


class MetricKind(str, Enum):
    NUMBER = "number"
    ENUM = "enum"


# Field names that refer to resolved entry fields rather than callout types.
ENTRY_FIELDS = frozenset(["date", "title", "content", "metrics"])


def _normalise_callout(name: str) -> str:
    return name.strip().lower()


def _ordered_unique(names: List[str]) -> List[str]:
    seen = set()
    result = []
    for name in names:
        if name and name not in seen:
            seen.add(name)
            result.append(name)
    return result


class JournalStructure(BaseModel):
    """
    A named description of the expected callout layout of a journal entry.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(
        "default",
        description="Stable identifier of the structure"
    )

    name: str = Field(
        "Default Structure",
        description="Human-readable name"
    )

    description: str = ""

    type: StructureType = Field(
        StructureType.NESTED,
        description="Whether child callouts are nested inside the root or follow it"
    )

    root_callout: str = Field(
        ...,
        description="Callout type that anchors one journal entry"
    )

    child_callouts: List[str] = Field(
        default_factory=list,
        description="Ordered set of callout types expected alongside the root"
    )

    metrics_callout: str = Field(
        "metrics",
        description="Callout type whose body holds Name: value pairs"
    )

    content_callout: Optional[str] = Field(
        None,
        description="Callout type holding the entry text in nested structures"
    )

    content_search: ContentSearch = Field(
        ContentSearch.DIRECT,
        description="Look for the content callout among direct children or the deepest descendant"
    )

    date_formats: List[str] = Field(
        default_factory=lambda: ["YYYY-MM-DD"],
        description="Ordered date patterns tried when resolving an entry date"
    )

    required_fields: List[str] = Field(default_factory=list)

    optional_fields: List[str] = Field(default_factory=list)

    @field_validator("root_callout", "metrics_callout")
    @classmethod
    def _lower_callout(cls, value: str) -> str:
        return _normalise_callout(value)

    @field_validator("content_callout")
    @classmethod
    def _lower_optional_callout(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return _normalise_callout(value)

    @field_validator("child_callouts", "required_fields", "optional_fields")
    @classmethod
    def _lower_names(cls, value: List[str]) -> List[str]:
        return _ordered_unique([_normalise_callout(name) for name in value])

    @model_validator(mode="after")
    def _check_root(self) -> "JournalStructure":
        if not self.root_callout:
            raise ValueError("root_callout must not be empty")
        return self

    @property
    def vocabulary(self) -> List[str]:
        """Every callout type this structure knows about."""
        names = [self.root_callout, *self.child_callouts, self.metrics_callout]
        if self.content_callout:
            names.append(self.content_callout)
        return _ordered_unique(names)

    @property
    def required_callouts(self) -> List[str]:
        """Required names that refer to child callouts."""
        return [
            name for name in self.required_fields
            if name not in ENTRY_FIELDS and name != self.root_callout
        ]

    @property
    def required_entry_fields(self) -> List[str]:
        return [name for name in self.required_fields if name in ENTRY_FIELDS]

    @property
    def requires_metrics(self) -> bool:
        return "metrics" in self.required_fields or self.metrics_callout in self.required_fields


class MetricDefinition(BaseModel):
    """
    A configured metric with its expected value kind and range.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: MetricKind = MetricKind.NUMBER
    description: str = ""
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    options: List[str] = Field(default_factory=list)
    enabled: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> "MetricDefinition":
        if (self.min_value is not None and self.max_value is not None
                and self.min_value > self.max_value):
            raise ValueError(f"Metric '{self.name}' has min_value greater than max_value")
        return self

    def in_range(self, value: float) -> bool:
        if self.min_value is not None and value < self.min_value:
            return False
        if self.max_value is not None and value > self.max_value:
            return False
        return True


class ContentIsolation(BaseModel):
    """Which markdown elements are removed from entry content."""

    model_config = ConfigDict(frozen=True)

    ignore_images: bool = True
    ignore_links: bool = False
    ignore_formatting: bool = True
    ignore_headings: bool = False
    ignore_code_blocks: bool = True
    ignore_comments: bool = True
    custom_ignore_patterns: List[str] = Field(default_factory=list)

    @field_validator("custom_ignore_patterns")
    @classmethod
    def _check_patterns(cls, value: List[str]) -> List[str]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"Invalid ignore pattern '{pattern}': {e}")
        return value


class LintRule(BaseModel):
    """
    A user-defined pattern rule applied to the whole note.

    A positive rule is violated when its pattern never matches; a negative
    rule is violated by every match.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str = ""
    severity: Severity = Severity.WARNING
    enabled: bool = True
    pattern: str
    message: str = ""
    priority: int = 10
    negative: bool = False


class JournalSettings(BaseModel):
    """Everything the parsing core needs to know about the journal."""

    model_config = ConfigDict(frozen=True)

    structures: List[JournalStructure] = Field(default_factory=list)
    metrics: List[MetricDefinition] = Field(default_factory=list)
    content_isolation: ContentIsolation = Field(default_factory=ContentIsolation)
    rules: List[LintRule] = Field(default_factory=list)

    @property
    def vocabulary(self) -> List[str]:
        names: List[str] = []
        for structure in self.structures:
            names.extend(structure.vocabulary)
        return _ordered_unique(names)
