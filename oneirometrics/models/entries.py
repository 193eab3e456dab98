"""
Entry models for OneiroMetrics.

This module defines the user-facing dream entry, its provenance, and the
summary statistics computed across a batch of entries.
"""

from typing import Annotated, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, computed_field

from .diagnostics import Diagnostic


UNKNOWN_DATE = "unknown"

MetricValue = Union[float, str]


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""
    return len(text.split())


class FileSource(BaseModel):
    """Provenance of the only entry in a file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["file"] = "file"

    path: str = Field(
        ...,
        description="Path of the note the entry came from"
    )

    @property
    def file(self) -> str:
        return self.path


class CalloutSource(BaseModel):
    """Provenance of one of several entries inside the same file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["callout"] = "callout"

    file: str = Field(
        ...,
        description="Path of the note the entry came from"
    )

    id: str = Field(
        ...,
        description="Stable per-occurrence identifier within the file"
    )


Source = Annotated[Union[FileSource, CalloutSource], Field(discriminator="kind")]


class CalloutRef(BaseModel):
    """Identifies a callout that contributed to an entry."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: str


class DreamEntry(BaseModel):
    """
    The assembled unit of a dream journal.

    ``word_count`` is derived from ``content`` and cannot be supplied.
    """

    model_config = ConfigDict(frozen=True)

    date: str = Field(
        ...,
        description="ISO-8601 date (YYYY-MM-DD) or 'unknown'"
    )

    title: str = Field(
        ...,
        description="Resolved entry title"
    )

    content: str = Field(
        ...,
        description="Sanitized, markdown-stripped entry text"
    )

    metrics: Dict[str, MetricValue] = Field(
        default_factory=dict,
        description="Metric name to numeric or enumerated value"
    )

    source: Source = Field(
        ...,
        description="Where the entry came from"
    )

    callout_metadata: List[CalloutRef] = Field(
        default_factory=list,
        description="Callouts that contributed to this entry, in document order"
    )

    @computed_field
    @property
    def word_count(self) -> int:
        return count_words(self.content)


class MetricSummary(BaseModel):
    """Summary statistics for one metric across a batch of entries."""

    model_config = ConfigDict(frozen=True)

    metric_name: str

    average: Optional[float] = Field(
        None,
        description="Arithmetic mean of numeric values, rounded half-up to 3 places"
    )

    min: Optional[float] = None

    max: Optional[float] = None

    count: int = Field(
        0,
        description="Number of entries carrying this metric, numeric or not"
    )

    numeric_count: int = 0

    non_numeric_count: int = Field(
        0,
        description="Enumerated values excluded from min, max and average"
    )

    value_counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Frequency of each enumerated value"
    )

    @property
    def has_numeric_data(self) -> bool:
        return self.numeric_count > 0


class ParseResult(BaseModel):
    """Entries and diagnostics produced from one note or a batch of notes."""

    model_config = ConfigDict(frozen=True)

    entries: List[DreamEntry] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)
