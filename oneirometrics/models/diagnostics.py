"""
Diagnostic models for OneiroMetrics.

Diagnostics are structured, non-fatal reports about a note. They are always
returned as data alongside parse results and never raised.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Diagnostic severity, ordered from most to least serious."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class DiagnosticCode(str, Enum):
    """Machine-readable diagnostic identifiers."""

    # Structure tree builder
    DEPTH_JUMP = "DepthJump"

    # Metrics extractor
    UNPARSABLE_METRIC = "UnparsableMetric"
    METRIC_OUT_OF_RANGE = "MetricOutOfRange"
    INVALID_METRIC_OPTION = "InvalidMetricOption"
    DUPLICATE_METRIC = "DuplicateMetric"

    # Entry assembler
    MISSING_DATE = "MissingDate"
    NO_METRICS_FOUND = "NoMetricsFound"

    # Structure validator
    MISSING_ROOT_CALLOUT = "MissingRootCallout"
    MISSING_REQUIRED_CALLOUT = "MissingRequiredCallout"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    UNEXPECTED_CALLOUT = "UnexpectedCallout"
    IMPROPER_NESTING = "ImproperNesting"
    NESTED_ROOT_CALLOUT = "NestedRootCallout"
    EMPTY_METRICS_CALLOUT = "EmptyMetricsCallout"
    ALTERNATIVE_STRUCTURES = "AlternativeStructures"
    RULE_VIOLATION = "RuleViolation"
    INVALID_RULE = "InvalidRule"


class Diagnostic(BaseModel):
    """A single parsing or structural finding."""

    model_config = ConfigDict(frozen=True)

    severity: Severity = Field(
        ...,
        description="How serious the finding is"
    )

    code: DiagnosticCode = Field(
        ...,
        description="Machine-readable identifier of the finding"
    )

    message: str = Field(
        ...,
        description="Human-readable explanation"
    )

    line_number: Optional[int] = Field(
        None,
        description="1-based line the finding refers to, when known"
    )

    callout_path: Optional[List[str]] = Field(
        None,
        description="Callout types from the top-level callout down to the affected one"
    )

    structure_id: Optional[str] = Field(
        None,
        description="Journal structure the finding was evaluated against"
    )

    source: Optional[str] = Field(
        None,
        description="Note the finding belongs to"
    )

    @classmethod
    def error(cls, code: DiagnosticCode, message: str, **kwargs) -> "Diagnostic":
        return cls(severity=Severity.ERROR, code=code, message=message, **kwargs)

    @classmethod
    def warning(cls, code: DiagnosticCode, message: str, **kwargs) -> "Diagnostic":
        return cls(severity=Severity.WARNING, code=code, message=message, **kwargs)

    @classmethod
    def info(cls, code: DiagnosticCode, message: str, **kwargs) -> "Diagnostic":
        return cls(severity=Severity.INFO, code=code, message=message, **kwargs)


def count_by_severity(diagnostics: List[Diagnostic]) -> dict:
    """Return a mapping of severity value to number of diagnostics."""
    counts = {severity.value: 0 for severity in Severity}
    for diagnostic in diagnostics:
        counts[diagnostic.severity.value] += 1
    return counts
