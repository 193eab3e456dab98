"""Data models for OneiroMetrics."""

from .callouts import CalloutNode, Token, TokenKind, UNTYPED_CALLOUT
from .diagnostics import Diagnostic, DiagnosticCode, Severity, count_by_severity
from .notes import Note
from .entries import (
    CalloutRef,
    CalloutSource,
    DreamEntry,
    FileSource,
    MetricSummary,
    MetricValue,
    ParseResult,
    Source,
    UNKNOWN_DATE,
    count_words,
)
from .structures import (
    ContentIsolation,
    ContentSearch,
    JournalSettings,
    JournalStructure,
    LintRule,
    MetricDefinition,
    MetricKind,
    StructureType,
)

__all__ = [
    "CalloutNode",
    "Token",
    "TokenKind",
    "UNTYPED_CALLOUT",
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "count_by_severity",
    "Note",
    "CalloutRef",
    "CalloutSource",
    "DreamEntry",
    "FileSource",
    "MetricSummary",
    "MetricValue",
    "ParseResult",
    "Source",
    "UNKNOWN_DATE",
    "count_words",
    "ContentIsolation",
    "ContentSearch",
    "JournalSettings",
    "JournalStructure",
    "LintRule",
    "MetricDefinition",
    "MetricKind",
    "StructureType",
]
