"""
OneiroMetrics: A dream journal parsing and validation engine.

Extracts dated dream entries and their metrics from callout-structured
markdown notes, and checks notes against configurable journal structures.
"""

__version__ = "0.1.0"
__author__ = "OneiroMetrics Project"

# Import main components
from .models import (
    Diagnostic,
    DreamEntry,
    JournalSettings,
    JournalStructure,
    MetricSummary,
    Note,
    ParseResult,
)
from .pipeline import parse_note, parse_notes, summarize
from .importers import BaseImporter, MockImporter, VaultImporter

__all__ = [
    "Diagnostic",
    "DreamEntry",
    "JournalSettings",
    "JournalStructure",
    "MetricSummary",
    "Note",
    "ParseResult",
    "parse_note",
    "parse_notes",
    "summarize",
    "BaseImporter",
    "MockImporter",
    "VaultImporter",
]
