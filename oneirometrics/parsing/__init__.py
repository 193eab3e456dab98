"""Lexical and structural parsing of journal notes."""

from .dates import DateMatcher
from .metrics_extractor import MetricsExtractor
from .sanitizer import ContentSanitizer
from .tokenizer import CalloutTokenizer
from .tree_builder import StructureTreeBuilder

__all__ = [
    "CalloutTokenizer",
    "ContentSanitizer",
    "DateMatcher",
    "MetricsExtractor",
    "StructureTreeBuilder",
]
