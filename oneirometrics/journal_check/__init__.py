"""Journal structure validation."""

from .linting import LintingEngine, StructureMatch, ValidationResult, ValidationState

__all__ = ["LintingEngine", "StructureMatch", "ValidationResult", "ValidationState"]
