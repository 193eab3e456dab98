"""
Structure validator (linting engine) for OneiroMetrics.

Checks each entry candidate against every journal structure whose root
callout it carries, picks the best-scoring structure per entry, and adds the
note-wide checks: misplaced callouts and user-defined pattern rules. The
validator only reads the tree; entry assembly does not depend on it.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set

from ..entries import EntryAssembler, EntryCandidate, find_candidates
from ..models import (
    CalloutNode,
    Diagnostic,
    DiagnosticCode,
    FileSource,
    JournalSettings,
    JournalStructure,
    Severity,
    StructureType,
    UNKNOWN_DATE,
)
from ..parsing.tokenizer import normalise_text


ERROR_WEIGHT = 10
WARNING_WEIGHT = 1


class ValidationState(str, Enum):
    """Progress of one entry through the checks of a structure."""

    EXPECTING_ROOT = "ExpectingRoot"
    EXPECTING_REQUIRED_CHILDREN = "ExpectingRequiredChildren"
    EXPECTING_METRICS = "ExpectingMetrics"
    SATISFIED = "Satisfied"


@dataclass
class StructureMatch:
    """Outcome of checking one entry candidate against one structure."""

    structure: JournalStructure
    diagnostics: List[Diagnostic] = field(default_factory=list)
    state: ValidationState = ValidationState.EXPECTING_ROOT

    @property
    def score(self) -> int:
        """Lower is better: errors weigh more than warnings."""
        score = 0
        for diagnostic in self.diagnostics:
            if diagnostic.severity == Severity.ERROR:
                score += ERROR_WEIGHT
            elif diagnostic.severity == Severity.WARNING:
                score += WARNING_WEIGHT
        return score


@dataclass
class ValidationResult:
    """Validator output for one note."""

    diagnostics: List[Diagnostic] = field(default_factory=list)
    selections: List[JournalStructure] = field(default_factory=list)
    matches: List[StructureMatch] = field(default_factory=list)


class LintingEngine:
    """
    Validates notes against the configured journal structures.
    """

    def __init__(self, settings: JournalSettings):
        self.settings = settings
        self.assembler = EntryAssembler(settings)
        self.root_types: Set[str] = {
            structure.root_callout for structure in settings.structures
        }

    def validate(self, forest: List[CalloutNode], text: str = "",
                 candidates: Optional[List[EntryCandidate]] = None) -> ValidationResult:
        """
        Validate a parsed note.

        Args:
            forest: Top-level callout nodes of the note
            text: Raw note text, used by pattern rules
            candidates: Entry candidates already found in the forest

        Returns:
            ValidationResult with the diagnostics of the best structure per
            entry and the chosen structures in candidate order
        """
        if candidates is None:
            candidates = find_candidates(forest, self.settings.structures)

        result = ValidationResult()

        for candidate in candidates:
            matches = [self.evaluate(candidate, structure) for structure in candidate.structures]
            # min() keeps the first of equal scores, so configuration order breaks ties
            best = min(matches, key=lambda match: match.score)

            result.selections.append(best.structure)
            result.matches.append(best)
            result.diagnostics.extend(best.diagnostics)

            if len(matches) > 1:
                others = ", ".join(
                    f"'{match.structure.id}' (score {match.score})"
                    for match in matches if match is not best
                )
                result.diagnostics.append(Diagnostic.info(
                    DiagnosticCode.ALTERNATIVE_STRUCTURES,
                    f"Entry matched structure '{best.structure.id}' (score {best.score}); "
                    f"also considered {others}",
                    line_number=candidate.line_number,
                    callout_path=candidate.callout_path,
                    structure_id=best.structure.id,
                ))

        if not candidates and self.settings.structures and self._has_callouts(forest):
            roots = ", ".join(f"'{name}'" for name in sorted(self.root_types))
            result.diagnostics.append(Diagnostic.error(
                DiagnosticCode.MISSING_ROOT_CALLOUT,
                f"Note contains callouts but no root callout ({roots})",
            ))

        result.diagnostics.extend(self.check_nesting(forest, candidates))
        result.diagnostics.extend(self.check_rules(text))
        return result

    def evaluate(self, candidate: EntryCandidate, structure: JournalStructure) -> StructureMatch:
        """
        Run the structure checks for one entry candidate.

        Every check runs even after an error so that all problems of an entry
        are reported at once. The match state records how far the entry got
        before its first error.
        """
        match = StructureMatch(structure=structure)
        diagnostics: List[Diagnostic] = []
        path = candidate.callout_path
        state = ValidationState.EXPECTING_ROOT
        failed_state: Optional[ValidationState] = None

        def report(diagnostic: Diagnostic) -> None:
            nonlocal failed_state
            diagnostics.append(diagnostic)
            if diagnostic.severity == Severity.ERROR and failed_state is None:
                failed_state = state

        if not candidate.has_root:
            report(Diagnostic.error(
                DiagnosticCode.MISSING_ROOT_CALLOUT,
                f"'{candidate.anchor.callout_type}' callout is not part of a "
                f"'{structure.root_callout}' entry",
                line_number=candidate.line_number,
                callout_path=path,
                structure_id=structure.id,
            ))

        enclosing_roots = [
            node.callout_type for node in candidate.ancestors if node.callout_type in self.root_types
        ]
        if candidate.has_root and enclosing_roots:
            report(Diagnostic.warning(
                DiagnosticCode.NESTED_ROOT_CALLOUT,
                f"'{candidate.anchor.callout_type}' callout is nested inside "
                f"'{enclosing_roots[-1]}'; it is read as a separate entry",
                line_number=candidate.line_number,
                callout_path=path,
                structure_id=structure.id,
            ))

        state = ValidationState.EXPECTING_REQUIRED_CHILDREN
        scope = candidate.scope(structure)
        present = {node.callout_type for node, _ in scope}

        for required in structure.required_callouts:
            if required == structure.metrics_callout or required in present:
                continue
            report(Diagnostic.error(
                DiagnosticCode.MISSING_REQUIRED_CALLOUT,
                f"Required '{required}' callout is missing from "
                f"'{candidate.anchor.callout_type}' entry",
                line_number=candidate.line_number,
                callout_path=path,
                structure_id=structure.id,
            ))

        vocabulary = set(structure.vocabulary)
        for node, node_path in scope:
            if node.is_untyped or node.callout_type in self.root_types:
                continue
            if node.callout_type not in vocabulary:
                report(Diagnostic.warning(
                    DiagnosticCode.UNEXPECTED_CALLOUT,
                    f"Unexpected '{node.callout_type}' callout in "
                    f"'{structure.name}' structure",
                    line_number=node.start_line,
                    callout_path=node_path,
                    structure_id=structure.id,
                ))

        state = ValidationState.EXPECTING_METRICS
        entry, _ = self.assembler.build_entry(candidate, structure, FileSource(path=""))
        metrics_node = self.assembler.find_metrics_node(candidate, structure, scope)

        if metrics_node is not None and not entry.metrics:
            node, node_path = metrics_node
            report(Diagnostic.warning(
                DiagnosticCode.EMPTY_METRICS_CALLOUT,
                f"'{node.callout_type}' callout holds no readable metrics",
                line_number=node.start_line,
                callout_path=node_path,
                structure_id=structure.id,
            ))

        for missing in self._missing_fields(entry, structure):
            report(Diagnostic.error(
                DiagnosticCode.MISSING_REQUIRED_FIELD,
                f"Required field '{missing}' is empty in "
                f"'{candidate.anchor.callout_type}' entry",
                line_number=candidate.line_number,
                callout_path=path,
                structure_id=structure.id,
            ))

        state = ValidationState.SATISFIED
        match.state = failed_state or state
        match.diagnostics = sorted(
            diagnostics,
            key=lambda diagnostic: diagnostic.line_number or candidate.line_number,
        )
        return match

    def check_nesting(self, forest: List[CalloutNode],
                      candidates: List[EntryCandidate]) -> List[Diagnostic]:
        """
        Report child and metrics callouts of nested structures that sit
        outside every entry.
        """
        misplaced = {}
        for structure in self.settings.structures:
            if structure.type != StructureType.NESTED:
                continue
            for name in structure.vocabulary:
                if name not in self.root_types:
                    misplaced.setdefault(name, structure)

        if not misplaced:
            return []

        covered = {id(node) for candidate in candidates for node in candidate.covered_nodes()}
        diagnostics: List[Diagnostic] = []

        for node, path in self._walk_with_paths(forest):
            if id(node) in covered or node.callout_type not in misplaced:
                continue
            structure = misplaced[node.callout_type]
            diagnostics.append(Diagnostic.error(
                DiagnosticCode.IMPROPER_NESTING,
                f"'{node.callout_type}' callout must be nested inside a "
                f"'{structure.root_callout}' callout",
                line_number=node.start_line,
                callout_path=path,
                structure_id=structure.id,
            ))
        return diagnostics

    def check_rules(self, text: str) -> List[Diagnostic]:
        """
        Apply the enabled user-defined pattern rules to the note text.

        Rules run in ascending priority order. Rules whose pattern does not
        compile are reported and skipped.
        """
        diagnostics: List[Diagnostic] = []
        rules = sorted(
            (rule for rule in self.settings.rules if rule.enabled),
            key=lambda rule: (rule.priority, rule.id),
        )
        if not rules:
            return diagnostics

        text = normalise_text(text)
        for rule in rules:
            try:
                pattern = re.compile(rule.pattern, re.MULTILINE)
            except re.error as e:
                diagnostics.append(Diagnostic.warning(
                    DiagnosticCode.INVALID_RULE,
                    f"Rule '{rule.id}' has an invalid pattern: {e}",
                ))
                continue

            message = rule.message or rule.description or f"Rule '{rule.name or rule.id}' was violated"
            if rule.negative:
                for found in pattern.finditer(text):
                    diagnostics.append(Diagnostic(
                        severity=rule.severity,
                        code=DiagnosticCode.RULE_VIOLATION,
                        message=message,
                        line_number=text.count("\n", 0, found.start()) + 1,
                    ))
            elif not pattern.search(text):
                diagnostics.append(Diagnostic(
                    severity=rule.severity,
                    code=DiagnosticCode.RULE_VIOLATION,
                    message=message,
                ))
        return diagnostics

    @staticmethod
    def _missing_fields(entry, structure: JournalStructure) -> List[str]:
        missing = []
        for name in structure.required_entry_fields:
            if name == "date" and entry.date == UNKNOWN_DATE:
                missing.append(name)
            elif name == "title" and not entry.title:
                missing.append(name)
            elif name == "content" and not entry.content:
                missing.append(name)
            elif name == "metrics" and not entry.metrics:
                missing.append(name)
        if (structure.metrics_callout in structure.required_fields
                and "metrics" not in missing and not entry.metrics):
            missing.append("metrics")
        return missing

    @staticmethod
    def _has_callouts(forest: List[CalloutNode]) -> bool:
        return any(not node.is_untyped for tree in forest for node in tree.walk())

    @staticmethod
    def _walk_with_paths(nodes: List[CalloutNode]):
        stack = [(node, [node.callout_type]) for node in reversed(nodes)]
        while stack:
            node, path = stack.pop()
            yield node, path
            stack.extend(
                (child, path + [child.callout_type]) for child in reversed(node.children)
            )
