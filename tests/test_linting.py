"""
Unit tests for the structure validator.
"""

import unittest

from oneirometrics.journal_check import LintingEngine, ValidationState
from oneirometrics.models import (
    DiagnosticCode,
    JournalSettings,
    JournalStructure,
    LintRule,
    Severity,
)
from oneirometrics.parsing import CalloutTokenizer, StructureTreeBuilder


SCENARIO_A = "> [!dream] 2024-01-01\n> Flew over mountains.\n> [!metrics]\n> Lucid: 1, Vivid: 4"


def validate(text, *structures, rules=None):
    settings = JournalSettings(structures=list(structures), rules=rules or [])
    tokenizer = CalloutTokenizer(
        vocabulary=settings.vocabulary,
        metrics_callouts=[structure.metrics_callout for structure in structures],
    )
    forest, _ = StructureTreeBuilder().build(tokenizer.tokenize(text))
    return forest, LintingEngine(settings).validate(forest, text)


def codes(diagnostics):
    return [diagnostic.code for diagnostic in diagnostics]


class TestLintingEngine(unittest.TestCase):
    """Test structure validation."""

    def setUp(self):
        self.dream = JournalStructure(id="dream", root_callout="dream", metrics_callout="metrics")

    def test_conforming_note(self):
        """Test that a well-formed note has no diagnostics."""
        _, result = validate(SCENARIO_A, self.dream)

        self.assertEqual(result.diagnostics, [])
        self.assertEqual([s.id for s in result.selections], ["dream"])
        self.assertEqual(result.matches[0].state, ValidationState.SATISFIED)

    def test_all_requirements_reported(self):
        """Test that evaluation continues after the first missing callout."""
        structure = JournalStructure(
            id="strict",
            root_callout="dream",
            child_callouts=["dream-diary", "symbols"],
            required_fields=["dream-diary", "symbols", "metrics"],
        )
        _, result = validate("> [!dream] 2024-01-01\n> text", structure)

        found = codes(result.diagnostics)
        self.assertEqual(found.count(DiagnosticCode.MISSING_REQUIRED_CALLOUT), 2)
        self.assertEqual(found.count(DiagnosticCode.MISSING_REQUIRED_FIELD), 1)
        self.assertTrue(all(d.severity == Severity.ERROR for d in result.diagnostics))
        self.assertEqual(result.matches[0].state, ValidationState.EXPECTING_REQUIRED_CHILDREN)

    def test_unexpected_callout(self):
        """Test a callout type outside the structure's vocabulary."""
        text = SCENARIO_A + "\n> [!symbols] water"
        _, result = validate(text, self.dream)

        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.UNEXPECTED_CALLOUT])
        diagnostic = result.diagnostics[0]
        self.assertEqual(diagnostic.severity, Severity.WARNING)
        self.assertEqual(diagnostic.line_number, 5)
        self.assertEqual(diagnostic.structure_id, "dream")

    def test_best_structure_selected(self):
        """Test scoring when several structures share a root callout."""
        strict = JournalStructure(
            id="strict", root_callout="dream", child_callouts=["diary"], required_fields=["diary"]
        )
        _, result = validate(SCENARIO_A, strict, self.dream)

        self.assertEqual(result.selections[0].id, "dream")
        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.ALTERNATIVE_STRUCTURES])
        self.assertEqual(result.diagnostics[0].severity, Severity.INFO)
        self.assertIn("strict", result.diagnostics[0].message)

    def test_ties_keep_configuration_order(self):
        first = JournalStructure(id="first", root_callout="dream")
        second = JournalStructure(id="second", root_callout="dream")
        _, result = validate(SCENARIO_A, first, second)

        self.assertEqual(result.selections[0].id, "first")

    def test_empty_metrics_callout(self):
        _, result = validate("> [!dream] 2024-01-01\n> [!metrics]\n> Lucid: —", self.dream)

        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.EMPTY_METRICS_CALLOUT])
        self.assertEqual(result.diagnostics[0].line_number, 2)

    def test_missing_root(self):
        """Test a note with callouts but no root callout."""
        _, result = validate("> [!note] hello", self.dream)
        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.MISSING_ROOT_CALLOUT])
        self.assertEqual(result.diagnostics[0].severity, Severity.ERROR)

        _, result = validate("just some text", self.dream)
        self.assertEqual(result.diagnostics, [])

    def test_improper_nesting(self):
        """Test a metrics callout outside its root in a nested structure."""
        text = "> [!dream] 2024-01-01\n> x\n\n> [!metrics]\n> Lucid: 1"
        _, result = validate(text, self.dream)

        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.IMPROPER_NESTING])
        self.assertEqual(result.diagnostics[0].line_number, 4)
        self.assertEqual(result.diagnostics[0].callout_path, ["metrics"])

    def test_nested_root_callout(self):
        text = "> [!dream] 2024-01-01\n> [!dream] 2024-01-02\n> [!metrics]\n> Lucid: 1"
        _, result = validate(text, self.dream)

        self.assertEqual(codes(result.diagnostics), [DiagnosticCode.NESTED_ROOT_CALLOUT])
        self.assertEqual(result.diagnostics[0].line_number, 2)

    def test_required_entry_fields(self):
        structure = JournalStructure(
            id="dated", root_callout="dream", required_fields=["date", "title", "content"]
        )
        _, result = validate("> [!dream]\n> [!metrics]\n> Lucid: 1", structure)

        messages = [d.message for d in result.diagnostics if d.code == DiagnosticCode.MISSING_REQUIRED_FIELD]
        self.assertEqual(len(messages), 3)
        self.assertTrue(any("'date'" in message for message in messages))

    def test_pattern_rules(self):
        """Test positive, negative, invalid and disabled rules."""
        rules = [
            LintRule(id="no-todo", pattern=r"TODO", negative=True, message="Remove TODO markers"),
            LintRule(id="tagged", pattern=r"#dream", severity=Severity.ERROR, priority=1),
            LintRule(id="broken", pattern=r"("),
            LintRule(id="off", pattern=r"never", enabled=False),
        ]
        text = SCENARIO_A + "\nTODO one\nand TODO two"
        _, result = validate(text, self.dream, rules=rules)

        violations = [d for d in result.diagnostics if d.code == DiagnosticCode.RULE_VIOLATION]
        self.assertEqual(len(violations), 3)
        self.assertEqual(violations[0].severity, Severity.ERROR)
        self.assertIsNone(violations[0].line_number)
        self.assertEqual([v.line_number for v in violations[1:]], [5, 6])
        self.assertEqual(violations[1].message, "Remove TODO markers")
        self.assertEqual(codes(result.diagnostics).count(DiagnosticCode.INVALID_RULE), 1)

    def test_validation_does_not_mutate_tree(self):
        text = SCENARIO_A + "\n> [!symbols] water"
        forest, _ = validate(text, self.dream)
        before = [node.model_dump() for node in forest]

        LintingEngine(JournalSettings(structures=[self.dream])).validate(forest, text)
        self.assertEqual([node.model_dump() for node in forest], before)


if __name__ == "__main__":
    unittest.main()
