"""
Tests for the parsing pipeline, metric aggregation and the command line.
"""

import io
import json
import math
import os
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path
from unittest.mock import patch

import main as cli
from oneirometrics.metrics import round_half_up, summarize
from oneirometrics.models import (
    DiagnosticCode,
    DreamEntry,
    FileSource,
    JournalSettings,
    JournalStructure,
    MetricDefinition,
    MetricKind,
    Note,
    Severity,
)
from oneirometrics.pipeline import parse_note, parse_notes


SCENARIO_A = "> [!dream] 2024-01-01\n> Flew over mountains.\n> [!metrics]\n> Lucid: 1, Vivid: 4"

DREAM = JournalStructure(id="dream", root_callout="dream", metrics_callout="metrics")


def make_entry(metrics, content="a dream"):
    return DreamEntry(
        date="2024-01-01",
        title="Dream",
        content=content,
        metrics=metrics,
        source=FileSource(path="a.md"),
    )


class TestParseNote(unittest.TestCase):
    """Test parse_note end to end."""

    def test_scenario_nested_dream(self):
        result = parse_note(SCENARIO_A, "Journal/a.md", [DREAM])

        self.assertEqual(len(result.entries), 1)
        entry = result.entries[0]
        self.assertEqual(entry.date, "2024-01-01")
        self.assertEqual(entry.metrics, {"Lucid": 1, "Vivid": 4})
        self.assertEqual(entry.word_count, 4)
        self.assertFalse(any(d.severity == Severity.ERROR for d in result.diagnostics))

    def test_scenario_misnamed_metrics_callout(self):
        structure = JournalStructure(root_callout="dream", metrics_callout="metricz")
        result = parse_note(SCENARIO_A, "a.md", [structure])

        self.assertEqual(len(result.entries), 1)
        self.assertEqual(result.entries[0].metrics, {})
        no_metrics = [d for d in result.diagnostics if d.code == DiagnosticCode.NO_METRICS_FOUND]
        self.assertEqual(len(no_metrics), 1)
        self.assertEqual(no_metrics[0].severity, Severity.WARNING)

    def test_scenario_two_roots(self):
        text = "> [!dream] 2024-01-01\n> One.\n\n> [!dream] 2024-01-02\n> Two."
        result = parse_note(text, "a.md", [DREAM])

        self.assertEqual(len(result.entries), 2)
        self.assertEqual({e.source.file for e in result.entries}, {"a.md"})
        self.assertNotEqual(result.entries[0].source.id, result.entries[1].source.id)

    def test_scenario_unparsable_metric(self):
        text = "> [!dream] 2024-01-01\n> [!metrics]\n> Lucid: abc, Vivid: 3"
        result = parse_note(text, "a.md", [DREAM])

        self.assertEqual(result.entries[0].metrics, {"Vivid": 3})
        unparsable = [d for d in result.diagnostics if d.code == DiagnosticCode.UNPARSABLE_METRIC]
        self.assertEqual(len(unparsable), 1)
        self.assertEqual(unparsable[0].severity, Severity.WARNING)
        self.assertIn("Lucid", unparsable[0].message)

    def test_idempotent(self):
        text = SCENARIO_A + "\n>>>> [!symbols] deep\n\n> [!dream] undated"
        first = parse_note(text, "a.md", [DREAM])
        second = parse_note(text, "a.md", [DREAM])

        self.assertEqual(first.model_dump(), second.model_dump())

    def test_nonconforming_callout_changes_only_diagnostics(self):
        base = parse_note(SCENARIO_A, "a.md", [DREAM])
        extended = parse_note(SCENARIO_A + "\n> [!weird] stuff", "a.md", [DREAM])

        self.assertEqual(len(extended.entries), len(base.entries))
        self.assertGreater(len(extended.diagnostics), len(base.diagnostics))

    def test_word_count_matches_content(self):
        text = (
            "> [!dream] 2024-01-01\n> **Flew** over [[Alps|mountains]] %%note%%\n"
            "> [!metrics]\n> Lucid: 1\n\n"
            "> [!dream] 2024-01-02\n> ## Then\n> a ~~long~~ walk"
        )
        result = parse_note(text, "a.md", [DREAM])

        for entry in result.entries:
            self.assertEqual(entry.word_count, len(entry.content.split()))

    def test_diagnostic_order_and_source(self):
        """Test builder, assembler, then validator ordering."""
        text = "> [!dream]\n>>> [!symbols] x"
        result = parse_note(text, "Journal/b.md", [DREAM])

        found = [d.code for d in result.diagnostics]
        self.assertEqual(found[0], DiagnosticCode.DEPTH_JUMP)
        self.assertLess(found.index(DiagnosticCode.MISSING_DATE), found.index(DiagnosticCode.UNEXPECTED_CALLOUT))
        self.assertTrue(all(d.source == "Journal/b.md" for d in result.diagnostics))

    def test_settings_with_metric_definitions(self):
        settings = JournalSettings(
            structures=[DREAM],
            metrics=[MetricDefinition(name="Mood", kind=MetricKind.ENUM, options=["calm"])],
        )
        text = "> [!dream] 2024-01-01\n> [!metrics]\n> mood: Calm, Lucid: 2"
        result = parse_note(text, "a.md", settings)

        self.assertEqual(result.entries[0].metrics, {"Mood": "calm", "Lucid": 2})

    def test_no_structures(self):
        result = parse_note(SCENARIO_A, "a.md")
        self.assertEqual(result.entries, [])
        self.assertEqual(result.diagnostics, [])

    def test_never_raises(self):
        """Test malformed input of every kind."""
        samples = [
            "", None, "\x00\x00", ">>>>>>", "> [!]", "> [!dream", "[!dream] x",
            "> [!dream]\n>>>>>>>>>> [!metrics]\n>>>>>>>>>> :::,,,",
            "> [!metrics]\n> : 1, Lucid:, : , ,",
            "\t>\t>\t[!dream]\t2024-13-45\n\r\n\r",
        ]
        for text in samples:
            result = parse_note(text, "x.md", [DREAM])
            self.assertIsNotNone(result)
            summarize(result.entries, include_word_count=True)

    def test_overflowing_metric_value(self):
        """Test that 1e999 is reported instead of becoming infinity."""
        text = "> [!dream] 2024-01-01\n> x\n> [!metrics]\n> Lucid: 1e999, Vivid: 2"
        result = parse_note(text, "a.md", [DREAM])

        self.assertEqual(result.entries[0].metrics, {"Vivid": 2})
        unparsable = [d for d in result.diagnostics if d.code == DiagnosticCode.UNPARSABLE_METRIC]
        self.assertEqual(len(unparsable), 1)
        self.assertEqual(unparsable[0].line_number, 4)
        self.assertEqual(summarize(result.entries)[0].average, 2.0)

    def test_long_continuous_quote(self):
        """Test a note where every marker nests inside the previous callout."""
        text = "> [!dream] 2024-01-01\n" + "> [!note] n\n" * 2000
        result = parse_note(text, "a.md", [DREAM])

        self.assertEqual(len(result.entries), 1)
        self.assertEqual(result.entries[0].date, "2024-01-01")
        unexpected = [d for d in result.diagnostics if d.code == DiagnosticCode.UNEXPECTED_CALLOUT]
        self.assertEqual(len(unexpected), 2000)
        self.assertEqual(len(unexpected[-1].callout_path), 2001)


class TestParseNotes(unittest.TestCase):
    """Test batch parsing."""

    def test_results_keep_input_order(self):
        notes = [
            Note(path=f"{day:02d}.md", text=f"> [!dream] 2024-01-{day:02d}\n> dream {day}")
            for day in range(1, 11)
        ]
        result = parse_notes(notes, [DREAM], max_workers=4)

        self.assertEqual([e.date for e in result.entries], [f"2024-01-{day:02d}" for day in range(1, 11)])
        self.assertEqual(
            [d.source for d in result.diagnostics if d.code == DiagnosticCode.NO_METRICS_FOUND],
            [note.path for note in notes]
        )

    def test_matches_single_note_results(self):
        notes = [Note(path="a.md", text=SCENARIO_A), Note(path="b.md", text="> [!dream] x")]
        batch = parse_notes(notes, [DREAM], max_workers=2)

        single = [parse_note(note.text, note.path, [DREAM]) for note in notes]
        self.assertEqual(batch.entries, [e for r in single for e in r.entries])
        self.assertEqual(batch.diagnostics, [d for r in single for d in r.diagnostics])


class TestSummarize(unittest.TestCase):
    """Test metric aggregation."""

    def test_average_rounding(self):
        entries = [make_entry({"Lucid": 1.0}), make_entry({"Lucid": 0.0}), make_entry({"Lucid": 1.0})]
        summaries = summarize(entries)

        self.assertEqual(len(summaries), 1)
        summary = summaries[0]
        self.assertEqual(summary.metric_name, "Lucid")
        self.assertEqual(summary.average, 0.667)
        self.assertEqual(summary.min, 0)
        self.assertEqual(summary.max, 1)
        self.assertEqual(summary.count, 3)

    def test_half_up_rounding(self):
        self.assertEqual(summarize([make_entry({"A": 0.0005})])[0].average, 0.001)
        self.assertEqual(summarize([make_entry({"A": 1.0}), make_entry({"A": 2.0})])[0].average, 1.5)

    def test_large_and_non_finite_values(self):
        """Test rounding beyond the default decimal precision."""
        self.assertEqual(round_half_up(Decimal("1e30")), 1e30)
        self.assertEqual(round_half_up(Decimal("123456789012345678901234567890.0005")),
                         123456789012345678901234567890.001)
        self.assertTrue(math.isinf(round_half_up(Decimal("Infinity"))))

        large = summarize([make_entry({"A": 1e300}), make_entry({"A": 1e300})])[0]
        self.assertEqual(large.average, 1e300)

        # Entries built directly may carry values no note can produce
        infinite = summarize([make_entry({"A": float("inf")}), make_entry({"A": 1.0})])[0]
        self.assertTrue(math.isinf(infinite.average))
        self.assertEqual(infinite.max, float("inf"))

        mixed = summarize([make_entry({"A": float("inf")}), make_entry({"A": float("-inf")})])[0]
        self.assertTrue(math.isnan(mixed.average))

    def test_enumerated_values_counted_not_averaged(self):
        entries = [make_entry({"Mood": "calm"}), make_entry({"Mood": "calm", "Lucid": 0.0})]
        summaries = {s.metric_name: s for s in summarize(entries)}

        mood = summaries["Mood"]
        self.assertIsNone(mood.average)
        self.assertIsNone(mood.min)
        self.assertFalse(mood.has_numeric_data)
        self.assertEqual(mood.count, 2)
        self.assertEqual(mood.non_numeric_count, 2)
        self.assertEqual(mood.value_counts, {"calm": 2})

        lucid = summaries["Lucid"]
        self.assertEqual(lucid.average, 0.0)
        self.assertTrue(lucid.has_numeric_data)

    def test_order_of_first_appearance(self):
        entries = [make_entry({"B": 1.0}), make_entry({"A": 1.0, "B": 2.0})]
        self.assertEqual([s.metric_name for s in summarize(entries)], ["B", "A"])

    def test_word_count_summary(self):
        entries = [make_entry({}, "one two"), make_entry({}, "one two three four")]
        summaries = summarize(entries, include_word_count=True)

        self.assertEqual([s.metric_name for s in summaries], ["Words"])
        self.assertEqual(summaries[0].average, 3.0)
        self.assertEqual(summarize([]), [])


class TestCommandLine(unittest.TestCase):
    """Test the main entry point with the mock importer."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.temp_dir.name) / "config.yaml"
        log_file = Path(self.temp_dir.name) / "test.log"
        with open(self.config_path, 'w') as f:
            f.write(f"paths:\n  log_file: '{log_file.as_posix()}'\n")

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_main(self, *args):
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            code = cli.main(["--config", str(self.config_path), "--importer", "mock", *args])
        return code, stdout.getvalue()

    def test_json_output(self):
        code, output = self.run_main("--format", "json", "--summary")

        self.assertEqual(code, 0)
        payload = json.loads(output)
        self.assertEqual(len(payload["entries"]), 5)
        self.assertIn("word_count", payload["entries"][0])
        names = [summary["metric_name"] for summary in payload["summaries"]]
        self.assertIn("Sensory Detail", names)

    def test_text_output(self):
        code, output = self.run_main("--words")

        self.assertEqual(code, 0)
        self.assertIn("2024-01-01", output)
        self.assertIn("Words:", output)
        self.assertIn("5 entries", output)

    def test_strict_mode(self):
        code, _ = self.run_main("--strict")
        self.assertEqual(code, cli.EXIT_STRICT_ERRORS)

    def test_invalid_configuration(self):
        with open(self.config_path, 'a') as f:
            f.write("journal:\n  structures:\n    - name: no root\n")

        with patch("sys.stderr", new_callable=io.StringIO):
            code, _ = self.run_main()
        self.assertEqual(code, cli.EXIT_FAILURE)


if __name__ == "__main__":
    unittest.main()
