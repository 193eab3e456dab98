"""
Parsing pipeline for OneiroMetrics.

parse_note runs tokenizer, tree builder, entry assembler and structure
validator over one note and returns entries plus diagnostics. It holds no
state between calls and never raises for any text input, so batches can
parse notes in parallel and merge the results afterwards.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Union

from .entries import EntryAssembler, find_candidates
from .journal_check import LintingEngine
from .metrics import summarize
from .models import (
    Diagnostic,
    DreamEntry,
    JournalSettings,
    JournalStructure,
    Note,
    ParseResult,
    count_by_severity,
)
from .parsing import CalloutTokenizer, StructureTreeBuilder


StructuresArg = Union[JournalSettings, Sequence[JournalStructure], None]

DEFAULT_MAX_WORKERS = 4


def _as_settings(structures: StructuresArg) -> JournalSettings:
    if isinstance(structures, JournalSettings):
        return structures
    return JournalSettings(structures=list(structures or []))


def parse_note(text: str, source: str, structures: StructuresArg = None) -> ParseResult:
    """
    Parse one note into dream entries.

    Args:
        text: Raw note text
        source: Path or identifier of the note, recorded on every entry
        structures: Journal structures to match, or full JournalSettings
            carrying metric definitions, content isolation and rules

    Returns:
        ParseResult with entries in document order and diagnostics ordered
        builder first, then assembler, then validator
    """
    settings = _as_settings(structures)
    text = text or ""

    tokenizer = CalloutTokenizer(
        vocabulary=settings.vocabulary if settings.structures else None,
        metrics_callouts=[structure.metrics_callout for structure in settings.structures],
    )
    tokens = tokenizer.tokenize(text)
    forest, builder_diagnostics = StructureTreeBuilder().build(tokens)

    candidates = find_candidates(forest, settings.structures)
    validation = LintingEngine(settings).validate(forest, text, candidates)
    entries, assembler_diagnostics = EntryAssembler(settings).assemble(
        candidates, source, validation.selections
    )

    diagnostics = [
        diagnostic.model_copy(update={"source": source})
        for diagnostic in builder_diagnostics + assembler_diagnostics + validation.diagnostics
    ]
    return ParseResult(entries=entries, diagnostics=diagnostics)


def parse_notes(notes: Iterable[Note], structures: StructuresArg = None,
                max_workers: Optional[int] = None) -> ParseResult:
    """
    Parse many notes in parallel and merge the results.

    Each note is parsed independently on a thread pool; results are merged
    in input order.

    Args:
        notes: Notes to parse
        structures: Journal structures or full JournalSettings
        max_workers: Thread pool size

    Returns:
        ParseResult with the entries and diagnostics of every note
    """
    settings = _as_settings(structures)
    notes = list(notes)
    workers = max(1, max_workers or DEFAULT_MAX_WORKERS)

    logging.info(f"Parsing {len(notes)} notes with {workers} workers")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(
            lambda note: parse_note(note.text, note.path, settings), notes
        ))

    entries: List[DreamEntry] = []
    diagnostics: List[Diagnostic] = []
    for result in results:
        entries.extend(result.entries)
        diagnostics.extend(result.diagnostics)

    counts = count_by_severity(diagnostics)
    logging.info(
        f"Parsed {len(entries)} entries from {len(notes)} notes "
        f"({counts['error']} errors, {counts['warning']} warnings)"
    )
    return ParseResult(entries=entries, diagnostics=diagnostics)


__all__ = ["parse_note", "parse_notes", "summarize"]
