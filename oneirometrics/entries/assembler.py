"""
Entry assembler for OneiroMetrics.

Materializes one DreamEntry per entry candidate: resolves the date, title,
content and metrics from the callouts that belong to the entry. Missing data
never aborts a note; it falls back to a documented placeholder and a
diagnostic is recorded.
"""

import hashlib
from collections import Counter
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import (
    CalloutNode,
    CalloutRef,
    CalloutSource,
    ContentSearch,
    Diagnostic,
    DiagnosticCode,
    DreamEntry,
    FileSource,
    JournalSettings,
    JournalStructure,
    MetricValue,
    StructureType,
    UNKNOWN_DATE,
)
from ..parsing import ContentSanitizer, DateMatcher, MetricsExtractor
from .candidates import EntryCandidate


TITLE_MAX_LENGTH = 50


def callout_id(node: CalloutNode) -> str:
    """
    Stable identifier of a callout.

    The Obsidian block id is used when present; otherwise a short hash of the
    callout's type, title and line range.
    """
    if node.block_id:
        return node.block_id
    start, end = node.source_line_range
    key = f"{node.callout_type}|{node.title or ''}|{start}-{end}"
    return f"callout-{hashlib.sha1(key.encode('utf-8')).hexdigest()[:12]}"


def truncate_title(text: str, limit: int = TITLE_MAX_LENGTH) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


class EntryAssembler:
    """
    Builds DreamEntry objects from entry candidates.
    """

    def __init__(self, settings: JournalSettings):
        """
        Initialize the assembler.

        Args:
            settings: Journal settings providing metric definitions and
                content isolation options
        """
        self.settings = settings
        self.extractor = MetricsExtractor(settings.metrics)
        self.sanitizer = ContentSanitizer(settings.content_isolation)
        self._matchers: Dict[Tuple[str, ...], DateMatcher] = {}

    def assemble(self, candidates: List[EntryCandidate], source_path: str,
                 selections: Optional[Sequence[Optional[JournalStructure]]] = None
                 ) -> Tuple[List[DreamEntry], List[Diagnostic]]:
        """
        Assemble one entry per candidate.

        Args:
            candidates: Entry candidates in document order
            source_path: Path or identifier of the note
            selections: Structure chosen for each candidate by the validator;
                a missing choice falls back to the candidate's first structure

        Returns:
            Tuple of (entries, assembler diagnostics) in document order
        """
        entries: List[DreamEntry] = []
        diagnostics: List[Diagnostic] = []
        source_ids = self._source_ids(candidates)

        for index, candidate in enumerate(candidates):
            structure = None
            if selections is not None and index < len(selections):
                structure = selections[index]
            structure = structure or candidate.default_structure

            if len(candidates) == 1:
                source = FileSource(path=source_path)
            else:
                source = CalloutSource(file=source_path, id=source_ids[index])

            entry, entry_diagnostics = self.build_entry(candidate, structure, source)
            entries.append(entry)
            diagnostics.extend(entry_diagnostics)

        return entries, diagnostics

    def build_entry(self, candidate: EntryCandidate, structure: JournalStructure,
                    source) -> Tuple[DreamEntry, List[Diagnostic]]:
        """
        Build the entry for one candidate under one structure.

        Returns:
            Tuple of (entry, diagnostics raised while resolving its fields)
        """
        diagnostics: List[Diagnostic] = []
        scope = [
            (node, path) for node, path in candidate.scope(structure)
            if node.callout_type != structure.root_callout
        ]

        date = self._resolve_date(candidate, structure, scope)
        if date is None:
            date = UNKNOWN_DATE
            diagnostics.append(Diagnostic.error(
                DiagnosticCode.MISSING_DATE,
                f"No date matching {', '.join(structure.date_formats)} found for "
                f"'{candidate.anchor.callout_type}' entry",
                line_number=candidate.line_number,
                callout_path=candidate.callout_path,
                structure_id=structure.id,
            ))

        content = self._resolve_content(candidate, structure, scope)
        title = self._resolve_title(candidate, structure, scope, content)
        metrics = self._resolve_metrics(candidate, structure, scope, diagnostics)

        entry = DreamEntry(
            date=date,
            title=title,
            content=content,
            metrics=metrics,
            source=source,
            callout_metadata=self._callout_refs(candidate, scope),
        )
        return entry, diagnostics

    def find_metrics_node(self, candidate: EntryCandidate, structure: JournalStructure,
                          scope: Optional[List[Tuple[CalloutNode, List[str]]]] = None
                          ) -> Optional[Tuple[CalloutNode, List[str]]]:
        """
        Locate the metrics callout of an entry.

        Direct children are searched before deeper descendants. The anchor
        itself counts when it is a metrics callout.
        """
        if candidate.anchor.callout_type == structure.metrics_callout:
            return candidate.anchor, candidate.callout_path

        if scope is None:
            scope = candidate.scope(structure)
        for node, path in scope:
            if node.callout_type == structure.metrics_callout:
                return node, path
        return None

    def extract_metrics(self, node: CalloutNode, path: List[str]
                        ) -> Tuple[Dict[str, MetricValue], List[Diagnostic]]:
        return self.extractor.extract(node.metrics_raw, node.metrics_line_numbers, path)

    def _matcher(self, structure: JournalStructure) -> DateMatcher:
        key = tuple(structure.date_formats)
        if key not in self._matchers:
            self._matchers[key] = DateMatcher(structure.date_formats)
        return self._matchers[key]

    def _resolve_date(self, candidate: EntryCandidate, structure: JournalStructure,
                      scope: List[Tuple[CalloutNode, List[str]]]) -> Optional[str]:
        matcher = self._matcher(structure)
        anchor = candidate.anchor

        date = (
            matcher.match(anchor.title)
            or matcher.match_compact(anchor.callout_meta)
            or matcher.match_compact(anchor.block_id)
        )
        if date:
            return date

        nearby = [node for node, _ in scope] + list(reversed(candidate.ancestors))
        for node in nearby:
            date = (
                matcher.match(node.title)
                or matcher.match_compact(node.callout_meta)
                or matcher.match_compact(node.block_id)
            )
            if date:
                return date
        return None

    def _resolve_content(self, candidate: EntryCandidate, structure: JournalStructure,
                         scope: List[Tuple[CalloutNode, List[str]]]) -> str:
        anchor = candidate.anchor
        lines: List[Optional[str]] = []

        if anchor.callout_type != structure.metrics_callout:
            lines.append(anchor.title)
            lines.extend(anchor.content_lines)

        if structure.type == StructureType.NESTED:
            content_node = self._find_content_node(structure, scope)
            if content_node is not None:
                lines.append(content_node.title)
                lines.extend(content_node.content_lines)
        else:
            for node in candidate.siblings:
                if node.is_untyped or node.callout_type == structure.content_callout:
                    lines.append(node.title)
                    lines.extend(node.content_lines)

        return self.sanitizer.sanitize(lines)

    @staticmethod
    def _find_content_node(structure: JournalStructure,
                           scope: List[Tuple[CalloutNode, List[str]]]) -> Optional[CalloutNode]:
        if not structure.content_callout:
            return None

        matches = [
            (node, path) for node, path in scope
            if node.callout_type == structure.content_callout
        ]
        if not matches:
            return None

        if structure.content_search == ContentSearch.DEEPEST:
            deepest = max(len(path) for _, path in matches)
            for node, path in matches:
                if len(path) == deepest:
                    return node

        # Direct children come first in breadth-first order
        return matches[0][0]

    def _resolve_title(self, candidate: EntryCandidate, structure: JournalStructure,
                       scope: List[Tuple[CalloutNode, List[str]]], content: str) -> str:
        anchor = candidate.anchor
        if anchor.title and anchor.callout_type != structure.metrics_callout:
            return anchor.title

        for node, _ in scope:
            if node.title and node.callout_type != structure.metrics_callout:
                return node.title

        for line in content.split("\n"):
            if line.strip():
                return truncate_title(line)
        return ""

    def _resolve_metrics(self, candidate: EntryCandidate, structure: JournalStructure,
                         scope: List[Tuple[CalloutNode, List[str]]],
                         diagnostics: List[Diagnostic]) -> Dict[str, MetricValue]:
        found = self.find_metrics_node(candidate, structure, scope)
        if found is None:
            diagnostics.append(Diagnostic.warning(
                DiagnosticCode.NO_METRICS_FOUND,
                f"No '{structure.metrics_callout}' callout found in "
                f"'{candidate.anchor.callout_type}' entry",
                line_number=candidate.line_number,
                callout_path=candidate.callout_path,
                structure_id=structure.id,
            ))
            return {}

        node, path = found
        metrics, metric_diagnostics = self.extract_metrics(node, path)
        diagnostics.extend(metric_diagnostics)
        return metrics

    @staticmethod
    def _callout_refs(candidate: EntryCandidate,
                      scope: List[Tuple[CalloutNode, List[str]]]) -> List[CalloutRef]:
        nodes = [candidate.anchor] + [node for node, _ in scope if not node.is_untyped]
        nodes.sort(key=lambda node: node.start_line)
        return [CalloutRef(type=node.callout_type, id=callout_id(node)) for node in nodes]

    @staticmethod
    def _source_ids(candidates: List[EntryCandidate]) -> List[str]:
        block_ids = Counter(
            candidate.anchor.block_id for candidate in candidates if candidate.anchor.block_id
        )
        ids = []
        for candidate in candidates:
            block_id = candidate.anchor.block_id
            if block_id and block_ids[block_id] == 1:
                ids.append(block_id)
            else:
                ids.append(f"entry-{candidate.ordinal}")
        return ids
