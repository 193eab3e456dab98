"""
Entry candidate discovery for OneiroMetrics.

A candidate is a callout that anchors one journal entry, together with the
callouts that belong to it. Both the entry assembler and the structure
validator work from the same candidate list, so they always agree on how
many entries a note holds.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

from ..models import CalloutNode, JournalStructure, StructureType


@dataclass
class EntryCandidate:
    """One potential journal entry found in the structure tree."""

    anchor: CalloutNode
    structures: List[JournalStructure]
    ancestors: List[CalloutNode] = field(default_factory=list)
    siblings: List[CalloutNode] = field(default_factory=list)
    has_root: bool = True
    ordinal: int = 0

    @property
    def line_number(self) -> int:
        return self.anchor.start_line

    @property
    def callout_path(self) -> List[str]:
        return [node.callout_type for node in self.ancestors] + [self.anchor.callout_type]

    @property
    def default_structure(self) -> JournalStructure:
        return self.structures[0]

    def scope(self, structure: JournalStructure) -> List[Tuple[CalloutNode, List[str]]]:
        """
        Nodes belonging to this entry under a structure, breadth-first.

        Nested structures own the anchor's subtree; flat structures also own
        the grouped siblings and their subtrees. Nested root callouts of the
        same type are not descended into, since they anchor entries of their
        own.

        Returns:
            List of (node, callout path) pairs, the anchor excluded
        """
        base_path = self.callout_path
        queue = deque((child, base_path + [child.callout_type]) for child in self.anchor.children)
        if structure.type == StructureType.FLAT:
            queue.extend(
                (sibling, [node.callout_type for node in self.ancestors] + [sibling.callout_type])
                for sibling in self.siblings
            )

        result: List[Tuple[CalloutNode, List[str]]] = []
        while queue:
            node, path = queue.popleft()
            result.append((node, path))
            if node.callout_type == structure.root_callout:
                continue
            queue.extend((child, path + [child.callout_type]) for child in node.children)
        return result

    def covered_nodes(self) -> Iterator[CalloutNode]:
        """Every node this candidate could claim under any of its structures."""
        yield from self.anchor.walk()
        if any(structure.type == StructureType.FLAT for structure in self.structures):
            for sibling in self.siblings:
                yield from sibling.walk()


def find_candidates(forest: List[CalloutNode],
                    structures: List[JournalStructure]) -> List[EntryCandidate]:
    """
    Find every entry anchor in document order.

    Each callout whose type is a structure's root callout anchors an entry.
    In a list of siblings, a root also collects the siblings that follow it
    up to the next root, for flat structures. A metrics callout of a flat
    structure that appears before any root in its sibling run, outside any
    root, anchors an entry without a root.

    Args:
        forest: Top-level callout nodes
        structures: Configured journal structures in priority order

    Returns:
        Entry candidates numbered from 1
    """
    candidates: List[EntryCandidate] = []
    if not structures:
        return candidates

    root_types: Set[str] = {structure.root_callout for structure in structures}
    _collect(forest, structures, root_types, candidates)

    for ordinal, candidate in enumerate(candidates, start=1):
        candidate.ordinal = ordinal
    return candidates


@dataclass
class _SiblingRun:
    """A list of sibling callouts being scanned, with what encloses it."""

    nodes: Iterator[CalloutNode]
    ancestors: List[CalloutNode]
    inside_root: bool
    current: Optional[EntryCandidate] = None


def _collect(forest: List[CalloutNode], structures: List[JournalStructure],
             root_types: Set[str], candidates: List[EntryCandidate]) -> None:
    # Depth-first with an explicit stack: a continuous quote can nest
    # thousands of callouts
    stack = [_SiblingRun(nodes=iter(forest), ancestors=[], inside_root=False)]

    while stack:
        run = stack[-1]
        node = next(run.nodes, None)
        if node is None:
            stack.pop()
            continue

        if node.callout_type in root_types:
            run.current = EntryCandidate(
                anchor=node,
                structures=[s for s in structures if s.root_callout == node.callout_type],
                ancestors=list(run.ancestors),
            )
            candidates.append(run.current)
        elif run.current is not None:
            run.current.siblings.append(node)
        elif not run.inside_root:
            orphan_structures = [
                s for s in structures
                if s.type == StructureType.FLAT and s.metrics_callout == node.callout_type
            ]
            if orphan_structures:
                run.current = EntryCandidate(
                    anchor=node,
                    structures=orphan_structures,
                    ancestors=list(run.ancestors),
                    has_root=False,
                )
                candidates.append(run.current)

        if node.children:
            stack.append(_SiblingRun(
                nodes=iter(node.children),
                ancestors=run.ancestors + [node],
                inside_root=run.inside_root or node.callout_type in root_types,
            ))
