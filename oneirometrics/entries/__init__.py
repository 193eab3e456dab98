"""Journal entry discovery and assembly."""

from .assembler import EntryAssembler, callout_id
from .candidates import EntryCandidate, find_candidates

__all__ = ["EntryAssembler", "EntryCandidate", "callout_id", "find_candidates"]
