"""
Mock importer for testing OneiroMetrics.

This module provides a fixed set of journal notes for exercising the
pipeline without a vault on disk.
"""

from typing import List

from ..models import Note
from .base import BaseImporter


class MockImporter(BaseImporter):
    """
    Mock importer that returns hardcoded journal notes.

    The notes cover the common layouts: a dream with nested metrics, several
    dreams in one note, a journal entry with a dream diary, and a note with
    structural problems.
    """

    def __init__(self):
        """Initialize the mock importer with sample notes."""
        self._notes = self._create_sample_notes()

    def get_all_notes(self) -> List[Note]:
        """
        Return all sample notes.

        Returns:
            List of sample Note objects
        """
        return list(self._notes)

    def _create_sample_notes(self) -> List[Note]:
        notes = []

        # Note 1: a single dream with nested metrics
        notes.append(Note(
            path="Journal/2024-01-01.md",
            text=(
                "> [!dream] 2024-01-01\n"
                "> Flew over **snowy** mountains with an old friend.\n"
                "> [!metrics]\n"
                "> Sensory Detail: 4, Emotional Recall: 3\n"
                "> Lucidity Level: 2\n"
            ),
        ))

        # Note 2: two dreams in one note
        notes.append(Note(
            path="Journal/2024-01-02.md",
            text=(
                "> [!dream] 2024-01-02 ^morning\n"
                "> A library where every book was blank.\n"
                "> [!metrics]\n"
                "> Sensory Detail: 2, Lost Segments: 3\n"
                "\n"
                "> [!dream] 2024-01-02 ^nap\n"
                "> Swimming through a flooded [[Train Station|station]].\n"
                "> [!metrics]\n"
                "> Sensory Detail: 5, Lost Segments: 0, Lucidity Level: 4\n"
            ),
        ))

        # Note 3: journal entry with a dream diary and deeper metrics
        notes.append(Note(
            path="Journal/2024-01-03.md",
            text=(
                "> [!journal-entry|20240103] Wednesday\n"
                "> Slept badly after a late dinner.\n"
                ">\n"
                ">> [!dream-diary] The Lighthouse\n"
                ">> Climbed a lighthouse whose stairs never ended.\n"
                ">>\n"
                ">>> [!dream-metrics]\n"
                ">>> Sensory Detail: 3, Emotional Recall: 4, Confidence Score: 5\n"
            ),
        ))

        # Note 4: a dream without a date or metrics
        notes.append(Note(
            path="Journal/undated.md",
            text=(
                "> [!dream] Falling\n"
                "> Fell through clouds for what felt like hours.\n"
                "> [!symbols]\n"
                "> clouds, falling\n"
            ),
        ))

        return notes
