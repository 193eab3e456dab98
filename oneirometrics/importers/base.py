"""
Base importer interface for OneiroMetrics.

This module defines the abstract interface that all note sources must implement.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import Note


class BaseImporter(ABC):
    """
    Abstract base class for all note importers.

    Each importer reads journal notes from one kind of source (a vault
    folder, fixed sample data...) and hands them to the parser as Note
    objects.
    """

    @abstractmethod
    def get_all_notes(self) -> List[Note]:
        """
        Retrieve all notes from the source.

        Returns:
            List of Note objects in a stable order
        """
        pass
