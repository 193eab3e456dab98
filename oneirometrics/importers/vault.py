"""
Vault importer for OneiroMetrics.

Reads markdown notes from a vault folder on disk.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..models import Note
from .base import BaseImporter


NOTE_SUFFIX = ".md"


class VaultImporter(BaseImporter):
    """
    Importer for a folder of markdown notes.

    Notes are read recursively in sorted path order. Paths on the returned
    notes are relative to the vault root, using forward slashes.
    """

    def __init__(self, vault_path: str, excluded_notes: Optional[Iterable[str]] = None,
                 excluded_subfolders: Optional[Iterable[str]] = None, max_files: int = 200):
        """
        Initialize the vault importer.

        Args:
            vault_path: Path to the vault directory
            excluded_notes: Notes to skip, by relative path, file name or name without suffix
            excluded_subfolders: Folders to skip, by relative path or folder name
            max_files: Maximum number of notes to read
        """
        self.vault_path = Path(vault_path)
        self.excluded_notes = {name.strip("/") for name in (excluded_notes or [])}
        self.excluded_subfolders = {name.strip("/") for name in (excluded_subfolders or [])}
        self.max_files = max_files

        if not self.vault_path.is_dir():
            logging.warning(f"Vault directory not found: {vault_path}")

        logging.info(f"Initialized vault importer for: {self.vault_path}")

    def get_all_notes(self) -> List[Note]:
        """
        Read every markdown note in the vault.

        Unreadable notes are logged and skipped.

        Returns:
            List of Note objects
        """
        if not self.vault_path.is_dir():
            return []

        paths = self.list_note_paths()
        if len(paths) > self.max_files:
            logging.warning(
                f"Vault holds {len(paths)} notes; only the first {self.max_files} are read"
            )
            paths = paths[:self.max_files]

        notes: List[Note] = []
        for path in paths:
            relative = path.relative_to(self.vault_path).as_posix()
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logging.error(f"Failed to read note {relative}: {e}")
                continue
            notes.append(Note(path=relative, text=text))

        logging.info(f"Loaded {len(notes)} notes from {self.vault_path}")
        return notes

    def list_note_paths(self) -> List[Path]:
        """Return the paths of all notes that are not excluded, sorted."""
        return sorted(
            path for path in self.vault_path.rglob(f"*{NOTE_SUFFIX}")
            if path.is_file() and not self._is_excluded(path)
        )

    def _is_excluded(self, path: Path) -> bool:
        relative = path.relative_to(self.vault_path)
        relative_posix = relative.as_posix()

        if (relative_posix in self.excluded_notes
                or path.name in self.excluded_notes
                or path.stem in self.excluded_notes):
            return True

        folders = relative.parts[:-1]
        for index in range(len(folders)):
            if folders[index] in self.excluded_subfolders:
                return True
            if "/".join(folders[:index + 1]) in self.excluded_subfolders:
                return True
        return False
