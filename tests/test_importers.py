import pytest

from oneirometrics.importers import MockImporter, VaultImporter
from oneirometrics.models import Note
from oneirometrics.pipeline import parse_notes
from oneirometrics.config import ConfigManager


@pytest.fixture
def vault(tmp_path):
    vault_dir = tmp_path / "vault"
    (vault_dir / "Journal" / "2024").mkdir(parents=True)
    (vault_dir / "Templates").mkdir()
    (vault_dir / ".obsidian").mkdir()

    (vault_dir / "Journal" / "2024" / "b.md").write_text("> [!dream] 2024-01-02\n> two", encoding="utf-8")
    (vault_dir / "Journal" / "2024" / "a.md").write_text("> [!dream] 2024-01-01\n> one", encoding="utf-8")
    (vault_dir / "Journal" / "scratch.md").write_text("scratch", encoding="utf-8")
    (vault_dir / "Templates" / "dream.md").write_text("> [!dream] {{date}}", encoding="utf-8")
    (vault_dir / ".obsidian" / "workspace.md").write_text("{}", encoding="utf-8")
    (vault_dir / "image.png").write_bytes(b"\x89PNG")
    (vault_dir / "index.md").write_text("# Index", encoding="utf-8")
    return vault_dir


def test_vault_importer_reads_notes_in_order(vault):
    importer = VaultImporter(vault_path=str(vault), excluded_subfolders=[".obsidian"])
    notes = importer.get_all_notes()

    assert [note.path for note in notes] == [
        "Journal/2024/a.md",
        "Journal/2024/b.md",
        "Journal/scratch.md",
        "Templates/dream.md",
        "index.md",
    ]
    assert notes[0].text == "> [!dream] 2024-01-01\n> one"
    assert all(isinstance(note, Note) for note in notes)


def test_vault_importer_exclusions(vault):
    importer = VaultImporter(
        vault_path=str(vault),
        excluded_notes=["scratch", "index.md"],
        excluded_subfolders=["Templates", ".obsidian", "Journal/2024/"],
    )
    assert importer.get_all_notes() == []

    importer = VaultImporter(vault_path=str(vault), excluded_notes=["Journal/2024/b.md"],
                             excluded_subfolders=["Templates", ".obsidian"])
    assert [note.path for note in importer.get_all_notes()] == [
        "Journal/2024/a.md", "Journal/scratch.md", "index.md"
    ]


def test_vault_importer_max_files(vault):
    importer = VaultImporter(vault_path=str(vault), excluded_subfolders=[".obsidian"], max_files=2)
    assert [note.path for note in importer.get_all_notes()] == ["Journal/2024/a.md", "Journal/2024/b.md"]


def test_vault_importer_missing_directory(tmp_path):
    importer = VaultImporter(vault_path=str(tmp_path / "missing"))
    assert importer.get_all_notes() == []


def test_vault_notes_parse(vault):
    importer = VaultImporter(vault_path=str(vault), excluded_subfolders=["Templates", ".obsidian"])
    settings = ConfigManager(str(vault / "no-config.yaml")).journal_settings

    result = parse_notes(importer.get_all_notes(), settings)

    assert [entry.date for entry in result.entries] == ["2024-01-01", "2024-01-02"]
    assert [entry.source.file for entry in result.entries] == ["Journal/2024/a.md", "Journal/2024/b.md"]


def test_mock_importer():
    importer = MockImporter()
    notes = importer.get_all_notes()

    assert len(notes) == 4
    assert notes[0].path == "Journal/2024-01-01.md"

    # Callers get a copy of the sample list
    notes.clear()
    assert len(importer.get_all_notes()) == 4


def test_mock_notes_parse():
    settings = ConfigManager("does-not-exist.yaml").journal_settings
    result = parse_notes(MockImporter().get_all_notes(), settings)

    assert len(result.entries) == 5
    assert [entry.date for entry in result.entries][:4] == [
        "2024-01-01", "2024-01-02", "2024-01-02", "2024-01-03"
    ]
    assert result.entries[3].metrics == {"Sensory Detail": 3, "Emotional Recall": 4, "Confidence Score": 5}
