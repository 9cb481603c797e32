from pathlib import Path

from core.catalog import CatalogEntry
from core.enums import EntryKind
from reporting.save_interesting.paths import (
    child_destination,
    directory_destination,
    entry_segment,
    file_destination,
    set_label_root,
)


def test_entry_segment_prefixes_id():
    assert entry_segment(1, "README") == "1_README"
    assert entry_segment(42, "my file.txt") == "42_my file.txt"


def test_file_destination():
    entry = CatalogEntry(id=1, name="README", kind=EntryKind.FILE)
    assert file_destination(Path("/out"), "ReadmeFiles", entry) == Path("/out/ReadmeFiles/1_README")


def test_directory_destination_repeats_name():
    entry = CatalogEntry(id=42, name="bomb", kind=EntryKind.DIRECTORY)
    assert directory_destination(Path("/out"), "SuspiciousDirs", entry) == Path(
        "/out/SuspiciousDirs/42_bomb/bomb"
    )


def test_child_destination_uses_bare_name():
    child = CatalogEntry(id=43, name="readme.txt", kind=EntryKind.FILE, parent_id=42)
    assert child_destination(Path("/out/S/42_bomb/bomb"), child) == Path("/out/S/42_bomb/bomb/readme.txt")


def test_set_label_root():
    assert set_label_root(Path("/out"), "Malware") == Path("/out/Malware")


def test_distinct_ids_never_share_destination():
    first = CatalogEntry(id=3, name="passwords.txt", kind=EntryKind.FILE)
    second = CatalogEntry(id=4, name="passwords.txt", kind=EntryKind.FILE)
    assert file_destination(Path("/out"), "S", first) != file_destination(Path("/out"), "S", second)
