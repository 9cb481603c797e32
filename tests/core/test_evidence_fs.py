from pathlib import Path

import pytest

from core.evidence_fs import MountedFS, find_ewf_segments, open_evidence_source


@pytest.fixture
def mount(tmp_path: Path) -> Path:
    root = tmp_path / "mount"
    data_dir = root / "Users" / "Alice"
    data_dir.mkdir(parents=True)
    (data_dir / "notes.txt").write_text("hello", encoding="utf-8")
    (root / "Users" / "Bob").mkdir()
    (root / "boot.ini").write_bytes(b"[boot loader]")
    return root


def test_mounted_fs_list_directory_sorted(mount: Path) -> None:
    fs = MountedFS(mount)

    entries = fs.list_directory("/")
    assert [(e.name, e.meta_type) for e in entries] == [("Users", "dir"), ("boot.ini", "reg")]
    assert entries[1].size_bytes == len(b"[boot loader]")
    assert entries[0].size_bytes is None
    assert entries[0].is_dir

    assert [e.name for e in fs.list_directory("/Users")] == ["Alice", "Bob"]


def test_mounted_fs_list_directory_errors(mount: Path) -> None:
    fs = MountedFS(mount)

    with pytest.raises(FileNotFoundError):
        fs.list_directory("/Windows")
    with pytest.raises(NotADirectoryError):
        fs.list_directory("/boot.ini")


def test_mounted_fs_reports_symlinks_without_following(mount: Path) -> None:
    link = mount / "Users" / "Alice" / "loop"
    try:
        link.symlink_to(mount / "Users", target_is_directory=True)
    except (OSError, NotImplementedError):
        pytest.skip("Symlinks not supported on this platform")

    entries = {e.name: e for e in MountedFS(mount).list_directory("/Users/Alice")}
    assert entries["loop"].meta_type == "lnk"
    assert not entries["loop"].is_dir


def test_mounted_fs_stream_in_chunks(mount: Path) -> None:
    fs = MountedFS(mount)

    chunks = list(fs.open_for_stream("/boot.ini", chunk_size=4))
    assert b"".join(chunks) == b"[boot loader]"
    assert len(chunks) == 4


def test_mounted_fs_stream_missing_file(mount: Path) -> None:
    fs = MountedFS(mount)

    with pytest.raises(FileNotFoundError):
        list(fs.open_for_stream("/Users/Alice/missing.txt"))
    with pytest.raises(FileNotFoundError):
        list(fs.open_for_stream("/Users"))


def test_mounted_fs_stat(mount: Path) -> None:
    fs = MountedFS(mount)

    file_stat = fs.stat("/Users/Alice/notes.txt")
    assert file_stat.size_bytes == 5
    assert file_stat.is_file and not file_stat.is_dir

    dir_stat = fs.stat("Users")
    assert dir_stat.is_dir and not dir_stat.is_file


def test_mounted_fs_stream_rejects_path_traversal(tmp_path: Path) -> None:
    mount = tmp_path / "mount"
    mount.mkdir()
    outside = tmp_path / "secret.txt"
    outside.write_text("secret", encoding="utf-8")

    fs = MountedFS(mount)
    with pytest.raises(ValueError, match="Path traversal attempt"):
        list(fs.open_for_stream("../secret.txt"))


def test_mounted_fs_stat_rejects_path_traversal(tmp_path: Path) -> None:
    mount = tmp_path / "mount"
    mount.mkdir()
    outside = tmp_path / "secret.txt"
    outside.write_text("secret", encoding="utf-8")

    fs = MountedFS(mount)
    with pytest.raises(ValueError, match="Path traversal attempt"):
        fs.stat("../secret.txt")


def test_mounted_fs_missing_mount(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        MountedFS(tmp_path / "nowhere")


def test_open_evidence_source_directory(mount: Path) -> None:
    with open_evidence_source(mount) as fs:
        assert isinstance(fs, MountedFS)
        assert fs.source_path == mount


def test_open_evidence_source_rejects_unknown_file(tmp_path: Path) -> None:
    raw = tmp_path / "disk.vmdk"
    raw.write_bytes(b"\x00")

    with pytest.raises(ValueError, match="Unsupported evidence source"):
        open_evidence_source(raw)
    with pytest.raises(FileNotFoundError):
        open_evidence_source(tmp_path / "missing.E01")


def test_find_ewf_segments_single(tmp_path: Path) -> None:
    """Test discovery of single-segment E01 file."""
    e01 = tmp_path / "evidence.E01"
    e01.write_text("fake ewf data")

    segments = find_ewf_segments(e01)
    assert segments == [e01]


def test_find_ewf_segments_multiple_uppercase(tmp_path: Path) -> None:
    """Test discovery of multi-segment E01 files (uppercase)."""
    e01 = tmp_path / "image.E01"
    e02 = tmp_path / "image.E02"
    e03 = tmp_path / "image.E03"

    e01.write_text("segment 1")
    e02.write_text("segment 2")
    e03.write_text("segment 3")

    assert find_ewf_segments(e01) == [e01, e02, e03]


def test_find_ewf_segments_multiple_lowercase(tmp_path: Path) -> None:
    """Test discovery of multi-segment e01 files (lowercase)."""
    e01 = tmp_path / "case.e01"
    e02 = tmp_path / "case.e02"

    e01.write_text("segment 1")
    e02.write_text("segment 2")

    assert find_ewf_segments(e01) == [e01, e02]


def test_find_ewf_segments_gaps(tmp_path: Path) -> None:
    """Test that segment discovery stops at first gap."""
    e01 = tmp_path / "data.E01"
    e02 = tmp_path / "data.E02"
    e04 = tmp_path / "data.E04"  # Gap at E03

    e01.write_text("segment 1")
    e02.write_text("segment 2")
    e04.write_text("segment 4")

    assert find_ewf_segments(e01) == [e01, e02]


def test_find_ewf_segments_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError, match="E01 segment not found"):
        find_ewf_segments(tmp_path / "missing.E01")


def test_find_ewf_segments_unusual_extension(tmp_path: Path) -> None:
    """Non-standard extensions fall back to a single file."""
    unusual = tmp_path / "data.raw"
    unusual.write_text("raw disk image")

    assert find_ewf_segments(unusual) == [unusual]
