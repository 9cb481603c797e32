from __future__ import annotations

import os
import re
import stat as stat_module
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Optional

from .logging import get_logger

LOGGER = get_logger("core.evidence_fs")

EWF_SUFFIX_RE = re.compile(r"^\.e\d{2}$", re.IGNORECASE)


@dataclass
class EvidenceFileStat:
    """
    File metadata from evidence filesystem.

    All timestamps are Unix epochs (float) for precision.
    """
    size_bytes: int
    mtime_epoch: Optional[float]   # Modification time (Unix epoch)
    inode: Optional[int]           # Inode/MFT entry number
    is_file: bool                  # True if regular file
    is_dir: bool = False           # True if directory


@dataclass
class EvidenceDirEntry:
    """
    One child of a directory inside an evidence source.

    ``meta_type`` uses SleuthKit naming (reg, dir, lnk, virt, vdir, other)
    so entries from mounted and imaged sources land in the catalog alike.
    """
    name: str
    meta_type: str
    size_bytes: Optional[int] = None
    inode: Optional[int] = None

    @property
    def is_dir(self) -> bool:
        return self.meta_type in ("dir", "vdir")


def find_ewf_segments(first_segment: Path) -> List[Path]:
    """
    Given the first segment of an EWF image (e.g., image.E01 or image.e01),
    discover all related segments in the same directory.

    Returns a sorted list of all found segments.
    """
    if not first_segment.exists():
        raise FileNotFoundError(f"E01 segment not found: {first_segment}")

    if not EWF_SUFFIX_RE.match(first_segment.suffix):
        LOGGER.warning("Unexpected EWF extension: %s", first_segment.suffix)
        return [first_segment]

    segments = [first_segment]
    letter = first_segment.suffix[1]  # keeps E/e casing of the first segment
    for i in range(2, 100):
        next_path = first_segment.with_suffix(f".{letter}{i:02d}")
        if not next_path.exists():
            break
        segments.append(next_path)

    LOGGER.info("Discovered %d EWF segment(s) for %s", len(segments), first_segment.name)
    return segments


class EvidenceFS(ABC):
    """Abstract read-only view over an evidence filesystem."""

    @abstractmethod
    def stat(self, path: str) -> EvidenceFileStat:
        """
        Get file metadata without reading content.

        Raises:
            FileNotFoundError: If path does not exist
        """

    @abstractmethod
    def list_directory(self, path: str) -> List[EvidenceDirEntry]:
        """
        List the direct children of a directory ('.' and '..' excluded).

        Raises:
            NotADirectoryError: If path is not a directory
            FileNotFoundError: If path does not exist
        """

    @abstractmethod
    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        """
        Yield file content in chunks without full buffering.

        Raises:
            FileNotFoundError: If path does not exist or is not a file
        """

    @property
    @abstractmethod
    def source_path(self) -> Path:
        """Return the evidence location for logging."""

    def close(self) -> None:
        """Release handles held on the evidence source."""

    def __enter__(self) -> "EvidenceFS":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:  # noqa: ANN001
        self.close()


class MountedFS(EvidenceFS):
    """Evidence filesystem wrapper for a locally mounted read-only path."""

    def __init__(self, mount_point: Path) -> None:
        if not mount_point.exists():
            raise FileNotFoundError(f"Mount point {mount_point} does not exist.")
        self.mount_point = mount_point
        LOGGER.info("MountedFS bound to %s", mount_point)

    @property
    def source_path(self) -> Path:
        return self.mount_point

    def stat(self, path: str) -> EvidenceFileStat:
        resolved = self._resolve_under_mount(path)
        if not resolved.exists():
            raise FileNotFoundError(f"Path {path} not found under mount {self.mount_point}.")
        st = os.stat(resolved)
        return EvidenceFileStat(
            size_bytes=st.st_size,
            mtime_epoch=st.st_mtime,
            inode=st.st_ino,
            is_file=stat_module.S_ISREG(st.st_mode),
            is_dir=stat_module.S_ISDIR(st.st_mode),
        )

    def list_directory(self, path: str) -> List[EvidenceDirEntry]:
        """
        List a directory under the mount, sorted by name.

        Symlinks are reported as 'lnk' and never followed.
        """
        resolved = self._resolve_under_mount(path)
        if not resolved.exists():
            raise FileNotFoundError(f"Path {path} not found under mount {self.mount_point}.")
        if not resolved.is_dir():
            raise NotADirectoryError(f"Path {path} is not a directory under mount {self.mount_point}.")

        entries: List[EvidenceDirEntry] = []
        with os.scandir(resolved) as scanner:
            for item in scanner:
                st = item.stat(follow_symlinks=False)
                if item.is_symlink():
                    meta_type = "lnk"
                elif item.is_dir(follow_symlinks=False):
                    meta_type = "dir"
                elif item.is_file(follow_symlinks=False):
                    meta_type = "reg"
                else:
                    meta_type = "other"
                entries.append(EvidenceDirEntry(
                    name=item.name,
                    meta_type=meta_type,
                    size_bytes=st.st_size if meta_type == "reg" else None,
                    inode=st.st_ino,
                ))
        entries.sort(key=lambda entry: entry.name)
        return entries

    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        """
        Yield file content in chunks (memory-efficient).
        """
        resolved = self._resolve_under_mount(path)
        if not resolved.is_file():
            raise FileNotFoundError(f"Path {path} not found under mount {self.mount_point}.")
        with open(resolved, "rb") as f:
            while True:
                chunk = f.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    def _resolve_under_mount(self, path: str) -> Path:
        """
        Resolve a catalog path and enforce mount root confinement.

        Catalog paths are absolute inside the evidence ('/Users/x'), so the
        leading slash is dropped before joining.
        """
        base = self.mount_point.resolve()
        resolved = (self.mount_point / path.lstrip("/")).resolve()
        try:
            resolved.relative_to(base)
        except ValueError as exc:
            raise ValueError(
                f"Path traversal attempt: {path!r} resolves outside mount {self.mount_point}"
            ) from exc
        return resolved


class PyEwfTskFS(EvidenceFS):
    """Evidence filesystem backed by pyewf + pytsk3."""

    def __init__(self, ewf_paths: List[Path], partition_index: int = -1) -> None:
        """
        Initialize PyEwfTskFS to read an E01 image.

        Args:
            ewf_paths: List of E01 segment paths (e.g., [image.E01, image.E02, ...])
            partition_index: Which partition to open:
                - -1 (default): first allocated partition holding a readable filesystem
                - 0: direct filesystem (no partition table)
                - 1+: specific allocated partition number
        """
        if not ewf_paths:
            raise ValueError("At least one EWF segment must be provided.")
        self.ewf_paths = ewf_paths
        try:
            import pyewf  # type: ignore
            import pytsk3  # type: ignore
        except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
            raise RuntimeError(
                "PyEwfTskFS requires pyewf and pytsk3 to be installed."
            ) from exc

        self._pytsk3 = pytsk3
        self._handle = pyewf.handle()
        self._handle.open([str(path) for path in ewf_paths])
        self._img_info = _PyEwfImgInfo(self._handle, pytsk3)
        self._partition_index = partition_index
        self._fs = self._open_filesystem(partition_index)
        LOGGER.debug("Initialized PyEwfTskFS with %s segments (partition: %s).",
                     len(ewf_paths), self._partition_index)

    @property
    def source_path(self) -> Path:
        return self.ewf_paths[0]

    @property
    def partition_index(self) -> int:
        return self._partition_index

    def _open_filesystem(self, partition_index: int):
        if partition_index == 0:
            try:
                return self._pytsk3.FS_Info(self._img_info)
            except OSError as exc:
                raise RuntimeError(f"Unable to open E01 image as direct filesystem: {exc}") from exc

        try:
            volume = self._pytsk3.Volume_Info(self._img_info)
        except OSError as volume_exc:
            LOGGER.debug("Partition detection failed: %s", volume_exc)
            if partition_index > 0:
                raise RuntimeError(
                    f"Partition {partition_index} requested but no partition table found: {volume_exc}"
                ) from volume_exc
            try:
                fs = self._pytsk3.FS_Info(self._img_info)
            except OSError as fs_exc:
                raise RuntimeError(
                    f"Unable to open E01 image: {fs_exc}\n"
                    "The image is neither a direct filesystem nor a partitioned disk."
                ) from fs_exc
            self._partition_index = 0
            return fs

        partitions = [
            part for part in volume
            if part.flags == self._pytsk3.TSK_VS_PART_FLAG_ALLOC
        ]
        if not partitions:
            raise RuntimeError("No allocated partitions found in the E01 image.")

        block_size = volume.info.block_size
        if partition_index > 0:
            if partition_index > len(partitions):
                raise ValueError(
                    f"Partition index {partition_index} out of range. "
                    f"Found {len(partitions)} partition(s)."
                )
            selected = partitions[partition_index - 1]
            try:
                fs = self._pytsk3.FS_Info(self._img_info, offset=selected.start * block_size)
            except OSError as exc:
                raise RuntimeError(
                    f"Unable to open filesystem on partition {partition_index}: {exc}"
                ) from exc
            self._partition_index = partition_index
            return fs

        for index, part in enumerate(partitions, start=1):
            try:
                fs = self._pytsk3.FS_Info(self._img_info, offset=part.start * block_size)
            except OSError:
                LOGGER.debug("Partition %d has no readable filesystem", index)
                continue
            self._partition_index = index
            return fs
        raise RuntimeError("No partition in the E01 image holds a readable filesystem.")

    def stat(self, path: str) -> EvidenceFileStat:
        normalized = self._normalize(path)
        try:
            file_obj = self._fs.open(path=normalized)
        except IOError as e:
            raise FileNotFoundError(f"Cannot stat {path}: {e}") from e
        meta = file_obj.info.meta
        if meta is None:
            raise FileNotFoundError(f"No metadata for {path}")
        return EvidenceFileStat(
            size_bytes=meta.size if meta.size else 0,
            mtime_epoch=float(meta.mtime) if meta.mtime else None,
            inode=meta.addr if meta.addr else None,
            is_file=(meta.type == self._pytsk3.TSK_FS_META_TYPE_REG),
            is_dir=(meta.type == self._pytsk3.TSK_FS_META_TYPE_DIR),
        )

    def list_directory(self, path: str) -> List[EvidenceDirEntry]:
        normalized = self._normalize(path)
        try:
            directory = self._fs.open_dir(path=normalized)
        except IOError as e:
            raise NotADirectoryError(f"Cannot open directory {path}: {e}") from e

        entries: List[EvidenceDirEntry] = []
        for entry in directory:
            name = getattr(entry.info.name, "name", b"").decode("utf-8", "replace")
            if name in {".", ".."}:
                continue
            meta = entry.info.meta
            meta_type = self._meta_type(meta)
            entries.append(EvidenceDirEntry(
                name=name,
                meta_type=meta_type,
                size_bytes=meta.size if meta is not None and meta_type == "reg" else None,
                inode=getattr(meta, "addr", None) if meta is not None else None,
            ))
        return entries

    def open_for_stream(self, path: str, chunk_size: int = 65536) -> Iterator[bytes]:
        normalized = self._normalize(path)
        try:
            file_obj = self._fs.open(path=normalized)
        except IOError as e:
            raise FileNotFoundError(f"Cannot open {path}: {e}") from e

        meta = file_obj.info.meta
        if meta is None or meta.size is None:
            raise FileNotFoundError(f"Unable to determine size for {path}")

        size = meta.size
        offset = 0
        while offset < size:
            read_size = min(chunk_size, size - offset)
            chunk = file_obj.read_random(offset, read_size)
            if not chunk:
                break
            yield chunk
            offset += len(chunk)

    def _meta_type(self, meta: Optional[Any]) -> str:
        if meta is None:
            return "other"
        type_map = {
            self._pytsk3.TSK_FS_META_TYPE_REG: "reg",
            self._pytsk3.TSK_FS_META_TYPE_DIR: "dir",
            self._pytsk3.TSK_FS_META_TYPE_LNK: "lnk",
            self._pytsk3.TSK_FS_META_TYPE_VIRT: "virt",
            self._pytsk3.TSK_FS_META_TYPE_VIRT_DIR: "vdir",
        }
        return type_map.get(meta.type, "other")

    @staticmethod
    def _normalize(path: str) -> str:
        if not path.startswith("/"):
            return f"/{path}"
        return path

    def close(self) -> None:
        """
        Close the EWF handle and release resources.

        Safe to call multiple times - subsequent calls are no-ops.
        """
        if getattr(self, "_handle", None) is not None:
            try:
                self._handle.close()
            except OSError as exc:
                LOGGER.debug("Ignoring error while closing EWF handle: %s", exc)
            self._handle = None


class _PyEwfImgInfo:
    def __new__(cls, ewf_handle, pytsk3_module):  # type: ignore[override]
        class ImgInfo(pytsk3_module.Img_Info):  # type: ignore
            def __init__(self, handle):
                self._ewf_handle = handle
                super().__init__(url="", type=pytsk3_module.TSK_IMG_TYPE_EXTERNAL)

            def close(self):  # pragma: no cover - cleanup
                self._ewf_handle.close()

            def read(self, offset: int, size: int) -> bytes:
                self._ewf_handle.seek(offset)
                return self._ewf_handle.read(size)

            def get_size(self) -> int:
                return self._ewf_handle.get_media_size()

        return ImgInfo(ewf_handle)


def open_evidence_source(source: Path, partition_index: int = -1) -> EvidenceFS:
    """
    Open an evidence source for reading.

    Directories are treated as mounted (or already extracted) filesystems;
    files with an .E01-style suffix are opened through pyewf + pytsk3.

    Raises:
        FileNotFoundError: If the source does not exist
        ValueError: If the source is a file of an unsupported format
    """
    if not source.exists():
        raise FileNotFoundError(f"Evidence source not found: {source}")
    if source.is_dir():
        return MountedFS(source)
    if EWF_SUFFIX_RE.match(source.suffix):
        return PyEwfTskFS(find_ewf_segments(source), partition_index=partition_index)
    raise ValueError(f"Unsupported evidence source (expected directory or .E01): {source}")
