"""Reader for the "Quite OK Package" archive format."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Union

MAGIC = 0x66706F71  # the bytes "qopf" read as a little-endian u32
HEADER_SIZE = 12
INDEX_SIZE = 20

_HASH_SEED = 525201411107845655
_HASH_MUL = 0x5BD1E9955BD1E995
_U64_MASK = (1 << 64) - 1

_INDEX_ENTRY = struct.Struct("<QIIHH")
_HEADER = struct.Struct("<III")

_PathArg = Union[str, "os.PathLike[str]"]


class QopError(Exception):
    """Raised when an archive cannot be opened or is malformed."""


class QopFlag(enum.IntFlag):
    """Per-file flags stored in the index."""

    NONE = 0
    COMPRESSED_ZSTD = 1 << 0
    COMPRESSED_DEFLATE = 1 << 1
    ENCRYPTED = 1 << 8


@dataclass(frozen=True)
class QopFile:
    """One entry of the archive index."""

    hash: int
    offset: int
    size: int
    path_len: int
    flags: QopFlag = QopFlag.NONE


def hash_path(path: Union[str, bytes]) -> int:
    """64-bit one-at-a-time Murmur hash of a path, up to the first NUL byte."""
    key = os.fsencode(path) if isinstance(path, str) else bytes(path)
    key = key.split(b"\0", 1)[0]
    h = _HASH_SEED
    for byte in key:
        h ^= byte
        h = (h * _HASH_MUL) & _U64_MASK
        h ^= h >> 47
    return h


def _occupied(slot: Optional[QopFile]) -> bool:
    return slot is not None and slot.size > 0


class QopArchive:
    """An opened archive; read the index with :meth:`read_index` before lookups."""

    def __init__(self, path: _PathArg) -> None:
        try:
            fh = open(path, "rb")
        except OSError as exc:
            raise QopError(f"cannot open archive {path}: {exc}") from exc
        try:
            self._parse_header(fh)
        except BaseException:
            fh.close()
            raise
        self._fh: BinaryIO = fh
        self.hashmap: Optional[List[Optional[QopFile]]] = None

    def _parse_header(self, fh: BinaryIO) -> None:
        fh.seek(0, os.SEEK_END)
        size = fh.tell()
        if size <= HEADER_SIZE:
            raise QopError("file too small to be an archive")
        fh.seek(size - HEADER_SIZE)
        index_len, archive_size, magic = _HEADER.unpack(fh.read(HEADER_SIZE))

        if magic != MAGIC or index_len * INDEX_SIZE > size - HEADER_SIZE:
            raise QopError("not an archive (bad magic or index length)")
        if archive_size > size:
            raise QopError("archive size in header exceeds the file size")

        hashmap_len = 1
        min_hashmap_len = int(index_len * 1.5)
        while hashmap_len < min_hashmap_len:
            hashmap_len <<= 1

        self.size = size
        self.files_offset = size - archive_size
        self.index_len = index_len
        self.index_offset = size - index_len * INDEX_SIZE - HEADER_SIZE
        self.hashmap_len = hashmap_len

    def close(self) -> None:
        self._fh.close()

    def __enter__(self) -> QopArchive:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def read_index(self) -> int:
        """Load the index into the hash map; return the number of files."""
        mask = self.hashmap_len - 1
        slots: List[Optional[QopFile]] = [None] * self.hashmap_len
        self._fh.seek(self.index_offset)
        raw = self._fh.read(self.index_len * INDEX_SIZE)
        if len(raw) != self.index_len * INDEX_SIZE:
            raise QopError("archive index is truncated")

        for h, offset, size, path_len, flags in _INDEX_ENTRY.iter_unpack(raw):
            idx = h & mask
            while _occupied(slots[idx]):
                idx = (idx + 1) & mask
            slots[idx] = QopFile(h, offset, size, path_len, QopFlag(flags))

        self.hashmap = slots
        return self.index_len

    def files(self) -> Iterator[QopFile]:
        """The indexed files in hash-map order."""
        if self.hashmap is None:
            return
        yield from (slot for slot in self.hashmap if _occupied(slot))

    def find(self, path: Union[str, bytes]) -> Optional[QopFile]:
        """Look up a file by path; None if absent or the index is not read."""
        if self.hashmap is None:
            return None
        mask = self.hashmap_len - 1
        h = hash_path(path)
        idx = h & mask
        for _ in range(self.hashmap_len):
            slot = self.hashmap[idx]
            if not _occupied(slot):
                break
            assert slot is not None
            if slot.hash == h:
                return slot
            idx = (idx + 1) & mask
        return None

    def read_path(self, file: QopFile) -> str:
        """The stored path of ``file``."""
        self._fh.seek(self.files_offset + file.offset)
        raw = self._fh.read(file.path_len)
        return os.fsdecode(raw.split(b"\0", 1)[0])

    def read(self, file: QopFile) -> bytes:
        """The whole contents of ``file``."""
        self._fh.seek(self.files_offset + file.offset + file.path_len)
        return self._fh.read(file.size)

    def read_ex(self, file: QopFile, start: int, length: int) -> bytes:
        """``length`` bytes of ``file`` beginning at ``start``."""
        self._fh.seek(self.files_offset + file.offset + file.path_len + start)
        return self._fh.read(length)