"""Command line tool to create, list and unpack package archives."""

from __future__ import annotations

import os
import stat
import struct
import sys
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Sequence

from okmedia.qop import (
    HEADER_SIZE,
    INDEX_SIZE,
    MAGIC,
    QopArchive,
    QopError,
    QopFile,
    QopFlag,
    hash_path,
)

MAX_PATH_LEN = 1024
BUFFER_SIZE = 4096

USAGE = """\
Usage: qopconv [OPTION...] FILE...

Examples:
  qopconv dir1 archive.qop          # Create archive.qop from dir1/
  qopconv foo bar archive.qop       # Create archive.qop from files foo and bar
  qopconv -u archive.qop            # Unpack archive.qop in current directory
  qopconv -l archive.qop            # List files in archive.qop
  qopconv -d dir1 dir2 archive.qop  # Use dir1 prefix for reading, create
                                      archive.qop from files in dir1/dir2/

Options (mutually exclusive):
  -u <archive> ... unpack archive
  -l <archive> ... list contents of archive
  -d <dir> ....... change read dir when creating archives
"""


class ConvError(Exception):
    """Raised when packing or unpacking fails."""


def _ensure_dir(path: str, mode: int) -> None:
    if not os.path.exists(path):
        try:
            os.mkdir(path, mode)
        except OSError as exc:
            raise ConvError(f"Could not create directory {path}: {exc}") from exc
    elif not os.path.isdir(path):
        raise ConvError(f"{path} exists and is not a directory")


def create_path(path: str, mode: int) -> None:
    """Create every directory leading up to the file ``path``."""
    if not path or len(path) >= MAX_PATH_LEN:
        raise ConvError(f"Invalid path {path!r}")
    if "/" not in path:
        return
    parent = path.rsplit("/", 1)[0]
    if not parent or os.path.isdir(parent):
        return

    parts = parent.split("/")
    for n in range(1, len(parts) + 1):
        prefix = "/".join(parts[:n])
        if prefix:
            _ensure_dir(prefix, mode)


def copy_out(src: BinaryIO, offset: int, size: int, dest_path: str) -> int:
    """Copy ``size`` bytes at ``offset`` of ``src`` into a new file."""
    try:
        dest = open(dest_path, "wb")
    except OSError as exc:
        raise ConvError(f"Could not open file {dest_path} for writing") from exc
    with dest:
        src.seek(offset)
        remaining = size
        while remaining > 0:
            chunk = src.read(min(remaining, BUFFER_SIZE))
            if not chunk:
                break
            dest.write(chunk)
            remaining -= len(chunk)
    return size - remaining


def unpack(archive_path: str, list_only: bool) -> None:
    """List the files of an archive and, unless ``list_only``, extract them."""
    try:
        archive = QopArchive(archive_path)
    except QopError as exc:
        raise ConvError(f"Could not open archive {archive_path}") from exc

    with archive:
        if archive.read_index() == 0:
            raise ConvError(f"Could not read index from archive {archive_path}")
        assert archive.hashmap is not None

        for i, entry in enumerate(archive.hashmap):
            if entry is None or entry.size == 0:
                continue
            if entry.path_len >= MAX_PATH_LEN:
                raise ConvError(
                    f"Path for file {entry.hash:016x} exceeds {MAX_PATH_LEN}"
                )
            path = archive.read_path(entry)
            print(f"{i:6d} {entry.hash:016x} {entry.size:10d} {path}")

            if not list_only:
                create_path(path, 0o755)
                copy_out(
                    archive._fh,
                    archive.files_offset + entry.offset + entry.path_len,
                    entry.size,
                    path,
                )


@dataclass
class _Packer:
    dest: BinaryIO
    files: List[QopFile] = field(default_factory=list)
    size: int = 0

    def _copy_into(self, src_path: str) -> int:
        try:
            src = open(src_path, "rb")
        except OSError as exc:
            raise ConvError(f"Could not open file {src_path} for reading") from exc
        total = 0
        with src:
            while chunk := src.read(BUFFER_SIZE):
                self.dest.write(chunk)
                total += len(chunk)
        return total

    def add_file(self, path: str) -> None:
        h = hash_path(path)
        encoded = os.fsencode(path) + b"\0"
        if len(encoded) > 0xFFFF:
            raise ConvError(f"Path {path} is too long")
        self.dest.write(encoded)
        size = self._copy_into(path)

        print(f"{len(self.files):6d} {h:016x} {size:10d} {path}")

        self.files.append(QopFile(h, self.size, size, len(encoded), QopFlag.NONE))
        self.size += size + len(encoded)

    def add_dir(self, path: str) -> None:
        try:
            entries = list(os.scandir(path))
        except OSError as exc:
            raise ConvError(f"Could not open directory {path} for reading") from exc
        for entry in entries:
            subpath = f"{path}/{entry.name}"
            if entry.is_dir(follow_symlinks=False):
                self.add_dir(subpath)
            elif entry.is_file(follow_symlinks=False):
                self.add_file(subpath)

    def finish(self) -> int:
        total_size = self.size + HEADER_SIZE
        for entry in self.files:
            self.dest.write(
                struct.pack(
                    "<QIIHH",
                    entry.hash,
                    entry.offset,
                    entry.size,
                    entry.path_len,
                    int(entry.flags),
                )
            )
            total_size += INDEX_SIZE
        self.dest.write(struct.pack("<III", len(self.files), total_size, MAGIC))
        return total_size


def pack(read_dir: Optional[str], sources: Sequence[str], archive_path: str) -> int:
    """Create an archive from files and directories; return its size in bytes.

    With ``read_dir`` the sources are read relative to that directory, while
    ``archive_path`` stays relative to the current one.
    """
    try:
        dest = open(archive_path, "wb")
    except OSError as exc:
        raise ConvError(f"Could not open file {archive_path} for writing") from exc

    previous_cwd = os.getcwd()
    with dest:
        try:
            if read_dir:
                try:
                    os.chdir(read_dir)
                except OSError as exc:
                    raise ConvError(f"Could not change to directory {read_dir}") from exc

            packer = _Packer(dest)
            for source in sources:
                try:
                    mode = os.stat(source).st_mode
                except OSError as exc:
                    raise ConvError(f"Could not stat file {source}") from exc
                if stat.S_ISDIR(mode):
                    packer.add_dir(source)
                elif stat.S_ISREG(mode):
                    packer.add_file(source)
                else:
                    raise ConvError(
                        f"Path {source} is neither a directory nor a regular file"
                    )
            total_size = packer.finish()
        finally:
            os.chdir(previous_cwd)

    print(f"files: {len(packer.files)}, size: {total_size} bytes")
    return total_size


def _usage() -> int:
    print(USAGE)
    return 1


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        return _usage()

    try:
        if args[0] == "-u":
            unpack(args[1], False)
        elif args[0] == "-l":
            unpack(args[1], True)
        else:
            files_start = 0
            read_dir = None
            if args[0] == "-d":
                read_dir = args[1]
                files_start = 2
            if len(args) < files_start + 2:
                return _usage()
            pack(read_dir, args[files_start:-1], args[-1])
    except ConvError as exc:
        print(f"Abort: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())