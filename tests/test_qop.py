import struct

import pytest

from okmedia.qop import QopArchive, QopError, QopFlag, hash_path


def build_archive(files, prefix=b""):
    blob = bytearray()
    index = bytearray()
    for path, data in files:
        encoded = path.encode() + b"\0"
        offset = len(blob)
        blob += encoded + data
        index += struct.pack("<QIIHH", hash_path(path), offset, len(data), len(encoded), 0)
    total = len(blob) + len(index) + 12
    return prefix + bytes(blob) + bytes(index) + struct.pack("<II", len(files), total) + b"qopf"


FILES = [
    ("a.txt", b"hello"),
    ("dir/b.bin", bytes(range(50))),
    ("dir/sub/c", b"xyz" * 10),
]


@pytest.fixture
def archive_path(tmp_path):
    path = tmp_path / "test.qop"
    path.write_bytes(build_archive(FILES))
    return path


def test_hash_of_empty_path_is_seed():
    assert hash_path("") == 525201411107845655


def test_hash_str_and_bytes_agree():
    assert hash_path("dir/b.bin") == hash_path(b"dir/b.bin")
    assert hash_path(b"abc\0def") == hash_path("abc")
    assert hash_path("a") != hash_path("b")


def test_read_index_and_find(archive_path):
    with QopArchive(archive_path) as archive:
        assert archive.read_index() == 3
        for path, data in FILES:
            entry = archive.find(path)
            assert entry is not None
            assert entry.size == len(data)
            assert entry.path_len == len(path) + 1
            assert entry.flags == QopFlag.NONE
            assert archive.read(entry) == data
            assert archive.read_path(entry) == path


def test_files_lists_all_entries(archive_path):
    with QopArchive(archive_path) as archive:
        archive.read_index()
        paths = sorted(archive.read_path(f) for f in archive.files())
    assert paths == sorted(p for p, _ in FILES)


def test_hashmap_is_power_of_two_and_large_enough(archive_path):
    with QopArchive(archive_path) as archive:
        assert archive.hashmap_len >= int(3 * 1.5)
        assert archive.hashmap_len & (archive.hashmap_len - 1) == 0


def test_find_missing_and_before_index(archive_path):
    with QopArchive(archive_path) as archive:
        assert archive.find("a.txt") is None
        archive.read_index()
        assert archive.find("nope") is None


def test_single_entry_find_missing_terminates(tmp_path):
    path = tmp_path / "one.qop"
    path.write_bytes(build_archive([("only", b"1")]))
    with QopArchive(path) as archive:
        archive.read_index()
        assert archive.find("other") is None
        assert archive.read(archive.find("only")) == b"1"


def test_read_ex(archive_path):
    with QopArchive(archive_path) as archive:
        archive.read_index()
        entry = archive.find("dir/b.bin")
        assert archive.read_ex(entry, 10, 5) == bytes(range(10, 15))


def test_archive_appended_to_other_data(tmp_path):
    path = tmp_path / "appended.bin"
    path.write_bytes(build_archive(FILES, prefix=b"\xff" * 37))
    with QopArchive(path) as archive:
        assert archive.files_offset == 37
        archive.read_index()
        assert archive.read(archive.find("a.txt")) == b"hello"


def test_bad_magic(tmp_path):
    data = bytearray(build_archive(FILES))
    data[-4:] = b"nope"
    path = tmp_path / "bad.qop"
    path.write_bytes(bytes(data))
    with pytest.raises(QopError):
        QopArchive(path)


def test_too_small(tmp_path):
    path = tmp_path / "small.qop"
    path.write_bytes(b"qopf")
    with pytest.raises(QopError):
        QopArchive(path)


def test_index_len_too_large(tmp_path):
    path = tmp_path / "big.qop"
    path.write_bytes(b"\0" * 8 + struct.pack("<II", 1000, 20) + b"qopf")
    with pytest.raises(QopError):
        QopArchive(path)


def test_missing_file(tmp_path):
    with pytest.raises(QopError):
        QopArchive(tmp_path / "missing.qop")


def test_close_prevents_reads(archive_path):
    archive = QopArchive(archive_path)
    archive.read_index()
    entry = archive.find("a.txt")
    archive.close()
    with pytest.raises(ValueError):
        archive.read(entry)