import random

import pytest

from okmedia.qoi import (
    Colorspace,
    QoiDescription,
    QoiError,
    decode,
    encode,
    read,
    write,
)

PADDING = b"\x00" * 7 + b"\x01"


def _random_pixels(width, height, channels, seed=1):
    rng = random.Random(seed)
    out = bytearray()
    for _ in range(width * height):
        # Mix smooth gradients, repeats and random jumps to hit every op.
        choice = rng.random()
        if out and choice < 0.3:
            out += out[-channels:]
        elif out and choice < 0.6:
            prev = out[-channels:]
            out += bytes((v + rng.randint(-20, 20)) & 0xFF for v in prev)
        else:
            out += bytes(rng.randrange(256) for _ in range(channels))
    return bytes(out)


def test_header_and_padding_bytes():
    desc = QoiDescription(1, 1, 4, Colorspace.LINEAR)
    encoded = encode(bytes([0, 0, 0, 255]), desc)
    assert encoded[:4] == b"qoif"
    assert encoded[4:8] == (1).to_bytes(4, "big")
    assert encoded[8:12] == (1).to_bytes(4, "big")
    assert encoded[12] == 4
    assert encoded[13] == 1
    assert encoded.endswith(PADDING)


def test_single_pixel_equal_to_start_is_a_run():
    encoded = encode(bytes([0, 0, 0, 255]), QoiDescription(1, 1, 4))
    assert encoded[14:-8] == bytes([0xC0])


def test_alpha_change_uses_rgba_op():
    encoded = encode(bytes([10, 20, 30, 40]), QoiDescription(1, 1, 4))
    assert encoded[14:-8] == bytes([0xFF, 10, 20, 30, 40])


@pytest.mark.parametrize("channels", [3, 4])
def test_round_trip(channels):
    pixels = _random_pixels(17, 13, channels)
    desc = QoiDescription(17, 13, channels, Colorspace.SRGB)
    decoded_desc, decoded = decode(encode(pixels, desc))
    assert decoded_desc == desc
    assert decoded == pixels


def test_long_run_round_trip():
    pixels = bytes([0, 0, 0]) * 100
    encoded = encode(pixels, QoiDescription(10, 10, 3))
    chunks = encoded[14:-8]
    assert all(b & 0xC0 == 0xC0 for b in chunks)
    assert len(chunks) == 2
    assert decode(encoded)[1] == pixels


def test_repeated_color_uses_index():
    a = bytes([200, 10, 90])
    b = bytes([5, 250, 60])
    encoded = encode(a + b + a, QoiDescription(3, 1, 3))
    assert encoded[-9] < 0x40
    assert decode(encoded)[1] == a + b + a


def test_force_rgba_output_adds_opaque_alpha():
    pixels = _random_pixels(5, 4, 3, seed=7)
    _, decoded = decode(encode(pixels, QoiDescription(5, 4, 3)), channels=4)
    assert len(decoded) == 5 * 4 * 4
    assert decoded[3::4] == bytes([255]) * 20
    rgb = bytearray()
    for i in range(0, len(decoded), 4):
        rgb += decoded[i : i + 3]
    assert bytes(rgb) == pixels


def test_force_rgb_output_drops_alpha():
    pixels = _random_pixels(4, 4, 4, seed=3)
    desc, decoded = decode(encode(pixels, QoiDescription(4, 4, 4)), channels=3)
    assert desc.channels == 4
    expected = bytearray()
    for i in range(0, len(pixels), 4):
        expected += pixels[i : i + 3]
    assert decoded == bytes(expected)


@pytest.mark.parametrize(
    "desc",
    [
        QoiDescription(0, 1, 4),
        QoiDescription(1, 0, 4),
        QoiDescription(1, 1, 2),
        QoiDescription(1, 1, 5),
        QoiDescription(1, 1, 4, 2),
        QoiDescription(20000, 20000, 4),
    ],
)
def test_encode_rejects_invalid_description(desc):
    with pytest.raises(QoiError):
        encode(b"\x00" * 16, desc)


def test_encode_rejects_short_pixel_data():
    with pytest.raises(QoiError):
        encode(b"\x00" * 5, QoiDescription(2, 1, 3))


def test_decode_rejects_short_data():
    with pytest.raises(QoiError):
        decode(b"qoif" + b"\x00" * 10)


def test_decode_rejects_bad_magic():
    encoded = bytearray(encode(bytes([1, 2, 3]), QoiDescription(1, 1, 3)))
    encoded[0:4] = b"abcd"
    with pytest.raises(QoiError):
        decode(bytes(encoded))


def test_decode_rejects_bad_channel_request():
    encoded = encode(bytes([1, 2, 3]), QoiDescription(1, 1, 3))
    with pytest.raises(QoiError):
        decode(encoded, channels=2)


def test_decode_rejects_bad_header_channels():
    encoded = bytearray(encode(bytes([1, 2, 3]), QoiDescription(1, 1, 3)))
    encoded[12] = 7
    with pytest.raises(QoiError):
        decode(bytes(encoded))


def test_write_and_read_file(tmp_path):
    pixels = _random_pixels(8, 6, 4, seed=11)
    desc = QoiDescription(8, 6, 4, Colorspace.LINEAR)
    path = tmp_path / "image.qoi"
    size = write(path, pixels, desc)
    assert size == path.stat().st_size
    read_desc, read_pixels = read(path)
    assert read_desc == desc
    assert read_pixels == pixels


def test_read_empty_file_fails(tmp_path):
    path = tmp_path / "empty.qoi"
    path.write_bytes(b"")
    with pytest.raises(QoiError):
        read(path)


def test_read_missing_file_fails(tmp_path):
    with pytest.raises(FileNotFoundError):
        read(tmp_path / "missing.qoi")