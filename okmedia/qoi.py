"""Encoder and decoder for the lossless "Quite OK Image" format."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import Tuple, Union

MAGIC = b"qoif"
HEADER_SIZE = 14
PADDING = b"\x00\x00\x00\x00\x00\x00\x00\x01"
PIXELS_MAX = 400_000_000

_OP_INDEX = 0x00
_OP_DIFF = 0x40
_OP_LUMA = 0x80
_OP_RUN = 0xC0
_OP_RGB = 0xFE
_OP_RGBA = 0xFF
_MASK_2 = 0xC0

_Pixel = Tuple[int, int, int, int]
_PathArg = Union[str, "PathLike[str]"]


class QoiError(ValueError):
    """Raised for invalid image descriptions or malformed QOI data."""


class Colorspace(enum.IntEnum):
    """Informative colorspace tag stored in the header."""

    SRGB = 0
    LINEAR = 1


@dataclass(frozen=True)
class QoiDescription:
    """Dimensions and layout of an image."""

    width: int
    height: int
    channels: int
    colorspace: Colorspace = Colorspace.SRGB


def _check(width: int, height: int, channels: int, colorspace: int) -> None:
    if width <= 0 or height <= 0:
        raise QoiError(f"invalid image size {width}x{height}")
    if channels not in (3, 4):
        raise QoiError(f"channels must be 3 or 4, got {channels}")
    if colorspace not in (0, 1):
        raise QoiError(f"colorspace must be 0 or 1, got {colorspace}")
    if height >= PIXELS_MAX // width:
        raise QoiError(f"image of {width}x{height} pixels is too large")


def _hash(px: _Pixel) -> int:
    r, g, b, a = px
    return (r * 3 + g * 5 + b * 7 + a * 11) % 64


def _s8(v: int) -> int:
    return ((v + 128) & 0xFF) - 128


def encode(pixels: bytes, desc: QoiDescription) -> bytes:
    """Encode raw RGB or RGBA pixels into QOI bytes."""
    _check(desc.width, desc.height, desc.channels, int(desc.colorspace))
    channels = desc.channels
    px_len = desc.width * desc.height * channels
    data = memoryview(bytes(pixels))
    if len(data) < px_len:
        raise QoiError(f"expected {px_len} bytes of pixel data, got {len(data)}")

    out = bytearray(MAGIC)
    out += desc.width.to_bytes(4, "big")
    out += desc.height.to_bytes(4, "big")
    out.append(channels)
    out.append(int(desc.colorspace))

    index: list = [(0, 0, 0, 0)] * 64
    run = 0
    prev: _Pixel = (0, 0, 0, 255)
    px_end = px_len - channels

    for pos in range(0, px_len, channels):
        if channels == 4:
            px = (data[pos], data[pos + 1], data[pos + 2], data[pos + 3])
        else:
            px = (data[pos], data[pos + 1], data[pos + 2], prev[3])

        if px == prev:
            run += 1
            if run == 62 or pos == px_end:
                out.append(_OP_RUN | (run - 1))
                run = 0
        else:
            if run > 0:
                out.append(_OP_RUN | (run - 1))
                run = 0

            index_pos = _hash(px)
            if index[index_pos] == px:
                out.append(_OP_INDEX | index_pos)
            else:
                index[index_pos] = px
                if px[3] == prev[3]:
                    vr = _s8(px[0] - prev[0])
                    vg = _s8(px[1] - prev[1])
                    vb = _s8(px[2] - prev[2])
                    vg_r = _s8(vr - vg)
                    vg_b = _s8(vb - vg)
                    if -3 < vr < 2 and -3 < vg < 2 and -3 < vb < 2:
                        out.append(_OP_DIFF | (vr + 2) << 4 | (vg + 2) << 2 | (vb + 2))
                    elif -9 < vg_r < 8 and -33 < vg < 32 and -9 < vg_b < 8:
                        out.append(_OP_LUMA | (vg + 32))
                        out.append((vg_r + 8) << 4 | (vg_b + 8))
                    else:
                        out.append(_OP_RGB)
                        out += bytes(px[:3])
                else:
                    out.append(_OP_RGBA)
                    out += bytes(px)
        prev = px

    out += PADDING
    return bytes(out)


def decode(data: bytes, channels: int = 0) -> Tuple[QoiDescription, bytes]:
    """Decode QOI bytes into a description and raw pixels.

    With ``channels`` 0 the channel count of the file is used; 3 or 4 force
    the output layout.
    """
    if channels not in (0, 3, 4):
        raise QoiError(f"channels must be 0, 3 or 4, got {channels}")
    raw = bytes(data)
    size = len(raw)
    if size < HEADER_SIZE + len(PADDING):
        raise QoiError("data too short to be a QOI image")

    magic = raw[0:4]
    width = int.from_bytes(raw[4:8], "big")
    height = int.from_bytes(raw[8:12], "big")
    file_channels = raw[12]
    colorspace = raw[13]
    _check(width, height, file_channels, colorspace)
    if magic != MAGIC:
        raise QoiError("not a QOI image (bad magic)")

    desc = QoiDescription(width, height, file_channels, Colorspace(colorspace))
    if channels == 0:
        channels = file_channels

    px_len = width * height * channels
    pixels = bytearray(px_len)
    index: list = [(0, 0, 0, 0)] * 64
    r, g, b, a = 0, 0, 0, 255
    p = HEADER_SIZE
    run = 0
    chunks_len = size - len(PADDING)

    for pos in range(0, px_len, channels):
        if run > 0:
            run -= 1
        elif p < chunks_len:
            b1 = raw[p]
            p += 1
            if b1 == _OP_RGB:
                r, g, b = raw[p], raw[p + 1], raw[p + 2]
                p += 3
            elif b1 == _OP_RGBA:
                r, g, b, a = raw[p], raw[p + 1], raw[p + 2], raw[p + 3]
                p += 4
            elif (b1 & _MASK_2) == _OP_INDEX:
                r, g, b, a = index[b1]
            elif (b1 & _MASK_2) == _OP_DIFF:
                r = (r + ((b1 >> 4) & 0x03) - 2) & 0xFF
                g = (g + ((b1 >> 2) & 0x03) - 2) & 0xFF
                b = (b + (b1 & 0x03) - 2) & 0xFF
            elif (b1 & _MASK_2) == _OP_LUMA:
                b2 = raw[p]
                p += 1
                vg = (b1 & 0x3F) - 32
                r = (r + vg - 8 + ((b2 >> 4) & 0x0F)) & 0xFF
                g = (g + vg) & 0xFF
                b = (b + vg - 8 + (b2 & 0x0F)) & 0xFF
            else:
                run = b1 & 0x3F
            px = (r, g, b, a)
            index[_hash(px)] = px

        pixels[pos] = r
        pixels[pos + 1] = g
        pixels[pos + 2] = b
        if channels == 4:
            pixels[pos + 3] = a

    return desc, bytes(pixels)


def write(path: _PathArg, pixels: bytes, desc: QoiDescription) -> int:
    """Encode pixels and write them to ``path``; return the bytes written."""
    encoded = encode(pixels, desc)
    with open(path, "wb") as fh:
        fh.write(encoded)
    return len(encoded)


def read(path: _PathArg, channels: int = 0) -> Tuple[QoiDescription, bytes]:
    """Read and decode the QOI image at ``path``."""
    data = Path(path).read_bytes()
    if not data:
        raise QoiError(f"{path} is empty")
    return decode(data, channels)