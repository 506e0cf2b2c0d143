"""Encoder and decoder for the lossy "Quite OK Audio" format."""

from __future__ import annotations

import struct
from array import array
from dataclasses import dataclass, field
from os import PathLike
from pathlib import Path
from typing import List, Sequence, Tuple, Union

MAGIC = 0x716F6166  # 'qoaf'
MIN_FILESIZE = 16
MAX_CHANNELS = 8
SLICE_LEN = 20
SLICES_PER_FRAME = 256
FRAME_LEN = SLICES_PER_FRAME * SLICE_LEN
LMS_LEN = 4

_U64_MASK = 0xFFFFFFFFFFFFFFFF
_PathArg = Union[str, "PathLike[str]"]

_QUANT_TAB = (
    7, 7, 7, 5, 5, 3, 3, 1,  # -8..-1
    0,                       # 0
    0, 2, 2, 4, 4, 6, 6, 6,  # 1..8
)

_RECIPROCAL_TAB = (
    65536, 9363, 3121, 1457, 781, 475, 311, 216,
    156, 117, 90, 71, 57, 47, 39, 32,
)

_DEQUANT_TAB = (
    (1, -1, 3, -3, 5, -5, 7, -7),
    (5, -5, 18, -18, 32, -32, 49, -49),
    (16, -16, 53, -53, 95, -95, 147, -147),
    (34, -34, 113, -113, 203, -203, 315, -315),
    (63, -63, 210, -210, 378, -378, 588, -588),
    (104, -104, 345, -345, 621, -621, 966, -966),
    (158, -158, 528, -528, 950, -950, 1477, -1477),
    (228, -228, 760, -760, 1368, -1368, 2128, -2128),
    (316, -316, 1053, -1053, 1895, -1895, 2947, -2947),
    (422, -422, 1405, -1405, 2529, -2529, 3934, -3934),
    (548, -548, 1828, -1828, 3290, -3290, 5117, -5117),
    (696, -696, 2320, -2320, 4176, -4176, 6496, -6496),
    (868, -868, 2893, -2893, 5207, -5207, 8099, -8099),
    (1064, -1064, 3548, -3548, 6386, -6386, 9933, -9933),
    (1286, -1286, 4288, -4288, 7718, -7718, 12005, -12005),
    (1536, -1536, 5120, -5120, 9216, -9216, 14336, -14336),
)


class QoaError(ValueError):
    """Raised for invalid audio descriptions or malformed QOA data."""


@dataclass
class Lms:
    """Sign-sign least-mean-squares predictor state for one channel."""

    history: List[int] = field(default_factory=lambda: [0] * LMS_LEN)
    weights: List[int] = field(default_factory=lambda: [0] * LMS_LEN)

    def predict(self) -> int:
        """Predict the next sample from the history."""
        return sum(w * h for w, h in zip(self.weights, self.history)) >> 13

    def update(self, sample: int, residual: int) -> None:
        """Adjust the weights by the residual and push ``sample`` into the history."""
        delta = residual >> 4
        self.weights = [
            w - delta if h < 0 else w + delta
            for w, h in zip(self.weights, self.history)
        ]
        self.history = self.history[1:] + [sample]


def _copy_lms(lms: Lms) -> Lms:
    return Lms(list(lms.history), list(lms.weights))


@dataclass
class QoaDescription:
    """Channel count, samplerate, samples per channel and predictor state."""

    channels: int = 0
    samplerate: int = 0
    samples: int = 0
    lms: List[Lms] = field(default_factory=lambda: [Lms() for _ in range(MAX_CHANNELS)])


def _ensure_lms(desc: QoaDescription) -> None:
    while len(desc.lms) < desc.channels:
        desc.lms.append(Lms())


def _frame_size(channels: int, slices: int) -> int:
    return 8 + LMS_LEN * 4 * channels + 8 * slices * channels


def _sign(v: int) -> int:
    return (v > 0) - (v < 0)


def _div(v: int, scalefactor: int) -> int:
    """Rounding division that rounds away from zero for small values."""
    n = (v * _RECIPROCAL_TAB[scalefactor] + (1 << 15)) >> 16
    return n + _sign(v) - _sign(n)


def _clamp(v: int, lo: int, hi: int) -> int:
    return lo if v < lo else hi if v > hi else v


def _clamp_s16(v: int) -> int:
    return -32768 if v < -32768 else 32767 if v > 32767 else v


def encode_header(desc: QoaDescription) -> bytes:
    """The 8-byte file header: magic and samples per channel."""
    return struct.pack(">Q", (MAGIC << 32) | (desc.samples & 0xFFFFFFFF))


def encode_frame(samples: Sequence[int], desc: QoaDescription, frame_len: int) -> bytes:
    """Encode one frame of interleaved samples, updating the predictor state."""
    channels = desc.channels
    if len(samples) < frame_len * channels:
        raise QoaError(
            f"expected {frame_len * channels} samples for the frame, got {len(samples)}"
        )
    _ensure_lms(desc)
    slices = (frame_len + SLICE_LEN - 1) // SLICE_LEN
    size = _frame_size(channels, slices)
    prev_scalefactor = [0] * channels

    out = bytearray(
        struct.pack(
            ">Q",
            (channels << 56) | (desc.samplerate << 32) | (frame_len << 16) | size,
        )
    )
    for lms in desc.lms[:channels]:
        out += struct.pack(">4H", *(h & 0xFFFF for h in lms.history))
        out += struct.pack(">4H", *(w & 0xFFFF for w in lms.weights))

    for sample_index in range(0, frame_len, SLICE_LEN):
        slice_len = _clamp(SLICE_LEN, 0, frame_len - sample_index)
        for c in range(channels):
            start = sample_index * channels + c
            end = (sample_index + slice_len) * channels + c
            channel_samples = samples[start:end:channels]

            best_rank = _U64_MASK
            best_slice = 0
            best_lms = desc.lms[c]
            best_scalefactor = 0

            for sfi in range(16):
                scalefactor = (sfi + prev_scalefactor[c]) % 16
                dequant = _DEQUANT_TAB[scalefactor]
                lms = _copy_lms(desc.lms[c])
                slice_bits = scalefactor
                rank = 0

                for sample in channel_samples:
                    predicted = lms.predict()
                    residual = sample - predicted
                    scaled = _div(residual, scalefactor)
                    clamped = _clamp(scaled, -8, 8)
                    quantized = _QUANT_TAB[clamped + 8]
                    dequantized = dequant[quantized]
                    reconstructed = _clamp_s16(predicted + dequantized)

                    penalty = (sum(w * w for w in lms.weights) >> 18) - 0x8FF
                    if penalty < 0:
                        penalty = 0

                    error = sample - reconstructed
                    rank += error * error + penalty * penalty
                    if rank > best_rank:
                        break

                    lms.update(reconstructed, dequantized)
                    slice_bits = (slice_bits << 3) | quantized

                if rank < best_rank:
                    best_rank = rank
                    best_slice = slice_bits
                    best_lms = lms
                    best_scalefactor = scalefactor

            prev_scalefactor[c] = best_scalefactor
            desc.lms[c] = best_lms

            # Short slices keep their data in the high bits.
            best_slice = (best_slice << ((SLICE_LEN - slice_len) * 3)) & _U64_MASK
            out += struct.pack(">Q", best_slice)

    return bytes(out)


def encode(samples: Sequence[int], desc: QoaDescription) -> bytes:
    """Encode interleaved 16-bit samples into a complete QOA file."""
    if (
        desc.samples == 0
        or desc.samplerate == 0
        or desc.samplerate > 0xFFFFFF
        or desc.channels == 0
        or desc.channels > MAX_CHANNELS
    ):
        raise QoaError(
            f"invalid description: {desc.channels} channels, "
            f"{desc.samplerate} Hz, {desc.samples} samples"
        )
    total = desc.samples * desc.channels
    if len(samples) < total:
        raise QoaError(f"expected {total} samples, got {len(samples)}")

    _ensure_lms(desc)
    for c in range(desc.channels):
        desc.lms[c] = Lms([0, 0, 0, 0], [0, 0, -(1 << 13), 1 << 14])

    out = bytearray(encode_header(desc))
    for sample_index in range(0, desc.samples, FRAME_LEN):
        frame_len = _clamp(FRAME_LEN, 0, desc.samples - sample_index)
        start = sample_index * desc.channels
        frame = samples[start:start + frame_len * desc.channels]
        out += encode_frame(frame, desc, frame_len)
    return bytes(out)


def max_frame_size(desc: QoaDescription) -> int:
    """Size in bytes of a full frame for the description's channel count."""
    return _frame_size(desc.channels, SLICES_PER_FRAME)


def decode_header(data: bytes) -> QoaDescription:
    """Read the file header and peek into the first frame header."""
    if len(data) < MIN_FILESIZE:
        raise QoaError("data too short to be a QOA file")
    file_header, frame_header = struct.unpack_from(">QQ", data, 0)
    if (file_header >> 32) != MAGIC:
        raise QoaError("not a QOA file (bad magic)")
    samples = file_header & 0xFFFFFFFF
    if not samples:
        raise QoaError("streaming QOA files (0 samples) are not supported")
    channels = (frame_header >> 56) & 0xFF
    samplerate = (frame_header >> 32) & 0xFFFFFF
    if channels == 0 or samplerate == 0:
        raise QoaError("invalid channel count or samplerate in first frame")
    desc = QoaDescription(channels=channels, samplerate=samplerate, samples=samples)
    _ensure_lms(desc)
    return desc


def _decode_frame(buf: bytes, offset: int, desc: QoaDescription) -> Tuple[array, int]:
    size = len(buf) - offset
    channels = desc.channels
    lms_size = LMS_LEN * 4 * channels
    if size < 8 + lms_size:
        raise QoaError("data too short for a frame")

    (header,) = struct.unpack_from(">Q", buf, offset)
    frame_channels = (header >> 56) & 0xFF
    samplerate = (header >> 32) & 0xFFFFFF
    samples = (header >> 16) & 0xFFFF
    frame_size = header & 0xFFFF

    data_size = frame_size - 8 - LMS_LEN * 4 * frame_channels
    max_total_samples = (data_size // 8) * SLICE_LEN
    if (
        frame_channels != channels
        or samplerate != desc.samplerate
        or frame_size > size
        or data_size < 0
        or samples * frame_channels > max_total_samples
    ):
        raise QoaError("invalid frame header")

    slices = (samples + SLICE_LEN - 1) // SLICE_LEN
    if 8 + lms_size + slices * channels * 8 > size:
        raise QoaError("frame data is truncated")

    _ensure_lms(desc)
    p = offset + 8
    for c in range(channels):
        history = struct.unpack_from(">4h", buf, p)
        weights = struct.unpack_from(">4h", buf, p + 8)
        desc.lms[c] = Lms(list(history), list(weights))
        p += 16

    out = [0] * (samples * channels)
    for sample_index in range(0, samples, SLICE_LEN):
        end = _clamp(sample_index + SLICE_LEN, 0, samples)
        for c in range(channels):
            (slice_bits,) = struct.unpack_from(">Q", buf, p)
            p += 8
            dequant = _DEQUANT_TAB[(slice_bits >> 60) & 0xF]
            lms = desc.lms[c]
            for si in range(sample_index * channels + c, end * channels + c, channels):
                predicted = lms.predict()
                dequantized = dequant[(slice_bits >> 57) & 0x7]
                reconstructed = _clamp_s16(predicted + dequantized)
                out[si] = reconstructed
                slice_bits = (slice_bits << 3) & _U64_MASK
                lms.update(reconstructed, dequantized)

    return array("h", out), p - offset


def decode_frame(data: bytes, desc: QoaDescription) -> Tuple[array, int]:
    """Decode one frame; return its interleaved samples and the bytes consumed."""
    return _decode_frame(bytes(data), 0, desc)


def decode(data: bytes) -> Tuple[QoaDescription, array]:
    """Decode a QOA file into its description and interleaved samples.

    Decoding stops at the first invalid or truncated frame; the returned
    description then holds the number of samples actually decoded.
    """
    buf = bytes(data)
    desc = decode_header(buf)
    p = 8
    sample_index = 0
    out = array("h")
    while sample_index < desc.samples:
        try:
            frame, consumed = _decode_frame(buf, p, desc)
        except QoaError:
            break
        out.extend(frame)
        p += consumed
        sample_index += len(frame) // desc.channels
    desc.samples = sample_index
    return desc, out


def write(path: _PathArg, samples: Sequence[int], desc: QoaDescription) -> int:
    """Encode samples and write them to ``path``; return the bytes written."""
    encoded = encode(samples, desc)
    with open(path, "wb") as fh:
        fh.write(encoded)
    return len(encoded)


def read(path: _PathArg) -> Tuple[QoaDescription, array]:
    """Read and decode the QOA file at ``path``."""
    data = Path(path).read_bytes()
    if not data:
        raise QoaError(f"{path} is empty")
    return decode(data)