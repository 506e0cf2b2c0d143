"""A small software synthesizer for sound effects and tracker-style songs."""

from __future__ import annotations

import math
from array import array
from dataclasses import dataclass, field
from typing import List, MutableSequence, Sequence, Tuple

SAMPLERATE = 44100
TAB_LEN = 4096
_TAB_MASK = TAB_LEN - 1
ROWS_PER_PATTERN = 32
_RAND_SEED = 0xD8F554A5


def _wrap_s16(v: float) -> int:
    n = int(v)
    return ((n + 0x8000) & 0xFFFF) - 0x8000


def _clamp_s16(v: int) -> int:
    return -32768 if v < -32768 else 32767 if v > 32767 else v


def _index(k: float) -> int:
    return int(k * TAB_LEN) & _TAB_MASK


def _note_freq(n: int, octave: int, semi: int, detune: int) -> float:
    return (0.00390625 * 1.059463094 ** (n - 128 + (octave - 8) * 12 + semi)) * (
        1.0 + 0.0008 * detune
    )


@dataclass(frozen=True)
class Instrument:
    """Parameters of one instrument, in the conventional positional order."""

    osc0_oct: int = 0
    osc0_det: int = 0
    osc0_detune: int = 0
    osc0_xenv: int = 0
    osc0_vol: int = 0
    osc0_waveform: int = 0

    osc1_oct: int = 0
    osc1_det: int = 0
    osc1_detune: int = 0
    osc1_xenv: int = 0
    osc1_vol: int = 0
    osc1_waveform: int = 0

    noise_fader: int = 0

    env_attack: int = 0
    env_sustain: int = 0
    env_release: int = 0
    env_master: int = 0

    fx_filter: int = 0
    fx_freq: int = 0
    fx_resonance: int = 0
    fx_delay_time: int = 0
    fx_delay_amt: int = 0
    fx_pan_freq: int = 0
    fx_pan_amt: int = 0

    lfo_osc_freq: int = 0
    lfo_fx_freq: int = 0
    lfo_freq: int = 0
    lfo_amt: int = 0
    lfo_waveform: int = 0

    def __post_init__(self) -> None:
        for name in ("osc0_waveform", "osc1_waveform", "lfo_waveform"):
            value = getattr(self, name)
            if not 0 <= value <= 3:
                raise ValueError(f"{name}={value} is not a waveform (0..3)")
        if not 0 <= self.fx_filter <= 4:
            raise ValueError(f"fx_filter={self.fx_filter} is not a filter (0..4)")


@dataclass(frozen=True)
class Sound:
    """A single note played on an instrument."""

    instrument: Instrument
    row_len: int
    note: int


@dataclass(frozen=True)
class Pattern:
    """Thirty-two rows of notes; 0 means no note."""

    notes: Tuple[int, ...] = field(default_factory=lambda: (0,) * ROWS_PER_PATTERN)

    def __post_init__(self) -> None:
        notes = tuple(self.notes)
        if len(notes) != ROWS_PER_PATTERN:
            raise ValueError(f"a pattern holds {ROWS_PER_PATTERN} notes, got {len(notes)}")
        object.__setattr__(self, "notes", notes)


@dataclass(frozen=True)
class Track:
    """An instrument with a sequence of 1-based pattern numbers (0 is silence)."""

    instrument: Instrument
    sequence: Sequence[int] = ()
    patterns: Sequence[Pattern] = ()


@dataclass(frozen=True)
class Song:
    row_len: int
    tracks: Sequence[Track] = ()


def _instrument_len(inst: Instrument, row_len: int) -> int:
    delay_shift = (inst.fx_delay_time * row_len) // 2
    if inst.fx_delay_amt == 0:
        delay_iter = 0
    elif inst.fx_delay_amt >= 255:
        raise ValueError("fx_delay_amt must be below 255")
    else:
        delay_iter = math.ceil(math.log(0.1) / math.log(inst.fx_delay_amt / 255.0))
    return inst.env_attack + inst.env_sustain + inst.env_release + delay_iter * delay_shift


def _apply_delay(samples: MutableSequence[int], length: int, shift: int, amount: float) -> None:
    offset = shift * 2
    for i in range(0, max(0, 2 * (length - shift)), 2):
        j = i + offset
        samples[j] = _wrap_s16(samples[j] + samples[i + 1] * amount)
        samples[j + 1] = _wrap_s16(samples[j + 1] + samples[i] * amount)


class Synthesizer:
    """Renders sounds and songs to interleaved 16-bit stereo samples.

    The noise generator keeps its state between calls, so repeated renders of
    a noisy instrument differ, while a fresh synthesizer is deterministic.
    """

    def __init__(self) -> None:
        step = 6.283184 / TAB_LEN
        sine = [math.sin(i * step) for i in range(TAB_LEN)]
        square = [-1.0 if s < 0 else 1.0 for s in sine]
        saw = [i / TAB_LEN - 0.5 for i in range(TAB_LEN)]
        quarter = TAB_LEN / 4.0
        triangle = [
            i / quarter - 1.0 if i < TAB_LEN // 2 else 3.0 - i / quarter
            for i in range(TAB_LEN)
        ]
        self._tables = (sine, square, saw, triangle)
        self._rand = _RAND_SEED

    def _generate(
        self,
        out: List[int],
        write_pos: int,
        row_len: int,
        note: int,
        s: Instrument,
    ) -> None:
        sine = self._tables[0]
        lfo_tab = self._tables[s.lfo_waveform]
        osc0_tab = self._tables[s.osc0_waveform]
        osc1_tab = self._tables[s.osc1_waveform]

        fx_pan_freq = 2.0 ** (s.fx_pan_freq - 8) / row_len
        lfo_freq = 2.0 ** (s.lfo_freq - 8) / row_len

        osc0_pos = 0.0
        osc1_pos = 0.0
        fx_resonance = s.fx_resonance / 255.0
        noise_vol = s.noise_fader * 4.6566129e-010
        low = band = 0.0

        inv_attack = 1.0 / s.env_attack if s.env_attack else math.inf
        inv_release = 1.0 / s.env_release if s.env_release else math.inf
        lfo_amt = s.lfo_amt / 512.0
        pan_amt = s.fx_pan_amt / 512.0
        master = 78 * s.env_master

        osc0_freq = _note_freq(note, s.osc0_oct, s.osc0_det, s.osc0_detune)
        osc1_freq = _note_freq(note, s.osc1_oct, s.osc1_det, s.osc1_detune)

        sustain_end = s.env_attack + s.env_sustain
        total = sustain_end + s.env_release
        rand = self._rand

        for j in range(total - 1, -1, -1):
            k = j + write_pos

            lfor = lfo_tab[_index(k * lfo_freq)] * lfo_amt + 0.5

            if j < s.env_attack:
                envelope = j * inv_attack
            elif j >= sustain_end:
                envelope = 1.0 - (j - sustain_end) * inv_release
            else:
                envelope = 1.0

            temp_f = osc0_freq
            if s.lfo_osc_freq:
                temp_f *= lfor
            if s.osc0_xenv:
                temp_f *= envelope * envelope
            osc0_pos += temp_f
            sample = osc0_tab[_index(osc0_pos)] * s.osc0_vol

            temp_f = osc1_freq
            if s.osc1_xenv:
                temp_f *= envelope * envelope
            osc1_pos += temp_f
            sample += osc1_tab[_index(osc1_pos)] * s.osc1_vol

            if noise_vol:
                signed = rand - 0x100000000 if rand & 0x80000000 else rand
                sample += signed * noise_vol * envelope
                rand ^= (rand << 13) & 0xFFFFFFFF
                rand ^= rand >> 17
                rand ^= (rand << 5) & 0xFFFFFFFF

            sample *= envelope * (1.0 / 255.0)

            if s.fx_filter:
                filter_f = float(s.fx_freq)
                if s.lfo_fx_freq:
                    filter_f *= lfor
                filter_f = sine[_index(filter_f * (0.5 / SAMPLERATE))] * 1.5
                low += filter_f * band
                high = fx_resonance * (sample - band) - low
                band += filter_f * high
                sample = (sample, high, low, band, low + high)[s.fx_filter]

            pan = sine[_index(k * fx_pan_freq)] * pan_amt + 0.5
            sample *= master

            left = k * 2
            out[left] = _wrap_s16(out[left] + sample * (1 - pan))
            out[left + 1] = _wrap_s16(out[left + 1] + sample * pan)

        self._rand = rand

    def sound_len(self, sound: Sound) -> int:
        """Number of samples per channel that ``sound`` renders to."""
        return _instrument_len(sound.instrument, sound.row_len)

    def sound(self, sound: Sound) -> array:
        """Render a sound to interleaved stereo 16-bit samples."""
        length = self.sound_len(sound)
        samples = [0] * (length * 2)
        self._generate(samples, 0, sound.row_len, sound.note, sound.instrument)

        inst = sound.instrument
        if inst.fx_delay_amt:
            delay_shift = (inst.fx_delay_time * sound.row_len) // 2
            _apply_delay(samples, length, delay_shift, inst.fx_delay_amt / 256.0)

        return array("h", samples)

    def song_len(self, song: Song) -> int:
        """Number of samples per channel that ``song`` renders to."""
        return max(
            (
                len(track.sequence) * song.row_len * ROWS_PER_PATTERN
                + _instrument_len(track.instrument, song.row_len)
                for track in song.tracks
            ),
            default=0,
        )

    def song(self, song: Song) -> array:
        """Render a song to interleaved stereo 16-bit samples, mixing all tracks."""
        length = self.song_len(song)
        mixed = [0] * (length * 2)

        for track in song.tracks:
            temp = [0] * (length * 2)
            for seq_index, pattern_number in enumerate(track.sequence):
                if pattern_number <= 0:
                    continue
                write_pos = song.row_len * seq_index * ROWS_PER_PATTERN
                for note in track.patterns[pattern_number - 1].notes:
                    if note > 0:
                        self._generate(temp, write_pos, song.row_len, note, track.instrument)
                    write_pos += song.row_len

            inst = track.instrument
            if inst.fx_delay_amt:
                delay_shift = (inst.fx_delay_time * song.row_len) // 2
                _apply_delay(temp, length, delay_shift, inst.fx_delay_amt / 255.0)

            mixed = [_clamp_s16(m + t) for m, t in zip(mixed, temp)]

        return array("h", mixed)