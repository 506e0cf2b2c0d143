# okmedia

Small, dependency-free Python tools for a few simple media formats:

- `okmedia.qoi`: lossless image encoding and decoding in the QOI format
- `okmedia.qoa`: lossy 16-bit PCM audio encoding and decoding in the QOA format
- `okmedia.qop`: reads QOP file packages
- `okmedia.qopconv`: creates, lists and unpacks QOP packages, and provides the `qopconv` command
- `okmedia.synth`: a small software synthesizer that renders sound effects and songs to stereo 16-bit samples
- `okmedia.vector`: `Vec2`, `Vec2i`, `Mat3` and `Rgba` value types, plus `wrap_angle`
- `okmedia.entity_flags`: `EntityGroup`, `CollisionMode`, `EntityPhysics`, `EntityType` and `EntityRef`

## Installation

```
pip install .
```

## Images (QOI)

```python
from okmedia import qoi

desc = qoi.QoiDescription(width=2, height=1, channels=4, colorspace=qoi.Colorspace.SRGB)
pixels = bytes([255, 0, 0, 255, 0, 255, 0, 255])

data = qoi.encode(pixels, desc)
decoded_desc, decoded = qoi.decode(data, 0)   # 0: keep the file's channel count
assert decoded == pixels

qoi.write("image.qoi", pixels, desc)
desc, pixels = qoi.read("image.qoi", 4)       # force RGBA output
```

Invalid descriptions and malformed data raise `qoi.QoiError` (a `ValueError`).

## Audio (QOA)

```python
from okmedia import qoa

desc = qoa.QoaDescription(channels=1, samplerate=44100, samples=1000)
samples = [0] * 1000                     # interleaved signed 16-bit samples

data = qoa.encode(samples, desc)
decoded_desc, decoded = qoa.decode(data) # decoded is an array('h')

qoa.write("sound.qoa", samples, desc)
desc, samples = qoa.read("sound.qoa")
```

Lower-level pieces are available too: `encode_header`, `encode_frame`,
`decode_header`, `decode_frame`, `max_frame_size` and the `Lms` predictor.
Invalid input raises `qoa.QoaError` (a `ValueError`). `decode` stops at the
first invalid or truncated frame and reports the number of samples it
actually decoded in the returned description.

## Packages (QOP)

```python
from okmedia.qop import QopArchive

with QopArchive("assets.qop") as archive:
    archive.read_index()
    entry = archive.find("assets/font.qoi")
    if entry is not None:
        content = archive.read(entry)
    for f in archive.files():
        print(archive.read_path(f), f.size)
```

`read_ex(file, start, length)` reads part of a file, and `hash_path` gives the
64-bit hash used by the index. Archives that cannot be opened raise
`qop.QopError`.

From the command line:

```
qopconv dir1 archive.qop          # create archive.qop from dir1/
qopconv foo bar archive.qop       # create archive.qop from files foo and bar
qopconv -u archive.qop            # unpack archive.qop into the current directory
qopconv -l archive.qop            # list the files in archive.qop
qopconv -d dir1 dir2 archive.qop  # read from dir1, pack the files in dir1/dir2/
```

The same operations are available as `okmedia.qopconv.pack`, `unpack` and
`main`; failures raise `qopconv.ConvError`.

## Synthesizer

```python
from okmedia.synth import Instrument, Sound, Synthesizer

synth = Synthesizer()
sound = Sound(
    instrument=Instrument(osc0_oct=7, osc0_vol=192, osc1_oct=7, osc1_vol=192,
                          env_attack=200, env_sustain=2000, env_release=20000,
                          env_master=192),
    row_len=5168,
    note=135,
)
samples = synth.sound(sound)   # array('h'), interleaved stereo, left then right
```

`Synthesizer.song` renders a `Song` made of `Track`s and `Pattern`s in the
same way; `sound_len` and `song_len` give the length in samples per channel.
The noise generator keeps its state between calls on one `Synthesizer`, so a
fresh instance renders deterministically.

## What is not included

- QOP entries flagged as compressed or encrypted are returned as stored; the
  package does not decompress or decrypt them, and `qopconv` only writes
  uncompressed entries.
- Streaming QOA files (a sample count of 0 in the header) are rejected.
- The vector and entity-flag types are plain data types: there is no game
  engine, renderer, input handling or audio playback in this package.

## Running the tests

```
pip install .[test]
pytest
```