[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "okmedia"
version = "0.1.0"
description = "Pure-Python QOI images, QOA audio, QOP archives and a small software synthesizer"
requires-python = ">=3.10"
dependencies = []
keywords = ["qoi", "qoa", "qop", "image", "audio", "archive", "synthesizer", "codec"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia",
    "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    "Topic :: Multimedia :: Sound/Audio :: Conversion",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
    "Topic :: System :: Archiving :: Packaging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
qopconv = "okmedia.qopconv:main"

[tool.hatch.build.targets.wheel]
packages = ["okmedia"]

[tool.pytest.ini_options]
addopts = "-ra"
