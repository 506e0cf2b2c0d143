"""QOI images, QOA audio, QOP packages, a small synthesizer and 2D game value types."""

__version__ = "0.1.0"
__all__ = ["entity_flags", "qoa", "qoi", "qop", "qopconv", "synth", "vector"]