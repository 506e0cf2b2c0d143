"""Two-dimensional vectors, 2D affine matrices and RGBA colors."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

VEC2_EQ_EPSILON = 0.0001


def _trunc_div(a: int, b: int) -> int:
    """Integer division that rounds toward zero."""
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


@dataclass(frozen=True)
class Vec2:
    """A 2D vector with float components."""

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def from_vec2i(cls, v: Vec2i) -> Vec2:
        return cls(float(v.x), float(v.y))

    @classmethod
    def from_angle(cls, angle: float) -> Vec2:
        """Unit vector pointing in the direction of ``angle`` (radians)."""
        return cls(math.cos(angle), math.sin(angle))

    def to_angle(self) -> float:
        return math.atan2(self.y, self.x)

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def __mul__(self, other: Union[Vec2, float]) -> Vec2:
        if isinstance(other, Vec2):
            return Vec2(self.x * other.x, self.y * other.y)
        return Vec2(self.x * other, self.y * other)

    __rmul__ = __mul__

    def __truediv__(self, other: Union[Vec2, float]) -> Vec2:
        if isinstance(other, Vec2):
            return Vec2(self.x / other.x, self.y / other.y)
        return Vec2(self.x / other, self.y / other)

    def __abs__(self) -> Vec2:
        return Vec2(abs(self.x), abs(self.y))

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y)

    def dist(self, other: Vec2) -> float:
        return (self - other).length()

    def dot(self, other: Vec2) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Vec2) -> float:
        return self.x * other.y - self.y * other.x

    def approx_eq(self, other: Vec2) -> bool:
        """True if the summed absolute difference is below the epsilon."""
        return abs(self.x - other.x) + abs(self.y - other.y) < VEC2_EQ_EPSILON

    def angle_to(self, other: Vec2) -> float:
        """Angle of the direction pointing from this vector to ``other``."""
        d = other - self
        return math.atan2(d.y, d.x)

    def transform(self, m: Mat3) -> Vec2:
        return Vec2(
            m.a * self.x + m.b * self.y + m.tx,
            m.c * self.x + m.d * self.y + m.ty,
        )


@dataclass(frozen=True)
class Vec2i:
    """A 2D vector with integer components."""

    x: int = 0
    y: int = 0

    @classmethod
    def from_vec2(cls, v: Vec2) -> Vec2i:
        """Convert by truncating each component toward zero."""
        return cls(int(v.x), int(v.y))

    def __add__(self, other: Vec2i) -> Vec2i:
        return Vec2i(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2i) -> Vec2i:
        return Vec2i(self.x - other.x, self.y - other.y)

    def __mul__(self, other: Union[Vec2i, int]) -> Vec2i:
        if isinstance(other, Vec2i):
            return Vec2i(self.x * other.x, self.y * other.y)
        return Vec2i(self.x * other, self.y * other)

    __rmul__ = __mul__

    def __floordiv__(self, other: Union[Vec2i, int]) -> Vec2i:
        """Divide component-wise, rounding toward zero."""
        if isinstance(other, Vec2i):
            return Vec2i(_trunc_div(self.x, other.x), _trunc_div(self.y, other.y))
        return Vec2i(_trunc_div(self.x, other), _trunc_div(self.y, other))

    def __abs__(self) -> Vec2i:
        return Vec2i(abs(self.x), abs(self.y))


@dataclass
class Mat3:
    """A 2D affine transform; the modifying methods return the matrix itself."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> Mat3:
        return cls(1.0, 0.0, 0.0, 1.0, 0.0, 0.0)

    def translate(self, t: Vec2) -> Mat3:
        self.tx += self.a * t.x + self.c * t.y
        self.ty += self.b * t.x + self.d * t.y
        return self

    def scale(self, r: Vec2) -> Mat3:
        self.a *= r.x
        self.b *= r.x
        self.c *= r.y
        self.d *= r.y
        return self

    def rotate(self, r: float) -> Mat3:
        s = math.sin(r)
        c = math.cos(r)
        a, b, cc, d = self.a, self.b, self.c, self.d
        self.a = a * c + cc * s
        self.b = b * c + d * s
        self.c = cc * c - a * s
        self.d = d * c - b * s
        return self


@dataclass(frozen=True)
class Rgba:
    """An 8-bit-per-channel RGBA color."""

    r: int = 0
    g: int = 0
    b: int = 0
    a: int = 255

    def __post_init__(self) -> None:
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"color component {name}={value} outside 0..255")

    @classmethod
    def white(cls) -> Rgba:
        return cls(255, 255, 255, 255)

    def blend(self, other: Rgba) -> Rgba:
        """Blend ``other`` over this color using the alpha of ``other``."""
        in_a = 255 - other.a
        return Rgba(
            (self.r * in_a + other.r * other.a) >> 8,
            (self.g * in_a + other.g * other.a) >> 8,
            (self.b * in_a + other.b * other.a) >> 8,
            1,
        )

    def mix(self, other: Rgba) -> Rgba:
        """Multiply two colors component-wise."""
        return Rgba(
            (self.r * other.r) >> 8,
            (self.g * other.g) >> 8,
            (self.b * other.b) >> 8,
            (self.a * other.a) >> 8,
        )


def wrap_angle(a: float) -> float:
    """Wrap an angle in radians into the range [-pi, pi)."""
    a = math.fmod(a + math.pi, math.pi * 2)
    if a < 0:
        a += math.pi * 2
    return a - math.pi