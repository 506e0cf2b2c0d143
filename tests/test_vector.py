import math

import pytest

from okmedia.vector import Mat3, Rgba, Vec2, Vec2i, wrap_angle

A = Vec2(1.5, -2.25)
B = Vec2(0.5, 4.0)


def test_add_sub_round_trip():
    assert ((A + B) - B).approx_eq(A)
    assert A + B == B + A


def test_scalar_and_componentwise_mul():
    assert A * 2 == A + A
    assert 2 * A == A * 2
    assert A * Vec2(2, 2) == A * 2
    assert ((A * 3) / 3).approx_eq(A)
    assert (A / Vec2(2, 2)).approx_eq(A * 0.5)


def test_abs():
    assert abs(Vec2(-3, 4)) == Vec2(3, 4)


def test_length_and_dist():
    assert Vec2(3, 4).length() == pytest.approx(5.0)
    assert A.dist(B) == pytest.approx(B.dist(A))
    assert A.dist(B) == pytest.approx((A - B).length())


def test_dot_and_cross():
    assert A.dot(A) == pytest.approx(A.length() ** 2)
    assert A.cross(A) == pytest.approx(0.0)
    assert A.cross(B) == pytest.approx(-B.cross(A))


def test_approx_eq_epsilon():
    assert Vec2(1, 1).approx_eq(Vec2(1.00001, 1))
    assert not Vec2(1, 1).approx_eq(Vec2(1.001, 1))


def test_angle_round_trip():
    v = Vec2.from_angle(0.7)
    assert v.length() == pytest.approx(1.0)
    assert v.to_angle() == pytest.approx(0.7)
    assert A.angle_to(B) == pytest.approx((B - A).to_angle())


def test_identity_transform_keeps_vector():
    assert A.transform(Mat3.identity()).approx_eq(A)


def test_translate_and_scale():
    m = Mat3.identity()
    assert m.translate(B) is m
    assert A.transform(m).approx_eq(A + B)
    s = Mat3.identity().scale(Vec2(2, 3))
    assert A.transform(s).approx_eq(A * Vec2(2, 3))


def test_rotate_preserves_length_and_inverts():
    m = Mat3.identity().rotate(0.9)
    assert A.transform(m).length() == pytest.approx(A.length())
    m.rotate(-0.9)
    assert A.transform(m).approx_eq(A)


def test_vec2i_conversion_and_ops():
    assert Vec2i.from_vec2(Vec2(-1.7, 2.9)) == Vec2i(-1, 2)
    assert Vec2.from_vec2i(Vec2i(3, -4)) == Vec2(3.0, -4.0)
    v = Vec2i(2, -3)
    assert v * 2 == v + v
    assert v * Vec2i(2, 2) == v * 2
    assert (v + Vec2i(5, 5)) - Vec2i(5, 5) == v
    assert abs(Vec2i(-2, 5)) == Vec2i(2, 5)


def test_vec2i_division_truncates_toward_zero():
    assert Vec2i(-7, 7) // 2 == Vec2i(-3, 3)
    assert Vec2i(-7, 7) // Vec2i(2, 2) == Vec2i(-7, 7) // 2
    with pytest.raises(ZeroDivisionError):
        Vec2i(1, 1) // 0


def test_rgba_mix_and_blend():
    color = Rgba(10, 120, 250, 200)
    black = Rgba(0, 0, 0, 0)
    assert color.mix(black) == black
    blended = color.blend(Rgba(90, 90, 90, 0))
    mixed = color.mix(Rgba.white())
    assert (blended.r, blended.g, blended.b) == (mixed.r, mixed.g, mixed.b)
    assert blended.a == 1


def test_rgba_rejects_out_of_range():
    with pytest.raises(ValueError):
        Rgba(256, 0, 0, 0)


def test_wrap_angle_range_and_periodicity():
    for angle in (-10.0, -3.0, 0.5, 4.0, 20.0):
        wrapped = wrap_angle(angle)
        assert -math.pi <= wrapped < math.pi
        assert wrap_angle(angle + 2 * math.pi) == pytest.approx(wrapped, abs=1e-9)
        assert math.cos(wrapped) == pytest.approx(math.cos(angle))