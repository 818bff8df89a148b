import math

import pytest

from lomerge.vector3d import Vector3d


def test_default_is_origin():
    assert Vector3d() == Vector3d(0.0, 0.0, 0.0)


def test_add_then_subtract_round_trip():
    a = Vector3d(1.5, -2.25, 3.0)
    b = Vector3d(-0.5, 4.0, 7.75)
    assert (a + b) - b == a


def test_addition_is_commutative():
    a = Vector3d(0.1, 0.2, 0.3)
    b = Vector3d(1.0, -2.0, 5.5)
    assert a + b == b + a


def test_scalar_multiplication_both_sides():
    v = Vector3d(1.25, -3.5, 2.0)
    assert 2 * v == v * 2
    assert v * 2 == v + v


def test_division_inverts_multiplication():
    v = Vector3d(3.0, -6.0, 9.0)
    assert (v * 4.0) / 4.0 == v


def test_negation():
    v = Vector3d(1.0, -2.0, 3.0)
    assert v + (-v) == Vector3d()


def test_dot_and_norm_agree():
    v = Vector3d(2.0, -3.0, 6.0)
    assert v.norm() == pytest.approx(math.sqrt(v.dot(v)))


def test_dot_of_orthogonal_vectors_is_zero():
    assert Vector3d(1.0, 0.0, 0.0).dot(Vector3d(0.0, 5.0, -2.0)) == 0.0


def test_norm_of_unit_axis():
    assert Vector3d(0.0, 0.0, -1.0).norm() == 1.0


def test_equality_is_exact():
    assert Vector3d(1.0, 2.0, 3.0) == Vector3d(1.0, 2.0, 3.0)
    assert not Vector3d(1.0, 2.0, 3.0) == Vector3d(1.0, 2.0, 3.0000001)


def test_str_format():
    assert str(Vector3d(1.0, 2.0, 3.0)) == "(1,2,3)"


def test_unpacking():
    x, y, z = Vector3d(4.0, 5.0, 6.0)
    assert (x, y, z) == (4.0, 5.0, 6.0)


def test_multiplying_by_vector_is_rejected():
    with pytest.raises(TypeError):
        Vector3d(1.0, 1.0, 1.0) * Vector3d(1.0, 1.0, 1.0)


def test_frozen():
    v = Vector3d(1.0, 2.0, 3.0)
    with pytest.raises(AttributeError):
        v.x = 5.0
    assert v == Vector3d(1.0, 2.0, 3.0)
    assert v.x == 1.0