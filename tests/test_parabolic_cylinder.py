import numpy as np
import pytest

from lomerge.parabolic_cylinder import ParabolicCylinder

LINES = np.array(
    [
        [0.0, -1.0, 0.0, 0.0, 0.6, 0.8],
        [0.5, 0.0, 0.2, 0.0, 0.6, 0.8],
        [0.2, 0.3, 0.0, 0.0, 0.6, 0.8],
    ],
    dtype=np.float32,
)


def _cylinder():
    cylinder = ParabolicCylinder(1.0, 1.0)
    cylinder.set_static_point_cloud(LINES)
    cylinder.create_coefficients_table(LINES)
    return cylinder


def test_width_follows_parameters():
    cylinder = ParabolicCylinder(0.5, 1.0)
    assert float(cylinder.width) == pytest.approx(4.0)


def test_parabolic_distance_properties():
    cylinder = ParabolicCylinder(1.0, 1.0)
    assert cylinder.parabolic_distance(0.3, 0.3) == 0.0
    assert cylinder.parabolic_distance(0.2, 0.7) == pytest.approx(-cylinder.parabolic_distance(0.7, 0.2))
    assert cylinder.parabolic_distance(0.0, 1.0) > 0


@pytest.mark.parametrize("ty", [0.0, 0.2])
def test_coefficients_give_points_on_cylinder(ty):
    cylinder = ParabolicCylinder(1.0, 1.0)
    table = cylinder.create_coefficients_table(LINES)
    assert table.shape == (3, 4)
    for line, (a, b, c, d) in zip(LINES.astype(np.float64), table.astype(np.float64)):
        t = a * ty + b + np.sqrt(c * ty + d)
        y = line[1] + ty + t * line[4]
        z = line[2] + t * line[5]
        assert z == pytest.approx(1.0 - y * y, abs=1e-4)


def test_static_bounds_come_from_origins():
    cylinder = _cylinder()
    assert cylinder.x_static_bounds() == pytest.approx((0.0, 0.5))


def test_score_ty_is_maximal_for_identical_lines():
    cylinder = _cylinder()
    aligned = cylinder.score_ty(LINES, 0.0, 0.01)
    shifted = cylinder.score_ty(LINES, 0.25, 0.01)
    assert aligned == pytest.approx(1.1**3, rel=1e-5)
    assert 1.0 <= shifted < aligned


def test_cached_bounds_and_score_tx():
    cylinder = _cylinder()
    cylinder.update_cache(LINES, 0.0)
    assert cylinder.x_cached_bounds() == pytest.approx((-1.0, 0.3))
    for tx in (-0.5, 0.0, 0.5):
        score = cylinder.score_tx(tx, 0.01)
        assert 1.0 <= score <= 1.1**3 + 1e-5


def test_calls_before_setup_raise():
    cylinder = ParabolicCylinder(1.0, 1.0)
    with pytest.raises(RuntimeError):
        cylinder.update_cache(LINES, 0.0)
    with pytest.raises(RuntimeError):
        cylinder.x_cached_bounds()
    with pytest.raises(RuntimeError):
        cylinder.x_static_bounds()
    cylinder.create_coefficients_table(LINES)
    with pytest.raises(RuntimeError):
        cylinder.score_ty(LINES, 0.0, 0.01)
    cylinder.update_cache(LINES, 0.0)
    with pytest.raises(RuntimeError):
        cylinder.score_tx(0.0, 0.01)


def test_all_lines_on_one_side_raise():
    cylinder = ParabolicCylinder(1.0, 1.0)
    with pytest.raises(ValueError):
        cylinder.set_static_point_cloud(LINES[:1])


def test_malformed_lines_raise():
    cylinder = ParabolicCylinder(1.0, 1.0)
    with pytest.raises(ValueError):
        cylinder.create_coefficients_table([[1.0, 2.0, 3.0]])


def test_mismatched_lines_raise():
    cylinder = _cylinder()
    with pytest.raises(ValueError):
        cylinder.score_ty(LINES[:2], 0.0, 0.01)