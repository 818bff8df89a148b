import struct

import numpy as np
import pytest

from lomerge.hough3dlines import hough_transform, orthogonal_lsq, read_binary, write_binary
from lomerge.pointcloud import PointCloud
from lomerge.vector3d import Vector3d


def _x_line(n, length):
    return [Vector3d(length * i / (n - 1), 0.0, 0.0) for i in range(n)]


def test_binary_round_trip(tmp_path):
    matrix = np.arange(6, dtype=np.float32).reshape(2, 3) / 4
    path = tmp_path / "m.data"
    write_binary(path, matrix)
    np.testing.assert_array_equal(read_binary(path), matrix)


def test_binary_layout_is_header_then_column_major(tmp_path):
    matrix = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], dtype=np.float32)
    path = tmp_path / "m.data"
    write_binary(path, matrix)
    raw = path.read_bytes()
    assert struct.unpack("<qq", raw[:16]) == (2, 3)
    assert struct.unpack("<6f", raw[16:]) == (1.0, 4.0, 2.0, 5.0, 3.0, 6.0)


def test_read_binary_rejects_truncated_file(tmp_path):
    path = tmp_path / "bad.data"
    path.write_bytes(struct.pack("<qq", 4, 4) + b"\x00" * 8)
    with pytest.raises(ValueError):
        read_binary(path)


def test_write_binary_rejects_vector(tmp_path):
    with pytest.raises(ValueError):
        write_binary(tmp_path / "v.data", np.zeros(3))


def test_orthogonal_lsq_on_collinear_points():
    cloud = PointCloud([Vector3d(1.0, float(i), 2.0) for i in range(5)])
    rc, anchor, direction = orthogonal_lsq(cloud)
    assert rc > 0.0
    assert anchor.x == pytest.approx(1.0)
    assert anchor.y == pytest.approx(2.0)
    assert anchor.z == pytest.approx(2.0)
    assert abs(direction.y) == pytest.approx(1.0, abs=1e-5)
    assert direction.norm() == pytest.approx(1.0, abs=1e-5)


def test_orthogonal_lsq_single_point_has_no_spread():
    rc, anchor, _ = orthogonal_lsq(PointCloud([Vector3d(3.0, -1.0, 0.5)]))
    assert rc == 0.0
    assert anchor == Vector3d(3.0, -1.0, 0.5)


def test_orthogonal_lsq_empty_cloud():
    rc, anchor, _ = orthogonal_lsq(PointCloud())
    assert rc == 0.0
    assert anchor == Vector3d()


def test_hough_transform_finds_single_line(tmp_path, capsys):
    out = tmp_path / "lines.txt"
    result = hough_transform(_x_line(300, 0.6), out, True)
    assert result.shape == (1, 7)
    assert result.dtype == np.float32
    assert result[0, 0] == 300
    assert result[0, 1] == pytest.approx(0.3, abs=1e-5)
    assert abs(result[0, 4]) == pytest.approx(1.0, abs=1e-5)

    np.testing.assert_array_equal(read_binary(str(out) + "load.data"), result)

    tokens = out.read_text().split()
    assert len(tokens) == 7
    assert tokens[0] == "300"
    assert "npoints=300" in capsys.readouterr().out


def test_hough_transform_too_few_points_for_a_line(tmp_path):
    out = tmp_path / "few.txt"
    result = hough_transform(_x_line(50, 0.6), out, True)
    assert result.shape == (0, 7)
    assert read_binary(str(out) + "load.data").shape == (0, 7)
    assert out.read_text() == ""


def test_hough_transform_without_text_output(tmp_path):
    out = tmp_path / "none.txt"
    hough_transform(_x_line(20, 0.6), out, False)
    assert not out.exists()
    assert (tmp_path / "none.txtload.data").exists()