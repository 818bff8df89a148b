import numpy as np
import pytest

from lomerge.filters import apply_gaussian_kernel, apply_statistical_outlier_filter
from lomerge.plyio import read_ply


@pytest.fixture
def cluster():
    grid = np.stack(
        np.meshgrid(np.arange(5), np.arange(5), np.arange(8), indexing="ij"), axis=-1
    ).reshape(-1, 3)
    return (grid * 0.01).astype(np.float32)


def test_outlier_is_removed(cluster):
    cloud = np.vstack([cluster, [[100.0, 100.0, 100.0]]]).astype(np.float32)
    filtered = apply_statistical_outlier_filter(cloud, "unused.ply")
    assert len(filtered) == len(cluster)
    assert not np.any(np.all(filtered == 100.0, axis=1))


def test_filtered_points_keep_order(cluster):
    cloud = np.vstack([[[100.0, 100.0, 100.0]], cluster]).astype(np.float32)
    filtered = apply_statistical_outlier_filter(cloud, "unused.ply")
    np.testing.assert_array_equal(filtered, cluster)


def test_statistical_filter_writes_file(tmp_path, cluster, capsys):
    path = tmp_path / "sor.ply"
    filtered = apply_statistical_outlier_filter(cluster, str(path), True)
    np.testing.assert_array_equal(read_ply(path), filtered)
    assert f"{path} written" in capsys.readouterr().out


def test_statistical_filter_single_point():
    result = apply_statistical_outlier_filter([[1.0, 2.0, 3.0]], "unused.ply")
    np.testing.assert_array_equal(result, [[1.0, 2.0, 3.0]])


def test_statistical_filter_empty():
    assert apply_statistical_outlier_filter(np.empty((0, 3)), "unused.ply").shape == (0, 3)


def test_isolated_points_are_unchanged():
    cloud = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [5.0, -2.0, 3.0]], dtype=np.float32)
    np.testing.assert_allclose(apply_gaussian_kernel(cloud, "unused.ply"), cloud, atol=1e-6)


def test_close_pair_moves_to_midpoint():
    cloud = np.array([[0.0, 0.0, 0.0], [0.02, 0.0, 0.0], [3.0, 3.0, 3.0]], dtype=np.float32)
    smoothed = apply_gaussian_kernel(cloud, "unused.ply")
    midpoint = (cloud[0] + cloud[1]) / 2
    np.testing.assert_allclose(smoothed[0], midpoint, atol=1e-5)
    np.testing.assert_allclose(smoothed[1], midpoint, atol=1e-5)
    np.testing.assert_allclose(smoothed[2], cloud[2], atol=1e-6)


def test_gaussian_keeps_point_count(tmp_path, cluster):
    path = tmp_path / "smooth.ply"
    smoothed = apply_gaussian_kernel(cluster, str(path), True)
    assert smoothed.shape == cluster.shape
    np.testing.assert_array_equal(read_ply(path), smoothed)


def test_gaussian_rejects_bad_shape():
    with pytest.raises(ValueError):
        apply_gaussian_kernel([[1.0, 2.0]], "unused.ply")