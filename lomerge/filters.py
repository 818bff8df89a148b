"""Statistical outlier removal and Gaussian smoothing of point clouds."""

from __future__ import annotations

import itertools
import os
from collections.abc import Sequence

import numpy as np
from scipy.spatial import cKDTree

from lomerge.plyio import RED, write_colored_ply

MEAN_K = 150
STD_DEV_MULT = 0.05

SIGMA = 6.0
THRESHOLD_RELATIVE_TO_SIGMA = 6.0
SEARCH_RADIUS = 0.03


def _as_points(cloud: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    points = np.array(cloud, dtype=np.float32)
    if points.size == 0:
        return np.empty((0, 3), dtype=np.float32)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("cloud must be an (n, 3) array")
    return points


def _write(output_name: str | os.PathLike, points: np.ndarray) -> None:
    write_colored_ply(output_name, points, RED)
    print(f"{os.fspath(output_name)} written")


def apply_statistical_outlier_filter(
    cloud: np.ndarray | Sequence[Sequence[float]],
    output_name: str | os.PathLike,
    write_file: bool = False,
) -> np.ndarray:
    """Drop points whose mean neighbour distance is far above the cloud's average.

    Returns the remaining points; with ``write_file`` they are written in red.
    """
    points = _as_points(cloud)
    count = len(points)
    if count:
        k = min(MEAN_K + 1, count)
        if k > 1:
            distances, _ = cKDTree(points).query(points, k=k)
            mean_distance = distances[:, 1:].mean(axis=1)
        else:
            mean_distance = np.zeros(count)
        mean = float(mean_distance.mean())
        std = float(mean_distance.std(ddof=1)) if count > 1 else 0.0
        threshold = mean + STD_DEV_MULT * std
        points = points[mean_distance <= threshold]

    if write_file:
        _write(output_name, points)
    return points


def apply_gaussian_kernel(
    cloud: np.ndarray | Sequence[Sequence[float]],
    output_name: str | os.PathLike,
    write_file: bool = False,
) -> np.ndarray:
    """Replace each point by a Gaussian-weighted mean of its neighbours within the search radius.

    Returns the smoothed points; with ``write_file`` they are written in red.
    """
    points = _as_points(cloud)
    count = len(points)
    if count:
        neighbours = cKDTree(points).query_ball_point(points, SEARCH_RADIUS)
        sizes = np.fromiter((len(n) for n in neighbours), dtype=np.intp, count=count)
        rows = np.repeat(np.arange(count), sizes)
        cols = np.fromiter(itertools.chain.from_iterable(neighbours), dtype=np.intp)
        source = points.astype(np.float64)
        squared = ((source[rows] - source[cols]) ** 2).sum(axis=1)
        threshold = THRESHOLD_RELATIVE_TO_SIGMA * SIGMA
        weights = np.where(squared <= threshold, np.exp(-squared / (2 * SIGMA * SIGMA)), 0.0)
        sums = np.zeros((count, 3))
        np.add.at(sums, rows, weights[:, None] * source[cols])
        total = np.bincount(rows, weights=weights, minlength=count)
        with np.errstate(divide="ignore", invalid="ignore"):
            smoothed = np.where(total[:, None] != 0, sums / total[:, None], np.nan)
        points = smoothed.astype(np.float32)

    if write_file:
        _write(output_name, points)
    return points