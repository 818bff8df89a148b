"""Edge point extraction from the eigenvalues of local covariance matrices."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence

import numpy as np
from scipy.spatial import cKDTree

from lomerge.plyio import RED, write_colored_ply

NEIGHBOURS = 10
COLOR_LEVELS = 256
THRESHOLD_LEVEL = 6


def _as_points(cloud: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    points = np.array(cloud, dtype=np.float32)
    if points.size == 0:
        return np.empty((0, 3), dtype=np.float32)
    if points.ndim != 2 or points.shape[1] != 3:
        raise ValueError("cloud must be an (n, 3) array")
    return points


def _surface_variation(points: np.ndarray) -> np.ndarray:
    """Smallest eigenvalue over the eigenvalue sum of each point's neighbourhood."""
    k = min(NEIGHBOURS, len(points))
    _, indices = cKDTree(points).query(points, k=k)
    neighbourhood = points[indices]
    mean = neighbourhood.sum(axis=1, dtype=np.float32) / np.float32(k)
    centered = neighbourhood - mean[:, None, :]
    covariance = np.einsum("nki,nkj->nij", centered, centered) / np.float32(k - 1)
    if not np.isfinite(covariance).all():
        raise ValueError("covariance matrix is not finite")
    eigenvalues = np.linalg.eigvalsh(covariance).astype(np.float64)
    with np.errstate(divide="ignore", invalid="ignore"):
        return eigenvalues[:, 0] / eigenvalues.sum(axis=1)


def extract_edges(
    cloud: np.ndarray | Sequence[Sequence[float]],
    output_name: str | os.PathLike,
    write_file: bool = False,
) -> np.ndarray:
    """Return the points of ``cloud`` whose surface variation marks them as edges.

    With ``write_file`` the edge points are written in red to ``output_name``.
    """
    points = _as_points(cloud)
    if len(points) == 0:
        edges = points
    elif len(points) < 2:
        raise ValueError("edge extraction needs at least two points")
    else:
        sigma = _surface_variation(points)
        finite = sigma[~np.isnan(sigma)]
        min_d = min(float(finite.min()), sys.float_info.max) if finite.size else sys.float_info.max
        max_d = max(0.0, float(finite.max())) if finite.size else 0.0
        with np.errstate(over="ignore", invalid="ignore"):
            step = np.float32((max_d - min_d) / COLOR_LEVELS)
            threshold = np.float32(min_d + float(np.float32(THRESHOLD_LEVEL) * step))
        with np.errstate(invalid="ignore"):
            edges = points[sigma > float(threshold)]

    if write_file:
        write_colored_ply(output_name, edges, RED)
        print(f"File {os.fspath(output_name)} written.")
    return edges