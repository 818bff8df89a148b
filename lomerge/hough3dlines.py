"""Iterative Hough transform that extracts straight lines from a point cloud."""

from __future__ import annotations

import os
import struct
from collections.abc import Iterable
from pathlib import Path

import numpy as np

from lomerge.hough import Hough
from lomerge.pointcloud import LineDescriptor, PointCloud
from lomerge.vector3d import Vector3d

STEP_WIDTH = 0.03
MAX_LINES = 160
MIN_VOTES = 200
GRANULARITY = 4

_HEADER = struct.Struct("<qq")


def write_binary(path: str | os.PathLike, matrix: np.ndarray) -> None:
    """Write a float matrix as row count, column count and column-major floats."""
    data = np.asarray(matrix, dtype=np.float32)
    if data.ndim != 2:
        raise ValueError("matrix must be two-dimensional")
    rows, cols = data.shape
    with open(path, "wb") as out:
        out.write(_HEADER.pack(rows, cols))
        out.write(data.astype("<f4").tobytes(order="F"))


def read_binary(path: str | os.PathLike) -> np.ndarray:
    """Read a matrix written by :func:`write_binary`."""
    raw = Path(path).read_bytes()
    if len(raw) < _HEADER.size:
        raise ValueError("file too short for a matrix header")
    rows, cols = _HEADER.unpack_from(raw)
    if rows < 0 or cols < 0:
        raise ValueError("negative matrix dimensions")
    count = rows * cols
    body = raw[_HEADER.size:]
    if len(body) < count * 4:
        raise ValueError("file too short for the announced matrix size")
    values = np.frombuffer(body, dtype="<f4", count=count)
    return values.reshape((rows, cols), order="F").astype(np.float32)


def orthogonal_lsq(cloud: PointCloud) -> tuple[float, Vector3d, Vector3d]:
    """Fit a line by orthogonal least squares.

    Returns the largest eigenvalue of the scatter matrix, the mean of the
    points as anchor and the matching eigenvector as direction.
    """
    anchor = cloud.mean_value()
    if not cloud.points:
        return 0.0, anchor, Vector3d(0.0, 0.0, 1.0)
    points = np.array([(p.x, p.y, p.z) for p in cloud.points], dtype=np.float32)
    centered = points - points.mean(axis=0, dtype=np.float32)
    scatter = centered.T @ centered
    values, vectors = np.linalg.eigh(scatter)
    direction = Vector3d(float(vectors[0, 2]), float(vectors[1, 2]), float(vectors[2, 2]))
    return float(values[2]), anchor, direction


def _detect_lines(cloud: PointCloud) -> list[LineDescriptor]:
    min_p, max_p = cloud.min_max_3d()
    try:
        hough = Hough(min_p, max_p, STEP_WIDTH, GRANULARITY)
    except MemoryError as exc:
        raise MemoryError("cannot allocate memory for the Hough space") from exc
    hough.add(cloud)

    lines: list[LineDescriptor] = []
    close = PointCloud()
    while True:
        hough.subtract(close)
        line = hough.get_line()
        close = cloud.points_close_to_line(line.anchor, line.direction, STEP_WIDTH)

        rc, anchor, direction = orthogonal_lsq(close)
        if rc == 0.0:
            break

        close = cloud.points_close_to_line(anchor, direction, STEP_WIDTH)
        if len(close) < MIN_VOTES:
            break

        rc, anchor, direction = orthogonal_lsq(close)
        if rc == 0.0:
            break

        anchor = anchor + cloud.shift
        print(
            f"npoints={len(close)}, a=({anchor.x:f},{anchor.y:f},{anchor.z:f}), "
            f"b=({direction.x:f},{direction.y:f},{direction.z:f})"
        )
        lines.append(LineDescriptor(len(close), anchor, direction))
        cloud.remove_points(close)

        if len(cloud) <= 1 or (MAX_LINES != 0 and len(lines) >= MAX_LINES):
            break
    return lines


def hough_transform(
    points: Iterable[Vector3d],
    output_filename: str | os.PathLike,
    write_file: bool = False,
) -> np.ndarray:
    """Detect lines in ``points``.

    Returns an ``(n, 7)`` float32 matrix of point count, anchor and direction
    per line. The matrix is always written in binary form next to
    ``output_filename`` (suffix ``load.data``); with ``write_file`` the lines
    are also written as text to ``output_filename``.
    """
    cloud = PointCloud(list(points))
    print(f"Step size: {STEP_WIDTH:g}")

    lines = _detect_lines(cloud)

    matrix = np.array(
        [[line.point_count, *line.origin, *line.direction] for line in lines],
        dtype=np.float32,
    ).reshape(-1, 7)

    base = os.fspath(output_filename)
    write_binary(base + "load.data", matrix)
    print("data written", end="")

    if write_file:
        with open(base, "w", encoding="ascii") as out:
            for line in lines:
                values = [*line.origin, *line.direction]
                out.write(f"{line.point_count} " + "".join(f"{v:g} " for v in values) + "\n")

    return matrix