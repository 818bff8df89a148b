"""Hough transform accumulator for detecting 3D lines in a point cloud."""

from __future__ import annotations

import math
from typing import NamedTuple

import numpy as np

from lomerge.pointcloud import PointCloud
from lomerge.sphere import Sphere
from lomerge.vector3d import Vector3d

_CELLS_PER_CHUNK = 1_000_000


class HoughLine(NamedTuple):
    """The best line in the voting space and the number of votes it received."""

    votes: int
    anchor: Vector3d
    direction: Vector3d


def _round_to_nearest_scalar(value: float) -> float:
    return math.floor(value + 0.5) if value > 0.0 else math.ceil(value - 0.5)


def _round_to_nearest(values: np.ndarray) -> np.ndarray:
    return np.where(values > 0.0, np.floor(values + 0.5), np.ceil(values - 0.5))


def _as_array(points: list[Vector3d]) -> np.ndarray:
    return np.array([(p.x, p.y, p.z) for p in points], dtype=np.float64).reshape(-1, 3)


class Hough:
    """Voting space over line directions and positions in the x'y' plane.

    The extent of the x'y' plane is derived from the bounding box corners
    ``min_p`` and ``max_p``; a ``dx`` of zero selects 1/64 of the total width.
    """

    def __init__(
        self,
        min_p: Vector3d,
        max_p: Vector3d,
        dx: float = 0.0,
        sphere_granularity: int = 4,
    ) -> None:
        self.sphere = Sphere().from_icosahedron(sphere_granularity)
        self.num_b = len(self.sphere.vertices)

        self.max_x = max(max_p.norm(), min_p.norm())
        range_x = 2 * self.max_x
        self.dx = dx if dx != 0.0 else range_x / 64.0
        if self.dx == 0.0:
            raise ValueError("step width is zero: the bounding box is degenerate")
        self.num_x = int(_round_to_nearest_scalar(range_x / self.dx))

        self.voting_space = np.zeros(self.num_x * self.num_x * self.num_b, dtype=np.uint32)

        directions = _as_array(self.sphere.vertices)
        bx, by, bz = directions[:, 0], directions[:, 1], directions[:, 2]
        beta = 1 / (1 + bz)
        self._bx = bx
        self._by = by
        self._xx = 1 - (beta * (bx * bx))
        self._xy = beta * (bx * by)
        self._yx = -beta * (bx * by)
        self._yy = 1 - (beta * (by * by))
        self._direction_index = np.arange(self.num_b, dtype=np.int64)

    def add(self, cloud: PointCloud) -> None:
        """Add a vote for every point of ``cloud`` in every direction."""
        self._vote(cloud, add=True)

    def subtract(self, cloud: PointCloud) -> None:
        """Withdraw the votes of every point of ``cloud``."""
        self._vote(cloud, add=False)

    def _vote(self, cloud: PointCloud, add: bool) -> None:
        points = _as_array(cloud.points)
        if len(points) == 0 or self.voting_space.size == 0:
            return
        size = self.voting_space.size
        stride_x = self.num_x * self.num_b
        chunk = max(1, _CELLS_PER_CHUNK // self.num_b)
        for start in range(0, len(points), chunk):
            block = points[start:start + chunk]
            px, py, pz = block[:, 0:1], block[:, 1:2], block[:, 2:3]
            x_new = (self._xx * px) - (self._xy * py) - (self._bx * pz)
            y_new = (self._yx * px) + (self._yy * py) - (self._by * pz)
            x_i = _round_to_nearest((x_new + self.max_x) / self.dx).astype(np.int64)
            y_i = _round_to_nearest((y_new + self.max_x) / self.dx).astype(np.int64)
            index = x_i * stride_x + y_i * self.num_b + self._direction_index
            index = index[(index >= 0) & (index < size)]
            cells, counts = np.unique(index, return_counts=True)
            if add:
                self.voting_space[cells] += counts.astype(np.uint32)
            else:
                self.voting_space[cells] -= counts.astype(np.uint32)

    def get_line(self) -> HoughLine:
        """Return the line with the most votes."""
        if self.voting_space.size == 0:
            index, votes = 0, 0
        else:
            index = int(np.argmax(self.voting_space))
            votes = int(self.voting_space[index])

        stride_x = self.num_x * self.num_b
        x_i = index // stride_x if stride_x else 0
        index -= x_i * stride_x
        x = x_i * self.dx - self.max_x

        y_i = index // self.num_b
        index -= y_i * self.num_b
        y = y_i * self.dx - self.max_x

        b = self.sphere.vertices[index]
        denom = 1 + b.z
        anchor = Vector3d(
            x * (1 - ((b.x * b.x) / denom)) - y * ((b.x * b.y) / denom),
            x * (-((b.x * b.y) / denom)) + y * (1 - ((b.y * b.y) / denom)),
            -x * b.x - y * b.y,
        )
        return HoughLine(votes, anchor, b)