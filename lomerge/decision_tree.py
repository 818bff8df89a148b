"""Nearest-neighbour lookup on sorted coordinates, split by the sign of a second coordinate."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NamedTuple, Union

import numpy as np

Number = Union[float, np.ndarray]


class NearestPoint(NamedTuple):
    """Coordinate of the nearest stored point and the line parameter stored with it."""

    coord: Number
    t: Number


class SideTree:
    """Nearest stored coordinate to a query value.

    Each node splits at the midpoint between two neighbouring sorted
    coordinates; a query equal to a midpoint goes to the upper side.
    """

    def __init__(self, pairs: Iterable[tuple[float, float]]) -> None:
        ordered = sorted(((float(c), float(t)) for c, t in pairs), key=lambda pair: pair[0])
        if not ordered:
            raise ValueError("a side tree needs at least one point")
        self._coords = np.array([c for c, _ in ordered], dtype=np.float32)
        self._ts = np.array([t for _, t in ordered], dtype=np.float32)
        self._splits = (self._coords[:-1] + self._coords[1:]) / np.float32(2)

    def __len__(self) -> int:
        return len(self._coords)

    def inference(self, value: Number) -> NearestPoint:
        """Return the stored point nearest to ``value`` (a scalar or an array)."""
        query = np.asarray(value, dtype=np.float32)
        index = np.searchsorted(self._splits, query, side="right")
        if query.ndim == 0:
            position = int(index)
            return NearestPoint(float(self._coords[position]), float(self._ts[position]))
        return NearestPoint(self._coords[index], self._ts[index])


class DecisionTreeParabolic:
    """Two side trees: one for points with negative y, one for the rest."""

    def __init__(
        self,
        left_side: Iterable[tuple[float, float]],
        right_side: Iterable[tuple[float, float]],
    ) -> None:
        self.left_side = SideTree(left_side)
        self.right_side = SideTree(right_side)

    def inference(self, y: Number, z_or_x: Number) -> NearestPoint:
        """Nearest point to ``z_or_x`` on the side chosen by the sign of ``y``."""
        ys = np.asarray(y, dtype=np.float32)
        if ys.ndim == 0:
            tree = self.left_side if float(ys) < 0 else self.right_side
            return tree.inference(z_or_x)
        left = self.left_side.inference(np.asarray(z_or_x, dtype=np.float32))
        right = self.right_side.inference(np.asarray(z_or_x, dtype=np.float32))
        on_left = ys < 0
        return NearestPoint(
            np.where(on_left, left.coord, right.coord),
            np.where(on_left, left.t, right.t),
        )