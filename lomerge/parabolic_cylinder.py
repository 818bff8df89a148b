"""Scoring of line alignments on a parabolic cylinder z = h - k^2 y^2."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from lomerge.decision_tree import DecisionTreeParabolic


def _as_lines(lines: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    array = np.array(lines, dtype=np.float32)
    if array.ndim != 2 or array.shape[1] < 6:
        raise ValueError("lines must be an (n, 6) array of origin and direction")
    return array


class ParabolicCylinder:
    """Intersects lines with a parabolic cylinder and scores how well two line sets agree.

    Lines are rows of ``Ox Oy Oz Dx Dy Dz``.
    """

    def __init__(self, k: float, h: float) -> None:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            self.k = np.float32(k)
            self.h = np.float32(h)
            self.width = np.float32(2 * np.sqrt(self.h) / self.k)
            self._four_k_to_four = np.float32(4 * float(self.k) ** 4)
            self._twelve_k_to_four = np.float32(3 * self._four_k_to_four)
        self.coefficients_b: np.ndarray | None = None
        self.static_intersections: np.ndarray | None = None
        self.xy_cached: np.ndarray | None = None
        self.decision_tree_x: DecisionTreeParabolic | None = None
        self.decision_tree_y: DecisionTreeParabolic | None = None
        print(f"Parabolic cylinder parameters:        k={float(self.k):g}   h={float(self.h):g}")

    def _coefficients(self, lines: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            one_over_k_squared = np.float32(1) / (self.k * self.k)
            one_over_dy = np.float32(1) / lines[:, 4]
            one_over_k2dy2 = one_over_k_squared * one_over_dy * one_over_dy
            dz_over_k2dy2 = lines[:, 5] * one_over_k2dy2
            a = -one_over_dy
            b = lines[:, 1] * a - np.float32(0.5) * dz_over_k2dy2
            c = -a * dz_over_k2dy2
            d = (
                lines[:, 1] * c
                + np.float32(0.25) * dz_over_k2dy2 * dz_over_k2dy2
                + (self.h - lines[:, 2]) * one_over_k2dy2
            )
        return np.column_stack([a, b, c, d]).astype(np.float32)

    def create_coefficients_table(self, lines: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        """Compute and keep the intersection coefficients A, B, C, D of the moving lines."""
        self.coefficients_b = self._coefficients(_as_lines(lines))
        return self.coefficients_b

    def _parameters(self, ty: float, rows: int) -> np.ndarray:
        if self.coefficients_b is None:
            raise RuntimeError("coefficients table has not been created")
        if rows != len(self.coefficients_b):
            raise ValueError("lines do not match the coefficients table")
        table = self.coefficients_b
        shift = np.float32(ty)
        with np.errstate(invalid="ignore", over="ignore"):
            return (table[:, 0] * shift + table[:, 1]) + np.sqrt(table[:, 2] * shift + table[:, 3])

    def set_static_point_cloud(self, lines: np.ndarray | Sequence[Sequence[float]]) -> None:
        """Intersect the static lines with the cylinder and index the intersections."""
        unfiltered = _as_lines(lines)
        coeffs = self._coefficients(unfiltered)
        with np.errstate(invalid="ignore"):
            t_unfiltered = coeffs[:, 1] + np.sqrt(coeffs[:, 3])
        x_threshold = float(self.width)
        t_threshold = np.float32(np.sqrt(float(self.width) ** 2 + x_threshold**2))
        with np.errstate(invalid="ignore"):
            keep = t_unfiltered < t_threshold

        print(int(keep.sum()), end="")
        t = t_unfiltered[keep]
        kept = unfiltered[keep]
        print(f"Filtered size: {len(t)}")

        intersections = kept[:, :3] + kept[:, -3:] * t[:, None]
        self.static_intersections = intersections

        left = intersections[:, 1] < 0
        right = ~left
        zeros = np.zeros(len(t), dtype=np.float32)
        self.decision_tree_x = DecisionTreeParabolic(
            zip(intersections[left, 0], t[left]),
            zip(intersections[right, 0], t[right]),
        )
        self.decision_tree_y = DecisionTreeParabolic(
            zip(intersections[left, 2], zeros[left]),
            zip(intersections[right, 2], zeros[right]),
        )

    def x_static_bounds(self) -> tuple[float, float]:
        """Smallest and largest x of the static intersections."""
        if self.static_intersections is None:
            raise RuntimeError("static point cloud has not been set")
        column = self.static_intersections[:, 0]
        if column.size == 0:
            raise ValueError("no static intersections")
        return float(column.min()), float(column.max())

    def x_cached_bounds(self) -> tuple[float, float]:
        """Smallest and largest cached x, with missing values replaced by the first entry."""
        if self.xy_cached is None:
            raise RuntimeError("cache has not been updated")
        column = self.xy_cached[:, 0]
        if column.size == 0:
            raise ValueError("cache is empty")
        filled = np.where(np.isnan(column), column[0], column)
        return float(filled.min()), float(filled.max())

    def update_cache(self, lines: np.ndarray | Sequence[Sequence[float]], ty: float) -> None:
        """Cache the intersections of the moving lines shifted by ``ty``."""
        moving = _as_lines(lines)
        t = self._parameters(ty, len(moving))
        with np.errstate(invalid="ignore", over="ignore"):
            self.xy_cached = (moving[:, 1:3] + t[:, None] * moving[:, 3:5]).astype(np.float32)

    def _require_trees(self) -> tuple[DecisionTreeParabolic, DecisionTreeParabolic]:
        if self.decision_tree_x is None or self.decision_tree_y is None:
            raise RuntimeError("static point cloud has not been set")
        return self.decision_tree_x, self.decision_tree_y

    @staticmethod
    def _score(distance: np.ndarray, sigma: np.ndarray) -> float:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore", under="ignore"):
            exponent = -0.5 / (sigma.astype(np.float64) ** 2) * distance.astype(np.float64) ** 2
            terms = (1 + 0.1 * np.exp(exponent)).astype(np.float32)
            return float(np.prod(terms, dtype=np.float32))

    def score_tx(self, tx: float, min_sigma: float) -> float:
        """Agreement score of the cached moving lines shifted by ``tx`` along x."""
        tree_x, _ = self._require_trees()
        if self.xy_cached is None:
            raise RuntimeError("cache has not been updated")
        rows = self.xy_cached[~np.isnan(self.xy_cached[:, 1])]
        sigma_min = np.float32(min_sigma)
        x = rows[:, 0] + np.float32(tx)
        nearest = tree_x.inference(rows[:, 1], x)
        distance = np.asarray(self.parabolic_distance(x, nearest.coord), dtype=np.float32)
        with np.errstate(divide="ignore", invalid="ignore"):
            sigma = sigma_min + sigma_min * nearest.t / (self.width * np.float32(2))
        return self._score(distance, np.asarray(sigma, dtype=np.float32))

    def score_ty(
        self, lines: np.ndarray | Sequence[Sequence[float]], ty: float, min_sigma: float
    ) -> float:
        """Agreement score of the moving lines shifted by ``ty`` along y."""
        _, tree_y = self._require_trees()
        moving = _as_lines(lines)
        t = self._parameters(ty, len(moving))
        with np.errstate(invalid="ignore", over="ignore"):
            yz = moving[:, 1:3] + t[:, None] * moving[:, 4:6]
        valid = ~np.isnan(yz[:, 1])
        rows = yz[valid]
        sigma_min = np.float32(min_sigma)
        nearest = tree_y.inference(rows[:, 0], rows[:, 1])
        distance = np.asarray(self.parabolic_distance(rows[:, 1], nearest.coord), dtype=np.float32)
        with np.errstate(divide="ignore", invalid="ignore"):
            sigma = sigma_min + sigma_min * t[valid] / (self.width * np.float32(2))
        return self._score(distance, np.asarray(sigma, dtype=np.float32))

    def parabolic_distance(self, y1: float | np.ndarray, y2: float | np.ndarray) -> float | np.ndarray:
        """Approximate arc length along the parabola between ``y1`` and ``y2``."""
        first = np.asarray(y1, dtype=np.float32)
        second = np.asarray(y2, dtype=np.float32)
        with np.errstate(invalid="ignore", over="ignore"):
            c1 = np.float32(1) + self._four_k_to_four * second * second
            c2 = np.float32(1) + self._four_k_to_four * first * first
            result = (c1 * np.sqrt(c1) - c2 * np.sqrt(c2)) / self._twelve_k_to_four
        if np.ndim(result) == 0:
            return float(result)
        return result