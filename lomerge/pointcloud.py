"""Point clouds of 3D vectors and descriptors of detected lines."""

from __future__ import annotations

from dataclasses import dataclass, field

from lomerge.vector3d import Vector3d


@dataclass
class PointCloud:
    """An ordered collection of 3D points and the shift applied to them."""

    points: list[Vector3d] = field(default_factory=list)
    shift: Vector3d = field(default_factory=Vector3d)

    def __len__(self) -> int:
        return len(self.points)

    def mean_value(self) -> Vector3d:
        """Centre of gravity; the origin for an empty cloud."""
        total = Vector3d()
        for point in self.points:
            total = total + point
        if self.points:
            return total / float(len(self.points))
        return total

    def min_max_3d(self) -> tuple[Vector3d, Vector3d]:
        """Corners of the axis-aligned bounding box; origins for an empty cloud."""
        if not self.points:
            return Vector3d(), Vector3d()
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        zs = [p.z for p in self.points]
        return (
            Vector3d(min(xs), min(ys), min(zs)),
            Vector3d(max(xs), max(ys), max(zs)),
        )

    def points_close_to_line(self, a: Vector3d, b: Vector3d, dx: float) -> PointCloud:
        """Points whose distance to the line through ``a`` along ``b`` is at most ``dx``."""
        close = []
        for point in self.points:
            t = b.dot(point - a)
            distance = point - (a + t * b)
            if distance.norm() <= dx:
                close.append(point)
        return PointCloud(close)

    def remove_points(self, other: PointCloud) -> None:
        """Remove the points of ``other``, which must appear here in the same order."""
        if not other.points:
            return
        remaining = []
        pending = iter(other.points)
        target = next(pending, None)
        for point in self.points:
            if target is not None and point == target:
                target = next(pending, None)
            else:
                remaining.append(point)
        self.points = remaining


@dataclass
class LineDescriptor:
    """A detected line: number of supporting points, anchor and direction."""

    point_count: int
    origin: Vector3d
    direction: Vector3d