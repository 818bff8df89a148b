"""Direction quantisation by subdivision of an icosahedron."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field

from lomerge.vector3d import Vector3d


def _f32(value: float) -> float:
    """Round a float to single precision."""
    return struct.unpack("f", struct.pack("f", value))[0]


_ICOSAHEDRON_TRIANGLES = (
    (0, 1, 2), (0, 1, 3), (0, 2, 4), (0, 4, 6), (0, 3, 6),
    (1, 2, 5), (1, 3, 7), (1, 5, 7), (2, 4, 8), (2, 5, 8),
    (3, 6, 9), (3, 7, 9), (4, 8, 10), (8, 10, 11), (5, 8, 11),
    (5, 7, 11), (7, 9, 11), (9, 10, 11), (6, 9, 10), (4, 6, 10),
)


def _normalized_sum(a: Vector3d, b: Vector3d) -> Vector3d:
    s = Vector3d(a.x + b.x, a.y + b.y, a.z + b.z)
    norm = math.sqrt(s.x * s.x + s.y * s.y + s.z * s.z)
    return Vector3d(s.x / norm, s.y / norm, s.z / norm)


def _is_redundant(v: Vector3d) -> bool:
    """True for directions whose opposite is kept instead."""
    if v.z < 0:
        return True
    if v.z == 0:
        return v.x < 0 or (v.x == 0 and v.y == -1)
    return False


@dataclass
class Sphere:
    """Unit direction vectors on a hemisphere together with their surface triangles.

    ``triangles`` is a flat list of vertex indices, three per triangle.
    """

    vertices: list[Vector3d] = field(default_factory=list)
    triangles: list[int] = field(default_factory=list)

    def from_icosahedron(self, sub_divisions: int = 4) -> Sphere:
        """Build the directions by repeated subdivision of an icosahedron."""
        self._icosahedron()
        for _ in range(sub_divisions):
            self._subdivide()
        self._make_unique()
        return self

    def _icosahedron(self) -> None:
        tau = _f32(1.61803399)
        norm = _f32(math.sqrt(_f32(1 + _f32(tau * tau))))
        v = _f32(1 / norm)
        tau = _f32(tau / norm)
        self.vertices = [
            Vector3d(-v, tau, 0.0),
            Vector3d(v, tau, 0.0),
            Vector3d(0.0, v, -tau),
            Vector3d(0.0, v, tau),
            Vector3d(-tau, 0.0, -v),
            Vector3d(tau, 0.0, -v),
            Vector3d(-tau, 0.0, v),
            Vector3d(tau, 0.0, v),
            Vector3d(0.0, -v, -tau),
            Vector3d(0.0, -v, tau),
            Vector3d(-v, -tau, 0.0),
            Vector3d(v, -tau, 0.0),
        ]
        self.triangles = [index for tri in _ICOSAHEDRON_TRIANGLES for index in tri]

    def _subdivide(self) -> None:
        vertices = self.vertices
        new_indices: dict[tuple[float, float, float], int] = {}

        def index_of(vertex: Vector3d) -> int:
            key = (vertex.x, vertex.y, vertex.z)
            found = new_indices.get(key)
            if found is None:
                found = len(vertices)
                vertices.append(vertex)
                new_indices[key] = found
            return found

        triangles: list[int] = []
        flat = self.triangles
        for ai, bi, ci in zip(flat[0::3], flat[1::3], flat[2::3]):
            a, b, c = vertices[ai], vertices[bi], vertices[ci]
            d = _normalized_sum(a, b)
            e = _normalized_sum(c, b)
            f = _normalized_sum(a, c)
            di = index_of(d)
            ei = index_of(e)
            fi = index_of(f)
            triangles.extend((ai, di, fi, di, bi, ei, fi, ei, ci, fi, di, ei))
        self.triangles = triangles

    def _make_unique(self) -> None:
        remap: dict[int, int] = {}
        kept: list[Vector3d] = []
        for old_index, vertex in enumerate(self.vertices):
            if not _is_redundant(vertex):
                remap[old_index] = len(kept)
                kept.append(vertex)
        flat = self.triangles
        triangles: list[int] = []
        for tri in zip(flat[0::3], flat[1::3], flat[2::3]):
            if all(i in remap for i in tri):
                triangles.extend(remap[i] for i in tri)
        self.vertices = kept
        self.triangles = triangles