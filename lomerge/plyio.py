"""Reading and writing PLY point clouds, and merging two clouds into one file."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

RED = (255, 0, 0)
WHITE = (255, 255, 255)

_PLY_TYPES = {
    "char": "i1",
    "int8": "i1",
    "uchar": "u1",
    "uint8": "u1",
    "short": "i2",
    "int16": "i2",
    "ushort": "u2",
    "uint16": "u2",
    "int": "i4",
    "int32": "i4",
    "uint": "u4",
    "uint32": "u4",
    "float": "f4",
    "float32": "f4",
    "double": "f8",
    "float64": "f8",
}

_ENDIANNESS = {"binary_little_endian": "<", "binary_big_endian": ">"}


@dataclass(frozen=True)
class _Property:
    name: str
    dtype: str
    count_dtype: str | None = None

    @property
    def is_list(self) -> bool:
        return self.count_dtype is not None


@dataclass
class _Element:
    name: str
    count: int
    properties: list[_Property] = field(default_factory=list)


def _ply_type(name: str) -> str:
    try:
        return _PLY_TYPES[name]
    except KeyError:
        raise ValueError(f"unknown PLY property type {name!r}") from None


def _as_points(points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    array = np.array(points, dtype=np.float32)
    if array.size == 0:
        return np.empty((0, 3), dtype=np.float32)
    if array.ndim != 2 or array.shape[1] != 3:
        raise ValueError("points must be an (n, 3) array")
    return array


def _parse_header(data: bytes) -> tuple[str, list[_Element], int]:
    if not data.startswith(b"ply"):
        raise ValueError("not a PLY file")
    end = data.find(b"end_header")
    if end < 0:
        raise ValueError("PLY header has no end_header line")
    newline = data.find(b"\n", end)
    body_offset = len(data) if newline < 0 else newline + 1

    fmt = None
    elements: list[_Element] = []
    for line in data[:end].decode("ascii").splitlines()[1:]:
        words = line.split()
        if not words or words[0] in ("comment", "obj_info"):
            continue
        keyword = words[0]
        if keyword == "format" and len(words) >= 2:
            fmt = words[1]
        elif keyword == "element" and len(words) == 3:
            elements.append(_Element(words[1], int(words[2])))
        elif keyword == "property" and elements:
            if words[1] == "list" and len(words) == 5:
                prop = _Property(words[4], _ply_type(words[3]), _ply_type(words[2]))
            elif len(words) == 3:
                prop = _Property(words[2], _ply_type(words[1]))
            else:
                raise ValueError(f"malformed PLY property line: {line!r}")
            elements[-1].properties.append(prop)
        else:
            raise ValueError(f"malformed PLY header line: {line!r}")
    if fmt is None:
        raise ValueError("PLY header has no format line")
    if fmt != "ascii" and fmt not in _ENDIANNESS:
        raise ValueError(f"unsupported PLY format {fmt!r}")
    return fmt, elements, body_offset


def _read_ascii(body: bytes, elements: list[_Element]) -> dict[str, dict[str, np.ndarray]]:
    tokens = body.split()
    position = 0
    columns: dict[str, dict[str, np.ndarray]] = {}

    def take(count: int) -> list[bytes]:
        nonlocal position
        if position + count > len(tokens):
            raise ValueError("PLY body is shorter than its header announces")
        chunk = tokens[position:position + count]
        position += count
        return chunk

    for element in elements:
        scalars = [p for p in element.properties if not p.is_list]
        if not any(p.is_list for p in element.properties):
            width = len(element.properties)
            block = np.array(take(element.count * width), dtype=np.float64)
            block = block.reshape(element.count, width)
            columns[element.name] = {p.name: block[:, i] for i, p in enumerate(element.properties)}
            continue
        rows = []
        for _ in range(element.count):
            row = []
            for prop in element.properties:
                if prop.is_list:
                    take(int(float(take(1)[0])))
                else:
                    row.append(float(take(1)[0]))
            rows.append(row)
        block = np.array(rows, dtype=np.float64).reshape(element.count, len(scalars))
        columns[element.name] = {p.name: block[:, i] for i, p in enumerate(scalars)}
    return columns


def _read_binary(
    data: bytes, offset: int, elements: list[_Element], endian: str
) -> dict[str, dict[str, np.ndarray]]:
    columns: dict[str, dict[str, np.ndarray]] = {}

    def scalar(dtype: str) -> float:
        nonlocal offset
        kind = np.dtype(endian + dtype)
        if offset + kind.itemsize > len(data):
            raise ValueError("PLY body is shorter than its header announces")
        value = np.frombuffer(data, dtype=kind, count=1, offset=offset)[0]
        offset += kind.itemsize
        return value

    for element in elements:
        if not any(p.is_list for p in element.properties):
            record = np.dtype(
                [(f"f{i}", endian + p.dtype) for i, p in enumerate(element.properties)]
            )
            size = record.itemsize * element.count
            if offset + size > len(data):
                raise ValueError("PLY body is shorter than its header announces")
            block = np.frombuffer(data, dtype=record, count=element.count, offset=offset)
            offset += size
            columns[element.name] = {
                p.name: block[f"f{i}"].astype(np.float64) for i, p in enumerate(element.properties)
            }
            continue
        scalars = [p for p in element.properties if not p.is_list]
        rows = []
        for _ in range(element.count):
            row = []
            for prop in element.properties:
                if prop.is_list:
                    length = int(scalar(prop.count_dtype))
                    offset += length * np.dtype(prop.dtype).itemsize
                else:
                    row.append(float(scalar(prop.dtype)))
            rows.append(row)
        block = np.array(rows, dtype=np.float64).reshape(element.count, len(scalars))
        columns[element.name] = {p.name: block[:, i] for i, p in enumerate(scalars)}
    return columns


def read_ply(path: str | os.PathLike) -> np.ndarray:
    """Read the vertex coordinates of a PLY file as an ``(n, 3)`` float32 array."""
    data = Path(path).read_bytes()
    fmt, elements, body_offset = _parse_header(data)
    if not any(e.name == "vertex" for e in elements):
        raise ValueError("PLY file has no vertex element")
    if fmt == "ascii":
        columns = _read_ascii(data[body_offset:], elements)
    else:
        columns = _read_binary(data, body_offset, elements, _ENDIANNESS[fmt])
    vertex = columns["vertex"]
    missing = [axis for axis in "xyz" if axis not in vertex]
    if missing:
        raise ValueError(f"PLY vertex element lacks {', '.join(missing)}")
    return np.column_stack([vertex["x"], vertex["y"], vertex["z"]]).astype(np.float32)


def write_ply(
    path: str | os.PathLike,
    points: np.ndarray | Sequence[Sequence[float]],
    colors: np.ndarray | Sequence[Sequence[int]] | None = None,
) -> None:
    """Write points, optionally with one RGB colour each, as binary little-endian PLY."""
    xyz = _as_points(points)
    fields = [("x", "<f4"), ("y", "<f4"), ("z", "<f4")]
    header = [
        "ply",
        "format binary_little_endian 1.0",
        f"element vertex {len(xyz)}",
        "property float x",
        "property float y",
        "property float z",
    ]
    rgb = None
    if colors is not None:
        rgb = np.array(colors, dtype=np.uint8).reshape(-1, 3)
        if len(rgb) != len(xyz):
            raise ValueError("there must be one colour per point")
        fields += [("red", "u1"), ("green", "u1"), ("blue", "u1")]
        header += ["property uchar red", "property uchar green", "property uchar blue"]
    header.append("end_header")

    records = np.zeros(len(xyz), dtype=np.dtype(fields))
    records["x"], records["y"], records["z"] = xyz[:, 0], xyz[:, 1], xyz[:, 2]
    if rgb is not None:
        records["red"], records["green"], records["blue"] = rgb[:, 0], rgb[:, 1], rgb[:, 2]

    with open(path, "wb") as out:
        out.write(("\n".join(header) + "\n").encode("ascii"))
        out.write(records.tobytes())


def write_colored_ply(
    path: str | os.PathLike,
    points: np.ndarray | Sequence[Sequence[float]],
    rgb: tuple[int, int, int],
) -> None:
    """Write points that all carry the colour ``rgb``."""
    xyz = _as_points(points)
    colors = np.tile(np.array(rgb, dtype=np.uint8), (len(xyz), 1))
    write_ply(path, xyz, colors)


class ResultWriter:
    """Keeps copies of a static and a dynamic cloud and writes them merged.

    The static cloud is drawn red and the dynamic cloud white.
    """

    def __init__(
        self,
        static_cloud: np.ndarray | Sequence[Sequence[float]],
        dynamic_cloud: np.ndarray | Sequence[Sequence[float]],
    ) -> None:
        self.static_cloud = _as_points(static_cloud).copy()
        self.dynamic_cloud = _as_points(dynamic_cloud).copy()

    def transform_dynamic_point_cloud(self, transform: np.ndarray) -> None:
        """Apply a 4x4 rigid transformation to the dynamic cloud."""
        matrix = np.asarray(transform, dtype=np.float32)
        if matrix.shape != (4, 4):
            raise ValueError("transformation must be a 4x4 matrix")
        moved = self.dynamic_cloud @ matrix[:3, :3].T + matrix[:3, 3]
        self.dynamic_cloud = moved.astype(np.float32)

    def save_transformed_point_clouds(self, filename: str | os.PathLike) -> None:
        """Write both clouds into one coloured PLY file."""
        points = np.concatenate([self.static_cloud, self.dynamic_cloud])
        colors = np.concatenate(
            [
                np.tile(np.array(RED, dtype=np.uint8), (len(self.static_cloud), 1)),
                np.tile(np.array(WHITE, dtype=np.uint8), (len(self.dynamic_cloud), 1)),
            ]
        )
        write_ply(filename, points, colors)