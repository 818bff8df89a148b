"""Point cloud smoothing, edge extraction, 3D Hough line detection, line-alignment scoring and PLY I/O."""

__version__ = "0.1.0"