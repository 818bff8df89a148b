# lomerge

Building blocks for lining up two 3D point clouds by the straight edges they share:

- Gaussian smoothing and statistical outlier removal (`lomerge.filters`).
- Edge extraction from the eigenvalues of each point's local covariance (`lomerge.edges`).
- An iterative 3D Hough transform that detects straight lines (`lomerge.hough`, `lomerge.hough3dlines`).
- Scoring of how well two sets of lines agree after a shift, using a parabolic cylinder (`lomerge.parabolic_cylinder`, `lomerge.decision_tree`).
- PLY reading and writing, and merging two clouds into one coloured file (`lomerge.plyio`).

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Detecting lines

```python
import numpy as np
from lomerge.vector3d import Vector3d
from lomerge.hough3dlines import hough_transform, read_binary

points = [Vector3d(x, 0.0, 0.0) for x in np.linspace(0.0, 1.0, 400)]
lines = hough_transform(points, "lines.txt", True)
# one row per line: point count, origin x/y/z, direction x/y/z
print(lines)

same = read_binary("lines.txtload.data")
```

`hough_transform` always writes the result matrix in binary form to the output name with `load.data` appended. When its third argument is true, it also writes the lines as text to the output name itself. It uses a step width of 0.03 and an icosahedron granularity of 4. It returns at most 160 lines, and only lines that at least 200 points support.

`orthogonal_lsq` fits a single line to a `PointCloud`. It returns the largest eigenvalue, the anchor point and the direction.

## Processing clouds

`extract_edges`, `apply_gaussian_kernel` and `apply_statistical_outlier_filter` take numpy arrays of shape `(n, 3)` and return the resulting points. Give `True` as the last argument to also write the result to a red-coloured PLY file.

```python
from lomerge.plyio import read_ply
from lomerge.filters import apply_gaussian_kernel, apply_statistical_outlier_filter
from lomerge.edges import extract_edges

cloud = read_ply("scan.ply")
smoothed = apply_gaussian_kernel(cloud, "smoothed.ply", False)
edges = extract_edges(smoothed, "edges.ply", True)
edges = apply_statistical_outlier_filter(edges, "filtered.ply", False)
```

## PLY files

- `read_ply` reads vertex coordinates from ASCII and binary PLY files.
- `write_ply` writes binary little-endian PLY, optionally with one RGB colour per point.
- `write_colored_ply` writes every point in the same colour.
- `ResultWriter` holds a static cloud and a dynamic cloud. `transform_dynamic_point_cloud` applies a 4x4 matrix to the dynamic cloud. `save_transformed_point_clouds` writes both clouds to one file, the static cloud in red and the dynamic cloud in white.

## Scoring line alignments

`ParabolicCylinder(k, h)` intersects lines with the surface z = h - k²y². Lines are given as rows of `Ox Oy Oz Dx Dy Dz`.

1. `set_static_point_cloud` indexes the intersections of the fixed lines.
2. `create_coefficients_table` prepares the moving lines.
3. `score_ty` scores a shift of the moving lines along y.
4. `update_cache` followed by `score_tx` scores a shift along x.

`DecisionTreeParabolic` and `SideTree` find the nearest stored intersection.

## What this package does not do

- It has no command-line program.
- It does not search for the rotation or translation between two clouds. The pieces above score a shift you supply, but nothing chooses one.
- It has no ICP refinement and does not compute an overlap ratio.

To merge two clouds end to end, you have to supply those steps yourself.