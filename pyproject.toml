[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lomerge"
version = "0.1.0"
description = "Edge extraction, 3D Hough line detection and line-alignment scoring for point clouds"
requires-python = ">=3.10"
keywords = ["point cloud", "hough transform", "edge extraction", "3d lines", "ply"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["lomerge"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
