[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "laser_calib"
version = "1.0.1"
description = "Building blocks for extrinsic calibration of 2D laser scanners against odometry and cameras"
requires-python = ">=3.10"
keywords = ["calibration", "lidar", "laser", "odometry", "camera", "extrinsic", "ransac", "robotics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "scipy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["laser_calib"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
