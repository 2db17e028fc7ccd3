"""Building blocks for extrinsic calibration of 2D laser scanners against odometry and cameras."""

__version__ = "1.0.1"