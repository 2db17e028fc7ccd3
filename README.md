# laser_calib

Building blocks for extrinsic calibration of a 2D laser scanner against two
kinds of reference:

* **wheel odometry** (`laser_calib.odom`): an L-shaped target is observed by
  the laser while the robot moves. The long and short edges of the target and
  their corner are detected in each scan, and frame-to-frame motion is
  estimated both from those features and from the odometry poses.
* **a camera** (`laser_calib.camera`): a chessboard is observed by both
  sensors. The chessboard pose is computed from its image corners, the laser
  line crossing the board is detected in each scan, and a closed-form
  translation refined by nonlinear least squares gives the laser-to-camera
  rotation and translation.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Line extraction

`laser_calib.lines` holds the point-cloud tools both calibrations use:

* `cluster_points(points, radius)` groups point indices into clusters of
  points chained within `radius`.
* `fit_line_ransac(points, distance_threshold, max_iterations, rng)` fits one
  line and returns `(inlier_indices, coefficients)`, the coefficients being a
  point and a unit direction.
* `segment_lines(points, distance_threshold, max_iterations, min_point_num,
  min_proportion, rng)` fits and removes lines until too few points remain,
  returning `LineSegment` objects (`points`, `coefficients`, `end_points`).
* `find_end_points(points)`, `implicit_line(coefficients)` (the
  `a*x + b*y + c = 0` form) and `point_distance(a, b)`.

Points may be given as `(N, 2)` or `(N, 3)` arrays; planar points get `z = 0`.

## Parameter files

`laser_calib.filestorage` reads and writes YAML files in OpenCV FileStorage
layout: `read_opencv_yaml(path)` returns a dict in which `!!opencv-matrix`
entries become numpy arrays, and `write_opencv_yaml(path, entries)` writes
scalars, strings, lists and arrays. Failures raise `ParameterError`.

For the odometry calibration, `laser_calib.odom.params.ParametersIO` reads
`parameters_input.yaml` and writes `extrinsic.yaml` by default (both names can
be passed to its constructor). Missing numeric entries read as zero. A file
might hold:

```yaml
%YAML:1.0
long_edge_length: 1.2
short_edge_length: 0.5
max_dist_seen_as_continuous: 0.07
line_length_tolerance: 0.25
ransac_fitline_dist_th: 0.04
ransac_max_iterations: 10000
min_point_num_stop_ransac: 10
min_proportion_stop_ransac: 0.01
diff_tolerance_laser_odom: 0.05
```

## Laser and odometry

```python
from laser_calib.odom.data import LaserData, OdomData
from laser_calib.odom.features import LaserDataProcessor
from laser_calib.odom.motion import estimate_laser_motion, estimate_odom_motion
from laser_calib.odom.params import ParametersIO

params = ParametersIO()
long_length, short_length = params.get_env_parameters()
settings = params.get_laser_process_parameters()

processor = LaserDataProcessor(seed=0)
processor.set_laser_process_parameters(
    settings.max_dist_seen_as_continuous, settings.line_length_tolerance,
    settings.ransac_fitline_dist_th, settings.ransac_max_iterations,
    settings.min_point_num_stop_ransac, settings.min_proportion_stop_ransac)
processor.set_line_length(long_length, short_length)

laser_data_set = [LaserData(point_cloud=scan) for scan in scans]
odom_data_set = [OdomData.from_pose(x, y, yaw) for x, y, yaw in poses]

for laser_data in laser_data_set:
    processor.process_laser_data(laser_data)   # sets and returns can_be_used

estimate_laser_motion(laser_data_set)
estimate_odom_motion(odom_data_set)
```

After this every usable record carries `last2current_rotation` and
`last2current_xy`. `processor.update_parameters(...)` changes the clustering
distance, length tolerance and RANSAC threshold for a new detection run on a
scan where the target was not found. `ParametersIO.save_extrinsic_parameters`
writes a 2x2 rotation and a 2-vector translation as `rotation_l2o` and
`translation_l2o`.

## Laser and camera

Chessboard square sizes and margins are in millimetres, laser points in
metres; poses and translations come back in metres.

```python
import numpy as np

from laser_calib.camera.data import (
    CameraData, CameraInfo, ChessboardInfo, EnvParameters, LaserData, LaserPlane)
from laser_calib.camera.processing import DataProcessor
from laser_calib.camera.solver import Solver

cam_info = CameraInfo(intrinsic=[[600.0, 0.0, 320.0], [0.0, 600.0, 240.0], [0.0, 0.0, 1.0]],
                      distortion=np.zeros(5))
board = ChessboardInfo(rows=6, cols=8, square_height=30.0, square_width=30.0,
                       left_margin_length=20.0, right_margin_length=20.0,
                       up_margin_length=20.0, down_margin_length=20.0)
env = EnvParameters(max_dist_seen_as_continuous=0.07, ransac_fitline_dist_th=0.04,
                    ransac_max_iterations=10000, min_point_num=10, min_proportion=0.01,
                    chessboard_length_in_laser_frame=0.6)

processor = DataProcessor()
processor.set_cam_info(cam_info, board)
processor.set_env_parameters(env)

laser_plane = LaserPlane(corners=plane_corners, dist_from_laser2chessboard_origin=0.1)
plane = processor.solve_laser_plane_parameters(laser_plane)

cam_data_set = [CameraData(corners=c) for c in corner_sets]
laser_data_set = [LaserData(point_cloud=scan) for scan in scans]
processor.process_image_data(cam_data_set)
processor.process_laser_data(laser_data_set)

solver = Solver(laser_data_set, cam_data_set, plane)
solver.set_camera_info(cam_info)
solver.set_first_orientation(laser_plane.chessboard_orientation)
solver.solve_rotation(["y", "x-", "z"])
rotation, translation = solver.calibrate()
```

`solve_rotation` takes, for each laser axis, the chessboard axis it points
along: `"x"`, `"y"` or `"z"`, or a longer name starting with that letter
(such as `"x-"`) for the opposite direction. Invalid axes, and fewer than
three usable frames, raise `CalibrationError`.

Lower-level pieces are available on their own: `laser_calib.camera.image`
(`solve_pnp`, `project_points`, `rodrigues`, `ImageProcessor`),
`laser_calib.camera.laser.LaserProcessor`, `line_through` in
`laser_calib.camera.processing`, and the residuals `point_line_residual` and
`point_plane_residual` in `laser_calib.camera.solver`.

## What the package does not do

* It does not solve the laser-to-odometry extrinsic itself: it detects the
  target and estimates both motion sequences, and the final planar fit is left
  to the caller.
* It does not find chessboard corners in images; corners must be supplied on
  `CameraData.corners` and `LaserPlane.corners`.
* It has no reader for camera-calibration settings and does not save the
  laser-to-camera result; use `read_opencv_yaml` and `write_opencv_yaml`.
* It draws nothing and offers no command-line program.