"""Laser-to-camera extrinsic solver: closed-form translation and nonlinear refinement."""

from __future__ import annotations

import logging
import math

import numpy as np
from scipy.optimize import least_squares
from scipy.spatial.transform import Rotation

MIN_PIX_DIFF = 30.0
PROPORTION = 0.85
MIN_CONDITION = 3
_MAX_ITERATIONS = 500
_PARAMETER_COUNT = 6

_log = logging.getLogger(__name__)


class CalibrationError(Exception):
    """The data or settings do not allow the extrinsic to be solved."""


def parse_laser_axis(axis) -> int:
    """Map an axis name to a signed 1-based chessboard axis index.

    A single letter gives ``x`` -> 1, ``y`` -> 2, ``z`` -> 3; any longer
    name is read from its first letter and negated.
    """
    text = str(axis)
    if not text:
        raise ValueError("laser axis must not be empty")
    index = ord(text[0]) - ord("w")
    return index if len(text) == 1 else -index


def _intrinsic_values(intrinsic) -> np.ndarray:
    values = np.asarray(intrinsic, dtype=float).ravel()
    if values.size != 9:
        raise ValueError("intrinsic must be a 3x3 matrix")
    return values


def _rotate(angle_axis, point) -> np.ndarray:
    rotvec = np.asarray(angle_axis, dtype=float).ravel()
    return Rotation.from_rotvec(rotvec).apply(np.asarray(point, dtype=float).ravel())


def point_line_residual(angle_axis, translation, laser_pt, image_line, intrinsic) -> float:
    """Signed pixel distance of a projected laser point (mm) to an image line.

    The translation is given in metres.
    """
    k = _intrinsic_values(intrinsic)
    cam = _rotate(angle_axis, laser_pt) + np.asarray(translation, dtype=float).ravel() * 1000.0
    x = cam[0] / cam[2]
    y = cam[1] / cam[2]
    u = k[0] * x + k[2]
    v = k[4] * y + k[5]
    a, b, c = np.asarray(image_line, dtype=float).ravel()[:3]
    return float((u * a + v * b + c) / math.sqrt(a * a + b * b))


def point_plane_residual(angle_axis, translation, laser_pt, plane) -> float:
    """Signed distance of a transformed laser point to a plane ``a*x + b*y + c*z + d = 0``."""
    cam = _rotate(angle_axis, laser_pt) + np.asarray(translation, dtype=float).ravel()
    a, b, c, d = np.asarray(plane, dtype=float).ravel()[:4]
    return float((cam[0] * a + cam[1] * b + cam[2] * c + d) / math.sqrt(a * a + b * b + c * c))


def _line_distance(line, pixel) -> float:
    a, b, c = np.asarray(line, dtype=float).ravel()[:3]
    return abs((a * pixel[0] + b * pixel[1] + c) / math.sqrt(a * a + b * b))


class Solver:
    """Solves the laser pose in the camera frame from chessboard and laser observations."""

    def __init__(self, laser_data_set, cam_data_set, laser_plane) -> None:
        self.laser_data_set = list(laser_data_set)
        self.cam_data_set = list(cam_data_set)
        plane = np.asarray(laser_plane, dtype=float).ravel()
        if plane.size != 4:
            raise ValueError("laser plane must have four coefficients")
        self.laser_plane = plane
        self.camera_info = None
        self.orientation: np.ndarray | None = None
        self.R_l2c: np.ndarray | None = None
        self.t_l2c: np.ndarray | None = None
        self.min_diff_th_pix = MIN_PIX_DIFF
        self.proportion = PROPORTION

    def set_camera_info(self, camera_info) -> None:
        """Set the camera whose intrinsic matrix is used for projection."""
        self.camera_info = camera_info

    def set_first_orientation(self, orientation) -> None:
        """Set the chessboard orientation seen in the laser-plane image."""
        matrix = np.asarray(orientation, dtype=float)
        if matrix.shape != (3, 3):
            raise ValueError("orientation must be a 3x3 matrix")
        self.orientation = matrix.copy()

    def solve_rotation(self, laser_axis) -> np.ndarray:
        """Build the initial laser-to-camera rotation from the axis correspondences."""
        axes = list(laser_axis)
        if len(axes) != 3:
            raise ValueError("three laser axes are needed")
        if self.orientation is None:
            raise CalibrationError("the chessboard orientation has not been set")
        columns = []
        for axis in axes:
            index = parse_laser_axis(axis)
            if index < -3 or index > 3 or index == 0:
                raise CalibrationError(f"invalid laser axis input {axis!r}")
            column = self.orientation[:, abs(index) - 1]
            columns.append(column if index > 0 else -column)
        self.R_l2c = np.column_stack(columns)
        return self.R_l2c.copy()

    def calibrate(self) -> tuple[np.ndarray, np.ndarray]:
        """Solve the extrinsic and return ``(rotation, translation)`` in metres."""
        if self.R_l2c is None:
            raise CalibrationError("the rotation must be solved before calibrating")
        if self.camera_info is None:
            raise CalibrationError("the camera info has not been set")
        self._solve_closed_form()
        self._nonlinear_optimization()
        return self.R_l2c.copy(), self.t_l2c.copy()

    def _usable_frames(self):
        for laser_data, cam_data in zip(self.laser_data_set, self.cam_data_set):
            if laser_data.can_be_used:
                yield laser_data, cam_data

    def _solve_closed_form(self) -> None:
        frames = list(self._usable_frames())
        if len(frames) < MIN_CONDITION:
            raise CalibrationError("no enough data given")
        rows = []
        rhs = []
        for laser_data, cam_data in frames:
            plane = np.asarray(cam_data.chessboard_plane, dtype=float).ravel()
            _log.debug("chessboard_plane %s", plane)
            normal, d = plane[:3], plane[3]
            mid = np.asarray(laser_data.pts_in_line[1], dtype=float).ravel()
            rotated = self.R_l2c @ np.array([mid[0], mid[1], 0.0])
            rows.append(normal)
            rhs.append(-d - float(normal @ rotated))
        solution, *_ = np.linalg.lstsq(np.array(rows), np.array(rhs), rcond=None)
        self.t_l2c = np.array(solution, dtype=float)
        _log.info("closed form solution R_l2c:\n%s\nt_l2c:\n%s", self.R_l2c, self.t_l2c)

    def _project(self, laser_xy, intrinsic: np.ndarray) -> np.ndarray:
        point = np.array([laser_xy[0], laser_xy[1], 0.0]) * 1000.0
        cam = self.R_l2c @ point + self.t_l2c * 1000.0
        cam = cam / cam[2]
        return intrinsic @ cam

    def _find_nearest_line(self, pixel, cam_data):
        lines = [cam_data.left_margin_line, cam_data.right_margin_line,
                 cam_data.up_margin_line, cam_data.down_margin_line]
        min_diff = _line_distance(lines[0], pixel)
        best = lines[0]
        dist = _line_distance(lines[1], pixel)
        if dist < min_diff:
            second_min_diff, min_diff, best = min_diff, dist, lines[1]
        else:
            second_min_diff = dist
        for line in lines[2:]:
            dist = _line_distance(line, pixel)
            if dist < min_diff:
                second_min_diff, min_diff, best = min_diff, dist, line
        if min_diff > self.min_diff_th_pix:
            return None
        return best if min_diff < self.proportion * second_min_diff else None

    def _correspondences(self, intrinsic: np.ndarray):
        """Yield ``(laser point in metres, chessboard plane)`` for matched end points."""
        for laser_data, cam_data in self._usable_frames():
            plane = np.asarray(cam_data.chessboard_plane, dtype=float).ravel()
            for end in (laser_data.pts_in_line[0], laser_data.pts_in_line[2]):
                xy = np.asarray(end, dtype=float).ravel()
                pixel = self._project(xy, intrinsic)
                if self._find_nearest_line(pixel, cam_data) is not None:
                    yield np.array([xy[0], xy[1], 0.0]), plane

    def _nonlinear_optimization(self) -> None:
        intrinsic = _intrinsic_values(self.camera_info.intrinsic).reshape(3, 3)
        pairs = list(self._correspondences(intrinsic))
        if not pairs:
            _log.info("no point correspondences found, keeping the closed form solution")
            return
        start = np.concatenate([Rotation.from_matrix(self.R_l2c).as_rotvec(), self.t_l2c])
        laser_plane = self.laser_plane

        def residuals(params: np.ndarray) -> np.ndarray:
            angle_axis, translation = params[:3], params[3:]
            values = []
            for point, plane in pairs:
                values.append(point_plane_residual(angle_axis, translation, point, plane))
                values.append(point_plane_residual(angle_axis, translation, point, laser_plane))
            return np.array(values)

        method = "lm" if 2 * len(pairs) >= _PARAMETER_COUNT else "trf"
        result = least_squares(residuals, start, method=method,
                               max_nfev=_MAX_ITERATIONS * (_PARAMETER_COUNT + 1))
        self.R_l2c = Rotation.from_rotvec(result.x[:3]).as_matrix()
        self.t_l2c = np.array(result.x[3:], dtype=float)
        _log.info("Extrinsic parameters after optimization\n%s\n%s", self.R_l2c, self.t_l2c)