"""Chessboard pose, plane and margin-line extraction for the laser-to-camera calibration."""

from __future__ import annotations

import numpy as np

from laser_calib.camera.data import CameraInfo, ChessboardInfo, EnvParameters
from laser_calib.camera.image import ImageProcessor
from laser_calib.camera.laser import LaserProcessor


def line_through(pt1, pt2) -> np.ndarray:
    """Return the image line ``k*x - y + b = 0`` through two points as ``(k, -1, b)``."""
    p1 = np.asarray(pt1, dtype=float).ravel()
    p2 = np.asarray(pt2, dtype=float).ravel()
    if p1.size < 2 or p2.size < 2:
        raise ValueError("points need at least two coordinates")
    dx = p2[0] - p1[0]
    if dx == 0.0:
        raise ValueError("a vertical line has no slope-intercept form")
    slope = (p2[1] - p1[1]) / dx
    return np.array([slope, -1.0, p1[1] - slope * p1[0]])


def _corners(record) -> np.ndarray:
    corners = getattr(record, "corners", None)
    if corners is None:
        raise ValueError("record holds no detected chessboard corners")
    return np.asarray(corners, dtype=float)


class DataProcessor:
    """Turns detected chessboard corners and laser scans into calibration features."""

    def __init__(self) -> None:
        self.cam_info: CameraInfo | None = None
        self.chessboard_info: ChessboardInfo | None = None
        self.dists: list[float] = []
        self._image_processor: ImageProcessor | None = None
        self._laser_processor: LaserProcessor | None = None

    @property
    def _images(self) -> ImageProcessor:
        if self._image_processor is None:
            raise RuntimeError("camera information has not been set")
        return self._image_processor

    @property
    def _lasers(self) -> LaserProcessor:
        if self._laser_processor is None:
            raise RuntimeError("laser processing parameters have not been set")
        return self._laser_processor

    def set_cam_info(self, cam_info: CameraInfo, chessboard_info: ChessboardInfo) -> None:
        """Set the camera and chessboard used for pose estimation."""
        self.cam_info = cam_info
        self.chessboard_info = chessboard_info
        self._image_processor = ImageProcessor(cam_info, chessboard_info)

    def set_env_parameters(self, env_parameters: EnvParameters) -> None:
        """Set the laser line-detection settings."""
        processor = LaserProcessor()
        processor.set_laser_process_parameters(
            env_parameters.max_dist_seen_as_continuous, env_parameters.ransac_fitline_dist_th,
            env_parameters.ransac_max_iterations, env_parameters.min_point_num,
            env_parameters.min_proportion, env_parameters.chessboard_length_in_laser_frame)
        self._laser_processor = processor

    def solve_laser_plane_parameters(self, laser_plane) -> np.ndarray:
        """Return the laser plane ``(a, b, c, d)`` in the camera frame.

        The plane's normal is the chessboard's x axis and it passes the board
        origin shifted along that axis by ``dist_from_laser2chessboard_origin``.
        The chessboard orientation is stored on ``laser_plane``.
        """
        rotation, translation = self._images.target_pose(_corners(laser_plane))
        normal = rotation[:, 0].copy()
        laser_plane.chessboard_orientation = rotation
        point = float(laser_plane.dist_from_laser2chessboard_origin) * normal + translation
        return np.array([*normal, -float(normal @ point)])

    def solve_chessboard_plane_parameters(self, cam_data) -> np.ndarray:
        """Set and return the chessboard plane ``(a, b, c, d)`` in the camera frame."""
        rotation = np.asarray(cam_data.target_orientation, dtype=float)
        position = np.asarray(cam_data.target_xyz, dtype=float).ravel()
        normal = rotation[:, 2]
        plane = np.array([*normal, -float(normal @ position)])
        cam_data.chessboard_plane = plane
        return plane

    def process_image_data(self, cam_data_set) -> None:
        """Fill in pose, distance, plane and margin lines of every camera record."""
        for cam_data in cam_data_set:
            rotation, translation = self._images.target_pose(_corners(cam_data))
            cam_data.target_orientation = rotation
            cam_data.target_xyz = np.asarray(translation, dtype=float).ravel()
            cam_data.distance = float(np.linalg.norm(cam_data.target_xyz))
            self.solve_chessboard_plane_parameters(cam_data)
            self._solve_margin_lines(cam_data)
            self.dists.append(cam_data.distance)

    def _distance(self, index: int):
        return self.dists[index] if 0 <= index < len(self.dists) else None

    def process_laser_data(self, laser_data_set) -> list[bool]:
        """Detect the target line in every laser record; return which succeeded."""
        return [self._lasers.process_laser_data(laser_data, self._distance(index))
                for index, laser_data in enumerate(laser_data_set)]

    def update_parameters_detect(self, max_dist_seen_as_continuous, ransac_fitline_dist_th,
                                 laser_data, index) -> bool:
        """Re-run line detection on one laser record with new settings."""
        self._lasers.update_parameters(max_dist_seen_as_continuous, ransac_fitline_dist_th)
        return self._lasers.process_laser_data(laser_data, self._distance(int(index)))

    def _solve_margin_lines(self, cam_data) -> None:
        board = self.chessboard_info
        rotation = np.asarray(cam_data.target_orientation, dtype=float)
        translation = np.asarray(cam_data.target_xyz, dtype=float).ravel() * 1000.0
        intrinsic = np.asarray(self.cam_info.intrinsic, dtype=float).reshape(3, 3)
        top = -board.up_margin_length - board.square_height
        bottom = board.square_height * board.rows + board.down_margin_length
        left = -board.left_margin_length - board.square_width
        right = board.square_width * board.cols + board.right_margin_length
        corners = np.array([[top, left, 0.0], [top, right, 0.0],
                            [bottom, left, 0.0], [bottom, right, 0.0]])
        cam = corners @ rotation.T + translation
        pixels = (cam / cam[:, 2:3]) @ intrinsic.T
        left_up, right_up, left_down, right_down = pixels
        cam_data.left_margin_line = line_through(left_up, left_down)
        cam_data.right_margin_line = line_through(right_up, right_down)
        cam_data.up_margin_line = line_through(left_up, right_up)
        cam_data.down_margin_line = line_through(left_down, right_down)