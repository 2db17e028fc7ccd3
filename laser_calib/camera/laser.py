"""Detection of the chessboard's line in a single laser scan."""

from __future__ import annotations

import logging

import numpy as np

from laser_calib.camera.data import LaserData
from laser_calib.lines import (
    cluster_points,
    find_end_points,
    implicit_line,
    point_distance,
    segment_lines,
)

MAX_LENGTH_DIFF = 100.0
MAX_TARGET_RANGE = 4.0

_log = logging.getLogger(__name__)


class LaserProcessor:
    """Finds the scan line whose length best matches the chessboard's width."""

    def __init__(self, seed=None) -> None:
        self.max_dist_seen_as_continuous = 0.07
        self.ransac_fitline_dist_th = 0.04
        self.ransac_max_iterations = 10000
        self.min_point_num = 10
        self.min_proportion = 0.01
        self.chessboard_length_in_laser_frame = 0.0
        self._rng = np.random.default_rng(seed)

    def set_laser_process_parameters(self, max_dist_seen_as_continuous, ransac_fitline_dist_th,
                                     ransac_max_iterations, min_point_num_stop_ransac,
                                     min_proportion_stop_ransac,
                                     chessboard_length_in_laser_frame) -> None:
        """Set all line-detection settings."""
        self.max_dist_seen_as_continuous = float(max_dist_seen_as_continuous)
        self.ransac_fitline_dist_th = float(ransac_fitline_dist_th)
        self.ransac_max_iterations = int(ransac_max_iterations)
        self.min_point_num = int(min_point_num_stop_ransac)
        self.min_proportion = float(min_proportion_stop_ransac)
        self.chessboard_length_in_laser_frame = float(chessboard_length_in_laser_frame)

    def update_parameters(self, max_dist_seen_as_continuous, ransac_fitline_dist_th) -> None:
        """Change the settings a user may tune between detection runs."""
        self.max_dist_seen_as_continuous = float(max_dist_seen_as_continuous)
        self.ransac_fitline_dist_th = float(ransac_fitline_dist_th)

    def _segments(self, cloud: np.ndarray):
        for cluster in cluster_points(cloud, self.max_dist_seen_as_continuous):
            yield from segment_lines(
                cloud[cluster], self.ransac_fitline_dist_th, self.ransac_max_iterations,
                self.min_point_num, self.min_proportion, self._rng)

    def _select(self, end_points) -> int | None:
        best = None
        min_diff = MAX_LENGTH_DIFF
        origin = np.zeros(3)
        for index, (first, second) in enumerate(end_points):
            diff = abs(point_distance(first, second) - self.chessboard_length_in_laser_frame)
            if (diff < min_diff and point_distance(first, origin) < MAX_TARGET_RANGE
                    and point_distance(second, origin) < MAX_TARGET_RANGE):
                best = index
                min_diff = diff
        return best

    def process_laser_data(self, laser_data: LaserData, distance=None) -> bool:
        """Detect the target line in ``laser_data`` and fill in its parameters.

        ``distance`` is the camera-to-target distance of the matching frame;
        detection does not depend on it.  Sets ``can_be_used`` and returns it.
        """
        segments = list(self._segments(laser_data.point_cloud))
        if not segments:
            laser_data.can_be_used = False
            _log.info("No line detected, discard this set of data")
            return False
        end_points = [find_end_points(segment.points) for segment in segments]
        selected = self._select(end_points)
        if selected is None:
            laser_data.can_be_used = False
            _log.info("No target line detected, discard this set of data")
            return False
        segment = segments[selected]
        first, second = end_points[selected]
        laser_data.selected_line_seg = segment.points.copy()
        laser_data.line_dir = np.asarray(segment.coefficients[3:5], dtype=float).copy()
        laser_data.line_parameter = implicit_line(segment.coefficients)
        start = np.asarray(first[:2], dtype=float)
        end = np.asarray(second[:2], dtype=float)
        laser_data.pts_in_line = [start, 0.5 * (start + end), end]
        laser_data.can_be_used = True
        return True