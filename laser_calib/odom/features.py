"""Detection of the L-shaped calibration target in a single laser scan."""

from __future__ import annotations

import numpy as np

from laser_calib.lines import (
    cluster_points,
    find_end_points,
    implicit_line,
    point_distance,
    segment_lines,
)
from laser_calib.odom.data import LaserData

MIN_DIST_TWO_LINE = 0.4


def line_intersection(line1, line2) -> np.ndarray:
    """Intersect two planar lines given as ``a*x + b*y + c = 0``."""
    l1 = np.asarray(line1, dtype=float).ravel()
    l2 = np.asarray(line2, dtype=float).ravel()
    if l1.size != 3 or l2.size != 3:
        raise ValueError("lines must have three coefficients")
    matrix = np.array([[l1[0], l1[1]], [l2[0], l2[1]]])
    rhs = np.array([-l1[2], -l2[2]])
    try:
        return np.linalg.solve(matrix, rhs)
    except np.linalg.LinAlgError:
        raise ValueError("lines are parallel and do not intersect") from None


def _orient(end_points, intersection: np.ndarray, direction: np.ndarray):
    """Pick the end point farther from the corner and point the direction towards it."""
    corner = np.array([intersection[0], intersection[1], 0.0])
    first, second = end_points
    far = first if point_distance(first, corner) > point_distance(second, corner) else second
    offset = far[:2] - corner[:2]
    if float(np.dot(offset, direction)) < 0.0:
        direction = -direction
    return direction, np.array(far, dtype=float)


class LaserDataProcessor:
    """Finds the long and short edges of the target and their corner in a scan."""

    def __init__(self, seed=None) -> None:
        self.long_length = 1.2
        self.short_length = 0.5
        self.max_dist_seen_as_continuous = 0.07
        self.line_length_tolerance = 0.25
        self.ransac_fitline_dist_th = 0.04
        self.ransac_max_iterations = 10000
        self.min_point_num = 10
        self.min_proportion = 0.01
        self._rng = np.random.default_rng(seed)

    def set_laser_process_parameters(self, max_dist_seen_as_continuous, line_length_tolerance,
                                     ransac_fitline_dist_th, ransac_max_iterations,
                                     min_point_num_stop_ransac,
                                     min_proportion_stop_ransac) -> None:
        """Set all line-detection settings."""
        self.max_dist_seen_as_continuous = float(max_dist_seen_as_continuous)
        self.line_length_tolerance = float(line_length_tolerance)
        self.ransac_fitline_dist_th = float(ransac_fitline_dist_th)
        self.ransac_max_iterations = int(ransac_max_iterations)
        self.min_point_num = int(min_point_num_stop_ransac)
        self.min_proportion = float(min_proportion_stop_ransac)

    def set_line_length(self, long_length, short_length) -> None:
        """Set the real lengths of the target's long and short edges."""
        self.long_length = float(long_length)
        self.short_length = float(short_length)

    def update_parameters(self, max_dist_seen_as_continuous, line_length_tolerance,
                          ransac_fitline_dist_th) -> None:
        """Change the settings a user may tune between detection runs."""
        self.max_dist_seen_as_continuous = float(max_dist_seen_as_continuous)
        self.line_length_tolerance = float(line_length_tolerance)
        self.ransac_fitline_dist_th = float(ransac_fitline_dist_th)

    def _segments(self, cloud: np.ndarray):
        for cluster in cluster_points(cloud, self.max_dist_seen_as_continuous):
            yield from segment_lines(
                cloud[cluster], self.ransac_fitline_dist_th, self.ransac_max_iterations,
                self.min_point_num, self.min_proportion, self._rng)

    def _select_edges(self, end_points) -> tuple[int, int] | None:
        long_ids: list[int] = []
        short_ids: list[int] = []
        for index, (first, second) in enumerate(end_points):
            length = point_distance(first, second)
            if abs(length - self.short_length) <= self.line_length_tolerance:
                short_ids.append(index)
            elif abs(length - self.long_length) <= self.line_length_tolerance:
                long_ids.append(index)
        best = None
        min_dist = MIN_DIST_TWO_LINE
        for long_id in long_ids:
            for short_id in short_ids:
                gap = min(point_distance(a, b)
                          for a in end_points[long_id] for b in end_points[short_id])
                if gap < min_dist:
                    min_dist = gap
                    best = (long_id, short_id)
        return best

    def process_laser_data(self, laser_data: LaserData) -> bool:
        """Detect the target in ``laser_data`` and fill in its features.

        Sets ``can_be_used`` on the record and returns it.
        """
        laser_data.can_be_used = True
        segments = list(self._segments(laser_data.point_cloud))
        if not segments:
            laser_data.can_be_used = False
            return False
        end_points = [find_end_points(segment.points) for segment in segments]
        selected = self._select_edges(end_points)
        if selected is None:
            laser_data.can_be_used = False
            return False
        long_id, short_id = selected
        long_coeffs = segments[long_id].coefficients
        short_coeffs = segments[short_id].coefficients
        try:
            intersection = line_intersection(implicit_line(long_coeffs),
                                             implicit_line(short_coeffs))
        except ValueError:
            laser_data.can_be_used = False
            return False
        long_dir = np.asarray(long_coeffs[3:5], dtype=float)
        short_dir = np.asarray(short_coeffs[3:5], dtype=float)
        long_dir = long_dir / np.linalg.norm(long_dir)
        short_dir = short_dir / np.linalg.norm(short_dir)
        laser_data.intersection_point = intersection
        laser_data.long_edge_direction, laser_data.long_end_pt = _orient(
            end_points[long_id], intersection, long_dir)
        laser_data.short_edge_direction, laser_data.short_end_pt = _orient(
            end_points[short_id], intersection, short_dir)
        return True