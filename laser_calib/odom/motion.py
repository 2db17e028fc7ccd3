"""Frame-to-frame motion from detected laser features and from odometry poses."""

from __future__ import annotations

import math
from itertools import pairwise

import numpy as np

from laser_calib.odom.data import LaserData, OdomData


def _rotation(angle: float) -> np.ndarray:
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s], [s, c]])


def estimate_laser_motion(laser_datas: list[LaserData]) -> None:
    """Fill in each usable scan's motion from the previous scan.

    The rotation comes from the two edge directions of the target, the
    translation from its corner.  Scans whose own or previous detection
    failed are left untouched.
    """
    for last, current in pairwise(laser_datas):
        if not current.can_be_used or not last.can_be_used:
            continue
        with np.errstate(divide="ignore", invalid="ignore"):
            inv_long = np.float64(1.0) / np.dot(last.long_edge_direction,
                                                current.long_edge_direction)
            inv_short = np.float64(1.0) / np.dot(last.short_edge_direction,
                                                 current.short_edge_direction)
            # Least-squares estimate of the cosine shared by both edges.
            cos_theta = (inv_long + inv_short) / (inv_long * inv_long + inv_short * inv_short)
        yaw = math.acos(float(np.fmin(np.fmax(cos_theta, -1.0), 1.0)))
        last_ref = math.atan2(last.long_edge_direction[1], last.long_edge_direction[0])
        current_ref = math.atan2(current.long_edge_direction[1],
                                 current.long_edge_direction[0])
        if last_ref - current_ref > 0:
            yaw = -yaw
        rotation = _rotation(yaw)
        current.last_yaw_in_current = yaw
        current.last2current_rotation = rotation
        current.last2current_xy = current.intersection_point - rotation @ last.intersection_point


def estimate_odom_motion(odom_datas: list[OdomData]) -> None:
    """Fill in each odometry record's motion from the previous pose, in the current frame."""
    for last, current in pairwise(odom_datas):
        current_rotation_t = current.odom_pose_yaw_rotation.T
        current.last2current_rotation = current_rotation_t @ last.odom_pose_yaw_rotation
        current.last2current_xy = current_rotation_t @ (last.odom_pose_xy - current.odom_pose_xy)