"""Per-frame laser and odometry records used by the laser-to-odometry calibration."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np


def _array(value, shape: tuple[int, ...], name: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


def _point_cloud(value) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.size == 0:
        return arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError("point_cloud must be an (N, 2) or (N, 3) array")
    if arr.shape[1] == 2:
        arr = np.column_stack([arr, np.zeros(len(arr))])
    return arr


@dataclass(eq=False)
class LaserData:
    """One laser scan and the L-shaped target features detected in it."""

    point_cloud: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    last2current_xy: np.ndarray = field(default_factory=lambda: np.zeros(2))
    last_yaw_in_current: float = 0.0
    last2current_rotation: np.ndarray = field(default_factory=lambda: np.eye(2))
    intersection_point: np.ndarray = field(default_factory=lambda: np.zeros(2))
    long_edge_direction: np.ndarray = field(default_factory=lambda: np.zeros(2))
    long_end_pt: np.ndarray = field(default_factory=lambda: np.zeros(3))
    short_edge_direction: np.ndarray = field(default_factory=lambda: np.zeros(2))
    short_end_pt: np.ndarray = field(default_factory=lambda: np.zeros(3))
    can_be_used: bool = True

    def __post_init__(self) -> None:
        self.point_cloud = _point_cloud(self.point_cloud)
        self.last2current_xy = _array(self.last2current_xy, (2,), "last2current_xy")
        self.last_yaw_in_current = float(self.last_yaw_in_current)
        self.last2current_rotation = _array(
            self.last2current_rotation, (2, 2), "last2current_rotation")
        self.intersection_point = _array(self.intersection_point, (2,), "intersection_point")
        self.long_edge_direction = _array(self.long_edge_direction, (2,), "long_edge_direction")
        self.long_end_pt = _array(self.long_end_pt, (3,), "long_end_pt")
        self.short_edge_direction = _array(
            self.short_edge_direction, (2,), "short_edge_direction")
        self.short_end_pt = _array(self.short_end_pt, (3,), "short_end_pt")
        self.can_be_used = bool(self.can_be_used)


@dataclass(eq=False)
class OdomData:
    """One odometry pose and its motion relative to the previous frame."""

    odom_pose_xy: np.ndarray = field(default_factory=lambda: np.zeros(2))
    odom_pose_yaw_rotation: np.ndarray = field(default_factory=lambda: np.eye(2))
    current_yaw: float = 0.0
    current_in_last_yaw: float = 0.0
    last2current_xy: np.ndarray = field(default_factory=lambda: np.zeros(2))
    last2current_rotation: np.ndarray = field(default_factory=lambda: np.eye(2))
    can_be_used: bool = True

    def __post_init__(self) -> None:
        self.odom_pose_xy = _array(self.odom_pose_xy, (2,), "odom_pose_xy")
        self.odom_pose_yaw_rotation = _array(
            self.odom_pose_yaw_rotation, (2, 2), "odom_pose_yaw_rotation")
        self.current_yaw = float(self.current_yaw)
        self.current_in_last_yaw = float(self.current_in_last_yaw)
        self.last2current_xy = _array(self.last2current_xy, (2,), "last2current_xy")
        self.last2current_rotation = _array(
            self.last2current_rotation, (2, 2), "last2current_rotation")
        self.can_be_used = bool(self.can_be_used)

    @classmethod
    def from_pose(cls, x: float, y: float, yaw: float) -> "OdomData":
        """Build a record from a planar pose given as position and heading."""
        c, s = math.cos(yaw), math.sin(yaw)
        return cls(odom_pose_xy=[x, y], odom_pose_yaw_rotation=[[c, -s], [s, c]],
                   current_yaw=yaw)