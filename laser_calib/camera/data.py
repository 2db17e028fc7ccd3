"""Records and input parameters for the laser-to-camera calibration."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


def _array(value, shape: tuple[int, ...], name: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {arr.shape}")
    return arr


def _optional_array(value, name: str) -> np.ndarray | None:
    if value is None:
        return None
    return np.array(value, dtype=float if name == "corners" else None)


def _point_cloud(value, name: str) -> np.ndarray:
    arr = np.array(value, dtype=float)
    if arr.size == 0:
        return arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError(f"{name} must be an (N, 2) or (N, 3) array")
    if arr.shape[1] == 2:
        arr = np.column_stack([arr, np.zeros(len(arr))])
    return arr


def _corners(value) -> np.ndarray | None:
    if value is None:
        return None
    arr = np.array(value, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError("corners must be an (N, 2) array of image points")
    return arr


@dataclass(eq=False)
class CameraData:
    """One camera frame with the chessboard pose and its margin lines in the image."""

    image: np.ndarray | None = None
    corners: np.ndarray | None = None
    target_orientation: np.ndarray = field(default_factory=lambda: np.eye(3))
    target_xyz: np.ndarray = field(default_factory=lambda: np.zeros(3))
    chessboard_plane: np.ndarray = field(default_factory=lambda: np.zeros(4))
    left_margin_line: np.ndarray = field(default_factory=lambda: np.zeros(3))
    right_margin_line: np.ndarray = field(default_factory=lambda: np.zeros(3))
    up_margin_line: np.ndarray = field(default_factory=lambda: np.zeros(3))
    down_margin_line: np.ndarray = field(default_factory=lambda: np.zeros(3))
    distance: float = 0.0

    def __post_init__(self) -> None:
        self.image = None if self.image is None else np.asarray(self.image)
        self.corners = _corners(self.corners)
        self.target_orientation = _array(self.target_orientation, (3, 3), "target_orientation")
        self.target_xyz = _array(self.target_xyz, (3,), "target_xyz")
        self.chessboard_plane = _array(self.chessboard_plane, (4,), "chessboard_plane")
        self.left_margin_line = _array(self.left_margin_line, (3,), "left_margin_line")
        self.right_margin_line = _array(self.right_margin_line, (3,), "right_margin_line")
        self.up_margin_line = _array(self.up_margin_line, (3,), "up_margin_line")
        self.down_margin_line = _array(self.down_margin_line, (3,), "down_margin_line")
        self.distance = float(self.distance)

    @property
    def margin_lines(self) -> tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """The left, right, up and down margin lines, in that order."""
        return (self.left_margin_line, self.right_margin_line,
                self.up_margin_line, self.down_margin_line)


@dataclass(eq=False)
class LaserData:
    """One laser scan and the target line detected in it."""

    can_be_used: bool = True
    point_cloud: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    selected_line_seg: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    line_parameter: np.ndarray = field(default_factory=lambda: np.zeros(3))
    pts_in_line: list[np.ndarray] = field(default_factory=list)
    line_dir: np.ndarray = field(default_factory=lambda: np.zeros(2))

    def __post_init__(self) -> None:
        self.can_be_used = bool(self.can_be_used)
        self.point_cloud = _point_cloud(self.point_cloud, "point_cloud")
        self.selected_line_seg = _point_cloud(self.selected_line_seg, "selected_line_seg")
        self.line_parameter = _array(self.line_parameter, (3,), "line_parameter")
        self.pts_in_line = [_array(p, (2,), "pts_in_line entry") for p in self.pts_in_line]
        self.line_dir = _array(self.line_dir, (2,), "line_dir")


@dataclass(eq=False)
class LaserPlane:
    """Chessboard view used to locate the laser scan plane."""

    chessboard_orientation: np.ndarray = field(default_factory=lambda: np.eye(3))
    corners: np.ndarray | None = None
    dist_from_laser2chessboard_origin: float = 0.0

    def __post_init__(self) -> None:
        self.chessboard_orientation = _array(
            self.chessboard_orientation, (3, 3), "chessboard_orientation")
        self.corners = _corners(self.corners)
        self.dist_from_laser2chessboard_origin = float(self.dist_from_laser2chessboard_origin)


@dataclass(eq=False)
class PointLinePair:
    """Two laser points, each paired with the image line it should project onto."""

    laser_pt1: np.ndarray = field(default_factory=lambda: np.zeros(3))
    image_line1: np.ndarray = field(default_factory=lambda: np.zeros(3))
    laser_pt2: np.ndarray = field(default_factory=lambda: np.zeros(3))
    image_line2: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.laser_pt1 = _array(self.laser_pt1, (3,), "laser_pt1")
        self.image_line1 = _array(self.image_line1, (3,), "image_line1")
        self.laser_pt2 = _array(self.laser_pt2, (3,), "laser_pt2")
        self.image_line2 = _array(self.image_line2, (3,), "image_line2")


@dataclass(eq=False)
class PointPlanePair:
    """Two laser points that should lie in the given plane."""

    laser_pt1: np.ndarray = field(default_factory=lambda: np.zeros(3))
    plane: np.ndarray = field(default_factory=lambda: np.zeros(4))
    laser_pt2: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.laser_pt1 = _array(self.laser_pt1, (3,), "laser_pt1")
        self.plane = _array(self.plane, (4,), "plane")
        self.laser_pt2 = _array(self.laser_pt2, (3,), "laser_pt2")


@dataclass(eq=False)
class Extrinsic:
    """Rigid transform from the camera frame to the laser frame."""

    rotation_c2l: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation_c2l: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.rotation_c2l = _array(self.rotation_c2l, (3, 3), "rotation_c2l")
        self.translation_c2l = _array(self.translation_c2l, (3,), "translation_c2l")


@dataclass(eq=False)
class CameraInfo:
    """Camera intrinsic matrix and distortion coefficients."""

    intrinsic: np.ndarray
    distortion: np.ndarray = field(default_factory=lambda: np.zeros(5))

    def __post_init__(self) -> None:
        self.intrinsic = _array(self.intrinsic, (3, 3), "intrinsic")
        self.distortion = np.array(self.distortion, dtype=float).ravel()

    @property
    def fx(self) -> float:
        return float(self.intrinsic[0, 0])

    @property
    def fy(self) -> float:
        return float(self.intrinsic[1, 1])

    @property
    def cx(self) -> float:
        return float(self.intrinsic[0, 2])

    @property
    def cy(self) -> float:
        return float(self.intrinsic[1, 2])


@dataclass
class ChessboardInfo:
    """Chessboard inner-corner grid, square size and margins around the grid."""

    rows: int = 0
    cols: int = 0
    square_height: float = 0.0
    square_width: float = 0.0
    left_margin_length: float = 0.0
    right_margin_length: float = 0.0
    up_margin_length: float = 0.0
    down_margin_length: float = 0.0

    def __post_init__(self) -> None:
        self.rows = int(self.rows)
        self.cols = int(self.cols)
        if self.rows < 0 or self.cols < 0:
            raise ValueError("chessboard rows and cols must not be negative")
        for name in ("square_height", "square_width", "left_margin_length",
                     "right_margin_length", "up_margin_length", "down_margin_length"):
            setattr(self, name, float(getattr(self, name)))

    @property
    def pattern_size(self) -> tuple[int, int]:
        """Grid size as (width, height) in corners."""
        return self.cols, self.rows


@dataclass
class EnvParameters:
    """Laser line-detection settings."""

    max_dist_seen_as_continuous: float = 0.0
    ransac_fitline_dist_th: float = 0.0
    ransac_max_iterations: int = 0
    min_point_num: int = 0
    min_proportion: float = 0.0
    chessboard_length_in_laser_frame: float = 0.0

    def __post_init__(self) -> None:
        self.max_dist_seen_as_continuous = float(self.max_dist_seen_as_continuous)
        self.ransac_fitline_dist_th = float(self.ransac_fitline_dist_th)
        self.ransac_max_iterations = int(self.ransac_max_iterations)
        self.min_point_num = int(self.min_point_num)
        self.min_proportion = float(self.min_proportion)
        self.chessboard_length_in_laser_frame = float(self.chessboard_length_in_laser_frame)