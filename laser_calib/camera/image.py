"""Chessboard pose estimation from detected corner points."""

from __future__ import annotations

import numpy as np
from scipy.optimize import least_squares
from scipy.spatial.transform import Rotation

from laser_calib.camera.data import CameraInfo, ChessboardInfo

_UNDISTORT_ITERATIONS = 20


def _distortion(distortion) -> np.ndarray:
    """Return distortion as (k1, k2, p1, p2, k3, k4, k5, k6)."""
    coeffs = np.zeros(8)
    if distortion is None:
        return coeffs
    values = np.asarray(distortion, dtype=float).ravel()
    if values.size not in (0, 4, 5, 8):
        raise ValueError("distortion must have 0, 4, 5 or 8 coefficients")
    coeffs[:values.size] = values
    return coeffs


def _intrinsic(intrinsic) -> np.ndarray:
    matrix = np.asarray(intrinsic, dtype=float)
    if matrix.shape != (3, 3):
        raise ValueError("intrinsic must be a 3x3 matrix")
    return matrix


def rodrigues(rvec) -> np.ndarray:
    """Convert a rotation vector (axis times angle) to a rotation matrix."""
    values = np.asarray(rvec, dtype=float).ravel()
    if values.size != 3:
        raise ValueError("rotation vector must have three components")
    return Rotation.from_rotvec(values).as_matrix()


def project_points(object_points, rvec, tvec, intrinsic, distortion) -> np.ndarray:
    """Project 3D points into the image with a pinhole camera and lens distortion."""
    pts = np.asarray(object_points, dtype=float).reshape(-1, 3)
    rotation = rodrigues(rvec)
    translation = np.asarray(tvec, dtype=float).ravel()
    k = _intrinsic(intrinsic)
    k1, k2, p1, p2, k3, k4, k5, k6 = _distortion(distortion)
    cam = pts @ rotation.T + translation
    x = cam[:, 0] / cam[:, 2]
    y = cam[:, 1] / cam[:, 2]
    r2 = x * x + y * y
    radial = (1.0 + ((k3 * r2 + k2) * r2 + k1) * r2) / (1.0 + ((k6 * r2 + k5) * r2 + k4) * r2)
    xd = x * radial + 2.0 * p1 * x * y + p2 * (r2 + 2.0 * x * x)
    yd = y * radial + p1 * (r2 + 2.0 * y * y) + 2.0 * p2 * x * y
    return np.column_stack([k[0, 0] * xd + k[0, 2], k[1, 1] * yd + k[1, 2]])


def _undistort(image_points: np.ndarray, k: np.ndarray, coeffs: np.ndarray) -> np.ndarray:
    """Map pixel coordinates to undistorted normalized image coordinates."""
    k1, k2, p1, p2, k3, k4, k5, k6 = coeffs
    x0 = (image_points[:, 0] - k[0, 2]) / k[0, 0]
    y0 = (image_points[:, 1] - k[1, 2]) / k[1, 1]
    x, y = x0.copy(), y0.copy()
    for _ in range(_UNDISTORT_ITERATIONS):
        r2 = x * x + y * y
        inverse = (1.0 + ((k6 * r2 + k5) * r2 + k4) * r2) / (
            1.0 + ((k3 * r2 + k2) * r2 + k1) * r2)
        delta_x = 2.0 * p1 * x * y + p2 * (r2 + 2.0 * x * x)
        delta_y = p1 * (r2 + 2.0 * y * y) + 2.0 * p2 * x * y
        x = (x0 - delta_x) * inverse
        y = (y0 - delta_y) * inverse
    return np.column_stack([x, y])


def _normalizing_transform(pts: np.ndarray) -> np.ndarray:
    centre = pts.mean(axis=0)
    spread = np.mean(np.linalg.norm(pts - centre, axis=1))
    scale = np.sqrt(2.0) / spread if spread > 0 else 1.0
    return np.array([[scale, 0.0, -scale * centre[0]],
                     [0.0, scale, -scale * centre[1]],
                     [0.0, 0.0, 1.0]])


def _homography(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    t_src = _normalizing_transform(src)
    t_dst = _normalizing_transform(dst)
    s = np.column_stack([src, np.ones(len(src))]) @ t_src.T
    d = np.column_stack([dst, np.ones(len(dst))]) @ t_dst.T
    rows = []
    for (sx, sy, _), (dx, dy, _) in zip(s, d):
        rows.append([sx, sy, 1.0, 0.0, 0.0, 0.0, -dx * sx, -dx * sy, -dx])
        rows.append([0.0, 0.0, 0.0, sx, sy, 1.0, -dy * sx, -dy * sy, -dy])
    _, _, vt = np.linalg.svd(np.array(rows))
    normalized = vt[-1].reshape(3, 3)
    return np.linalg.inv(t_dst) @ normalized @ t_src


def _pose_from_homography(h: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    h1, h2, h3 = h[:, 0], h[:, 1], h[:, 2]
    scale = 2.0 / (np.linalg.norm(h1) + np.linalg.norm(h2))
    if h3[2] * scale < 0.0:
        scale = -scale
    r1, r2 = h1 * scale, h2 * scale
    approx = np.column_stack([r1, r2, np.cross(r1, r2)])
    u, _, vt = np.linalg.svd(approx)
    rotation = u @ vt
    if np.linalg.det(rotation) < 0.0:
        u[:, -1] *= -1.0
        rotation = u @ vt
    return rotation, h3 * scale


def solve_pnp(object_points, image_points, intrinsic, distortion) -> tuple[np.ndarray, np.ndarray]:
    """Estimate the pose of a planar target from its image points.

    The object points must lie in the plane z = 0.  An initial pose from the
    plane-to-image homography is refined by Levenberg-Marquardt on the
    reprojection error.  Returns ``(rvec, tvec)``.
    """
    obj = np.asarray(object_points, dtype=float).reshape(-1, 3)
    img = np.asarray(image_points, dtype=float).reshape(-1, 2)
    if len(obj) != len(img):
        raise ValueError("object and image point counts differ")
    if len(obj) < 4:
        raise ValueError("at least four points are needed")
    if not np.allclose(obj[:, 2], 0.0):
        raise ValueError("object points must lie in the plane z = 0")
    k = _intrinsic(intrinsic)
    coeffs = _distortion(distortion)
    rotation, translation = _pose_from_homography(
        _homography(obj[:, :2], _undistort(img, k, coeffs)))
    start = np.concatenate([Rotation.from_matrix(rotation).as_rotvec(), translation])

    def residual(params: np.ndarray) -> np.ndarray:
        return (project_points(obj, params[:3], params[3:], k, coeffs) - img).ravel()

    result = least_squares(residual, start, method="lm")
    return result.x[:3].copy(), result.x[3:].copy()


class ImageProcessor:
    """Computes the chessboard pose in the camera frame from its inner corners."""

    def __init__(self, camera_info: CameraInfo, chessboard_info: ChessboardInfo) -> None:
        self.camera_info = camera_info
        self.chessboard_info = chessboard_info
        height = chessboard_info.square_height
        width = chessboard_info.square_width
        self._world_points = np.array(
            [[i * height, j * width, 0.0]
             for i in range(chessboard_info.rows) for j in range(chessboard_info.cols)],
            dtype=float).reshape(-1, 3)

    @property
    def pattern_size(self) -> tuple[int, int]:
        return self.chessboard_info.pattern_size

    def object_points(self) -> np.ndarray:
        """Return the corner positions in the chessboard frame, row by row."""
        return self._world_points.copy()

    def target_pose(self, corners) -> tuple[np.ndarray, np.ndarray]:
        """Return the chessboard rotation and translation (in metres) in the camera frame."""
        image_points = np.asarray(corners, dtype=float).reshape(-1, 2)
        if len(image_points) != len(self._world_points):
            raise ValueError(
                f"expected {len(self._world_points)} corners, got {len(image_points)}")
        rvec, tvec = solve_pnp(self._world_points, image_points,
                               self.camera_info.intrinsic, self.camera_info.distortion)
        return rodrigues(rvec), tvec / 1000.0