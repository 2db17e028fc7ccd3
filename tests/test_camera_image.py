import numpy as np
import pytest

from laser_calib.camera.data import CameraInfo, ChessboardInfo
from laser_calib.camera.image import ImageProcessor, project_points, rodrigues, solve_pnp

K = np.array([[800.0, 0.0, 320.0], [0.0, 790.0, 240.0], [0.0, 0.0, 1.0]])
RVEC = np.array([0.1, -0.2, 0.05])
TVEC = np.array([-50.0, 30.0, 1000.0])


def _board():
    return ChessboardInfo(rows=5, cols=7, square_height=30.0, square_width=25.0)


def test_rodrigues_zero_is_identity():
    np.testing.assert_allclose(rodrigues([0.0, 0.0, 0.0]), np.eye(3))


def test_rodrigues_is_proper_rotation():
    rotation = rodrigues(RVEC)
    np.testing.assert_allclose(rotation @ rotation.T, np.eye(3), atol=1e-12)
    assert np.linalg.det(rotation) == pytest.approx(1.0)
    np.testing.assert_allclose(rodrigues(-RVEC), rotation.T, atol=1e-12)


def test_rodrigues_keeps_axis_fixed():
    axis = RVEC / np.linalg.norm(RVEC)
    np.testing.assert_allclose(rodrigues(RVEC) @ axis, axis, atol=1e-12)


def test_rodrigues_rejects_bad_shape():
    with pytest.raises(ValueError):
        rodrigues([1.0, 2.0])


def test_project_point_on_axis_hits_principal_point():
    uv = project_points([[0.0, 0.0, 0.0]], [0.0, 0.0, 0.0], [0.0, 0.0, 2.0], K, None)
    np.testing.assert_allclose(uv, [[K[0, 2], K[1, 2]]])


def test_solve_pnp_recovers_pose():
    processor = ImageProcessor(CameraInfo(K), _board())
    obj = processor.object_points()
    img = project_points(obj, RVEC, TVEC, K, None)
    rvec, tvec = solve_pnp(obj, img, K, None)
    np.testing.assert_allclose(rvec, RVEC, atol=1e-6)
    np.testing.assert_allclose(tvec, TVEC, atol=1e-4)


def test_solve_pnp_with_distortion():
    distortion = np.array([0.1, -0.05, 0.001, 0.002, 0.0])
    processor = ImageProcessor(CameraInfo(K, distortion), _board())
    obj = processor.object_points()
    img = project_points(obj, RVEC, TVEC, K, distortion)
    rvec, tvec = solve_pnp(obj, img, K, distortion)
    np.testing.assert_allclose(rvec, RVEC, atol=1e-6)
    np.testing.assert_allclose(tvec, TVEC, atol=1e-4)


def test_solve_pnp_rejects_non_planar_points():
    obj = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 5]], dtype=float)
    with pytest.raises(ValueError):
        solve_pnp(obj, np.zeros((4, 2)), K, None)


def test_solve_pnp_rejects_too_few_points():
    with pytest.raises(ValueError):
        solve_pnp(np.zeros((3, 3)), np.zeros((3, 2)), K, None)


def test_object_points_layout():
    board = _board()
    points = ImageProcessor(CameraInfo(K), board).object_points()
    assert points.shape == (board.rows * board.cols, 3)
    np.testing.assert_allclose(points[1], [0.0, board.square_width, 0.0])
    np.testing.assert_allclose(points[board.cols], [board.square_height, 0.0, 0.0])
    assert np.all(points[:, 2] == 0.0)


def test_target_pose_returns_metres():
    processor = ImageProcessor(CameraInfo(K), _board())
    corners = project_points(processor.object_points(), RVEC, TVEC, K, None)
    rotation, translation = processor.target_pose(corners)
    np.testing.assert_allclose(rotation, rodrigues(RVEC), atol=1e-6)
    np.testing.assert_allclose(translation, TVEC / 1000.0, atol=1e-7)


def test_target_pose_rejects_wrong_corner_count():
    processor = ImageProcessor(CameraInfo(K), _board())
    with pytest.raises(ValueError):
        processor.target_pose(np.zeros((4, 2)))