from types import SimpleNamespace

import numpy as np
import pytest

from laser_calib.camera.data import CameraInfo, ChessboardInfo, EnvParameters
from laser_calib.camera.image import ImageProcessor, project_points, rodrigues
from laser_calib.camera.processing import DataProcessor, line_through

K = np.array([[500.0, 0.0, 320.0], [0.0, 500.0, 240.0], [0.0, 0.0, 1.0]])
RVEC = np.array([0.1, 0.3, 0.05])
TVEC_MM = np.array([-100.0, -80.0, 1500.0])


def _board():
    return ChessboardInfo(rows=5, cols=7, square_height=30.0, square_width=30.0,
                          left_margin_length=20.0, right_margin_length=20.0,
                          up_margin_length=20.0, down_margin_length=20.0)


def _cam_info():
    return CameraInfo(intrinsic=K.copy(), distortion=np.zeros(5))


def _env():
    return EnvParameters(max_dist_seen_as_continuous=0.07, ransac_fitline_dist_th=0.02,
                         ransac_max_iterations=200, min_point_num=10, min_proportion=0.1,
                         chessboard_length_in_laser_frame=0.6)


def _corners(rvec, tvec_mm):
    points = ImageProcessor(_cam_info(), _board()).object_points()
    return project_points(points, rvec, tvec_mm, K, np.zeros(5))


@pytest.fixture
def processor():
    dp = DataProcessor()
    dp.set_cam_info(_cam_info(), _board())
    dp.set_env_parameters(_env())
    return dp


def _line_cloud(x):
    ys = np.linspace(-0.3, 0.3, 31)
    return np.column_stack([np.full_like(ys, x), ys, np.zeros_like(ys)])


def test_line_through_pins_slope_and_intercept():
    np.testing.assert_allclose(line_through((0.0, 1.0, 1.0), (2.0, 5.0, 1.0)), [2.0, -1.0, 1.0])


def test_line_through_contains_both_points():
    p1, p2 = np.array([3.5, -2.0]), np.array([-1.0, 4.0])
    line = line_through(p1, p2)
    for p in (p1, p2):
        assert line @ np.array([p[0], p[1], 1.0]) == pytest.approx(0.0, abs=1e-12)


def test_line_through_vertical_raises():
    with pytest.raises(ValueError):
        line_through((1.0, 0.0), (1.0, 5.0))


def test_process_image_data_recovers_pose(processor):
    record = SimpleNamespace(corners=_corners(RVEC, TVEC_MM))
    processor.process_image_data([record])
    np.testing.assert_allclose(record.target_orientation, rodrigues(RVEC), atol=1e-6)
    np.testing.assert_allclose(record.target_xyz, TVEC_MM / 1000.0, atol=1e-6)
    assert record.distance == pytest.approx(np.linalg.norm(record.target_xyz))
    assert processor.dists == [record.distance]


def test_chessboard_plane_contains_board_origin(processor):
    record = SimpleNamespace(corners=_corners(RVEC, TVEC_MM))
    processor.process_image_data([record])
    plane = record.chessboard_plane
    np.testing.assert_allclose(plane[:3], record.target_orientation[:, 2])
    assert plane[:3] @ record.target_xyz + plane[3] == pytest.approx(0.0, abs=1e-12)


def test_solve_chessboard_plane_parameters_pinned():
    record = SimpleNamespace(target_orientation=np.eye(3), target_xyz=np.array([0.0, 0.0, 2.0]))
    plane = DataProcessor().solve_chessboard_plane_parameters(record)
    np.testing.assert_allclose(plane, [0.0, 0.0, 1.0, -2.0])
    np.testing.assert_allclose(record.chessboard_plane, plane)


def test_margin_lines_pass_through_projected_margin_corners(processor):
    record = SimpleNamespace(corners=_corners(RVEC, TVEC_MM))
    processor.process_image_data([record])
    board = _board()
    top = -board.up_margin_length - board.square_height
    bottom = board.square_height * board.rows + board.down_margin_length
    left = -board.left_margin_length - board.square_width
    right = board.square_width * board.cols + board.right_margin_length
    pixels = project_points(np.array([[top, left, 0.0], [top, right, 0.0],
                                      [bottom, left, 0.0], [bottom, right, 0.0]]),
                            RVEC, TVEC_MM, K, np.zeros(5))
    left_up, right_up, left_down, right_down = (np.append(p, 1.0) for p in pixels)
    checks = [(record.left_margin_line, (left_up, left_down)),
              (record.right_margin_line, (right_up, right_down)),
              (record.up_margin_line, (left_up, right_up)),
              (record.down_margin_line, (left_down, right_down))]
    for line, points in checks:
        for point in points:
            assert line @ point == pytest.approx(0.0, abs=1e-3)


def test_solve_laser_plane_parameters(processor):
    plane_record = SimpleNamespace(corners=_corners(RVEC, TVEC_MM),
                                   dist_from_laser2chessboard_origin=0.1,
                                   chessboard_orientation=None)
    plane = processor.solve_laser_plane_parameters(plane_record)
    rotation = rodrigues(RVEC)
    np.testing.assert_allclose(plane_record.chessboard_orientation, rotation, atol=1e-6)
    np.testing.assert_allclose(plane[:3], rotation[:, 0], atol=1e-6)
    shifted = TVEC_MM / 1000.0 + 0.1 * rotation[:, 0]
    assert plane[:3] @ shifted + plane[3] == pytest.approx(0.0, abs=1e-6)


def test_process_laser_data_finds_line(processor):
    near = SimpleNamespace(point_cloud=_line_cloud(1.0), can_be_used=False, pts_in_line=[])
    far = SimpleNamespace(point_cloud=_line_cloud(5.0), can_be_used=True, pts_in_line=[])
    assert processor.process_laser_data([near, far]) == [True, False]
    assert near.can_be_used and not far.can_be_used
    np.testing.assert_allclose(near.pts_in_line[1], [1.0, 0.0], atol=1e-9)
    ys = sorted(p[1] for p in (near.pts_in_line[0], near.pts_in_line[2]))
    np.testing.assert_allclose(ys, [-0.3, 0.3], atol=1e-9)


def test_update_parameters_detect(processor):
    record = SimpleNamespace(point_cloud=_line_cloud(1.0), can_be_used=False, pts_in_line=[])
    assert processor.update_parameters_detect(0.07, 0.02, record, 0) is True
    assert record.can_be_used is True
    assert len(record.pts_in_line) == 3


def test_unconfigured_processor_raises():
    dp = DataProcessor()
    with pytest.raises(RuntimeError):
        dp.process_image_data([SimpleNamespace(corners=np.zeros((35, 2)))])
    with pytest.raises(RuntimeError):
        dp.process_laser_data([SimpleNamespace(point_cloud=_line_cloud(1.0))])


def test_record_without_corners_raises(processor):
    with pytest.raises(ValueError):
        processor.process_image_data([SimpleNamespace(corners=None)])