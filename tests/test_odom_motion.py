import math

import numpy as np
import pytest

from laser_calib.odom.data import LaserData, OdomData
from laser_calib.odom.motion import estimate_laser_motion, estimate_odom_motion


def _rot(angle):
    c, s = math.cos(angle), math.sin(angle)
    return np.array([[c, -s], [s, c]])


def _pair(last_long_angle, alpha, last_corner, shift):
    last_long = _rot(last_long_angle) @ np.array([1.0, 0.0])
    last_short = _rot(last_long_angle) @ np.array([0.0, 1.0])
    motion = _rot(alpha)
    last = LaserData(intersection_point=last_corner, long_edge_direction=last_long,
                     short_edge_direction=last_short)
    current = LaserData(intersection_point=motion @ np.asarray(last_corner) + shift,
                        long_edge_direction=motion @ last_long,
                        short_edge_direction=motion @ last_short)
    return last, current


@pytest.mark.parametrize("alpha", [0.3, -0.4, 1.2])
def test_laser_motion_recovers_rotation_and_translation(alpha):
    shift = np.array([0.25, -0.15])
    last, current = _pair(0.0, alpha, [1.0, 2.0], shift)
    estimate_laser_motion([last, current])
    assert current.last_yaw_in_current == pytest.approx(alpha)
    assert np.allclose(current.last2current_rotation, _rot(alpha))
    assert np.allclose(current.last2current_xy, shift)


def test_laser_motion_with_tilted_reference_direction():
    shift = np.array([-0.3, 0.4])
    last, current = _pair(0.5, 0.3, [2.0, -1.0], shift)
    estimate_laser_motion([last, current])
    assert current.last_yaw_in_current == pytest.approx(0.3)
    assert np.allclose(current.last2current_xy, shift)


def test_first_frame_is_left_untouched():
    last, current = _pair(0.0, 0.2, [1.0, 1.0], np.array([0.1, 0.1]))
    estimate_laser_motion([last, current])
    assert last.last_yaw_in_current == 0.0
    assert np.allclose(last.last2current_rotation, np.eye(2))


def test_unusable_frames_are_skipped():
    last, current = _pair(0.0, 0.2, [1.0, 1.0], np.array([0.1, 0.1]))
    last.can_be_used = False
    estimate_laser_motion([last, current])
    assert current.last_yaw_in_current == 0.0
    assert np.allclose(current.last2current_xy, np.zeros(2))

    last, current = _pair(0.0, 0.2, [1.0, 1.0], np.array([0.1, 0.1]))
    current.can_be_used = False
    estimate_laser_motion([last, current])
    assert np.allclose(current.last2current_rotation, np.eye(2))


def test_odom_motion_maps_last_position_into_current_frame():
    poses = [(0.0, 0.0, 0.0), (0.5, 0.2, 0.4), (1.1, -0.3, -0.2)]
    odoms = [OdomData.from_pose(*pose) for pose in poses]
    estimate_odom_motion(odoms)
    for last, current in zip(odoms, odoms[1:]):
        restored = current.odom_pose_yaw_rotation @ current.last2current_xy + current.odom_pose_xy
        assert np.allclose(restored, last.odom_pose_xy)
        yaw = math.atan2(current.last2current_rotation[1, 0], current.last2current_rotation[0, 0])
        assert yaw == pytest.approx(last.current_yaw - current.current_yaw)


def test_odom_motion_leaves_first_record_alone():
    odoms = [OdomData.from_pose(1.0, 2.0, 0.3), OdomData.from_pose(2.0, 2.0, 0.3)]
    estimate_odom_motion(odoms)
    assert np.allclose(odoms[0].last2current_xy, np.zeros(2))
    assert np.allclose(odoms[1].last2current_rotation, np.eye(2))