import numpy as np
import pytest

from laser_calib.lines import (
    LineSegment,
    cluster_points,
    find_end_points,
    fit_line_ransac,
    implicit_line,
    point_distance,
    segment_lines,
)


def _l_shape():
    xs = np.arange(20) * 0.05
    horizontal = np.column_stack([xs, np.zeros(20), np.zeros(20)])
    ys = 0.05 + np.arange(20) * 0.05
    vertical = np.column_stack([np.ones(20), ys, np.zeros(20)])
    return np.vstack([horizontal, vertical])


def test_point_distance_value():
    assert point_distance((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)


def test_point_distance_symmetric_and_zero():
    a, b = (1.0, -2.0, 0.5), (0.3, 0.7, -1.0)
    assert point_distance(a, b) == pytest.approx(point_distance(b, a))
    assert point_distance(a, a) == 0.0


def test_cluster_points_separates_groups():
    group_a = [(0.05 * i, 0.0, 0.0) for i in range(5)]
    group_b = [(5.0 + 0.05 * i, 0.0, 0.0) for i in range(4)]
    clusters = cluster_points(group_a + group_b, 0.07)
    assert len(clusters) == 2
    assert sorted(clusters[0]) == list(range(5))
    assert sorted(clusters[1]) == list(range(5, 9))
    assert clusters[0][0] == 0
    assert clusters[1][0] == 5


def test_cluster_points_covers_every_index_once():
    rng = np.random.default_rng(3)
    pts = rng.uniform(0, 2, size=(50, 3))
    clusters = cluster_points(pts, 0.3)
    flat = [i for cluster in clusters for i in cluster]
    assert sorted(flat) == list(range(50))


def test_cluster_points_empty():
    assert cluster_points([], 1.0) == []


def test_fit_line_ransac_rejects_outlier():
    pts = [(0.1 * i, 0.0, 0.0) for i in range(10)] + [(0.5, 3.0, 0.0)]
    inliers, coefficients = fit_line_ransac(pts, 0.01, 1000, rng=0)
    assert sorted(inliers.tolist()) == list(range(10))
    assert abs(coefficients[3]) == pytest.approx(1.0)
    assert np.linalg.norm(coefficients[3:6]) == pytest.approx(1.0)


def test_fit_line_ransac_too_few_points():
    inliers, coefficients = fit_line_ransac([(1.0, 1.0, 0.0)], 0.01, 100, rng=0)
    assert inliers.size == 0
    assert coefficients.size == 0


def test_segment_lines_finds_both_edges():
    segments = segment_lines(_l_shape(), 0.01, 1000, 3, 0.01, rng=1)
    assert len(segments) == 2
    assert sum(len(s.points) for s in segments) == 40
    axes = sorted(int(np.argmax(np.abs(s.coefficients[3:5]))) for s in segments)
    assert axes == [0, 1]


def test_segment_lines_respects_min_point_num():
    pts = [(0.1 * i, 0.0, 0.0) for i in range(5)]
    assert segment_lines(pts, 0.01, 100, 10, 0.01, rng=0) == []


def test_find_end_points_returns_extremes():
    pts = [(0.2, 0.0, 0.0), (0.9, 0.0, 0.0), (0.0, 0.0, 0.0), (0.5, 0.0, 0.0)]
    first, second = find_end_points(pts)
    xs = sorted([first[0], second[0]])
    assert xs == [0.0, 0.9]


def test_find_end_points_empty_raises():
    with pytest.raises(ValueError):
        find_end_points([])


def test_line_segment_end_points():
    segment = LineSegment(np.array([[0.0, 1.0, 0.0], [0.0, 2.0, 0.0], [0.0, 1.5, 0.0]]),
                          np.zeros(6))
    ends = sorted(p[1] for p in segment.end_points)
    assert ends == [1.0, 2.0]


def test_implicit_line_contains_model_points():
    coefficients = (1.0, 2.0, 0.0, 3.0, 4.0, 0.0)
    a, b, c = implicit_line(coefficients)
    for t in (-1.0, 0.0, 2.5):
        x, y = 1.0 + 3.0 * t, 2.0 + 4.0 * t
        assert a * x + b * y + c == pytest.approx(0.0)


def test_implicit_line_vertical():
    a, b, c = implicit_line((2.0, 0.0, 0.0, 0.0, 1.0, 0.0))
    assert a * 2.0 + b * 7.0 + c == pytest.approx(0.0)
    assert np.isfinite([a, b, c]).all()


def test_implicit_line_too_short():
    with pytest.raises(ValueError):
        implicit_line((1.0, 2.0))