"""Point-cloud line extraction: clustering, RANSAC line fitting and end points."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

import numpy as np
from scipy.spatial import cKDTree

_RANSAC_PROBABILITY = 0.99
_EPS = np.finfo(float).eps


def _as_points(points) -> np.ndarray:
    """Return the points as a float (N, 3) array; planar points get z = 0."""
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] not in (2, 3):
        raise ValueError("points must be an (N, 2) or (N, 3) array")
    if arr.shape[1] == 2:
        arr = np.column_stack([arr, np.zeros(len(arr))])
    return arr


@dataclass(eq=False)
class LineSegment:
    """Inlier points of a fitted line and its model: a point followed by a direction."""

    points: np.ndarray
    coefficients: np.ndarray

    @property
    def end_points(self) -> tuple[np.ndarray, np.ndarray]:
        return find_end_points(self.points)


def point_distance(a, b) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(np.subtract(a, b, dtype=float)))


def cluster_points(points, radius: float) -> list[list[int]]:
    """Group point indices into clusters of points chained within ``radius``.

    Clusters are grown breadth first, neighbours visited nearest first, and are
    returned in the order of their lowest-index seed point.
    """
    pts = _as_points(points)
    if len(pts) == 0:
        return []
    tree = cKDTree(pts)
    processed = [False] * len(pts)
    clusters: list[list[int]] = []
    for start in range(len(pts)):
        if processed[start]:
            continue
        cluster: list[int] = []
        queue = deque([start])
        while queue:
            idx = queue.popleft()
            if processed[idx]:
                continue
            processed[idx] = True
            cluster.append(idx)
            neighbours = tree.query_ball_point(pts[idx], radius)
            neighbours.sort(key=lambda j: (float(np.sum((pts[j] - pts[idx]) ** 2)), j))
            queue.extend(j for j in neighbours if not processed[j])
        clusters.append(cluster)
    return clusters


def _line_inliers(pts: np.ndarray, origin: np.ndarray, direction: np.ndarray,
                  threshold: float) -> np.ndarray:
    cross = np.cross(pts - origin, direction)
    sq_dist = np.sum(cross ** 2, axis=1) / float(np.dot(direction, direction))
    return np.flatnonzero(sq_dist < threshold * threshold)


def fit_line_ransac(points, distance_threshold: float, max_iterations: int, rng=None):
    """Fit one 3D line with RANSAC followed by a least-squares refinement.

    Returns ``(inlier_indices, coefficients)`` where the coefficients are the
    line's point (x, y, z) and unit direction (dx, dy, dz).  When no line can
    be fitted both arrays are empty.
    """
    pts = _as_points(points)
    empty = (np.empty(0, dtype=int), np.empty(0))
    if len(pts) < 2:
        return empty
    rng = np.random.default_rng(rng)
    count = len(pts)
    best: np.ndarray | None = None
    needed = float(max_iterations)
    iterations = 0
    while iterations < needed and iterations < max_iterations:
        iterations += 1
        first, second = rng.choice(count, size=2, replace=False)
        direction = pts[second] - pts[first]
        if not np.any(direction):
            continue
        inliers = _line_inliers(pts, pts[first], direction, distance_threshold)
        if best is None or len(inliers) > len(best):
            best = inliers
            ratio = len(inliers) / count
            p_no_outliers = min(max(1.0 - ratio ** 2, _EPS), 1.0 - _EPS)
            needed = math.log(1.0 - _RANSAC_PROBABILITY) / math.log(p_no_outliers)
    if best is None or len(best) == 0:
        return empty
    if len(best) < 2:
        return best, np.concatenate([pts[best[0]], np.zeros(3)])
    selected = pts[best]
    centroid = selected.mean(axis=0)
    covariance = np.cov((selected - centroid).T, bias=True)
    _, vectors = np.linalg.eigh(covariance)
    direction = vectors[:, -1]
    direction = direction / np.linalg.norm(direction)
    inliers = _line_inliers(pts, centroid, direction, distance_threshold)
    return inliers, np.concatenate([centroid, direction])


def segment_lines(points, distance_threshold: float, max_iterations: int,
                  min_point_num: int, min_proportion: float, rng=None) -> list[LineSegment]:
    """Repeatedly fit and remove lines until too few points remain."""
    remaining = _as_points(points)
    rng = np.random.default_rng(rng)
    total = len(remaining)
    segments: list[LineSegment] = []
    while len(remaining) > total * min_proportion and len(remaining) > min_point_num:
        inliers, coefficients = fit_line_ransac(remaining, distance_threshold, max_iterations, rng)
        if len(inliers) == 0:
            break
        mask = np.zeros(len(remaining), dtype=bool)
        mask[inliers] = True
        segments.append(LineSegment(remaining[mask], coefficients))
        remaining = remaining[~mask]
    return segments


def _farthest(pts: np.ndarray, anchor: np.ndarray) -> np.ndarray:
    distances = np.linalg.norm(pts - anchor, axis=1)
    idx = int(np.argmax(distances))
    return pts[idx].copy() if distances[idx] > 0.0 else anchor.copy()


def find_end_points(points) -> tuple[np.ndarray, np.ndarray]:
    """Return the two extreme points of a point set lying along a line."""
    pts = _as_points(points)
    if len(pts) == 0:
        raise ValueError("cannot find end points of an empty point set")
    first = _farthest(pts, pts[0])
    second = _farthest(pts, first)
    return first, second


def implicit_line(coefficients) -> np.ndarray:
    """Convert a point/direction line model to planar ``a*x + b*y + c = 0`` form."""
    values = np.asarray(coefficients, dtype=float).ravel()
    if values.size < 5:
        raise ValueError("line coefficients need a point and a direction")
    x0, y0, _, dx, dy = values[:5]
    return np.array([dy, -dx, dx * y0 - dy * x0])