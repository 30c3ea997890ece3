# planner/collision.py
from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, List, Sequence, Tuple

from .geom import Point
from .model import Obstacle

EPSILON = 1e-6


def _to_local(point: Point, rect: Obstacle) -> Tuple[float, float]:
    """Point in the rectangle's own frame (rotated back by -rotation)."""
    rad = -math.radians(rect.rotation_deg)
    dx, dy = point[0] - rect.x, point[1] - rect.y
    c, s = math.cos(rad), math.sin(rad)
    return (dx * c - dy * s, dx * s + dy * c)


def inflate(rect: Obstacle, padding: float) -> Obstacle:
    """Grow width and height by 2 * padding around the same center."""
    if padding <= 0:
        return rect
    return replace(rect, width=rect.width + 2 * padding, height=rect.height + 2 * padding)


def obstacle_corners(rect: Obstacle) -> List[Point]:
    """World-space corners, in edge order."""
    rad = math.radians(rect.rotation_deg)
    c, s = math.cos(rad), math.sin(rad)
    hw, hh = rect.width * 0.5, rect.height * 0.5
    local = [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)]
    return [(rect.x + lx * c - ly * s, rect.y + lx * s + ly * c) for lx, ly in local]


def point_in_rotated_rect(point: Point, rect: Obstacle) -> bool:
    lx, ly = _to_local(point, rect)
    hw, hh = rect.width * 0.5, rect.height * 0.5
    return -hw <= lx <= hw and -hh <= ly <= hh


def _lines_cross(p1: Point, p2: Point, p3: Point, p4: Point) -> bool:
    """Parametric segment test; near-parallel pairs never cross."""
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = p3
    x4, y4 = p4
    den = (x1 - x2) * (y3 - y4) - (y1 - y2) * (x3 - x4)
    if abs(den) < EPSILON:
        return False
    t = ((x1 - x3) * (y3 - y4) - (y1 - y3) * (x3 - x4)) / den
    u = -((x1 - x2) * (y1 - y3) - (y1 - y2) * (x1 - x3)) / den
    return -EPSILON <= t <= 1 + EPSILON and -EPSILON <= u <= 1 + EPSILON


def segment_intersects_obstacle(p1: Point, p2: Point, rect: Obstacle) -> bool:
    """True when the segment crosses any of the rectangle's four edges."""
    corners = obstacle_corners(rect)
    for i in range(4):
        if _lines_cross(p1, p2, corners[i], corners[(i + 1) % 4]):
            return True
    return False


def segment_hits_obstacles(p1: Point, p2: Point, obstacles: Iterable[Obstacle],
                           padding: float = 0.0) -> bool:
    """Endpoint inside, or boundary crossing, against each padded obstacle."""
    for obs in obstacles:
        eff = inflate(obs, padding)
        if point_in_rotated_rect(p1, eff) or point_in_rotated_rect(p2, eff):
            return True
        if segment_intersects_obstacle(p1, p2, eff):
            return True
    return False


def thick_path_collision(p1: Point, p2: Point, robot_width: float,
                         obstacles: Sequence[Obstacle], padding: float = 0.0) -> bool:
    """
    Straight-line travel of a body robot_width wide.

    Checks the centre line and the two edge lines offset by half the width
    along the segment normal. Rotation at either end is not covered here; see
    rotation_sweep_collision.
    """
    if segment_hits_obstacles(p1, p2, obstacles, padding):
        return True
    dx, dy = p2[0] - p1[0], p2[1] - p1[1]
    length = math.hypot(dx, dy)
    if length < EPSILON:
        return False
    half = robot_width * 0.5
    ox, oy = -dy / length * half, dx / length * half
    left = ((p1[0] + ox, p1[1] + oy), (p2[0] + ox, p2[1] + oy))
    right = ((p1[0] - ox, p1[1] - oy), (p2[0] - ox, p2[1] - oy))
    return (segment_hits_obstacles(left[0], left[1], obstacles, padding)
            or segment_hits_obstacles(right[0], right[1], obstacles, padding))


def distance_to_rect(point: Point, rect: Obstacle) -> float:
    """Euclidean distance to the rectangle, 0 inside it."""
    lx, ly = _to_local(point, rect)
    qx = max(abs(lx) - rect.width * 0.5, 0.0)
    qy = max(abs(ly) - rect.height * 0.5, 0.0)
    return math.hypot(qx, qy)


def rotation_sweep_collision(point: Point, obstacles: Iterable[Obstacle],
                             robot_width_px: float, robot_length_px: float,
                             padding: float = 0.0) -> bool:
    """In-place turn at point: the footprint's bounding circle against each padded obstacle."""
    radius = math.hypot(robot_width_px * 0.5, robot_length_px * 0.5)
    for obs in obstacles:
        if distance_to_rect(point, inflate(obs, padding)) < radius:
            return True
    return False
