# planner/actions.py
from __future__ import annotations

import math
from typing import List, Sequence

from .geom import Scale, normalize_angle, shortest_turn
from .model import ANGLE_EPS_DEG, POS_EPS_PX, VALUE_EPS, Action, Pose, Waypoint


def build_actions(waypoints: Sequence[Waypoint], start: Pose, px_to_unit: Scale) -> List[Action]:
    """
    Convert an ordered waypoint list into rotate/move actions.

    Each waypoint turns the robot toward it (or away from it when reversing)
    and drives the straight-line distance. A waypoint that coincides with the
    running position produces nothing but still becomes the running position.

    Args:
        waypoints: wheel-center points in pixels.
        start: pose the section begins from.
        px_to_unit: pixel to physical unit conversion.

    Returns:
        Action list; values are left unrounded.
    """
    actions: List[Action] = []
    x, y, heading = start.x, start.y, start.heading
    for wp in waypoints:
        dx, dy = wp.x - x, wp.y - y
        dist_px = math.hypot(dx, dy)
        if dist_px < POS_EPS_PX:
            x, y = wp.x, wp.y
            continue

        if wp.heading is not None:
            target = normalize_angle(wp.heading)
        else:
            target = math.atan2(dy, dx)
            if wp.reverse:
                target = normalize_angle(target + math.pi)

        turn_deg = math.degrees(shortest_turn(heading, target))
        if abs(turn_deg) > ANGLE_EPS_DEG:
            actions.append(Action.rotate(turn_deg, wp.id))

        dist = px_to_unit(dist_px)
        if abs(dist) > VALUE_EPS:
            actions.append(Action.move(-dist if wp.reverse else dist, wp.reference_frame, wp.id))

        x, y, heading = wp.x, wp.y, target
    return actions


def points_from_actions(actions: Sequence[Action], start: Pose, unit_to_px: Scale) -> List[Waypoint]:
    """Replay actions and emit one waypoint per move, at the pose reached after it."""
    points: List[Waypoint] = []
    x, y, heading = start.x, start.y, start.heading
    for act in actions:
        if act.is_rotate:
            heading = normalize_angle(heading + math.radians(act.value))
        elif act.is_move:
            d = unit_to_px(act.value)
            x += math.cos(heading) * d
            y += math.sin(heading) * d
            points.append(Waypoint(x, y, reverse=act.value < 0,
                                   reference_frame=act.reference_frame, heading=heading))
    return points
