# planner/geom.py
from __future__ import annotations

import math
from typing import Callable, Iterable, NamedTuple, Optional, Sequence, Tuple

from .model import ANCHOR_EPS, TIP, Action, Pose, Section

Point = Tuple[float, float]
Scale = Callable[[float], float]

SNAP_45_BASE_ANGLES = (0.0, math.pi / 4, math.pi / 2, 3 * math.pi / 4)


def normalize_angle(theta: float) -> float:
    """Wrap an angle in radians to (-pi, pi]."""
    a = math.fmod(theta, 2 * math.pi)
    if a <= -math.pi:
        a += 2 * math.pi
    elif a > math.pi:
        a -= 2 * math.pi
    return a


def shortest_turn(from_heading: float, to_heading: float) -> float:
    """Signed turn in radians taking from_heading onto to_heading."""
    return normalize_angle(to_heading - from_heading)


def reference_point(pose: Pose, frame: str, tip_offset_px: float) -> Point:
    """Point shown to the user for a pose: wheel center, or the tip ahead of it."""
    if frame == TIP:
        return (pose.x + math.cos(pose.heading) * tip_offset_px,
                pose.y + math.sin(pose.heading) * tip_offset_px)
    return (pose.x, pose.y)


def pose_after_actions(start: Pose, actions: Iterable[Action], unit_to_px: Scale) -> Pose:
    """Integrate actions forward from start."""
    x, y, heading = start.x, start.y, start.heading
    for act in actions:
        if act.is_rotate:
            heading = normalize_angle(heading + math.radians(act.value))
        elif act.is_move:
            d = unit_to_px(act.value)
            x += math.cos(heading) * d
            y += math.sin(heading) * d
    return Pose(x, y, heading)


def pose_up_to_section(sections: Sequence[Section], initial_pose: Pose,
                       section_id: Optional[str], unit_to_px: Scale) -> Pose:
    """
    Start pose of section_id, found by integrating every earlier section's actions.

    With section_id None (or unknown) the pose after the whole path is returned.
    """
    pose = initial_pose
    for sec in sections:
        if sec.id == section_id:
            break
        pose = pose_after_actions(pose, sec.actions, unit_to_px)
    return pose


def last_pose_of_section(sections: Sequence[Section], section_id: Optional[str],
                         initial_pose: Pose, unit_to_px: Scale) -> Pose:
    """Anchor for appending a waypoint to section_id: its last waypoint, else its start."""
    start = pose_up_to_section(sections, initial_pose, section_id, unit_to_px)
    sec = next((s for s in sections if s.id == section_id), None)
    if sec is None or not sec.waypoints:
        return start
    x, y, heading = start.x, start.y, start.heading
    for wp in sec.waypoints:
        dx, dy = wp.x - x, wp.y - y
        if wp.heading is not None:
            heading = wp.heading
        elif math.hypot(dx, dy) > 1e-3:
            heading = math.atan2(dy, dx)
            if wp.reverse:
                heading = normalize_angle(heading + math.pi)
        x, y = wp.x, wp.y
    return Pose(x, y, heading)


class Projection(NamedTuple):
    center: Point
    heading: float
    distance_center: float
    reference_distance: float


def _snap_direction(dx: float, dy: float, base_angles: Sequence[float]) -> Tuple[float, float]:
    """Pick the base axis with the smallest perpendicular error; returns (angle, |projection|)."""
    best = None
    for base in base_angles:
        ux, uy = math.cos(base), math.sin(base)
        proj = dx * ux + dy * uy
        err = math.hypot(dx - ux * proj, dy - uy * proj)
        if best is None or err < best[0]:
            angle = base if proj >= 0 else base + math.pi
            best = (err, normalize_angle(angle), abs(proj))
    return best[1], best[2]


def project_point_with_reference(raw: Point, anchor: Pose, frame: str, reverse: bool,
                                 tip_offset_px: float, snap45: bool = False,
                                 base_angles: Sequence[float] = SNAP_45_BASE_ANGLES) -> Projection:
    """
    Turn a cursor point into the wheel-center waypoint it stands for.

    The travel vector always runs from the anchor's wheel center. In the tip
    frame the cursor marks where the tip should land, so the center is pulled
    back by tip_offset_px along the final facing heading.
    """
    dx, dy = raw[0] - anchor.x, raw[1] - anchor.y
    if math.hypot(dx, dy) < ANCHOR_EPS:
        heading = normalize_angle(anchor.heading + math.pi) if reverse else anchor.heading
        return Projection((anchor.x, anchor.y), heading, 0.0, 0.0)

    if snap45:
        travel, dist = _snap_direction(dx, dy, base_angles)
    else:
        travel, dist = math.atan2(dy, dx), math.hypot(dx, dy)

    facing = normalize_angle(travel + math.pi) if reverse else travel
    tx, ty = anchor.x + math.cos(travel) * dist, anchor.y + math.sin(travel) * dist
    if frame == TIP:
        cx = tx - math.cos(facing) * tip_offset_px
        cy = ty - math.sin(facing) * tip_offset_px
    else:
        cx, cy = tx, ty
    return Projection((cx, cy), facing, math.hypot(cx - anchor.x, cy - anchor.y), dist)


def snap_to_grid(point: Point, step_px: float) -> Point:
    if step_px <= 0:
        return point
    return (round(point[0] / step_px) * step_px, round(point[1] / step_px) * step_px)
