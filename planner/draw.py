# planner/draw.py
from __future__ import annotations

import math
from typing import Sequence, Tuple

import pygame
from pygame import gfxdraw

from .collision import inflate, obstacle_corners
from .config import (BG_COLOR, BLOCKED_COLOR, GHOST_COLOR, GRID_COLOR, OBSTACLE_COLOR,
                     OBSTACLE_PAD_COLOR, ROBOT_COLOR, TEXT_COLOR, WHITE)
from .geom import reference_point
from .model import TIP, Obstacle, Pose, Section
from .route import PathSegment

Color = Tuple[int, int, int]


def hex_to_rgb(value: str, default: Color = (136, 136, 136)) -> Color:
    v = (value or "").lstrip("#")
    if len(v) != 6:
        return default
    try:
        return (int(v[0:2], 16), int(v[2:4], 16), int(v[4:6], 16))
    except ValueError:
        return default


def _aa_polygon(surface, color, pts, width=0):
    """Anti-aliased polygon outline, filled when width is 0."""
    pts = [(int(round(x)), int(round(y))) for x, y in pts]
    gfxdraw.aapolygon(surface, pts, color)
    if width == 0:
        gfxdraw.filled_polygon(surface, pts, color)
    else:
        pygame.draw.polygon(surface, color, pts, width)


def robot_corners(pose: Pose, width_px: float, length_px: float, wheel_offset_px: float):
    """Footprint corners; the front edge sits wheel_offset_px ahead of the wheel axis."""
    c, s = math.cos(pose.heading), math.sin(pose.heading)
    front = wheel_offset_px
    back = wheel_offset_px - length_px
    hw = width_px * 0.5
    local = [(back, -hw), (front, -hw), (front, hw), (back, hw)]
    return [(pose.x + lx * c - ly * s, pose.y + lx * s + ly * c) for lx, ly in local]


def draw_grid(surface, grid_size_px):
    """Draw field grid lines."""
    if grid_size_px < 4:
        return
    w, h = surface.get_width(), surface.get_height()
    step = int(grid_size_px)
    for x in range(0, w, step):
        pygame.draw.line(surface, GRID_COLOR, (x, 0), (x, h))
    for y in range(0, h, step):
        pygame.draw.line(surface, GRID_COLOR, (0, y), (w, y))


def draw_obstacles(surface, obstacles: Sequence[Obstacle], padding_px: float = 0.0):
    for obs in obstacles:
        if padding_px > 0:
            pygame.draw.polygon(surface, OBSTACLE_PAD_COLOR, obstacle_corners(inflate(obs, padding_px)), 1)
        _aa_polygon(surface, OBSTACLE_COLOR, obstacle_corners(obs))


def _dashed_line(surface, color, a, b, width=3, dash=10):
    length = math.hypot(b[0] - a[0], b[1] - a[1])
    if length <= 0:
        return
    n = max(1, int(length // dash))
    for i in range(0, n, 2):
        t0, t1 = i / n, min(1.0, (i + 1) / n)
        p0 = (a[0] + (b[0] - a[0]) * t0, a[1] + (b[1] - a[1]) * t0)
        p1 = (a[0] + (b[0] - a[0]) * t1, a[1] + (b[1] - a[1]) * t1)
        pygame.draw.line(surface, color, p0, p1, width)


def draw_segments(surface, segments: Sequence[PathSegment]):
    """Path segments in their section color; reverse travel is dashed."""
    for seg in segments:
        color = hex_to_rgb(seg.color)
        if seg.is_reverse:
            _dashed_line(surface, color, seg.start, seg.end)
        else:
            pygame.draw.line(surface, color, seg.start, seg.end, 3)


def draw_waypoints(surface, sections: Sequence[Section], current_id=None, radius=5):
    for sec in sections:
        if not sec.visible:
            continue
        color = hex_to_rgb(sec.color)
        for wp in sec.waypoints:
            pygame.draw.circle(surface, color, (int(wp.x), int(wp.y)), radius)
            if sec.id == current_id:
                pygame.draw.circle(surface, WHITE, (int(wp.x), int(wp.y)), radius, 1)


def draw_chevron(surface, pose: Pose, length=20, offset=45, arm=10, color=WHITE):
    """Draw directional arrow chevron."""
    h = pose.heading
    tip = (pose.x + length * math.cos(h), pose.y + length * math.sin(h))
    l = h - math.radians(offset)
    r = h + math.radians(offset)
    left = (tip[0] - arm * math.cos(l), tip[1] - arm * math.sin(l))
    right = (tip[0] - arm * math.cos(r), tip[1] - arm * math.sin(r))
    pygame.draw.line(surface, color, tip, left, 3)
    pygame.draw.line(surface, color, tip, right, 3)


def draw_robot(surface, pose: Pose, width_px, length_px, wheel_offset_px, color=ROBOT_COLOR, outline_only=False):
    """Robot footprint, wheel-axis dot and heading chevron."""
    pts = robot_corners(pose, width_px, length_px, wheel_offset_px)
    _aa_polygon(surface, color, pts, 2 if outline_only else 0)
    pygame.draw.circle(surface, TEXT_COLOR, (int(pose.x), int(pose.y)), 3)
    draw_chevron(surface, pose, length=max(12, wheel_offset_px), color=TEXT_COLOR if outline_only else WHITE)


def draw_ghost(surface, anchor: Pose, candidate_pose: Pose, frame: str, tip_offset_px: float,
               width_px, length_px, blocked: bool):
    """Preview of the next waypoint: travel line, footprint and the reference point."""
    color = BLOCKED_COLOR if blocked else GHOST_COLOR
    _dashed_line(surface, color, anchor.pos, candidate_pose.pos, width=1, dash=6)
    draw_robot(surface, candidate_pose, width_px, length_px, tip_offset_px, color=color, outline_only=True)
    if frame == TIP:
        ref = reference_point(candidate_pose, frame, tip_offset_px)
        pygame.draw.circle(surface, color, (int(ref[0]), int(ref[1])), 4, 1)


def draw_lines(surface, font, lines, pos=(8, 8), color=TEXT_COLOR):
    x, y = pos
    for line in lines:
        surface.blit(font.render(line, True, color), (x, y))
        y += font.get_linesize()


def fill_background(surface):
    surface.fill(BG_COLOR)
