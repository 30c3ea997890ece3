# planner/sections.py
from __future__ import annotations

import logging
import math
import random
from dataclasses import replace
from typing import List, Optional, Sequence

from .actions import build_actions, points_from_actions
from .geom import Scale, pose_after_actions, pose_up_to_section
from .model import Pose, Section, Waypoint, uid

log = logging.getLogger(__name__)

SECTION_PALETTE = (
    "#0ea5e9", "#f97316", "#22c55e", "#a855f7", "#ef4444", "#eab308", "#14b8a6", "#ec4899",
)

# Distance under which a replayed point is taken to be the waypoint it came from
_MATCH_EPS_PX = 1e-2


def _refresh_headings(waypoints: Sequence[Waypoint], start: Pose, actions, unit_to_px: Scale):
    """Copy replayed headings onto the waypoints; x, y, reverse and frame stay as authored."""
    replayed = iter(points_from_actions(actions, start, unit_to_px))
    pending = next(replayed, None)
    heading = start.heading
    out = []
    for wp in waypoints:
        if pending is not None and math.hypot(pending.x - wp.x, pending.y - wp.y) < _MATCH_EPS_PX:
            heading = pending.heading
            pending = next(replayed, None)
        out.append(replace(wp, heading=heading))
    return tuple(out)


def _recalc_from(section: Section, start: Pose, unit_to_px: Scale, px_to_unit: Scale):
    stripped = [replace(wp, heading=None) for wp in section.waypoints]
    actions = tuple(build_actions(stripped, start, px_to_unit))
    end = pose_after_actions(start, actions, unit_to_px)
    updated = replace(
        section,
        waypoints=_refresh_headings(section.waypoints, start, actions, unit_to_px),
        actions=actions,
        start_heading=start.heading,
        end_heading=end.heading,
    )
    return updated, end


def recalc_sections(sections: Sequence[Section], initial_pose: Pose,
                    unit_to_px: Scale, px_to_unit: Scale) -> List[Section]:
    """
    Rebuild every section from its waypoints in one pass.

    Each section starts where the previous one ended. Cached headings are
    dropped before building so the geometry alone decides direction, then
    refreshed from the new actions. Waypoint coordinates are never touched.
    """
    pose = initial_pose
    out: List[Section] = []
    for sec in sections:
        updated, pose = _recalc_from(sec, pose, unit_to_px, px_to_unit)
        out.append(updated)
    log.debug("recalculated %d sections, end pose (%.2f, %.2f, %.4f)",
              len(out), pose.x, pose.y, pose.heading)
    return out


def recalc_section(section: Section, sections: Sequence[Section], initial_pose: Pose,
                   unit_to_px: Scale, px_to_unit: Scale) -> Section:
    """Rebuild one section from the pose the rest of the path hands it."""
    start = pose_up_to_section(sections, initial_pose, section.id, unit_to_px)
    return _recalc_from(section, start, unit_to_px, px_to_unit)[0]


def new_section(index: int, color: Optional[str] = None, name: Optional[str] = None) -> Section:
    """Empty visible section; index is zero-based and only picks the label and color."""
    if color is None:
        color = SECTION_PALETTE[index] if index < len(SECTION_PALETTE) else \
            "#%06x" % random.randint(0, 0xFFFFFF)
    return Section(id=uid("sec"), name=name or f"Section {index + 1}", color=color)
