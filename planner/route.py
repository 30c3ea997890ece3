# planner/route.py
"""Rendering and readout data derived from a recalculated path."""
from __future__ import annotations

import math
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .geom import Point, Scale
from .model import POS_EPS_PX, Pose, Section
from .sections import recalc_sections

DEFAULT_SEGMENT_COLOR = "#888888"

TURN = "TURN"
MOVE = "MOVE"


@dataclass(frozen=True)
class PathSegment:
    start: Point
    end: Point
    color: str
    section_id: Optional[str]
    waypoint_id: Optional[str]
    is_reverse: bool


@dataclass(frozen=True)
class Instruction:
    kind: str
    value: float
    direction: str
    section_id: Optional[str] = None
    waypoint_id: Optional[str] = None


@dataclass(frozen=True)
class Route:
    sections: Tuple[Section, ...]
    segments: Tuple[PathSegment, ...]
    instructions: Tuple[Instruction, ...]
    poses: Tuple[Pose, ...]


def path_segments(sections: Sequence[Section], initial_pose: Pose,
                  include_hidden: bool = False) -> List[PathSegment]:
    """
    One segment per travelled waypoint, walking the whole path from the start pose.

    A segment always runs from wherever the path currently is to the target
    waypoint and takes the target's section color, so deleting a waypoint
    reconnects its neighbours with a single segment. Hidden sections still
    advance the position but draw nothing unless include_hidden is set.
    """
    segs: List[PathSegment] = []
    x, y = initial_pose.x, initial_pose.y
    for sec in sections:
        for wp in sec.waypoints:
            if math.hypot(wp.x - x, wp.y - y) >= POS_EPS_PX and (sec.visible or include_hidden):
                segs.append(PathSegment((x, y), (wp.x, wp.y), sec.color or DEFAULT_SEGMENT_COLOR,
                                        sec.id, wp.id, wp.reverse))
            x, y = wp.x, wp.y
    return segs


def route_instructions(sections: Sequence[Section]) -> List[Instruction]:
    """TURN/MOVE readout of each section's actions; turns are signed, moves unsigned."""
    out: List[Instruction] = []
    for sec in sections:
        for act in sec.actions:
            if act.is_rotate:
                out.append(Instruction(TURN, act.value, "right" if act.value >= 0 else "left",
                                       sec.id, act.waypoint_id))
            elif act.is_move:
                out.append(Instruction(MOVE, abs(act.value), "reverse" if act.value < 0 else "forward",
                                       sec.id, act.waypoint_id))
    return out


def waypoint_poses(sections: Sequence[Section], initial_pose: Pose) -> List[Pose]:
    """
    Initial pose followed by the pose reached at every waypoint, hidden ones included.

    Expects recalculated sections, whose waypoints carry their arrival heading.
    """
    poses = [initial_pose]
    for sec in sections:
        for wp in sec.waypoints:
            heading = poses[-1].heading if wp.heading is None else wp.heading
            poses.append(Pose(wp.x, wp.y, heading))
    return poses


def calculate_route(sections: Sequence[Section], initial_pose: Pose,
                    unit_to_px: Scale, px_to_unit: Scale) -> Route:
    """Recalculate the path, then derive segments, instructions and poses from it."""
    fresh = recalc_sections(sections, initial_pose, unit_to_px, px_to_unit)
    return Route(
        sections=tuple(fresh),
        segments=tuple(path_segments(fresh, initial_pose)),
        instructions=tuple(route_instructions(fresh)),
        poses=tuple(waypoint_poses(fresh, initial_pose)),
    )


def format_instruction(instr: Instruction, unit: str = "cm") -> str:
    if instr.kind == TURN:
        return f"TURN {'RIGHT' if instr.value >= 0 else 'LEFT'} {abs(instr.value):.1f}°"
    if instr.kind == MOVE:
        return f"MOVE {'REVERSE' if instr.direction == 'reverse' else 'FORWARD'} {instr.value:.1f} {unit}"
    return f"UNKNOWN: {instr!r}"


def group_by_section(instructions: Sequence[Instruction]) -> Dict[str, List[Instruction]]:
    groups: Dict[str, List[Instruction]] = OrderedDict()
    for instr in instructions:
        groups.setdefault(instr.section_id or "default", []).append(instr)
    return groups


def total_path_length(instructions: Sequence[Instruction]) -> float:
    return sum(i.value for i in instructions if i.kind == MOVE)


def total_rotation(instructions: Sequence[Instruction]) -> float:
    """Sum of absolute turn angles in degrees."""
    return sum(abs(i.value) for i in instructions if i.kind == TURN)
