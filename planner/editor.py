# planner/editor.py
"""
Editing commands over the section list.

Every command is a plain function that takes the current sections and
returns a new, fully recalculated list; nothing is mutated in place.
PlannerSession strings them together for an interactive host: it stops
playback before an edit, applies it, and records an undo step.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from .actions import points_from_actions
from .collision import rotation_sweep_collision, thick_path_collision
from .config import Scale
from .geom import (Point, Projection, last_pose_of_section, normalize_angle,
                   pose_up_to_section, project_point_with_reference)
from .history import History
from .model import ANGLE_EPS_RAD, CENTER, TIP, Action, Obstacle, Pose, RobotDims, Section, Waypoint
from .playback import FrameScheduler, PlaybackSimulator
from .sections import new_section, recalc_sections

log = logging.getLogger(__name__)


def _recalc(sections: Sequence[Section], initial_pose: Pose, scale: Scale) -> List[Section]:
    return recalc_sections(sections, initial_pose, scale.to_px, scale.to_unit)


def _map_section(sections: Sequence[Section], section_id: str,
                 fn: Callable[[Section], Section]) -> List[Section]:
    return [fn(s) if s.id == section_id else s for s in sections]


def _map_waypoint(sections: Sequence[Section], waypoint_id: str,
                  fn: Callable[[Waypoint], Optional[Waypoint]]) -> List[Section]:
    """Apply fn to the matching waypoint; fn returning None drops it."""
    out = []
    for sec in sections:
        if any(wp.id == waypoint_id for wp in sec.waypoints):
            pts = []
            for wp in sec.waypoints:
                if wp.id == waypoint_id:
                    wp = fn(wp)
                if wp is not None:
                    pts.append(wp)
            sec = replace(sec, waypoints=tuple(pts))
        out.append(sec)
    return out


def append_waypoint(sections, section_id, waypoint: Waypoint, initial_pose: Pose, scale: Scale):
    mod = _map_section(sections, section_id, lambda s: replace(s, waypoints=s.waypoints + (waypoint,)))
    return _recalc(mod, initial_pose, scale)


def insert_waypoint(sections, section_id, index: int, waypoint: Waypoint, initial_pose: Pose, scale: Scale):
    """Insert before index within the section; an out-of-range index appends."""
    def ins(s: Section) -> Section:
        pts = list(s.waypoints)
        pts.insert(max(0, min(index, len(pts))), waypoint)
        return replace(s, waypoints=tuple(pts))
    return _recalc(_map_section(sections, section_id, ins), initial_pose, scale)


def delete_waypoint(sections, waypoint_id: str, initial_pose: Pose, scale: Scale):
    return _recalc(_map_waypoint(sections, waypoint_id, lambda wp: None), initial_pose, scale)


def move_waypoint(sections, waypoint_id: str, pos: Point, initial_pose: Pose, scale: Scale):
    mod = _map_waypoint(sections, waypoint_id, lambda wp: replace(wp, x=float(pos[0]), y=float(pos[1])))
    return _recalc(mod, initial_pose, scale)


def toggle_reverse(sections, waypoint_id: str, initial_pose: Pose, scale: Scale):
    mod = _map_waypoint(sections, waypoint_id, lambda wp: replace(wp, reverse=not wp.reverse))
    return _recalc(mod, initial_pose, scale)


def remove_last_waypoint(sections, section_id: str, initial_pose: Pose, scale: Scale):
    mod = _map_section(sections, section_id, lambda s: replace(s, waypoints=s.waypoints[:-1]))
    return _recalc(mod, initial_pose, scale)


def add_section(sections, initial_pose: Pose, scale: Scale) -> Tuple[List[Section], str]:
    """Append an empty section; returns the new list and the new section id."""
    sec = new_section(len(sections))
    return _recalc(list(sections) + [sec], initial_pose, scale), sec.id


def delete_section(sections, section_id: str, initial_pose: Pose, scale: Scale):
    return _recalc([s for s in sections if s.id != section_id], initial_pose, scale)


def toggle_section_visibility(sections, section_id: str) -> List[Section]:
    """Visibility does not touch geometry, so no recalculation is needed."""
    return _map_section(sections, section_id, lambda s: replace(s, visible=not s.visible))


def update_section_actions(sections, section_id: str, actions: Sequence[Action],
                           initial_pose: Pose, scale: Scale):
    """Replace a section's actions; its waypoints are regenerated from them, then the path is rebuilt."""
    start = pose_up_to_section(sections, initial_pose, section_id, scale.to_px)
    pts = tuple(points_from_actions(actions, start, scale.to_px))
    mod = _map_section(sections, section_id, lambda s: replace(s, waypoints=pts, actions=tuple(actions)))
    return _recalc(mod, initial_pose, scale)


def set_initial_pose(sections, initial_pose: Pose, scale: Scale):
    return _recalc(sections, initial_pose, scale)


@dataclass(frozen=True)
class Candidate:
    """Projected waypoint under the cursor, with its collision verdict."""
    anchor: Pose
    projection: Projection
    waypoint: Waypoint
    blocked: bool


class PlannerSession:
    """
    Single-writer editing session: path state, undo history and the playback preview.

    Structural edits always stop a running preview first, since the preview
    animates a snapshot of the actions taken when it started.
    """

    def __init__(self, scale: Scale, robot: RobotDims = RobotDims(), initial_pose: Pose = Pose(120.0, 120.0, 0.0),
                 obstacles: Sequence[Obstacle] = (), collision_enabled: bool = True,
                 padding_px: float = 0.0, speed: float = 1.0,
                 scheduler: Optional[FrameScheduler] = None):
        self.scale = scale
        self.robot = robot
        self.obstacles = list(obstacles)
        self.collision_enabled = collision_enabled
        self.padding_px = padding_px
        self.reference_frame = CENTER
        self.reverse_mode = False
        self.snap45 = False
        self.scheduler = scheduler or FrameScheduler()
        first = new_section(0)
        self.history: History[Tuple[Tuple[Section, ...], Pose]] = History(((first,), initial_pose))
        self.current_section_id = first.id
        self.player = PlaybackSimulator(self.scheduler, initial_pose, scale.to_px, speed)
        self.dragging: Optional[str] = None
        self._drag_origin: Optional[Point] = None

    # State access

    @property
    def sections(self) -> Tuple[Section, ...]:
        return self.history.present[0]

    @property
    def initial_pose(self) -> Pose:
        return self.history.present[1]

    @property
    def current_section(self) -> Optional[Section]:
        return next((s for s in self.sections if s.id == self.current_section_id), None)

    @property
    def tip_offset_px(self) -> float:
        return self.scale.to_px(self.robot.wheel_offset)

    def _commit(self, sections: Sequence[Section], initial_pose: Optional[Pose] = None) -> None:
        pose = initial_pose or self.initial_pose
        if not sections:
            sections = [new_section(0)]
        self.history.set((tuple(sections), pose))
        self.player.home_pose = pose
        if self.current_section is None and self.sections:
            self.current_section_id = self.sections[-1].id

    def _edit(self, fn, *args) -> None:
        self.player.stop()
        self._commit(fn(self.sections, *args, self.initial_pose, self.scale))

    # Drawing

    def anchor(self) -> Pose:
        return last_pose_of_section(self.sections, self.current_section_id, self.initial_pose, self.scale.to_px)

    def candidate_waypoint(self, raw: Point) -> Candidate:
        anchor = self.anchor()
        proj = project_point_with_reference(raw, anchor, self.reference_frame, self.reverse_mode,
                                            self.tip_offset_px, self.snap45)
        wp = Waypoint(proj.center[0], proj.center[1], reverse=self.reverse_mode,
                      reference_frame=self.reference_frame)
        return Candidate(anchor, proj, wp, self._blocked(anchor, proj))

    def _blocked(self, anchor: Pose, proj: Projection) -> bool:
        if not self.collision_enabled or not self.obstacles or proj.distance_center <= 0:
            return False
        w_px = self.scale.to_px(self.robot.width)
        l_px = self.scale.to_px(self.robot.length)
        if abs(normalize_angle(proj.heading - anchor.heading)) > ANGLE_EPS_RAD:
            if rotation_sweep_collision(anchor.pos, self.obstacles, w_px, l_px, self.padding_px):
                return True
        return thick_path_collision(anchor.pos, proj.center, w_px, self.obstacles, self.padding_px)

    def place_waypoint(self, raw: Point) -> Optional[Waypoint]:
        """Append the projected waypoint to the current section unless it is vetoed."""
        if self.current_section is None:
            return None
        cand = self.candidate_waypoint(raw)
        if cand.projection.distance_center <= 0:
            return None
        if cand.blocked:
            log.info("waypoint at (%.1f, %.1f) blocked by an obstacle", *cand.projection.center)
            return None
        self._edit(append_waypoint, self.current_section_id, cand.waypoint)
        return cand.waypoint

    # Structural edits

    def insert_waypoint(self, index: int, pos: Point) -> None:
        wp = Waypoint(float(pos[0]), float(pos[1]), reverse=self.reverse_mode, reference_frame=self.reference_frame)
        self._edit(insert_waypoint, self.current_section_id, index, wp)

    def delete_waypoint(self, waypoint_id: str) -> None:
        self._edit(delete_waypoint, waypoint_id)

    def move_waypoint(self, waypoint_id: str, pos: Point) -> None:
        self._edit(move_waypoint, waypoint_id, pos)

    def begin_drag(self, waypoint_id: str, pos: Point) -> None:
        self.dragging = waypoint_id
        self._drag_origin = (float(pos[0]), float(pos[1]))

    def end_drag(self, pos: Point) -> bool:
        """Drop the dragged waypoint at pos; a release where it was grabbed records nothing."""
        waypoint_id, origin = self.dragging, self._drag_origin
        self.dragging = self._drag_origin = None
        if waypoint_id is None or origin == (float(pos[0]), float(pos[1])):
            return False
        self.move_waypoint(waypoint_id, pos)
        return True

    def toggle_reverse(self, waypoint_id: Optional[str] = None) -> None:
        """Flip a waypoint's direction, or the drawing mode when no waypoint is given."""
        if waypoint_id is None:
            self.reverse_mode = not self.reverse_mode
            return
        self._edit(toggle_reverse, waypoint_id)

    def remove_last_waypoint(self) -> None:
        self._edit(remove_last_waypoint, self.current_section_id)

    def add_section(self) -> str:
        self.player.stop()
        sections, sid = add_section(self.sections, self.initial_pose, self.scale)
        self._commit(sections)
        self.current_section_id = sid
        return sid

    def delete_section(self, section_id: str) -> None:
        """Remove a section; removing the last one leaves a fresh empty section in the same undo step."""
        self._edit(delete_section, section_id)

    def toggle_section_visibility(self, section_id: str) -> None:
        self.player.stop()
        self._commit(toggle_section_visibility(self.sections, section_id))

    def update_section_actions(self, section_id: str, actions: Sequence[Action]) -> None:
        self._edit(update_section_actions, section_id, actions)

    def set_initial_pose(self, pose: Pose) -> None:
        self.player.stop()
        self._commit(set_initial_pose(self.sections, pose, self.scale), pose)

    def select_section(self, section_id: str) -> None:
        if any(s.id == section_id for s in self.sections):
            self.current_section_id = section_id

    def cycle_reference_frame(self) -> str:
        self.reference_frame = TIP if self.reference_frame == CENTER else CENTER
        return self.reference_frame

    def load(self, sections: Sequence[Section], initial_pose: Pose) -> None:
        """Adopt a loaded path as a fresh history."""
        self.player.stop()
        fresh = _recalc(sections, initial_pose, self.scale) or [new_section(0)]
        self.history.reset((tuple(fresh), initial_pose))
        self.player.home_pose = initial_pose
        self.current_section_id = fresh[-1].id

    # History

    def _restore(self, state) -> None:
        self.player.stop()
        self.player.home_pose = state[1]
        if self.current_section is None and self.sections:
            self.current_section_id = self.sections[-1].id

    def undo(self) -> None:
        self._restore(self.history.undo())

    def redo(self) -> None:
        self._restore(self.history.redo())

    # Playback

    def play_mission(self, reverse: bool = False) -> None:
        if reverse:
            self.player.start_mission_reverse(self.sections, self.initial_pose)
        else:
            self.player.start_mission(self.sections, self.initial_pose)

    def play_section(self, reverse: bool = False) -> None:
        if reverse:
            self.player.start_section_reverse(self.sections, self.current_section_id, self.initial_pose)
        else:
            self.player.start_section(self.sections, self.current_section_id, self.initial_pose)
