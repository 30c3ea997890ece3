# planner/playback.py
from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Sequence

from .geom import Scale, normalize_angle, pose_after_actions, pose_up_to_section
from .model import ANGLE_EPS_RAD, POS_EPS_PX, VALUE_EPS, Action, Pose, Section

log = logging.getLogger(__name__)

ROT_STEP_DEG = 5.0          # per frame at speed 1
LINEAR_UNITS_PER_S = 40.0   # physical units per second at speed 1
FRAME_RATE = 60

IDLE = "idle"
ROTATING = "rotating"
MOVING = "moving"


class FrameScheduler:
    """
    Per-frame callback queue pumped by the host loop.

    Callbacks requested while a frame runs are deferred to the next frame,
    the same contract as a browser animation-frame request.
    """

    def __init__(self):
        self._pending: Dict[int, Callable[[], None]] = {}
        self._next_handle = 1

    def request(self, callback: Callable[[], None]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._pending[handle] = callback
        return handle

    def cancel(self, handle: Optional[int]) -> None:
        if handle is not None:
            self._pending.pop(handle, None)

    def run_pending(self) -> int:
        """Run one frame's worth of callbacks; returns how many ran."""
        batch, self._pending = self._pending, {}
        for cb in batch.values():
            cb()
        return len(batch)

    def __len__(self) -> int:
        return len(self._pending)


def reversed_actions(actions: Sequence[Action]) -> List[Action]:
    """Undo an action list: reverse order, negate every value, drop sub-epsilon entries."""
    out: List[Action] = []
    for act in reversed(actions):
        if abs(act.value) <= VALUE_EPS:
            continue
        out.append(Action(act.kind, -act.value, act.reference_frame, act.waypoint_id))
    return out


def mission_actions(sections: Sequence[Section]) -> List[Action]:
    """
    Every section's actions, concatenated in path order.

    Hidden sections are included; later sections start from their end pose.
    """
    out: List[Action] = []
    for sec in sections:
        out.extend(sec.actions)
    return out


class PlaybackSimulator:
    """
    Frame-stepped animation of an action list into a pose stream.

    Each action is latched on its first tick (angle in radians, or distance in
    pixels with a separate direction sign), then consumed by a fixed step per
    frame scaled by the speed multiplier. When the list runs out the session
    stops and the pose returns to home_pose.
    """

    def __init__(self, scheduler: FrameScheduler, home_pose: Pose, unit_to_px: Scale,
                 speed: float = 1.0, on_pose: Optional[Callable[[Pose], None]] = None):
        self.scheduler = scheduler
        self.home_pose = home_pose
        self.unit_to_px = unit_to_px
        self.speed = speed
        self.on_pose = on_pose
        self.pose = home_pose
        self.is_running = False
        self.is_paused = False
        self._reset_cursor([])
        self._handle: Optional[int] = None

    def _reset_cursor(self, actions: Sequence[Action]) -> None:
        self.actions = list(actions)
        self.cursor = 0
        self.phase = IDLE
        self._remaining_angle = 0.0
        self._remaining_px = 0.0
        self._direction = 1

    def _emit(self, pose: Pose) -> None:
        self.pose = pose
        if self.on_pose is not None:
            self.on_pose(pose)

    def start(self, actions: Sequence[Action], start_pose: Pose) -> None:
        """Begin a new session; any session already running is cancelled first."""
        self.scheduler.cancel(self._handle)
        self._reset_cursor(actions)
        self.is_running = True
        self.is_paused = False
        self._emit(start_pose)
        log.debug("playback started: %d actions from (%.1f, %.1f)", len(self.actions), start_pose.x, start_pose.y)
        self._handle = self.scheduler.request(self._tick)

    def stop(self) -> None:
        """Cancel the loop and return cursor and pose to the initial state."""
        self.scheduler.cancel(self._handle)
        self._handle = None
        was_running = self.is_running
        self.is_running = False
        self.is_paused = False
        self._reset_cursor([])
        self._emit(self.home_pose)
        if was_running:
            log.debug("playback stopped")

    def pause(self) -> None:
        if self.is_running:
            self.is_paused = True

    def resume(self) -> None:
        self.is_paused = False

    def toggle_pause(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    @property
    def rot_step(self) -> float:
        return math.radians(ROT_STEP_DEG) * self.speed

    @property
    def linear_step_px(self) -> float:
        return self.unit_to_px(LINEAR_UNITS_PER_S) / FRAME_RATE * self.speed

    def _advance(self) -> None:
        self.phase = IDLE
        self.cursor += 1

    def _tick(self) -> None:
        self._handle = None
        if self.is_paused:
            self._handle = self.scheduler.request(self._tick)
            return
        if self.cursor >= len(self.actions):
            self.stop()
            return

        act = self.actions[self.cursor]
        x, y, heading = self.pose.x, self.pose.y, self.pose.heading
        if act.is_rotate:
            if self.phase != ROTATING:
                self.phase = ROTATING
                self._remaining_angle = math.radians(act.value)
            remaining = self._remaining_angle
            if abs(remaining) < ANGLE_EPS_RAD:
                self._advance()
            else:
                step = math.copysign(min(abs(remaining), self.rot_step), remaining)
                heading = normalize_angle(heading + step)
                self._remaining_angle = remaining - step
                if abs(self._remaining_angle) < ANGLE_EPS_RAD:
                    self._advance()
        else:
            if self.phase != MOVING:
                self.phase = MOVING
                self._remaining_px = self.unit_to_px(abs(act.value))
                self._direction = -1 if act.value < 0 else 1
            if self._remaining_px < POS_EPS_PX:
                self._advance()
            else:
                step = min(self.linear_step_px, self._remaining_px)
                x += math.cos(heading) * step * self._direction
                y += math.sin(heading) * step * self._direction
                self._remaining_px -= step
                if self._remaining_px < POS_EPS_PX:
                    self._advance()

        self._emit(Pose(x, y, heading))
        self._handle = self.scheduler.request(self._tick)

    # Session helpers over a section list

    def start_mission(self, sections: Sequence[Section], initial_pose: Pose) -> None:
        self.start(mission_actions(sections), initial_pose)

    def start_mission_reverse(self, sections: Sequence[Section], initial_pose: Pose) -> None:
        acts = mission_actions(sections)
        end = pose_after_actions(initial_pose, acts, self.unit_to_px)
        self.start(reversed_actions(acts), end)

    def start_section(self, sections: Sequence[Section], section_id: str, initial_pose: Pose) -> None:
        sec = next((s for s in sections if s.id == section_id), None)
        if sec is None:
            return
        self.start(sec.actions, pose_up_to_section(sections, initial_pose, section_id, self.unit_to_px))

    def start_section_reverse(self, sections: Sequence[Section], section_id: str, initial_pose: Pose) -> None:
        sec = next((s for s in sections if s.id == section_id), None)
        if sec is None:
            return
        start = pose_up_to_section(sections, initial_pose, section_id, self.unit_to_px)
        end = pose_after_actions(start, sec.actions, self.unit_to_px)
        self.start(reversed_actions(sec.actions), end)
