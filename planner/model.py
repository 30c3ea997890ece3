# planner/model.py
from __future__ import annotations

import random
import string
from dataclasses import dataclass, field
from typing import Optional, Tuple

CENTER = "center"
TIP = "tip"
REFERENCE_FRAMES = (CENTER, TIP)

ROTATE = "rotate"
MOVE = "move"

# Tolerances shared by the builder, recalculation and playback
POS_EPS_PX = 1e-3
ANGLE_EPS_DEG = 1e-3
ANGLE_EPS_RAD = 1e-3
VALUE_EPS = 1e-3
ANCHOR_EPS = 1e-6


def uid(prefix: str) -> str:
    """Short random identifier such as 'sec_k3x9a1b'."""
    alphabet = string.ascii_lowercase + string.digits
    return f"{prefix}_{''.join(random.choice(alphabet) for _ in range(7))}"


@dataclass(frozen=True)
class Pose:
    """Wheel-axis center of the robot; heading in radians, (-pi, pi]."""
    x: float
    y: float
    heading: float = 0.0

    @property
    def pos(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Action:
    """
    One replayable motion command.

    For ``rotate`` the value is a signed angle in degrees. For ``move`` it is a
    signed distance in physical units, negative when driving in reverse.
    waypoint_id names the waypoint that produced the action; it is
    bookkeeping only and takes no part in equality.
    """
    kind: str
    value: float
    reference_frame: str = CENTER
    waypoint_id: Optional[str] = field(default=None, compare=False)

    @classmethod
    def rotate(cls, angle_deg: float, waypoint_id: Optional[str] = None) -> "Action":
        return cls(ROTATE, float(angle_deg), CENTER, waypoint_id)

    @classmethod
    def move(cls, distance: float, reference_frame: str = CENTER,
             waypoint_id: Optional[str] = None) -> "Action":
        return cls(MOVE, float(distance), reference_frame, waypoint_id)

    @property
    def is_rotate(self) -> bool:
        return self.kind == ROTATE

    @property
    def is_move(self) -> bool:
        return self.kind == MOVE


@dataclass(frozen=True)
class Waypoint:
    """User-placed wheel-center point. ``heading`` is a recalculated cache."""
    x: float
    y: float
    reverse: bool = False
    reference_frame: str = CENTER
    heading: Optional[float] = None
    id: str = field(default_factory=lambda: uid("pt"))

    @property
    def pos(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Section:
    id: str
    name: str = ""
    waypoints: Tuple[Waypoint, ...] = ()
    actions: Tuple[Action, ...] = ()
    color: str = "#0ea5e9"
    visible: bool = True
    start_heading: float = 0.0
    end_heading: float = 0.0


@dataclass(frozen=True)
class Obstacle:
    """Rectangle centered on (x, y), rotated by rotation_deg; pixels."""
    x: float
    y: float
    width: float
    height: float
    rotation_deg: float = 0.0
    id: str = field(default_factory=lambda: uid("obs"))


@dataclass(frozen=True)
class RobotDims:
    """Footprint in physical units; wheel_offset runs from the front edge to the wheel axis."""
    width: float = 18.0
    length: float = 20.0
    wheel_offset: float = 10.0
