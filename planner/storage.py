# planner/storage.py
from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import Scale
from .model import CENTER, MOVE, REFERENCE_FRAMES, ROTATE, Action, Pose, Section, Waypoint, uid
from .sections import recalc_sections

MISSION_VERSION = 2


class MissionFormatError(ValueError):
    """Mission file is not JSON or lacks the fields a path needs."""


def _wp_to_dict(wp: Waypoint) -> dict:
    d = {"id": wp.id, "x": wp.x, "y": wp.y, "reverse": wp.reverse, "reference": wp.reference_frame}
    if wp.heading is not None:
        d["heading"] = wp.heading
    return d


def _action_to_dict(act: Action) -> dict:
    if act.kind == ROTATE:
        return {"type": ROTATE, "angle": act.value}
    return {"type": MOVE, "distance": act.value, "reference": act.reference_frame}


def _section_to_dict(sec: Section) -> dict:
    return {
        "id": sec.id,
        "name": sec.name,
        "color": sec.color,
        "isVisible": sec.visible,
        "points": [_wp_to_dict(wp) for wp in sec.waypoints],
        "actions": [_action_to_dict(a) for a in sec.actions],
        "startHeading": sec.start_heading,
        "endHeading": sec.end_heading,
    }


def mission_to_dict(sections: Sequence[Section], initial_pose: Pose, *, field_key: str = "custom",
                    grid: Optional[dict] = None, robot: Optional[dict] = None, unit: str = "cm") -> dict:
    return {
        "version": MISSION_VERSION,
        "timestamp": int(time.time() * 1000),
        "fieldKey": field_key,
        "grid": grid or {},
        "robot": robot or {},
        "initialPose": {"x": initial_pose.x, "y": initial_pose.y, "theta": initial_pose.heading},
        "sections": [_section_to_dict(s) for s in sections],
        "unit": unit,
    }


def _num(d: dict, key: str, default: Optional[float] = None) -> float:
    v = d.get(key, default)
    if v is None:
        raise MissionFormatError(f"missing numeric field '{key}'")
    try:
        return float(v)
    except (TypeError, ValueError):
        raise MissionFormatError(f"field '{key}' is not a number: {v!r}") from None


def _wp_from_dict(d: Any, index: int) -> Waypoint:
    if not isinstance(d, dict):
        raise MissionFormatError(f"point {index} is not an object")
    ref = d.get("reference", CENTER)
    return Waypoint(
        _num(d, "x"), _num(d, "y"),
        reverse=bool(d.get("reverse", False)),
        reference_frame=ref if ref in REFERENCE_FRAMES else CENTER,
        heading=_num(d, "heading") if d.get("heading") is not None else None,
        id=str(d.get("id") or uid("pt")),
    )


def _section_from_dict(d: dict, index: int) -> Section:
    if not isinstance(d, dict):
        raise MissionFormatError(f"section {index} is not an object")
    points = d.get("points", [])
    if not isinstance(points, list):
        raise MissionFormatError(f"section {index} points must be a list")
    return Section(
        id=str(d.get("id") or uid("sec")),
        name=str(d.get("name") or f"Section {index + 1}"),
        waypoints=tuple(_wp_from_dict(p, i) for i, p in enumerate(points)),
        color=str(d.get("color") or "#0ea5e9"),
        visible=bool(d.get("isVisible", True)),
    )


def mission_from_dict(data: Any, scale: Scale) -> Tuple[List[Section], Pose, Dict[str, Any]]:
    """
    Rebuild (sections, initial_pose) from a mission dict.

    Waypoints are the source of truth: stored actions are ignored and rebuilt
    so the loaded path is always consistent. Host fields (fieldKey, grid,
    robot, unit) come back untouched in the third element, only when present.
    """
    if not isinstance(data, dict):
        raise MissionFormatError("mission must be a JSON object")
    raw_sections = data.get("sections")
    if not isinstance(raw_sections, list):
        raise MissionFormatError("mission has no 'sections' list")
    pose_d = data.get("initialPose") or {"x": 120.0, "y": 120.0, "theta": 0.0}
    if not isinstance(pose_d, dict):
        raise MissionFormatError("'initialPose' must be an object")
    initial = Pose(_num(pose_d, "x"), _num(pose_d, "y"), _num(pose_d, "theta", 0.0))
    sections = [_section_from_dict(s, i) for i, s in enumerate(raw_sections)]
    sections = recalc_sections(sections, initial, scale.to_px, scale.to_unit)
    meta = {k: data[k] for k in ("fieldKey", "grid", "robot", "unit", "version") if k in data}
    return sections, initial, meta


def save_mission(path: str, sections: Sequence[Section], initial_pose: Pose, **meta) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(mission_to_dict(sections, initial_pose, **meta), f, indent=4)


def load_mission(path: str, scale: Scale):
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MissionFormatError(f"{path}: not valid JSON ({e})") from e
    return mission_from_dict(data, scale)


def ask_save_mission(sections, initial_pose, **meta) -> Optional[str]:
    """Save routine through a file dialog; returns the chosen path."""
    from tkinter import filedialog
    filename = filedialog.asksaveasfilename(
        title="Save mission",
        defaultextension=".json",
        filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
    )
    if not filename:
        return None
    save_mission(filename, sections, initial_pose, **meta)
    return filename


def ask_load_mission(scale: Scale):
    """Load routine through a file dialog; returns None when cancelled."""
    from tkinter import filedialog
    filename = filedialog.askopenfilename(
        title="Load mission",
        filetypes=[("JSON files", "*.json"), ("All files", "*.*")]
    )
    if not filename:
        return None
    return load_mission(filename, scale)


def export_instructions(lines: Sequence[str]) -> Optional[str]:
    """Write the TURN/MOVE readout to a text file chosen in a dialog."""
    from tkinter import filedialog
    filename = filedialog.asksaveasfilename(
        title="Export instructions",
        defaultextension=".txt",
        filetypes=[("Text files", "*.txt"), ("All files", "*.*")]
    )
    if not filename:
        return None
    with open(filename, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
    return filename
