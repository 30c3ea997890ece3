# planner/config.py
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

from .model import RobotDims

log = logging.getLogger(__name__)

# Field mat and window
MAT_MM_W = 2362
MAT_MM_H = 1143
PX_PER_MM = 0.5
WINDOW_WIDTH = int(round(MAT_MM_W * PX_PER_MM))
WINDOW_HEIGHT = int(round(MAT_MM_H * PX_PER_MM))
UNIT_MM = {"mm": 1.0, "cm": 10.0}

# Colors (RGB)
BG_COLOR = (236, 240, 243)
GRID_COLOR = (200, 206, 212)
OBSTACLE_COLOR = (120, 120, 120)
OBSTACLE_PAD_COLOR = (255, 165, 0)
ROBOT_COLOR = (14, 165, 233)
GHOST_COLOR = (80, 80, 80)
BLOCKED_COLOR = (220, 38, 38)
TEXT_COLOR = (20, 20, 20)
WHITE = (255, 255, 255)

CONFIG_FILENAME = "config.json"

DEFAULT_CONFIG = {
    "field": {
        "key":             {"value": "custom"},
        "unit":            {"value": "cm"},
        "pixels_per_unit": {"value": 0.0},
        "grid_cell":       {"value": 10.0},
    },
    "robot": {
        "width":        {"value": 18.0},
        "length":       {"value": 20.0},
        "wheel_offset": {"value": 10.0},
    },
    "playback": {
        "speed": {"value": 3.0},
    },
    "collision": {
        "enabled":    {"value": 1},
        "padding_px": {"value": 5.0},
    },
    "drawing": {
        "snap_grid": {"value": 0},
        "snap45":    {"value": 0},
        "reference": {"value": "center"},
    },
    "initial_pose": {
        "x":           {"value": 120.0},
        "y":           {"value": 120.0},
        "heading_deg": {"value": 0.0},
    },
    "logging": {
        "level": {"value": "INFO"},
    },
    "obstacles": [],
}


class Scale:
    """Pixel/unit conversion pair; a zero scale converts everything to 0."""

    def __init__(self, pixels_per_unit: float):
        self.pixels_per_unit = float(pixels_per_unit)

    def to_px(self, units: float) -> float:
        return units * self.pixels_per_unit

    def to_unit(self, px: float) -> float:
        if not self.pixels_per_unit:
            return 0.0
        return px / self.pixels_per_unit


def scale_for_canvas(canvas_width_px: float, unit: str = "cm", zoom: float = 1.0) -> Scale:
    """Scale from the mat width drawn across canvas_width_px at the given zoom."""
    px_per_mm = canvas_width_px / MAT_MM_W if MAT_MM_W else 0.0
    return Scale(px_per_mm * UNIT_MM.get(unit, 10.0) * zoom)


def _flatten(section: dict) -> dict:
    """Extract 'value' from nested dict structure."""
    flat = {}
    for k, v in section.items():
        flat[k] = v.get("value", v) if isinstance(v, dict) and "value" in v else v
    return flat


def _merge_defaults(data: dict, defaults: dict) -> dict:
    """Fill keys missing from data with defaults, section by section."""
    out = dict(defaults)
    for k, v in data.items():
        if isinstance(v, dict) and isinstance(defaults.get(k), dict) and "value" not in v:
            out[k] = _merge_defaults(v, defaults[k])
        else:
            out[k] = v
    return out


def _load_json(path: str) -> Optional[dict]:
    """Load JSON file, return None on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _save_json(path: str, data: dict) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def _config_candidates() -> List[str]:
    """Project-root config first, then the copy beside this package."""
    here = os.path.dirname(os.path.abspath(__file__))
    return [
        os.path.normpath(os.path.join(here, os.pardir, CONFIG_FILENAME)),
        os.path.normpath(os.path.join(here, CONFIG_FILENAME)),
    ]


def load_config(path: Optional[str] = None) -> dict:
    """Load config from path or the default candidates; write defaults if none exist."""
    candidates = [path] if path else _config_candidates()
    for cand in candidates:
        data = _load_json(cand)
        if data is not None:
            return _merge_defaults(data, DEFAULT_CONFIG)
    data = _merge_defaults({}, DEFAULT_CONFIG)
    try:
        _save_json(candidates[0], data)
    except OSError as e:
        log.warning("could not write default config to %s: %s", candidates[0], e)
    return data


def save_config(cfg: dict, path: Optional[str] = None) -> bool:
    """Save nested config dict; prints the destination like the rest of the host output."""
    target = path or _config_candidates()[0]
    try:
        _save_json(target, cfg)
    except (OSError, TypeError, ValueError) as e:
        print(f"Failed to save config: {e}")
        return False
    print(f"Config saved to {target}")
    return True


def set_value(cfg: dict, section: str, key: str, value) -> dict:
    """Return a copy of cfg with section.key set, keeping the {'value': ...} layout."""
    out = dict(cfg)
    sec = dict(out.get(section, {}))
    sec[key] = {"value": value}
    out[section] = sec
    return out


def field_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("field", {}))


def robot_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("robot", {}))


def playback_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("playback", {}))


def collision_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("collision", {}))


def drawing_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("drawing", {}))


def initial_pose_flat(cfg: dict) -> dict:
    return _flatten(cfg.get("initial_pose", {}))


def robot_dims(cfg: dict) -> RobotDims:
    r = robot_flat(cfg)
    return RobotDims(width=float(r.get("width", 18.0)),
                     length=float(r.get("length", 20.0)),
                     wheel_offset=float(r.get("wheel_offset", 10.0)))


def scale_from_config(cfg: dict) -> Scale:
    """Configured px per unit; 0 fits the mat to the window width in the field unit."""
    field = field_flat(cfg)
    ppu = float(field.get("pixels_per_unit") or 0.0)
    if ppu > 0:
        return Scale(ppu)
    return scale_for_canvas(WINDOW_WIDTH, str(field.get("unit", "cm")))


def log_level(cfg: dict) -> int:
    name = str(_flatten(cfg.get("logging", {})).get("level", "INFO")).upper()
    return getattr(logging, name, logging.INFO)
