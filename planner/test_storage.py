# Config and mission file checks.
import json

import pytest

from .config import (DEFAULT_CONFIG, Scale, load_config, log_level, robot_dims, save_config,
                     scale_for_canvas, scale_from_config, set_value)
from .model import TIP, Pose, Section, Waypoint
from .sections import recalc_sections
from .storage import MissionFormatError, load_mission, mission_from_dict, mission_to_dict, save_mission

SCALE = Scale(5.0)


def test_scale_conversions():
    assert SCALE.to_px(2) == 10
    assert SCALE.to_unit(10) == 2
    assert Scale(0).to_unit(123.0) == 0.0
    assert scale_for_canvas(1181, "cm").pixels_per_unit == pytest.approx(5.0)
    assert scale_for_canvas(1181, "mm", zoom=2).pixels_per_unit == pytest.approx(1.0)


def test_load_config_writes_defaults(tmp_path):
    path = tmp_path / "config.json"
    cfg = load_config(str(path))
    assert path.exists()
    assert robot_dims(cfg).wheel_offset == 10.0
    assert scale_from_config(cfg).pixels_per_unit == pytest.approx(5.0)
    mm = set_value(cfg, "field", "unit", "mm")
    assert scale_from_config(mm).pixels_per_unit == pytest.approx(0.5)
    assert scale_from_config(set_value(mm, "field", "pixels_per_unit", 2.0)).pixels_per_unit == 2.0
    assert log_level(cfg) == 20


def test_load_config_fills_missing_keys(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"robot": {"width": {"value": 25.0}}}), encoding="utf-8")
    cfg = load_config(str(path))
    dims = robot_dims(cfg)
    assert dims.width == 25.0
    assert dims.length == 20.0
    assert "playback" in cfg


def test_save_config_round_trip(tmp_path, capsys):
    path = tmp_path / "cfg" / "config.json"
    cfg = set_value(DEFAULT_CONFIG, "robot", "length", 30.0)
    assert save_config(cfg, str(path))
    assert "Config saved to" in capsys.readouterr().out
    assert robot_dims(load_config(str(path))).length == 30.0
    assert DEFAULT_CONFIG["robot"]["length"]["value"] == 20.0


def _mission():
    secs = [
        Section("a", name="Start", waypoints=(Waypoint(200, 100, id="w1"), Waypoint(200, 250, id="w2")),
                color="#ff0000"),
        Section("b", name="Back", waypoints=(Waypoint(100, 250, reverse=True, reference_frame=TIP, id="w3"),),
                visible=False),
    ]
    pose = Pose(100, 100, 0.25)
    return recalc_sections(secs, pose, SCALE.to_px, SCALE.to_unit), pose


def test_mission_round_trip(tmp_path):
    sections, pose = _mission()
    path = tmp_path / "mission.json"
    save_mission(str(path), sections, pose, field_key="junior", unit="cm")
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["version"] == 2
    assert set(raw) >= {"version", "fieldKey", "grid", "robot", "initialPose", "sections", "unit"}

    loaded, loaded_pose, meta = load_mission(str(path), SCALE)
    assert loaded_pose == pose
    assert meta["fieldKey"] == "junior"
    for s0, s1 in zip(sections, loaded):
        assert (s0.id, s0.name, s0.color, s0.visible) == (s1.id, s1.name, s1.color, s1.visible)
        assert [(w.x, w.y, w.reverse, w.reference_frame) for w in s0.waypoints] == \
            [(w.x, w.y, w.reverse, w.reference_frame) for w in s1.waypoints]
        assert [a.value for a in s0.actions] == pytest.approx([a.value for a in s1.actions])


def test_stored_actions_are_rebuilt_from_waypoints():
    sections, pose = _mission()
    data = mission_to_dict(sections, pose)
    data["sections"][0]["actions"] = [{"type": "move", "distance": 999}]
    loaded, _, _ = mission_from_dict(data, SCALE)
    assert loaded[0].actions == sections[0].actions


def test_missing_initial_pose_uses_default():
    loaded, pose, meta = mission_from_dict({"sections": []}, SCALE)
    assert loaded == []
    assert pose == Pose(120.0, 120.0, 0.0)
    assert meta == {}


@pytest.mark.parametrize("bad", [
    [],
    {"version": 2},
    {"sections": [{"points": [{"x": 1}]}]},
    {"sections": [{"points": [{"x": "left", "y": 2}]}]},
    {"sections": ["nope"]},
    {"sections": [{"points": [[1, 2]]}]},
    {"sections": [{"points": [{"x": 1, "y": 2, "heading": "abc"}]}]},
    {"initialPose": {"x": 1, "y": 2, "theta": [0]}, "sections": []},
])
def test_malformed_missions_raise(bad):
    with pytest.raises(MissionFormatError):
        mission_from_dict(bad, SCALE)


def test_invalid_json_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MissionFormatError):
        load_mission(str(path), SCALE)
    assert issubclass(MissionFormatError, ValueError)


def test_non_utf8_file(tmp_path):
    path = tmp_path / "binary.json"
    path.write_bytes(b"\xff\xfe\x00{\x00}")
    with pytest.raises(MissionFormatError):
        load_mission(str(path), SCALE)


def test_numeric_string_heading_is_accepted():
    data = {"sections": [{"points": [{"x": 10, "y": 0, "heading": "0.5"}]}]}
    loaded, _, _ = mission_from_dict(data, SCALE)
    assert loaded[0].waypoints[0].heading is not None
