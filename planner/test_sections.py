# Full-path recalculation checks.
import math
from dataclasses import replace

import pytest

from .config import Scale
from .model import Pose, Section, Waypoint
from .sections import SECTION_PALETTE, new_section, recalc_section, recalc_sections

SCALE = Scale(5.0)


def _recalc(sections, pose):
    return recalc_sections(sections, pose, SCALE.to_px, SCALE.to_unit)


def _path():
    a = Section("a", waypoints=(Waypoint(200, 100), Waypoint(200, 250)))
    b = Section("b", waypoints=(Waypoint(100, 250, reverse=True), Waypoint(40, 60)))
    return [a, b]


def test_recalc_is_idempotent():
    once = _recalc(_path(), Pose(100, 100, 0))
    twice = _recalc(once, Pose(100, 100, 0))
    for s1, s2 in zip(once, twice):
        assert len(s1.actions) == len(s2.actions)
        for a1, a2 in zip(s1.actions, s2.actions):
            assert a1.kind == a2.kind
            assert a1.value == pytest.approx(a2.value)
        assert s1.end_heading == pytest.approx(s2.end_heading)


def test_recalc_never_moves_waypoints():
    before = _path()
    after = _recalc(before, Pose(0, 0, 1.0))
    for s_before, s_after in zip(before, after):
        for w0, w1 in zip(s_before.waypoints, s_after.waypoints):
            assert (w0.x, w0.y, w0.reverse, w0.reference_frame, w0.id) == \
                (w1.x, w1.y, w1.reverse, w1.reference_frame, w1.id)
            assert w1.heading is not None


def test_sections_chain_headings():
    out = _recalc(_path(), Pose(100, 100, 0))
    assert out[0].start_heading == 0
    assert out[0].end_heading == pytest.approx(math.pi / 2)
    assert out[1].start_heading == pytest.approx(out[0].end_heading)


def test_stale_heading_cache_is_ignored():
    a = Section("a", waypoints=(Waypoint(200, 100, heading=2.0),))
    out = _recalc([a], Pose(100, 100, 0))
    assert [x.kind for x in out[0].actions] == ["move"]
    assert out[0].waypoints[0].heading == pytest.approx(0.0)


def test_empty_and_coincident_sections():
    empty = Section("e")
    dup = Section("d", waypoints=(Waypoint(100, 100), Waypoint(100, 100)))
    out = _recalc([empty, dup], Pose(100, 100, 0.5))
    assert out[0].actions == ()
    assert out[1].actions == ()
    assert out[1].end_heading == pytest.approx(0.5)
    assert [w.heading for w in out[1].waypoints] == pytest.approx([0.5, 0.5])


def test_moving_start_pose_rebuilds_first_connection():
    out = _recalc(_path(), Pose(100, 100, 0))
    moved = _recalc(out, Pose(200, 0, 0))
    first = moved[0].actions
    assert first[0].kind == "rotate"
    assert first[0].value == pytest.approx(90.0)
    assert moved[0].waypoints[0].pos == (200, 100)


def test_recalc_section_matches_full_pass():
    full = _recalc(_path(), Pose(100, 100, 0))
    single = recalc_section(full[1], full, Pose(100, 100, 0), SCALE.to_px, SCALE.to_unit)
    assert [a.value for a in single.actions] == pytest.approx([a.value for a in full[1].actions])


def test_new_section_defaults():
    sec = new_section(0)
    assert sec.name == "Section 1"
    assert sec.color == SECTION_PALETTE[0]
    assert sec.visible and sec.waypoints == ()
    late = new_section(len(SECTION_PALETTE) + 3)
    assert late.color.startswith("#") and len(late.color) == 7
    assert replace(sec, name="x").id == sec.id
