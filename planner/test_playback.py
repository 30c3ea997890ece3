# Playback state machine checks, pumped one frame at a time.
import math

import pytest

from .geom import pose_after_actions
from .model import Action, Pose, Section, Waypoint
from .playback import FrameScheduler, PlaybackSimulator, mission_actions, reversed_actions
from .route import path_segments
from .sections import recalc_sections

HOME = Pose(0, 0, 0)


def ident(v):
    return v


def _sim(speed=1.0):
    sched = FrameScheduler()
    poses = []
    sim = PlaybackSimulator(sched, HOME, ident, speed=speed, on_pose=poses.append)
    return sched, sim, poses


def _run(sched, limit=10000):
    frames = 0
    while frames < limit and sched.run_pending():
        frames += 1
    return frames


def test_scheduler_defers_requests_made_during_a_frame():
    sched = FrameScheduler()
    calls = []

    def cb():
        calls.append(len(calls))
        if len(calls) < 3:
            sched.request(cb)

    sched.request(cb)
    assert sched.run_pending() == 1
    assert calls == [0]
    handle = sched.request(lambda: calls.append("x"))
    sched.cancel(handle)
    assert sched.run_pending() == 1
    assert calls == [0, 1]


def test_full_run_reaches_target_then_returns_home():
    sched, sim, poses = _sim()
    sim.start([Action.rotate(90), Action.move(10)], HOME)
    frames = _run(sched)
    # 18 rotation frames, 15 move frames, one frame to notice the end
    assert frames == 34
    assert not sim.is_running
    last_moving = poses[-2]
    assert last_moving.x == pytest.approx(0.0, abs=1e-6)
    assert last_moving.y == pytest.approx(10.0)
    assert last_moving.heading == pytest.approx(math.pi / 2)
    assert poses[-1] == HOME
    assert len(sched) == 0


def test_reverse_move_drives_backwards():
    sched, sim, poses = _sim()
    sim.start([Action.move(-5)], Pose(10, 0, 0))
    _run(sched)
    assert poses[-2].x == pytest.approx(5.0)


def test_pause_freezes_pose_but_keeps_loop_alive():
    sched, sim, poses = _sim()
    sim.start([Action.move(20)], HOME)
    for _ in range(3):
        sched.run_pending()
    sim.pause()
    frozen = sim.pose
    for _ in range(5):
        assert sched.run_pending() == 1
    assert sim.pose == frozen
    assert sim.is_running and sim.is_paused
    sim.toggle_pause()
    sched.run_pending()
    assert sim.pose.x > frozen.x


def test_stop_resets_cursor_and_pose():
    sched, sim, _ = _sim()
    sim.start([Action.move(20), Action.rotate(45)], Pose(5, 5, 1.0))
    sched.run_pending()
    sim.stop()
    assert sim.pose == HOME
    assert sim.cursor == 0 and sim.phase == "idle"
    assert not sim.is_running
    assert len(sched) == 0


def test_starting_again_cancels_previous_session():
    sched, sim, _ = _sim()
    sim.start([Action.move(20)], HOME)
    sched.run_pending()
    sim.start([Action.rotate(10)], HOME)
    assert len(sched) == 1
    assert sim.actions == [Action.rotate(10)]
    assert sim.cursor == 0


def test_speed_scales_steps():
    _, slow, _ = _sim(1.0)
    _, fast, _ = _sim(3.0)
    assert fast.linear_step_px == pytest.approx(3 * slow.linear_step_px)
    assert slow.linear_step_px == pytest.approx(40 / 60)
    assert fast.rot_step == pytest.approx(math.radians(15))


def test_reversed_actions_negates_and_drops_tiny():
    out = reversed_actions([Action.rotate(90), Action.move(10, "tip"), Action.rotate(0.0001)])
    assert out == [Action.move(-10, "tip"), Action.rotate(-90)]


def test_reversed_actions_undo_the_path():
    start = Pose(10, 20, 0.5)
    acts = [Action.rotate(30), Action.move(50), Action.rotate(-120), Action.move(-20), Action.rotate(170)]
    end = pose_after_actions(start, acts, ident)
    back = pose_after_actions(end, reversed_actions(acts), ident)
    assert back.x == pytest.approx(start.x)
    assert back.y == pytest.approx(start.y)
    assert back.heading == pytest.approx(start.heading)


def test_mission_helpers_keep_hidden_sections():
    a = Section("a", actions=(Action.move(10),))
    b = Section("b", actions=(Action.rotate(90),), visible=False)
    c = Section("c", actions=(Action.move(5),))
    assert mission_actions([a, b, c]) == [Action.move(10), Action.rotate(90), Action.move(5)]

    sched, sim, _ = _sim()
    sim.start_mission_reverse([a, b, c], HOME)
    assert sim.pose.x == pytest.approx(10.0)
    assert sim.pose.y == pytest.approx(5.0)
    assert sim.actions == [Action.move(-5), Action.rotate(-90), Action.move(-10)]

    sim.start_section([a, b, c], "c", HOME)
    assert sim.pose.heading == pytest.approx(math.pi / 2)
    assert sim.pose.x == pytest.approx(10.0)

    sim.start_section_reverse([a, b, c], "a", HOME)
    assert sim.pose.x == pytest.approx(10.0)
    assert sim.actions == [Action.move(-10)]

    sim.start_section([a, b, c], "missing", HOME)
    assert sim.actions == [Action.move(-10)]


def test_mission_run_stays_on_drawn_path_past_hidden_section():
    secs = recalc_sections([
        Section("a", waypoints=(Waypoint(100, 0),)),
        Section("b", waypoints=(Waypoint(100, 100),), visible=False),
        Section("c", waypoints=(Waypoint(200, 100),)),
    ], HOME, ident, ident)
    end = path_segments(secs, HOME)[-1].end

    sched, sim, poses = _sim(speed=3.0)
    sim.start_mission(secs, HOME)
    _run(sched)
    assert poses[-2].x == pytest.approx(end[0], abs=1e-6)
    assert poses[-2].y == pytest.approx(end[1], abs=1e-6)
