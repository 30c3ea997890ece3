# Collision predicate checks against rotated rectangles.
import pytest

from .collision import (distance_to_rect, inflate, obstacle_corners, point_in_rotated_rect,
                        rotation_sweep_collision, segment_hits_obstacles, segment_intersects_obstacle,
                        thick_path_collision)
from .model import Obstacle

BOX = Obstacle(200, 0, 40, 40)
BEAM = Obstacle(0, 0, 100, 20, rotation_deg=90)


def test_point_in_rotated_rect():
    assert point_in_rotated_rect((0, 40), BEAM)
    assert not point_in_rotated_rect((40, 0), BEAM)
    assert point_in_rotated_rect((10, 0), BEAM)  # edges count as inside


def test_corners_follow_rotation():
    xs = sorted(round(x, 6) for x, _ in obstacle_corners(BEAM))
    ys = sorted(round(y, 6) for _, y in obstacle_corners(BEAM))
    assert xs == [-10, -10, 10, 10]
    assert ys == [-50, -50, 50, 50]


def test_segment_through_box():
    assert segment_intersects_obstacle((0, 0), (400, 0), BOX)
    assert not segment_intersects_obstacle((0, 100), (400, 100), BOX)
    assert segment_hits_obstacles((0, 0), (400, 0), [BOX])


def test_endpoint_inside_counts():
    assert not segment_intersects_obstacle((200, 0), (205, 5), BOX)
    assert segment_hits_obstacles((200, 0), (205, 5), [BOX])


def test_padding_inflates_both_axes():
    big = inflate(BOX, 5)
    assert (big.width, big.height) == (50, 50)
    assert inflate(BOX, 0) is BOX
    assert not segment_hits_obstacles((0, 30), (400, 30), [BOX])
    assert segment_hits_obstacles((0, 30), (400, 30), [BOX], padding=15)


@pytest.mark.parametrize("p1, p2", [
    ((0, 30), (400, 30)),
    ((0, 45), (400, 45)),
    ((150, -80), (260, 90)),
    ((180, 60), (180, 120)),
])
def test_thick_path_is_symmetric(p1, p2):
    for width in (0, 10, 30, 60):
        assert thick_path_collision(p1, p2, width, [BOX]) == thick_path_collision(p2, p1, width, [BOX])


def test_thick_path_width_catches_near_miss():
    assert not thick_path_collision((0, 30), (400, 30), 10, [BOX])
    assert thick_path_collision((0, 30), (400, 30), 30, [BOX])


def test_thick_path_degenerate_segment():
    assert thick_path_collision((200, 0), (200, 0), 20, [BOX])
    assert not thick_path_collision((0, 0), (0, 0), 20, [BOX])


def test_monotone_in_padding_and_width():
    pads = [thick_path_collision((0, 30), (400, 30), 0, [BOX], padding=p) for p in (0, 5, 15, 25)]
    assert pads == sorted(pads)
    assert pads[0] is False and pads[-1] is True
    widths = [thick_path_collision((0, 30), (400, 30), w, [BOX]) for w in (0, 10, 30, 60)]
    assert widths == sorted(widths)


def test_distance_to_rect():
    assert distance_to_rect((200, 0), BOX) == 0.0
    assert distance_to_rect((235, 0), BOX) == pytest.approx(15.0)
    assert distance_to_rect((223, 24), BOX) == pytest.approx(5.0)


def test_rotation_sweep_uses_bounding_circle():
    # radius hypot(9, 10) ~ 13.45 against a point 15 px from the face
    assert not rotation_sweep_collision((235, 0), [BOX], 18, 20)
    assert rotation_sweep_collision((235, 0), [BOX], 30, 30)
    assert rotation_sweep_collision((235, 0), [BOX], 18, 20, padding=2)


def test_rotation_sweep_rotated_obstacle():
    # point 15 px off the beam's long side, beam rotated onto the y axis
    assert not rotation_sweep_collision((25, 0), [BEAM], 10, 10)
    assert rotation_sweep_collision((25, 0), [BEAM], 30, 30)


def test_no_obstacles_never_collide():
    assert not thick_path_collision((0, 0), (100, 100), 50, [])
    assert not rotation_sweep_collision((0, 0), [], 100, 100)
