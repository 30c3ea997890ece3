# main.py
import os, math, logging

# Ensure SDL picks a usable video driver (helps when run from terminals that default to headless)
if os.name == "nt" and not os.environ.get("SDL_VIDEODRIVER"):
    os.environ["SDL_VIDEODRIVER"] = "windows"

import pygame

from planner.config import (
    WINDOW_WIDTH, WINDOW_HEIGHT, load_config, save_config, set_value, field_flat, playback_flat,
    collision_flat, drawing_flat, initial_pose_flat, robot_dims, scale_from_config, log_level
)
from planner.draw import (
    fill_background, draw_grid, draw_obstacles, draw_segments, draw_waypoints,
    draw_robot, draw_ghost, draw_lines
)
from planner.editor import PlannerSession
from planner.geom import snap_to_grid
from planner.model import Obstacle, Pose
from planner.route import path_segments, route_instructions, format_instruction, total_path_length, total_rotation
from planner.storage import MissionFormatError, ask_save_mission, ask_load_mission, export_instructions

APP_TITLE = "WRO MISSION PLANNER"
SELECTION_RADIUS_PX = 10
START_TURN_DEG = 15.0

CONTROLS = [
    ("LeftClick", "Place waypoint at cursor (vetoed on collision)"),
    ("LeftClick + Drag", "Drag waypoint under cursor"),
    ("CTRL+LeftClick", "Insert waypoint before the hovered one"),
    ("RightClick", "Delete waypoint under cursor"),
    ("SPACE / CTRL+SPACE", "Play-Pause mission / Stop"),
    ("SHIFT+SPACE", "Play current section"),
    ("B / SHIFT+B", "Play mission / section in reverse"),
    ("R", "Toggle reverse drawing (or flip hovered waypoint)"),
    ("T", "Toggle reference frame: center / tip"),
    ("Q / E", "Toggle snap-to-grid / snap-45"),
    ("C", "Toggle collision checks"),
    ("N / TAB", "New section / next section"),
    ("V / X", "Toggle visibility / delete current section"),
    ("H, [ / ]", "Move start pose to cursor, rotate start heading"),
    ("Backspace", "Remove last waypoint of current section"),
    ("CTRL+Z / CTRL+Y", "Undo / Redo"),
    ("S / L", "Save / Load mission"),
    ("I", "Print and export instructions"),
    ("F1", "Print this list"),
]

CFG = load_config()
logging.basicConfig(level=log_level(CFG), format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")

# ---------------- pygame init ----------------
pygame.init()
screen = pygame.display.set_mode((WINDOW_WIDTH, WINDOW_HEIGHT))
pygame.display.set_caption(APP_TITLE)
clock = pygame.time.Clock()
font = pygame.font.SysFont(None, 20)

# ---------------- Tk plumbing ----------------
tk_root = None


def ensure_tk_root():
    """Hidden Tk root so file dialogs do not spawn a stray window."""
    global tk_root
    if tk_root is None:
        import tkinter as tk
        tk_root = tk.Tk()
        tk_root.withdraw()
    return tk_root


def build_session(cfg):
    ip = initial_pose_flat(cfg)
    coll = collision_flat(cfg)
    obstacles = [
        Obstacle(float(o["x"]), float(o["y"]), float(o["width"]), float(o["height"]),
                 float(o.get("rotation_deg", 0.0)))
        for o in cfg.get("obstacles", [])
    ]
    session = PlannerSession(
        scale_from_config(cfg),
        robot=robot_dims(cfg),
        initial_pose=Pose(float(ip["x"]), float(ip["y"]), math.radians(float(ip["heading_deg"]))),
        obstacles=obstacles,
        collision_enabled=bool(coll["enabled"]),
        padding_px=float(coll["padding_px"]),
        speed=float(playback_flat(cfg)["speed"]),
    )
    drawing = drawing_flat(cfg)
    session.snap45 = bool(drawing["snap45"])
    if drawing["reference"] != session.reference_frame:
        session.cycle_reference_frame()
    return session


def hovered_waypoint(session, mouse_pos, section_id=None):
    """Nearest waypoint within the selection radius, optionally limited to one section."""
    best, best_d2 = None, SELECTION_RADIUS_PX ** 2
    for sec in session.sections:
        if not sec.visible or (section_id is not None and sec.id != section_id):
            continue
        for idx, wp in enumerate(sec.waypoints):
            d2 = (wp.x - mouse_pos[0]) ** 2 + (wp.y - mouse_pos[1]) ** 2
            if d2 <= best_d2:
                best, best_d2 = (sec, idx, wp), d2
    return best


def instruction_lines(session):
    instrs = route_instructions(session.sections)
    unit = field_flat(CFG)["unit"]
    lines = []
    for sec in session.sections:
        lines.append(f"# {sec.name}")
        lines.extend("  " + format_instruction(i, unit) for i in instrs if i.section_id == sec.id)
    lines.append(f"Total distance: {total_path_length(instrs):.1f} {unit}")
    lines.append(f"Total rotation: {total_rotation(instrs):.1f}°")
    return lines


def status_lines(session, snap_grid):
    sec = session.current_section
    player = session.player
    state = "paused" if player.is_paused else ("playing" if player.is_running else "editing")
    return [
        f"{sec.name if sec else '-'} | {state} | frame: {session.reference_frame}"
        f" | reverse: {'on' if session.reverse_mode else 'off'}",
        f"snap grid: {'on' if snap_grid else 'off'} | snap45: {'on' if session.snap45 else 'off'}"
        f" | collisions: {'on' if session.collision_enabled else 'off'}",
    ]


def main():
    """Main application loop."""
    global CFG
    session = build_session(CFG)
    grid_px = session.scale.to_px(float(field_flat(CFG)["grid_cell"]))
    snap_grid = bool(drawing_flat(CFG)["snap_grid"])

    running = True
    while running:
        clock.tick(60)
        session.scheduler.run_pending()

        mouse_pos = pygame.mouse.get_pos()
        if snap_grid:
            mouse_pos = snap_to_grid(mouse_pos, grid_px)
        mods = pygame.key.get_mods()

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                hit = hovered_waypoint(session, event.pos,
                                       session.current_section_id if mods & pygame.KMOD_CTRL else None)
                if mods & pygame.KMOD_CTRL:
                    if hit is not None:
                        session.insert_waypoint(hit[1], mouse_pos)
                elif hit is not None:
                    session.select_section(hit[0].id)
                    session.begin_drag(hit[2].id, mouse_pos)
                elif session.place_waypoint(mouse_pos) is None:
                    print("Waypoint blocked or too close to the anchor.")

            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                session.end_drag(mouse_pos)

            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 3:
                hit = hovered_waypoint(session, event.pos)
                if hit is not None:
                    session.delete_waypoint(hit[2].id)

            elif event.type == pygame.KEYDOWN:
                ctrl = mods & pygame.KMOD_CTRL
                shift = mods & pygame.KMOD_SHIFT

                if event.key == pygame.K_SPACE and ctrl:
                    session.player.stop()
                elif event.key == pygame.K_SPACE and shift:
                    session.play_section()
                elif event.key == pygame.K_SPACE:
                    if session.player.is_running:
                        session.player.toggle_pause()
                    else:
                        session.play_mission()
                elif event.key == pygame.K_b:
                    if shift:
                        session.play_section(reverse=True)
                    else:
                        session.play_mission(reverse=True)
                elif event.key == pygame.K_z and ctrl:
                    session.undo()
                elif event.key == pygame.K_y and ctrl:
                    session.redo()
                elif event.key == pygame.K_r:
                    hit = hovered_waypoint(session, mouse_pos)
                    session.toggle_reverse(hit[2].id if hit else None)
                elif event.key == pygame.K_t:
                    session.cycle_reference_frame()
                elif event.key == pygame.K_q:
                    snap_grid = not snap_grid
                elif event.key == pygame.K_e:
                    session.snap45 = not session.snap45
                elif event.key == pygame.K_c:
                    session.collision_enabled = not session.collision_enabled
                elif event.key == pygame.K_n:
                    session.add_section()
                elif event.key == pygame.K_TAB:
                    ids = [s.id for s in session.sections]
                    i = ids.index(session.current_section_id) if session.current_section_id in ids else -1
                    session.select_section(ids[(i + 1) % len(ids)])
                elif event.key == pygame.K_v:
                    session.toggle_section_visibility(session.current_section_id)
                elif event.key == pygame.K_x:
                    session.delete_section(session.current_section_id)
                elif event.key == pygame.K_h:
                    p = session.initial_pose
                    session.set_initial_pose(Pose(float(mouse_pos[0]), float(mouse_pos[1]), p.heading))
                elif event.key in (pygame.K_LEFTBRACKET, pygame.K_RIGHTBRACKET):
                    p = session.initial_pose
                    d = math.radians(START_TURN_DEG) * (-1 if event.key == pygame.K_LEFTBRACKET else 1)
                    session.set_initial_pose(Pose(p.x, p.y, math.atan2(math.sin(p.heading + d), math.cos(p.heading + d))))
                elif event.key in (pygame.K_BACKSPACE, pygame.K_DELETE):
                    session.remove_last_waypoint()
                elif event.key == pygame.K_s:
                    ensure_tk_root()
                    p = session.initial_pose
                    path = ask_save_mission(session.sections, p, field_key=field_flat(CFG)["key"],
                                            unit=field_flat(CFG)["unit"])
                    if path:
                        print(f"Mission saved to {path}")
                        CFG = set_value(CFG, "initial_pose", "x", p.x)
                        CFG = set_value(CFG, "initial_pose", "y", p.y)
                        CFG = set_value(CFG, "initial_pose", "heading_deg", math.degrees(p.heading))
                        save_config(CFG)
                elif event.key == pygame.K_l:
                    ensure_tk_root()
                    try:
                        loaded = ask_load_mission(session.scale)
                    except (OSError, MissionFormatError) as e:
                        print(f"Failed to load mission: {e}")
                        loaded = None
                    if loaded is not None:
                        sections, initial, _meta = loaded
                        session.load(sections, initial)
                        print(f"Loaded {len(sections)} section(s).")
                elif event.key == pygame.K_F1:
                    for key, desc in CONTROLS:
                        print(f"{key:>20}  {desc}")
                elif event.key == pygame.K_i:
                    lines = instruction_lines(session)
                    for line in lines:
                        print(line)
                    ensure_tk_root()
                    export_instructions(lines)

        # ---------------- draw ----------------
        fill_background(screen)
        draw_grid(screen, grid_px)
        draw_obstacles(screen, session.obstacles, session.padding_px if session.collision_enabled else 0.0)
        draw_segments(screen, path_segments(session.sections, session.initial_pose))
        draw_waypoints(screen, session.sections, session.current_section_id)

        w_px = session.scale.to_px(session.robot.width)
        l_px = session.scale.to_px(session.robot.length)
        if session.player.is_running:
            draw_robot(screen, session.player.pose, w_px, l_px, session.tip_offset_px)
        else:
            draw_robot(screen, session.initial_pose, w_px, l_px, session.tip_offset_px)
            if session.dragging is None:
                cand = session.candidate_waypoint(mouse_pos)
                if cand.projection.distance_center > 0:
                    ghost = Pose(cand.projection.center[0], cand.projection.center[1], cand.projection.heading)
                    draw_ghost(screen, cand.anchor, ghost, session.reference_frame, session.tip_offset_px,
                               w_px, l_px, cand.blocked)

        draw_lines(screen, font, status_lines(session, snap_grid))
        pygame.display.flip()

    pygame.quit()


if __name__ == "__main__":
    main()
