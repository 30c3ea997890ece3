"""Drawn-path mission planner: waypoints to rotate/move actions, collision checks and playback."""
