"""Run local environment checks for the WRO mission planner."""

import platform
import sys
from pathlib import Path


def _ok(flag: bool) -> str:
    return "PASS" if flag else "FAIL"


def _warn(flag: bool) -> str:
    return "PASS" if flag else "WARN"


def _can_write(path: Path) -> bool:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        marker = path.parent / ".planner_write_test"
        marker.write_text("ok", encoding="utf-8")
        marker.unlink()
        return True
    except OSError:
        return False


def main() -> int:
    root = Path(__file__).resolve().parent
    print("WRO Mission Planner Doctor")
    print(f"- OS: {platform.system()} {platform.release()}")
    print(f"- Python: {platform.python_version()} ({sys.executable})")

    py_ok = sys.version_info >= (3, 8)
    print(f"[{_ok(py_ok)}] Python >= 3.8")
    if not py_ok:
        return 1

    try:
        import tkinter  # noqa: F401
        tk_ok = True
    except ImportError:
        tk_ok = False
    print(f"[{_warn(tk_ok)}] tkinter available (save/load dialogs)")

    try:
        import pygame  # noqa: F401
        pg_ok = True
    except ImportError:
        pg_ok = False
    print(f"[{_ok(pg_ok)}] pygame available")

    required = [
        root / "main.py",
        root / "planner" / "config.py",
        root / "planner" / "sections.py",
        root / "planner" / "playback.py",
    ]
    files_ok = all(p.exists() for p in required)
    print(f"[{_ok(files_ok)}] core files present")
    if not files_ok:
        for p in required:
            if not p.exists():
                print(f"       Missing: {p}")

    try:
        from planner.config import _config_candidates, load_config
        cfg_candidates = [Path(p) for p in _config_candidates()]
        cfg = load_config()
        cfg_ok = isinstance(cfg, dict) and "robot" in cfg
    except (ImportError, OSError, ValueError):
        cfg_candidates = [root / "config.json"]
        cfg_ok = False
    print(f"[{_ok(cfg_ok)}] config loads")
    writable = any(_can_write(p) for p in cfg_candidates)
    print(f"[{_ok(writable)}] writable config path available")

    all_ok = py_ok and pg_ok and files_ok and cfg_ok and writable
    if all_ok:
        print("All checks passed.")
        return 0
    print("One or more checks failed.")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
