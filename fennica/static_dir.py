from __future__ import annotations

import shutil
from pathlib import Path

from .config import STATIC_DIR, Settings
from .render import copy_static, write_highlight_css

HIGHLIGHT_CSS = "codehilite.css"


def init_static_dir(settings: Settings) -> None:
    print("Initializing step: copying static dir")
    copy_static(settings.static_dir, settings.build_dir / STATIC_DIR)
    write_highlight_css(settings.build_dir / STATIC_DIR / HIGHLIGHT_CSS)


def _target(settings: Settings, path: Path) -> Path:
    return settings.build_dir / STATIC_DIR / path.resolve().relative_to(settings.static_dir.resolve())


def is_static(settings: Settings, path: Path) -> bool:
    return path.resolve().is_relative_to(settings.static_dir.resolve())


def handle_modify_static(settings: Settings, path: Path) -> bool:
    if not is_static(settings, path):
        return False
    print(f"Static file change: {path} - copying to build dir")
    target = _target(settings, path)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(path, target)
    return True


def handle_remove_static(settings: Settings, path: Path) -> bool:
    if not is_static(settings, path):
        return False
    print(f"Static file remove: {path} - removing in build dir")
    _target(settings, path).unlink(missing_ok=True)
    return True
