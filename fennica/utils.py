from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def parse_list(value: object) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    value = str(value or "").strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    items = [item.strip().strip("'\"") for item in value.split(",")]
    return [item for item in items if item]


def as_list(value: object) -> list:
    """Front-matter fields that take one value or a list of them."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def join_url(base: str, path: str) -> str:
    base = base.rstrip("/")
    path = path.lstrip("/")
    if not path:
        return base
    return f"{base}/{path}"


def rfc822_date(value: dt.datetime) -> str:
    value = value.replace(tzinfo=dt.timezone.utc)
    return value.strftime("%a, %d %b %Y %H:%M:%S %z")


def ensure_writable(build_dir: Path) -> None:
    probe = build_dir / ".test"
    try:
        build_dir.mkdir(parents=True, exist_ok=True)
        probe.write_text("test", encoding="utf-8")
        probe.unlink()
    except OSError as exc:
        print(f"Looks like build dir {build_dir} is not writable ({exc}). Please check.", file=sys.stderr)
        sys.exit(1)
