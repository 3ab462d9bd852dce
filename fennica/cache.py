from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Iterable, Optional


def list_files(root: Path, suffixes: Iterable[str] = (), skip: Optional[Path] = None) -> list[Path]:
    if not root.exists():
        return []
    suffixes = tuple(suffix.lower() for suffix in suffixes)
    files = []
    for path in sorted(root.rglob("*"), key=lambda p: p.as_posix()):
        if not path.is_file():
            continue
        if suffixes and not path.name.lower().endswith(suffixes):
            continue
        if skip is not None and path.is_relative_to(skip):
            continue
        files.append(path)
    return files


def hash_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def hash_text(text: str) -> str:
    return hash_bytes(text.encode("utf-8"))


def dump_json(data: object) -> str:
    return json.dumps(data, ensure_ascii=True, default=str)


def hash_json(data: object) -> str:
    return hash_text(dump_json(data))
