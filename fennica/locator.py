"""Finding content files.

Content lives in ``<name>.<lang>.<type>.md`` files anywhere under the content
root.  Scanning builds a flat ``lang -> type -> name -> path`` lookup table.
"""
from __future__ import annotations

import datetime as dt
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .cache import list_files
from .errors import DuplicateContentError, MalformedPostNameError, ScanError

CONTENT_TYPES = ("map", "poi", "article", "post")
FILENAME_RE = re.compile(r"^(?P<name>.+)\.(?P<lang>[^.]+)\.(?P<type>[^.]+)\.md$")
POST_NAME_RE = re.compile(r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})-(?P<slug>.+)$")

ContentMap = dict[str, dict[str, dict[str, Path]]]


@dataclass(frozen=True)
class ContentRef:
    name: str
    lang: str
    kind: str
    path: Path


def empty_content_map(languages: Iterable[str]) -> ContentMap:
    return {lang: {kind: {} for kind in CONTENT_TYPES} for lang in languages}


def check_post_name(name: str, path: Path) -> None:
    match = POST_NAME_RE.match(name)
    if not match:
        raise MalformedPostNameError(f"Malformed post name for {path}, should be YYYY-MM-DD-name.XX.post.md")
    try:
        dt.date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
    except ValueError as exc:
        raise MalformedPostNameError(f"Invalid date in post name for {path}: {exc}") from exc


def parse_content_path(path: Path, languages: Iterable[str]) -> ContentRef:
    match = FILENAME_RE.match(path.name)
    if not match:
        raise ScanError(f"Content file {path} filename could not be parsed (missing language and/or type?)")
    name, lang, kind = match.group("name"), match.group("lang"), match.group("type")
    if lang not in languages:
        raise ScanError(f"Language {lang} unknown for content file {path}")
    if kind not in CONTENT_TYPES:
        raise ScanError(f"Type {kind} unknown for content file {path}")
    if kind == "post":
        check_post_name(name, path)
    return ContentRef(name=name, lang=lang, kind=kind, path=path)


def classify(path: Path, languages: Iterable[str]) -> Optional[ContentRef]:
    """Like parse_content_path, but None for anything that is not content."""
    if not path.name.endswith(".md"):
        return None
    try:
        return parse_content_path(path, languages)
    except ScanError:
        return None


def register(content_map: ContentMap, ref: ContentRef) -> None:
    existing = content_map.setdefault(ref.lang, {kind: {} for kind in CONTENT_TYPES})[ref.kind].get(ref.name)
    if existing is not None and existing != ref.path:
        raise DuplicateContentError(f"Duplicate {ref.kind} name for {existing} and {ref.path}")
    content_map[ref.lang][ref.kind][ref.name] = ref.path


def scan(root: Path, languages: Iterable[str], skip: Optional[Path] = None) -> ContentMap:
    languages = tuple(languages)
    root = root.resolve()
    content_map = empty_content_map(languages)
    counts = {kind: 0 for kind in CONTENT_TYPES}
    skip = skip.resolve() if skip is not None else None
    for md_path in list_files(root, (".md",), skip=skip):
        ref = parse_content_path(md_path, languages)
        register(content_map, ref)
        counts[ref.kind] += 1
    print(
        f"Found map(s): {counts['map']}, POI(s): {counts['poi']}, "
        f"article(s): {counts['article']}, post(s): {counts['post']}"
    )
    return content_map
