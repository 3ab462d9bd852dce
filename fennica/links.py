"""Site URLs for content items."""
from __future__ import annotations

import re
from typing import Optional

from .errors import BrokenLinkError
from .locator import POST_NAME_RE, ContentMap

URL_PARTS = {"map": "map", "poi": "place", "article": "article"}
ALL_CATEGORY = "all"

MD_LINK_RE = re.compile(r"^(.*/)?(?P<file>[^/]+)\.md$")
LINK_TARGET_RE = re.compile(r"^(?P<name>.+)\.(?P<lang>[^.]+)\.(?P<type>[^.]+)$")


def post_link(name: str, lang: str) -> str:
    match = POST_NAME_RE.match(name)
    if not match:
        raise BrokenLinkError(f"Cannot link to post {name}")
    return f"/{lang}/{match.group('year')}/{match.group('month')}/{match.group('day')}/{match.group('slug')}/"


def content_link(kind: str, name: str, lang: str) -> str:
    if kind == "post":
        return post_link(name, lang)
    if name == "index" and kind != "poi":
        return f"/{lang}/{URL_PARTS[kind]}/"
    return f"/{lang}/{URL_PARTS[kind]}/{name}/"


def blog_link(lang: str, page: int = 1, category: Optional[str] = None) -> str:
    base = f"/{lang}/"
    if category and category != ALL_CATEGORY:
        base = f"/{lang}/category/{category}/"
    if page <= 1:
        return base
    return f"{base}{page}/"


def needs_rewrite(href: str) -> bool:
    return "://" not in href and href.endswith(".md")


def rewrite_link(href: str, content_map: ContentMap) -> str:
    """Map a link to another content file (``../foo.en.poi.md``) to its site URL."""
    match = MD_LINK_RE.match(href)
    target = LINK_TARGET_RE.match(match.group("file")) if match else None
    if not target or target.group("type") not in ("post",) + tuple(URL_PARTS):
        raise BrokenLinkError(f"Content file {href} has unknown type or malformed filename")
    name, lang, kind = target.group("name"), target.group("lang"), target.group("type")
    if name not in content_map.get(lang, {}).get(kind, {}):
        raise BrokenLinkError(f"Broken link to {kind} {href}")
    return content_link(kind, name, lang)


def language_versions(content_map: ContentMap, kind: str, name: str) -> dict[str, str]:
    return {
        lang: content_link(kind, name, lang)
        for lang, kinds in content_map.items()
        if name in kinds.get(kind, {})
    }
