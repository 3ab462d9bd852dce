"""In-memory indexes over the content of one language.

Items refer to each other by name only (``parent``, ``prev``/``next``); the
index maps resolve those names.  Items are never patched: a reload or a
relink replaces the item object in its map.
"""
from __future__ import annotations

import dataclasses
import sys
from dataclasses import dataclass, field
from typing import Optional

from .content import POI, Article, ContentItem, Map, Post
from .errors import CycleError, UnresolvedParentError
from .links import ALL_CATEGORY

MAX_POI_DEPTH = 64


@dataclass
class ContentIndex:
    lang: str
    articles: dict[str, Article] = field(default_factory=dict)
    posts: dict[str, Post] = field(default_factory=dict)
    pois: dict[str, POI] = field(default_factory=dict)
    maps: dict[str, Map] = field(default_factory=dict)
    posts_ordered: list[str] = field(default_factory=list)
    posts_by_category: dict[str, list[str]] = field(default_factory=dict)
    poi_paths: dict[str, str] = field(default_factory=dict)
    global_layers: list = field(default_factory=list)
    poi_geo: dict[str, list[dict]] = field(default_factory=dict)
    map_geo: dict[str, list[dict]] = field(default_factory=dict)

    def items(self, kind: str) -> dict[str, ContentItem]:
        return {"article": self.articles, "post": self.posts, "poi": self.pois, "map": self.maps}[kind]

    def copy(self) -> ContentIndex:
        """Copy of every container; items and geo collections are shared since they are replaced, not mutated."""
        return ContentIndex(
            lang=self.lang,
            articles=dict(self.articles),
            posts=dict(self.posts),
            pois=dict(self.pois),
            maps=dict(self.maps),
            posts_ordered=list(self.posts_ordered),
            posts_by_category={key: list(value) for key, value in self.posts_by_category.items()},
            poi_paths=dict(self.poi_paths),
            global_layers=[list(layer) for layer in self.global_layers],
            poi_geo=dict(self.poi_geo),
            map_geo=dict(self.map_geo),
        )

    def path_of(self, name: str) -> Optional[str]:
        return find_poi_path(self.poi_paths, name)


def resolve_poi_path(name: str, pois: dict[str, POI]) -> str:
    """Walk parents up to the root: ``root/.../parent/name``."""
    parts = [name]
    seen = {name}
    parent = pois[name].parent
    while parent:
        if parent in seen:
            raise CycleError(f"POI {name} has circular parentage through {parent}")
        if len(parts) >= MAX_POI_DEPTH:
            raise CycleError(f"POI {name} parent chain is deeper than {MAX_POI_DEPTH}")
        if parent not in pois:
            raise UnresolvedParentError(f"POI {parts[0]} has unknown parent {parent}")
        seen.add(parent)
        parts.append(parent)
        parent = pois[parent].parent
    return "/".join(reversed(parts))


def build_poi_paths(pois: dict[str, POI]) -> dict[str, str]:
    return {resolve_poi_path(name, pois): name for name in pois}


def find_poi_path(poi_paths: dict[str, str], name: str) -> Optional[str]:
    suffix = "/" + name
    for path in poi_paths:
        if path == name or path.endswith(suffix):
            return path
    return None


def reindex_poi(index: ContentIndex, name: str) -> tuple[Optional[str], str, list[str]]:
    """Re-insert one POI under its current parent chain.

    Descendants of the POI are moved along with it.  Returns the old path, the
    new path and the names of the moved descendants.
    """
    old_path = find_poi_path(index.poi_paths, name)
    moved = []
    if old_path is not None:
        del index.poi_paths[old_path]
        for path in [path for path in index.poi_paths if path.startswith(old_path + "/")]:
            moved.append(index.poi_paths.pop(path))
    new_path = resolve_poi_path(name, index.pois)
    index.poi_paths[new_path] = name
    for child in moved:
        index.poi_paths[resolve_poi_path(child, index.pois)] = child
    return old_path, new_path, moved


def neighbors(ordering: list[str], name: str) -> tuple[Optional[str], Optional[str]]:
    """(prev, next) of a post: prev is the older neighbour, next the newer one."""
    position = ordering.index(name)
    newer = ordering[position - 1] if position > 0 else None
    older = ordering[position + 1] if position < len(ordering) - 1 else None
    return older, newer


def order_posts(index: ContentIndex) -> None:
    index.posts_ordered = sorted(index.posts, reverse=True)
    categories: dict[str, list[str]] = {ALL_CATEGORY: index.posts_ordered}
    for name in index.posts_ordered:
        category = index.posts[name].category
        if category and category != ALL_CATEGORY:
            categories.setdefault(category, []).append(name)
    index.posts_by_category = categories

    for name in index.posts_ordered:
        post = index.posts[name]
        prev, next_ = neighbors(index.posts_ordered, name)
        if (post.prev, post.next) != (prev, next_):
            index.posts[name] = dataclasses.replace(post, prev=prev, next=next_)


def category_neighbors(index: ContentIndex, name: str, category: str = ALL_CATEGORY) -> tuple[Optional[str], Optional[str]]:
    return neighbors(index.posts_by_category.get(category, []), name)


def poi_descendants(pois: dict[str, POI], name: str) -> list[str]:
    children = {}
    for poi in pois.values():
        if poi.parent:
            children.setdefault(poi.parent, []).append(poi.name)
    found, pending = [], list(children.get(name, []))
    while pending:
        child = pending.pop()
        if child in found or child == name:
            continue
        found.append(child)
        pending.extend(children.get(child, []))
    return found


def remove_poi(index: ContentIndex, name: str) -> list[str]:
    """Drop a POI along with its descendants from every POI structure."""
    removed = [name] + poi_descendants(index.pois, name)
    for gone in removed:
        index.pois.pop(gone, None)
        index.poi_geo.pop(gone, None)
    index.poi_paths = {path: poi for path, poi in index.poi_paths.items() if poi not in removed}
    return removed


def trim_drafts(index: ContentIndex, content_map: Optional[dict] = None) -> list[ContentItem]:
    """Remove draft items from every index, cascading to whatever referenced them."""
    trimmed: list[ContentItem] = []
    for kind in ("map", "article", "post"):
        items = index.items(kind)
        for item in [item for item in items.values() if item.draft]:
            del items[item.name]
            trimmed.append(item)
    for poi in [poi for poi in index.pois.values() if poi.draft]:
        if poi.name not in index.pois:
            continue
        removed = [index.pois[name] for name in [poi.name] + poi_descendants(index.pois, poi.name)]
        remove_poi(index, poi.name)
        for child in removed[1:]:
            print(f"Warning: POI {child.name} removed along with its draft ancestor {poi.name}", file=sys.stderr)
        trimmed.extend(removed)

    if any(item.kind == "post" for item in trimmed):
        order_posts(index)
    if content_map is not None:
        for item in trimmed:
            content_map.get(index.lang, {}).get(item.kind, {}).pop(item.name, None)
    return trimmed
