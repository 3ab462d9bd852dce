"""Process-wide content state.

The store owns one ContentIndex per language.  There is a single writer (the
initial build, then the event consumer) which always builds a complete new
index and swaps it in; readers take whatever index is current and never see a
half-updated one.
"""
from __future__ import annotations

import threading
from typing import Optional

from .config import Settings
from .content import load_item
from .geo import regenerate_global, regenerate_pois
from .images import ImageStore
from .index import ContentIndex, build_poi_paths, order_posts, trim_drafts
from .locator import ContentMap, ContentRef, scan
from .markup import Renderer
from .output import OutputWriter

LOAD_ORDER = (("article", "articles"), ("post", "posts"), ("poi", "POIs"), ("map", "maps"))


class ContentStore:
    def __init__(self, settings: Settings, content_map: ContentMap, renderer: Renderer) -> None:
        self.settings = settings
        self.content_map = content_map
        self.renderer = renderer
        self._indexes: dict[str, ContentIndex] = {}
        self._lock = threading.Lock()

    @property
    def languages(self) -> tuple[str, ...]:
        return self.settings.languages

    def get(self, lang: str) -> Optional[ContentIndex]:
        with self._lock:
            return self._indexes.get(lang)

    def swap(self, index: ContentIndex) -> None:
        with self._lock:
            self._indexes[index.lang] = index


def load_language(lang: str, content_map: ContentMap, renderer: Renderer, trim: bool) -> ContentIndex:
    index = ContentIndex(lang=lang)
    for kind, label in LOAD_ORDER:
        print(f"Initializing step: loading {label} for language {lang}")
        items = index.items(kind)
        for name, path in content_map[lang][kind].items():
            items[name] = load_item(ContentRef(name=name, lang=lang, kind=kind, path=path), renderer)
    if trim:
        print(f"Initializing step: removing drafts for language {lang}")
        trim_drafts(index, content_map)
    print(f"Initializing step: building map data for language {lang}")
    index.poi_paths = build_poi_paths(index.pois)
    order_posts(index)
    regenerate_global(index)
    regenerate_pois(index)
    return index


def init_content(settings: Settings, images: ImageStore, writer: OutputWriter) -> ContentStore:
    """Scan and load everything, then write out POI and post JSON.  Content errors propagate."""
    print("Initializing step: scanning for content")
    content_map = scan(settings.content_dir, settings.languages, skip=settings.static_dir)
    store = ContentStore(settings, content_map, Renderer(content_map, images))
    for lang in settings.languages:
        index = load_language(lang, content_map, store.renderer, settings.trim_drafts)
        print(f"Initializing step: writing out JSON data for language {lang}")
        writer.write_pois(index)
        writer.write_posts(index)
        store.swap(index)
    return store
