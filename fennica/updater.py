"""Incremental updates on file events (dev server mode).

Every content event reloads exactly one item and redoes only the derived
state depending on it.  The work happens on a copy of the language index
which is swapped in only once complete, so a broken file leaves the last good
state of everything in place.

File removal is not handled: it only warns that derived state is stale now
and a full rebuild (devserver restart) is needed.
"""
from __future__ import annotations

import enum
import queue
import sys
import threading
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .cache import hash_json
from .content import ContentItem, load_item
from .errors import ScanError
from .geo import map_view, regenerate_global, regenerate_poi
from .images import ImageStore
from .index import ContentIndex, order_posts, reindex_poi, remove_poi
from .locator import classify, parse_content_path, register
from .output import OutputWriter
from .static_dir import handle_modify_static, handle_remove_static
from .store import ContentStore

LABELS = {"map": "Map", "poi": "POI", "article": "Article", "post": "Post"}
# output entries with this prefix delete the item JSON instead of writing it
DROP = "drop-"


class EventKind(enum.Enum):
    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class FileEvent:
    kind: EventKind
    path: Path


Outputs = list[tuple[str, str]]


def _unique(names: list[str]) -> list[str]:
    return list(dict.fromkeys(names))


class IncrementalUpdater:
    def __init__(self, store: ContentStore, writer: OutputWriter, images: Optional[ImageStore] = None) -> None:
        self.store = store
        self.settings = store.settings
        self.writer = writer
        self.images = images

    def on_file_event(self, event: FileEvent) -> bool:
        """Route one event; True if some handler recognized the path."""
        path = Path(event.path).resolve()
        if event.kind is EventKind.REMOVED:
            return (
                handle_remove_static(self.settings, path)
                or (self.images is not None and self.images.handle_remove(path))
                or self.handle_remove_content(path)
            )
        return (
            handle_modify_static(self.settings, path)
            or (self.images is not None and self.images.handle_modify(path, event.kind is EventKind.ADDED))
            or self.handle_modify_content(path)
        )

    def handle_modify_content(self, path: Path) -> bool:
        if not path.name.endswith(".md"):
            return False
        try:
            ref = parse_content_path(path, self.settings.languages)
        except ScanError as exc:
            print(f"Ignoring {path}: {exc}", file=sys.stderr)
            return False

        print(f"{LABELS[ref.kind]} change: {path} - reloading")
        known = ref.name in self.store.content_map.get(ref.lang, {}).get(ref.kind, {})
        try:
            register(self.store.content_map, ref)
            item = load_item(ref, self.store.renderer)
            current = self.store.get(ref.lang) or ContentIndex(lang=ref.lang)
            index = current.copy()
            outputs = getattr(self, f"apply_{ref.kind}")(index, item)
        except Exception:
            print("Failed to reload, error was:", file=sys.stderr)
            traceback.print_exc()
            if not known:
                self.store.content_map[ref.lang][ref.kind].pop(ref.name, None)
            return True

        self.store.swap(index)
        self.write_outputs(index, outputs)
        return True

    def handle_remove_content(self, path: Path) -> bool:
        if classify(path, self.settings.languages) is None:
            return False
        print(f"Content remove: {path} - ignoring")
        print(
            "CONTENT POSSIBLY INVALIDATED: Existing content deleted. Not attempting to update prebuilt data, "
            "they are stale now. Consider full regeneration (devserver restart)",
            file=sys.stderr,
        )
        return True

    def write_outputs(self, index: ContentIndex, outputs: Outputs) -> None:
        for kind, name in outputs:
            try:
                if kind.startswith(DROP):
                    self.writer.remove_json(kind[len(DROP):], index.lang, name)
                elif kind == "poi":
                    self.writer.write_poi(index, name)
                else:
                    self.writer.write_post(index, name)
            except OSError:
                print(f"Failed to write out {kind} {name}, error was:", file=sys.stderr)
                traceback.print_exc()

    def trimmed(self, index: ContentIndex, item: ContentItem) -> bool:
        """Drafts are dropped from the index (and the content map) when trimming is on."""
        if not (self.settings.trim_drafts and item.draft):
            return False
        print(f"{LABELS[item.kind]} {item.name} is a draft - removing")
        self.store.content_map[index.lang][item.kind].pop(item.name, None)
        return True

    def apply_article(self, index: ContentIndex, article) -> Outputs:
        if self.trimmed(index, article):
            index.articles.pop(article.name, None)
        else:
            index.articles[article.name] = article
        return []

    def apply_map(self, index: ContentIndex, map_item) -> Outputs:
        if self.trimmed(index, map_item):
            index.maps.pop(map_item.name, None)
            index.map_geo.pop(map_item.name, None)
        else:
            index.maps[map_item.name] = map_item
            index.map_geo[map_item.name] = map_view(index, map_item)
        return []

    def apply_post(self, index: ContentIndex, post) -> Outputs:
        old = index.posts.get(post.name)
        old_geo = hash_json(old.geo_points if old else [])
        outputs: Outputs = []
        if self.trimmed(index, post):
            index.posts.pop(post.name, None)
            new_geo = hash_json([])
            outputs.append((DROP + "post", post.name))
        else:
            index.posts[post.name] = post
            new_geo = hash_json(post.geo_points)
            outputs.append(("post", post.name))
        order_posts(index)
        if old_geo != new_geo:
            regenerate_global(index)
            print(f"Note: geo data changed, regenerated {len(index.maps)} map(s)")
        return outputs

    def apply_poi(self, index: ContentIndex, poi) -> Outputs:
        old_path = index.path_of(poi.name)
        old_chain = old_path.split("/")[:-1] if old_path else []

        removed: list[str] = []
        if self.trimmed(index, poi):
            removed = remove_poi(index, poi.name) if poi.name in index.pois else []
            affected = [name for name in old_chain if name in index.pois]
            if len(removed) > 1:
                print(f"Note: removed {len(removed) - 1} descendant POI(s) of {poi.name}", file=sys.stderr)
                for name in removed[1:]:
                    self.store.content_map[index.lang]["poi"].pop(name, None)
        else:
            index.pois[poi.name] = poi
            old_path, new_path, moved = reindex_poi(index, poi.name)
            affected = [poi.name] + new_path.split("/")[:-1] + [name for name in old_chain if name in index.pois]
            if old_path != new_path:
                affected += moved

        affected = _unique(affected)
        regenerate_global(index)
        for name in affected:
            regenerate_poi(index, name)
        print(f"Note: regenerated {len(index.maps)} map(s) and {len(affected)} POI(s)")
        return [("poi", name) for name in affected] + [(DROP + "poi", name) for name in removed]


class EventProcessor:
    """Single consumer of file events.

    Events may be submitted from any thread (the watcher's); each one is
    handled to completion before the next is taken off the queue.
    """

    def __init__(self) -> None:
        self.queue: queue.Queue = queue.Queue()
        self.updater: Optional[IncrementalUpdater] = None
        self._thread: Optional[threading.Thread] = None

    def submit(self, event: FileEvent) -> None:
        self.queue.put(event)

    def process(self, event: FileEvent) -> None:
        try:
            self.updater.on_file_event(event)
        except Exception:
            print(f"Failed to handle {event.kind.value} event for {event.path}, error was:", file=sys.stderr)
            traceback.print_exc()

    def drain(self) -> None:
        """Handle everything queued so far on the calling thread."""
        while True:
            try:
                event = self.queue.get_nowait()
            except queue.Empty:
                return
            try:
                if event is not None:
                    self.process(event)
            finally:
                self.queue.task_done()

    def _run(self) -> None:
        while True:
            event = self.queue.get()
            try:
                if event is None:
                    return
                self.process(event)
            finally:
                self.queue.task_done()

    def start(self, updater: IncrementalUpdater) -> None:
        self.updater = updater
        self._thread = threading.Thread(target=self._run, name="content-events", daemon=True)
        self._thread.start()

    def join(self) -> None:
        self.queue.join()

    def stop(self) -> None:
        if self._thread is not None:
            self.queue.put(None)
            self._thread.join()
            self._thread = None
