"""Dev server: file watcher plus an HTTP server rendering pages on demand."""
from __future__ import annotations

import http.server
import re
import sys
import traceback
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .links import ALL_CATEGORY
from .pages import (
    PageContext,
    render_article_page,
    render_blog_page,
    render_feed,
    render_map_page,
    render_place_page,
    render_post_page,
)
from .store import ContentStore
from .updater import EventKind, EventProcessor, FileEvent

HTML_TYPE = "text/html; charset=utf-8"
RSS_TYPE = "application/rss+xml; charset=utf-8"

ROUTES = [
    ("map", re.compile(r"^/(?P<lang>[a-z]{2})/map/(?:(?P<name>[^/]+)/)?$")),
    ("poi", re.compile(r"^/(?P<lang>[a-z]{2})/place/(?P<name>[^/]+)/$")),
    ("article", re.compile(r"^/(?P<lang>[a-z]{2})/article/(?:(?P<name>[^/]+)/)?$")),
    ("post", re.compile(r"^/(?P<lang>[a-z]{2})/(?P<year>\d{4})/(?P<month>\d{2})/(?P<day>\d{2})/(?P<slug>[^/]+)/$")),
    ("blog", re.compile(r"^/(?P<lang>[a-z]{2})/(?:(?P<page>\d+)/)?$")),
    ("category", re.compile(r"^/(?P<lang>[a-z]{2})/category/(?P<category>[^/]+)/(?:(?P<page>\d+)/)?$")),
    ("rss", re.compile(r"^/(?P<lang>[a-z]{2})/rss\.xml$")),
]


class ContentEventHandler(FileSystemEventHandler):
    """Turns watchdog events into queued FileEvents."""

    def __init__(self, processor: EventProcessor) -> None:
        self.processor = processor

    def _submit(self, kind: EventKind, path: str) -> None:
        self.processor.submit(FileEvent(kind=kind, path=Path(path)))

    def on_created(self, event):
        if not event.is_directory:
            self._submit(EventKind.ADDED, event.src_path)

    def on_modified(self, event):
        if not event.is_directory:
            self._submit(EventKind.CHANGED, event.src_path)

    def on_deleted(self, event):
        if not event.is_directory:
            self._submit(EventKind.REMOVED, event.src_path)

    def on_moved(self, event):
        if not event.is_directory:
            self._submit(EventKind.REMOVED, event.src_path)
            self._submit(EventKind.ADDED, event.dest_path)


def setup_watcher(content_dir: Path, processor: EventProcessor) -> Observer:
    observer = Observer()
    observer.schedule(ContentEventHandler(processor), str(content_dir), recursive=True)
    observer.start()
    print(f"Watching: {content_dir}/")
    return observer


def render_route(store: ContentStore, ctx: PageContext, path: str) -> Optional[tuple[str, str]]:
    """(content type, body) for a dynamic page, None if the path is not one."""
    path = unquote(urlsplit(path).path)
    for route, pattern in ROUTES:
        match = pattern.match(path)
        if not match:
            continue
        index = store.get(match.group("lang"))
        if index is None:
            return None
        groups = match.groupdict()

        if route == "rss":
            return RSS_TYPE, render_feed(ctx, index)
        if route in ("blog", "category"):
            page = int(groups.get("page") or 1)
            category = groups.get("category") or ALL_CATEGORY
            body = render_blog_page(ctx, index, page, category)
            return (HTML_TYPE, body) if body is not None else None
        if route == "post":
            name = f"{groups['year']}-{groups['month']}-{groups['day']}-{groups['slug']}"
            post = index.posts.get(name)
            return (HTML_TYPE, render_post_page(ctx, index, post)) if post else None

        name = groups.get("name") or "index"
        if route == "map":
            item = index.maps.get(name)
            return (HTML_TYPE, render_map_page(ctx, index, item)) if item else None
        if route == "poi":
            item = index.pois.get(name)
            return (HTML_TYPE, render_place_page(ctx, index, item)) if item else None
        item = index.articles.get(name)
        return (HTML_TYPE, render_article_page(ctx, index, item)) if item else None
    return None


def make_handler(store: ContentStore, ctx: PageContext, serve_dir: Path) -> type:
    class Handler(http.server.SimpleHTTPRequestHandler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, directory=str(serve_dir), **kwargs)

        def do_GET(self):
            try:
                page = render_route(store, ctx, self.path)
            except Exception:
                print(f"Failed to render {self.path}, error was:", file=sys.stderr)
                traceback.print_exc()
                self.send_error(500, "Failed to render page")
                return
            if page is None:
                super().do_GET()
                return
            content_type, body = page
            data = body.encode("utf-8")
            self.send_response(200)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(data)))
            self.end_headers()
            self.wfile.write(data)

        def log_message(self, format, *args):
            pass

    return Handler


def serve(store: ContentStore, ctx: PageContext, port: int, observer: Observer, processor: EventProcessor) -> None:
    serve_dir = store.settings.build_dir.resolve()
    handler = make_handler(store, ctx, serve_dir)
    with http.server.ThreadingHTTPServer(("", port), handler) as httpd:
        print(f"Serving at http://localhost:{port}/")
        print("Press Ctrl+C to stop")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nStopping...")
    observer.stop()
    observer.join()
    processor.stop()
