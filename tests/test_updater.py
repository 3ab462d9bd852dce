from __future__ import annotations

import json
from pathlib import Path

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileDeletedEvent, FileModifiedEvent, FileMovedEvent

from conftest import write_content
from fennica.config import Settings
from fennica.server import ContentEventHandler
from fennica.store import init_content
from fennica.updater import EventKind, EventProcessor, FileEvent, IncrementalUpdater


def feature_ids(collections: list[dict]) -> set[str]:
    return {feature["id"] for collection in collections for feature in collection["features"]}


@pytest.fixture
def site(settings: Settings, images, writer):
    root = settings.content_dir
    write_content(root, "index.en.map.md", {"title": "Finland"})
    write_content(root, "places/a.en.poi.md", {"title": "A", "lat": 60.0, "lng": 24.0, "zoom": 8, "type": "region"})
    write_content(root, "places/b.en.poi.md", {"title": "B", "parent": "a", "lat": 60.1, "lng": 24.1, "zoom": 10, "type": "city"})
    write_content(root, "places/c.en.poi.md", {"title": "C", "parent": "b", "lat": 60.2, "lng": 24.2, "zoom": 12, "type": "museum"})
    write_content(root, "blog/2020-01-01-a.en.post.md", {"title": "First", "geo": {"lat": 61.0, "lng": 25.0, "zoom": 9}}, "Hello.")
    write_content(root, "blog/2020-02-01-b.en.post.md", {"title": "Second"}, "World.")
    store = init_content(settings, images, writer)
    return store, IncrementalUpdater(store, writer, images)


def change(updater: IncrementalUpdater, path: Path, kind: EventKind = EventKind.CHANGED) -> bool:
    return updater.on_file_event(FileEvent(kind=kind, path=path))


def test_initial_load_writes_item_json(site, settings: Settings):
    store, _ = site
    index = store.get("en")
    assert index.poi_paths == {"a": "a", "a/b": "b", "a/b/c": "c"}
    assert index.posts_ordered == ["2020-02-01-b", "2020-01-01-a"]
    place = json.loads((settings.build_dir / "en/place/c.json").read_text(encoding="utf-8"))
    assert place["name"] == "c"
    assert len(place["geoJSONs"]) == 16
    post = json.loads((settings.build_dir / "en/json/2020-01-01-a.json").read_text(encoding="utf-8"))
    assert post["title"] == "First"
    assert store.get("ru").pois == {}


def test_reparenting_moves_descendants(site, settings: Settings):
    store, updater = site
    before = store.get("en")
    path = write_content(settings.content_dir, "places/b.en.poi.md", {"title": "B", "lat": 60.1, "lng": 24.1, "zoom": 10, "type": "city"})

    assert change(updater, path)

    index = store.get("en")
    assert index.poi_paths == {"a": "a", "b": "b", "b/c": "c"}
    assert feature_ids(index.poi_geo["a"]) == {"a"}
    assert feature_ids(index.poi_geo["b"]) == {"b", "c"}
    assert feature_ids(index.poi_geo["c"]) == {"b", "c"}
    written = json.loads((settings.build_dir / "en/place/b.json").read_text(encoding="utf-8"))
    assert "parent" not in written["data"]
    # the previous snapshot is left alone
    assert before.poi_paths == {"a": "a", "a/b": "b", "a/b/c": "c"}


def test_new_poi_under_existing_parent(site, settings: Settings):
    store, updater = site
    path = write_content(settings.content_dir, "places/d.en.poi.md", {"title": "D", "parent": "a", "lat": 60.3, "lng": 24.3, "zoom": 11})
    change(updater, path, EventKind.ADDED)

    index = store.get("en")
    assert index.poi_paths["a/d"] == "d"
    assert feature_ids(index.poi_geo["a"]) == {"a", "b", "c", "d"}
    assert "d" in feature_ids(index.map_geo["index"])
    assert (settings.build_dir / "en/place/d.json").exists()


def test_malformed_file_leaves_everything_intact(site, settings: Settings, capsys):
    store, updater = site
    before = store.get("en")
    bad = settings.content_dir / "places/d.en.poi.md"
    bad.write_text("---\ntitle: [unclosed\n---\n", encoding="utf-8")

    assert change(updater, bad, EventKind.ADDED)

    assert store.get("en") is before
    assert "d" not in store.content_map["en"]["poi"]
    assert "Failed to reload" in capsys.readouterr().err

    broken = settings.content_dir / "places/b.en.poi.md"
    broken.write_text("---\ntitle: B\nparent: a\nlat: 60.1\nlng: 24.1\nzoom: 99\n---\n", encoding="utf-8")
    change(updater, broken)
    assert store.get("en") is before
    assert store.get("en").pois["b"].data["zoom"] == 10
    assert "b" in store.content_map["en"]["poi"]


def test_unresolvable_parent_on_reload_keeps_old_state(site, settings: Settings, capsys):
    store, updater = site
    before = store.get("en")
    path = write_content(settings.content_dir, "places/b.en.poi.md", {"title": "B", "parent": "nowhere", "lat": 60.1, "lng": 24.1, "zoom": 10})
    change(updater, path)
    assert store.get("en") is before
    assert before.pois["b"].parent == "a"
    assert "Failed to reload" in capsys.readouterr().err


def test_reloading_unchanged_file_is_idempotent(site, settings: Settings):
    store, updater = site
    before = store.get("en")
    place_json = settings.build_dir / "en/place/b.json"
    post_json = settings.build_dir / "en/json/2020-01-01-a.json"
    place_bytes, post_bytes = place_json.read_bytes(), post_json.read_bytes()

    change(updater, settings.content_dir / "places/b.en.poi.md")
    change(updater, settings.content_dir / "blog/2020-01-01-a.en.post.md")

    after = store.get("en")
    assert after.pois == before.pois
    assert after.posts == before.posts
    assert after.poi_paths == before.poi_paths
    assert after.poi_geo == before.poi_geo
    assert after.map_geo == before.map_geo
    assert place_json.read_bytes() == place_bytes
    assert post_json.read_bytes() == post_bytes


def test_drafts_never_reach_the_index(site, settings: Settings):
    store, updater = site
    draft = write_content(settings.content_dir, "blog/2020-03-01-c.en.post.md", {"title": "Draft", "draft": True, "geo": {"lat": 62.0, "lng": 26.0, "zoom": 9}})
    change(updater, draft, EventKind.ADDED)

    index = store.get("en")
    assert "2020-03-01-c" not in index.posts
    assert index.posts_ordered == ["2020-02-01-b", "2020-01-01-a"]
    assert index.posts["2020-02-01-b"].next is None
    assert "2020-03-01-c" not in store.content_map["en"]["post"]
    assert "2020-03-01-c" not in feature_ids(index.map_geo["index"])
    assert not (settings.build_dir / "en/json/2020-03-01-c.json").exists()


def test_poi_turned_draft_is_dropped_with_its_children(site, settings: Settings):
    store, updater = site
    path = write_content(settings.content_dir, "places/b.en.poi.md", {"title": "B", "parent": "a", "draft": True, "lat": 60.1, "lng": 24.1, "zoom": 10})
    change(updater, path)

    index = store.get("en")
    assert set(index.pois) == {"a"}
    assert index.poi_paths == {"a": "a"}
    assert feature_ids(index.poi_geo["a"]) == {"a"}
    assert feature_ids(index.map_geo["index"]) == {"a", "2020-01-01-a"}
    assert "b" not in store.content_map["en"]["poi"]
    assert not (settings.build_dir / "en/place/b.json").exists()
    assert not (settings.build_dir / "en/place/c.json").exists()
    assert (settings.build_dir / "en/place/a.json").exists()


def test_post_turned_draft_loses_its_json(site, settings: Settings):
    store, updater = site
    post_json = settings.build_dir / "en/json/2020-02-01-b.json"
    assert post_json.exists()
    path = write_content(settings.content_dir, "blog/2020-02-01-b.en.post.md", {"title": "Second", "draft": True}, "World.")

    change(updater, path)

    index = store.get("en")
    assert index.posts_ordered == ["2020-01-01-a"]
    assert index.posts["2020-01-01-a"].next is None
    assert not post_json.exists()


def test_removal_only_warns(site, settings: Settings, capsys):
    store, updater = site
    before = store.get("en")
    path = settings.content_dir / "places/c.en.poi.md"
    path.unlink()

    assert change(updater, path, EventKind.REMOVED)

    assert store.get("en") is before
    assert "c" in before.pois
    assert (settings.build_dir / "en/place/c.json").exists()
    assert "CONTENT POSSIBLY INVALIDATED" in capsys.readouterr().err


def test_post_text_edit_does_not_touch_maps(site, settings: Settings):
    store, updater = site
    before = store.get("en")
    path = write_content(settings.content_dir, "blog/2020-01-01-a.en.post.md", {"title": "First, edited", "geo": {"lat": 61.0, "lng": 25.0, "zoom": 9}}, "Hello.")
    change(updater, path)

    index = store.get("en")
    assert index.map_geo["index"] is before.map_geo["index"]
    written = json.loads((settings.build_dir / "en/json/2020-01-01-a.json").read_text(encoding="utf-8"))
    assert written["title"] == "First, edited"

    path = write_content(settings.content_dir, "blog/2020-01-01-a.en.post.md", {"title": "First, edited", "geo": {"lat": 65.0, "lng": 25.0, "zoom": 9}}, "Hello.")
    change(updater, path)
    moved = store.get("en").map_geo["index"]
    assert moved is not before.map_geo["index"]
    coordinates = [
        feature["geometry"]["coordinates"]
        for collection in moved
        for feature in collection["features"]
        if feature["id"] == "2020-01-01-a"
    ]
    assert coordinates == [[25.0, 65.0]]


def test_unrecognized_paths_are_ignored(site, settings: Settings):
    _, updater = site
    other = write_content(settings.content_dir, "notes/x.de.poi.md", {"title": "x"})
    text = write_content(settings.content_dir, "notes/todo.txt", body="later")
    assert not change(updater, other, EventKind.ADDED)
    assert not change(updater, text, EventKind.ADDED)


def test_post_with_impossible_date_is_rejected(site, settings: Settings, capsys):
    store, updater = site
    before = store.get("en")
    path = write_content(settings.content_dir, "blog/2020-13-45-x.en.post.md", {"title": "Nowhen"}, "Lost.")

    assert not change(updater, path, EventKind.ADDED)

    assert store.get("en") is before
    assert "2020-13-45-x" not in store.content_map["en"]["post"]
    assert not (settings.build_dir / "en/json/2020-13-45-x.json").exists()
    assert "Invalid date in post name" in capsys.readouterr().err


def test_static_files_are_mirrored(site, settings: Settings):
    _, updater = site
    path = write_content(settings.content_dir, "static/site.css", body="body {}")
    assert change(updater, path, EventKind.ADDED)
    assert (settings.build_dir / "static/site.css").read_text(encoding="utf-8") == "body {}"
    path.unlink()
    assert change(updater, path, EventKind.REMOVED)
    assert not (settings.build_dir / "static/site.css").exists()


class ExplodingUpdater:
    def __init__(self):
        self.seen = []

    def on_file_event(self, event):
        self.seen.append(event.path.name)
        if event.path.name == "bad.md":
            raise RuntimeError("boom")
        return True


def test_processor_handles_events_in_order_and_survives_errors(capsys):
    processor = EventProcessor()
    processor.updater = ExplodingUpdater()
    for name in ("one.md", "bad.md", "two.md"):
        processor.submit(FileEvent(kind=EventKind.CHANGED, path=Path(name)))
    processor.drain()
    assert processor.updater.seen == ["one.md", "bad.md", "two.md"]
    assert "boom" in capsys.readouterr().err


def test_processor_thread(site, settings: Settings):
    store, updater = site
    processor = EventProcessor()
    processor.start(updater)
    path = write_content(settings.content_dir, "blog/2020-03-01-c.en.post.md", {"title": "Third"}, "New.")
    processor.submit(FileEvent(kind=EventKind.ADDED, path=path))
    processor.join()
    processor.stop()
    assert store.get("en").posts_ordered[0] == "2020-03-01-c"


def test_watchdog_events_are_queued():
    processor = EventProcessor()
    handler = ContentEventHandler(processor)
    handler.dispatch(FileCreatedEvent("/c/a.en.poi.md"))
    handler.dispatch(FileModifiedEvent("/c/a.en.poi.md"))
    handler.dispatch(DirCreatedEvent("/c/new"))
    handler.dispatch(FileDeletedEvent("/c/b.en.poi.md"))
    handler.dispatch(FileMovedEvent("/c/tmp.md", "/c/d.en.poi.md"))

    queued = []
    while not processor.queue.empty():
        queued.append(processor.queue.get_nowait())
    assert [(event.kind, event.path.name) for event in queued] == [
        (EventKind.ADDED, "a.en.poi.md"),
        (EventKind.CHANGED, "a.en.poi.md"),
        (EventKind.REMOVED, "b.en.poi.md"),
        (EventKind.REMOVED, "tmp.md"),
        (EventKind.ADDED, "d.en.poi.md"),
    ]
