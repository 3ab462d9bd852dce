from __future__ import annotations

from pathlib import Path

from .cache import dump_json
from .index import ContentIndex
from .render import write_text


class OutputWriter:
    """Writes generated artifacts under the build dir; every write overwrites."""

    def __init__(self, build_dir: Path) -> None:
        self.build_dir = build_dir

    def poi_json_path(self, lang: str, name: str) -> Path:
        return self.build_dir / lang / "place" / f"{name}.json"

    def post_json_path(self, lang: str, name: str) -> Path:
        return self.build_dir / lang / "json" / f"{name}.json"

    def write_poi(self, index: ContentIndex, name: str) -> None:
        data = index.pois[name].to_json()
        data["geoJSONs"] = index.poi_geo.get(name, [])
        write_text(self.poi_json_path(index.lang, name), dump_json(data))

    def write_post(self, index: ContentIndex, name: str) -> None:
        write_text(self.post_json_path(index.lang, name), dump_json(index.posts[name].data))

    def write_pois(self, index: ContentIndex) -> None:
        for name in index.pois:
            self.write_poi(index, name)

    def write_posts(self, index: ContentIndex) -> None:
        for name in index.posts:
            self.write_post(index, name)

    def write_page(self, web_path: str, html_doc: str) -> None:
        write_text(self.build_dir / web_path.strip("/") / "index.html", html_doc)

    def write_feed(self, lang: str, xml: str) -> None:
        write_text(self.build_dir / lang / "rss.xml", xml)

    def remove_json(self, kind: str, lang: str, name: str) -> None:
        path = self.poi_json_path(lang, name) if kind == "poi" else self.post_json_path(lang, name)
        path.unlink(missing_ok=True)
