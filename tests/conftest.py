from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from fennica.config import Settings
from fennica.content import POI, Map, Post
from fennica.images import ImageStore
from fennica.output import OutputWriter


def write_content(root: Path, relpath: str, meta: dict | None = None, body: str = "") -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    text = body
    if meta is not None:
        text = f"---\n{yaml.safe_dump(meta, allow_unicode=True, sort_keys=False)}---\n{body}"
    path.write_text(text, encoding="utf-8")
    return path


def make_poi(name: str, parent: str | None = None, **data) -> POI:
    data.setdefault("title", name.upper())
    data.setdefault("lat", 60.0)
    data.setdefault("lng", 24.0)
    data.setdefault("zoom", 10)
    data.setdefault("type", "city")
    if parent:
        data["parent"] = parent
    return POI(name=name, lang="en", path=Path(f"{name}.en.poi.md"), data=data, content="")


def make_post(name: str, **data) -> Post:
    data.setdefault("title", name)
    return Post(name=name, lang="en", path=Path(f"{name}.en.post.md"), data=data, content="")


def make_map(name: str, **data) -> Map:
    return Map(name=name, lang="en", path=Path(f"{name}.en.map.md"), data=data, content="")


class NoImages:
    def resolve(self, src, base_path):
        raise AssertionError(f"unexpected image {src}")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    content = tmp_path / "content"
    content.mkdir()
    return Settings(
        content_dir=content,
        build_dir=tmp_path / "build",
        languages=("en", "ru"),
        public_base="https://example.org",
        trim_drafts=True,
    )


@pytest.fixture
def images(settings: Settings) -> ImageStore:
    return ImageStore(settings.content_dir, settings.build_dir, settings.static_dir)


@pytest.fixture
def writer(settings: Settings) -> OutputWriter:
    return OutputWriter(settings.build_dir)
