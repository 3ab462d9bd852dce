"""Loading a single content file into a typed, formatted item."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, ClassVar, Optional

import yaml

from .errors import ParseError
from .geo import check_point
from .locator import POST_NAME_RE, ContentRef
from .utils import as_list, parse_bool


@dataclass(frozen=True)
class ContentItem:
    kind: ClassVar[str] = ""

    name: str
    lang: str
    path: Path
    data: dict
    content: str

    @property
    def title(self) -> str:
        return str(self.data.get("title") or self.name)

    @property
    def draft(self) -> bool:
        return parse_bool(self.data.get("draft"))

    def to_json(self) -> dict:
        return {"name": self.name, "data": self.data, "content": self.content}


@dataclass(frozen=True)
class Article(ContentItem):
    kind: ClassVar[str] = "article"

    @property
    def prev(self) -> Optional[str]:
        return self.data.get("prev")

    @property
    def next(self) -> Optional[str]:
        return self.data.get("next")


@dataclass(frozen=True)
class Post(ContentItem):
    kind: ClassVar[str] = "post"

    prev: Optional[str] = None
    next: Optional[str] = None

    @property
    def date(self) -> dt.date:
        match = POST_NAME_RE.match(self.name)
        return dt.date(int(match.group("year")), int(match.group("month")), int(match.group("day")))

    @property
    def slug(self) -> str:
        return POST_NAME_RE.match(self.name).group("slug")

    @property
    def category(self) -> Optional[str]:
        value = self.data.get("category")
        return str(value) if value else None

    @property
    def geo_points(self) -> list[dict]:
        return as_list(self.data.get("geo"))

    def to_json(self) -> dict:
        data = super().to_json()
        data.update({"prev": self.prev, "next": self.next})
        return data


@dataclass(frozen=True)
class POI(ContentItem):
    kind: ClassVar[str] = "poi"

    gallery_prepared: list = field(default_factory=list)

    @property
    def parent(self) -> Optional[str]:
        return self.data.get("parent") or None

    @property
    def maps(self) -> list[str]:
        return [str(name) for name in as_list(self.data.get("map"))]

    @property
    def owning_map(self) -> str:
        return self.maps[0] if self.maps else "index"

    def to_json(self) -> dict:
        data = super().to_json()
        if self.gallery_prepared:
            data["galleryPrepared"] = self.gallery_prepared
        return data


@dataclass(frozen=True)
class Map(ContentItem):
    kind: ClassVar[str] = "map"

    @property
    def poi_types(self) -> list[str]:
        return [str(value) for value in as_list(self.data.get("poiTypes"))]


def parse_front_matter(text: str, source: str = "<string>") -> tuple[dict, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, clean_text

    end = None
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            end = i
            break
    if end is None:
        raise ParseError(f"Unterminated front matter in {source}")

    try:
        meta = yaml.safe_load("\n".join(lines[1:end]))
    except yaml.YAMLError as exc:
        raise ParseError(f"Malformed front matter in {source}: {exc}") from exc
    if meta is None:
        meta = {}
    if not isinstance(meta, dict):
        raise ParseError(f"Front matter in {source} must be a mapping")
    body = "\n".join(lines[end + 1 :])
    return meta, body


def load(path: Path) -> tuple[dict, str]:
    return parse_front_matter(path.read_text(encoding="utf-8"), str(path))


TextFormatter = Callable[..., str]


def prepare_gallery(items: list, images, base_path: Path) -> list[dict]:
    """Gallery entries in the shape the client image gallery expects."""
    prepared = []
    for item in items:
        if isinstance(item, str):
            item = {"url": item}
        if not isinstance(item, dict) or not item.get("url"):
            raise ParseError(f"Gallery entry {item!r} in {base_path} needs a url")
        sources = images.resolve(item["url"], base_path)
        prepared.append(
            {
                "original": sources.src_1x,
                "fullscreen": sources.src_orig,
                "srcSet": f"{sources.src_1x}, {sources.src_2x} 2x",
                "thumbnail": sources.src_thumb,
                "description": item.get("title"),
            }
        )
    return prepared


def _format_post(data: dict, text: TextFormatter, ref: ContentRef, renderer) -> dict:
    points = []
    for number, point in enumerate(as_list(data.get("geo"))):
        if not isinstance(point, dict):
            raise ParseError(f"geo entry #{number} in {ref.path} must be a mapping")
        check_point(point, f"{ref.path} geo #{number}")
        point = dict(point)
        for key in ("title", "subtitle", "description"):
            if point.get(key):
                point[key] = text(point[key])
        points.append(point)
    if data.get("geo") is not None:
        data["geo"] = points if isinstance(data["geo"], list) else points[0]
    return {}


def _check_shape(data: dict, key: str, expected: type, ref: ContentRef) -> None:
    value = data.get(key)
    if value is not None and not isinstance(value, expected):
        raise ParseError(f"{key} in {ref.path} must be a {'list' if expected is list else 'mapping'}")


def _format_poi(data: dict, text: TextFormatter, ref: ContentRef, renderer) -> dict:
    check_point(data, str(ref.path))
    _check_shape(data, "more", dict, ref)
    _check_shape(data, "externalLinks", dict, ref)
    _check_shape(data, "gallery", list, ref)
    if data.get("more"):
        data["more"] = {key: text(value) for key, value in data["more"].items()}
    if data.get("externalLinks"):
        data["externalLinks"] = {text(key): value for key, value in data["externalLinks"].items()}
    extras = {}
    if data.get("gallery"):
        extras["gallery_prepared"] = prepare_gallery(data["gallery"], renderer.images, ref.path.parent)
    return extras


@dataclass(frozen=True)
class KindSpec:
    cls: type
    text_fields: tuple[str, ...] = ()
    extra: Optional[Callable[..., dict]] = None


KINDS = {
    "article": KindSpec(Article),
    "post": KindSpec(Post, ("description", "titleImageCaption"), _format_post),
    "poi": KindSpec(POI, ("subtitle", "description", "address", "seasonDescription", "accessDescription"), _format_poi),
    "map": KindSpec(Map),
}


def format_item(ref: ContentRef, data: dict, body: str, renderer) -> ContentItem:
    """Run every textual field of a freshly loaded file through the renderer."""
    spec = KINDS[ref.kind]
    base_path = ref.path.parent

    def text(value: object, multi_paragraph: bool = False) -> str:
        return renderer.render(str(value), ref.lang, base_path, multi_paragraph)

    for key in spec.text_fields:
        if data.get(key):
            data[key] = text(data[key])
    extras = spec.extra(data, text, ref, renderer) if spec.extra else {}
    content = text(body, True)
    return spec.cls(name=ref.name, lang=ref.lang, path=ref.path, data=data, content=content, **extras)


def load_item(ref: ContentRef, renderer) -> ContentItem:
    data, body = load(ref.path)
    return format_item(ref, data, body, renderer)
