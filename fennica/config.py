from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path

import yaml

try:
    import tomllib as toml
except ImportError:
    import tomli as toml

CONTENT_DIR = "content"
OUTPUT_DIR = "build"
STATIC_DIR = "static"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"

LANGUAGES = ("en", "ru", "fi")
MAIN_TITLE = "Encyclopaedia Fennica"
AUTHOR = "Alexander Ulyanov"
COPYRIGHT = "© 2015-2022"
FAVICON = "/static/favicon.png"
PUBLIC_BASE = "https://fennica.pohjoiseen.fi"
POSTS_PER_PAGE = 25
DEVSERVER_PORT = 8001
BUNDLE_PATH = "/static/bundle.js"

RSS_DESCRIPTION = {
    "en": "Of Finland and the Nordics.",
    "ru": "О Финляндии и Северных Странах — города и веси, и малоизвестные факты.",
    "fi": "Suomesta ja Pohjoismaista.",
}

MAP_DEFAULTS = {
    "lat": 61.504951,
    "lng": 24.627933,
    "zoom": 4,
    "minZoom": 2,
    "maxZoom": 13,
}


@dataclass
class Settings:
    content_dir: Path = Path(CONTENT_DIR)
    build_dir: Path = Path(OUTPUT_DIR)
    templates_dir: Path = TEMPLATES_DIR
    languages: tuple[str, ...] = LANGUAGES
    site_name: str = MAIN_TITLE
    author: str = AUTHOR
    copyright: str = COPYRIGHT
    public_base: str = PUBLIC_BASE
    posts_per_page: int = POSTS_PER_PAGE
    port: int = DEVSERVER_PORT
    trim_drafts: bool = True
    build_workers: int = 0
    bundle_path: str = BUNDLE_PATH
    rss_description: dict = field(default_factory=lambda: dict(RSS_DESCRIPTION))

    @property
    def static_dir(self) -> Path:
        return self.content_dir / STATIC_DIR


def load_config(path: Path) -> dict:
    if not path.exists():
        return {}
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix == ".toml":
        try:
            data = toml.loads(text)
        except toml.TOMLDecodeError as exc:
            print(f"Invalid TOML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        return data
    if suffix in {".yml", ".yaml"}:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            print(f"Invalid YAML in config file {path}: {exc}", file=sys.stderr)
            sys.exit(1)
        if data is None:
            return {}
        if not isinstance(data, dict):
            print(f"YAML config must be a mapping: {path}", file=sys.stderr)
            sys.exit(1)
        return data
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON in config file {path}: {exc}", file=sys.stderr)
        sys.exit(1)
    if not isinstance(data, dict):
        print(f"JSON config must be an object: {path}", file=sys.stderr)
        sys.exit(1)
    return data
