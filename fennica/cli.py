from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from .config import (
    AUTHOR,
    CONTENT_DIR,
    DEVSERVER_PORT,
    LANGUAGES,
    MAIN_TITLE,
    OUTPUT_DIR,
    POSTS_PER_PAGE,
    PUBLIC_BASE,
    STATIC_DIR,
    Settings,
    load_config,
)
from .errors import ContentError
from .generator import run_generator
from .images import ImageStore
from .output import OutputWriter
from .pages import PageContext
from .server import serve, setup_watcher
from .static_dir import HIGHLIGHT_CSS, init_static_dir
from .store import init_content
from .updater import EventProcessor, IncrementalUpdater
from .utils import ensure_writable, parse_bool, parse_int, parse_list


def build_settings(args: argparse.Namespace) -> Settings:
    trim = True if args.trim_drafts is None else args.trim_drafts
    return Settings(
        content_dir=Path(args.content),
        build_dir=Path(args.output),
        languages=tuple(parse_list(args.languages)) or LANGUAGES,
        site_name=args.site_name,
        author=args.author,
        public_base=args.public_base,
        posts_per_page=max(1, args.posts_per_page),
        port=args.port,
        trim_drafts=trim,
        build_workers=args.build_workers,
    )


def run(args: argparse.Namespace) -> bool:
    settings = build_settings(args)
    if not settings.content_dir.exists():
        print(f"Content directory not found: {settings.content_dir}", file=sys.stderr)
        sys.exit(1)
    ensure_writable(settings.build_dir)

    processor = None
    observer = None
    if args.mode == "dev":
        # Watch from the start so that nothing changed during the build is missed.
        processor = EventProcessor()
        observer = setup_watcher(settings.content_dir, processor)

    init_static_dir(settings)
    images = ImageStore(settings.content_dir, settings.build_dir, settings.static_dir)
    writer = OutputWriter(settings.build_dir)
    try:
        images.init_images()
        store = init_content(settings, images, writer)
    except ContentError as exc:
        print(f"Failed to build content, error was: {exc}", file=sys.stderr)
        if observer is not None:
            observer.stop()
        sys.exit(1)

    ctx = PageContext.create(settings, store.content_map, css_path=f"/{STATIC_DIR}/{HIGHLIGHT_CSS}")
    if args.mode == "dev":
        processor.start(IncrementalUpdater(store, writer, images))
        serve(store, ctx, settings.port, observer, processor)
        return False

    count = run_generator(store, writer, ctx)
    print(f"{count} page(s) written.")
    print("Generation finished successfully")
    return True


def main() -> None:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument(
        "--config",
        default="site.toml",
        help="Path to site config file (TOML/YAML/JSON).",
    )
    pre_args, _ = pre_parser.parse_known_args()
    config = load_config(Path(pre_args.config))

    def cfg_value(key: str, default: object) -> object:
        value = config.get(key)
        return default if value is None else value

    def cfg_str(key: str, default: str) -> str:
        value = cfg_value(key, default)
        return default if value is None else str(value)

    def cfg_int(key: str, default: int) -> int:
        value = cfg_value(key, default)
        return parse_int(value, default)

    trim_default = config.get("trim_drafts")
    if trim_default is not None:
        trim_default = parse_bool(trim_default)

    parser = argparse.ArgumentParser(description="Static site generator for a multilingual travel blog.")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=("generate", "dev"),
        default="generate",
        help="generate: write the whole site; dev: watch content and serve pages on demand.",
    )
    parser.add_argument("--config", default=pre_args.config, help="Path to site config file (TOML/YAML/JSON).")
    parser.add_argument("--content", default=cfg_str("content", CONTENT_DIR), help="Content directory.")
    parser.add_argument("--output", default=cfg_str("output", OUTPUT_DIR), help="Build directory.")
    parser.add_argument(
        "--languages",
        default=",".join(parse_list(cfg_value("languages", list(LANGUAGES)))),
        help="Comma-separated list of site languages.",
    )
    parser.add_argument("--site-name", default=cfg_str("site_name", MAIN_TITLE), help="Site title.")
    parser.add_argument("--author", default=cfg_str("author", AUTHOR), help="Site author.")
    parser.add_argument(
        "--public-base",
        default=cfg_str("public_base", PUBLIC_BASE),
        help="Public site URL used for RSS and canonical links.",
    )
    parser.add_argument(
        "--port",
        default=cfg_int("port", DEVSERVER_PORT),
        type=int,
        help="Dev server port.",
    )
    parser.add_argument(
        "--posts-per-page",
        default=cfg_int("posts_per_page", POSTS_PER_PAGE),
        type=int,
        help="Number of posts per blog page and in the RSS feed.",
    )
    parser.add_argument(
        "--build-workers",
        default=cfg_int("build_workers", 0),
        type=int,
        help="Number of worker threads for page rendering (0 = auto).",
    )
    parser.add_argument(
        "--trim-drafts",
        action=argparse.BooleanOptionalAction,
        default=trim_default,
        help="Remove drafts from the site (default: on; --no-trim-drafts keeps them).",
    )
    args = parser.parse_args()
    start = time.perf_counter()
    generated = run(args)
    elapsed = time.perf_counter() - start
    if generated:
        print(f"Build completed in {elapsed:.2f}s.")
        print(f"Site generated in: {args.output}")
