"""Generate mode: render every page and feed of the site into the build dir."""
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from .index import ContentIndex
from .links import ALL_CATEGORY, blog_link, content_link
from .output import OutputWriter
from .pages import (
    PageContext,
    blog_total_pages,
    render_article_page,
    render_blog_page,
    render_feed,
    render_map_page,
    render_place_page,
    render_post_page,
)
from .store import ContentStore

PageJob = tuple[str, Callable[[], str]]


def page_jobs(ctx: PageContext, index: ContentIndex) -> list[PageJob]:
    """(web path, renderer) for every page of one language."""
    lang = index.lang
    jobs: list[PageJob] = []
    for name, item in index.maps.items():
        jobs.append((content_link("map", name, lang), lambda item=item: render_map_page(ctx, index, item)))
    for name, item in index.pois.items():
        jobs.append((content_link("poi", name, lang), lambda item=item: render_place_page(ctx, index, item)))
    for name, item in index.articles.items():
        jobs.append((content_link("article", name, lang), lambda item=item: render_article_page(ctx, index, item)))
    for name, item in index.posts.items():
        jobs.append((content_link("post", name, lang), lambda item=item: render_post_page(ctx, index, item)))
    for category in index.posts_by_category:
        for page in range(1, blog_total_pages(ctx, index, category) + 1):
            jobs.append(
                (
                    blog_link(lang, page, category),
                    lambda page=page, category=category: render_blog_page(ctx, index, page, category),
                )
            )
    return jobs


def run_generator(store: ContentStore, writer: OutputWriter, ctx: PageContext) -> int:
    workers = store.settings.build_workers
    if workers <= 0:
        workers = os.cpu_count() or 1
    workers = max(1, min(workers, 32))

    written = 0
    for lang in store.languages:
        index = store.get(lang)
        if index is None:
            continue
        jobs = page_jobs(ctx, index)
        print(f"Generating {len(jobs)} page(s) for language {lang}")

        def write_job(job: PageJob) -> None:
            web_path, render = job
            writer.write_page(web_path, render())

        if workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                list(executor.map(write_job, jobs))
        else:
            for job in jobs:
                write_job(job)
        written += len(jobs)

        if index.posts_by_category.get(ALL_CATEGORY):
            print(f"Generating RSS feed for language {lang}")
            writer.write_feed(lang, render_feed(ctx, index))
    return written
