from __future__ import annotations

import base64
import datetime as dt
import html
import json
import math
import re
from dataclasses import dataclass
from typing import Optional

from .config import FAVICON, MAP_DEFAULTS, Settings
from .content import POI, Article, Map, Post
from .index import ContentIndex, category_neighbors
from .l10n import _, format_date
from .links import ALL_CATEGORY, blog_link, content_link, language_versions, post_link
from .locator import ContentMap
from .render import read_template, render_template, strip_tags
from .utils import join_url, rfc822_date

MORE_MARK = "<!--more-->"
ROOT_RELATIVE_RE = re.compile(r'\b(src|href)="/(?!/)')
SRCSET_RE = re.compile(r'\s+srcset="[^"]*"')
IMAGE_EXT_RE = re.compile(r"(\.[^./]+)$")


@dataclass
class PageContext:
    settings: Settings
    content_map: ContentMap
    base_template: str
    css_path: str = ""

    @classmethod
    def create(cls, settings: Settings, content_map: ContentMap, css_path: str = "") -> PageContext:
        return cls(settings, content_map, read_template(settings.templates_dir / "base.html"), css_path)


def image_link(src: str, variant: str) -> str:
    return IMAGE_EXT_RE.sub(rf".{variant}\1", src)


def ssr_component(component_type: str, props: dict) -> str:
    """Placeholder the client hydrates; props travel as base64 JSON."""
    encoded = base64.b64encode(json.dumps(props, ensure_ascii=True, default=str).encode("utf-8")).decode("ascii")
    return f'<div class="__ssr" data-component-type="{component_type}" data-component-props="{encoded}"></div>'


def build_language_nav(ctx: PageContext, lang: str, versions: dict[str, str]) -> str:
    links = []
    for language in ctx.settings.languages:
        label = language.upper()
        if language in versions:
            active = ' class="active"' if language == lang else ""
            links.append(f'<a href="{versions[language]}"{active}>{label}</a>')
        else:
            links.append(f'<span class="muted">{label}</span>')
    return "<hr />".join(links)


def build_footer(
    ctx: PageContext,
    prev: Optional[tuple[str, str]] = None,
    next_: Optional[tuple[str, str]] = None,
) -> str:
    parts = []
    if prev:
        parts.append(
            f'<a href="{prev[0]}"><i class="fas fa-arrow-left"></i></a>&nbsp;'
            f'<a href="{prev[0]}" class="text">{html.escape(prev[1])}</a>'
        )
    if next_:
        parts.append(
            f'<a href="{next_[0]}" class="text">{html.escape(next_[1])}</a>&nbsp;'
            f'<a href="{next_[0]}"><i class="fas fa-arrow-right"></i></a>'
        )
    nav = f"<p>{'&nbsp;| '.join(parts)}</p>" if parts else ""
    return (
        "<footer>"
        f"{nav}"
        f"<p>{html.escape(ctx.settings.copyright)} {html.escape(ctx.settings.author)} "
        '<a href="https://creativecommons.org/licenses/by-nc-sa/3.0/deed.en">CC BY-NC-SA</a></p>'
        "</footer>"
    )


def layout(
    ctx: PageContext,
    lang: str,
    title: str,
    content: str,
    body_class: str,
    versions: dict[str, str],
    description: str = "",
    title_image: str = "",
    rss_link: str = "",
    prev: Optional[tuple[str, str]] = None,
    next_: Optional[tuple[str, str]] = None,
    no_footer: bool = False,
) -> str:
    site_name = ctx.settings.site_name
    full_title = f"{title} - {site_name}" if title else site_name
    head = [f'<link rel="alternate" hreflang="{code}" href="{url}" />' for code, url in versions.items()]
    if lang in versions:
        head.append(f'<link rel="canonical" href="{versions[lang]}" />')
        head.append(f'<meta property="og:url" content="{versions[lang]}" />')
    if rss_link:
        head.append(
            f'<link rel="alternate" type="application/rss+xml" title="{html.escape(full_title)}" href="{rss_link}" />'
        )
    if title:
        head.append(f'<meta property="og:title" content="{html.escape(title)}" />')
    if description:
        plain = html.escape(strip_tags(description))
        head.append(f'<meta name="description" content="{plain}" />')
        head.append(f'<meta property="og:description" content="{plain}" />')
    if title_image:
        head.append(f'<meta property="og:image" content="{join_url(ctx.settings.public_base, title_image)}" />')
    return render_template(
        ctx.base_template,
        lang=lang,
        title=html.escape(full_title),
        head="\n".join(head),
        css=f'<link rel="stylesheet" href="{ctx.css_path}" />' if ctx.css_path else "",
        favicon=FAVICON,
        site_name=html.escape(site_name),
        author=html.escape(ctx.settings.author),
        body_class=body_class,
        language_nav=build_language_nav(ctx, lang, versions),
        bundle_path=ctx.settings.bundle_path,
        content=content,
        footer="" if no_footer else build_footer(ctx, prev, next_),
    )


def render_map_page(ctx: PageContext, index: ContentIndex, map_item: Map) -> str:
    props = {
        "lang": index.lang,
        "data": {**MAP_DEFAULTS, **map_item.data},
        "content": map_item.content,
        "geoJSONs": index.map_geo.get(map_item.name, []),
    }
    return layout(
        ctx,
        index.lang,
        map_item.title,
        ssr_component("mapView", props),
        "body-map",
        language_versions(ctx.content_map, "map", map_item.name),
        no_footer=True,
    )


def render_place_page(ctx: PageContext, index: ContentIndex, poi: POI) -> str:
    lang = index.lang
    data = poi.data
    owning_map = index.maps.get(poi.owning_map)
    parent = index.pois.get(poi.parent) if poi.parent else None

    subtitle = html.escape(_(f"type-{data.get('type')}", lang))
    if data.get("subtitle"):
        subtitle = f"{subtitle} &bull; {data['subtitle']}"
    if parent:
        subtitle = f'<a href="{content_link("poi", parent.name, lang)}">&#8592; {html.escape(parent.title)}</a> &bull; {subtitle}'

    icon = f'<img class="custom-icon" src="{data["customIcon"]}" height="80" />' if data.get("customIcon") else ""
    description = []
    if poi.gallery_prepared:
        description.append(
            ssr_component(
                "reactImageGallery",
                {"items": poi.gallery_prepared, "showPlayButton": False, "showIndex": True, "showBullets": True},
            )
        )
    if data.get("description"):
        description.append(f"<h2>{data['description']}</h2>")

    aside = [
        ssr_component(
            "miniMapView",
            {
                "lang": lang,
                "poiData": data,
                "mapData": {**MAP_DEFAULTS, **(owning_map.data if owning_map else {})},
                "geoJSONs": index.poi_geo.get(poi.name, []),
            },
        )
    ]
    for key, label in (("address", "Address"), ("seasonDescription", "Season"), ("accessDescription", "Access")):
        if data.get(key):
            aside.append(f"<p><b>{_(label, lang)}</b>: <span>{data[key]}</span><br/></p>")
    for label, value in (data.get("more") or {}).items():
        aside.append(f"<p><b>{html.escape(_(label, lang))}</b>: <span>{value}</span></p>")
    if data.get("externalLinks"):
        links = "".join(f'<li><a href="{html.escape(str(url))}">{title}</a></li>' for title, url in data["externalLinks"].items())
        aside.append(f"<p><b>{_('Links', lang)}:</b></p><ul>{links}</ul>")

    updated = f"<p><i>{_('Up to date as of', lang)}: {html.escape(str(data['updated']))}</i></p>" if data.get("updated") else ""
    content = (
        "<main>"
        f'<div class="poi-logo">{icon}</div>'
        f'<h1 class="poi-title">{html.escape(poi.title)}</h1>'
        f'<p class="poi-subtitle">{subtitle}</p>'
        "<hr />"
        f'<div class="poi-description">{"".join(description)}</div>'
        f'<aside class="poi-map-and-data">{"".join(aside)}</aside>'
        '<article class="poi-main">'
        f'{"<hr />" if poi.gallery_prepared else ""}'
        f'<div class="content">{poi.content}</div>'
        f"{updated}"
        "</article>"
        "</main>"
    )
    return layout(
        ctx,
        lang,
        poi.title,
        content,
        "body-poi",
        language_versions(ctx.content_map, "poi", poi.name),
        description=data.get("description") or "",
    )


def render_article_page(ctx: PageContext, index: ContentIndex, article: Article) -> str:
    lang = index.lang
    prev = index.articles.get(article.prev) if article.prev else None
    next_ = index.articles.get(article.next) if article.next else None
    updated = ""
    if article.data.get("updated"):
        updated = f"<p><i>{_('Up to date as of', lang)}: {html.escape(str(article.data['updated']))}</i></p>"
    content = (
        "<main>"
        f'<h1 class="article-title">{html.escape(article.title)}</h1>'
        "<hr />"
        f'<article class="article-main"><div class="content">{article.content}</div>{updated}</article>'
        "</main>"
    )
    return layout(
        ctx,
        lang,
        article.title,
        content,
        "body-article",
        language_versions(ctx.content_map, "article", article.name),
        prev=(content_link("article", prev.name, lang), prev.title) if prev else None,
        next_=(content_link("article", next_.name, lang), next_.title) if next_ else None,
    )


def build_category_nav(index: ContentIndex, post: Post) -> str:
    if not post.category:
        return ""
    lang = index.lang
    older, newer = category_neighbors(index, post.name, post.category)
    links = [f'<a href="{blog_link(lang, 1, post.category)}">{html.escape(post.category)}</a>']
    for name, label in ((older, "Previous"), (newer, "Next")):
        if name:
            links.append(f'{_(label, lang)}: <a href="{post_link(name, lang)}">{html.escape(index.posts[name].title)}</a>')
    return f'<h4 class="post-category">{" &bull; ".join(links)}</h4>'


def render_post_page(ctx: PageContext, index: ContentIndex, post: Post) -> str:
    lang = index.lang
    prev = index.posts.get(post.prev) if post.prev else None
    next_ = index.posts.get(post.next) if post.next else None
    data = post.data
    heading_class = "post-heading" if data.get("titleImage") else "post-heading-no-pic"
    heading_style = ""
    if data.get("titleImage"):
        offset = data.get("titleImageOffsetY", 50)
        heading_style = f' style="background-image: url({data["titleImage"]}); background-position: 50% {offset}%"'
    neighbours = []
    if prev:
        neighbours.append(
            f'<h4><span class="prev">{_("Previous", lang)}: <a href="{post_link(prev.name, lang)}">{html.escape(prev.title)}</a></span></h4>'
        )
    if next_:
        neighbours.append(
            f'<h4><span class="next">{_("Next", lang)}: <a href="{post_link(next_.name, lang)}">{html.escape(next_.title)}</a></span></h4>'
        )
    content = (
        '<main class="post-main"><article>'
        f'<div class="{heading_class}"{heading_style}><div class="post-title">'
        f"<h1>{html.escape(post.title)}</h1>"
        f'{"".join(neighbours)}'
        f"{build_category_nav(index, post)}"
        "</div></div>"
        "<hr />"
        f'<div class="content">{post.content}</div>'
        f"<h4>{_('Published on', lang)}: <time>{format_date(post.date, lang)}</time></h4>"
        "</article></main>"
    )
    return layout(
        ctx,
        lang,
        post.title,
        content,
        "body-post",
        language_versions(ctx.content_map, "post", post.name),
        description=data.get("description") or "",
        title_image=data.get("titleImage") or "",
        prev=(post_link(prev.name, lang), prev.title) if prev else None,
        next_=(post_link(next_.name, lang), next_.title) if next_ else None,
    )


def pagination_pages(page: int, total_pages: int) -> list[int]:
    """Page numbers to show, 0 standing for an ellipsis."""
    if total_pages < 11:
        return list(range(1, total_pages + 1))
    if page <= 6:
        return list(range(1, page + 3)) + [0] + list(range(total_pages - 2, total_pages + 1))
    if total_pages - page <= 6:
        return [1, 2, 3, 0] + list(range(page - 2, total_pages + 1))
    return [1, 2, 3, 0] + list(range(page - 2, page + 3)) + [0] + list(range(total_pages - 2, total_pages + 1))


def build_pagination(lang: str, category: str, page: int, total_pages: int) -> str:
    if total_pages < 2:
        return ""
    items = []
    if page != 1:
        items.append(f'<a class="prev page-numbers" href="{blog_link(lang, page - 1, category)}"><i class="fas fa-arrow-left"></i></a>')
    for number in pagination_pages(page, total_pages):
        if not number:
            items.append('<span class="page-numbers dots">&hellip;</span>')
        elif number == page:
            items.append(f'<span aria-current="page" class="page-numbers current">{number}</span>')
        else:
            items.append(f'<a class="page-numbers" href="{blog_link(lang, number, category)}">{number}</a>')
    if page != total_pages:
        items.append(f'<a class="next page-numbers" href="{blog_link(lang, page + 1, category)}"><i class="fas fa-arrow-right"></i></a>')
    return f'<nav class="navigation pagination" role="navigation"><div class="nav-links">{" ".join(items)}</div></nav>'


def blog_total_pages(ctx: PageContext, index: ContentIndex, category: str = ALL_CATEGORY) -> int:
    return math.ceil(len(index.posts_by_category.get(category, [])) / max(1, ctx.settings.posts_per_page))


def build_post_entry(lang: str, post: Post) -> str:
    url = post_link(post.name, lang)
    if post.data.get("titleImage"):
        image = f'<a class="post-list-entry-titleimage" href="{url}"><img src="{image_link(post.data["titleImage"], "1x")}" /></a>'
    else:
        image = '<div class="post-list-entry-notitleimage"></div>'
    description = ""
    if post.data.get("description"):
        description = f'<p class="post-list-entry-description">{post.data["description"]}</p>'
    return (
        '<article class="post-list-entry">'
        f"{image}"
        '<div class="post-list-entry-body"><div class="post-list-entry-title">'
        f'<h2><a href="{url}">{html.escape(post.title)}</a></h2>'
        f"<h4><time>{format_date(post.date, lang)}</time></h4>"
        "</div>"
        f"{description}"
        "</div></article>"
    )


def render_blog_page(ctx: PageContext, index: ContentIndex, page: int, category: str = ALL_CATEGORY) -> Optional[str]:
    lang = index.lang
    total_pages = blog_total_pages(ctx, index, category)
    if not 1 <= page <= total_pages:
        return None
    per_page = max(1, ctx.settings.posts_per_page)
    names = index.posts_by_category[category][(page - 1) * per_page : page * per_page]
    heading = "" if category == ALL_CATEGORY else f'<h1 class="blog-category">{html.escape(category)}</h1>'
    content = (
        '<main class="blog-main">'
        f"{heading}"
        f'{"".join(build_post_entry(lang, index.posts[name]) for name in names)}'
        f"{build_pagination(lang, category, page, total_pages)}"
        "</main>"
    )
    versions = {code: blog_link(code, 1, category) for code in ctx.settings.languages}
    return layout(ctx, lang, _("Blog", lang), content, "body-blog", versions, rss_link=f"/{lang}/rss.xml")


def absolutize(content: str, public_base: str) -> str:
    content = SRCSET_RE.sub("", content)
    return ROOT_RELATIVE_RE.sub(lambda match: f'{match.group(1)}="{public_base.rstrip("/")}/', content)


def render_feed(ctx: PageContext, index: ContentIndex) -> str:
    lang = index.lang
    settings = ctx.settings
    base = settings.public_base.rstrip("/")
    items = []
    for name in index.posts_ordered[: settings.posts_per_page]:
        post = index.posts[name]
        link = base + post_link(name, lang)
        content = post.content
        cut = content.find(MORE_MARK)
        if cut != -1:
            content = content[:cut]
        content = absolutize(content, base)
        if cut != -1:
            content += f'<p><a href="{link}">{_("Continue reading", lang)}</a></p>'
        published = dt.datetime.combine(post.date, dt.time())
        lines = [
            "<item>",
            f"<title>{html.escape(post.title)}</title>",
            f"<link>{link}</link>",
            f'<guid isPermaLink="true">{link}</guid>',
            f"<pubDate>{rfc822_date(published)}</pubDate>",
            f"<description>{html.escape(content)}</description>",
        ]
        if post.data.get("titleImage"):
            lines.append(f'<enclosure url="{html.escape(join_url(base, post.data["titleImage"]))}" length="0" type="image/jpeg" />')
        lines.append("</item>")
        items.append("\n".join(lines))

    if index.posts_ordered:
        last_build = rfc822_date(dt.datetime.combine(index.posts[index.posts_ordered[0]].date, dt.time()))
    else:
        last_build = rfc822_date(dt.datetime.now(dt.timezone.utc))
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{html.escape(settings.site_name)}</title>",
            f"<link>{base}/{lang}/</link>",
            f"<description>{html.escape(settings.rss_description.get(lang, ''))}</description>",
            f"<language>{lang}</language>",
            f"<copyright>{html.escape(f'{settings.copyright} {settings.author}')}</copyright>",
            "<generator>Fennica static site generator</generator>",
            f"<lastBuildDate>{last_build}</lastBuildDate>",
            "\n".join(items),
            "</channel>",
            "</rss>",
        ]
    )
