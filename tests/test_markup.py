from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from conftest import NoImages, write_content
from fennica.errors import BrokenLinkError, MissingImageError
from fennica.images import ImageStore, scaled_size
from fennica.links import blog_link, content_link, language_versions, post_link
from fennica.locator import scan
from fennica.markup import Renderer


def make_image(path: Path, size: tuple[int, int]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new("RGB", size, (30, 90, 160)).save(path)
    return path


@pytest.fixture
def content_map(tmp_path: Path):
    write_content(tmp_path, "places/turku.en.poi.md", {"title": "Turku"})
    write_content(tmp_path, "blog/2021-06-01-summer.en.post.md", {"title": "Summer"})
    write_content(tmp_path, "about/index.en.article.md", {"title": "About"})
    write_content(tmp_path, "about/index.ru.article.md", {"title": "О сайте"})
    return scan(tmp_path, ("en", "ru"))


def test_links_to_content_files_become_site_urls(content_map, tmp_path: Path):
    renderer = Renderer(content_map, NoImages())
    html = renderer.render(
        "See [Turku](../places/turku.en.poi.md), [summer](2021-06-01-summer.en.post.md), "
        "[about](/about/index.en.article.md) and [elsewhere](https://example.org/a.md).",
        "en",
        tmp_path / "blog",
    )
    assert 'href="/en/place/turku/"' in html
    assert 'href="/en/2021/06/01/summer/"' in html
    assert 'href="/en/article/"' in html
    assert 'href="https://example.org/a.md"' in html


@pytest.mark.parametrize("href", ["missing.en.poi.md", "turku.fi.poi.md", "turku.md"])
def test_broken_content_links_are_errors(content_map, tmp_path: Path, href: str):
    renderer = Renderer(content_map, NoImages())
    with pytest.raises(BrokenLinkError):
        renderer.render(f"[x]({href})", "en", tmp_path)


def test_url_helpers(content_map):
    assert post_link("2021-06-01-summer", "ru") == "/ru/2021/06/01/summer/"
    assert content_link("map", "index", "fi") == "/fi/map/"
    assert content_link("map", "lakes", "fi") == "/fi/map/lakes/"
    assert content_link("poi", "index", "en") == "/en/place/index/"
    assert blog_link("en") == "/en/"
    assert blog_link("en", 3) == "/en/3/"
    assert blog_link("ru", 2, "travel") == "/ru/category/travel/2/"
    assert language_versions(content_map, "article", "index") == {"en": "/en/article/", "ru": "/ru/article/"}


def test_images_get_variants_and_figure(tmp_path: Path):
    content = tmp_path / "content"
    build = tmp_path / "build"
    make_image(content / "trips/lake.png", (2000, 1000))
    images = ImageStore(content, build, content / "static")
    renderer = Renderer({}, images)

    html = renderer.render("![Lake at dusk](lake.png)", "en", content / "trips")

    assert '<figure><a href="/trips/lake.png">' in html
    assert 'src="/trips/lake.1x.png"' in html
    assert 'srcset="/trips/lake.1x.png, /trips/lake.2x.png 2x"' in html
    assert 'width="1354"' in html and 'height="677"' in html
    assert "<figcaption>Lake at dusk</figcaption>" in html
    with Image.open(build / "trips/lake.1x.png") as img:
        assert img.size == (1354, 677)
    with Image.open(build / "trips/lake.t.png") as img:
        assert img.size == (200, 100)
    assert (build / "trips/lake.2x.png").is_symlink() or (build / "trips/lake.2x.png").exists()


def test_image_marker_attributes(tmp_path: Path):
    content = tmp_path / "content"
    make_image(content / "icon.png", (64, 64))
    renderer = Renderer({}, ImageStore(content, tmp_path / "build", content / "static"))

    plain = renderer.render("![icon](/icon.png){: nofigure}", "en", content / "deep/dir")
    assert "<figure" not in plain
    assert '<a href="/icon.png"><img' in plain
    assert "nofigure" not in plain

    raw = renderer.render("![icon](icon.png){: raw}", "en", content)
    assert raw.startswith("<img ")
    assert 'src="icon.png"' in raw
    assert "raw" not in raw


def test_images_in_raw_html_get_variants(tmp_path: Path):
    content = tmp_path / "content"
    make_image(content / "trips/lake.png", (2000, 1000))
    renderer = Renderer({}, ImageStore(content, tmp_path / "build", content / "static"))

    html = renderer.render(
        '<div class="pair">\n<img src="lake.png" alt="Lake">\n<img raw src="/elsewhere.png">\n</div>',
        "en",
        content / "trips",
        multi_paragraph=True,
    )

    assert (
        '<img src="/trips/lake.1x.png" alt="Lake" srcset="/trips/lake.1x.png, /trips/lake.2x.png 2x" '
        'width="1354" height="677">'
    ) in html
    assert '<img src="/elsewhere.png">' in html


def test_missing_image_is_an_error(tmp_path: Path):
    content = tmp_path / "content"
    content.mkdir()
    renderer = Renderer({}, ImageStore(content, tmp_path / "build", content / "static"))
    with pytest.raises(MissingImageError):
        renderer.render("![gone](gone.jpg)", "en", content)


@pytest.mark.parametrize(
    "size, limit, expected",
    [((2000, 1000), 677, (1354, 677)), ((500, 300), 677, (500, 300)), ((400, 800), 100, (100, 200))],
)
def test_scaled_size(size, limit, expected):
    assert scaled_size(*size, limit) == expected
