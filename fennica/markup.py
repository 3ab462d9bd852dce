"""Markdown to HTML for content text.

Links to other content files are rewritten to site URLs and images are
replaced by their responsive variants, both inside the Markdown tree so the
HTML never needs re-parsing.  Images written as raw HTML get their variants
in the stashed HTML, before it is put back into the output.
"""
from __future__ import annotations

import html
import re
import xml.etree.ElementTree as etree
from pathlib import Path

import markdown
from markdown.extensions import Extension
from markdown.postprocessors import Postprocessor
from markdown.treeprocessors import Treeprocessor

from .links import needs_rewrite, rewrite_link
from .locator import ContentMap

PARAGRAPH_OPEN_RE = re.compile(r"^<p>")
PARAGRAPH_CLOSE_RE = re.compile(r"</p>\s*$")
IMG_TAG_RE = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
ATTR_RE = re.compile(r"([\w:-]+)\s*=\s*(\"[^\"]*\"|'[^']*')")
BARE_RAW_RE = re.compile(r"\sraw(?=[\s/>])", re.IGNORECASE)

RU_QUOTES = {
    "left-double-quote": "&laquo;",
    "right-double-quote": "&raquo;",
}


class ContentLinkProcessor(Treeprocessor):
    def __init__(self, md, content_map: ContentMap, images, base_path: Path):
        super().__init__(md)
        self.content_map = content_map
        self.images = images
        self.base_path = base_path

    def run(self, root):
        for el in root.iter("a"):
            href = el.get("href") or ""
            if needs_rewrite(href):
                el.set("href", rewrite_link(href, self.content_map))

        parents = {child: parent for parent in root.iter() for child in parent}
        for img in list(root.iter("img")):
            if img.attrib.pop("raw", None) is not None:
                continue
            self.wrap_image(img, parents[img])

    def wrap_image(self, img, parent) -> None:
        sources = self.images.resolve(img.get("src"), self.base_path)
        img.set("width", str(sources.width_1x))
        img.set("height", str(sources.height_1x))
        img.set("src", sources.src_1x)
        img.set("srcset", f"{sources.src_1x}, {sources.src_2x} 2x")

        position = list(parent).index(img)
        parent.remove(img)
        link = etree.Element("a", {"href": sources.src_orig})
        if img.attrib.pop("nofigure", None) is not None:
            wrapper = link
        else:
            wrapper = etree.Element("figure")
            wrapper.append(link)
            caption = img.get("alt")
            if caption:
                etree.SubElement(wrapper, "figcaption").text = caption
        wrapper.tail, img.tail = img.tail, None
        link.append(img)
        parent.insert(position, wrapper)


class RawImageProcessor(Postprocessor):
    def __init__(self, md, images, base_path: Path):
        super().__init__(md)
        self.images = images
        self.base_path = base_path

    def run(self, text: str) -> str:
        blocks = self.md.htmlStash.rawHtmlBlocks
        for number, block in enumerate(blocks):
            if isinstance(block, str) and "<img" in block.lower():
                blocks[number] = IMG_TAG_RE.sub(self.rewrite, block)
        return text

    def rewrite(self, match: re.Match) -> str:
        tag = match.group(0)
        attrs = {name.lower(): html.unescape(value[1:-1]) for name, value in ATTR_RE.findall(tag)}
        if "raw" in attrs or BARE_RAW_RE.search(ATTR_RE.sub("", tag)):
            attrs.pop("raw", None)
        elif attrs.get("src") and "srcset" not in attrs:
            sources = self.images.resolve(attrs["src"], self.base_path)
            attrs.update(
                src=sources.src_1x,
                srcset=f"{sources.src_1x}, {sources.src_2x} 2x",
                width=str(sources.width_1x),
                height=str(sources.height_1x),
            )
        else:
            return tag
        rendered = " ".join(f'{name}="{html.escape(value)}"' for name, value in attrs.items())
        return f"<img {rendered}" + (" />" if tag.endswith("/>") else ">")


class ContentLinkExtension(Extension):
    def __init__(self, content_map: ContentMap, images, base_path: Path, **kwargs):
        super().__init__(**kwargs)
        self.content_map = content_map
        self.images = images
        self.base_path = base_path

    def extendMarkdown(self, md):
        # after attr_list (8) so raw/nofigure attributes are set, before smarty (2) so captions get typography
        md.treeprocessors.register(
            ContentLinkProcessor(md, self.content_map, self.images, self.base_path),
            "content_links",
            5,
        )
        # runs before raw_html (30) puts the stashed blocks back
        md.postprocessors.register(RawImageProcessor(md, self.images, self.base_path), "raw_images", 35)


class Renderer:
    """Formats content text for one content map; shared by full loads and reloads."""

    def __init__(self, content_map: ContentMap, images) -> None:
        self.content_map = content_map
        self.images = images

    def markdown(self, lang: str, base_path: Path) -> markdown.Markdown:
        smarty_config = {"smart_quotes": lang == "ru"}
        if lang == "ru":
            smarty_config["substitutions"] = RU_QUOTES
        return markdown.Markdown(
            extensions=[
                "extra",
                "codehilite",
                "smarty",
                ContentLinkExtension(self.content_map, self.images, base_path),
            ],
            extension_configs={
                "codehilite": {"guess_lang": False, "css_class": "codehilite"},
                "smarty": smarty_config,
            },
        )

    def render(self, text: str, lang: str, base_path: Path, multi_paragraph: bool = False) -> str:
        if not text:
            return ""
        html_text = self.markdown(lang, base_path).convert(text)
        if not multi_paragraph:
            html_text = PARAGRAPH_CLOSE_RE.sub("", PARAGRAPH_OPEN_RE.sub("", html_text))
        return html_text
