from __future__ import annotations

import re
import shutil
from pathlib import Path

from pygments.formatters import HtmlFormatter

TAG_RE = re.compile(r"<[^>]+>")
PLACEHOLDER_RE = re.compile(r"\{\{[a-z_]+\}\}")


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content", "footer"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    output = PLACEHOLDER_RE.sub(lambda match: "" if match.group(0)[2:-2] not in late_keys else match.group(0), output)
    for key in late_keys:
        output = output.replace(f"{{{{{key}}}}}", context.get(key, ""))
    return output


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def write_highlight_css(path: Path, style: str = "default") -> None:
    """Stylesheet for the codehilite blocks in content."""
    write_text(path, HtmlFormatter(style=style).get_style_defs(".codehilite"))


def copy_static(static_dir: Path, output_dir: Path) -> None:
    if output_dir.exists():
        shutil.rmtree(output_dir)
    if static_dir.exists():
        shutil.copytree(static_dir, output_dir, symlinks=True)
