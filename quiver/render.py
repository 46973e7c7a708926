from __future__ import annotations

import functools
from pathlib import Path

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pygments.formatters import HtmlFormatter
from pygments.styles import get_style_by_name
from pygments.util import ClassNotFound

from .errors import StyleNotFoundError

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "codehilite"]
HIGHLIGHT_CLASS = "codehilite"
LAYOUT_NAME = "layout.html"


def render_markdown(body: str) -> str:
    md = markdown.Markdown(
        extensions=MARKDOWN_EXTENSIONS,
        extension_configs={"codehilite": {"css_class": HIGHLIGHT_CLASS, "guess_lang": False}},
    )
    return md.convert(body)


@functools.lru_cache(maxsize=None)
def highlight_css(style: str) -> str:
    try:
        style_cls = get_style_by_name(style)
    except ClassNotFound:
        raise StyleNotFoundError(style) from None
    return HtmlFormatter(style=style_cls).get_style_defs(f".{HIGHLIGHT_CLASS}")


def layout_environment(source_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(source_dir)),
        autoescape=select_autoescape(["html", "htm"]),
        keep_trailing_newline=True,
    )


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
