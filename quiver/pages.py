from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from jinja2 import Environment, TemplateError
from markupsafe import Markup

from .content import Metadata, default_title, extract_metadata
from .errors import DocumentError, LayoutError, StyleNotFoundError
from .logging import get_logger
from .render import LAYOUT_NAME, highlight_css, render_markdown, write_text

ASSETS_PATH = "/assets"
SOURCE_SUFFIX = ".md"
OUTPUT_SUFFIX = ".html"

logger = get_logger("pages")


@dataclass(frozen=True)
class PageModel:
    title: str
    description: str
    date: Optional[dt.date]
    content: Markup
    inline_css: Markup
    inline_js: Markup
    assets_path: str = ASSETS_PATH

    @property
    def date_str(self) -> str:
        return self.date.isoformat() if self.date else ""


def build_page(metadata: Metadata, content: str, css: str, js: str) -> PageModel:
    return PageModel(
        title=metadata.title,
        description=metadata.desc,
        date=metadata.date,
        content=Markup(content),
        inline_css=Markup(css),
        inline_js=Markup(js),
    )


def destination_path(doc_path: Path, source_dir: Path, output_dir: Path) -> Path:
    try:
        rel = doc_path.relative_to(source_dir)
    except ValueError:
        raise DocumentError(doc_path, f"not inside source tree {source_dir}") from None
    return output_dir / rel.with_suffix(OUTPUT_SUFFIX)


def render_layout(env: Environment, page: PageModel, doc_path: Path) -> str:
    try:
        template = env.get_template(LAYOUT_NAME)
        return template.render(page=page)
    except TemplateError as exc:
        raise LayoutError(doc_path, f"failed to render layout template: {exc}") from exc


def transform_document(
    doc_path: Path,
    source_dir: Path,
    output_dir: Path,
    env: Environment,
    highlight_style: str,
) -> Optional[Path]:
    """Render one source document into the output tree.

    Returns the written path, or ``None`` when the document is not published.
    Any failure is raised as a ``DocumentError`` naming ``doc_path``.
    """
    try:
        text = doc_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentError(doc_path, f"failed to read file: {exc}") from exc

    metadata, body = extract_metadata(text, doc_path)
    if not metadata.status:
        logger.debug("Skipping unpublished %s", doc_path)
        return None

    metadata = replace(metadata, title=default_title(doc_path, metadata.title))
    try:
        content = render_markdown(body)
    except Exception as exc:  # markdown extensions may raise anything
        raise DocumentError(doc_path, f"failed to convert markdown: {exc}") from exc

    try:
        css = highlight_css(highlight_style)
    except StyleNotFoundError as exc:
        raise DocumentError(doc_path, str(exc)) from exc

    page = build_page(metadata, content, css, metadata.js or "")
    dest = destination_path(doc_path, source_dir, output_dir)
    html_doc = render_layout(env, page, doc_path)
    try:
        write_text(dest, html_doc)
    except OSError as exc:
        raise DocumentError(doc_path, f"failed to write {dest}: {exc}") from exc
    return dest
