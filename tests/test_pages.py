"""Tests for quiver.pages and quiver.render."""

from __future__ import annotations

import pytest

from quiver.errors import DocumentError, LayoutError, StyleNotFoundError
from quiver.pages import build_page, destination_path, transform_document
from quiver.content import Metadata
from quiver.render import highlight_css, layout_environment, render_markdown


def transform(workspace, doc, style="friendly"):
    env = layout_environment(workspace.source)
    return transform_document(doc, workspace.source, workspace.output, env, style)


def test_render_markdown_tables_and_code() -> None:
    html_text = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |\n\n```python\nprint(1)\n```\n")
    assert "<table>" in html_text
    assert 'class="codehilite"' in html_text


def test_render_markdown_passes_raw_html() -> None:
    assert '<div class="note">x</div>' in render_markdown('<div class="note">x</div>\n')


def test_highlight_css_is_scoped() -> None:
    css = highlight_css("friendly")
    assert ".codehilite" in css


def test_unknown_highlight_style() -> None:
    with pytest.raises(StyleNotFoundError):
        highlight_css("no-such-style")


def test_destination_path_mirrors_tree(workspace) -> None:
    doc = workspace.source / "notes" / "deep" / "foo.md"
    assert destination_path(doc, workspace.source, workspace.output) == workspace.output / "notes" / "deep" / "foo.html"


def test_build_page_defaults_assets_path() -> None:
    page = build_page(Metadata(title="t"), "<p>x</p>", "css", "")
    assert page.assets_path == "/assets"
    assert page.date_str == ""


def test_transform_writes_rendered_page(workspace) -> None:
    doc = workspace.document(
        "notes/foo.md",
        "# Heading\n\nSome *text*.",
        title="<Foo>",
        desc="About foo",
        date="2024-02-01",
        js="window.ready = true;",
    )
    dest = transform(workspace, doc)
    assert dest == workspace.output / "notes" / "foo.html"
    html_doc = dest.read_text(encoding="utf-8")
    assert "<title>&lt;Foo&gt;</title>" in html_doc
    assert "<h1>Heading</h1>" in html_doc
    assert "<em>text</em>" in html_doc
    assert "<script>window.ready = true;</script>" in html_doc
    assert "<time>2024-02-01</time>" in html_doc
    assert 'data-assets="/assets"' in html_doc
    assert ".codehilite" in html_doc


def test_unpublished_document_is_skipped(workspace) -> None:
    doc = workspace.document("draft.md", status=False)
    assert transform(workspace, doc) is None
    assert not (workspace.output / "draft.html").exists()


def test_empty_title_defaults_to_filename(workspace) -> None:
    doc = workspace.document("2024-notes.md")
    html_doc = transform(workspace, doc).read_text(encoding="utf-8")
    assert "<title>2024-notes</title>" in html_doc


def test_missing_layout_fails_the_document(workspace) -> None:
    (workspace.source / "layout.html").unlink()
    doc = workspace.document("page.md")
    with pytest.raises(LayoutError) as excinfo:
        transform(workspace, doc)
    assert excinfo.value.path == doc


def test_unknown_style_fails_the_document(workspace) -> None:
    doc = workspace.document("page.md")
    with pytest.raises(DocumentError) as excinfo:
        transform(workspace, doc, style="no-such-style")
    assert isinstance(excinfo.value.__cause__, StyleNotFoundError)
    assert not (workspace.output / "page.html").exists()
