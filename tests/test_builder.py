"""Tests for quiver.builder."""

from __future__ import annotations

import logging

import pytest

from quiver.builder import build_site, check_workspace
from quiver.errors import BuildError, DocumentError, WorkspaceError


def build(workspace, **options):
    return build_site(workspace.source, workspace.output, **options)


def test_build_mirrors_tree_and_assets(workspace) -> None:
    workspace.document("index.md", "# Home")
    workspace.document("notes/foo.md")
    workspace.document("notes/draft.md", status=False)
    workspace.asset("img/a.png", b"\x89PNG")

    report = build(workspace)

    assert report.ok
    assert workspace.output_files() == {"index.html", "notes/foo.html", "assets/img/a.png"}
    assert [p.name for p in report.skipped] == ["draft.md"]


def test_many_documents_each_produce_one_page(workspace) -> None:
    expected = set()
    for i in range(60):
        workspace.document(f"section-{i % 6}/doc-{i:02d}.md", f"Body {i}", title=f"Doc {i}")
        expected.add(f"section-{i % 6}/doc-{i:02d}.html")

    report = build(workspace, workers=8)

    assert len(report.written) == 60
    assert workspace.output_files() == expected
    text = (workspace.output / "section-3" / "doc-33.html").read_text(encoding="utf-8")
    assert "Body 33" in text


def test_rebuild_removes_unpublished_and_renamed_pages(workspace) -> None:
    post = workspace.document("post.md")
    old = workspace.document("old-name.md")
    build(workspace)
    assert {"post.html", "old-name.html"} <= workspace.output_files()

    workspace.document("post.md", status=False)
    old.rename(workspace.source / "new-name.md")
    build(workspace)

    files = workspace.output_files()
    assert "post.html" not in files
    assert "old-name.html" not in files
    assert "new-name.html" in files
    assert post.exists()


def test_consecutive_builds_are_byte_identical(workspace) -> None:
    workspace.document("a.md", "```python\nx = 1\n```\n", title="A", date="2024-01-01")
    workspace.document("b/c.md", "| x |\n|---|\n| 1 |\n")
    build(workspace)
    first = {rel: (workspace.output / rel).read_bytes() for rel in workspace.output_files()}
    build(workspace)
    second = {rel: (workspace.output / rel).read_bytes() for rel in workspace.output_files()}
    assert first == second


def test_document_failure_is_isolated(workspace, caplog) -> None:
    workspace.document("good.md")
    bad = workspace.write("bad.md", "---\ntitle: [broken\nstatus: true\n---\nbody\n")

    with caplog.at_level(logging.ERROR, logger="quiver"):
        report = build(workspace)

    assert not report.ok
    assert list(report.failed) == [bad]
    assert isinstance(report.failed[bad], DocumentError)
    assert workspace.output_files() == {"good.html"}
    assert str(bad) in caplog.text


def test_asset_failure_does_not_block_documents(workspace, monkeypatch, caplog) -> None:
    workspace.asset("a.bin", b"x")
    workspace.document("page.md")

    def boom(*_args, **_kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr("quiver.walker.shutil.copyfile", boom)
    with caplog.at_level(logging.WARNING, logger="quiver"):
        report = build(workspace)

    assert report.asset_error is not None
    assert not report.failed
    assert "page.html" in workspace.output_files()
    assert "Error copying assets" in caplog.text


def test_empty_source_tree_is_still_a_build(workspace) -> None:
    report = build(workspace)
    assert report.ok
    assert workspace.output.is_dir()
    assert workspace.output_files() == set()


def test_unclearable_output_is_fatal(workspace, monkeypatch) -> None:
    workspace.output.mkdir()

    def boom(*_args, **_kwargs):
        raise PermissionError("denied")

    monkeypatch.setattr("quiver.walker.shutil.rmtree", boom)
    with pytest.raises(BuildError):
        build(workspace)


def test_workspace_requires_src(tmp_path) -> None:
    with pytest.raises(WorkspaceError, match="missing `src` directory"):
        check_workspace(tmp_path)


def test_workspace_uses_src_and_dist(workspace) -> None:
    workspace.document("index.md")
    source_dir, output_dir = check_workspace(workspace.root)
    assert (source_dir, output_dir) == (workspace.source, workspace.output)
    report = build_site(source_dir, output_dir)
    assert report.written == [workspace.output / "index.html"]


def test_impossible_date_fails_only_that_document(workspace) -> None:
    workspace.document("good.md")
    bad = workspace.write("bad.md", "---\ndate: 2024-13-45\nstatus: true\n---\nbody\n")
    report = build(workspace)
    assert isinstance(report.failed[bad], DocumentError)
    assert workspace.output_files() == {"good.html"}
