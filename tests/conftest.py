from __future__ import annotations

import logging
from pathlib import Path

import pytest

LAYOUT = (
    "<!doctype html>\n"
    "<html><head><title>{{ page.title }}</title>"
    "<style>{{ page.inline_css }}</style></head>\n"
    "<body data-assets=\"{{ page.assets_path }}\">"
    "<p class=\"desc\">{{ page.description }}</p>"
    "<time>{{ page.date_str }}</time>\n"
    "{{ page.content }}\n"
    "<script>{{ page.inline_js }}</script></body></html>\n"
)


class WorkspaceBuilder:
    """Creates a throwaway workspace (``src``/``dist``) under a root directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.source = root / "src"
        self.output = root / "dist"
        self.source.mkdir(parents=True, exist_ok=True)

    def layout(self, text: str = LAYOUT) -> Path:
        path = self.source / "layout.html"
        path.write_text(text, encoding="utf-8")
        return path

    def document(self, rel: str, body: str = "Hello", *, status: bool = True, **meta: object) -> Path:
        lines = ["---", f"status: {'true' if status else 'false'}"]
        lines.extend(f"{key}: {value}" for key, value in meta.items())
        lines.append("---")
        return self.write(rel, "\n".join(lines) + "\n" + body + "\n")

    def write(self, rel: str, text: str) -> Path:
        path = self.source / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def asset(self, rel: str, data: bytes) -> Path:
        path = self.source / "assets" / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def output_files(self) -> set[str]:
        if not self.output.exists():
            return set()
        return {p.relative_to(self.output).as_posix() for p in self.output.rglob("*") if p.is_file()}


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Workspace with the default layout template already in place."""
    builder = WorkspaceBuilder(tmp_path / "site")
    builder.layout()
    return builder


@pytest.fixture(autouse=True)
def _reset_quiver_logger():
    yield
    logger = logging.getLogger("quiver")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
