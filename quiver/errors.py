from __future__ import annotations

from pathlib import Path


class QuiverError(Exception):
    """Base class for every error raised by quiver."""


class ConfigError(QuiverError):
    pass


class WorkspaceError(QuiverError):
    pass


class BuildError(QuiverError):
    """The output tree could not be prepared; the whole build is aborted."""


class WatchError(QuiverError):
    pass


class AssetMirrorError(QuiverError):
    """Copying the assets subtree failed. Reported, never fatal to a build."""


class StyleNotFoundError(QuiverError):
    def __init__(self, style: str) -> None:
        super().__init__(f"highlight style not found: {style}")
        self.style = style


class DocumentError(QuiverError):
    """A single document could not be transformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class FrontMatterError(DocumentError):
    pass


class LayoutError(DocumentError):
    pass
