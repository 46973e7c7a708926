from __future__ import annotations

import os
import shutil
from pathlib import Path

from .errors import AssetMirrorError, BuildError
from .pages import SOURCE_SUFFIX
from .render import LAYOUT_NAME

ASSETS_DIR = "assets"


def prepare_output_dir(output_dir: Path) -> None:
    """Delete ``output_dir`` and recreate it empty."""
    try:
        if output_dir.exists():
            shutil.rmtree(output_dir)
    except OSError as exc:
        raise BuildError(f"failed to clear destination directory {output_dir}: {exc}") from exc
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BuildError(f"failed to create destination directory {output_dir}: {exc}") from exc


def collect_documents(source_dir: Path) -> list[Path]:
    assets_dir = source_dir / ASSETS_DIR
    documents = []
    for root, dirs, files in os.walk(source_dir):
        root_path = Path(root)
        if root_path == source_dir:
            dirs[:] = [name for name in dirs if name != ASSETS_DIR]
        dirs.sort()
        for name in sorted(files):
            if name == LAYOUT_NAME or not name.endswith(SOURCE_SUFFIX):
                continue
            path = root_path / name
            if path.is_file() and assets_dir not in path.parents:
                documents.append(path)
    return documents


def mirror_assets(src: Path, dest: Path) -> int:
    """Copy the assets tree ``src`` to ``dest`` byte for byte.

    A missing ``src`` is not an error. Returns the number of files copied.
    """
    if not src.exists():
        return 0
    if not src.is_dir():
        raise AssetMirrorError(f"assets path is not a directory: {src}")
    copied = 0
    try:
        for root, _dirs, files in os.walk(src):
            target_dir = dest / Path(root).relative_to(src)
            target_dir.mkdir(parents=True, exist_ok=True)
            for name in files:
                shutil.copyfile(Path(root) / name, target_dir / name)
                copied += 1
    except OSError as exc:
        raise AssetMirrorError(f"failed to copy assets from {src}: {exc}") from exc
    return copied
