from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import DEFAULT_HIGHLIGHT_STYLE
from .errors import AssetMirrorError, DocumentError, WorkspaceError
from .logging import get_logger
from .pages import transform_document
from .render import layout_environment
from .utils import resolve_workers
from .walker import ASSETS_DIR, collect_documents, mirror_assets, prepare_output_dir

SOURCE_DIR = "src"
OUTPUT_DIR = "dist"

logger = get_logger("builder")


@dataclass
class BuildReport:
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failed: dict[Path, Exception] = field(default_factory=dict)
    asset_error: Optional[AssetMirrorError] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failed and self.asset_error is None


def build_site(
    source_dir: Path,
    output_dir: Path,
    *,
    highlight_style: str = DEFAULT_HIGHLIGHT_STYLE,
    workers: int = 0,
) -> BuildReport:
    """Fully rebuild ``output_dir`` from ``source_dir``.

    The output tree is wiped first, so documents that were renamed, removed or
    unpublished since the last build leave nothing behind. Only that step is
    fatal (``BuildError``); asset and per-document failures are recorded in the
    returned report and logged.
    """
    start = time.perf_counter()
    report = BuildReport()
    logger.info("Starting build...")
    logger.info("Source: %s", source_dir)
    logger.info("Destination: %s", output_dir)

    prepare_output_dir(output_dir)

    try:
        mirror_assets(source_dir / ASSETS_DIR, output_dir / ASSETS_DIR)
    except AssetMirrorError as exc:
        logger.warning("Error copying assets: %s", exc)
        report.asset_error = exc

    documents = collect_documents(source_dir)
    env = layout_environment(source_dir)

    def transform(doc: Path) -> Optional[Path]:
        return transform_document(doc, source_dir, output_dir, env, highlight_style)

    if documents:
        max_workers = min(resolve_workers(workers), len(documents))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="quiver-build") as executor:
            futures = {executor.submit(transform, doc): doc for doc in documents}
            for future in as_completed(futures):
                doc = futures[future]
                try:
                    dest = future.result()
                except DocumentError as exc:
                    logger.error("Error processing file %s: %s", doc, exc.reason)
                    report.failed[doc] = exc
                    continue
                except Exception as exc:
                    logger.exception("Unexpected error processing file %s", doc)
                    report.failed[doc] = exc
                    continue
                if dest is None:
                    report.skipped.append(doc)
                else:
                    report.written.append(dest)

    report.written.sort()
    report.skipped.sort()
    report.elapsed = time.perf_counter() - start
    logger.info(
        "Build completed! %d written, %d skipped, %d failed in %.2fs.",
        len(report.written),
        len(report.skipped),
        len(report.failed),
        report.elapsed,
    )
    return report


def check_workspace(workspace: Path) -> tuple[Path, Path]:
    source_dir, output_dir = workspace / SOURCE_DIR, workspace / OUTPUT_DIR
    if not source_dir.is_dir():
        raise WorkspaceError(f"missing `{SOURCE_DIR}` directory in workspace {workspace}")
    return source_dir, output_dir
