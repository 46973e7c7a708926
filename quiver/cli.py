from __future__ import annotations

import argparse
import datetime as dt
import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from typing import Optional

from .builder import build_site, check_workspace
from .config import build_settings, default_config_path, resolve_entry, server_port
from .content import extract_metadata, new_entry_text
from .errors import QuiverError
from .logging import configure_logging, get_logger
from .render import write_text
from .server import make_server, start_in_background
from .walker import collect_documents
from .watch import WatchLoop

logger = get_logger("cli")


def load_workspace(args: argparse.Namespace) -> tuple[Path, Path, Path, dict]:
    config_path = Path(args.config).expanduser() if args.config else None
    workspace, config = resolve_entry(args.entry, config_path)
    source_dir, output_dir = check_workspace(workspace)
    return workspace, source_dir, output_dir, config


def cmd_build(args: argparse.Namespace) -> int:
    _, source_dir, output_dir, config = load_workspace(args)
    report = build_site(source_dir, output_dir, **build_settings(config))
    print(f"Build completed in {report.elapsed:.2f}s.")
    print(f"Site generated in: {output_dir}")
    return 0


def install_signal_handlers(stop_event: threading.Event) -> None:
    if threading.current_thread() is not threading.main_thread():
        return

    def handle(signum, _frame) -> None:
        logger.info("Received shutdown signal, shutting down...")
        stop_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


def cmd_serve(args: argparse.Namespace) -> int:
    _, source_dir, output_dir, config = load_workspace(args)
    options = build_settings(config)

    logger.info("Building initial site...")
    build_site(source_dir, output_dir, **options)

    port = args.port or server_port(config)
    try:
        server = make_server(output_dir, port)
    except OSError as exc:
        raise QuiverError(f"Failed to start server on port {port}: {exc}") from exc
    start_in_background(server)
    logger.info("Serving at http://localhost:%d/", port)

    loop = WatchLoop(source_dir, lambda: build_site(source_dir, output_dir, **options))
    install_signal_handlers(loop.stop_event)
    try:
        loop.start()
        loop.run()
    except KeyboardInterrupt:
        logger.info("Received shutdown signal, shutting down...")
    finally:
        loop.stop()
        server.shutdown()
        server.server_close()
    return 0


def document_status(source_dir: Path) -> list[tuple[str, bool]]:
    entries = []
    for path in collect_documents(source_dir):
        try:
            metadata, _ = extract_metadata(path.read_text(encoding="utf-8"), path)
        except (OSError, UnicodeDecodeError, QuiverError) as exc:
            logger.error("Error reading metadata for %s: %s", path, exc)
            continue
        entries.append((path.relative_to(source_dir).as_posix(), metadata.status))
    entries.sort(key=lambda item: not item[1])
    return entries


def cmd_status(args: argparse.Namespace) -> int:
    _, source_dir, _, _ = load_workspace(args)
    print(f"{'File Path':<60} {'Status':<10}")
    print("-" * 75)
    for rel, status in document_status(source_dir):
        print(f"{rel:<60} {'true' if status else 'false'}")
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    _, source_dir, _, _ = load_workspace(args)
    name = (args.name or "").strip().removesuffix(".md")
    if not name:
        raise QuiverError("File name cannot be empty.")
    path = (source_dir / f"{name}.md").resolve()
    if not path.is_relative_to(source_dir.resolve()):
        raise QuiverError(f"Refusing to create an entry outside {source_dir}")
    if path.exists():
        raise QuiverError(f"A file with this name already exists: {path}")

    write_text(path, new_entry_text(Path(name).name, (args.desc or "").strip(), dt.date.today()))
    print(f"New entry created at: {path}")

    if args.edit:
        editor = os.environ.get("EDITOR") or "nano"
        try:
            subprocess.run([editor, str(path)], check=False)
        except OSError as exc:
            logger.error("Error opening editor: %s", exc)
    return 0


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-e",
        "--entry",
        default="",
        help="Workspace key from the config file, or a workspace directory.",
    )
    common.add_argument(
        "--config",
        default=None,
        help=f"Path to config file (TOML/YAML/JSON). Default: {default_config_path()}",
    )

    parser = argparse.ArgumentParser(prog="quiver", description="A simple static site generator.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    commands = parser.add_subparsers(dest="command", required=True)

    build = commands.add_parser("build", aliases=["b"], parents=[common], help="Build the static source files.")
    build.set_defaults(func=cmd_build)

    serve = commands.add_parser(
        "serve", aliases=["s"], parents=[common], help="Start a local server and watch for changes."
    )
    serve.add_argument("-p", "--port", type=int, default=0, help="Port to serve on (0 = config value).")
    serve.set_defaults(func=cmd_serve)

    status = commands.add_parser(
        "status", aliases=["st"], parents=[common], help="List the publish status of all source documents."
    )
    status.set_defaults(func=cmd_status)

    new = commands.add_parser("new", aliases=["n"], parents=[common], help="Create a new draft entry.")
    new.add_argument("name", help="File name without extension, may include subdirectories.")
    new.add_argument("--desc", default="", help="Description written into the front matter.")
    new.add_argument("--edit", action="store_true", help="Open the new file in $EDITOR.")
    new.set_defaults(func=cmd_new)
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose)
    try:
        code = args.func(args)
    except QuiverError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)
    sys.exit(code)


if __name__ == "__main__":
    main()
