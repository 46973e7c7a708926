from __future__ import annotations

import functools
import os
import threading
import urllib.parse
from http import HTTPStatus
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional

from .logging import get_logger
from .utils import has_extension

INDEX_FILE = "index.html"

logger = get_logger("server")


def resolve_request_path(request_path: str, output_root: Path) -> Optional[Path]:
    """Map a request path onto a file under ``output_root``.

    ``/`` serves ``index.html``; a directory serves its ``index.html``; an
    extensionless path falls back to a ``.html`` sibling. ``None`` means 404.
    """
    # a leading "//" is part of the path here, not a network location
    raw = request_path.split("?", 1)[0].split("#", 1)[0]
    path = urllib.parse.unquote(raw)
    if path in ("", "/"):
        path = "/" + INDEX_FILE

    parts = [part for part in path.split("/") if part and part != "."]
    if ".." in parts:
        return None
    candidate = output_root.joinpath(*parts)

    if candidate.is_file():
        return candidate
    if candidate.is_dir():
        index = candidate / INDEX_FILE
        return index if index.is_file() else None
    if parts and not path.endswith("/") and not has_extension(path):
        sibling = candidate.with_name(candidate.name + ".html")
        if sibling.is_file():
            return sibling
    return None


class DevRequestHandler(SimpleHTTPRequestHandler):
    server_version = "quiver"

    def __init__(self, *args, output_root: Path, **kwargs) -> None:
        self.output_root = output_root
        super().__init__(*args, directory=str(output_root), **kwargs)

    def send_head(self):
        path = resolve_request_path(self.path, self.output_root)
        if path is None:
            self.send_error(HTTPStatus.NOT_FOUND, "File not found")
            return None
        try:
            f = open(path, "rb")
        except OSError:
            # removed by a rebuild between resolving and opening
            self.send_error(HTTPStatus.NOT_FOUND, "File not found")
            return None
        try:
            fs = os.fstat(f.fileno())
            self.send_response(HTTPStatus.OK)
            self.send_header("Content-type", self.guess_type(str(path)))
            self.send_header("Content-Length", str(fs.st_size))
            self.send_header("Last-Modified", self.date_time_string(fs.st_mtime))
            self.end_headers()
            return f
        except Exception:
            f.close()
            raise

    do_POST = SimpleHTTPRequestHandler.do_GET
    do_PUT = SimpleHTTPRequestHandler.do_GET
    do_DELETE = SimpleHTTPRequestHandler.do_GET
    do_PATCH = SimpleHTTPRequestHandler.do_GET
    do_OPTIONS = SimpleHTTPRequestHandler.do_GET

    def log_message(self, format: str, *args) -> None:
        logger.info("Request: %s", format % args)


def make_server(output_root: Path, port: int, host: str = "") -> ThreadingHTTPServer:
    handler = functools.partial(DevRequestHandler, output_root=output_root)
    return ThreadingHTTPServer((host, port), handler)


def start_in_background(server: ThreadingHTTPServer) -> threading.Thread:
    thread = threading.Thread(target=server.serve_forever, name="quiver-http", daemon=True)
    thread.start()
    return thread
