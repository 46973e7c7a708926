from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .errors import FrontMatterError
from .utils import parse_bool

FENCE = "---"


@dataclass(frozen=True)
class Metadata:
    title: str = ""
    desc: str = ""
    date: Optional[dt.date] = None
    status: bool = False
    js: Optional[str] = None


def split_front_matter(text: str) -> tuple[Optional[str], str]:
    """Split ``text`` into its raw front matter block and the body.

    Returns ``(None, text)`` when the document does not open with a fence or
    the fence is never closed.
    """
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines(keepends=True)
    if not lines or lines[0].strip() != FENCE:
        return None, clean_text

    for i in range(1, len(lines)):
        if lines[i].strip() == FENCE:
            return "".join(lines[1:i]), "".join(lines[i + 1 :])
    return None, clean_text


def parse_front_matter(text: str, path: Path) -> tuple[dict, str]:
    block, body = split_front_matter(text)
    if block is None:
        return {}, body
    try:
        meta = yaml.safe_load(block)
    except (yaml.YAMLError, ValueError) as exc:
        # the timestamp constructor raises ValueError for dates like 2024-13-45
        raise FrontMatterError(path, f"failed to parse front matter: {exc}") from exc
    if meta is None:
        return {}, body
    if not isinstance(meta, dict):
        raise FrontMatterError(path, "front matter must be a mapping")
    return meta, body


def parse_date(value: object, path: Path) -> Optional[dt.date]:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    text = str(value).strip()
    try:
        return dt.date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return dt.datetime.fromisoformat(text).date()
    except ValueError:
        raise FrontMatterError(path, f"invalid date: {text!r}") from None


def _optional_text(value: object) -> str:
    if value is None:
        return ""
    return str(value).strip()


def extract_metadata(text: str, path: Path) -> tuple[Metadata, str]:
    meta, body = parse_front_matter(text, path)
    js = meta.get("js")
    metadata = Metadata(
        title=_optional_text(meta.get("title")),
        desc=_optional_text(meta.get("desc")),
        date=parse_date(meta.get("date"), path),
        status=parse_bool(meta.get("status")),
        js=str(js) if js is not None else None,
    )
    return metadata, body


def default_title(path: Path, title: str) -> str:
    if title:
        return title
    name = path.name
    return name[: -len(".md")] if name.endswith(".md") else path.stem


def new_entry_text(title: str, desc: str, date: dt.date) -> str:
    """Front matter for a freshly created draft."""
    meta = {"title": title, "desc": desc, "date": date, "status": False}
    block = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    return f"{FENCE}\n{block}{FENCE}\n"
