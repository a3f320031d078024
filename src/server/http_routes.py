"""Plain HTTP routes served next to the websocket endpoint."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import HEALTHZ_PATH, INDEX_PATH, ROOT_PATH

TEXT_PLAIN = "text/plain; charset=utf-8"
TEXT_HTML = "text/html; charset=utf-8"
_TEXT_LIKE_TYPES = frozenset(
    {"application/javascript", "application/json", "application/xml"}
)


@dataclass(frozen=True)
class HttpReply:
    status_code: int
    reason_phrase: str
    body: bytes
    content_type: str


NOT_FOUND = HttpReply(404, "Not Found", b"not found\n", TEXT_PLAIN)


def route_request(
    path: str,
    *,
    index_html: Optional[bytes],
    ui_root: Optional[Path],
) -> HttpReply:
    """Answer health checks, the board UI page and its assets; anything else is 404."""
    if path == HEALTHZ_PATH:
        return HttpReply(200, "OK", b"ok\n", TEXT_PLAIN)

    if path in (ROOT_PATH, INDEX_PATH) and index_html is not None:
        return HttpReply(200, "OK", index_html, TEXT_HTML)

    if ui_root is None:
        return NOT_FOUND
    asset = resolve_static_file(ui_root, path)
    if asset is None:
        return NOT_FOUND
    return HttpReply(200, "OK", asset.read_bytes(), guess_content_type(asset))


def resolve_static_file(ui_root: Path, request_path: str) -> Optional[Path]:
    """Map a request path onto a file under ``ui_root``, refusing escapes."""
    relative = request_path.lstrip("/")
    if not relative:
        return None

    root = ui_root.resolve()
    candidate = (root / relative).resolve()
    if root not in candidate.parents or not candidate.is_file():
        return None
    return candidate


def guess_content_type(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(str(path))
    if not mime_type:
        return "application/octet-stream"
    if mime_type.startswith("text/") or mime_type in _TEXT_LIKE_TYPES:
        return f"{mime_type}; charset=utf-8"
    return mime_type
