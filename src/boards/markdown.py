"""Kanban-style Markdown boards parsed into containers and written back.

A board file looks like::

    ---
    kanban-plugin: basic
    ---

    ## Doing

    - [ ] Write report
    	++ @{2024-01-01} @@{09:00} – @@{09:25} (25 m)

    %% kanban:settings
    ```
    {"kanban-plugin":"basic","pomodoro-minutes":50}
    ```
    %%

Item body lines are indented below their bullet; the first item line is the
title. Ids are derived from board id, title and occurrence so they survive
reordering.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any, Optional

from focus.documents import Container, Entity

SETTINGS_HEADER = "%% kanban:settings"

_FRONT_MATTER_RE = re.compile(r"\A---\n(?P<body>.*?)\n---[ \t]*(?:\n|\Z)", re.DOTALL)
_SETTINGS_RE = re.compile(
    r"^%% kanban:settings[ \t]*\n```[^\n]*\n(?P<json>.*?)\n```[ \t]*\n%%[ \t]*$",
    re.DOTALL | re.MULTILINE,
)
_LANE_RE = re.compile(r"^##\s+(?P<title>.*?)\s*$")
_ITEM_RE = re.compile(r"^[-*]\s+(?:\[(?P<check>[ xX])\]\s?)?(?P<text>.*)$")
_INDENT_RE = re.compile(r"^(?:\t| {2,4})")


class BoardFormatError(Exception):
    """Raised when a board file cannot be parsed."""


def is_board(text: str) -> bool:
    match = _FRONT_MATTER_RE.match(text)
    return match is not None and "kanban-plugin" in match.group("body")


def parse_board(text: str, *, board_id: str, name: Optional[str] = None) -> Container:
    text = text.replace("\r\n", "\n")
    front_matter: Optional[str] = None
    match = _FRONT_MATTER_RE.match(text)
    if match is not None:
        front_matter = match.group("body")
        text = text[match.end() :]

    settings: dict[str, Any] = {}
    settings_json: Optional[str] = None
    settings_match = _SETTINGS_RE.search(text)
    if settings_match is not None:
        settings_json = settings_match.group("json").strip()
        try:
            loaded = json.loads(settings_json) if settings_json else {}
        except json.JSONDecodeError as error:
            raise BoardFormatError(f"Invalid board settings in {board_id}: {error}") from error
        if not isinstance(loaded, dict):
            raise BoardFormatError(f"Board settings in {board_id} must be a JSON object")
        settings = loaded
        text = text[: settings_match.start()]

    ids = _IdAllocator(board_id)
    lanes: list[Entity] = []
    lane_title: Optional[str] = None
    lane_notes: list[str] = []
    items: list[Entity] = []
    item_lines: list[str] = []
    item_checked = False

    def close_item() -> None:
        nonlocal item_lines
        if item_lines:
            item_text = "\n".join(item_lines)
            items.append(
                Entity(
                    id=ids.allocate("item", item_lines[0]),
                    text=item_text,
                    data={"checked": item_checked},
                )
            )
            item_lines = []

    def close_lane() -> None:
        nonlocal items, lane_notes
        close_item()
        if lane_title is None and not items and not lane_notes:
            return
        title = lane_title or ""
        lanes.append(
            Entity(
                id=ids.allocate("lane", title),
                text=title,
                children=tuple(items),
                data={"notes": tuple(lane_notes)},
            )
        )
        items = []
        lane_notes = []

    for line in text.split("\n"):
        lane_match = _LANE_RE.match(line)
        if lane_match is not None:
            close_lane()
            lane_title = lane_match.group("title")
            continue

        item_match = _ITEM_RE.match(line)
        if item_match is not None:
            close_item()
            item_checked = (item_match.group("check") or " ").lower() == "x"
            item_lines = [item_match.group("text")]
            continue

        if item_lines and line.strip() and _INDENT_RE.match(line):
            item_lines.append(_INDENT_RE.sub("", line, count=1))
            continue

        close_item()
        if line.strip():
            lane_notes.append(line)

    close_lane()

    return Container(
        id=board_id,
        name=name or board_id,
        children=tuple(lanes),
        data={
            "front_matter": front_matter,
            "settings": settings,
            "settings_json": settings_json,
        },
    )


def format_board(container: Container) -> str:
    lines: list[str] = []
    front_matter = container.data.get("front_matter")
    if front_matter is not None:
        lines.extend(["---", front_matter, "---", ""])

    for lane in container.children:
        lines.extend([f"## {lane.text}", ""])
        lines.extend(lane.data.get("notes", ()))
        for item in lane.children:
            lines.extend(_format_item(item))
        lines.extend(["", ""])

    settings_json = _settings_json(container)
    if settings_json is not None:
        lines.extend([SETTINGS_HEADER, "```", settings_json, "```", "%%"])

    return "\n".join(lines).rstrip("\n") + "\n"


def _format_item(item: Entity) -> list[str]:
    check = "x" if item.data.get("checked") else " "
    first, *rest = item.text.split("\n")
    # Blank body lines would end the item on the next parse.
    return [f"- [{check}] {first}"] + [f"\t{line}" for line in rest if line.strip()]


def _settings_json(container: Container) -> Optional[str]:
    settings = container.data.get("settings")
    original = container.data.get("settings_json")
    if original is not None and json.loads(original or "{}") == settings:
        return original
    if not settings and original is None:
        return None
    return json.dumps(settings, ensure_ascii=False, separators=(",", ":"))


class _IdAllocator:
    def __init__(self, board_id: str):
        self._board_id = board_id
        self._seen: dict[tuple[str, str], int] = {}

    def allocate(self, kind: str, title: str) -> str:
        key = (kind, title.strip())
        occurrence = self._seen.get(key, 0)
        self._seen[key] = occurrence + 1
        digest = hashlib.sha1(
            "\x1f".join((self._board_id, kind, key[1], str(occurrence))).encode("utf-8")
        ).hexdigest()
        return digest[:12]
