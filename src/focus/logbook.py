"""Session log lines: parsing from entity text and appending new entries.

A persisted session occupies one line of an entity's text, after the title
line::

    ++ @{2024-01-01} @@{09:00} – @@{09:25} (25 m)
    - 🍅 @{2024-01-01} @@{10:00} - @@{10:25} (25 m)

``++`` (or ``⏱``) marks a stopwatch session and ``🍅`` a pomodoro. Dates and
times are local wall-clock values. Lines that do not match are ignored.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
import threading
from collections import Counter
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from .constants import MINUTE_MS, MODE_POMODORO, MODE_STOPWATCH
from .documents import (
    Container,
    DocumentStore,
    build_index,
    find_path,
    iter_entities,
    update_at_path,
)

STOPWATCH_MARKER = "++"
POMODORO_MARKER = "🍅"
LOG_DASH = "–"

LOG_LINE_RE = re.compile(
    r"^\s*(?:[-*+]\s+)?"
    "(?P<marker>\\+\\+|\U0001f345|\u23f1\ufe0f?)"
    r"\s*"
    r"@\{(?P<date>\d{4}-\d{2}-\d{2})\}\s*"
    r"@@\{(?P<start>\d{1,2}:\d{2})\}\s*"
    r"[-–—]\s*"
    r"@@\{(?P<end>\d{1,2}:\d{2})\}\s*"
    r"\(\s*(?P<minutes>\d+)\s*m\b\)?"
)

_DATE_FORMAT = "%Y-%m-%d"
_TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class FocusSession:
    """One finalized span of focused time against one entity."""
    entity_id: Optional[str]
    entity_title: Optional[str]
    mode: str
    start_ms: int
    end_ms: int
    duration_ms: int

    @classmethod
    def finalized(
        cls,
        *,
        entity_id: Optional[str],
        entity_title: Optional[str],
        mode: str,
        start_ms: int,
        duration_ms: int,
    ) -> "FocusSession":
        duration_ms = max(0, int(duration_ms))
        return cls(
            entity_id=entity_id,
            entity_title=entity_title,
            mode=mode,
            start_ms=int(start_ms),
            end_ms=int(start_ms) + duration_ms,
            duration_ms=duration_ms,
        )

    @property
    def minute_key(self) -> tuple[Optional[str], int]:
        # Persisted lines only carry minutes.
        return (self.entity_id, self.start_ms - self.start_ms % MINUTE_MS)

    @property
    def started_at(self) -> dt.datetime:
        return dt.datetime.fromtimestamp(self.start_ms / 1000)

    @property
    def ended_at(self) -> dt.datetime:
        return dt.datetime.fromtimestamp(self.end_ms / 1000)

    @property
    def minutes(self) -> int:
        return int(math.floor(self.duration_ms / MINUTE_MS + 0.5))


def format_log_line(session: FocusSession) -> str:
    marker = POMODORO_MARKER if session.mode == MODE_POMODORO else STOPWATCH_MARKER
    started_at = session.started_at
    return (
        f"{marker} @{{{started_at.strftime(_DATE_FORMAT)}}} "
        f"@@{{{started_at.strftime(_TIME_FORMAT)}}} {LOG_DASH} "
        f"@@{{{session.ended_at.strftime(_TIME_FORMAT)}}} ({session.minutes} m)"
    )


def parse_log_line(
    line: str,
    *,
    entity_id: Optional[str],
    entity_title: Optional[str] = None,
) -> Optional[FocusSession]:
    match = LOG_LINE_RE.match(line)
    if match is None:
        return None

    try:
        started_at = dt.datetime.strptime(
            f"{match['date']} {match['start']}",
            f"{_DATE_FORMAT} {_TIME_FORMAT}",
        )
        ended_at = dt.datetime.strptime(
            f"{match['date']} {match['end']}",
            f"{_DATE_FORMAT} {_TIME_FORMAT}",
        )
    except ValueError:
        return None
    if ended_at < started_at:
        ended_at += dt.timedelta(days=1)

    mode = MODE_POMODORO if match["marker"] == POMODORO_MARKER else MODE_STOPWATCH
    return FocusSession(
        entity_id=entity_id,
        entity_title=entity_title,
        mode=mode,
        start_ms=int(started_at.timestamp() * 1000),
        end_ms=int(ended_at.timestamp() * 1000),
        duration_ms=int(match["minutes"]) * MINUTE_MS,
    )


def parse_entity_text(
    text: str,
    *,
    entity_id: Optional[str],
    entity_title: Optional[str] = None,
) -> list[FocusSession]:
    sessions = []
    for line in text.split("\n")[1:]:
        session = parse_log_line(line, entity_id=entity_id, entity_title=entity_title)
        if session is not None:
            sessions.append(session)
    return sessions


class LogSynchronizer:
    """In-memory session list reconciled with the text of every entity."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        logger: Optional[logging.Logger] = None,
    ):
        self._store = store
        self._logger = logger or logging.getLogger("focus.log")
        self._lock = threading.RLock()
        self._sessions: list[FocusSession] = []
        self._parsed_container_count: Optional[int] = None

    @property
    def sessions(self) -> tuple[FocusSession, ...]:
        with self._lock:
            return tuple(self._sessions)

    def ensure_parsed(self) -> None:
        """Parse all containers if never parsed or the container count moved."""
        containers = self._store.containers()
        with self._lock:
            if self._parsed_container_count == len(containers):
                return
            self._parse_locked(containers)

    def force_reparse(self) -> int:
        with self._lock:
            return self._parse_locked(self._store.containers())

    def record(self, session: FocusSession) -> None:
        """Keep a finalized session; parse passes match it to its log line later."""
        with self._lock:
            self._sessions.append(session)

    def append(self, session: FocusSession) -> bool:
        """Write ``session`` as a new line at the end of its entity's text."""
        if session.entity_id is None:
            return False

        container = build_index(self._store.containers()).get(session.entity_id)
        if container is None:
            self._logger.debug(
                "No container holds entity %s; session not persisted",
                session.entity_id,
            )
            return False

        line = format_log_line(session)

        def add_line(current: Container) -> Optional[Container]:
            path = find_path(current.children, session.entity_id)
            if path is None:
                return None
            children = update_at_path(
                current.children,
                path,
                lambda entity: entity.with_text(_append_line(entity.text, line)),
            )
            return replace(current, children=children)

        if self._store.update(container.id, add_line) is None:
            self._logger.warning(
                "Entity %s is no longer in %s; session not persisted",
                session.entity_id,
                container.id,
            )
            return False
        self._logger.info(
            "Logged %s session for %s in %s: %s",
            session.mode,
            session.entity_id,
            container.id,
            line,
        )
        return True

    def title_for(self, entity_id: Optional[str]) -> Optional[str]:
        if entity_id is None:
            return None
        for container in self._store.containers():
            for entity in iter_entities(container.children):
                if entity.id == entity_id:
                    return entity.title
        return None

    def total_focused_ms(self, entity_id: str) -> int:
        self.ensure_parsed()
        with self._lock:
            return sum(
                session.duration_ms
                for session in self._sessions
                if session.entity_id == entity_id
            )

    def sessions_for_date(self, day: dt.date) -> list[FocusSession]:
        self.ensure_parsed()
        with self._lock:
            return [
                session for session in self._sessions if session.started_at.date() == day
            ]

    def _parse_locked(self, containers: Sequence[Container]) -> int:
        # N lines logged in one minute stand for N known sessions of that minute.
        known = Counter(session.minute_key for session in self._sessions)
        seen: Counter = Counter()
        added = 0
        for container in containers:
            for entity in iter_entities(container.children):
                for session in parse_entity_text(
                    entity.text,
                    entity_id=entity.id,
                    entity_title=entity.title,
                ):
                    seen[session.minute_key] += 1
                    if seen[session.minute_key] > known[session.minute_key]:
                        self._sessions.append(session)
                        added += 1
        self._parsed_container_count = len(containers)
        self._logger.debug(
            "Parsed session logs from %d containers: %d new, %d total",
            len(containers),
            added,
            len(self._sessions),
        )
        return added


def _append_line(text: str, line: str) -> str:
    return text.rstrip("\n") + "\n" + line
