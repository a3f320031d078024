from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Optional, Sequence

from focus.documents import Container, ContainerChange, DocumentStoreError
from focus.settings import BoardOverride

from .markdown import BoardFormatError, format_board, is_board, parse_board

POMODORO_MINUTES_KEY = "pomodoro-minutes"
STOP_REASONS_KEY = "stop-reasons"


class MarkdownBoardStore:
    """Directory of kanban Markdown files exposed as document containers."""

    def __init__(self, directory: Path, *, logger: Optional[logging.Logger] = None):
        self._directory = Path(directory)
        self._logger = logger or logging.getLogger("boards")
        self._lock = threading.Lock()
        self._containers: dict[str, Container] = {}
        self._paths: dict[str, Path] = {}

    @property
    def directory(self) -> Path:
        return self._directory

    def reload(self) -> int:
        """Re-read every board in the directory and return how many loaded."""
        containers: dict[str, Container] = {}
        paths: dict[str, Path] = {}
        for path in sorted(self._directory.glob("*.md")):
            try:
                text = path.read_text(encoding="utf-8")
            except OSError as error:
                self._logger.warning("Could not read board %s: %s", path, error)
                continue
            if not is_board(text):
                continue
            try:
                container = parse_board(text, board_id=path.name, name=path.stem)
            except BoardFormatError as error:
                self._logger.warning("Skipping board %s: %s", path.name, error)
                continue
            containers[container.id] = container
            paths[container.id] = path

        with self._lock:
            self._containers = containers
            self._paths = paths
        self._logger.info("Loaded %d boards from %s", len(containers), self._directory)
        return len(containers)

    def containers(self) -> Sequence[Container]:
        with self._lock:
            return tuple(self._containers.values())

    def replace(self, container: Container) -> None:
        with self._lock:
            target_path = self._paths.get(container.id, self._directory / container.id)
            self._write(target_path, format_board(container))
            self._containers[container.id] = container
            self._paths[container.id] = target_path
        self._logger.debug("Wrote board %s", target_path)

    def update(self, container_id: str, change: ContainerChange) -> Optional[Container]:
        """Re-read one board from disk, apply ``change`` and write it back.

        Edits made to the file since the last :meth:`reload` are kept because
        ``change`` always sees what is currently on disk.
        """
        with self._lock:
            path = self._paths.get(container_id)
            if path is None:
                return None
            try:
                text = path.read_text(encoding="utf-8")
                current = parse_board(text, board_id=container_id, name=path.stem)
            except (OSError, BoardFormatError) as error:
                raise DocumentStoreError(
                    f"Failed to re-read board {path.name}: {error}"
                ) from error

            updated = change(current)
            if updated is None:
                self._containers[container_id] = current
                return None
            self._write(path, format_board(updated))
            self._containers[container_id] = updated
        self._logger.debug("Updated board %s", path)
        return updated

    def board_overrides(self) -> dict[str, BoardOverride]:
        """Per-board timer overrides declared in each board's settings block."""
        overrides = {}
        for container in self.containers():
            override = override_from_settings(container.data.get("settings") or {})
            if override is not None:
                overrides[container.id] = override
        return overrides

    @staticmethod
    def _write(target_path: Path, text: str) -> None:
        temp_path = target_path.with_suffix(f"{target_path.suffix}.tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
            temp_path.replace(target_path)
        except OSError as error:
            if temp_path.exists():
                temp_path.unlink()
            raise DocumentStoreError(f"Failed to write board {target_path.name}: {error}") from error


def override_from_settings(settings: dict[str, Any]) -> Optional[BoardOverride]:
    pomodoro_minutes = settings.get(POMODORO_MINUTES_KEY)
    raw_reasons = settings.get(STOP_REASONS_KEY)
    stop_reasons: tuple[str, ...] = ()
    if isinstance(raw_reasons, list):
        stop_reasons = tuple(str(reason) for reason in raw_reasons)
    elif isinstance(raw_reasons, str):
        stop_reasons = tuple(
            reason.strip() for reason in raw_reasons.split(",") if reason.strip()
        )

    if pomodoro_minutes is None and not stop_reasons:
        return None
    return BoardOverride(pomodoro_minutes=pomodoro_minutes, stop_reasons=stop_reasons)
