"""Notifier and stop-reason collector backed by the websocket UI."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from .ui import RuntimeUIPublisher


class ServerNotifier:
    """Sends user-visible notices to connected clients and the log."""

    def __init__(self, ui: RuntimeUIPublisher, logger: Optional[logging.Logger] = None):
        self._ui = ui
        self._logger = logger or logging.getLogger("runtime")

    def notify(self, message: str) -> None:
        self._logger.info("Notice: %s", message)
        self._ui.publish_notice(message)


@dataclass(frozen=True)
class _ReasonRequest:
    reasons: tuple[str, ...]
    container_id: Optional[str]
    on_reason: Callable[[str], None]
    on_cancel: Callable[[], None]


class ServerStopReasonCollector:
    """Publishes a stop-reason request and waits for the client's answer.

    Only the latest request is kept; answering calls exactly one of the
    callbacks the timer handed over, then forgets the request.
    """

    def __init__(self, ui: RuntimeUIPublisher, logger: Optional[logging.Logger] = None):
        self._ui = ui
        self._logger = logger or logging.getLogger("runtime")
        self._lock = threading.Lock()
        self._request: Optional[_ReasonRequest] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._request is not None

    def request_reason(
        self,
        reasons: Sequence[str],
        *,
        container_id: Optional[str],
        on_reason: Callable[[str], None],
        on_cancel: Callable[[], None],
    ) -> None:
        with self._lock:
            self._request = _ReasonRequest(
                reasons=tuple(reasons),
                container_id=container_id,
                on_reason=on_reason,
                on_cancel=on_cancel,
            )
        self._logger.info("Requesting stop reason from UI: %s", ", ".join(reasons))
        self._ui.publish_stop_reason_request(reasons, container_id=container_id)

    def resolve(self, reason: str) -> bool:
        request = self._take()
        if request is None:
            return False
        request.on_reason(reason)
        return True

    def cancel(self) -> bool:
        request = self._take()
        if request is None:
            return False
        request.on_cancel()
        return True

    def discard(self) -> None:
        self._take()

    def _take(self) -> Optional[_ReasonRequest]:
        with self._lock:
            request, self._request = self._request, None
        if request is not None:
            self._ui.clear_stop_reason_request()
        return request
