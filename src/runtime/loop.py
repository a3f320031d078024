"""Runtime orchestration loop for timer ticks and queued UI commands."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Optional

from focus import DocumentStore, FocusTimer
from server import UIServer

from .commands import RuntimeCommandDispatcher
from .prompts import ServerStopReasonCollector
from .relay import TimerEventRelay
from .ui import RuntimeUIPublisher

TICK_INTERVAL_SECONDS = 1.0
POLL_TIMEOUT_SECONDS = 0.25
SHUTDOWN_STOP_REASON = "Shutdown"


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[Callable[[], None]], None]
    monotonic: Callable[[], float] = time.monotonic


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    timer: FocusTimer
    ui: RuntimeUIPublisher
    reason_collector: Optional[ServerStopReasonCollector]
    ui_server: Optional[UIServer]
    hooks: RuntimeHooks
    reload_documents: Optional[Callable[[], None]] = None
    documents: Optional[DocumentStore] = None


class RuntimeEngine:
    """Single-threaded loop that owns every timer mutation.

    Other threads hand work over through :meth:`submit_command`; the loop
    ticks the timer once per second and applies queued commands in order.
    """

    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._timer = bootstrap.timer
        self._ui = bootstrap.ui
        self._relay = TimerEventRelay(self._timer, self._ui)
        self._dispatcher = RuntimeCommandDispatcher(
            timer=self._timer,
            ui=self._ui,
            reason_collector=bootstrap.reason_collector,
            reload_documents=bootstrap.reload_documents,
            documents=bootstrap.documents,
            logger=self._logger,
        )
        self._commands: Queue[dict[str, Any]] = Queue()
        self._shutdown_requested = threading.Event()
        self._last_tick: Optional[float] = None

    @property
    def dispatcher(self) -> RuntimeCommandDispatcher:
        return self._dispatcher

    def submit_command(self, command: dict[str, Any]) -> None:
        self._commands.put(command)

    def request_shutdown(self) -> None:
        self._shutdown_requested.set()

    def run(self) -> int:
        self._relay.attach()
        self._bootstrap.hooks.setup_signal_handlers(self.request_shutdown)
        self._ui.publish_timer_update(self._timer.snapshot(), signal="sync")
        self._logger.info("Focus timer ready.")

        try:
            while not self._shutdown_requested.is_set():
                self.step()
            self._logger.info("Shutdown requested.")
            return 0
        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def step(self, poll_timeout: float = POLL_TIMEOUT_SECONDS) -> None:
        """Run one loop iteration: tick when due, then apply one command."""
        self._emit_timer_tick()
        command = self._poll_command(poll_timeout)
        if command is not None:
            self._dispatcher.handle_command(command)

    def _emit_timer_tick(self) -> None:
        now = self._bootstrap.hooks.monotonic()
        if self._last_tick is not None and now - self._last_tick < TICK_INTERVAL_SECONDS:
            return
        self._last_tick = now
        tick = self._timer.tick()
        if tick is not None and tick.completed:
            self._logger.debug(
                "Countdown completed; timer now in %s mode",
                tick.snapshot.mode,
            )

    def _poll_command(self, timeout: float) -> Optional[dict[str, Any]]:
        try:
            return self._commands.get(timeout=timeout)
        except Empty:
            return None

    def _shutdown(self) -> None:
        self._relay.detach()
        if self._timer.is_running():
            self._logger.info("Stopping running session before exit...")
            self._timer.stop(ask_reason=False)
        if self._timer.pending_stop is not None:
            self._logger.info("Saving session still awaiting a stop reason...")
            if self._bootstrap.reason_collector is not None:
                self._bootstrap.reason_collector.discard()
            self._timer.resolve_with_reason(SHUTDOWN_STOP_REASON)

        ui_server = self._bootstrap.ui_server
        if ui_server is not None:
            self._logger.info("Stopping UI server...")
            try:
                ui_server.stop(timeout_seconds=5.0)
            except Exception as error:
                self._logger.error("Error stopping UI server: %s", error, exc_info=True)
