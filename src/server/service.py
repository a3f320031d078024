from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.ui_protocol import COMMANDS, EVENT_ERROR, EVENT_HELLO

from .config import UIServerConfig
from .events import StickyEventStore, make_event, parse_command
from .http_routes import route_request

CommandHandler = Callable[[dict[str, Any]], None]

CLOSE_POLICY_VIOLATION = 1008
CLOSE_GOING_AWAY = 1001


class _ClientRegistry:
    """Connected board clients; only touched from the server event loop."""

    def __init__(self, logger: logging.Logger):
        self._clients: set[ServerConnection] = set()
        self._logger = logger

    def __len__(self) -> int:
        return len(self._clients)

    def add(self, client: ServerConnection) -> None:
        self._clients.add(client)

    def discard(self, client: ServerConnection) -> None:
        self._clients.discard(client)

    async def broadcast(self, message: str) -> None:
        clients = tuple(self._clients)
        if not clients:
            return
        results = await asyncio.gather(
            *(client.send(message) for client in clients),
            return_exceptions=True,
        )
        for client, result in zip(clients, results):
            if isinstance(result, Exception):
                self._logger.warning(
                    "Dropping client %s after failed send: %s",
                    client.remote_address,
                    result,
                )
                self._clients.discard(client)

    async def close_all(self) -> None:
        clients = tuple(self._clients)
        self._clients.clear()
        await asyncio.gather(
            *(
                client.close(code=CLOSE_GOING_AWAY, reason="Server shutting down")
                for client in clients
            ),
            return_exceptions=True,
        )


class UIServer:
    """Websocket bridge between board clients and the timer runtime.

    The server runs its own asyncio loop on a daemon thread. ``publish`` may
    be called from any thread; inbound commands are validated here and then
    handed to the registered command handler on the server thread.
    """

    def __init__(
        self,
        config: UIServerConfig,
        *,
        on_command: Optional[CommandHandler] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._on_command = on_command
        self._logger = logger or logging.getLogger("ui_server")
        self._sticky_events = StickyEventStore()
        self._clients = _ClientRegistry(self._logger)
        self._index_html = (
            Path(config.index_file).read_bytes() if config.index_file else None
        )

        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._shutdown: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._failure: Optional[Exception] = None

    @property
    def host(self) -> str:
        return self._config.host

    @property
    def port(self) -> int:
        return self._config.port

    @property
    def websocket_path(self) -> str:
        return self._config.websocket_path

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive() and self._failure is None

    def set_command_handler(self, handler: Optional[CommandHandler]) -> None:
        self._on_command = handler

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("UI server is already running")
            return

        self._failure = None
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._thread_main,
            name="ui-server",
            daemon=True,
        )
        self._thread.start()

        if not self._ready.wait(timeout_seconds):
            raise RuntimeError(f"UI server did not start within {timeout_seconds:.1f}s")
        if self._failure is not None:
            raise RuntimeError(f"UI server startup failed: {self._failure}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        thread = self._thread
        if thread is None:
            return

        loop, shutdown = self._loop, self._shutdown
        if loop is not None and shutdown is not None:
            loop.call_soon_threadsafe(shutdown.set)

        thread.join(timeout=timeout_seconds)
        if thread.is_alive():
            self._logger.error("UI server thread did not stop within %.1fs", timeout_seconds)

        self._thread = None
        self._loop = None
        self._shutdown = None

    def publish(self, event_type: str, **payload: Any) -> None:
        """Broadcast one event; sticky types are kept for clients that join later."""
        message = make_event(event_type, **payload)
        self._sticky_events.remember(event_type, message)

        loop = self._loop
        if loop is None or not self.is_running:
            return
        try:
            future = asyncio.run_coroutine_threadsafe(self._clients.broadcast(message), loop)
        except RuntimeError as error:
            self._logger.debug("Event loop closed before %s broadcast: %s", event_type, error)
            return
        future.add_done_callback(self._log_broadcast_failure)

    def clear_sticky(self, event_type: str) -> None:
        self._sticky_events.forget(event_type)

    def _log_broadcast_failure(self, future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self._logger.warning("UI broadcast failed: %s", error)

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._shutdown = asyncio.Event()

        try:
            loop.run_until_complete(self._serve())
        except Exception as error:
            self._failure = error
            self._logger.error("UI server failed: %s", error, exc_info=True)
            self._ready.set()
        finally:
            leftovers = asyncio.all_tasks(loop)
            for task in leftovers:
                task.cancel()
            loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
            loop.close()

    async def _serve(self) -> None:
        async with websockets.serve(
            self._handle_client,
            host=self._config.host,
            port=self._config.port,
            process_request=self._process_request,
            logger=self._logger,
        ):
            self._logger.info(
                "UI server listening on http://%s:%d (websocket: %s)",
                self._config.host,
                self._config.port,
                self._config.websocket_path,
            )
            self._ready.set()
            await self._shutdown.wait()
            await self._clients.close_all()

    async def _handle_client(self, websocket: ServerConnection) -> None:
        request = websocket.request
        path = urlsplit(request.path).path if request is not None else ""
        if path != self._config.websocket_path:
            await websocket.close(code=CLOSE_POLICY_VIOLATION, reason="Invalid websocket path")
            return

        self._clients.add(websocket)
        self._logger.info(
            "Client connected: %s (%d connected)",
            websocket.remote_address,
            len(self._clients),
        )
        try:
            await websocket.send(make_event(EVENT_HELLO, message="Focus timer connected"))
            for message in self._sticky_events.snapshot():
                await websocket.send(message)
            async for raw in websocket:
                await self._accept_command(websocket, raw)
        except websockets.exceptions.ConnectionClosed:
            self._logger.info("Client disconnected: %s", websocket.remote_address)
        finally:
            self._clients.discard(websocket)

    async def _accept_command(self, websocket: ServerConnection, raw: str | bytes) -> None:
        self._logger.debug("Received from UI: %s", raw)
        try:
            command = parse_command(raw)
            if command["type"] not in COMMANDS:
                raise ValueError(f"Unknown command: {command['type']}")
        except ValueError as error:
            self._logger.warning("Rejected UI command: %s", error)
            await websocket.send(make_event(EVENT_ERROR, message=str(error)))
            return

        handler = self._on_command
        if handler is None:
            self._logger.warning("No command handler; dropping %s", command["type"])
            return
        handler(command)

    async def _process_request(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Response | None:
        del connection
        path = urlsplit(request.path).path
        if path == self._config.websocket_path:
            return None

        reply = route_request(
            path,
            index_html=self._index_html,
            ui_root=self._config.ui_root,
        )
        headers = Headers()
        headers["Content-Type"] = reply.content_type
        headers["Content-Length"] = str(len(reply.body))
        headers["Cache-Control"] = "no-store"
        return Response(reply.status_code, reply.reason_phrase, headers, reply.body)
