"""Websocket bridge and static routes for the board UI."""

from .config import ServerConfigurationError, UIServerConfig
from .events import StickyEventStore, make_event, parse_command
from .http_routes import HttpReply, route_request
from .service import CommandHandler, UIServer

__all__ = [
    "CommandHandler",
    "HttpReply",
    "ServerConfigurationError",
    "StickyEventStore",
    "UIServer",
    "UIServerConfig",
    "make_event",
    "parse_command",
    "route_request",
]
