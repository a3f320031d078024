"""Runtime engine exports."""

from .commands import CommandError, RuntimeCommandDispatcher
from .loop import RuntimeBootstrap, RuntimeEngine, RuntimeHooks
from .prompts import ServerNotifier, ServerStopReasonCollector
from .relay import TimerEventRelay
from .ui import RuntimeUIPublisher

__all__ = [
    "CommandError",
    "RuntimeBootstrap",
    "RuntimeCommandDispatcher",
    "RuntimeEngine",
    "RuntimeHooks",
    "RuntimeUIPublisher",
    "ServerNotifier",
    "ServerStopReasonCollector",
    "TimerEventRelay",
]
