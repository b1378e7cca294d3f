"""
In-process publish/subscribe for sync and async listeners.

Provides an event emitter that broadcasts named events to registered
listeners and routes listener failures to an optional error handler.
"""

from .dispatcher import EventEmitter, Subscription, event_emitter
from .logger import log_listener_error
from .types import ErrorHandler, Listener, Unsubscribe

__all__ = [
    "EventEmitter",
    "Subscription",
    "event_emitter",
    "log_listener_error",
    "ErrorHandler",
    "Listener",
    "Unsubscribe",
]
