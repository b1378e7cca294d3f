"""Event emitter - broadcasts named events to registered listeners.

Listeners are plain callables registered under an event name. A listener
may return an awaitable; it is then run as a task on the running loop,
started eagerly so its body begins before the next listener is called.
``emit_async`` waits for every such task to settle, ``emit`` does not.

Listener failures never reach the code that emitted the event. They are
passed to the optional error handler as ``(error, event)``, or dropped
when no handler was given.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Hashable

from .config import settings
from .logger import log_exception, log_listener_error, logger
from .types import ErrorHandler, Listener, Unsubscribe


@dataclass(eq=False, slots=True)
class Subscription:
    """A single registration of a listener, matched by identity."""

    event: Hashable
    listener: Listener


class EventEmitter[E: Hashable]:
    """Dispatches events to listeners in registration order.

    The argument list passed to ``emit``/``emit_async`` is forwarded to every
    listener of that event as is, so each event name has an implicit
    signature that emitting and listening code must agree on.
    """

    def __init__(self, on_error: ErrorHandler[E] | None = None):
        self._on_error = on_error
        # Only events with at least one subscription have an entry
        self._registry: dict[E, list[Subscription]] = {}
        # Strong references to listener tasks until they finish
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def on_error(self) -> ErrorHandler[E] | None:
        return self._on_error

    @property
    def pending_tasks(self) -> frozenset[asyncio.Task[None]]:
        """Listener tasks that have been started and not yet settled."""
        return frozenset(self._pending)

    def listener_count(self, event: E) -> int:
        return len(self._registry.get(event, ()))

    def event_names(self) -> list[E]:
        return list(self._registry)

    # Registration

    def on(self, event: E, listener: Listener) -> Unsubscribe:
        """Register ``listener`` for ``event``.

        Returns a function that removes this registration. Calling it more
        than once, or after the listener is gone, does nothing.
        """
        subscriptions = self._registry.setdefault(event, [])
        subscription = Subscription(event, listener)
        subscriptions.append(subscription)
        logger.debug(
            f"Registered listener {_name(listener)} for event {event!r} "
            f"({len(subscriptions)} total)"
        )

        def unsubscribe() -> None:
            self._remove(subscriptions, subscription)

        return unsubscribe

    def _remove(self, subscriptions: list[Subscription], subscription: Subscription) -> None:
        event = subscription.event
        try:
            subscriptions.remove(subscription)
        except ValueError:
            return

        logger.debug(
            f"Unregistered listener {_name(subscription.listener)} "
            f"for event {event!r}"
        )
        # The entry may have been dropped and recreated since registration
        if not subscriptions and self._registry.get(event) is subscriptions:
            del self._registry[event]

    # Emission

    def emit(self, event: E, *args: Any) -> None:
        """Invoke all listeners of ``event`` without waiting for async ones."""
        self._start(event, args)

    async def emit_async(self, event: E, *args: Any) -> None:
        """Invoke all listeners of ``event`` and wait until every one settled.

        Never raises because of a listener; failures go to the error handler.
        """
        tasks = self._start(event, args)
        if tasks:
            await asyncio.wait(tasks)

    async def join(self) -> None:
        """Wait for all listener tasks started so far, including ones started
        by listeners while waiting."""
        while self._pending:
            await asyncio.wait(set(self._pending))

    def _start(self, event: E, args: tuple[Any, ...]) -> list[asyncio.Task[None]]:
        subscriptions = self._registry.get(event)
        if not subscriptions:
            logger.debug(f"No listeners registered for event: {event!r}")
            return []

        tasks: list[asyncio.Task[None]] = []
        # Listeners may subscribe or unsubscribe while we iterate
        for subscription in tuple(subscriptions):
            try:
                result = subscription.listener(*args)
                if inspect.isawaitable(result):
                    tasks.append(self._schedule(event, result))
            except Exception as e:
                self._report(e, event)

        if tasks:
            logger.debug(f"Started {len(tasks)} async listener(s) for event {event!r}")
        return tasks

    def _schedule(self, event: E, awaitable: Awaitable[Any]) -> asyncio.Task[None]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError(
                f"Listener for event {event!r} returned an awaitable "
                "but no event loop is running"
            ) from None

        # Run the listener up to its first suspension before the next one is called
        task = asyncio.eager_task_factory(
            loop, self._settle(event, awaitable), name=f"emit:{event!r}"
        )
        if not task.done():
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return task

    async def _settle(self, event: E, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except Exception as e:
            self._report(e, event)

    @log_exception("Error handler failed for event {event!r}")
    def _report(self, error: Exception, event: E) -> None:
        if self._on_error is not None:
            self._on_error(error, event)
        elif settings.log_dropped_errors:
            logger.debug(
                f"Dropped listener error for event {event!r}: "
                f"{type(error).__name__}: {error}"
            )


def _name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", repr(listener))


# Global event emitter instance
event_emitter: EventEmitter[str] = EventEmitter(on_error=log_listener_error)
