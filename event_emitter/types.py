"""Callable shapes shared by the emitter and its callers."""

from typing import Any, Awaitable, Callable, Hashable

# A listener may return nothing or an awaitable that settles later.
# The argument list is a per-event convention agreed on by emitter and caller.
type Listener = Callable[..., Awaitable[Any] | None]

# Called with (error, event name) whenever a listener fails
type ErrorHandler[E: Hashable] = Callable[[BaseException, E], None]

# Removes the single registration it was returned for
type Unsubscribe = Callable[[], None]
