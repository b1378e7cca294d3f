import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from typing import Callable, Hashable

from .config import LoggingSettings, settings

logger = logging.getLogger("event_emitter")
formatter = logging.Formatter(
    "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


def configure_logging(config: LoggingSettings) -> None:
    """Attach the stream and rotating file handlers described by ``config``.

    Handlers installed by a previous call are replaced, so calling this again
    with new settings does not duplicate output.
    """
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(config.level)

    if config.stream:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if config.logs_dir is not None:
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            config.logs_dir / "event_emitter.log", when="midnight"
        )
        file_handler.setFormatter(formatter)
        file_handler.rotator = rotator
        logger.addHandler(file_handler)


configure_logging(settings.logging)


def log_exception[**P, R](
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs and swallows any ``Exception`` raised by the wrapped
    callable, returning ``default_return`` instead.

    ``prefix`` may reference the wrapped callable's parameters by name, e.g.
    ``"Handler failed for {event!r}"``; unknown names leave the prefix as is.
    Works for plain and coroutine functions.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)

        def render_prefix(args: tuple, kwargs: dict) -> str:
            if not prefix:
                return ""
            try:
                bound = sig.bind(*args, **kwargs)
                bound.apply_defaults()
                return f"{prefix.format_map(bound.arguments)}: "
            except (TypeError, KeyError, ValueError, IndexError):
                return f"{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict) -> None:
            logger.error(
                f"{render_prefix(args, kwargs)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,  # report -> wrapper -> caller
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper

    return decorator


def log_listener_error(error: BaseException, event: Hashable) -> None:
    """Error handler that logs a listener failure with its traceback."""
    logger.error(
        f"Listener failed for event {event!r}: {type(error).__name__}: {error}",
        exc_info=(type(error), error, error.__traceback__),
    )
