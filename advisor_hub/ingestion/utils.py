"""Cross-cutting utilities: logging setup, async retry and fallback helpers."""

from __future__ import annotations

import asyncio
import functools
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Literal, TypeVar

from rich.console import Console
from rich.logging import RichHandler

T = TypeVar("T")

console = Console()

Backoff = Literal["linear", "exponential"]


def setup_logging(verbose: bool = False, log_file: str | Path | None = None) -> None:
    """Configure the root logger with a Rich console handler and an optional file."""
    level = logging.DEBUG if verbose else logging.INFO
    handlers: list[logging.Handler] = [RichHandler(console=console, rich_tracebacks=True)]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=handlers,
        force=True,
    )
    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def backoff_delay(attempt: int, base_delay: float, backoff: Backoff = "linear") -> float:
    """Seconds to wait after failed ``attempt`` (1-based)."""
    if backoff == "exponential":
        return base_delay * (2 ** (attempt - 1))
    return base_delay * attempt


def retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    backoff: Backoff = "linear",
    retryable_exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable:
    """Async decorator that retries a coroutine and re-raises the last error.

    The wait happens only between attempts: with ``backoff="linear"`` and
    ``base_delay=2.0`` the delays are 2s then 4s before giving up.

    Usage::

        @retry(max_attempts=3, base_delay=2.0)
        async def call_api(...): ...
    """

    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__)
            last_exc: BaseException | None = None
            for attempt in range(1, max_attempts + 1):
                try:
                    result = await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    last_exc = exc
                    if attempt == max_attempts:
                        logger.warning(
                            "Attempt %d/%d for %s failed: %s. Giving up.",
                            attempt,
                            max_attempts,
                            func.__name__,
                            exc,
                        )
                        break
                    wait = backoff_delay(attempt, base_delay, backoff)
                    logger.warning(
                        "Attempt %d/%d for %s failed: %s. Retrying in %.1fs",
                        attempt,
                        max_attempts,
                        func.__name__,
                        exc,
                        wait,
                    )
                    await asyncio.sleep(wait)
                else:
                    if attempt > 1:
                        logger.info("%s succeeded on attempt %d", func.__name__, attempt)
                    return result
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator


async def call_with_fallback(
    primary: Callable[..., Awaitable[T]],
    fallback: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    """Await ``primary``; on any failure log it and return ``fallback`` with the same arguments."""
    try:
        return await primary(*args, **kwargs)
    except Exception as exc:
        logging.getLogger(__name__).warning(
            "%s failed, using %s: %s",
            getattr(primary, "__name__", "primary"),
            getattr(fallback, "__name__", "fallback"),
            exc,
        )
        return fallback(*args, **kwargs)


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```) from model output."""
    cleaned = raw.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()
