from __future__ import annotations

import asyncio
import logging
import math
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Strategy = Callable[[], Awaitable[float | None]]


async def with_timeout(aw: Awaitable[T], timeout: float, default: T, name: str = "source") -> T:
    """Race ``aw`` against a timer, returning ``default`` on timeout or error.

    The underlying task is shielded, so a slow call keeps running in the
    background and its late result is dropped.
    """
    task = asyncio.ensure_future(aw)
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        logger.debug("Source [%s] timed out after %.1fs", name, timeout)
        task.add_done_callback(_discard_result)
        return default
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.debug("Source [%s] failed", name, exc_info=True)
        return default


def _discard_result(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


async def run_command(*args: str, timeout: float = 2.0) -> str | None:
    """Run a subprocess and return stripped stdout, or None on any failure."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError:
        logger.debug("Command not available: %s", args[0])
        return None

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        logger.debug("Command timed out: %s", " ".join(args))
        return None

    if proc.returncode != 0:
        return None
    return stdout.decode(errors="replace").strip()


async def first_value(strategies: Iterable[Strategy], name: str = "source") -> float | None:
    """Try each strategy in order until one yields a finite number."""
    for strategy in strategies:
        try:
            value = await strategy()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.debug("Strategy %s for [%s] failed", strategy.__name__, name, exc_info=True)
            continue
        if value is not None and math.isfinite(value):
            return value
    return None
