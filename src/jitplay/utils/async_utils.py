"""Async utility helpers for safely offloading blocking callables.

HTTP calls made with ``requests`` block, so resolver and download code hands
them to a small IO thread pool through `run_blocking`. The pool is created on
first use.
"""

from __future__ import annotations

import asyncio
import atexit
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, Callable, TypeVar

T = TypeVar("T")

IO_WORKERS = 4
_WAKEUP_POLL_S = 0.1
_io_executor: ThreadPoolExecutor | None = None


def _get_io_executor() -> ThreadPoolExecutor:
    global _io_executor
    if _io_executor is None:
        _io_executor = ThreadPoolExecutor(
            max_workers=IO_WORKERS, thread_name_prefix="jitplay-io"
        )
    return _io_executor


@atexit.register
def shutdown_io_executor() -> None:
    """Stop the IO pool, cancelling queued calls; a later call starts a new one."""
    global _io_executor
    if _io_executor is not None:
        _io_executor.shutdown(wait=False, cancel_futures=True)
        _io_executor = None


async def run_blocking(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run `func` on the IO pool and await its result."""
    if not callable(func):
        raise TypeError("func must be callable")
    loop = asyncio.get_running_loop()
    future = loop.run_in_executor(_get_io_executor(), partial(func, *args, **kwargs))
    # Executor completion wakeups can be missed on some platforms; poll instead.
    while True:
        try:
            return await asyncio.wait_for(asyncio.shield(future), _WAKEUP_POLL_S)
        except asyncio.TimeoutError:
            continue
