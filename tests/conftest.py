"""Shared fixtures: blocking IO runs inline and every test gets a fresh loop."""

from __future__ import annotations

import asyncio

import pytest

import jitplay.app as app_module
import jitplay.services.download as download_module
import jitplay.services.resolver as resolver_module

# Modules that hand HTTP or file work to the IO pool.
BLOCKING_CALLERS = (resolver_module, download_module, app_module)


async def _call_inline(func, /, *args, **kwargs):
    return func(*args, **kwargs)


@pytest.fixture(autouse=True)
def run_blocking_inline(monkeypatch: pytest.MonkeyPatch):
    for module in BLOCKING_CALLERS:
        monkeypatch.setattr(module, "run_blocking", _call_inline)


@pytest.fixture(autouse=True)
def ensure_current_event_loop():
    """Sync tests build controllers and locks before `asyncio.run` starts."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    asyncio.set_event_loop(None)
    loop.close()
