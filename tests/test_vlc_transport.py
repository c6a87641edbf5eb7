"""Optional VLC transport smoke tests."""

from __future__ import annotations

import asyncio
import os

import pytest

try:
    import vlc  # noqa: F401
except (ImportError, OSError, FileNotFoundError) as exc:
    pytest.skip(f"python-vlc/libVLC unavailable: {exc}", allow_module_level=True)

from jitplay.services.vlc_transport import VLCTransport


@pytest.mark.skipif(
    os.getenv("JITPLAY_TEST_VLC") != "1",
    reason="Set JITPLAY_TEST_VLC=1 to run VLC transport tests.",
)
def test_vlc_transport_start_stop() -> None:
    async def run() -> None:
        transport = VLCTransport()

        async def _handler(_event) -> None:
            return None

        transport.set_event_handler(_handler)
        await transport.start()
        await transport.set_volume(0.5)
        await transport.release()
        await transport.shutdown()

    asyncio.run(run())
