"""Release version and the shared `--help` epilog."""

from __future__ import annotations

import platform

__all__ = ["__version__", "build_help_epilog"]

__version__ = "0.1.0"


def build_help_epilog(*, resolver_url: str | None = None) -> str:
    lines = [f"jitplay {__version__} on {platform.platform()}"]
    if resolver_url:
        lines.append(f"Default resolver: {resolver_url}")
    return "\n".join(lines)
