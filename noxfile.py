"""Nox sessions for jitplay quality gates."""

from __future__ import annotations

import nox

nox.options.sessions = ["lint", "typecheck", "tests", "smoke"]

LINT_PATHS = ("src", "tests", "noxfile.py")


@nox.session
def lint(session: nox.Session) -> None:
    """Check ruff lint and formatting; never rewrites files."""
    session.install("ruff")
    session.run("ruff", "check", *LINT_PATHS)
    session.run("ruff", "format", "--check", *LINT_PATHS)


@nox.session(name="lint-fix")
def lint_fix(session: nox.Session) -> None:
    session.install("ruff")
    session.run("ruff", "check", "--fix", *LINT_PATHS)
    session.run("ruff", "format", *LINT_PATHS)


@nox.session
def typecheck(session: nox.Session) -> None:
    """Type-check the package, including requests stubs."""
    session.install("-e", ".[dev]")
    session.run("mypy", "src")


@nox.session
def tests(session: nox.Session) -> None:
    """Run pytest; extra args go straight through (`nox -s tests -- -k resolver`).

    Set ``JITPLAY_TEST_VLC=1`` to include the libVLC smoke test.
    """
    session.install("-e", ".[test]")
    session.run("pytest", *session.posargs)


@nox.session
def smoke(session: nox.Session) -> None:
    """Install the package and check both console scripts answer --help."""
    session.install("-e", ".")
    for script in ("jitplay", "jitplay-cli"):
        session.run(script, "--help", silent=True)
