"""Process exit codes returned by ``yt-resume`` commands.

Every exit path in :mod:`yt_resume.cli.app` returns one of these, and
the tests pin their values.
"""

from __future__ import annotations

SUCCESS: int = 0
"""The command finished normally."""

GENERAL_ERROR: int = 1
"""A YtResumeError reached the boundary; its message and hint were printed."""

UNEXPECTED_ERROR: int = 2
"""Any other exception reached the boundary."""

NO_VIDEOS: int = 3
"""The requested playlist resolved to zero videos."""

KEYBOARD_INTERRUPT: int = 130
"""Interrupted with Ctrl+C (128 + SIGINT)."""
