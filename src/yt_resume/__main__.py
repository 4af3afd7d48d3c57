"""Entry point for ``python -m yt_resume``; same as the ``yt-resume`` script."""

from __future__ import annotations

from yt_resume.cli.app import cli

if __name__ == "__main__":
    cli()
