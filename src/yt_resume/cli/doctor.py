"""``yt-resume doctor`` — environment diagnostics command.

Gathers system information and renders a Rich table summarising
whether the runtime environment satisfies yt-resume's requirements:
the HTTP client for relay scraping, the optional yt-dlp source, the
interactive UI libraries and a writable progress database location.

This module lives in the CLI layer — it may import from ``infra``
and ``core``, and it renders via Rich.  No business logic resides
here; it purely collects and displays diagnostic data.
"""

from __future__ import annotations

import os
import platform
import sys
from importlib import metadata
from pathlib import Path

from yt_resume.cli import exit_codes
from yt_resume.cli.console import console
from yt_resume.config import Settings, get_settings
from yt_resume.version import __version__

Check = tuple[str, str, str]

_OK = "[green]OK[/green]"
_WARN = "[yellow]WARN[/yellow]"
_FAIL = "[red]FAIL[/red]"


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    """Return (label, value, status) for the Python version row."""
    version = platform.python_version()
    major, minor = sys.version_info[:2]
    ok = major >= 3 and minor >= 10
    status = _OK if ok else "[red]FAIL (>=3.10 required)[/red]"
    return "Python", version, status


def _distribution_check(label: str, distribution: str, *, required: bool) -> Check:
    """Return a row for an installed distribution.

    Missing *required* distributions fail the run; optional ones warn.
    """
    try:
        version = metadata.version(distribution)
    except metadata.PackageNotFoundError:
        return label, "NOT INSTALLED", _FAIL if required else _WARN
    return label, version, _OK


def _database_check(settings: Settings) -> Check:
    """Return (label, value, status) for the progress database location."""
    db_path = Path(settings.database_path).expanduser()
    probe = db_path if db_path.exists() else db_path.parent
    while not probe.exists() and probe != probe.parent:
        probe = probe.parent
    writable = os.access(probe, os.W_OK)
    return "database", str(db_path), _OK if writable else _FAIL


def _relay_check(settings: Settings) -> Check:
    """Return (label, value, status) for the configured relay prefix."""
    relay = settings.relay_url
    ok = relay.startswith(("https://", "http://"))
    return "relay", relay, _OK if ok else _WARN


def _os_check() -> Check:
    """Return (label, value, status) for the OS row."""
    system_raw = platform.system()
    system_display = {
        "Windows": "Windows",
        "Linux": "Linux",
        "Darwin": "macOS",
    }.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, _OK


def _ytresume_version_check() -> Check:
    """Return (label, value, status) for the yt-resume version row."""
    return "yt-resume", __version__, _OK


def collect_checks(settings: Settings | None = None) -> list[Check]:
    """Run every diagnostic and return the rows in display order."""
    settings = settings if settings is not None else get_settings()
    return [
        _ytresume_version_check(),
        _python_version_check(),
        _distribution_check("httpx", "httpx", required=True),
        _distribution_check("yt-dlp", "yt-dlp", required=False),
        _distribution_check("rich", "rich", required=False),
        _distribution_check("questionary", "questionary", required=False),
        _relay_check(settings),
        _database_check(settings),
        _os_check(),
    ]


def _status_plain(status: str) -> str:
    """Convert rich-markup status to plain text."""
    if "FAIL" in status:
        return "FAIL"
    if "WARN" in status:
        return "WARN"
    if "OK" in status:
        return "OK"
    return status


def _print_plain_doctor_table(checks: list[Check]) -> None:
    """Render doctor output without Rich."""
    print("\nyt-resume doctor", file=sys.stderr)
    print("=" * 64, file=sys.stderr)
    print(f"{'Component':<12} {'Value':<40} {'Status':<8}", file=sys.stderr)
    print("-" * 64, file=sys.stderr)
    for label, value, status in checks:
        print(f"{label:<12} {value:<40} {_status_plain(status):<8}", file=sys.stderr)
    print(file=sys.stderr)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor(settings: Settings | None = None) -> int:
    """Execute all diagnostic checks and render a Rich summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when all critical checks pass,
        :data:`exit_codes.GENERAL_ERROR` if a critical check fails.
    """
    checks = collect_checks(settings)
    has_failure = any("FAIL" in status for _, _, status in checks)

    rich_available = True
    try:
        from rich.table import Table
    except ModuleNotFoundError:
        rich_available = False

    if rich_available:
        table = Table(
            title="yt-resume doctor",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
        )
        table.add_column("Component", style="bold", min_width=12)
        table.add_column("Value", min_width=20, overflow="fold")
        table.add_column("Status", justify="center", min_width=8)

        for label, value, status in checks:
            table.add_row(label, value, status)

        console.print()
        console.print(table)
        console.print()
    else:
        _print_plain_doctor_table(checks)

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR

    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
