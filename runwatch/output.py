"""Shared console, status glyphs and duration helpers."""

from __future__ import annotations

import platform
import re

from rich.console import Console
from rich.markup import escape

from .errors import ConfigError
from .logparse import Severity
from .snapshot import StatusCategory


CYAN = "cyan"
DIM = "dim"
GREEN = "green"
YELLOW = "yellow"
RED = "red"

console = Console(force_terminal=True if platform.system() == "Windows" else None, highlight=False)

_STATUS_GLYPHS: dict[StatusCategory, tuple[str, str, str]] = {
    StatusCategory.RUNNING: ("●", YELLOW, "Running"),
    StatusCategory.QUEUED: ("◦", DIM, "Queued"),
    StatusCategory.SUCCEEDED: ("✓", GREEN, "Success"),
    StatusCategory.FAILED: ("✗", RED, "Failed"),
    StatusCategory.CANCELED: ("○", DIM, "Canceled"),
    StatusCategory.UNKNOWN: ("?", YELLOW, "Unknown"),
}

SEVERITY_STYLES: dict[Severity, str] = {
    Severity.INFO: DIM,
    Severity.WARNING: YELLOW,
    Severity.ERROR: RED,
    Severity.PLAIN: "",
}


def status_icon(category: StatusCategory) -> str:
    icon, style, _ = _STATUS_GLYPHS[category]
    return f"[{style}]{icon}[/]"


def status_text(category: StatusCategory) -> str:
    _, style, label = _STATUS_GLYPHS[category]
    return f"[{style}]{label}[/]"


def faint(text: str) -> str:
    return f"[{DIM}]{escape(text)}[/]"


def format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{int(round(seconds * 1000))}ms"
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """
    Parse a duration such as ``90s``, ``30m``, ``1h30m`` or ``1.5h`` into seconds.

    A bare number is taken as seconds.
    """
    clean = str(text or "").strip().lower()
    if not clean:
        raise ConfigError("Duration must not be empty")
    if re.fullmatch(r"\d+(?:\.\d+)?", clean):
        return float(clean)

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(clean):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position != len(clean) or position == 0:
        raise ConfigError(f"Invalid duration {text!r} (expected e.g. 90s, 30m, 1h30m)")
    return total
