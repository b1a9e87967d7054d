"""Tests for shared output helpers."""

from __future__ import annotations

import pytest
from rich.text import Text

from runwatch.errors import ConfigError
from runwatch.output import faint, format_duration, parse_duration, status_icon, status_text
from runwatch.snapshot import StatusCategory


@pytest.mark.parametrize(
    ("text", "seconds"),
    [
        ("90", 90.0),
        ("90s", 90.0),
        ("30m", 1800.0),
        ("1h30m", 5400.0),
        ("1.5h", 5400.0),
        ("500ms", 0.5),
        (" 2M ", 120.0),
    ],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == seconds


@pytest.mark.parametrize("text", ["", "soon", "10x", "m30", "30m!"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_format_duration():
    assert format_duration(0.25) == "250ms"
    assert format_duration(5) == "5s"
    assert format_duration(65) == "1m 5s"
    assert format_duration(3725) == "1h 2m"


def test_status_glyphs():
    assert Text.from_markup(status_icon(StatusCategory.SUCCEEDED)).plain == "✓"
    assert Text.from_markup(status_text(StatusCategory.FAILED)).plain == "Failed"
    assert Text.from_markup(status_text(StatusCategory.QUEUED)).plain == "Queued"


def test_faint_escapes_markup():
    assert Text.from_markup(faint("[Step 1/2]")).plain == "[Step 1/2]"
