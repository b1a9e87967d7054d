"""
Run log normalization.

The server hands back the whole accumulated console log on every fetch.
Lines look like ``[HH:MM:SS]X: message`` where ``X`` is ``i`` (info),
``e``/``E`` (error), ``w``/``W`` (warning) or a blank (plain output).
The normalizer turns that text into display lines; the buffer folds
successive fetches into one append-only sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    PLAIN = "plain"


SEVERITY_MARKERS = {
    "i": Severity.INFO,
    "e": Severity.ERROR,
    "E": Severity.ERROR,
    "w": Severity.WARNING,
    "W": Severity.WARNING,
}

NOISE_PREFIXES = ("export ", "exec ")
NOISE_MARKERS = ("Current time:",)
STEP_MARKER = "[Step"


@dataclass(frozen=True)
class LineShape:
    """How strictly a line must look like ``[timestamp]...`` to be parsed."""

    min_length: int
    min_close: int
    passthrough: bool
    indent: str = "  "


# Live viewport: anything not shaped like a timestamped line is dropped.
WATCH_SHAPE = LineShape(min_length=10, min_close=8, passthrough=False)
# One-shot log dump: unrecognized lines stay visible.
LOG_SHAPE = LineShape(min_length=12, min_close=9, passthrough=True)


@dataclass(frozen=True)
class LogLine:
    timestamp: str
    severity: Severity
    text: str

    @property
    def display(self) -> str:
        if not self.timestamp:
            return self.text
        return f"[{self.timestamp}] {self.text}"


def is_noise(line: str) -> bool:
    if line.startswith(NOISE_PREFIXES):
        return True
    return any(marker in line for marker in NOISE_MARKERS)


def _split_severity(rest: str) -> tuple[Severity, str]:
    if len(rest) >= 2 and rest[1] == ":":
        return SEVERITY_MARKERS.get(rest[0], Severity.PLAIN), rest[2:]
    if len(rest) >= 3 and rest[0] == " " and rest[2] == ":":
        return SEVERITY_MARKERS.get(rest[1], Severity.PLAIN), rest[3:]
    return Severity.PLAIN, rest


def normalize_line(line: str, shape: LineShape = WATCH_SHAPE) -> LogLine | None:
    """Normalize one physical line; None means the line is not displayed."""
    line = line.removesuffix("\r")
    if not line.strip() or is_noise(line):
        return None

    if len(line) < shape.min_length or not line.startswith("["):
        if shape.passthrough:
            return LogLine("", Severity.PLAIN, shape.indent + line)
        return None

    close = line.find("]")
    if close < shape.min_close:
        if shape.passthrough:
            return LogLine("", Severity.PLAIN, line)
        return None

    timestamp = line[1:close]
    severity, content = _split_severity(line[close + 1:])
    content = content.removeprefix(" ")

    step = content.find(STEP_MARKER)
    content = content[step:] if step != -1 else content.strip()
    if not content:
        return None
    return LogLine(timestamp, severity, content)


def normalize_log(raw: str, shape: LineShape = WATCH_SHAPE) -> list[LogLine]:
    """Normalize a full multi-line log blob into ordered display lines."""
    lines: list[LogLine] = []
    for physical in raw.split("\n"):
        normalized = normalize_line(physical, shape)
        if normalized is not None:
            lines.append(normalized)
    return lines


class LogBuffer:
    """
    Append-only display lines for one watch session.

    Only newline-terminated text is committed. The trailing unterminated
    line is shown provisionally and committed by ``flush()`` once the run
    has finished.
    """

    def __init__(self, shape: LineShape = WATCH_SHAPE):
        self._shape = shape
        self._lines: list[LogLine] = []
        self._tail: list[LogLine] = []
        self._tail_text = ""
        self._raw_length = 0
        self._consumed = 0

    def __len__(self) -> int:
        return len(self._lines) + len(self._tail)

    @property
    def lines(self) -> list[LogLine]:
        return self._lines + self._tail

    def tail(self, count: int) -> list[LogLine]:
        if count <= 0:
            return []
        return self.lines[-count:]

    def ingest(self, raw: str) -> bool:
        """Fold one full log fetch in. Returns True when visible lines changed."""
        # The server log is compared by encoded size, the way it is served.
        size = len(raw.encode("utf-8"))
        if not raw or size == self._raw_length:
            return False
        self._raw_length = size

        if len(raw) < self._consumed:
            logger.debug("run log shrank from %d to %d characters; keeping buffer", self._consumed, len(raw))
            return False

        cut = raw.rfind("\n") + 1
        if cut > self._consumed:
            self._lines.extend(normalize_log(raw[self._consumed:cut], self._shape))
            self._consumed = cut
        self._tail_text = raw[self._consumed:]
        self._tail = normalize_log(self._tail_text, self._shape)
        return True

    def flush(self) -> bool:
        """Commit the trailing unterminated line, if any."""
        if not self._tail_text:
            return False
        self._lines.extend(self._tail)
        self._consumed += len(self._tail_text)
        self._tail = []
        self._tail_text = ""
        return True
