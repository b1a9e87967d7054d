"""Background key reader that turns q / Esc into a watch interrupt."""

from __future__ import annotations

import os
import platform
import sys
import threading
from typing import Callable, TextIO

QUIT_KEYS = frozenset({"q", "\x1b"})


class KeyListener:
    def __init__(self, on_quit: Callable[[], None], stream: TextIO | None = None):
        self._on_quit = on_quit
        self._stream = stream or sys.stdin
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> bool:
        """Start reading keys; returns False when stdin is not a terminal."""
        try:
            interactive = self._stream.isatty()
        except (AttributeError, ValueError):
            interactive = False
        if not interactive:
            return False
        target = self._listen_windows if platform.system() == "Windows" else self._listen_unix
        self._thread = threading.Thread(target=target, name="runwatch-keys", daemon=True)
        self._thread.start()
        return True

    def stop(self):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=0.5)
            self._thread = None

    def _handle(self, key: str) -> bool:
        if key.lower() in QUIT_KEYS:
            self._on_quit()
            return True
        return False

    def _listen_windows(self):
        import msvcrt

        while not self._stop_event.is_set():
            if msvcrt.kbhit():
                key = msvcrt.getch().decode("utf-8", errors="ignore")
                if self._handle(key):
                    return
            self._stop_event.wait(0.1)

    def _listen_unix(self):
        import select
        import termios
        import tty

        fd = self._stream.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            # cbreak keeps ISIG and output processing, so Ctrl+C and newlines behave.
            tty.setcbreak(fd)
            while not self._stop_event.is_set():
                if select.select([fd], [], [], 0.1)[0]:
                    key = os.read(fd, 1).decode("utf-8", errors="ignore")
                    if self._handle(key):
                        return
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
