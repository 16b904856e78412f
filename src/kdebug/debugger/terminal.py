"""Save and restore the operator's terminal around a foreground handoff."""

from __future__ import annotations

import logging
import os
import sys
import termios
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TextIO

logger = logging.getLogger(__name__)


def _capture(stream: TextIO) -> tuple[int, list[Any]] | None:
    try:
        fd = stream.fileno()
    except (AttributeError, ValueError, OSError):
        return None
    if not os.isatty(fd):
        return None
    try:
        return fd, termios.tcgetattr(fd)
    except termios.error:
        return None


@contextmanager
def preserved_terminal(stream: TextIO | None = None) -> Iterator[bool]:
    """Restore the TTY attributes of ``stream`` (stdin by default) on exit.

    Debuggers switch the terminal into raw or TUI modes and do not always
    undo it when killed. Yields True if there was a terminal to preserve.
    """
    saved = _capture(stream if stream is not None else sys.stdin)
    try:
        yield saved is not None
    finally:
        if saved is not None:
            fd, attrs = saved
            try:
                termios.tcsetattr(fd, termios.TCSADRAIN, attrs)
            except termios.error as exc:
                logger.warning("failed to restore terminal attributes: %s", exc)
