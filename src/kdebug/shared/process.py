"""Helpers for supervising asyncio subprocesses."""

from __future__ import annotations

import asyncio
import logging
import signal

logger = logging.getLogger(__name__)


def exit_status(returncode: int) -> int:
    """Map an asyncio return code to a shell-style exit status.

    A process killed by signal N reports ``-N``; shells report ``128 + N``.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


async def terminate(proc: asyncio.subprocess.Process, *, grace: float = 3.0) -> int | None:
    """Stop ``proc`` with SIGTERM, escalating to SIGKILL after ``grace`` seconds.

    Returns:
        The process return code, or None if it could not be reaped.
    """
    if proc.returncode is not None:
        return proc.returncode

    try:
        proc.send_signal(signal.SIGTERM)
    except ProcessLookupError:
        pass

    try:
        return await asyncio.wait_for(proc.wait(), timeout=grace)
    except asyncio.TimeoutError:
        logger.warning("pid %d ignored SIGTERM for %.1fs, killing", proc.pid, grace)

    try:
        proc.kill()
    except ProcessLookupError:
        pass

    try:
        return await asyncio.wait_for(proc.wait(), timeout=grace or 1.0)
    except asyncio.TimeoutError:
        logger.error("pid %d could not be reaped after SIGKILL", proc.pid)
        return None
