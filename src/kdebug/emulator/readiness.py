"""Readiness detection for the emulator's GDB stub."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from kdebug.shared.enums import ReadinessState
from kdebug.shared.handles import EmulatorHandle
from kdebug.shared.models import DebugEndpoint

logger = logging.getLogger(__name__)

Probe = Callable[[DebugEndpoint, float], Awaitable[bool]]

_TRANSITIONS: dict[ReadinessState, frozenset[ReadinessState]] = {
    ReadinessState.STARTING: frozenset({ReadinessState.PROBING, ReadinessState.PROCESS_EXITED}),
    ReadinessState.PROBING: frozenset(
        {ReadinessState.READY, ReadinessState.TIMED_OUT, ReadinessState.PROCESS_EXITED}
    ),
    ReadinessState.READY: frozenset(),
    ReadinessState.TIMED_OUT: frozenset(),
    ReadinessState.PROCESS_EXITED: frozenset(),
}


async def tcp_probe(endpoint: DebugEndpoint, timeout: float) -> bool:
    """Return True if ``endpoint`` accepts a TCP connection within ``timeout``."""
    try:
        _reader, writer = await asyncio.wait_for(
            asyncio.open_connection(endpoint.host, endpoint.port),
            timeout=timeout,
        )
    except (OSError, asyncio.TimeoutError):
        return False

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        # stub may reset the probe connection; it was accepted all the same
        pass
    return True


class ReadinessMonitor:
    """Poll an emulator's debug endpoint until it accepts connections.

    States move ``starting → probing → ready | timed_out | process_exited``.
    Terminal states are final: later calls to :meth:`wait` return them
    without probing again.
    """

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        interval: float = 0.1,
        probe_timeout: float = 0.5,
        probe: Probe = tcp_probe,
    ) -> None:
        self._timeout = timeout
        self._interval = interval
        self._probe_timeout = probe_timeout
        self._probe = probe
        self._state = ReadinessState.STARTING
        self._history: list[ReadinessState] = [ReadinessState.STARTING]
        self._attempts = 0

    @property
    def state(self) -> ReadinessState:
        return self._state

    @property
    def history(self) -> list[ReadinessState]:
        return list(self._history)

    @property
    def attempts(self) -> int:
        return self._attempts

    def _transition(self, new: ReadinessState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise ValueError(f"invalid readiness transition {self._state.value} -> {new.value}")
        logger.debug("readiness %s -> %s", self._state.value, new.value)
        self._state = new
        self._history.append(new)

    async def wait(self, handle: EmulatorHandle) -> ReadinessState:
        """Probe until the endpoint is ready, the process exits, or time runs out.

        Args:
            handle: Running emulator whose endpoint is probed.

        Returns:
            The terminal readiness state reached.
        """
        if self._state.is_terminal:
            return self._state

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._timeout

        if not handle.is_alive():
            self._transition(ReadinessState.PROCESS_EXITED)
            return self._state
        self._transition(ReadinessState.PROBING)

        while True:
            remaining = deadline - loop.time()
            self._attempts += 1
            ok = await self._probe(handle.endpoint, max(0.01, min(self._probe_timeout, remaining)))
            if ok:
                logger.info(
                    "debug endpoint %s ready after %d probe(s)",
                    handle.endpoint.connect_target,
                    self._attempts,
                )
                self._transition(ReadinessState.READY)
                return self._state

            if not handle.is_alive():
                logger.error("emulator pid %d exited before its debug endpoint was ready", handle.pid)
                self._transition(ReadinessState.PROCESS_EXITED)
                return self._state

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.error(
                    "debug endpoint %s not ready after %.1fs (%d probes)",
                    handle.endpoint.connect_target,
                    self._timeout,
                    self._attempts,
                )
                self._transition(ReadinessState.TIMED_OUT)
                return self._state

            await asyncio.sleep(min(self._interval, remaining))
