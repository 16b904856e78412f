"""Tests for ReadinessMonitor and the TCP probe."""

from __future__ import annotations

import asyncio
import socket

import pytest

from kdebug.emulator.readiness import ReadinessMonitor, tcp_probe
from kdebug.shared.enums import ReadinessState
from kdebug.shared.handles import EmulatorHandle
from kdebug.shared.models import DebugEndpoint


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


class TestTcpProbe:
    async def test_listening_endpoint(self) -> None:
        server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]

        async with server:
            assert await tcp_probe(DebugEndpoint(port=port), 1.0) is True

    async def test_closed_endpoint(self) -> None:
        assert await tcp_probe(DebugEndpoint(port=_free_port()), 0.5) is False


class TestReadinessMonitor:
    async def test_ready_after_delay(self, emulator_handle: EmulatorHandle) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()

        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            return loop.time() - started >= 0.3

        monitor = ReadinessMonitor(timeout=5.0, interval=0.05, probe=probe)

        state = await monitor.wait(emulator_handle)

        assert state is ReadinessState.READY
        assert monitor.attempts > 1
        assert monitor.history == [ReadinessState.STARTING, ReadinessState.PROBING, ReadinessState.READY]

    async def test_times_out(self, emulator_handle: EmulatorHandle) -> None:
        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            return False

        monitor = ReadinessMonitor(timeout=0.2, interval=0.05, probe=probe)

        state = await monitor.wait(emulator_handle)

        assert state is ReadinessState.TIMED_OUT
        assert monitor.history[-1] is ReadinessState.TIMED_OUT

    async def test_process_exits_while_probing(self, emulator_handle: EmulatorHandle) -> None:
        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            emulator_handle.process.returncode = 1
            return False

        monitor = ReadinessMonitor(timeout=5.0, interval=0.05, probe=probe)

        state = await monitor.wait(emulator_handle)

        assert state is ReadinessState.PROCESS_EXITED
        assert monitor.attempts == 1

    async def test_process_already_dead(self, emulator_handle: EmulatorHandle) -> None:
        emulator_handle.process.returncode = 1
        probed: list[DebugEndpoint] = []

        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            probed.append(endpoint)
            return True

        monitor = ReadinessMonitor(timeout=5.0, probe=probe)

        state = await monitor.wait(emulator_handle)

        assert state is ReadinessState.PROCESS_EXITED
        assert probed == []
        assert monitor.history == [ReadinessState.STARTING, ReadinessState.PROCESS_EXITED]

    async def test_ready_is_final(self, emulator_handle: EmulatorHandle) -> None:
        results = iter([True])

        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            return next(results)

        monitor = ReadinessMonitor(timeout=1.0, probe=probe)

        assert await monitor.wait(emulator_handle) is ReadinessState.READY
        assert await monitor.wait(emulator_handle) is ReadinessState.READY
        assert monitor.attempts == 1
        assert monitor.history.count(ReadinessState.PROBING) == 1

    async def test_real_probe_against_server(self, emulator_handle: EmulatorHandle) -> None:
        server = await asyncio.start_server(lambda reader, writer: writer.close(), "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        handle = EmulatorHandle(
            process=emulator_handle.process,
            endpoint=DebugEndpoint(port=port),
            log_path=emulator_handle.log_path,
        )
        monitor = ReadinessMonitor(timeout=2.0, interval=0.05)

        async with server:
            assert await monitor.wait(handle) is ReadinessState.READY

    async def test_cancellation_propagates(self, emulator_handle: EmulatorHandle) -> None:
        async def probe(endpoint: DebugEndpoint, timeout: float) -> bool:
            return False

        monitor = ReadinessMonitor(timeout=10.0, interval=0.05, probe=probe)
        task = asyncio.ensure_future(monitor.wait(emulator_handle))
        await asyncio.sleep(0.1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert monitor.state is ReadinessState.PROBING

    def test_invalid_transition_rejected(self) -> None:
        monitor = ReadinessMonitor()

        with pytest.raises(ValueError, match="invalid readiness transition"):
            monitor._transition(ReadinessState.READY)
