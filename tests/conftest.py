"""Shared pytest fixtures for the kdebug test suite."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path

import pytest

from kdebug.config import Settings
from kdebug.shared.handles import EmulatorHandle
from kdebug.shared.models import DebugEndpoint, SessionConfig


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process`` with scriptable exits."""

    def __init__(self, pid: int = 4242, returncode: int | None = None, *, ignore_term: bool = False) -> None:
        self.pid = pid
        self.returncode = returncode
        self.signals: list[int] = []
        self._ignore_term = ignore_term

    def send_signal(self, signum: int) -> None:
        self.signals.append(signum)
        if self.returncode is None and not self._ignore_term:
            self.returncode = -signum

    def terminate(self) -> None:
        self.send_signal(signal.SIGTERM)

    def kill(self) -> None:
        self.signals.append(signal.SIGKILL)
        if self.returncode is None:
            self.returncode = -signal.SIGKILL

    async def wait(self) -> int:
        while self.returncode is None:
            await asyncio.sleep(0.005)
        return self.returncode


@pytest.fixture()
def settings() -> Settings:
    """Return a Settings instance with test defaults."""
    return Settings(
        build_command="make image",
        image_path="/tmp/kdebug-test/boot.bin",
        symbol_path="/tmp/kdebug-test/kernel.elf",
        debug_port=4321,
        ready_timeout_seconds=2.0,
    )


@pytest.fixture()
def endpoint() -> DebugEndpoint:
    return DebugEndpoint(host="127.0.0.1", port=4321)


@pytest.fixture()
def session_config(tmp_path: Path, endpoint: DebugEndpoint) -> SessionConfig:
    return SessionConfig(
        build_command=("make", "image"),
        build_cwd=str(tmp_path),
        image_path=str(tmp_path / "boot.bin"),
        symbol_path=str(tmp_path / "kernel.elf"),
        emulator_log_path=str(tmp_path / "logs" / "emulator.log"),
        endpoint=endpoint,
        ready_timeout=1.0,
        probe_interval=0.01,
        probe_timeout=0.1,
        terminate_grace=0.2,
    )


@pytest.fixture()
def emulator_process() -> FakeProcess:
    return FakeProcess(pid=1001)


@pytest.fixture()
def emulator_handle(tmp_path: Path, emulator_process: FakeProcess, endpoint: DebugEndpoint) -> EmulatorHandle:
    log_path = tmp_path / "emulator.log"
    log_path.write_text("qemu-system-x86_64: booting\n")
    return EmulatorHandle(process=emulator_process, endpoint=endpoint, log_path=str(log_path))  # type: ignore[arg-type]
