"""Foreground GDB session attached to the emulator's stub."""

from __future__ import annotations

import asyncio
import logging
import shlex

from kdebug.shared.exceptions import DebuggerSpawnFailed
from kdebug.shared.handles import DebuggerHandle
from kdebug.shared.models import DebugEndpoint, SessionConfig
from kdebug.shared.process import exit_status

logger = logging.getLogger(__name__)


class GdbAttacher:
    """Debugger attacher implementation using a GDB subprocess.

    Implements the ``DebuggerAttacher`` protocol.
    The debugger inherits the orchestrator's stdin, stdout, stderr and
    process group, so the operator drives it directly and terminal
    interrupts reach it without any forwarding.
    """

    @staticmethod
    def command(config: SessionConfig, endpoint: DebugEndpoint) -> list[str]:
        """Build the debugger argv connecting to ``endpoint``."""
        cmd = [config.debugger_bin]
        if config.symbol_path:
            cmd.append(config.symbol_path)
        cmd.extend(["-ex", f"target remote {endpoint.connect_target}"])
        for extra in config.debugger_commands:
            cmd.extend(["-ex", extra])
        return cmd

    async def spawn(self, config: SessionConfig, endpoint: DebugEndpoint) -> DebuggerHandle:
        """Start the debugger in the foreground.

        Args:
            config: Session configuration with debugger binary and commands.
            endpoint: Ready debug endpoint to connect to.

        Returns:
            Handle to the running debugger.

        Raises:
            DebuggerSpawnFailed: If the debugger binary cannot be started.
        """
        cmd = self.command(config, endpoint)
        logger.info("attaching debugger: %s", shlex.join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(*cmd, stdin=None, stdout=None, stderr=None)
        except FileNotFoundError as exc:
            raise DebuggerSpawnFailed(f"debugger binary not found: {config.debugger_bin}") from exc
        except OSError as exc:
            raise DebuggerSpawnFailed(f"debugger could not start: {exc}") from exc
        return DebuggerHandle(process=proc, endpoint=endpoint)

    async def wait(self, handle: DebuggerHandle) -> int:
        """Block until the debugger exits and return its shell-style exit status."""
        returncode = await handle.process.wait()
        status = exit_status(returncode)
        logger.info("debugger pid %d exited with status %d", handle.pid, status)
        return status

    def forward_signal(self, handle: DebuggerHandle, signum: int) -> None:
        """Deliver ``signum`` to the debugger if it is still running."""
        if handle.process.returncode is not None:
            return
        try:
            handle.process.send_signal(signum)
        except ProcessLookupError:
            logger.debug("debugger pid %d already gone", handle.pid)
