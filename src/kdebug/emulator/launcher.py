"""QEMU process launch with a halted CPU and a GDB stub."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from pathlib import Path

from kdebug.shared.exceptions import EmulatorSpawnFailed
from kdebug.shared.handles import EmulatorHandle
from kdebug.shared.models import SessionConfig

logger = logging.getLogger(__name__)


class QemuLauncher:
    """Emulator launcher implementation using a QEMU subprocess.

    Implements the ``EmulatorLauncher`` protocol.
    The emulator runs in its own session so terminal interrupts meant for
    the debugger never reach it, and its output goes to a log file instead
    of the shared terminal.
    """

    @staticmethod
    def command(config: SessionConfig) -> list[str]:
        """Build the emulator argv for ``config``."""
        cmd = [
            config.emulator_bin,
            "-drive",
            f"format=raw,file={config.image_path}",
            "-machine",
            config.machine_profile,
        ]
        if not config.reboot_on_fault:
            cmd.append("-no-reboot")  # exit instead of rebooting on triple fault
        if config.halt_on_boot:
            cmd.append("-S")  # freeze CPU until the debugger continues
        cmd.extend(["-gdb", f"tcp:{config.endpoint.host}:{config.endpoint.port}"])
        cmd.extend(config.emulator_extra_args)
        return cmd

    async def spawn(self, config: SessionConfig) -> EmulatorHandle:
        """Start the emulator in the background.

        Args:
            config: Session configuration with image, machine and endpoint.

        Returns:
            Handle to the running emulator.

        Raises:
            EmulatorSpawnFailed: If the image is missing or the process cannot start.
        """
        if not os.path.isfile(config.image_path):
            raise EmulatorSpawnFailed(f"disk image not found: {config.image_path}")

        cmd = self.command(config)
        log_path = Path(config.emulator_log_path)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_file = log_path.open("wb")
        except OSError as exc:
            raise EmulatorSpawnFailed(f"cannot open emulator log {log_path}: {exc}") from exc

        logger.info("launching emulator: %s", shlex.join(cmd))
        try:
            with log_file:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=asyncio.subprocess.STDOUT,
                    start_new_session=True,
                )
        except FileNotFoundError as exc:
            raise EmulatorSpawnFailed(f"emulator binary not found: {config.emulator_bin}") from exc
        except OSError as exc:
            raise EmulatorSpawnFailed(f"emulator could not start: {exc}") from exc

        logger.info(
            "emulator pid %d started, gdb stub at %s, log %s",
            proc.pid,
            config.endpoint.connect_target,
            log_path,
        )
        return EmulatorHandle(process=proc, endpoint=config.endpoint, log_path=str(log_path))
