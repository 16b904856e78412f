"""Frozen Pydantic models describing one debug session."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from kdebug.shared.exceptions import ConfigError

if TYPE_CHECKING:
    from kdebug.config import Settings


class DebugEndpoint(BaseModel):
    """Address of the emulator's remote-debug stub."""

    model_config = {"frozen": True}

    host: str = Field(default="127.0.0.1", min_length=1)
    port: int = Field(default=1234, ge=1, le=65535)

    @property
    def connect_target(self) -> str:
        return f"{self.host}:{self.port}"


class SessionConfig(BaseModel):
    """Everything needed to run one build → launch → attach session."""

    model_config = {"frozen": True}

    # Build
    build_command: tuple[str, ...] = Field(min_length=1)
    build_cwd: str = "."
    capture_build_output: bool = False

    # Artifacts
    image_path: str = Field(min_length=1)
    symbol_path: str | None = None

    # Emulator
    emulator_bin: str = "qemu-system-x86_64"
    machine_profile: str = "q35"
    halt_on_boot: bool = True
    reboot_on_fault: bool = False
    emulator_extra_args: tuple[str, ...] = ()
    emulator_log_path: str = "target/kdebug-emulator.log"
    endpoint: DebugEndpoint = Field(default_factory=DebugEndpoint)

    # Debugger
    debugger_bin: str = "gdb"
    debugger_commands: tuple[str, ...] = ()

    # Timing
    ready_timeout: float = Field(default=10.0, gt=0)
    probe_interval: float = Field(default=0.1, gt=0)
    probe_timeout: float = Field(default=0.5, gt=0)
    terminate_grace: float = Field(default=3.0, ge=0)

    # Policy
    detach_on_debugger_exit: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> SessionConfig:
        """Build a session config from flat environment/CLI settings.

        Raises:
            ConfigError: If a setting cannot be parsed or fails validation.
        """
        try:
            build_command = tuple(shlex.split(settings.build_command))
            extra_args = tuple(shlex.split(settings.emulator_extra_args))
        except ValueError as exc:
            raise ConfigError(f"cannot parse command line setting: {exc}") from exc

        debugger_commands = tuple(cmd.strip() for cmd in settings.debugger_commands.split(";") if cmd.strip())

        try:
            return cls(
                build_command=build_command,
                build_cwd=settings.build_cwd,
                capture_build_output=settings.capture_build_output,
                image_path=settings.image_path,
                symbol_path=settings.symbol_path or None,
                emulator_bin=settings.emulator_bin,
                machine_profile=settings.machine_profile,
                emulator_extra_args=extra_args,
                emulator_log_path=settings.emulator_log_path,
                endpoint=DebugEndpoint(host=settings.debug_host, port=settings.debug_port),
                debugger_bin=settings.debugger_bin,
                debugger_commands=debugger_commands,
                ready_timeout=settings.ready_timeout_seconds,
                probe_interval=settings.probe_interval_seconds,
                probe_timeout=settings.probe_timeout_seconds,
                terminate_grace=settings.terminate_grace_seconds,
                detach_on_debugger_exit=settings.detach_on_debugger_exit,
            )
        except ValidationError as exc:
            raise ConfigError(f"invalid session configuration: {exc}") from exc


class BuildResult(BaseModel):
    """Outcome of one builder invocation."""

    model_config = {"frozen": True}

    returncode: int
    image_path: str
    output: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0
