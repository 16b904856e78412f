"""Centralised configuration via Pydantic Settings."""

from __future__ import annotations

from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Debug session configuration loaded from environment variables."""

    model_config = {"env_prefix": "KDEBUG_", "frozen": True}

    # Build
    # Shell-style command line, split with shlex.
    build_command: str = "cargo xbuild"
    build_cwd: str = "."
    capture_build_output: bool = False

    # Artifacts produced by the build
    image_path: str = "target/x86_64-solstice/debug/bootimage-solstice.bin"
    # ELF with debug symbols handed to the debugger. Leave blank to skip.
    symbol_path: str = "target/x86_64-solstice/debug/solstice"

    # Emulator
    emulator_bin: str = "qemu-system-x86_64"
    machine_profile: str = "q35"
    # Appended verbatim after the generated flags, e.g. "-m 256M -serial stdio".
    emulator_extra_args: str = ""
    emulator_log_path: str = "target/kdebug-emulator.log"

    # Debug endpoint (GDB stub)
    debug_host: str = "127.0.0.1"
    debug_port: int = 1234

    # Debugger
    debugger_bin: str = "gdb"
    # Extra commands run after "target remote". Format: "break _start;continue"
    debugger_commands: str = ""

    # Readiness / shutdown timing
    ready_timeout_seconds: float = 10.0
    probe_interval_seconds: float = 0.1
    probe_timeout_seconds: float = 0.5
    terminate_grace_seconds: float = 3.0

    # Keep the emulator running after a normal debugger exit (for re-attaching).
    detach_on_debugger_exit: bool = False

    log_level: str = "INFO"


def get_settings(**overrides: Any) -> Settings:
    """Factory used by the entry point; keyword overrides win over the environment."""
    return Settings(**overrides)
