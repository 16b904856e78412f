"""Command-line entry point: ``kdebug debug``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import shlex
import sys
from typing import Any

from pydantic import ValidationError

from kdebug.build.builder import CommandImageBuilder
from kdebug.config import Settings, get_settings
from kdebug.debugger.attacher import GdbAttacher
from kdebug.emulator.launcher import QemuLauncher
from kdebug.emulator.readiness import ReadinessMonitor
from kdebug.session.controller import SessionController
from kdebug.shared.enums import ExitCode
from kdebug.shared.exceptions import ConfigError
from kdebug.shared.models import SessionConfig

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kdebug",
        description="Build a kernel image, boot it halted in QEMU and attach GDB to it.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    debug = subparsers.add_parser(
        "debug",
        help="Run one build -> emulator -> debugger session",
        description="Every option overrides the matching KDEBUG_* environment variable.",
    )
    debug.add_argument("--build-command", help="Build command line (default: cargo xbuild)")
    debug.add_argument("--build-cwd", help="Directory the build command runs in")
    debug.add_argument(
        "--capture-build-output",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Capture build output and show it only on failure",
    )
    debug.add_argument("--image", dest="image_path", help="Bootable disk image produced by the build")
    debug.add_argument("--symbols", dest="symbol_path", help="ELF with debug symbols for the debugger")
    debug.add_argument("--emulator", dest="emulator_bin", help="Emulator binary (default: qemu-system-x86_64)")
    debug.add_argument("--machine", dest="machine_profile", help="Emulated machine type (default: q35)")
    debug.add_argument(
        "--emulator-arg",
        dest="emulator_args",
        action="append",
        metavar="ARG",
        help="Extra emulator argument (repeatable)",
    )
    debug.add_argument("--emulator-log", dest="emulator_log_path", help="File receiving emulator output")
    debug.add_argument("--host", dest="debug_host", help="Debug stub address (default: 127.0.0.1)")
    debug.add_argument("--port", dest="debug_port", type=int, help="Debug stub port (default: 1234)")
    debug.add_argument("--debugger", dest="debugger_bin", help="Debugger binary (default: gdb)")
    debug.add_argument(
        "--gdb-command",
        dest="gdb_commands",
        action="append",
        metavar="CMD",
        help="Debugger command run after connecting (repeatable)",
    )
    debug.add_argument(
        "--timeout",
        dest="ready_timeout_seconds",
        type=float,
        help="Seconds to wait for the debug stub (default: 10)",
    )
    debug.add_argument(
        "--detach",
        dest="detach_on_debugger_exit",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep the emulator running after the debugger exits normally",
    )
    debug.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed CLI options into ``Settings`` keyword overrides."""
    skip = {"command", "verbose", "emulator_args", "gdb_commands"}
    overrides = {key: value for key, value in vars(args).items() if key not in skip and value is not None}
    if args.emulator_args:
        overrides["emulator_extra_args"] = shlex.join(args.emulator_args)
    if args.gdb_commands:
        overrides["debugger_commands"] = ";".join(args.gdb_commands)
    return overrides


async def run_session(settings: Settings) -> int:
    """Wire dependencies from settings and run one debug session."""
    config = SessionConfig.from_settings(settings)
    controller = SessionController(
        config,
        builder=CommandImageBuilder(terminate_grace=config.terminate_grace),
        launcher=QemuLauncher(),
        monitor=ReadinessMonitor(
            timeout=config.ready_timeout,
            interval=config.probe_interval,
            probe_timeout=config.probe_timeout,
        ),
        attacher=GdbAttacher(),
    )
    return await controller.run()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=_LOG_FORMAT)

    try:
        settings = get_settings(**settings_overrides(args))
    except ValidationError as exc:
        logger.error("invalid settings: %s", exc)
        return int(ExitCode.CONFIG_ERROR)

    if not args.verbose:
        try:
            logging.getLogger().setLevel(settings.log_level.upper())
        except ValueError:
            logger.error("invalid log level: %s", settings.log_level)
            return int(ExitCode.CONFIG_ERROR)

    try:
        return asyncio.run(run_session(settings))
    except ConfigError as exc:
        logger.error("%s", exc)
        return int(exc.exit_code)


if __name__ == "__main__":
    sys.exit(main())
