"""Hierarchical exception types for the kdebug session orchestrator."""

from __future__ import annotations

from kdebug.shared.enums import ExitCode, SessionState


class KdebugError(Exception):
    """Base exception for all kdebug errors."""

    exit_code: ExitCode = ExitCode.CONFIG_ERROR


class ConfigError(KdebugError):
    """Settings or command-line overrides are invalid."""


# ── Session ─────────────────────────────────────────────────────


class SessionError(KdebugError):
    """A session phase failed.

    Carries the phase it happened in, the captured output of the process
    involved (if any) and that process' return code (if known).
    """

    phase: SessionState = SessionState.IDLE

    def __init__(
        self,
        message: str,
        *,
        output: str | None = None,
        returncode: int | None = None,
    ) -> None:
        super().__init__(message)
        self.output = output
        self.returncode = returncode


class BuildFailed(SessionError):
    """Builder exited non-zero or did not produce the image."""

    exit_code = ExitCode.BUILD_FAILED
    phase = SessionState.BUILDING


class EmulatorSpawnFailed(SessionError):
    """Emulator process could not be started."""

    exit_code = ExitCode.EMULATOR_SPAWN_FAILED
    phase = SessionState.LAUNCHING


class EmulatorExitedEarly(SessionError):
    """Emulator died before its debug endpoint became ready."""

    exit_code = ExitCode.EMULATOR_EXITED_EARLY
    phase = SessionState.WAITING_READY


class ReadinessTimeout(SessionError):
    """Debug endpoint never accepted a connection within the timeout."""

    exit_code = ExitCode.READINESS_TIMEOUT
    phase = SessionState.WAITING_READY


class DebuggerSpawnFailed(SessionError):
    """Debugger process could not be started."""

    exit_code = ExitCode.DEBUGGER_SPAWN_FAILED
    phase = SessionState.ATTACHED


class OperatorCancelled(SessionError):
    """Operator interrupted the session before the debugger attached."""

    exit_code = ExitCode.OPERATOR_CANCELLED

    def __init__(self, message: str, *, phase: SessionState) -> None:
        super().__init__(message)
        self.phase = phase
