"""Domain enumerations used across all modules."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class SessionState(str, Enum):
    """Lifecycle states for one debug session."""

    IDLE = "idle"
    BUILDING = "building"
    LAUNCHING = "launching"
    WAITING_READY = "waiting_ready"
    ATTACHED = "attached"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"


@unique
class ReadinessState(str, Enum):
    """Progress of the emulator debug endpoint towards accepting connections."""

    STARTING = "starting"
    PROBING = "probing"
    READY = "ready"
    TIMED_OUT = "timed_out"
    PROCESS_EXITED = "process_exited"

    @property
    def is_terminal(self) -> bool:
        return self in (ReadinessState.READY, ReadinessState.TIMED_OUT, ReadinessState.PROCESS_EXITED)


@unique
class ExitCode(IntEnum):
    """Process exit status of the orchestrator, one per failure category."""

    OK = 0
    CONFIG_ERROR = 2
    BUILD_FAILED = 10
    EMULATOR_SPAWN_FAILED = 11
    EMULATOR_EXITED_EARLY = 12
    READINESS_TIMEOUT = 13
    DEBUGGER_SPAWN_FAILED = 14
    OPERATOR_CANCELLED = 130
