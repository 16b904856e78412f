"""Protocol interfaces for session controller dependency injection."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kdebug.shared.enums import ReadinessState
from kdebug.shared.handles import DebuggerHandle, EmulatorHandle
from kdebug.shared.models import BuildResult, DebugEndpoint, SessionConfig


@runtime_checkable
class ImageBuilder(Protocol):
    """Protocol for producing the bootable image."""

    async def build(self, config: SessionConfig) -> BuildResult:
        """Build the image named by ``config``.

        Args:
            config: Session configuration

        Returns:
            Successful build result

        Raises:
            BuildFailed: If the build fails or an artifact is missing
        """
        ...


@runtime_checkable
class EmulatorLauncher(Protocol):
    """Protocol for starting the emulator in the background."""

    async def spawn(self, config: SessionConfig) -> EmulatorHandle:
        """Start the emulator halted at boot with its debug stub enabled.

        Args:
            config: Session configuration

        Returns:
            Handle to the running emulator

        Raises:
            EmulatorSpawnFailed: If the process cannot be started
        """
        ...


@runtime_checkable
class EndpointMonitor(Protocol):
    """Protocol for waiting on the emulator's debug endpoint."""

    async def wait(self, handle: EmulatorHandle) -> ReadinessState:
        """Wait until the endpoint is ready or readiness becomes impossible.

        Args:
            handle: Running emulator

        Returns:
            Terminal readiness state
        """
        ...


@runtime_checkable
class DebuggerAttacher(Protocol):
    """Protocol for running the debugger in the foreground."""

    async def spawn(self, config: SessionConfig, endpoint: DebugEndpoint) -> DebuggerHandle:
        """Start the debugger connected to ``endpoint``.

        Raises:
            DebuggerSpawnFailed: If the process cannot be started
        """
        ...

    async def wait(self, handle: DebuggerHandle) -> int:
        """Block until the debugger exits; return its exit status."""
        ...

    def forward_signal(self, handle: DebuggerHandle, signum: int) -> None: ...
