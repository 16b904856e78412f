"""Session controller sequencing build -> launch -> wait-ready -> attach."""

from __future__ import annotations

import asyncio
import logging
import signal

from kdebug.debugger.terminal import preserved_terminal
from kdebug.session.interfaces import DebuggerAttacher, EmulatorLauncher, EndpointMonitor, ImageBuilder
from kdebug.shared.enums import ExitCode, ReadinessState, SessionState
from kdebug.shared.exceptions import EmulatorExitedEarly, OperatorCancelled, ReadinessTimeout, SessionError
from kdebug.shared.handles import DebuggerHandle, EmulatorHandle
from kdebug.shared.models import SessionConfig
from kdebug.shared.process import terminate

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.BUILDING}),
    SessionState.BUILDING: frozenset({SessionState.LAUNCHING, SessionState.CLEANING_UP}),
    SessionState.LAUNCHING: frozenset({SessionState.WAITING_READY, SessionState.CLEANING_UP}),
    SessionState.WAITING_READY: frozenset({SessionState.ATTACHED, SessionState.CLEANING_UP}),
    SessionState.ATTACHED: frozenset({SessionState.CLEANING_UP}),
    SessionState.CLEANING_UP: frozenset({SessionState.DONE, SessionState.FAILED}),
    SessionState.DONE: frozenset(),
    SessionState.FAILED: frozenset(),
}

# States in which an operator interrupt aborts the pending phase
_CANCELLABLE = frozenset({SessionState.BUILDING, SessionState.LAUNCHING, SessionState.WAITING_READY})

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class SessionController:
    """Run one debug session and own every process it starts.

    The controller is the only code that signals or waits on the emulator.
    Whatever happens (normal debugger exit, a failed phase, an operator
    interrupt) the emulator is terminated during cleanup, unless the config
    asks to detach it and the session ended normally.
    """

    def __init__(
        self,
        config: SessionConfig,
        *,
        builder: ImageBuilder,
        launcher: EmulatorLauncher,
        monitor: EndpointMonitor,
        attacher: DebuggerAttacher,
        handle_signals: bool = True,
    ) -> None:
        self._config = config
        self._builder = builder
        self._launcher = launcher
        self._monitor = monitor
        self._attacher = attacher
        self._handle_signals = handle_signals
        self._state = SessionState.IDLE
        self._history: list[SessionState] = [SessionState.IDLE]
        self._emulator: EmulatorHandle | None = None
        self._debugger: DebuggerHandle | None = None
        self._phases: asyncio.Task[int] | None = None
        self._cancelled_in: SessionState | None = None
        # set when the attached debugger was signalled or killed rather than quit
        self._abnormal_end = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def history(self) -> list[SessionState]:
        return list(self._history)

    @property
    def emulator(self) -> EmulatorHandle | None:
        return self._emulator

    @property
    def debugger(self) -> DebuggerHandle | None:
        return self._debugger

    def _transition(self, new: SessionState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise ValueError(f"invalid session transition {self._state.value} -> {new.value}")
        logger.debug("session %s -> %s", self._state.value, new.value)
        self._state = new
        self._history.append(new)

    def handle_signal(self, signum: int) -> None:
        """React to a signal delivered to the orchestrator.

        Before the debugger attaches, any handled signal cancels the pending
        phase. Once attached, SIGINT is the debugger's own business (it gets
        it from the terminal) and other signals are passed on to it.
        """
        if self._state in _CANCELLABLE:
            if self._cancelled_in is None and self._phases is not None:
                logger.warning("received %s while %s, cancelling", signal.Signals(signum).name, self._state.value)
                self._cancelled_in = self._state
                self._phases.cancel()
        elif self._state is SessionState.ATTACHED and self._debugger is not None:
            if signum != signal.SIGINT:
                self._abnormal_end = True
                self._attacher.forward_signal(self._debugger, signum)
        else:
            logger.debug("ignoring %s while %s", signal.Signals(signum).name, self._state.value)

    async def run(self) -> int:
        """Run the session to completion.

        Returns:
            The debugger's exit status on success, otherwise the exit code of
            the failure category.
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError("a session controller can only run once")

        loop = asyncio.get_running_loop()
        if self._handle_signals:
            for signum in _HANDLED_SIGNALS:
                loop.add_signal_handler(signum, self.handle_signal, signum)

        self._transition(SessionState.BUILDING)
        self._phases = asyncio.ensure_future(self._run_phases())
        error: SessionError | None = None
        status = int(ExitCode.OK)
        completed = False
        try:
            try:
                status = await self._phases
                completed = True
            except asyncio.CancelledError:
                if self._cancelled_in is None:
                    raise
                error = OperatorCancelled(
                    f"interrupted by operator while {self._cancelled_in.value}",
                    phase=self._cancelled_in,
                )
            except SessionError as exc:
                error = exc
        finally:
            try:
                await self._cleanup(failed=not completed)
            finally:
                if self._handle_signals:
                    for signum in _HANDLED_SIGNALS:
                        loop.remove_signal_handler(signum)

        if error is not None:
            self._report(error)
            return int(error.exit_code)
        return status

    async def _run_phases(self) -> int:
        config = self._config

        await self._builder.build(config)

        self._transition(SessionState.LAUNCHING)
        self._emulator = await self._launcher.spawn(config)

        self._transition(SessionState.WAITING_READY)
        readiness = await self._monitor.wait(self._emulator)
        if readiness is ReadinessState.PROCESS_EXITED:
            rc = self._emulator.process.returncode
            raise EmulatorExitedEarly(
                f"emulator exited with status {rc} before {config.endpoint.connect_target} was ready",
                output=self._emulator.output_tail(),
                returncode=rc,
            )
        if readiness is not ReadinessState.READY:
            raise ReadinessTimeout(
                f"debug endpoint {config.endpoint.connect_target} not reachable "
                f"within {config.ready_timeout:.1f}s ({readiness.value})",
                output=self._emulator.output_tail(),
            )

        self._transition(SessionState.ATTACHED)
        with preserved_terminal():
            self._debugger = await self._attacher.spawn(config, self._emulator.endpoint)
            status = await self._attacher.wait(self._debugger)
        rc = self._debugger.process.returncode
        if rc is not None and rc < 0:
            logger.warning("debugger pid %d was killed by signal %d", self._debugger.pid, -rc)
            self._abnormal_end = True
        return status

    async def _cleanup(self, *, failed: bool) -> None:
        self._transition(SessionState.CLEANING_UP)
        grace = self._config.terminate_grace

        if self._debugger is not None and self._debugger.process.returncode is None:
            logger.warning("terminating debugger pid %d", self._debugger.pid)
            await terminate(self._debugger.process, grace=grace)

        emulator = self._emulator
        if emulator is not None:
            detach = self._config.detach_on_debugger_exit and not failed and not self._abnormal_end
            if detach and emulator.is_alive():
                logger.warning(
                    "leaving emulator pid %d running, gdb stub still at %s",
                    emulator.pid,
                    emulator.endpoint.connect_target,
                )
            elif emulator.is_alive():
                if self._config.detach_on_debugger_exit and not failed:
                    logger.warning("debugger did not exit normally, not detaching emulator pid %d", emulator.pid)
                logger.info("terminating emulator pid %d", emulator.pid)
                rc = await terminate(emulator.process, grace=grace)
                if rc is None:
                    logger.error("emulator pid %d could not be stopped", emulator.pid)
            else:
                logger.debug("emulator pid %d already exited (%s)", emulator.pid, emulator.process.returncode)

        self._transition(SessionState.FAILED if failed else SessionState.DONE)

    @staticmethod
    def _report(error: SessionError) -> None:
        logger.error("session failed while %s: %s", error.phase.value, error)
        if error.__cause__ is not None:
            logger.error("caused by: %s", error.__cause__)
        if error.output:
            logger.error("captured output:\n%s", error.output)
