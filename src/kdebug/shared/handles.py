"""Runtime handles for the processes owned by one debug session."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

from kdebug.shared.models import DebugEndpoint

# Bytes of emulator log attached to error reports
_TAIL_BYTES = 4096


@dataclass(slots=True)
class EmulatorHandle:
    """Background emulator process plus the endpoint it exposes."""

    process: asyncio.subprocess.Process
    endpoint: DebugEndpoint
    log_path: str

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.returncode is None

    def output_tail(self, max_bytes: int = _TAIL_BYTES) -> str:
        """Return the last ``max_bytes`` of the emulator's stdout/stderr log."""
        path = Path(self.log_path)
        if not path.is_file():
            return ""
        size = path.stat().st_size
        with path.open("rb") as fh:
            fh.seek(max(0, size - max_bytes))
            data = fh.read()
        return data.decode(errors="replace").strip()


@dataclass(frozen=True, slots=True)
class DebuggerHandle:
    """Foreground debugger process attached to the operator's terminal."""

    process: asyncio.subprocess.Process
    endpoint: DebugEndpoint

    @property
    def pid(self) -> int:
        return self.process.pid
