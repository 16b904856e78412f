"""External build command invocation."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex

from kdebug.shared.exceptions import BuildFailed
from kdebug.shared.models import BuildResult, SessionConfig
from kdebug.shared.process import terminate

logger = logging.getLogger(__name__)

# Captured build output attached to errors is trimmed to this many characters
_OUTPUT_TAIL = 4000


class CommandImageBuilder:
    """Image builder implementation running an external command.

    Implements the ``ImageBuilder`` protocol.
    Output is streamed to the operator's terminal unless the config asks for
    it to be captured, in which case it is attached to the result and errors.
    """

    def __init__(self, *, terminate_grace: float = 3.0) -> None:
        self._terminate_grace = terminate_grace

    async def build(self, config: SessionConfig) -> BuildResult:
        """Run the build command to completion and check its artifacts.

        Args:
            config: Session configuration naming the command and artifacts.

        Returns:
            Successful build result.

        Raises:
            BuildFailed: If the command cannot start, exits non-zero, or leaves
                an artifact missing.
        """
        cmd = list(config.build_command)
        capture = config.capture_build_output
        logger.info("building: %s (cwd=%s)", shlex.join(cmd), config.build_cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=config.build_cwd,
                stdout=asyncio.subprocess.PIPE if capture else None,
                stderr=asyncio.subprocess.STDOUT if capture else None,
            )
        except FileNotFoundError as exc:
            raise BuildFailed(f"build command not found: {cmd[0]}") from exc
        except OSError as exc:
            raise BuildFailed(f"build command could not start: {exc}") from exc

        try:
            stdout, _ = await proc.communicate()
        except asyncio.CancelledError:
            logger.warning("build cancelled, stopping pid %d", proc.pid)
            await terminate(proc, grace=self._terminate_grace)
            raise

        output = stdout.decode(errors="replace")[-_OUTPUT_TAIL:] if stdout else None
        returncode = proc.returncode if proc.returncode is not None else 0
        result = BuildResult(returncode=returncode, image_path=config.image_path, output=output)

        if not result.succeeded:
            raise BuildFailed(
                f"build command exited with status {returncode}",
                output=output,
                returncode=returncode,
            )

        for artifact in (config.image_path, config.symbol_path):
            if artifact is not None and not os.path.isfile(artifact):
                raise BuildFailed(
                    f"build succeeded but artifact is missing: {artifact}",
                    output=output,
                    returncode=returncode,
                )

        logger.info("build complete: %s", config.image_path)
        return result
