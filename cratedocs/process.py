"""
Process invocation for CrateDocs.

Every external tool (cargo, cargo-semver-checks) is run through
``ProcessRunner.invoke`` so that the builder and the pipeline steps can be
tested with a runner that returns scripted output.
"""

import asyncio
import logging
import os
import signal
from typing import Dict, Optional, Sequence

from cratedocs.schemas import ProcessResult

logger = logging.getLogger("cratedocs.process")

# Upper bound on draining the pipes once a timed out process group is killed
DRAIN_TIMEOUT = 5.0


class ProcessRunner:
    """Run external commands to completion and capture their output."""

    def __init__(self, env: Optional[Dict[str, str]] = None):
        """Initialize the runner.

        Args:
            env: Extra environment variables passed to every command
        """
        self.env = env or {}

    async def invoke(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> ProcessResult:
        """Run ``command`` with ``args`` in ``cwd`` and wait for it.

        Args:
            command: Executable to run
            args: Arguments passed to the executable
            cwd: Working directory
            timeout: Seconds to wait before killing the process

        Returns:
            ProcessResult: Exit status and captured output. A timed out process
            is killed together with its children and reported with
            ``timed_out`` set.

        Raises:
            FileNotFoundError: If the executable does not exist
        """
        env = os.environ.copy()
        env.update(self.env)

        logger.debug(f"Running {command} {' '.join(args)} in {cwd or os.getcwd()}")
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=cwd,
            env=env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{command} timed out after {timeout} seconds, killing it")
            _kill_group(process.pid)
            await process.wait()
            try:
                stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=DRAIN_TIMEOUT)
            except asyncio.TimeoutError:
                stdout, stderr = b"", b""
            return ProcessResult(
                exit_status=process.returncode if process.returncode is not None else -1,
                stdout=_decode(stdout),
                stderr=_decode(stderr) + f"\n{command} timed out after {timeout} seconds",
                timed_out=True,
            )

        return ProcessResult(
            exit_status=process.returncode,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )


def _kill_group(pid: int) -> None:
    """Kill the process group led by ``pid``, including any children it spawned."""
    try:
        os.killpg(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
