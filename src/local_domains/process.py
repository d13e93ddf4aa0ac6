"""
Process control for the nginx lifecycle.

ProcessRunner is the capability the proxy reconciler consumes;
SubprocessRunner implements it with the subprocess module, running blocking
calls in the default executor.
"""

import asyncio
import functools
import os
import subprocess
from abc import abstractmethod
from typing import Optional, Protocol, Sequence, runtime_checkable

from .models import ProcessOutput


@runtime_checkable
class ProcessRunner(Protocol):
    """Protocol defining the process operations used by the proxy reconciler."""

    @abstractmethod
    async def spawn_detached(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> None:
        """Start a process that outlives this one."""
        ...

    @abstractmethod
    async def run_and_wait(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> ProcessOutput:
        """Run a process to completion and capture its output."""
        ...

    @abstractmethod
    async def query_running_processes(self, list_command: Sequence[str]) -> str:
        """Return the raw output of the OS process listing command."""
        ...


class SubprocessRunner:
    """ProcessRunner backed by the subprocess module."""

    def __init__(self, timeout: float = 30.0) -> None:
        self._timeout = timeout

    async def spawn_detached(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> None:
        await self._run(self._spawn, [command, *args], cwd)

    async def run_and_wait(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> ProcessOutput:
        completed = await self._run(
            subprocess.run,
            [command, *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=self._timeout,
            check=False,
        )
        return ProcessOutput(
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )

    async def query_running_processes(self, list_command: Sequence[str]) -> str:
        output = await self.run_and_wait(list_command[0], list_command[1:])
        return output.stdout

    @staticmethod
    def _spawn(argv: list[str], cwd: Optional[str]) -> None:
        kwargs: dict = {
            "cwd": cwd,
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }
        if os.name == "nt":
            kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            kwargs["start_new_session"] = True
        subprocess.Popen(argv, **kwargs)

    @staticmethod
    async def _run(func, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
