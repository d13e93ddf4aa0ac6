"""
In-memory collaborators for the reconciler and orchestrator tests.

FakeFileStore implements the FileStore protocol over a dict and can be told
to fail on chosen operations; FakeProcessRunner implements ProcessRunner and
tracks whether a simulated nginx instance is running.
"""

import asyncio
from pathlib import PurePosixPath
from typing import Iterable, Optional, Sequence

from local_domains.models import ProcessOutput


def _key(path) -> str:
    return str(PurePosixPath(str(path)))


class FakeFileStore:
    """FileStore over a dict of path -> text."""

    def __init__(self, files: Optional[dict] = None) -> None:
        self.files: dict[str, str] = {}
        self.dirs: set[str] = set()
        self.fail_on: set[tuple[str, str]] = set()  # (operation, path)
        self.delay_on: dict[tuple[str, str], float] = {}
        self.writes: list[str] = []
        for path, text in (files or {}).items():
            self.put(path, text)

    def put(self, path, text: str) -> None:
        key = _key(path)
        self.files[key] = text
        self._add_parents(key)

    def get(self, path) -> Optional[str]:
        return self.files.get(_key(path))

    def fail(self, operation: str, path) -> None:
        """Make the next and every later call of `operation` on `path` raise OSError."""
        self.fail_on.add((operation, _key(path)))

    def delay(self, operation: str, path, seconds: float) -> None:
        """Make every call of `operation` on `path` wait before it takes effect."""
        self.delay_on[(operation, _key(path))] = seconds

    async def _pause(self, operation: str, path) -> None:
        seconds = self.delay_on.get((operation, _key(path)))
        if seconds:
            await asyncio.sleep(seconds)

    def _check(self, operation: str, path) -> str:
        key = _key(path)
        if (operation, key) in self.fail_on:
            raise OSError(f"simulated {operation} failure: {key}")
        return key

    def _add_parents(self, key: str) -> None:
        for parent in PurePosixPath(key).parents:
            self.dirs.add(str(parent))

    async def read_text(self, path) -> str:
        key = self._check("read", path)
        if key not in self.files:
            raise FileNotFoundError(key)
        return self.files[key]

    async def read_lines(self, path) -> list[str]:
        return (await self.read_text(path)).split("\n")

    async def write_text(self, path, data: str) -> None:
        await self._pause("write", path)
        key = self._check("write", path)
        self.writes.append(key)
        self.put(key, data)

    async def write_lines(self, path, lines: Iterable[str]) -> None:
        await self.write_text(path, "\n".join(lines))

    async def append(self, path, data: str) -> None:
        await self._pause("append", path)
        key = self._check("append", path)
        self.writes.append(key)
        self.put(key, self.files.get(key, "") + data)

    async def exists(self, path) -> bool:
        key = self._check("exists", path)
        return key in self.files or key in self.dirs

    async def list_dir(self, path, excluding: Iterable[str] = ()) -> list[str]:
        key = self._check("list", path)
        if key not in self.dirs:
            raise FileNotFoundError(key)
        excluded = set(excluding)
        names = [
            PurePosixPath(name).name
            for name in self.files
            if str(PurePosixPath(name).parent) == key
        ]
        return sorted(name for name in names if name not in excluded)

    async def delete(self, path) -> None:
        key = self._check("delete", path)
        if key not in self.files:
            raise FileNotFoundError(key)
        del self.files[key]

    async def ensure_dir(self, path) -> None:
        key = self._check("mkdir", path)
        self.dirs.add(key)
        self._add_parents(key)

    async def copy(self, source, destination) -> None:
        await self.write_text(destination, await self.read_text(source))

    async def remove_tree(self, path) -> None:
        key = self._check("remove_tree", path)
        prefix = key.rstrip("/") + "/"
        for name in [name for name in self.files if name.startswith(prefix)]:
            del self.files[name]
        for name in [name for name in self.dirs if name == key or name.startswith(prefix)]:
            self.dirs.discard(name)


class FakeProcessRunner:
    """ProcessRunner that simulates one nginx instance."""

    def __init__(self, running: bool = False, binary_name: str = "nginx") -> None:
        self.running = running
        self.binary_name = binary_name
        self.spawned: list[tuple[str, list[str], Optional[str]]] = []
        self.commands: list[list[str]] = []
        self.fail_signals: set[str] = set()  # nginx -s signals that exit non-zero

    async def spawn_detached(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> None:
        self.spawned.append((command, list(args), cwd))
        self.running = True

    async def run_and_wait(
        self,
        command: str,
        args: Sequence[str],
        cwd: Optional[str] = None,
    ) -> ProcessOutput:
        argv = [command, *args]
        self.commands.append(argv)

        if "-s" in argv:
            signal = argv[argv.index("-s") + 1]
            if signal in self.fail_signals or not self.running:
                return ProcessOutput(returncode=1, stderr=f"signal {signal} failed")
            if signal in ("quit", "stop"):
                self.running = False
            return ProcessOutput(returncode=0)

        # kill command
        found = self.running
        self.running = False
        return ProcessOutput(returncode=0 if found else 1)

    async def query_running_processes(self, list_command: Sequence[str]) -> str:
        return f"bash\n{self.binary_name}\n" if self.running else "bash\n"

    @property
    def signals(self) -> list[str]:
        return [argv[argv.index("-s") + 1] for argv in self.commands if "-s" in argv]
