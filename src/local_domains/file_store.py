"""
File access for the reconcilers.

FileStore is the capability both reconcilers consume; LocalFileStore
implements it over the local file system. Blocking calls run in the default
executor so that independent file operations can be awaited concurrently.
Failures surface as OSError; callers wrap them with io_guard.
"""

import asyncio
import functools
import shutil
from abc import abstractmethod
from pathlib import Path
from typing import Callable, Iterable, Protocol, TypeVar, Union, runtime_checkable


PathLike = Union[str, Path]
T = TypeVar("T")


@runtime_checkable
class FileStore(Protocol):
    """Protocol defining the file operations used by the reconcilers."""

    @abstractmethod
    async def read_text(self, path: PathLike) -> str:
        ...

    @abstractmethod
    async def read_lines(self, path: PathLike) -> list[str]:
        """Read a file split on '\\n'; joining with '\\n' restores it exactly."""
        ...

    @abstractmethod
    async def write_text(self, path: PathLike, data: str) -> None:
        """Overwrite a file, creating parent directories as needed."""
        ...

    @abstractmethod
    async def write_lines(self, path: PathLike, lines: Iterable[str]) -> None:
        ...

    @abstractmethod
    async def append(self, path: PathLike, data: str) -> None:
        ...

    @abstractmethod
    async def exists(self, path: PathLike) -> bool:
        ...

    @abstractmethod
    async def list_dir(self, path: PathLike, excluding: Iterable[str] = ()) -> list[str]:
        """List file names in a directory, minus the excluded names."""
        ...

    @abstractmethod
    async def delete(self, path: PathLike) -> None:
        ...

    @abstractmethod
    async def ensure_dir(self, path: PathLike) -> None:
        ...

    @abstractmethod
    async def copy(self, source: PathLike, destination: PathLike) -> None:
        ...

    @abstractmethod
    async def remove_tree(self, path: PathLike) -> None:
        """Delete a directory and everything below it."""
        ...


class LocalFileStore:
    """FileStore backed by the local file system."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    async def read_text(self, path: PathLike) -> str:
        return await self._run(self._read, Path(path))

    async def read_lines(self, path: PathLike) -> list[str]:
        data = await self.read_text(path)
        return data.split("\n")

    async def write_text(self, path: PathLike, data: str) -> None:
        await self._run(self._write, Path(path), data)

    async def write_lines(self, path: PathLike, lines: Iterable[str]) -> None:
        await self.write_text(path, "\n".join(lines))

    async def append(self, path: PathLike, data: str) -> None:
        await self._run(self._append, Path(path), data)

    async def exists(self, path: PathLike) -> bool:
        return await self._run(Path(path).exists)

    async def list_dir(self, path: PathLike, excluding: Iterable[str] = ()) -> list[str]:
        excluded = set(excluding)
        names = await self._run(self._list_files, Path(path))
        return [name for name in names if name not in excluded]

    async def delete(self, path: PathLike) -> None:
        await self._run(Path(path).unlink)

    async def ensure_dir(self, path: PathLike) -> None:
        await self._run(Path(path).mkdir, parents=True, exist_ok=True)

    async def copy(self, source: PathLike, destination: PathLike) -> None:
        await self._run(self._copy, Path(source), Path(destination))

    async def remove_tree(self, path: PathLike) -> None:
        """Delete a directory and everything below it."""
        await self._run(shutil.rmtree, Path(path))

    def _read(self, path: Path) -> str:
        with open(path, "r", encoding=self._encoding, newline="") as f:
            return f.read()

    def _write(self, path: Path, data: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # newline="" keeps '\n' as-is so read/write round-trips exactly
        with open(path, "w", encoding=self._encoding, newline="") as f:
            f.write(data)

    def _append(self, path: Path, data: str) -> None:
        with open(path, "a", encoding=self._encoding, newline="") as f:
            f.write(data)

    @staticmethod
    def _list_files(path: Path) -> list[str]:
        return sorted(entry.name for entry in path.iterdir() if entry.is_file())

    @staticmethod
    def _copy(source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

    @staticmethod
    async def _run(func: Callable[..., T], *args, **kwargs) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
