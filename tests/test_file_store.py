"""
Tests for the local file store, the subprocess runner and io_guard.
"""

import asyncio
import sys
import tempfile
from pathlib import Path

import pytest

from fakes import FakeFileStore, FakeProcessRunner
from local_domains.exceptions import IOOperationError, NotFoundError, gather_all, io_guard
from local_domains.file_store import FileStore, LocalFileStore
from local_domains.process import ProcessRunner, SubprocessRunner


class TestLocalFileStore:
    def test_lines_round_trip_exactly(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "nested" / "hosts"
            files = LocalFileStore()
            text = "a\r\nb\n\nc"

            asyncio.run(files.write_text(path, text))
            lines = asyncio.run(files.read_lines(path))
            asyncio.run(files.write_lines(path, lines))

            assert lines == ["a\r", "b", "", "c"]
            assert path.read_bytes() == text.encode("utf-8")

    def test_directory_operations(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir) / "conf"
            files = LocalFileStore()

            asyncio.run(files.ensure_dir(root / "sub"))
            asyncio.run(files.write_text(root / "b.conf", "b"))
            asyncio.run(files.write_text(root / "a.conf", "a"))
            asyncio.run(files.append(root / "a.conf", "!"))
            asyncio.run(files.copy(root / "a.conf", Path(tmpdir) / "backup" / "a.conf"))

            assert asyncio.run(files.list_dir(root)) == ["a.conf", "b.conf"]
            assert asyncio.run(files.list_dir(root, excluding=["b.conf"])) == ["a.conf"]
            assert (Path(tmpdir) / "backup" / "a.conf").read_text() == "a!"

            asyncio.run(files.delete(root / "b.conf"))
            assert not asyncio.run(files.exists(root / "b.conf"))

            asyncio.run(files.remove_tree(root))
            assert not root.exists()

    def test_missing_file_raises_oserror(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(OSError):
                asyncio.run(LocalFileStore().read_text(Path(tmpdir) / "missing"))


class TestSubprocessRunner:
    def test_run_and_wait_captures_output(self) -> None:
        output = asyncio.run(SubprocessRunner().run_and_wait(
            sys.executable, ["-c", "import sys; print('out'); sys.exit(3)"]
        ))

        assert output.returncode == 3
        assert output.stdout.strip() == "out"
        assert not output.ok

    def test_query_running_processes(self) -> None:
        listing = asyncio.run(SubprocessRunner().query_running_processes(
            [sys.executable, "-c", "print('nginx')"]
        ))

        assert listing.strip() == "nginx"


class TestProtocols:
    def test_implementations_satisfy_protocols(self) -> None:
        assert isinstance(LocalFileStore(), FileStore)
        assert isinstance(FakeFileStore(), FileStore)
        assert isinstance(SubprocessRunner(), ProcessRunner)
        assert isinstance(FakeProcessRunner(), ProcessRunner)


class TestIOGuard:
    def test_os_error_is_wrapped(self) -> None:
        async def failing() -> None:
            async with io_guard("write the hosts file", path="/etc/hosts"):
                raise PermissionError("denied")

        with pytest.raises(IOOperationError) as excinfo:
            asyncio.run(failing())

        assert excinfo.value.message == "Failed to write the hosts file: denied"
        assert excinfo.value.details["path"] == "/etc/hosts"
        assert isinstance(excinfo.value.__cause__, PermissionError)

    def test_taxonomy_errors_pass_through(self) -> None:
        async def failing() -> None:
            async with io_guard("read"):
                raise NotFoundError(code="domain_missing", message="missing")

        with pytest.raises(NotFoundError):
            asyncio.run(failing())

    def test_to_dict(self) -> None:
        error = IOOperationError(code="io_error", message="boom", details={"path": "/x"})

        assert error.to_dict() == {
            "error_type": "IOOperationError",
            "code": "io_error",
            "message": "boom",
            "details": {"path": "/x"},
        }


class TestGatherAll:
    def test_results_in_argument_order(self) -> None:
        async def value(x: int, delay: float) -> int:
            await asyncio.sleep(delay)
            return x

        assert asyncio.run(gather_all(value(1, 0.02), value(2, 0))) == [1, 2]

    def test_slow_sibling_finishes_before_failure_is_raised(self) -> None:
        finished = []

        async def fail_fast() -> None:
            raise PermissionError("denied")

        async def slow() -> None:
            await asyncio.sleep(0.1)
            finished.append("slow")

        with pytest.raises(PermissionError):
            asyncio.run(gather_all(fail_fast(), slow()))

        assert finished == ["slow"]

    def test_first_failure_wins(self) -> None:
        async def fail(message: str, delay: float) -> None:
            await asyncio.sleep(delay)
            raise OSError(message)

        with pytest.raises(OSError, match="first"):
            asyncio.run(gather_all(fail("first", 0.05), fail("second", 0)))
