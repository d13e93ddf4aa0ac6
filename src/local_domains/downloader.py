"""
nginx release downloader for the local-domains system.

Finds the newest release listed on nginx.org, downloads the archive for the
current OS family and extracts it into the managed install directory,
dropping the archive's top-level `nginx-<version>/` folder.
"""

import asyncio
import functools
import io
import re
import tarfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Optional, Union

import httpx

from .audit_logger import AuditLogger
from .enums import LogLevel
from .exceptions import NetworkError, io_guard


COMPONENT = "downloader"

DOWNLOAD_INDEX_URL = "https://nginx.org/download/"

VERSION_PATTERN = re.compile(r"nginx-(\d+)\.(\d+)\.(\d+)\.tar\.gz")


class NginxDownloader:
    """
    Fetches and unpacks nginx release archives over HTTPS.

    Usable as an async context manager; a client is created lazily otherwise
    and must be released with close().
    """

    def __init__(
        self,
        archive_suffix: str,
        base_url: str = DOWNLOAD_INDEX_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the downloader.

        Args:
            archive_suffix: '.zip' or '.tar.gz'
            base_url: Directory listing that holds the release archives
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
            logger: Optional audit logger
        """
        self._archive_suffix = archive_suffix
        self._base_url = base_url if base_url.endswith("/") else base_url + "/"
        self._timeout = timeout
        self._transport = transport
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "NginxDownloader":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def latest_version(self) -> str:
        """
        Newest version listed in the download index.

        Raises:
            NetworkError: If the index cannot be fetched or lists no release
        """
        listing = (await self._get(self._base_url)).text
        versions = {
            tuple(int(part) for part in match.groups())
            for match in VERSION_PATTERN.finditer(listing)
        }
        if not versions:
            raise NetworkError(
                code="no_release_found",
                message="Failed to fetch the latest released version of nginx",
                details={"url": self._base_url},
            )
        return ".".join(str(part) for part in max(versions))

    def archive_url(self, version: str) -> str:
        return f"{self._base_url}nginx-{version}{self._archive_suffix}"

    async def download(self, output_path: Union[str, Path], version: Optional[str] = None) -> str:
        """
        Download and extract a release.

        Args:
            output_path: Directory the archive contents are extracted into
            version: Release to fetch (the latest one by default)

        Returns:
            The version that was installed

        Raises:
            NetworkError: On request failure or a corrupt archive
            IOOperationError: If the archive cannot be written to disk
        """
        version = version or await self.latest_version()
        url = self.archive_url(version)
        self._log(LogLevel.INFO, "Downloading nginx", {"version": version, "url": url})

        payload = (await self._get(url)).content

        loop = asyncio.get_running_loop()
        async with io_guard("extract the nginx archive", path=str(output_path)):
            await loop.run_in_executor(
                None, functools.partial(self._extract, payload, Path(output_path))
            )

        self._log(LogLevel.INFO, "nginx extracted", {"version": version, "path": str(output_path)})
        return version

    async def _get(self, url: str) -> httpx.Response:
        client = self._ensure_client()
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException:
            raise NetworkError(
                code="timeout",
                message=f"Request timed out after {self._timeout}s",
                details={"url": url},
            )
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                code="http_error",
                message=f"Unexpected HTTP status: {e.response.status_code}",
                details={"url": url, "status_code": e.response.status_code},
            )
        except httpx.HTTPError as e:
            raise NetworkError(
                code="network_error",
                message=f"Connection error: {e}",
                details={"url": url},
            )
        return response

    def _extract(self, payload: bytes, output_path: Path) -> None:
        try:
            if self._archive_suffix == ".zip":
                extract_zip(payload, output_path)
            else:
                extract_tar(payload, output_path)
        except (zipfile.BadZipFile, tarfile.TarError) as e:
            raise NetworkError(
                code="invalid_archive",
                message=f"Downloaded archive is corrupt: {e}",
                details={"path": str(output_path)},
            )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, COMPONENT, message, data)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None


def strip_top_level(name: str) -> Optional[PurePosixPath]:
    """
    Archive member path without its first component.

    Returns None for the top-level folder itself and for members that would
    escape the output directory.
    """
    parts = PurePosixPath(name.replace("\\", "/")).parts[1:]
    if not parts or ".." in parts:
        return None
    return PurePosixPath(*parts)


def extract_zip(payload: bytes, output_path: Path) -> None:
    with zipfile.ZipFile(io.BytesIO(payload)) as archive:
        for info in archive.infolist():
            relative = strip_top_level(info.filename)
            if relative is None:
                continue
            target = output_path / relative
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as source, open(target, "wb") as destination:
                destination.write(source.read())


def extract_tar(payload: bytes, output_path: Path) -> None:
    with tarfile.open(fileobj=io.BytesIO(payload), mode="r:gz") as archive:
        for member in archive.getmembers():
            relative = strip_top_level(member.name)
            if relative is None:
                continue
            target = output_path / relative
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            # links and device files are skipped
            if not member.isfile():
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            source = archive.extractfile(member)
            if source is None:
                continue
            with source, open(target, "wb") as destination:
                destination.write(source.read())
            target.chmod(member.mode & 0o755 | 0o600)
