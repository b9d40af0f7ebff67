"""
HTTP retrieval of source payloads with retry logic.

This module provides:
- Exponential backoff retry for transient failures (timeouts, transport errors, 429, 5xx)
- Immediate failure for client errors (4xx other than 429)
- Best-effort fetches for optional enrichment calls
- Archive download and extraction into a scratch directory that is
  always removed, whatever the outcome of the run
"""

import asyncio
import shutil
import tempfile
import zipfile
import zlib
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional
import json

import httpx

from core.config import settings
from core.exceptions import FetchError, ParseError
import logging

logger = logging.getLogger(__name__)


@dataclass
class ArchiveContents:
    """Files extracted from a downloaded archive"""
    root: Path
    files: List[Path] = field(default_factory=list)
    failed_entries: List[str] = field(default_factory=list)

    def relative(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()


class SourceFetcher:
    """
    Retrieve remote payloads over HTTP.

    Use as an async context manager so one connection pool serves a
    whole dataset run, enrichment calls included.

    Attributes:
        max_retries: Maximum number of attempts per request
        retry_delay: Initial retry delay in seconds, doubled on each attempt
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        user_agent: Optional[str] = None,
        scratch_dir: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES)
        self.retry_delay = retry_delay if retry_delay is not None else settings.HTTP_RETRY_DELAY
        self.user_agent = user_agent or settings.HTTP_USER_AGENT
        self.scratch_dir = scratch_dir or settings.SCRATCH_DIR
        self.transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "SourceFetcher":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent}
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("SourceFetcher must be used as an async context manager")
        return self._client

    async def _make_request_with_retry(self, url: str, accept: str) -> httpx.Response:
        """
        Make HTTP request with retry logic and exponential backoff.

        Returns:
            HTTP response with a 2xx status

        Raises:
            FetchError: retryable=True when attempts ran out on a transient
                failure, retryable=False for client errors
        """
        headers = {"Accept": accept}

        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            delay = self.retry_delay * (2 ** attempt)
            context = {"url": url, "attempts": attempt + 1}

            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")
                response = await self.client.get(url, headers=headers)

            except httpx.TimeoutException as e:
                if last_attempt:
                    raise FetchError(
                        f"Request timeout after {self.max_retries} attempts",
                        context={**context, "timeout": self.timeout},
                        original_exception=e,
                        retryable=True
                    )
                logger.warning(f"Request timeout on {url}. Retrying in {delay} seconds")
                await asyncio.sleep(delay)
                continue

            except httpx.TransportError as e:
                if last_attempt:
                    raise FetchError(
                        f"Network error after {self.max_retries} attempts",
                        context=context,
                        original_exception=e,
                        retryable=True
                    )
                logger.warning(f"Network error on {url}. Retrying in {delay} seconds: {e}")
                await asyncio.sleep(delay)
                continue

            if response.status_code == 429:
                if last_attempt:
                    raise FetchError(
                        f"Rate limit exceeded for {url}",
                        context=context,
                        status_code=429,
                        retryable=True
                    )
                retry_after = self._retry_after(response, delay)
                logger.warning(f"Rate limited by {url}. Retrying after {retry_after} seconds")
                await asyncio.sleep(retry_after)
                continue

            if response.status_code >= 500:
                if last_attempt:
                    raise FetchError(
                        f"Server error after {self.max_retries} attempts",
                        context={**context, "response_body": response.text[:500]},
                        status_code=response.status_code,
                        retryable=True
                    )
                logger.warning(
                    f"Server error {response.status_code} from {url}. "
                    f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if response.status_code >= 400:
                raise FetchError(
                    f"HTTP {response.status_code} for {url}",
                    context=context,
                    status_code=response.status_code,
                    retryable=False
                )

            return response

        # max_retries >= 1, so the loop always returns or raises
        raise FetchError("Max retries exceeded", context={"url": url}, retryable=True)

    @staticmethod
    def _retry_after(response: httpx.Response, default: float) -> float:
        value = response.headers.get("Retry-After")
        try:
            return float(value) if value is not None else default
        except ValueError:
            return default

    async def fetch_bytes(self, url: str, accept: str = "*/*") -> bytes:
        """Fetch a raw payload; an empty body is returned as b''"""
        response = await self._make_request_with_retry(url, accept)
        logger.info(f"Fetched {len(response.content)} bytes from {url}")
        return response.content

    async def fetch_json(self, url: str) -> Any:
        """Fetch and decode a JSON document"""
        response = await self._make_request_with_retry(url, "application/json")
        if not response.content.strip():
            return None
        try:
            return json.loads(response.content)
        except ValueError as e:
            raise ParseError(
                "Failed to parse JSON response",
                context={"url": url, "format": "json", "response_body": response.text[:500]},
                original_exception=e
            )

    async def fetch_optional_json(self, url: str) -> Optional[Dict[str, Any]]:
        """
        Best-effort fetch used for enrichment.

        Any failure is logged and returned as None so the caller
        falls back to unknown values.
        """
        try:
            data = await self.fetch_json(url)
        except (FetchError, ParseError) as e:
            logger.warning(f"Optional fetch failed for {url}: {e.message}")
            return None
        return data if isinstance(data, dict) else None

    @asynccontextmanager
    async def open_archive(self, url: str) -> AsyncIterator[ArchiveContents]:
        """
        Download a zip archive and extract it into a fresh scratch directory.

        Entries that cannot be extracted are listed in failed_entries
        rather than aborting the run. The scratch directory is removed on
        exit, including when the body of the `async with` raises.
        """
        scratch = Path(tempfile.mkdtemp(prefix="sync-archive-", dir=self.scratch_dir))
        try:
            payload = await self.fetch_bytes(url, accept="application/zip, */*")
            extract_dir = scratch / "contents"
            extract_dir.mkdir()

            if not payload:
                logger.warning(f"Empty archive from {url}")
                yield ArchiveContents(root=extract_dir)
                return

            archive_path = scratch / "payload.zip"
            archive_path.write_bytes(payload)
            contents = self._extract(archive_path, extract_dir, url)
            logger.info(
                f"Extracted {len(contents.files)} files from {url} "
                f"({len(contents.failed_entries)} unreadable)"
            )
            yield contents
        finally:
            shutil.rmtree(scratch, ignore_errors=True)
            logger.debug(f"Removed scratch directory {scratch}")

    @staticmethod
    def _extract(archive_path: Path, extract_dir: Path, url: str) -> ArchiveContents:
        contents = ArchiveContents(root=extract_dir)
        root = extract_dir.resolve()

        try:
            archive = zipfile.ZipFile(archive_path)
        except zipfile.BadZipFile as e:
            raise ParseError(
                "Payload is not a valid zip archive",
                context={"url": url, "format": "archive"},
                original_exception=e
            )

        with archive:
            for member in archive.infolist():
                if member.is_dir():
                    continue
                target = (extract_dir / member.filename).resolve()
                if root not in target.parents:
                    logger.warning(f"Skipping archive entry outside extraction root: {member.filename}")
                    contents.failed_entries.append(member.filename)
                    continue
                try:
                    extracted = archive.extract(member, extract_dir)
                except (zipfile.BadZipFile, zlib.error, OSError) as e:
                    logger.warning(f"Unreadable archive entry {member.filename}: {e}")
                    contents.failed_entries.append(member.filename)
                    continue
                contents.files.append(Path(extracted))

        contents.files.sort()
        return contents
