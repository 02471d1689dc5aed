#!/usr/bin/env python3
"""
Image download manager with retry/backoff and idempotent re-runs.
"""

# Standard library imports
import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

# Third-party imports
import aiofiles
import aiohttp
import filetype

# Local imports
from blog_status import StatusCallback, emit

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB - prevent disk fill attacks
DEFAULT_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'

# Failures worth another attempt; anything else is a bug and propagates
TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError)


@dataclass(frozen=True)
class DownloadResult:
    """Outcome of one batch item, aligned with the request list"""

    url: str
    filename: str
    success: bool
    path: Optional[str]


class ImageDownloader:
    """Sequential image downloader sharing one aiohttp session"""

    def __init__(
        self,
        max_retries: int = 3,
        timeout: float = 30.0,
        retry_delay: float = 1.0,
        callback: Optional[StatusCallback] = None,
        user_agent: str = DEFAULT_USER_AGENT
    ):
        self.max_retries = max_retries
        self.timeout = timeout
        self.retry_delay = retry_delay  # seconds, multiplied by the retry number
        self.callback = callback
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None

    def _log(self, level: str, message: str) -> None:
        emit(logger, self.callback, level, message)

    async def __aenter__(self) -> 'ImageDownloader':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Lazily create the shared HTTP session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={'User-Agent': self.user_agent},
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    def backoff_delay(self, retry_number: int) -> float:
        """Delay before retry N (1-based): linear, retry_delay * N"""
        return self.retry_delay * retry_number

    async def _fetch_to_file(self, url: str, file_path: Path) -> int:
        """Stream url into file_path, returning the number of bytes written

        Writes to a .part file first so an interrupted transfer never leaves
        a file that a later run would mistake for a finished download.
        """
        session = await self._get_session()
        part_path = file_path.with_name(file_path.name + '.part')
        bytes_downloaded = 0
        try:
            async with session.get(url) as response:
                response.raise_for_status()
                async with aiofiles.open(part_path, 'wb') as f:
                    async for chunk in response.content.iter_chunked(8192):
                        bytes_downloaded += len(chunk)

                        # Check size limit to prevent disk fill attacks
                        if bytes_downloaded > MAX_IMAGE_SIZE:
                            raise ValueError(f"Image exceeds size limit: {bytes_downloaded / 1024 / 1024:.1f}MB > {MAX_IMAGE_SIZE / 1024 / 1024}MB")

                        await f.write(chunk)
            os.replace(part_path, file_path)
        finally:
            if part_path.exists():
                part_path.unlink()
        return bytes_downloaded

    def _check_file_type(self, file_path: Path) -> None:
        """Log what the downloaded bytes look like; never rejects the file"""
        kind = filetype.guess(str(file_path))
        if kind is None:
            self._log("warning", f"  Could not determine file type for {file_path.name}, keeping anyway")
        elif kind.mime.startswith('image/'):
            self._log("debug", f"  Validated image: {file_path.name} ({kind.mime})")
        else:
            self._log("warning", f"  Downloaded file is not an image: {file_path.name} ({kind.mime})")

    async def download_image(self, url: str, folder_path: str, filename: str) -> Optional[str]:
        """Download url to folder_path/filename

        Args:
            url: Absolute image URL
            folder_path: Destination directory, created with parents if missing
            filename: Local file name

        Returns:
            Local file path if the file exists afterwards, None if every
            attempt failed
        """
        folder = Path(folder_path)
        folder.mkdir(parents=True, exist_ok=True)
        file_path = folder / filename

        # Existing file means an earlier run already fetched it
        if file_path.exists():
            self._log("debug", f"  Image already exists: {filename}")
            return str(file_path)

        for attempt in range(self.max_retries + 1):
            try:
                bytes_downloaded = await self._fetch_to_file(url, file_path)
                self._check_file_type(file_path)
                self._log("debug", f"  Downloaded: {filename} ({bytes_downloaded:,} bytes)")
                return str(file_path)
            except TRANSPORT_ERRORS as e:
                if attempt < self.max_retries:
                    delay = self.backoff_delay(attempt + 1)
                    self._log("warning", f"  Retry {attempt + 1}/{self.max_retries} for {filename} in {delay:g}s: {e}")
                    await asyncio.sleep(delay)
                else:
                    self._log("error", f"  Failed to download {url}: {e}")

        return None

    async def download_images(
        self,
        images: Sequence[Tuple[str, str]],
        folder_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> List[DownloadResult]:
        """Download (url, filename) pairs one after another

        Returns one DownloadResult per input item, in input order.
        """
        results: List[DownloadResult] = []
        total = len(images)

        for i, (url, filename) in enumerate(images, 1):
            path = await self.download_image(url, folder_path, filename)
            results.append(DownloadResult(url=url, filename=filename, success=path is not None, path=path))

            if progress_callback:
                progress_callback(i, total)

        return results
