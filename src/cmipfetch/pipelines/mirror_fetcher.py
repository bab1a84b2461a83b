"""Download archive files from the first ESGF mirror that has them.

Mirrors have inconsistent coverage, so a 404 moves on to the next mirror.
Every other failure stops immediately: a server error or timeout on a fast
mirror should surface instead of being masked by slower ones.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional, Sequence

import requests
from tqdm import tqdm

from cmipfetch.config import settings
from cmipfetch.errors import (
    FetchError,
    FetchTimeoutError,
    NotFoundError,
    ServerError,
    TransportError,
)

logger = logging.getLogger(__name__)


class MirrorFetcher:
    """Fetches relative archive paths from an ordered list of mirror base URLs."""

    def __init__(
        self,
        mirrors: Sequence[str] | None = None,
        session: Optional[requests.Session] = None,
        timeout: tuple[float, float] | None = None,
        chunk_size: int | None = None,
        max_concurrent: int | None = None,
    ):
        self.mirrors = list(mirrors if mirrors is not None else settings.mirrors)
        if not self.mirrors:
            raise ValueError("At least one mirror is required")
        self.session = session or requests.Session()
        self.timeout = timeout or (settings.connect_timeout, settings.read_timeout)
        self.chunk_size = chunk_size or settings.download_chunk_size
        self._slots = threading.BoundedSemaphore(max_concurrent or settings.max_concurrent_downloads)
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self.downloads = 0

    def fetch(self, resource_path: str, destination: Path) -> Path:
        """Download ``resource_path`` to ``destination`` unless it is already there.

        Raises:
            NotFoundError: every mirror answered 404.
            ServerError, FetchTimeoutError, TransportError: first non-404 failure.
        """
        destination = Path(destination)
        with self._destination_lock(destination):
            if self._is_complete(destination):
                logger.debug("Already downloaded: %s", destination.name)
                return destination

            destination.parent.mkdir(parents=True, exist_ok=True)
            last = len(self.mirrors) - 1
            for i, mirror in enumerate(self.mirrors):
                url = f"{mirror}{resource_path}"
                try:
                    with self._slots:
                        self._download(url, destination)
                    return destination
                except NotFoundError:
                    if i == last:
                        logger.error("Not found on any of %d mirrors: %s", len(self.mirrors), resource_path)
                        raise
                    logger.info("Not found on %s, trying next mirror", mirror)
        # Unreachable: the loop either returns or raises
        raise NotFoundError(f"Not found: {resource_path}")

    def _download(self, url: str, destination: Path) -> None:
        part = destination.with_name(destination.name + ".part")
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as r:
                if r.status_code == 404:
                    raise NotFoundError(f"404 Not Found: {url}", url=url)
                if r.status_code >= 400:
                    raise ServerError(
                        f"HTTP {r.status_code} for {url}", url=url, status_code=r.status_code
                    )
                total = int(r.headers.get("content-length", 0))
                with open(part, "wb") as f, tqdm(
                    total=total,
                    unit="B",
                    unit_scale=True,
                    desc=destination.name,
                    disable=total == 0,
                ) as pbar:
                    for chunk in r.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            pbar.update(len(chunk))
            os.replace(part, destination)
        except FetchError:
            part.unlink(missing_ok=True)
            raise
        except requests.Timeout as e:
            part.unlink(missing_ok=True)
            raise FetchTimeoutError(f"Timeout for {url}: {e}", url=url) from e
        except (requests.RequestException, OSError) as e:
            part.unlink(missing_ok=True)
            raise TransportError(f"Transfer failed for {url}: {e}", url=url) from e

        with self._locks_guard:
            self.downloads += 1
        logger.info("Downloaded: %s", destination.name)

    @staticmethod
    def _is_complete(path: Path) -> bool:
        return path.exists() and path.stat().st_size > 0

    def _destination_lock(self, path: Path) -> threading.Lock:
        key = path.resolve()
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock
