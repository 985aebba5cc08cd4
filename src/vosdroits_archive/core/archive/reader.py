"""Stream a remote ZIP archive and yield its entries as they decompress.

The archive is never held in memory: response chunks are handed to
``stream_unzip``, which walks the local file headers in order, so only the
entry currently being decompressed is buffered.
"""

import time
import zlib
from collections.abc import Callable, Iterable, Iterator
from pathlib import PurePosixPath

import requests
from loguru import logger
from stream_unzip import TruncatedDataError, UnexpectedSignatureError, UnzipError, stream_unzip

from vosdroits_archive.config import (
    ARCHIVE_URL,
    CONNECT_TIMEOUT,
    DOCUMENT_ENTRY_PATTERN,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_TIMEOUT,
    HIERARCHY_ENTRY_NAME,
    READ_TIMEOUT,
)
from vosdroits_archive.models.document import ArchiveEntry, EntryRoute

# Errors that say nothing about one entry: the stream itself is unusable.
_STREAM_ERRORS = (TruncatedDataError, UnexpectedSignatureError)


class ArchiveDownloadError(RuntimeError):
    """The archive could not be fetched (bad status, missing body, network error)."""


class DownloadTimeoutError(ArchiveDownloadError):
    """The download exceeded its wall-clock budget."""


class ArchiveFormatError(ValueError):
    """The byte stream is not a ZIP archive we can walk."""


def classify_entry(name: str) -> EntryRoute:
    """Route an entry by its basename."""
    if name.endswith("/"):
        return EntryRoute.IGNORED
    basename = PurePosixPath(name).name
    if basename == HIERARCHY_ENTRY_NAME:
        return EntryRoute.HIERARCHY
    if DOCUMENT_ENTRY_PATTERN.match(basename):
        return EntryRoute.DOCUMENT
    return EntryRoute.IGNORED


def _read_member(chunks: Iterable[bytes], *, keep: bool) -> bytes:
    # stream_unzip requires every member to be consumed before the next one.
    if not keep:
        for _chunk in chunks:
            pass
        return b""
    return b"".join(chunks)


class ArchiveStreamReader:
    """Download a ZIP archive over HTTP and yield its routed entries.

    Each entry is yielded as soon as it finishes decompressing. Transport
    failures abort the iteration with ArchiveDownloadError; the whole
    download is bounded by ``timeout`` seconds of wall clock.

    An entry that fails to decompress or fails its integrity check is
    counted in ``entry_errors`` and the walk ends there without raising:
    the entries already yielded stand. A truncated or non-ZIP stream
    raises ArchiveFormatError.
    """

    def __init__(
        self,
        url: str = ARCHIVE_URL,
        *,
        session: requests.Session | None = None,
        timeout: float = DOWNLOAD_TIMEOUT,
        chunk_size: int = DOWNLOAD_CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self.sess = session or requests.Session()
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._clock = clock
        self.entry_errors = 0
        self.entries_seen = 0
        self.bytes_read = 0

    def iter_entries(self) -> Iterator[ArchiveEntry]:
        deadline = self._clock() + self.timeout
        logger.info("Downloading archive {}", self.url)

        try:
            response = self.sess.get(
                self.url, stream=True, timeout=(CONNECT_TIMEOUT, READ_TIMEOUT)
            )
        except requests.RequestException as exc:
            msg = f"Archive download failed: {exc}"
            raise ArchiveDownloadError(msg) from exc

        with response:
            if not 200 <= response.status_code < 300:
                msg = f"Archive download failed: HTTP {response.status_code}"
                raise ArchiveDownloadError(msg)
            if response.raw is None:
                msg = "Archive download failed: response has no body"
                raise ArchiveDownloadError(msg)

            yield from self._unzip(self._download(response, deadline))

        logger.info(
            "Archive read: {} entries, {} bytes, {} entry errors",
            self.entries_seen, self.bytes_read, self.entry_errors,
        )

    def _download(self, response: requests.Response, deadline: float) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if self._clock() > deadline:
                    msg = (
                        f"Archive download exceeded {self.timeout:.0f}s "
                        f"after {self.bytes_read} bytes"
                    )
                    raise DownloadTimeoutError(msg)
                self.bytes_read += len(chunk)
                yield chunk
        except requests.RequestException as exc:
            msg = f"Archive download failed after {self.bytes_read} bytes: {exc}"
            raise ArchiveDownloadError(msg) from exc

    def _unzip(self, chunks: Iterable[bytes]) -> Iterator[ArchiveEntry]:
        members = stream_unzip(chunks)
        name = "<archive start>"
        try:
            for raw_name, _size, member_chunks in members:
                name = raw_name.decode("utf-8", errors="replace")
                route = classify_entry(name)
                self.entries_seen += 1
                data = _read_member(member_chunks, keep=route is not EntryRoute.IGNORED)
                if route is not EntryRoute.IGNORED:
                    yield ArchiveEntry(name, data, route)
        except _STREAM_ERRORS as exc:
            msg = (
                f"Archive stream unreadable after {self.entries_seen} entries "
                f"({type(exc).__name__}: {exc})"
            )
            raise ArchiveFormatError(msg) from exc
        except (UnzipError, zlib.error) as exc:
            # A broken entry leaves no position to resume from.
            self.entry_errors += 1
            logger.error(
                "Archive entry {} is corrupt ({}: {}); stopping after {} entries",
                name, type(exc).__name__, exc, self.entries_seen,
            )
