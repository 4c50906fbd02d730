"""
HTTP transport for track downloads.

One aiohttp session is shared by every transfer of a run so that cookies set
by the store's servers persist from one track to the next.
"""

import asyncio
import logging
import pickle
from pathlib import Path
from typing import Awaitable, Callable, Optional, TextIO

import aiohttp

from amz_cli import __version__
from amz_cli.exceptions import RangeNotSatisfiableError, TransferError

log = logging.getLogger(__name__)

USER_AGENT = f"Amazon MP3 Downloader (amz-cli {__version__})"
CHUNK_SIZE = 65536

ChunkSink = Callable[[bytes], Awaitable[None]]
ProgressSink = Callable[[int, Optional[int]], None]


class HttpTransport:
    """
    Performs resumable GET requests.

    Redirects are followed, HTTP error statuses are failures, and cookies are
    kept for the lifetime of the transport (and across runs when a cookie
    file is given).
    """

    def __init__(
        self,
        cookie_file: Optional[Path] = None,
        user_agent: str = USER_AGENT,
    ):
        self.cookie_file = cookie_file
        self.user_agent = user_agent
        self._session: Optional[aiohttp.ClientSession] = None
        self._transcript: Optional[TextIO] = None

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def set_transcript(self, stream: Optional[TextIO]) -> None:
        """Directs a transcript of request and response headers to `stream`."""
        self._transcript = stream

    def _load_cookies(self, jar: aiohttp.CookieJar) -> None:
        if not self.cookie_file or not self.cookie_file.is_file():
            return
        try:
            jar.load(self.cookie_file)
        except (OSError, EOFError, ValueError, pickle.UnpicklingError) as e:
            log.debug(f"Ignoring unreadable cookie file '{self.cookie_file}': {e}")

    def _save_cookies(self, jar) -> None:
        if not self.cookie_file or not isinstance(jar, aiohttp.CookieJar):
            return
        try:
            self.cookie_file.parent.mkdir(parents=True, exist_ok=True)
            jar.save(self.cookie_file)
        except OSError as e:
            log.debug(f"Could not save cookies to '{self.cookie_file}': {e}")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session and not self._session.closed:
            return self._session

        jar = aiohttp.CookieJar()
        self._load_cookies(jar)
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        self._session = aiohttp.ClientSession(
            cookie_jar=jar,
            timeout=timeout,
            raise_for_status=True,
            auto_decompress=False,
            headers={
                "User-Agent": self.user_agent,
                # Byte ranges must refer to the stored representation.
                "Accept-Encoding": "identity",
            },
            trace_configs=[self._trace_config()],
        )
        log.debug("Created download session")
        return self._session

    async def close(self) -> None:
        """Saves cookies and closes the session."""
        if self._session and not self._session.closed:
            self._save_cookies(self._session.cookie_jar)
            await self._session.close()
            log.debug("Download session closed.")
        self._session = None

    async def fetch(
        self,
        url: str,
        offset: int,
        sink: ChunkSink,
        progress: Optional[ProgressSink] = None,
    ) -> int:
        """
        Downloads `url` starting at byte `offset`, passing each chunk to `sink`.

        `progress` receives the number of bytes received so far and the
        number of bytes the server announced for this response, or None
        when it did not announce a length.

        Returns:
            The number of bytes received.

        Raises:
            RangeNotSatisfiableError: The server answered 416.
            TransferError: Any other HTTP or network failure.
        """
        session = await self._ensure_session()
        headers = {"Range": f"bytes={offset}-"} if offset > 0 else {}

        try:
            async with session.get(url, headers=headers, allow_redirects=True) as response:
                if offset > 0 and response.status != 206:
                    raise TransferError(
                        f"Server ignored the request to resume at byte {offset}"
                    )

                total = response.content_length
                received = 0
                if progress:
                    progress(received, total)

                async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                    await sink(chunk)
                    received += len(chunk)
                    if progress:
                        progress(received, total)
                return received
        except aiohttp.ClientResponseError as e:
            if e.status == 416:
                raise RangeNotSatisfiableError(
                    f"HTTP 416: requested range not satisfiable ({url})"
                ) from e
            raise TransferError(f"HTTP {e.status}: {e.message}") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransferError(str(e) or type(e).__name__) from e

    def _write_transcript(self, marker: str, text: str) -> None:
        if self._transcript is None:
            return
        for line in text.splitlines() or [""]:
            self._transcript.write(f"{marker} {line}\n")
        self._transcript.flush()

    def _trace_config(self) -> aiohttp.TraceConfig:
        trace = aiohttp.TraceConfig()
        trace.on_request_start.append(self._on_request_start)
        trace.on_request_redirect.append(self._on_response)
        trace.on_request_end.append(self._on_response)
        trace.on_request_exception.append(self._on_request_exception)
        return trace

    async def _on_request_start(self, session, context, params) -> None:
        lines = [f"{params.method} {params.url}"]
        lines += [f"{key}: {value}" for key, value in params.headers.items()]
        self._write_transcript(">", "\n".join(lines))

    async def _on_response(self, session, context, params) -> None:
        response = params.response
        lines = [
            f"HTTP/{response.version.major}.{response.version.minor} "
            f"{response.status} {response.reason}"
        ]
        lines += [f"{key}: {value}" for key, value in response.headers.items()]
        self._write_transcript("<", "\n".join(lines))

    async def _on_request_exception(self, session, context, params) -> None:
        self._write_transcript("*", f"{params.method} {params.url}: {params.exception}")
