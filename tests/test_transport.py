"""
Tests for the aiohttp transport against a local test server.
"""

import io

import pytest
import pytest_asyncio
from aiohttp import test_utils, web

from amz_cli.exceptions import RangeNotSatisfiableError, TransferError
from amz_cli.media.transport import HttpTransport

BODY = bytes(range(256)) * 4


async def handle_track(request: web.Request) -> web.Response:
    range_header = request.headers.get("Range")
    if not range_header:
        return web.Response(body=BODY)

    start = int(range_header[len("bytes=") :].rstrip("-"))
    if start >= len(BODY):
        return web.Response(status=416)
    return web.Response(
        status=206,
        body=BODY[start:],
        headers={"Content-Range": f"bytes {start}-{len(BODY) - 1}/{len(BODY)}"},
    )


async def handle_ignores_range(request: web.Request) -> web.Response:
    return web.Response(body=BODY)


async def handle_redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/track.mp3")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/track.mp3", handle_track)
    app.router.add_get("/no-range.mp3", handle_ignores_range)
    app.router.add_get("/moved.mp3", handle_redirect)
    return app


@pytest_asyncio.fixture
async def server():
    async with test_utils.TestServer(make_app()) as test_server:
        yield test_server


async def _fetch(transport, url, offset=0, progress=None):
    chunks = []

    async def sink(chunk):
        chunks.append(chunk)

    received = await transport.fetch(str(url), offset, sink, progress)
    return received, b"".join(chunks)


@pytest.mark.asyncio
class TestFetch:
    async def test_full_download(self, server):
        progress = []
        async with HttpTransport() as transport:
            received, body = await _fetch(
                transport,
                server.make_url("/track.mp3"),
                progress=lambda *args: progress.append(args),
            )

        assert body == BODY
        assert received == len(BODY)
        assert progress[0] == (0, len(BODY))
        assert progress[-1] == (len(BODY), len(BODY))

    async def test_resume_requests_a_range(self, server):
        async with HttpTransport() as transport:
            received, body = await _fetch(
                transport, server.make_url("/track.mp3"), offset=1000
            )

        assert body == BODY[1000:]
        assert received == len(BODY) - 1000

    async def test_range_past_the_end(self, server):
        async with HttpTransport() as transport:
            with pytest.raises(RangeNotSatisfiableError):
                await _fetch(transport, server.make_url("/track.mp3"), offset=len(BODY))

    async def test_ignored_range_is_an_error(self, server):
        async with HttpTransport() as transport:
            with pytest.raises(TransferError, match="resume"):
                await _fetch(transport, server.make_url("/no-range.mp3"), offset=10)

    async def test_redirects_are_followed(self, server):
        async with HttpTransport() as transport:
            _, body = await _fetch(transport, server.make_url("/moved.mp3"))
        assert body == BODY

    async def test_http_error_status(self, server):
        async with HttpTransport() as transport:
            with pytest.raises(TransferError, match="404"):
                await _fetch(transport, server.make_url("/missing.mp3"))

    async def test_connection_failure(self):
        async with HttpTransport() as transport:
            with pytest.raises(TransferError):
                await _fetch(transport, "http://127.0.0.1:1/track.mp3")


@pytest.mark.asyncio
class TestSessionState:
    async def test_transcript_records_headers(self, server):
        stream = io.StringIO()
        async with HttpTransport() as transport:
            transport.set_transcript(stream)
            await _fetch(transport, server.make_url("/moved.mp3"))

        lines = stream.getvalue().splitlines()
        assert any(line.startswith("> GET ") for line in lines)
        assert any(line.startswith("> User-Agent: Amazon MP3 Downloader") for line in lines)
        assert "< HTTP/1.1 302 Found" in lines
        assert "< HTTP/1.1 200 OK" in lines

    async def test_cookies_persist_between_runs(self, tmp_path):
        cookie_file = tmp_path / "cookies"

        first = HttpTransport(cookie_file=cookie_file)
        session = await first._ensure_session()
        session.cookie_jar.update_cookies({"session-id": "abc123"})
        await first.close()
        assert cookie_file.is_file()

        second = HttpTransport(cookie_file=cookie_file)
        session = await second._ensure_session()
        assert {cookie.key for cookie in session.cookie_jar} == {"session-id"}
        await second.close()

    async def test_unreadable_cookie_file_is_ignored(self, tmp_path):
        cookie_file = tmp_path / "cookies"
        cookie_file.write_bytes(b"not a cookie jar")

        transport = HttpTransport(cookie_file=cookie_file)
        session = await transport._ensure_session()
        assert len(session.cookie_jar) == 0
        await transport.close()

    async def test_session_is_reused(self):
        async with HttpTransport() as transport:
            assert await transport._ensure_session() is await transport._ensure_session()
