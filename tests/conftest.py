import base64
from typing import Optional

import pytest
from Crypto.Cipher import DES
from rich.console import Console

from amz_cli.cli.progress_manager import ProgressManager
from amz_cli.exceptions import RangeNotSatisfiableError, TransferError
from amz_cli.manifest.decoder import LEGACY_IV, LEGACY_KEY
from amz_cli.models.config import DownloadConfig


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Points HOME and XDG_CONFIG_HOME into the test's temp dir."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    return home


def encrypt_manifest(markup: bytes, line_length: int = 76) -> bytes:
    """Builds an encrypted .amz file the way the store issues them."""
    padded = markup + b"\x00" * (-len(markup) % DES.block_size)
    ciphertext = DES.new(LEGACY_KEY, DES.MODE_CBC, iv=LEGACY_IV).encrypt(padded)
    encoded = base64.b64encode(ciphertext)
    lines = [
        encoded[i : i + line_length] for i in range(0, len(encoded), line_length)
    ]
    return b"\r\n".join(lines) + b"\r\n"


SAMPLE_MANIFEST = b"""<?xml version="1.0" encoding="UTF-8"?>
<playlist version="1" xmlns="http://xspf.org/ns/0/">
  <title>Greatest Hits</title>
  <creator>The Band</creator>
  <meta rel="http://www.amazon.com/dmusic/ASIN">B000PLAYLST</meta>
  <trackList>
    <track>
      <location>http://example.invalid/one.mp3</location>
      <title>First Song</title>
      <creator>The Band</creator>
      <album>Greatest Hits</album>
      <trackNum>1</trackNum>
      <meta rel="http://www.amazon.com/dmusic/trackType">mp3</meta>
    </track>
    <track>
      <location>http://example.invalid/two.mp3</location>
      <title>Second Song</title>
      <trackNum>2</trackNum>
    </track>
  </trackList>
</playlist>
"""


class FakeTransport:
    """
    Stands in for HttpTransport. Each entry of `script` drives one fetch
    call: bytes are delivered as the body, an exception is raised, and a
    `(bytes, exception)` pair delivers the bytes and then fails.
    """

    def __init__(self, script, total: Optional[int] = -1, chunk_size: int = 4):
        self.script = list(script)
        self.total = total
        self.chunk_size = chunk_size
        self.calls = []
        self.transcript = None

    def set_transcript(self, stream):
        self.transcript = stream

    async def fetch(self, url, offset, sink, progress=None):
        self.calls.append((url, offset))
        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        error = None
        if isinstance(step, tuple):
            step, error = step

        total = len(step) if self.total == -1 else self.total
        received = 0
        if progress:
            progress(received, total)
        for i in range(0, len(step), self.chunk_size):
            chunk = step[i : i + self.chunk_size]
            await sink(chunk)
            received += len(chunk)
            if progress:
                progress(received, total)
        if error is not None:
            raise error
        return received

    async def close(self):
        pass


@pytest.fixture
def fake_transport_factory():
    return FakeTransport


@pytest.fixture
def transfer_error():
    return TransferError("HTTP 503: Service Unavailable")


@pytest.fixture
def range_error():
    return RangeNotSatisfiableError("HTTP 416: requested range not satisfiable")


@pytest.fixture
def quiet_console():
    return Console(file=None, quiet=True)


@pytest.fixture
def progress_manager(quiet_console):
    return ProgressManager(quiet_console, disabled=True)


@pytest.fixture
def download_config(tmp_path):
    return DownloadConfig(
        output_dir=str(tmp_path / "music"),
        allow_uppercase=False,
        allow_utf8=False,
        forbid_chars='!"$*:;<>?\\`|~',
        retry_delay=0,
    )
