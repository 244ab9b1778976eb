"""Shared pytest fixtures: small configs, on-disk images and a fake HTTP session."""

import io
import struct
import threading
import zlib
from pathlib import Path

import pytest
import requests
from PIL import Image

from weatherdesk.config import DesktopConfig


def write_image(path, size=(8, 6), color=(255, 0, 0), fmt="PNG", mode="RGB"):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path, format=fmt)
    return path


def image_bytes(size=(4, 4), color=(0, 128, 255), fmt="PNG"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content


class FakeSession:
    """Serves scripted responses per URL; the last entry repeats forever."""

    def __init__(self, routes):
        self.routes = {url: list(outcomes) for url, outcomes in routes.items()}
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, timeout=None):
        with self._lock:
            self.calls.append((url, timeout))
            outcomes = self.routes.get(url)
            if not outcomes:
                raise requests.ConnectionError(f"no route for {url}")
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def attempts(self, url):
        return sum(1 for called, _ in self.calls if called == url)

    def close(self):
        pass


@pytest.fixture
def config(tmp_path):
    cfg = DesktopConfig(
        base_dir=tmp_path,
        retry_delay=0.0,
        max_workers=4,
        canvas_size=(32, 18),
    )
    cfg.ensure_directories()
    cfg.graphics_dir.mkdir(parents=True, exist_ok=True)
    return cfg


@pytest.fixture
def no_sleep():
    delays = []
    return delays.append, delays


@pytest.fixture
def make_image():
    return write_image


@pytest.fixture
def png_bytes():
    return image_bytes


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def ok_response():
    def _make(content=None, status_code=200):
        return FakeResponse(status_code, image_bytes() if content is None else content)

    return _make


def write_oversized_png(path, size=(30000, 30000)):
    """A PNG whose header claims ``size`` but carries no pixel data."""

    def chunk(kind, data):
        body = kind + data
        return struct.pack(">I", len(data)) + body + struct.pack(">I", zlib.crc32(body) & 0xFFFFFFFF)

    header = struct.pack(">IIBBBBB", size[0], size[1], 8, 2, 0, 0, 0)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b""))
        + chunk(b"IEND", b"")
    )
    return path


@pytest.fixture
def make_oversized_png():
    return write_oversized_png
