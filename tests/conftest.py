"""Pytest configuration and shared fixtures."""

import re
from typing import Callable, Dict, List
from unittest.mock import AsyncMock, patch

import httpx
import pytest

API_URL = "http://backend.test"


@pytest.fixture(autouse=True)
def backend_url(monkeypatch):
    """Point every client at a fake backend."""
    from tuneflow.core.config import settings

    monkeypatch.setattr(settings, "API_URL", API_URL)
    return API_URL


@pytest.fixture
def mock_sleep():
    """Make backoff delays instant and record them."""
    with patch("tuneflow.upload.chunk_uploader.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


def parse_multipart(request: httpx.Request) -> Dict[str, bytes]:
    """Split a multipart request body into ``{field name: raw bytes}``."""
    boundary = request.headers["content-type"].split("boundary=")[1].encode()
    fields: Dict[str, bytes] = {}
    for part in request.content.split(b"--" + boundary):
        head, separator, body = part.partition(b"\r\n\r\n")
        if not separator:
            continue
        name = re.search(rb'name="([^"]+)"', head)
        if name:
            fields[name.group(1).decode()] = body[:-2]
    return fields


@pytest.fixture
def multipart() -> Callable[[httpx.Request], Dict[str, bytes]]:
    return parse_multipart


class RecordingBackend:
    """Fake backend that records requests and replays scripted responses.

    ``responder`` receives the request and its parsed form fields and
    returns an ``httpx.Response`` or raises an ``httpx`` transport error.
    """

    def __init__(self, responder):
        self.responder = responder
        self.requests: List[httpx.Request] = []
        self.forms: List[Dict[str, bytes]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = parse_multipart(request)
        self.requests.append(request)
        self.forms.append(form)
        return self.responder(request, form)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def backend_factory():
    return RecordingBackend
