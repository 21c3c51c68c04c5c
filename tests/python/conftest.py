"""pytest configuration for replicate_client tests."""

import io
import json
import urllib.error

import pytest

from replicate_client import Client, ClientConfig


@pytest.fixture
def prediction_payload():
    """A prediction as returned by the API."""
    return {
        "id": "ufawqhfynnddngldkgtslldrkq",
        "model": "replicate/hello-world",
        "version": "5c7d5dc6dd8bf75c1acaa8565735e7986bc5b66206b55cca93cb72c9bf15ccaa",
        "input": {"text": "Alice"},
        "logs": "",
        "output": None,
        "error": None,
        "status": "starting",
        "source": "api",
        "created_at": "2022-04-26T22:13:06.224088Z",
        "urls": {
            "get": "https://api.replicate.com/v1/predictions/ufawqhfynnddngldkgtslldrkq",
            "cancel": "https://api.replicate.com/v1/predictions/ufawqhfynnddngldkgtslldrkq/cancel",
        },
    }


@pytest.fixture
def config():
    """Explicit settings so tests never depend on the environment."""
    return ClientConfig(
        api_token="test-token",
        base_url="https://api.example.com/v1",
        timeout=5.0,
        max_retries=2,
        retry_delay=0.0,
    )


@pytest.fixture
def client(config):
    return Client(config=config)


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeServer:
    """Stands in for urlopen: records requests, replays queued responses."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def add(self, body, status=200):
        if not isinstance(body, (bytes, str)):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.responses.append((status, body))

    def add_error(self, error):
        self.responses.append((None, error))

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        status, body = self.responses.pop(0)
        if status is None:
            raise body
        if status >= 400:
            raise urllib.error.HTTPError(req.full_url, status, "error", {}, io.BytesIO(body))
        return FakeResponse(body)

    @property
    def last(self):
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.data.decode("utf-8"))


@pytest.fixture
def server(monkeypatch):
    fake = FakeServer()
    monkeypatch.setattr("urllib.request.urlopen", fake)
    return fake
