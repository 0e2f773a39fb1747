"""
Core pytest configuration and fixtures for Bayan testing.

This module provides shared test data, fake collaborators (gateway, HTTP
session, proxy client) and app fixtures used across unit and integration
tests.
"""

import json
import tempfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock
from urllib.parse import urlsplit

import pytest
from bayan.models import ASSISTANT_ROLE, USER_ROLE, ChatMessage, SavedChat

# ===== HELPERS =====


def sse(content: Optional[str]) -> str:
    """One ``data:`` line carrying ``content`` as a delta."""
    delta = {} if content is None else {"content": content}
    return f"data: {json.dumps({'choices': [{'delta': delta}]}, ensure_ascii=False)}\n"


def split_every(data: bytes, size: int) -> List[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


class FakeResponse:
    """Stands in for a streamed ``requests.Response``."""

    def __init__(self, status_code=200, chunks=(), body=None, raw=True):
        self.status_code = status_code
        self.ok = status_code < 400
        self.raw = object() if raw else None
        self.closed = False
        self._chunks = list(chunks)
        self._body = body

    def iter_content(self, chunk_size=None):
        for chunk in self._chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body

    def close(self):
        self.closed = True


class FakeChatClient:
    """Proxy client replaying canned deltas, or failing with ``error``."""

    def __init__(
        self, deltas=("مرحباً", " بك"), error=None, poetry="قصيدة", poetry_error=None
    ):
        self.deltas = list(deltas)
        self.error = error
        self.poetry = poetry
        self.poetry_error = poetry_error
        self.sent = []
        self.poetry_requests = []

    def stream_chat(self, messages, on_text=None):
        self.sent.append([msg.model_copy(deep=True) for msg in messages])
        text = ""
        for delta in self.deltas:
            text += delta
            if on_text:
                on_text(text)
        if self.error is not None:
            raise self.error
        return text

    def generate_poetry(self, topic, style=None):
        self.poetry_requests.append((topic, style))
        if self.poetry_error is not None:
            raise self.poetry_error
        return self.poetry


class FlaskTestHTTP:
    """A ``requests.Session`` look-alike backed by a Flask test client.

    Response bodies are re-chunked into small pieces so the stream decoder
    sees boundaries that do not line up with lines or characters.
    """

    def __init__(self, test_client, chunk_size=7):
        self.test_client = test_client
        self.chunk_size = chunk_size
        self.requests = []

    def post(self, url, json=None, headers=None, stream=False, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        response = self.test_client.post(urlsplit(url).path, json=json, headers=headers)
        data = response.get_data()
        return FakeResponse(
            status_code=response.status_code,
            chunks=split_every(data, self.chunk_size),
            body=response.get_json(silent=True),
        )


# ===== TEST DATA FIXTURES =====


@pytest.fixture
def sample_messages() -> List[ChatMessage]:
    """A two-turn conversation."""
    return [
        ChatMessage(role=USER_ROLE, content="ما هي عاصمة المغرب؟"),
        ChatMessage(role=ASSISTANT_ROLE, content="عاصمة المغرب هي الرباط."),
    ]


@pytest.fixture
def saved_chat(sample_messages) -> SavedChat:
    return SavedChat(
        id="1700000000000",
        title="ما هي عاصمة المغرب؟",
        messages=sample_messages,
        timestamp=1700000000000,
    )


@pytest.fixture
def image_data_uri() -> str:
    return "data:image/png;base64,iVBORw0KGgo="


# ===== DIRECTORY FIXTURES =====


@pytest.fixture
def temp_dir():
    """Temporary directory for file-based tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def isolated_data_dir(monkeypatch):
    """Keeps the archive and the background job cache out of the home directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        monkeypatch.setattr("bayan.config.DATA_DIR", Path(tmpdir))
        yield Path(tmpdir)


# ===== MOCK FIXTURES =====


@pytest.fixture
def mock_llm():
    """Mock upstream gateway for the proxy endpoints."""
    mock = MagicMock()
    mock.stream_response.return_value = iter(
        [sse("مرحبا").encode("utf-8"), b"data: [DONE]\n\n"]
    )
    mock.generate_response.return_value = {
        "choices": [{"message": {"content": "قصيدة"}}]
    }
    mock.extract_content.return_value = "قصيدة"
    return mock


@pytest.fixture
def fake_client():
    return FakeChatClient()


# ===== APP FIXTURES =====


@pytest.fixture
def proxy_server(mock_llm):
    """A bare Flask server with the proxy endpoints mounted on ``mock_llm``."""
    from bayan.proxy import register_proxy
    from flask import Flask

    server = Flask(__name__)
    register_proxy(server, mock_llm)
    return server


@pytest.fixture
def test_app():
    """
    A Bayan app on the offline Echo gateway and an in-memory archive, whose
    client talks to the app's own proxy endpoints through Flask's test client.
    """
    from bayan import Bayan
    from bayan.client import ProxyClient
    from bayan.llm import Echo
    from bayan.store import InMemory

    app = Bayan(llm=Echo(), store=InMemory(), client=MagicMock())
    app.client = ProxyClient(
        base_url="http://testserver",
        public_key="public-key",
        http=FlaskTestHTTP(app.server.test_client()),
    )
    return app


# ===== CONFIGURATION =====


def pytest_configure(config):
    """Pytest configuration."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on location."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
