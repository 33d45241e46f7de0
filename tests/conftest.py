import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from sumble_mcp.config import Settings
from sumble_mcp.mcp.server import create_app
from sumble_mcp.services.sumble_client import SumbleClient


def make_response(status_code=200, payload=None, text=None):
    """Fake requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text if text is not None else json.dumps(payload)
    if payload is None:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


def parse_frame(frame):
    """Split an SSE event frame into (event, data)."""
    event, data = None, []
    for line in frame.strip("\n").split("\n"):
        if line.startswith("event: "):
            event = line[len("event: "):]
        elif line.startswith("data: "):
            data.append(line[len("data: "):])
    return event, "\n".join(data)


@pytest.fixture
def settings():
    return Settings(api_key="test-key", keepalive_interval=0.05)


@pytest.fixture
def sumble_client():
    return SumbleClient(api_key="test-key", base_url="https://api.sumble.test", timeout=5)


@pytest.fixture
def app(settings, sumble_client):
    return create_app(settings, client=sumble_client)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def session(app):
    """An open session registered directly in the app's registry."""
    return app.state.sessions.open()
