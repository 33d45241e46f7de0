"""
Tests for the MCP SSE server endpoints

Tests cover:
- Health, CORS and routing
- Session validation on message submission
- JSON-RPC dispatch delivered on the session stream
- Tool calls against a mocked Sumble API
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from starlette.requests import Request

from tests.conftest import make_response, parse_frame


def post(client, session_id, message, path="/message"):
    return client.post(f"{path}?sessionId={session_id}", json=message)


def delivered(session):
    """JSON-RPC envelopes written to the session stream so far."""
    envelopes = []
    for frame in session.pending_frames():
        event, data = parse_frame(frame)
        assert event == "message"
        envelopes.append(json.loads(data))
    return envelopes


# ============================================================================
# Health Check Tests
# ============================================================================

@pytest.mark.parametrize("path", ["/", "/health"])
def test_health_check(client, path):
    response = client.get(path)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["server"] == "sumble-mcp-server"


def test_health_reports_open_sessions(client, session):
    assert client.get("/health").json()["sessions"] == 1


# ============================================================================
# CORS and Routing Tests
# ============================================================================

ORIGIN = {"Origin": "http://client.example"}


def test_cors_headers_on_cross_origin_response(client):
    response = client.get("/health", headers=ORIGIN)
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-expose-headers"] == "Mcp-Session-Id"


def test_cors_handled_by_library_middleware(app):
    assert "CORSMiddleware" in [m.cls.__name__ for m in app.user_middleware]


@pytest.mark.parametrize("path", ["/", "/sse", "/message", "/does/not/exist"])
def test_options_any_path_returns_204(client, path):
    response = client.options(path)
    assert response.status_code == 204
    assert response.content == b""
    assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"
    assert "Mcp-Session-Id" in response.headers["access-control-allow-headers"]


def test_cors_preflight_returns_204(client):
    response = client.options("/message", headers={**ORIGIN, "Access-Control-Request-Method": "POST"})
    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"


def test_unknown_path_returns_404(client):
    response = client.get("/nope", headers=ORIGIN)
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}
    assert response.headers["access-control-allow-origin"] == "*"


def test_wrong_method_returns_404(client):
    assert client.get("/message").status_code == 404


# ============================================================================
# SSE Endpoint Tests
# ============================================================================

def _sse_request(app, headers):
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "path": "/sse",
        "raw_path": b"/sse",
        "query_string": b"",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "server": ("127.0.0.1", 10000),
        "client": ("127.0.0.1", 50000),
        "app": app,
    }
    return Request(scope)


def _sse_endpoint(app):
    return next(route.endpoint for route in app.routes if getattr(route, "path", None) == "/sse")


@pytest.mark.asyncio
async def test_sse_first_frame_is_endpoint(app):
    request = _sse_request(app, {"host": "localhost:10000"})
    response = await _sse_endpoint(app)(request)

    assert response.media_type == "text/event-stream"
    session_id = response.headers["mcp-session-id"]
    assert session_id in app.state.sessions

    event, data = parse_frame(await response.body_iterator.__anext__())
    assert event == "endpoint"
    assert data == f"http://localhost:10000/message?sessionId={session_id}"

    await response.body_iterator.aclose()
    assert session_id not in app.state.sessions


@pytest.mark.asyncio
async def test_sse_endpoint_respects_forwarding_headers(app):
    request = _sse_request(app, {
        "host": "internal:10000",
        "x-forwarded-proto": "https",
        "x-forwarded-host": "mcp.example.com",
    })
    response = await _sse_endpoint(app)(request)

    _, data = parse_frame(await response.body_iterator.__anext__())
    assert data.startswith("https://mcp.example.com/message?sessionId=")
    await response.body_iterator.aclose()


@pytest.mark.asyncio
async def test_sse_stream_delivers_queued_message_after_endpoint(app):
    request = _sse_request(app, {"host": "localhost"})
    response = await _sse_endpoint(app)(request)
    session = app.state.sessions.get(response.headers["mcp-session-id"])

    session.send({"jsonrpc": "2.0", "id": 1, "result": {}})
    frames = [await response.body_iterator.__anext__() for _ in range(2)]

    assert parse_frame(frames[0])[0] == "endpoint"
    assert parse_frame(frames[1]) == ("message", '{"jsonrpc": "2.0", "id": 1, "result": {}}')
    await response.body_iterator.aclose()


# ============================================================================
# Session Validation Tests
# ============================================================================

def test_message_unknown_session_rejected(client, session):
    response = post(client, "never-issued", {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid or expired session"}
    assert session.pending_frames() == []


def test_message_missing_session_id_rejected(client):
    response = client.post("/message", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert response.status_code == 400


def test_message_closed_session_rejected(client, app, session):
    app.state.sessions.close(session.id)
    response = post(client, session.id, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
    assert response.status_code == 400
    assert session.pending_frames() == []


@patch("sumble_mcp.services.sumble_client.requests.request")
def test_unknown_session_makes_no_upstream_call(mock_request, client):
    post(client, "bogus", {
        "jsonrpc": "2.0", "id": 1, "method": "tools/call",
        "params": {"name": "find_jobs", "arguments": {}},
    })
    mock_request.assert_not_called()


@pytest.mark.parametrize("body", [b"{not json", b"[1, 2]", b'{"id": 1}', b""])
def test_malformed_body_rejected(client, session, body):
    response = client.post(
        f"/message?sessionId={session.id}",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert "error" in response.json()
    assert session.pending_frames() == []


# ============================================================================
# JSON-RPC Dispatch Tests
# ============================================================================

def test_initialize(client, session):
    response = post(client, session.id, {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}})
    assert response.status_code == 202
    assert response.json() == {"status": "accepted"}

    [envelope] = delivered(session)
    assert envelope["id"] == 1
    assert envelope["result"]["protocolVersion"] == "2024-11-05"
    assert envelope["result"]["capabilities"] == {"tools": {}}
    assert envelope["result"]["serverInfo"]["name"] == "sumble-mcp-server"


def test_tools_list(client, session):
    post(client, session.id, {"jsonrpc": "2.0", "id": "a", "method": "tools/list"})

    [envelope] = delivered(session)
    assert envelope["id"] == "a"
    names = [tool["name"] for tool in envelope["result"]["tools"]]
    assert names == ["find_organizations", "enrich_organization", "find_jobs", "find_people"]


def test_notification_gets_no_envelope(client, session):
    response = post(client, session.id, {"jsonrpc": "2.0", "method": "notifications/initialized"})
    assert response.status_code == 202
    assert session.pending_frames() == []


def test_unknown_method(client, session):
    post(client, session.id, {"jsonrpc": "2.0", "id": 7, "method": "resources/list"})

    [envelope] = delivered(session)
    assert envelope["error"]["code"] == -32601
    assert envelope["error"]["message"] == "Method not found"
    assert "result" not in envelope


def test_messages_alias_path(client, session):
    response = post(client, session.id, {"jsonrpc": "2.0", "id": 1, "method": "tools/list"}, path="/messages")
    assert response.status_code == 202
    assert len(delivered(session)) == 1


def test_responses_preserve_sequential_submission_order(client, session):
    for i in range(3):
        post(client, session.id, {"jsonrpc": "2.0", "id": i, "method": "tools/list"})
    assert [envelope["id"] for envelope in delivered(session)] == [0, 1, 2]


# ============================================================================
# Tool Call Tests
# ============================================================================

REQUIRED_ARGUMENTS = {
    "find_organizations": {},
    "enrich_organization": {"domain": "example.com"},
    "find_jobs": {},
    "find_people": {"domain": "example.com"},
}


@pytest.mark.parametrize("tool_name", list(REQUIRED_ARGUMENTS))
@patch("sumble_mcp.services.sumble_client.requests.request")
def test_tool_call_success(mock_request, client, session, tool_name):
    mock_request.return_value = make_response(200, {"organizations": [{"name": "Example"}]})

    post(client, session.id, {
        "jsonrpc": "2.0", "id": 3, "method": "tools/call",
        "params": {"name": tool_name, "arguments": REQUIRED_ARGUMENTS[tool_name]},
    })

    [envelope] = delivered(session)
    assert "error" not in envelope
    content = envelope["result"]["content"]
    assert content[0]["type"] == "text"
    assert json.loads(content[0]["text"]) == {"organizations": [{"name": "Example"}]}

    _, kwargs = mock_request.call_args
    assert kwargs["headers"]["Authorization"] == "Bearer test-key"


@pytest.mark.parametrize("tool_name", list(REQUIRED_ARGUMENTS))
@patch("sumble_mcp.services.sumble_client.requests.request")
def test_tool_call_upstream_error(mock_request, client, app, session, tool_name):
    mock_request.return_value = make_response(402, text="Insufficient credits")

    response = post(client, session.id, {
        "jsonrpc": "2.0", "id": 4, "method": "tools/call",
        "params": {"name": tool_name, "arguments": REQUIRED_ARGUMENTS[tool_name]},
    })

    assert response.status_code == 202
    [envelope] = delivered(session)
    assert envelope["error"]["code"] == -32000
    assert envelope["error"]["message"] == "Sumble API error (402): Insufficient credits"
    assert session.id in app.state.sessions


@pytest.mark.parametrize("tool_name", ["enrich_organization", "find_people"])
@patch("sumble_mcp.services.sumble_client.requests.request")
def test_tool_call_missing_identifier(mock_request, client, session, tool_name):
    post(client, session.id, {
        "jsonrpc": "2.0", "id": 5, "method": "tools/call",
        "params": {"name": tool_name, "arguments": {"countries": ["US"]}},
    })

    [envelope] = delivered(session)
    assert envelope["error"]["code"] == -32000
    assert "domain, organization_id, or slug" in envelope["error"]["message"]
    mock_request.assert_not_called()


def test_tool_call_unknown_tool(client, session):
    post(client, session.id, {
        "jsonrpc": "2.0", "id": 6, "method": "tools/call",
        "params": {"name": "find_unicorns", "arguments": {}},
    })

    [envelope] = delivered(session)
    assert envelope["error"]["code"] == -32000
    assert envelope["error"]["message"] == "Unknown tool: find_unicorns"


@patch("sumble_mcp.services.sumble_client.requests.request")
def test_tool_call_find_jobs_request_body(mock_request, client, session):
    mock_request.return_value = make_response(200, {"jobs": []})

    post(client, session.id, {
        "jsonrpc": "2.0", "id": 8, "method": "tools/call",
        "params": {
            "name": "find_jobs",
            "arguments": {"technologies": ["react"], "countries": ["US"], "limit": 20},
        },
    })

    args, kwargs = mock_request.call_args
    assert args == ("POST", "https://api.sumble.test/v3/jobs/find")
    assert kwargs["json"] == {
        "filters": {"technologies": ["react"], "countries": ["US"]},
        "limit": 20,
        "offset": 0,
    }


def test_stream_closed_mid_flight_discards_result(client, app, session):
    async def close_then_answer(endpoint, method, body):
        app.state.sessions.close(session.id)
        return {"jobs": []}

    with patch.object(app.state.dispatcher.client, "arequest", AsyncMock(side_effect=close_then_answer)):
        response = post(client, session.id, {
            "jsonrpc": "2.0", "id": 9, "method": "tools/call",
            "params": {"name": "find_jobs", "arguments": {}},
        })

    assert response.status_code == 202
    assert session.closed
    assert session.pending_frames() == []
