"""
MCP Server - FastAPI Application

Implements the MCP SSE transport:
- GET /sse opens an event stream and advertises the message endpoint
- POST /message?sessionId=... submits JSON-RPC requests for that stream
- GET / and /health report liveness

JSON-RPC responses are delivered on the session's event stream; the POST
itself is only acknowledged with 202.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Receive, Scope, Send

from .. import __version__
from ..config import Settings
from ..services.sumble_client import SumbleClient
from .dispatcher import SERVER_NAME, Dispatcher
from .models import JSONRPCRequest
from .transport import SessionRegistry, event_stream, external_base_url

logger = logging.getLogger(__name__)

CORS_OPTIONS = {
    "allow_origins": ["*"],
    "allow_methods": ["GET", "POST", "OPTIONS"],
    "allow_headers": ["Content-Type", "Authorization", "Mcp-Session-Id"],
    "expose_headers": ["Mcp-Session-Id"],
}

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ", ".join(CORS_OPTIONS["allow_methods"]),
    "Access-Control-Allow-Headers": ", ".join(CORS_OPTIONS["allow_headers"]),
    "Access-Control-Expose-Headers": ", ".join(CORS_OPTIONS["expose_headers"]),
}

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class PreflightMiddleware:
    """Answers any OPTIONS request with an empty 204 before routing."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            response = Response(status_code=204, headers=PREFLIGHT_HEADERS)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)


def create_app(settings: Settings, client: Optional[SumbleClient] = None) -> FastAPI:
    """
    Build the MCP FastAPI application.

    Args:
        settings: Server settings
        client: Sumble API client (built from settings when omitted)

    Returns:
        Configured FastAPI app
    """
    if client is None:
        client = SumbleClient(
            api_key=settings.api_key,
            base_url=settings.api_base,
            timeout=settings.request_timeout,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.sessions.close_all()

    app = FastAPI(
        title="Sumble MCP Server",
        description="Model Context Protocol server for the Sumble organization, job and people API",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = SessionRegistry()
    app.state.dispatcher = Dispatcher(client)

    app.add_middleware(CORSMiddleware, **CORS_OPTIONS)
    # outermost: every OPTIONS, preflight or not, is a bare 204
    app.add_middleware(PreflightMiddleware)

    # ========================================================================
    # Error Handlers
    # ========================================================================

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        """Unknown paths and methods are plain 404s."""
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/")
    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": __version__,
            "sessions": len(request.app.state.sessions),
        }

    # ========================================================================
    # SSE Transport
    # ========================================================================

    @app.get("/sse")
    async def open_stream(request: Request):
        """
        Open an MCP event stream.

        The first frame is an `endpoint` event carrying the absolute URL to
        POST messages to; responses follow as `message` events.
        """
        registry: SessionRegistry = request.app.state.sessions
        session = registry.open()

        base_url = external_base_url(request.headers, request.url.scheme, request.url.netloc)
        endpoint_url = f"{base_url}{settings.message_path}?sessionId={session.id}"

        return StreamingResponse(
            event_stream(registry, session, endpoint_url, settings.keepalive_interval),
            media_type="text/event-stream",
            headers={**SSE_HEADERS, "Mcp-Session-Id": session.id},
        )

    @app.post("/message", status_code=202)
    @app.post("/messages", status_code=202)
    async def submit_message(request: Request):
        """
        Submit one JSON-RPC message for an open session.

        The JSON-RPC response (if any) is written to the session's stream
        before this request is acknowledged.
        """
        session_id = request.query_params.get("sessionId")
        session = request.app.state.sessions.get(session_id)
        if session is None:
            logger.warning(f"Rejected message for unknown session: {session_id}")
            return JSONResponse(status_code=400, content={"error": "Invalid or expired session"})

        body = await request.body()
        try:
            message = JSONRPCRequest.model_validate_json(body)
        except ValidationError as e:
            detail = e.errors()[0]["msg"] if e.errors() else str(e)
            logger.warning(f"Rejected malformed message for session {session_id}: {detail}")
            return JSONResponse(status_code=400, content={"error": f"Invalid JSON-RPC message: {detail}"})

        response = await request.app.state.dispatcher.dispatch(message)
        if response is not None:
            session.send(response)
            logger.info(f"Sending response for message id: {message.id}")

        return JSONResponse(status_code=202, content={"status": "accepted"})

    return app
