"""
Stdio transport: newline-delimited JSON-RPC on stdin/stdout.

Used when an MCP client launches the server as a subprocess. Logging goes to
stderr, so stdout carries nothing but response envelopes.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional, TextIO

from pydantic import ValidationError

from .dispatcher import Dispatcher
from .models import PARSE_ERROR, JSONRPCError, JSONRPCRequest, JSONRPCResponse

logger = logging.getLogger(__name__)


async def handle_line(dispatcher: Dispatcher, line: str) -> Optional[Dict[str, Any]]:
    """Dispatch one input line; returns the envelope to write, if any."""
    line = line.strip()
    if not line:
        return None

    try:
        message = JSONRPCRequest.model_validate_json(line)
    except ValidationError as e:
        logger.error(f"Could not parse stdin message: {e}")
        return JSONRPCResponse(
            id=None,
            error=JSONRPCError(code=PARSE_ERROR, message="Parse error"),
        ).to_wire()

    return await dispatcher.dispatch(message)


async def run_stdio(dispatcher: Dispatcher, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
    """Serve requests from stdin until EOF."""
    logger.info("Sumble MCP Server running on stdio")
    loop = asyncio.get_running_loop()

    while True:
        line = await loop.run_in_executor(None, stdin.readline)
        if not line:
            break

        response = await handle_line(dispatcher, line)
        if response is not None:
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()

    logger.info("stdin closed, shutting down")
