"""
JSON-RPC method dispatch shared by the SSE and stdio transports.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .. import __version__
from ..services.sumble_client import SumbleClient, SumbleRequestError
from .handlers import tools
from .models import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    TOOL_EXECUTION_ERROR,
    JSONRPCError,
    JSONRPCRequest,
    JSONRPCResponse,
    ToolCallRequest,
)

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "sumble-mcp-server"


class Dispatcher:
    """
    Routes JSON-RPC requests to the MCP method handlers.

    With tool_errors_as_results, a failed tools/call is answered with an
    `isError` result instead of a -32000 error envelope.
    """

    def __init__(self, client: SumbleClient, tool_errors_as_results: bool = False):
        self.client = client
        self.tool_errors_as_results = tool_errors_as_results

    async def dispatch(self, message: JSONRPCRequest) -> Optional[Dict[str, Any]]:
        """
        Handle one JSON-RPC message.

        Returns:
            The response envelope, or None for notifications
        """
        logger.info(f"Received message: {message.method}")

        if message.is_notification:
            return None

        try:
            if message.method == "initialize":
                response = self._result(message, self.initialize())
            elif message.method == "tools/list":
                response = self._result(message, tools.list_tools().model_dump())
            elif message.method == "tools/call":
                response = await self._call_tool(message)
            else:
                response = self._error(message, METHOD_NOT_FOUND, "Method not found")
        except Exception as e:
            logger.error(f"Error handling {message.method}: {e}", exc_info=True)
            response = self._error(message, INTERNAL_ERROR, "Internal error")

        return response.to_wire()

    def initialize(self) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def _call_tool(self, message: JSONRPCRequest) -> JSONRPCResponse:
        params = message.params or {}
        tool_name = params.get("name")
        try:
            request = ToolCallRequest.model_validate(params)
            result = await tools.call_tool(self.client, request)
        except ValidationError as e:
            logger.error(f"Tool {tool_name} failed: invalid arguments: {e}")
            return self._tool_error(message, f"Invalid arguments for {tool_name}: {e}")
        except (ValueError, SumbleRequestError) as e:
            logger.error(f"Tool {tool_name} failed: {e}")
            return self._tool_error(message, str(e))

        return self._result(message, result.model_dump())

    def _tool_error(self, message: JSONRPCRequest, text: str) -> JSONRPCResponse:
        if self.tool_errors_as_results:
            return self._result(message, {
                "content": [{"type": "text", "text": f"Error: {text}"}],
                "isError": True,
            })
        return self._error(message, TOOL_EXECUTION_ERROR, text)

    @staticmethod
    def _result(message: JSONRPCRequest, result: Dict[str, Any]) -> JSONRPCResponse:
        return JSONRPCResponse(id=message.id, result=result)

    @staticmethod
    def _error(message: JSONRPCRequest, code: int, text: str) -> JSONRPCResponse:
        return JSONRPCResponse(id=message.id, error=JSONRPCError(code=code, message=text))
