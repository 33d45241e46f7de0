"""
Command-line entry point for the Sumble MCP server.

    sumble-mcp                      # SSE transport on $PORT (default 10000)
    sumble-mcp --transport stdio    # newline-delimited JSON-RPC on stdin/stdout
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import uvicorn

from . import __version__
from .config import ConfigError, load_settings
from .mcp.dispatcher import Dispatcher
from .mcp.server import create_app
from .mcp.stdio import run_stdio
from .services.sumble_client import SumbleClient

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sumble MCP Server")
    parser.add_argument("--transport", choices=["sse", "stdio"], default="sse", help="MCP transport to serve")
    parser.add_argument("--host", help="Bind address (overrides $HOST)")
    parser.add_argument("--port", type=int, help="Listening port (overrides $PORT)")
    parser.add_argument("--log-level", help="Logging level (overrides $LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI function."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if args.log_level:
        overrides["log_level"] = args.log_level.upper()
    if overrides:
        settings = settings.model_copy(update=overrides)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.transport == "stdio":
        client = SumbleClient(
            api_key=settings.api_key,
            base_url=settings.api_base,
            timeout=settings.request_timeout,
        )
        asyncio.run(run_stdio(Dispatcher(client, tool_errors_as_results=True)))
        return 0

    app = create_app(settings)
    logger.info(f"Sumble MCP Server running on port {settings.port}")
    logger.info(f"SSE endpoint: http://localhost:{settings.port}/sse")
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
