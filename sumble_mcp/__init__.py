"""
Sumble MCP Server

Exposes the Sumble organization, job and people search API as Model Context
Protocol tools over an SSE transport (or stdio).
"""

__version__ = "1.0.0"
