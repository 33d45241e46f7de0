"""
MCP Method Handlers

- tools: Tool listing and execution
"""
