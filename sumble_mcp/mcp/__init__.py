"""
Model Context Protocol (MCP) Server

This package implements an MCP server that exposes the Sumble tools:
- find_organizations, enrich_organization, find_jobs, find_people

Clients connect over Server-Sent Events (GET /sse, POST /message) or stdio.
"""
