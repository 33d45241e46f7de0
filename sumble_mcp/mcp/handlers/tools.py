"""
MCP Tool Handlers

Declares the four Sumble tools (descriptors, argument models, request-body
builders) and executes tools/call against the Sumble API.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Type, get_args

from pydantic import BaseModel

from ...services.sumble_client import SumbleClient
from ..models import (
    EnrichOrganizationArguments,
    FindJobsArguments,
    FindOrganizationsArguments,
    FindPeopleArguments,
    OrderByColumn,
    OrganizationIdentifier,
    ToolCallRequest,
    ToolCallResponse,
    ToolDefinition,
    ToolListResponse,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Shared schema fragments
# ============================================================================

def _string_list(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _since(description: str = "Only consider data since this date. Format: YYYY-MM-DD") -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _limit(maximum: int, noun: str) -> Dict[str, Any]:
    return {
        "type": "integer",
        "minimum": 1,
        "maximum": maximum,
        "default": 10,
        "description": f"Maximum number of {noun} to return (1-{maximum})",
    }


OFFSET_SCHEMA = {
    "type": "integer",
    "minimum": 0,
    "maximum": 10000,
    "default": 0,
    "description": "Number of results to skip for pagination",
}

IDENTIFIER_ONE_OF = [
    {"required": ["domain"]},
    {"required": ["organization_id"]},
    {"required": ["slug"]},
]


# ============================================================================
# Request body builders
# ============================================================================

def _organization(args: OrganizationIdentifier) -> Optional[Dict[str, Any]]:
    """First of domain / organization_id / slug that is set, or None."""
    if args.domain:
        return {"domain": args.domain}
    if args.organization_id:
        return {"id": args.organization_id}
    if args.slug:
        return {"slug": args.slug}
    return None


def _required_organization(args: OrganizationIdentifier) -> Dict[str, Any]:
    organization = _organization(args)
    if organization is None:
        raise ValueError("Must provide domain, organization_id, or slug")
    return organization


def _filters(args: BaseModel, fields: List[str], empty: Dict[str, Any]) -> Dict[str, Any]:
    filters = {}
    for field in fields:
        value = getattr(args, field)
        # empty lists are forwarded, empty strings are not
        if value is not None and value != "":
            filters[field] = value
    return filters if filters else dict(empty)


def build_find_organizations_body(args: FindOrganizationsArguments) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "filters": _filters(
            args,
            ["technologies", "technology_categories", "since", "query"],
            {"technologies": []},
        ),
    }
    if args.order_by_column:
        body["order_by_column"] = args.order_by_column
    if args.order_by_direction:
        body["order_by_direction"] = args.order_by_direction
    body["limit"] = args.limit
    body["offset"] = args.offset
    return body


def build_enrich_organization_body(args: EnrichOrganizationArguments) -> Dict[str, Any]:
    return {
        "organization": _required_organization(args),
        "filters": _filters(
            args,
            ["technologies", "technology_categories", "since", "query"],
            {"technologies": []},
        ),
    }


def build_find_jobs_body(args: FindJobsArguments) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    organization = _organization(args)
    if organization is not None:
        body["organization"] = organization
    body["filters"] = _filters(
        args,
        ["technologies", "technology_categories", "countries", "since", "query"],
        {"technologies": []},
    )
    body["limit"] = args.limit
    body["offset"] = args.offset
    return body


def build_find_people_body(args: FindPeopleArguments) -> Dict[str, Any]:
    return {
        "organization": _required_organization(args),
        "filters": _filters(
            args,
            ["job_functions", "job_levels", "countries", "since", "query"],
            {},
        ),
        "limit": args.limit,
        "offset": args.offset,
    }


# ============================================================================
# Tool registry
# ============================================================================

# name -> description, inputSchema, arguments model, body builder, upstream path
TOOL_REGISTRY: Dict[str, Dict[str, Any]] = {
    "find_organizations": {
        "description": (
            "Find organizations matching specific filters. Use this to discover companies "
            "based on their technology stack, industry, or other criteria.\n\n"
            "Cost: 5 credits per filter per organization found (minimum 5 credits per org).\n\n"
            "Examples:\n"
            "- Find companies using Python\n"
            "- Find companies in a specific technology category\n"
            "- Search for organizations matching a query"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "technologies": _string_list(
                    "List of technologies to search for (e.g., ['python', 'react', 'aws'])"
                ),
                "technology_categories": _string_list("List of technology categories to search for"),
                "query": {"type": "string", "description": "Free-text query to search organizations"},
                "since": _since(),
                "order_by_column": {
                    "type": "string",
                    "enum": list(get_args(OrderByColumn)),
                    "description": "Column to order results by",
                },
                "order_by_direction": {
                    "type": "string",
                    "enum": ["ASC", "DESC"],
                    "description": "Sort direction",
                },
                "limit": _limit(200, "results"),
                "offset": OFFSET_SCHEMA,
            },
        },
        "arguments": FindOrganizationsArguments,
        "build": build_find_organizations_body,
        "path": "/v3/organizations/find",
    },
    "enrich_organization": {
        "description": (
            "Enrich a specific organization with technology data. Provide either a domain, "
            "Sumble ID, or slug to identify the organization.\n\n"
            "Cost: 5 credits per technology found.\n\n"
            "Use this to:\n"
            "- Get detailed technology stack for a company\n"
            "- Find what specific technologies a company uses\n"
            "- Discover technology adoption details including job posts and team usage"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "domain": {"type": "string", "description": "Company web domain (e.g., 'google.com')"},
                "organization_id": {"type": "integer", "description": "Sumble organization ID"},
                "slug": {"type": "string", "description": "Sumble organization slug"},
                "technologies": _string_list("Specific technologies to search for"),
                "technology_categories": _string_list("Technology categories to search for"),
                "query": {"type": "string", "description": "Free-text query for technology search"},
                "since": _since(),
            },
            "oneOf": IDENTIFIER_ONE_OF,
        },
        "arguments": EnrichOrganizationArguments,
        "build": build_enrich_organization_body,
        "path": "/v3/organizations/enrich",
    },
    "find_jobs": {
        "description": (
            "Find job listings, optionally scoped to a specific organization. Search by "
            "technologies, categories, or countries.\n\n"
            "Cost: 3 credits per job retrieved.\n\n"
            "Use this to:\n"
            "- Find job postings that mention specific technologies\n"
            "- Discover hiring trends at companies\n"
            "- Research job market for specific skills"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "domain": {"type": "string", "description": "Company domain to scope the search (optional)"},
                "organization_id": {
                    "type": "integer",
                    "description": "Sumble organization ID to scope the search (optional)",
                },
                "slug": {"type": "string", "description": "Sumble organization slug to scope the search (optional)"},
                "technologies": _string_list("Technologies to search for in job postings"),
                "technology_categories": _string_list("Technology categories to search for"),
                "countries": _string_list("Countries to filter by (e.g., ['US', 'CA'])"),
                "query": {"type": "string", "description": "Free-text query for job search"},
                "since": _since("Only consider jobs since this date. Format: YYYY-MM-DD"),
                "limit": _limit(100, "jobs"),
                "offset": OFFSET_SCHEMA,
            },
        },
        "arguments": FindJobsArguments,
        "build": build_find_jobs_body,
        "path": "/v3/jobs/find",
    },
    "find_people": {
        "description": (
            "Find people at a specific organization. Filter by job function, job level, "
            "or country.\n\n"
            "Cost: 1 credit per person found.\n\n"
            "Use this to:\n"
            "- Find decision-makers at a company\n"
            "- Discover team members with specific roles\n"
            "- Research organizational structure"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "domain": {"type": "string", "description": "Company web domain (e.g., 'google.com')"},
                "organization_id": {"type": "integer", "description": "Sumble organization ID"},
                "slug": {"type": "string", "description": "Sumble organization slug"},
                "job_functions": _string_list("Job functions to filter by (e.g., ['Engineer', 'Executive'])"),
                "job_levels": _string_list("Job levels to filter by (e.g., ['Senior', 'Manager'])"),
                "countries": _string_list("Countries to filter by (e.g., ['US', 'CA'])"),
                "query": {"type": "string", "description": "Free-text query for people search"},
                "since": _since(),
                "limit": _limit(250, "people"),
                "offset": OFFSET_SCHEMA,
            },
            "oneOf": IDENTIFIER_ONE_OF,
        },
        "arguments": FindPeopleArguments,
        "build": build_find_people_body,
        "path": "/v3/people/find",
    },
}


def list_tools() -> ToolListResponse:
    """
    List all available tools.

    Returns:
        ToolListResponse with list of tool definitions
    """
    tools = [
        ToolDefinition(
            name=name,
            description=metadata["description"],
            inputSchema=metadata["inputSchema"]
        )
        for name, metadata in TOOL_REGISTRY.items()
    ]

    return ToolListResponse(tools=tools)


def build_request_body(tool_name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Validate tool arguments and shape them into the upstream request body.

    Args:
        tool_name: Registered tool name
        arguments: Flat tool arguments from tools/call

    Returns:
        Nested request body for the Sumble API

    Raises:
        ValueError: If the tool is unknown or the arguments are invalid
    """
    if tool_name not in TOOL_REGISTRY:
        raise ValueError(f"Unknown tool: {tool_name}")

    metadata = TOOL_REGISTRY[tool_name]
    model: Type[BaseModel] = metadata["arguments"]
    builder: Callable[[Any], Dict[str, Any]] = metadata["build"]

    # JSON null means "not provided"
    provided = {key: value for key, value in (arguments or {}).items() if value is not None}
    return builder(model.model_validate(provided))


async def call_tool(client: SumbleClient, request: ToolCallRequest) -> ToolCallResponse:
    """
    Execute a tool call against the Sumble API.

    Args:
        client: Upstream API client
        request: Tool call request with name and arguments

    Returns:
        ToolCallResponse wrapping the pretty-printed upstream JSON

    Raises:
        ValueError: If the tool name or arguments are invalid
        SumbleRequestError: If the upstream call fails
    """
    tool_name = request.name
    logger.info(f"Executing tool: {tool_name} with args: {json.dumps(request.arguments or {})}")

    body = build_request_body(tool_name, request.arguments)
    result = await client.arequest(TOOL_REGISTRY[tool_name]["path"], "POST", body)

    logger.info(f"Tool {tool_name} completed successfully")
    return ToolCallResponse(content=[{
        "type": "text",
        "text": json.dumps(result, indent=2)
    }])
