"""
MCP Protocol Request/Response Models

This module defines Pydantic models for the JSON-RPC envelopes carried over
the MCP transports, the tool descriptors advertised by tools/list, and the
argument contracts of each Sumble tool.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Dict, Any, List, Literal, Union


# ============================================================================
# JSON-RPC Models
# ============================================================================

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603
TOOL_EXECUTION_ERROR = -32000

RequestId = Union[str, int]


class JSONRPCRequest(BaseModel):
    """Incoming JSON-RPC request or notification."""
    model_config = ConfigDict(extra="allow")

    jsonrpc: str = Field("2.0", description="JSON-RPC version")
    id: Optional[RequestId] = Field(None, description="Request id; absent for notifications")
    method: str = Field(..., description="Method name")
    params: Optional[Dict[str, Any]] = Field(None, description="Method parameters")

    @property
    def is_notification(self) -> bool:
        return self.method.startswith("notifications/")


class JSONRPCError(BaseModel):
    """JSON-RPC error object."""
    code: int = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    data: Optional[Dict[str, Any]] = Field(None, description="Additional error data")


class JSONRPCResponse(BaseModel):
    """Outgoing JSON-RPC response envelope."""
    jsonrpc: Literal["2.0"] = "2.0"
    id: Optional[RequestId] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[JSONRPCError] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize with exactly one of result/error present."""
        envelope: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            envelope["error"] = self.error.model_dump(exclude_none=True)
        else:
            envelope["result"] = self.result if self.result is not None else {}
        return envelope


# ============================================================================
# Tool Models
# ============================================================================

class ToolDefinition(BaseModel):
    """MCP tool definition schema."""
    name: str = Field(..., description="Tool name/identifier")
    description: str = Field(..., description="Tool description")
    inputSchema: Dict[str, Any] = Field(..., description="JSON schema for tool inputs")


class ToolListResponse(BaseModel):
    """Result of tools/list."""
    tools: List[ToolDefinition] = Field(..., description="List of available tools")


class ToolCallRequest(BaseModel):
    """Params of tools/call."""
    name: str = Field(..., description="Tool name to call")
    arguments: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Tool arguments")


class ToolCallResponse(BaseModel):
    """Result of a successful tools/call."""
    content: List[Dict[str, Any]] = Field(..., description="Tool output content")


# ============================================================================
# Tool Argument Models
# ============================================================================

OrderByColumn = Literal[
    "industry",
    "employee_count",
    "employee_count_int",
    "first_activity_time",
    "last_activity_time",
    "jobs_count",
    "teams_count",
    "people_count",
    "jobs_count_growth_6mo",
    "cloud_spend_estimate_millions_usd",
]


class ToolArguments(BaseModel):
    """Base for tool arguments; unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    query: Optional[str] = Field(None, description="Free-text query")
    since: Optional[str] = Field(None, description="Only consider data since this date (YYYY-MM-DD)")


class OrganizationIdentifier(ToolArguments):
    domain: Optional[str] = Field(None, description="Company web domain")
    organization_id: Optional[int] = Field(None, description="Sumble organization ID")
    slug: Optional[str] = Field(None, description="Sumble organization slug")


class FindOrganizationsArguments(ToolArguments):
    technologies: Optional[List[str]] = None
    technology_categories: Optional[List[str]] = None
    order_by_column: Optional[OrderByColumn] = None
    order_by_direction: Optional[Literal["ASC", "DESC"]] = None
    limit: int = Field(10, ge=1, le=200)
    offset: int = Field(0, ge=0, le=10000)


class EnrichOrganizationArguments(OrganizationIdentifier):
    technologies: Optional[List[str]] = None
    technology_categories: Optional[List[str]] = None


class FindJobsArguments(OrganizationIdentifier):
    technologies: Optional[List[str]] = None
    technology_categories: Optional[List[str]] = None
    countries: Optional[List[str]] = None
    limit: int = Field(10, ge=1, le=100)
    offset: int = Field(0, ge=0, le=10000)


class FindPeopleArguments(OrganizationIdentifier):
    job_functions: Optional[List[str]] = None
    job_levels: Optional[List[str]] = None
    countries: Optional[List[str]] = None
    limit: int = Field(10, ge=1, le=250)
    offset: int = Field(0, ge=0, le=10000)
