"""
MCP Client Node API Routes
Exposes node executions over HTTP
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from mcp_client_node.api.models import ErrorResponse, ExecuteRequest, ExecuteResponse
from mcp_client_node.core.logging import get_logger
from mcp_client_node.mcp import (
    MCPClientError,
    MCPClientWrapper,
    MCPConfigurationError,
    MCPInvalidArgumentsError,
    MCPNoCapabilityError,
    MCPToolNotFoundError,
    StaticCredentialSource,
    StaticParameterSource,
)

logger = get_logger(__name__)

router = APIRouter()

_client: Optional[MCPClientWrapper] = None


def get_client() -> MCPClientWrapper:
    """Dependency injection for the MCP client wrapper"""
    global _client
    if _client is None:
        _client = MCPClientWrapper()
    return _client


def error_status(error: MCPClientError) -> int:
    """HTTP status for an MCP client error."""
    if isinstance(error, (MCPConfigurationError, MCPInvalidArgumentsError, MCPToolNotFoundError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, MCPNoCapabilityError):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_502_BAD_GATEWAY


@router.get("/health")
async def health_check():
    """Liveness probe"""
    return {"status": "healthy"}


@router.post(
    "/execute",
    response_model=ExecuteResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def execute(request: ExecuteRequest, client: MCPClientWrapper = Depends(get_client)):
    """
    Run one execution: a single MCP session serves every input item.
    Fatal failures return an error body and no partial items.
    """
    try:
        items = await client.execute(
            request.items,
            StaticParameterSource(request.parameters, request.item_parameters),
            StaticCredentialSource(request.credentials),
            failure_tolerance=request.continue_on_fail,
        )
    except MCPClientError as e:
        logger.error(f"Execution failed: {e}")
        return JSONResponse(status_code=error_status(e), content=e.to_dict())
    return ExecuteResponse(items=items)
