"""
Execution API Models

Pydantic models for the node execution endpoint.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ExecuteRequest(BaseModel):
    """Request to run one node execution."""
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Node parameters (operation, connectionType, toolName, ...)"
    )
    item_parameters: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Per-item parameter overrides, by item index"
    )
    items: List[Dict[str, Any]] = Field(default_factory=list, description="Input items")
    credentials: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Credentials keyed by connection kind (stdio, sse, http)"
    )
    continue_on_fail: bool = Field(default=False, description="Contain per-item failures")


class ExecuteResponse(BaseModel):
    """Items produced by the execution."""
    items: List[Dict[str, Any]]


class ErrorResponse(BaseModel):
    """Error returned when an execution fails."""
    error_type: str
    message: str
    details: Optional[Dict[str, Any]] = None
