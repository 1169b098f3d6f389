from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, Field


class JSONRPCRequest(BaseModel):
    jsonrpc: str
    method: str = Field(..., min_length=1)
    params: Optional[Dict[str, Any]] = None
    id: Optional[Union[int, str]] = None


class ToolCallParams(BaseModel):
    name: str = Field(..., min_length=1)
    arguments: Dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    engine: str
    connected: bool
    read_only: bool
