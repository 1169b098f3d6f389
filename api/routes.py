from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from api.schemas import HealthResponse, JSONRPCRequest, ToolCallParams
from gateway.tools import ToolDispatcher

SERVER_NAME = "db-mcp-gateway"
SERVER_VERSION = "0.1.0"
PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

router = APIRouter()


def _dispatcher(request: Request) -> ToolDispatcher:
    return request.app.state.dispatcher


def _result(request_id: Optional[Union[int, str]], result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "result": result, "id": request_id}


def _error(request_id: Optional[Union[int, str]], code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": request_id}


@router.get("/health", response_model=HealthResponse)
def health(request: Request) -> HealthResponse:
    dispatcher = _dispatcher(request)
    return HealthResponse(
        status="ok",
        engine=dispatcher.adapter.engine,
        connected=dispatcher.adapter.is_connected,
        read_only=dispatcher.read_only,
    )


@router.post("/mcp")
def handle_rpc(rpc_req: JSONRPCRequest, request: Request) -> Dict[str, Any]:
    if rpc_req.jsonrpc != "2.0":
        raise HTTPException(status_code=400, detail="Invalid JSON-RPC version")

    dispatcher = _dispatcher(request)
    params = rpc_req.params or {}

    if rpc_req.method == "initialize":
        return _result(
            rpc_req.id,
            {
                "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
                "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                "capabilities": {"tools": {}},
            },
        )
    if rpc_req.method == "ping":
        return _result(rpc_req.id, {})
    if rpc_req.method == "tools/list":
        return _result(rpc_req.id, {"tools": dispatcher.list_tools()})
    if rpc_req.method == "tools/call":
        try:
            call = ToolCallParams(**params)
        except ValidationError as exc:
            return _error(rpc_req.id, INVALID_PARAMS, f"Invalid tools/call params: {exc.errors()}")
        return _result(rpc_req.id, dispatcher.call_tool(call.name, call.arguments).to_payload())

    return _error(rpc_req.id, METHOD_NOT_FOUND, f"Method '{rpc_req.method}' not found")
