"""HTTP tool surface — REST and MCP-style JSON-RPC endpoints over DiscordTools."""

import sys
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gorp.adapters.discord.tools import TOOL_DEFINITIONS, DiscordTools, ToolError
from gorp.config import __version__

SERVICE_NAME = "discord-mcp-server"
PROTOCOL_VERSION = "2025-06-18"

tool_router = APIRouter(tags=["Tools"])

# Bound by create_tool_app once the Discord client exists
tools: Optional[DiscordTools] = None


def _log(msg: str):
    print(msg, file=sys.stderr)


class CallToolRequest(BaseModel):
    name: Optional[str] = None
    arguments: Optional[Dict[str, Any]] = None


class JsonRpcRequest(BaseModel):
    jsonrpc: str = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None
    id: Optional[Union[int, str]] = None


async def _execute(name: str, args: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if tools is None:
        raise ToolError("Discord tools not available")
    return await tools.execute(name, args or {})


@tool_router.get("/health")
async def health():
    return {"status": "ok", "service": SERVICE_NAME}


@tool_router.get("/tools")
async def list_tools():
    return {"tools": TOOL_DEFINITIONS}


@tool_router.post("/tools/{tool_name}")
async def run_tool(tool_name: str, args: Optional[Dict[str, Any]] = None):
    try:
        return await _execute(tool_name, args)
    except Exception as e:
        return JSONResponse(
            status_code=500,
            content={"error": f"Error executing tool {tool_name}: {e}"},
        )


@tool_router.post("/call-tool")
async def call_tool(req: CallToolRequest):
    if not req.name:
        return JSONResponse(status_code=400, content={"error": "Tool name is required"})
    try:
        return await _execute(req.name, req.arguments)
    except Exception as e:
        return JSONResponse(
            status_code=500,
            content={"error": f"Error executing tool {req.name}: {e}", "isError": True},
        )


def _rpc_error(req_id: Optional[Union[int, str]], code: int, message: str, status: int = 200):
    if req_id is None:
        return JSONResponse(status_code=status if status != 200 else 500, content={"error": message})
    return JSONResponse(
        status_code=status,
        content={"jsonrpc": "2.0", "error": {"code": code, "message": message}, "id": req_id},
    )


@tool_router.post("/")
async def json_rpc(req: JsonRpcRequest):
    """MCP-style JSON-RPC entry: initialize, tools/list, tools/call."""
    _log(f"[tools] rpc {req.method} id={req.id}")
    if req.method == "notifications/initialized":
        return {}

    try:
        if req.method == "initialize":
            result: Dict[str, Any] = {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVICE_NAME, "version": __version__},
            }
        elif req.method == "tools/list":
            result = {"tools": TOOL_DEFINITIONS}
        elif req.method == "tools/call":
            params = req.params or {}
            result = await _execute(params.get("name", ""), params.get("arguments"))
        else:
            return _rpc_error(req.id, -32601, f"Method not found: {req.method}", status=400)
    except Exception as e:
        return _rpc_error(req.id, -32603, str(e))

    if req.id is None:
        return {}
    return {"jsonrpc": "2.0", "result": result, "id": req.id}


def create_tool_app(discord_tools: Optional[DiscordTools]) -> FastAPI:
    """Build the FastAPI app serving the given tools."""
    global tools
    tools = discord_tools
    app = FastAPI(title="Gorp Discord Tools")
    app.include_router(tool_router)
    return app
