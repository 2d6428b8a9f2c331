"""HTTP tool server."""

from gorp.adapters.web.tool_routes import create_tool_app, tool_router

__all__ = ["create_tool_app", "tool_router"]
