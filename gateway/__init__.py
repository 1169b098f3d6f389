"""Tool-call surface over a single database adapter."""

from gateway.tools import ToolDispatcher, ToolResult

__all__ = ["ToolDispatcher", "ToolResult"]
