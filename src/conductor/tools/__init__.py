"""Conductor built-in tools and the permission-checked gateway."""

from conductor.tools.base import BaseTool
from conductor.tools.bash import BashTool
from conductor.tools.edit import EditTool
from conductor.tools.gateway import ToolGateway, default_tools
from conductor.tools.glob import GlobTool
from conductor.tools.grep import GrepTool
from conductor.tools.listing import ListTool
from conductor.tools.read import ReadTool
from conductor.tools.todo import TodoReadTool, TodoWriteTool
from conductor.tools.web import WebFetchTool
from conductor.tools.write import WriteTool

__all__ = [
    "BaseTool",
    "BashTool",
    "EditTool",
    "GlobTool",
    "GrepTool",
    "ListTool",
    "ReadTool",
    "TodoReadTool",
    "TodoWriteTool",
    "ToolGateway",
    "WebFetchTool",
    "WriteTool",
    "default_tools",
]
