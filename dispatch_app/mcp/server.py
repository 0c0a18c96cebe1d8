"""
MCP Server Implementation

Registry of the Dispatch tools an agent may call. A server is built per
database session (see ``register_all_tools``); tools are looked up by name
and invoked with keyword arguments.

- Every tool call carries a user_id
- Tools go through the service layer, never raw queries
"""

from typing import Dict, Any, Callable, List, Mapping
from dataclasses import dataclass

from dispatch_app.mcp.base_tool import MCPToolError
from dispatch_app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class MCPTool:
    """A named tool, its JSON-schema parameters and its async handler."""
    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Callable

    @property
    def required(self) -> List[str]:
        return list(self.parameters.get("required", []))

    def schema(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


class MCPServer:
    """Tool registry for one Dispatch session."""

    def __init__(self, name: str = "dispatch-mcp-server"):
        self.name = name
        self.tools: Dict[str, MCPTool] = {}

    def register_tool(self, tool: MCPTool):
        if tool.name in self.tools:
            logger.warning("mcp_tool_replaced", server=self.name, tool=tool.name)
        self.tools[tool.name] = tool
        logger.debug("mcp_tool_registered", server=self.name, tool=tool.name)

    def get_tool(self, name: str) -> MCPTool:
        """
        Raises:
            ValueError: If no tool has that name
        """
        if name not in self.tools:
            raise ValueError(f"Tool {name} not found. Available tools: {list(self.tools)}")
        return self.tools[name]

    def list_tools(self) -> List[str]:
        return list(self.tools)

    def missing_arguments(self, tool_name: str, arguments: Mapping[str, Any]) -> List[str]:
        """Required parameters of ``tool_name`` absent from ``arguments``."""
        return [name for name in self.get_tool(tool_name).required if name not in arguments]

    async def invoke_tool(self, tool_name: str, **kwargs) -> Dict[str, Any]:
        """
        Invoke a tool with keyword arguments.

        Returns:
            The tool's success envelope

        Raises:
            ValueError: If the tool is unknown or user_id is missing
            MCPToolError: If the tool rejected the call
        """
        tool = self.get_tool(tool_name)

        if 'user_id' not in kwargs:
            raise ValueError("user_id is required for all MCP tool calls")

        try:
            result = await tool.handler(**kwargs)
        except MCPToolError as e:
            logger.warning("mcp_tool_rejected", tool=tool_name, user_id=kwargs["user_id"], code=e.code)
            raise
        logger.info("mcp_tool_succeeded", tool=tool_name, user_id=kwargs["user_id"])
        return result

    def get_tool_schemas(self) -> Dict[str, Dict[str, Any]]:
        """JSON schemas for all registered tools, keyed by name."""
        return {name: tool.schema() for name, tool in self.tools.items()}
