"""
Dispatch MCP Tools

get_today_dispatch, update_dispatch_summary, link_task_to_dispatch,
unlink_task_from_dispatch and complete_dispatch.
"""

from typing import Dict, Any, Optional
from sqlmodel import Session

from dispatch_app.mcp.base_tool import BaseMCPTool, create_success_response
from dispatch_app.services.dispatch_service import DispatchService
from dispatch_app.services.errors import DispatchError

USER_ID_PROPERTY = {"type": "string", "description": "User ID"}
DISPATCH_ID_PROPERTY = {"type": "string", "description": "Dispatch ID"}
TASK_ID_PROPERTY = {"type": "string", "description": "Task ID"}


class GetTodayDispatchTool(BaseMCPTool):
    """MCP Tool returning today's dispatch, created on first access"""

    async def execute(self, user_id: str, time_zone: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("get_today_dispatch", user_id, {"time_zone": time_zone})
        self.validate_user_id(user_id)

        service = DispatchService(self.db)
        dispatch = service.get_today_dispatch(user_id, time_zone=time_zone)
        tasks = service.list_dispatch_tasks(dispatch.id, user_id)

        data = dispatch.to_dict()
        data["tasks"] = [task.to_dict() for task in tasks]
        return create_success_response(data=data)


class UpdateDispatchSummaryTool(BaseMCPTool):
    """MCP Tool for editing the summary of an open dispatch"""

    async def execute(self, user_id: str, dispatch_id: str, summary: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("update_dispatch_summary", user_id, {"dispatch_id": dispatch_id})
        self.validate_user_id(user_id)

        try:
            dispatch = DispatchService(self.db).update_summary(dispatch_id, summary, user_id)
        except (DispatchError, ValueError) as e:
            raise self.translate_error(e)

        return create_success_response(data=dispatch.to_dict(), message="Dispatch summary updated")


class LinkTaskToDispatchTool(BaseMCPTool):
    """MCP Tool adding a task to a dispatch"""

    async def execute(self, user_id: str, dispatch_id: str, task_id: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("link_task_to_dispatch", user_id, {"dispatch_id": dispatch_id, "task_id": task_id})
        self.validate_user_id(user_id)

        try:
            link = DispatchService(self.db).link_task(dispatch_id, task_id, user_id)
        except DispatchError as e:
            raise self.translate_error(e)

        return create_success_response(
            data={"dispatch_id": link.dispatch_id, "task_id": link.task_id, "linked": True}
        )


class UnlinkTaskFromDispatchTool(BaseMCPTool):
    """MCP Tool removing a task from a dispatch"""

    async def execute(self, user_id: str, dispatch_id: str, task_id: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("unlink_task_from_dispatch", user_id, {"dispatch_id": dispatch_id, "task_id": task_id})
        self.validate_user_id(user_id)

        try:
            link = DispatchService(self.db).unlink_task(dispatch_id, task_id, user_id)
        except DispatchError as e:
            raise self.translate_error(e)

        return create_success_response(
            data={"dispatch_id": link.dispatch_id, "task_id": link.task_id, "linked": False}
        )


class CompleteDispatchTool(BaseMCPTool):
    """MCP Tool finalizing a dispatch and rolling unfinished tasks forward"""

    async def execute(self, user_id: str, dispatch_id: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("complete_dispatch", user_id, {"dispatch_id": dispatch_id})
        self.validate_user_id(user_id)

        try:
            completion = DispatchService(self.db).complete_dispatch(dispatch_id, user_id)
        except DispatchError as e:
            raise self.translate_error(e)

        return create_success_response(
            data=completion.to_dict(),
            message=f"Dispatch finalized; {completion.rolled_over} task(s) rolled over"
        )


def register_get_today_dispatch_tool(mcp_server, db_session: Session):
    """Register get_today_dispatch tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="get_today_dispatch",
        description="Get (or create) today's dispatch with its linked tasks",
        parameters={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "time_zone": {"type": "string", "description": "IANA zone overriding the user's preference (optional)"}
            },
            "required": ["user_id"]
        },
        handler=lambda **kwargs: GetTodayDispatchTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_update_dispatch_summary_tool(mcp_server, db_session: Session):
    """Register update_dispatch_summary tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="update_dispatch_summary",
        description="Replace the summary text of an open dispatch",
        parameters={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "dispatch_id": DISPATCH_ID_PROPERTY,
                "summary": {"type": "string", "description": "New summary"}
            },
            "required": ["user_id", "dispatch_id", "summary"]
        },
        handler=lambda **kwargs: UpdateDispatchSummaryTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_link_task_to_dispatch_tool(mcp_server, db_session: Session):
    """Register link_task_to_dispatch tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="link_task_to_dispatch",
        description="Add a task to an open dispatch",
        parameters={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "dispatch_id": DISPATCH_ID_PROPERTY,
                "task_id": TASK_ID_PROPERTY
            },
            "required": ["user_id", "dispatch_id", "task_id"]
        },
        handler=lambda **kwargs: LinkTaskToDispatchTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_unlink_task_from_dispatch_tool(mcp_server, db_session: Session):
    """Register unlink_task_from_dispatch tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="unlink_task_from_dispatch",
        description="Remove a task from an open dispatch",
        parameters={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "dispatch_id": DISPATCH_ID_PROPERTY,
                "task_id": TASK_ID_PROPERTY
            },
            "required": ["user_id", "dispatch_id", "task_id"]
        },
        handler=lambda **kwargs: UnlinkTaskFromDispatchTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_complete_dispatch_tool(mcp_server, db_session: Session):
    """Register complete_dispatch tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="complete_dispatch",
        description="Finalize a dispatch and roll unfinished tasks into the next day",
        parameters={
            "type": "object",
            "properties": {
                "user_id": USER_ID_PROPERTY,
                "dispatch_id": DISPATCH_ID_PROPERTY
            },
            "required": ["user_id", "dispatch_id"]
        },
        handler=lambda **kwargs: CompleteDispatchTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)
