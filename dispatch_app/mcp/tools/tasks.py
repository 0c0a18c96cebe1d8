"""
Task MCP Tools

list_tasks, create_task, update_task, complete_task and delete_task.
All writes go through TaskService so recurrence validation applies.
"""

from typing import Dict, Any, Optional
from sqlmodel import Session

from dispatch_app.mcp.base_tool import VALIDATION_ERROR, BaseMCPTool, MCPToolError, create_success_response
from dispatch_app.models.recurrence_rule import MAX_INTERVAL, MIN_INTERVAL
from dispatch_app.models.task import TASK_PRIORITIES, TASK_STATUSES
from dispatch_app.services.task_service import TaskService

RECURRENCE_PROPERTIES = {
    "recurrence_type": {"type": "string", "enum": ["none", "daily", "weekly", "monthly", "custom"], "description": "Recurrence cadence (optional)"},
    "recurrence_behavior": {"type": "string", "enum": ["after_completion", "duplicate_on_schedule"], "description": "How the task recurs (optional)"},
    "recurrence_rule": {
        "type": "object",
        "properties": {
            "interval": {"type": "integer", "minimum": MIN_INTERVAL, "maximum": MAX_INTERVAL},
            "unit": {"type": "string", "enum": ["day", "week", "month"]}
        },
        "description": "Required for custom recurrence only"
    },
}

UPDATABLE_FIELDS = (
    "title", "description", "status", "priority", "due_date",
    "recurrence_type", "recurrence_behavior", "recurrence_rule",
)


class ListTasksTool(BaseMCPTool):
    """MCP Tool for listing a user's live tasks"""

    async def execute(self, user_id: str, status: Optional[str] = None,
                      priority: Optional[str] = None, limit: int = 30, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("list_tasks", user_id, {"status": status, "priority": priority, "limit": limit})
        self.validate_user_id(user_id)

        if status is not None and status not in TASK_STATUSES:
            raise self.invalid("status", f"Status must be one of: {', '.join(TASK_STATUSES)}")
        if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= 100:
            raise self.invalid("limit", "Limit must be an integer between 1 and 100")

        tasks = TaskService(self.db).list_tasks(user_id, status=status, priority=priority, limit=limit)
        return create_success_response(
            data={"tasks": [task.to_dict() for task in tasks], "count": len(tasks)}
        )


class CreateTaskTool(BaseMCPTool):
    """MCP Tool for creating tasks"""

    async def execute(self, user_id: str, title: str, description: str = None,
                      status: str = "open", priority: str = "medium", due_date: str = None,
                      recurrence_type: str = None, recurrence_behavior: str = None,
                      recurrence_rule: Any = None, **kwargs) -> Dict[str, Any]:
        """
        Create a new task

        Args:
            user_id: Owner of the task
            title: Task title
            due_date: Optional due date (YYYY-MM-DD)
            recurrence_rule: Interval and unit, only for custom recurrence

        Returns:
            Created task object
        """
        self.log_tool_invocation("create_task", user_id, {"title": title, "recurrence_type": recurrence_type})
        self.validate_user_id(user_id)

        try:
            task = TaskService(self.db).create_task(
                user_id=user_id,
                title=title,
                description=description,
                status=status,
                priority=priority,
                due_date=due_date,
                recurrence_type=recurrence_type,
                recurrence_behavior=recurrence_behavior,
                recurrence_rule=recurrence_rule,
            )
        except ValueError as e:
            raise self.translate_error(e)

        return create_success_response(data=task.to_dict(), message=f"Task '{task.title}' created successfully")


class UpdateTaskTool(BaseMCPTool):
    """MCP Tool for partial task updates"""

    async def execute(self, user_id: str, task_id: str, **kwargs) -> Dict[str, Any]:
        """
        Update only the fields present in the call. Passing None clears a
        nullable field.
        """
        changes = {field: kwargs[field] for field in UPDATABLE_FIELDS if field in kwargs}
        self.log_tool_invocation("update_task", user_id, {"task_id": task_id, "fields": sorted(changes)})
        self.validate_user_id(user_id)

        if not changes:
            raise MCPToolError(
                code=VALIDATION_ERROR,
                message="At least one field must be provided to update",
                details={"fields": list(UPDATABLE_FIELDS)}
            )

        try:
            task = TaskService(self.db).update_task(task_id, user_id, changes)
        except ValueError as e:
            raise self.translate_error(e)

        if not task:
            raise self.not_found("Task", task_id)

        return create_success_response(data=task.to_dict(), message="Task updated successfully")


class CompleteTaskTool(BaseMCPTool):
    """MCP Tool for completing tasks"""

    async def execute(self, user_id: str, task_id: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("complete_task", user_id, {"task_id": task_id})
        self.validate_user_id(user_id)

        completion = TaskService(self.db).complete_task(task_id, user_id)
        if not completion:
            raise self.not_found("Task", task_id)

        if completion.next_due_date:
            message = f"Task '{completion.task.title}' rescheduled to {completion.next_due_date}"
        else:
            message = f"Task '{completion.task.title}' marked as done"

        return create_success_response(
            data={"task": completion.task.to_dict(), "next_due_date": completion.next_due_date},
            message=message
        )


class DeleteTaskTool(BaseMCPTool):
    """MCP Tool for soft-deleting tasks"""

    async def execute(self, user_id: str, task_id: str, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("delete_task", user_id, {"task_id": task_id})
        self.validate_user_id(user_id)

        if not TaskService(self.db).delete_task(task_id, user_id):
            raise self.not_found("Task", task_id)

        return create_success_response(data={"id": task_id, "deleted": True}, message="Task deleted")


def register_list_tasks_tool(mcp_server, db_session: Session):
    """Register list_tasks tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="list_tasks",
        description="List the user's tasks, most recently updated first",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "status": {"type": "string", "enum": list(TASK_STATUSES), "description": "Filter by status (optional)"},
                "priority": {"type": "string", "enum": list(TASK_PRIORITIES), "description": "Filter by priority (optional)"},
                "limit": {"type": "integer", "minimum": 1, "maximum": 100, "default": 30}
            },
            "required": ["user_id"]
        },
        handler=lambda **kwargs: ListTasksTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_create_task_tool(mcp_server, db_session: Session):
    """Register create_task tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="create_task",
        description="Create a new task, optionally recurring",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "title": {"type": "string", "description": "Task title"},
                "description": {"type": "string", "description": "Task description (optional)"},
                "status": {"type": "string", "enum": list(TASK_STATUSES), "default": "open"},
                "priority": {"type": "string", "enum": list(TASK_PRIORITIES), "default": "medium"},
                "due_date": {"type": "string", "format": "date", "description": "Due date as YYYY-MM-DD (optional)"},
                **RECURRENCE_PROPERTIES
            },
            "required": ["user_id", "title"]
        },
        handler=lambda **kwargs: CreateTaskTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_update_task_tool(mcp_server, db_session: Session):
    """Register update_task tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="update_task",
        description="Update the given fields of a task",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "task_id": {"type": "string", "description": "Task ID"},
                "title": {"type": "string"},
                "description": {"type": ["string", "null"]},
                "status": {"type": "string", "enum": list(TASK_STATUSES)},
                "priority": {"type": "string", "enum": list(TASK_PRIORITIES)},
                "due_date": {"type": ["string", "null"], "format": "date"},
                **RECURRENCE_PROPERTIES
            },
            "required": ["user_id", "task_id"]
        },
        handler=lambda **kwargs: UpdateTaskTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_complete_task_tool(mcp_server, db_session: Session):
    """Register complete_task tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="complete_task",
        description="Complete a task; recurring tasks move to their next due date",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "task_id": {"type": "string", "description": "Task ID"}
            },
            "required": ["user_id", "task_id"]
        },
        handler=lambda **kwargs: CompleteTaskTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)


def register_delete_task_tool(mcp_server, db_session: Session):
    """Register delete_task tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="delete_task",
        description="Delete a task",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "task_id": {"type": "string", "description": "Task ID"}
            },
            "required": ["user_id", "task_id"]
        },
        handler=lambda **kwargs: DeleteTaskTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)
