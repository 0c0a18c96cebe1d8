"""
MCP tool implementations and registration.
"""

from sqlmodel import Session

from dispatch_app.mcp.tools.dispatches import (
    register_complete_dispatch_tool,
    register_get_today_dispatch_tool,
    register_link_task_to_dispatch_tool,
    register_unlink_task_from_dispatch_tool,
    register_update_dispatch_summary_tool,
)
from dispatch_app.mcp.tools.tasks import (
    register_complete_task_tool,
    register_create_task_tool,
    register_delete_task_tool,
    register_list_tasks_tool,
    register_update_task_tool,
)
from dispatch_app.mcp.tools.templates import register_render_template_tool

TOOL_REGISTRARS = (
    register_list_tasks_tool,
    register_create_task_tool,
    register_update_task_tool,
    register_complete_task_tool,
    register_delete_task_tool,
    register_get_today_dispatch_tool,
    register_update_dispatch_summary_tool,
    register_link_task_to_dispatch_tool,
    register_unlink_task_from_dispatch_tool,
    register_complete_dispatch_tool,
    register_render_template_tool,
)


def register_all_tools(mcp_server, db_session: Session):
    """Register every tool against one session"""
    for register in TOOL_REGISTRARS:
        register(mcp_server, db_session)
