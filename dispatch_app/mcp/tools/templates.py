"""
Template MCP Tool

render_template expands date tokens and date conditionals against a
reference day, defaulting to today in the user's time zone.
"""

from typing import Dict, Any, Optional
from sqlmodel import Session

from dispatch_app.mcp.base_tool import BaseMCPTool, create_success_response
from dispatch_app.models.user import User
from dispatch_app.services.templates import render_template


class RenderTemplateTool(BaseMCPTool):
    """MCP Tool for rendering template text"""

    async def execute(self, user_id: str, template: str, reference_date: Optional[str] = None,
                      time_zone: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        self.log_tool_invocation("render_template", user_id, {"reference_date": reference_date})
        self.validate_user_id(user_id)

        if template is not None and not isinstance(template, str):
            raise self.invalid("template", "Template must be a string")

        if time_zone is None:
            user = self.db.get(User, user_id)
            time_zone = user.time_zone if user else None

        rendered = render_template(template, reference_date=reference_date, time_zone=time_zone)
        return create_success_response(data={"rendered": rendered})


def register_render_template_tool(mcp_server, db_session: Session):
    """Register render_template tool with MCP server"""
    from dispatch_app.mcp.server import MCPTool

    tool = MCPTool(
        name="render_template",
        description="Render {{date:FORMAT}} tokens and {{if:COND}}...{{/if}} blocks",
        parameters={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "template": {"type": "string", "description": "Template text"},
                "reference_date": {"type": "string", "description": "Day to render against (optional, default today)"},
                "time_zone": {"type": "string", "description": "IANA zone used for today (optional)"}
            },
            "required": ["user_id", "template"]
        },
        handler=lambda **kwargs: RenderTemplateTool(db_session).execute(**kwargs)
    )

    mcp_server.register_tool(tool)
