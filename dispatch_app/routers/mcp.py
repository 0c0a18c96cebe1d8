"""HTTP bridge to the MCP tools for agent clients."""
from fastapi import APIRouter, Body, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

from dispatch_app.db.config import get_session
from dispatch_app.mcp.base_tool import (
    CONFLICT,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    MCPToolError,
    create_error_response,
)
from dispatch_app.mcp.server import MCPServer
from dispatch_app.mcp.tools import register_all_tools
from dispatch_app.middleware.auth import CurrentUser, get_current_user
from dispatch_app.services.user_service import UserService
from sqlmodel import Session

router = APIRouter(tags=["MCP"])

ERROR_STATUS = {
    VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    CONFLICT: status.HTTP_409_CONFLICT,
}


def get_request_mcp_server(session: Session = Depends(get_session)) -> MCPServer:
    """Tools bound to this request's session."""
    server = MCPServer()
    register_all_tools(server, session)
    return server


@router.get("/tools", response_model=Dict[str, Any])
async def list_tools(
    current_user: CurrentUser = Depends(get_current_user),
    server: MCPServer = Depends(get_request_mcp_server),
):
    return {"tools": list(server.get_tool_schemas().values())}


@router.post("/tools/{tool_name}")
async def invoke_tool(
    tool_name: str,
    arguments: Optional[Dict[str, Any]] = Body(None),
    current_user: CurrentUser = Depends(get_current_user),
    server: MCPServer = Depends(get_request_mcp_server),
    session: Session = Depends(get_session),
):
    """Invoke a tool as the token user. A user_id in the arguments is ignored."""
    if tool_name not in server.list_tools():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown tool: {tool_name}")

    UserService(session).ensure_user(current_user.user_id, email=current_user.email, name=current_user.name)
    arguments = {k: v for k, v in (arguments or {}).items() if k != "tool_name"}
    arguments["user_id"] = current_user.user_id

    missing = server.missing_arguments(tool_name, arguments)
    if missing:
        error = MCPToolError(
            code=VALIDATION_ERROR,
            message=f"Missing required arguments: {', '.join(missing)}",
            details={"missing": missing}
        )
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=create_error_response(error))

    try:
        return await server.invoke_tool(tool_name, **arguments)
    except MCPToolError as e:
        return JSONResponse(
            status_code=ERROR_STATUS.get(e.code, status.HTTP_400_BAD_REQUEST),
            content=create_error_response(e)
        )
