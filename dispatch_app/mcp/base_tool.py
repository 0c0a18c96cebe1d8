"""
MCP Base Tool Interface

Every Dispatch tool runs as one user against one database session. This
module holds what the tools share:
- The tool error type and its codes
- User ID validation
- Mapping of service exceptions onto tool errors
- Audit logging of invocations
- The success and error envelopes returned to agents
"""

from typing import Any, Dict, Optional
from sqlmodel import Session
from abc import ABC, abstractmethod

from dispatch_app.services.errors import DispatchError
from dispatch_app.utils.logger import get_logger

logger = get_logger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
UNAUTHORIZED = "UNAUTHORIZED"
NOT_FOUND = "NOT_FOUND"
CONFLICT = "CONFLICT"

# Never written to the audit log
REDACTED_PARAMS = frozenset({"password", "token", "secret", "summary", "template"})


class MCPToolError(Exception):
    """A tool call rejected with a machine-readable code."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class BaseMCPTool(ABC):
    """
    Base class for Dispatch MCP tools.

    Subclasses implement ``execute`` and go through the service layer with
    ``self.db``; they never build queries themselves.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    def validate_user_id(self, user_id: str) -> None:
        """
        Reject calls that do not name a user.

        Raises:
            MCPToolError: UNAUTHORIZED if user_id is missing or blank
        """
        if not isinstance(user_id, str) or not user_id.strip():
            logger.warning("mcp_missing_user", tool=type(self).__name__)
            raise MCPToolError(
                code=UNAUTHORIZED,
                message="Invalid or missing user_id",
                details={"field": "user_id"}
            )

    def log_tool_invocation(self, tool_name: str, user_id: str, params: Dict[str, Any]) -> None:
        """
        Audit-log a tool call.

        Args:
            tool_name: Name of the tool being invoked
            user_id: User the call runs as
            params: Call arguments; free text and secrets are left out
        """
        logged = {k: v for k, v in params.items() if k not in REDACTED_PARAMS and v is not None}
        logger.bind(tool=tool_name).info("mcp_tool_invoked", user_id=user_id, params=logged)

    def invalid(self, field: str, message: str) -> MCPToolError:
        """VALIDATION_ERROR for one argument."""
        return MCPToolError(code=VALIDATION_ERROR, message=message, details={"field": field})

    def translate_error(self, error: Exception) -> MCPToolError:
        """
        Map a service exception onto a tool error.

        DispatchError subclasses carry their own code (NOT_FOUND, CONFLICT).
        Validation errors raised as ValueError become VALIDATION_ERROR and
        keep the offending field when the exception names one.
        """
        if isinstance(error, DispatchError):
            return MCPToolError(code=error.code, message=error.message, details=error.details)
        field = getattr(error, "field", None)
        if field:
            return self.invalid(field, str(error))
        return MCPToolError(code=VALIDATION_ERROR, message=str(error))

    def not_found(self, kind: str, resource_id: Any) -> MCPToolError:
        return MCPToolError(
            code=NOT_FOUND,
            message=f"{kind} not found.",
            details={f"{kind.lower()}_id": resource_id}
        )

    @abstractmethod
    async def execute(self, **kwargs) -> Dict[str, Any]:
        """Run the tool for ``kwargs["user_id"]`` and return a success envelope."""


def create_error_response(error: MCPToolError) -> Dict[str, Any]:
    """Error envelope: ``{"success": False, "error": {code, message, details}}``."""
    return {
        "success": False,
        "error": {
            "code": error.code,
            "message": error.message,
            "details": error.details
        }
    }


def create_success_response(data: Any, message: Optional[str] = None) -> Dict[str, Any]:
    """Success envelope: ``{"success": True, "data": ...}`` plus an optional message."""
    response = {"success": True, "data": data}
    if message:
        response["message"] = message
    return response
