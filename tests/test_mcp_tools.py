import asyncio

import pytest

from dispatch_app.mcp.base_tool import MCPToolError, create_error_response
from dispatch_app.mcp.server import MCPServer
from dispatch_app.mcp.tools import register_all_tools


@pytest.fixture
def server(session):
    server = MCPServer()
    register_all_tools(server, session)
    return server


def invoke(server, tool_name, **kwargs):
    return asyncio.run(server.invoke_tool(tool_name, **kwargs))


def test_all_tools_are_registered(server):
    assert set(server.list_tools()) == {
        "list_tasks",
        "create_task",
        "update_task",
        "complete_task",
        "delete_task",
        "get_today_dispatch",
        "update_dispatch_summary",
        "link_task_to_dispatch",
        "unlink_task_from_dispatch",
        "complete_dispatch",
        "render_template",
    }
    schemas = server.get_tool_schemas()
    assert all("user_id" in schema["parameters"]["required"] for schema in schemas.values())


def test_user_id_is_required(server):
    with pytest.raises(ValueError):
        invoke(server, "list_tasks")
    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "list_tasks", user_id="")
    assert excinfo.value.code == "UNAUTHORIZED"


def test_unknown_tool(server):
    with pytest.raises(ValueError):
        invoke(server, "drop_tables", user_id="alice")


def test_task_lifecycle(server, user):
    created = invoke(server, "create_task", user_id=user.id, title="Pay rent", due_date="2024-01-31", recurrence_type="monthly")
    assert created["success"] is True
    task_id = created["data"]["id"]

    completed = invoke(server, "complete_task", user_id=user.id, task_id=task_id)
    assert completed["data"]["next_due_date"] == "2024-02-29"
    assert completed["data"]["task"]["status"] == "open"

    updated = invoke(server, "update_task", user_id=user.id, task_id=task_id, priority="high")
    assert updated["data"]["priority"] == "high"
    assert updated["data"]["due_date"] == "2024-02-29"

    listed = invoke(server, "list_tasks", user_id=user.id)
    assert listed["data"]["count"] == 1

    invoke(server, "delete_task", user_id=user.id, task_id=task_id)
    assert invoke(server, "list_tasks", user_id=user.id)["data"]["count"] == 0


def test_validation_errors_carry_the_message(server, user):
    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "create_task", user_id=user.id, title="Bad", recurrence_type="custom")
    assert excinfo.value.code == "VALIDATION_ERROR"
    assert excinfo.value.details == {"field": "recurrence_rule"}
    assert "Custom recurrence requires recurrenceRule" in excinfo.value.message


def test_update_requires_some_field(server, user):
    task_id = invoke(server, "create_task", user_id=user.id, title="Task")["data"]["id"]
    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "update_task", user_id=user.id, task_id=task_id)
    assert excinfo.value.code == "VALIDATION_ERROR"


def test_missing_task_is_not_found(server, user):
    for tool in ("complete_task", "delete_task"):
        with pytest.raises(MCPToolError) as excinfo:
            invoke(server, tool, user_id=user.id, task_id="nope")
        assert excinfo.value.code == "NOT_FOUND"


def test_dispatch_flow(server, user, frozen_time):
    today = invoke(server, "get_today_dispatch", user_id=user.id)["data"]
    assert today["date"] == "2026-02-21"
    assert today["tasks"] == []

    task_id = invoke(server, "create_task", user_id=user.id, title="Carry me")["data"]["id"]
    invoke(server, "link_task_to_dispatch", user_id=user.id, dispatch_id=today["id"], task_id=task_id)
    invoke(server, "update_dispatch_summary", user_id=user.id, dispatch_id=today["id"], summary="Busy")

    result = invoke(server, "complete_dispatch", user_id=user.id, dispatch_id=today["id"])
    assert result["data"]["rolled_over"] == 1
    assert result["data"]["dispatch"]["summary"] == "Busy"
    assert result["data"]["next_dispatch_id"]

    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "complete_dispatch", user_id=user.id, dispatch_id=today["id"])
    assert excinfo.value.code == "CONFLICT"

    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "unlink_task_from_dispatch", user_id=user.id, dispatch_id=today["id"], task_id=task_id)
    assert excinfo.value.code == "CONFLICT"


def test_link_unknown_task(server, user):
    dispatch_id = invoke(server, "get_today_dispatch", user_id=user.id)["data"]["id"]
    with pytest.raises(MCPToolError) as excinfo:
        invoke(server, "link_task_to_dispatch", user_id=user.id, dispatch_id=dispatch_id, task_id="ghost")
    assert excinfo.value.code == "NOT_FOUND"


def test_render_template_uses_user_zone(server, make_user, frozen_time):
    tokyo = make_user(user_id="tokyo", time_zone="Asia/Tokyo")
    frozen_time.move_to("2026-02-21 20:00:00")
    result = invoke(server, "render_template", user_id=tokyo.id, template="{{date:dddd}}")
    assert result["data"]["rendered"] == "sunday"

    pinned = invoke(server, "render_template", user_id=tokyo.id, template="{{date:dddd}}", reference_date="2026-02-21")
    assert pinned["data"]["rendered"] == "saturday"


def test_error_envelope():
    error = MCPToolError(code="CONFLICT", message="Dispatch is already finalized.", details={"dispatch_id": "d"})
    assert create_error_response(error) == {
        "success": False,
        "error": {"code": "CONFLICT", "message": "Dispatch is already finalized.", "details": {"dispatch_id": "d"}},
    }


def test_missing_arguments(server):
    assert server.missing_arguments("link_task_to_dispatch", {"user_id": "alice"}) == ["dispatch_id", "task_id"]
    assert server.missing_arguments("list_tasks", {"user_id": "alice"}) == []
