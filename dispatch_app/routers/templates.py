"""Template router: preset storage and template rendering."""
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from typing import Any, Dict, Optional

from dispatch_app.db.config import get_session
from dispatch_app.middleware.auth import CurrentUser, get_current_user
from dispatch_app.models.user import User
from dispatch_app.routers.deps import get_authorized_user, raise_http_error
from dispatch_app.schemas.task import TaskResponse
from dispatch_app.schemas.template_preset import (
    InstantiateTaskPresetRequest,
    RenderTemplateRequest,
    RenderTemplateResponse,
)
from dispatch_app.services.task_service import TaskService
from dispatch_app.services.template_presets import (
    TemplatePresetService,
    instantiate_task_preset,
    instantiate_text_preset,
)
from dispatch_app.services.templates import render_template
from dispatch_app.services.user_service import UserService
from sqlmodel import Session

router = APIRouter(tags=["Templates"])


def get_preset_service(session: Session = Depends(get_session)) -> TemplatePresetService:
    return TemplatePresetService(session)


@router.get("/{user_id}/template-presets", response_model=Dict[str, Any])
async def get_template_presets(
    user_id: str,
    user: User = Depends(get_authorized_user),
    service: TemplatePresetService = Depends(get_preset_service),
):
    """The user's saved task, note and dispatch presets."""
    return service.get_presets(user_id).model_dump(by_alias=True)


@router.put("/{user_id}/template-presets", response_model=Dict[str, Any])
async def save_template_presets(
    user_id: str,
    payload: Any = Body(...),
    user: User = Depends(get_authorized_user),
    service: TemplatePresetService = Depends(get_preset_service),
):
    """Replace all presets. The body is validated as a whole."""
    try:
        presets = service.save_presets(user_id, payload)
    except ValueError as e:
        raise_http_error(e)

    if presets is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return presets.model_dump(by_alias=True)


@router.post(
    "/{user_id}/template-presets/tasks/{preset_id}/instantiate",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task_from_preset(
    user_id: str,
    preset_id: str,
    body: Optional[InstantiateTaskPresetRequest] = None,
    user: User = Depends(get_authorized_user),
    service: TemplatePresetService = Depends(get_preset_service),
    session: Session = Depends(get_session),
):
    """Render a task preset against a day and create the task."""
    preset = service.find_task_preset(user_id, preset_id)
    if preset is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template preset not found")

    body = body or InstantiateTaskPresetRequest()
    fields = instantiate_task_preset(preset, reference_date=body.reference_date, time_zone=user.time_zone)
    try:
        return TaskService(session).create_task(user_id=user_id, due_date=body.due_date, **fields)
    except ValueError as e:
        raise_http_error(e)


@router.get("/{user_id}/template-presets/{kind}/{preset_id}/render", response_model=RenderTemplateResponse)
async def render_text_preset(
    user_id: str,
    kind: str,
    preset_id: str,
    reference_date: Optional[str] = Query(None, alias="referenceDate"),
    user: User = Depends(get_authorized_user),
    service: TemplatePresetService = Depends(get_preset_service),
):
    """Render a note or dispatch preset body."""
    preset = service.find_text_preset(user_id, kind, preset_id)
    if preset is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template preset not found")
    rendered = instantiate_text_preset(preset, reference_date=reference_date, time_zone=user.time_zone)
    return RenderTemplateResponse(rendered=rendered)


@router.post("/templates/render", response_model=RenderTemplateResponse)
async def render(
    body: RenderTemplateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Preview a template against a reference day (default: today for the user)."""
    time_zone = body.time_zone
    if time_zone is None:
        user = UserService(session).get_user(current_user.user_id)
        time_zone = user.time_zone if user else None

    rendered = render_template(body.template, reference_date=body.reference_date, time_zone=time_zone)
    return RenderTemplateResponse(rendered=rendered)
