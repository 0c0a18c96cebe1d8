"""Dispatch router: today's plan, summary edits, task links and completion."""
from fastapi import APIRouter, Depends, status

from dispatch_app.db.config import get_session
from dispatch_app.models.dispatch import Dispatch
from dispatch_app.models.user import User
from dispatch_app.routers.deps import get_authorized_user, raise_http_error
from dispatch_app.schemas.dispatch import (
    DispatchCompletionResponse,
    DispatchDetailResponse,
    DispatchLinkResponse,
    DispatchResponse,
    DispatchSummaryUpdate,
)
from dispatch_app.schemas.task import TaskResponse
from dispatch_app.services.dispatch_service import DispatchService
from dispatch_app.services.errors import DispatchError
from sqlmodel import Session

router = APIRouter(tags=["Dispatches"])


def get_dispatch_service(session: Session = Depends(get_session)) -> DispatchService:
    """Dependency for getting DispatchService instance."""
    return DispatchService(session)


def _with_tasks(service: DispatchService, dispatch: Dispatch, user_id: str) -> DispatchDetailResponse:
    tasks = service.list_dispatch_tasks(dispatch.id, user_id)
    return DispatchDetailResponse(
        **DispatchResponse.model_validate(dispatch).model_dump(),
        tasks=[TaskResponse.model_validate(task) for task in tasks]
    )


@router.get("/{user_id}/dispatches/today", response_model=DispatchDetailResponse)
async def get_today_dispatch(
    user_id: str,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    """Today's dispatch in the user's time zone, created on first access."""
    dispatch = service.get_today_dispatch(user_id, time_zone=user.time_zone)
    return _with_tasks(service, dispatch, user_id)


@router.get("/{user_id}/dispatches/{dispatch_id}", response_model=DispatchDetailResponse)
async def get_dispatch(
    user_id: str,
    dispatch_id: str,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    try:
        dispatch = service.get_dispatch(dispatch_id, user_id)
    except DispatchError as e:
        raise_http_error(e)
    return _with_tasks(service, dispatch, user_id)


@router.put("/{user_id}/dispatches/{dispatch_id}/summary", response_model=DispatchResponse)
async def update_dispatch_summary(
    user_id: str,
    dispatch_id: str,
    body: DispatchSummaryUpdate,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    """Replace the summary of an open dispatch."""
    try:
        return service.update_summary(dispatch_id, body.summary, user_id)
    except (DispatchError, ValueError) as e:
        raise_http_error(e)


@router.post("/{user_id}/dispatches/{dispatch_id}/tasks/{task_id}", response_model=DispatchLinkResponse)
async def link_task(
    user_id: str,
    dispatch_id: str,
    task_id: str,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    """Add a task to an open dispatch. Linking twice is a no-op."""
    try:
        link = service.link_task(dispatch_id, task_id, user_id)
    except DispatchError as e:
        raise_http_error(e)
    return DispatchLinkResponse(dispatch_id=link.dispatch_id, task_id=link.task_id, linked=True)


@router.delete("/{user_id}/dispatches/{dispatch_id}/tasks/{task_id}", response_model=DispatchLinkResponse)
async def unlink_task(
    user_id: str,
    dispatch_id: str,
    task_id: str,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    """Remove a task from an open dispatch."""
    try:
        link = service.unlink_task(dispatch_id, task_id, user_id)
    except DispatchError as e:
        raise_http_error(e)
    return DispatchLinkResponse(dispatch_id=link.dispatch_id, task_id=link.task_id, linked=False)


@router.post(
    "/{user_id}/dispatches/{dispatch_id}/complete",
    response_model=DispatchCompletionResponse,
    status_code=status.HTTP_200_OK,
)
async def complete_dispatch(
    user_id: str,
    dispatch_id: str,
    user: User = Depends(get_authorized_user),
    service: DispatchService = Depends(get_dispatch_service),
):
    """Finalize a dispatch and roll unfinished tasks into the next day."""
    try:
        completion = service.complete_dispatch(dispatch_id, user_id)
    except DispatchError as e:
        raise_http_error(e)
    return DispatchCompletionResponse(
        dispatch=DispatchResponse.model_validate(completion.dispatch),
        rolled_over=completion.rolled_over,
        next_dispatch_id=completion.next_dispatch_id
    )
