"""Task router."""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional, Dict, Any

from dispatch_app.schemas.task import (
    RecurringTaskResponse,
    TaskCompletionResponse,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
)
from dispatch_app.services.task_service import TaskService
from dispatch_app.db.config import get_session
from dispatch_app.models.user import User
from dispatch_app.routers.deps import get_authorized_user, raise_http_error
from sqlmodel import Session

router = APIRouter(tags=["Tasks"])  # No prefix since main.py adds /api prefix


def get_task_service(session: Session = Depends(get_session)) -> TaskService:
    """Dependency for getting TaskService instance."""
    return TaskService(session)


@router.get("/{user_id}/tasks", response_model=Dict[str, Any])
async def list_tasks(
    user_id: str,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status: open, in_progress, done"),
    priority: Optional[str] = Query(None, description="Filter by priority: low, medium, high"),
    limit: int = Query(30, ge=1, le=100),
):
    """List live tasks for the authenticated user."""
    tasks = service.list_tasks(user_id, status=status_filter, priority=priority, limit=limit)
    return {
        "tasks": [TaskResponse.model_validate(task).model_dump(mode="json") for task in tasks],
        "count": len(tasks)
    }


@router.post("/{user_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    user_id: str,
    task_data: TaskCreate,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Create a new task, optionally recurring."""
    try:
        return service.create_task(
            user_id=user_id,
            title=task_data.title,
            description=task_data.description,
            status=task_data.status,
            priority=task_data.priority,
            due_date=task_data.due_date,
            recurrence_type=task_data.recurrence_type,
            recurrence_behavior=task_data.recurrence_behavior,
            recurrence_rule=task_data.recurrence_rule
        )
    except ValueError as e:
        raise_http_error(e)


@router.get("/{user_id}/recurring-tasks", response_model=List[RecurringTaskResponse])
async def get_recurring_tasks(
    user_id: str,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Get all recurring tasks with a preview of their next occurrence."""
    return [
        RecurringTaskResponse(task=TaskResponse.model_validate(task), **preview.to_dict())
        for task, preview in service.get_recurring_tasks(user_id)
    ]


@router.get("/{user_id}/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    user_id: str,
    task_id: str,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID."""
    task = service.get_task(task_id, user_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.put("/{user_id}/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    user_id: str,
    task_id: str,
    task_data: TaskUpdate,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Update the fields present in the request body."""
    try:
        task = service.update_task(task_id, user_id, task_data.submitted_fields())
    except ValueError as e:
        raise_http_error(e)

    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.delete("/{user_id}/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    user_id: str,
    task_id: str,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task."""
    if not service.delete_task(task_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )


@router.patch("/{user_id}/tasks/{task_id}/complete", response_model=TaskCompletionResponse)
async def complete_task(
    user_id: str,
    task_id: str,
    user: User = Depends(get_authorized_user),
    service: TaskService = Depends(get_task_service),
):
    """Complete a task. Recurring tasks move to their next due date instead."""
    completion = service.complete_task(task_id, user_id, time_zone=user.time_zone)
    if not completion:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return TaskCompletionResponse(
        task=TaskResponse.model_validate(completion.task),
        next_due_date=completion.next_due_date
    )
