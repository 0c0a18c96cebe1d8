"""Task service: CRUD with recurrence validation and completion handling."""
from dataclasses import dataclass
from sqlmodel import Session, select
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime

from dispatch_app.config import MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH
from dispatch_app.models.recurrence_rule import RecurrenceBehavior, RecurrenceType
from dispatch_app.models.task import TASK_PRIORITIES, TASK_STATUSES, Task
from dispatch_app.models.user import User
from dispatch_app.services.recurrence import next_occurrence, normalize_recurrence_behavior
from dispatch_app.services.recurrence_preview import RecurrencePreview, recurrence_preview
from dispatch_app.services.recurrence_validator import RecurrenceValidator
from dispatch_app.services.timezone import today_iso_date
from dispatch_app.utils.logger import get_logger

logger = get_logger(__name__)


class TaskValidationError(ValueError):
    """A task write was rejected."""


@dataclass
class TaskCompletion:
    """Outcome of completing a task.

    next_due_date is set when the task recurred instead of closing.
    """
    task: Task
    next_due_date: Optional[str] = None


class TaskService:
    """Service class for task CRUD operations with recurrence."""

    def __init__(self, session: Session):
        self.session = session

    def _validate_fields(self, fields: Dict[str, Any]) -> None:
        title = fields.get("title")
        if "title" in fields and (not isinstance(title, str) or not title.strip()):
            raise TaskValidationError("title must be a non-empty string")
        if isinstance(title, str) and len(title) > MAX_TITLE_LENGTH:
            raise TaskValidationError(f"title must be at most {MAX_TITLE_LENGTH} characters")

        description = fields.get("description")
        if description is not None and not isinstance(description, str):
            raise TaskValidationError("description must be a string")
        if description and len(description) > MAX_DESCRIPTION_LENGTH:
            raise TaskValidationError(f"description must be at most {MAX_DESCRIPTION_LENGTH} characters")

        if "status" in fields and fields["status"] not in TASK_STATUSES:
            raise TaskValidationError(f"Invalid status. Must be one of: {', '.join(TASK_STATUSES)}")
        if "priority" in fields and fields["priority"] not in TASK_PRIORITIES:
            raise TaskValidationError(f"Invalid priority. Must be one of: {', '.join(TASK_PRIORITIES)}")

    def user_time_zone(self, user_id: str) -> Optional[str]:
        user = self.session.get(User, user_id)
        return user.time_zone if user else None

    def create_task(
        self,
        user_id: str,
        title: str,
        description: Optional[str] = None,
        status: str = "open",
        priority: str = "medium",
        due_date: Optional[str] = None,
        recurrence_type: Optional[str] = None,
        recurrence_behavior: Optional[str] = None,
        recurrence_rule: Any = None,
    ) -> Task:
        """
        Create a new task.

        Raises:
            TaskValidationError: On invalid basic fields
            RecurrenceValidationError: On invalid recurrence settings
        """
        self._validate_fields({
            "title": title,
            "description": description,
            "status": status or "open",
            "priority": priority or "medium",
        })
        settings = RecurrenceValidator.validate_create(
            recurrence_type=recurrence_type,
            recurrence_behavior=recurrence_behavior,
            recurrence_rule=recurrence_rule,
            due_date=due_date,
        )

        task = Task(
            user_id=user_id,
            title=title.strip(),
            description=description,
            status=status or "open",
            priority=priority or "medium",
            due_date=RecurrenceValidator.validate_due_date(due_date),
            recurrence_type=settings.recurrence_type,
            recurrence_behavior=settings.recurrence_behavior,
            recurrence_rule=settings.recurrence_rule,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        )

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def get_task(self, task_id: str, user_id: str) -> Optional[Task]:
        """Get a live task by ID, ensuring user ownership."""
        statement = (
            select(Task)
            .where(Task.id == task_id)
            .where(Task.user_id == user_id)
            .where(Task.deleted_at.is_(None))
        )
        return self.session.exec(statement).first()

    def list_tasks(
        self,
        user_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        limit: int = 30,
    ) -> List[Task]:
        """List live tasks, most recently updated first."""
        statement = select(Task).where(Task.user_id == user_id).where(Task.deleted_at.is_(None))
        if status:
            statement = statement.where(Task.status == status)
        if priority:
            statement = statement.where(Task.priority == priority)
        statement = statement.order_by(Task.updated_at.desc()).limit(limit)
        return list(self.session.exec(statement).all())

    def update_task(self, task_id: str, user_id: str, changes: Dict[str, Any]) -> Optional[Task]:
        """
        Apply a partial update, ensuring user ownership.

        Args:
            changes: Only the submitted fields; None clears nullable fields

        Returns:
            The updated task, or None if not found
        """
        task = self.get_task(task_id, user_id)
        if not task:
            return None

        self._validate_fields({k: v for k, v in changes.items() if k in ("title", "description", "status", "priority")})
        updates = RecurrenceValidator.validate_update(task, changes)

        if "title" in changes:
            task.title = changes["title"].strip()
        for field in ("description", "status", "priority"):
            if field in changes:
                setattr(task, field, changes[field])
        for field, value in updates.items():
            setattr(task, field, value)

        task.updated_at = datetime.utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def complete_task(self, task_id: str, user_id: str, time_zone: Optional[str] = None) -> Optional[TaskCompletion]:
        """
        Mark a task done.

        A recurring task with after_completion behavior is not closed: its
        due date moves to the next occurrence (anchored on the current due
        date, or today when it has none) and it is reopened.
        """
        task = self.get_task(task_id, user_id)
        if not task:
            return None

        behavior = normalize_recurrence_behavior(task.recurrence_type, task.recurrence_behavior)
        next_due = None
        if task.is_recurring and behavior == RecurrenceBehavior.AFTER_COMPLETION:
            zone = time_zone if time_zone is not None else self.user_time_zone(user_id)
            anchor = task.due_date or today_iso_date(zone)
            next_due = next_occurrence(anchor, task.recurrence_type, task.recurrence_rule)

        if next_due:
            task.due_date = next_due
            task.status = "open"
        else:
            task.status = "done"
        task.updated_at = datetime.utcnow()
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)

        logger.info(
            "task_completed",
            task_id=task.id,
            user_id=user_id,
            recurred=next_due is not None,
            next_due_date=next_due,
        )
        return TaskCompletion(task=task, next_due_date=next_due)

    def delete_task(self, task_id: str, user_id: str) -> bool:
        """Soft-delete a task, ensuring user ownership."""
        task = self.get_task(task_id, user_id)
        if not task:
            return False

        now = datetime.utcnow()
        task.deleted_at = now
        task.updated_at = now
        self.session.add(task)
        self.session.commit()
        return True

    def get_recurring_tasks(self, user_id: str, today: Optional[str] = None) -> List[Tuple[Task, RecurrencePreview]]:
        """All live recurring tasks with a preview of their next occurrence."""
        statement = (
            select(Task)
            .where(Task.user_id == user_id)
            .where(Task.deleted_at.is_(None))
            .where(Task.recurrence_type != RecurrenceType.NONE.value)
            .order_by(Task.created_at.desc())
        )
        tasks = list(self.session.exec(statement).all())
        today = today or today_iso_date(self.user_time_zone(user_id))
        return [(task, recurrence_preview(task, today=today)) for task in tasks]
