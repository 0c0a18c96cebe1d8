"""
Dispatch Rollover Orchestrator

A dispatch is a user's plan for one calendar day. It is created lazily,
edited while open, and finalized exactly once. Finalizing rolls every
unfinished linked task into the next day's dispatch.

Uniqueness of (user_id, date) and of (dispatch_id, task_id) is enforced by
the database; the get-or-create and link paths insert inside a savepoint and
recover from the integrity error a concurrent insert produces instead of
relying on the read-check.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from dispatch_app.config import MAX_SUMMARY_LENGTH
from dispatch_app.models.dispatch import Dispatch, DispatchTask
from dispatch_app.models.task import Task
from dispatch_app.models.user import User
from dispatch_app.services.errors import DispatchFinalizedError, DispatchNotFoundError, TaskNotFoundError
from dispatch_app.services.timezone import add_days_to_iso_date, parse_iso_date, today_iso_date
from dispatch_app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DispatchCompletion:
    """Result of finalizing a dispatch."""
    dispatch: Dispatch
    rolled_over: int
    next_dispatch_id: Optional[str]

    def to_dict(self) -> dict:
        return {
            "dispatch": self.dispatch.to_dict(),
            "rolled_over": self.rolled_over,
            "next_dispatch_id": self.next_dispatch_id,
        }


class DispatchService:
    """Service class for the dispatch lifecycle."""

    def __init__(self, session: Session):
        self.session = session

    def _find_by_date(self, user_id: str, date: str, fresh: bool = False) -> Optional[Dispatch]:
        statement = select(Dispatch).where(Dispatch.user_id == user_id).where(Dispatch.date == date)
        if fresh:
            statement = statement.execution_options(populate_existing=True)
        return self.session.exec(statement).first()

    def get_dispatch(self, dispatch_id: str, user_id: str) -> Dispatch:
        """
        Get a dispatch owned by the user.

        Raises:
            DispatchNotFoundError: If missing or owned by someone else
        """
        statement = select(Dispatch).where(Dispatch.id == dispatch_id).where(Dispatch.user_id == user_id)
        dispatch = self.session.exec(statement).first()
        if not dispatch:
            raise DispatchNotFoundError("Dispatch not found.", {"dispatch_id": dispatch_id})
        return dispatch

    def _get_open_dispatch(self, dispatch_id: str, user_id: str, message: str) -> Dispatch:
        dispatch = self.get_dispatch(dispatch_id, user_id)
        if dispatch.finalized:
            raise DispatchFinalizedError(message, {"dispatch_id": dispatch_id})
        return dispatch

    def _get_live_task(self, task_id: str, user_id: str) -> Task:
        statement = (
            select(Task)
            .where(Task.id == task_id)
            .where(Task.user_id == user_id)
            .where(Task.deleted_at.is_(None))
        )
        task = self.session.exec(statement).first()
        if not task:
            raise TaskNotFoundError("Task not found.", {"task_id": task_id})
        return task

    def user_time_zone(self, user_id: str) -> Optional[str]:
        user = self.session.get(User, user_id)
        return user.time_zone if user else None

    def _ensure_dispatch(self, user_id: str, date: str) -> Tuple[Dispatch, bool]:
        """
        Find or insert the (user_id, date) row without committing.

        Returns:
            The dispatch and whether this call inserted it
        """
        existing = self._find_by_date(user_id, date)
        if existing:
            return existing, False

        now = datetime.utcnow()
        dispatch = Dispatch(user_id=user_id, date=date, summary="", created_at=now, updated_at=now)
        try:
            with self.session.begin_nested():
                self.session.add(dispatch)
        except IntegrityError:
            # Lost a race with a concurrent insert for the same day
            existing = self._find_by_date(user_id, date)
            if existing is None:
                raise
            return existing, False
        return dispatch, True

    def get_or_create_dispatch(self, user_id: str, date: str) -> Dispatch:
        """
        Return the user's dispatch for a calendar day, creating it if needed.

        Raises:
            ValueError: If date is not a YYYY-MM-DD calendar day
        """
        if parse_iso_date(date) is None:
            raise ValueError(f"Invalid dispatch date: {date!r}")

        dispatch, created = self._ensure_dispatch(user_id, date)
        if not created:
            return dispatch

        self.session.commit()
        self.session.refresh(dispatch)
        logger.info("dispatch_created", dispatch_id=dispatch.id, user_id=user_id, date=date)
        return dispatch

    def get_today_dispatch(self, user_id: str, time_zone: Optional[str] = None) -> Dispatch:
        """Today's dispatch in the user's effective time zone."""
        zone = time_zone if time_zone is not None else self.user_time_zone(user_id)
        return self.get_or_create_dispatch(user_id, today_iso_date(zone))

    def update_summary(self, dispatch_id: str, summary: str, user_id: str) -> Dispatch:
        """
        Replace the summary of an open dispatch.

        Raises:
            DispatchNotFoundError, DispatchFinalizedError, ValueError
        """
        if not isinstance(summary, str):
            raise ValueError("summary must be a string")
        if len(summary) > MAX_SUMMARY_LENGTH:
            raise ValueError(f"summary must be at most {MAX_SUMMARY_LENGTH} characters")

        dispatch = self._get_open_dispatch(dispatch_id, user_id, "Cannot update summary on a finalized dispatch.")
        dispatch.summary = summary
        dispatch.updated_at = datetime.utcnow()
        self.session.add(dispatch)
        self.session.commit()
        self.session.refresh(dispatch)
        return dispatch

    def _add_link(self, dispatch_id: str, task_id: str) -> bool:
        """Add a link unless it exists, without committing. Returns True if a row was added."""
        if self.session.get(DispatchTask, (dispatch_id, task_id)) is not None:
            return False

        try:
            with self.session.begin_nested():
                self.session.add(DispatchTask(dispatch_id=dispatch_id, task_id=task_id))
        except IntegrityError:
            # Linked concurrently; the pair already exists
            return False
        return True

    def link_task(self, dispatch_id: str, task_id: str, user_id: str) -> DispatchTask:
        """
        Link a live task to an open dispatch. Linking twice is a no-op.

        Raises:
            DispatchNotFoundError, DispatchFinalizedError, TaskNotFoundError
        """
        dispatch = self._get_open_dispatch(dispatch_id, user_id, "Cannot modify a finalized dispatch.")
        task = self._get_live_task(task_id, user_id)
        if self._add_link(dispatch.id, task.id):
            self.session.commit()
        return DispatchTask(dispatch_id=dispatch.id, task_id=task.id)

    def unlink_task(self, dispatch_id: str, task_id: str, user_id: str) -> DispatchTask:
        """
        Remove a link from an open dispatch. Unlinking a missing pair is a no-op.

        Raises:
            DispatchNotFoundError, DispatchFinalizedError
        """
        dispatch = self._get_open_dispatch(dispatch_id, user_id, "Cannot modify a finalized dispatch.")
        link = self.session.get(DispatchTask, (dispatch.id, task_id))
        if link is not None:
            self.session.delete(link)
            self.session.commit()
        return DispatchTask(dispatch_id=dispatch.id, task_id=task_id)

    def list_dispatch_tasks(self, dispatch_id: str, user_id: str) -> List[Task]:
        """Live tasks linked to a dispatch."""
        dispatch = self.get_dispatch(dispatch_id, user_id)
        statement = (
            select(Task)
            .join(DispatchTask, DispatchTask.task_id == Task.id)
            .where(DispatchTask.dispatch_id == dispatch.id)
            .where(Task.deleted_at.is_(None))
            .order_by(Task.created_at)
        )
        return list(self.session.exec(statement).all())

    def complete_dispatch(self, dispatch_id: str, user_id: str) -> DispatchCompletion:
        """
        Finalize a dispatch and roll unfinished tasks into the next day.

        Unfinished work always moves to date + 1, however old the dispatch
        is. The next day's dispatch is only created when something rolls
        over. Finalizing, creating the next dispatch and linking the rolled
        tasks commit together or not at all.

        Raises:
            DispatchNotFoundError: If the dispatch is missing
            DispatchFinalizedError: If it is already finalized, or the next
                day's dispatch is finalized and cannot receive tasks
        """
        dispatch = self._get_open_dispatch(dispatch_id, user_id, "Dispatch is already finalized.")

        linked = self.list_dispatch_tasks(dispatch.id, user_id)
        unfinished_ids = [task.id for task in linked if not task.is_done]
        next_date = add_days_to_iso_date(dispatch.date, 1)

        try:
            # Check-and-set so two concurrent completions cannot both succeed
            result = self.session.exec(
                update(Dispatch)
                .where(Dispatch.id == dispatch.id)
                .where(Dispatch.finalized == False)  # noqa: E712
                .values(finalized=True, updated_at=datetime.utcnow())
            )
            if result.rowcount == 0:
                raise DispatchFinalizedError("Dispatch is already finalized.", {"dispatch_id": dispatch.id})

            next_dispatch_id = None
            if unfinished_ids:
                self._ensure_dispatch(user_id, next_date)
                # Re-read inside the transaction; another request may have finalized it
                upcoming = self._find_by_date(user_id, next_date, fresh=True)
                if upcoming.finalized:
                    raise DispatchFinalizedError(
                        "Next day's dispatch is finalized; cannot roll over unfinished tasks.",
                        {"dispatch_id": dispatch.id, "next_dispatch_id": upcoming.id},
                    )
                for task_id in unfinished_ids:
                    self._add_link(upcoming.id, task_id)
                next_dispatch_id = upcoming.id

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(dispatch)

        logger.info(
            "dispatch_completed",
            dispatch_id=dispatch.id,
            user_id=user_id,
            date=dispatch.date,
            rolled_over=len(unfinished_ids),
            next_dispatch_id=next_dispatch_id,
        )
        return DispatchCompletion(dispatch=dispatch, rolled_over=len(unfinished_ids), next_dispatch_id=next_dispatch_id)
