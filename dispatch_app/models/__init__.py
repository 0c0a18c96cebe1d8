"""SQLModel tables. Importing this package registers every table on SQLModel.metadata."""
from dispatch_app.models.user import User
from dispatch_app.models.task import Task
from dispatch_app.models.dispatch import Dispatch, DispatchTask

__all__ = ["User", "Task", "Dispatch", "DispatchTask"]
