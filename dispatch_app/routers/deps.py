"""Shared router dependencies and error translation."""
from typing import NoReturn

from fastapi import Depends, HTTPException, status
from sqlmodel import Session

from dispatch_app.db.config import get_session
from dispatch_app.middleware.auth import CurrentUser, ensure_same_user, get_current_user
from dispatch_app.models.user import User
from dispatch_app.services.errors import DispatchFinalizedError, DispatchNotFoundError, TaskNotFoundError
from dispatch_app.services.user_service import UserService


async def get_authorized_user(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> User:
    """Path user must be the token user; the user row is provisioned on first use."""
    ensure_same_user(user_id, current_user)
    return UserService(session).ensure_user(user_id, email=current_user.email, name=current_user.name)


def raise_http_error(error: Exception) -> NoReturn:
    """Translate a service exception into an HTTPException."""
    if isinstance(error, DispatchFinalizedError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
    if isinstance(error, (DispatchNotFoundError, TaskNotFoundError)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
