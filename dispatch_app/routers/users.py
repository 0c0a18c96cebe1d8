"""User settings router."""
from fastapi import APIRouter, Depends

from dispatch_app.db.config import get_session
from dispatch_app.models.user import User
from dispatch_app.routers.deps import get_authorized_user, raise_http_error
from dispatch_app.schemas.user import UserSettings, UserSettingsUpdate
from dispatch_app.services.timezone import resolve_effective_time_zone
from dispatch_app.services.user_service import UserService
from sqlmodel import Session

router = APIRouter(tags=["Users"])


def _settings(user: User) -> dict:
    return UserSettings(
        time_zone=user.time_zone,
        effective_time_zone=resolve_effective_time_zone(user.time_zone)
    ).model_dump(by_alias=True)


@router.get("/{user_id}/settings")
async def get_settings(user_id: str, user: User = Depends(get_authorized_user)):
    return _settings(user)


@router.put("/{user_id}/settings")
async def update_settings(
    user_id: str,
    body: UserSettingsUpdate,
    user: User = Depends(get_authorized_user),
    session: Session = Depends(get_session),
):
    """Set or clear the time zone used for "today"."""
    try:
        updated = UserService(session).set_time_zone(user_id, body.time_zone)
    except ValueError as e:
        raise_http_error(e)
    return _settings(updated)
