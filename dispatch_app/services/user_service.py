"""User provisioning and preferences."""
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from dispatch_app.models.user import User
from dispatch_app.services.timezone import is_valid_time_zone


class UserService:
    """Service class for user rows keyed by the token subject."""

    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def ensure_user(self, user_id: str, email: Optional[str] = None, name: Optional[str] = None) -> User:
        """Return the user, creating the row on first sight of a token subject."""
        user = self.get_user(user_id)
        if user:
            return user

        user = User(id=user_id, email=email or f"{user_id}@users.invalid", name=name)
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            user = self.get_user(user_id)
            if user is None:
                raise
            return user

        self.session.refresh(user)
        return user

    def set_time_zone(self, user_id: str, time_zone: Optional[str]) -> Optional[User]:
        """
        Store or clear the user's IANA zone preference.

        Raises:
            ValueError: If the zone name is not recognized
        """
        user = self.get_user(user_id)
        if not user:
            return None

        value = time_zone.strip() if isinstance(time_zone, str) else None
        if value and not is_valid_time_zone(value):
            raise ValueError(f"Unknown time zone: {time_zone}")

        user.time_zone = value or None
        user.updated_at = datetime.utcnow()
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user
