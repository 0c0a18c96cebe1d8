"""Bearer token authentication for the Dispatch API.

Tokens are HS256 JWTs whose ``sub`` claim is the Dispatch user id. Routes
that take a ``{user_id}`` path segment also require it to match the token.
"""
from datetime import datetime, timedelta
from fastapi import HTTPException, status, Request
from jose import jwt, JWTError
from pydantic import BaseModel
from typing import Any, Dict, Optional

from dispatch_app import config

BEARER_PREFIX = "Bearer "


class CurrentUser(BaseModel):
    """User information extracted from JWT."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: str, email: Optional[str] = None, expires_in: timedelta = timedelta(days=7)) -> str:
    """Issue a signed bearer token for a user."""
    issued_at = datetime.utcnow()
    claims = {"sub": user_id, "iat": issued_at, "exp": issued_at + expires_in}
    if email:
        claims["email"] = email
    return jwt.encode(claims, config.AUTH_SECRET, algorithm=config.AUTH_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a token's signature and expiry.

    Raises:
        HTTPException: 401 if the token is expired or invalid
    """
    try:
        return jwt.decode(token, config.AUTH_SECRET, algorithms=[config.AUTH_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")


async def get_current_user(request: Request) -> CurrentUser:
    """
    FastAPI dependency resolving the caller from the Authorization header.

    Raises:
        HTTPException: 401 if the header is missing, the token does not
            verify, or it carries no subject
    """
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith(BEARER_PREFIX):
        raise _unauthorized("Missing or invalid Authorization header")

    claims = decode_access_token(auth_header[len(BEARER_PREFIX):])

    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid token: missing user ID")

    return CurrentUser(user_id=user_id, email=claims.get("email"), name=claims.get("name"))


def ensure_same_user(user_id: str, current_user: CurrentUser) -> None:
    """
    Raises:
        HTTPException: 403 if the path user is not the token user
    """
    if user_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this user's resources"
        )
