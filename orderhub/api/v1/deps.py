"""
API Dependencies

Resolves the bearer token to a user and the immutable Actor passed to every
service call.
"""
from typing import Annotated, Optional

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from orderhub.core.permissions import Actor, Role
from orderhub.core.security import get_user_id_from_token
from orderhub.db.session import get_db
from orderhub.exceptions import AuthenticationError, AuthorizationError, InvalidTokenError
from orderhub.integrations.blob_store import BlobStore, get_blob_store
from orderhub.logging_config import get_logger
from orderhub.models.user import User

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user from the access token

    Raises:
        AuthenticationError: no token, bad token or unknown user (401)
        AuthorizationError: user account is inactive (403)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    user_id = get_user_id_from_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise InvalidTokenError("Could not validate credentials")

    if not user.is_active:
        logger.warning(f"Inactive user {user.id} attempted access")
        raise AuthorizationError(action="login", resource=f"user {user.id}")
    return user


def get_current_actor(current_user: Annotated[User, Depends(get_current_user)]) -> Actor:
    """The acting identity for this request, as an immutable value."""
    try:
        role = Role(current_user.role)
    except ValueError:
        logger.error(f"User {current_user.id} has unknown role {current_user.role!r}")
        raise AuthorizationError(action="login", resource=f"user {current_user.id}")
    return Actor(
        id=current_user.id,
        role=role,
        email=current_user.email,
        name=current_user.name,
        client_id=current_user.client_id,
        manufacturer_id=current_user.manufacturer_id,
    )


def get_store() -> BlobStore:
    return get_blob_store()


def get_pagination(
    offset: int = Query(default=0, ge=0, description="Number of records to skip"),
    limit: int = Query(default=50, ge=1, le=500, description="Maximum records to return"),
) -> dict:
    return {"offset": offset, "limit": limit}


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
