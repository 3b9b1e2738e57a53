"""Shared API dependencies for authentication, caching and background work."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from underkover.core.security import decode_subject
from underkover.db.session import get_db
from underkover.models import User
from underkover.services.feed_cache import FeedCache
from underkover.services.posts import TagUpdateSink

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _load_user(token: str, db: Session) -> User | None:
    user_id = decode_subject(token)
    if user_id is None:
        return None
    return db.get(User, user_id)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Raises:
        HTTPException: If the token is invalid or the user does not exist.
    """
    user = _load_user(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return user


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
    db: SessionDep,
) -> User | None:
    """Resolve the caller when a usable token is supplied, else None."""
    if credentials is None:
        return None
    return _load_user(credentials.credentials, db)


def get_feed_cache(request: Request) -> FeedCache | None:
    """Return the process-wide feed cache owned by the application."""
    return getattr(request.app.state, "feed_cache", None)


def get_tag_dispatcher(request: Request) -> TagUpdateSink | None:
    """Return the background tag statistics dispatcher."""
    return getattr(request.app.state, "tag_dispatcher", None)


# Type aliases for common dependencies
CurrentUserDep = Annotated[User, Depends(get_current_user)]
OptionalUserDep = Annotated[User | None, Depends(get_optional_user)]
FeedCacheDep = Annotated[FeedCache | None, Depends(get_feed_cache)]
TagDispatcherDep = Annotated[TagUpdateSink | None, Depends(get_tag_dispatcher)]
