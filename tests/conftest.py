# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterable, Iterator
from datetime import datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("FEED_CACHE_BACKEND", "memory")
os.environ.setdefault("TAG_SWEEP_INTERVAL_SECONDS", "0")

from underkover.api.v1.dependencies import get_feed_cache, get_tag_dispatcher  # noqa: E402
from underkover.core.security import create_access_token  # noqa: E402
from underkover.db.session import Base  # noqa: E402
from underkover.db.session import get_db as app_get_session  # noqa: E402
from underkover.db.time import utcnow  # noqa: E402
from underkover.main import app as fastapi_app  # noqa: E402
from underkover.models import GhostCircle, GhostCircleMember, Post, User  # noqa: E402
from underkover.services.feed_cache import InMemoryFeedCache  # noqa: E402

TEST_DB_URL = "sqlite://"


class RecordingTagUpdates:
    """Stands in for the background dispatcher and remembers submissions."""

    def __init__(self) -> None:
        self.submitted: list[list[str]] = []

    def submit(self, tag_names: Iterable[str]) -> None:
        self.submitted.append(list(tag_names))

    @property
    def names(self) -> set[str]:
        return {name for batch in self.submitted for name in batch}


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def feed_cache() -> InMemoryFeedCache:
    return InMemoryFeedCache(ttl_seconds=60)


@pytest.fixture()
def tag_updates() -> RecordingTagUpdates:
    return RecordingTagUpdates()


@pytest.fixture()
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    feed_cache: InMemoryFeedCache,
    tag_updates: RecordingTagUpdates,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_feed_cache] = lambda: feed_cache
    app.dependency_overrides[get_tag_dispatcher] = lambda: tag_updates
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _make_user(session: Session, alias: str, avatar: str, **fields: Any) -> User:
    user = User(anonymous_alias=alias, avatar_emoji=avatar, **fields)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> User:
    """Create and return a persisted test user."""
    return _make_user(db_session, "Silent Owl", "🦉", college="Test College", area="North")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """Create and return a second persisted user."""
    return _make_user(db_session, "Hidden Fox", "🦊")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return {"Authorization": f"Bearer {create_access_token(test_user.id)}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return {"Authorization": f"Bearer {create_access_token(other_user.id)}"}


@pytest.fixture()
def ghost_circle(db_session: Session, test_user: User) -> GhostCircle:
    """A live circle created by ``test_user`` with no other members."""
    now = utcnow()
    circle = GhostCircle(
        name="Night Shift",
        creator_id=test_user.id,
        created_at=now,
        expires_at=now + timedelta(hours=6),
    )
    db_session.add(circle)
    db_session.flush()
    db_session.add(GhostCircleMember(circle_id=circle.id, user_id=test_user.id))
    db_session.commit()
    db_session.refresh(circle)
    return circle


@pytest.fixture()
def make_post(db_session: Session, test_user: User) -> Callable[..., Post]:
    """Return a factory persisting posts with sensible defaults."""

    def _make(
        content: str = "Test post content",
        *,
        tags: Iterable[str] = (),
        author: User | None = None,
        college: str | None = None,
        area: str | None = None,
        ghost_circle_id: int | None = None,
        is_seed: bool = False,
        created_at: datetime | None = None,
        expires_at: datetime | None = None,
        comments: list[dict[str, Any]] | None = None,
    ) -> Post:
        now = utcnow()
        author = author or test_user
        post = Post(
            author_id=None if is_seed else author.id,
            content=content,
            images=[],
            videos=[],
            anonymous_alias=author.anonymous_alias,
            avatar_emoji=author.avatar_emoji,
            created_at=created_at or now,
            expires_at=expires_at or now + timedelta(hours=24),
            college=college,
            area=area,
            ghost_circle_id=ghost_circle_id,
            comments=comments or [],
            share_count=0,
            is_seed=is_seed,
        )
        post.set_tags(list(tags))
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make
