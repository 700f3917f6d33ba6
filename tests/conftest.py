# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")

from review_filter.core.security import create_access_token  # noqa: E402
from review_filter.db.guard import bind_auth  # noqa: E402
from review_filter.db.session import Base  # noqa: E402
from review_filter.db.session import get_db as app_get_session  # noqa: E402
from review_filter.main import app as fastapi_app  # noqa: E402
from review_filter.models import Comment, Review, Roadmap, User  # noqa: E402
from review_filter.policy.moderation import ModerationStatus  # noqa: E402
from review_filter.policy.roles import Role  # noqa: E402
from review_filter.policy.rules import RequestAuth  # noqa: E402
from review_filter.services.notifications import Notice, get_notifier  # noqa: E402

TEST_DB_URL = "sqlite://"


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
    """Trusted session for arranging data; no storage rules apply."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def guarded_session(session_factory: sessionmaker[Session]) -> Iterator[Callable[..., Session]]:
    """Factory for sessions bound to a caller, as the API binds them."""
    opened: list[Session] = []

    def _make(uid: str | None = None, role: Role | None = None) -> Session:
        session = session_factory()
        bind_auth(session, RequestAuth(uid=uid, role=role) if uid else None)
        opened.append(session)
        return session

    try:
        yield _make
    finally:
        for session in opened:
            session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, session_factory: sessionmaker[Session]) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def notices() -> Iterator[list[Notice]]:
    """Collect every notice emitted during the test."""
    received: list[Notice] = []
    notifier = get_notifier()
    notifier.register(received.append)
    try:
        yield received
    finally:
        notifier.unregister(received.append)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(
        user_id: str,
        role: Role = Role.LOGIN_NOT_AUTH,
        previous_role: Role | None = None,
        nickname: str | None = None,
    ) -> User:
        user = User(id=user_id, role=role, previous_role=previous_role, nickname=nickname or user_id)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


def _auth_headers(user: User | str, role: Role | None = None) -> dict[str, str]:
    if isinstance(user, User):
        token = create_access_token(user.id, role=role or user.role)
    else:
        token = create_access_token(user, role=role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def headers_for() -> Callable[..., dict[str, str]]:
    """Bearer header whose role claim mirrors the user's stored role."""
    return _auth_headers


@pytest.fixture()
def admin(make_user: Callable[..., User]) -> User:
    return make_user("admin-1", Role.ADMIN)


@pytest.fixture()
def other_admin(make_user: Callable[..., User]) -> User:
    return make_user("admin-2", Role.ADMIN)


@pytest.fixture()
def newcomer(make_user: Callable[..., User]) -> User:
    return make_user("newcomer", Role.LOGIN_NOT_AUTH)


@pytest.fixture()
def member(make_user: Callable[..., User]) -> User:
    return make_user("member", Role.AUTH_LOGIN)


@pytest.fixture()
def premium(make_user: Callable[..., User]) -> User:
    return make_user("premium", Role.AUTH_PREMIUM)


@pytest.fixture()
def blocked(make_user: Callable[..., User]) -> User:
    return make_user("blocked", Role.BLOCKED_LOGIN, previous_role=Role.AUTH_LOGIN)


REVIEW_PAYLOAD: dict[str, Any] = {
    "course_title": "Intro to Databases",
    "course_platform": "Coursera",
    "content": "Clear lectures and useful exercises.",
    "rating": 4,
}

ROADMAP_PAYLOAD: dict[str, Any] = {
    "title": "Backend path",
    "description": "From SQL to APIs",
    "course_title": "Intro to Databases",
    "course_platform": "Coursera",
}


@pytest.fixture()
def make_review(db_session: Session) -> Callable[..., Review]:
    def _make(author: User, status: ModerationStatus = ModerationStatus.PENDING, **overrides: Any) -> Review:
        review = Review(author_id=author.id, status=status, **{**REVIEW_PAYLOAD, **overrides})
        db_session.add(review)
        db_session.commit()
        db_session.refresh(review)
        return review

    return _make


@pytest.fixture()
def make_roadmap(db_session: Session) -> Callable[..., Roadmap]:
    def _make(author: User, status: ModerationStatus = ModerationStatus.PENDING, **overrides: Any) -> Roadmap:
        roadmap = Roadmap(author_id=author.id, status=status, **{**ROADMAP_PAYLOAD, **overrides})
        db_session.add(roadmap)
        db_session.commit()
        db_session.refresh(roadmap)
        return roadmap

    return _make


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[..., Comment]:
    def _make(
        author: User,
        review: Review,
        status: ModerationStatus = ModerationStatus.PENDING,
        content: str = "Agreed, great course.",
    ) -> Comment:
        comment = Comment(author_id=author.id, review_id=review.id, status=status, content=content)
        db_session.add(comment)
        db_session.commit()
        db_session.refresh(comment)
        return comment

    return _make
