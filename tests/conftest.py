import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read at import time, give the app a throwaway config first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "30")

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.core.security import create_access_token, gravatar_url, hash_password
from app.main import app
from app.core import models
from app.core.database import Base, get_db
from app.core.repositories.posts import PostsRepository


# Fresh SQLite file for every test, dropped with tmp_path
@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'forum.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


# Session (workers) factory bound to the test db
@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Repository on its own session, like one request would get
@pytest_asyncio.fixture(scope="function")
async def repo(session_factory):
    async with session_factory() as session:
        yield PostsRepository(session)


# Client
@pytest_asyncio.fixture(scope="function")
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


async def make_user(db_session: AsyncSession, prefix: str = "user") -> models.User:
    username = f"{prefix}_{uuid.uuid4().hex[:8]}"
    user = models.User(
        username=username,
        password=hash_password("password123"),
        gravatar=gravatar_url(username),
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


# User
@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession):
    return await make_user(db_session)


# Token for user
@pytest_asyncio.fixture(scope="function")
async def auth_headers_user(test_user):
    token = create_access_token({"user_id": test_user.id})
    return {"Authorization": f"Bearer {token}"}


# Seeds a tagged post with answers and comments, straight through the ORM
@pytest_asyncio.fixture(scope="function")
async def seed_post(db_session: AsyncSession, test_user):
    base_time = datetime(2024, 1, 1, tzinfo=timezone.utc)

    async def _seed(
        title: str,
        tagname: str = "python",
        answers: int = 0,
        comments: int = 0,
        age_minutes: int = 0,
        tagged: bool = True,
    ) -> models.Post:
        created_at = base_time - timedelta(minutes=age_minutes)
        post = models.Post(
            title=title,
            body=f"{title} body",
            user_id=test_user.id,
            created_at=created_at,
            updated_at=created_at,
        )
        db_session.add(post)
        await db_session.flush()

        if tagged:
            tag_id = await db_session.scalar(
                select(models.Tag.id).where(models.Tag.tagname == tagname)
            )
            if tag_id is None:
                tag = models.Tag(tagname=tagname, description=f"{tagname} posts")
                db_session.add(tag)
                await db_session.flush()
                tag_id = tag.id
            db_session.add(models.PostTag(post_id=post.id, tag_id=tag_id))

        for i in range(answers):
            db_session.add(
                models.Answer(body=f"answer {i}", post_id=post.id, user_id=test_user.id)
            )
        for i in range(comments):
            db_session.add(
                models.Comment(body=f"comment {i}", post_id=post.id, user_id=test_user.id)
            )

        await db_session.commit()
        await db_session.refresh(post)
        return post

    return _seed
