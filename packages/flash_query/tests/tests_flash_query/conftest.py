import pytest_asyncio
from flash_query import db as db_module

from .models import Base, Company, Device, User

USER_COUNT = 25
# Users 1..12 belong to company 1, the rest to company 2
COMPANY_ONE_USERS = 12


@pytest_asyncio.fixture()
async def init_test_db(tmp_path):
    """
    Initialize a file-backed SQLite database.

    A file (not :memory:) is used so the pagination count query, which opens
    its own connection, sees the same data as the session.
    """
    engine = db_module.init_db(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await db_module.close_db()


@pytest_asyncio.fixture()
async def db_session(init_test_db):
    """Provide a database session for tests."""

    async for session in db_module.get_db():
        yield session


@pytest_asyncio.fixture()
async def seeded_db(db_session):
    """Two companies, 25 users and two devices per user, committed."""
    db_session.add_all(
        [Company(id=1, name="Test Company 1"), Company(id=2, name="Test Company 2")]
    )
    for i in range(1, USER_COUNT + 1):
        db_session.add(
            User(
                id=i,
                name=f"User {i}",
                email=f"user_{i}@example.com",
                company_id=1 if i <= COMPANY_ONE_USERS else 2,
            )
        )
        db_session.add_all(
            [
                Device(id=2 * i - 1, user_id=i, token=f"token_{i}_1", platform="iOS"),
                Device(id=2 * i, user_id=i, token=f"token_{i}_2", platform="Android"),
            ]
        )
    await db_session.commit()
    return db_session
