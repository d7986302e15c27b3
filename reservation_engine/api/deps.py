from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from reservation_engine.config import get_settings

settings = get_settings()

# Fall back to an in-process SQLite database for dev/test when no URL is configured
DB_URL = settings.database_url or "sqlite+aiosqlite:///:memory:"

if DB_URL.endswith(":memory:"):
    # One shared connection, otherwise every pooled connection sees its own empty database
    engine = create_async_engine(
        DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
else:
    engine = create_async_engine(DB_URL, pool_pre_ping=True)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session
