from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """Owns the async engine and session factory.

    Opened once at startup (`connect`) and disposed at shutdown (`dispose`).
    The instance lives on `app.state.database`; nothing else holds a global
    engine.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker[AsyncSession]:
        if self._session_maker is None:
            raise RuntimeError("Database is not connected")
        return self._session_maker

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def connect(self) -> None:
        if self._engine is not None:
            return
        self._engine = create_async_engine(self.url, echo=self.echo)
        self._session_maker = async_sessionmaker(self._engine, expire_on_commit=False)
        logger.info("Database engine created", dialect=self._engine.dialect.name)

    async def create_all(self) -> None:
        # Model modules register their tables on Base.metadata at import time
        import db.users  # noqa: F401
        import db.category  # noqa: F401
        import db.product  # noqa: F401
        import db.warehouse  # noqa: F401
        import db.inventory.record  # noqa: F401
        import db.inventory.transaction  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database engine disposed")


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with get_database(request).session_maker() as session:
        yield session
