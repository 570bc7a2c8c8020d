"""
Async database manager for the wizard snapshot store.

SQLite (via aiosqlite) by default; any async SQLAlchemy URL works.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tailor_intake.config import settings
from tailor_intake.db.models import Base


def sqlite_file(url: str) -> Optional[Path]:
    """Database file behind a SQLite URL, or None for other backends and :memory:."""
    if not url.startswith("sqlite") or ":memory:" in url or "///" not in url:
        return None
    return Path(url.split("///", 1)[-1])


class Database:
    """Engine, session factory and schema for one database URL."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.db_url
        self._engine = None
        self._session_factory = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    async def init(self) -> None:
        """Create the engine and any missing tables."""
        db_file = sqlite_file(self.url)
        if db_file is not None:
            db_file.parent.mkdir(parents=True, exist_ok=True)

        engine_kwargs = {"echo": settings.debug}
        if self.url.startswith("sqlite") and ":memory:" in self.url:
            # Every connection to :memory: is a new empty database; share one
            engine_kwargs["poolclass"] = StaticPool

        self._engine = create_async_engine(self.url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the engine. The next session() re-initializes."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session: commits on exit, rolls back on error."""
        if not self._session_factory:
            await self.init()

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Global database instance
db = Database()
