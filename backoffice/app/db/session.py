"""
Database session configuration.

This module handles database engine creation and session management
using SQLAlchemy with async support for PostgreSQL.
"""

import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from backoffice.app.core.config import settings
from backoffice.app.core.exceptions import BusinessRuleViolation, DuplicateResourceError, InternalError

logger = logging.getLogger(__name__)

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    future=True,
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Create declarative base for models
Base = declarative_base()


async def get_db():
    """
    FastAPI dependency for database sessions.

    Yields an async database session and ensures it's properly closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


# SQLSTATE 23505 on PostgreSQL; SQLite only reports it in the message
UNIQUE_VIOLATION = "23505"


def _is_unique_violation(exc: IntegrityError) -> bool:
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    if sqlstate:
        return sqlstate == UNIQUE_VIOLATION
    return "unique" in str(exc.orig).lower()


@asynccontextmanager
async def unit_of_work(db: AsyncSession):
    """
    Run a block as one atomic unit against the session.

    Commits when the block exits cleanly. Any exception rolls back every
    write made inside the block. Storage errors are mapped onto the
    application error taxonomy:

    - unique violation -> DuplicateResourceError
    - other IntegrityError (foreign key, not null, check) -> BusinessRuleViolation
    - any other SQLAlchemyError -> InternalError
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Integrity violation, rolled back: %s", exc.orig)
        if _is_unique_violation(exc):
            raise DuplicateResourceError(
                "Unique constraint violated", details={"error": str(exc.orig)}
            ) from exc
        raise BusinessRuleViolation(
            "Integrity constraint violated", details={"error": str(exc.orig)}
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Storage failure, rolled back")
        raise InternalError(details={"error": type(exc).__name__}) from exc
    except BaseException:
        await db.rollback()
        raise
