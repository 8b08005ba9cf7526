"""Async engine, session factory and IntegrityError helpers.

Repositories issue raw ``text()`` SQL on the session handed to them; the ORM
classes built on ``Base`` exist for DDL reference and Alembic autogenerate.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


class Base(DeclarativeBase):
    pass


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# Objects stay readable after commit; services publish events from them
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per HTTP request, closed when the response is sent."""
    async with async_session_factory() as session:
        yield session


# Unique indexes whose violation maps to a typed domain error
_KNOWN_CONSTRAINTS = (
    "uq_offers_active_provider",
    "uq_offers_one_accepted",
    "uq_negotiation_entries_offer_seq",
    "uq_payments_offer_id",
    "uq_payments_transaction_id",
)


def violated_constraint(exc: IntegrityError) -> str | None:
    """Name of the constraint behind an IntegrityError, if the driver reports one.

    asyncpg exposes it as ``constraint_name`` on the wrapped exception; fall
    back to a substring match on the message for other drivers.
    """
    orig = getattr(exc, "orig", None)
    name = getattr(orig, "constraint_name", None)
    if name is None and orig is not None:
        cause = getattr(orig, "__cause__", None)
        name = getattr(cause, "constraint_name", None)
    if name:
        return str(name)
    message = str(orig or exc)
    for candidate in _KNOWN_CONSTRAINTS:
        if candidate in message:
            return candidate
    return None
