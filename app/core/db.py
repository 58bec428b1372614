import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from core.environment import get_database_url

logger = logging.getLogger(__name__)

DATABASE_URL = get_database_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
)

AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)
Base = declarative_base()

ModelT = TypeVar("ModelT")


async def get_db():
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession):
    """
    Runs the enclosed block as one atomic unit.

    Opens the session transaction when none is active; when the caller already
    holds one (tests, scripts), a SAVEPOINT is used so the block still rolls
    back as a whole on error.
    """
    if session.in_transaction():
        async with session.begin_nested():
            yield session
    else:
        async with session.begin():
            yield session


async def find_or_create(
    session: AsyncSession,
    model: Type[ModelT],
    key: Dict[str, Any],
    defaults: Optional[Dict[str, Any]] = None,
) -> Tuple[ModelT, bool]:
    """
    Looks a row up by its natural key and inserts it when absent.

    The insert runs inside a SAVEPOINT. If a concurrent writer created the same
    key first, the unique constraint rejects our insert, the savepoint is rolled
    back and the winning row is fetched instead.

    Returns:
        tuple: (row, created)
    """
    stmt = select(model).filter_by(**key)
    existing = (await session.execute(stmt)).scalar_one_or_none()
    if existing is not None:
        return existing, False

    row = model(**key, **(defaults or {}))
    try:
        async with session.begin_nested():
            session.add(row)
            await session.flush()
    except IntegrityError:
        logger.info(
            "Unique key race on %s, reusing the committed row",
            model.__name__,
            extra={"natural_key": {k: str(v) for k, v in key.items()}},
        )
        return (await session.execute(stmt)).scalar_one(), False

    return row, True


async def count_rows(session: AsyncSession, model, *criteria) -> int:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return (await session.execute(stmt)).scalar_one()


async def delete_by_id(session: AsyncSession, model, row_id: int) -> None:
    await session.execute(delete(model).where(model.id == row_id))
