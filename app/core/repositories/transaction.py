import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InternalFailure, PostsError


# -----------------------------------------------------------------------------
# TRANSACTION BOUNDARY
# The one place where repositories commit, roll back and turn storage faults
# into InternalFailure. Nothing below a scope catches storage errors itself.
# -----------------------------------------------------------------------------

# Drivers raise connection faults (refused, DNS, reset) as plain OSError,
# SQLAlchemy does not wrap them when the connection is being opened
STORAGE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


async def _rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except STORAGE_ERRORS as error:
        # The connection is usually gone at this point, the server drops the transaction
        logging.error(f"Rollback failed: {error}")


@asynccontextmanager
async def transaction_scope(db: AsyncSession, failure_message: Optional[str] = None):
    """
    Run the enclosed statements as one atomic unit.

    Commits when the block finishes. On a storage error, a lost connection or
    a timeout every write made inside the block is rolled back and
    InternalFailure is raised. Errors from the posts taxonomy raised inside
    the block roll back too and propagate unchanged. A cancelled task is
    rolled back, then the cancellation propagates.

    Example:
        async with transaction_scope(db):
            db.add(post)
            await db.flush()
    """

    try:
        yield db
        await db.commit()
    except STORAGE_ERRORS as error:
        await _rollback(db)
        logging.error(f"Transaction rolled back: {error}")
        raise InternalFailure(failure_message) from error
    except (PostsError, asyncio.CancelledError):
        await _rollback(db)
        raise


@asynccontextmanager
async def storage_errors(db: AsyncSession, failure_message: Optional[str] = None):
    """Same fault mapping as transaction_scope, for reads that do not commit."""

    try:
        yield db
    except STORAGE_ERRORS as error:
        await _rollback(db)
        logging.error(f"Query failed: {error}")
        raise InternalFailure(failure_message) from error
