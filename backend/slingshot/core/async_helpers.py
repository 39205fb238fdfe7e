"""
Async helpers for running async code in synchronous contexts.

Celery tasks are synchronous; the deploy executor and the repositories are
async. Each task gets a fresh event loop, and database work gets an engine
of its own that is disposed before the loop closes. Worker threads running
concurrent deploys therefore never share connections.

Usage:
    from slingshot.core.async_helpers import run_async, run_async_with_db

    async def my_db_operation(db: AsyncSession):
        ...

    result = run_async_with_db(my_db_operation)
"""
import asyncio
import logging
from typing import TypeVar, Callable, Awaitable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_async(coro: Awaitable[T]) -> T:
    """
    Run an async coroutine in a new event loop.

    Args:
        coro: The coroutine to execute

    Returns:
        The result of the coroutine

    Raises:
        Any exception raised by the coroutine
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
        asyncio.set_event_loop(None)


def run_async_with_db(
    func: Callable[[AsyncSession], Awaitable[T]],
    *,
    commit: bool = False,
) -> T:
    """
    Run an async function with a database session.

    The session is bound to an engine created for this call only.

    Args:
        func: Async function that takes a database session and returns a result
        commit: If True, commits the session after the function completes

    Returns:
        The result of the function
    """
    async def wrapper():
        from slingshot.core.database import create_engine, create_session_maker

        engine = create_engine()
        try:
            async with create_session_maker(engine)() as db:
                result = await func(db)
                if commit:
                    await db.commit()
                return result
        finally:
            await engine.dispose()

    return run_async(wrapper())
