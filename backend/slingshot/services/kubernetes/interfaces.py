"""
Collaborator interfaces of the deploy executor.

Production code wires in the Celery build service and asyncio sleeps; tests
substitute fakes without touching the executor's control flow.
"""
import asyncio
from typing import Optional, Protocol

from slingshot.models.build import Build


class BuildServiceProtocol(Protocol):
    """Triggers image builds on the external build service."""

    async def start(self, build: Build) -> Optional[str]:
        """Start building ``build``; returns a job identifier if one was assigned."""
        ...


class SleeperProtocol(Protocol):
    """Waits between polls."""

    async def sleep(self, seconds: float) -> None:
        ...


class AsyncioSleeper:
    """Sleeper backed by asyncio.sleep."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
