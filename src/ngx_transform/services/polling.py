"""Client-side polling until a session reaches a terminal status."""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol

from ngx_transform.domain.sessions import TERMINAL_STATUSES

IMAGE_POLL_INTERVAL_SECONDS = 2.0
VIDEO_POLL_INTERVAL_SECONDS = 5.0


class StatusSource(Protocol):
    """Anything that can report a session status."""

    async def get_status(self, share_id: str) -> str:
        """Return the current status of the session."""


@dataclass
class SessionPoller:
    """Re-fetches status at a fixed interval and stops on ready or error."""

    source: StatusSource
    interval_seconds: float = VIDEO_POLL_INTERVAL_SECONDS
    max_polls: int | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def wait(self, share_id: str) -> str:
        """Return the first terminal status observed."""
        polls = 0
        while True:
            status = await self.source.get_status(share_id)
            polls += 1
            if status in TERMINAL_STATUSES:
                return status
            if self.max_polls is not None and polls >= self.max_polls:
                raise TimeoutError(f"Session {share_id} still {status}")
            await self.sleep(self.interval_seconds)
