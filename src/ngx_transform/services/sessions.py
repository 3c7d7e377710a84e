"""Session persistence interface and intake."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from ngx_transform.domain.models import utcnow
from ngx_transform.domain.profiles import Profile
from ngx_transform.domain.sessions import STATUS_ERROR, STATUS_PENDING, SessionRecord
from ngx_transform.services.rate_limits import RateLimiter

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT_IP = "unknown"


class SessionRepository(Protocol):
    """Persistence interface for sessions."""

    def create_session(self, record: SessionRecord) -> None:
        """Insert a new session; fails if the share id exists."""

    def get_session(self, share_id: str) -> SessionRecord | None:
        """Return a session by share id, if present."""

    def transition(
        self, share_id: str, from_statuses: set[str], changes: dict[str, object]
    ) -> bool:
        """Apply changes only while status is one of from_statuses."""

    def delete_session(self, share_id: str) -> None:
        """Delete a session document."""


def new_share_id() -> str:
    """Return a fresh 12-character share id."""
    return uuid4().hex[:12]


def normalize_email(email: str) -> str:
    return email.strip().lower()


def mark_session_error(
    repository: SessionRepository,
    share_id: str,
    message: str,
    from_statuses: set[str],
) -> None:
    """Record a failure on the session so pollers can observe it.

    The write only applies while the session is still in one of the statuses
    the failed run started from.
    """
    try:
        applied = repository.transition(
            share_id,
            from_statuses,
            {"status": STATUS_ERROR, "error_message": message},
        )
    except Exception:
        logger.exception("Failed to mark session error", extra={"share_id": share_id})
        return
    if not applied:
        logger.warning(
            "Session moved on; error not recorded", extra={"share_id": share_id}
        )


@dataclass
class IntakeService:
    """Creates sessions behind per-IP and per-email daily limits."""

    session_repository: SessionRepository
    ip_rate_limiter: RateLimiter
    email_rate_limiter: RateLimiter
    id_factory: Callable[[], str] = new_share_id
    clock: Callable[[], datetime] = utcnow

    def create_session(
        self,
        profile: Profile,
        photo_path: str,
        email: str | None,
        client_ip: str,
    ) -> SessionRecord:
        """Create a pending session and return it."""
        acquired: list[tuple[RateLimiter, str]] = []
        try:
            if client_ip != UNKNOWN_CLIENT_IP:
                key = self.ip_rate_limiter.acquire(client_ip)
                acquired.append((self.ip_rate_limiter, key))
            if email:
                key = self.email_rate_limiter.acquire(normalize_email(email))
                acquired.append((self.email_rate_limiter, key))
            now = self.clock()
            record = SessionRecord(
                share_id=self.id_factory(),
                email=email,
                input=profile,
                photo_path=photo_path,
                status=STATUS_PENDING,
                created_at=now,
                updated_at=now,
            )
            self.session_repository.create_session(record)
        except Exception:
            _release_all(acquired)
            raise
        logger.info("Session created", extra={"share_id": record.share_id})
        return record


def _release_all(acquired: list[tuple[RateLimiter, str]]) -> None:
    for limiter, key in acquired:
        try:
            limiter.release(key)
        except Exception:
            logger.exception("Rate limit rollback failed", extra={"key": key})
