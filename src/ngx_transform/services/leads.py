"""Lightweight contact capture."""

from dataclasses import dataclass
from typing import Protocol

from ngx_transform.services.sessions import normalize_email


@dataclass(frozen=True)
class Lead:
    """A captured contact."""

    email: str
    source: str | None
    consent: bool


class LeadRepository(Protocol):
    """Persistence interface for leads."""

    def upsert_lead(self, lead: Lead) -> None:
        """Create or update the lead keyed by email."""


@dataclass
class LeadService:
    """Records leads independently of the session flow."""

    repository: LeadRepository

    def capture(self, email: str, source: str | None, consent: bool) -> Lead:
        """Store a lead under its normalized email."""
        lead = Lead(email=normalize_email(email), source=source, consent=consent)
        self.repository.upsert_lead(lead)
        return lead
