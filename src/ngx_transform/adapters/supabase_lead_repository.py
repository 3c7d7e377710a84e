"""Supabase-backed lead repository."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from ngx_transform.services.leads import Lead, LeadRepository


@dataclass
class SupabaseLeadRepository(LeadRepository):
    """Leads keyed by lowercased email."""

    client: Client

    def upsert_lead(self, lead: Lead) -> None:
        """Create or update a lead row."""
        self.client.table("leads").upsert(
            {
                "email": lead.email,
                "source": lead.source,
                "consent": lead.consent,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="email",
        ).execute()
