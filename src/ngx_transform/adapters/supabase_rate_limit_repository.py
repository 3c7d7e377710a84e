"""Supabase-backed daily rate-limit counters."""

from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import Client

from ngx_transform.services.rate_limits import RateLimitRepository


@dataclass
class SupabaseRateLimitRepository(RateLimitRepository):
    """Counters stored one row per identifier and day."""

    client: Client
    table: str
    identifier_column: str

    def get_count(self, key: str) -> int | None:
        """Return the stored count, or None when the row is absent."""
        response = (
            self.client.table(self.table)
            .select("count")
            .eq("id", key)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return int(response.data[0].get("count") or 0)

    def save_count(self, key: str, count: int, identifier: str, day: str) -> None:
        """Upsert the counter row."""
        self.client.table(self.table).upsert(
            {
                "id": key,
                "count": count,
                self.identifier_column: identifier,
                "day": day,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            }
        ).execute()

    def compare_and_set_count(self, key: str, expected: int, count: int) -> bool:
        """Update the count only if it still holds the expected value."""
        response = (
            self.client.table(self.table)
            .update({"count": count, "updated_at": datetime.now(tz=UTC).isoformat()})
            .eq("id", key)
            .eq("count", expected)
            .execute()
        )
        return bool(response.data)
