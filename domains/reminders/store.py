"""Supabase source of note time markers.

Each row of the markers table is one date/time attached to a note:
note_id, book_id, book_name, title, time_type (1/2/3 or name), timestamp.
"""

import httpx

from config import SUPABASE_URL, SUPABASE_KEY
from logger import logger
from . import config
from .models import PersistenceUnavailable, TimeMarker


def _headers():
    """Get headers for Supabase API calls."""
    return {
        "apikey": SUPABASE_KEY,
        "Authorization": f"Bearer {SUPABASE_KEY}",
        "Content-Type": "application/json",
    }


class SupabaseMarkerSource:
    """Reads a fresh marker snapshot at the start of every cycle."""

    def __init__(self, url: str = None, table: str = None):
        self.url = url if url is not None else SUPABASE_URL
        self.table = table or config.MARKERS_TABLE

    async def times(self) -> list[TimeMarker]:
        """Fetch all note time markers.

        Returns:
            List of TimeMarker (rows missing required fields are dropped)

        Raises:
            PersistenceUnavailable: if Supabase cannot be reached
        """
        if not self.url or not SUPABASE_KEY:
            logger.warning("Supabase not configured, no note times available")
            return []

        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.url}/rest/v1/{self.table}?select=*",
                    headers=_headers(),
                    timeout=config.MARKERS_TIMEOUT
                )
                response.raise_for_status()
                rows = response.json()
        except httpx.HTTPError as e:
            raise PersistenceUnavailable(f"Failed to fetch note times: {e}") from e

        markers = []
        for row in rows:
            try:
                markers.append(TimeMarker.from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Ignoring malformed note time row {row!r}: {e}")

        logger.debug(f"Fetched {len(markers)} note times")
        return markers
