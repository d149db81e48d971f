"""Gold price source adapter (HTTP).

Fetches the published buy-rate stats and maps them into core PriceRecords.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from core.errors import SourceDataInvalid, SourceFetchError
from core.models import PriceRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_URL = "https://api.treasury.id/api/v1/antigrvty/gold/stats/buy"

# The upstream rejects requests without a browser-like user-agent and origin.
DEFAULT_HEADERS = {
    "user-agent": "Mozilla/5.0",
    "origin": "https://web.treasury.id",
    "accept": "application/json, text/plain, */*",
    "accept-language": "en,en-US;q=0.9,id;q=0.8",
}


def parse_price_payload(payload: Any) -> List[PriceRecord]:
    """Map ``{"data": [...]}`` into PriceRecords, rejecting malformed bodies."""

    rows = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(rows, list) or not rows:
        raise SourceDataInvalid("Price payload has no data list")

    records: List[PriceRecord] = []
    for row in rows:
        try:
            records.append(
                PriceRecord(
                    id=int(row["id"]),
                    buying_rate=int(row["buying_rate"]),
                    date=str(row["date"]),
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise SourceDataInvalid(f"Malformed price row {row!r}") from exc
    return records


class TreasuryPriceSource:
    """PriceSourcePort implementation backed by httpx."""

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def fetch(self) -> List[PriceRecord]:
        try:
            async with httpx.AsyncClient(
                headers=DEFAULT_HEADERS,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(self._url)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceFetchError(f"Price API error {exc.response.status_code}: {exc.response.text[:200]}") from exc
        except httpx.HTTPError as exc:
            raise SourceFetchError(f"Price API request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceDataInvalid("Price API returned non-JSON body") from exc

        records = parse_price_payload(payload)
        LOGGER.debug("Fetched %s price records", len(records))
        return records
