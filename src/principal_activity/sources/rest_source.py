"""PostgREST-style HTTP record store reader.

Each table is exposed as GET /{table} with column filters in the query string
(e.g. /interactions?principal_id=eq.abc). Opportunities embed their stage
changes through a resource alias so one request returns the full history.
"""

import logging
from typing import Any, Optional

import httpx

from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
)
from principal_activity.sources.base import BaseSourceReader

logger = logging.getLogger(__name__)


class RestSourceReader(BaseSourceReader):
    """
    Reader for a PostgREST-compatible record store (e.g. a Supabase project).
    """

    source_id = "rest"

    DEFAULT_HEADERS = {
        "User-Agent": "principal-activity/0.1",
        "Accept": "application/json",
    }
    PAGE_SIZE = 1000

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        """
        Args:
            base_url: Root of the REST API (e.g. https://xyz.supabase.co/rest/v1)
            api_key: Sent as `apikey` and bearer token when set
            client: Optional pre-configured httpx.AsyncClient (tests inject a MockTransport)
            timeout: Per-request timeout in seconds
        """
        headers = dict(self.DEFAULT_HEADERS)
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
        )

    async def _get(self, table: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """GET one table and return the JSON rows."""
        resp = await self._client.get(f"{self._base_url}/{table}", params=params)
        resp.raise_for_status()
        payload = resp.json()
        if not isinstance(payload, list):
            raise ValueError(f"Expected a JSON array from /{table}, got {type(payload).__name__}")
        return payload

    async def _by_principal(
        self,
        table: str,
        principal_id: str,
        select: str = "*",
        extra: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        params = {"select": select, "principal_id": f"eq.{principal_id}", "order": "id.asc"}
        params.update(extra or {})
        return await self._get(table, params)

    async def fetch_principal(self, principal_id: str) -> Optional[Principal]:
        rows = await self._get("principals", {"select": "*", "id": f"eq.{principal_id}"})
        return Principal.model_validate(rows[0]) if rows else None

    async def fetch_all_principal_ids(self) -> list[str]:
        ids: list[str] = []
        offset = 0
        while True:
            rows = await self._get(
                "principals",
                {"select": "id", "order": "id.asc", "limit": self.PAGE_SIZE, "offset": offset},
            )
            ids.extend(str(r["id"]) for r in rows)
            if len(rows) < self.PAGE_SIZE:
                break
            offset += len(rows)
        logger.debug("Listed %d principal ids from %s", len(ids), self._base_url)
        return ids

    async def fetch_contacts(self, principal_id: str) -> list[Contact]:
        rows = await self._by_principal("contacts", principal_id)
        return [Contact.model_validate(r) for r in rows]

    async def fetch_interactions(self, principal_id: str) -> list[Interaction]:
        rows = await self._by_principal("interactions", principal_id)
        return [Interaction.model_validate(r) for r in rows]

    async def fetch_opportunities(self, principal_id: str) -> list[Opportunity]:
        # Stage changes in insertion order
        rows = await self._by_principal(
            "opportunities",
            principal_id,
            select="*,stage_history:opportunity_stage_changes(*)",
            extra={"stage_history.order": "id.asc"},
        )
        return [Opportunity.model_validate({**r, "stage_history": r.get("stage_history") or []}) for r in rows]

    async def fetch_product_associations(self, principal_id: str) -> list[ProductAssociation]:
        rows = await self._by_principal("product_associations", principal_id)
        return [ProductAssociation.model_validate(r) for r in rows]

    async def fetch_distributor_relationships(
        self, principal_id: str
    ) -> list[DistributorRelationship]:
        rows = await self._by_principal("distributor_relationships", principal_id)
        return [DistributorRelationship.model_validate(r) for r in rows]

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
