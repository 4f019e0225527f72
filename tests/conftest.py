"""Pytest fixtures for principal-activity tests."""

import asyncio
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from principal_activity.models.activity import PrincipalActivitySummary
from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
)
from principal_activity.sources.base import BaseSourceReader

NOW = datetime(2025, 8, 1, 12, 0, tzinfo=timezone.utc)


class FakeSourceReader(BaseSourceReader):
    """
    In-memory reader. Per-source delays (seconds) and failure counts let tests
    exercise deadlines, retries and fail-fast behaviour.
    """

    source_id = "fake"

    def __init__(self):
        self.principals: dict[str, Principal] = {}
        self.contacts: list[Contact] = []
        self.interactions: list[Interaction] = []
        self.opportunities: list[Opportunity] = []
        self.product_associations: list[ProductAssociation] = []
        self.distributor_relationships: list[DistributorRelationship] = []
        self.delays: dict[str, float] = {}
        self.failures: dict[str, int] = {}
        self.failing_principals: set[str] = set()
        self.calls: dict[str, int] = {}
        self.cancelled: list[str] = []
        self.closed = False

    def add_principal(self, principal_id: str, name: Optional[str] = None, **kwargs) -> Principal:
        principal = Principal(id=principal_id, name=name or f"Principal {principal_id}", **kwargs)
        self.principals[principal_id] = principal
        return principal

    async def _serve(self, source: str, principal_id: str, value):
        self.calls[source] = self.calls.get(source, 0) + 1
        try:
            delay = self.delays.get(source, 0.0)
            if delay:
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self.cancelled.append(source)
            raise
        if principal_id in self.failing_principals and source != "principal":
            raise ConnectionError(f"{source} down for {principal_id}")
        if self.failures.get(source, 0) > 0:
            self.failures[source] -= 1
            raise ConnectionError(f"{source} temporarily unavailable")
        return value

    async def fetch_principal(self, principal_id: str) -> Optional[Principal]:
        return await self._serve("principal", principal_id, self.principals.get(principal_id))

    async def fetch_all_principal_ids(self) -> list[str]:
        return await self._serve("principal_ids", "", sorted(self.principals))

    async def fetch_contacts(self, principal_id: str) -> list[Contact]:
        rows = [c for c in self.contacts if c.principal_id == principal_id]
        return await self._serve("contacts", principal_id, rows)

    async def fetch_interactions(self, principal_id: str) -> list[Interaction]:
        rows = [i for i in self.interactions if i.principal_id == principal_id]
        return await self._serve("interactions", principal_id, rows)

    async def fetch_opportunities(self, principal_id: str) -> list[Opportunity]:
        rows = [o for o in self.opportunities if o.principal_id == principal_id]
        return await self._serve("opportunities", principal_id, rows)

    async def fetch_product_associations(self, principal_id: str) -> list[ProductAssociation]:
        rows = [a for a in self.product_associations if a.principal_id == principal_id]
        return await self._serve("product_associations", principal_id, rows)

    async def fetch_distributor_relationships(
        self, principal_id: str
    ) -> list[DistributorRelationship]:
        rows = [r for r in self.distributor_relationships if r.principal_id == principal_id]
        return await self._serve("distributor_relationships", principal_id, rows)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def fake_reader() -> FakeSourceReader:
    """Reader with one principal 'p1' and no activity."""
    reader = FakeSourceReader()
    reader.add_principal("p1", "Acme Foods", organization_type="PRINCIPAL")
    return reader


@pytest.fixture
def active_reader(fake_reader: FakeSourceReader) -> FakeSourceReader:
    """Reader where 'p1' has a recent interaction, an opportunity and associations."""
    fake_reader.contacts.append(Contact(id="c1", principal_id="p1", first_name="Ada", last_name="Lee"))
    fake_reader.interactions.append(
        Interaction(
            id="i1",
            principal_id="p1",
            subject="Intro call",
            interaction_type="CALL",
            interaction_date=NOW - timedelta(days=5),
            rating=4,
            outcome="POSITIVE",
        )
    )
    fake_reader.opportunities.append(
        Opportunity(
            id="o1",
            principal_id="p1",
            name="Spring menu",
            stage="Demo Scheduled",
            created_at=NOW - timedelta(days=20),
        )
    )
    fake_reader.product_associations.append(
        ProductAssociation(
            id="pa1",
            principal_id="p1",
            product_id="prod-1",
            product_name="Smoked Paprika",
            created_at=NOW - timedelta(days=60),
        )
    )
    fake_reader.distributor_relationships.append(
        DistributorRelationship(
            id="dr1",
            principal_id="p1",
            distributor_id="d1",
            distributor_name="Sysco",
            linked_at=NOW - timedelta(days=100),
        )
    )
    return fake_reader


@pytest.fixture
def temp_db() -> Path:
    """Temporary database path for isolated tests."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    path.unlink(missing_ok=True)


def make_summary(**kwargs) -> PrincipalActivitySummary:
    """PrincipalActivitySummary with sensible defaults for filter and rollup tests."""
    defaults = {
        "principal_id": "p1",
        "principal_name": "Acme Foods",
        "organization_type": "PRINCIPAL",
        "summary_generated_at": NOW,
    }
    defaults.update(kwargs)
    return PrincipalActivitySummary(**defaults)
