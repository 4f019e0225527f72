"""Abstract base class for record-store readers."""

from abc import ABC, abstractmethod
from typing import Optional

from principal_activity.models.records import (
    Contact,
    DistributorRelationship,
    Interaction,
    Opportunity,
    Principal,
    ProductAssociation,
)


class BaseSourceReader(ABC):
    """
    Standard interface for reading principal activity from a record store.
    All reads are coroutines; callers impose deadlines by cancelling the task,
    so implementations must not swallow asyncio.CancelledError.
    """

    source_id: str = ""

    @abstractmethod
    async def fetch_principal(self, principal_id: str) -> Optional[Principal]:
        """
        Return the principal, or None when the id does not resolve.
        """
        pass

    @abstractmethod
    async def fetch_all_principal_ids(self) -> list[str]:
        """
        Return ids of every principal, ordered by id.
        """
        pass

    @abstractmethod
    async def fetch_contacts(self, principal_id: str) -> list[Contact]:
        pass

    @abstractmethod
    async def fetch_interactions(self, principal_id: str) -> list[Interaction]:
        pass

    @abstractmethod
    async def fetch_opportunities(self, principal_id: str) -> list[Opportunity]:
        """
        Return opportunities with their stage_history populated.
        """
        pass

    @abstractmethod
    async def fetch_product_associations(self, principal_id: str) -> list[ProductAssociation]:
        pass

    @abstractmethod
    async def fetch_distributor_relationships(
        self, principal_id: str
    ) -> list[DistributorRelationship]:
        pass

    async def aclose(self) -> None:
        """Release any held resources. Default: nothing to release."""
        return None
