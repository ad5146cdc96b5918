"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from uuid import UUID

from pricing.domain import (
    AddOnItem,
    EventId,
    EventPricing,
    PricingRule,
    SponsorshipRecord,
    SponsorshipUsage,
)


class PricingStore(ABC):
    """Interface for pricing persistence operations."""

    @abstractmethod
    def get_event_pricing(self, event_id: EventId) -> EventPricing | None:
        """Return the pricing config with its rules, or None if not configured."""
        ...

    @abstractmethod
    def list_add_on_catalog(self, event_id: EventId) -> list[AddOnItem]:
        """Return all add-ons for an event, ordered by sort order then creation."""
        ...

    @abstractmethod
    def find_sponsorship_by_code(self, event_id: EventId, code: str) -> SponsorshipRecord | None:
        """Return the sponsorship with this code (case-insensitive), or None."""
        ...

    @abstractmethod
    def get_event_client_id(self, event_id: EventId) -> UUID | None:
        """Return the owning client of an event, or None if the event does not exist."""
        ...

    @abstractmethod
    def add_pricing_rule(self, event_id: EventId, rule: PricingRule) -> PricingRule | None:
        """Persist a new rule and return it with its assigned id.

        Returns None when the event has no pricing configured.
        """
        ...

    @abstractmethod
    def reserve_add_on(self, add_on_id: str, quantity: int) -> bool:
        """Atomically take ``quantity`` seats if capacity allows.

        Returns False, leaving the count unchanged, when the add-on is full.
        """
        ...

    @abstractmethod
    def consume_sponsorship(self, sponsorship_id: str, registration_id: str, amount: int) -> bool:
        """Atomically draw ``amount`` of credit and record it as a usage.

        Each registration keeps its own usage per sponsorship; drawing again
        for the same registration adds to it. Returns False, leaving the
        record unchanged, when the sponsorship is no longer redeemable or has
        less than ``amount`` left.
        """
        ...

    @abstractmethod
    def release_add_on(self, add_on_id: str, quantity: int) -> bool:
        """Atomically give back ``quantity`` seats.

        Returns False, leaving the count unchanged, when fewer seats are taken.
        """
        ...

    @abstractmethod
    def list_sponsorship_usages(self, event_id: EventId, registration_id: str) -> list[SponsorshipUsage]:
        """Return the credit a registration drew from the event's sponsorships."""
        ...

    @abstractmethod
    def release_sponsorship(self, sponsorship_id: str, registration_id: str) -> int:
        """Remove a registration's usage and return its credit to the sponsorship.

        Returns the amount released, or 0 when there was no usage.
        """
        ...

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Return a context manager under which reservations commit or roll back together."""
        ...
