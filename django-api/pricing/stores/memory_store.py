"""In-memory implementation of the PricingStore.

Holds domain models directly. Used by tests and by callers that already have
a snapshot in hand.
"""

import copy
import threading
from dataclasses import replace
from uuid import UUID, uuid4

from pricing.domain import (
    AddOnItem,
    Capacity,
    EventId,
    EventPricing,
    PricingRule,
    SponsorshipRecord,
    SponsorshipStatus,
    SponsorshipUsage,
)
from pricing.domain.models import normalize_code
from pricing.stores.interfaces import PricingStore


class InMemoryPricingStore(PricingStore):
    """Dict-backed store guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._clients: dict[str, UUID] = {}
        self._pricing: dict[str, EventPricing] = {}
        self._add_ons: dict[str, list[AddOnItem]] = {}
        self._sponsorships: dict[str, list[SponsorshipRecord]] = {}
        self._usages: dict[tuple[str, str], int] = {}

    def add_event(self, event_id: EventId, client_id: UUID) -> None:
        self._clients[str(event_id)] = client_id

    def set_pricing(self, pricing: EventPricing) -> None:
        self._pricing[pricing.event_id] = pricing

    def add_add_on(self, event_id: EventId, add_on: AddOnItem) -> None:
        self._add_ons.setdefault(str(event_id), []).append(add_on)

    def add_sponsorship(self, event_id: EventId, sponsorship: SponsorshipRecord) -> None:
        self._sponsorships.setdefault(str(event_id), []).append(sponsorship)

    def get_event_pricing(self, event_id: EventId) -> EventPricing | None:
        return self._pricing.get(str(event_id))

    def list_add_on_catalog(self, event_id: EventId) -> list[AddOnItem]:
        return list(self._add_ons.get(str(event_id), []))

    def find_sponsorship_by_code(self, event_id: EventId, code: str) -> SponsorshipRecord | None:
        wanted = normalize_code(code)
        for sponsorship in self._sponsorships.get(str(event_id), []):
            if sponsorship.code == wanted:
                return sponsorship
        return None

    def get_event_client_id(self, event_id: EventId) -> UUID | None:
        return self._clients.get(str(event_id))

    def add_pricing_rule(self, event_id: EventId, rule: PricingRule) -> PricingRule | None:
        pricing = self._pricing.get(str(event_id))
        if pricing is None:
            return None
        stored = replace(rule, id=str(uuid4()))
        self._pricing[str(event_id)] = replace(pricing, rules=(*pricing.rules, stored))
        return stored

    def reserve_add_on(self, add_on_id: str, quantity: int) -> bool:
        with self._lock:
            for add_ons in self._add_ons.values():
                for index, add_on in enumerate(add_ons):
                    if add_on.id != add_on_id:
                        continue
                    if not add_on.capacity.can_accommodate(quantity):
                        return False
                    capacity = Capacity(
                        max_capacity=add_on.capacity.max_capacity,
                        registered_count=add_on.capacity.registered_count + quantity,
                    )
                    add_ons[index] = replace(add_on, capacity=capacity)
                    return True
        return False

    def consume_sponsorship(self, sponsorship_id: str, registration_id: str, amount: int) -> bool:
        with self._lock:
            for sponsorships in self._sponsorships.values():
                for index, sponsorship in enumerate(sponsorships):
                    if sponsorship.id != sponsorship_id:
                        continue
                    if not sponsorship.status.is_redeemable or amount > sponsorship.available_amount:
                        return False
                    consumed = sponsorship.consumed_amount + amount
                    status = (
                        SponsorshipStatus.CONSUMED
                        if consumed == sponsorship.total_amount
                        else SponsorshipStatus.ACTIVE
                    )
                    sponsorships[index] = replace(sponsorship, consumed_amount=consumed, status=status)
                    key = (sponsorship_id, str(registration_id))
                    self._usages[key] = self._usages.get(key, 0) + amount
                    return True
        return False

    def release_add_on(self, add_on_id: str, quantity: int) -> bool:
        with self._lock:
            for add_ons in self._add_ons.values():
                for index, add_on in enumerate(add_ons):
                    if add_on.id != add_on_id:
                        continue
                    if add_on.capacity.registered_count < quantity:
                        return False
                    capacity = Capacity(
                        max_capacity=add_on.capacity.max_capacity,
                        registered_count=add_on.capacity.registered_count - quantity,
                    )
                    add_ons[index] = replace(add_on, capacity=capacity)
                    return True
        return False

    def list_sponsorship_usages(self, event_id: EventId, registration_id: str) -> list[SponsorshipUsage]:
        event_sponsorships = {sponsorship.id for sponsorship in self._sponsorships.get(str(event_id), [])}
        return [
            SponsorshipUsage(sponsorship_id=sponsorship_id, registration_id=owner, amount_applied=amount)
            for (sponsorship_id, owner), amount in self._usages.items()
            if sponsorship_id in event_sponsorships and owner == str(registration_id)
        ]

    def release_sponsorship(self, sponsorship_id: str, registration_id: str) -> int:
        with self._lock:
            amount = self._usages.pop((sponsorship_id, str(registration_id)), 0)
            if amount == 0:
                return 0
            for sponsorships in self._sponsorships.values():
                for index, sponsorship in enumerate(sponsorships):
                    if sponsorship.id != sponsorship_id:
                        continue
                    consumed = sponsorship.consumed_amount - amount
                    status = sponsorship.status
                    if status not in (SponsorshipStatus.CANCELLED, SponsorshipStatus.EXPIRED):
                        status = SponsorshipStatus.ACTIVE if consumed else SponsorshipStatus.PENDING
                    sponsorships[index] = replace(sponsorship, consumed_amount=consumed, status=status)
        return amount

    def atomic(self) -> "_Transaction":
        return _Transaction(self)


class _Transaction:
    """Restores add-on, sponsorship and usage state if the block raises."""

    def __init__(self, store: InMemoryPricingStore) -> None:
        self._store = store

    def __enter__(self) -> None:
        self._store._lock.acquire()
        self._add_ons = copy.deepcopy(self._store._add_ons)
        self._sponsorships = copy.deepcopy(self._store._sponsorships)
        self._usages = dict(self._store._usages)

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is not None:
                self._store._add_ons = self._add_ons
                self._store._sponsorships = self._sponsorships
                self._store._usages = self._usages
        finally:
            self._store._lock.release()
        return False
