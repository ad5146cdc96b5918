"""Pricing service - all business logic lives here.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

Price calculation comes in two flavours sharing one pure core
(pricing.services.engine):

- ``calculate_price`` previews a breakdown and never mutates anything.
- ``commit_price`` recomputes the same breakdown, then reserves add-on seats
  and consumes sponsorship credit in one transaction. The store re-checks
  capacity and credit at that point; the preview is only an estimate.

``release_registration`` undoes a commit for a cancelled registration.
"""

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from functools import partial
from typing import Any
from uuid import UUID

from django.utils import timezone

from pricing.domain import (
    AddOnAvailability,
    AddOnSelection,
    EventId,
    EventPricing,
    PriceBreakdown,
    PriceRequest,
    PricingRule,
    RegistrationRelease,
)
from pricing.domain.errors import (
    AddOnNotFoundError,
    CapacityExceededError,
    InvalidEventIdError,
    InvalidQuantityError,
    InvalidSponsorshipCodeError,
    PricingNotFoundError,
    ReleaseExceedsReservedError,
)
from pricing.services.engine import check_add_on_offered, run_calculation
from pricing.stores.interfaces import PricingStore

logger = logging.getLogger(__name__)


def parse_event_id(event_id: str) -> EventId:
    try:
        return EventId.from_string(event_id)
    except (ValueError, TypeError, AttributeError) as exc:
        raise InvalidEventIdError() from exc


class PricingService:
    """Service for event pricing operations."""

    def __init__(self, store: PricingStore) -> None:
        self._store = store

    def get_event_pricing(self, event_id: str) -> EventPricing:
        """Return the pricing config for an event.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            PricingNotFoundError: If the event has no pricing configured.
        """
        parsed = parse_event_id(event_id)
        pricing = self._store.get_event_pricing(parsed)
        if pricing is None:
            raise PricingNotFoundError(event_id)
        return pricing

    def get_event_client_id(self, event_id: str) -> UUID | None:
        return self._store.get_event_client_id(parse_event_id(event_id))

    def add_pricing_rule(self, event_id: str, rule: PricingRule) -> PricingRule:
        """Add a rule to an event's pricing config.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            PricingNotFoundError: If the event has no pricing configured.
        """
        stored = self._store.add_pricing_rule(parse_event_id(event_id), rule)
        if stored is None:
            raise PricingNotFoundError(event_id)
        logger.info("Added pricing rule %s (priority %s) to event %s", stored.id, stored.priority, event_id)
        return stored

    def calculate_price(
        self,
        event_id: str,
        request: PriceRequest,
        at: datetime | None = None,
    ) -> PriceBreakdown:
        """Preview the price breakdown for a registration.

        Raises:
            InvalidEventIdError: If the event_id is not a valid UUID.
            PricingNotFoundError: If the event has no pricing configured.
            NotFoundError, ValidationError, CapacityExceededError: If the
                add-on selection is not acceptable.
        """
        breakdown = self._calculate(event_id, request, at).breakdown
        logger.info(
            "Price preview for event %s: subtotal=%s sponsorship=%s total=%s %s",
            event_id,
            breakdown.subtotal,
            breakdown.sponsorship_total,
            breakdown.total,
            breakdown.currency,
        )
        return breakdown

    def commit_price(
        self,
        event_id: str,
        registration_id: str,
        request: PriceRequest,
        at: datetime | None = None,
    ) -> PriceBreakdown:
        """Price a registration and take its add-on seats and sponsorship credit.

        Every reservation happens inside one store transaction: if any seat
        or credit can no longer be taken, nothing is kept.

        Raises:
            CapacityExceededError: If an add-on filled up since the snapshot.
            InvalidSponsorshipCodeError: If a sponsorship code that applied in
                the calculation is invalid or was consumed concurrently.
        """
        with self._store.atomic():
            calculation = self._calculate(event_id, request, at)
            breakdown = calculation.breakdown

            for line in calculation.sponsorships.sponsorships:
                if not line.valid:
                    logger.warning("Commit rejected for event %s: code %s is invalid", event_id, line.code)
                    raise InvalidSponsorshipCodeError(line.code)

            for item in breakdown.add_on_items:
                if not self._store.reserve_add_on(item.id, item.quantity):
                    logger.warning("Commit rejected for event %s: add-on %s is full", event_id, item.id)
                    raise CapacityExceededError(item.id, requested=item.quantity, remaining=0)

            for entry in calculation.sponsorships.applied:
                if entry.record is None or entry.line.amount == 0:
                    continue
                if not self._store.consume_sponsorship(entry.record.id, registration_id, entry.line.amount):
                    logger.warning(
                        "Commit rejected for event %s: code %s was consumed concurrently",
                        event_id,
                        entry.line.code,
                    )
                    raise InvalidSponsorshipCodeError(entry.line.code)

        logger.info(
            "Committed price for registration %s on event %s: total=%s %s",
            registration_id,
            event_id,
            breakdown.total,
            breakdown.currency,
        )
        return breakdown

    def release_registration(
        self,
        event_id: str,
        registration_id: str,
        add_ons: Sequence[AddOnSelection] = (),
    ) -> RegistrationRelease:
        """Give back what a cancelled registration took at commit.

        ``add_ons`` are the seats the registration held; every sponsorship
        usage recorded for it is released. All of it happens in one store
        transaction.

        Raises:
            AddOnNotFoundError: If a selection names an id outside the catalog.
            InvalidQuantityError: If a quantity is not positive.
            ReleaseExceedsReservedError: If fewer seats are taken than released.
        """
        parsed = parse_event_id(event_id)
        with self._store.atomic():
            catalog = {add_on.id for add_on in self._store.list_add_on_catalog(parsed)}
            for selection in add_ons:
                if selection.id not in catalog:
                    raise AddOnNotFoundError(selection.id)
                if selection.quantity <= 0:
                    raise InvalidQuantityError(selection.id, selection.quantity)
                if not self._store.release_add_on(selection.id, selection.quantity):
                    logger.warning(
                        "Release rejected for registration %s: add-on %s has fewer than %s seats taken",
                        registration_id,
                        selection.id,
                        selection.quantity,
                    )
                    raise ReleaseExceedsReservedError(selection.id, selection.quantity)

            released = 0
            for usage in self._store.list_sponsorship_usages(parsed, registration_id):
                released += self._store.release_sponsorship(usage.sponsorship_id, registration_id)

        logger.info(
            "Released registration %s on event %s: %s add-on lines, %s sponsorship credit",
            registration_id,
            event_id,
            len(add_ons),
            released,
        )
        return RegistrationRelease(add_ons=tuple(add_ons), sponsorship_amount=released)

    def list_available_add_ons(
        self,
        event_id: str,
        form_data: Mapping[str, Any],
        at: datetime | None = None,
    ) -> list[AddOnAvailability]:
        """Return active add-ons annotated with remaining spots and availability."""
        parsed = parse_event_id(event_id)
        at = at or timezone.now()
        availability = []
        for add_on in self._store.list_add_on_catalog(parsed):
            if not add_on.active:
                continue
            spots_remaining = add_on.capacity.remaining
            available = check_add_on_offered(add_on, form_data, at) is None and (
                spots_remaining is None or spots_remaining > 0
            )
            availability.append(
                AddOnAvailability(add_on=add_on, spots_remaining=spots_remaining, available=available)
            )
        return availability

    def _calculate(self, event_id: str, request: PriceRequest, at: datetime | None):
        parsed = parse_event_id(event_id)
        pricing = self._store.get_event_pricing(parsed)
        if pricing is None:
            raise PricingNotFoundError(event_id)
        catalog = self._store.list_add_on_catalog(parsed) if request.selected_add_ons else []
        lookup = partial(self._store.find_sponsorship_by_code, parsed)
        return run_calculation(pricing, request, catalog, lookup, at or timezone.now())
