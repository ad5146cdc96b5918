"""Django ORM implementation of the PricingStore.

Queries the ORM and converts rows to domain models. Capacity and credit are
taken with conditional UPDATEs so that concurrent commits cannot both win the
last seat or the last of a sponsorship's credit.
"""

import logging
from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Any
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.db.models import Case, F, Q, Value, When

from pricing import models
from pricing.domain import (
    AddOnItem,
    Capacity,
    Condition,
    ConditionLogic,
    Coverage,
    EventId,
    EventPricing,
    PricingRule,
    SponsorshipRecord,
    SponsorshipStatus,
    SponsorshipUsage,
)
from pricing.domain.errors import MalformedConditionError
from pricing.domain.models import normalize_code
from pricing.stores.interfaces import PricingStore

logger = logging.getLogger(__name__)

# Matches nothing; stands in for a stored condition that no longer parses.
_UNPARSEABLE = Condition(field_id="", operator="unparseable")


def pricing_cache_key(event_id: EventId | UUID | str) -> str:
    return f"pricing:{event_id}:config"


def _parse_conditions(raw: Iterable[Any] | None, owner: str) -> tuple[Condition, ...]:
    conditions = []
    for item in raw or ():
        try:
            conditions.append(Condition.from_dict(item))
        except MalformedConditionError:
            logger.warning("Stored condition on %s is malformed: %r", owner, item)
            conditions.append(_UNPARSEABLE)
    return tuple(conditions)


def _to_rule(row: models.PricingRule) -> PricingRule:
    return PricingRule(
        id=str(row.id),
        name=row.name,
        description=row.description,
        price=row.price,
        conditions=_parse_conditions(row.conditions, f"rule {row.id}"),
        condition_logic=ConditionLogic(row.condition_logic),
        priority=row.priority,
        active=row.active,
        valid_from=row.valid_from,
        valid_to=row.valid_to,
    )


def _to_add_on(row: models.AddOn) -> AddOnItem:
    return AddOnItem(
        id=str(row.id),
        name=row.name,
        unit_price=row.unit_price,
        currency=row.currency,
        capacity=Capacity(max_capacity=row.max_capacity, registered_count=row.registered_count),
        conditions=_parse_conditions(row.conditions, f"add-on {row.id}"),
        condition_logic=ConditionLogic(row.condition_logic),
        active=row.active,
        available_from=row.available_from,
        available_to=row.available_to,
    )


def _to_sponsorship(row: models.Sponsorship) -> SponsorshipRecord:
    coverage = None
    if row.is_scoped:
        coverage = Coverage(
            covers_base_price=row.covers_base_price,
            add_on_ids=tuple(str(add_on_id) for add_on_id in row.covered_add_on_ids),
        )
    return SponsorshipRecord(
        id=str(row.id),
        code=row.code,
        status=SponsorshipStatus(row.status),
        total_amount=row.total_amount,
        consumed_amount=row.consumed_amount,
        coverage=coverage,
    )


class DjangoPricingStore(PricingStore):
    """PostgreSQL-backed pricing store using Django ORM."""

    def get_event_pricing(self, event_id: EventId) -> EventPricing | None:
        key = pricing_cache_key(event_id)
        cached = cache.get(key)
        if cached is not None:
            return cached

        row = (
            models.EventPricing.objects.filter(event_id=event_id.value)
            .prefetch_related("rules")
            .first()
        )
        if row is None:
            return None

        pricing = EventPricing(
            event_id=str(row.event_id),
            base_price=row.base_price,
            currency=row.currency,
            rules=tuple(_to_rule(rule) for rule in row.rules.all()),
        )
        cache.set(key, pricing, settings.PRICING_CACHE_TTL_SECONDS)
        return pricing

    def list_add_on_catalog(self, event_id: EventId) -> list[AddOnItem]:
        rows = models.AddOn.objects.filter(event_id=event_id.value).order_by("sort_order", "created_at")
        return [_to_add_on(row) for row in rows]

    def find_sponsorship_by_code(self, event_id: EventId, code: str) -> SponsorshipRecord | None:
        row = models.Sponsorship.objects.filter(
            event_id=event_id.value, code__iexact=normalize_code(code)
        ).first()
        return _to_sponsorship(row) if row is not None else None

    def get_event_client_id(self, event_id: EventId) -> UUID | None:
        return (
            models.Event.objects.filter(id=event_id.value)
            .values_list("client_id", flat=True)
            .first()
        )

    def add_pricing_rule(self, event_id: EventId, rule: PricingRule) -> PricingRule | None:
        pricing = models.EventPricing.objects.filter(event_id=event_id.value).first()
        if pricing is None:
            return None
        row = models.PricingRule.objects.create(
            pricing=pricing,
            name=rule.name,
            description=rule.description,
            price=rule.price,
            conditions=[condition.to_dict() for condition in rule.conditions],
            condition_logic=rule.condition_logic.value,
            priority=rule.priority,
            active=rule.active,
            valid_from=rule.valid_from,
            valid_to=rule.valid_to,
        )
        return _to_rule(row)

    def reserve_add_on(self, add_on_id: str, quantity: int) -> bool:
        updated = (
            models.AddOn.objects.filter(pk=add_on_id)
            .filter(
                Q(max_capacity__isnull=True)
                | Q(registered_count__lte=F("max_capacity") - quantity)
            )
            .update(registered_count=F("registered_count") + quantity)
        )
        return updated == 1

    def consume_sponsorship(self, sponsorship_id: str, registration_id: str, amount: int) -> bool:
        with transaction.atomic():
            updated = models.Sponsorship.objects.filter(
                pk=sponsorship_id,
                status__in=[models.SponsorshipStatus.PENDING, models.SponsorshipStatus.ACTIVE],
                consumed_amount__lte=F("total_amount") - amount,
            ).update(
                consumed_amount=F("consumed_amount") + amount,
                status=Case(
                    When(
                        total_amount=F("consumed_amount") + amount,
                        then=Value(models.SponsorshipStatus.CONSUMED),
                    ),
                    default=Value(models.SponsorshipStatus.ACTIVE),
                ),
            )
            if updated != 1:
                return False

            usage, created = models.SponsorshipUsage.objects.get_or_create(
                sponsorship_id=sponsorship_id,
                registration_id=registration_id,
                defaults={"amount_applied": amount},
            )
            if not created:
                models.SponsorshipUsage.objects.filter(pk=usage.pk).update(
                    amount_applied=F("amount_applied") + amount
                )
        return True

    def release_add_on(self, add_on_id: str, quantity: int) -> bool:
        updated = models.AddOn.objects.filter(pk=add_on_id, registered_count__gte=quantity).update(
            registered_count=F("registered_count") - quantity
        )
        return updated == 1

    def list_sponsorship_usages(self, event_id: EventId, registration_id: str) -> list[SponsorshipUsage]:
        rows = models.SponsorshipUsage.objects.filter(
            sponsorship__event_id=event_id.value, registration_id=registration_id
        )
        return [
            SponsorshipUsage(
                sponsorship_id=str(row.sponsorship_id),
                registration_id=str(row.registration_id),
                amount_applied=row.amount_applied,
            )
            for row in rows
        ]

    def release_sponsorship(self, sponsorship_id: str, registration_id: str) -> int:
        with transaction.atomic():
            usage = (
                models.SponsorshipUsage.objects.select_for_update()
                .filter(sponsorship_id=sponsorship_id, registration_id=registration_id)
                .first()
            )
            if usage is None:
                return 0
            amount = usage.amount_applied
            usage.delete()
            models.Sponsorship.objects.filter(pk=sponsorship_id, consumed_amount__gte=amount).update(
                consumed_amount=F("consumed_amount") - amount,
                status=Case(
                    When(
                        status__in=[models.SponsorshipStatus.CANCELLED, models.SponsorshipStatus.EXPIRED],
                        then=F("status"),
                    ),
                    When(consumed_amount=amount, then=Value(models.SponsorshipStatus.PENDING)),
                    default=Value(models.SponsorshipStatus.ACTIVE),
                ),
            )
        return amount

    def atomic(self) -> AbstractContextManager:
        return transaction.atomic()
