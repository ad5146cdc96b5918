"""Pytest configuration and shared fixtures."""

import uuid

import pytest
from rest_framework.test import APIClient

from pricing.domain import (
    AddOnItem,
    Capacity,
    Condition,
    ConditionLogic,
    Coverage,
    Operator,
    PricingRule,
    SponsorshipRecord,
    SponsorshipStatus,
)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_rule():
    def _make_rule(
        rule_id: str = "rule-1",
        price: int = 150,
        priority: int = 1,
        conditions=None,
        logic: ConditionLogic = ConditionLogic.AND,
        active: bool = True,
        **kwargs,
    ) -> PricingRule:
        if conditions is None:
            conditions = (Condition("status", Operator.EQUALS, "student"),)
        return PricingRule(
            id=rule_id,
            name=kwargs.pop("name", rule_id.replace("-", " ").title()),
            price=price,
            conditions=tuple(conditions),
            condition_logic=logic,
            priority=priority,
            active=active,
            **kwargs,
        )

    return _make_rule


@pytest.fixture
def make_add_on():
    def _make_add_on(
        add_on_id: str = "workshop-1",
        unit_price: int = 50,
        max_capacity: int | None = None,
        registered_count: int = 0,
        **kwargs,
    ) -> AddOnItem:
        return AddOnItem(
            id=add_on_id,
            name=kwargs.pop("name", "Advanced Workshop"),
            unit_price=unit_price,
            currency=kwargs.pop("currency", "TND"),
            capacity=Capacity(max_capacity=max_capacity, registered_count=registered_count),
            **kwargs,
        )

    return _make_add_on


@pytest.fixture
def make_sponsorship():
    def _make_sponsorship(
        code: str = "SPONSOR123",
        total_amount: int = 150,
        status: SponsorshipStatus = SponsorshipStatus.PENDING,
        consumed_amount: int = 0,
        coverage: Coverage | None = None,
    ) -> SponsorshipRecord:
        return SponsorshipRecord(
            id=str(uuid.uuid4()),
            code=code,
            status=status,
            total_amount=total_amount,
            consumed_amount=consumed_amount,
            coverage=coverage,
        )

    return _make_sponsorship


@pytest.fixture
def event(db):
    """An event priced at 300 with a student rule at 150."""
    from pricing import models

    event = models.Event.objects.create(client_id=uuid.uuid4(), name="Medical Congress")
    pricing = models.EventPricing.objects.create(event=event, base_price=300, currency="TND")
    models.PricingRule.objects.create(
        pricing=pricing,
        name="Student rate",
        price=150,
        priority=1,
        conditions=[{"fieldId": "status", "operator": "equals", "value": "student"}],
    )
    return event


@pytest.fixture
def workshop(event):
    from pricing import models

    return models.AddOn.objects.create(
        event=event, name="Advanced Workshop", unit_price=50, max_capacity=10
    )


@pytest.fixture
def sponsorship(event):
    from pricing import models

    return models.Sponsorship.objects.create(event=event, code="sponsor123", total_amount=150)
