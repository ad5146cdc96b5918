"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/ and services/.
"""

import uuid

from django.conf import settings
from django.db import models
from django.db.models.functions import Upper


def default_currency() -> str:
    return settings.PRICING_DEFAULT_CURRENCY


class ConditionLogic(models.TextChoices):
    AND = "AND", "All conditions"
    OR = "OR", "Any condition"


class SponsorshipStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    ACTIVE = "ACTIVE", "Active"
    CONSUMED = "CONSUMED", "Consumed"
    CANCELLED = "CANCELLED", "Cancelled"
    EXPIRED = "EXPIRED", "Expired"


class Event(models.Model):
    """Persistence model for events."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    client_id = models.UUIDField(db_index=True)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return self.name


class EventPricing(models.Model):
    """Base registration price for an event."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.OneToOneField(Event, on_delete=models.CASCADE, related_name="pricing")
    base_price = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default=default_currency)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"{self.event.name} - {self.base_price} {self.currency}"


class PricingRule(models.Model):
    """Conditional override of an event's base price."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pricing = models.ForeignKey(EventPricing, on_delete=models.CASCADE, related_name="rules")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    price = models.PositiveIntegerField()
    conditions = models.JSONField(default=list, blank=True)
    condition_logic = models.CharField(
        max_length=3, choices=ConditionLogic.choices, default=ConditionLogic.AND
    )
    priority = models.IntegerField(default=0)
    active = models.BooleanField(default=True)
    valid_from = models.DateTimeField(blank=True, null=True)
    valid_to = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["pricing", "active"]),
        ]

    def __str__(self) -> str:
        return self.name


class AddOn(models.Model):
    """Optional paid extra (workshop, dinner, badge) for an event."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="add_ons")
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    unit_price = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default=default_currency)
    max_capacity = models.PositiveIntegerField(blank=True, null=True)
    registered_count = models.PositiveIntegerField(default=0)
    conditions = models.JSONField(default=list, blank=True)
    condition_logic = models.CharField(
        max_length=3, choices=ConditionLogic.choices, default=ConditionLogic.AND
    )
    available_from = models.DateTimeField(blank=True, null=True)
    available_to = models.DateTimeField(blank=True, null=True)
    sort_order = models.IntegerField(default=0)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["sort_order", "created_at"]
        indexes = [
            models.Index(fields=["event", "sort_order"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_capacity__isnull=True)
                | models.Q(registered_count__lte=models.F("max_capacity")),
                name="add_on_within_capacity",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} - {self.unit_price}"


class Sponsorship(models.Model):
    """Credit issued to a sponsor, redeemable by code."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="sponsorships")
    code = models.CharField(max_length=32)
    status = models.CharField(
        max_length=10, choices=SponsorshipStatus.choices, default=SponsorshipStatus.PENDING
    )
    total_amount = models.PositiveIntegerField()
    consumed_amount = models.PositiveIntegerField(default=0)
    covers_base_price = models.BooleanField(default=False)
    covered_add_on_ids = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(Upper("code"), "event", name="unique_sponsorship_code_per_event"),
            models.CheckConstraint(
                condition=models.Q(consumed_amount__lte=models.F("total_amount")),
                name="sponsorship_within_amount",
            ),
        ]

    def save(self, *args, **kwargs) -> None:
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return self.code

    @property
    def is_scoped(self) -> bool:
        return self.covers_base_price or bool(self.covered_add_on_ids)


class SponsorshipUsage(models.Model):
    """Credit drawn from a sponsorship by one registration."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sponsorship = models.ForeignKey(Sponsorship, on_delete=models.CASCADE, related_name="usages")
    registration_id = models.UUIDField(db_index=True)
    amount_applied = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["sponsorship", "registration_id"], name="unique_usage_per_registration"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.sponsorship.code} - {self.registration_id}: {self.amount_applied}"
