"""Domain models for pricing.

These are pure domain objects with no API input rules.
Django ORM models are in pricing/models.py (persistence layer).
All amounts are integers in the smallest currency unit.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pricing.domain.conditions import Condition
from pricing.domain.value_objects import (
    Capacity,
    ConditionLogic,
    SponsorshipStatus,
    require_amount,
)


def normalize_code(code: str) -> str:
    """Sponsorship codes compare case-insensitively."""
    return code.strip().upper()


def _within(at: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    if at is None:
        return True
    if start is not None and start > at:
        return False
    if end is not None and end < at:
        return False
    return True


@dataclass(frozen=True)
class PricingRule:
    """Conditional override of an event's base price."""

    id: str
    name: str
    price: int
    conditions: tuple[Condition, ...] = ()
    condition_logic: ConditionLogic = ConditionLogic.AND
    priority: int = 0
    active: bool = True
    description: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None

    def __post_init__(self) -> None:
        require_amount(self.price, "Rule price")

    def is_valid_at(self, at: datetime | None) -> bool:
        return _within(at, self.valid_from, self.valid_to)


@dataclass(frozen=True)
class EventPricing:
    """Base price, currency and rules configured for one event."""

    event_id: str
    base_price: int
    currency: str
    rules: tuple[PricingRule, ...] = ()

    def __post_init__(self) -> None:
        require_amount(self.base_price, "Base price")


@dataclass(frozen=True)
class AddOnItem:
    """Optional paid extra offered alongside registration."""

    id: str
    name: str
    unit_price: int
    currency: str
    capacity: Capacity = field(default_factory=Capacity)
    conditions: tuple[Condition, ...] = ()
    condition_logic: ConditionLogic = ConditionLogic.AND
    active: bool = True
    available_from: datetime | None = None
    available_to: datetime | None = None

    def __post_init__(self) -> None:
        require_amount(self.unit_price, "Unit price")

    def is_offered_at(self, at: datetime | None) -> bool:
        return _within(at, self.available_from, self.available_to)


@dataclass(frozen=True)
class Coverage:
    """What a scoped sponsorship pays for."""

    covers_base_price: bool = False
    add_on_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class SponsorshipRecord:
    """Redeemable credit issued to a sponsor.

    ``coverage`` of None means the credit applies to the whole registration.
    """

    id: str
    code: str
    status: SponsorshipStatus
    total_amount: int
    consumed_amount: int = 0
    coverage: Coverage | None = None

    def __post_init__(self) -> None:
        require_amount(self.total_amount, "Sponsorship amount")
        require_amount(self.consumed_amount, "Consumed amount")
        if self.consumed_amount > self.total_amount:
            raise ValueError("Consumed amount cannot exceed sponsorship amount")
        object.__setattr__(self, "code", normalize_code(self.code))

    @property
    def available_amount(self) -> int:
        return self.total_amount - self.consumed_amount

    @property
    def is_redeemable(self) -> bool:
        return self.status.is_redeemable and self.available_amount > 0


@dataclass(frozen=True)
class SponsorshipUsage:
    """Credit one registration drew from one sponsorship."""

    sponsorship_id: str
    registration_id: str
    amount_applied: int

    def __post_init__(self) -> None:
        require_amount(self.amount_applied, "Applied amount")


@dataclass(frozen=True)
class AddOnSelection:
    id: str
    quantity: int = 1


@dataclass(frozen=True)
class PriceRequest:
    """Already-validated input for a price calculation."""

    form_data: Mapping[str, Any] = field(default_factory=dict)
    selected_add_ons: tuple[AddOnSelection, ...] = ()
    sponsorship_codes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriceRequest":
        return cls(
            form_data=dict(data.get("formData") or {}),
            selected_add_ons=tuple(
                AddOnSelection(id=str(item["id"]), quantity=int(item.get("quantity", 1)))
                for item in data.get("selectedAddOns") or ()
            ),
            sponsorship_codes=tuple(data.get("sponsorshipCodes") or ()),
        )


@dataclass(frozen=True)
class AppliedRule:
    rule_id: str
    rule_name: str
    effect: int
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "ruleName": self.rule_name,
            "effect": self.effect,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class AddOnLineItem:
    id: str
    name: str
    unit_price: int
    quantity: int
    subtotal: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unitPrice": self.unit_price,
            "quantity": self.quantity,
            "subtotal": self.subtotal,
        }


@dataclass(frozen=True)
class SponsorshipLine:
    code: str
    amount: int
    valid: bool

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "amount": self.amount, "valid": self.valid}


@dataclass(frozen=True)
class PriceBreakdown:
    """Itemized result of a price calculation. Recomputed on every call."""

    base_price: int
    applied_rules: tuple[AppliedRule, ...]
    calculated_base_price: int
    add_on_items: tuple[AddOnLineItem, ...]
    add_on_total: int
    subtotal: int
    sponsorships: tuple[SponsorshipLine, ...]
    sponsorship_total: int
    total: int
    currency: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "basePrice": self.base_price,
            "appliedRules": [rule.to_dict() for rule in self.applied_rules],
            "calculatedBasePrice": self.calculated_base_price,
            "addOnItems": [item.to_dict() for item in self.add_on_items],
            "addOnTotal": self.add_on_total,
            "subtotal": self.subtotal,
            "sponsorships": [line.to_dict() for line in self.sponsorships],
            "sponsorshipTotal": self.sponsorship_total,
            "total": self.total,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class AddOnAvailability:
    """Catalog entry annotated for a particular registrant."""

    add_on: AddOnItem
    spots_remaining: int | None
    available: bool


@dataclass(frozen=True)
class RegistrationRelease:
    """What a cancelled registration handed back."""

    add_ons: tuple[AddOnSelection, ...]
    sponsorship_amount: int
