from pricing.domain.conditions import Condition, Operator, evaluate_condition, evaluate_group
from pricing.domain.models import (
    AddOnAvailability,
    AddOnItem,
    AddOnLineItem,
    AddOnSelection,
    AppliedRule,
    Coverage,
    EventPricing,
    PriceBreakdown,
    PriceRequest,
    PricingRule,
    RegistrationRelease,
    SponsorshipLine,
    SponsorshipRecord,
    SponsorshipUsage,
)
from pricing.domain.value_objects import Capacity, ConditionLogic, EventId, SponsorshipStatus

__all__ = [
    "AddOnAvailability",
    "AddOnItem",
    "AddOnLineItem",
    "AddOnSelection",
    "AppliedRule",
    "Capacity",
    "Condition",
    "ConditionLogic",
    "Coverage",
    "EventId",
    "EventPricing",
    "Operator",
    "PriceBreakdown",
    "PriceRequest",
    "PricingRule",
    "RegistrationRelease",
    "SponsorshipLine",
    "SponsorshipRecord",
    "SponsorshipStatus",
    "SponsorshipUsage",
    "evaluate_condition",
    "evaluate_group",
]
