from pricing.handlers.views import (
    AvailableAddOnsView,
    EventPricingView,
    PriceCalculationView,
    PricingRuleListView,
)

__all__ = [
    "AvailableAddOnsView",
    "EventPricingView",
    "PriceCalculationView",
    "PricingRuleListView",
]
