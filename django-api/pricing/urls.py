from django.urls import path

from pricing.handlers import (
    AvailableAddOnsView,
    EventPricingView,
    PriceCalculationView,
    PricingRuleListView,
)

urlpatterns = [
    path("events/<str:event_id>/price", PriceCalculationView.as_view(), name="event-price"),
    path(
        "events/<str:event_id>/add-ons/available",
        AvailableAddOnsView.as_view(),
        name="event-add-ons-available",
    ),
    path("events/<str:event_id>/pricing", EventPricingView.as_view(), name="event-pricing"),
    path(
        "events/<str:event_id>/pricing-rules",
        PricingRuleListView.as_view(),
        name="event-pricing-rules",
    ),
]
