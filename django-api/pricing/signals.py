"""Django signals for cache invalidation.

Only the pricing config (base price and rules) is cached. Add-on capacity and
sponsorship credit change with every registration and are always read fresh.
"""

import logging

from django.core.cache import cache
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from pricing.models import EventPricing, PricingRule
from pricing.stores.django_store import pricing_cache_key

logger = logging.getLogger(__name__)


def invalidate_pricing_config(event_id) -> None:
    cache.delete(pricing_cache_key(event_id))
    logger.debug("Invalidated pricing config cache for event %s", event_id)


@receiver([post_save, post_delete], sender=EventPricing)
def invalidate_event_pricing_cache(sender, instance, **kwargs):
    """Invalidate the config cache when an event's pricing is saved or deleted."""
    invalidate_pricing_config(instance.event_id)


@receiver([post_save, post_delete], sender=PricingRule)
def invalidate_pricing_rule_cache(sender, instance, **kwargs):
    """Invalidate the config cache when one of its rules is saved or deleted."""
    event_id = (
        EventPricing.objects.filter(pk=instance.pricing_id)
        .values_list("event_id", flat=True)
        .first()
    )
    if event_id is not None:
        invalidate_pricing_config(event_id)
