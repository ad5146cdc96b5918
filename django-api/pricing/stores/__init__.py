from pricing.stores.interfaces import PricingStore
from pricing.stores.memory_store import InMemoryPricingStore

__all__ = ["PricingStore", "InMemoryPricingStore"]
