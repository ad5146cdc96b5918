from django.contrib import admin

from pricing.models import AddOn, Event, EventPricing, PricingRule, Sponsorship, SponsorshipUsage


class PricingRuleInline(admin.TabularInline):
    model = PricingRule
    extra = 1


class SponsorshipUsageInline(admin.TabularInline):
    model = SponsorshipUsage
    extra = 0
    readonly_fields = ["registration_id", "amount_applied", "created_at"]


class AddOnInline(admin.TabularInline):
    model = AddOn
    extra = 1
    fields = ["name", "unit_price", "currency", "max_capacity", "registered_count", "active"]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ["name", "client_id", "created_at"]
    search_fields = ["name"]
    inlines = [AddOnInline]


@admin.register(EventPricing)
class EventPricingAdmin(admin.ModelAdmin):
    list_display = ["event", "base_price", "currency", "updated_at"]
    inlines = [PricingRuleInline]


@admin.register(AddOn)
class AddOnAdmin(admin.ModelAdmin):
    list_display = ["name", "event", "unit_price", "max_capacity", "registered_count", "active"]
    list_filter = ["event", "active"]


@admin.register(Sponsorship)
class SponsorshipAdmin(admin.ModelAdmin):
    list_display = ["code", "event", "status", "total_amount", "consumed_amount"]
    list_filter = ["status", "event"]
    search_fields = ["code"]
    readonly_fields = ["consumed_amount"]
    inlines = [SponsorshipUsageInline]
