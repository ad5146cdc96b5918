"""Serializers for validating requests and rendering domain models.

Request serializers only check shape; business validation happens in the
service and surfaces as domain errors.
"""

from rest_framework import serializers

from pricing.domain import Operator


class ConditionSerializer(serializers.Serializer):
    fieldId = serializers.CharField(min_length=1)
    operator = serializers.CharField()
    value = serializers.JSONField(required=False, allow_null=True)

    def validate_operator(self, value: str) -> str:
        operator = Operator.parse(value)
        if operator is None:
            raise serializers.ValidationError(f"Unsupported operator: {value}")
        return operator.value


class SelectedAddOnSerializer(serializers.Serializer):
    id = serializers.CharField(min_length=1)
    quantity = serializers.IntegerField(default=1)


class PriceRequestSerializer(serializers.Serializer):
    """Body of POST /api/events/{event_id}/price."""

    formData = serializers.DictField(child=serializers.JSONField(), required=False, default=dict)
    selectedAddOns = SelectedAddOnSerializer(many=True, required=False, default=list)
    sponsorshipCodes = serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=True),
        required=False,
        default=list,
    )


class AvailableAddOnsRequestSerializer(serializers.Serializer):
    """Body of POST /api/events/{event_id}/add-ons/available."""

    formData = serializers.DictField(child=serializers.JSONField(), required=False, default=dict)


class AppliedRuleSerializer(serializers.Serializer):
    ruleId = serializers.CharField(source="rule_id")
    ruleName = serializers.CharField(source="rule_name")
    effect = serializers.IntegerField()
    reason = serializers.CharField(allow_null=True)


class AddOnLineItemSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    unitPrice = serializers.IntegerField(source="unit_price")
    quantity = serializers.IntegerField()
    subtotal = serializers.IntegerField()


class SponsorshipLineSerializer(serializers.Serializer):
    code = serializers.CharField()
    amount = serializers.IntegerField()
    valid = serializers.BooleanField()


class PriceBreakdownSerializer(serializers.Serializer):
    """Serializer for PriceBreakdown domain model."""

    basePrice = serializers.IntegerField(source="base_price")
    appliedRules = AppliedRuleSerializer(source="applied_rules", many=True)
    calculatedBasePrice = serializers.IntegerField(source="calculated_base_price")
    addOnItems = AddOnLineItemSerializer(source="add_on_items", many=True)
    addOnTotal = serializers.IntegerField(source="add_on_total")
    subtotal = serializers.IntegerField()
    sponsorships = SponsorshipLineSerializer(many=True)
    sponsorshipTotal = serializers.IntegerField(source="sponsorship_total")
    total = serializers.IntegerField()
    currency = serializers.CharField()


class AddOnAvailabilitySerializer(serializers.Serializer):
    """Serializer for AddOnAvailability domain model."""

    id = serializers.CharField(source="add_on.id")
    name = serializers.CharField(source="add_on.name")
    unitPrice = serializers.IntegerField(source="add_on.unit_price")
    currency = serializers.CharField(source="add_on.currency")
    maxCapacity = serializers.IntegerField(source="add_on.capacity.max_capacity", allow_null=True)
    spotsRemaining = serializers.IntegerField(source="spots_remaining", allow_null=True)
    available = serializers.BooleanField()


class PricingRuleSerializer(serializers.Serializer):
    """Serializer for PricingRule domain model."""

    id = serializers.CharField()
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    price = serializers.IntegerField()
    conditions = serializers.SerializerMethodField()
    conditionLogic = serializers.CharField(source="condition_logic.value")
    priority = serializers.IntegerField()
    active = serializers.BooleanField()
    validFrom = serializers.DateTimeField(source="valid_from", allow_null=True)
    validTo = serializers.DateTimeField(source="valid_to", allow_null=True)

    def get_conditions(self, rule) -> list[dict]:
        return [condition.to_dict() for condition in rule.conditions]


class EventPricingSerializer(serializers.Serializer):
    """Serializer for EventPricing domain model."""

    eventId = serializers.CharField(source="event_id")
    basePrice = serializers.IntegerField(source="base_price")
    currency = serializers.CharField()
    rules = PricingRuleSerializer(many=True)


class PricingRuleCreateSerializer(serializers.Serializer):
    """Body of POST /api/events/{event_id}/pricing-rules."""

    name = serializers.CharField(min_length=1, max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_null=True, default=None)
    price = serializers.IntegerField(min_value=0)
    conditions = ConditionSerializer(many=True, required=False, default=list)
    conditionLogic = serializers.ChoiceField(choices=["AND", "OR"], default="AND")
    priority = serializers.IntegerField(min_value=0, default=0)
    active = serializers.BooleanField(default=True)
    validFrom = serializers.DateTimeField(required=False, allow_null=True, default=None)
    validTo = serializers.DateTimeField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        valid_from, valid_to = attrs.get("validFrom"), attrs.get("validTo")
        if valid_from and valid_to and valid_from > valid_to:
            raise serializers.ValidationError("validFrom must not be after validTo")
        return attrs
