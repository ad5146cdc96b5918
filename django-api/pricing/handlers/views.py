"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from pricing.domain import Condition, ConditionLogic, PriceRequest, PricingRule
from pricing.domain.errors import (
    CapacityExceededError,
    DomainError,
    ErrorCode,
    EventNotFoundError,
    InvalidSponsorshipCodeError,
    NotFoundError,
    ReleaseExceedsReservedError,
)
from pricing.handlers.serializers import (
    AddOnAvailabilitySerializer,
    AvailableAddOnsRequestSerializer,
    EventPricingSerializer,
    PriceBreakdownSerializer,
    PriceRequestSerializer,
    PricingRuleCreateSerializer,
    PricingRuleSerializer,
)
from pricing.permissions import Capability, EventPricingPermission, can_access_event
from pricing.services.pricing_service import PricingService
from pricing.stores.django_store import DjangoPricingStore

logger = logging.getLogger(__name__)


def get_pricing_service() -> PricingService:
    return PricingService(DjangoPricingStore())


def error_response(error: DomainError) -> Response:
    if isinstance(error, NotFoundError):
        http_status = status.HTTP_404_NOT_FOUND
    elif isinstance(
        error, (CapacityExceededError, InvalidSponsorshipCodeError, ReleaseExceedsReservedError)
    ):
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = status.HTTP_400_BAD_REQUEST
    body = {"error": {"code": error.code.value, "message": error.message, "details": error.details}}
    return Response(body, status=http_status)


def invalid_request(errors) -> Response:
    body = {
        "error": {
            "code": ErrorCode.VALIDATION_ERROR.value,
            "message": "Invalid request",
            "details": errors,
        }
    }
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


def forbidden() -> Response:
    body = {"error": {"code": "FORBIDDEN", "message": "Insufficient permissions for this event"}}
    return Response(body, status=status.HTTP_403_FORBIDDEN)


class PricingView(APIView):
    """Shared service wiring and tenant checks."""

    service_factory = staticmethod(get_pricing_service)
    required_capability = Capability.VIEW_PRICING

    def get_service(self) -> PricingService:
        return self.service_factory()

    def can_access(self, request: Request, service: PricingService, event_id: str) -> bool:
        client_id = service.get_event_client_id(event_id)
        if client_id is None:
            raise EventNotFoundError(event_id)
        return can_access_event(request.user, client_id, self.required_capability)


class PriceCalculationView(PricingView):
    """Handler for POST /api/events/{event_id}/price"""

    permission_classes = [AllowAny]

    def post(self, request: Request, event_id: str) -> Response:
        serializer = PriceRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)

        try:
            breakdown = self.get_service().calculate_price(
                event_id, PriceRequest.from_dict(serializer.validated_data)
            )
        except DomainError as exc:
            logger.info("Price calculation for event %s rejected: %s", event_id, exc)
            return error_response(exc)
        return Response(PriceBreakdownSerializer(breakdown).data)


class AvailableAddOnsView(PricingView):
    """Handler for POST /api/events/{event_id}/add-ons/available"""

    permission_classes = [AllowAny]

    def post(self, request: Request, event_id: str) -> Response:
        serializer = AvailableAddOnsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)

        try:
            add_ons = self.get_service().list_available_add_ons(
                event_id, serializer.validated_data["formData"]
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(AddOnAvailabilitySerializer(add_ons, many=True).data)


class EventPricingView(PricingView):
    """Handler for GET /api/events/{event_id}/pricing"""

    permission_classes = [EventPricingPermission]

    def get(self, request: Request, event_id: str) -> Response:
        service = self.get_service()
        try:
            if not self.can_access(request, service, event_id):
                return forbidden()
            pricing = service.get_event_pricing(event_id)
        except DomainError as exc:
            return error_response(exc)
        return Response(EventPricingSerializer(pricing).data)


class PricingRuleListView(PricingView):
    """Handler for POST /api/events/{event_id}/pricing-rules"""

    permission_classes = [EventPricingPermission]
    required_capability = Capability.MANAGE_PRICING

    def post(self, request: Request, event_id: str) -> Response:
        serializer = PricingRuleCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data

        service = self.get_service()
        try:
            if not self.can_access(request, service, event_id):
                return forbidden()
            rule = service.add_pricing_rule(
                event_id,
                PricingRule(
                    id="",
                    name=data["name"],
                    description=data["description"],
                    price=data["price"],
                    conditions=tuple(Condition.from_dict(item) for item in data["conditions"]),
                    condition_logic=ConditionLogic(data["conditionLogic"]),
                    priority=data["priority"],
                    active=data["active"],
                    valid_from=data["validFrom"],
                    valid_to=data["validTo"],
                ),
            )
        except DomainError as exc:
            return error_response(exc)
        return Response(PricingRuleSerializer(rule).data, status=status.HTTP_201_CREATED)
