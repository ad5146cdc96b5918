"""Domain error codes for the pricing module."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Domain error codes."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_EVENT_ID = "INVALID_EVENT_ID"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    MALFORMED_CONDITION = "MALFORMED_CONDITION"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    PRICING_NOT_FOUND = "PRICING_NOT_FOUND"
    ADD_ON_NOT_FOUND = "ADD_ON_NOT_FOUND"
    ADD_ON_NOT_AVAILABLE = "ADD_ON_NOT_AVAILABLE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    INVALID_SPONSORSHIP_CODE = "INVALID_SPONSORSHIP_CODE"
    RELEASE_EXCEEDS_RESERVED = "RELEASE_EXCEEDS_RESERVED"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """A resource the calculation depends on does not exist."""


class ValidationError(DomainError):
    """The request is structurally valid but not acceptable."""


class InvalidEventIdError(ValidationError):
    """Raised when an event ID is invalid."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_EVENT_ID,
            message="Invalid event ID format",
        )


class EventNotFoundError(NotFoundError):
    """Raised when an event does not exist."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
            details={"eventId": str(event_id)},
        )


class PricingNotFoundError(NotFoundError):
    """Raised when no pricing is configured for an event."""

    def __init__(self, event_id: str | None = None) -> None:
        super().__init__(
            code=ErrorCode.PRICING_NOT_FOUND,
            message="Pricing not configured for event",
            details={"eventId": str(event_id)} if event_id is not None else {},
        )


class AddOnNotFoundError(NotFoundError):
    """Raised when a selected add-on is not in the event catalog."""

    def __init__(self, add_on_id: str) -> None:
        super().__init__(
            code=ErrorCode.ADD_ON_NOT_FOUND,
            message=f"Add-on {add_on_id} not found",
            details={"addOnId": add_on_id},
        )

    @property
    def add_on_id(self) -> str:
        return self.details["addOnId"]


class InvalidQuantityError(ValidationError):
    """Raised when an add-on is selected with a non-positive quantity."""

    def __init__(self, add_on_id: str, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.INVALID_QUANTITY,
            message=f"Quantity for add-on {add_on_id} must be positive",
            details={"addOnId": add_on_id, "quantity": quantity},
        )


class AddOnNotAvailableError(ValidationError):
    """Raised when an add-on is not currently offered to this registrant."""

    def __init__(self, add_on_id: str, reason: str) -> None:
        super().__init__(
            code=ErrorCode.ADD_ON_NOT_AVAILABLE,
            message=f"Add-on {add_on_id} is not available: {reason}",
            details={"addOnId": add_on_id, "reason": reason},
        )

    @property
    def add_on_id(self) -> str:
        return self.details["addOnId"]


class MalformedConditionError(ValidationError):
    """Raised when a condition payload cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_CONDITION,
            message=f"Malformed condition: {reason}",
            details={"reason": reason},
        )


class CapacityExceededError(DomainError):
    """Raised when a selection exceeds an add-on's remaining capacity."""

    def __init__(self, add_on_id: str, requested: int, remaining: int) -> None:
        super().__init__(
            code=ErrorCode.CAPACITY_EXCEEDED,
            message=f"Add-on {add_on_id} has {remaining} spots remaining",
            details={"addOnId": add_on_id, "requested": requested, "remaining": remaining},
        )

    @property
    def add_on_id(self) -> str:
        return self.details["addOnId"]


class InvalidSponsorshipCodeError(DomainError):
    """Raised when a sponsorship code cannot be consumed at commit time.

    Previews never raise this; an invalid code there is reported as a
    zero-value line instead.
    """

    def __init__(self, code: str) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SPONSORSHIP_CODE,
            message=f"Sponsorship code {code} cannot be applied",
            details={"sponsorshipCode": code},
        )

    @property
    def sponsorship_code(self) -> str:
        return self.details["sponsorshipCode"]


class ReleaseExceedsReservedError(DomainError):
    """Raised when releasing more add-on seats than are currently taken."""

    def __init__(self, add_on_id: str, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.RELEASE_EXCEEDS_RESERVED,
            message=f"Cannot release {quantity} seats of add-on {add_on_id}",
            details={"addOnId": add_on_id, "quantity": quantity},
        )
