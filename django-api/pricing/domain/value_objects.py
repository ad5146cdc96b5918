"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from enum import Enum
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


class ConditionLogic(Enum):
    """How the conditions of a rule or add-on combine."""

    AND = "AND"
    OR = "OR"


class SponsorshipStatus(Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CONSUMED = "CONSUMED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"

    @property
    def is_redeemable(self) -> bool:
        return self in (SponsorshipStatus.PENDING, SponsorshipStatus.ACTIVE)


@dataclass(frozen=True)
class Capacity:
    """Seats taken against an optional upper bound.

    A ``max_capacity`` of None means unlimited.
    """

    max_capacity: int | None = None
    registered_count: int = 0

    def __post_init__(self) -> None:
        if self.registered_count < 0:
            raise ValueError("Registered count cannot be negative")
        if self.max_capacity is not None:
            if self.max_capacity < 0:
                raise ValueError("Capacity cannot be negative")
            if self.registered_count > self.max_capacity:
                raise ValueError("Registered count cannot exceed capacity")

    @property
    def remaining(self) -> int | None:
        if self.max_capacity is None:
            return None
        return self.max_capacity - self.registered_count

    def can_accommodate(self, quantity: int) -> bool:
        if self.max_capacity is None:
            return True
        return self.registered_count + quantity <= self.max_capacity


def require_amount(value: int, label: str) -> None:
    """Amounts are integers in the smallest currency unit and never negative."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label} must be an integer amount")
    if value < 0:
        raise ValueError(f"{label} cannot be negative")
