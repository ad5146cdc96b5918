"""Form-answer conditions used to gate pricing rules and add-ons.

A condition compares one form field against a literal. Evaluation is total:
every combination of operator, field value and literal yields a bool, and
anything that cannot be compared yields False.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any

from pricing.domain.errors import MalformedConditionError
from pricing.domain.value_objects import ConditionLogic

logger = logging.getLogger(__name__)


class Operator(Enum):
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IN = "in"
    NOT_IN = "not_in"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    @classmethod
    def parse(cls, raw: str) -> "Operator | None":
        """Resolve a wire spelling (snake_case or camelCase) to an operator."""
        try:
            return cls(raw)
        except ValueError:
            return _CAMEL_CASE_ALIASES.get(raw)


_CAMEL_CASE_ALIASES = {
    "notEquals": Operator.NOT_EQUALS,
    "greaterThan": Operator.GREATER_THAN,
    "lessThan": Operator.LESS_THAN,
    "notIn": Operator.NOT_IN,
    "isEmpty": Operator.IS_EMPTY,
    "isNotEmpty": Operator.IS_NOT_EMPTY,
}


@dataclass(frozen=True)
class Condition:
    """``form_data[field_id] <operator> value``.

    ``operator`` holds the raw text when it does not name a known operator;
    such a condition never matches.
    """

    field_id: str
    operator: Operator | str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Condition":
        try:
            field_id = data["fieldId"]
            raw_operator = data["operator"]
        except (KeyError, TypeError) as exc:
            raise MalformedConditionError("fieldId and operator are required") from exc
        if not isinstance(field_id, str) or not field_id:
            raise MalformedConditionError("fieldId must be a non-empty string")
        if not isinstance(raw_operator, str):
            raise MalformedConditionError("operator must be a string")
        value = data.get("value")
        if isinstance(value, list):
            value = tuple(value)
        return cls(
            field_id=field_id,
            operator=Operator.parse(raw_operator) or raw_operator,
            value=value,
        )

    def to_dict(self) -> dict[str, Any]:
        operator = self.operator.value if isinstance(self.operator, Operator) else self.operator
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"fieldId": self.field_id, "operator": operator, "value": value}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def _strict_equals(left: Any, right: Any) -> bool:
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _as_members(value: Any) -> tuple[Any, ...] | None:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return None


def _equals(actual: Any, expected: Any) -> bool:
    return _strict_equals(actual, expected)


def _not_equals(actual: Any, expected: Any) -> bool:
    return not _strict_equals(actual, expected)


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, str):
        return str(expected) in actual
    if isinstance(actual, (list, tuple)):
        return any(_strict_equals(item, expected) for item in actual)
    return False


def _greater_than(actual: Any, expected: Any) -> bool:
    if not _is_number(actual) or isinstance(expected, bool):
        return False
    return actual > float(expected)


def _less_than(actual: Any, expected: Any) -> bool:
    if not _is_number(actual) or isinstance(expected, bool):
        return False
    return actual < float(expected)


def _in(actual: Any, expected: Any) -> bool:
    members = _as_members(expected)
    if members is None:
        return False
    return any(_strict_equals(actual, member) for member in members)


def _not_in(actual: Any, expected: Any) -> bool:
    members = _as_members(expected)
    if members is None:
        return False
    return not any(_strict_equals(actual, member) for member in members)


def _is_empty(actual: Any, _expected: Any) -> bool:
    if actual is None:
        return True
    if isinstance(actual, str):
        return not actual.strip()
    if isinstance(actual, (list, tuple, dict, set)):
        return len(actual) == 0
    return False


def _is_not_empty(actual: Any, expected: Any) -> bool:
    return not _is_empty(actual, expected)


_EVALUATORS: dict[Operator, Callable[[Any, Any], bool]] = {
    Operator.EQUALS: _equals,
    Operator.NOT_EQUALS: _not_equals,
    Operator.CONTAINS: _contains,
    Operator.GREATER_THAN: _greater_than,
    Operator.LESS_THAN: _less_than,
    Operator.IN: _in,
    Operator.NOT_IN: _not_in,
    Operator.IS_EMPTY: _is_empty,
    Operator.IS_NOT_EMPTY: _is_not_empty,
}

if set(_EVALUATORS) != set(Operator):
    raise RuntimeError("every operator needs an evaluator")


def evaluate_condition(condition: Condition, form_data: Mapping[str, Any]) -> bool:
    """Return whether ``form_data`` satisfies ``condition``. Never raises."""
    evaluator = _EVALUATORS.get(condition.operator) if isinstance(condition.operator, Operator) else None
    if evaluator is None:
        logger.warning(
            "Unsupported operator %r on field %s; condition treated as false",
            condition.operator,
            condition.field_id,
        )
        return False
    try:
        return bool(evaluator(form_data.get(condition.field_id), condition.value))
    except (TypeError, ValueError, OverflowError, AttributeError):
        return False


def evaluate_group(
    conditions: Iterable[Condition],
    logic: ConditionLogic,
    form_data: Mapping[str, Any],
) -> bool:
    """Combine conditions with AND/OR. No conditions means always true."""
    conditions = tuple(conditions)
    if not conditions:
        return True
    results = (evaluate_condition(condition, form_data) for condition in conditions)
    if logic is ConditionLogic.OR:
        return any(results)
    return all(results)
