"""Pure price calculation.

Nothing here performs I/O or holds state; callers pass read-only snapshots of
the pricing config, add-on catalog and a sponsorship lookup. The output is a
preview: capacity and sponsorship checks are estimates against the snapshot,
and the store repeats them authoritatively at commit time.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pricing.domain.conditions import evaluate_group
from pricing.domain.errors import (
    AddOnNotAvailableError,
    AddOnNotFoundError,
    CapacityExceededError,
    InvalidQuantityError,
    PricingNotFoundError,
)
from pricing.domain.models import (
    AddOnItem,
    AddOnLineItem,
    AddOnSelection,
    AppliedRule,
    EventPricing,
    PriceBreakdown,
    PriceRequest,
    PricingRule,
    SponsorshipLine,
    SponsorshipRecord,
    normalize_code,
)

logger = logging.getLogger(__name__)

BASE_COMPONENT = "base"

SponsorshipLookup = Callable[[str], SponsorshipRecord | None]


def add_on_component(add_on_id: str) -> str:
    return f"add_on:{add_on_id}"


@dataclass(frozen=True)
class RuleSelection:
    calculated_base_price: int
    applied_rules: tuple[AppliedRule, ...]


@dataclass(frozen=True)
class AddOnTotals:
    items: tuple[AddOnLineItem, ...]
    add_on_total: int


@dataclass(frozen=True)
class AppliedSponsorship:
    """A sponsorship line together with the record that produced it."""

    line: SponsorshipLine
    record: SponsorshipRecord | None


@dataclass(frozen=True)
class SponsorshipResult:
    applied: tuple[AppliedSponsorship, ...]
    sponsorship_total: int
    total: int

    @property
    def sponsorships(self) -> tuple[SponsorshipLine, ...]:
        return tuple(entry.line for entry in self.applied)


def select_rule(
    rules: Iterable[PricingRule],
    form_data: Mapping[str, Any],
    base_price: int,
    at: datetime | None = None,
) -> RuleSelection:
    """Pick the single highest-priority active rule matching the form.

    Ties on priority go to the rule declared first.
    """
    winner: PricingRule | None = None
    for rule in rules:
        if not rule.active or not rule.is_valid_at(at):
            continue
        if winner is not None and rule.priority <= winner.priority:
            continue
        if evaluate_group(rule.conditions, rule.condition_logic, form_data):
            winner = rule

    if winner is None:
        return RuleSelection(calculated_base_price=base_price, applied_rules=())

    applied = AppliedRule(
        rule_id=winner.id,
        rule_name=winner.name,
        effect=winner.price - base_price,
    )
    return RuleSelection(calculated_base_price=winner.price, applied_rules=(applied,))


def check_add_on_offered(
    add_on: AddOnItem,
    form_data: Mapping[str, Any],
    at: datetime | None = None,
) -> str | None:
    """Return why ``add_on`` is not offered to this registrant, or None."""
    if not add_on.active:
        return "inactive"
    if not add_on.is_offered_at(at):
        return "outside availability window"
    if not evaluate_group(add_on.conditions, add_on.condition_logic, form_data):
        return "not offered based on form answers"
    return None


def calculate_add_ons(
    catalog: Iterable[AddOnItem],
    selections: Sequence[AddOnSelection],
    form_data: Mapping[str, Any],
    at: datetime | None = None,
) -> AddOnTotals:
    """Price the selected add-ons in selection order.

    Raises:
        AddOnNotFoundError: If a selection names an id outside the catalog.
        InvalidQuantityError: If a quantity is not positive.
        AddOnNotAvailableError: If the add-on is not offered to this registrant.
        CapacityExceededError: If the selection exceeds remaining capacity.
    """
    by_id = {add_on.id: add_on for add_on in catalog}
    requested: dict[str, int] = {}
    items: list[AddOnLineItem] = []

    for selection in selections:
        add_on = by_id.get(selection.id)
        if add_on is None:
            raise AddOnNotFoundError(selection.id)
        if selection.quantity <= 0:
            raise InvalidQuantityError(selection.id, selection.quantity)

        reason = check_add_on_offered(add_on, form_data, at)
        if reason is not None:
            raise AddOnNotAvailableError(add_on.id, reason)

        requested[add_on.id] = requested.get(add_on.id, 0) + selection.quantity
        if not add_on.capacity.can_accommodate(requested[add_on.id]):
            raise CapacityExceededError(
                add_on.id,
                requested=requested[add_on.id],
                remaining=add_on.capacity.remaining or 0,
            )

        items.append(
            AddOnLineItem(
                id=add_on.id,
                name=add_on.name,
                unit_price=add_on.unit_price,
                quantity=selection.quantity,
                subtotal=add_on.unit_price * selection.quantity,
            )
        )

    return AddOnTotals(items=tuple(items), add_on_total=sum(item.subtotal for item in items))


def _covered_components(
    record: SponsorshipRecord,
    components: Mapping[str, int],
    scoped: bool,
) -> list[str]:
    if record.coverage is None or not scoped:
        return list(components)
    covered = []
    if record.coverage.covers_base_price and BASE_COMPONENT in components:
        covered.append(BASE_COMPONENT)
    covered_add_ons = {add_on_component(add_on_id) for add_on_id in record.coverage.add_on_ids}
    covered.extend(key for key in components if key in covered_add_ons)
    return covered


def apply_sponsorships(
    codes: Iterable[str],
    lookup: SponsorshipLookup,
    running_total: int,
    components: Mapping[str, int] | None = None,
) -> SponsorshipResult:
    """Apply sponsorship credit in input order without going below zero.

    ``components`` splits ``running_total`` into chargeable parts (base price
    and each add-on) so that scoped sponsorships only draw from what they
    cover. Each component can be drawn down once across all codes. Without
    ``components`` coverage scopes are ignored and every code draws from the
    running total.
    """
    scoped = components is not None
    remaining = dict(components) if scoped else {"total": running_total}
    seen: set[str] = set()
    applied: list[AppliedSponsorship] = []

    for raw_code in codes:
        code = normalize_code(raw_code)
        record = lookup(code) if code and code not in seen else None
        seen.add(code)

        if record is None or not record.is_redeemable:
            logger.debug("Sponsorship code %s is not redeemable", code)
            applied.append(AppliedSponsorship(SponsorshipLine(code=code, amount=0, valid=False), None))
            continue

        credit = record.available_amount
        amount = 0
        for key in _covered_components(record, remaining, scoped):
            if credit == 0:
                break
            drawn = min(credit, remaining[key])
            remaining[key] -= drawn
            credit -= drawn
            amount += drawn

        applied.append(AppliedSponsorship(SponsorshipLine(code=code, amount=amount, valid=True), record))

    sponsorship_total = sum(entry.line.amount for entry in applied)
    return SponsorshipResult(
        applied=tuple(applied),
        sponsorship_total=sponsorship_total,
        total=max(0, running_total - sponsorship_total),
    )


def _no_sponsorships(_code: str) -> SponsorshipRecord | None:
    return None


@dataclass(frozen=True)
class PriceCalculation:
    """A breakdown plus the sponsorship records it drew on."""

    breakdown: PriceBreakdown
    sponsorships: SponsorshipResult


def run_calculation(
    config: EventPricing | None,
    request: PriceRequest,
    catalog: Iterable[AddOnItem] = (),
    lookup: SponsorshipLookup | None = None,
    at: datetime | None = None,
) -> PriceCalculation:
    """Shared core of price preview and commit."""
    if config is None:
        raise PricingNotFoundError()

    selection = select_rule(config.rules, request.form_data, config.base_price, at)
    add_ons = calculate_add_ons(catalog, request.selected_add_ons, request.form_data, at)
    subtotal = selection.calculated_base_price + add_ons.add_on_total

    components = {BASE_COMPONENT: selection.calculated_base_price}
    for item in add_ons.items:
        key = add_on_component(item.id)
        components[key] = components.get(key, 0) + item.subtotal

    sponsorships = apply_sponsorships(
        request.sponsorship_codes,
        lookup or _no_sponsorships,
        subtotal,
        components,
    )

    breakdown = PriceBreakdown(
        base_price=config.base_price,
        applied_rules=selection.applied_rules,
        calculated_base_price=selection.calculated_base_price,
        add_on_items=add_ons.items,
        add_on_total=add_ons.add_on_total,
        subtotal=subtotal,
        sponsorships=sponsorships.sponsorships,
        sponsorship_total=sponsorships.sponsorship_total,
        total=sponsorships.total,
        currency=config.currency,
    )
    return PriceCalculation(breakdown=breakdown, sponsorships=sponsorships)


def calculate_price(
    config: EventPricing | None,
    request: PriceRequest,
    catalog: Iterable[AddOnItem] = (),
    lookup: SponsorshipLookup | None = None,
    at: datetime | None = None,
) -> PriceBreakdown:
    """Compute the price breakdown for one registration.

    Raises:
        PricingNotFoundError: If the event has no pricing configured.
        AddOnNotFoundError, InvalidQuantityError, AddOnNotAvailableError,
        CapacityExceededError: If the add-on selection is not acceptable.
    """
    return run_calculation(config, request, catalog, lookup, at).breakdown
