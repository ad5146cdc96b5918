"""Tests for PricingService over the in-memory store.

Preview and commit share one calculation; only commit takes capacity and
sponsorship credit, and a failed commit keeps nothing.
"""

import dataclasses
import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from pricing.domain import (
    AddOnSelection,
    Condition,
    EventId,
    EventPricing,
    Operator,
    PriceRequest,
    PricingRule,
    SponsorshipStatus,
    SponsorshipUsage,
)
from pricing.domain.errors import (
    AddOnNotFoundError,
    CapacityExceededError,
    InvalidEventIdError,
    InvalidQuantityError,
    InvalidSponsorshipCodeError,
    PricingNotFoundError,
    ReleaseExceedsReservedError,
)
from pricing.services.pricing_service import PricingService
from pricing.stores import InMemoryPricingStore


@pytest.fixture
def event_id() -> EventId:
    return EventId(uuid.uuid4())


@pytest.fixture
def client_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def store(event_id, client_id, make_rule) -> InMemoryPricingStore:
    store = InMemoryPricingStore()
    store.add_event(event_id, client_id)
    store.set_pricing(
        EventPricing(
            event_id=str(event_id),
            base_price=300,
            currency="TND",
            rules=(make_rule(price=150),),
        )
    )
    return store


@pytest.fixture
def service(store) -> PricingService:
    return PricingService(store)


def sponsorship(store, event_id, code):
    return store.find_sponsorship_by_code(event_id, code)


def add_on(store, event_id, add_on_id):
    return next(item for item in store.list_add_on_catalog(event_id) if item.id == add_on_id)


class TestCalculatePrice:
    """Tests for PricingService.calculate_price."""

    def test_invalid_event_id(self, service):
        """Given a malformed event id, raises InvalidEventIdError."""
        with pytest.raises(InvalidEventIdError):
            service.calculate_price("not-a-uuid", PriceRequest())

    def test_event_without_pricing(self, service):
        """Given an event with no pricing config, raises PricingNotFoundError."""
        with pytest.raises(PricingNotFoundError) as exc_info:
            service.calculate_price(str(uuid.uuid4()), PriceRequest())
        assert "eventId" in exc_info.value.details

    def test_applies_rule(self, service, event_id):
        breakdown = service.calculate_price(str(event_id), PriceRequest(form_data={"status": "student"}))
        assert breakdown.total == 150

    def test_unknown_add_on(self, service, event_id):
        with pytest.raises(AddOnNotFoundError):
            service.calculate_price(
                str(event_id), PriceRequest(selected_add_ons=(AddOnSelection("missing"),))
            )

    def test_preview_does_not_mutate(self, service, store, event_id, make_add_on, make_sponsorship):
        """Given repeated previews, leaves capacity and credit untouched."""
        store.add_add_on(event_id, make_add_on(max_capacity=5))
        store.add_sponsorship(event_id, make_sponsorship(total_amount=100))
        request = PriceRequest(
            selected_add_ons=(AddOnSelection("workshop-1", 2),),
            sponsorship_codes=("SPONSOR123",),
        )

        first = service.calculate_price(str(event_id), request)
        second = service.calculate_price(str(event_id), request)

        assert first == second
        assert first.sponsorship_total == 100
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 0
        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 0
        assert record.status is SponsorshipStatus.PENDING

    def test_preview_reports_invalid_code(self, service, event_id):
        """Given an unknown code, returns a zero-value invalid line instead of raising."""
        breakdown = service.calculate_price(str(event_id), PriceRequest(sponsorship_codes=("NOPE",)))
        assert breakdown.sponsorships[0].valid is False
        assert breakdown.total == 300

    def test_rule_outside_window_at_reference_time(self, store, service, event_id, make_rule):
        now = timezone.now()
        store.set_pricing(
            EventPricing(
                event_id=str(event_id),
                base_price=300,
                currency="TND",
                rules=(make_rule(conditions=(), price=200, valid_to=now - timedelta(days=1)),),
            )
        )
        assert service.calculate_price(str(event_id), PriceRequest(), at=now).total == 300
        assert service.calculate_price(str(event_id), PriceRequest()).total == 300


class TestCommitPrice:
    """Tests for PricingService.commit_price."""

    def test_commit_reserves_and_consumes(self, service, store, event_id, make_add_on, make_sponsorship):
        store.add_add_on(event_id, make_add_on(max_capacity=5))
        store.add_sponsorship(event_id, make_sponsorship(total_amount=500))
        registration_id = str(uuid.uuid4())

        breakdown = service.commit_price(
            str(event_id),
            registration_id,
            PriceRequest(
                selected_add_ons=(AddOnSelection("workshop-1", 2),),
                sponsorship_codes=("sponsor123",),
            ),
        )

        assert breakdown.subtotal == 400
        assert breakdown.total == 0
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 2
        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 400
        assert record.status is SponsorshipStatus.ACTIVE
        assert store.list_sponsorship_usages(event_id, registration_id) == [
            SponsorshipUsage(record.id, registration_id, 400)
        ]

    def test_partial_credit_carries_to_next_registration(self, service, store, event_id, make_sponsorship):
        store.add_sponsorship(event_id, make_sponsorship(total_amount=500))
        request = PriceRequest(sponsorship_codes=("SPONSOR123",))

        service.commit_price(str(event_id), str(uuid.uuid4()), request)
        second = service.commit_price(str(event_id), str(uuid.uuid4()), request)

        assert second.sponsorship_total == 200
        assert second.total == 100
        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 500
        assert record.status is SponsorshipStatus.CONSUMED

    def test_credit_is_not_applied_twice(self, service, store, event_id, make_sponsorship):
        """Given a fully consumed code, a second commit is rejected."""
        store.add_sponsorship(event_id, make_sponsorship(total_amount=300))
        request = PriceRequest(sponsorship_codes=("SPONSOR123",))
        service.commit_price(str(event_id), str(uuid.uuid4()), request)

        with pytest.raises(InvalidSponsorshipCodeError) as exc_info:
            service.commit_price(str(event_id), str(uuid.uuid4()), request)
        assert exc_info.value.sponsorship_code == "SPONSOR123"

        preview = service.calculate_price(str(event_id), request)
        assert preview.sponsorships[0].valid is False
        assert preview.total == 300

    def test_commit_rejects_invalid_code(self, service, store, event_id, make_add_on):
        store.add_add_on(event_id, make_add_on(max_capacity=5))
        request = PriceRequest(
            selected_add_ons=(AddOnSelection("workshop-1"),), sponsorship_codes=("NOPE",)
        )
        with pytest.raises(InvalidSponsorshipCodeError):
            service.commit_price(str(event_id), str(uuid.uuid4()), request)
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 0

    def test_failed_commit_rolls_back(self, service, store, event_id, make_add_on, make_sponsorship, monkeypatch):
        """Given a seat lost after sponsorship checks, keeps no seat and no credit."""
        store.add_add_on(event_id, make_add_on("dinner", unit_price=80, max_capacity=10))
        store.add_add_on(event_id, make_add_on("workshop-1", max_capacity=10))
        store.add_sponsorship(event_id, make_sponsorship(total_amount=500))

        real_reserve = store.reserve_add_on

        def reserve(add_on_id, quantity):
            if add_on_id == "workshop-1":
                return False
            return real_reserve(add_on_id, quantity)

        monkeypatch.setattr(store, "reserve_add_on", reserve)

        with pytest.raises(CapacityExceededError):
            service.commit_price(
                str(event_id),
                str(uuid.uuid4()),
                PriceRequest(
                    selected_add_ons=(AddOnSelection("dinner"), AddOnSelection("workshop-1")),
                    sponsorship_codes=("SPONSOR123",),
                ),
            )

        assert add_on(store, event_id, "dinner").capacity.registered_count == 0
        assert sponsorship(store, event_id, "SPONSOR123").consumed_amount == 0

    def test_concurrently_consumed_credit_rolls_back(
        self, service, store, event_id, make_add_on, make_sponsorship, monkeypatch
    ):
        store.add_add_on(event_id, make_add_on(max_capacity=10))
        store.add_sponsorship(event_id, make_sponsorship(total_amount=100))
        monkeypatch.setattr(store, "consume_sponsorship", lambda *args: False)

        with pytest.raises(InvalidSponsorshipCodeError):
            service.commit_price(
                str(event_id),
                str(uuid.uuid4()),
                PriceRequest(
                    selected_add_ons=(AddOnSelection("workshop-1"),),
                    sponsorship_codes=("SPONSOR123",),
                ),
            )
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 0

    def test_last_seat_goes_once(self, service, store, event_id, make_add_on):
        store.add_add_on(event_id, make_add_on(max_capacity=1))
        request = PriceRequest(selected_add_ons=(AddOnSelection("workshop-1"),))

        service.commit_price(str(event_id), str(uuid.uuid4()), request)
        with pytest.raises(CapacityExceededError):
            service.commit_price(str(event_id), str(uuid.uuid4()), request)


class TestListAvailableAddOns:
    """Tests for PricingService.list_available_add_ons."""

    def test_annotates_availability(self, service, store, event_id, make_add_on):
        store.add_add_on(event_id, make_add_on("open", max_capacity=None))
        store.add_add_on(event_id, make_add_on("full", max_capacity=2, registered_count=2))
        store.add_add_on(
            event_id,
            make_add_on("members", conditions=(Condition("member", Operator.EQUALS, True),)),
        )
        store.add_add_on(event_id, make_add_on("retired", active=False))

        listing = {item.add_on.id: item for item in service.list_available_add_ons(str(event_id), {})}

        assert set(listing) == {"open", "full", "members"}
        assert listing["open"].spots_remaining is None
        assert listing["open"].available is True
        assert listing["full"].spots_remaining == 0
        assert listing["full"].available is False
        assert listing["members"].available is False

    def test_conditions_use_form_answers(self, service, store, event_id, make_add_on):
        store.add_add_on(
            event_id,
            make_add_on("members", conditions=(Condition("member", Operator.EQUALS, True),)),
        )
        [item] = service.list_available_add_ons(str(event_id), {"member": True})
        assert item.available is True

    def test_window_closed(self, service, store, event_id, make_add_on):
        now = timezone.now()
        store.add_add_on(event_id, make_add_on(available_to=now - timedelta(minutes=1)))
        [item] = service.list_available_add_ons(str(event_id), {}, at=now)
        assert item.available is False


class TestEventPricing:
    """Tests for reading and extending the pricing config."""

    def test_get_event_pricing(self, service, event_id):
        pricing = service.get_event_pricing(str(event_id))
        assert pricing.base_price == 300
        assert len(pricing.rules) == 1

    def test_get_event_pricing_missing(self, service):
        with pytest.raises(PricingNotFoundError):
            service.get_event_pricing(str(uuid.uuid4()))

    def test_get_event_client_id(self, service, event_id, client_id):
        assert service.get_event_client_id(str(event_id)) == client_id
        assert service.get_event_client_id(str(uuid.uuid4())) is None

    def test_add_pricing_rule(self, service, event_id):
        stored = service.add_pricing_rule(
            str(event_id), PricingRule(id="", name="Speaker", price=0, priority=50)
        )
        assert stored.id
        pricing = service.get_event_pricing(str(event_id))
        assert pricing.rules[-1] == stored

    def test_add_pricing_rule_without_pricing(self, service):
        with pytest.raises(PricingNotFoundError):
            service.add_pricing_rule(str(uuid.uuid4()), PricingRule(id="", name="x", price=0))


class TestReleaseRegistration:
    """Tests for PricingService.release_registration."""

    @pytest.fixture
    def committed(self, service, store, event_id, make_add_on, make_sponsorship):
        """Two registrations sharing one 500 sponsorship: 350 then 150."""
        store.add_add_on(event_id, make_add_on(max_capacity=5))
        store.add_sponsorship(event_id, make_sponsorship(total_amount=500))
        first, second = str(uuid.uuid4()), str(uuid.uuid4())
        service.commit_price(
            str(event_id),
            first,
            PriceRequest(
                selected_add_ons=(AddOnSelection("workshop-1", 1),),
                sponsorship_codes=("SPONSOR123",),
            ),
        )
        service.commit_price(str(event_id), second, PriceRequest(sponsorship_codes=("SPONSOR123",)))
        return first, second

    def test_each_registration_keeps_its_usage(self, store, event_id, committed):
        """Given two registrations drawing one code, records each draw separately."""
        first, second = committed
        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 500
        assert store.list_sponsorship_usages(event_id, first) == [SponsorshipUsage(record.id, first, 350)]
        assert store.list_sponsorship_usages(event_id, second) == [SponsorshipUsage(record.id, second, 150)]

    def test_release_returns_seats_and_credit(self, service, store, event_id, committed):
        first, second = committed

        release = service.release_registration(
            str(event_id), first, add_ons=(AddOnSelection("workshop-1", 1),)
        )

        assert release.sponsorship_amount == 350
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 0
        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 150
        assert record.status is SponsorshipStatus.ACTIVE
        assert store.list_sponsorship_usages(event_id, first) == []
        assert len(store.list_sponsorship_usages(event_id, second)) == 1

    def test_released_credit_is_redeemable_again(self, service, store, event_id, committed):
        first, second = committed
        service.release_registration(str(event_id), first)
        service.release_registration(str(event_id), second)

        record = sponsorship(store, event_id, "SPONSOR123")
        assert record.consumed_amount == 0
        assert record.status is SponsorshipStatus.PENDING
        preview = service.calculate_price(str(event_id), PriceRequest(sponsorship_codes=("SPONSOR123",)))
        assert preview.sponsorship_total == 300

    def test_release_twice_releases_nothing(self, service, event_id, committed):
        first, _ = committed
        service.release_registration(str(event_id), first)
        assert service.release_registration(str(event_id), first).sponsorship_amount == 0

    def test_cancelled_sponsorship_stays_cancelled(self, service, store, event_id, committed):
        first, _ = committed
        [record] = store._sponsorships[str(event_id)]
        store._sponsorships[str(event_id)] = [
            dataclasses.replace(record, status=SponsorshipStatus.CANCELLED)
        ]
        service.release_registration(str(event_id), first)
        assert sponsorship(store, event_id, "SPONSOR123").status is SponsorshipStatus.CANCELLED

    def test_release_more_seats_than_taken_rolls_back(self, service, store, event_id, committed):
        """Given an over-release, keeps the sponsorship usage and seats as they were."""
        first, _ = committed
        with pytest.raises(ReleaseExceedsReservedError):
            service.release_registration(
                str(event_id), first, add_ons=(AddOnSelection("workshop-1", 2),)
            )
        assert add_on(store, event_id, "workshop-1").capacity.registered_count == 1
        assert sponsorship(store, event_id, "SPONSOR123").consumed_amount == 500

    def test_release_unknown_add_on(self, service, event_id, committed):
        first, _ = committed
        with pytest.raises(AddOnNotFoundError):
            service.release_registration(str(event_id), first, add_ons=(AddOnSelection("missing"),))

    def test_release_non_positive_quantity(self, service, event_id, committed):
        first, _ = committed
        with pytest.raises(InvalidQuantityError):
            service.release_registration(str(event_id), first, add_ons=(AddOnSelection("workshop-1", 0),))

    def test_release_invalid_event_id(self, service):
        with pytest.raises(InvalidEventIdError):
            service.release_registration("nope", str(uuid.uuid4()))
