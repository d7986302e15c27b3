from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from reservation_engine.domain.entities.payout import Payout, PayoutStatus
from reservation_engine.domain.entities.reservation import Reservation, ReservationStatus
from reservation_engine.domain.entities.resource import Resource
from reservation_engine.domain.errors import InvalidPayoutTransitionError, InvalidReservationStatusError
from reservation_engine.domain.value_objects import Money, split_platform_fee

T0 = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)


def _reservation(**kwargs) -> Reservation:
    defaults = dict(id="RSV-1", resource_id="spot-1", requester_id="driver-1", window_start=T0)
    defaults.update(kwargs)
    return Reservation(**defaults)


class TestReservation:
    def test_default_window_is_two_hours(self):
        assert _reservation().window_end == T0 + timedelta(hours=2)

    def test_confirm_only_from_pending(self):
        reservation = _reservation(expires_at=T0)
        reservation.confirm()
        assert reservation.status == ReservationStatus.CONFIRMED
        assert reservation.expires_at is None
        with pytest.raises(InvalidReservationStatusError):
            reservation.confirm()

    def test_cancel_is_terminal(self):
        reservation = _reservation(status=ReservationStatus.CONFIRMED)
        reservation.cancel(T0, "requester_cancelled")
        assert not reservation.is_blocking
        with pytest.raises(InvalidReservationStatusError):
            reservation.cancel(T0, "requester_cancelled")

    def test_is_expired(self):
        reservation = _reservation(expires_at=T0)
        assert not reservation.is_expired(T0 - timedelta(seconds=1))
        assert reservation.is_expired(T0)
        reservation.confirm()
        assert not reservation.is_expired(T0 + timedelta(days=1))

    def test_holds_slot_until_payment_deadline(self):
        reservation = _reservation(expires_at=T0)
        assert reservation.holds_slot(T0 - timedelta(seconds=1))
        assert not reservation.holds_slot(T0)
        assert not _reservation(status=ReservationStatus.CANCELLED).holds_slot(T0)


class TestResourceCharge:
    def test_price_used_when_set(self):
        assert Resource(id="r", price=Decimal("15.00")).charge_amount() == Decimal("15.00")

    @pytest.mark.parametrize("price", [None, Decimal("0")])
    def test_minimum_charge_fallback(self, price):
        assert Resource(id="r", price=price).charge_amount() == Decimal("2.00")


class TestPayout:
    def _pending(self) -> Payout:
        split = split_platform_fee(Money(amount=Decimal("15.00"), currency_code="usd"), Decimal("0.10"))
        return Payout.create_pending("owner-1", "spot-1", "pi_1", split, T0)

    def test_create_pending_splits_amounts(self):
        payout = self._pending()
        assert payout.status == PayoutStatus.PENDING
        assert payout.platform_fee == Decimal("1.50")
        assert payout.owner_amount == Decimal("13.50")

    def test_complete_sets_completed_at(self):
        payout = self._pending()
        payout.complete("tr_1", T0)
        assert payout.completed_at == T0
        assert payout.is_final

    def test_failed_manual_has_no_completed_at(self):
        payout = self._pending()
        payout.fail_manual("no destination")
        assert payout.status == PayoutStatus.FAILED_MANUAL
        assert payout.completed_at is None

    def test_final_states_do_not_transition(self):
        payout = self._pending()
        payout.fail_manual("no destination")
        with pytest.raises(InvalidPayoutTransitionError):
            payout.complete("tr_1", T0)

    def test_amounts_must_add_up(self):
        with pytest.raises(ValueError):
            Payout(
                id=None,
                owner_id="owner-1",
                resource_id=None,
                payment_ref="pi_1",
                total_amount=Decimal("10.00"),
                platform_fee=Decimal("1.00"),
                owner_amount=Decimal("8.00"),
                currency="usd",
            )
