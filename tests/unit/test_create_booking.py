import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from reservation_engine.api.schemas.bookings import CreateBookingRequest
from reservation_engine.domain.entities.reservation import ReservationStatus
from reservation_engine.domain.errors import (
    IdempotencyConflictError,
    InvalidPaymentMethodError,
    InvalidWindowError,
    PaymentCaptureFailedError,
    PaymentPendingError,
    ResourceNotFoundError,
    ResourceOccupiedError,
)
from tests.helpers import NOW, booking_payload


def _request(**kwargs) -> CreateBookingRequest:
    return CreateBookingRequest(**booking_payload(**kwargs))


@pytest.mark.asyncio
class TestCreateBooking:
    async def test_books_free_resource(self, use_cases, bundle):
        response = await use_cases["create_booking"].execute(_request(), idem_key="req-1")

        reservation = response.reservation
        assert reservation.status == "pending"
        assert reservation.window_end - reservation.window_start == timedelta(hours=2)
        assert reservation.expires_at == NOW + timedelta(minutes=30)
        assert response.payment.amount == Decimal("15.00")
        assert response.payment.status == "initiated"
        assert response.payment.gateway_reference.startswith("pi_")
        assert response.payment.card_last4 == "4242"

        call = bundle["payment_gateway"].calls[0]
        assert call["idempotency_key"] == "req-1"
        assert call["metadata"]["owner_id"] == "owner-1"
        assert call["metadata"]["resource_id"] == "spot-1"

    async def test_window_checked_before_payment_method(self, use_cases):
        request = _request(start=NOW - timedelta(minutes=5), payment_details={"method": "crypto"})
        with pytest.raises(InvalidWindowError):
            await use_cases["create_booking"].execute(request, idem_key="req-1")

    async def test_window_starting_now_is_rejected(self, use_cases):
        with pytest.raises(InvalidWindowError):
            await use_cases["create_booking"].execute(_request(start=NOW), idem_key="req-1")

    async def test_payment_checked_before_availability(self, use_cases):
        await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        request = _request(requester_id="driver-2", payment_details={"method": "card"})
        with pytest.raises(InvalidPaymentMethodError):
            await use_cases["create_booking"].execute(request, idem_key="req-2")

    async def test_unknown_resource(self, use_cases):
        with pytest.raises(ResourceNotFoundError):
            await use_cases["create_booking"].execute(_request(resource_id="nope"), idem_key="req-1")

    async def test_overlapping_window_rejected(self, use_cases, bundle):
        await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        later = NOW + timedelta(hours=2)
        with pytest.raises(ResourceOccupiedError):
            await use_cases["create_booking"].execute(
                _request(requester_id="driver-2", start=later), idem_key="req-2"
            )
        assert len(bundle["reservation_repo"].reservations) == 1

    async def test_back_to_back_windows_allowed(self, use_cases):
        await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        response = await use_cases["create_booking"].execute(
            _request(requester_id="driver-2", start=NOW + timedelta(hours=3)), idem_key="req-2"
        )
        assert response.reservation.status == "pending"

    async def test_cancelled_reservation_frees_window(self, use_cases):
        first = await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        await use_cases["cancel_booking"].execute(first.reservation.id, "driver-1")
        response = await use_cases["create_booking"].execute(
            _request(requester_id="driver-2"), idem_key="req-2"
        )
        assert response.reservation.id != first.reservation.id

    async def test_expired_hold_is_released_for_new_booking(self, use_cases, bundle):
        first = await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        bundle["clock"].advance(minutes=31)

        second = await use_cases["create_booking"].execute(
            _request(requester_id="driver-2"), idem_key="req-2"
        )

        assert second.reservation.status == "pending"
        released = bundle["reservation_repo"].reservations[first.reservation.id]
        assert released.status == ReservationStatus.CANCELLED
        assert released.cancellation_reason == "payment_expired"

    async def test_hold_inside_deadline_still_blocks(self, use_cases, bundle):
        await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        bundle["clock"].advance(minutes=29)

        with pytest.raises(ResourceOccupiedError):
            await use_cases["create_booking"].execute(
                _request(requester_id="driver-2"), idem_key="req-2"
            )

    async def test_concurrent_requests_for_same_window(self, use_cases, bundle):
        create = use_cases["create_booking"]
        results = await asyncio.gather(
            *[
                create.execute(_request(requester_id=f"driver-{i}"), idem_key=f"req-{i}")
                for i in range(5)
            ],
            return_exceptions=True,
        )
        successes = [r for r in results if not isinstance(r, Exception)]
        conflicts = [r for r in results if isinstance(r, ResourceOccupiedError)]
        assert len(successes) == 1
        assert len(conflicts) == 4
        assert len(bundle["reservation_repo"].reservations) == 1

    async def test_cash_is_confirmed_without_gateway(self, use_cases, bundle):
        response = await use_cases["create_booking"].execute(
            _request(payment_details={"method": "cash"}), idem_key="req-1"
        )
        assert response.reservation.status == "confirmed"
        assert response.reservation.expires_at is None
        assert response.payment.method == "cash"
        assert bundle["payment_gateway"].calls == []

    async def test_unpriced_resource_charges_minimum(self, use_cases):
        response = await use_cases["create_booking"].execute(
            _request(resource_id="spot-free"), idem_key="req-1"
        )
        assert response.payment.amount == Decimal("2.00")


@pytest.mark.asyncio
class TestCreateBookingIdempotency:
    async def test_same_key_same_payload_replays(self, use_cases, bundle):
        request = _request()
        first = await use_cases["create_booking"].execute(request, idem_key="req-1")
        second = await use_cases["create_booking"].execute(request, idem_key="req-1")

        assert second.reservation.id == first.reservation.id
        assert second.payment.gateway_reference == first.payment.gateway_reference
        assert len(bundle["reservation_repo"].reservations) == 1
        assert len(bundle["payment_gateway"].calls) == 1

    async def test_same_key_different_payload_conflicts(self, use_cases):
        await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        with pytest.raises(IdempotencyConflictError):
            await use_cases["create_booking"].execute(
                _request(start=NOW + timedelta(hours=5)), idem_key="req-1"
            )


@pytest.mark.asyncio
class TestCapture:
    async def test_timeout_leaves_reservation_pending(self, use_cases, bundle):
        bundle["payment_gateway"].delay_seconds = 2
        with pytest.raises(PaymentPendingError) as exc_info:
            await use_cases["create_booking"].execute(_request(), idem_key="req-1")

        reservation_id = exc_info.value.details["reservation_id"]
        reservation = await bundle["reservation_repo"].get(reservation_id)
        assert reservation.status == ReservationStatus.PENDING

    async def test_retry_after_timeout_completes_capture(self, use_cases, bundle):
        gateway = bundle["payment_gateway"]
        gateway.delay_seconds = 2
        with pytest.raises(PaymentPendingError):
            await use_cases["create_booking"].execute(_request(), idem_key="req-1")

        gateway.delay_seconds = 0
        response = await use_cases["create_booking"].execute(_request(), idem_key="req-1")
        assert response.payment.gateway_reference is not None
        assert len(bundle["reservation_repo"].reservations) == 1
        assert {c["idempotency_key"] for c in gateway.calls} == {"req-1"}

    async def test_gateway_failure(self, use_cases, bundle):
        bundle["payment_gateway"].fail_with = RuntimeError("card_declined")
        with pytest.raises(PaymentCaptureFailedError):
            await use_cases["create_booking"].execute(_request(), idem_key="req-1")

        # The hold stays until the expiry sweep releases it
        [reservation] = bundle["reservation_repo"].reservations.values()
        assert reservation.status == ReservationStatus.PENDING
