import pytest

from seat_reservation.domain.exceptions import LockOrderViolation
from seat_reservation.infrastructure.db.store import LockLedger


def test_claims_come_back_sorted_and_deduplicated():
    ledger = LockLedger()

    assert ledger.claim_seats([7, 3, 7, 5]) == [3, 5, 7]
    assert ledger.seat_ids == {3, 5, 7}


def test_bookings_then_seats_is_allowed():
    ledger = LockLedger()

    ledger.claim_bookings([2, 1])
    ledger.claim_seats([10, 4])

    assert ledger.booking_ids == {1, 2}
    assert ledger.seat_ids == {4, 10}


def test_booking_after_seat_is_rejected():
    ledger = LockLedger()
    ledger.claim_seats([1])

    with pytest.raises(LockOrderViolation):
        ledger.claim_bookings([1])


def test_descending_claim_is_rejected():
    ledger = LockLedger()
    ledger.claim_seats([5])

    with pytest.raises(LockOrderViolation):
        ledger.claim_seats([3])


def test_higher_ids_may_follow():
    ledger = LockLedger()
    ledger.claim_seats([2, 4])

    assert ledger.claim_seats([6, 9]) == [6, 9]


def test_reclaiming_held_rows_is_allowed():
    ledger = LockLedger()
    ledger.claim_bookings([3])
    ledger.claim_seats([4, 8])

    assert ledger.claim_seats([4, 8]) == [4, 8]
    assert ledger.claim_seats([8, 11]) == [8, 11]


def test_empty_claim_is_a_no_op():
    ledger = LockLedger()
    ledger.claim_seats([5])

    assert ledger.claim_seats([]) == []
    assert ledger.seat_ids == {5}
