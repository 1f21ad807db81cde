"""
Availability state machine.

A donor's operational status is always derived from eligibility, the manual
availability flag, the account state and the active booking. It is never
stored, so it cannot drift from the fields it is computed from.
"""
import logging
from datetime import date
from typing import Dict, FrozenSet, Optional
from pulsecare.schemas.donor import Booking, Donor
from pulsecare.schemas.engine import EligibilityResult
from pulsecare.schemas.enums import AvailabilityStatus, BookingState
from pulsecare.services.eligibility import DEFAULT_RULES, EligibilityRules, evaluate

logger = logging.getLogger(__name__)

# Transitions driven by booking events. Unavailable and Inactive are
# reachable from every state through the manual flag or account deactivation.
BOOKING_TRANSITIONS: Dict[AvailabilityStatus, FrozenSet[AvailabilityStatus]] = {
    AvailabilityStatus.ELIGIBLE: frozenset({AvailabilityStatus.BOOKED}),
    AvailabilityStatus.BOOKED: frozenset({
        AvailabilityStatus.IN_PROGRESS,
        AvailabilityStatus.ELIGIBLE,
        AvailabilityStatus.UNAVAILABLE,
    }),
    AvailabilityStatus.IN_PROGRESS: frozenset({
        AvailabilityStatus.ELIGIBLE,
        AvailabilityStatus.UNAVAILABLE,
    }),
    AvailabilityStatus.UNAVAILABLE: frozenset({AvailabilityStatus.ELIGIBLE}),
    AvailabilityStatus.INACTIVE: frozenset(),
}


def is_valid_transition(current: AvailabilityStatus, target: AvailabilityStatus) -> bool:
    if current == target:
        return True
    if current == AvailabilityStatus.INACTIVE:
        # reactivation happens outside the engine
        return False
    if target in (AvailabilityStatus.UNAVAILABLE, AvailabilityStatus.INACTIVE):
        return True
    return target in BOOKING_TRANSITIONS[current]


def derive_status(
    eligibility: EligibilityResult,
    manual_availability: bool,
    booking: Optional[Booking],
    account_active: bool = True
) -> AvailabilityStatus:
    """Pure transition function; precedence is inactive > in progress > booked > manual flag > eligibility."""
    if not account_active:
        return AvailabilityStatus.INACTIVE
    if booking is not None and booking.state == BookingState.IN_PROGRESS:
        return AvailabilityStatus.IN_PROGRESS
    if booking is not None and booking.state == BookingState.BOOKED:
        return AvailabilityStatus.BOOKED
    if not manual_availability:
        return AvailabilityStatus.UNAVAILABLE
    if eligibility.is_eligible:
        return AvailabilityStatus.ELIGIBLE
    return AvailabilityStatus.UNAVAILABLE


def status_of(
    donor: Donor,
    as_of: date,
    rules: EligibilityRules = DEFAULT_RULES,
    eligibility: Optional[EligibilityResult] = None
) -> AvailabilityStatus:
    if eligibility is None:
        eligibility = evaluate(donor, as_of, rules)
    return derive_status(eligibility, donor.manual_availability, donor.active_booking, donor.account_active)


def complete_donation(donor: Donor, completion_date: date) -> Donor:
    """
    Record a completed donation: the returned copy carries the new last
    donation date and no booking. The caller stores it and re-queries.
    """
    logger.debug(f"Donation completed for donor {donor.id} on {completion_date}")
    return donor.model_copy(update={"last_donation_date": completion_date, "active_booking": None})


def cancel_booking(donor: Donor) -> Donor:
    return donor.model_copy(update={"active_booking": None})


def start_donation(donor: Donor) -> Donor:
    """Move a booked donor into the in-progress state."""
    if donor.active_booking is None:
        return donor
    booking = donor.active_booking.model_copy(update={"state": BookingState.IN_PROGRESS})
    return donor.model_copy(update={"active_booking": booking})
