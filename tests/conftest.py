"""Pytest configuration and fixtures."""
import os
from datetime import date
from itertools import count

# Keep test runs on the console handler only
os.environ.setdefault("DEBUG", "true")

import pytest

from pulsecare.schemas.donor import Booking, DonationRequest, Donor
from pulsecare.schemas.enums import BloodGroup, BookingState, RequestStatus
from pulsecare.services.geographic_index import get_geographic_index


AS_OF = date(2024, 1, 1)


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture(scope="session")
def geo_index():
    return get_geographic_index()


@pytest.fixture
def make_donor():
    """Build an eligible adult donor; keyword arguments override any field."""
    ids = count(1)

    def _make(**overrides):
        booking_state = overrides.pop("booking", None)
        fields = {
            "id": f"D{next(ids):04d}",
            "blood_group": BloodGroup.O_POSITIVE,
            "date_of_birth": date(1990, 1, 1),
            "weight": 70,
            "upazila": "Savar",
        }
        fields.update(overrides)
        if booking_state is not None:
            fields["active_booking"] = Booking(id=f"B-{fields['id']}", state=BookingState(booking_state))
        return Donor(**fields)

    return _make


@pytest.fixture
def make_request():
    ids = count(1)

    def _make(**overrides):
        fields = {
            "id": f"R{next(ids):04d}",
            "blood_group": BloodGroup.O_POSITIVE,
            "created_at": date(2023, 12, 1),
            "status": RequestStatus.PENDING,
            "upazila": "Savar",
        }
        fields.update(overrides)
        return DonationRequest(**fields)

    return _make
