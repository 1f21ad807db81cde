from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import date
from pulsecare.schemas.enums import BloodGroup, BookingState, RequestStatus


class Booking(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    state: BookingState = BookingState.BOOKED


class Donor(BaseModel):
    """Read-only donor snapshot as supplied by the donor registry."""
    model_config = ConfigDict(frozen=True)

    id: str
    blood_group: BloodGroup
    date_of_birth: Optional[date] = None
    weight: Optional[float] = None  # kg
    upazila: Optional[str] = None
    district: Optional[str] = None  # only used to disambiguate or place an unknown upazila
    last_donation_date: Optional[date] = None
    manual_availability: bool = True
    account_active: bool = True
    active_booking: Optional[Booking] = None
    registered_at: Optional[date] = None


class DonationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    blood_group: BloodGroup
    created_at: date
    status: RequestStatus = RequestStatus.PENDING
    upazila: Optional[str] = None
    district: Optional[str] = None
    completed_at: Optional[date] = None
    donor_id: Optional[str] = None
    is_emergency: bool = False
