from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date
from pulsecare.schemas.enums import (
    AvailabilityStatus, BloodGroup, EligibilityReason, FunnelStageName, GeoLevel
)
from pulsecare.schemas.donor import Donor


class EligibilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_eligible: bool
    reason: EligibilityReason
    next_eligible_date: Optional[date] = None
    days_until_eligible: Optional[int] = None
    age: Optional[int] = None


class GeoUnit(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: GeoLevel
    name: str
    parent: Optional[str] = None  # division for a district, district for an upazila


class AggregateCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: GeoUnit
    blood_group: BloodGroup
    eligible_count: int = 0
    total_count: int = 0
    incomplete_count: int = 0
    available_count: int = 0


class RequestCell(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: GeoUnit
    blood_group: BloodGroup
    total_count: int = 0
    open_count: int = 0


class ShortageFlag(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: GeoUnit
    blood_group: BloodGroup
    count: int
    threshold: int


class CriticalBloodGroup(BaseModel):
    blood_group: BloodGroup
    threshold: int
    eligible_count: int
    critical_units: List[ShortageFlag] = []


class FunnelStage(BaseModel):
    stage: FunnelStageName
    count: int
    raw_count: int
    conversion_rate: float


class DistributionEntry(BaseModel):
    key: str
    count: int
    percentage: float


class TrendPoint(BaseModel):
    period_start: date
    count: int  # points in the bucket
    value: float = 0.0  # sum of point values; equals count for bare dates


class AvailabilitySummary(BaseModel):
    total_donors: int = 0
    eligible_donors: int = 0
    booked_donors: int = 0
    in_progress_donors: int = 0
    unavailable_donors: int = 0
    inactive_donors: int = 0


class UpcomingReactivation(BaseModel):
    donor_id: str
    blood_group: BloodGroup
    next_eligible_date: date
    days_until_eligible: int


class DonorMatch(BaseModel):
    donor: Donor
    status: AvailabilityStatus
    eligibility: EligibilityResult
    division: str
    district: str
    upazila: str
