from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from pulsecare.schemas.donor import DonationRequest, Donor
from pulsecare.schemas.engine import EligibilityResult, TrendPoint
from pulsecare.schemas.enums import AvailabilityStatus, BloodGroup, GeoLevel, TrendGranularity


class DonorSnapshot(BaseModel):
    as_of: date
    donors: List[Donor] = []


class SingleDonorQuery(BaseModel):
    as_of: date
    donor: Donor


class DistributionQuery(DonorSnapshot):
    level: Optional[GeoLevel] = GeoLevel.DIVISION
    include_empty: bool = False


class RequestDistributionQuery(BaseModel):
    requests: List[DonationRequest] = []
    level: Optional[GeoLevel] = GeoLevel.DIVISION
    include_empty: bool = False


class ShortageQuery(DonorSnapshot):
    threshold: Optional[int] = None
    level: Optional[GeoLevel] = None


class FunnelQuery(DonorSnapshot):
    requests: List[DonationRequest] = []


class TrendQuery(BaseModel):
    donors: List[Donor] = []
    requests: List[DonationRequest] = []
    granularity: TrendGranularity = TrendGranularity.MONTH
    start: Optional[date] = None
    end: Optional[date] = None


class ReactivationQuery(DonorSnapshot):
    within_days: Optional[int] = None


class SearchQuery(DonorSnapshot):
    blood_group: Optional[BloodGroup] = None
    division: Optional[str] = None
    district: Optional[str] = None
    upazila: Optional[str] = None
    compatible: bool = False
    status: Optional[AvailabilityStatus] = None


class EligibilityResponse(BaseModel):
    donor_id: str
    eligibility: EligibilityResult
    status: AvailabilityStatus


class TrendResponse(BaseModel):
    registrations: List[TrendPoint] = []
    donations: List[TrendPoint] = []
