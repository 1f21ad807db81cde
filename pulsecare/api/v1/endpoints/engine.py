from fastapi import APIRouter, Depends
from typing import List
import logging
from pulsecare.schemas.engine import (
    AggregateCell, AvailabilitySummary, CriticalBloodGroup, DistributionEntry, DonorMatch,
    FunnelStage, RequestCell, ShortageFlag, UpcomingReactivation
)
from pulsecare.schemas.snapshot import (
    DistributionQuery, DonorSnapshot, EligibilityResponse, FunnelQuery, ReactivationQuery,
    RequestDistributionQuery, SearchQuery, ShortageQuery, SingleDonorQuery, TrendQuery, TrendResponse
)
from pulsecare.services.engine import DonorEngine, get_engine

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/eligibility", response_model=EligibilityResponse)
async def donor_eligibility(query: SingleDonorQuery, engine: DonorEngine = Depends(get_engine)):
    """Eligibility and availability status of one donor."""
    eligibility = engine.get_eligibility(query.donor, query.as_of)
    return EligibilityResponse(
        donor_id=query.donor.id,
        eligibility=eligibility,
        status=engine.get_availability_status(query.donor, query.as_of),
    )

@router.post("/eligibility/batch", response_model=List[EligibilityResponse])
async def batch_eligibility(snapshot: DonorSnapshot, engine: DonorEngine = Depends(get_engine)):
    """Eligibility and availability status for every donor in the snapshot."""
    return [
        EligibilityResponse(
            donor_id=donor.id,
            eligibility=engine.get_eligibility(donor, snapshot.as_of),
            status=engine.get_availability_status(donor, snapshot.as_of),
        )
        for donor in snapshot.donors
    ]

@router.post("/distribution", response_model=List[AggregateCell])
async def geographic_distribution(query: DistributionQuery, engine: DonorEngine = Depends(get_engine)):
    """Donor counts per unit and blood group at the requested level."""
    cells = engine.get_geographic_distribution(
        query.donors, query.as_of, query.level, include_empty=query.include_empty
    )
    logger.info(f"Distribution for {len(query.donors)} donors at level {query.level}: {len(cells)} cells")
    return cells

@router.post("/requests/distribution", response_model=List[RequestCell])
async def request_distribution(query: RequestDistributionQuery, engine: DonorEngine = Depends(get_engine)):
    return engine.get_request_distribution(query.requests, query.level, include_empty=query.include_empty)

@router.post("/shortages", response_model=List[ShortageFlag])
async def critical_shortages(query: ShortageQuery, engine: DonorEngine = Depends(get_engine)):
    """Cells whose eligible donor count is below the threshold."""
    flags = engine.get_critical_shortages(query.donors, query.as_of, query.threshold, level=query.level)
    logger.info(f"Shortage check for {len(query.donors)} donors: {len(flags)} flags")
    return flags

@router.post("/critical-blood-groups", response_model=List[CriticalBloodGroup])
async def critical_groups(query: ShortageQuery, engine: DonorEngine = Depends(get_engine)):
    return engine.get_critical_blood_groups(query.donors, query.as_of, query.threshold)

@router.post("/funnel", response_model=List[FunnelStage])
async def funnel_metrics(query: FunnelQuery, engine: DonorEngine = Depends(get_engine)):
    return engine.get_funnel_metrics(query.donors, query.requests, query.as_of)

@router.post("/blood-groups", response_model=List[DistributionEntry])
async def blood_group_distribution(snapshot: DonorSnapshot, engine: DonorEngine = Depends(get_engine)):
    return engine.get_blood_group_distribution(snapshot.donors)

@router.post("/ages", response_model=List[DistributionEntry])
async def age_distribution(snapshot: DonorSnapshot, engine: DonorEngine = Depends(get_engine)):
    return engine.get_age_distribution(snapshot.donors, snapshot.as_of)

@router.post("/trends", response_model=TrendResponse)
async def trends(query: TrendQuery, engine: DonorEngine = Depends(get_engine)):
    """Registrations and completed donations bucketed by day, week or month."""
    return TrendResponse(
        registrations=engine.get_registration_trend(query.donors, query.granularity, query.start, query.end),
        donations=engine.get_donation_trend(query.requests, query.granularity, query.start, query.end),
    )

@router.post("/summary", response_model=AvailabilitySummary)
async def availability_summary(snapshot: DonorSnapshot, engine: DonorEngine = Depends(get_engine)):
    return engine.get_availability_summary(snapshot.donors, snapshot.as_of)

@router.post("/reactivations", response_model=List[UpcomingReactivation])
async def upcoming_reactivations(query: ReactivationQuery, engine: DonorEngine = Depends(get_engine)):
    return engine.get_upcoming_reactivations(query.donors, query.as_of, query.within_days)

@router.post("/search", response_model=List[DonorMatch])
async def search_donors(query: SearchQuery, engine: DonorEngine = Depends(get_engine)):
    """Filter the snapshot by blood group, location and availability status."""
    return engine.search_donors(
        query.donors,
        query.as_of,
        blood_group=query.blood_group,
        division=query.division,
        district=query.district,
        upazila=query.upazila,
        compatible=query.compatible,
        status=query.status,
    )
