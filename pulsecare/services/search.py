"""
Donor search over a snapshot: blood group compatibility, location filters,
availability, and donors about to become eligible again.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional
from pulsecare.schemas.donor import Donor
from pulsecare.schemas.engine import DonorMatch, UpcomingReactivation
from pulsecare.schemas.enums import AvailabilityStatus, BloodGroup, EligibilityReason
from pulsecare.services.availability import status_of
from pulsecare.services.eligibility import DEFAULT_RULES, EligibilityRules, evaluate
from pulsecare.services.geographic_index import GeographicIndex, get_geographic_index

logger = logging.getLogger(__name__)

# Red cell compatibility: recipient group -> donor groups it can receive
COMPATIBLE_DONORS: Dict[BloodGroup, List[BloodGroup]] = {
    BloodGroup.O_NEGATIVE: [BloodGroup.O_NEGATIVE],
    BloodGroup.O_POSITIVE: [BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE],
    BloodGroup.A_NEGATIVE: [BloodGroup.O_NEGATIVE, BloodGroup.A_NEGATIVE],
    BloodGroup.A_POSITIVE: [BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE, BloodGroup.A_NEGATIVE, BloodGroup.A_POSITIVE],
    BloodGroup.B_NEGATIVE: [BloodGroup.O_NEGATIVE, BloodGroup.B_NEGATIVE],
    BloodGroup.B_POSITIVE: [BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE, BloodGroup.B_NEGATIVE, BloodGroup.B_POSITIVE],
    BloodGroup.AB_NEGATIVE: [BloodGroup.O_NEGATIVE, BloodGroup.A_NEGATIVE, BloodGroup.B_NEGATIVE, BloodGroup.AB_NEGATIVE],
    BloodGroup.AB_POSITIVE: list(BloodGroup),
}


def compatible_donor_groups(requested: BloodGroup) -> List[BloodGroup]:
    return list(COMPATIBLE_DONORS[BloodGroup(requested)])


def is_compatible(requested: BloodGroup, donor_group: BloodGroup) -> bool:
    return BloodGroup(donor_group) in COMPATIBLE_DONORS[BloodGroup(requested)]


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return (a or "").casefold() == (b or "").casefold()


def search_donors(
    donors: Iterable[Donor],
    as_of: date,
    blood_group: Optional[BloodGroup] = None,
    division: Optional[str] = None,
    district: Optional[str] = None,
    upazila: Optional[str] = None,
    compatible: bool = False,
    status: Optional[AvailabilityStatus] = None,
    index: Optional[GeographicIndex] = None,
    rules: EligibilityRules = DEFAULT_RULES
) -> List[DonorMatch]:
    """
    Filter a donor snapshot by blood group, location and availability.

    Args:
        donors: Donor snapshot
        as_of: Evaluation date
        blood_group: Requested group; exact match unless compatible is set
        division, district, upazila: Location filters (district aliases accepted)
        compatible: Match every donor group that can give to blood_group
        status: Only return donors in this availability status
        index: Geographic index, shared instance by default
        rules: Eligibility thresholds

    Returns:
        DonorMatch list with available donors first, then by donor id
    """
    index = index or get_geographic_index()
    if blood_group is None:
        groups = None
    elif compatible:
        groups = set(compatible_donor_groups(blood_group))
    else:
        groups = {BloodGroup(blood_group)}
    wanted_district = index.canonical_district(district) or district

    matches: List[DonorMatch] = []
    for donor in donors:
        if groups is not None and donor.blood_group not in groups:
            continue
        chain = index.resolve(donor.upazila, donor.district)
        if division and not _same(chain.division, division):
            continue
        if district and not _same(chain.district, wanted_district):
            continue
        if upazila and not _same(chain.upazila, upazila):
            continue
        eligibility = evaluate(donor, as_of, rules)
        donor_status = status_of(donor, as_of, rules, eligibility)
        if status is not None and donor_status != status:
            continue
        matches.append(DonorMatch(
            donor=donor,
            status=donor_status,
            eligibility=eligibility,
            division=chain.division,
            district=chain.district,
            upazila=chain.upazila,
        ))

    matches.sort(key=lambda m: (m.status != AvailabilityStatus.ELIGIBLE, m.donor.id))
    logger.debug(f"Donor search matched {len(matches)} donors")
    return matches


def upcoming_reactivations(
    donors: Iterable[Donor],
    as_of: date,
    within_days: int = 30,
    rules: EligibilityRules = DEFAULT_RULES
) -> List[UpcomingReactivation]:
    """Active donors blocked only by the donation interval who become eligible within the window."""
    upcoming: List[UpcomingReactivation] = []
    for donor in donors:
        if not donor.account_active:
            continue
        eligibility = evaluate(donor, as_of, rules)
        if eligibility.reason != EligibilityReason.TOO_SOON_SINCE_LAST_DONATION:
            continue
        if eligibility.days_until_eligible > within_days:
            continue
        upcoming.append(UpcomingReactivation(
            donor_id=donor.id,
            blood_group=donor.blood_group,
            next_eligible_date=eligibility.next_eligible_date,
            days_until_eligible=eligibility.days_until_eligible,
        ))
    upcoming.sort(key=lambda r: (r.next_eligible_date, r.donor_id))
    return upcoming
