"""
Geographic aggregation of donors and requests by blood group.

One pass over the snapshot produces division, district and upazila cells.
Donors that cannot be placed go to the "Unmapped" units so that the sum of
division totals always equals the number of donors.
"""
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple
from pulsecare.schemas.donor import DonationRequest, Donor
from pulsecare.schemas.engine import AggregateCell, GeoUnit, RequestCell
from pulsecare.schemas.enums import (
    AvailabilityStatus, BLOOD_GROUPS, BloodGroup, EligibilityReason, GeoLevel, OPEN_REQUEST_STATUSES
)
from pulsecare.services.availability import status_of
from pulsecare.services.eligibility import DEFAULT_RULES, EligibilityRules, evaluate
from pulsecare.services.geographic_index import GeoChain, GeographicIndex, UNMAPPED, get_geographic_index

logger = logging.getLogger(__name__)

# (level, parent, name, blood group)
CellKey = Tuple[GeoLevel, Optional[str], str, BloodGroup]

LEVEL_ORDER = {GeoLevel.DIVISION: 0, GeoLevel.DISTRICT: 1, GeoLevel.UPAZILA: 2}


def chain_keys(chain: GeoChain, blood_group: BloodGroup) -> List[CellKey]:
    return [
        (GeoLevel.DIVISION, None, chain.division, blood_group),
        (GeoLevel.DISTRICT, chain.division, chain.district, blood_group),
        (GeoLevel.UPAZILA, chain.district, chain.upazila, blood_group),
    ]


def _sort_key(key: CellKey):
    level, parent, name, blood_group = key
    return (LEVEL_ORDER[level], parent or "", name, BLOOD_GROUPS.index(blood_group))


def filter_level(cells: Iterable, level: Optional[GeoLevel]) -> List:
    if level is None:
        return list(cells)
    return [cell for cell in cells if cell.unit.level == level]


class GeographicAggregator:
    """Rolls donor and request snapshots up the upazila > district > division hierarchy."""

    def __init__(self, index: Optional[GeographicIndex] = None, rules: EligibilityRules = DEFAULT_RULES):
        self.index = index or get_geographic_index()
        self.rules = rules

    def _empty_keys(self) -> List[CellKey]:
        """Every unit of the table at all three levels, once per blood group."""
        keys: List[CellKey] = []
        for division in self.index.divisions():
            for blood_group in BLOOD_GROUPS:
                keys.append((GeoLevel.DIVISION, None, division, blood_group))
            for district in self.index.districts(division):
                for blood_group in BLOOD_GROUPS:
                    keys.append((GeoLevel.DISTRICT, division, district, blood_group))
                for upazila in self.index.upazilas(district):
                    for blood_group in BLOOD_GROUPS:
                        keys.append((GeoLevel.UPAZILA, district, upazila, blood_group))
        return keys

    def aggregate(
        self,
        donors: Iterable[Donor],
        as_of: date,
        include_empty: bool = False
    ) -> List[AggregateCell]:
        """
        Aggregate donors into one cell per (unit, blood group) at every level.

        Args:
            donors: Donor snapshot; copied before use
            as_of: Evaluation date for eligibility
            include_empty: Also emit zero cells for every division, district and upazila

        Returns:
            List of AggregateCell; callers sort as they need
        """
        snapshot = list(donors)
        tallies: Dict[CellKey, Dict[str, int]] = {}
        if include_empty:
            for key in self._empty_keys():
                tallies[key] = {"eligible": 0, "total": 0, "incomplete": 0, "available": 0}

        unmapped = 0
        for donor in snapshot:
            eligibility = evaluate(donor, as_of, self.rules)
            status = status_of(donor, as_of, self.rules, eligibility)
            chain = self.index.resolve(donor.upazila, donor.district)
            if not chain.is_mapped:
                unmapped += 1
                logger.debug(f"Donor {donor.id} has unmapped geography (upazila={donor.upazila!r}, district={donor.district!r})")

            incomplete = eligibility.reason == EligibilityReason.INCOMPLETE_PROFILE
            for key in chain_keys(chain, donor.blood_group):
                tally = tallies.setdefault(key, {"eligible": 0, "total": 0, "incomplete": 0, "available": 0})
                tally["total"] += 1
                if incomplete:
                    tally["incomplete"] += 1
                elif eligibility.is_eligible:
                    tally["eligible"] += 1
                if status == AvailabilityStatus.ELIGIBLE:
                    tally["available"] += 1

        if unmapped:
            logger.warning(f"{unmapped} of {len(snapshot)} donors aggregated under '{UNMAPPED}'")

        cells = [
            AggregateCell(
                unit=GeoUnit(level=level, name=name, parent=parent),
                blood_group=blood_group,
                eligible_count=tally["eligible"],
                total_count=tally["total"],
                incomplete_count=tally["incomplete"],
                available_count=tally["available"],
            )
            for (level, parent, name, blood_group), tally in sorted(tallies.items(), key=lambda item: _sort_key(item[0]))
        ]
        logger.debug(f"Aggregated {len(snapshot)} donors into {len(cells)} cells")
        return cells

    def aggregate_requests(
        self,
        requests: Iterable[DonationRequest],
        include_empty: bool = False
    ) -> List[RequestCell]:
        """Count requests (all, and still open) per unit and blood group."""
        snapshot = list(requests)
        tallies: Dict[CellKey, Dict[str, int]] = {}
        if include_empty:
            for key in self._empty_keys():
                tallies[key] = {"total": 0, "open": 0}

        for request in snapshot:
            chain = self.index.resolve(request.upazila, request.district)
            for key in chain_keys(chain, request.blood_group):
                tally = tallies.setdefault(key, {"total": 0, "open": 0})
                tally["total"] += 1
                if request.status in OPEN_REQUEST_STATUSES:
                    tally["open"] += 1

        return [
            RequestCell(
                unit=GeoUnit(level=level, name=name, parent=parent),
                blood_group=blood_group,
                total_count=tally["total"],
                open_count=tally["open"],
            )
            for (level, parent, name, blood_group), tally in sorted(tallies.items(), key=lambda item: _sort_key(item[0]))
        ]
