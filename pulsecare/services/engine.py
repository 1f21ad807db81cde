"""
Query surface of the donor engine.

DonorEngine bundles the static geography index with eligibility and shortage
configuration. Every method takes an explicit snapshot and as_of date and
returns a fresh result; the engine keeps no mutable state between calls, so
one instance can serve concurrent callers.
"""
import logging
from datetime import date
from functools import lru_cache
from typing import Iterable, List, Optional, Union
from pulsecare.schemas.donor import DonationRequest, Donor
from pulsecare.schemas.engine import (
    AggregateCell, AvailabilitySummary, CriticalBloodGroup, DistributionEntry, DonorMatch,
    EligibilityResult, FunnelStage, RequestCell, ShortageFlag, TrendPoint, UpcomingReactivation
)
from pulsecare.schemas.enums import AvailabilityStatus, BloodGroup, GeoLevel, TrendGranularity
from pulsecare.services import metrics, search
from pulsecare.services.aggregation import GeographicAggregator, filter_level
from pulsecare.services.availability import status_of
from pulsecare.services.eligibility import DEFAULT_RULES, EligibilityRules, evaluate
from pulsecare.services.geographic_index import GeographicIndex, get_geographic_index
from pulsecare.services.shortage import ShortageConfig, critical_blood_groups, detect_shortages

logger = logging.getLogger(__name__)


class DonorEngine:
    """Stateless donor eligibility, availability and aggregation engine."""

    def __init__(
        self,
        index: Optional[GeographicIndex] = None,
        rules: EligibilityRules = DEFAULT_RULES,
        shortage_config: Optional[ShortageConfig] = None,
        distribution_precision: int = 1,
        reactivation_window_days: int = 30
    ):
        self.index = index or get_geographic_index()
        self.rules = rules
        self.shortage_config = shortage_config or ShortageConfig()
        self.distribution_precision = distribution_precision
        self.reactivation_window_days = reactivation_window_days
        self.aggregator = GeographicAggregator(self.index, rules)

    @classmethod
    def from_settings(cls) -> "DonorEngine":
        from pulsecare.core.config import settings
        return cls(
            index=get_geographic_index(settings.GEOGRAPHY_TABLE_PATH or None),
            rules=EligibilityRules.from_settings(),
            shortage_config=ShortageConfig.from_settings(),
            distribution_precision=settings.DISTRIBUTION_PRECISION,
            reactivation_window_days=settings.REACTIVATION_WINDOW_DAYS,
        )

    def _shortage_config(self, threshold: Union[int, ShortageConfig, None]) -> ShortageConfig:
        if threshold is None:
            return self.shortage_config
        if isinstance(threshold, ShortageConfig):
            return threshold
        return ShortageConfig(default=threshold)

    def _zero_filled(self, donors: Iterable[Donor], as_of: date) -> List[AggregateCell]:
        # every unit of the table gets a cell, so a unit with no donors of a group is flagged
        return self.aggregator.aggregate(donors, as_of, include_empty=True)

    def get_eligibility(self, donor: Donor, as_of: date) -> EligibilityResult:
        return evaluate(donor, as_of, self.rules)

    def get_availability_status(self, donor: Donor, as_of: date) -> AvailabilityStatus:
        return status_of(donor, as_of, self.rules)

    def get_geographic_distribution(
        self,
        donors: Iterable[Donor],
        as_of: date,
        level: Optional[GeoLevel] = GeoLevel.DIVISION,
        include_empty: bool = False
    ) -> List[AggregateCell]:
        """Cells for one level, or for all three when level is None."""
        cells = self.aggregator.aggregate(donors, as_of, include_empty=include_empty)
        return filter_level(cells, level)

    def get_request_distribution(
        self,
        requests: Iterable[DonationRequest],
        level: Optional[GeoLevel] = GeoLevel.DIVISION,
        include_empty: bool = False
    ) -> List[RequestCell]:
        return filter_level(self.aggregator.aggregate_requests(requests, include_empty=include_empty), level)

    def get_critical_shortages(
        self,
        donors: Iterable[Donor],
        as_of: date,
        threshold: Union[int, ShortageConfig, None] = None,
        level: Optional[GeoLevel] = None
    ) -> List[ShortageFlag]:
        config = self._shortage_config(threshold)
        return detect_shortages(self._zero_filled(donors, as_of), config, level=level)

    def get_critical_blood_groups(
        self,
        donors: Iterable[Donor],
        as_of: date,
        threshold: Union[int, ShortageConfig, None] = None
    ) -> List[CriticalBloodGroup]:
        config = self._shortage_config(threshold)
        return critical_blood_groups(self._zero_filled(donors, as_of), config)

    def get_funnel_metrics(
        self,
        donors: Iterable[Donor],
        requests: Iterable[DonationRequest],
        as_of: date
    ) -> List[FunnelStage]:
        return metrics.compose_funnel(donors, requests, as_of, self.rules)

    def get_blood_group_distribution(self, donors: Iterable[Donor]) -> List[DistributionEntry]:
        return metrics.blood_group_distribution(donors, self.distribution_precision)

    def get_age_distribution(self, donors: Iterable[Donor], as_of: date) -> List[DistributionEntry]:
        return metrics.age_distribution(donors, as_of, self.distribution_precision)

    def get_registration_trend(
        self,
        donors: Iterable[Donor],
        granularity: TrendGranularity = TrendGranularity.MONTH,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[TrendPoint]:
        return metrics.registration_trend(donors, granularity, start, end)

    def get_donation_trend(
        self,
        requests: Iterable[DonationRequest],
        granularity: TrendGranularity = TrendGranularity.MONTH,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[TrendPoint]:
        return metrics.donation_trend(requests, granularity, start, end)

    def get_availability_summary(self, donors: Iterable[Donor], as_of: date) -> AvailabilitySummary:
        return metrics.availability_summary(donors, as_of, self.rules)

    def get_upcoming_reactivations(
        self,
        donors: Iterable[Donor],
        as_of: date,
        within_days: Optional[int] = None
    ) -> List[UpcomingReactivation]:
        window = self.reactivation_window_days if within_days is None else within_days
        return search.upcoming_reactivations(donors, as_of, window, self.rules)

    def search_donors(
        self,
        donors: Iterable[Donor],
        as_of: date,
        blood_group: Optional[BloodGroup] = None,
        division: Optional[str] = None,
        district: Optional[str] = None,
        upazila: Optional[str] = None,
        compatible: bool = False,
        status: Optional[AvailabilityStatus] = None
    ) -> List[DonorMatch]:
        return search.search_donors(
            donors, as_of,
            blood_group=blood_group,
            division=division,
            district=district,
            upazila=upazila,
            compatible=compatible,
            status=status,
            index=self.index,
            rules=self.rules,
        )


@lru_cache(maxsize=1)
def get_engine() -> DonorEngine:
    """Shared engine configured from settings."""
    engine = DonorEngine.from_settings()
    logger.info(
        f"Donor engine ready: interval={engine.rules.donation_interval_days}d, "
        f"shortage={engine.shortage_config!r}"
    )
    return engine


def get_eligibility(donor: Donor, as_of: date) -> EligibilityResult:
    return get_engine().get_eligibility(donor, as_of)


def get_availability_status(donor: Donor, as_of: date) -> AvailabilityStatus:
    return get_engine().get_availability_status(donor, as_of)


def get_geographic_distribution(
    donors: Iterable[Donor],
    as_of: date,
    level: Optional[GeoLevel] = GeoLevel.DIVISION
) -> List[AggregateCell]:
    return get_engine().get_geographic_distribution(donors, as_of, level)


def get_critical_shortages(
    donors: Iterable[Donor],
    as_of: date,
    threshold: Union[int, ShortageConfig, None] = None
) -> List[ShortageFlag]:
    return get_engine().get_critical_shortages(donors, as_of, threshold)


def get_funnel_metrics(
    donors: Iterable[Donor],
    requests: Iterable[DonationRequest],
    as_of: date
) -> List[FunnelStage]:
    return get_engine().get_funnel_metrics(donors, requests, as_of)
