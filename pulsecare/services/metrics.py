"""
Dashboard read-models: donation funnel, blood group and age distributions,
time-bucketed trends and availability summary cards.

Every composer works on the snapshot it is given. Empty input yields
zero-valued output, never None.
"""
import logging
import math
from datetime import date, datetime, timedelta
from fractions import Fraction
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union
from pulsecare.core.exceptions import ConfigurationError
from pulsecare.schemas.donor import DonationRequest, Donor
from pulsecare.schemas.engine import AvailabilitySummary, DistributionEntry, FunnelStage, TrendPoint
from pulsecare.schemas.enums import (
    AvailabilityStatus, BLOOD_GROUPS, FunnelStageName, RequestStatus,
    SCHEDULED_REQUEST_STATUSES, TrendGranularity
)
from pulsecare.services.availability import status_of
from pulsecare.services.eligibility import DEFAULT_RULES, EligibilityRules, calculate_age, evaluate

logger = logging.getLogger(__name__)

FUNNEL_ORDER = [
    FunnelStageName.REGISTERED,
    FunnelStageName.ELIGIBLE,
    FunnelStageName.AVAILABLE,
    FunnelStageName.SCHEDULED,
    FunnelStageName.COMPLETED,
]

# (label, lowest age, highest age)
AGE_BANDS: List[Tuple[str, int, Optional[int]]] = [
    ("18-25", 18, 25),
    ("26-35", 26, 35),
    ("36-45", 36, 45),
    ("46-55", 46, 55),
    ("56-65", 56, 65),
    ("66+", 66, None),
]
UNDER_AGE_BAND = "<18"
UNKNOWN_AGE_BAND = "unknown"

TrendInput = Union[date, Tuple[date, float]]


def enforce_non_increasing(raw_counts: Sequence[Tuple[FunnelStageName, int]]) -> List[FunnelStage]:
    """
    Clamp each stage to the one before it so the funnel never widens.
    The unclamped value is kept in raw_count.
    """
    stages: List[FunnelStage] = []
    previous: Optional[int] = None
    for name, raw in raw_counts:
        count = raw if previous is None else min(raw, previous)
        if count != raw:
            logger.warning(f"Funnel stage '{name.value}' clamped from {raw} to {count}")
        if previous is None:
            conversion = 100.0
        else:
            conversion = round(count / previous * 100, 1) if previous else 0.0
        stages.append(FunnelStage(stage=name, count=count, raw_count=raw, conversion_rate=conversion))
        previous = count
    return stages


def compose_funnel(
    donors: Iterable[Donor],
    requests: Iterable[DonationRequest],
    as_of: date,
    rules: EligibilityRules = DEFAULT_RULES
) -> List[FunnelStage]:
    """Registered > Eligible > Available > Scheduled > Completed, as of a date."""
    donors = list(donors)
    requests = list(requests)

    eligible = 0
    available = 0
    for donor in donors:
        eligibility = evaluate(donor, as_of, rules)
        if eligibility.is_eligible and donor.account_active:
            eligible += 1
        if status_of(donor, as_of, rules, eligibility) == AvailabilityStatus.ELIGIBLE:
            available += 1

    scheduled = sum(
        1 for r in requests
        if r.status in SCHEDULED_REQUEST_STATUSES and r.created_at <= as_of
    )
    completed = sum(
        1 for r in requests
        if r.status == RequestStatus.COMPLETED and (r.completed_at or r.created_at) <= as_of
    )

    return enforce_non_increasing([
        (FunnelStageName.REGISTERED, len(donors)),
        (FunnelStageName.ELIGIBLE, eligible),
        (FunnelStageName.AVAILABLE, available),
        (FunnelStageName.SCHEDULED, scheduled),
        (FunnelStageName.COMPLETED, completed),
    ])


def distribute_percentages(counts: Sequence[Tuple[str, int]], precision: int = 1) -> List[DistributionEntry]:
    """
    Percentages by the largest-remainder method.

    Every entry is floored at the same precision and the leftover units go
    to the largest remainders, so the result sums to exactly 100 whenever
    the total is non-zero.
    """
    if isinstance(precision, bool) or not isinstance(precision, int) or precision < 0:
        raise ConfigurationError(f"Distribution precision must be a non-negative integer, got {precision!r}")

    total = sum(count for _, count in counts)
    if total == 0:
        return [DistributionEntry(key=key, count=count, percentage=0.0) for key, count in counts]

    scale = 10 ** precision
    target = 100 * scale
    exact = [Fraction(count * target, total) for _, count in counts]
    units = [math.floor(value) for value in exact]
    leftover = target - sum(units)
    by_remainder = sorted(range(len(counts)), key=lambda i: (-(exact[i] - units[i]), i))
    for i in by_remainder[:leftover]:
        units[i] += 1

    return [
        DistributionEntry(key=key, count=count, percentage=round(units[i] / scale, precision))
        for i, (key, count) in enumerate(counts)
    ]


def blood_group_distribution(donors: Iterable[Donor], precision: int = 1) -> List[DistributionEntry]:
    """Share of donors per blood group; all eight groups are always present."""
    counts: Dict[str, int] = {group.value: 0 for group in BLOOD_GROUPS}
    for donor in donors:
        counts[donor.blood_group.value] += 1
    return distribute_percentages(list(counts.items()), precision)


def age_band(age: Optional[int]) -> str:
    if age is None:
        return UNKNOWN_AGE_BAND
    for label, low, high in AGE_BANDS:
        if age >= low and (high is None or age <= high):
            return label
    return UNDER_AGE_BAND


def age_distribution(donors: Iterable[Donor], as_of: date, precision: int = 1) -> List[DistributionEntry]:
    labels = [UNDER_AGE_BAND] + [label for label, _, _ in AGE_BANDS] + [UNKNOWN_AGE_BAND]
    counts: Dict[str, int] = {label: 0 for label in labels}
    for donor in donors:
        age = calculate_age(donor.date_of_birth, as_of) if donor.date_of_birth else None
        counts[age_band(age)] += 1
    return distribute_percentages(list(counts.items()), precision)


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def bucket_start(day: date, granularity: TrendGranularity) -> date:
    day = _as_date(day)
    if granularity == TrendGranularity.DAY:
        return day
    if granularity == TrendGranularity.WEEK:
        return day - timedelta(days=day.weekday())
    return day.replace(day=1)


def next_bucket(start: date, granularity: TrendGranularity) -> date:
    if granularity == TrendGranularity.DAY:
        return start + timedelta(days=1)
    if granularity == TrendGranularity.WEEK:
        return start + timedelta(days=7)
    return (start.replace(day=28) + timedelta(days=4)).replace(day=1)


def bucket_trend(
    points: Iterable[TrendInput],
    granularity: TrendGranularity = TrendGranularity.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[TrendPoint]:
    """
    Sum values into day, ISO week or calendar month buckets.

    Args:
        points: Bare dates (each counts 1) or (date, value) pairs from the caller's history source
        granularity: Bucket size
        start: First date to report; defaults to the earliest point
        end: Last date to report; defaults to the latest point

    Returns:
        One TrendPoint per bucket between start and end, zero-filled, oldest first;
        count is the number of points in the bucket and value their sum
    """
    counts: Dict[date, int] = {}
    sums: Dict[date, float] = {}
    seen: List[date] = []
    for point in points:
        if isinstance(point, tuple):
            when, value = point
        else:
            when, value = point, 1
        when = _as_date(when)
        if start is not None and when < _as_date(start):
            continue
        if end is not None and when > _as_date(end):
            continue
        seen.append(when)
        key = bucket_start(when, granularity)
        counts[key] = counts.get(key, 0) + 1
        sums[key] = sums.get(key, 0) + value

    first = start if start is not None else (min(seen) if seen else None)
    last = end if end is not None else (max(seen) if seen else None)
    if first is None or last is None or _as_date(first) > _as_date(last):
        return []

    trend: List[TrendPoint] = []
    cursor = bucket_start(first, granularity)
    final = bucket_start(last, granularity)
    while cursor <= final:
        trend.append(TrendPoint(period_start=cursor, count=counts.get(cursor, 0), value=sums.get(cursor, 0)))
        cursor = next_bucket(cursor, granularity)
    return trend


def registration_trend(
    donors: Iterable[Donor],
    granularity: TrendGranularity = TrendGranularity.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[TrendPoint]:
    return bucket_trend(
        (donor.registered_at for donor in donors if donor.registered_at is not None),
        granularity, start, end,
    )


def donation_trend(
    requests: Iterable[DonationRequest],
    granularity: TrendGranularity = TrendGranularity.MONTH,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[TrendPoint]:
    """Completed donations bucketed by completion date."""
    return bucket_trend(
        (r.completed_at or r.created_at for r in requests if r.status == RequestStatus.COMPLETED),
        granularity, start, end,
    )


def availability_summary(
    donors: Iterable[Donor],
    as_of: date,
    rules: EligibilityRules = DEFAULT_RULES
) -> AvailabilitySummary:
    counts = {status: 0 for status in AvailabilityStatus}
    total = 0
    for donor in donors:
        counts[status_of(donor, as_of, rules)] += 1
        total += 1
    return AvailabilitySummary(
        total_donors=total,
        eligible_donors=counts[AvailabilityStatus.ELIGIBLE],
        booked_donors=counts[AvailabilityStatus.BOOKED],
        in_progress_donors=counts[AvailabilityStatus.IN_PROGRESS],
        unavailable_donors=counts[AvailabilityStatus.UNAVAILABLE],
        inactive_donors=counts[AvailabilityStatus.INACTIVE],
    )
