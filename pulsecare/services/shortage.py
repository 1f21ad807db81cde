"""
Critical shortage detection over aggregate cells.
A cell is flagged when its eligible donor count is below the threshold for its blood group.
"""
import logging
from typing import Dict, Iterable, List, Optional, Union
from pulsecare.core.exceptions import ConfigurationError
from pulsecare.schemas.engine import AggregateCell, CriticalBloodGroup, ShortageFlag
from pulsecare.schemas.enums import BLOOD_GROUPS, BloodGroup, GeoLevel
from pulsecare.services.aggregation import LEVEL_ORDER

logger = logging.getLogger(__name__)

DEFAULT_SHORTAGE_THRESHOLD = 5


def validate_threshold(value, label: str = "threshold") -> int:
    """
    Thresholds are non-negative integers. Zero disables flagging; anything
    negative or non-integral is rejected.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"Shortage {label} must be an integer, got {value!r}")
    if value < 0:
        raise ConfigurationError(f"Shortage {label} must not be negative, got {value}")
    return value


class ShortageConfig:
    """Default threshold plus optional per-blood-group overrides."""

    def __init__(self, default: int = DEFAULT_SHORTAGE_THRESHOLD, overrides: Optional[Dict] = None):
        self.default = validate_threshold(default)
        self.overrides: Dict[BloodGroup, int] = {}
        for group, value in (overrides or {}).items():
            try:
                blood_group = BloodGroup(group)
            except ValueError as e:
                raise ConfigurationError(f"Unknown blood group in threshold overrides: {group!r}") from e
            self.overrides[blood_group] = validate_threshold(value, f"threshold for {blood_group.value}")

    @classmethod
    def from_settings(cls) -> "ShortageConfig":
        from pulsecare.core.config import settings
        return cls(settings.SHORTAGE_THRESHOLD, settings.shortage_threshold_overrides)

    def threshold_for(self, blood_group: BloodGroup) -> int:
        return self.overrides.get(blood_group, self.default)

    def __repr__(self):
        overrides = ", ".join(f"{group.value}:{value}" for group, value in self.overrides.items())
        return f"ShortageConfig(default={self.default}, overrides=[{overrides}])"


def _as_config(threshold: Union[int, ShortageConfig, None]) -> ShortageConfig:
    if threshold is None:
        return ShortageConfig()
    if isinstance(threshold, ShortageConfig):
        return threshold
    return ShortageConfig(default=threshold)


def detect_shortages(
    cells: Iterable[AggregateCell],
    threshold: Union[int, ShortageConfig, None] = DEFAULT_SHORTAGE_THRESHOLD,
    level: Optional[GeoLevel] = None
) -> List[ShortageFlag]:
    """
    Flag every cell whose eligible_count is below its threshold.

    Args:
        cells: Output of one aggregation pass
        threshold: Uniform threshold or a ShortageConfig with per-group overrides
        level: Restrict flags to one geographic level

    Returns:
        ShortageFlags ordered by level, count, unit name and blood group

    Raises:
        ConfigurationError: If the threshold is negative or not an integer
    """
    config = _as_config(threshold)
    flags: List[ShortageFlag] = []
    for cell in cells:
        if level is not None and cell.unit.level != level:
            continue
        limit = config.threshold_for(cell.blood_group)
        if cell.eligible_count < limit:
            flags.append(ShortageFlag(
                unit=cell.unit,
                blood_group=cell.blood_group,
                count=cell.eligible_count,
                threshold=limit,
            ))

    flags.sort(key=lambda f: (
        LEVEL_ORDER[f.unit.level], f.count, f.unit.name, f.unit.parent or "", BLOOD_GROUPS.index(f.blood_group)
    ))
    logger.debug(f"Shortage pass with {config!r}: {len(flags)} flags")
    return flags


def critical_blood_groups(
    cells: Iterable[AggregateCell],
    threshold: Union[int, ShortageConfig, None] = DEFAULT_SHORTAGE_THRESHOLD
) -> List[CriticalBloodGroup]:
    """
    Group upazila-level shortages by blood group for the critical alert panel.
    Only blood groups with at least one critical upazila are returned.
    """
    config = _as_config(threshold)
    cells = list(cells)
    national: Dict[BloodGroup, int] = {}
    for cell in cells:
        if cell.unit.level == GeoLevel.DIVISION:
            national[cell.blood_group] = national.get(cell.blood_group, 0) + cell.eligible_count

    by_group: Dict[BloodGroup, List[ShortageFlag]] = {}
    for flag in detect_shortages(cells, config, level=GeoLevel.UPAZILA):
        by_group.setdefault(flag.blood_group, []).append(flag)

    return [
        CriticalBloodGroup(
            blood_group=group,
            threshold=config.threshold_for(group),
            eligible_count=national.get(group, 0),
            critical_units=by_group[group],
        )
        for group in BLOOD_GROUPS
        if group in by_group
    ]
