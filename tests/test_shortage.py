"""Unit tests for critical shortage detection."""
import pytest

from pulsecare.core.exceptions import ConfigurationError
from pulsecare.schemas.engine import AggregateCell, GeoUnit
from pulsecare.schemas.enums import BloodGroup, GeoLevel
from pulsecare.services.aggregation import GeographicAggregator
from pulsecare.services.shortage import ShortageConfig, critical_blood_groups, detect_shortages


def _cell(name, eligible, blood_group=BloodGroup.O_NEGATIVE, level=GeoLevel.UPAZILA, parent="Dhaka"):
    return AggregateCell(
        unit=GeoUnit(level=level, name=name, parent=parent),
        blood_group=blood_group,
        eligible_count=eligible,
        total_count=eligible,
    )


def _khulna_o_negative_donors(make_donor):
    """Two eligible O- donors in each of three Khulna districts, plenty elsewhere."""
    donors = []
    for upazila in ("Jashore Sadar", "Kushtia Sadar", "Satkhira Sadar"):
        donors += [make_donor(upazila=upazila, blood_group=BloodGroup.O_NEGATIVE) for _ in range(2)]
    for upazila in ("Savar", "Teknaf", "Sylhet Sadar"):
        donors += [make_donor(upazila=upazila, blood_group=BloodGroup.O_NEGATIVE) for _ in range(7)]
    return donors


def test_division_not_flagged_while_districts_are(make_donor, as_of, geo_index):
    cells = GeographicAggregator(geo_index).aggregate(_khulna_o_negative_donors(make_donor), as_of)
    khulna = [c for c in cells if c.unit.level == GeoLevel.DIVISION and c.unit.name == "Khulna"][0]
    assert khulna.blood_group == BloodGroup.O_NEGATIVE
    assert khulna.eligible_count == 6

    flags = detect_shortages(cells, threshold=5)
    flagged = {(f.unit.level, f.unit.name) for f in flags}
    assert (GeoLevel.DIVISION, "Khulna") not in flagged
    for district in ("Jashore", "Kushtia", "Satkhira"):
        assert (GeoLevel.DISTRICT, district) in flagged
    assert (GeoLevel.DISTRICT, "Dhaka") not in flagged
    assert all(f.count == 2 and f.threshold == 5 for f in flags if f.unit.level == GeoLevel.DISTRICT)


def test_flag_iff_below_threshold():
    cells = [_cell(f"U{n}", n) for n in range(10)]
    flags = detect_shortages(cells, threshold=5)
    assert sorted(f.count for f in flags) == [0, 1, 2, 3, 4]
    assert {f.unit.name for f in flags} == {f"U{n}" for n in range(5)}


def test_zero_threshold_disables_flags(make_donor, as_of, geo_index):
    cells = GeographicAggregator(geo_index).aggregate(_khulna_o_negative_donors(make_donor), as_of)
    assert detect_shortages(cells, threshold=5)
    assert detect_shortages(cells, threshold=0) == []


@pytest.mark.parametrize("bad", [-1, -5, 2.5, "5", True])
def test_invalid_threshold_rejected(bad):
    with pytest.raises(ConfigurationError):
        detect_shortages([_cell("U1", 0)], threshold=bad)


def test_per_blood_group_override():
    config = ShortageConfig(default=5, overrides={"O-": 8, BloodGroup.AB_POSITIVE: 2})
    cells = [
        _cell("U1", 6, BloodGroup.O_NEGATIVE),
        _cell("U1", 3, BloodGroup.AB_POSITIVE),
        _cell("U1", 4, BloodGroup.A_POSITIVE),
    ]
    flags = detect_shortages(cells, config)
    assert {(f.blood_group, f.threshold) for f in flags} == {
        (BloodGroup.O_NEGATIVE, 8),
        (BloodGroup.A_POSITIVE, 5),
    }


def test_override_validation():
    with pytest.raises(ConfigurationError) as excinfo:
        ShortageConfig(overrides={"C+": 3})
    assert isinstance(excinfo.value.__cause__, ValueError)
    with pytest.raises(ConfigurationError):
        ShortageConfig(overrides={"O-": -2})


def test_level_filter():
    cells = [
        _cell("Dhaka", 1, level=GeoLevel.DIVISION, parent=None),
        _cell("Savar", 1),
    ]
    flags = detect_shortages(cells, 5, level=GeoLevel.DIVISION)
    assert [f.unit.name for f in flags] == ["Dhaka"]


def test_flags_sorted_by_level_then_count():
    cells = [
        _cell("B", 3),
        _cell("A", 1),
        _cell("Dhaka", 4, level=GeoLevel.DIVISION, parent=None),
    ]
    assert [f.unit.name for f in detect_shortages(cells, 5)] == ["Dhaka", "A", "B"]


def test_no_cells_no_flags():
    assert detect_shortages([], 5) == []


def test_critical_blood_groups(make_donor, as_of, geo_index):
    donors = [make_donor(upazila="Savar", blood_group=BloodGroup.A_POSITIVE) for _ in range(6)]
    donors += [make_donor(upazila="Mongla", blood_group=BloodGroup.O_NEGATIVE)]
    donors += [make_donor(upazila="Dohar", blood_group=BloodGroup.O_NEGATIVE) for _ in range(2)]
    cells = GeographicAggregator(geo_index).aggregate(donors, as_of)

    groups = critical_blood_groups(cells, 5)
    assert [g.blood_group for g in groups] == [BloodGroup.O_NEGATIVE]
    o_neg = groups[0]
    assert o_neg.eligible_count == 3
    assert o_neg.threshold == 5
    assert [(f.unit.name, f.count) for f in o_neg.critical_units] == [("Mongla", 1), ("Dohar", 2)]
