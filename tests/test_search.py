"""Unit tests for donor search and upcoming reactivations."""
from datetime import date

import pytest

from pulsecare.schemas.enums import AvailabilityStatus, BloodGroup
from pulsecare.services.search import (
    compatible_donor_groups, is_compatible, search_donors, upcoming_reactivations
)


@pytest.mark.parametrize("requested,donor,expected", [
    (BloodGroup.AB_POSITIVE, BloodGroup.O_NEGATIVE, True),
    (BloodGroup.AB_POSITIVE, BloodGroup.B_POSITIVE, True),
    (BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE, False),
    (BloodGroup.A_POSITIVE, BloodGroup.B_POSITIVE, False),
    (BloodGroup.B_NEGATIVE, BloodGroup.O_NEGATIVE, True),
    (BloodGroup.AB_NEGATIVE, BloodGroup.A_POSITIVE, False),
])
def test_compatibility_table(requested, donor, expected):
    assert is_compatible(requested, donor) is expected


def test_universal_groups():
    assert compatible_donor_groups(BloodGroup.O_NEGATIVE) == [BloodGroup.O_NEGATIVE]
    assert len(compatible_donor_groups(BloodGroup.AB_POSITIVE)) == 8
    for group in BloodGroup:
        assert is_compatible(group, BloodGroup.O_NEGATIVE)


def test_exact_and_compatible_search(make_donor, as_of, geo_index):
    donors = [
        make_donor(blood_group=group)
        for group in (BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE, BloodGroup.A_NEGATIVE,
                      BloodGroup.A_POSITIVE, BloodGroup.B_POSITIVE, BloodGroup.AB_POSITIVE)
    ]
    exact = search_donors(donors, as_of, blood_group=BloodGroup.A_POSITIVE, index=geo_index)
    assert [m.donor.blood_group for m in exact] == [BloodGroup.A_POSITIVE]

    compatible = search_donors(donors, as_of, blood_group=BloodGroup.A_POSITIVE, compatible=True, index=geo_index)
    assert {m.donor.blood_group for m in compatible} == {
        BloodGroup.O_NEGATIVE, BloodGroup.O_POSITIVE, BloodGroup.A_NEGATIVE, BloodGroup.A_POSITIVE
    }


def test_location_filters(make_donor, as_of, geo_index):
    donors = [
        make_donor(upazila="Savar"),
        make_donor(upazila="Teknaf"),
        make_donor(upazila="Sylhet Sadar"),
        make_donor(upazila="Nowhere"),
    ]
    by_division = search_donors(donors, as_of, division="chattogram", index=geo_index)
    assert [m.upazila for m in by_division] == ["Teknaf"]
    assert by_division[0].district == "Cox's Bazar"

    by_alias = search_donors(donors, as_of, district="Coxs Bazar", index=geo_index)
    assert [m.upazila for m in by_alias] == ["Teknaf"]

    by_upazila = search_donors(donors, as_of, upazila="savar", index=geo_index)
    assert [m.division for m in by_upazila] == ["Dhaka"]

    assert len(search_donors(donors, as_of, index=geo_index)) == 4


def test_status_filter_and_ordering(make_donor, as_of, geo_index):
    donors = [
        make_donor(id="D3", booking="booked"),
        make_donor(id="D2"),
        make_donor(id="D1", manual_availability=False),
        make_donor(id="D0"),
    ]
    matches = search_donors(donors, as_of, index=geo_index)
    assert [m.donor.id for m in matches] == ["D0", "D2", "D1", "D3"]
    assert matches[0].eligibility.is_eligible

    booked = search_donors(donors, as_of, status=AvailabilityStatus.BOOKED, index=geo_index)
    assert [m.donor.id for m in booked] == ["D3"]


def test_upcoming_reactivations(make_donor, as_of):
    donors = [
        make_donor(id="soon", last_donation_date=date(2023, 9, 15)),
        make_donor(id="later", last_donation_date=date(2023, 12, 1)),
        make_donor(id="ready"),
        make_donor(id="closed", last_donation_date=date(2023, 9, 15), account_active=False),
        make_donor(id="light", last_donation_date=date(2023, 9, 15), weight=45),
        make_donor(id="sooner", last_donation_date=date(2023, 9, 10)),
    ]
    upcoming = upcoming_reactivations(donors, as_of, within_days=30)
    assert [r.donor_id for r in upcoming] == ["sooner", "soon"]
    assert upcoming[1].next_eligible_date == date(2024, 1, 13)
    assert upcoming[1].days_until_eligible == 12

    assert [r.donor_id for r in upcoming_reactivations(donors, as_of, within_days=120)] == ["sooner", "soon", "later"]
