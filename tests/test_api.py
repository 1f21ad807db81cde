"""HTTP adapter tests against the FastAPI app."""
import pytest
from fastapi.testclient import TestClient

from pulsecare.main import app

AS_OF = "2024-01-01"


def _donor(donor_id, **fields):
    donor = {
        "id": donor_id,
        "blood_group": "O-",
        "date_of_birth": "1990-01-01",
        "weight": 70,
        "upazila": "Savar",
    }
    donor.update(fields)
    return donor


@pytest.fixture(scope="module")
def client():
    with TestClient(app) as test_client:
        yield test_client


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["divisions"] == 8
    assert "X-Request-ID" in response.headers


def test_eligibility_endpoint(client):
    donor = _donor("D1", last_donation_date="2023-10-01", active_booking={"id": "B1", "state": "booked"})
    response = client.post("/api/v1/engine/eligibility", json={"as_of": AS_OF, "donor": donor})
    assert response.status_code == 200
    body = response.json()
    assert body["donor_id"] == "D1"
    assert body["eligibility"]["is_eligible"] is False
    assert body["eligibility"]["reason"] == "too_soon_since_last_donation"
    assert body["eligibility"]["next_eligible_date"] == "2024-01-29"
    assert body["status"] == "booked"


def test_incomplete_profile_is_not_an_error(client):
    donor = _donor("D2", date_of_birth=None, weight=None)
    response = client.post("/api/v1/engine/eligibility/batch", json={"as_of": AS_OF, "donors": [donor]})
    assert response.status_code == 200
    assert response.json()[0]["eligibility"]["reason"] == "incomplete_profile"


def test_distribution_endpoint(client):
    donors = [_donor("D1"), _donor("D2", upazila="Teknaf"), _donor("D3", upazila="Atlantis")]
    response = client.post("/api/v1/engine/distribution", json={"as_of": AS_OF, "donors": donors})
    assert response.status_code == 200
    names = sorted(cell["unit"]["name"] for cell in response.json())
    assert names == ["Chattogram", "Dhaka", "Unmapped"]
    assert sum(cell["total_count"] for cell in response.json()) == 3


def test_shortages_endpoint(client):
    donors = [_donor("D1"), _donor("D2")]
    response = client.post("/api/v1/engine/shortages", json={"as_of": AS_OF, "donors": donors, "threshold": 2, "level": "district"})
    assert response.status_code == 200
    flags = {(f["unit"]["name"], f["blood_group"]): (f["count"], f["threshold"]) for f in response.json()}
    assert len(flags) == 64 * 8 - 1
    assert ("Dhaka", "O-") not in flags
    assert flags[("Gazipur", "O-")] == (0, 2)


def test_negative_threshold_rejected(client):
    response = client.post("/api/v1/engine/shortages", json={"as_of": AS_OF, "donors": [], "threshold": -1})
    assert response.status_code == 422


def test_funnel_and_blood_groups(client):
    donors = [_donor("D1"), _donor("D2", blood_group="A+")]
    funnel = client.post("/api/v1/engine/funnel", json={"as_of": AS_OF, "donors": donors, "requests": []})
    assert funnel.status_code == 200
    assert [stage["count"] for stage in funnel.json()] == [2, 2, 2, 0, 0]

    shares = client.post("/api/v1/engine/blood-groups", json={"as_of": AS_OF, "donors": donors})
    assert sum(entry["percentage"] for entry in shares.json()) == pytest.approx(100.0)


def test_invalid_blood_group_rejected(client):
    response = client.post("/api/v1/engine/eligibility", json={"as_of": AS_OF, "donor": _donor("D1", blood_group="C+")})
    assert response.status_code == 422


def test_geography_endpoints(client):
    divisions = client.get("/api/v1/geography/divisions").json()
    assert len(divisions) == 8
    assert "Savar" in client.get("/api/v1/geography/districts/Dhaka/upazilas").json()
    assert "Jashore" in client.get("/api/v1/geography/divisions/Khulna/districts").json()
    assert client.get("/api/v1/geography/districts/Gotham/upazilas").status_code == 404
    assert client.get("/api/v1/geography/divisions/Gotham/districts").status_code == 404
