"""Integration tests for the school profile and rating endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

# ---------------------------------------------------------------------------
# GET /api/health
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    def test_ok(self, test_client: TestClient):
        response = test_client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


# ---------------------------------------------------------------------------
# GET /api/schools/{urn}
# ---------------------------------------------------------------------------


class TestSchoolProfileEndpoint:
    """Tests for the single-school profile endpoint."""

    def test_full_profile(self, test_client: TestClient):
        response = test_client.get("/api/schools/100001")
        assert response.status_code == 200
        data = response.json()

        assert data["urn"] == "100001"
        assert data["name"] == "Oakfield Primary School"
        assert data["is_scotland"] is False
        assert data["address"]["local_authority"] == "Camden"
        assert data["ofsted"]["overall_effectiveness"] == 1
        assert data["ofsted"]["overall_label"] == "Outstanding"
        assert data["ofsted"]["inspection_date"] == "2022-03-01"

    def test_latest_source_rows_are_used(self, test_client: TestClient):
        data = test_client.get("/api/schools/100001").json()
        assert data["demographics"]["total_students"] == 420
        assert data["demographics"]["fsm_percentage"] == 18.5
        assert data["attendance"]["attendance_rate"] == 95.0
        assert data["attendance"]["overall_absence_rate"] == 5.0

    def test_test_scores_with_comparators(self, test_client: TestClient):
        scores = test_client.get("/api/schools/100001").json()["test_scores"]
        assert scores["english"] == {"score": 70.0, "la_average": 68.0}
        # Falls back to the national average when there is no LA figure.
        assert scores["science"] == {"score": 74.0, "la_average": 71.0}

    def test_stored_rating_is_returned(self, test_client: TestClient):
        rating = test_client.get("/api/schools/100001").json()["rating"]
        assert rating["overall_rating"] == 8.3
        assert rating["rating_display"] == "8.3/10"
        assert rating["rating_data_completeness"] == 100
        assert rating["rating_percentile"] == 85
        assert rating["percentile_text"] == "Top 15%"
        assert rating["tier"] == "complete"
        assert rating["jurisdiction"] == "England"
        assert [c["name"] for c in rating["rating_components"]] == ["ofsted", "academic", "attendance"]

    def test_suppressed_values_are_null(self, test_client: TestClient):
        data = test_client.get("/api/schools/100002").json()
        assert data["test_scores"]["english"] is None
        assert data["test_scores"]["math"]["score"] == 65.0
        assert data["demographics"]["fsm_percentage"] is None
        assert data["attendance"]["attendance_rate"] is None

    def test_scottish_school_has_no_ofsted(self, test_client: TestClient):
        data = test_client.get("/api/schools/200001").json()
        assert data["is_scotland"] is True
        assert data["ofsted"] is None
        assert data["test_scores"]["science"] is None
        assert data["rating"]["jurisdiction"] == "Scotland"
        assert data["rating"]["rating_display"] == "N/A"

    def test_unknown_urn_returns_404(self, test_client: TestClient):
        response = test_client.get("/api/schools/999999")
        assert response.status_code == 404

    def test_non_numeric_urn_returns_400(self, test_client: TestClient):
        response = test_client.get("/api/schools/abc")
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# GET /api/schools/{urn}/rating
# ---------------------------------------------------------------------------


class TestSchoolRatingEndpoint:
    """Tests for the stored-rating endpoint."""

    def test_partial_rating(self, test_client: TestClient):
        data = test_client.get("/api/schools/100002/rating").json()
        assert data["overall_rating"] == 6.7
        assert data["tier"] == "partial"

    def test_ofsted_only(self, test_client: TestClient):
        data = test_client.get("/api/schools/100003/rating").json()
        assert data["overall_rating"] is None
        assert data["rating_display"] == "N/A"
        assert data["rating_data_completeness"] == 0
        assert data["tier"] == "ofsted-only"

    def test_unrated(self, test_client: TestClient):
        data = test_client.get("/api/schools/300001/rating").json()
        assert data["tier"] == "unrated"
        assert data["jurisdiction"] == "Other"
        assert data["rating_components"] == []

    def test_unknown_urn(self, test_client: TestClient):
        assert test_client.get("/api/schools/999999/rating").status_code == 404


# ---------------------------------------------------------------------------
# GET /api/schools/{urn}/nearby
# ---------------------------------------------------------------------------


class TestNearbySchoolsEndpoint:
    """Tests for same-phase schools in the school's local authority."""

    def test_fair_ranked_peers(self, test_client: TestClient):
        response = test_client.get("/api/schools/100001/nearby")
        assert response.status_code == 200
        data = response.json()
        assert data["urn"] == "100001"
        assert data["local_authority"] == "Camden"
        assert data["phase"] == "Primary"
        assert [s["name"] for s in data["schools"]] == ["Brookside Primary School", "Riverside Infant School"]
        assert [s["tier"] for s in data["schools"]] == ["complete", "unrated"]

    def test_excludes_other_phases(self, test_client: TestClient):
        data = test_client.get("/api/schools/100002/nearby").json()
        assert data["schools"] == []

    def test_limit(self, test_client: TestClient):
        data = test_client.get("/api/schools/100001/nearby", params={"limit": 1}).json()
        assert [s["urn"] for s in data["schools"]] == ["100005"]

    def test_invalid_limit(self, test_client: TestClient):
        assert test_client.get("/api/schools/100001/nearby", params={"limit": 0}).status_code == 422

    def test_unknown_urn(self, test_client: TestClient):
        assert test_client.get("/api/schools/999999/nearby").status_code == 404

    def test_invalid_urn(self, test_client: TestClient):
        assert test_client.get("/api/schools/abc/nearby").status_code == 400


# ---------------------------------------------------------------------------
# GET /api/schools/{urn}/comparison
# ---------------------------------------------------------------------------


class TestSchoolComparisonEndpoint:
    """Tests for local and national same-phase comparisons."""

    def test_local_and_national_averages(self, test_client: TestClient):
        response = test_client.get("/api/schools/100001/comparison")
        assert response.status_code == 200
        data = response.json()

        assert data["school"]["name"] == "Oakfield Primary School"
        assert data["school"]["position"] == 1
        assert data["phase"] == "Primary"

        local = data["local_authority_average"]
        assert local["name"] == "Camden"
        assert local["total_schools"] == 3
        assert local["avg_english"] == 55.0
        assert local["avg_attendance"] == 77.5

        national = data["national_average"]
        assert national["name"] == "National"
        assert national["total_schools"] == 4

    def test_scottish_school(self, test_client: TestClient):
        data = test_client.get("/api/schools/200001/comparison").json()
        assert data["local_authority_average"]["total_schools"] == 1
        assert data["national_average"]["total_schools"] == 2
        assert sum(data["local_authority_average"]["ofsted_distribution"].values()) == 0

    def test_unknown_urn(self, test_client: TestClient):
        assert test_client.get("/api/schools/999999/comparison").status_code == 404

    def test_invalid_urn(self, test_client: TestClient):
        assert test_client.get("/api/schools/abc/comparison").status_code == 400
