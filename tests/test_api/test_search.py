"""Integration tests for search, city and local-authority endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

CAMDEN_RANKED = [
    "Oakfield Primary School",  # complete, 8.3
    "Brookside Primary School",  # complete, 4.2
    "Hillside Academy",  # partial, 6.7
    "St Mary's Special School",  # Ofsted only
    "Riverside Infant School",  # unrated
]

# ---------------------------------------------------------------------------
# GET /api/search
# ---------------------------------------------------------------------------


class TestSearchEndpoint:
    """Tests for the substring search endpoint."""

    def test_query_too_short(self, test_client: TestClient):
        assert test_client.get("/api/search", params={"q": "a"}).status_code == 400
        assert test_client.get("/api/search", params={"q": "  "}).status_code == 400
        assert test_client.get("/api/search").status_code == 400

    def test_name_search(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "primary", "type": "name"}).json()
        assert data["total"] == 2
        assert [s["name"] for s in data["schools"]] == ["Oakfield Primary School", "Brookside Primary School"]

    def test_postcode_search(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "NW1", "type": "postcode"}).json()
        assert {s["urn"] for s in data["schools"]} == {"100001", "100004"}

    def test_results_follow_fair_ranking(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "camden", "type": "location"}).json()
        assert data["total"] == 5
        assert [s["name"] for s in data["schools"]] == CAMDEN_RANKED
        assert [s["position"] for s in data["schools"]] == [1, 2, 3, 4, 5]
        assert [s["tier"] for s in data["schools"]] == ["complete", "complete", "partial", "ofsted-only", "unrated"]

    def test_pagination(self, test_client: TestClient):
        params = {"q": "camden", "limit": 2, "offset": 1}
        data = test_client.get("/api/search", params=params).json()
        assert data["total"] == 5
        assert data["limit"] == 2
        assert data["offset"] == 1
        assert [s["name"] for s in data["schools"]] == CAMDEN_RANKED[1:3]

    def test_summary_fields(self, test_client: TestClient):
        school = test_client.get("/api/search", params={"q": "oakfield"}).json()["schools"][0]
        assert school["rating_display"] == "8.3/10"
        assert school["ofsted_rating"] == 1
        assert school["ofsted_label"] == "Outstanding"
        assert school["attendance_rate"] == 95.0

    def test_ofsted_filter(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "camden", "ofsted": 1}).json()
        assert [s["urn"] for s in data["schools"]] == ["100001"]

    def test_phase_filter(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "camden", "phase": "secondary"}).json()
        assert [s["name"] for s in data["schools"]] == ["Hillside Academy"]

    def test_unknown_phase(self, test_client: TestClient):
        response = test_client.get("/api/search", params={"q": "camden", "phase": "university"})
        assert response.status_code == 400

    def test_invalid_type(self, test_client: TestClient):
        response = test_client.get("/api/search", params={"q": "camden", "type": "galaxy"})
        assert response.status_code == 422

    def test_no_results(self, test_client: TestClient):
        data = test_client.get("/api/search", params={"q": "atlantis"}).json()
        assert data["total"] == 0
        assert data["schools"] == []


# ---------------------------------------------------------------------------
# GET /api/search/city/{city}
# ---------------------------------------------------------------------------


class TestCityEndpoint:
    """Tests for the city statistics and top-schools endpoint."""

    def test_city_statistics(self, test_client: TestClient):
        data = test_client.get("/api/search/city/London").json()
        stats = data["statistics"]
        assert data["city"] == "London"
        assert stats["total_schools"] == 5
        assert stats["total_students"] == 1520
        assert stats["avg_rating"] == 6.4
        assert stats["ofsted_distribution"]["inadequate"] == 1
        assert stats["ofsted_distribution"]["not_inspected"] == 1
        assert stats["local_authorities"][0]["name"] == "Camden"

    def test_tier_counts(self, test_client: TestClient):
        data = test_client.get("/api/search/city/london").json()
        assert data["tier_counts"] == {"complete": 2, "partial": 1, "ofsted-only": 1, "unrated": 1}

    def test_top_schools(self, test_client: TestClient):
        data = test_client.get("/api/search/city/London", params={"limit": 1}).json()
        assert [s["name"] for s in data["top_schools"]] == ["Oakfield Primary School"]

    def test_phase(self, test_client: TestClient):
        data = test_client.get("/api/search/city/London", params={"phase": "primary"}).json()
        assert data["statistics"]["total_schools"] == 3
        assert [s["name"] for s in data["top_schools"]] == [
            "Oakfield Primary School",
            "Brookside Primary School",
            "Riverside Infant School",
        ]

    def test_unknown_city(self, test_client: TestClient):
        data = test_client.get("/api/search/city/Atlantis").json()
        assert data["statistics"]["total_schools"] == 0
        assert data["top_schools"] == []


# ---------------------------------------------------------------------------
# Local authorities
# ---------------------------------------------------------------------------


class TestLocalAuthorityEndpoints:
    """Tests for the local authority list and summary endpoints."""

    def test_list_is_sorted(self, test_client: TestClient):
        data = test_client.get("/api/local-authorities").json()
        assert data == ["Camden", "Cardiff", "Glasgow City"]

    def test_summary(self, test_client: TestClient):
        response = test_client.get("/api/local-authority/Camden/summary")
        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["total_schools"] == 5
        assert data["summary"]["phase_counts"] == {"primary": 3, "secondary": 1, "sixth_form": 1, "special": 1}
        by_phase = data["top_schools_by_phase"]
        assert [s["name"] for s in by_phase["primary"]] == [
            "Oakfield Primary School",
            "Brookside Primary School",
            "Riverside Infant School",
        ]
        assert [s["name"] for s in by_phase["special"]] == ["St Mary's Special School"]
        assert [s["name"] for s in by_phase["sixth_form"]] == ["Hillside Academy"]

    def test_scottish_summary_has_no_ofsted(self, test_client: TestClient):
        data = test_client.get("/api/local-authority/glasgow city/summary").json()
        assert data["summary"]["total_schools"] == 1
        assert sum(data["summary"]["ofsted_distribution"].values()) == 0

    def test_unknown_local_authority(self, test_client: TestClient):
        response = test_client.get("/api/local-authority/Atlantis/summary")
        assert response.status_code == 404
