"""Tests for the open mat query layer."""
import pytest
from conftest import add_slot, make_venue

from matfinder.domain.search.schemas import SearchCenter, SlotFilters
from matfinder.domain.search.service import SearchService
from matfinder.models import DayOfWeek

AUSTIN = (30.2672, -97.7431)


@pytest.fixture
def gyms(db):
    """Three Austin-area gyms and one in Dallas."""
    downtown = make_venue(db, "Downtown BJJ", 30.2680, -97.7420)
    north = make_venue(db, "North Austin Grappling", 30.3200, -97.7300)
    south = make_venue(db, "South Congress MMA", 30.2400, -97.7500)
    dallas = make_venue(db, "Dallas Jiu Jitsu", 32.7767, -96.7970)

    add_slot(db, downtown, DayOfWeek.MONDAY, "18:00", gi=True, open_mat=True)
    add_slot(db, downtown, DayOfWeek.MONDAY, "12:00", no_gi=True)
    add_slot(db, north, DayOfWeek.MONDAY, "19:30", no_gi=True, open_mat=True, kids=True)
    add_slot(db, south, DayOfWeek.TUESDAY, "18:00", gi=True, open_mat=True)
    add_slot(db, dallas, DayOfWeek.MONDAY, "18:00", gi=True, open_mat=True)
    return {"downtown": downtown, "north": north, "south": south, "dallas": dallas}


class TestOpenMatSearch:
    """Open mats on day X within Y miles of Z."""

    def test_within_radius_nearest_first(self, client, gyms):
        response = client.get(
            "/search/open-mats",
            params={"day": "monday", "latitude": AUSTIN[0], "longitude": AUSTIN[1], "radius": 10},
        )
        assert response.status_code == 200

        data = response.json()
        assert data["day"] == "monday"
        assert data["radiusMiles"] == 10
        names = [r["venue"]["name"] for r in data["results"]]
        assert names == ["Downtown BJJ", "North Austin Grappling"]
        assert data["results"][0]["distanceMiles"] < data["results"][1]["distanceMiles"]

    def test_slots_sorted_by_time(self, client, gyms):
        data = client.get(
            "/search/open-mats",
            params={"day": "monday", "latitude": AUSTIN[0], "longitude": AUSTIN[1]},
        ).json()
        downtown = data["results"][0]
        assert [s["time"] for s in downtown["timeSlots"]] == ["12:00", "18:00"]

    def test_default_radius_is_five_miles(self, client, gyms):
        data = client.get(
            "/search/open-mats",
            params={"day": "monday", "latitude": AUSTIN[0], "longitude": AUSTIN[1]},
        ).json()
        assert data["radiusMiles"] == 5
        assert "Dallas Jiu Jitsu" not in [r["venue"]["name"] for r in data["results"]]

    def test_flag_filters(self, client, gyms):
        data = client.get(
            "/search/open-mats",
            params={
                "day": "monday",
                "latitude": AUSTIN[0],
                "longitude": AUSTIN[1],
                "open_mat": True,
                "gi": True,
            },
        ).json()
        assert [r["venue"]["name"] for r in data["results"]] == ["Downtown BJJ"]
        assert [s["time"] for s in data["results"][0]["timeSlots"]] == ["18:00"]

    def test_without_location_lists_all_by_name(self, client, gyms):
        data = client.get("/search/open-mats", params={"day": "Mon"}).json()
        names = [r["venue"]["name"] for r in data["results"]]
        assert names == ["Dallas Jiu Jitsu", "Downtown BJJ", "North Austin Grappling"]
        assert all(r["distanceMiles"] is None for r in data["results"])

    def test_day_without_mats(self, client, gyms):
        data = client.get("/search/open-mats", params={"day": "sunday"}).json()
        assert data["results"] == []

    def test_address_is_geocoded(self, client, gyms, fake_geocoder):
        data = client.get("/search/open-mats", params={"day": "tuesday", "address": "78704"}).json()
        assert data["center"]["label"] == "78704"
        assert [r["venue"]["name"] for r in data["results"]] == ["South Congress MMA"]

    def test_unknown_address(self, client, gyms, fake_geocoder):
        response = client.get("/search/open-mats", params={"day": "monday", "address": "nowhere"})
        assert response.status_code == 422

    def test_invalid_day(self, client):
        response = client.get("/search/open-mats", params={"day": "blursday"})
        assert response.status_code == 422

    def test_latitude_without_longitude(self, client):
        response = client.get("/search/open-mats", params={"day": "monday", "latitude": 30.0})
        assert response.status_code == 422

    @pytest.mark.parametrize("radius", [0, -5, 100000])
    def test_radius_bounds(self, client, radius):
        response = client.get(
            "/search/open-mats",
            params={"day": "monday", "latitude": AUSTIN[0], "longitude": AUSTIN[1], "radius": radius},
        )
        assert response.status_code == 422


class TestNearbySearch:
    def test_nearby(self, client, gyms):
        data = client.get(
            "/search/nearby", params={"latitude": AUSTIN[0], "longitude": AUSTIN[1], "radius": 10}
        ).json()
        names = [r["venue"]["name"] for r in data["results"]]
        assert names[0] == "Downtown BJJ"
        assert set(names) == {"Downtown BJJ", "North Austin Grappling", "South Congress MMA"}

    def test_nearby_requires_center(self, client):
        assert client.get("/search/nearby").status_code == 422


class TestSearchService:
    def test_antimeridian_radius(self, db):
        fiji = make_venue(db, "Suva BJJ", -17.80, 179.95)
        samoa_side = make_venue(db, "Dateline Grappling", -17.80, -179.95)
        add_slot(db, fiji, DayOfWeek.FRIDAY, "17:00", open_mat=True)
        add_slot(db, samoa_side, DayOfWeek.FRIDAY, "17:00", open_mat=True)

        result = SearchService(db).find_open_mats(
            DayOfWeek.FRIDAY, SearchCenter(latitude=-17.80, longitude=179.99), 20
        )
        assert {r.venue.name for r in result.results} == {"Suva BJJ", "Dateline Grappling"}

    def test_high_latitude_radius_edge(self, db):
        make_venue(db, "Tromso Grappling", 70.316, 30.590)
        make_venue(db, "Too Far BJJ", 70.0, 31.5)

        result = SearchService(db).find_nearby_venues(SearchCenter(latitude=70.0, longitude=20.0), 250)
        assert [r.venue.name for r in result.results] == ["Tromso Grappling"]
        assert result.results[0].distanceMiles < 250

    def test_filters_match(self):
        class Slot:
            gi = True
            no_gi = False
            open_mat = True
            kids = False
            good_for_beginners = False

        assert SlotFilters(gi=True, openMat=True).matches(Slot)
        assert not SlotFilters(noGi=True).matches(Slot)
        assert SlotFilters().matches(Slot)
