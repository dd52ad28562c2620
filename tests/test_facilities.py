import re

import pytest

from conftest import create_facility
from utils.facilities import directions_url, filter_by_query, filter_by_type, filter_facilities, normalize_type

FACILITIES = [
    {"id": "1", "name": "Green Valley Recycling", "type": "recycling", "address": "12 Ring Road", "city": "Indore"},
    {"id": "2", "name": "Greenfield Biogas", "type": "biomethanization", "address": "Plot 7", "city": "Pune"},
    {"id": "3", "name": "Metro Scrap Hub", "type": "scrap_collection", "address": "Green Park Lane", "city": "Delhi"},
    {"id": "4", "name": "City Recyclers", "type": "recycling", "address": "MG Road", "city": "Greenville"},
    {"id": "5", "name": "Okhla Plant", "type": "waste_to_energy", "address": "Phase II", "city": "New Delhi"},
]


def _ids(rows):
    return [row["id"] for row in rows]


def _card_is_hidden(html, name):
    match = re.search(r'<article [^>]*data-name="' + re.escape(name) + r'"[^>]*>', html)
    assert match, name
    return match.group(0).endswith(" hidden>")


def test_query_matches_name_city_or_address_case_insensitively():
    assert _ids(filter_by_query(FACILITIES, "GREEN")) == ["1", "2", "3", "4"]
    assert _ids(filter_by_query(FACILITIES, "delhi")) == ["3", "5"]
    assert _ids(filter_by_query(FACILITIES, "  ")) == ["1", "2", "3", "4", "5"]


@pytest.mark.parametrize("query,facility_type", [("green", "recycling"), ("road", "all"), ("", "scrap_collection")])
def test_filters_commute(query, facility_type):
    text_first = filter_by_type(filter_by_query(FACILITIES, query), facility_type)
    type_first = filter_by_query(filter_by_type(FACILITIES, facility_type), query)
    assert _ids(text_first) == _ids(type_first)


def test_filters_are_idempotent():
    once = filter_facilities(FACILITIES, "green", "recycling")
    twice = filter_facilities(once, "green", "recycling")
    assert _ids(once) == _ids(twice) == ["1", "4"]


def test_unknown_types_fall_back_to_all():
    assert normalize_type("Recycling ") == "recycling"
    assert normalize_type("landfill") == "all"
    assert normalize_type(None) == "all"


def test_directions_prefer_coordinates():
    url = directions_url(
        {"latitude": 22.7196, "longitude": 75.8577, "address": "12 Ring Road", "city": "Indore"},
        "https://www.google.com/maps/dir/",
        "https://www.google.com/maps/search/",
    )
    assert url == "https://www.google.com/maps/dir/?api=1&destination=22.7196%2C75.8577"


def test_directions_fall_back_to_address_search():
    url = directions_url(
        {"latitude": None, "longitude": None, "address": "Plot 7", "city": "Pune"},
        "https://www.google.com/maps/dir/",
        "https://www.google.com/maps/search/",
    )
    assert url == "https://www.google.com/maps/search/?api=1&query=Plot%207%2C%20Pune"


def test_listing_shows_only_active_facilities_filtered(app, client):
    create_facility(app, name="Green Valley Recycling", city="Indore")
    create_facility(app, name="Greenfield Biogas", type="biomethanization", city="Pune")
    create_facility(app, name="Closed Green Depot", city="Agra", is_active=False)

    html = client.get("/facilities/?q=green&type=recycling").get_data(as_text=True)

    assert not _card_is_hidden(html, "Green Valley Recycling")
    assert _card_is_hidden(html, "Greenfield Biogas")
    assert "Closed Green Depot" not in html


def test_listing_ships_full_active_set_for_in_page_filtering(app, client):
    create_facility(app, name="Green Valley Recycling", city="Indore")
    create_facility(app, name="Okhla Plant", type="waste_to_energy", city="New Delhi")

    html = client.get("/facilities/").get_data(as_text=True)

    assert not _card_is_hidden(html, "Green Valley Recycling")
    assert not _card_is_hidden(html, "Okhla Plant")
    assert 'data-type="waste_to_energy"' in html
    assert "js/facilities.js" in html
    assert re.search(r'<section class="empty" id="facility-empty" hidden>', html)


def test_empty_filter_result_suggests_adjusting(app, client):
    create_facility(app)
    html = client.get("/facilities/?q=nowhere").get_data(as_text=True)
    assert "Try adjusting your search or filter criteria" in html
    assert '<section class="empty" id="facility-empty">' in html
    assert _card_is_hidden(html, "Green Valley Recycling Center")


def test_no_facilities_at_all_says_so(client):
    html = client.get("/facilities/").get_data(as_text=True)
    assert "No waste management facilities are currently available in the system" in html


def test_directions_redirects_to_maps(app, client):
    facility_id = create_facility(app, latitude=22.72, longitude=75.86)
    response = client.get(f"/facilities/{facility_id}/directions")
    assert response.status_code == 302
    assert response.headers["Location"].startswith("https://www.google.com/maps/dir/?api=1&destination=22.72")


def test_directions_for_unknown_facility_is_404(client):
    assert client.get("/facilities/missing/directions").status_code == 404
