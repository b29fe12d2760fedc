from haven.models import BlockedUser, SearchInsight

from .conftest import auth_headers

FITZROY = (-37.7990, 144.9780)
BRUNSWICK = (-37.7670, 144.9610)
GEELONG = (-38.1499, 144.3617)


def _seed(make_profile):
    viewer = make_profile(family_name="Viewer", location_lat=FITZROY[0], location_lng=FITZROY[1])
    near = make_profile(
        family_name="Anna Zhou",
        location_name="Brunswick",
        location_lat=BRUNSWICK[0],
        location_lng=BRUNSWICK[1],
        kids_ages=[4],
    )
    far = make_profile(
        family_name="Ben Adams",
        location_name="Geelong",
        location_lat=GEELONG[0],
        location_lng=GEELONG[1],
        kids_ages=[12],
    )
    teacher = make_profile(
        family_name="Cara Moss",
        user_type="teacher",
        location_name="Fitzroy North",
        kids_ages=[],
        bio="Piano lessons",
    )
    return viewer, near, far, teacher


def test_lists_everyone_sorted_by_last_name(client, make_profile):
    viewer, near, far, teacher = _seed(make_profile)
    make_profile(family_name="Banned", is_banned=True)
    make_profile(family_name="Inactive", is_active=False)

    names = [p["family_name"] for p in client.get("/discover", headers=auth_headers(viewer)).json()]

    assert names == ["Ben Adams", "Cara Moss", "Anna Zhou"]


def test_radius_uses_viewer_coordinates(client, make_profile):
    viewer, near, far, teacher = _seed(make_profile)

    results = client.get("/discover?radius_km=10", headers=auth_headers(viewer)).json()

    assert [p["id"] for p in results] == [near.id]
    assert 3 < results[0]["distance_km"] < 5


def test_radius_with_explicit_origin(client, make_profile):
    viewer, near, far, teacher = _seed(make_profile)
    results = client.get(
        f"/discover?radius_km=5&lat={GEELONG[0]}&lng={GEELONG[1]}", headers=auth_headers(viewer)
    ).json()
    assert [p["id"] for p in results] == [far.id]


def test_radius_without_origin_falls_back_to_location_filter(client, make_profile):
    viewer = make_profile(family_name="Nowhere")
    seeded_viewer, near, far, teacher = _seed(make_profile)

    results = client.get(
        "/discover?radius_km=10&location=fitzroy", headers=auth_headers(viewer)
    ).json()

    # "Cara Moss" in Fitzroy North, then "Viewer" in Fitzroy
    assert [p["id"] for p in results] == [teacher.id, seeded_viewer.id]


def test_age_and_type_filters(client, make_profile):
    viewer, near, far, teacher = _seed(make_profile)
    headers = auth_headers(viewer)

    kids = client.get("/discover?age_min=10&age_max=14", headers=headers).json()
    assert [p["id"] for p in kids] == [far.id]

    teachers = client.get("/discover?user_types=teacher", headers=headers).json()
    assert [p["id"] for p in teachers] == [teacher.id]


def test_invalid_filters_are_400(client, make_profile):
    viewer, *_ = _seed(make_profile)
    headers = auth_headers(viewer)
    assert client.get("/discover?age_min=10&age_max=5", headers=headers).status_code == 400
    assert client.get("/discover?lat=-37.8", headers=headers).status_code == 400


def test_search_records_insight(client, make_profile, db):
    viewer, near, far, teacher = _seed(make_profile)

    results = client.get("/discover?search=Piano", headers=auth_headers(viewer)).json()

    assert [p["id"] for p in results] == [teacher.id]
    insight = db.query(SearchInsight).filter(SearchInsight.context == "discover").one()
    assert insight.term == "piano"
    assert insight.count == 1


def test_blocked_and_excluded_profiles_are_hidden(client, make_profile, db):
    viewer, near, far, teacher = _seed(make_profile)
    db.add(BlockedUser(blocker_id=near.id, blocked_id=viewer.id))
    db.commit()

    results = client.get(f"/discover?exclude={far.id}", headers=auth_headers(viewer)).json()

    assert [p["id"] for p in results] == [teacher.id]


def test_map_pins_are_fuzzed_unless_exact(client, make_profile):
    viewer, near, far, teacher = _seed(make_profile)
    exact = make_profile(
        family_name="Exact", location_lat=-37.80, location_lng=144.97, show_exact_location=True
    )

    pins = {p["id"]: p for p in client.get("/discover/map", headers=auth_headers(viewer)).json()}

    assert teacher.id not in pins
    assert pins[exact.id]["lat"] == -37.80
    assert pins[exact.id]["exact"] is True
    assert pins[near.id]["exact"] is False
    assert abs(pins[near.id]["lat"] - BRUNSWICK[0]) < 0.05
