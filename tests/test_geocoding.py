import asyncio

import httpx

from haven.services import geocoding_service

from .conftest import auth_headers


def _mock_nominatim(monkeypatch, handler):
    calls = []
    real_client = httpx.AsyncClient

    def recording_handler(request):
        calls.append(request)
        return handler(request)

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(recording_handler), **kwargs)

    monkeypatch.setattr(geocoding_service.httpx, "AsyncClient", client_factory)
    return calls


def test_geocode_suburb_caches_result(monkeypatch):
    calls = _mock_nominatim(
        monkeypatch, lambda request: httpx.Response(200, json=[{"lat": "-37.79", "lon": "144.98"}])
    )

    first = asyncio.run(geocoding_service.geocode_suburb("Fitzroy"))
    second = asyncio.run(geocoding_service.geocode_suburb("fitzroy"))

    assert first == (-37.79, 144.98)
    assert second == first
    assert len(calls) == 1
    assert "User-Agent" in calls[0].headers


def test_geocode_suburb_returns_none_on_failure(monkeypatch):
    _mock_nominatim(monkeypatch, lambda request: httpx.Response(503, text="busy"))
    assert asyncio.run(geocoding_service.geocode_suburb("Carlton")) is None
    assert asyncio.run(geocoding_service.geocode_suburb("   ")) is None


def test_autocomplete_route(client, make_profile, monkeypatch):
    _mock_nominatim(
        monkeypatch,
        lambda request: httpx.Response(
            200,
            json=[
                {"display_name": "Brunswick, Victoria", "lat": "-37.76", "lon": "144.96"},
                {"lat": "0", "lon": "0"},
            ],
        ),
    )
    me = make_profile()

    response = client.get("/geocoding/search?q=Brun", headers=auth_headers(me))

    assert response.status_code == 200
    assert response.json()["results"] == [
        {"display_name": "Brunswick, Victoria", "lat": "-37.76", "lon": "144.96"}
    ]
    assert client.get("/geocoding/search?q=Br", headers=auth_headers(me)).json() == {"results": []}


def test_autocomplete_provider_error_is_502(client, make_profile, monkeypatch):
    _mock_nominatim(monkeypatch, lambda request: httpx.Response(500, text="down"))
    me = make_profile()
    assert client.get("/geocoding/search?q=Northcote", headers=auth_headers(me)).status_code == 502
