from dataclasses import replace

import httpx
import pytest

from flightwall.errors import ConfigurationError, UpstreamError
from flightwall.models.states import AdsbLolAircraft, AdsbLolPayload, BoundingBox
from flightwall.providers.adsblol import AdsbLolClient, adapt_aircraft, adapt_payload
from flightwall.providers.aerodatabox import AeroDataBoxClient
from flightwall.providers.opensky import OpenSkyClient, normalize_rows

AERODATA_HOST = "aerodatabox.p.rapidapi.com"
DENVER_BBOX = {"lamin": 39.7, "lomin": -104.99, "lamax": 39.9, "lomax": -104.7}
NOW_S = 1714765200.0


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_adapter_converts_units_and_fills_placeholders():
    aircraft = AdsbLolAircraft.model_validate(
        {
            "hex": "~A1B2C3",
            "flight": "DAL123  ",
            "t": "A321",
            "lat": 39.8,
            "lon": -104.8,
            "alt_baro": 1000,
            "alt_geom": 1100,
            "gs": 100,
            "track": 270.5,
            "baro_rate": 600,
            "squawk": "1200",
            "seen": 2.0,
            "seen_pos": 3.4,
        }
    )

    record = adapt_aircraft(aircraft, NOW_S)
    row = record.to_row()

    assert record.icao24 == "a1b2c3"
    assert record.callsign == "DAL123"
    assert record.baro_altitude == pytest.approx(304.8)
    assert record.geo_altitude == pytest.approx(335.28)
    assert record.velocity == pytest.approx(51.4444)
    assert record.vertical_rate == pytest.approx(3.048)
    assert record.last_contact == 1714765198
    assert record.time_position == 1714765197
    assert len(row) == 18
    assert row[2] == ""
    assert row[12] is None
    assert row[15] is False
    assert row[16] == 0
    assert row[17] == "A321"


def test_adapter_handles_ground_and_geometric_rate():
    aircraft = AdsbLolAircraft.model_validate(
        {"hex": "abc123", "lat": 39.8, "lon": -104.8, "alt_baro": "ground", "geom_rate": -300}
    )

    record = adapt_aircraft(aircraft, NOW_S)

    assert record.on_ground is True
    assert record.baro_altitude is None
    assert record.vertical_rate == pytest.approx(-1.524)


def test_adapter_drops_aircraft_without_position():
    assert adapt_aircraft(AdsbLolAircraft(hex="abc123", lat=39.8), NOW_S) is None
    assert adapt_aircraft(AdsbLolAircraft(lat=39.8, lon=-104.8), NOW_S) is None


def test_adapted_payload_keeps_only_aircraft_inside_bbox():
    payload = AdsbLolPayload.model_validate(
        {
            "now": NOW_S * 1000,
            "ac": [
                {"hex": "inside", "lat": 39.8, "lon": -104.8},
                {"hex": "outside", "lat": 40.5, "lon": -104.8},
            ],
        }
    )

    page = adapt_payload(payload, BoundingBox(**DENVER_BBOX))

    assert page.provider == "adsb.lol"
    assert page.time == int(NOW_S)
    assert [record.icao24 for record in page.records] == ["inside"]


def test_normalize_rows_drops_unusable_rows_and_nan():
    good = ["abc123", "TEST1 ", "US", 1, 2, -104.8, 39.8, float("nan"), False, 100.0, 90.0, 0.0, None, 1000.0, "7000", False, 0]
    no_position = ["def456", "X", "US", 1, 2, None, None, 1.0, False, 1.0, 1.0, 0.0, None, 1.0, None, False, 0]
    short = ["ghi789", "Y"]

    records = normalize_rows([good, no_position, short])

    assert len(records) == 1
    assert records[0].callsign == "TEST1"
    assert records[0].baro_altitude is None
    assert records[0].to_row()[17] is None


@pytest.mark.anyio
async def test_opensky_client_sends_bbox_and_headers(test_settings):
    seen = {}

    def handler(request: httpx.Request):
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"time": 1714765200, "states": []})

    page = await OpenSkyClient(_client(handler), settings=test_settings).get_states(
        BoundingBox(**DENVER_BBOX), {"Authorization": "Bearer tok"}
    )

    assert page.time == 1714765200
    assert page.records == []
    assert seen["params"]["lamin"] == "39.7"
    assert seen["auth"] == "Bearer tok"


@pytest.mark.anyio
async def test_opensky_client_classifies_failures(test_settings):
    bbox = BoundingBox(**DENVER_BBOX)

    def unavailable(request: httpx.Request):
        return httpx.Response(503, text="maintenance")

    with pytest.raises(UpstreamError) as excinfo:
        await OpenSkyClient(_client(unavailable), settings=test_settings).get_states(bbox, {})
    assert excinfo.value.kind == "transient"
    assert excinfo.value.status == 503
    assert excinfo.value.detail == "maintenance"

    def not_json(request: httpx.Request):
        return httpx.Response(200, text="<html>")

    with pytest.raises(UpstreamError) as excinfo:
        await OpenSkyClient(_client(not_json), settings=test_settings).get_states(bbox, {})
    assert excinfo.value.kind == "malformed"


def test_adsblol_point_url_uses_bbox_centre(test_settings):
    client = AdsbLolClient(_client(lambda request: httpx.Response(200)), settings=test_settings)

    url = client.point_url(BoundingBox(**DENVER_BBOX))

    assert url.startswith("https://api.adsb.lol/v2/point/39.8000/-104.8450/")


@pytest.mark.anyio
async def test_aerodatabox_sends_rapidapi_headers(test_settings):
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["key"] = request.headers.get("X-RapidAPI-Key")
        seen["host"] = request.headers.get("X-RapidAPI-Host")
        return httpx.Response(200, json=[{"number": "DL 123"}])

    data = await AeroDataBoxClient(_client(handler), settings=test_settings).get_flight("DAL123")

    assert data == [{"number": "DL 123"}]
    assert seen["url"] == f"https://{AERODATA_HOST}/flights/callsign/DAL123"
    assert seen["key"] == "test-key"
    assert seen["host"] == AERODATA_HOST


@pytest.mark.anyio
async def test_aerodatabox_no_content_is_not_found(test_settings):
    def handler(request: httpx.Request):
        return httpx.Response(204)

    with pytest.raises(UpstreamError) as excinfo:
        await AeroDataBoxClient(_client(handler), settings=test_settings).get_aircraft("a1b2c3")

    assert excinfo.value.kind == "not_found"
    assert excinfo.value.status == 204


@pytest.mark.anyio
async def test_aerodatabox_requires_configuration(test_settings):
    def handler(request):  # pragma: no cover - never called
        raise AssertionError

    client = AeroDataBoxClient(_client(handler), settings=replace(test_settings, aerodata_key=None))

    with pytest.raises(ConfigurationError) as excinfo:
        await client.get_flight("DAL123")
    assert excinfo.value.code == "aerodata_not_configured"
