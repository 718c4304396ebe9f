from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import api
from forecast.errors import InvalidResponse
from forecast.surplus import RenewableSurplus

NOW = datetime(2023, 8, 14, 10, 0, tzinfo=timezone.utc)


def _surplus(hours_from_now, generation, load):
    return RenewableSurplus(
        timestamp=NOW + timedelta(hours=hours_from_now),
        generation=generation,
        load=load,
        surplus=generation - load,
    )


class FakeEntsoeClient:
    def __init__(self, series=None, error=None):
        self.series = series or []
        self.error = error
        self.calls = []

    async def get_renewable_surplus_series(self, bidding_zone, period_start, period_end):
        self.calls.append((bidding_zone, period_start, period_end))
        if self.error is not None:
            raise self.error
        return list(self.series)


# 10:00 .. 09:00 next day, plus a strong midday point and a night point
SERIES = [
    _surplus(0, 100.0, 90.0),
    _surplus(3, 500.0, 100.0),      # 13:00, +400
    _surplus(10, 900.0, 100.0),     # 20:00, +800
    _surplus(13, 300.0, 100.0),     # 23:00, +200 (night)
    _surplus(17, 450.0, 100.0),     # 03:00, +350 (night)
    _surplus(20, 100.0, 400.0),     # 06:00, -300
]


@pytest.fixture
def fake(monkeypatch):
    client = FakeEntsoeClient(SERIES)
    monkeypatch.setattr(api, "_entsoe_client", client)
    monkeypatch.setattr(api, "_utcnow", lambda: NOW)
    return client


@pytest.fixture
def http():
    return TestClient(api.app)


def test_health(fake, http):
    body = http.get("/health").json()
    assert body["status"] == "ok"
    assert body["api_key_configured"] is True


def test_countries(http):
    countries = http.get("/api/v1/countries").json()["countries"]
    assert "BE" in countries
    assert countries == sorted(countries)


def test_zones(http):
    resp = http.get("/api/v1/zones/DE")
    assert resp.status_code == 200
    zones = resp.json()
    assert len(zones) == 5
    assert zones[0] == {"code": "10Y1001A1001A83F", "name": "Germany", "tso": None}
    assert zones[1]["tso"] == "50Hertz"
    assert http.get("/api/v1/zones/XX").status_code == 404


def test_night_surplus(fake, http):
    resp = http.get("/api/v1/renewable-surplus/de/night")
    assert resp.status_code == 200
    body = resp.json()
    assert body["data"]["timestamp"] == "2023-08-15T03:00:00+00:00"
    assert body["data"]["surplus_mw"] == 350.0
    assert body["meta"]["country_code"] == "DE"
    assert body["meta"]["zone"] == "10Y1001A1001A83F"
    assert body["meta"]["filter_applied"] == "Night hours (22:00-06:00)"
    assert fake.calls == [("10Y1001A1001A83F", "202308141000", "202308161000")]


def test_next_6h(fake, http):
    body = http.get("/api/v1/renewable-surplus/BE/next-6h").json()
    assert body["data"]["timestamp_utc"] == "2023-08-14 13:00:00 UTC"
    assert body["data"]["surplus_mw"] == 400.0
    assert body["data"]["surplus_percentage"] == pytest.approx(80.0)
    assert body["data"]["has_excess"] is True
    assert body["meta"]["filter_applied"] == "Next 6 hours from now"
    # one extra hour is fetched past the window
    assert fake.calls == [("10YBE----------2", "202308141000", "202308141700")]


def test_next_24h(fake, http):
    body = http.get("/api/v1/renewable-surplus/BE/next-24h").json()
    assert body["data"]["surplus_mw"] == 800.0


def test_custom_hours(fake, http):
    body = http.get("/api/v1/renewable-surplus/BE/next", params={"hours": 2}).json()
    assert body["data"]["surplus_mw"] == 10.0
    assert http.get("/api/v1/renewable-surplus/BE/next", params={"hours": 0}).status_code == 422
    assert http.get("/api/v1/renewable-surplus/BE/next", params={"hours": 500}).status_code == 422


def test_unknown_country_is_bad_request(fake, http):
    resp = http.get("/api/v1/renewable-surplus/XX/next-6h")
    assert resp.status_code == 400
    assert fake.calls == []


def test_upstream_error_maps_to_502(monkeypatch, http):
    monkeypatch.setattr(api, "_entsoe_client", FakeEntsoeClient(error=InvalidResponse("999: No matching data")))
    resp = http.get("/api/v1/renewable-surplus/BE/next-24h")
    assert resp.status_code == 502
    assert "No matching data" in resp.json()["detail"]


def test_empty_window_is_404(monkeypatch, http):
    monkeypatch.setattr(api, "_utcnow", lambda: NOW)
    monkeypatch.setattr(api, "_entsoe_client", FakeEntsoeClient([_surplus(12, 10.0, 1.0)]))
    assert http.get("/api/v1/renewable-surplus/BE/next-6h").status_code == 404
    # 22:00 is a night hour, so the night query still finds it
    assert http.get("/api/v1/renewable-surplus/BE/night").status_code == 200


def test_missing_api_key_is_503(monkeypatch, http):
    monkeypatch.setattr(api, "_entsoe_client", None)
    assert http.get("/api/v1/renewable-surplus/BE/night").status_code == 503
    assert http.get("/health").json()["api_key_configured"] is False


def test_series(fake, http):
    body = http.get("/api/v1/renewable-surplus/BE/series", params={"hours": 24}).json()
    assert len(body["data"]) == len(SERIES)
    assert body["summary"]["count"] == len(SERIES)
    assert body["summary"]["excess_hours"] == 5
    assert body["summary"]["max_surplus"] == 800.0
    assert body["summary"]["peak_timestamp"] == "2023-08-14T20:00:00+00:00"
    assert fake.calls[0][2] == "202308151100"


def test_plot_json(fake, http):
    body = http.get("/api/v1/renewable-surplus/BE/plot-json").json()
    assert body["data"]["surplus"] == [s.surplus for s in SERIES]
    assert body["data"]["timestamps"][0] == "2023-08-14T10:00:00+00:00"


def test_plot_json_empty_is_404(monkeypatch, http):
    monkeypatch.setattr(api, "_utcnow", lambda: NOW)
    monkeypatch.setattr(api, "_entsoe_client", FakeEntsoeClient([]))
    assert http.get("/api/v1/renewable-surplus/BE/plot-json").status_code == 404
