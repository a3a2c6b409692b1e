import pytest
from fastapi.testclient import TestClient

import met
from api_server import create_app
from conftest import FakeClient
from errors import UpstreamError
from report import ReportGenerator

MANUAL = {"weapon": "M777 Howitzer", "charge": "Red", "mode": "manual", "range_m": 10000, "azimuth_deg": 45}


@pytest.fixture
def client(catalog):
    return TestClient(create_app(catalog, reporter=ReportGenerator(client=FakeClient("AI REPORT"))))


def assert_error(resp, status, kind, field):
    assert resp.status_code == status, resp.text
    body = resp.json()
    assert body["ok"] is False
    assert body["error"] == kind
    assert body["field"] == field
    assert body["message"]


class TestCatalogEndpoints:

    def test_ping(self, client):
        assert client.get("/api/ping").json() == {"ok": True}

    def test_weapons(self, client):
        weapons = client.get("/api/weapons").json()["weapons"]
        assert len(weapons) == 7
        assert weapons[0]["name"] == "M777 Howitzer"

    def test_weapon(self, client):
        body = client.get("/api/weapons/81mm Mortar").json()
        assert body["weapon"]["charge_label"] == "Charge Ring"

    def test_unknown_weapon(self, client):
        assert_error(client.get("/api/weapons/Trebuchet"), 404, "unknown_weapon", "weapon")


class TestSolution:

    def test_manual(self, client):
        body = client.post("/api/solution", json=MANUAL).json()
        assert body["ok"] is True
        assert body["solution"]["elevation_deg"] == pytest.approx(4.1219, abs=1e-3)
        assert body["solution"]["azimuth_mil"] == pytest.approx(800.0)
        assert "Quadrant Elevation (QE): 73 mils" in body["summary"]

    def test_latlon(self, client):
        payload = {"weapon": "CAESAR", "charge": "Charge 2", "mode": "latlon",
                   "weapon_lat": 0.0, "weapon_lon": 0.0, "target_lat": 0.0, "target_lon": 0.05}
        sol = client.post("/api/solution", json=payload).json()["solution"]
        assert sol["azimuth_deg"] == pytest.approx(90.0)
        assert sol["range_m"] == pytest.approx(5559.75, abs=1.0)

    def test_mgrs(self, client):
        payload = {"weapon": "M109 Paladin", "charge": "White", "mode": "mgrs",
                   "weapon_mgrs": "33UXP04", "target_mgrs": "33UXP14"}
        resp = client.post("/api/solution", json=payload)
        assert resp.status_code == 200
        assert resp.json()["solution"]["range_m"] == pytest.approx(10000, rel=0.01)

    def test_out_of_range(self, client):
        resp = client.post("/api/solution", json={**MANUAL, "charge": "White", "range_m": 50000})
        assert_error(resp, 422, "out_of_range", "range")
        assert resp.json()["reachable_charges"] == ["Red"]

    def test_unknown_charge(self, client):
        assert_error(client.post("/api/solution", json={**MANUAL, "charge": "Purple"}), 404, "unknown_charge", "charge")

    def test_missing_field(self, client):
        resp = client.post("/api/solution", json={"weapon": "M777 Howitzer", "charge": "Red",
                                                   "mode": "mgrs", "weapon_mgrs": "33UXP04"})
        assert_error(resp, 422, "missing_input", "target_mgrs")

    def test_invalid_latitude(self, client):
        payload = {**MANUAL, "mode": "latlon", "weapon_lat": 91, "weapon_lon": 0, "target_lat": 0, "target_lon": 0}
        assert_error(client.post("/api/solution", json=payload), 422, "range", "weapon_lat")

    def test_bad_mgrs(self, client):
        payload = {**MANUAL, "mode": "mgrs", "weapon_mgrs": "33IXP04", "target_mgrs": "33UXP04"}
        assert_error(client.post("/api/solution", json=payload), 422, "format", "weapon_mgrs")

    def test_zero_manual_range(self, client):
        assert_error(client.post("/api/solution", json={**MANUAL, "range_m": 0}), 422, "range", "range_m")

    def test_request_validation(self, client):
        assert_error(client.post("/api/solution", json={**MANUAL, "range_m": "far"}), 422, "format", "range_m")
        body = dict(MANUAL)
        del body["weapon"]
        assert_error(client.post("/api/solution", json=body), 422, "format", "weapon")


class TestReport:

    def test_report(self, client):
        body = client.post("/api/report", json=MANUAL).json()
        assert body["report"] == "AI REPORT"
        assert body["solution"]["range_m"] == 10000

    def test_not_configured(self, catalog, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        client = TestClient(create_app(catalog, reporter=ReportGenerator()))
        assert_error(client.post("/api/report", json=MANUAL), 503, "report", None)


class TestTable:

    def test_table(self, client):
        body = client.get("/api/table", params={"weapon": "M777 Howitzer", "charge": "Green", "step": 500}).json()
        assert body["muzzle_velocity"] == 381.0
        assert body["rows"][0]["range_m"] == 100.0
        assert body["rows"][1]["range_m"] == 600.0
        assert body["max_range_m"] <= 381 ** 2 / 9.80665

    def test_bad_step(self, client):
        resp = client.get("/api/table", params={"weapon": "M777 Howitzer", "charge": "Green", "step": 0})
        assert_error(resp, 422, "range", "step")

    @pytest.mark.parametrize("step", [1e-300, 1])
    def test_step_too_fine(self, client, step):
        resp = client.get("/api/table", params={"weapon": "CAESAR", "charge": "Charge 3", "step": step})
        assert_error(resp, 422, "range", "step")

    def test_unknown_weapon(self, client):
        resp = client.get("/api/table", params={"weapon": "Nope", "charge": "Green"})
        assert_error(resp, 404, "unknown_weapon", "weapon")


class TestMissionData:

    POSITIONS = {"mode": "latlon", "weapon_lat": 0.0, "weapon_lon": 0.0, "target_lat": 0.0, "target_lon": 0.05}

    def test_mission_data(self, client, monkeypatch):
        seen = []

        def fake(weapon, target, timeout=None):
            seen.append((weapon, target))
            return met.MissionData(100, 150, "Temperature: 10.0°C", 5559.75)

        monkeypatch.setattr(met, "fetch_mission_data", fake)
        body = client.post("/api/mission_data", json=self.POSITIONS).json()
        assert body == {"ok": True, "weapon_elevation_m": 100, "target_elevation_m": 150,
                        "met_data": "Temperature: 10.0°C", "range_m": 5559.75}
        assert seen[0][1].lon == 0.05

    def test_upstream_failure(self, client, monkeypatch):
        def fake(weapon, target, timeout=None):
            raise UpstreamError("rate limited", status=429, service="weather")

        monkeypatch.setattr(met, "fetch_mission_data", fake)
        assert_error(client.post("/api/mission_data", json=self.POSITIONS), 502, "upstream", "weather")

    def test_manual_rejected(self, client):
        resp = client.post("/api/mission_data", json={"mode": "manual", "range_m": 1000, "azimuth_deg": 0})
        assert_error(resp, 422, "format", "mode")
