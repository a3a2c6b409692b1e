import dataclasses

import pytest
from openai import OpenAIError

from conftest import FakeClient
from errors import ReportError, UpstreamError
from models import FireMission, LatLonInput, ManualInput
from report import ReportGenerator, ReportInput, build_prompt, format_solution
from solver import solve


def report_input(catalog, position=None, weapon="M777 Howitzer", charge="Red", **kw):
    mission = FireMission(weapon=weapon, charge=charge, position=position or ManualInput(10000, 45),
                          ammunition="M795 HE", projectile="Standard", **kw)
    return ReportInput.from_solution(mission, catalog.profile(weapon), solve(mission, catalog))


class TestReportInput:

    def test_carries_no_position(self):
        names = {f.name for f in dataclasses.fields(ReportInput)}
        assert not any(("lat" in n or "lon" in n or "mgrs" in n) for n in names)

    def test_from_solution(self, catalog):
        inp = report_input(catalog, weapon_elevation_m=120.0, target_elevation_m=80.0)
        assert inp.weapon_system == "M777 Howitzer"
        assert inp.charge == "Red"
        assert inp.range == 10000
        assert inp.initial_azimuth == 45
        assert inp.elevation == 120.0
        assert inp.target_elevation == 80.0
        assert not inp.is_mortar


class TestFormatSolution:

    def test_howitzer(self, catalog):
        text = format_solution(report_input(catalog))
        assert "Weapon System: M777 Howitzer" in text
        assert "Charge: Red" in text
        assert "Grid Azimuth: 800 mils (45.0°)" in text
        assert "Quadrant Elevation (QE): 73 mils" in text
        assert "Range to Target: 10000 meters" in text
        assert "first-order estimate" in text

    def test_mortar_uses_charge_ring(self, catalog):
        text = format_solution(report_input(catalog, ManualInput(1000, 10), "81mm Mortar", "Ring 3"))
        assert "Charge Ring: Ring 3" in text

    def test_site_picture(self, catalog):
        text = format_solution(report_input(catalog, weapon_elevation_m=100.0, target_elevation_m=250.0))
        assert "Target is 150 m above the weapon" in text

    def test_below_minimum_indirect_range(self, catalog):
        text = format_solution(report_input(catalog, ManualInput(1500, 90)))
        assert "no standard indirect fire solution" in text
        assert "Direct fire bearing: 90.0° (1600 mils)" in text


class TestBuildPrompt:

    def test_contents(self, catalog):
        prompt = build_prompt(report_input(catalog, met_data="Wind: 10 kph from 270°"))
        assert "Weapon System: M777 Howitzer" in prompt
        assert "17.777" in prompt
        assert "Charge Ring" in prompt
        assert "under 2000m for howitzers" in prompt
        assert "Wind: 10 kph from 270°" in prompt
        assert "Charge: [Charge or Charge Ring]" in prompt

    def test_mortar_label(self, catalog):
        prompt = build_prompt(report_input(catalog, ManualInput(1000, 10), "60mm Mortar", "Ring 1"))
        assert "Charge Ring: [Charge or Charge Ring]" in prompt

    def test_no_coordinates(self, catalog):
        prompt = build_prompt(report_input(catalog, LatLonInput(40.7128, -74.006, 40.7306, -73.9352)))
        assert "40.7128" not in prompt
        assert "73.9352" not in prompt


class TestReportGenerator:

    def test_generate(self, catalog):
        client = FakeClient("  QE 73 mils  ")
        gen = ReportGenerator(client=client, model="test-model")
        assert gen.available
        assert gen.generate(report_input(catalog)) == "QE 73 mils"
        call = client.calls[0]
        assert call["model"] == "test-model"
        assert call["messages"][0]["role"] == "system"
        assert "Weapon System: M777 Howitzer" in call["messages"][1]["content"]

    def test_not_configured(self, catalog, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        gen = ReportGenerator()
        assert not gen.available
        with pytest.raises(ReportError):
            gen.generate(report_input(catalog))

    def test_empty_reply(self, catalog):
        with pytest.raises(ReportError):
            ReportGenerator(client=FakeClient("")).generate(report_input(catalog))

    def test_api_failure(self, catalog):
        gen = ReportGenerator(client=FakeClient(exc=OpenAIError("quota exceeded")))
        with pytest.raises(UpstreamError) as e:
            gen.generate(report_input(catalog))
        assert e.value.service == "report"
        assert "quota exceeded" in str(e.value)
