import logging
import math

import pytest

from errors import RangeError, OutOfRangeError, MissingInputError, UnknownWeaponError, UnknownChargeError
from models import FireMission, LatLonInput, MgrsInput, ManualInput
from solver import solve, range_and_azimuth, reachable_charges, uniform_jitter


def mission(position, weapon="M777 Howitzer", charge="Red"):
    return FireMission(weapon=weapon, charge=charge, position=position)


class TestManualMode:

    def test_solution(self, catalog):
        sol = solve(mission(ManualInput(10000, 45)), catalog)
        assert sol.elevation_deg == pytest.approx(4.1219, abs=1e-3)
        assert sol.azimuth_deg == 45
        assert sol.range_m == 10000

    def test_deterministic(self, catalog):
        m = mission(ManualInput(7500, 123.4))
        assert solve(m, catalog) == solve(m, catalog)

    @pytest.mark.parametrize("pos, field", [
        (ManualInput(0, 45), "range_m"),
        (ManualInput(-10, 45), "range_m"),
        (ManualInput(math.inf, 45), "range_m"),
        (ManualInput(1000, 360), "azimuth_deg"),
        (ManualInput(1000, -1), "azimuth_deg"),
    ])
    def test_invalid(self, catalog, pos, field):
        with pytest.raises(RangeError) as e:
            solve(mission(pos), catalog)
        assert e.value.field == field

    def test_out_of_range(self, catalog):
        with pytest.raises(OutOfRangeError) as e:
            solve(mission(ManualInput(50000, 90), charge="White"), catalog)
        assert e.value.max_range == pytest.approx(563 ** 2 / 9.80665)
        assert e.value.reachable_charges == ("Red",)

    def test_out_of_range_for_every_charge(self, catalog):
        with pytest.raises(OutOfRangeError) as e:
            solve(mission(ManualInput(100000, 90), charge="Red"), catalog)
        assert e.value.reachable_charges == ()

    def test_catalog_checked_first(self, catalog):
        with pytest.raises(UnknownWeaponError):
            solve(mission(ManualInput(-1, 0), weapon="Nope"), catalog)
        with pytest.raises(UnknownChargeError):
            solve(mission(ManualInput(-1, 0), charge="Purple"), catalog)


class TestCoordinateModes:

    def test_latlon(self, catalog):
        sol = solve(mission(LatLonInput(0.0, 0.0, 0.0, 0.05)), catalog)
        assert sol.range_m == pytest.approx(6371000.0 * math.radians(0.05))
        assert sol.azimuth_deg == pytest.approx(90.0)

    def test_latlon_same_point(self, catalog):
        sol = solve(mission(LatLonInput(10.0, 10.0, 10.0, 10.0)), catalog)
        assert sol.range_m == 0.0
        assert sol.elevation_deg == 0.0

    def test_latlon_invalid(self, catalog):
        with pytest.raises(RangeError) as e:
            solve(mission(LatLonInput(95.0, 0.0, 0.0, 0.0)), catalog)
        assert e.value.field == "weapon_lat"

    def test_mgrs(self, catalog):
        rng, az = range_and_azimuth(MgrsInput("33UXP04", "33UXP14"))
        assert rng == pytest.approx(10000, rel=0.01)
        assert 85.0 < az < 95.0
        sol = solve(mission(MgrsInput("33UXP04", "33UXP14")), catalog)
        assert sol.range_m == pytest.approx(rng)

    def test_mgrs_missing(self, catalog):
        with pytest.raises(MissingInputError) as e:
            solve(mission(MgrsInput("", "33UXP04")), catalog)
        assert e.value.field == "weapon_mgrs"

    def test_coordinates_not_logged(self, catalog, caplog):
        caplog.set_level(logging.DEBUG, logger="arty")
        solve(mission(LatLonInput(40.7128, -74.006, 40.7306, -73.9352)), catalog)
        assert caplog.records
        assert "40.7128" not in caplog.text
        assert "73.9352" not in caplog.text


class TestJitter:

    def test_injected(self, catalog):
        shift = lambda name, value: value + 1.0 if name == "azimuth_deg" else value
        sol = solve(mission(ManualInput(10000, 359.5)), catalog, jitter=shift)
        assert sol.azimuth_deg == pytest.approx(0.5)
        assert sol.elevation_deg == pytest.approx(4.1219, abs=1e-3)

    def test_uniform_seeded(self, catalog):
        m = mission(ManualInput(10000, 45))
        base = solve(m, catalog)
        a = solve(m, catalog, jitter=uniform_jitter(0.5, seed=7))
        b = solve(m, catalog, jitter=uniform_jitter(0.5, seed=7))
        assert a == b
        assert base.elevation_deg <= a.elevation_deg <= base.elevation_deg + 0.5
        assert base.azimuth_deg <= a.azimuth_deg <= base.azimuth_deg + 0.5
        assert a.time_of_flight_s == base.time_of_flight_s
        assert a.range_m == base.range_m


class TestReachableCharges:

    def test_m777(self, catalog):
        # vacuum max ranges: Green ~14.8 km, White ~32.3 km, Red ~69.7 km
        assert reachable_charges(catalog, "M777 Howitzer", 20000) == ("White", "Red")
        assert reachable_charges(catalog, "M777 Howitzer", 100000) == ()

    def test_unknown_weapon(self, catalog):
        with pytest.raises(UnknownWeaponError):
            reachable_charges(catalog, "Nope", 1000)
