import math
import os
import re
from collections import OrderedDict
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from config import (
    G, MIL_CIRCLE, TABLE_STEP_M, TABLE_MIN_RANGE_M, TABLE_MIN_STEP_M, TABLE_MAX_ROWS, TABLE_CACHE_SIZE,
)
from ballistics import solve_many, max_range_m
from errors import RangeError, OutOfRangeError
from weapon import WeaponCatalog, WeaponProfile


@dataclass
class FiringTable:
    weapon: str
    charge: str
    muzzle_velocity: float
    range_m: np.ndarray
    elevation_mil: np.ndarray
    time_of_flight_s: np.ndarray

    @property
    def max_range_m(self) -> float:
        return float(self.range_m[-1]) if self.range_m.size else 0.0

    def lookup(self, target_range: float) -> Tuple[float, float]:
        """Interpolated (elevation mil, time of flight s) for a range inside the table."""
        if not self.range_m.size or not self.range_m[0] <= target_range <= self.range_m[-1]:
            raise OutOfRangeError(target_range, self.max_range_m, self.muzzle_velocity)
        elev = float(np.interp(target_range, self.range_m, self.elevation_mil))
        tof = float(np.interp(target_range, self.range_m, self.time_of_flight_s))
        return elev, tof

    def rows(self) -> List[dict]:
        return [
            {"range_m": float(r), "elevation_mil": float(e), "time_of_flight_s": float(t)}
            for r, e, t in zip(self.range_m, self.elevation_mil, self.time_of_flight_s)
        ]

    def save(self, path: str):
        np.savez(path,
                 weapon=np.array(self.weapon), charge=np.array(self.charge),
                 v0=np.array(self.muzzle_velocity),
                 range_m=self.range_m.astype(np.float32),
                 elev_mil=self.elevation_mil.astype(np.float32),
                 tof_s=self.time_of_flight_s.astype(np.float32))

    @classmethod
    def load(cls, path: str) -> "FiringTable":
        with np.load(path, allow_pickle=False) as npz:
            return cls(
                weapon=str(npz["weapon"]),
                charge=str(npz["charge"]),
                muzzle_velocity=float(npz["v0"]),
                range_m=npz["range_m"].astype(float),
                elevation_mil=npz["elev_mil"].astype(float),
                time_of_flight_s=npz["tof_s"].astype(float),
            )


def build_firing_table(profile: WeaponProfile, charge: str, step_m: float = TABLE_STEP_M,
                       min_range_m: float = TABLE_MIN_RANGE_M, gravity: float = G) -> FiringTable:
    if not math.isfinite(step_m) or step_m < TABLE_MIN_STEP_M:
        raise RangeError(f"Table step must be at least {TABLE_MIN_STEP_M:g} m, got {step_m}",
                         field="step", value=step_m)
    if not math.isfinite(min_range_m) or min_range_m < 0:
        raise RangeError(f"Table minimum range must be non-negative, got {min_range_m}",
                         field="min_range", value=min_range_m)
    v0 = profile.v0_for_charge(charge)
    rmax = max_range_m(v0, gravity)
    n_rows = int((rmax - min_range_m) // step_m) + 1 if rmax >= min_range_m else 0
    if n_rows > TABLE_MAX_ROWS:
        raise RangeError(f"Table step {step_m:g} m gives {n_rows} rows for {profile.name} {charge}, "
                         f"the limit is {TABLE_MAX_ROWS}", field="step", value=step_m)
    ranges = np.arange(min_range_m, rmax + 1e-6, step_m, dtype=float)
    sol = solve_many(ranges, v0, gravity)
    ok = sol.reachable
    return FiringTable(
        weapon=profile.name,
        charge=charge,
        muzzle_velocity=v0,
        range_m=sol.range_m[ok],
        elevation_mil=sol.elevation_deg[ok] * MIL_CIRCLE / 360.0,
        time_of_flight_s=sol.time_of_flight_s[ok],
    )


def _file_name(weapon: str, charge: str) -> str:
    slug = re.sub(r"[^A-Za-z0-9]+", "_", f"{weapon}__{charge}").strip("_")
    return f"table_{slug}.npz"


class TableManager:
    """Builds firing tables on first use and keeps the most recently used ones."""

    def __init__(self, catalog: WeaponCatalog, step_m: float = TABLE_STEP_M,
                 cache_size: int = TABLE_CACHE_SIZE):
        self.catalog = catalog
        self.step_m = step_m
        self.cache_size = max(1, int(cache_size))
        self._tables: "OrderedDict[Tuple[str, str, float], FiringTable]" = OrderedDict()

    def _put(self, key: Tuple[str, str, float], tab: FiringTable):
        self._tables[key] = tab
        self._tables.move_to_end(key)
        while len(self._tables) > self.cache_size:
            self._tables.popitem(last=False)

    def get(self, weapon: str, charge: str, step_m: Optional[float] = None) -> FiringTable:
        step = float(self.step_m if step_m is None else step_m)
        key = (weapon, charge, step)
        tab = self._tables.get(key)
        if tab is None:
            tab = build_firing_table(self.catalog.profile(weapon), charge, step_m=step)
            self._put(key, tab)
        else:
            self._tables.move_to_end(key)
        return tab

    def save_folder(self, folder: str) -> List[str]:
        os.makedirs(folder, exist_ok=True)
        paths = []
        for name in self.catalog:
            for charge in self.catalog.profile(name).charges:
                path = os.path.join(folder, _file_name(name, charge))
                self.get(name, charge).save(path)
                paths.append(path)
        return paths

    def load_folder(self, folder: str) -> int:
        n = 0
        for fn in sorted(os.listdir(folder)):
            if fn.startswith("table_") and fn.endswith(".npz"):
                tab = FiringTable.load(os.path.join(folder, fn))
                step = float(tab.range_m[1] - tab.range_m[0]) if tab.range_m.size > 1 else self.step_m
                self._put((tab.weapon, tab.charge, step), tab)
                n += 1
        return n
