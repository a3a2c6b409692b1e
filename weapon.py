from __future__ import annotations

import importlib.resources
import sys
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

from config import WEAPONS_FILE, DEFAULT_CHARGE_LABEL
from errors import CatalogError, UnknownWeaponError, UnknownChargeError
from logger import logger

if sys.version_info[:2] < (3, 11):
    import tomli as tomllib
else:
    import tomllib


@dataclass(frozen=True)
class WeaponProfile:
    name: str
    charge_label: str
    muzzle_velocities: Mapping[str, float]
    ammo: Tuple[str, ...] = ()
    projectiles: Tuple[str, ...] = ()

    @property
    def charges(self) -> Tuple[str, ...]:
        return tuple(self.muzzle_velocities)

    @property
    def is_mortar(self) -> bool:
        return "mortar" in self.name.lower()

    def v0_for_charge(self, charge: str) -> float:
        try:
            return self.muzzle_velocities[charge]
        except KeyError:
            raise UnknownChargeError(self.name, charge) from None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "charge_label": self.charge_label,
            "charges": list(self.charges),
            "muzzle_velocities": dict(self.muzzle_velocities),
            "ammo": list(self.ammo),
            "projectiles": list(self.projectiles),
        }


def _profile_from_dict(name: str, data: dict) -> WeaponProfile:
    if not isinstance(data, dict):
        raise CatalogError(f"Weapon {name!r}: expected a table", field=name)
    velocities = data.get("muzzle_velocities")
    if not isinstance(velocities, dict) or not velocities:
        raise CatalogError(f"Weapon {name!r}: muzzle_velocities must be a non-empty table", field=name)
    table: Dict[str, float] = {}
    for charge, v0 in velocities.items():
        if isinstance(v0, bool) or not isinstance(v0, (int, float)) or v0 <= 0:
            raise CatalogError(f"Weapon {name!r}: muzzle velocity for {charge!r} must be positive, got {v0!r}",
                               field=name, value=v0)
        table[str(charge)] = float(v0)
    return WeaponProfile(
        name=name,
        charge_label=str(data.get("charge_label", DEFAULT_CHARGE_LABEL)),
        muzzle_velocities=MappingProxyType(table),
        ammo=tuple(str(a) for a in data.get("ammo", ())),
        projectiles=tuple(str(p) for p in data.get("projectiles", ())),
    )


class WeaponCatalog:
    """Read-only weapon id -> WeaponProfile lookup.

    Built once and handed to whoever needs it; lookups fail fast on an
    unknown weapon and then on an unknown charge.
    """

    def __init__(self, profiles: Mapping[str, WeaponProfile]):
        self._profiles = MappingProxyType(dict(profiles))

    @classmethod
    def from_dict(cls, data: Mapping[str, dict]) -> "WeaponCatalog":
        return cls({name: _profile_from_dict(name, entry) for name, entry in data.items()})

    @classmethod
    def from_toml(cls, path: Union[str, Path]) -> "WeaponCatalog":
        path = Path(path)
        try:
            with open(path, "rb") as fp:
                data = tomllib.load(fp)
        except OSError as e:
            raise CatalogError(f"Cannot read weapon catalog {path}: {e}", field="path", value=str(path)) from e
        except tomllib.TOMLDecodeError as e:
            raise CatalogError(f"Malformed weapon catalog {path}: {e}", field="path", value=str(path)) from e
        weapons = data.get("weapons")
        if not isinstance(weapons, dict) or not weapons:
            raise CatalogError(f"Weapon catalog {path} has no [weapons] entries", field="path", value=str(path))
        catalog = cls.from_dict(weapons)
        logger.debug(f"Loaded {len(catalog)} weapon systems from {path.name}")
        return catalog

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, weapon_id) -> bool:
        return weapon_id in self._profiles

    def names(self) -> Tuple[str, ...]:
        return tuple(self._profiles)

    def profile(self, weapon_id: str) -> WeaponProfile:
        try:
            return self._profiles[weapon_id]
        except KeyError:
            raise UnknownWeaponError(weapon_id) from None

    def muzzle_velocity_for(self, weapon_id: str, charge_id: str) -> float:
        return self.profile(weapon_id).v0_for_charge(charge_id)


def _resolve_resource_path(path: str) -> str:
    return str(importlib.resources.files("arty_assets").joinpath(path))


def load_catalog(path: Optional[Union[str, Path]] = None) -> WeaponCatalog:
    """Catalog from ``path``, else ``ARTY_WEAPONS_FILE``, else the packaged default."""
    return WeaponCatalog.from_toml(path or WEAPONS_FILE or _resolve_resource_path("weapons.toml"))
