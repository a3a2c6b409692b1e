from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

import met
from coords import position_from_fields
from errors import (
    ArtyError, InputError, FormatError, CatalogError, OutOfRangeError, UpstreamError, ReportError,
)
from logger import logger
from models import FireMission, LATLON, MANUAL
from report import ReportGenerator, ReportInput, format_solution
from solver import solve, resolve_positions
from tables import TableManager
from weapon import WeaponCatalog, load_catalog

# first match wins; OutOfRangeError is not an InputError
ERROR_STATUS = (
    (InputError, 422),
    (CatalogError, 404),
    (OutOfRangeError, 422),
    (UpstreamError, 502),
    (ReportError, 503),
)

POSITION_FIELDS = (
    "weapon_lat", "weapon_lon", "target_lat", "target_lon",
    "weapon_mgrs", "target_mgrs", "range_m", "azimuth_deg",
)


class PositionIn(BaseModel):
    mode: str = LATLON
    weapon_lat: Optional[float] = None
    weapon_lon: Optional[float] = None
    target_lat: Optional[float] = None
    target_lon: Optional[float] = None
    weapon_mgrs: Optional[str] = None
    target_mgrs: Optional[str] = None
    range_m: Optional[float] = None
    azimuth_deg: Optional[float] = None

    def to_position(self):
        fields = {k: getattr(self, k) for k in POSITION_FIELDS}
        return position_from_fields(self.mode, **fields)


class MissionIn(PositionIn):
    weapon: str
    charge: str
    ammunition: str = ""
    projectile: str = ""
    weapon_elevation_m: float = 0.0
    target_elevation_m: float = 0.0
    met_data: str = "Standard atmosphere, no wind."

    def to_mission(self) -> FireMission:
        return FireMission(
            weapon=self.weapon.strip(),
            charge=self.charge.strip(),
            position=self.to_position(),
            ammunition=self.ammunition,
            projectile=self.projectile,
            weapon_elevation_m=self.weapon_elevation_m,
            target_elevation_m=self.target_elevation_m,
            met_data=self.met_data,
        )


def status_for(exc: ArtyError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return 500


def create_app(catalog: Optional[WeaponCatalog] = None,
               reporter: Optional[ReportGenerator] = None) -> FastAPI:
    if catalog is None:
        catalog = load_catalog()
    if reporter is None:
        reporter = ReportGenerator()
    tables = TableManager(catalog)

    app = FastAPI(title="Fire Mission Calculator")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.catalog = catalog
    app.state.reporter = reporter
    app.state.tables = tables

    @app.exception_handler(ArtyError)
    async def arty_error(request: Request, exc: ArtyError):
        code = status_for(exc)
        log = logger.warning if code < 500 else logger.error
        log(f"{request.method} {request.url.path} -> {code} {exc.kind} (field={exc.field})")
        return JSONResponse(status_code=code, content={"ok": False, **exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        errs = exc.errors()
        first = errs[0] if errs else {}
        loc = [str(p) for p in first.get("loc", ()) if p != "body"]
        err = FormatError(first.get("msg", "Invalid request"), field=".".join(loc) or None)
        return JSONResponse(status_code=422, content={"ok": False, **err.to_dict()})

    @app.get("/api/ping")
    def api_ping():
        return {"ok": True}

    @app.get("/api/weapons")
    def api_weapons():
        return {"ok": True, "weapons": [catalog.profile(n).to_dict() for n in catalog]}

    @app.get("/api/weapons/{weapon_id}")
    def api_weapon(weapon_id: str):
        return {"ok": True, "weapon": catalog.profile(weapon_id).to_dict()}

    @app.post("/api/solution")
    def api_solution(data: MissionIn):
        mission = data.to_mission()
        sol = solve(mission, catalog)
        inp = ReportInput.from_solution(mission, catalog.profile(mission.weapon), sol)
        return {"ok": True, "solution": sol.to_dict(), "summary": format_solution(inp)}

    @app.post("/api/report")
    def api_report(data: MissionIn):
        mission = data.to_mission()
        sol = solve(mission, catalog)
        inp = ReportInput.from_solution(mission, catalog.profile(mission.weapon), sol)
        return {"ok": True, "solution": sol.to_dict(), "report": reporter.generate(inp)}

    @app.get("/api/table")
    def api_table(weapon: str, charge: str, step: Optional[float] = None):
        tab = tables.get(weapon, charge, step)
        return {
            "ok": True,
            "weapon": tab.weapon,
            "charge": tab.charge,
            "muzzle_velocity": tab.muzzle_velocity,
            "max_range_m": tab.max_range_m,
            "rows": tab.rows(),
        }

    @app.post("/api/mission_data")
    def api_mission_data(data: PositionIn):
        if data.mode.strip().lower() == MANUAL:
            raise FormatError("Mission data needs weapon and target positions, not manual input",
                              field="mode", value=data.mode)
        gun, tgt = resolve_positions(data.to_position())
        return {"ok": True, **met.fetch_mission_data(gun, tgt).to_dict()}

    return app
