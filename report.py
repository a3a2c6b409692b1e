"""Fire mission reports.

``format_solution`` renders a deterministic text report straight from the
computed solution. ``ReportGenerator`` asks an OpenAI chat model to write the
same report with MET remarks and a site picture. Neither ever sees a
coordinate: ``ReportInput`` carries only relative data (range, azimuth,
elevations), which is also all that gets logged.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from typing import Optional

from openai import OpenAI, OpenAIError

from config import (
    OPENAI_MODEL, REPORT_TEMPERATURE, MIN_INDIRECT_RANGE_HOWITZER_M, MIN_INDIRECT_RANGE_MORTAR_M,
)
from errors import ReportError, UpstreamError
from logger import logger
from models import FireMission, FiringSolution
from utils import deg_to_mil
from weapon import WeaponProfile

NL = chr(10)

SYSTEM_PROMPT = "You are an expert in artillery and ballistics."

REPORT_PROMPT = """You are given an initial firing solution and mission parameters. Your task is to generate a complete, professional firing solution report in the format provided below. Convert degrees to mils where appropriate (1 degree = 17.777... mils). For mortars, the charge is referred to as a Charge Ring.

**Format:**
Weapon System: [Weapon System]
Projectiles: [Projectile Type] [Ammunition Type]
{charge_label}: [Charge or Charge Ring]
Range to Target: [Range in meters] meters
Grid Azimuth: [Azimuth in mils] mils
Quadrant Elevation (QE): [Elevation in mils] mils
Time of Flight (TOF): Approximately [Time of flight] seconds
Meteorological Corrections Applied: [Summarize relevant MET data]
Site Picture: [Note any significant elevation difference between weapon and target]

**Mission Data:**
Weapon System: {weapon_system}
Weapon Elevation: {elevation} meters
Target Elevation: {target_elevation} meters
Ammunition Type: {ammunition_type}
Charge: {charge}
Projectile Type: {projectile_type}
Meteorological Data: {meteorological_data}
Initial Elevation: {initial_elevation} degrees
Initial Azimuth: {initial_azimuth} degrees
Time of Flight: {time_of_flight} seconds
Range: {range} meters

Generate the report based on the mission data. The initial solution comes from a vacuum model without drag. If the range is too short for effective indirect fire (e.g., under {min_howitzer:.0f}m for howitzers, under {min_mortar:.0f}m for mortars), state that a standard indirect fire solution cannot be generated and provide a theoretical direct fire solution instead, including bearing in degrees.
Return only the report text."""


@dataclass(frozen=True)
class ReportInput:
    weapon_system: str
    charge_label: str
    is_mortar: bool
    elevation: float
    target_elevation: float
    ammunition_type: str
    charge: str
    projectile_type: str
    meteorological_data: str
    initial_elevation: float
    initial_azimuth: float
    time_of_flight: float
    range: float

    @classmethod
    def from_solution(cls, mission: FireMission, profile: WeaponProfile,
                      solution: FiringSolution) -> "ReportInput":
        return cls(
            weapon_system=profile.name,
            charge_label=profile.charge_label,
            is_mortar=profile.is_mortar,
            elevation=mission.weapon_elevation_m,
            target_elevation=mission.target_elevation_m,
            ammunition_type=mission.ammunition,
            charge=mission.charge,
            projectile_type=mission.projectile,
            meteorological_data=mission.met_data,
            initial_elevation=solution.elevation_deg,
            initial_azimuth=solution.azimuth_deg,
            time_of_flight=solution.time_of_flight_s,
            range=solution.range_m,
        )

    @property
    def min_indirect_range(self) -> float:
        return MIN_INDIRECT_RANGE_MORTAR_M if self.is_mortar else MIN_INDIRECT_RANGE_HOWITZER_M

    def log_summary(self) -> str:
        return (f"{self.weapon_system}/{self.charge} range={self.range:.0f}m "
                f"az={self.initial_azimuth:.1f} qe={self.initial_elevation:.2f}")


def site_picture(height_diff_m: float) -> str:
    if abs(height_diff_m) < 1.0:
        return "Weapon and target at the same elevation."
    where = "above" if height_diff_m > 0 else "below"
    return f"Target is {abs(height_diff_m):.0f} m {where} the weapon (not corrected)."


def format_solution(inp: ReportInput) -> str:
    if inp.range < inp.min_indirect_range:
        return NL.join([
            f"Weapon System: {inp.weapon_system}",
            f"Range to Target: {inp.range:.0f} meters",
            f"Range is under {inp.min_indirect_range:.0f} m: no standard indirect fire solution.",
            f"Direct fire bearing: {inp.initial_azimuth:.1f}° ({deg_to_mil(inp.initial_azimuth):.0f} mils)",
        ])
    met = (inp.meteorological_data or "").strip().replace(NL, "; ")
    return NL.join([
        f"Weapon System: {inp.weapon_system}",
        f"Projectiles: {inp.projectile_type} {inp.ammunition_type}".rstrip(),
        f"{inp.charge_label}: {inp.charge}",
        f"Range to Target: {inp.range:.0f} meters",
        f"Grid Azimuth: {deg_to_mil(inp.initial_azimuth):.0f} mils ({inp.initial_azimuth:.1f}°)",
        f"Quadrant Elevation (QE): {deg_to_mil(inp.initial_elevation):.0f} mils ({inp.initial_elevation:.2f}°)",
        f"Time of Flight (TOF): Approximately {inp.time_of_flight:.1f} seconds",
        f"Meteorological Data (not applied): {met or 'none'}",
        f"Site Picture: {site_picture(inp.target_elevation - inp.elevation)}",
        "Vacuum first-order estimate, not a certified fire-control solution.",
    ])


def build_prompt(inp: ReportInput) -> str:
    return REPORT_PROMPT.format(
        min_howitzer=MIN_INDIRECT_RANGE_HOWITZER_M,
        min_mortar=MIN_INDIRECT_RANGE_MORTAR_M,
        **asdict(inp),
    )


class ReportGenerator:
    """Writes the fire mission report with an OpenAI chat model.

    Pass ``client`` to inject any object with the OpenAI
    ``chat.completions.create`` interface; otherwise one is created from
    ``api_key`` or ``OPENAI_API_KEY``. Without either, ``generate`` raises
    ReportError.
    """

    def __init__(self, client=None, api_key: Optional[str] = None, model: str = OPENAI_MODEL):
        self.model = model
        if client is None:
            api_key = api_key or os.getenv("OPENAI_API_KEY")
            client = OpenAI(api_key=api_key) if api_key else None
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    def generate(self, inp: ReportInput) -> str:
        if self.client is None:
            raise ReportError("AI report generation is not configured (set OPENAI_API_KEY)")
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                temperature=REPORT_TEMPERATURE,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(inp)},
                ],
            )
        except OpenAIError as e:
            logger.error(f"Error generating firing solution report for {inp.log_summary()}: {e}")
            raise UpstreamError(str(e), status=getattr(e, "status_code", None), service="report") from e

        text = (resp.choices[0].message.content or "").strip() if resp.choices else ""
        if not text:
            logger.error(f"Empty firing solution report for {inp.log_summary()}")
            raise ReportError("The report service returned an empty report")
        logger.debug(f"Report generated for {inp.log_summary()}")
        return text
