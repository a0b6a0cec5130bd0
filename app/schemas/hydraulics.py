# app/schemas/hydraulics.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySection, SurveyStation
from app.schemas.rheology import (
    BinghamRheology,
    HerschelBulkleyRheology,
    PowerLawRheology,
    RheologyInput,
)


class ConduitKind(str, Enum):
    PIPE = "pipe"
    ANNULUS = "annulus"


class FlowRegime(str, Enum):
    STATIC = "static"
    LAMINAR = "laminar"
    TURBULENT = "turbulent"


class FlowConduit(BaseModel):
    kind: ConduitKind
    outer_diameter: float = Field(..., ge=0, description="Hole ID (annulus) or pipe ID (pipe), m")
    inner_diameter: float = Field(0.0, ge=0, description="Pipe OD inside an annulus, m")
    roughness: float = Field(4.6e-5, ge=0, description="Absolute roughness, m")


class FrictionGradient(BaseModel):
    gradient: float = Field(0.0, description="Frictional pressure gradient, kPa/m")
    velocity: float = Field(0.0, description="Mean velocity, m/s")
    reynolds: float = 0.0
    critical_reynolds: float = 0.0
    wall_shear_rate: float = Field(0.0, description="1/s")
    wall_shear_stress: float = Field(0.0, description="Pa")
    regime: FlowRegime = FlowRegime.STATIC


class SegmentLoss(BaseModel):
    top_md: float
    bottom_md: float
    density: float
    model: str
    gradient: float = Field(..., description="kPa/m")
    pressure_loss: float = Field(..., description="kPa")
    velocity: float
    regime: FlowRegime


class PressureLossInput(BaseModel):
    annulus_sections: List[GeometrySection] = Field(default_factory=list)
    string_sections: List[GeometrySection] = Field(default_factory=list)
    layers: List[FluidLayer] = Field(default_factory=list, description="Fluid layers in the flow path (density and optional rheology)")
    rheology: RheologyInput = Field(..., description="Rheology used where a layer carries none")
    density: float = Field(1200.0, gt=0, description="Density used where no layer covers a segment, kg/m³")
    flow_rate: float = Field(..., ge=0, description="Pump rate, m³/min")
    top_md: float = Field(0.0, ge=0)
    bottom_md: float = Field(..., ge=0)
    path: ConduitKind = Field(ConduitKind.ANNULUS, description="Annulus (APL) or pipe (string bore)")


class PressureLossResult(BaseModel):
    total_pressure_loss: float = Field(..., description="kPa")
    average_gradient: float = Field(..., description="kPa/m")
    segments: List[SegmentLoss] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class PressureWindow(BaseModel):
    pore_gradient: Optional[float] = Field(None, description="Pore pressure gradient, kPa/m TVD")
    frac_gradient: Optional[float] = Field(None, description="Fracture pressure gradient, kPa/m TVD")


class CirculationInput(PressureLossInput):
    surface_back_pressure: float = Field(0.0, ge=0, description="SBP, kPa")
    target_bhp: Optional[float] = Field(None, description="Target bottomhole pressure, kPa")
    stations: List[SurveyStation] = Field(default_factory=list)
    window: Optional[PressureWindow] = None


class CirculationResult(BaseModel):
    depth_md: float
    depth_tvd: float
    hydrostatic_pressure: float
    friction_pressure: float
    surface_back_pressure: float
    bottomhole_pressure: float
    ecd: float = Field(..., description="Equivalent circulating density, kg/m³")
    required_sbp: Optional[float] = None
    pore_pressure: Optional[float] = None
    frac_pressure: Optional[float] = None
    within_window: bool = True
    warnings: List[str] = Field(default_factory=list)


class PipeEndType(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


class SwabSurgeInput(BaseModel):
    annulus_sections: List[GeometrySection]
    string_sections: List[GeometrySection]
    stations: List[SurveyStation] = Field(default_factory=list)
    trip_speed: float = Field(..., description="Trip speed, m/min (sign ignored)")
    bit_md: float = Field(..., ge=0)
    end_md: Optional[float] = Field(None, description="When set, a profile is produced from bit_md to end_md")
    depth_step: float = Field(30.0, gt=0)
    density: float = Field(1100.0, gt=0, description="Mud density, kg/m³")
    rheology: RheologyInput = Field(
        default_factory=lambda: BinghamRheology(plastic_viscosity=0.02, yield_point=5.0)
    )
    pipe_end: PipeEndType = PipeEndType.CLOSED
    clinging_constant: Optional[float] = Field(None, ge=0, le=1, description="Override for the Burkhardt clinging constant")
    eccentricity: Optional[float] = Field(None, gt=0, description="Eccentricity factor (defaults to settings)")


class SwabSurgePoint(BaseModel):
    bit_md: float
    bit_tvd: float
    surge_pressure: float = Field(..., description="Pressure increase running in, kPa")
    swab_pressure: float = Field(..., description="Pressure decrease pulling out, kPa (negative)")
    surge_ecd: float = Field(..., description="kg/m³ added at the bit")
    swab_ecd: float = Field(..., description="kg/m³ removed at the bit (negative)")
    annular_velocity: float = Field(..., description="Annular velocity at the bit, m/s")
    regime: FlowRegime
    clinging_constant: float
    recommended_sabp: float = Field(..., description="|swab| times the swab safety factor, kPa")


class SwabSurgeResult(BaseModel):
    points: List[SwabSurgePoint] = Field(default_factory=list)
    max_surge_pressure: float = 0.0
    max_swab_pressure: float = 0.0
    warnings: List[str] = Field(default_factory=list)


class FannReadings(BaseModel):
    theta600: float = Field(..., gt=0, description="600 rpm dial reading")
    theta300: float = Field(..., gt=0, description="300 rpm dial reading")
    theta3: Optional[float] = Field(None, ge=0, description="3 rpm dial reading (Herschel-Bulkley)")


class FannFitResult(BaseModel):
    bingham: BinghamRheology
    power_law: PowerLawRheology
    herschel_bulkley: Optional[HerschelBulkleyRheology] = None


