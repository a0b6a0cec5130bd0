# app/schemas/trip.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationInfo

from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySection, SurveyStation
from app.schemas.rheology import RheologyInput


class FloatState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    FULL = "full"  # no float: the string fills freely


class TripParameters(BaseModel):
    """Run parameters shared by stateless runs and runs against a stored project."""
    start_md: float = Field(..., ge=0, description="Bit depth at the start of the run, m")
    end_md: float = Field(..., ge=0, description="Bit depth at the end of the run, m")
    step: float = Field(30.0, gt=0, description="Bit depth increment, m")
    control_md: float = Field(..., ge=0, description="Control depth for ESD and choke, m")
    pipe_od: float = Field(..., gt=0, description="Running string outer diameter, m")
    pipe_id: float = Field(..., ge=0, description="Running string inner diameter, m")
    active_mud_density: float = Field(..., gt=0, description="Density of the fluid filling the string, kg/m³")
    base_mud_density: float = Field(..., gt=0, description="Wellbore fluid when no pocket layers are given, kg/m³")
    target_esd: float = Field(..., gt=0, description="Target ESD at the control depth, kg/m³")
    pocket_layers: List[FluidLayer] = Field(
        default_factory=list,
        description="Initial wellbore column (e.g. a trip-out snapshot); annulus-domain layers are already around pipe",
    )
    is_floated_casing: bool = False
    float_sub_md: float = Field(0.0, ge=0, description="Float sub depth, m")
    crack_pressure: Optional[float] = Field(None, gt=0, description="Float crack-open differential, kPa")
    trip_speed: float = Field(0.0, ge=0, description="Running speed for surge, m/min (0 disables)")
    rheology: Optional[RheologyInput] = Field(None, description="Mud rheology for surge")
    eccentricity: Optional[float] = Field(None, gt=0)

    @field_validator("pipe_id")
    def id_inside_od(cls, v: float, info: ValidationInfo) -> float:
        od = info.data.get("pipe_od")
        if od is not None and v >= od:
            raise ValueError("pipe_id must be smaller than pipe_od")
        return v


class TripInput(TripParameters):
    annulus_sections: List[GeometrySection] = Field(..., description="Casing / open-hole sections")
    stations: List[SurveyStation] = Field(default_factory=list, description="Survey stations for TVD")


class TripStep(BaseModel):
    step_index: int
    bit_md: float
    bit_tvd: float
    layers_pocket: List[FluidLayer] = Field(default_factory=list)
    layers_annulus: List[FluidLayer] = Field(default_factory=list)
    layers_string: List[FluidLayer] = Field(default_factory=list)
    esd_at_control: float = Field(..., description="kg/m³")
    esd_at_bit: float = Field(..., description="kg/m³")
    required_choke_pressure: float = Field(..., description="kPa")
    is_below_target: bool
    float_state: FloatState
    float_differential: float = Field(0.0, description="(annulus + choke) - string pressure at the bit, kPa")
    annulus_pressure_at_bit: float = Field(..., description="kPa")
    string_pressure_at_bit: float = Field(..., description="kPa")
    differential_pressure: float = Field(..., description="Annulus minus string hydrostatic at the bit, kPa")
    step_fill_volume: float = Field(..., description="m³")
    cumulative_fill_volume: float = Field(..., description="m³")
    expected_fill_closed: float = Field(..., description="String capacity to the bit, m³")
    expected_fill_open: float = Field(..., description="Steel displacement to the bit, m³")
    step_displacement_return: float = Field(..., description="m³")
    cumulative_displacement_return: float = Field(..., description="m³")
    overflow_volume: float = Field(0.0, description="Wellbore fluid pushed above surface, m³")
    surge_pressure: Optional[float] = Field(None, description="kPa")
    dynamic_esd: Optional[float] = Field(None, description="kg/m³")


class TripSummary(BaseModel):
    step_count: int = 0
    max_choke_pressure: float = 0.0
    max_differential_pressure: float = 0.0
    min_esd: Optional[float] = None
    depth_below_target_from: Optional[float] = None
    total_fill_volume: float = 0.0
    total_displacement_return: float = 0.0
    max_surge_pressure: Optional[float] = None


class TripResult(BaseModel):
    steps: List[TripStep] = Field(default_factory=list)
    summary: TripSummary = Field(default_factory=TripSummary)
    final_layers: List[FluidLayer] = Field(default_factory=list, description="Wellbore column at the last step, for handoff")
    warnings: List[str] = Field(default_factory=list)
    cancelled: bool = False
    effective_step: float = 0.0


class SavedTripRun(BaseModel):
    run_id: str
    project_id: str
    geometry_fingerprint: str
    created_at: float
    input: TripInput
    result: TripResult
    stale: bool = False
