# app/schemas/cement.py
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator, ValidationInfo

from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySection, SurveyStation
from app.schemas.rheology import RheologyInput


class FluidStageType(str, Enum):
    PRE_FLUSH = "pre_flush"
    SPACER = "spacer"
    LEAD_CEMENT = "lead_cement"
    TAIL_CEMENT = "tail_cement"
    DISPLACEMENT = "displacement"
    MUD_DISPLACEMENT = "mud_displacement"

    @property
    def is_cement(self) -> bool:
        return self in (FluidStageType.LEAD_CEMENT, FluidStageType.TAIL_CEMENT)


class OperationType(str, Enum):
    PRESSURE_TEST_LINES = "pressure_test_lines"
    PRESSURE_TEST_CASING = "pressure_test_casing"
    TRIP_SET = "trip_set"
    PLUG_DROP = "plug_drop"
    BUMP_PLUG = "bump_plug"
    FLOAT_CHECK = "float_check"
    BLEED_BACK = "bleed_back"
    RIG_OUT = "rig_out"
    OTHER = "other"


class _StageBase(BaseModel):
    name: str = Field(..., description="Stage name shown on the schedule")
    notes: str = ""


class PumpStage(_StageBase):
    kind: Literal["pump"] = "pump"
    fluid_type: FluidStageType
    volume: float = Field(..., ge=0, description="Pumped volume, m³")
    density: float = Field(..., gt=0, description="kg/m³")
    color: Optional[str] = None
    pump_rate: Optional[float] = Field(None, gt=0, description="m³/min")
    rheology: Optional[RheologyInput] = None


class PressureTestOperation(_StageBase):
    kind: Literal["pressure_test_lines", "pressure_test_casing"]
    pressure: float = Field(..., ge=0, description="Test pressure, kPa")
    duration: float = Field(0.0, ge=0, description="Hold time, min")


class TripSetOperation(_StageBase):
    kind: Literal["trip_set"] = "trip_set"
    duration: float = Field(0.0, ge=0, description="min")


class PlugDropOperation(_StageBase):
    kind: Literal["plug_drop"] = "plug_drop"
    on_the_fly: bool = False


class BumpPlugOperation(_StageBase):
    kind: Literal["bump_plug"] = "bump_plug"
    pressure: float = Field(..., ge=0, description="Final circulating pressure, kPa")
    over_pressure: float = Field(0.0, ge=0, description="Pressure above final circulating, kPa")


class FloatCheckOperation(_StageBase):
    kind: Literal["float_check"] = "float_check"
    floats_closed: bool = True
    bleed_back_volume: float = Field(0.0, ge=0, description="m³")


class BleedBackOperation(_StageBase):
    kind: Literal["bleed_back"] = "bleed_back"
    volume: float = Field(0.0, ge=0, description="m³")


class RigOutOperation(_StageBase):
    kind: Literal["rig_out"] = "rig_out"


class OtherOperation(_StageBase):
    kind: Literal["other"] = "other"
    description: str = ""
    duration: float = Field(0.0, ge=0, description="min")


CementStage = Annotated[
    Union[
        PumpStage,
        PressureTestOperation,
        TripSetOperation,
        PlugDropOperation,
        BumpPlugOperation,
        FloatCheckOperation,
        BleedBackOperation,
        RigOutOperation,
        OtherOperation,
    ],
    Field(discriminator="kind"),
]


class LossZone(BaseModel):
    name: str = "Loss zone"
    depth_md: float = Field(..., gt=0, description="m")
    tvd: Optional[float] = Field(None, gt=0, description="Taken from the survey when omitted, m")
    frac_pressure: Optional[float] = Field(None, gt=0, description="kPa")
    frac_gradient: Optional[float] = Field(None, gt=0, description="kPa/m")
    is_active: bool = True

    @model_validator(mode="after")
    def threshold_given(self) -> "LossZone":
        if self.frac_pressure is None and self.frac_gradient is None:
            raise ValueError("Either frac_pressure or frac_gradient is required")
        return self

    def threshold(self, tvd: float) -> float:
        if self.frac_pressure is not None:
            return self.frac_pressure
        return self.frac_gradient * tvd


class CementJobInput(BaseModel):
    name: str = "Cement job"
    annulus_sections: List[GeometrySection] = Field(..., description="Hole / previous casing sections")
    string_sections: List[GeometrySection] = Field(..., description="Casing being cemented")
    stations: List[SurveyStation] = Field(default_factory=list)
    shoe_md: float = Field(..., gt=0, description="m")
    float_collar_md: float = Field(..., gt=0, description="m")
    mud_density: float = Field(1200.0, gt=0, description="Fluid in the well before the job, kg/m³")
    mud_name: str = "Mud"
    initial_tank_volume: float = Field(0.0, ge=0, description="Active pit volume at the start, m³")
    stages: List[CementStage] = Field(..., min_length=1)
    loss_zones: List[LossZone] = Field(default_factory=list)

    @field_validator("float_collar_md")
    def collar_above_shoe(cls, v: float, info: ValidationInfo) -> float:
        shoe = info.data.get("shoe_md")
        if shoe is not None and v > shoe:
            raise ValueError("float_collar_md must not be deeper than shoe_md")
        return v


class TankReading(BaseModel):
    stage_index: int
    stage_name: str
    volume: float = Field(..., description="m³")
    manual: bool = False


class StageSummary(BaseModel):
    index: int
    name: str
    kind: str
    is_operation: bool
    volume: float = 0.0
    pumped: float = 0.0
    returned: float = 0.0
    lost: float = 0.0
    complete: bool = False
    tank_reading: Optional[float] = None


class CementJobState(BaseModel):
    job_id: str
    name: str
    current_stage_index: int
    current_stage_name: str
    progress: float
    is_at_start: bool
    is_at_end: bool
    cumulative_pumped_volume: float
    expected_return: float
    expected_tank_volume: float
    current_tank_volume: float
    is_auto_tracking_tank: bool
    actual_returned: float
    return_ratio: float
    tank_volume_difference: float
    total_loss_volume: float
    cement_returns_volume: float
    string_layers: List[FluidLayer] = Field(default_factory=list)
    annulus_layers: List[FluidLayer] = Field(default_factory=list)
    stages: List[StageSummary] = Field(default_factory=list)
    tank_readings: List[TankReading] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class JumpRequest(BaseModel):
    index: int = Field(..., ge=0)


class ProgressRequest(BaseModel):
    progress: float = Field(..., description="Fraction of the current stage, clamped to [0, 1]")


class TankReadingRequest(BaseModel):
    volume: float = Field(..., ge=0, description="m³")
