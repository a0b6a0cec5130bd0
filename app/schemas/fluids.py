# app/schemas/fluids.py
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationInfo

from app.schemas.geometry import SurveyStation
from app.schemas.rheology import RheologyInput


class FluidDomain(str, Enum):
    ANNULUS = "annulus"
    STRING = "string"
    POCKET = "pocket"


class Placement(str, Enum):
    ANNULUS = "annulus"
    STRING = "string"
    BOTH = "both"


class FluidLayer(BaseModel):
    domain: FluidDomain = Field(FluidDomain.ANNULUS, description="Fluid domain the layer belongs to")
    top_md: float = Field(..., ge=0, description="Top measured depth, m")
    bottom_md: float = Field(..., description="Bottom measured depth, m")
    density: float = Field(..., ge=0, description="Fluid density, kg/m³")
    name: str = Field("", description="Fluid name")
    color: Optional[str] = Field(None, description="Opaque display colour")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Opaque display metadata")
    rheology: Optional[RheologyInput] = Field(None, description="Rheology for friction calculations")

    @field_validator("bottom_md")
    def bottom_not_above_top(cls, v: float, info: ValidationInfo) -> float:
        top = info.data.get("top_md")
        if top is not None and v < top:
            raise ValueError("bottom_md must not be above top_md")
        return v

    @property
    def height(self) -> float:
        return self.bottom_md - self.top_md

    def with_bounds(self, top_md: float, bottom_md: float, domain: Optional[FluidDomain] = None) -> "FluidLayer":
        update = {"top_md": top_md, "bottom_md": bottom_md}
        if domain is not None:
            update["domain"] = domain
        return self.model_copy(update=update, deep=True)


class FluidProperties(BaseModel):
    """A named fluid in the project catalog."""
    name: str
    density: float = Field(..., gt=0, description="kg/m³")
    rheology: Optional[RheologyInput] = None
    color: Optional[str] = None


class PlacementStep(BaseModel):
    top_md: float = Field(..., ge=0)
    bottom_md: float = Field(..., ge=0)
    density: float = Field(..., gt=0)
    name: str = ""
    color: Optional[str] = None
    placement: Placement = Placement.BOTH
    rheology: Optional[RheologyInput] = None


class OverlayInput(BaseModel):
    layers: List[FluidLayer] = Field(default_factory=list, description="Existing layers of one domain")
    new_layer: FluidLayer


class FinalLayersInput(BaseModel):
    base_density: float = Field(..., gt=0, description="Base mud density filling the well, kg/m³")
    base_name: str = "Base mud"
    annulus_depth: float = Field(..., ge=0, description="Bottom of the annulus column, m")
    string_depth: float = Field(..., ge=0, description="Bottom of the string column, m")
    steps: List[PlacementStep] = Field(default_factory=list)


class FinalLayers(BaseModel):
    annulus: List[FluidLayer] = Field(default_factory=list)
    string: List[FluidLayer] = Field(default_factory=list)


class HydrostaticInput(BaseModel):
    layers: List[FluidLayer]
    depth_md: float = Field(..., ge=0, description="Depth to integrate to, m")
    control_md: Optional[float] = Field(None, ge=0, description="Control depth for ESD (defaults to depth_md)")
    target_esd: Optional[float] = Field(None, gt=0, description="Target ESD for the choke solve, kg/m³")
    stations: List[SurveyStation] = Field(default_factory=list)


class HydrostaticResult(BaseModel):
    depth_md: float
    depth_tvd: float
    pressure: float = Field(..., description="Hydrostatic pressure, kPa")
    control_md: float
    control_tvd: float
    esd: float = Field(..., description="Equivalent static density at the control depth, kg/m³")
    required_choke_pressure: float = Field(0.0, description="kPa")
    coverage_gaps: List[List[float]] = Field(default_factory=list, description="Undefined intervals above depth_md")


class BlendInput(BaseModel):
    density_1: float = Field(..., gt=0)
    volume_1: float = Field(..., ge=0)
    density_2: float = Field(..., gt=0)
    volume_2: float = Field(0.0, ge=0)
    target_density: Optional[float] = Field(None, gt=0)


class BariteInput(BaseModel):
    mud_density: float = Field(..., gt=0)
    mud_volume: float = Field(..., gt=0)
    target_density: float = Field(..., gt=0)
    barite_density: float = Field(4200.0, gt=0)
