# app/schemas/geometry.py
import math
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, ValidationInfo


class SectionKind(str, Enum):
    ANNULUS = "annulus"
    STRING = "string"


class SliceFlag(str, Enum):
    GAP_STRING = "gap_string"
    GAP_ANNULUS = "gap_annulus"
    INTERFERENCE = "interference"


class ResolutionStatus(str, Enum):
    UNDEFINED = "undefined"
    OK = "ok"
    WARNING = "warning"


class GeometrySection(BaseModel):
    kind: SectionKind = Field(..., description="annulus (casing/open hole) or string (drill pipe/casing string)")
    name: str = Field("", description="Display name of the section")
    top_md: float = Field(..., ge=0, description="Top measured depth, m")
    bottom_md: float = Field(..., description="Bottom measured depth, m")
    inner_diameter: float = Field(..., ge=0, description="Inner diameter, m")
    outer_diameter: float = Field(0.0, ge=0, description="Outer diameter, m (string sections)")
    roughness: float = Field(4.6e-5, ge=0, description="Absolute wall roughness, m")
    density: float = Field(1000.0, gt=0, description="Fallback fluid density, kg/m³")

    @field_validator("bottom_md")
    def bottom_below_top(cls, v: float, info: ValidationInfo) -> float:
        top = info.data.get("top_md")
        if top is not None and v <= top:
            raise ValueError("bottom_md must be greater than top_md")
        return v


class GeometrySlice(BaseModel):
    top: float = Field(..., description="Slice top MD, m")
    bottom: float = Field(..., description="Slice bottom MD, m")
    annulus: Optional[GeometrySection] = None
    string: Optional[GeometrySection] = None
    annulus_index: Optional[int] = Field(None, description="Index of the covering annulus section")
    string_index: Optional[int] = Field(None, description="Index of the covering string section")
    flags: List[SliceFlag] = Field(default_factory=list)

    @property
    def length(self) -> float:
        return self.bottom - self.top

    @property
    def hole_diameter(self) -> float:
        return self.annulus.inner_diameter if self.annulus else 0.0

    @property
    def pipe_od(self) -> float:
        return self.string.outer_diameter if self.string else 0.0

    @property
    def pipe_id(self) -> float:
        return self.string.inner_diameter if self.string else 0.0

    @property
    def roughness(self) -> float:
        if self.annulus:
            return self.annulus.roughness
        return self.string.roughness if self.string else 0.0

    @property
    def open_hole_area(self) -> float:
        return math.pi * self.hole_diameter ** 2 / 4.0

    @property
    def annular_area(self) -> float:
        if not self.annulus:
            return 0.0
        return max(0.0, math.pi * (self.hole_diameter ** 2 - self.pipe_od ** 2) / 4.0)

    @property
    def bore_area(self) -> float:
        return math.pi * self.pipe_id ** 2 / 4.0

    @property
    def displacement_area(self) -> float:
        return math.pi * self.pipe_od ** 2 / 4.0

    @property
    def metal_area(self) -> float:
        return max(0.0, self.displacement_area - self.bore_area)

    @property
    def annular_hydraulic_diameter(self) -> float:
        return max(0.0, self.hole_diameter - self.pipe_od)

    def covers(self, md: float) -> bool:
        return self.top <= md < self.bottom


class GeometryInput(BaseModel):
    annulus_sections: List[GeometrySection] = Field(default_factory=list, description="Casing / open-hole sections")
    string_sections: List[GeometrySection] = Field(default_factory=list, description="Drill string / casing string sections")


class GeometryResolution(BaseModel):
    status: ResolutionStatus
    slices: List[GeometrySlice] = Field(default_factory=list)
    max_depth: float = 0.0
    warnings: List[str] = Field(default_factory=list)


class VolumeInput(GeometryInput):
    top_md: float = Field(..., description="Interval top MD, m")
    bottom_md: float = Field(..., description="Interval bottom MD, m")


class VolumeSummary(BaseModel):
    top: float
    bottom: float
    length: float = 0.0
    annular_volume: float = Field(0.0, description="Annular flow volume, m³")
    string_capacity: float = Field(0.0, description="Volume inside the string, m³")
    string_displacement: float = Field(0.0, description="Closed-end string displacement, m³")
    string_metal_volume: float = Field(0.0, description="Open-end (steel) displacement, m³")
    open_hole_volume: float = Field(0.0, description="Wellbore volume with no pipe, m³")
    annular_capacity_per_m: float = 0.0
    string_capacity_per_m: float = 0.0
    string_displacement_per_m: float = 0.0
    string_metal_per_m: float = 0.0
    open_hole_capacity_per_m: float = 0.0


class PipeInInterval(BaseModel):
    length: float = Field(..., description="Column length once pipe is inside, m")
    total_volume: float = Field(..., description="Annular + string volume over that length, m³")
    annular_volume: float
    string_volume: float
    top_with_pipe: float = Field(..., description="Top MD of the column with pipe in, m")


class SurveyStation(BaseModel):
    md: float = Field(..., ge=0, description="Measured depth, m")
    tvd: Optional[float] = Field(None, description="True vertical depth, m (defaults to md)")
    inclination: Optional[float] = Field(None, description="Inclination, degrees")
    azimuth: Optional[float] = Field(None, description="Azimuth, degrees")


class TvdInput(BaseModel):
    stations: List[SurveyStation] = Field(default_factory=list)
    depths: List[float] = Field(..., description="Measured depths to sample, m")


class TvdResult(BaseModel):
    depths: List[float]
    tvds: List[float]
