# app/schemas/session.py
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.fluids import FluidProperties
from app.schemas.geometry import GeometrySection, SurveyStation
from app.schemas.trip import TripParameters


class GeometryUpdate(BaseModel):
    annulus_sections: List[GeometrySection] = Field(default_factory=list)
    string_sections: List[GeometrySection] = Field(default_factory=list)


class SurveyUpdate(BaseModel):
    stations: List[SurveyStation] = Field(default_factory=list)


class FluidCatalogUpdate(BaseModel):
    fluids: List[FluidProperties] = Field(default_factory=list)
    active_mud: Optional[str] = Field(None, description="Name of the active mud in the catalog")


class TripRunRequest(TripParameters):
    import_pocket_from: Optional[str] = Field(
        None, description="Saved run whose final wellbore column becomes this run's initial column"
    )


class TripRunInfo(BaseModel):
    run_id: str
    created_at: float
    step_count: int
    stale: bool


class ProjectSummary(BaseModel):
    project_id: str
    annulus_sections: List[GeometrySection]
    string_sections: List[GeometrySection]
    stations: List[SurveyStation]
    fluids: List[FluidProperties]
    active_mud: Optional[str] = None
    geometry_fingerprint: str
    trip_runs: List[TripRunInfo] = Field(default_factory=list)
    cement_jobs: List[str] = Field(default_factory=list)
    created_at: float
    updated_at: float


class WorkspaceStats(BaseModel):
    size: int
    max_projects: int
    hits: int
    misses: int
    evictions: int
    expirations: int
    hit_ratio: float
