# app/schemas/rheology.py
from typing import Annotated, Union, Literal

from pydantic import BaseModel, Field


class NewtonianRheology(BaseModel):
    model: Literal["newtonian"] = "newtonian"
    viscosity: float = Field(..., gt=0, description="Dynamic viscosity, Pa·s")


class BinghamRheology(BaseModel):
    model: Literal["bingham"] = "bingham"
    plastic_viscosity: float = Field(..., gt=0, description="Plastic viscosity, Pa·s")
    yield_point: float = Field(..., ge=0, description="Yield point, Pa")


class PowerLawRheology(BaseModel):
    model: Literal["power_law"] = "power_law"
    flow_index: float = Field(..., gt=0, le=2, description="Flow behaviour index n")
    consistency: float = Field(..., gt=0, description="Consistency index K, Pa·s^n")


class HerschelBulkleyRheology(BaseModel):
    model: Literal["herschel_bulkley"] = "herschel_bulkley"
    yield_stress: float = Field(..., ge=0, description="Yield stress τ0, Pa")
    flow_index: float = Field(..., gt=0, le=2, description="Flow behaviour index n")
    consistency: float = Field(..., gt=0, description="Consistency index K, Pa·s^n")


RheologyInput = Annotated[
    Union[NewtonianRheology, BinghamRheology, PowerLawRheology, HerschelBulkleyRheology],
    Field(discriminator="model"),
]
