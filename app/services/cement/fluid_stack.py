# app/services/cement/fluid_stack.py
"""
Volume-ordered fluid stacks for the string and annulus during a cement job.

The string is stacked from surface downwards and pumped fluid enters at the
top; whatever no longer fits leaves through the shoe. The annulus is stacked
from the shoe upwards, fed from below, and overflows at surface as returns.
Both stacks are kept as volumes and converted to MD layers on demand.
"""
from typing import List, Optional, Sequence

from pydantic import BaseModel

from app.core.config import settings
from app.schemas.fluids import FluidDomain, FluidLayer
from app.schemas.geometry import GeometrySlice
from app.services.geometry.volumes import VolumeMeasure, depths_for_volumes

EPS = 1e-9


class FluidParcel(BaseModel):
    volume: float
    density: float
    name: str
    color: Optional[str] = None
    is_cement: bool = False

    def split(self, volume: float) -> "FluidParcel":
        return self.model_copy(update={"volume": volume})


def total_volume(parcels: Sequence[FluidParcel]) -> float:
    return sum(max(0.0, p.volume) for p in parcels)


def same_fluid(a: FluidParcel, b: FluidParcel) -> bool:
    return a.name == b.name and a.density == b.density and a.is_cement == b.is_cement and a.color == b.color


def _push(parcels: List[FluidParcel], add: FluidParcel, capacity: float) -> List[FluidParcel]:
    """
    Insert `add` at the entry end (index 0) and pop what overflows from the far end.
    A parcel of the same fluid at the entry end absorbs `add`, so the stack
    holds one parcel per contiguous fluid.
    """
    overflow: List[FluidParcel] = []
    if add.volume <= EPS:
        return overflow
    if parcels and same_fluid(parcels[0], add):
        parcels[0] = parcels[0].split(parcels[0].volume + add.volume)
    else:
        parcels.insert(0, add.split(add.volume))

    excess = total_volume(parcels) - max(0.0, capacity)
    while excess > EPS and parcels:
        last = parcels.pop()
        v = max(0.0, last.volume)
        if v <= excess + EPS:
            overflow.append(last)
            excess -= v
        else:
            overflow.append(last.split(excess))
            parcels.append(last.split(v - excess))
            excess = 0.0
    return overflow


def push_into_string(parcels: List[FluidParcel], add: FluidParcel, capacity: float) -> List[FluidParcel]:
    """Pump `add` into the top of the string; returns the parcels expelled at the shoe, in exit order."""
    return _push(parcels, add, capacity)


def push_into_annulus(parcels: List[FluidParcel], add: FluidParcel, capacity: float) -> List[FluidParcel]:
    """Feed `add` into the bottom of the annulus; returns the parcels overflowing at surface."""
    return _push(parcels, add, capacity)


def string_layers(
    parcels: Sequence[FluidParcel],
    slices: Sequence[GeometrySlice],
    max_depth: float,
    min_height: float = settings.CEMENT_MIN_SEGMENT_HEIGHT_M,
) -> List[FluidLayer]:
    parcels = [p for p in parcels if p.volume > EPS]
    bottoms = depths_for_volumes(slices, _cumulative(parcels), 0.0, max_depth, VolumeMeasure.STRING_CAPACITY)
    layers: List[FluidLayer] = []
    top = 0.0
    for parcel, bottom in zip(parcels, bottoms):
        if bottom - top >= min_height or bottom >= max_depth:
            layers.append(_layer(parcel, top, bottom, FluidDomain.STRING))
        top = bottom
    return [l for l in layers if l.bottom_md > l.top_md]


def annulus_layers(
    parcels: Sequence[FluidParcel],
    slices: Sequence[GeometrySlice],
    max_depth: float,
    min_height: float = settings.CEMENT_MIN_SEGMENT_HEIGHT_M,
) -> List[FluidLayer]:
    parcels = [p for p in parcels if p.volume > EPS]
    tops = depths_for_volumes(
        slices, _cumulative(parcels), max_depth, 0.0, VolumeMeasure.ANNULAR, downward=False
    )
    layers: List[FluidLayer] = []
    bottom = max_depth
    for parcel, top in zip(parcels, tops):
        if bottom - top >= min_height or top <= 0:
            layers.append(_layer(parcel, top, bottom, FluidDomain.ANNULUS))
        bottom = top
    layers = [l for l in layers if l.bottom_md > l.top_md]
    layers.sort(key=lambda l: l.top_md)
    return layers


def _cumulative(parcels: Sequence[FluidParcel]) -> List[float]:
    running = 0.0
    totals = []
    for parcel in parcels:
        running += parcel.volume
        totals.append(running)
    return totals


def _layer(parcel: FluidParcel, top: float, bottom: float, domain: FluidDomain) -> FluidLayer:
    return FluidLayer(
        domain=domain,
        top_md=top,
        bottom_md=bottom,
        density=parcel.density,
        name=parcel.name,
        color=parcel.color,
        metadata={"is_cement": parcel.is_cement},
    )
