# app/services/hydraulics/swab_surge.py
"""
Swab and surge pressures from pipe movement.

Moving pipe pushes (or pulls) mud through the annulus above the bit. The
annular velocity follows from the displaced area, Burkhardt's clinging
constant and an eccentricity factor; that velocity is turned into an
equivalent flow rate and handed to the rheology models, so any fluid model
available for circulation also works here.
"""
import logging
import math
from typing import Callable, List, Optional, Sequence

import numpy as np

from app.core.config import settings
from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySlice
from app.schemas.hydraulics import (
    ConduitKind,
    FlowRegime,
    PipeEndType,
    SwabSurgeInput,
    SwabSurgePoint,
    SwabSurgeResult,
)
from app.services.fluids.hydrostatics import equivalent_static_density
from app.services.fluids.layers import layer_at
from app.services.geometry.resolver import resolve_slices, slice_at
from app.services.geometry.tvd import TvdSampler
from app.services.hydraulics.engine import build_rheology_model, conduit_for_slice, flow_segments
from app.utils.conversions import m_per_min_to_m_per_s

logger = logging.getLogger(__name__)

DEFAULT_CLINGING = 0.45


def clinging_constant(pipe_od: float, hole_id: float) -> float:
    """Burkhardt clinging constant Kc = 0.45 + 0.45·(Dp/Dh)²."""
    if not (hole_id > pipe_od > 0):
        return DEFAULT_CLINGING
    ratio = pipe_od / hole_id
    return DEFAULT_CLINGING + ratio * ratio * DEFAULT_CLINGING


def displacement_area(pipe_od: float, pipe_id: float, pipe_end: PipeEndType) -> float:
    if pipe_end == PipeEndType.CLOSED:
        return math.pi / 4.0 * pipe_od * pipe_od
    return math.pi / 4.0 * max(pipe_od * pipe_od - pipe_id * pipe_id, 0.0)


def swab_surge_at_depth(
    slices: Sequence[GeometrySlice],
    bit_md: float,
    trip_speed: float,
    rheology,
    density: float,
    tvd: Callable[[float], float],
    layers: Sequence[FluidLayer] = (),
    pipe_end: PipeEndType = PipeEndType.CLOSED,
    clinging_override: Optional[float] = None,
    eccentricity: Optional[float] = None,
    safety_factor: Optional[float] = None,
) -> SwabSurgePoint:
    """Surge (running in) and swab (pulling out) at the bit for one trip speed (m/min)."""
    eccentricity = eccentricity if eccentricity is not None else settings.DEFAULT_ECCENTRICITY
    safety_factor = safety_factor if safety_factor is not None else settings.SWAB_SAFETY_FACTOR
    bit_tvd = tvd(bit_md)
    speed = m_per_min_to_m_per_s(abs(trip_speed))

    at_bit = slice_at(slices, max(bit_md - 1e-6, 0.0))
    if at_bit is None or at_bit.string is None or speed <= 0:
        return SwabSurgePoint(
            bit_md=bit_md, bit_tvd=bit_tvd, surge_pressure=0.0, swab_pressure=0.0,
            surge_ecd=0.0, swab_ecd=0.0, annular_velocity=0.0, regime=FlowRegime.STATIC,
            clinging_constant=clinging_override if clinging_override is not None else DEFAULT_CLINGING,
            recommended_sabp=0.0,
        )

    bit_od = at_bit.pipe_od
    disp_area = displacement_area(bit_od, at_bit.pipe_id, pipe_end)

    total = 0.0
    bit_velocity = 0.0
    bit_regime = FlowRegime.STATIC
    bit_kc = clinging_override if clinging_override is not None else DEFAULT_CLINGING

    for top, bottom in flow_segments(slices, layers, 0.0, bit_md):
        mid = 0.5 * (top + bottom)
        s = slice_at(slices, mid)
        if s is None or s.annulus is None:
            continue
        conduit = conduit_for_slice(s, ConduitKind.ANNULUS)
        if s.string is None:
            # annulus not yet described by a string section: assume the bit string
            conduit.inner_diameter = bit_od
        annular_area = math.pi / 4.0 * (conduit.outer_diameter ** 2 - conduit.inner_diameter ** 2)
        if annular_area <= 0:
            continue

        kc = clinging_override if clinging_override is not None else clinging_constant(
            conduit.inner_diameter, conduit.outer_diameter
        )
        velocity = speed * (1.0 + kc) * (disp_area / annular_area) * eccentricity
        flow_rate = velocity * annular_area * 60.0

        layer = layer_at(layers, mid)
        rho = layer.density if layer is not None else density
        fluid_rheology = layer.rheology if layer is not None and layer.rheology is not None else rheology
        friction = build_rheology_model(fluid_rheology, rho).pressure_gradient(flow_rate, conduit)
        total += friction.gradient * (bottom - top)

        if bottom >= bit_md - 1.0:
            bit_velocity = velocity
            bit_regime = friction.regime
            bit_kc = kc

    ecd = equivalent_static_density(total, bit_tvd)
    return SwabSurgePoint(
        bit_md=bit_md,
        bit_tvd=bit_tvd,
        surge_pressure=total,
        swab_pressure=-total,
        surge_ecd=ecd,
        swab_ecd=-ecd,
        annular_velocity=bit_velocity,
        regime=bit_regime,
        clinging_constant=bit_kc,
        recommended_sabp=total * safety_factor,
    )


def _profile_depths(start: float, end: float, step: float) -> List[float]:
    direction = 1.0 if end >= start else -1.0
    depths = list(np.arange(start, end + direction * 1e-9, direction * step))
    depths = [float(d) for d in depths]
    if not depths or abs(depths[-1] - end) > 1e-9:
        depths.append(end)
    return depths


def swab_surge_profile(
    slices: Sequence[GeometrySlice],
    start_md: float,
    end_md: float,
    step: float,
    trip_speed: float,
    rheology,
    density: float,
    tvd: Callable[[float], float],
    **kwargs,
) -> List[SwabSurgePoint]:
    """Swab/surge at bit depths from `start_md` to `end_md`; the end depth is always included."""
    return [
        swab_surge_at_depth(slices, md, trip_speed, rheology, density, tvd, **kwargs)
        for md in _profile_depths(start_md, end_md, step)
    ]


def calculate_swab_surge(data: SwabSurgeInput) -> SwabSurgeResult:
    """Swab/surge at `bit_md`, or along a profile to `end_md` when one is given."""
    slices = resolve_slices(data.annulus_sections, data.string_sections)
    sampler = TvdSampler(data.stations)
    options = dict(
        pipe_end=data.pipe_end,
        clinging_override=data.clinging_constant,
        eccentricity=data.eccentricity,
    )
    end_md = data.end_md if data.end_md is not None else data.bit_md
    points = swab_surge_profile(
        slices, data.bit_md, end_md, data.depth_step, data.trip_speed, data.rheology, data.density, sampler,
        **options,
    )
    warnings = []
    if not slices:
        warnings.append("No geometry sections defined")
    elif all(p.regime == FlowRegime.STATIC for p in points):
        warnings.append("Swab/surge is zero: no string at the bit depth(s) or zero trip speed")

    return SwabSurgeResult(
        points=points,
        max_surge_pressure=max((p.surge_pressure for p in points), default=0.0),
        max_swab_pressure=min((p.swab_pressure for p in points), default=0.0),
        warnings=warnings,
    )
