# app/services/trip/engine.py
import logging
import math
import threading
from typing import Callable, List, Optional

import numpy as np

from app.core.config import settings
from app.schemas.fluids import FluidDomain, FluidLayer
from app.schemas.geometry import SliceFlag
from app.schemas.hydraulics import PipeEndType
from app.schemas.rheology import BinghamRheology
from app.schemas.trip import FloatState, TripInput, TripResult, TripStep, TripSummary
from app.services.fluids.hydrostatics import (
    density_contribution,
    equivalent_static_density,
    hydrostatic_pressure,
    required_choke_pressure,
)
from app.services.fluids.layers import coverage_gaps, truncate, with_domain
from app.services.geometry.resolver import hang_string
from app.services.geometry.tvd import TvdSampler
from app.services.geometry.volumes import volumes_between
from app.services.hydraulics.swab_surge import swab_surge_at_depth
from app.services.trip.displacement import displace_column

logger = logging.getLogger(__name__)

DEFAULT_SURGE_RHEOLOGY = BinghamRheology(plastic_viscosity=0.02, yield_point=5.0)
ESD_TOLERANCE = 1e-6  # kg/m³

ProgressCallback = Callable[[int, int], None]


def trip_depths(start: float, end: float, step: float) -> List[float]:
    """Bit depths from start to end in fixed steps; the end depth is always included."""
    if end < start:
        return []
    depths = [float(d) for d in np.arange(start, end + 1e-9, step)]
    if not depths or abs(depths[-1] - end) > 1e-9:
        depths.append(float(end))
    return depths


def _bounded_step(data: TripInput, min_step: float, max_steps: int, warnings: List[str]) -> float:
    step = data.step
    if step < min_step:
        warnings.append(f"Step {step:.3f} m is below the minimum; using {min_step:.3f} m")
        step = min_step
    span = data.end_md - data.start_md
    if span > 0 and math.ceil(span / step) + 1 > max_steps:
        step = span / max(max_steps - 1, 1)
        warnings.append(f"Run would exceed {max_steps} steps; step widened to {step:.3f} m")
    return step


def _initial_column(data: TripInput, total_depth: float, warnings: List[str]) -> List[FluidLayer]:
    if data.pocket_layers:
        column = sorted(data.pocket_layers, key=lambda l: l.top_md)
        gaps = coverage_gaps(column, 0.0, total_depth)
        if gaps:
            warnings.append(
                f"Initial wellbore column has {len(gaps)} undefined interval(s); they contribute no hydrostatic pressure"
            )
        return column
    # mud above the starting bit already stands around pipe
    column = []
    start = min(data.start_md, total_depth)
    for domain, top, bottom in ((FluidDomain.ANNULUS, 0.0, start), (FluidDomain.POCKET, start, total_depth)):
        if bottom > top:
            column.append(FluidLayer(
                domain=domain,
                top_md=top,
                bottom_md=bottom,
                density=data.base_mud_density,
                name="Base mud",
            ))
    return column


def _string_layers(data: TripInput, bit_md: float, mud_volume: float) -> List[FluidLayer]:
    if bit_md <= 0:
        return []
    fill_level = bit_md
    if data.is_floated_casing:
        capacity = math.pi / 4.0 * data.pipe_id * data.pipe_id
        fill_level = min(mud_volume / capacity, bit_md) if capacity > 0 else 0.0
    if fill_level <= 0:
        return []
    return [FluidLayer(
        domain=FluidDomain.STRING,
        top_md=0.0,
        bottom_md=fill_level,
        density=data.active_mud_density,
        name="Active mud",
    )]


def run_trip_in(
    data: TripInput,
    tvd: Optional[TvdSampler] = None,
    min_step: float = settings.TRIP_MIN_STEP_M,
    max_steps: int = settings.TRIP_MAX_STEPS,
    cancel_event: Optional[threading.Event] = None,
    progress: Optional[ProgressCallback] = None,
) -> TripResult:
    """
    Simulate running pipe from `start_md` to `end_md`.

    Every step is computed from the initial column and the bit depth alone, so
    the run can be replayed or abandoned at any point. When `cancel_event` is
    set between steps the run is abandoned and no steps are returned.
    """
    sampler = tvd or TvdSampler(data.stations)
    warnings: List[str] = []

    if data.end_md < data.start_md:
        warnings.append("End depth is above start depth; nothing to simulate")
        return TripResult(warnings=warnings)

    step = _bounded_step(data, min_step, max_steps, warnings)
    depths = trip_depths(data.start_md, data.end_md, step)

    total_depth = max((s.bottom_md for s in data.annulus_sections), default=data.end_md)
    total_depth = max(total_depth, data.end_md, data.control_md)
    column0 = _initial_column(data, total_depth, warnings)

    control_tvd = sampler.tvd(data.control_md)
    if control_tvd <= 0:
        warnings.append("Control depth is at surface; ESD and choke pressure are zero")
    crack = data.crack_pressure if data.crack_pressure is not None else settings.TRIP_DEFAULT_CRACK_PRESSURE_KPA
    rheology = data.rheology or DEFAULT_SURGE_RHEOLOGY

    # string already run above the start depth is taken as full
    initial_fill_depth = min(data.start_md, data.float_sub_md) if data.is_floated_casing else data.start_md
    initial_fill = volumes_between(
        hang_string(data.annulus_sections, data.start_md, data.pipe_od, data.pipe_id), 0.0, initial_fill_depth
    ).string_capacity

    logger.info(
        f"Trip-in {data.start_md:.1f} -> {data.end_md:.1f} m, step {step:.2f} m, "
        f"{len(depths)} steps, floated={data.is_floated_casing}"
    )

    steps: List[TripStep] = []
    cumulative_fill = 0.0
    cumulative_displacement = 0.0
    missing_geometry: List[float] = []

    for index, bit_md in enumerate(depths):
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Trip-in cancelled at step {index} of {len(depths)}")
            return TripResult(warnings=warnings + ["Run cancelled"], cancelled=True, effective_step=step)

        prev_md = depths[index - 1] if index > 0 else data.start_md
        bit_tvd = sampler.tvd(bit_md)
        slices = hang_string(data.annulus_sections, bit_md, data.pipe_od, data.pipe_id)

        interval = volumes_between(slices, prev_md, bit_md)
        if any(
            SliceFlag.GAP_ANNULUS in s.flags and s.bottom > prev_md and s.top < bit_md for s in slices
        ) or (bit_md > 0 and not slices):
            missing_geometry.append(bit_md)

        if data.is_floated_casing and bit_md > data.float_sub_md:
            step_fill = 0.0
        else:
            step_fill = interval.string_capacity
        cumulative_fill += step_fill
        step_displacement = interval.string_displacement
        cumulative_displacement += step_displacement

        to_bit = volumes_between(slices, 0.0, bit_md)

        column, overflow = displace_column(column0, bit_md, data.annulus_sections, data.pipe_od)
        layers_annulus = with_domain(truncate(column, 0.0, bit_md), FluidDomain.ANNULUS)
        layers_pocket = with_domain(truncate(column, bit_md, float("inf")), FluidDomain.POCKET)
        layers_string = _string_layers(data, bit_md, initial_fill + cumulative_fill)

        esd_control = equivalent_static_density(hydrostatic_pressure(column, data.control_md, sampler), control_tvd)
        annulus_pressure = hydrostatic_pressure(column, bit_md, sampler)
        string_pressure = hydrostatic_pressure(layers_string, bit_md, sampler)
        esd_bit = equivalent_static_density(annulus_pressure, bit_tvd)

        is_below_target = esd_control < data.target_esd - ESD_TOLERANCE
        choke = required_choke_pressure(esd_control, data.target_esd, control_tvd)

        float_differential = (annulus_pressure + choke) - string_pressure
        if data.is_floated_casing:
            float_state = FloatState.OPEN if float_differential > crack else FloatState.CLOSED
        else:
            float_state = FloatState.FULL

        surge = None
        dynamic_esd = None
        if data.trip_speed > 0:
            point = swab_surge_at_depth(
                slices, bit_md, data.trip_speed, rheology, data.base_mud_density, sampler,
                layers=layers_annulus,
                pipe_end=PipeEndType.CLOSED if float_state == FloatState.CLOSED else PipeEndType.OPEN,
                eccentricity=data.eccentricity,
            )
            surge = point.surge_pressure
            dynamic_esd = esd_control + density_contribution(surge, control_tvd)

        steps.append(TripStep(
            step_index=index,
            bit_md=bit_md,
            bit_tvd=bit_tvd,
            layers_pocket=layers_pocket,
            layers_annulus=layers_annulus,
            layers_string=layers_string,
            esd_at_control=esd_control,
            esd_at_bit=esd_bit,
            required_choke_pressure=choke,
            is_below_target=is_below_target,
            float_state=float_state,
            float_differential=float_differential,
            annulus_pressure_at_bit=annulus_pressure,
            string_pressure_at_bit=string_pressure,
            differential_pressure=annulus_pressure - string_pressure,
            step_fill_volume=step_fill,
            cumulative_fill_volume=cumulative_fill,
            expected_fill_closed=to_bit.string_capacity,
            expected_fill_open=to_bit.string_metal_volume,
            step_displacement_return=step_displacement,
            cumulative_displacement_return=cumulative_displacement,
            overflow_volume=overflow,
            surge_pressure=surge,
            dynamic_esd=dynamic_esd,
        ))

        if progress is not None:
            progress(index + 1, len(depths))

    if missing_geometry:
        warnings.append(
            f"No annulus geometry at {len(missing_geometry)} step(s) from {missing_geometry[0]:.1f} m; "
            f"volumes there are taken as zero"
        )

    result = TripResult(
        steps=steps,
        summary=summarize(steps),
        final_layers=[
            layer.model_copy(deep=True) for layer in steps[-1].layers_annulus + steps[-1].layers_pocket
        ] if steps else [],
        warnings=warnings,
        effective_step=step,
    )
    logger.info(
        f"Trip-in completed: {len(steps)} steps, max choke {result.summary.max_choke_pressure:.1f} kPa"
    )
    return result


def summarize(steps: List[TripStep]) -> TripSummary:
    if not steps:
        return TripSummary()
    below = next((s.bit_md for s in steps if s.is_below_target), None)
    surges = [s.surge_pressure for s in steps if s.surge_pressure is not None]
    return TripSummary(
        step_count=len(steps),
        max_choke_pressure=max(s.required_choke_pressure for s in steps),
        max_differential_pressure=max(s.differential_pressure for s in steps),
        min_esd=min(s.esd_at_control for s in steps),
        depth_below_target_from=below,
        total_fill_volume=steps[-1].cumulative_fill_volume,
        total_displacement_return=steps[-1].cumulative_displacement_return,
        max_surge_pressure=max(surges) if surges else None,
    )
