# app/services/hydraulics/engine.py
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from app.schemas.fluids import FluidLayer
from app.schemas.geometry import GeometrySlice
from app.schemas.hydraulics import (
    CirculationInput,
    CirculationResult,
    ConduitKind,
    FlowConduit,
    PressureLossInput,
    PressureLossResult,
    SegmentLoss,
)
from app.services.fluids.hydrostatics import equivalent_static_density, hydrostatic_pressure
from app.services.fluids.layers import layer_at
from app.services.geometry.resolver import resolve_slices, slice_at
from app.services.geometry.tvd import TvdSampler
from app.services.hydraulics.rheology import (
    RheologyModelBase,
    build_bingham,
    build_herschel_bulkley,
    build_newtonian,
    build_power_law,
)

logger = logging.getLogger(__name__)

MODEL_BUILDERS: Dict[str, Callable] = {
    "newtonian": build_newtonian,
    "bingham": build_bingham,
    "power_law": build_power_law,
    "herschel_bulkley": build_herschel_bulkley,
}


def build_rheology_model(rheology, density: float) -> RheologyModelBase:
    """
    Instantiate the pressure-loss model for a rheology description.

    Raises:
        ValueError: If the rheology model id is unknown
    """
    builder = MODEL_BUILDERS.get(rheology.model)
    if builder is None:
        raise ValueError(f"Unknown rheology model: {rheology.model}")
    return builder(rheology, density)


def conduit_for_slice(s: GeometrySlice, kind: ConduitKind) -> Optional[FlowConduit]:
    """Flow conduit of a slice: the string bore, or the annulus around the string (open hole with no string)."""
    if kind == ConduitKind.PIPE:
        if s.string is None or s.pipe_id <= 0:
            return None
        return FlowConduit(kind=ConduitKind.PIPE, outer_diameter=s.pipe_id, roughness=s.string.roughness)
    if s.annulus is None:
        return None
    return FlowConduit(
        kind=ConduitKind.ANNULUS,
        outer_diameter=s.hole_diameter,
        inner_diameter=s.pipe_od,
        roughness=s.annulus.roughness,
    )


def flow_segments(
    slices: Sequence[GeometrySlice],
    layers: Sequence[FluidLayer],
    top: float,
    bottom: float,
) -> List[Tuple[float, float]]:
    """Sub-intervals of [top, bottom] over which geometry and fluid are both constant."""
    if bottom <= top:
        return []
    points = {top, bottom}
    for s in slices:
        for p in (s.top, s.bottom):
            if top < p < bottom:
                points.add(p)
    for layer in layers:
        for p in (layer.top_md, layer.bottom_md):
            if top < p < bottom:
                points.add(p)
    ordered = sorted(points)
    return [(a, b) for a, b in zip(ordered[:-1], ordered[1:]) if b - a > 1e-9]


def calculate_pressure_loss(
    slices: Sequence[GeometrySlice],
    layers: Sequence[FluidLayer],
    rheology,
    density: float,
    flow_rate: float,
    top: float,
    bottom: float,
    path: ConduitKind = ConduitKind.ANNULUS,
) -> PressureLossResult:
    """
    Walk [top, bottom] and sum the frictional losses of each constant segment.

    Layer density and rheology are used where a layer covers the segment,
    otherwise the supplied defaults. Segments with no usable conduit contribute
    nothing and are reported as warnings.
    """
    segments: List[SegmentLoss] = []
    warnings: List[str] = []
    total = 0.0
    models: Dict[Tuple[int, float], RheologyModelBase] = {}

    for a, b in flow_segments(slices, layers, top, bottom):
        mid = 0.5 * (a + b)
        s = slice_at(slices, mid)
        conduit = conduit_for_slice(s, path) if s is not None else None
        if conduit is None:
            warnings.append(f"No {path.value} geometry for {a:.2f}-{b:.2f} m, friction taken as zero")
            continue

        layer = layer_at(layers, mid)
        rho = layer.density if layer is not None else density
        fluid_rheology = layer.rheology if layer is not None and layer.rheology is not None else rheology
        key = (id(fluid_rheology), rho)
        if key not in models:
            models[key] = build_rheology_model(fluid_rheology, rho)
        model = models[key]

        friction = model.pressure_gradient(flow_rate, conduit)
        loss = friction.gradient * (b - a)
        total += loss
        segments.append(SegmentLoss(
            top_md=a,
            bottom_md=b,
            density=rho,
            model=model.name,
            gradient=friction.gradient,
            pressure_loss=loss,
            velocity=friction.velocity,
            regime=friction.regime,
        ))

    length = bottom - top
    return PressureLossResult(
        total_pressure_loss=total,
        average_gradient=total / length if length > 0 else 0.0,
        segments=segments,
        warnings=warnings,
    )


def calculate_pressure_loss_from_input(data: PressureLossInput) -> PressureLossResult:
    slices = resolve_slices(data.annulus_sections, data.string_sections)
    return calculate_pressure_loss(
        slices, data.layers, data.rheology, data.density, data.flow_rate,
        data.top_md, data.bottom_md, data.path,
    )


def calculate_circulation(data: CirculationInput) -> CirculationResult:
    """
    Bottomhole pressure while circulating: SBP + hydrostatic + annular friction.

    Also solves the SBP needed for a target BHP and checks the result against
    the pore/fracture window when one is given.
    """
    sampler = TvdSampler(data.stations)
    depth = data.bottom_md
    depth_tvd = sampler.tvd(depth)

    layers = list(data.layers)
    if not layers:
        layers = [FluidLayer(top_md=0.0, bottom_md=depth, density=data.density, rheology=data.rheology)]

    slices = resolve_slices(data.annulus_sections, data.string_sections)
    hydrostatic = hydrostatic_pressure(layers, depth, sampler)
    friction = calculate_pressure_loss(
        slices, layers, data.rheology, data.density, data.flow_rate, 0.0, depth, ConduitKind.ANNULUS,
    )
    dynamic = hydrostatic + friction.total_pressure_loss
    bhp = data.surface_back_pressure + dynamic

    required_sbp = None
    if data.target_bhp is not None:
        required_sbp = max(data.target_bhp - dynamic, 0.0)

    pore = frac = None
    within = True
    if data.window is not None:
        if data.window.pore_gradient is not None:
            pore = data.window.pore_gradient * depth_tvd
            within = within and bhp >= pore
        if data.window.frac_gradient is not None:
            frac = data.window.frac_gradient * depth_tvd
            within = within and bhp <= frac

    logger.info(f"Circulation at {depth:.1f} m MD: BHP={bhp:.1f} kPa, friction={friction.total_pressure_loss:.1f} kPa")
    return CirculationResult(
        depth_md=depth,
        depth_tvd=depth_tvd,
        hydrostatic_pressure=hydrostatic,
        friction_pressure=friction.total_pressure_loss,
        surface_back_pressure=data.surface_back_pressure,
        bottomhole_pressure=bhp,
        ecd=equivalent_static_density(bhp, depth_tvd),
        required_sbp=required_sbp,
        pore_pressure=pore,
        frac_pressure=frac,
        within_window=within,
        warnings=friction.warnings,
    )
