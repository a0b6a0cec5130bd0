# app/services/fluids/layers.py
"""
Fluid layer store.

A domain (annulus, string or pocket) is a list of FluidLayer sorted by top MD
that never overlaps itself. Gaps are allowed and stand for undefined/base
fluid. Every function here returns new lists; inputs are never mutated.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from app.schemas.fluids import FinalLayers, FluidDomain, FluidLayer, Placement, PlacementStep

logger = logging.getLogger(__name__)

MIN_LAYER_HEIGHT = 1e-9
DENSITY_MERGE_TOL = 1e-9


def sort_layers(layers: Sequence[FluidLayer]) -> List[FluidLayer]:
    return sorted(layers, key=lambda layer: (layer.top_md, layer.bottom_md))


def overlay(existing: Sequence[FluidLayer], new_layer: FluidLayer) -> List[FluidLayer]:
    """
    Paint `new_layer` over the existing layers of one domain.

    Layers entirely outside the new span are kept, layers partly under it are
    cut down to their surviving remainders, and fully covered layers are
    dropped. A zero-height layer leaves the set unchanged.
    """
    top, bottom = new_layer.top_md, new_layer.bottom_md
    if bottom - top <= MIN_LAYER_HEIGHT:
        return sort_layers(existing)

    result: List[FluidLayer] = []
    for layer in existing:
        if layer.bottom_md <= top or layer.top_md >= bottom:
            result.append(layer)
            continue
        if layer.top_md < top and top - layer.top_md > MIN_LAYER_HEIGHT:
            result.append(layer.with_bounds(layer.top_md, top))
        if layer.bottom_md > bottom and layer.bottom_md - bottom > MIN_LAYER_HEIGHT:
            result.append(layer.with_bounds(bottom, layer.bottom_md))

    result.append(new_layer.model_copy(deep=True))
    return sort_layers(result)


def truncate(layers: Sequence[FluidLayer], top: float, bottom: float) -> List[FluidLayer]:
    """Clip layers to [top, bottom], dropping anything outside."""
    if bottom <= top:
        return []
    result = []
    for layer in sort_layers(layers):
        t = max(layer.top_md, top)
        b = min(layer.bottom_md, bottom)
        if b - t <= MIN_LAYER_HEIGHT:
            continue
        if t == layer.top_md and b == layer.bottom_md:
            result.append(layer)
        else:
            result.append(layer.with_bounds(t, b))
    return result


def merge_adjacent(layers: Sequence[FluidLayer], tol: float = DENSITY_MERGE_TOL) -> List[FluidLayer]:
    """Join touching layers of equal density; the upper layer's identity is kept."""
    merged: List[FluidLayer] = []
    for layer in sort_layers(layers):
        if merged:
            last = merged[-1]
            touching = abs(last.bottom_md - layer.top_md) <= 1e-6
            if touching and abs(last.density - layer.density) <= tol:
                merged[-1] = last.with_bounds(last.top_md, layer.bottom_md)
                continue
        merged.append(layer)
    return merged


def slice_layers(layers: Sequence[FluidLayer], top: float, bottom: float) -> List[FluidLayer]:
    return merge_adjacent(truncate(layers, top, bottom))


def coverage_gaps(layers: Sequence[FluidLayer], top: float, bottom: float) -> List[Tuple[float, float]]:
    """Intervals of [top, bottom] not covered by any layer."""
    gaps = []
    cursor = top
    for layer in truncate(layers, top, bottom):
        if layer.top_md - cursor > 1e-6:
            gaps.append((cursor, layer.top_md))
        cursor = max(cursor, layer.bottom_md)
    if bottom - cursor > 1e-6:
        gaps.append((cursor, bottom))
    return gaps


def layer_at(layers: Sequence[FluidLayer], md: float) -> Optional[FluidLayer]:
    for layer in layers:
        if layer.top_md <= md < layer.bottom_md:
            return layer
    return None


def density_at(layers: Sequence[FluidLayer], md: float) -> Optional[float]:
    layer = layer_at(layers, md)
    return layer.density if layer else None


def with_domain(layers: Sequence[FluidLayer], domain: FluidDomain) -> List[FluidLayer]:
    """Copies of `layers` assigned to `domain`; the results share no state with the inputs."""
    return [layer.model_copy(update={"domain": domain}, deep=True) for layer in layers]


def layer_from_step(step: PlacementStep, domain: FluidDomain) -> FluidLayer:
    return FluidLayer(
        domain=domain,
        top_md=min(step.top_md, step.bottom_md),
        bottom_md=max(step.top_md, step.bottom_md),
        density=step.density,
        name=step.name,
        color=step.color,
        rheology=step.rheology,
    )


def build_final_layers(
    base_density: float,
    annulus_depth: float,
    string_depth: float,
    steps: Sequence[PlacementStep],
    base_name: str = "Base mud",
) -> FinalLayers:
    """
    Final displaced state: each domain filled with base fluid, then every
    placement step painted over it in order.
    """
    domains: Dict[FluidDomain, List[FluidLayer]] = {}
    limits = {FluidDomain.ANNULUS: annulus_depth, FluidDomain.STRING: string_depth}
    for domain, depth in limits.items():
        domains[domain] = []
        if depth > 0:
            domains[domain].append(FluidLayer(
                domain=domain, top_md=0.0, bottom_md=depth, density=base_density, name=base_name,
            ))

    for step in steps:
        targets = []
        if step.placement in (Placement.ANNULUS, Placement.BOTH):
            targets.append(FluidDomain.ANNULUS)
        if step.placement in (Placement.STRING, Placement.BOTH):
            targets.append(FluidDomain.STRING)
        for domain in targets:
            domains[domain] = overlay(domains[domain], layer_from_step(step, domain))

    logger.debug(f"Built final layers from {len(steps)} placement step(s)")
    return FinalLayers(
        annulus=truncate(domains[FluidDomain.ANNULUS], 0.0, annulus_depth),
        string=truncate(domains[FluidDomain.STRING], 0.0, string_depth),
    )
