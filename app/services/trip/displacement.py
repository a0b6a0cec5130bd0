# app/services/trip/displacement.py
import logging
import math
from typing import List, Sequence, Tuple

from app.schemas.fluids import FluidDomain, FluidLayer
from app.schemas.geometry import GeometrySection

logger = logging.getLogger(__name__)

DEFAULT_HOLE_ID = 0.2159  # 8-1/2" hole when no annulus section is known
MIN_ANNULAR_AREA = 1e-4


def wellbore_id_at(annulus_sections: Sequence[GeometrySection], md: float) -> float:
    for section in annulus_sections:
        if section.top_md <= md <= section.bottom_md:
            return section.inner_diameter
    if annulus_sections:
        return max(annulus_sections, key=lambda s: s.bottom_md).inner_diameter
    return DEFAULT_HOLE_ID


def expansion_factor(annulus_sections: Sequence[GeometrySection], md: float, pipe_od: float) -> float:
    """How much taller a fluid layer gets once pipe of `pipe_od` occupies its interval."""
    hole_id = wellbore_id_at(annulus_sections, md)
    hole_area = math.pi / 4.0 * hole_id * hole_id
    annular_area = math.pi / 4.0 * (hole_id * hole_id - pipe_od * pipe_od)
    if annular_area <= MIN_ANNULAR_AREA:
        return 1.0
    return hole_area / annular_area


def displace_column(
    layers: Sequence[FluidLayer],
    bit_md: float,
    annulus_sections: Sequence[GeometrySection],
    pipe_od: float,
) -> Tuple[List[FluidLayer], float]:
    """
    Wellbore column after pipe has been run to `bit_md`.

    Layers the pipe has entered keep their volume in a narrower annulus, so
    they grow by the hole/annulus area ratio at their mid-point; a layer
    straddling the bit only grows above the bit. Annulus-domain layers already
    had pipe around them and keep their height. The column is restacked from
    the deepest layer upwards without gaps and whatever rises above surface is
    dropped.

    Returns:
        The new column (fresh layer objects) and the overflow volume at surface, m³
    """
    ordered = sorted((l for l in layers if l.bottom_md - l.top_md > 0), key=lambda l: l.bottom_md, reverse=True)
    if not ordered:
        return [], 0.0

    result: List[FluidLayer] = []
    next_bottom = None
    new_top = 0.0
    for layer in ordered:
        height = layer.bottom_md - layer.top_md
        in_annulus = layer.domain == FluidDomain.ANNULUS

        if in_annulus or layer.top_md >= bit_md:
            new_height = height
        elif layer.bottom_md <= bit_md:
            new_height = height * expansion_factor(annulus_sections, 0.5 * (layer.top_md + layer.bottom_md), pipe_od)
        else:
            above = bit_md - layer.top_md
            below = layer.bottom_md - bit_md
            factor = expansion_factor(annulus_sections, 0.5 * (layer.top_md + bit_md), pipe_od)
            new_height = above * factor + below

        new_bottom = layer.bottom_md if next_bottom is None else next_bottom
        new_top = new_bottom - new_height
        next_bottom = new_top

        if new_bottom <= 0:
            continue
        clamped_top = max(0.0, new_top)
        if clamped_top >= new_bottom:
            continue
        result.append(layer.with_bounds(clamped_top, new_bottom))

    overflow_height = max(0.0, -new_top)
    overflow = 0.0
    if overflow_height > 0:
        hole_id = wellbore_id_at(annulus_sections, 0.0)
        od = pipe_od if bit_md > 0 else 0.0
        overflow = overflow_height * max(math.pi / 4.0 * (hole_id * hole_id - od * od), 0.0)

    result.sort(key=lambda l: l.top_md)
    return result, overflow
