# app/services/geometry/resolver.py
import logging
from typing import List, Optional, Sequence, Tuple

from app.core.config import settings
from app.schemas.geometry import (
    GeometryResolution,
    GeometrySection,
    GeometrySlice,
    ResolutionStatus,
    SliceFlag,
)

logger = logging.getLogger(__name__)


def unique_boundaries(
    annulus_sections: Sequence[GeometrySection],
    string_sections: Sequence[GeometrySection],
    tol: float = settings.GEOMETRY_TOLERANCE_M,
) -> List[float]:
    """
    Sorted section boundaries from both lists, with surface always included.

    Values closer than `tol` collapse onto the first one seen so floating noise
    in user-entered depths does not produce sliver slices.
    """
    raw = [0.0]
    for section in list(annulus_sections) + list(string_sections):
        raw.append(section.top_md)
        raw.append(section.bottom_md)
    raw.sort()

    boundaries: List[float] = []
    for value in raw:
        if boundaries and abs(value - boundaries[-1]) <= tol:
            continue
        boundaries.append(value)
    return boundaries


def _first_covering(
    sections: Sequence[GeometrySection], top: float, bottom: float, tol: float
) -> Tuple[Optional[int], Optional[GeometrySection]]:
    for index, section in enumerate(sections):
        if section.top_md <= top + tol and section.bottom_md >= bottom - tol:
            return index, section
    return None, None


def _flags_for(annulus: Optional[GeometrySection], string: Optional[GeometrySection]) -> List[SliceFlag]:
    flags = []
    if annulus is None:
        flags.append(SliceFlag.GAP_ANNULUS)
    if string is None:
        flags.append(SliceFlag.GAP_STRING)
    if annulus is not None and string is not None and string.outer_diameter > annulus.inner_diameter:
        flags.append(SliceFlag.INTERFERENCE)
    return flags


def resolve_slices(
    annulus_sections: Sequence[GeometrySection],
    string_sections: Sequence[GeometrySection],
    tol: float = settings.GEOMETRY_TOLERANCE_M,
) -> List[GeometrySlice]:
    """
    Intersect the annulus and string section lists into ordered, gap-free slices.

    Each slice carries the first annulus and first string section covering it
    (either may be missing). Adjacent slices with the same covering sections are
    merged into one.
    """
    boundaries = unique_boundaries(annulus_sections, string_sections, tol)
    if len(boundaries) < 2:
        return []

    slices: List[GeometrySlice] = []
    for top, bottom in zip(boundaries[:-1], boundaries[1:]):
        if bottom <= top:
            continue
        a_index, annulus = _first_covering(annulus_sections, top, bottom, tol)
        s_index, string = _first_covering(string_sections, top, bottom, tol)

        previous = slices[-1] if slices else None
        if (
            previous is not None
            and previous.annulus_index == a_index
            and previous.string_index == s_index
            and abs(previous.bottom - top) <= tol
        ):
            previous.bottom = bottom
            continue

        slices.append(GeometrySlice(
            top=top,
            bottom=bottom,
            annulus=annulus,
            string=string,
            annulus_index=a_index,
            string_index=s_index,
            flags=_flags_for(annulus, string),
        ))
    return slices


def resolve_geometry(
    annulus_sections: Sequence[GeometrySection],
    string_sections: Sequence[GeometrySection],
    tol: float = settings.GEOMETRY_TOLERANCE_M,
) -> GeometryResolution:
    """Resolve slices and describe anything the caller should warn about."""
    slices = resolve_slices(annulus_sections, string_sections, tol)
    if not slices:
        return GeometryResolution(
            status=ResolutionStatus.UNDEFINED,
            warnings=["No geometry sections defined"],
        )

    warnings = []
    for s in slices:
        if SliceFlag.INTERFERENCE in s.flags:
            warnings.append(
                f"Interference {s.top:.2f}-{s.bottom:.2f} m: string OD {s.pipe_od:.4f} m "
                f"exceeds annulus ID {s.hole_diameter:.4f} m"
            )
        if SliceFlag.GAP_ANNULUS in s.flags and s.string is not None:
            warnings.append(f"No annulus section covers {s.top:.2f}-{s.bottom:.2f} m")

    if warnings:
        logger.warning(f"Geometry resolved with {len(warnings)} warning(s)")

    return GeometryResolution(
        status=ResolutionStatus.WARNING if warnings else ResolutionStatus.OK,
        slices=slices,
        max_depth=slices[-1].bottom,
        warnings=warnings,
    )


def slice_at(slices: Sequence[GeometrySlice], md: float) -> Optional[GeometrySlice]:
    """Slice covering `md`; the deepest slice's bottom belongs to that slice."""
    for s in slices:
        if s.top <= md < s.bottom:
            return s
    if slices and abs(md - slices[-1].bottom) <= settings.GEOMETRY_TOLERANCE_M:
        return slices[-1]
    return None


def hang_string(
    annulus_sections: Sequence[GeometrySection],
    bit_md: float,
    outer_diameter: float,
    inner_diameter: float,
    name: str = "Running string",
) -> List[GeometrySlice]:
    """Slices for a single uniform string hung from surface to `bit_md`."""
    strings = []
    if bit_md > 0:
        strings.append(GeometrySection(
            kind="string",
            name=name,
            top_md=0.0,
            bottom_md=bit_md,
            inner_diameter=inner_diameter,
            outer_diameter=outer_diameter,
        ))
    return resolve_slices(annulus_sections, strings)
