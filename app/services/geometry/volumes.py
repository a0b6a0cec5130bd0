# app/services/geometry/volumes.py
import logging
from enum import Enum
from typing import List, Sequence

from app.schemas.geometry import GeometrySlice, PipeInInterval, VolumeSummary

logger = logging.getLogger(__name__)


class VolumeMeasure(str, Enum):
    ANNULAR = "annular"
    STRING_CAPACITY = "string_capacity"
    STRING_DISPLACEMENT = "string_displacement"
    STRING_METAL = "string_metal"
    OPEN_HOLE = "open_hole"
    WITH_PIPE = "with_pipe"


def _area(s: GeometrySlice, measure: VolumeMeasure) -> float:
    if measure == VolumeMeasure.ANNULAR:
        return s.annular_area
    if measure == VolumeMeasure.STRING_CAPACITY:
        return s.bore_area if s.string else 0.0
    if measure == VolumeMeasure.STRING_DISPLACEMENT:
        return s.displacement_area if s.string else 0.0
    if measure == VolumeMeasure.STRING_METAL:
        return s.metal_area if s.string else 0.0
    if measure == VolumeMeasure.OPEN_HOLE:
        return s.open_hole_area if s.annulus else 0.0
    # mud held by the interval once pipe is run into it
    return s.annular_area + (s.bore_area if s.string else 0.0)


def volumes_between(slices: Sequence[GeometrySlice], top: float, bottom: float) -> VolumeSummary:
    """
    Integrate capacities over [top, bottom].

    Reversed or zero-length intervals return an all-zero summary. Depths not
    covered by any slice contribute nothing.
    """
    summary = VolumeSummary(top=top, bottom=bottom)
    if bottom <= top:
        return summary

    for s in slices:
        t = max(top, s.top)
        b = min(bottom, s.bottom)
        dz = b - t
        if dz <= 0:
            continue
        if s.annulus is not None:
            summary.open_hole_volume += s.open_hole_area * dz
            summary.annular_volume += s.annular_area * dz
        if s.string is not None:
            summary.string_capacity += s.bore_area * dz
            summary.string_displacement += s.displacement_area * dz
            summary.string_metal_volume += s.metal_area * dz

    length = bottom - top
    summary.length = length
    summary.annular_capacity_per_m = summary.annular_volume / length
    summary.string_capacity_per_m = summary.string_capacity / length
    summary.string_displacement_per_m = summary.string_displacement / length
    summary.string_metal_per_m = summary.string_metal_volume / length
    summary.open_hole_capacity_per_m = summary.open_hole_volume / length
    return summary


def volume_of(slices: Sequence[GeometrySlice], top: float, bottom: float, measure: VolumeMeasure) -> float:
    if bottom <= top:
        return 0.0
    total = 0.0
    for s in slices:
        dz = min(bottom, s.bottom) - max(top, s.top)
        if dz > 0:
            total += _area(s, measure) * dz
    return total


def depth_for_volume(
    slices: Sequence[GeometrySlice],
    volume: float,
    start: float,
    limit: float,
    measure: VolumeMeasure,
    downward: bool = True,
    tol: float = 1e-9,
    max_iter: int = 80,
) -> float:
    """
    Depth reached when `volume` is laid into the well from `start` towards `limit`.

    Filling downward measures [start, depth]; filling upward measures
    [depth, start]. The answer is clamped to `limit` when the volume does not
    fit.
    """
    if volume <= 0:
        return start
    span = abs(limit - start)
    if span <= 0:
        return start

    def filled(length: float) -> float:
        if downward:
            return volume_of(slices, start, start + length, measure)
        return volume_of(slices, start - length, start, measure)

    if filled(span) <= volume:
        return limit

    lo, hi = 0.0, span
    for _ in range(max_iter):
        mid = 0.5 * (lo + hi)
        v_mid = filled(mid)
        if abs(v_mid - volume) <= max(tol, tol * volume):
            lo = hi = mid
            break
        if v_mid < volume:
            lo = mid
        else:
            hi = mid
    length = 0.5 * (lo + hi)
    return start + length if downward else start - length


def depths_for_volumes(
    slices: Sequence[GeometrySlice],
    volumes: Sequence[float],
    start: float,
    limit: float,
    measure: VolumeMeasure,
    downward: bool = True,
) -> List[float]:
    """
    Depths reached by each of the ascending cumulative `volumes` laid from
    `start` towards `limit`, in a single pass over the slices.

    Areas are constant within a slice, so each depth is exact. Volumes that do
    not fit are clamped to `limit`.
    """
    depths: List[float] = []
    lo, hi = min(start, limit), max(start, limit)
    pieces = []
    for s in sorted(slices, key=lambda s: s.top, reverse=not downward):
        t, b = max(lo, s.top), min(hi, s.bottom)
        if b > t:
            pieces.append((t, b, _area(s, measure)))

    i = 0
    while i < len(volumes) and volumes[i] <= 0:
        depths.append(start)
        i += 1
    filled = 0.0
    for t, b, area in pieces:
        if i >= len(volumes):
            break
        piece_volume = area * (b - t)
        if area > 0:
            while i < len(volumes) and volumes[i] - filled <= piece_volume:
                length = max(0.0, volumes[i] - filled) / area
                depths.append(t + length if downward else b - length)
                i += 1
        filled += piece_volume
    depths.extend(limit for _ in range(len(volumes) - i))
    return depths


def pipe_in_length_for_open_hole_volume(
    slices: Sequence[GeometrySlice],
    top: float,
    bottom: float,
    tol: float = 1e-6,
    max_iter: int = 60,
) -> PipeInInterval:
    """
    Length of column, measured up from `bottom`, that holds the open-hole volume
    of [top, bottom] once pipe is inside (annulus plus string bore).

    Used to place a pill spotted in open hole after the string is run back in.
    """
    t, b = min(top, bottom), max(top, bottom)
    if b <= t:
        return PipeInInterval(length=0.0, total_volume=0.0, annular_volume=0.0, string_volume=0.0, top_with_pipe=b)

    target = volume_of(slices, t, b, VolumeMeasure.OPEN_HOLE)

    def parts(top_with_pipe: float):
        annular = volume_of(slices, top_with_pipe, b, VolumeMeasure.ANNULAR)
        string = volume_of(slices, top_with_pipe, b, VolumeMeasure.STRING_CAPACITY)
        return annular, string

    annular, string = parts(0.0)
    if annular + string < target:
        annular, string = parts(t)
        logger.debug("Open-hole volume does not fit above bottom with pipe in, returning the original interval")
        return PipeInInterval(length=b - t, total_volume=annular + string, annular_volume=annular,
                              string_volume=string, top_with_pipe=t)

    lo, hi = 0.0, b
    for _ in range(max_iter):
        mid = 0.5 * (lo + hi)
        annular, string = parts(max(0.0, b - mid))
        v_mid = annular + string
        if abs(v_mid - target) <= max(1e-9, tol * max(target, 1.0)):
            hi = mid
            break
        if v_mid < target:
            lo = mid
        else:
            hi = mid

    top_with_pipe = max(0.0, b - hi)
    annular, string = parts(top_with_pipe)
    return PipeInInterval(
        length=hi,
        total_volume=annular + string,
        annular_volume=annular,
        string_volume=string,
        top_with_pipe=top_with_pipe,
    )
