import logging
from fastapi import APIRouter

from app.schemas.geometry import (
    GeometryInput, GeometryResolution, PipeInInterval,
    TvdInput, TvdResult, VolumeInput, VolumeSummary,
)
from app.services.geometry import (
    TvdSampler,
    pipe_in_length_for_open_hole_volume,
    resolve_geometry,
    resolve_slices,
    volumes_between,
)
from app.utils.error_handling import handle_api_error

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["geometry"])


@router.post("/slices", response_model=GeometryResolution)
async def resolve_slices_endpoint(data: GeometryInput) -> GeometryResolution:
    """
    Resolve annulus and string sections into constant-geometry slices.

    Every boundary of either list (plus surface) starts a new slice; each slice
    names the first annulus section and the first string section covering it.
    Slices with no annulus or string section, or where the string OD exceeds
    the annulus ID, are flagged rather than rejected.

    Parameters:
    - data: Annulus (casing / open hole) and string sections

    Returns:
    - Slices from surface to the deepest boundary with their flags
    - Status `ok`, `warning` or `undefined` plus the warnings raised
    """
    try:
        return resolve_geometry(data.annulus_sections, data.string_sections)
    except Exception as e:
        logger.error(f"Error resolving geometry: {str(e)}")
        raise handle_api_error(e)


@router.post("/volumes", response_model=VolumeSummary)
async def volumes_endpoint(data: VolumeInput) -> VolumeSummary:
    """
    Annular volume, string capacity, string displacement and open-hole volume
    over an interval, with per-metre rates. A zero-length or reversed interval
    returns zeros.
    """
    try:
        slices = resolve_slices(data.annulus_sections, data.string_sections)
        return volumes_between(slices, data.top_md, data.bottom_md)
    except Exception as e:
        logger.error(f"Error integrating volumes: {str(e)}")
        raise handle_api_error(e)


@router.post("/pipe-in-length", response_model=PipeInInterval)
async def pipe_in_length_endpoint(data: VolumeInput) -> PipeInInterval:
    """
    Length of column a pill spotted in open hole over [top_md, bottom_md]
    occupies once the string is run back through it.
    """
    try:
        slices = resolve_slices(data.annulus_sections, data.string_sections)
        return pipe_in_length_for_open_hole_volume(slices, data.top_md, data.bottom_md)
    except Exception as e:
        logger.error(f"Error computing pipe-in length: {str(e)}")
        raise handle_api_error(e)


@router.post("/tvd", response_model=TvdResult)
async def tvd_endpoint(data: TvdInput) -> TvdResult:
    """Interpolate TVD at measured depths from survey stations (vertical when none are given)."""
    sampler = TvdSampler(data.stations)
    return TvdResult(depths=data.depths, tvds=[float(t) for t in sampler.tvd_many(data.depths)])
