import logging
from fastapi import APIRouter
from typing import List, Dict, Any

from app.schemas.hydraulics import (
    CirculationInput, CirculationResult,
    FannFitResult, FannReadings,
    PressureLossInput, PressureLossResult,
    SwabSurgeInput, SwabSurgeResult,
)
from app.services.hydraulics.hydraulics_service import hydraulics_service
from app.utils.error_handling import handle_api_error

# Set up logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["hydraulics"])


@router.get("/models")
async def get_available_models() -> List[Dict[str, Any]]:
    """
    List the rheology models available for pressure-loss calculations.

    Returns:
    - id: value for the `model` field of a rheology block
    - name: display name
    - parameters: required parameters with units
    - description: when the model applies
    """
    return hydraulics_service.get_available_models()


@router.post(
    "/pressure-loss",
    response_model=PressureLossResult,
    summary="Frictional pressure loss",
)
async def pressure_loss_endpoint(data: PressureLossInput) -> PressureLossResult:
    """
    Frictional pressure loss over an interval of the annulus or the string bore.

    The interval is split wherever the geometry or the fluid changes. Each
    segment uses the density and rheology of the layer covering it, falling
    back to the request's `density` and `rheology`.

    Available rheology models:
    - newtonian: viscosity (Pa·s)
    - bingham: plastic_viscosity (Pa·s), yield_point (Pa)
    - power_law: flow_index, consistency (Pa·sⁿ)
    - herschel_bulkley: yield_stress (Pa), flow_index, consistency (Pa·sⁿ)

    Example:
    ```json
    {
      "annulus_sections": [{"kind": "annulus", "name": "Open hole", "top_md": 0, "bottom_md": 2000, "inner_diameter": 0.2159}],
      "string_sections": [{"kind": "string", "name": "DP", "top_md": 0, "bottom_md": 2000, "inner_diameter": 0.1086, "outer_diameter": 0.127}],
      "rheology": {"model": "bingham", "plastic_viscosity": 0.02, "yield_point": 7.0},
      "density": 1200,
      "flow_rate": 1.5,
      "bottom_md": 2000,
      "path": "annulus"
    }
    ```
    """
    try:
        return hydraulics_service.calculate_pressure_loss(data)
    except Exception as e:
        logger.error(f"Error in pressure loss calculation: {str(e)}")
        raise handle_api_error(e)


@router.post("/circulation", response_model=CirculationResult)
async def circulation_endpoint(data: CirculationInput) -> CirculationResult:
    """
    Bottomhole pressure and ECD while circulating, the surface back pressure
    needed for a target BHP, and a check against the pore/fracture window.
    """
    try:
        return hydraulics_service.calculate_circulation(data)
    except Exception as e:
        logger.error(f"Error in circulation calculation: {str(e)}")
        raise handle_api_error(e)


@router.post("/swab-surge", response_model=SwabSurgeResult)
async def swab_surge_endpoint(data: SwabSurgeInput) -> SwabSurgeResult:
    """
    Surge and swab pressures for a trip speed, at the bit or as a profile
    from `bit_md` to `end_md`.

    The recommended SABP is the swab pressure times the configured safety
    factor.
    """
    try:
        return hydraulics_service.calculate_swab_surge(data)
    except Exception as e:
        logger.error(f"Error in swab/surge calculation: {str(e)}")
        raise handle_api_error(e)


@router.post("/fann-fit", response_model=FannFitResult)
async def fann_fit_endpoint(data: FannReadings) -> FannFitResult:
    """
    Fit Bingham, power-law and (with a 3 rpm reading) Herschel-Bulkley
    parameters to Fann dial readings.
    """
    try:
        return hydraulics_service.fit_rheology(data)
    except Exception as e:
        logger.error(f"Error fitting rheology: {str(e)}")
        raise handle_api_error(e)
