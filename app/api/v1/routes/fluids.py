import logging
from typing import Any, Dict, List

from fastapi import APIRouter

from app.schemas.fluids import (
    BariteInput, BlendInput, FinalLayers, FinalLayersInput,
    FluidLayer, HydrostaticInput, HydrostaticResult, OverlayInput,
)
from app.services.fluids import (
    build_final_layers,
    coverage_gaps,
    equivalent_static_density,
    hydrostatic_pressure,
    overlay,
    required_choke_pressure,
)
from app.services.fluids.mixing import barite_mass_for_target, blend_density, solve_volume_for_target
from app.services.geometry import TvdSampler
from app.utils.error_handling import handle_api_error

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["fluids"])


@router.post("/overlay", response_model=List[FluidLayer])
async def overlay_endpoint(data: OverlayInput) -> List[FluidLayer]:
    """
    Paint a new layer over the existing layers of one domain.

    Existing layers are trimmed or split where the new layer covers them; the
    result is sorted by top and never overlaps. Applying the same layer twice
    gives the same result as applying it once.
    """
    return overlay(data.layers, data.new_layer)


@router.post("/final-layers", response_model=FinalLayers)
async def final_layers_endpoint(data: FinalLayersInput) -> FinalLayers:
    """
    Build the final annulus and string columns from a base fluid and an ordered
    list of placement steps. Later steps win where steps overlap.

    Example:
    ```json
    {
      "base_density": 1200,
      "annulus_depth": 2000,
      "string_depth": 2000,
      "steps": [
        {"top_md": 1500, "bottom_md": 2000, "density": 1500, "name": "Kill pill", "placement": "annulus"}
      ]
    }
    ```
    """
    try:
        return build_final_layers(
            data.base_density, data.annulus_depth, data.string_depth, data.steps, data.base_name,
        )
    except Exception as e:
        logger.error(f"Error building final layers: {str(e)}")
        raise handle_api_error(e)


@router.post("/hydrostatic", response_model=HydrostaticResult)
async def hydrostatic_endpoint(data: HydrostaticInput) -> HydrostaticResult:
    """
    Hydrostatic pressure of a layered column, the ESD at the control depth and
    the choke pressure needed to reach a target ESD. Undefined intervals
    contribute nothing and are returned as coverage gaps.
    """
    try:
        sampler = TvdSampler(data.stations)
        control_md = data.control_md if data.control_md is not None else data.depth_md
        control_tvd = sampler.tvd(control_md)
        esd = equivalent_static_density(hydrostatic_pressure(data.layers, control_md, sampler), control_tvd)
        choke = required_choke_pressure(esd, data.target_esd, control_tvd) if data.target_esd else 0.0
        return HydrostaticResult(
            depth_md=data.depth_md,
            depth_tvd=sampler.tvd(data.depth_md),
            pressure=hydrostatic_pressure(data.layers, data.depth_md, sampler),
            control_md=control_md,
            control_tvd=control_tvd,
            esd=esd,
            required_choke_pressure=choke,
            coverage_gaps=[[a, b] for a, b in coverage_gaps(data.layers, 0.0, data.depth_md)],
        )
    except Exception as e:
        logger.error(f"Error in hydrostatic calculation: {str(e)}")
        raise handle_api_error(e)


@router.post("/mix/blend")
async def blend_endpoint(data: BlendInput) -> Dict[str, Any]:
    """Density of two fluids mixed together."""
    return {
        "density": blend_density(data.density_1, data.volume_1, data.density_2, data.volume_2),
        "volume": data.volume_1 + data.volume_2,
    }


@router.post("/mix/volume-for-target")
async def volume_for_target_endpoint(data: BlendInput) -> Dict[str, Any]:
    """
    Volume of fluid 2 to add to fluid 1 to reach `target_density`.
    `volume` is null when the target cannot be reached by adding fluid 2.
    """
    if data.target_density is None:
        return {"volume": None, "reachable": False}
    volume = solve_volume_for_target(data.density_1, data.volume_1, data.density_2, data.target_density)
    return {"volume": volume, "reachable": volume is not None}


@router.post("/mix/barite")
async def barite_endpoint(data: BariteInput) -> Dict[str, Any]:
    """Barite mass (kg) needed to weight up a mud volume to the target density."""
    mass = barite_mass_for_target(data.mud_density, data.mud_volume, data.target_density, data.barite_density)
    return {"mass": mass, "reachable": mass is not None}
