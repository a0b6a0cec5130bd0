import logging
from typing import Any, Dict, List, Optional

from app.schemas.hydraulics import (
    CirculationInput,
    CirculationResult,
    FannFitResult,
    FannReadings,
    PressureLossInput,
    PressureLossResult,
    SwabSurgeInput,
    SwabSurgeResult,
)
from app.services.hydraulics.engine import (
    calculate_circulation as engine_calculate_circulation,
    calculate_pressure_loss_from_input as engine_calculate_pressure_loss,
)
from app.services.hydraulics.funcs import available_models as engine_available_models
from app.services.hydraulics.swab_surge import calculate_swab_surge as engine_calculate_swab_surge
from app.services.hydraulics.utils import fit_fann
from app.utils.error_handling import CalculationError

# Configure logging
logger = logging.getLogger(__name__)

class HydraulicsService:
    """
    Service for rheology and frictional pressure calculations.
    This service sits between the API routes and the hydraulics engine.
    """

    def calculate_pressure_loss(self, data: PressureLossInput) -> PressureLossResult:
        """
        Frictional pressure loss over an interval of the annulus or string.

        Args:
            data: Geometry, fluid layers, default rheology and flow rate

        Returns:
            Total loss with a per-segment breakdown
        """
        logger.info(
            f"Pressure loss along {data.path.value} {data.top_md:.1f}-{data.bottom_md:.1f} m "
            f"using {data.rheology.model} at {data.flow_rate:.3f} m³/min"
        )
        try:
            result = engine_calculate_pressure_loss(data)
        except ArithmeticError as e:
            logger.error(f"Pressure loss calculation failed: {str(e)}")
            raise CalculationError(f"Pressure loss calculation failed: {str(e)}") from e
        logger.info(f"Pressure loss completed: {result.total_pressure_loss:.2f} kPa")
        return result

    def calculate_circulation(self, data: CirculationInput) -> CirculationResult:
        """
        Bottomhole pressure and ECD while circulating.

        Args:
            data: Pressure-loss input plus SBP, optional target BHP and pressure window

        Returns:
            Circulation result
        """
        try:
            return engine_calculate_circulation(data)
        except ArithmeticError as e:
            logger.error(f"Circulation calculation failed: {str(e)}")
            raise CalculationError(f"Circulation calculation failed: {str(e)}") from e

    def calculate_swab_surge(self, data: SwabSurgeInput) -> SwabSurgeResult:
        logger.info(f"Swab/surge at {data.trip_speed:.1f} m/min from {data.bit_md:.1f} m")
        try:
            result = engine_calculate_swab_surge(data)
        except ArithmeticError as e:
            logger.error(f"Swab/surge calculation failed: {str(e)}")
            raise CalculationError(f"Swab/surge calculation failed: {str(e)}") from e
        logger.info(
            f"Swab/surge completed: max surge {result.max_surge_pressure:.2f} kPa, "
            f"max swab {result.max_swab_pressure:.2f} kPa"
        )
        return result

    def fit_rheology(self, readings: FannReadings) -> FannFitResult:
        """
        Fit rheology models to Fann viscometer dial readings.

        Raises:
            ValidationError: If the readings cannot describe a shear-thinning fluid
        """
        return fit_fann(readings.theta600, readings.theta300, readings.theta3)

    def get_available_models(self) -> List[Dict[str, Any]]:
        return engine_available_models()

# Create a singleton instance
hydraulics_service = HydraulicsService()
