import logging
import uuid

from app.schemas.cement import CementJobInput, CementJobState
from app.services.cement.simulator import CementJobSimulator
from app.utils.error_handling import ValidationError

# Configure logging
logger = logging.getLogger(__name__)


class CementService:
    """
    Service wrapping the cement stage simulator.
    Builds simulators and applies cursor commands; storage belongs to the project session.
    """

    def create_job(self, data: CementJobInput, tvd=None) -> CementJobSimulator:
        job_id = uuid.uuid4().hex
        logger.info(f"Creating cement job '{data.name}' ({job_id}) with {len(data.stages)} stages")
        return CementJobSimulator(data, job_id=job_id, tvd=tvd)

    def get_state(self, simulator: CementJobSimulator) -> CementJobState:
        return simulator.state()

    def next_stage(self, simulator: CementJobSimulator) -> CementJobState:
        simulator.next_stage()
        return simulator.state()

    def previous_stage(self, simulator: CementJobSimulator) -> CementJobState:
        simulator.previous_stage()
        return simulator.state()

    def jump_to_stage(self, simulator: CementJobSimulator, index: int) -> CementJobState:
        """
        Move the cursor to `index`.

        Raises:
            ValidationError: If the index is outside the stage list
        """
        if not simulator.jump_to_stage(index):
            raise ValidationError(
                f"Stage index {index} is out of range",
                details={"stage_count": len(simulator.stages)},
            )
        return simulator.state()

    def set_progress(self, simulator: CementJobSimulator, progress: float) -> CementJobState:
        simulator.set_progress(progress)
        return simulator.state()

    def record_tank_volume(self, simulator: CementJobSimulator, volume: float) -> CementJobState:
        logger.info(f"Cement job {simulator.job_id}: manual tank reading {volume:.2f} m³")
        simulator.record_tank_volume(volume)
        return simulator.state()

    def reset_tank_volume(self, simulator: CementJobSimulator) -> CementJobState:
        simulator.reset_tank_volume_to_expected()
        return simulator.state()


# Create a singleton instance
cement_service = CementService()
