import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter
from starlette.concurrency import run_in_threadpool

from app.schemas.trip import TripInput, TripResult
from app.services.trip import trip_service
from app.utils.error_handling import NotFoundError, handle_api_error
from app.utils.response_formatter import response_formatter

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["trip"])


@router.post("/simulate", response_model=TripResult)
async def simulate_trip_endpoint(data: TripInput, job_id: Optional[str] = None) -> TripResult:
    """
    Simulate running pipe into the well from `start_md` to `end_md`.

    Each step reports the pocket, annulus and string columns at that bit depth,
    the ESD at the control depth, the choke pressure needed to hold the target
    ESD, the float state, fill and displacement volumes and, when a trip speed
    is given, the surge pressure and dynamic ESD.

    The run executes on a worker thread and the result is returned once it
    completes. Pass a `job_id` query parameter to be able to cancel it with
    `POST /jobs/{job_id}/cancel`; a cancelled run returns `cancelled: true`
    and no steps. Missing geometry is treated as zero volume and reported in
    `warnings`; it does not fail the run.

    Example:
    ```json
    {
      "annulus_sections": [{"kind": "annulus", "name": "Casing", "top_md": 0, "bottom_md": 3000, "inner_diameter": 0.2205}],
      "start_md": 0,
      "end_md": 3000,
      "step": 100,
      "control_md": 3000,
      "pipe_od": 0.127,
      "pipe_id": 0.1086,
      "active_mud_density": 1200,
      "base_mud_density": 1200,
      "target_esd": 1200
    }
    ```
    """
    try:
        return await run_in_threadpool(trip_service.simulate, data, job_id)
    except Exception as e:
        logger.error(f"Error in trip simulation: {str(e)}")
        raise handle_api_error(e)


@router.get("/jobs")
async def list_trip_jobs() -> Dict[str, Any]:
    """Ids of trip runs currently executing that can be cancelled."""
    return response_formatter.success(data={"jobs": trip_service.running_jobs()})


@router.post("/jobs/{job_id}/cancel")
async def cancel_trip_job(job_id: str) -> Dict[str, Any]:
    """Ask a running trip simulation to stop before its next step."""
    if not trip_service.cancel(job_id):
        raise handle_api_error(NotFoundError(f"No running trip job {job_id}"))
    return response_formatter.success(data={"job_id": job_id}, message="Cancellation requested")
