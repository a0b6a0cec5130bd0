import logging
import threading
from typing import Dict, Optional

from app.schemas.trip import TripInput, TripResult
from app.services.geometry.tvd import TvdSampler
from app.services.trip.engine import run_trip_in

# Configure logging
logger = logging.getLogger(__name__)


class TripService:
    """
    Service for trip-in runs.
    Keeps a cancel flag per running job so a client can abandon a long run.
    """

    def __init__(self):
        self._running: Dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def simulate(self, data: TripInput, job_id: Optional[str] = None, tvd: Optional[TvdSampler] = None) -> TripResult:
        """
        Run a trip-in simulation.

        Args:
            data: Trip input
            job_id: Optional handle that `cancel` can later refer to
            tvd: Optional TVD sampler; built from `data.stations` when omitted

        Returns:
            Trip result; `cancelled` is set when the run was abandoned
        """
        event = threading.Event()
        if job_id:
            with self._lock:
                self._running[job_id] = event
        try:
            return run_trip_in(data, tvd=tvd, cancel_event=event)
        finally:
            if job_id:
                with self._lock:
                    self._running.pop(job_id, None)

    def cancel(self, job_id: str) -> bool:
        with self._lock:
            event = self._running.get(job_id)
        if event is None:
            return False
        logger.info(f"Cancelling trip job {job_id}")
        event.set()
        return True

    def running_jobs(self):
        with self._lock:
            return list(self._running)


# Create a singleton instance
trip_service = TripService()
