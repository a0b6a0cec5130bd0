# app/services/session/workspace.py

import hashlib
import json
import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Dict, List, Optional

from app.core.config import settings
from app.schemas.fluids import FluidLayer, FluidProperties
from app.schemas.geometry import GeometrySection, GeometrySlice, SurveyStation
from app.schemas.session import ProjectSummary, TripRunInfo, TripRunRequest, WorkspaceStats
from app.schemas.trip import SavedTripRun, TripInput, TripResult
from app.services.cement.simulator import CementJobSimulator
from app.services.geometry.resolver import resolve_slices
from app.services.geometry.tvd import TvdSampler
from app.utils.error_handling import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def geometry_fingerprint(annulus_sections: List[GeometrySection], string_sections: List[GeometrySection]) -> str:
    """md5 of the canonical JSON of both section lists."""
    key_data = {
        "annulus": [s.model_dump(mode="json") for s in annulus_sections],
        "string": [s.model_dump(mode="json") for s in string_sections],
    }
    json_str = json.dumps(key_data, sort_keys=True)
    return hashlib.md5(json_str.encode()).hexdigest()


class ProjectSession:
    """
    In-memory state of one well project.

    Holds the geometry, surveys and fluid catalog, caches resolved slices per
    geometry fingerprint, and owns the saved trip runs and cement jobs. Saved
    runs remember the fingerprint they were computed with so that a later
    geometry edit marks them stale; they are never recomputed automatically.
    """

    def __init__(self, project_id: str):
        self.project_id = project_id
        self.annulus_sections: List[GeometrySection] = []
        self.string_sections: List[GeometrySection] = []
        self.stations: List[SurveyStation] = []
        self.fluids: List[FluidProperties] = []
        self.active_mud: Optional[str] = None
        self.trip_runs: Dict[str, SavedTripRun] = {}
        self.cement_jobs: Dict[str, CementJobSimulator] = {}
        self.created_at = time.time()
        self.updated_at = self.created_at
        self._slices: Dict[str, List[GeometrySlice]] = {}
        self._sampler: Optional[TvdSampler] = None
        self.lock = threading.RLock()

    def _touch(self) -> None:
        self.updated_at = time.time()

    # Project data

    def set_geometry(self, annulus_sections: List[GeometrySection], string_sections: List[GeometrySection]) -> str:
        self.annulus_sections = list(annulus_sections)
        self.string_sections = list(string_sections)
        self._touch()
        fingerprint = self.geometry_fingerprint()
        logger.info(f"Project {self.project_id}: geometry updated ({fingerprint[:8]})")
        return fingerprint

    def set_stations(self, stations: List[SurveyStation]) -> None:
        self.stations = list(stations)
        self._sampler = None
        self._touch()

    def set_fluids(self, fluids: List[FluidProperties], active_mud: Optional[str] = None) -> None:
        if active_mud is not None and active_mud not in {f.name for f in fluids}:
            raise ValidationError(f"Active mud '{active_mud}' is not in the fluid catalog")
        self.fluids = list(fluids)
        self.active_mud = active_mud
        self._touch()

    def geometry_fingerprint(self) -> str:
        return geometry_fingerprint(self.annulus_sections, self.string_sections)

    def slices(self) -> List[GeometrySlice]:
        fingerprint = self.geometry_fingerprint()
        if fingerprint not in self._slices:
            self._slices = {fingerprint: resolve_slices(self.annulus_sections, self.string_sections)}
        return self._slices[fingerprint]

    def tvd_sampler(self) -> TvdSampler:
        if self._sampler is None:
            self._sampler = TvdSampler(self.stations)
        return self._sampler

    # Trip runs

    def trip_input(self, request: TripRunRequest) -> TripInput:
        if not self.annulus_sections:
            raise ValidationError(f"Project {self.project_id} has no annulus geometry")
        params = request.model_dump(exclude={"import_pocket_from"})
        if request.import_pocket_from:
            params["pocket_layers"] = self.import_pocket_state(request.import_pocket_from)
        return TripInput(annulus_sections=self.annulus_sections, stations=self.stations, **params)

    def save_trip_run(self, data: TripInput, result: TripResult) -> SavedTripRun:
        run = SavedTripRun(
            run_id=uuid.uuid4().hex,
            project_id=self.project_id,
            geometry_fingerprint=self.geometry_fingerprint(),
            created_at=time.time(),
            input=data,
            result=result,
        )
        self.trip_runs[run.run_id] = run
        self._touch()
        return run

    def is_stale(self, run: SavedTripRun) -> bool:
        return run.geometry_fingerprint != self.geometry_fingerprint()

    def get_trip_run(self, run_id: str) -> SavedTripRun:
        run = self.trip_runs.get(run_id)
        if run is None:
            raise NotFoundError(f"Trip run {run_id} not found", details={"project_id": self.project_id})
        return run.model_copy(update={"stale": self.is_stale(run)})

    def import_pocket_state(self, run_id: str) -> List[FluidLayer]:
        """Final wellbore column of a saved run, to seed the next run."""
        run = self.get_trip_run(run_id)
        if run.stale:
            logger.warning(f"Project {self.project_id}: importing column from stale run {run_id}")
        return [layer.model_copy(deep=True) for layer in run.result.final_layers]

    # Cement jobs

    def add_cement_job(self, simulator: CementJobSimulator) -> None:
        self.cement_jobs[simulator.job_id] = simulator
        self._touch()

    def get_cement_job(self, job_id: str) -> CementJobSimulator:
        simulator = self.cement_jobs.get(job_id)
        if simulator is None:
            raise NotFoundError(f"Cement job {job_id} not found", details={"project_id": self.project_id})
        return simulator

    def summary(self) -> ProjectSummary:
        return ProjectSummary(
            project_id=self.project_id,
            annulus_sections=self.annulus_sections,
            string_sections=self.string_sections,
            stations=self.stations,
            fluids=self.fluids,
            active_mud=self.active_mud,
            geometry_fingerprint=self.geometry_fingerprint(),
            trip_runs=[
                TripRunInfo(
                    run_id=run.run_id,
                    created_at=run.created_at,
                    step_count=len(run.result.steps),
                    stale=self.is_stale(run),
                )
                for run in self.trip_runs.values()
            ],
            cement_jobs=list(self.cement_jobs),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class WellWorkspace:
    """
    Project sessions held in memory with least-recently-used eviction and an
    idle time-to-live. One instance lives on the application state.
    """

    def __init__(self, max_projects: int = settings.WORKSPACE_MAX_PROJECTS, ttl_seconds: int = settings.WORKSPACE_TTL_SECONDS):
        self.max_projects = max_projects
        self.ttl_seconds = ttl_seconds
        self._sessions: "OrderedDict[str, ProjectSession]" = OrderedDict()
        self._last_access: Dict[str, float] = {}
        self._stats = {"hits": 0, "misses": 0, "evictions": 0, "expirations": 0}
        self._lock = threading.Lock()

    def _expired(self, project_id: str, now: float) -> bool:
        return now - self._last_access.get(project_id, now) > self.ttl_seconds

    def _drop(self, project_id: str) -> None:
        self._sessions.pop(project_id, None)
        self._last_access.pop(project_id, None)

    def _lookup(self, project_id: str) -> Optional[ProjectSession]:
        now = time.time()
        session = self._sessions.get(project_id)
        if session is not None and self._expired(project_id, now):
            self._drop(project_id)
            self._stats["expirations"] += 1
            logger.info(f"Project {project_id} expired from workspace")
            session = None
        if session is None:
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        self._sessions.move_to_end(project_id)
        self._last_access[project_id] = now
        return session

    def get(self, project_id: str) -> ProjectSession:
        """
        Return a stored project.

        Raises:
            NotFoundError: If the project does not exist or has expired
        """
        with self._lock:
            session = self._lookup(project_id)
        if session is None:
            raise NotFoundError(f"Project {project_id} not found")
        return session

    def get_or_create(self, project_id: str) -> ProjectSession:
        with self._lock:
            session = self._lookup(project_id)
            if session is not None:
                return session
            while len(self._sessions) >= self.max_projects:
                oldest, _ = self._sessions.popitem(last=False)
                self._last_access.pop(oldest, None)
                self._stats["evictions"] += 1
                logger.info(f"Evicted project {oldest} from workspace")
            session = ProjectSession(project_id)
            self._sessions[project_id] = session
            self._last_access[project_id] = time.time()
            logger.debug(f"Created project {project_id}")
            return session

    def delete(self, project_id: str) -> bool:
        with self._lock:
            if project_id not in self._sessions:
                return False
            self._drop(project_id)
        logger.info(f"Deleted project {project_id}")
        return True

    def clear(self) -> int:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
            self._last_access.clear()
        return count

    def stats(self) -> WorkspaceStats:
        with self._lock:
            lookups = self._stats["hits"] + self._stats["misses"]
            return WorkspaceStats(
                size=len(self._sessions),
                max_projects=self.max_projects,
                hit_ratio=self._stats["hits"] / lookups if lookups > 0 else 0.0,
                **self._stats,
            )
