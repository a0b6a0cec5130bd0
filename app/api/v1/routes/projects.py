import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from app.api.v1.dependencies.workspace import get_project, get_workspace
from app.schemas.cement import (
    CementJobInput, CementJobState,
    JumpRequest, ProgressRequest, TankReadingRequest,
)
from app.schemas.session import (
    FluidCatalogUpdate, GeometryUpdate, ProjectSummary,
    SurveyUpdate, TripRunRequest, WorkspaceStats,
)
from app.schemas.trip import SavedTripRun
from app.services.cement import cement_service
from app.services.session.workspace import ProjectSession, WellWorkspace
from app.services.trip import trip_service
from app.utils.error_handling import NotFoundError, handle_api_error
from app.utils.response_formatter import response_formatter

# Configure logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(tags=["projects"])


@router.get("/stats", response_model=WorkspaceStats)
async def workspace_stats(workspace: WellWorkspace = Depends(get_workspace)) -> WorkspaceStats:
    """Number of projects held in memory and lookup hit/miss counters."""
    return workspace.stats()


@router.put("/{project_id}/geometry", response_model=ProjectSummary)
async def update_geometry(
    project_id: str,
    data: GeometryUpdate,
    workspace: WellWorkspace = Depends(get_workspace),
) -> ProjectSummary:
    """
    Replace the project's annulus and string sections, creating the project
    if needed. Saved trip runs computed with a different geometry are reported
    as stale from now on.
    """
    session = workspace.get_or_create(project_id)
    with session.lock:
        session.set_geometry(data.annulus_sections, data.string_sections)
        return session.summary()


@router.put("/{project_id}/surveys", response_model=ProjectSummary)
async def update_surveys(
    project_id: str,
    data: SurveyUpdate,
    workspace: WellWorkspace = Depends(get_workspace),
) -> ProjectSummary:
    session = workspace.get_or_create(project_id)
    with session.lock:
        session.set_stations(data.stations)
        return session.summary()


@router.put("/{project_id}/fluids", response_model=ProjectSummary)
async def update_fluids(
    project_id: str,
    data: FluidCatalogUpdate,
    workspace: WellWorkspace = Depends(get_workspace),
) -> ProjectSummary:
    session = workspace.get_or_create(project_id)
    try:
        with session.lock:
            session.set_fluids(data.fluids, data.active_mud)
            return session.summary()
    except Exception as e:
        logger.error(f"Error updating fluids for project {project_id}: {str(e)}")
        raise handle_api_error(e)


@router.get("/{project_id}", response_model=ProjectSummary)
async def get_project_summary(session: ProjectSession = Depends(get_project)) -> ProjectSummary:
    return session.summary()


@router.delete("/{project_id}")
async def delete_project(project_id: str, workspace: WellWorkspace = Depends(get_workspace)) -> Dict[str, Any]:
    if not workspace.delete(project_id):
        raise handle_api_error(NotFoundError(f"Project {project_id} not found"))
    return response_formatter.success(data={"project_id": project_id}, message="Project deleted")


@router.post("/{project_id}/trip-runs", response_model=SavedTripRun)
async def create_trip_run(
    data: TripRunRequest,
    session: ProjectSession = Depends(get_project),
) -> SavedTripRun:
    """
    Run a trip-in against the project's geometry and surveys and save it.

    Set `import_pocket_from` to a saved run id to start from that run's final
    wellbore column. The saved run keeps the geometry fingerprint it was
    computed with.
    """
    try:
        with session.lock:
            trip_input = session.trip_input(data)
            sampler = session.tvd_sampler()
        result = await run_in_threadpool(trip_service.simulate, trip_input, None, sampler)
        with session.lock:
            return session.save_trip_run(trip_input, result)
    except Exception as e:
        logger.error(f"Error in trip run for project {session.project_id}: {str(e)}")
        raise handle_api_error(e)


@router.get("/{project_id}/trip-runs/{run_id}", response_model=SavedTripRun)
async def get_trip_run(run_id: str, session: ProjectSession = Depends(get_project)) -> SavedTripRun:
    """A saved run with `stale` set when the project geometry has changed since it ran."""
    try:
        return session.get_trip_run(run_id)
    except Exception as e:
        raise handle_api_error(e)


@router.post("/{project_id}/cement-jobs", response_model=CementJobState)
async def create_cement_job(
    data: CementJobInput,
    session: ProjectSession = Depends(get_project),
) -> CementJobState:
    """
    Create a cement job simulator positioned at the start of the first stage.

    Stages are a list of pump stages (`kind: pump`) and operations
    (`pressure_test_lines`, `plug_drop`, `bump_plug`, ...). Loss zones divert
    returns once the annular pressure at the zone exceeds its frac pressure.
    """
    try:
        simulator = await run_in_threadpool(cement_service.create_job, data, session.tvd_sampler())
        with session.lock:
            session.add_cement_job(simulator)
        return await run_in_threadpool(simulator.state)
    except Exception as e:
        logger.error(f"Error creating cement job for project {session.project_id}: {str(e)}")
        raise handle_api_error(e)


def _cement_job(job_id: str, session: ProjectSession):
    try:
        return session.get_cement_job(job_id)
    except Exception as e:
        raise handle_api_error(e)


def _locked(session: ProjectSession, command, *args):
    # called on a worker thread
    with session.lock:
        return command(*args)


async def _run_cement_command(session: ProjectSession, job_id: str, command, *args) -> CementJobState:
    simulator = _cement_job(job_id, session)
    try:
        return await run_in_threadpool(_locked, session, command, simulator, *args)
    except Exception as e:
        logger.error(f"Error in cement job {job_id} for project {session.project_id}: {str(e)}")
        raise handle_api_error(e)


@router.get("/{project_id}/cement-jobs/{job_id}", response_model=CementJobState)
async def get_cement_job(job_id: str, session: ProjectSession = Depends(get_project)) -> CementJobState:
    return await _run_cement_command(session, job_id, cement_service.get_state)


@router.post("/{project_id}/cement-jobs/{job_id}/next", response_model=CementJobState)
async def cement_next_stage(job_id: str, session: ProjectSession = Depends(get_project)) -> CementJobState:
    """Complete the current stage, or move to the next one when it is already complete."""
    return await _run_cement_command(session, job_id, cement_service.next_stage)


@router.post("/{project_id}/cement-jobs/{job_id}/previous", response_model=CementJobState)
async def cement_previous_stage(job_id: str, session: ProjectSession = Depends(get_project)) -> CementJobState:
    """Rewind the current stage, or step back to the previous one when it is already at zero."""
    return await _run_cement_command(session, job_id, cement_service.previous_stage)


@router.post("/{project_id}/cement-jobs/{job_id}/jump", response_model=CementJobState)
async def cement_jump_to_stage(
    job_id: str,
    data: JumpRequest,
    session: ProjectSession = Depends(get_project),
) -> CementJobState:
    return await _run_cement_command(session, job_id, cement_service.jump_to_stage, data.index)


@router.post("/{project_id}/cement-jobs/{job_id}/progress", response_model=CementJobState)
async def cement_set_progress(
    job_id: str,
    data: ProgressRequest,
    session: ProjectSession = Depends(get_project),
) -> CementJobState:
    """Set the pumped fraction of the current stage; operations complete on any positive value."""
    return await _run_cement_command(session, job_id, cement_service.set_progress, data.progress)


@router.post("/{project_id}/cement-jobs/{job_id}/tank-reading", response_model=CementJobState)
async def cement_record_tank(
    job_id: str,
    data: TankReadingRequest,
    session: ProjectSession = Depends(get_project),
) -> CementJobState:
    """Record a pit reading. Tank tracking stays manual until reset or the next stage."""
    return await _run_cement_command(session, job_id, cement_service.record_tank_volume, data.volume)


@router.post("/{project_id}/cement-jobs/{job_id}/tank-reset", response_model=CementJobState)
async def cement_reset_tank(job_id: str, session: ProjectSession = Depends(get_project)) -> CementJobState:
    return await _run_cement_command(session, job_id, cement_service.reset_tank_volume)
