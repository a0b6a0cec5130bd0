from fastapi import APIRouter

# Import all the individual routers
from . import core, fluids, geometry, hydraulics, projects, trip

api_router = APIRouter()
api_router.include_router(core.router, prefix="/core", tags=["core"])
api_router.include_router(geometry.router, prefix="/geometry", tags=["geometry"])
api_router.include_router(fluids.router, prefix="/fluids", tags=["fluids"])
api_router.include_router(hydraulics.router, prefix="/hydraulics", tags=["hydraulics"])
api_router.include_router(trip.router, prefix="/trip", tags=["trip"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
