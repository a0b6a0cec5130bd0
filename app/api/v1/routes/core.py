from fastapi import APIRouter

from app.core.config import settings
from app.services.hydraulics import __version__

router = APIRouter(tags=["core"])

@router.get("/health")
def health_check():
    return {"status": "ok", "engine_version": __version__, "environment": settings.ENV}
