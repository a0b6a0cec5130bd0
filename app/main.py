import logging
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.gzip import GZipMiddleware

from app.api.v1.routes import api_router
from app.core.config import settings
from app.middleware import ErrorHandlingMiddleware, LoggingMiddleware
from app.services.session.workspace import WellWorkspace
from app.utils.error_handling import APIError
from app.utils.response_formatter import response_formatter

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    API for well-control hydraulics

    ## Engine

    - **geometry**: resolve casing / open-hole and string sections into slices, integrate volumes, sample TVD
    - **fluids**: overlay fluid layers, build final displaced columns, hydrostatic pressure and ESD, mixing
    - **hydraulics**: rheology models, frictional pressure loss, circulating BHP, swab and surge
    - **trip**: trip-in simulation with ESD, choke pressure, float state and fill / displacement volumes

    ## Projects

    Projects are held in memory. Store the geometry, surveys and fluids of a well under
    `/projects/{project_id}`, then save trip runs and drive cement jobs against it. Saved
    runs are flagged `stale` once the geometry they were computed with changes.

    Units are SI throughout: m, m³, kg/m³, kPa, m³/min.
    """,
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,  # Disable docs in production
    redoc_url="/redoc" if settings.DEBUG else None,  # Disable redoc in production
)

# One workspace per process
app.state.workspace = WellWorkspace()

# Add CORS middleware with settings from config
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Accept"],
    expose_headers=["X-Process-Time"],
)

# Add GZip compression middleware
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Add error handling and logging middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)

@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    logger.warning(f"API error: {exc.error_code} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=response_formatter.error(
            message=exc.message,
            error_code=exc.error_code,
            details=exc.details,
        ),
    )

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )

# Include the API router
app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
def read_root():
    return {"message": f"Welcome to the {settings.PROJECT_NAME}"}

@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "projects": app.state.workspace.stats().size}
