import logging
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 2.0

def _project_from_path(path: str):
    parts = path.strip("/").split("/")
    if "projects" in parts:
        index = parts.index("projects") + 1
        if index < len(parts) and parts[index] != "stats":
            return parts[index]
    return None

class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Log every request with its status and processing time.

    Adds an X-Process-Time header to the response. Requests slower than
    SLOW_REQUEST_SECONDS (long trip runs, fine cement replays) are logged
    as warnings with the project they belong to.
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        project_id = _project_from_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"{request.method} {request.url.path} - "
                f"Error: {str(e)} - "
                f"Process time: {process_time:.4f}s"
            )
            raise

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        message = (
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Process time: {process_time:.4f}s"
        )
        if process_time > SLOW_REQUEST_SECONDS:
            suffix = f" (project {project_id})" if project_id else ""
            logger.warning(f"Slow request{suffix}: {message}")
        else:
            logger.info(message)
        return response
