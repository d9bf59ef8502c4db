"""FastAPI application entry point."""
import sys
import time

# Ensure console streams can emit Arabic text on Windows
for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from contextlib import asynccontextmanager

from lms_survey.config import get_settings
from lms_survey.version import APP_VERSION
from lms_survey.routers import data, health, survey
from lms_survey.services.record_store import StorageError, build_record_store
from lms_survey.services.survey_service import SurveyService

settings = get_settings()

# Create logs directory if it doesn't exist
logs_dir = Path(settings.log_dir)
logs_dir.mkdir(parents=True, exist_ok=True)

log_file = logs_dir / "lms_survey.log"
api_log_file = logs_dir / "lms_survey_api.log"

# Create rotating file handler for general logs (1MB max size, keep 5 backup files)
rotating_handler = RotatingFileHandler(
    log_file,
    maxBytes=1024 * 1024,
    backupCount=5,
    encoding='utf-8',
)
rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

# Create rotating file handler for API request logs (2MB max size, keep 15 backup files)
api_rotating_handler = RotatingFileHandler(api_log_file, maxBytes=2 * 1024 * 1024, backupCount=15, encoding='utf-8')
api_rotating_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))

# Force=True ensures we override any existing configuration (e.g., from uvicorn)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        rotating_handler,
    ],
    force=True,
)

logger = logging.getLogger(__name__)

# Dedicated API request logger
api_logger = logging.getLogger("lms_survey.api")
api_logger.handlers.clear()
api_logger.addHandler(api_rotating_handler)
api_logger.setLevel(logging.INFO)
api_logger.propagate = False

# Configure Uvicorn's access logger to also write to our rotating log file
uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.setLevel(logging.INFO)
if rotating_handler not in uvicorn_access_logger.handlers:
    uvicorn_access_logger.addHandler(rotating_handler)

logger.info(f"General logging to: {log_file.absolute()}")
logger.info(f"API requests logging to: {api_log_file.absolute()}")


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Prepare storage, build the survey service and run the initial recomputation."""
    logger.info("=" * 60)
    logger.info(f"{settings.project_name} API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Storage backend: {settings.storage_backend}")
    logger.info(f"Analysis refresh mode: {settings.analysis_refresh_mode}")
    logger.info("=" * 60)

    store = build_record_store(settings)
    service = SurveyService.from_settings(store, settings)

    created = await service.initialize()
    if created:
        logger.info(f"Created empty blobs: {', '.join(created)}")

    try:
        await service.refresh_analysis()
    except StorageError as e:
        logger.error(f"Initial analysis recomputation failed: {e}")
    except Exception as e:
        logger.exception(f"Unexpected error during initial analysis recomputation: {e}")

    app_instance.state.survey_service = service

    try:
        yield
    finally:
        await store.close()
        logger.info(f"{settings.project_name} API Shutting Down... Goodbye!")


# Create FastAPI app
app = FastAPI(
    title=f"{settings.project_name} API",
    description="Student and professor questionnaire intake with aggregate analysis",
    version=APP_VERSION,
    lifespan=lifespan,
)


# Custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with user-friendly messages."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = " -> ".join(str(x) for x in loc[1:]) if len(loc) > 1 else "unknown field"
        errors.append({
            "field": field_path,
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Request validation failed",
            "errors": errors
        }
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request and response to the dedicated API log file."""
    start_time = time.time()

    client_ip = request.client.host if request.client else "unknown"
    user_agent = request.headers.get("user-agent", "unknown")
    method = request.method
    path = request.url.path

    request_id = f"{method}:{path}:{int(start_time * 1000) % 100000}"
    api_logger.info(f">> {request_id} | START | {method} {path} | IP: {client_ip} | UA: {user_agent[:50]}...")

    try:
        response = await call_next(request)
        process_time = time.time() - start_time

        api_logger.info(
            f"<< {request_id} | COMPLETE | {method} {path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )

        if response.status_code >= 400:
            content_type = response.headers.get("content-type", "unknown")
            api_logger.warning(f"<< {request_id} | ERROR_RESPONSE | Content-Type: {content_type}")

        return response

    except Exception as e:
        process_time = time.time() - start_time
        api_logger.error(
            f"<< {request_id} | EXCEPTION | {method} {path} | "
            f"Error: {str(e)[:100]} | "
            f"Time: {process_time:.3f}s | "
            f"IP: {client_ip}"
        )
        raise


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(survey.router, tags=["survey"])
app.include_router(data.router, tags=["data"])
app.include_router(health.router, tags=["health"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": f"{settings.project_name} API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lms_survey.main:app", host="0.0.0.0", port=settings.port)
