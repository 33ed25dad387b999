"""CloudDeck cost analytics service entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clouddeck_cost.api.router import router
from clouddeck_cost.core.errors import CloudDeckError, ErrorCode
from clouddeck_cost.database import close_database, init_database
from clouddeck_cost.observability import configure_logging, get_logger
from clouddeck_cost.settings import Settings

logger = get_logger(__name__)
settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    configure_logging(settings)
    logger.info(
        "clouddeck-cost starting",
        service=settings.service_name,
        environment=settings.environment,
        forecast_axis=settings.forecast_axis,
        isolate_detector_failures=settings.isolate_detector_failures,
    )
    init_database(settings)
    yield
    await close_database()
    logger.info("clouddeck-cost shutting down")


app = FastAPI(title="clouddeck-cost", version="0.1.0", lifespan=lifespan)


@app.exception_handler(CloudDeckError)
async def handle_clouddeck_error(request: Request, exc: CloudDeckError) -> JSONResponse:
    """Render domain errors as {"error": {"code", "message"}}."""
    logger.warning(
        "Request rejected",
        path=request.url.path,
        error_code=exc.error_code.value,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


_DATE_PARAMS = frozenset({"startDate", "endDate"})


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render unparseable query parameters in the same error body as domain errors."""
    problems = [(str(error["loc"][-1]) if error.get("loc") else "request", error["msg"]) for error in exc.errors()]
    fields = {field for field, _ in problems}
    error_code = ErrorCode.INVALID_DATE_RANGE if fields & _DATE_PARAMS else ErrorCode.INVALID_REQUEST
    message = "; ".join(f"{field}: {msg}" for field, msg in problems)
    logger.warning("Request rejected", path=request.url.path, error_code=error_code.value, message=message)
    return JSONResponse(
        status_code=422,
        content={"error": {"code": error_code.value, "message": message or "Invalid request"}},
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Store and driver failures surface as a 500 without retries."""
    logger.error("Unhandled error", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": ErrorCode.INTERNAL_ERROR.value, "message": "Internal server error"}},
    )


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok", "service": settings.service_name}


app.include_router(router, prefix="/api/v1")
