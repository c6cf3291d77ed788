import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

from .config import settings
from .database import init_db
from .middleware.request_log import request_log_middleware
from .redis_client import redis_client
from .routers import (
    audit_log,
    availability_exceptions,
    availability_rules,
    service_config,
    slots,
)
from .services.slots.errors import (
    AvailabilityError,
    AvailabilityValidationError,
    FetchTimeout,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"Availability API started (timezone={settings.timezone})")
    yield


app = FastAPI(title="Sitter Availability API", lifespan=lifespan)

app.middleware("http")(request_log_middleware)

app.include_router(slots.router)
app.include_router(service_config.router)
app.include_router(availability_rules.router)
app.include_router(availability_exceptions.router)
app.include_router(audit_log.router)


def error_status(exc: AvailabilityError) -> int:
    if isinstance(exc, AvailabilityValidationError):
        return 400
    if isinstance(exc, FetchTimeout):
        return 504
    return 500


@app.exception_handler(AvailabilityError)
async def availability_error_handler(request: Request, exc: AvailabilityError):
    status_code = error_status(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} ({exc.message})")
    return JSONResponse(status_code=status_code, content={"ok": False, "error": exc.code})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": AvailabilityValidationError.code},
    )


@app.get("/health")
def health():
    redis_ok = None
    if redis_client is not None:
        try:
            redis_ok = redis_client.ping()
        except RedisError:
            redis_ok = False
    return {"ok": True, "redis": redis_ok}
