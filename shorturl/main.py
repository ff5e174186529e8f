from contextlib import asynccontextmanager
from shorturl.db.Connection import database
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time

from shorturl.core.config import settings
from shorturl.core.errors import ShortenerError
from shorturl.core.logging_config import configure_logging, stop_telemetry
from shorturl.db.Models import models
from shorturl.api import shortener
from shorturl.services.sweeper import ExpirySweeper
from shorturl.RateLimitHelper import (
    RATE_LIMIT_KEY_PREFIX,
    check_rate_limit,
    get_client_ip,
    get_rate_limit_config,
    is_rate_limited_path,
)

logger = configure_logging()
request_logger = logging.getLogger("shorturl.requests")

sweeper = ExpirySweeper(database.SessionLocal, settings.SWEEP_INTERVAL_SECONDS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application '{settings.PROJECT_NAME}' starting up.")
    models.Base.metadata.create_all(bind=database.engine)
    logger.info("Database models initialized/checked.")
    database.verify_database_connection()
    if settings.RATE_LIMIT_ENABLED:
        database.verify_redis_connection()
    if settings.SWEEPER_ENABLED:
        sweeper.start()

    yield

    logger.info("Shutting down gracefully...")
    sweeper.stop()
    try:
        database.engine.dispose()
    except Exception:
        logger.debug("Error disposing DB engine")
    try:
        database.redis_client.close()
    except Exception:
        logger.debug("Error closing Redis client")
    stop_telemetry()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="URL Shortener with expiring links and click analytics",
    lifespan=lifespan,
)

# registered before the router so the catch-all redirect route cannot shadow it
@app.get("/health", tags=["health"])
def health_check():
    return {"status": "healthy", "service": "url-shortener"}

app.include_router(shortener.router, prefix="")

@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    if not is_rate_limited_path(request.url.path):
        return await call_next(request)

    limit, window = get_rate_limit_config()
    client_ip = get_client_ip(request)
    key = f"{RATE_LIMIT_KEY_PREFIX}{client_ip}"

    allowed = await run_in_threadpool(check_rate_limit, database.redis_client, key, limit, window)
    if allowed is False:
        logger.warning(
            f"Rate limit exceeded for {client_ip}",
            extra={"context": {"ip": client_ip, "limit": limit, "window": window}},
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(window)},
            content={"error": f"Too many requests. Limit is {limit} per {window} seconds."}
        )

    return await call_next(request)

# added after the rate limiter so it wraps it and 429s are logged too
@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start = time.perf_counter()
    method, path = request.method, request.url.path
    client_ip = get_client_ip(request)
    request_logger.info(
        f"Incoming {method} request to {path} from {client_ip}",
        extra={"context": {"method": method, "path": path, "ip": client_ip}},
    )
    try:
        response = await call_next(request)
    except Exception as exc:
        request_logger.error(
            f"Error: {exc} - {method} {path}",
            extra={"context": {"method": method, "path": path}},
        )
        raise

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    request_logger.info(
        f"Response {response.status_code} for {method} {path} ({duration_ms}ms)",
        extra={"context": {
            "method": method,
            "path": path,
            "status": response.status_code,
            "duration_ms": duration_ms,
        }},
    )
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

@app.exception_handler(ShortenerError)
async def shortener_exception_handler(request: Request, exc: ShortenerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = _validation_message(exc)
    logger.warning(
        f"Validation failed for {request.method} {request.url.path}: {message}",
        extra={"context": {"path": request.url.path}},
    )
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    msg = str(first.get("msg", "Invalid request"))
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {msg}" if field else msg
