import os
import time
import hashlib
from typing import Dict
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from .config import settings
from .dependencies import get_repository
from .errors import ConfigurationError, InsufficientDataError, UnknownCategoryError
from .routers.recommend import router as recommend_router
from .routers.charts import router as charts_router
from .routers.measurements import router as measurements_router
from .security import create_jwt


logger = structlog.get_logger("fitrec")


app = FastAPI(title="Fit Recommendation Engine", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# Token-bucket rate limit per client ip
_buckets: Dict[str, tuple[float, float]] = {}
# Idle buckets are dropped once the table grows past this size
_BUCKET_PRUNE_AT = 1024


def _request_id(request: Request) -> str:
    return hashlib.md5(f"{request.client.host if request.client else 'unknown'}{time.time()}".encode()).hexdigest()[:8]


def _timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _prune_buckets(now: float, idle_seconds: float) -> None:
    """Drop buckets that have been idle long enough to refill completely."""
    for ident in [k for k, (_, last) in _buckets.items() if now - last >= idle_seconds]:
        del _buckets[ident]


def _rate_limit(ident: str, requests_per_min: int, burst: int) -> bool:
    refill_rate = requests_per_min / 60.0
    capacity = float(burst)
    now = time.time()
    if len(_buckets) >= _BUCKET_PRUNE_AT:
        _prune_buckets(now, capacity / refill_rate if refill_rate > 0 else float("inf"))
    tokens, last = _buckets.get(ident, (capacity, now))
    tokens = min(capacity, tokens + refill_rate * (now - last))
    if tokens < 1.0:
        _buckets[ident] = (tokens, now)
        return False
    _buckets[ident] = (tokens - 1.0, now)
    return True


def _validate_config() -> None:
    strict = os.getenv("STRICT_CONFIG", "0") == "1"
    errors = []
    if not settings.api_key or settings.api_key == "change-me":
        errors.append("API_KEY must be set to a secure value")
    if settings.jwt_secret == "dev-secret":
        errors.append("JWT_SECRET must be set to a secure value")
    if settings.default_fill_policy not in ("when_unusable", "all_missing"):
        errors.append("DEFAULT_FILL_POLICY must be 'when_unusable' or 'all_missing'")
    if not settings.fallback_category:
        logger.info("config_notice", notice="FALLBACK_CATEGORY empty; unknown categories will be rejected")
    try:
        get_repository()
    except ConfigurationError as e:
        errors.append(f"Size charts: {e}")
    if errors:
        if strict:
            raise RuntimeError("Configuration error: " + "; ".join(errors))
        else:
            for e in errors:
                logger.warning("config_warning", warning=e)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    request_id = _request_id(request)
    resp = None

    try:
        client_ip = request.client.host if request.client else "unknown"
        if not _rate_limit(client_ip, settings.rate_limit_per_min, settings.rate_limit_burst):
            logger.warning("rate_limit_exceeded", client_ip=client_ip, request_id=request_id)
            resp = JSONResponse(status_code=429, content={"detail": "Too Many Requests"})
            return resp

        logger.info("request_started",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    client_ip=client_ip,
                    user_agent=request.headers.get("user-agent", "unknown"))

        resp = await call_next(request)
        return resp

    except Exception as e:
        duration_ms = int((time.time() - start) * 1000)
        logger.error("request_failed",
                     request_id=request_id,
                     path=str(request.url.path),
                     method=request.method,
                     error=str(e),
                     duration_ms=duration_ms,
                     exc_info=True)
        raise
    finally:
        duration_ms = int((time.time() - start) * 1000)
        status_code = getattr(resp, "status_code", 0) if resp else 0
        logger.info("request_completed",
                    request_id=request_id,
                    path=str(request.url.path),
                    method=request.method,
                    status=status_code,
                    duration_ms=duration_ms)


@app.exception_handler(UnknownCategoryError)
async def handle_unknown_category(request: Request, exc: UnknownCategoryError):
    logger.warning("unknown_category", path=str(request.url.path), error=str(exc))
    return JSONResponse(
        status_code=404,
        content={
            "detail": str(exc),
            "error_code": "UNKNOWN_CATEGORY",
            "timestamp": _timestamp(),
        },
    )


@app.exception_handler(ConfigurationError)
async def handle_configuration_error(request: Request, exc: ConfigurationError):
    logger.error("configuration_error", path=str(request.url.path), error=str(exc))
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "error_code": "CONFIGURATION_ERROR",
            "timestamp": _timestamp(),
        },
    )


@app.exception_handler(InsufficientDataError)
async def handle_insufficient_data(request: Request, exc: InsufficientDataError):
    logger.info("insufficient_data", path=str(request.url.path), error=str(exc))
    return JSONResponse(
        status_code=422,
        content={
            "detail": str(exc),
            "error_code": "INSUFFICIENT_DATA",
            "guidance": exc.guidance,
            "timestamp": _timestamp(),
        },
    )


@app.exception_handler(Exception)
async def handle_exceptions(request: Request, exc: Exception):
    request_id = _request_id(request)

    logger.error("unhandled_exception",
                 request_id=request_id,
                 path=str(request.url.path),
                 method=request.method,
                 error=str(exc),
                 error_type=type(exc).__name__,
                 exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_code": "INTERNAL_ERROR",
            "request_id": request_id,
            "timestamp": _timestamp(),
        }
    )


@app.get("/v1/health")
async def health():
    return {"status": "ok"}


@app.get("/v1/debug/status")
async def debug_status():
    """Loaded chart snapshot and rate limiting state."""
    repo = get_repository()
    return {
        "status": "ok",
        "timestamp": _timestamp(),
        "charts": {
            "categories": {c: repo.get_size_chart(c).labels for c in repo.categories},
            "fallback_category": repo.fallback_category,
            "population_defaults": bool(repo.defaults),
            "source": settings.size_charts_path or "builtin",
        },
        "rate_limiting": {
            "requests_per_min": settings.rate_limit_per_min,
            "burst_capacity": settings.rate_limit_burst,
            "active_buckets": len(_buckets),
        },
    }


@app.post("/v1/auth/token")
async def issue_token():
    token = create_jwt("fitrec-client")
    return {"token": token}


# Routers under versioned prefix
app.include_router(recommend_router, prefix="/v1")
app.include_router(charts_router, prefix="/v1")
app.include_router(measurements_router, prefix="/v1")

# Validate configuration at import time (warnings by default; set STRICT_CONFIG=1 to enforce)
_validate_config()
