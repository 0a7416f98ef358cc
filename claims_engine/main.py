"""Claims Lifecycle Engine: FastAPI entry point.

Stateless service: every request carries the entity snapshot it acts on.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from claims_engine.config.settings import get_settings
from claims_engine.config.logging_config import setup_logging, get_logger
from claims_engine.config.request_context import CORRELATION_HEADER, correlation_scope
from claims_engine.exceptions import EngineError, UnknownRuleContext
from claims_engine.api.routes import appeals, reconciliation, reports, transitions, validation
from claims_engine.rules.catalog import registered_contexts

settings = get_settings()

setup_logging(log_level=settings.log_level, json_output=settings.app_env == "production")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: log the loaded rule catalog."""
    logger.info(
        "Starting Claims Lifecycle Engine",
        app_env=settings.app_env,
        rule_sets=len(registered_contexts()),
        submission_timezone=settings.submission_timezone,
    )

    yield

    logger.info("Shutting down Claims Lifecycle Engine")


app = FastAPI(
    title="Claims Lifecycle Engine",
    description="Authorization and claim validation, lifecycle transitions, appeals, reconciliation and reporting",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With", CORRELATION_HEADER],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    with correlation_scope(request.headers.get(CORRELATION_HEADER)) as correlation_id:
        response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


@app.exception_handler(UnknownRuleContext)
async def unknown_rule_context_handler(request: Request, exc: UnknownRuleContext):
    return JSONResponse(
        status_code=422,
        content={"error": "Unknown rule context", "detail": str(exc)},
    )


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    logger.warning("Engine error", error=str(exc), path=request.url.path)
    return JSONResponse(status_code=400, content={"error": type(exc).__name__, "detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())[:8]
    logger.error("Unhandled exception", error_id=error_id, error=str(exc), path=request.url.path, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "error_id": error_id})


# Routes
app.include_router(validation.router, prefix="/api/v1")
app.include_router(transitions.router, prefix="/api/v1")
app.include_router(appeals.router, prefix="/api/v1")
app.include_router(reconciliation.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": "0.1.0",
        "platform": "claims-engine",
        "components": {"rule_catalog": len(registered_contexts()) > 0},
    }


@app.get("/")
async def root():
    return {
        "name": "Claims Lifecycle Engine",
        "version": "0.1.0",
        "description": "Authorization and claim lifecycle for the Daman payer",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("claims_engine.main:app", host="0.0.0.0", port=8002, reload=True)
