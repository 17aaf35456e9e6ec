"""
Storefront Fulfillment API: FastAPI Application

Order checkout, payment proof verification, inventory ledger and order
status timeline.
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from config import settings
from domain.errors import DomainError
from domain.responses import error_response
from routes import health, orders, payments

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, create DB tables. Shutdown: stop the executor."""
    # Ensure data/ directory exists for SQLite
    os.makedirs("data", exist_ok=True)

    settings.validate_production_settings()

    from database import init_db
    await init_db()
    logger.info("Database initialized")

    yield  # app runs here

    from services.async_executor import shutdown_executor
    shutdown_executor()

    logger.info("Shutting down")


# ── App Factory ─────────────────────────────────────────────────────

app = FastAPI(
    title="Storefront Fulfillment API",
    description="Orders, payment verification and inventory for the storefront",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routes ──────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(orders.router)
app.include_router(payments.router)

# ── Stored payment proofs ───────────────────────────────────────────

os.makedirs(settings.proof_storage_dir, exist_ok=True)
app.mount(
    settings.proof_url_prefix,
    StaticFiles(directory=settings.proof_storage_dir),
    name="proofs",
)

# ── Exception Handlers ──────────────────────────────────────────────


@app.exception_handler(DomainError)
async def domain_exception_handler(request, exc: DomainError):
    """Render a domain error with its stable code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, exc.details or None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """Malformed or missing request fields → 400 with a field/message list."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_response("validation_error", "Request validation failed", errors),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """
    Standardize plain HTTPException responses for frontend consumers.

    Keeps the original HTTP status code, but wraps the payload.
    """
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(
            "http_error",
            message,
            detail if not isinstance(detail, str) else None,
        ),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """
    Catch-all for unhandled exceptions (failed commits, driver errors).

    Never return raw exception details to clients; the full traceback is
    logged server-side.
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=error_response("internal_server_error", "Internal server error"),
    )


# ── Entrypoint ──────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
