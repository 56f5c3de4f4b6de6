"""
Student Records Service - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps service errors to {success, error, details} responses
5. Registers the student and health route handlers

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy table definition and field/column mapping
- services/: Storage operations on the students table
- validation.py: Payload schemas and validators
- credentials.py: Database credential resolution (env or Secrets Manager)
- database.py: Lazily built engine, sessions and teardown
- logging_config.py: Structured logging configuration
"""

import os
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from student_records.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from student_records.database import create_tables, dispose_engine
from student_records.errors import StudentRecordsError, ValidationError
from student_records.routes import health, students

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Auto-create tables for SQLite local development
    url = os.getenv("DATABASE_URL", "")
    if url.startswith("sqlite"):
        logger.info("Using SQLite: creating tables directly")
        create_tables()
    yield
    dispose_engine()


# ──────────────────────────────────────────────────────────────
# Create FastAPI application
# ──────────────────────────────────────────────────────────────
app = FastAPI(
    title="Student Records Service",
    description=(
        "CRUD API over a single students table with structural payload "
        "validation and liveness/readiness probes."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ──────────────────────────────────────────────────────────────
# CORS Middleware
#
# CORS_ORIGINS is a comma separated list; defaults to all origins.
# ──────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a unique UUID per incoming request, stores it in a context
# variable for every log entry, returns it in X-Request-ID, and logs
# request start/end with latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Error responses
#
# Every body is {success: false, error, details?}. Unrecognized errors
# become a generic 500 with no internal detail.
# ──────────────────────────────────────────────────────────────
def error_response(status_code: int, error: str, details=None) -> JSONResponse:
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    log_with_context(logger, "INFO", f"Rejected payload: {exc}",
                     extra_data={"violations": exc.violations})
    return error_response(400, exc.public_message, exc.violations)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(part) for part in err["loc"] if part != "body") or "body",
         "message": err["msg"]}
        for err in exc.errors()
    ]
    return error_response(400, ValidationError.public_message, details)


@app.exception_handler(StudentRecordsError)
async def service_error_handler(request: Request, exc: StudentRecordsError):
    if exc.status_code >= 500:
        log_with_context(logger, "ERROR",
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return error_response(exc.status_code, exc.public_message)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log_with_context(logger, "ERROR",
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__))
    return error_response(500, "Internal server error")


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])
app.include_router(health.router, tags=["Health"])


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Student Records Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "list": "GET /students",
            "detail": "GET /students/{id}",
            "create": "POST /students",
            "update": "PUT /students/{id}",
            "delete": "DELETE /students/{id}",
            "deep_health": "GET /health/deep"
        }
    }
