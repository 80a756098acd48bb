"""
Main FastAPI application
Certification quiz sessions with an event-sourced session store
"""
from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import time

from certquiz.config import settings
from certquiz.database import init_db
from certquiz.api import admin, quizzes
from certquiz.api.errors import error_body, status_code_for
from certquiz.dependencies import get_clock, repository_scope
from certquiz.domain.errors import CorruptedEventStreamError, QuizError, RepositoryError
from certquiz.services.expiry_sweeper import ExpirySweeper

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Timed certification practice quizzes with auditable session history",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

expiry_sweeper = ExpirySweeper(
    repository_scope=repository_scope,
    clock=get_clock(),
    batch_size=settings.EXPIRY_SWEEP_BATCH_SIZE,
    interval_seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests with timing"""

    start_time = time.time()

    # Process request
    response = await call_next(request)

    # Calculate duration
    duration = time.time() - start_time

    logger.info(
        f"{request.method} {request.url.path} - "
        f"Status: {response.status_code} - "
        f"Duration: {duration:.3f}s"
    )

    return response


# Domain failures
@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    """Map domain failures to their status codes"""

    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"Unmapped quiz error on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")

    return JSONResponse(status_code=status_code, content=error_body(exc.code, exc.message))


# Request body / header validation
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are reported like domain validation failures"""

    return JSONResponse(
        status_code=400,
        content={
            **error_body("VALIDATION_ERROR", "Invalid request"),
            "detail": jsonable_errors(exc),
        }
    )


# Storage failures
@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    """Storage is unavailable; the request can be retried"""

    logger.error(f"Repository failure on {request.url.path}: {str(exc)}")

    return JSONResponse(
        status_code=503,
        content=error_body("SERVICE_UNAVAILABLE", "Storage is temporarily unavailable. Please retry.")
    )


# Corrupted history
@app.exception_handler(CorruptedEventStreamError)
async def corrupted_stream_handler(request: Request, exc: CorruptedEventStreamError):
    """Stored history cannot be replayed; never retried"""

    logger.critical(f"Corrupted event stream on {request.url.path}: {str(exc)}")

    return JSONResponse(
        status_code=500,
        content={
            **error_body("CORRUPTED_EVENT_STREAM", "Quiz session history is unreadable."),
            "detail": str(exc) if settings.DEBUG else None
        }
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors gracefully"""

    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "detail": str(exc) if settings.DEBUG else None
        }
    )


# HTTP exception handler
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Format HTTP exceptions consistently"""

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "http_error",
            "message": exc.detail,
            "status_code": exc.status_code
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring

    Returns service status
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": time.time()
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Certification Quiz Session API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health"
    }


# Include routers
app.include_router(quizzes.router)
app.include_router(admin.router)


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize database and start the expiry sweeper"""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    # Initialize database
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    if settings.EXPIRY_SWEEP_ENABLED:
        expiry_sweeper.start()

    logger.info("Application startup complete")


# Shutdown event
@app.on_event("shutdown")
async def shutdown_event():
    """Stop background work"""
    logger.info("Shutting down application")
    await expiry_sweeper.stop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "certquiz.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
