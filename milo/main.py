"""
MILO Clinical Assistant - Main FastAPI Application
Lab report ingestion, patient lab history and clinical chat
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from milo.api import chat, patients, sessions
from milo.config import settings
from milo.database import init_db
from milo.services.chat_orchestrator import SessionNotFoundError
from milo.services.generation_service import MissingAPIKeyError, UpstreamServiceError
from milo.services.patient_service import PatientNotFoundError
from milo.utils.documents import UnsupportedDocumentError

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.PROJECT_NAME} starting...")
    init_db()
    logger.info(f"CORS enabled for {', '.join(settings.allowed_origins_list)}")
    yield
    logger.info(f"{settings.PROJECT_NAME} shutting down")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Lab report ingestion and clinical chat for hormone optimization",
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        return error_response(405, "Method Not Allowed")
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else first.get("msg")
    else:
        message = "Invalid request."
    logger.warning(f"Rejected request to {request.url.path}: {message}")
    return error_response(400, message)


@app.exception_handler(UpstreamServiceError)
async def upstream_exception_handler(request: Request, exc: UpstreamServiceError):
    return error_response(exc.status_code, exc.body)


@app.exception_handler(MissingAPIKeyError)
async def missing_key_exception_handler(request: Request, exc: MissingAPIKeyError):
    return error_response(500, "Missing Anthropic API Key")


@app.exception_handler(PatientNotFoundError)
async def patient_not_found_handler(request: Request, exc: PatientNotFoundError):
    return error_response(404, "Patient not found")


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return error_response(404, "Session not found")


@app.exception_handler(UnsupportedDocumentError)
async def unsupported_document_handler(request: Request, exc: UnsupportedDocumentError):
    return error_response(400, str(exc))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, "Internal server error.")


# Routers
app.include_router(chat.router, prefix=settings.API_PREFIX, tags=["chat"])
app.include_router(patients.router, prefix=settings.API_PREFIX, tags=["patients"])
app.include_router(sessions.router, prefix=settings.API_PREFIX, tags=["sessions"])


# Root endpoint
@app.get("/")
async def root():
    """API information"""
    return {
        "message": settings.PROJECT_NAME,
        "status": "online",
        "version": settings.VERSION,
        "endpoints": {
            "chat": "/api/milo, /api/lab-analysis",
            "patients": "/api/patients, /api/upload",
            "sessions": "/api/sessions",
            "health": "/health",
            "docs": "/docs"
        }
    }


# Health check
@app.get("/health")
async def health_check():
    """Health check for monitoring"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
