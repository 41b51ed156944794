# main.py - FastAPI application entry point
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from routes import admin_routes
from routes import auth_routes
from routes import complaint_routes
from routes import stats_routes
from routes import user_routes
from services.errors import (
    NotFound,
    PermissionDenied,
    TransactionConflict,
    UpstreamUnavailable,
    ValidationFailure,
)
from utils.logging import configure_logging, get_logger

configure_logging(config.LOG_LEVEL)
logger = get_logger(__name__)

app = FastAPI(
    title="CivicPulse API",
    description="Backend for CivicPulse: citizens report civic issues with a verified photo and location, admins move them through review to resolution, and contributors earn XP and levels.",
    version="1.0.0",
)

# CORS for the web dashboard and the mobile app
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_routes.router, prefix="/auth", tags=["auth"])
app.include_router(user_routes.router, prefix="/users", tags=["users"])
app.include_router(complaint_routes.router, prefix="/complaints", tags=["complaints"])
app.include_router(admin_routes.router, prefix="/admin", tags=["admin"])
app.include_router(stats_routes.router, prefix="/stats", tags=["stats"])


# -------------------- Domain errors -------------------- #
@app.exception_handler(ValidationFailure)
async def validation_failure_handler(request: Request, exc: ValidationFailure):
    return JSONResponse(status_code=422, content={"detail": exc.message, "errors": exc.details})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": f"{exc.kind.capitalize()} not found"})


@app.exception_handler(TransactionConflict)
async def conflict_handler(request: Request, exc: TransactionConflict):
    logger.warning("Gave up on contended write to %s", request.url.path)
    return JSONResponse(status_code=409, content={"detail": "The record changed while saving, please try again"})


@app.exception_handler(UpstreamUnavailable)
async def upstream_handler(request: Request, exc: UpstreamUnavailable):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(PermissionDenied)
async def permission_handler(request: Request, exc: PermissionDenied):
    return JSONResponse(status_code=403, content={"detail": str(exc) or "Not allowed"})


# Health check
@app.get("/")
async def root():
    return {"message": "CivicPulse backend running"}
