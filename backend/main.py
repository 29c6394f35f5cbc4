import asyncio
import time
from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.orm import Session
from sqlalchemy import text
from database import engine, get_db, Base
from routers import *
from models import *
from core.config import settings
from core.logger import logger
from exceptions.exceptions import DriveException
from background import cleanup_expired_links

app = FastAPI(
    title="Drive API",
    description="FastAPI backend for file storage and sharing",
    version="1.0.0"
)

origins = settings.ORIGIN.split(",") if settings.ORIGIN else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({process_time:.3f}s)")
    return response


@app.exception_handler(DriveException)
async def drive_exception_handler(request: Request, exc: DriveException):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "code": HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"),
            "message": str(exc.detail)
        },
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content={"success": False, "code": "VALIDATION_ERROR", "message": message}
    )


@app.on_event("startup")
async def startup_event():
    """Create tables, verify the database connection and start the link sweeper"""
    Base.metadata.create_all(bind=engine)
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    if settings.LINK_CLEANUP_ENABLED:
        app.state.link_cleanup_task = asyncio.create_task(cleanup_expired_links())


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "link_cleanup_task", None)
    if task:
        task.cancel()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to Drive API"}


app.include_router(auth_router, prefix=settings.API_PREFIX)
app.include_router(share_router, prefix=settings.API_PREFIX)
app.include_router(file_router, prefix=settings.API_PREFIX)


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint that also verifies database connection"""
    try:
        db.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "database": "connected"
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "error": str(e)
        }
