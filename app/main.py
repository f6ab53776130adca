import uvicorn
import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import SessionLocal, create_tables, utcnow
from routers import auth, post, analytics, ai
from utils.scheduler_service import scheduler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Global task to hold the scheduler
scheduler_task = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown"""
    global scheduler_task

    create_tables()

    logger.info("Starting background scheduler...")
    scheduler_task = asyncio.create_task(
        scheduler.run_scheduler(interval_seconds=settings.scheduler_interval_seconds)
    )

    yield  # App is running

    logger.info("Stopping background scheduler...")
    scheduler.stop_scheduler()
    if scheduler_task:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass
    logger.info("Background scheduler stopped")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Blog CMS API with AI writing assistance, SEO analysis and reader analytics",
    docs_url="/docs",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix=settings.api_prefix)
app.include_router(post.router, prefix=settings.api_prefix)
app.include_router(analytics.router, prefix=settings.api_prefix)
app.include_router(ai.router, prefix=settings.api_prefix)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    messages = []
    for error in errors:
        message = str(error.get("msg", "Invalid value"))
        messages.append(message.removeprefix("Value error, "))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "message": messages[0] if messages else "Invalid request",
            "errors": [
                {"field": ".".join(str(part) for part in error.get("loc", ())), "message": message}
                for error, message in zip(errors, messages)
            ]
        }
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    content = {"success": False, "message": "Server error"}
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@app.get("/")
async def root():
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "status": "running",
        "docs": "/docs"
    }


@app.get(f"{settings.api_prefix}/health")
def health_check():
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        database = "disconnected"
    finally:
        db.close()

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "service": "blogcraft-api",
        "environment": settings.environment,
        "database": database,
        "timestamp": utcnow()
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
