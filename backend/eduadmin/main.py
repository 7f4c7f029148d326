"""EduAdmin — FastAPI Application."""
from fastapi import FastAPI
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
import logging

from eduadmin.config import settings
from eduadmin.database import async_engine, AsyncSessionLocal
from eduadmin.middleware.cors import APICORSMiddleware

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def run_session_cleanup():
    """Remove expired login sessions."""
    from eduadmin.services.session_service import purge_expired_sessions

    try:
        removed = await purge_expired_sessions(AsyncSessionLocal)
        logger.info(f"Session cleanup: {removed} removed")
    except Exception as e:
        logger.error(f"Session cleanup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting EduAdmin API...")

    # Verify DB connection
    try:
        async with async_engine.begin() as conn:
            await conn.exec_driver_sql("SELECT 1")
        logger.info("Database connection verified")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")

    # Schedule jobs
    scheduler.add_job(
        run_session_cleanup,
        "interval",
        hours=settings.SESSION_CLEANUP_INTERVAL_HOURS,
        id="session_cleanup",
    )
    scheduler.start()
    logger.info("Scheduled jobs started (session cleanup)")

    logger.info("EduAdmin API started successfully")
    yield

    # Shutdown
    scheduler.shutdown()
    await async_engine.dispose()
    logger.info("EduAdmin API shut down")


app = FastAPI(
    title="EduAdmin",
    description="Student admissions administration — agents, commissions, hostels and mess budgets",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS (service functions under /functions/ handle their own)
app.add_middleware(
    APICORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Import and register routers
from eduadmin.routes import admin, agents, auth, functions, hostels

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(agents.router)
app.include_router(hostels.router)
app.include_router(functions.router)


@app.get("/api/health")
async def health_check():
    return {"status": "healthy", "service": "EduAdmin API", "version": "1.0.0"}
