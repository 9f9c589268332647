import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from edubrain.api import auth, finance, notifications
from edubrain.config import settings
from edubrain.database import engine, Base, AsyncSessionLocal
from edubrain import models  # noqa: F401  registers tables on Base.metadata
from edubrain.exceptions import FeeTrackerError
from edubrain.middleware.logging import setup_logging, add_logging_middleware
from edubrain.services.auth import ensure_default_admin
from edubrain.services.reminders import ReminderScheduler

# Initialize FastAPI app
app = FastAPI(
    title="eDU Brain Fee Tracker API",
    description="Tuition fee tracking: student registration, payments, and overdue fee reminders",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
add_logging_middleware(app)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

reminder_scheduler = ReminderScheduler(AsyncSessionLocal)

@app.exception_handler(FeeTrackerError)
async def fee_tracker_exception_handler(request: Request, exc: FeeTrackerError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

# Custom exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."},
    )

@app.on_event("startup")
async def startup():
    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created or verified")

    async with AsyncSessionLocal() as db:
        await ensure_default_admin(db)

    if settings.REMINDER_ENABLED:
        reminder_scheduler.start()

@app.on_event("shutdown")
async def shutdown():
    reminder_scheduler.stop()
    await engine.dispose()

# Include routers
app.include_router(auth.router, prefix="/api", tags=["Authentication"])
app.include_router(finance.router, prefix="/api", tags=["Fees"])
app.include_router(notifications.router, prefix="/api", tags=["Reminders"])

@app.get("/api/health", tags=["Root"])
async def health():
    return {"status": "ok"}

# Run the server
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("edubrain.main:app", host="0.0.0.0", port=3000, reload=True)
