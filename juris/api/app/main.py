import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from .alerts import router as alerts_router
from .config import settings
from .logging_utils import configure_logging
from .pje.routes import router as email_router
from .processes import router as processes_router
from .scheduler import DeadlineScheduler
from .security import CurrentUser
from .startup import shutdown as _shutdown_handler
from .startup import startup as _startup_handler

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="Juris API", version="0.1.0")

app.include_router(email_router)  # PJe Push webhook + parser test
app.include_router(alerts_router)
app.include_router(processes_router)

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
if origins:
    wildcard = "*" in origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if wildcard else origins,
        # Credentials cannot be combined with wildcard origins
        allow_credentials=False if wildcard else True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.on_event("startup")
async def _on_startup() -> None:
    await _startup_handler(app)


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    await _shutdown_handler(app)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring"""
    return {"status": "healthy", "version": app.version}


@app.get("/api/scheduler/status")
def scheduler_status(request: Request, user: CurrentUser) -> dict[str, Any]:
    scheduler: DeadlineScheduler | None = getattr(
        request.app.state, "scheduler", None
    )
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialised")
    return scheduler.get_status()
