# runmate/main.py
# FastAPI entry point for RunMate.
#  • All REST routers live under /api; the WebSocket push endpoint is /ws
#  • Errors are rendered as {"success": false, "message", "code"}
#  • The auto-complete job starts only with AUTO_COMPLETE_ENABLED=1

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from runmate.core.config import settings
from runmate.core.exceptions import register_exception_handlers
from runmate.core.logging import setup_logging

setup_logging()

from runmate.db import engine  # noqa: E402,F401  engine / pool initialisation

from runmate.routers.auth import router as auth_router  # noqa: E402
from runmate.routers.users import router as users_router  # noqa: E402
from runmate.routers.chats import router as chats_router  # noqa: E402
from runmate.routers.run_events import router as run_events_router  # noqa: E402
from runmate.routers.ratings import router as ratings_router  # noqa: E402
from runmate.routers.activity import router as activity_router  # noqa: E402
from runmate.routers.run_logs import router as run_logs_router  # noqa: E402
from runmate.routers.dashboard import router as dashboard_router  # noqa: E402
from runmate.routers.realtime import router as realtime_router  # noqa: E402

from runmate.jobs.auto_complete import start_auto_complete_loop  # noqa: E402

log = logging.getLogger(__name__)

app = FastAPI(
    title="RunMate Backend",
    description="Backend for RunMate: accounts, training log, run events, chat, ratings and activity.",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router,       prefix="/api/auth",      tags=["Auth"])
app.include_router(users_router,      prefix="/api/users",     tags=["Users"])
app.include_router(chats_router,      prefix="/api/chats",     tags=["Chats"])
app.include_router(run_events_router, prefix="/api/runevents", tags=["Run events"])
app.include_router(ratings_router,    prefix="/api/ratings",   tags=["Ratings"])
app.include_router(activity_router,   prefix="/api/activity",  tags=["Activity"])
app.include_router(run_logs_router,   prefix="/api/activities", tags=["Run logs"])
app.include_router(dashboard_router,  prefix="/api/dashboard", tags=["Dashboard"])
app.include_router(realtime_router,                            tags=["Realtime"])


@app.get("/")
def root():
    """Simple healthcheck."""
    return {"message": "RunMate backend is running", "docs": "/docs"}


@app.on_event("startup")
def _startup_jobs():
    if settings.AUTO_COMPLETE_ENABLED:
        log.info("starting auto-complete loop every %s min", settings.AUTO_COMPLETE_INTERVAL_MINUTES)
        start_auto_complete_loop()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("runmate.main:app", host="0.0.0.0", port=8000, reload=False)
