"""FastAPI application entrypoint."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chord.api.router import api_router
from chord.core.config import settings
from chord.core.errors import ChordError
from chord.jobs.schedule_registry import ensure_schedules
from chord.services.task_queue import task_queue

logger = logging.getLogger("chord.main")

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix=settings.api_prefix)


@app.exception_handler(ChordError)
async def _handle_domain_error(request: Request, exc: ChordError) -> JSONResponse:
    logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def _register_schedules() -> None:
    """Register the daily matching jobs on startup."""
    ensure_schedules()


@app.get("/health", tags=["internal"])
@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health() -> dict[str, str]:
    return {"status": "ok", "queue": "online" if task_queue.enabled else "inline"}
