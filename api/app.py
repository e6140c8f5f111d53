"""
api/app.py — FastAPI app instance + session middleware + static file serving
"""

import asyncio
import contextlib
import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from config import DATA_DIR, STATIC_DIR
from api.routes import router
import api.session as session
from entrance_cbt.errors import ExamEngineError
from entrance_cbt.services.backend_client import ExamBackend, HttpExamBackend
from entrance_cbt.services.local_store import JsonFileStore, KeyValueStore
from entrance_cbt.services.scheduler import AsyncioScheduler, Clock, SystemClock, TickScheduler

SESSION_COOKIE = "cbt_session"
CLEANUP_INTERVAL_SECONDS = 300

logger = logging.getLogger(__name__)


def create_app(
    backend: ExamBackend | None = None,
    store: KeyValueStore | None = None,
    clock: Clock | None = None,
    scheduler: TickScheduler | None = None,
) -> FastAPI:

    # expired sessions are swept every 5 minutes
    async def _cleanup_loop():
        while True:
            await asyncio.sleep(CLEANUP_INTERVAL_SECONDS)
            removed = session.cleanup_expired()
            if removed:
                logger.info(f"Removed {removed} expired session(s)")

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        task = asyncio.create_task(_cleanup_loop())
        try:
            yield
        finally:
            task.cancel()

    app = FastAPI(title="Entrance CBT", docs_url=None, redoc_url=None, lifespan=lifespan)

    app.state.backend = backend or HttpExamBackend()
    app.state.store = store or JsonFileStore(DATA_DIR)
    app.state.clock = clock or SystemClock()
    app.state.scheduler = scheduler or AsyncioScheduler()

    # CORS (mobile browsers and other origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # session middleware: read the session id from the cookie, issue one if missing
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=session.SESSION_TTL,
        )
        return response

    @app.exception_handler(ExamEngineError)
    async def exam_error_handler(request: Request, exc: ExamEngineError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    app.include_router(router)

    # static files
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # root → index.html
    @app.get("/")
    async def serve_index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    return app
