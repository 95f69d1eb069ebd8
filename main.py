import asyncio
import logging
import os
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse, FileResponse
from fastapi.staticfiles import StaticFiles

from config import Settings
from db_sqlalchemy import ensure_db_dir, make_database
from errors import InvalidInput, PasteError
from handlers import (
    create_paste_handler, get_paste_handler, get_raw_handler, update_paste_handler,
    delete_paste_handler, auth_paste_handler, health_handler, paste_error_handler
)
from store import PasteStore

logger = logging.getLogger("pastebox.main")


def setup_logging(level: str = "INFO"):
    """Configure the pastebox loggers to write to stderr."""
    root = logging.getLogger("pastebox")
    root.setLevel(level)
    root.propagate = False

    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)

    # Remove existing handlers to avoid duplicates
    root.handlers.clear()
    root.addHandler(handler)


class BodyLimitMiddleware:
    """Caps request bodies at ``max_body`` bytes."""

    def __init__(self, app, max_body: int):
        self.app = app
        self.max_body = max_body

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        for name, value in scope.get("headers", []):
            if name == b"content-length":
                try:
                    declared = int(value)
                except ValueError:
                    declared = 0
                if declared > self.max_body:
                    response = ORJSONResponse(status_code=400, content={"message": "request body too large"})
                    await response(scope, receive, send)
                    return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body:
                    raise InvalidInput("request body too large")
            return message

        await self.app(scope, limited_receive, send)


async def sweep_forever(store: PasteStore, interval: int):
    """Delete expired pastes every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            deleted = await store.sweep_expired()
        except Exception:
            # try again on the next tick
            logger.exception("Expiry sweep failed")
            continue
        if deleted:
            logger.info("Sweep removed %d expired pastes", deleted)


def mount_ui(app: FastAPI, ui_dir: str):
    """Serve the built frontend with an SPA fallback to index.html."""
    index = os.path.join(ui_dir, "index.html")
    assets = os.path.join(ui_dir, "assets")
    if os.path.isdir(assets):
        app.mount("/assets", StaticFiles(directory=assets), name="assets")

    @app.get("/{path:path}", include_in_schema=False)
    async def spa_fallback(path: str):
        return FileResponse(index)


def create_app(settings: Settings, store: Optional[PasteStore] = None) -> FastAPI:
    if store is None:
        store = PasteStore(
            database=make_database(settings.database_url),
            secret=settings.secret,
            max_content_bytes=settings.max_content_bytes,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # startup
        if not settings.db_url:
            ensure_db_dir(settings.db_path)
        await store.connect()
        sweeper = asyncio.create_task(sweep_forever(store, settings.sweep_interval))
        logger.info("pastebox ready (db=%s)", settings.db_url or settings.db_path)
        yield
        # shutdown
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await store.disconnect()
        logger.info("pastebox stopped")

    app = FastAPI(title="pastebox", lifespan=lifespan)
    app.state.store = store
    app.add_middleware(BodyLimitMiddleware, max_body=settings.max_body_bytes)
    app.add_exception_handler(PasteError, paste_error_handler)

    app.get("/_health")(health_handler)
    app.post("/api/p")(create_paste_handler)
    app.get("/api/p/{paste_id}")(get_paste_handler)
    app.post("/api/p/{paste_id}")(update_paste_handler)
    app.delete("/api/p/{paste_id}")(delete_paste_handler)
    app.post("/api/p/{paste_id}/auth")(auth_paste_handler)
    app.get("/api/raw/{paste_id}")(get_raw_handler)

    if os.path.isfile(os.path.join(settings.ui_dir, "index.html")):
        mount_ui(app, settings.ui_dir)
    return app


settings = Settings.from_env()
setup_logging(settings.log_level)
app = create_app(settings)
