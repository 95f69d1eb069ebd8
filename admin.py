from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, Response
from fastapi.responses import ORJSONResponse

from errors import PasteError
from handlers import get_store, paste_error_handler
from store import PasteStore


async def list_pastes_handler(store: PasteStore = Depends(get_store)):
    rows = await store.list_recent()
    return ORJSONResponse(content=[r.model_dump() for r in rows])


async def delete_paste_handler(paste_id: str, store: PasteStore = Depends(get_store)):
    await store.purge(paste_id)
    return Response(status_code=204)


async def purge_handler(store: PasteStore = Depends(get_store)):
    deleted = await store.sweep_expired()
    return {"deleted": deleted}


def create_admin_app(store: PasteStore) -> FastAPI:
    """Maintenance endpoints. Bind this app to a local-only address."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await store.connect()
        yield
        await store.disconnect()

    app = FastAPI(title="pastebox admin", lifespan=lifespan, docs_url=None, redoc_url=None)
    app.state.store = store
    app.add_exception_handler(PasteError, paste_error_handler)

    app.get("/admin")(list_pastes_handler)
    app.post("/admin/delete/{paste_id}")(delete_paste_handler)
    app.post("/admin/purge")(purge_handler)
    return app
