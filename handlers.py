import re
from datetime import timedelta
from typing import Optional

from fastapi import Request, Depends, Response
from fastapi.responses import ORJSONResponse, PlainTextResponse

from auth import paste_token, cookie_name, COOKIE_MAX_AGE
from errors import InvalidInput, PasteError
from models import PasteCreated, PasteOut
from store import PasteStore

DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h|d)')
UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def parse_duration(duration: str) -> Optional[timedelta]:
    """
    Parses Go-style duration strings like '15m', '2h30m', '1.5h', plus 'd' for days.
    Returns None for an empty string or "0" (never expires).
    """
    duration = (duration or "").strip()
    if duration in ("", "0"):
        return None
    pos = 0
    total_seconds = 0.0
    for match in DURATION_PART.finditer(duration):
        if match.start() != pos:
            break
        value, unit = match.groups()
        total_seconds += float(value) * UNIT_SECONDS[unit]
        pos = match.end()
    if pos != len(duration) or total_seconds <= 0:
        raise ValueError(f"Invalid duration: {duration}")
    try:
        return timedelta(seconds=total_seconds)
    except OverflowError:
        raise ValueError(f"Invalid duration: {duration}")


def get_store(request: Request) -> PasteStore:
    return request.app.state.store


def _field(form, name: str) -> str:
    v = form.get(name)
    # multipart uploads arrive as UploadFile, only plain fields count
    return v if isinstance(v, str) else ""


async def create_paste_handler(request: Request, store: PasteStore = Depends(get_store)):
    form = await request.form()
    try:
        ttl = parse_duration(_field(form, "ttl"))
    except ValueError:
        raise InvalidInput("invalid ttl")

    paste_id = await store.create(
        content=_field(form, "content"),
        syntax=_field(form, "syntax"),
        allow_edit=_field(form, "allow_edit") == "on",
        password=_field(form, "password") or None,
        ttl=ttl,
    )
    return PasteCreated(id=paste_id)


async def get_paste_handler(paste_id: str, store: PasteStore = Depends(get_store),
                            token: Optional[str] = Depends(paste_token)):
    p = await store.get(paste_id, token)
    return ORJSONResponse(content=PasteOut.from_paste(p).model_dump())


async def get_raw_handler(paste_id: str, store: PasteStore = Depends(get_store),
                          token: Optional[str] = Depends(paste_token)):
    p = await store.get(paste_id, token)
    return PlainTextResponse(p.content)


async def update_paste_handler(paste_id: str, request: Request, store: PasteStore = Depends(get_store),
                               token: Optional[str] = Depends(paste_token)):
    form = await request.form()
    await store.update(paste_id, _field(form, "content"), token)
    return Response(status_code=204)


async def delete_paste_handler(paste_id: str, store: PasteStore = Depends(get_store),
                               token: Optional[str] = Depends(paste_token)):
    await store.delete(paste_id, token)
    return Response(status_code=204)


async def auth_paste_handler(paste_id: str, request: Request, store: PasteStore = Depends(get_store)):
    form = await request.form()
    token = await store.authenticate(paste_id, _field(form, "password"))
    response = Response(status_code=204)
    response.set_cookie(
        key=cookie_name(paste_id),
        value=token,
        max_age=COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
    )
    return response


async def health_handler():
    return {"status": "ok"}


async def paste_error_handler(request: Request, exc: PasteError):
    return ORJSONResponse(status_code=exc.status_code, content={"message": exc.message})
