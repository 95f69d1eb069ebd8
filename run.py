"""Serve the public pastebox API and the local admin API side by side."""
import argparse
import asyncio
from typing import Tuple

import uvicorn

from admin import create_admin_app
from config import Settings
from main import create_app, setup_logging


def split_addr(addr: str, default_host: str = "0.0.0.0") -> Tuple[str, int]:
    """Turn ':8080' or '127.0.0.1:8787' into (host, port)."""
    host, _, port = addr.rpartition(":")
    return host or default_host, int(port)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="pastebox server")
    parser.add_argument("--addr", default=":8080", help="public http addr")
    parser.add_argument("--admin", default="127.0.0.1:8787", help="admin http addr")
    parser.add_argument("--db", default=None, help="sqlite path")
    parser.add_argument("--ui", default=None, help="built frontend dist dir")
    return parser.parse_args(argv)


def build_apps(settings: Settings):
    """Public and admin apps sharing one paste store."""
    public = create_app(settings)
    admin = create_admin_app(public.state.store)
    return public, admin


async def serve(settings: Settings, addr: str, admin_addr: str):
    public, admin = build_apps(settings)

    servers = []
    for app, bind in ((public, addr), (admin, admin_addr)):
        host, port = split_addr(bind)
        config = uvicorn.Config(app, host=host, port=port, log_level=settings.log_level.lower())
        servers.append(uvicorn.Server(config))
    await asyncio.gather(*(s.serve() for s in servers))


def main(argv=None):
    args = parse_args(argv)
    settings = Settings.from_env()
    if args.db:
        settings.db_path = args.db
        settings.db_url = None
    if args.ui:
        settings.ui_dir = args.ui
    setup_logging(settings.log_level)
    asyncio.run(serve(settings, args.addr, args.admin))


if __name__ == "__main__":
    main()
