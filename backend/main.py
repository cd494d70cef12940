import argparse
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.concurrency import run_in_threadpool

from exceptions import DecodeError, PersistError, ProvisionError
from log import configure_logging
from repo_stats import StatsRepo
from service_stats import StatsService
from settings import Settings

log = structlog.get_logger(__name__)

ERROR_BODY = {"error_message": "unable to process request"}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app around one `Settings` instance.

    The `stats` table is provisioned in the lifespan hook, so a backend
    that rejects the DDL stops the server before it accepts a request.
    """

    settings = settings or Settings.from_env()
    repo = StatsRepo(settings)
    svc = StatsService(repo)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            repo.provision_schema()
        except ProvisionError as e:
            log.critical(str(e), error=str(e.__cause__))
            raise
        yield

    app = FastAPI(title="Panopticon", lifespan=lifespan)

    @app.post("/push")
    async def push(request: Request):
        body = await request.body()
        try:
            # the insert blocks, so run it on the worker pool
            await run_in_threadpool(
                svc.ingest,
                body,
                remote_addr(request),
                request.headers.get("x-forwarded-for"),
                request.headers.get("user-agent"),
            )
        except DecodeError as e:
            log.warning(str(e), error=str(e.__cause__))
            return JSONResponse(ERROR_BODY, status_code=400)
        except PersistError as e:
            log.error(str(e), error=str(e.__cause__))
            return JSONResponse(ERROR_BODY, status_code=500)
        return JSONResponse({})

    @app.get("/test")
    def test():
        return PlainTextResponse("ok")

    return app


def remote_addr(request: Request) -> str:
    """Peer address as `host:port`, IPv6 hosts in brackets."""
    if request.client is None:
        return ""
    host, port = request.client.host, request.client.port
    if ":" in host:
        host = f"[{host}]"
    return f"{host}:{port}"


def run(argv: Optional[list] = None) -> None:
    parser = argparse.ArgumentParser(
        description="Collect statistics posted by homeservers into a SQL database."
    )
    parser.add_argument("--db-driver", help="the database driver to use (sqlite3 or postgres)")
    parser.add_argument("--db", help="the data source to use, for sqlite this is the path to the file")
    parser.add_argument("--host", help="address on which to serve HTTP")
    parser.add_argument("--port", type=int, help="port on which to serve HTTP")
    parser.add_argument("--log-level", help="logging level")
    args = parser.parse_args(argv)

    settings = Settings.from_env(
        db_driver=args.db_driver,
        db=args.db,
        host=args.host,
        port=args.port,
        log_level=args.log_level.upper() if args.log_level else None,
    )
    configure_logging(settings.log_level)
    log.info("starting", backend=settings.db_driver.value, port=settings.port)

    # lifespan="on" makes a failed provisioning step abort startup
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, lifespan="on")


if __name__ == "__main__":
    run()
