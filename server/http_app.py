# server/http_app.py
from __future__ import annotations

import errno
import logging
import socket
import sys
from typing import Any, Dict, Optional, Type

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ValidationError
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.di import Container, build_container
from app.errors import AccessDeniedError, BadRequestError, FileIOError, StartupError
from app.logging import configure_logging, log_request

from server.tools.files import FsReadIn, FsTreeIn, FsWriteIn

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
MISSING_PATH = "Bad Request: Missing path parameter"


def _parse(model: Type[BaseModel], data: Dict[str, Any], message: str = MISSING_PATH) -> BaseModel:
    # Normalize raw request shapes into a fixed model before any service call
    try:
        return model(**data)
    except ValidationError as exc:
        logger.info("Rejected %s: %s", model.__name__, exc.errors(include_url=False))
        raise BadRequestError(message) from exc


def _multi(items) -> Dict[str, Any]:
    # Query/form multi-dicts: "hideDirs[]" style keys map to "hideDirs"
    out: Dict[str, Any] = {}
    for key in items.keys():
        out[key.removesuffix("[]")] = items.getlist(key)
    return out


async def _tree_args(request: Request) -> Dict[str, Any]:
    if request.method == "GET":
        return _multi(request.query_params)
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise BadRequestError("Bad Request: Malformed JSON body") from exc
        if not isinstance(payload, dict):
            raise BadRequestError("Bad Request: Malformed JSON body")
        return {k.removesuffix("[]"): v for k, v in payload.items()}
    return _multi(await request.form())


def create_app(container: Optional[Container] = None) -> FastAPI:
    """
    Build the HTTP surface around an already-resolved container.
    The root directory is fixed for the lifetime of the app.
    """
    container = container or build_container()
    settings = container.settings

    app = FastAPI(title="Mini OS File Manager", version=VERSION)
    app.state.container = container

    origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------- Error mapping ----------

    @app.exception_handler(BadRequestError)
    async def bad_request_handler(request: Request, exc: BadRequestError):
        return PlainTextResponse(str(exc) or MISSING_PATH, status_code=400)

    @app.exception_handler(AccessDeniedError)
    async def access_denied_handler(request: Request, exc: AccessDeniedError):
        logger.warning("Access denied for %s %s: %s", request.method, request.url.path, exc.path)
        return PlainTextResponse("Forbidden: Access Denied", status_code=403)

    @app.exception_handler(FileIOError)
    async def file_io_handler(request: Request, exc: FileIOError):
        return PlainTextResponse(exc.reason, status_code=500)

    # ---------- Editor API ----------

    @app.get("/api/read")
    def read_file(request: Request):
        args = _parse(FsReadIn, {"path": request.query_params.getlist("path")})
        log_request(logger, "read", args.model_dump())
        return PlainTextResponse(container.fs_service.read_text(args.path))

    @app.post("/api/save")
    async def save_file(request: Request):
        try:
            payload = await request.json()
        except ValueError as exc:
            raise BadRequestError("Bad Request: Malformed JSON body") from exc
        if not isinstance(payload, dict):
            raise BadRequestError("Bad Request: Malformed JSON body")

        args = _parse(FsWriteIn, payload)
        log_request(logger, "save", args.model_dump())
        await run_in_threadpool(container.fs_service.write_text, args.path, args.content)
        return JSONResponse({"message": "File saved successfully"})

    # ---------- Folder tree for the file manager ----------

    @app.api_route("/api/tree", methods=["GET", "POST"])
    async def dir_tree(request: Request):
        args = _parse(FsTreeIn, await _tree_args(request), "Bad Request: Malformed tree request")
        if args.action != "dirList":
            raise BadRequestError(f"Bad Request: Unsupported action {args.action!r}")
        log_request(logger, "tree", args.model_dump())

        depth = settings.TREE_MAX_DEPTH if args.maxDepth is None else args.maxDepth
        nodes = await run_in_threadpool(container.tree_service.list_dirs, args.path, args.hideDirs, depth)
        return JSONResponse([n.to_dict() for n in nodes])

    @app.get("/api/health")
    def health():
        return {"status": "ok", "root": container.tree_service.label}

    # Front-end assets, when bundled; registered last so /api routes win
    if settings.STATIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")

    return app


# ---------- Process entry point ----------

def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind the listening socket up front so a port conflict is reported
    as a startup failure before anything is served.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        if exc.errno == errno.EADDRINUSE:
            raise StartupError(
                f"Port {port} on {host} is already in use; stop the other process or set HTTP_PORT"
            ) from exc
        raise StartupError(f"Could not bind {host}:{port}: {exc}") from exc
    sock.set_inheritable(True)
    return sock


def main() -> int:
    import uvicorn

    settings = Settings()
    configure_logging(settings.LOG_LEVEL)
    try:
        container = build_container(settings)
        sock = bind_socket(settings.HTTP_HOST, settings.HTTP_PORT)
    except StartupError as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    app = create_app(container)
    logger.info("Mini OS File Manager listening at http://%s:%s", settings.HTTP_HOST, settings.HTTP_PORT)
    config = uvicorn.Config(app, log_level=settings.LOG_LEVEL.lower())
    uvicorn.Server(config).run(sockets=[sock])
    return 0


if __name__ == "__main__":
    sys.exit(main())
