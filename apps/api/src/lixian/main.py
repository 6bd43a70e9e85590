"""
lixian - server bootstrap.

Two routes and a blocking serve loop:
- /action  -> the injected ActionHandler
- /        -> static files from settings.static_dir

A bind failure is fatal: it is logged and the process exits with status 1.
"""

import logging
import socket
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from starlette.staticfiles import StaticFiles

from lixian import __version__
from lixian.actions import ActionDispatcher, ActionHandler, JSONActionHandler
from lixian.config import Settings, get_settings
from lixian.modules import Aria2Module, CookiesModule

logger = logging.getLogger(__name__)

# Route objects default to GET only, so /action lists every method
ACTION_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


class ServerBindError(OSError):
    """The listening address could not be bound."""

    def __init__(self, host: str, port: int, error: OSError):
        super().__init__(error.errno, error.strerror or str(error))
        self.host = host
        self.port = port

    def __str__(self) -> str:
        return f"listen tcp {self.host}:{self.port}: {self.strerror}"


class StaticDirectory(StaticFiles):
    """StaticFiles that answers 404 instead of failing when the directory is missing."""

    async def check_config(self) -> None:
        try:
            await super().check_config()
        except RuntimeError as e:
            logger.warning(f"{e} Requests will get 404 until it exists.")


def build_action_handler(settings: Settings) -> JSONActionHandler:
    """Default /action handler: aria2 and cookies modules behind the JSON envelope."""
    dispatcher = ActionDispatcher()
    dispatcher.register(
        Aria2Module(
            default_url=settings.aria2_url,
            config_path=settings.aria2_config_path,
            timeout=settings.aria2_timeout,
        )
    )
    dispatcher.register(CookiesModule(settings.config_dir))
    return JSONActionHandler(dispatcher)


def create_app(
    settings: Settings | None = None,
    action_handler: ActionHandler | None = None,
) -> FastAPI:
    """
    Build the ASGI application.

    Args:
        settings: Server settings; defaults to the environment
        action_handler: Collaborator for /action; defaults to build_action_handler()

    The handler's init() runs once in the lifespan, before requests are
    served, and close() runs on shutdown.
    """
    settings = settings or get_settings()
    handler = action_handler or build_action_handler(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await handler.init()
        yield
        await handler.close()

    app = FastAPI(
        title="lixian",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    # The handler decides what it accepts
    app.add_route("/action", handler.handle, methods=ACTION_METHODS, include_in_schema=False)

    # Registered last so /action wins
    app.mount(
        "/",
        StaticDirectory(directory=settings.static_dir, html=True, check_dir=False),
        name="static",
    )

    return app


def bind_socket(host: str, port: int) -> socket.socket:
    """
    Bind the socket and start listening.

    Raises:
        ServerBindError if the address is in use or not permitted
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen(socket.SOMAXCONN)
    except OSError as e:
        sock.close()
        raise ServerBindError(host, port, e) from e
    return sock


def serve(
    settings: Settings | None = None,
    action_handler: ActionHandler | None = None,
) -> None:
    """
    Bind and serve until the process is stopped.

    Exits with status 1 if the address cannot be bound or the app fails
    to start.
    """
    settings = settings or get_settings()

    try:
        sock = bind_socket(settings.host, settings.port)
    except ServerBindError as e:
        logger.critical(f"ListenAndServe: {e}")
        sys.exit(1)

    logger.info(f"Listening on port: {settings.port}")

    app = create_app(settings, action_handler)
    server = uvicorn.Server(uvicorn.Config(app, lifespan="on", log_config=None))
    try:
        server.run(sockets=[sock])
    finally:
        sock.close()

    if not server.started:
        logger.critical("Server failed to start")
        sys.exit(1)
