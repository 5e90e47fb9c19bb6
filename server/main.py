# server/main.py
import logging
import sys

from fastmcp import FastMCP

from app.config import Settings
from app.di import Container, build_container
from app.errors import StartupError
from app.logging import configure_logging
from server.tools.files import register_file_tools

logger = logging.getLogger(__name__)


def create_app(container: Container | None = None) -> FastMCP:
    """
    Build DI container, create FastMCP host, and register tools.
    Keep the server (protocol) separate from tool/service logic.
    """
    container = container or build_container()

    mcp = FastMCP("MiniOSFiles", version="0.1.0")

    # Register tools (thin adapters)
    register_file_tools(mcp, container.fs_service, container.tree_service)
    return mcp


def main() -> int:
    settings = Settings()
    # stdout carries JSON-RPC, so logs go to stderr (basicConfig default)
    configure_logging(settings.LOG_LEVEL)
    try:
        app = create_app(build_container(settings))
    except StartupError as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")
    return 0


if __name__ == "__main__":
    sys.exit(main())
