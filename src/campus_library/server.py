"""Campus Library MCP server.

Registers the reservation tools with FastMCP and runs the configured
transport. Authentication happens in front of this server; every tool
receives the caller identity as ``auth_user`` in its arguments.
"""

import logging
import signal
import sys
from typing import Any

from fastmcp import FastMCP

from campus_library.config import get_config
from campus_library.database.session import get_db_manager
from campus_library.tools import all_tools

config = get_config()

# stderr keeps stdout clean for the stdio transport
logging.basicConfig(
    level=getattr(logging, config.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "Campus Library reservation service. Students can list, cancel and check out "
        "their reservations; staff can list and look up any reservation."
    ),
)

for tool in all_tools:
    mcp.tool(name=tool["name"], description=tool["description"])(tool["entrypoint"])

logger.info("Registered %d reservation tools", len(all_tools))


def run_stdio_server() -> None:
    """Run the MCP server using stdio transport."""
    logger.info("Starting %s v%s on stdio transport", config.server_name, config.server_version)

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        get_db_manager().close()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        mcp.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)


def main() -> None:
    """Entry point for the ``campus-library`` script."""
    try:
        logger.info("Campus Library server %s (transport: %s)", config.server_version, config.transport)

        db_manager = get_db_manager()
        db_manager.init_database()
        if not db_manager.verify_connection():
            sys.exit(1)

        if config.transport == "stdio":
            run_stdio_server()
        else:
            logger.error("Unsupported transport: %s", config.transport)
            sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)


if __name__ == "__main__":
    main()
