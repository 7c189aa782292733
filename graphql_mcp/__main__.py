#!/usr/bin/env python3
"""
GraphQL MCP Server

Exposes the GraphQL endpoint in GRAPHQL_API_ENDPOINT as tools over stdio.

Usage:
    GRAPHQL_API_ENDPOINT=https://countries.trevorblades.com/graphql python -m graphql_mcp
"""

import asyncio
import logging
import sys

from .config import Settings
from .log import setup_logging
from .server import MCPServer

logger = logging.getLogger("graphql_mcp")


def main() -> None:
    setup_logging()
    settings = Settings.from_env()
    setup_logging(settings.log_level)

    logger.info("GraphQL MCP Server starting...")
    logger.info(f"GraphQL API Endpoint: {settings.endpoint}")
    logger.info(f"API Key: {'Configured' if settings.api_key else 'Not configured'}")
    for label, whitelist in (("Query", settings.whitelisted_queries), ("Mutation", settings.whitelisted_mutations)):
        if whitelist is None:
            logger.info(f"{label} Whitelist: Disabled (all fields allowed)")
        else:
            logger.info(f"{label} Whitelist: Enabled ({len(whitelist)} fields)")

    server = MCPServer.from_settings(settings)
    try:
        asyncio.run(server.run_stdio())
    except KeyboardInterrupt:
        logger.info("GraphQL MCP Server stopped")
    except Exception:
        logger.exception("Fatal error during initialization")
        sys.exit(1)


if __name__ == "__main__":
    main()
