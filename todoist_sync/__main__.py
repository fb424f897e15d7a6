"""Entry point for `python -m todoist_sync`."""

import logging
import os

from todoist_sync.server import mcp

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

transport = os.environ.get("MCP_TRANSPORT", "streamable-http")

if transport in ("streamable-http", "stdio"):
    mcp.run(transport=transport)
else:
    port = int(os.environ.get("PORT", "8000"))
    mcp.run(transport=transport, host="0.0.0.0", port=port)
