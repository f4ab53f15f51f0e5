from __future__ import annotations

import logging
from typing import Any, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .core.logging_utils import log_event
from .relay.errors import RelayError
from .relay.human import Human
from .tools import ToolCallError, call_tool, list_tool_definitions
from .version import __version__

SERVER_NAME = "discord-human-relay"
SERVER_INSTRUCTIONS = (
    "Use ask_human when you need information only the user can provide. "
    "The call blocks until the user replies in Discord."
)


def build_mcp_server(
    human: Human, *, logger: Optional[logging.Logger] = None
) -> Server:
    log = logger or logging.getLogger(__name__)
    server: Server = Server(
        SERVER_NAME, version=__version__, instructions=SERVER_INSTRUCTIONS
    )

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return list_tool_definitions()

    @server.call_tool()
    async def _call_tool(
        name: str, arguments: dict[str, Any]
    ) -> list[types.TextContent]:
        log_event(log, logging.DEBUG, "mcp.tool.call", tool=name)
        try:
            text = await call_tool(human, name, arguments)
        except (RelayError, ToolCallError) as exc:
            # The MCP server turns the raised error into an isError result.
            log_event(log, logging.WARNING, "mcp.tool.failed", tool=name, exc=exc)
            raise
        return [types.TextContent(type="text", text=text)]

    return server


async def run_stdio_server(server: Server) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream, write_stream, server.create_initialization_options()
        )
