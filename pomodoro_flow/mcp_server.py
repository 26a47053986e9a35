"""
Pomodoro MCP server (stdio).
Start with: pomodoro-mcp
"""
import asyncio
import logging

import mcp.server.stdio
import mcp.types as types
from dotenv import load_dotenv
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from pomodoro_flow import __version__
from pomodoro_flow.config import configure_logging
from pomodoro_flow.tools import TOOLS, call_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "pomodoro"


def build_server() -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def handle_list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.input_schema,
            )
            for spec in TOOLS.values()
        ]

    @server.call_tool()
    async def handle_call_tool(name: str, arguments: dict | None) -> list[types.TextContent]:
        # Hooks run as subprocesses; keep them off the event loop.
        result = await asyncio.to_thread(call_tool, name, arguments)
        if result.is_error:
            # The SDK turns a raised exception into an isError tool result.
            raise RuntimeError(result.text)
        return [types.TextContent(type="text", text=result.text)]

    return server


async def serve() -> None:
    server = build_server()
    async with mcp.server.stdio.stdio_server() as (read_stream, write_stream):
        logger.info("Pomodoro MCP server %s listening on stdio", __version__)
        await server.run(
            read_stream,
            write_stream,
            InitializationOptions(
                server_name=SERVER_NAME,
                server_version=__version__,
                capabilities=server.get_capabilities(
                    notification_options=NotificationOptions(),
                    experimental_capabilities={},
                ),
            ),
        )


def main() -> None:
    load_dotenv()
    configure_logging()
    asyncio.run(serve())


if __name__ == "__main__":
    main()
