"""
MCP stdio front end.

Lists the design-operation catalog to the agent and turns each tool call
into a broker submission, waiting for the plugin to post the result back.
"""

import asyncio
import base64
import binascii
import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from designbridge import __version__
from designbridge.modules.broker import BrokerError, CommandBroker

from .catalog import ToolCatalog

logger = logging.getLogger("designbridge.tools")

SERVER_NAME = "designbridge"
EXPORT_TOOL = "export_node"
EXPORT_SUFFIXES = {"PNG": ".png", "JPG": ".jpg", "SVG": ".svg", "PDF": ".pdf"}


def _text_result(text: str, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


def save_export(result: Any, output_path: Optional[str] = None) -> Any:
    """
    Write an exported node to disk and replace its inline data with the path.

    Args:
        result: Export result from the plugin ({nodeId, name, format, size, data})
        output_path: Target file; a temp file is created when omitted

    Returns:
        The result without 'data' and with 'path' added. Results that carry
        no base64 data are returned unchanged.
    """
    if not isinstance(result, dict) or not isinstance(result.get("data"), str):
        return result

    try:
        content = base64.b64decode(result["data"], validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Export data is not valid base64: {e}")

    if output_path:
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        path = output_path
        with open(path, "wb") as f:
            f.write(content)
    else:
        suffix = EXPORT_SUFFIXES.get(str(result.get("format", "PNG")).upper(), ".bin")
        fd, path = tempfile.mkstemp(prefix="designbridge-export-", suffix=suffix)
        with os.fdopen(fd, "wb") as f:
            f.write(content)

    saved = {key: value for key, value in result.items() if key != "data"}
    saved["path"] = path
    saved["size"] = len(content)
    logger.info(f"Saved export of node {result.get('nodeId')} to {path}")
    return saved


class ToolBridge:
    """Maps MCP tool calls onto broker submissions."""

    def __init__(self, broker: CommandBroker, catalog: ToolCatalog):
        self.broker = broker
        self.catalog = catalog

    def list_tools(self) -> List[Tool]:
        return [
            Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema)
            for tool in self.catalog.tools
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> CallToolResult:
        """
        Run one tool call through the broker.

        Broker errors (queue full, plugin failure, timeout) come back to the
        agent as error results rather than protocol errors, so it can decide
        whether to retry.
        """
        if self.catalog.get(name) is None:
            logger.warning(f"Call to unknown tool: {name}")
            return _text_result(f"Error: Unknown tool: {name}", is_error=True)

        arguments = dict(arguments or {})
        output_path = arguments.pop("outputPath", None) if name == EXPORT_TOOL else None

        logger.info(f"Tool call: {name}")
        try:
            result = await self.broker.execute(name, arguments)
            if name == EXPORT_TOOL:
                result = await asyncio.to_thread(save_export, result, output_path)
        except BrokerError as e:
            logger.info(f"Tool call {name} failed: {e}")
            return _text_result(f"Error: {e}", is_error=True)
        except (OSError, ValueError) as e:
            logger.error(f"Tool call {name} failed after completion: {e}")
            return _text_result(f"Error: {e}", is_error=True)
        except Exception as e:
            logger.exception(f"Unexpected failure in tool call {name}")
            return _text_result(f"Error: {e}", is_error=True)

        return _text_result(json.dumps(result, indent=2))

    def create_server(self) -> Server:
        """Build an MCP server with this bridge's handlers registered."""
        server = Server(SERVER_NAME, version=__version__)

        @server.list_tools()
        async def list_tools() -> List[Tool]:
            return self.list_tools()

        @server.call_tool()
        async def call_tool(name: str, arguments: Dict[str, Any]) -> CallToolResult:
            return await self.call_tool(name, arguments)

        return server

    async def run_stdio(self) -> None:
        """Serve MCP over stdin/stdout until the client disconnects."""
        server = self.create_server()
        async with stdio_server() as (read_stream, write_stream):
            logger.info("MCP server running on stdio")
            await server.run(read_stream, write_stream, server.create_initialization_options())
