"""
Tools Module - Black Box Interface

Purpose: Expose design operations to an AI agent as MCP tools
Interface: load_catalog(), ToolBridge.list_tools(), ToolBridge.call_tool(), ToolBridge.run_stdio()
Hidden: Catalog file format, MCP transport, export file handling

Every tool call becomes one broker command named after the tool.
"""

from .catalog import ToolCatalog, ToolSpec, load_catalog
from .server import ToolBridge, save_export

__all__ = ["ToolBridge", "ToolCatalog", "ToolSpec", "load_catalog", "save_export"]
