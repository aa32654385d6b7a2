"""
designbridge - MCP bridge to a polling design plugin

Lets an AI agent drive a design tool whose plugin cannot accept incoming
connections. Tool calls are queued in memory; the plugin polls for them
over HTTP and posts results back.

Architecture:
- Each module is self-contained with clear interfaces
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- broker: Command queue, result correlation and timeouts
- api: HTTP models for the executor-facing endpoints
- tools: MCP tool catalog and stdio server
"""

__version__ = "1.0.0"
