"""
Tests for the MCP tool front end.

Tool calls are driven directly against ToolBridge with a broker on the
test's event loop; the executor side is played by the test through
poll_next()/complete().
"""

import asyncio
import base64
import json
import os
import sys

import pytest
from mcp import types
from pydantic import ValidationError

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from conftest import wait_for_pending
from designbridge.modules.broker import CommandBroker, CommandOutcome
from designbridge.modules.tools import ToolBridge, load_catalog, save_export


@pytest.fixture
def catalog():
    """Load the packaged tool catalog."""
    return load_catalog()


@pytest.fixture
def bridge(broker, catalog):
    """Create a ToolBridge around the test broker."""
    return ToolBridge(broker, catalog)


# =============================================================================
# Catalog
# =============================================================================


def test_packaged_catalog_loads(catalog):
    """Test the shipped catalog's contents"""
    assert catalog.version == 1
    assert len(catalog.tools) == 20
    assert {"create_nodes", "export_node", "find_nodes", "list_fonts"} <= set(catalog.names)
    assert all(tool.input_schema["type"] == "object" for tool in catalog.tools)


def test_catalog_lookup(catalog):
    """Test finding a tool by name"""
    tool = catalog.get("get_node_info")

    assert tool is not None
    assert tool.input_schema["required"] == ["nodeId"]
    assert catalog.get("not_a_tool") is None


def test_catalog_rejects_duplicate_names(tmp_path):
    """Test that a catalog listing a tool twice is refused"""
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "version: 1\n"
        "tools:\n"
        "  - {name: ping, description: a, inputSchema: {type: object}}\n"
        "  - {name: ping, description: b, inputSchema: {type: object}}\n"
    )

    with pytest.raises(ValidationError, match="Duplicate tool name"):
        load_catalog(str(path))


def test_catalog_rejects_non_object_schema(tmp_path):
    """Test that tool arguments must be described as an object"""
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "version: 1\n"
        "tools:\n"
        "  - {name: ping, description: a, inputSchema: {type: string}}\n"
    )

    with pytest.raises(ValidationError):
        load_catalog(str(path))


def test_catalog_path_from_environment(tmp_path, monkeypatch):
    """Test overriding the catalog location"""
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "version: 2\n"
        "tools:\n"
        "  - {name: ping, description: Ping the plugin, inputSchema: {type: object}}\n"
    )
    monkeypatch.setenv("DESIGNBRIDGE_TOOL_CATALOG", str(path))

    catalog = load_catalog()

    assert catalog.version == 2
    assert catalog.names == ["ping"]


# =============================================================================
# Tool calls
# =============================================================================


def test_list_tools(bridge):
    """Test that every catalog entry is exposed as an MCP tool"""
    tools = bridge.list_tools()

    assert len(tools) == 20
    create = next(t for t in tools if t.name == "create_nodes")
    assert create.inputSchema["required"] == ["nodes"]
    assert create.description


@pytest.mark.asyncio
async def test_call_tool_round_trip(bridge, broker):
    """Test a tool call travelling through the broker to the plugin and back"""
    task = asyncio.create_task(bridge.call_tool("get_node_info", {"nodeId": "1:2"}))
    await wait_for_pending(broker)

    command = broker.poll_next()
    assert command.kind == "get_node_info"
    assert command.payload == {"nodeId": "1:2"}
    broker.complete(command.id, CommandOutcome.ok({"id": "1:2", "type": "FRAME"}))

    result = await task
    assert not result.isError
    assert json.loads(result.content[0].text) == {"id": "1:2", "type": "FRAME"}


@pytest.mark.asyncio
async def test_call_tool_without_arguments(bridge, broker):
    """Test that a missing arguments object becomes an empty payload"""
    task = asyncio.create_task(bridge.call_tool("list_pages", None))
    await wait_for_pending(broker)

    command = broker.poll_next()
    assert command.payload == {}
    broker.complete(command.id, CommandOutcome.ok([]))

    result = await task
    assert result.content[0].text == "[]"


@pytest.mark.asyncio
async def test_call_unknown_tool(bridge, broker):
    """Test that unknown tools are refused without queuing anything"""
    result = await bridge.call_tool("format_disk", {})

    assert result.isError
    assert result.content[0].text == "Error: Unknown tool: format_disk"
    assert broker.pending_count == 0


@pytest.mark.asyncio
async def test_call_tool_plugin_failure(bridge, broker):
    """Test that a plugin failure becomes an error result"""
    task = asyncio.create_task(bridge.call_tool("ungroup_nodes", {"nodeId": "5:6"}))
    await wait_for_pending(broker)

    broker.complete(broker.poll_next().id, CommandOutcome.failed("Node 5:6 is not a group"))

    result = await task
    assert result.isError
    assert result.content[0].text == "Error: Node 5:6 is not a group"


@pytest.mark.asyncio
async def test_call_tool_timeout(bridge, broker, clock):
    """Test that a plugin that never answers produces a timeout error result"""
    task = asyncio.create_task(bridge.call_tool("list_fonts", {}))
    await wait_for_pending(broker)

    command_id = broker.poll_next().id
    clock.advance(31.0)
    broker.sweep()

    result = await task
    assert result.isError
    assert command_id in result.content[0].text
    assert "timed out" in result.content[0].text


@pytest.mark.asyncio
async def test_call_tool_queue_full(catalog, clock):
    """Test that saturation is reported to the agent"""
    broker = CommandBroker(capacity=1, clock=clock)
    bridge = ToolBridge(broker, catalog)
    broker.submit("list_pages", {})

    result = await bridge.call_tool("list_fonts", {})

    assert result.isError
    assert "queue is full" in result.content[0].text


@pytest.mark.asyncio
async def test_export_node_saved_to_output_path(bridge, broker, tmp_path):
    """Test that exported bytes are written locally, not returned inline"""
    target = tmp_path / "exports" / "button.png"
    task = asyncio.create_task(
        bridge.call_tool(
            "export_node", {"nodeId": "7:8", "format": "PNG", "outputPath": str(target)}
        )
    )
    await wait_for_pending(broker)

    command = broker.poll_next()
    assert command.payload == {"nodeId": "7:8", "format": "PNG"}
    broker.complete(
        command.id,
        CommandOutcome.ok(
            {
                "nodeId": "7:8",
                "name": "Button",
                "format": "PNG",
                "size": 4,
                "data": base64.b64encode(b"\x89PNG").decode(),
            }
        ),
    )

    result = await task
    assert not result.isError
    body = json.loads(result.content[0].text)
    assert body["path"] == str(target)
    assert "data" not in body
    assert target.read_bytes() == b"\x89PNG"


# =============================================================================
# Export files
# =============================================================================


def test_save_export_to_temp_file():
    """Test saving an export without an explicit path"""
    result = {"nodeId": "1:1", "format": "SVG", "data": base64.b64encode(b"<svg/>").decode()}

    saved = save_export(result)
    try:
        assert saved["path"].endswith(".svg")
        assert saved["size"] == 6
        with open(saved["path"], "rb") as f:
            assert f.read() == b"<svg/>"
    finally:
        os.remove(saved["path"])


def test_save_export_passes_through_results_without_data():
    """Test that results carrying no inline data are left alone"""
    assert save_export({"nodeId": "1:1"}) == {"nodeId": "1:1"}
    assert save_export("done") == "done"


def test_save_export_rejects_bad_base64(tmp_path):
    """Test that corrupt export data is reported"""
    with pytest.raises(ValueError, match="not valid base64"):
        save_export({"data": "***"}, str(tmp_path / "out.png"))


def test_create_server(bridge):
    """Test that the MCP server is created with the bridge's name"""
    server = bridge.create_server()

    assert server.name == "designbridge"


# =============================================================================
# MCP request handlers
# =============================================================================


def _call_request(name, arguments):
    return types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )


@pytest.mark.asyncio
async def test_server_lists_catalog(bridge):
    """Test the registered tools/list handler"""
    server = bridge.create_server()
    handler = server.request_handlers[types.ListToolsRequest]

    response = await handler(types.ListToolsRequest(method="tools/list"))

    assert len(response.root.tools) == 20
    assert "export_node" in [tool.name for tool in response.root.tools]


@pytest.mark.asyncio
async def test_server_call_tool_success(bridge, broker):
    """Test a tools/call request answered through the registered handler"""
    server = bridge.create_server()
    handler = server.request_handlers[types.CallToolRequest]

    task = asyncio.create_task(handler(_call_request("list_pages", {})))
    await wait_for_pending(broker)
    broker.complete(broker.poll_next().id, CommandOutcome.ok({"pages": []}))

    response = await task
    assert response.root.isError is False
    assert json.loads(response.root.content[0].text) == {"pages": []}


@pytest.mark.asyncio
async def test_server_call_tool_failure_is_error(bridge, broker):
    """Test that a plugin failure keeps isError through the registered handler"""
    server = bridge.create_server()
    handler = server.request_handlers[types.CallToolRequest]

    task = asyncio.create_task(handler(_call_request("ungroup_nodes", {"nodeId": "5:6"})))
    await wait_for_pending(broker)
    broker.complete(broker.poll_next().id, CommandOutcome.failed("Node 5:6 is not a group"))

    response = await task
    assert response.root.isError is True
    assert response.root.content[0].text == "Error: Node 5:6 is not a group"


@pytest.mark.asyncio
async def test_call_tool_unexpected_failure(bridge, broker, monkeypatch):
    """Test that an unexpected exception after completion becomes an error result"""

    def broken_save(result, output_path=None):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr("designbridge.modules.tools.server.save_export", broken_save)

    task = asyncio.create_task(bridge.call_tool("export_node", {"nodeId": "7:8"}))
    await wait_for_pending(broker)
    broker.complete(broker.poll_next().id, CommandOutcome.ok({"nodeId": "7:8", "data": ""}))

    result = await task
    assert result.isError
    assert result.content[0].text == "Error: disk on fire"
    assert broker.pending_count == 0
