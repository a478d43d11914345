"""Tests for server bootstrap."""

import pytest
from cloudtrail_mcp_server import server
from fastmcp import Client
from fastmcp.exceptions import ToolError
from unittest.mock import MagicMock, patch


def test_create_server_registers_tool_groups(config):
    with patch.object(server, 'FastMCP') as fastmcp:
        mcp = server.create_server(config)

    fastmcp.assert_called_once_with('cloudtrail-mcp-server', instructions=server.SERVER_INSTRUCTIONS)
    registered = [c.kwargs['name'] for c in mcp.tool.call_args_list]
    assert registered == [
        'lookup_events',
        'lake_query',
        'get_query_status',
        'get_query_results',
        'list_event_data_stores',
    ]
    mcp.custom_route.assert_called_once_with('/health', methods=['GET'], include_in_schema=False)


def test_main_exits_on_invalid_configuration(monkeypatch):
    monkeypatch.setenv('MAX_TOKEN_CALL', 'unlimited')

    with pytest.raises(SystemExit) as excinfo:
        server.main()

    assert excinfo.value.code == 1


@pytest.mark.parametrize(
    'transport,expected',
    [
        ('stdio', {'transport': 'stdio'}),
        ('http', {'transport': 'streamable-http', 'host': 'localhost', 'port': 3000}),
    ],
)
def test_main_runs_selected_transport(monkeypatch, transport, expected):
    monkeypatch.setenv('MCP_TRANSPORT', transport)
    monkeypatch.delenv('MCP_HTTP_PORT', raising=False)
    monkeypatch.delenv('MCP_HTTP_HOST', raising=False)
    monkeypatch.delenv('MAX_TOKEN_CALL', raising=False)
    monkeypatch.delenv('AWS_TIMEOUT', raising=False)
    mcp = MagicMock()

    with patch.object(server, 'create_server', return_value=mcp):
        server.main()

    mcp.run.assert_called_once_with(**expected)


class TestToolSchemas:
    """Argument validation on the registered tools, before any CloudTrail call."""

    @pytest.fixture
    def client_factory(self, cloudtrail_client):
        with patch(
            'cloudtrail_mcp_server.base_tools.get_cloudtrail_client', return_value=cloudtrail_client
        ) as factory:
            yield factory

    async def test_valid_call_reaches_cloudtrail(self, config, cloudtrail_client, client_factory):
        cloudtrail_client.lookup_events.return_value = {'Events': []}

        async with Client(server.create_server(config)) as client:
            result = await client.call_tool('lookup_events', {'attribute_key': 'EventName'})

        assert 'No events found' in result.content[0].text
        client_factory.assert_called_once_with(config, 'us-west-2')

    @pytest.mark.parametrize(
        'tool_name,arguments',
        [
            ('get_query_results', {'query_id': 'q-1', 'max_results': 500}),
            ('get_query_results', {'query_id': 'q-1', 'max_results': 0}),
            ('lookup_events', {'attribute_key': 'Bogus', 'attribute_value': 'x'}),
            ('lookup_events', {'max_results': 51}),
        ],
    )
    async def test_invalid_arguments_rejected(
        self, config, cloudtrail_client, client_factory, tool_name, arguments
    ):
        async with Client(server.create_server(config)) as client:
            with pytest.raises(ToolError):
                await client.call_tool(tool_name, arguments)

        client_factory.assert_not_called()
        cloudtrail_client.get_query_results.assert_not_called()
        cloudtrail_client.lookup_events.assert_not_called()
