"""Tests for the CloudTrail Lake tools."""

import pytest
from botocore.exceptions import ClientError
from cloudtrail_mcp_server.cloudtrail_lake.event_data_stores import list_event_data_stores
from cloudtrail_mcp_server.cloudtrail_lake.tools import CloudTrailLakeTools
from cloudtrail_mcp_server.config import CloudTrailConfig
from datetime import datetime, timezone
from unittest.mock import MagicMock, call


STORE_ARN = 'arn:aws:cloudtrail:us-west-2:123456789012:eventdatastore/eds-1'


@pytest.fixture
def tools(config, cloudtrail_client):
    lake_tools = CloudTrailLakeTools(config, poll_interval=0.01, max_wait=0.02)
    lake_tools._get_cloudtrail_client = MagicMock(return_value=cloudtrail_client)
    return lake_tools


@pytest.fixture
def store_summary():
    return {
        'EventDataStoreArn': STORE_ARN,
        'Name': 'audit-store',
        'Status': 'ENABLED',
        'RetentionPeriod': 366,
        'CreatedTimestamp': datetime(2024, 1, 1, tzinfo=timezone.utc),
        # Deprecated summary fields must not leak into a listing without details
        'MultiRegionEnabled': True,
        'OrganizationEnabled': True,
    }


def test_register():
    mcp = MagicMock()

    CloudTrailLakeTools(CloudTrailConfig()).register(mcp)

    assert mcp.tool.call_args_list == [
        call(name='lake_query'),
        call(name='get_query_status'),
        call(name='get_query_results'),
        call(name='list_event_data_stores'),
    ]


class TestLakeQuery:
    """Tests for lake_query."""

    async def test_async_submission(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.start_query.return_value = {'QueryId': 'q-42'}
        cloudtrail_client.describe_query.return_value = {'QueryStatus': 'QUEUED'}

        text = await tools.lake_query(ctx, sql='SELECT * FROM eds-1', wait_for_completion=False)

        assert 'Query submitted (region: us-west-2)' in text
        assert 'Query ID: q-42' in text
        assert 'Status:   QUEUED' in text
        cloudtrail_client.describe_query.assert_called_once_with(QueryId='q-42')
        cloudtrail_client.get_query_results.assert_not_called()

    async def test_sync_finished(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.start_query.return_value = {'QueryId': 'q-1'}
        cloudtrail_client.describe_query.return_value = {'QueryStatus': 'FINISHED'}
        cloudtrail_client.get_query_results.return_value = {
            'QueryResultRows': [[{'eventname': 'ConsoleLogin'}, {'total': '7'}]]
        }

        text = await tools.lake_query(ctx, sql='SELECT eventname, count(*) AS total FROM eds-1')

        assert 'CloudTrail Lake Query Results (region: us-west-2)' in text
        assert '  eventname: ConsoleLogin' in text
        assert '  total: 7' in text

    async def test_sync_failed_is_not_an_error(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.start_query.return_value = {'QueryId': 'q-1'}
        cloudtrail_client.describe_query.return_value = {
            'QueryStatus': 'FAILED',
            'ErrorMessage': 'Column not found',
        }

        text = await tools.lake_query(ctx, sql='SELECT nope FROM eds-1')

        assert 'Query completed with status: FAILED' in text
        assert 'Error: Column not found' in text
        ctx.error.assert_not_awaited()

    async def test_sync_still_running(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.start_query.return_value = {'QueryId': 'q-1'}
        cloudtrail_client.describe_query.return_value = {'QueryStatus': 'RUNNING'}

        text = await tools.lake_query(ctx, sql='SELECT * FROM eds-1')

        assert 'still in progress with status: RUNNING' in text
        assert 'Query ID: q-1' in text
        ctx.warning.assert_awaited_once()

    async def test_submission_rejected(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.start_query.side_effect = ClientError(
            {'Error': {'Code': 'InvalidQueryStatementException', 'Message': 'Only SELECT'}},
            'StartQuery',
        )

        text = await tools.lake_query(ctx, sql='DELETE FROM eds-1')

        assert text.startswith('Error: Failed to start CloudTrail Lake query')
        assert 'Only SELECT' in text
        cloudtrail_client.describe_query.assert_not_called()
        ctx.error.assert_awaited_once()


class TestGetQueryStatus:
    """Tests for get_query_status."""

    async def test_status(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.describe_query.return_value = {
            'QueryStatus': 'RUNNING',
            'QueryStatistics': {'EventsScanned': 1000, 'BytesScanned': 10240},
        }

        text = await tools.get_query_status(ctx, query_id='q-1', region='ap-south-1')

        tools._get_cloudtrail_client.assert_called_once_with('ap-south-1')
        assert 'Status:   RUNNING' in text
        assert 'Events scanned: 1000' in text
        assert 'Bytes scanned:  10.00 KB' in text

    async def test_unknown_query(self, tools, ctx, cloudtrail_client):
        cloudtrail_client.describe_query.side_effect = ClientError(
            {'Error': {'Code': 'QueryIdNotFoundException', 'Message': 'not found'}}, 'DescribeQuery'
        )

        text = await tools.get_query_status(ctx, query_id='q-missing')

        assert text.startswith('Error:')
        assert 'not found' in text


class TestGetQueryResults:
    """Tests for get_query_results."""

    async def test_pages_with_same_query_id(self, tools, ctx, cloudtrail_client):
        pages = {
            None: {'QueryResultRows': [[{'n': '1'}], [{'n': '2'}]], 'NextToken': 'p2'},
            'p2': {'QueryResultRows': [[{'n': '3'}]]},
        }
        cloudtrail_client.get_query_results.side_effect = lambda **kw: pages[kw.get('NextToken')]
        cloudtrail_client.describe_query.return_value = {'QueryStatus': 'FINISHED'}

        first = await tools.get_query_results(ctx, query_id='q-1', max_results=2)
        second = await tools.get_query_results(ctx, query_id='q-1', max_results=2, next_token='p2')

        assert 'Rows:     2' in first
        assert 'nextToken: p2' in first
        assert 'Rows:     1' in second
        assert '  n: 3' in second
        assert '  n: 1' not in second
        assert 'More results available' not in second


class TestListEventDataStores:
    """Tests for list_event_data_stores."""

    async def test_with_details(self, tools, ctx, cloudtrail_client, store_summary):
        cloudtrail_client.list_event_data_stores.return_value = {'EventDataStores': [store_summary]}
        cloudtrail_client.get_event_data_store.return_value = {
            'MultiRegionEnabled': True,
            'OrganizationEnabled': False,
            'AdvancedEventSelectors': [{'Name': 'mgmt'}, {'Name': 'data'}],
        }

        text = await tools.list_event_data_stores(ctx)

        cloudtrail_client.get_event_data_store.assert_called_once_with(EventDataStore=STORE_ARN)
        assert 'Found: 1 store(s)' in text
        assert 'Multi-region: true' in text
        assert 'Org-enabled:  false' in text
        assert 'Event selectors: 2' in text

    async def test_without_details(self, tools, ctx, cloudtrail_client, store_summary):
        cloudtrail_client.list_event_data_stores.return_value = {'EventDataStores': [store_summary]}

        text = await tools.list_event_data_stores(ctx, include_details=False)

        cloudtrail_client.get_event_data_store.assert_not_called()
        assert 'Name:    audit-store' in text
        assert 'Retention: 366 days' in text
        assert 'Multi-region' not in text
        assert 'Org-enabled' not in text
        assert 'Event selectors' not in text

    async def test_detail_failure_degrades(self, tools, ctx, cloudtrail_client, store_summary):
        cloudtrail_client.list_event_data_stores.return_value = {'EventDataStores': [store_summary]}
        cloudtrail_client.get_event_data_store.side_effect = ClientError(
            {'Error': {'Code': 'AccessDeniedException', 'Message': 'denied'}}, 'GetEventDataStore'
        )

        text = await tools.list_event_data_stores(ctx)

        assert '(Unable to retrieve detailed configuration)' in text
        ctx.error.assert_not_awaited()


async def test_list_event_data_stores_follows_next_token(cloudtrail_client, store_summary):
    second = dict(store_summary, Name='second-store', EventDataStoreArn=STORE_ARN + '-2')
    cloudtrail_client.list_event_data_stores.side_effect = [
        {'EventDataStores': [store_summary], 'NextToken': 'more'},
        {'EventDataStores': [second]},
    ]

    stores = await list_event_data_stores(cloudtrail_client, include_details=False)

    assert [s.name for s in stores] == ['audit-store', 'second-store']
    assert cloudtrail_client.list_event_data_stores.call_args_list == [call(), call(NextToken='more')]
    assert stores[0].multi_region_enabled is None
