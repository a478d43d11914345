"""Shared fixtures for CloudTrail MCP server tests."""

import pytest
from cloudtrail_mcp_server.config import CloudTrailConfig
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def ctx():
    """MCP context with awaitable logging methods."""
    context = MagicMock()
    context.error = AsyncMock()
    context.warning = AsyncMock()
    context.info = AsyncMock()
    return context


@pytest.fixture
def config():
    return CloudTrailConfig(region='us-west-2', max_token_call=20000)


@pytest.fixture
def cloudtrail_client():
    return MagicMock()


@pytest.fixture
def fixed_now():
    return datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_event():
    """Sample LookupEvents event as returned by boto3."""
    return {
        'EventId': 'a1b2c3d4-0000-1111-2222-333344445555',
        'EventName': 'ConsoleLogin',
        'ReadOnly': 'false',
        'AccessKeyId': 'ASIAEXAMPLE',
        'EventTime': datetime(2025, 6, 15, 10, 30, 0, tzinfo=timezone.utc),
        'EventSource': 'signin.amazonaws.com',
        'Username': 'alice',
        'Resources': [{'ResourceType': 'AWS::IAM::User', 'ResourceName': 'alice'}],
        'CloudTrailEvent': '{"eventVersion": "1.08"}',
    }
