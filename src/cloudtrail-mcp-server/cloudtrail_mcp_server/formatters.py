# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""Human-readable rendering of CloudTrail results.

All functions here are pure: they take models and return text.
"""

from cloudtrail_mcp_server.common import format_timestamp
from cloudtrail_mcp_server.models import (
    CloudTrailEvent,
    EventDataStore,
    EventsPage,
    LakeQueryOutcome,
    QueryStatus,
    ResultPage,
)
from typing import List


SECTION_MARKER = '───'
MORE_RESULTS_HINT = '⟶ More results available. Use nextToken for the next page:'


def _section(label: str, index: int) -> str:
    return f'{SECTION_MARKER} {label} {index} {SECTION_MARKER}'


def format_event(event: CloudTrailEvent) -> str:
    """Render a single CloudTrail event."""
    lines = [
        f'Event:       {event.event_name or "Unknown"}',
        f'Source:      {event.event_source or "Unknown"}',
        f'Time:        {format_timestamp(event.event_time) or "Unknown"}',
        f'User:        {event.username or "Unknown"}',
        f'Access Key:  {event.access_key_id or "N/A"}',
        f'Read Only:   {event.read_only or "Unknown"}',
        f'Event ID:    {event.event_id or "Unknown"}',
    ]

    if event.resources:
        lines.append('Resources:')
        for resource in event.resources:
            lines.append(
                f'  • {resource.resource_type or "Unknown"}: {resource.resource_name or "Unknown"}'
            )

    return '\n'.join(lines)


def format_events_page(page: EventsPage) -> str:
    """Render a page of LookupEvents results with its pagination hint."""
    params = page.query_params
    start = format_timestamp(params.start_time)
    end = format_timestamp(params.end_time)

    lines = [
        f'CloudTrail Events (region: {params.region})',
        f'Time range: {start} → {end}',
    ]
    if params.attribute_key:
        lines.append(f'Filter: {params.attribute_key} = "{params.attribute_value}"')
    lines.append(f'Found: {len(page.events)} event(s)')
    lines.append('')

    if not page.events:
        lines.append('No events found matching the specified criteria.')
    else:
        for idx, event in enumerate(page.events, start=1):
            lines.append(_section('Event', idx))
            lines.append(format_event(event))
            lines.append('')

    if page.next_token:
        lines.append(MORE_RESULTS_HINT)
        lines.append(f'  nextToken: {page.next_token}')
        lines.append(f'  startTime: {start}  (must match original request)')
        lines.append(f'  endTime:   {end}  (must match original request)')

    return '\n'.join(lines)


def format_query_status(status: QueryStatus, region: str) -> str:
    """Render the status and statistics of a Lake query."""
    lines = [
        f'CloudTrail Lake Query Status (region: {region})',
        f'Query ID: {status.query_id}',
        f'Status:   {status.query_status}',
    ]

    stats = status.query_statistics
    if stats:
        lines.append('')
        lines.append('Statistics:')
        if stats.events_matched is not None:
            lines.append(f'  Events matched: {stats.events_matched}')
        if stats.events_scanned is not None:
            lines.append(f'  Events scanned: {stats.events_scanned}')
        if stats.bytes_scanned is not None:
            lines.append(f'  Bytes scanned:  {stats.bytes_scanned / 1024:.2f} KB')
        if stats.execution_time_in_millis is not None:
            lines.append(f'  Execution time: {stats.execution_time_in_millis} ms')

    if status.error_message:
        lines.append('')
        lines.append(f'Error: {status.error_message}')

    if status.delivery_s3_uri:
        lines.append('')
        lines.append(f'Delivery S3 URI: {status.delivery_s3_uri}')
        lines.append(f'Delivery status: {status.delivery_status or "Unknown"}')

    return '\n'.join(lines)


def format_query_results(page: ResultPage, region: str) -> str:
    """Render one page of Lake query rows with its pagination hint."""
    lines = [
        f'CloudTrail Lake Query Results (region: {region})',
        f'Query ID: {page.query_id}',
        f'Status:   {page.query_status}',
        f'Rows:     {len(page.rows)}',
        '',
    ]

    stats = page.query_statistics
    if stats:
        if stats.events_matched is not None:
            lines.append(f'Events matched: {stats.events_matched}')
        if stats.execution_time_in_millis is not None:
            lines.append(f'Execution time: {stats.execution_time_in_millis} ms')
        lines.append('')

    if not page.rows:
        lines.append('No results returned.')
    else:
        for idx, row in enumerate(page.rows, start=1):
            lines.append(_section('Row', idx))
            for column, value in row:
                lines.append(f'  {column}: {value}')

    if page.next_token:
        lines.append('')
        lines.append(MORE_RESULTS_HINT)
        lines.append(f'  nextToken: {page.next_token}')
        lines.append(f'  queryId:   {page.query_id}  (must match original request)')

    return '\n'.join(lines)


def format_query_submitted(status: QueryStatus, region: str) -> str:
    """Render the acknowledgement for an asynchronously submitted Lake query."""
    return '\n'.join(
        [
            f'Query submitted (region: {region})',
            f'Query ID: {status.query_id}',
            f'Status:   {status.query_status}',
            '',
            'Use get_query_status to poll for completion, then get_query_results to fetch results.',
        ]
    )


def format_query_outcome(outcome: LakeQueryOutcome, region: str) -> str:
    """Render a synchronous Lake query that did not finish successfully."""
    status = outcome.status
    if outcome.timed_out:
        lines = [
            f'Query still in progress with status: {status.query_status} (region: {region})',
            f'Query ID: {status.query_id}',
            '',
            'Use get_query_status to poll for completion, then get_query_results to fetch results.',
        ]
    else:
        lines = [
            f'Query completed with status: {status.query_status} (region: {region})',
            f'Query ID: {status.query_id}',
        ]
        if status.error_message:
            lines.append(f'Error: {status.error_message}')
    return '\n'.join(lines)


def format_event_data_stores(
    stores: List[EventDataStore], region: str, include_details: bool = True
) -> str:
    """Render the event data stores of a region.

    Per-store configuration lines are only emitted when ``include_details`` is set.
    """
    lines = [
        f'CloudTrail Lake Event Data Stores (region: {region})',
        f'Found: {len(stores)} store(s)',
        '',
    ]

    if not stores:
        lines.append(
            'No Event Data Stores found in this region. '
            'CloudTrail Lake must be enabled and configured.'
        )
        return '\n'.join(lines)

    for idx, store in enumerate(stores, start=1):
        lines.append(_section('Store', idx))
        lines.append(f'Name:    {store.name or "Unknown"}')
        lines.append(f'ARN:     {store.event_data_store_arn or "Unknown"}')
        lines.append(f'Status:  {store.status or "Unknown"}')
        if store.retention_period is not None:
            lines.append(f'Retention: {store.retention_period} days')
        if store.created_timestamp:
            lines.append(f'Created: {format_timestamp(store.created_timestamp)}')

        if include_details:
            if store.details_unavailable:
                lines.append('(Unable to retrieve detailed configuration)')
            else:
                if store.multi_region_enabled is not None:
                    lines.append(f'Multi-region: {str(store.multi_region_enabled).lower()}')
                if store.organization_enabled is not None:
                    lines.append(f'Org-enabled:  {str(store.organization_enabled).lower()}')
                if store.selector_count:
                    lines.append(f'Event selectors: {store.selector_count}')

        lines.append('')

    lines.append(
        'Tip: Use the EventDataStoreArn (without the full ARN prefix) as the FROM clause ID '
        'in lake_query SQL statements.'
    )

    return '\n'.join(lines)
