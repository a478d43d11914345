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


"""Page fetching for LookupEvents and CloudTrail Lake query results.

Continuation tokens are passed through to CloudTrail untouched. CloudTrail only
honours a token together with the parameters of the request that issued it
(the time range for LookupEvents, the query id for Lake results); callers must
resupply those unchanged. This module does not verify that they did.
"""

import asyncio
from cloudtrail_mcp_server.common import (
    ParameterValidationError,
    parse_time_input,
    remove_null_values,
    validate_max_results,
)
from cloudtrail_mcp_server.models import (
    MAX_PAGE_SIZE,
    CloudTrailEvent,
    EventsPage,
    LookupEventsRequest,
    LookupQueryParams,
    QueryStatus,
    ResultPage,
)
from datetime import datetime
from loguru import logger
from typing import Any, Dict, List, Optional, Tuple


DEFAULT_EVENTS_PAGE_SIZE = 10
DEFAULT_RESULTS_PAGE_SIZE = 50
DEFAULT_LOOKUP_START = '1 day ago'
DEFAULT_LOOKUP_END = 'now'


def rows_from_query_result_rows(
    raw_rows: Optional[List[List[Dict[str, Any]]]],
) -> List[List[Tuple[str, str]]]:
    """Flatten CloudTrail Lake rows into ordered (column, value) pairs.

    CloudTrail returns each row as a list of single-entry ``{column: value}`` dicts.
    Column order is preserved and repeated column names (``SELECT a, a``) each keep their cell.
    """
    rows = []
    for raw_row in raw_rows or []:
        row: List[Tuple[str, str]] = []
        for cell in raw_row:
            for column, value in cell.items():
                row.append((column, '' if value is None else str(value)))
        rows.append(row)
    return rows


async def fetch_events_page(
    cloudtrail_client,
    request: LookupEventsRequest,
    region: str,
    now: Optional[datetime] = None,
) -> EventsPage:
    """Fetch one page of CloudTrail event history.

    Without a continuation token the time range defaults to the last day. With a
    token, the caller-supplied range is used as-is.

    Raises:
        ParameterValidationError: If a continuation token arrives without both time bounds
        TimeFormatError: If either bound cannot be parsed (before any API call)
    """
    if request.next_token and not (request.start_time and request.end_time):
        # A token is only valid with the exact time range it was issued for
        raise ParameterValidationError(
            'Both start_time and end_time are required when using pagination (next_token). '
            'Use the exact startTime and endTime from the previous response.'
        )

    start_time = request.start_time or DEFAULT_LOOKUP_START
    end_time = request.end_time or DEFAULT_LOOKUP_END

    start_dt = parse_time_input(start_time, now=now)
    end_dt = parse_time_input(end_time, now=now)
    max_results = validate_max_results(
        request.max_results, default=DEFAULT_EVENTS_PAGE_SIZE, max_allowed=MAX_PAGE_SIZE
    )

    lookup_params = {
        'StartTime': start_dt,
        'EndTime': end_dt,
        'MaxResults': max_results,
        'LookupAttributes': request.lookup_attributes,
        'NextToken': request.next_token,
    }

    logger.info(
        f'Looking up CloudTrail events in {region}: {start_dt.isoformat()} -> {end_dt.isoformat()}, '
        f'max_results={max_results}, paginated={bool(request.next_token)}'
    )
    response = await asyncio.to_thread(
        cloudtrail_client.lookup_events, **remove_null_values(lookup_params)
    )

    events = [CloudTrailEvent.model_validate(e) for e in response.get('Events', [])]
    logger.info(f'Retrieved {len(events)} CloudTrail events from region {region}')

    return EventsPage(
        events=events,
        next_token=response.get('NextToken'),
        query_params=LookupQueryParams(
            start_time=start_dt,
            end_time=end_dt,
            attribute_key=request.attribute_key,
            attribute_value=request.attribute_value,
            max_results=max_results,
            region=region,
        ),
    )


async def fetch_results_page(
    cloudtrail_client,
    query_id: str,
    max_results: Optional[int] = None,
    next_token: Optional[str] = None,
) -> ResultPage:
    """Fetch one page of rows for a Lake query, together with its current status."""
    max_results = validate_max_results(
        max_results, default=DEFAULT_RESULTS_PAGE_SIZE, max_allowed=MAX_PAGE_SIZE
    )
    results_params = {
        'QueryId': query_id,
        'MaxQueryResults': max_results,
        'NextToken': next_token,
    }

    results_response, status_response = await asyncio.gather(
        asyncio.to_thread(
            cloudtrail_client.get_query_results, **remove_null_values(results_params)
        ),
        asyncio.to_thread(cloudtrail_client.describe_query, QueryId=query_id),
    )

    status = QueryStatus.from_describe_query(query_id, status_response)
    rows = rows_from_query_result_rows(results_response.get('QueryResultRows'))
    logger.info(f'Retrieved {len(rows)} rows for query {query_id} (status {status.query_status})')

    return ResultPage(
        query_id=query_id,
        query_status=status.query_status,
        query_statistics=status.query_statistics,
        rows=rows,
        next_token=results_response.get('NextToken'),
        error_message=status.error_message,
    )
