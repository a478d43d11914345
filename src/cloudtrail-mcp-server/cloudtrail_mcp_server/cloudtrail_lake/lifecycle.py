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


"""Submission and polling of CloudTrail Lake queries.

A submitted query moves through QUEUED/RUNNING to one of the terminal states
FINISHED, FAILED, CANCELLED or TIMED_OUT. Only CloudTrail changes that state;
polling here is read-only, so an abandoned poll leaves the query running.
"""

import asyncio
from botocore.exceptions import BotoCoreError, ClientError
from cloudtrail_mcp_server.common import SubmissionError
from cloudtrail_mcp_server.models import LakeQueryOutcome, QueryStatus
from cloudtrail_mcp_server.pagination import DEFAULT_RESULTS_PAGE_SIZE, fetch_results_page
from loguru import logger
from typing import Awaitable, Callable, Optional


POLL_INTERVAL_SECONDS = 2.0
MAX_POLL_SECONDS = 300.0


class QueryLifecycleManager:
    """Drives a Lake query from submission to its first page of results."""

    def __init__(
        self,
        cloudtrail_client,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_wait: float = MAX_POLL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the manager.

        Args:
            cloudtrail_client: boto3 CloudTrail client
            poll_interval: Seconds between status checks
            max_wait: Total seconds to poll before handing back a non-terminal status
            sleep: Suspension function between polls
        """
        self.cloudtrail_client = cloudtrail_client
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep

    async def submit(self, sql: str) -> str:
        """Start a Lake query and return its id.

        Raises:
            SubmissionError: If CloudTrail rejects the statement or cannot be reached
        """
        try:
            response = await asyncio.to_thread(
                self.cloudtrail_client.start_query, QueryStatement=sql
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f'CloudTrail Lake rejected query submission: {str(e)}')
            raise SubmissionError(f'Failed to start CloudTrail Lake query: {str(e)}') from e

        query_id = response.get('QueryId')
        if not query_id:
            raise SubmissionError('CloudTrail Lake did not return a query id')

        logger.info(f'Started CloudTrail Lake query with ID: {query_id}')
        return query_id

    async def run_async(self, query_id: str) -> QueryStatus:
        """Return the current status of a query without waiting."""
        response = await asyncio.to_thread(self.cloudtrail_client.describe_query, QueryId=query_id)
        return QueryStatus.from_describe_query(query_id, response)

    async def run_sync(
        self,
        query_id: str,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        max_results: int = DEFAULT_RESULTS_PAGE_SIZE,
    ) -> LakeQueryOutcome:
        """Poll a query until it reaches a terminal state or the wait budget is spent.

        A FINISHED query comes back with its first page of results. Any other
        terminal state, or a query still running after ``max_wait``, comes back
        as a status only; neither is treated as an error.
        """
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        max_wait = self.max_wait if max_wait is None else max_wait
        if poll_interval <= 0:
            raise ValueError(f'poll_interval must be positive, got {poll_interval}')

        status = QueryStatus(query_id=query_id, query_status='RUNNING')
        elapsed = 0.0

        while elapsed < max_wait:
            status = await self.run_async(query_id)
            if status.is_terminal:
                break
            await self._sleep(poll_interval)
            elapsed += poll_interval
        else:
            # One last look so a query finishing during the final sleep is not reported as running
            status = await self.run_async(query_id)

        if status.query_status == 'FINISHED':
            logger.info(f'Query {query_id} finished, fetching first page of results')
            page = await fetch_results_page(self.cloudtrail_client, query_id, max_results)
            return LakeQueryOutcome(status=status, page=page)

        if status.is_terminal:
            logger.info(f'Query {query_id} ended with status {status.query_status}')
            return LakeQueryOutcome(status=status)

        logger.warning(
            f'Query {query_id} did not complete within {max_wait} seconds '
            f'(last status {status.query_status})'
        )
        return LakeQueryOutcome(status=status, timed_out=True)
