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


"""CloudTrail Lake tools for MCP server."""

from cloudtrail_mcp_server.base_tools import REPORTABLE_ERRORS, CloudTrailToolsBase
from cloudtrail_mcp_server.cloudtrail_lake.event_data_stores import list_event_data_stores
from cloudtrail_mcp_server.cloudtrail_lake.lifecycle import (
    MAX_POLL_SECONDS,
    POLL_INTERVAL_SECONDS,
    QueryLifecycleManager,
)
from cloudtrail_mcp_server.config import CloudTrailConfig
from cloudtrail_mcp_server.formatters import (
    format_event_data_stores,
    format_query_outcome,
    format_query_results,
    format_query_status,
    format_query_submitted,
)
from cloudtrail_mcp_server.pagination import fetch_results_page
from fastmcp import Context
from loguru import logger
from pydantic import Field
from typing import Annotated, Optional


class CloudTrailLakeTools(CloudTrailToolsBase):
    """CloudTrail Lake tools for MCP server."""

    def __init__(
        self,
        config: Optional[CloudTrailConfig] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_wait: float = MAX_POLL_SECONDS,
    ):
        """Initialize the CloudTrail Lake tools.

        Args:
            config: Server configuration
            poll_interval: Seconds between status checks while waiting for a query
            max_wait: Seconds to wait for a query before returning its last status
        """
        super().__init__(config)
        self.poll_interval = poll_interval
        self.max_wait = max_wait

    def _lifecycle(self, cloudtrail_client) -> QueryLifecycleManager:
        return QueryLifecycleManager(
            cloudtrail_client, poll_interval=self.poll_interval, max_wait=self.max_wait
        )

    def register(self, mcp):
        """Register all CloudTrail Lake tools with the MCP server."""
        mcp.tool(name='lake_query')(self.lake_query)

        mcp.tool(name='get_query_status')(self.get_query_status)

        mcp.tool(name='get_query_results')(self.get_query_results)

        mcp.tool(name='list_event_data_stores')(self.list_event_data_stores)

    async def lake_query(
        self,
        ctx: Context,
        sql: Annotated[
            str,
            Field(
                description=(
                    'SQL SELECT statement to execute against CloudTrail Lake using Trino-compatible syntax. '
                    'Must reference a valid Event Data Store (EDS) ID in the FROM clause. '
                    'Use list_event_data_stores to get available EDS IDs first. '
                    "Example: SELECT eventname, sourceipaddress FROM <eds-id> WHERE eventtime > '2025-01-01 00:00:00' LIMIT 10"
                )
            ),
        ],
        wait_for_completion: Annotated[
            bool,
            Field(
                description=(
                    'Wait for the query to finish and return results (default: true). '
                    'Set to false to submit asynchronously and poll with get_query_status.'
                )
            ),
        ] = True,
        region: Annotated[
            Optional[str],
            Field(description='AWS region to query. Defaults to AWS_DEFAULT_REGION or us-east-1.'),
        ] = None,
        break_token_rule: Annotated[
            bool,
            Field(description='Set to true to bypass token limits in critical situations.'),
        ] = False,
    ) -> str:
        """Execute a SQL query against CloudTrail Lake for analytics beyond the 90-day LookupEvents window.

        IMPORTANT LIMITATIONS:
        - CloudTrail Lake only supports SELECT statements using Trino-compatible SQL syntax
        - The FROM clause must name a valid Event Data Store ID (see list_event_data_stores)

        With wait_for_completion (the default) the query is polled every 2 seconds for up to
        5 minutes. A finished query returns its first page of rows; a failed, cancelled or timed out
        query returns its status and error message. A query still running after the wait returns
        its query id so it can be followed with get_query_status.

        Returns:
        --------
        Text with the first page of results, the final status, or a submission acknowledgement.
        """
        try:
            region = self._resolve_region(region)
            cloudtrail_client = self._get_cloudtrail_client(region)
            lifecycle = self._lifecycle(cloudtrail_client)

            logger.info(f'Starting CloudTrail Lake query in region {region}')
            logger.debug(f'SQL: {sql}')
            query_id = await lifecycle.submit(sql)

            if not wait_for_completion:
                status = await lifecycle.run_async(query_id)
                text = format_query_submitted(status, region)
            else:
                outcome = await lifecycle.run_sync(query_id)
                if outcome.page is not None:
                    text = format_query_results(outcome.page, region)
                else:
                    if outcome.timed_out:
                        await ctx.warning(
                            f'Query {query_id} did not complete within {lifecycle.max_wait} seconds. '
                            f'Use get_query_status with the returned queryId to follow it.'
                        )
                    text = format_query_outcome(outcome, region)
        except REPORTABLE_ERRORS as e:
            text = await self._report_failure(ctx, 'lake_query', e)
        except Exception as e:
            logger.error(f'Error in lake_query: {str(e)}')
            raise

        return self._enforce_token_limit(text, break_token_rule)

    async def get_query_status(
        self,
        ctx: Context,
        query_id: Annotated[
            str, Field(description='The CloudTrail Lake query ID returned by lake_query.')
        ],
        region: Annotated[
            Optional[str],
            Field(
                description='AWS region where the query was submitted. Defaults to AWS_DEFAULT_REGION or us-east-1.'
            ),
        ] = None,
        break_token_rule: Annotated[
            bool,
            Field(description='Set to true to bypass token limits in critical situations.'),
        ] = False,
    ) -> str:
        """Check the execution status of a CloudTrail Lake query.

        Status is one of QUEUED, RUNNING, FINISHED, FAILED, CANCELLED or TIMED_OUT.

        Usage: Use after submitting an asynchronous lake_query, or after a synchronous one ran out of
        wait time, to find out when results are ready.

        Returns:
        --------
        Text with the status, execution statistics, any error message and result delivery location.
        """
        try:
            region = self._resolve_region(region)
            cloudtrail_client = self._get_cloudtrail_client(region)

            logger.info(f'Checking status for query {query_id} in region {region}')
            status = await self._lifecycle(cloudtrail_client).run_async(query_id)
            text = format_query_status(status, region)
        except REPORTABLE_ERRORS as e:
            text = await self._report_failure(ctx, 'get_query_status', e)
        except Exception as e:
            logger.error(f'Error in get_query_status: {str(e)}')
            raise

        return self._enforce_token_limit(text, break_token_rule)

    async def get_query_results(
        self,
        ctx: Context,
        query_id: Annotated[
            str,
            Field(
                description='The CloudTrail Lake query ID to retrieve results for (status must be FINISHED).'
            ),
        ],
        max_results: Annotated[
            Optional[int],
            Field(ge=1, le=50, description='Maximum rows to return per page (1-50, default: 50).'),
        ] = None,
        next_token: Annotated[
            Optional[str],
            Field(
                description=(
                    'Pagination token from a previous get_query_results response. '
                    'Must be used with the same query_id that produced it.'
                )
            ),
        ] = None,
        region: Annotated[
            Optional[str],
            Field(
                description='AWS region where the query was submitted. Defaults to AWS_DEFAULT_REGION or us-east-1.'
            ),
        ] = None,
        break_token_rule: Annotated[
            bool,
            Field(description='Set to true to bypass token limits in critical situations.'),
        ] = False,
    ) -> str:
        """Retrieve one page of results of a completed CloudTrail Lake query.

        Usage: Fetch successive pages by passing the nextToken from each response together with the
        same query_id.

        Returns:
        --------
        Text with the rows of this page, query statistics and a pagination hint when more rows exist.
        """
        try:
            region = self._resolve_region(region)
            cloudtrail_client = self._get_cloudtrail_client(region)

            page = await fetch_results_page(cloudtrail_client, query_id, max_results, next_token)
            text = format_query_results(page, region)
        except REPORTABLE_ERRORS as e:
            text = await self._report_failure(ctx, 'get_query_results', e)
        except Exception as e:
            logger.error(f'Error in get_query_results: {str(e)}')
            raise

        return self._enforce_token_limit(text, break_token_rule)

    async def list_event_data_stores(
        self,
        ctx: Context,
        include_details: Annotated[
            bool,
            Field(
                description='Include multi-region, organization and event selector configuration per store (default: true).'
            ),
        ] = True,
        region: Annotated[
            Optional[str],
            Field(description='AWS region to query. Defaults to AWS_DEFAULT_REGION or us-east-1.'),
        ] = None,
        break_token_rule: Annotated[
            bool,
            Field(description='Set to true to bypass token limits in critical situations.'),
        ] = False,
    ) -> str:
        """List CloudTrail Lake Event Data Stores with their ARNs, status and retention period.

        Usage: Run this first to get the Event Data Store ID required in the FROM clause of
        lake_query SQL statements.

        Returns:
        --------
        Text describing each event data store in the region.
        """
        try:
            region = self._resolve_region(region)
            cloudtrail_client = self._get_cloudtrail_client(region)

            logger.info(f'Listing CloudTrail Lake Event Data Stores in region {region}')
            stores = await list_event_data_stores(cloudtrail_client, include_details)
            text = format_event_data_stores(stores, region, include_details)
        except REPORTABLE_ERRORS as e:
            text = await self._report_failure(ctx, 'list_event_data_stores', e)
        except Exception as e:
            logger.error(f'Error in list_event_data_stores: {str(e)}')
            raise

        return self._enforce_token_limit(text, break_token_rule)
