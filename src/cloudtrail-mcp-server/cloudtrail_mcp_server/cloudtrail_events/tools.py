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


"""CloudTrail event history tools for MCP server."""

from cloudtrail_mcp_server.base_tools import REPORTABLE_ERRORS, CloudTrailToolsBase
from cloudtrail_mcp_server.formatters import format_events_page
from cloudtrail_mcp_server.models import LookupAttributeKey, LookupEventsRequest
from cloudtrail_mcp_server.pagination import fetch_events_page
from fastmcp import Context
from loguru import logger
from pydantic import Field
from typing import Annotated, Optional


class CloudTrailEventsTools(CloudTrailToolsBase):
    """CloudTrail event history tools for MCP server."""

    def register(self, mcp):
        """Register all CloudTrail event history tools with the MCP server."""
        mcp.tool(name='lookup_events')(self.lookup_events)

    async def lookup_events(
        self,
        ctx: Context,
        start_time: Annotated[
            Optional[str],
            Field(
                description=(
                    'Start time for event lookup. Accepts ISO format ("2025-01-01T00:00:00Z") or relative '
                    '("1 day ago", "2 hours ago"). Defaults to "1 day ago". '
                    'IMPORTANT: When paginating (next_token), must match the original request exactly.'
                )
            ),
        ] = None,
        end_time: Annotated[
            Optional[str],
            Field(
                description=(
                    'End time for event lookup. Accepts ISO format or relative ("now"). Defaults to "now". '
                    'IMPORTANT: When paginating (next_token), must match the original request exactly.'
                )
            ),
        ] = None,
        attribute_key: Annotated[
            Optional[LookupAttributeKey],
            Field(description='Attribute to filter by. Only applied together with attribute_value.'),
        ] = None,
        attribute_value: Annotated[
            Optional[str], Field(description='Value to match for the specified attribute_key.')
        ] = None,
        max_results: Annotated[
            Optional[int],
            Field(ge=1, le=50, description='Maximum number of events to return (1-50, default: 10).'),
        ] = None,
        next_token: Annotated[
            Optional[str],
            Field(
                description=(
                    'Pagination token from a previous lookup_events response. '
                    'When provided, start_time and end_time must match the original request.'
                )
            ),
        ] = None,
        region: Annotated[
            Optional[str],
            Field(description='AWS region to query. Defaults to AWS_DEFAULT_REGION or us-east-1.'),
        ] = None,
        break_token_rule: Annotated[
            bool,
            Field(description='Set to true to bypass token limits in critical situations.'),
        ] = False,
    ) -> str:
        """Look up CloudTrail management events from the last 90 days.

        This tool searches event history with the LookupEvents API. Filter by time range and
        at most one attribute (username, event name, access key, resource name/type, event source).

        Usage: Use this tool for security investigations, auditing IAM actions and tracing API calls.
        To page through results, pass the returned nextToken together with the exact startTime and
        endTime echoed in the previous response.

        Returns:
        --------
        Text listing the matching events, with a pagination hint when more pages exist.
        """
        try:
            request = LookupEventsRequest(
                start_time=start_time,
                end_time=end_time,
                attribute_key=attribute_key,
                attribute_value=attribute_value,
                max_results=max_results,
                next_token=next_token,
                region=region,
            )
            region = self._resolve_region(request.region)
            cloudtrail_client = self._get_cloudtrail_client(region)

            page = await fetch_events_page(cloudtrail_client, request, region)
            text = format_events_page(page)
        except REPORTABLE_ERRORS as e:
            text = await self._report_failure(ctx, 'lookup_events', e)
        except Exception as e:
            logger.error(f'Error in lookup_events: {str(e)}')
            raise

        return self._enforce_token_limit(text, break_token_rule)
