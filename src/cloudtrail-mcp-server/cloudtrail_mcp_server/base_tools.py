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


"""Behaviour shared by all CloudTrail tool groups."""

from botocore.exceptions import BotoCoreError, ClientError
from cloudtrail_mcp_server.aws_clients import get_cloudtrail_client
from cloudtrail_mcp_server.common import CloudTrailMcpError
from cloudtrail_mcp_server.config import CloudTrailConfig
from cloudtrail_mcp_server.token_limiter import check_token_limit
from fastmcp import Context
from loguru import logger
from pydantic import ValidationError
from typing import Optional


# Failures reported to the agent as text rather than raised as tool errors
REPORTABLE_ERRORS = (CloudTrailMcpError, ValidationError, ClientError, BotoCoreError)


class CloudTrailToolsBase:
    """Client creation, failure reporting and token budget gating for tool groups."""

    def __init__(self, config: Optional[CloudTrailConfig] = None):
        """Initialize the tools with the server configuration."""
        self.config = config or CloudTrailConfig()

    def _resolve_region(self, region: Optional[str]) -> str:
        return self.config.resolve_region(region)

    def _get_cloudtrail_client(self, region: str):
        return get_cloudtrail_client(self.config, region)

    async def _report_failure(self, ctx: Context, tool_name: str, error: Exception) -> str:
        """Log a reportable failure and turn it into response text."""
        if isinstance(error, ValidationError):
            details = '; '.join(err['msg'] for err in error.errors())
            message = f'Invalid arguments for {tool_name}: {details}'
        else:
            message = str(error)

        logger.error(f'Error in {tool_name}: {message}')
        await ctx.error(f'Error in {tool_name}: {message}')
        return f'Error: {message}'

    def _enforce_token_limit(self, text: str, break_token_rule: bool) -> str:
        """Return the text if it fits the token budget, otherwise the limit explanation."""
        check = check_token_limit(text, self.config.max_token_call, break_token_rule)
        if not check.allowed:
            logger.warning(
                f'Response withheld: {check.tokens} tokens exceeds limit of {self.config.max_token_call}'
            )
            return check.error or 'Token limit exceeded.'
        return text
