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


"""CloudTrail client factory."""

import boto3
from botocore.config import Config
from cloudtrail_mcp_server import MCP_SERVER_VERSION
from cloudtrail_mcp_server.config import CloudTrailConfig
from loguru import logger


def get_cloudtrail_client(config: CloudTrailConfig, region: str):
    """Create a CloudTrail client for the specified region.

    Credentials are resolved in order: explicit keys from the configuration,
    the AWS_PROFILE named profile, then the default boto3 credential chain.

    Args:
        config: Server configuration
        region: AWS region

    Returns:
        CloudTrail client
    """
    timeout_seconds = config.timeout_ms / 1000
    client_config = Config(
        user_agent_extra=f'awslabs/mcp/cloudtrail-mcp-server/{MCP_SERVER_VERSION}',
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
    )

    try:
        if config.has_explicit_credentials:
            session = boto3.Session(
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                aws_session_token=config.session_token,
                region_name=region,
            )
        elif config.profile:
            session = boto3.Session(profile_name=config.profile, region_name=region)
        else:
            session = boto3.Session(region_name=region)
        return session.client('cloudtrail', config=client_config)
    except Exception as e:
        logger.error(f'Error creating CloudTrail client for region {region}: {str(e)}')
        raise
