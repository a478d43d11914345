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


"""Environment-driven configuration for the CloudTrail MCP server.

Environment variables:
- AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_SESSION_TOKEN: explicit credentials
- AWS_PROFILE: named profile, used when explicit credentials are absent
- AWS_DEFAULT_REGION (or AWS_REGION): default region (default: us-east-1)
- AWS_TIMEOUT: request timeout in milliseconds (default: 30000)
- MAX_TOKEN_CALL: token ceiling for a single tool response (default: 20000)
- MCP_TRANSPORT: "stdio" or "http" (default: stdio)
- MCP_HTTP_HOST / MCP_HTTP_PORT: bind address for the http transport (default: localhost:3000)
- CLOUDTRAIL_MCP_LOG_LEVEL: log level (default: INFO)
"""

import os
from loguru import logger
from pydantic import BaseModel, Field
from typing import Literal, Mapping, Optional


DEFAULT_REGION = 'us-east-1'
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_TOKEN_CALL = 20000
DEFAULT_HTTP_HOST = 'localhost'
DEFAULT_HTTP_PORT = 3000


class ConfigurationError(Exception):
    """Startup configuration is invalid."""


class CloudTrailConfig(BaseModel):
    """Resolved server configuration."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token: Optional[str] = None
    profile: Optional[str] = None
    region: Optional[str] = None
    timeout_ms: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    max_token_call: int = Field(default=DEFAULT_MAX_TOKEN_CALL, gt=0)
    transport: Literal['stdio', 'http'] = 'stdio'
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT
    log_level: str = 'INFO'

    @property
    def has_explicit_credentials(self) -> bool:
        """Explicit keys are only used when both halves are present."""
        return bool(self.access_key_id and self.secret_access_key)

    def resolve_region(self, region: Optional[str] = None) -> str:
        """Pick the region for a call: argument, then configured default, then us-east-1."""
        return region or self.region or DEFAULT_REGION


def _parse_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f'{name} must be an integer, got {raw!r}')


def _parse_port(raw: Optional[str]) -> int:
    if raw is None or raw.strip() == '':
        return DEFAULT_HTTP_PORT
    try:
        return int(raw)
    except ValueError:
        # Container runtimes sometimes inject PORT=tcp://10.0.0.1:3000
        if raw.startswith('tcp://') and ':' in raw[len('tcp://') :]:
            port = int(raw.rsplit(':', 1)[-1])
            logger.warning('Normalized MCP_HTTP_PORT {} to {}', raw, port)
            return port
        logger.warning('Invalid MCP_HTTP_PORT {}, defaulting to {}', raw, DEFAULT_HTTP_PORT)
        return DEFAULT_HTTP_PORT


def load_config(env: Optional[Mapping[str, str]] = None) -> CloudTrailConfig:
    """Build the server configuration from environment variables.

    Raises:
        ConfigurationError: If a value cannot be interpreted
    """
    if env is None:
        env = os.environ

    transport = env.get('MCP_TRANSPORT', 'stdio').strip().lower() or 'stdio'
    if transport not in ('stdio', 'http'):
        raise ConfigurationError(f"MCP_TRANSPORT must be 'stdio' or 'http', got {transport!r}")

    try:
        return CloudTrailConfig(
            access_key_id=env.get('AWS_ACCESS_KEY_ID') or None,
            secret_access_key=env.get('AWS_SECRET_ACCESS_KEY') or None,
            session_token=env.get('AWS_SESSION_TOKEN') or None,
            profile=env.get('AWS_PROFILE') or None,
            region=env.get('AWS_DEFAULT_REGION') or env.get('AWS_REGION') or None,
            timeout_ms=_parse_int(env, 'AWS_TIMEOUT', DEFAULT_TIMEOUT_MS),
            max_token_call=_parse_int(env, 'MAX_TOKEN_CALL', DEFAULT_MAX_TOKEN_CALL),
            transport=transport,
            http_host=env.get('MCP_HTTP_HOST') or DEFAULT_HTTP_HOST,
            http_port=_parse_port(env.get('MCP_HTTP_PORT')),
            log_level=(env.get('CLOUDTRAIL_MCP_LOG_LEVEL') or 'INFO').upper(),
        )
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise ConfigurationError(str(e))
