"""AWS CloudTrail MCP Server - server bootstrap."""

import sys
from cloudtrail_mcp_server import MCP_SERVER_VERSION
from cloudtrail_mcp_server.cloudtrail_events.tools import CloudTrailEventsTools
from cloudtrail_mcp_server.cloudtrail_lake.tools import CloudTrailLakeTools
from cloudtrail_mcp_server.config import CloudTrailConfig, ConfigurationError, load_config
from fastmcp import FastMCP
from loguru import logger
from starlette.requests import Request
from starlette.responses import JSONResponse


SERVER_NAME = 'cloudtrail-mcp-server'
SERVER_INSTRUCTIONS = (
    'Use this MCP server to run read-only queries against AWS CloudTrail. Supports looking up '
    'management events from the last 90 days with lookup_events, running Trino-compatible SQL '
    'against CloudTrail Lake with lake_query, following long-running Lake queries with '
    'get_query_status and get_query_results, and discovering Event Data Stores with '
    'list_event_data_stores. Responses are bounded by a token budget; narrow the request or set '
    'break_token_rule when a response is withheld.'
)


def configure_logging(level: str) -> None:
    """Send logs to stderr; stdout carries the stdio transport."""
    logger.remove()
    logger.add(sys.stderr, level=level)


def create_server(config: CloudTrailConfig) -> FastMCP:
    """Create the MCP server and register all CloudTrail tools."""
    mcp = FastMCP(SERVER_NAME, instructions=SERVER_INSTRUCTIONS)

    try:
        events_tools = CloudTrailEventsTools(config)
        events_tools.register(mcp)
        logger.info('CloudTrail event history tools registered successfully')
        lake_tools = CloudTrailLakeTools(config)
        lake_tools.register(mcp)
        logger.info('CloudTrail Lake tools registered successfully')
    except Exception as e:
        logger.error(f'Error initializing CloudTrail tools: {str(e)}')
        raise

    # Health check endpoint for container/monitoring probes (http transport only)
    @mcp.custom_route('/health', methods=['GET'], include_in_schema=False)
    async def health_check(request: Request) -> JSONResponse:
        """Health check endpoint."""
        return JSONResponse({'status': 'ok', 'transport': 'streamable-http'})

    return mcp


def main():
    """Run the MCP server."""
    try:
        config = load_config()
    except ConfigurationError as e:
        configure_logging('INFO')
        logger.error(f'Invalid configuration: {str(e)}')
        sys.exit(1)

    configure_logging(config.log_level)
    logger.info(f'Initializing CloudTrail MCP server {MCP_SERVER_VERSION}...')
    logger.info(
        f'AWS_PROFILE={config.profile}  region={config.resolve_region()}  '
        f'max_token_call={config.max_token_call}'
    )

    try:
        mcp = create_server(config)
    except Exception as e:
        logger.error(f'Fatal error: {str(e)}')
        sys.exit(1)

    if config.transport == 'http':
        logger.info(
            f'Starting CloudTrail MCP server in HTTP mode on {config.http_host}:{config.http_port}'
        )
        mcp.run(transport='streamable-http', host=config.http_host, port=config.http_port)
    else:
        logger.info('Starting CloudTrail MCP server in stdio mode')
        mcp.run(transport='stdio')

    logger.info('CloudTrail MCP server stopped')


if __name__ == '__main__':
    main()
