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


"""Data models for CloudTrail events, Lake queries and event data stores."""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional, Tuple


LookupAttributeKey = Literal[
    'EventId',
    'EventName',
    'ReadOnly',
    'Username',
    'ResourceType',
    'ResourceName',
    'EventSource',
    'AccessKeyId',
]

TERMINAL_QUERY_STATUSES = frozenset({'FINISHED', 'FAILED', 'CANCELLED', 'TIMED_OUT'})

MAX_PAGE_SIZE = 50


class _AwsModel(BaseModel):
    """Model populated from PascalCase CloudTrail API responses."""

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class EventResource(_AwsModel):
    """A resource referenced by a CloudTrail event."""

    resource_type: Optional[str] = Field(default=None, alias='ResourceType')
    resource_name: Optional[str] = Field(default=None, alias='ResourceName')


class CloudTrailEvent(_AwsModel):
    """A management event returned by LookupEvents."""

    event_id: Optional[str] = Field(default=None, alias='EventId')
    event_name: Optional[str] = Field(default=None, alias='EventName')
    read_only: Optional[str] = Field(default=None, alias='ReadOnly')
    access_key_id: Optional[str] = Field(default=None, alias='AccessKeyId')
    event_time: Optional[datetime] = Field(default=None, alias='EventTime')
    event_source: Optional[str] = Field(default=None, alias='EventSource')
    username: Optional[str] = Field(default=None, alias='Username')
    resources: List[EventResource] = Field(default_factory=list, alias='Resources')
    cloudtrail_event: Optional[str] = Field(default=None, alias='CloudTrailEvent')


class LookupEventsRequest(BaseModel):
    """Validated arguments for an event history lookup."""

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    attribute_key: Optional[LookupAttributeKey] = None
    attribute_value: Optional[str] = None
    max_results: Optional[int] = None
    next_token: Optional[str] = None
    region: Optional[str] = None

    @property
    def lookup_attributes(self) -> Optional[List[Dict[str, str]]]:
        """LookupAttributes payload; only sent when both key and value are present."""
        if self.attribute_key and self.attribute_value:
            return [{'AttributeKey': self.attribute_key, 'AttributeValue': self.attribute_value}]
        return None


class LookupQueryParams(BaseModel):
    """Query-defining parameters a caller must resupply with a continuation token."""

    start_time: datetime
    end_time: datetime
    attribute_key: Optional[str] = None
    attribute_value: Optional[str] = None
    max_results: int
    region: str


class EventsPage(BaseModel):
    """One page of LookupEvents results."""

    events: List[CloudTrailEvent] = Field(default_factory=list)
    next_token: Optional[str] = None
    query_params: LookupQueryParams


class QueryStatistics(_AwsModel):
    """Execution statistics for a CloudTrail Lake query."""

    events_matched: Optional[int] = Field(default=None, alias='EventsMatched')
    events_scanned: Optional[int] = Field(default=None, alias='EventsScanned')
    bytes_scanned: Optional[int] = Field(default=None, alias='BytesScanned')
    execution_time_in_millis: Optional[int] = Field(default=None, alias='ExecutionTimeInMillis')
    creation_time: Optional[datetime] = Field(default=None, alias='CreationTime')


class QueryStatus(BaseModel):
    """Observed state of a CloudTrail Lake query."""

    query_id: str
    query_status: str = 'UNKNOWN'
    query_statistics: Optional[QueryStatistics] = None
    error_message: Optional[str] = None
    delivery_s3_uri: Optional[str] = None
    delivery_status: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        """Whether the backing service will no longer change this query's status."""
        return self.query_status in TERMINAL_QUERY_STATUSES

    @classmethod
    def from_describe_query(cls, query_id: str, response: Dict[str, Any]) -> 'QueryStatus':
        """Build from a DescribeQuery response."""
        statistics = response.get('QueryStatistics')
        return cls(
            query_id=query_id,
            query_status=response.get('QueryStatus') or 'UNKNOWN',
            query_statistics=QueryStatistics.model_validate(statistics) if statistics else None,
            error_message=response.get('ErrorMessage'),
            delivery_s3_uri=response.get('DeliveryS3Uri'),
            delivery_status=response.get('DeliveryStatus'),
        )


class ResultPage(BaseModel):
    """One page of CloudTrail Lake query result rows."""

    query_id: str
    query_status: str = 'UNKNOWN'
    query_statistics: Optional[QueryStatistics] = None
    rows: List[List[Tuple[str, str]]] = Field(default_factory=list)
    next_token: Optional[str] = None
    error_message: Optional[str] = None


class LakeQueryOutcome(BaseModel):
    """Result of running a Lake query to completion (or until the wait budget ran out)."""

    status: QueryStatus
    page: Optional[ResultPage] = None
    timed_out: bool = False


class EventDataStore(_AwsModel):
    """A CloudTrail Lake event data store, optionally enriched with its configuration."""

    event_data_store_arn: Optional[str] = Field(default=None, alias='EventDataStoreArn')
    name: Optional[str] = Field(default=None, alias='Name')
    status: Optional[str] = Field(default=None, alias='Status')
    retention_period: Optional[int] = Field(default=None, alias='RetentionPeriod')
    created_timestamp: Optional[datetime] = Field(default=None, alias='CreatedTimestamp')
    updated_timestamp: Optional[datetime] = Field(default=None, alias='UpdatedTimestamp')
    termination_protection_enabled: Optional[bool] = Field(
        default=None, alias='TerminationProtectionEnabled'
    )
    multi_region_enabled: Optional[bool] = Field(default=None, alias='MultiRegionEnabled')
    organization_enabled: Optional[bool] = Field(default=None, alias='OrganizationEnabled')
    selector_count: Optional[int] = None
    details_unavailable: bool = False
