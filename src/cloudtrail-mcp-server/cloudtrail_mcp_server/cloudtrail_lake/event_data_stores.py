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


"""Enumeration of CloudTrail Lake event data stores."""

import asyncio
from cloudtrail_mcp_server.common import remove_null_values
from cloudtrail_mcp_server.models import EventDataStore
from loguru import logger
from typing import List


# Configuration fields that only GetEventDataStore reports reliably
_DETAIL_FIELDS = ('MultiRegionEnabled', 'OrganizationEnabled', 'AdvancedEventSelectors')


async def list_event_data_stores(cloudtrail_client, include_details: bool = True) -> List[EventDataStore]:
    """List every event data store in the client's region.

    With ``include_details`` each store is enriched from GetEventDataStore. A
    failed detail call marks that store as ``details_unavailable`` instead of
    failing the listing.
    """
    summaries = []
    next_token = None
    first_iteration = True

    # No paginator for this API
    while first_iteration or next_token:
        first_iteration = False
        response = await asyncio.to_thread(
            cloudtrail_client.list_event_data_stores,
            **remove_null_values({'NextToken': next_token}),
        )
        summaries.extend(response.get('EventDataStores', []))
        next_token = response.get('NextToken')

    logger.info(f'Found {len(summaries)} event data stores')

    stores = []
    for summary in summaries:
        store = EventDataStore.model_validate(
            {k: v for k, v in summary.items() if k not in _DETAIL_FIELDS}
        )
        if include_details and store.event_data_store_arn:
            store = await _with_details(cloudtrail_client, store)
        stores.append(store)

    return stores


async def _with_details(cloudtrail_client, store: EventDataStore) -> EventDataStore:
    try:
        details = await asyncio.to_thread(
            cloudtrail_client.get_event_data_store, EventDataStore=store.event_data_store_arn
        )
    except Exception as e:
        logger.warning(f'Could not get detailed info for store {store.name}: {str(e)}')
        return store.model_copy(update={'details_unavailable': True})

    return store.model_copy(
        update={
            'multi_region_enabled': details.get('MultiRegionEnabled'),
            'organization_enabled': details.get('OrganizationEnabled'),
            'selector_count': len(details.get('AdvancedEventSelectors') or []),
            'retention_period': details.get('RetentionPeriod', store.retention_period),
        }
    )
