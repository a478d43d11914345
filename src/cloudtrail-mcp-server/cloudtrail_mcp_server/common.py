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


"""Shared helpers and exceptions for the CloudTrail MCP server."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


# Fixed, calendar-naive unit lengths for relative time expressions
RELATIVE_TIME_UNITS = {
    'second': timedelta(seconds=1),
    'minute': timedelta(minutes=1),
    'hour': timedelta(hours=1),
    'day': timedelta(days=1),
    'week': timedelta(days=7),
    'month': timedelta(days=30),
}

_RELATIVE_TIME_PATTERN = re.compile(
    r'^(\d+)\s+(second|minute|hour|day|week|month)s?\s+ago$', re.IGNORECASE
)


class CloudTrailMcpError(Exception):
    """Base class for errors reported back to the calling agent as text."""


class ParameterValidationError(CloudTrailMcpError):
    """Tool arguments are malformed or missing required context."""


class TimeFormatError(ParameterValidationError):
    """A time expression could not be parsed."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f'Invalid time format: "{value}". Use ISO format (e.g. "2025-01-01T00:00:00Z"), '
            f'Unix seconds, "now", or relative (e.g. "1 day ago", "2 hours ago"). '
            f'Relative units: second, minute, hour, day, week, month.'
        )


class SubmissionError(CloudTrailMcpError):
    """CloudTrail Lake rejected a query or could not be reached."""


def remove_null_values(d: Dict) -> Dict:
    """Return a copy of the dictionary without keys whose value is None."""
    return {k: v for k, v in d.items() if v is not None}


def validate_max_results(value: Optional[int], default: int, max_allowed: int) -> int:
    """Clamp a requested page size into [1, max_allowed].

    Out-of-range values are normalized rather than rejected.
    """
    if value is None:
        return default
    return max(1, min(max_allowed, value))


def parse_time_input(value: str, now: Optional[datetime] = None) -> datetime:
    """Convert a relative or absolute time expression into an aware UTC datetime.

    Accepted forms:
        - ``now`` (case-insensitive, surrounding whitespace ignored)
        - ``<n> <unit>[s] ago`` with unit in second, minute, hour, day, week, month
        - ISO 8601 (``2025-01-01T00:00:00Z``, ``2025-01-01 00:00:00``, ``2025-01-01``)
        - Unix timestamp in seconds

    Naive absolute values are taken to be UTC.

    Args:
        value: The time expression
        now: Reference instant for ``now`` and relative forms; defaults to the current time

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        TimeFormatError: If the expression matches none of the accepted forms
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    trimmed = value.strip() if isinstance(value, str) else ''
    if not trimmed:
        raise TimeFormatError(str(value))

    if trimmed.lower() == 'now':
        return now

    match = _RELATIVE_TIME_PATTERN.match(trimmed)
    if match:
        amount = int(match.group(1))
        unit = match.group(2).lower()
        try:
            return now - amount * RELATIVE_TIME_UNITS[unit]
        except (OverflowError, ValueError):
            raise TimeFormatError(value)

    if re.fullmatch(r'\d+(\.\d+)?', trimmed):
        try:
            return datetime.fromtimestamp(float(trimmed), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise TimeFormatError(value)

    iso_value = trimmed[:-1] + '+00:00' if trimmed[-1] in 'zZ' else trimmed
    try:
        parsed = datetime.fromisoformat(iso_value)
    except ValueError:
        raise TimeFormatError(value)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: Any) -> Optional[str]:
    """Render a datetime returned by boto3 as an ISO 8601 UTC string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')
    return str(value)
