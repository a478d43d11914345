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


"""Token budget enforcement for tool responses.

Every tool response is measured with a tokenizer before being returned to the
calling agent. Responses above the configured ceiling are replaced with an
explanation and remediation hints, unless the caller sets ``break_token_rule``.
"""

import json
import math
import threading
import tiktoken
from contextlib import contextmanager
from loguru import logger
from pydantic import BaseModel
from typing import Any, Callable, Iterator, Optional


DEFAULT_TOKENIZER_MODEL = 'gpt-4'
FALLBACK_ENCODING = 'cl100k_base'
BYTES_PER_TOKEN = 4

_encoding_lock = threading.Lock()
_encodings: dict = {}


class TokenCheckResult(BaseModel):
    """Outcome of a token budget check."""

    allowed: bool
    tokens: int
    error: Optional[str] = None


def _load_encoding(model_name: str):
    """Load the tokenizer for a model once per process.

    Returns None when no encoding can be loaded (for example, when the BPE file
    cannot be downloaded); the byte approximation is then used for the life of
    the process so measurements stay comparable.
    """
    with _encoding_lock:
        if model_name in _encodings:
            return _encodings[model_name]
        try:
            encoding = tiktoken.encoding_for_model(model_name)
        except KeyError:
            logger.debug(f'No tiktoken mapping for {model_name}, using {FALLBACK_ENCODING}')
            try:
                encoding = tiktoken.get_encoding(FALLBACK_ENCODING)
            except Exception as e:
                logger.warning(f'tiktoken unavailable ({e}); using byte approximation')
                encoding = None
        except Exception as e:
            logger.warning(f'tiktoken unavailable ({e}); using byte approximation')
            encoding = None
        _encodings[model_name] = encoding
        return encoding


def _approximate_tokens(text: str) -> int:
    return math.ceil(len(text.encode('utf-8')) / BYTES_PER_TOKEN)


@contextmanager
def token_counter(model_name: str = DEFAULT_TOKENIZER_MODEL) -> Iterator[Callable[[str], int]]:
    """Acquire the shared tokenizer for the duration of a measurement.

    Usage:
        with token_counter() as count:
            tokens = count(text)

    The yielded counter must not be kept beyond the ``with`` block.
    """
    encoding = _load_encoding(model_name)
    if encoding is None:
        yield _approximate_tokens
        return

    def count(text: str) -> int:
        return len(encoding.encode(text, disallowed_special=()))

    yield count


def calculate_tokens(text: str, model_name: str = DEFAULT_TOKENIZER_MODEL) -> int:
    """Estimate the language-model token count of a piece of text."""
    if not text:
        return 0
    with token_counter(model_name) as count:
        return count(text)


def check_token_limit(result: Any, max_tokens: int, break_rule: bool = False) -> TokenCheckResult:
    """Check a tool response against the token ceiling.

    Args:
        result: Rendered text, or any JSON-serializable value
        max_tokens: Ceiling for the response
        break_rule: Skip measurement entirely and allow the response

    Returns:
        TokenCheckResult; ``error`` carries the measured count, the limit and remediation hints
    """
    if break_rule:
        return TokenCheckResult(allowed=True, tokens=0)

    text = result if isinstance(result, str) else json.dumps(result, default=str)
    tokens = calculate_tokens(text)

    if tokens > max_tokens:
        return TokenCheckResult(
            allowed=False,
            tokens=tokens,
            error=(
                f'Token limit exceeded: result contains {tokens} tokens (limit: {max_tokens}). '
                f'To reduce output size, try: reduce max_results, narrow the time range '
                f'(start_time/end_time), add more specific filters (attribute_key/attribute_value), '
                f'add a LIMIT clause to SQL queries, or set break_token_rule: true to bypass this check.'
            ),
        )

    return TokenCheckResult(allowed=True, tokens=tokens)
