# Copyright 2026 Google LLC
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
#
# SPDX-License-Identifier: Apache-2.0

"""Shared async HTTP plumbing.

All network access goes through one :class:`httpx.AsyncClient` per run,
created by :func:`http_client`.  Descriptor (POM) lookups use
:func:`request_with_retry`; license downloads deliberately do not
retry (see :mod:`licensekit.download`).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Final

import httpx

from licensekit import __version__
from licensekit.logging import get_logger

log = get_logger('licensekit.net')

#: Default connection pool size.
DEFAULT_POOL_SIZE: Final[int] = 10

#: Default per-request timeout in seconds.
DEFAULT_TIMEOUT: Final[float] = 30.0

#: Default number of retries for transient failures.
MAX_RETRIES: Final[int] = 3

#: Base delay for exponential backoff, in seconds.
RETRY_BACKOFF: Final[float] = 0.5

USER_AGENT: Final[str] = f'licensekit/{__version__}'

# 429 and 5xx are worth another attempt; everything else is final.
_RETRYABLE_STATUS: Final[frozenset[int]] = frozenset({429, 500, 502, 503, 504})


@asynccontextmanager
async def http_client(
    *,
    pool_size: int = DEFAULT_POOL_SIZE,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield a configured :class:`httpx.AsyncClient`.

    Args:
        pool_size: Maximum number of open connections.
        timeout: Per-request timeout in seconds.
        transport: Optional transport override (tests pass an
            :class:`httpx.MockTransport`).
    """
    limits = httpx.Limits(max_connections=pool_size, max_keepalive_connections=pool_size)
    async with httpx.AsyncClient(
        limits=limits,
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
        headers={'User-Agent': USER_AGENT},
        transport=transport,
    ) as client:
        yield client


async def request_with_retry(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    max_retries: int = MAX_RETRIES,
    backoff: float = RETRY_BACKOFF,
    **kwargs: Any,  # noqa: ANN401
) -> httpx.Response:
    """Send a request, retrying transient failures.

    Retries on connection/timeout errors and on 429/5xx responses with
    exponential backoff.  Any other response, including 404, is
    returned as-is.

    Args:
        client: The client to send through.
        method: HTTP method.
        url: Target URL.
        max_retries: Retries after the first attempt.
        backoff: Base delay; attempt *n* sleeps ``backoff * 2**n``.
        **kwargs: Passed through to :meth:`httpx.AsyncClient.request`.

    Returns:
        The final response.

    Raises:
        httpx.TransportError: If every attempt failed at the
            transport level.
    """
    attempt = 0
    while True:
        try:
            resp = await client.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            if attempt >= max_retries:
                raise
            log.debug('http_retry', url=url, attempt=attempt + 1, error=str(exc))
        else:
            if resp.status_code not in _RETRYABLE_STATUS or attempt >= max_retries:
                return resp
            log.debug('http_retry', url=url, attempt=attempt + 1, status=resp.status_code)
        await asyncio.sleep(backoff * (2**attempt))
        attempt += 1


__all__ = [
    'DEFAULT_POOL_SIZE',
    'DEFAULT_TIMEOUT',
    'MAX_RETRIES',
    'http_client',
    'request_with_retry',
]
