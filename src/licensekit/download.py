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

"""Transfer a license from its URL to a local file.

One attempt per call, no retries: a license server that is down today
is reported and skipped, and the next build tries again because the
file is still missing.

``http``/``https`` URLs go through the shared :mod:`httpx` client;
``file`` URLs (common in override files that point at vendored license
texts) are copied from disk.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Final
from urllib.parse import unquote, urlsplit
from urllib.request import url2pathname

import httpx

from licensekit.errors import InvalidUrlError, NotFoundError, TransferError
from licensekit.logging import get_logger
from licensekit.naming import parse_license_url

log = get_logger('licensekit.download')

_NOT_FOUND_STATUS: Final[frozenset[int]] = frozenset({404, 410})

__all__ = [
    'download_license',
]


async def download_license(url: str, dest: Path, *, client: httpx.AsyncClient) -> None:
    """Fetch *url* and write its bytes to *dest*, replacing any existing file.

    Args:
        url: The license URL.
        dest: Destination file; its directory must exist.
        client: HTTP client used for network URLs.

    Raises:
        InvalidUrlError: If *url* is malformed.
        NotFoundError: If the resource does not exist.
        TransferError: On any other network or file-system failure.
    """
    parse_license_url(url)
    scheme = urlsplit(url.strip()).scheme.lower()
    if scheme == 'file':
        _copy_local(url, dest)
    else:
        await _fetch_remote(url, dest, client)
    log.debug('license_downloaded', url=url, path=str(dest))


async def _fetch_remote(url: str, dest: Path, client: httpx.AsyncClient) -> None:
    try:
        async with client.stream('GET', url.strip()) as resp:
            if resp.status_code in _NOT_FOUND_STATUS:
                raise NotFoundError(url)
            if resp.status_code >= 400:
                raise TransferError(url, f'HTTP {resp.status_code}')
            with _atomic_writer(dest, url) as fh:
                async for chunk in resp.aiter_bytes():
                    fh.write(chunk)
    except httpx.InvalidURL as exc:
        raise InvalidUrlError(url, str(exc)) from exc
    except httpx.HTTPError as exc:
        raise TransferError(url, str(exc) or type(exc).__name__) from exc


def _copy_local(url: str, dest: Path) -> None:
    source = Path(url2pathname(unquote(urlsplit(url.strip()).path)))
    if not source.is_file():
        raise NotFoundError(url)
    try:
        with source.open('rb') as src, _atomic_writer(dest, url) as fh:
            shutil.copyfileobj(src, fh)
    except OSError as exc:
        raise TransferError(url, str(exc)) from exc


@contextmanager
def _atomic_writer(dest: Path, url: str) -> Iterator[BinaryIO]:
    """Write to a temp file next to *dest*; rename into place on success."""
    try:
        fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix='.download-', suffix='.part')
    except OSError as exc:
        raise TransferError(url, str(exc)) from exc
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, 'wb') as fh:
            yield fh
        os.replace(tmp, dest)
    except OSError as exc:
        tmp.unlink(missing_ok=True)
        raise TransferError(url, str(exc)) from exc
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
