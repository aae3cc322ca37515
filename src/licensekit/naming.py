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

"""Derive the local file name for a downloaded license.

The name comes from the URL alone, so it is known before any network
access and stays the same across runs::

    name='Apache 2.0', url='https://www.apache.org/licenses/LICENSE-2.0'
        → 'Apache 2.0 - LICENSE-2.0.txt'
    name=None, url='https://opensource.org/licenses/LICENSE.txt'
        → 'LICENSE.txt'

Rules:

1. The last path segment of the URL is the base name.
2. A license ``name`` is prepended as ``'<name> - '``.
3. If the result has no ``.``, or its last ``.`` sits within the final
   two characters, ``.txt`` is appended.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import Final
from urllib.parse import urlsplit

from licensekit._types import LicenseRecord
from licensekit.errors import InvalidUrlError

DEFAULT_EXTENSION: Final[str] = '.txt'

# Path separators and NUL would escape the output directory.
_UNSAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r'[/\\\x00]')

_SCHEME_RE: Final[re.Pattern[str]] = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*$')

# Schemes that are meaningless without a host.
_NETWORK_SCHEMES: Final[frozenset[str]] = frozenset({'http', 'https', 'ftp'})


def parse_license_url(url: str) -> PurePosixPath:
    """Validate *url* and return its path component.

    Raises:
        InvalidUrlError: If *url* has no scheme, an unusable scheme, or
            is a network URL without a host.
    """
    try:
        parts = urlsplit(url.strip())
    except ValueError as exc:
        raise InvalidUrlError(url, str(exc)) from exc
    if not parts.scheme or not _SCHEME_RE.match(parts.scheme):
        raise InvalidUrlError(url, 'no protocol')
    if parts.scheme.lower() in _NETWORK_SCHEMES and not parts.netloc:
        raise InvalidUrlError(url, 'no host')
    return PurePosixPath(parts.path)


def license_file_name(license: LicenseRecord) -> str:  # noqa: A002
    """Return the file name a license should be saved under.

    Raises:
        InvalidUrlError: If the license URL cannot be parsed.
    """
    base = parse_license_url(license.url).name
    file_name = f'{license.name} - {base}' if license.name is not None else base
    file_name = _UNSAFE_CHARS_RE.sub('_', file_name)

    extension_index = file_name.rfind('.')
    if extension_index == -1 or extension_index > len(file_name) - 3:
        file_name += DEFAULT_EXTENSION
    return file_name


__all__ = [
    'DEFAULT_EXTENSION',
    'license_file_name',
    'parse_license_url',
]
