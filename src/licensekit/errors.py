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

"""Exception hierarchy for licensekit.

Only :class:`RunError` and :class:`ConfigError` are meant to reach the
operator.  Everything raised while handling a single dependency or a
single license URL is caught close to where it happens and turned into
a result value by :mod:`licensekit.reconcile`.
"""

from __future__ import annotations

from pathlib import Path

__all__ = [
    'ConfigError',
    'InvalidUrlError',
    'LicenseKitError',
    'MalformedSummaryError',
    'NotFoundError',
    'ProjectBuildingError',
    'RunError',
    'SummaryWriteError',
    'TransferError',
]


class LicenseKitError(Exception):
    """Base class for every error raised by licensekit."""


class MalformedSummaryError(LicenseKitError):
    """A license summary document could not be parsed.

    Attributes:
        path: The document's path, when it was read from disk.
    """

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f'{path}: {message}'
        super().__init__(message)


class SummaryWriteError(LicenseKitError):
    """The license summary could not be written."""


class InvalidUrlError(LicenseKitError):
    """A license URL is not a usable URL."""

    def __init__(self, url: str, reason: str = '') -> None:
        self.url = url
        super().__init__(f'Invalid URL {url!r}' + (f': {reason}' if reason else ''))


class NotFoundError(LicenseKitError):
    """The remote resource does not exist."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f'Not found: {url}')


class TransferError(LicenseKitError):
    """Any other failure while transferring a resource."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f'Unable to retrieve {url}: {reason}')


class ProjectBuildingError(LicenseKitError):
    """A dependency descriptor could not be materialized."""

    def __init__(self, coordinates: str, reason: str) -> None:
        self.coordinates = coordinates
        self.reason = reason
        super().__init__(f'Unable to build project {coordinates}: {reason}')


class ConfigError(LicenseKitError):
    """Raised when configuration fails validation.

    Attributes:
        errors: List of human-readable error strings.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        bullet_list = '\n'.join(f'  - {e}' for e in errors)
        super().__init__(f'Configuration has {len(errors)} error(s):\n{bullet_list}')


class RunError(LicenseKitError):
    """Fatal error that aborts a download-licenses run."""
