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

"""Shared leaf-level types used across licensekit.

This module must have **zero** imports from other ``licensekit``
modules to avoid circular-import chains.  It is safe to import
from any module in the project.

Identity vs. version::

    ┌───────────────────────┬──────────────────────────────────────────┐
    │ Value                 │ Meaning                                  │
    ├───────────────────────┼──────────────────────────────────────────┤
    │ DependencyIdentity    │ ``group:artifact``. The cache key. Two   │
    │                       │ versions of a library share one entry.   │
    ├───────────────────────┼──────────────────────────────────────────┤
    │ DependencyProject     │ identity + version + ordered licenses.   │
    │                       │ Only ``version`` is ever refreshed, via  │
    │                       │ :meth:`DependencyProject.with_version`.  │
    └───────────────────────┴──────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass, replace

__all__ = [
    'DependencyIdentity',
    'DependencyProject',
    'LicenseRecord',
    'ResolvedDependency',
]


@dataclass(frozen=True, order=True)
class DependencyIdentity:
    """A library identity, independent of its version.

    Attributes:
        group_id: Maven ``groupId``.
        artifact_id: Maven ``artifactId``.
    """

    group_id: str
    artifact_id: str

    @property
    def key(self) -> str:
        """The ``group:artifact`` lookup key."""
        return f'{self.group_id}:{self.artifact_id}'

    @classmethod
    def parse(cls, key: str) -> DependencyIdentity:
        """Build an identity from a ``group:artifact`` string."""
        group_id, sep, artifact_id = key.partition(':')
        if not sep or not group_id or not artifact_id:
            msg = f'Expected "group:artifact", got {key!r}'
            raise ValueError(msg)
        return cls(group_id=group_id, artifact_id=artifact_id)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class LicenseRecord:
    """One declared license of a dependency.

    Attributes:
        url: Where the license text lives.
        name: Human-readable license name, if the descriptor gave one.
    """

    url: str
    name: str | None = None


@dataclass(frozen=True)
class DependencyProject:
    """A dependency together with its resolved license records.

    Attributes:
        identity: The ``group:artifact`` identity.
        version: The version this entry was last seen at.
        licenses: Declared licenses, in descriptor order.
    """

    identity: DependencyIdentity
    version: str = ''
    licenses: tuple[LicenseRecord, ...] = ()

    @property
    def key(self) -> str:
        """Shortcut for ``identity.key``."""
        return self.identity.key

    def with_version(self, version: str) -> DependencyProject:
        """Return a copy of this entry at *version*."""
        return replace(self, version=version)

    def __str__(self) -> str:
        if self.version:
            return f'{self.identity.key}:{self.version}'
        return self.identity.key


@dataclass(frozen=True)
class ResolvedDependency:
    """A dependency as supplied by the host build.

    Attributes:
        identity: The ``group:artifact`` identity.
        version: The version the build resolved.
        scope: Maven scope (``compile``, ``runtime``, ...).
        direct: ``True`` if declared directly by the project.
    """

    identity: DependencyIdentity
    version: str
    scope: str = 'compile'
    direct: bool = True

    @classmethod
    def of(cls, group_id: str, artifact_id: str, version: str, **kwargs: object) -> ResolvedDependency:
        """Convenience constructor from plain coordinates."""
        return cls(DependencyIdentity(group_id, artifact_id), version, **kwargs)  # type: ignore[arg-type]

    def __str__(self) -> str:
        return f'{self.identity.key}:{self.version}'
