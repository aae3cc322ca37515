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

"""Read dependency descriptors (Maven POMs) from repositories.

This is the expensive external lookup of a run: for every dependency
that is not already in the license summary, its POM is located, its
parent chain is walked, and the declared ``<licenses>`` are extracted.

Lookup order for ``group:artifact:version``::

    1. <local repository>/<group path>/<artifact>/<version>/<artifact>-<version>.pom
    2. <repository 1>/<group path>/...      (HTTP, retried on 5xx/timeouts)
    3. <repository 2>/<group path>/...
       ...
    → ProjectBuildingError if none of them has it.

Inheritance (what Maven's effective model does, reduced to the parts
licensekit needs)::

    ┌─────────────────────────┬─────────────────────────────────────────┐
    │ Field                   │ Rule                                    │
    ├─────────────────────────┼─────────────────────────────────────────┤
    │ groupId / version       │ From <parent> when the child omits it.  │
    │ properties              │ Parent first, child overrides.          │
    │ licenses                │ Child's list if non-empty, else parent. │
    │ dependencies            │ Parent's plus child's (child wins).     │
    │ dependencyManagement    │ Parent's plus child's (child wins).     │
    └─────────────────────────┴─────────────────────────────────────────┘

Usage::

    async with http_client() as client:
        resolver = PomResolver(['https://repo.maven.apache.org/maven2'], client=client)
        project = await resolver.resolve_licenses(DependencyIdentity('junit', 'junit'), '4.13.2')
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET  # noqa: N817, S405
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

import httpx

from licensekit._types import DependencyIdentity, DependencyProject, LicenseRecord
from licensekit._xml import child, child_text, path_children, safe_fromstring
from licensekit.errors import ProjectBuildingError
from licensekit.logging import get_logger
from licensekit.net import MAX_RETRIES, request_with_retry

log = get_logger('licensekit.pom')

#: Maven Central.
DEFAULT_REPOSITORY: Final[str] = 'https://repo.maven.apache.org/maven2'

#: Parent chains deeper than this are treated as a cycle.
MAX_PARENT_DEPTH: Final[int] = 16

_PLACEHOLDER_RE: Final[re.Pattern[str]] = re.compile(r'\$\{([^}]+)\}')

__all__ = [
    'DEFAULT_REPOSITORY',
    'EffectivePom',
    'Pom',
    'PomDependency',
    'PomResolver',
    'interpolate',
    'parse_pom',
    'pom_path',
]


# ── Data types ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PomDependency:
    """A ``<dependency>`` element, uninterpolated.

    Attributes:
        group_id: ``groupId``.
        artifact_id: ``artifactId``.
        version: ``version``; empty when managed elsewhere.
        scope: ``scope``; empty means ``compile``.
        optional: ``True`` for ``<optional>true</optional>``.
        exclusions: ``group:artifact`` keys excluded below this
            dependency; ``*`` wildcards are kept verbatim.
    """

    group_id: str
    artifact_id: str
    version: str = ''
    scope: str = ''
    optional: bool = False
    exclusions: frozenset[str] = frozenset()

    @property
    def key(self) -> str:
        """The ``group:artifact`` key."""
        return f'{self.group_id}:{self.artifact_id}'


@dataclass(frozen=True)
class Pom:
    """One POM file exactly as written (no inheritance applied)."""

    group_id: str
    artifact_id: str
    version: str
    parent: tuple[str, str, str] | None = None
    properties: dict[str, str] = field(default_factory=dict)
    licenses: tuple[LicenseRecord, ...] = ()
    dependencies: tuple[PomDependency, ...] = ()
    managed: tuple[PomDependency, ...] = ()


@dataclass
class EffectivePom:
    """A POM with its parent chain folded in and placeholders resolved."""

    group_id: str
    artifact_id: str
    version: str
    licenses: tuple[LicenseRecord, ...] = ()
    dependencies: list[PomDependency] = field(default_factory=list)
    managed_versions: dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> DependencyIdentity:
        """The ``group:artifact`` identity."""
        return DependencyIdentity(self.group_id, self.artifact_id)


# ── Parsing ──────────────────────────────────────────────────────────


def _parse_dependency(elem: ET.Element) -> PomDependency:
    exclusions = frozenset(
        f'{child_text(ex, "groupId")}:{child_text(ex, "artifactId")}'
        for ex in path_children(elem, 'exclusions', 'exclusion')
    )
    return PomDependency(
        group_id=child_text(elem, 'groupId'),
        artifact_id=child_text(elem, 'artifactId'),
        version=child_text(elem, 'version'),
        scope=child_text(elem, 'scope'),
        optional=child_text(elem, 'optional').lower() == 'true',
        exclusions=exclusions,
    )


def parse_pom(text: str | bytes) -> Pom:
    """Parse POM XML into a :class:`Pom`.

    Raises:
        ET.ParseError: If *text* is not well-formed XML.
    """
    root = safe_fromstring(text)

    parent: tuple[str, str, str] | None = None
    parent_elem = child(root, 'parent')
    if parent_elem is not None:
        parent = (
            child_text(parent_elem, 'groupId'),
            child_text(parent_elem, 'artifactId'),
            child_text(parent_elem, 'version'),
        )

    properties: dict[str, str] = {}
    props_elem = child(root, 'properties')
    if props_elem is not None:
        for prop in props_elem:
            if isinstance(prop.tag, str):
                properties[prop.tag.rsplit('}', 1)[-1]] = (prop.text or '').strip()

    licenses = tuple(
        LicenseRecord(url=child_text(lic, 'url'), name=child_text(lic, 'name') or None)
        for lic in path_children(root, 'licenses', 'license')
        if child_text(lic, 'url')
    )

    return Pom(
        group_id=child_text(root, 'groupId') or (parent[0] if parent else ''),
        artifact_id=child_text(root, 'artifactId'),
        version=child_text(root, 'version') or (parent[2] if parent else ''),
        parent=parent,
        properties=properties,
        licenses=licenses,
        dependencies=tuple(_parse_dependency(d) for d in path_children(root, 'dependencies', 'dependency')),
        managed=tuple(
            _parse_dependency(d) for d in path_children(root, 'dependencyManagement', 'dependencies', 'dependency')
        ),
    )


def interpolate(value: str, properties: dict[str, str]) -> str:
    """Replace ``${name}`` placeholders from *properties*.

    Unknown placeholders are left as they are.  Nested references are
    expanded a bounded number of times.
    """
    for _ in range(8):
        expanded = _PLACEHOLDER_RE.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if expanded == value:
            break
        value = expanded
    return value


def pom_path(group_id: str, artifact_id: str, version: str) -> str:
    """Repository-relative path of a POM."""
    return f'{group_id.replace(".", "/")}/{artifact_id}/{version}/{artifact_id}-{version}.pom'


# ── Resolver ─────────────────────────────────────────────────────────


class PomResolver:
    """Locate, parse, and fold POMs; memoized for the lifetime of a run.

    Args:
        repositories: Remote repository base URLs, tried in order.
        client: HTTP client for remote lookups.
        local_repository: Optional local repository root checked first.
        max_retries: Retries per remote request on transient failures.
    """

    def __init__(
        self,
        repositories: list[str] | tuple[str, ...],
        *,
        client: httpx.AsyncClient,
        local_repository: Path | None = None,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self.repositories = [r.rstrip('/') for r in repositories]
        self.local_repository = local_repository
        self._client = client
        self._max_retries = max_retries
        self._raw: dict[str, Pom] = {}
        self._effective: dict[str, EffectivePom] = {}

    def register(self, pom: Pom) -> None:
        """Make *pom* resolvable without a repository lookup (e.g. a local parent)."""
        self._raw[f'{pom.group_id}:{pom.artifact_id}:{pom.version}'] = pom

    async def fetch_pom(self, group_id: str, artifact_id: str, version: str) -> Pom:
        """Return the raw POM for the given coordinates.

        Raises:
            ProjectBuildingError: If no repository has a parsable POM.
        """
        coords = f'{group_id}:{artifact_id}:{version}'
        cached = self._raw.get(coords)
        if cached is not None:
            return cached
        if not group_id or not artifact_id or not version:
            raise ProjectBuildingError(coords, 'incomplete coordinates')

        rel = pom_path(group_id, artifact_id, version)
        failures: list[str] = []
        text = self._read_local(rel, failures)
        if text is None:
            text = await self._read_remote(rel, failures)
        if text is None:
            reason = 'POM not found in any repository'
            if failures:
                reason += f' ({"; ".join(failures)})'
            raise ProjectBuildingError(coords, reason)

        try:
            pom = parse_pom(text)
        except ET.ParseError as exc:
            raise ProjectBuildingError(coords, f'malformed POM: {exc}') from exc
        self._raw[coords] = pom
        return pom

    def _read_local(self, rel: str, failures: list[str]) -> bytes | None:
        if self.local_repository is None:
            return None
        path = self.local_repository / rel
        if not path.is_file():
            return None
        try:
            data = path.read_bytes()
        except OSError as exc:
            # Unreadable local copy; the remotes may still have it.
            log.debug('pom_local_unreadable', path=str(path), error=str(exc))
            failures.append(f'{path}: {exc.strerror or exc}')
            return None
        log.debug('pom_local_hit', path=str(path))
        return data

    async def _read_remote(self, rel: str, failures: list[str]) -> bytes | None:
        for repo in self.repositories:
            url = f'{repo}/{rel}'
            try:
                resp = await request_with_retry(self._client, 'GET', url, max_retries=self._max_retries)
            except httpx.HTTPError as exc:
                failures.append(f'{repo}: {exc or type(exc).__name__}')
                continue
            if resp.status_code == 200:
                log.debug('pom_fetched', url=url)
                return resp.content
            if resp.status_code != 404:
                failures.append(f'{repo}: HTTP {resp.status_code}')
        return None

    async def effective_pom(self, group_id: str, artifact_id: str, version: str) -> EffectivePom:
        """Return the POM with its parent chain applied.

        Raises:
            ProjectBuildingError: If the POM or any parent cannot be
                loaded, or the parent chain does not terminate.
        """
        coords = f'{group_id}:{artifact_id}:{version}'
        cached = self._effective.get(coords)
        if cached is not None:
            return cached

        chain: list[Pom] = []
        seen: set[str] = set()
        pom = await self.fetch_pom(group_id, artifact_id, version)
        while True:
            chain.append(pom)
            if pom.parent is None:
                break
            parent_coords = ':'.join(pom.parent)
            if parent_coords in seen or len(chain) > MAX_PARENT_DEPTH:
                raise ProjectBuildingError(coords, f'parent chain does not terminate at {parent_coords}')
            seen.add(parent_coords)
            pom = await self.fetch_pom(*pom.parent)

        effective = _fold(chain)
        self._effective[coords] = effective
        return effective

    async def resolve_licenses(self, identity: DependencyIdentity, version: str) -> DependencyProject:
        """Materialize a dependency's descriptor and extract its licenses.

        Returns:
            A :class:`DependencyProject` carrying the descriptor's own
            coordinates and its licenses in declaration order.

        Raises:
            ProjectBuildingError: If the descriptor cannot be built.
        """
        pom = await self.effective_pom(identity.group_id, identity.artifact_id, version)
        return DependencyProject(
            identity=pom.identity,
            version=pom.version,
            licenses=pom.licenses,
        )


def _fold(chain: list[Pom]) -> EffectivePom:
    """Fold a child-first parent chain into an :class:`EffectivePom`."""
    leaf = chain[0]
    properties: dict[str, str] = {}
    licenses: tuple[LicenseRecord, ...] = ()
    deps: dict[str, PomDependency] = {}
    managed: dict[str, PomDependency] = {}

    # Root ancestor first so descendants override.
    for pom in reversed(chain):
        properties.update(pom.properties)
        if pom.licenses:
            licenses = pom.licenses
        for dep in pom.dependencies:
            deps[dep.key] = dep
        for dep in pom.managed:
            managed[dep.key] = dep

    properties.update(
        {
            'project.groupId': leaf.group_id,
            'project.artifactId': leaf.artifact_id,
            'project.version': leaf.version,
            'pom.groupId': leaf.group_id,
            'pom.artifactId': leaf.artifact_id,
            'pom.version': leaf.version,
            'version': leaf.version,
        }
    )
    if leaf.parent is not None:
        properties['project.parent.groupId'] = leaf.parent[0]
        properties['project.parent.version'] = leaf.parent[2]

    def _resolve(dep: PomDependency) -> PomDependency:
        return PomDependency(
            group_id=interpolate(dep.group_id, properties),
            artifact_id=interpolate(dep.artifact_id, properties),
            version=interpolate(dep.version, properties),
            scope=dep.scope,
            optional=dep.optional,
            exclusions=dep.exclusions,
        )

    managed_versions = {}
    for dep in managed.values():
        resolved = _resolve(dep)
        if resolved.version:
            managed_versions[resolved.key] = resolved.version

    return EffectivePom(
        group_id=interpolate(leaf.group_id, properties),
        artifact_id=interpolate(leaf.artifact_id, properties),
        version=interpolate(leaf.version, properties),
        licenses=tuple(
            LicenseRecord(
                url=interpolate(lic.url, properties),
                name=interpolate(lic.name, properties) if lic.name is not None else None,
            )
            for lic in licenses
        ),
        dependencies=[_resolve(d) for d in deps.values()],
        managed_versions=managed_versions,
    )
