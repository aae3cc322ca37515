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

"""The host project's dependency set.

A :class:`DependencySource` answers one question: which dependencies
does the project have, and at which versions?  Either every transitive
dependency, or only the ones the project declares itself.

Two sources ship with licensekit:

- :class:`StaticDependencySource`: a fixed list, for callers that
  already know the resolved set (another build tool, tests).
- :class:`PomDependencySource`: reads the project's ``pom.xml`` and
  walks the dependency POMs breadth-first.

Transitive walk (Maven "nearest wins")::

    project
    ├── a:1.0            depth 1  ← direct
    │   ├── c:2.0        depth 2
    │   └── d:1.0        depth 2  (optional → skipped)
    └── b:1.0            depth 1  ← direct
        └── c:1.5        depth 2  (c already seen at depth 2 → ignored)
"""

from __future__ import annotations

import fnmatch
from collections import deque
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from licensekit._types import DependencyIdentity, ResolvedDependency
from licensekit.errors import ProjectBuildingError
from licensekit.logging import Reporter, StructlogReporter, get_logger
from licensekit.pom import EffectivePom, PomDependency, PomResolver, parse_pom

log = get_logger('licensekit.dependencies')

#: Scopes a dependency's own dependencies are never inherited through.
_NON_TRANSITIVE_SCOPES = frozenset({'test', 'provided', 'system', 'import'})

__all__ = [
    'DependencySource',
    'PomDependencySource',
    'StaticDependencySource',
]


class DependencySource(Protocol):
    """Supplies the resolved dependencies of the project being built."""

    async def dependencies(self, *, include_transitive: bool) -> list[ResolvedDependency]:
        """Return the dependency set.

        Args:
            include_transitive: ``True`` for the full transitive set,
                ``False`` for direct dependencies only.
        """
        ...


class StaticDependencySource:
    """A :class:`DependencySource` over a fixed list."""

    def __init__(self, deps: Iterable[ResolvedDependency]) -> None:
        self._deps = list(deps)

    async def dependencies(self, *, include_transitive: bool) -> list[ResolvedDependency]:
        if include_transitive:
            return list(self._deps)
        return [d for d in self._deps if d.direct]


def _transitive_scope(parent_scope: str, child_scope: str) -> str:
    """Scope a dependency ends up with when pulled in through *parent_scope*."""
    if parent_scope == 'compile':
        return child_scope
    # runtime/test/provided parents demote compile and runtime children.
    return parent_scope


def _excluded(key: str, exclusions: frozenset[str]) -> bool:
    return any(fnmatch.fnmatchcase(key, pattern) for pattern in exclusions)


class PomDependencySource:
    """Read dependencies from a ``pom.xml`` and its dependency POMs.

    Args:
        pom_file: The project's ``pom.xml``.
        resolver: Resolver used for parents and dependency POMs.
        include_scopes: Scopes to report.  Dependencies in other scopes
            are neither reported nor expanded.
        reporter: Receives the warning for a dependency whose version
            cannot be determined.
        quiet: Suppress that warning.
    """

    def __init__(
        self,
        pom_file: Path,
        resolver: PomResolver,
        *,
        include_scopes: Iterable[str] = ('compile', 'runtime', 'provided', 'system', 'test'),
        reporter: Reporter | None = None,
        quiet: bool = False,
    ) -> None:
        self.pom_file = pom_file
        self.resolver = resolver
        self.include_scopes = frozenset(include_scopes)
        self.reporter: Reporter = reporter if reporter is not None else StructlogReporter(log)
        self.quiet = quiet

    async def _load_project(self) -> EffectivePom:
        """Load the project POM, registering on-disk parents first."""
        try:
            project = parse_pom(self.pom_file.read_bytes())
        except (OSError, SyntaxError) as exc:
            # ET.ParseError is a SyntaxError subclass.
            raise ProjectBuildingError(str(self.pom_file), str(exc)) from exc
        self.resolver.register(project)

        # Parents reachable through the default ../pom.xml relative path.
        pom, directory = project, self.pom_file.parent
        while pom.parent is not None:
            candidate = directory.parent / 'pom.xml'
            if not candidate.is_file():
                break
            try:
                parent = parse_pom(candidate.read_bytes())
            except (OSError, SyntaxError):
                break
            if (parent.group_id, parent.artifact_id, parent.version) != pom.parent:
                break
            self.resolver.register(parent)
            pom, directory = parent, candidate.parent

        return await self.resolver.effective_pom(project.group_id, project.artifact_id, project.version)

    async def dependencies(self, *, include_transitive: bool) -> list[ResolvedDependency]:
        """Return the project's dependencies, direct ones first.

        Raises:
            ProjectBuildingError: If the project's own POM cannot be
                loaded.
        """
        project = await self._load_project()
        root_managed = project.managed_versions

        result: dict[str, ResolvedDependency] = {}
        queue: deque[tuple[ResolvedDependency, frozenset[str]]] = deque()

        for dep in project.dependencies:
            resolved = self._accept(dep, dep.scope or 'compile', root_managed, {}, direct=True)
            if resolved is None or resolved.identity.key in result:
                continue
            result[resolved.identity.key] = resolved
            queue.append((resolved, dep.exclusions))

        if not include_transitive:
            return list(result.values())

        while queue:
            parent, exclusions = queue.popleft()
            if parent.scope == 'system':
                continue
            try:
                pom = await self.resolver.effective_pom(
                    parent.identity.group_id,
                    parent.identity.artifact_id,
                    parent.version,
                )
            except ProjectBuildingError as exc:
                log.debug('dependency_not_expanded', dependency=str(parent), reason=exc.reason)
                continue

            for dep in pom.dependencies:
                child_scope = dep.scope or 'compile'
                if dep.optional or child_scope in _NON_TRANSITIVE_SCOPES:
                    continue
                if _excluded(dep.key, exclusions) or dep.key in result:
                    continue
                scope = _transitive_scope(parent.scope, child_scope)
                resolved = self._accept(dep, scope, root_managed, pom.managed_versions, direct=False)
                if resolved is None:
                    continue
                result[dep.key] = resolved
                queue.append((resolved, exclusions | dep.exclusions))

        log.debug('dependencies_resolved', total=len(result), direct=sum(d.direct for d in result.values()))
        return list(result.values())

    def _accept(
        self,
        dep: PomDependency,
        scope: str,
        root_managed: dict[str, str],
        local_managed: dict[str, str],
        *,
        direct: bool,
    ) -> ResolvedDependency | None:
        """Pick a version for *dep*, or ``None`` if it should be skipped."""
        if scope not in self.include_scopes or scope == 'import':
            return None
        if direct:
            version = dep.version or root_managed.get(dep.key, '')
        else:
            # The project's dependencyManagement overrides transitive versions.
            version = root_managed.get(dep.key) or dep.version or local_managed.get(dep.key, '')
        if not version or '${' in version or not dep.group_id or not dep.artifact_id:
            if not self.quiet:
                self.reporter.warn('dependency_version_unresolved', dependency=dep.key, version=version)
            return None
        return ResolvedDependency(
            identity=DependencyIdentity(dep.group_id, dep.artifact_id),
            version=version,
            scope=scope,
            direct=direct,
        )
