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

"""Tests for the dependency sources."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Any, TypeVar

import httpx
import pytest
from licensekit._types import ResolvedDependency
from licensekit.dependencies import PomDependencySource, StaticDependencySource
from licensekit.errors import ProjectBuildingError
from licensekit.pom import PomResolver, pom_path

_T = TypeVar('_T')


def _run(coro: Coroutine[object, object, _T]) -> _T:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


class _Warnings:
    """Reporter that keeps warning event names."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def warn(self, event: str, **kw: Any) -> None:  # noqa: ANN401
        self.events.append(event)

    def debug(self, event: str, **kw: Any) -> None:  # noqa: ANN401
        pass


def _dep(group: str, artifact: str, version: str = '', *, scope: str = '', extra: str = '') -> str:
    version_xml = f'<version>{version}</version>' if version else ''
    scope_xml = f'<scope>{scope}</scope>' if scope else ''
    return (
        f'<dependency><groupId>{group}</groupId><artifactId>{artifact}</artifactId>'
        f'{version_xml}{scope_xml}{extra}</dependency>'
    )


def _pom(group: str, artifact: str, version: str, *deps: str, head: str = '') -> str:
    return (
        '<project xmlns="http://maven.apache.org/POM/4.0.0">'
        f'{head}<groupId>{group}</groupId><artifactId>{artifact}</artifactId><version>{version}</version>'
        f'<dependencies>{"".join(deps)}</dependencies></project>'
    )


def _install(repo: Path, group: str, artifact: str, version: str, *deps: str, head: str = '') -> None:
    path = repo / pom_path(group, artifact, version)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_pom(group, artifact, version, *deps, head=head), encoding='utf-8')


def _resolve(
    tmp_path: Path, project_xml: str, *, transitive: bool = True, **kwargs: object
) -> list[ResolvedDependency]:
    """Write *project_xml* as pom.xml and list its dependencies from the local repo."""
    pom_file = tmp_path / 'project' / 'pom.xml'
    pom_file.parent.mkdir(parents=True, exist_ok=True)
    pom_file.write_text(project_xml, encoding='utf-8')

    async def _go() -> list[ResolvedDependency]:
        transport = httpx.MockTransport(lambda r: httpx.Response(404))
        async with httpx.AsyncClient(transport=transport) as client:
            resolver = PomResolver([], client=client, local_repository=tmp_path / 'm2')
            source = PomDependencySource(pom_file, resolver, **kwargs)  # type: ignore[arg-type]
            return await source.dependencies(include_transitive=transitive)

    return _run(_go())


def _coords(deps: list[ResolvedDependency]) -> dict[str, str]:
    return {d.identity.key: d.version for d in deps}


class TestStaticDependencySource:
    """Tests for StaticDependencySource."""

    def test_transitive_returns_all(self) -> None:
        """Test transitive returns all."""
        deps = [ResolvedDependency.of('g', 'a', '1'), ResolvedDependency.of('g', 'b', '2', direct=False)]
        assert _run(StaticDependencySource(deps).dependencies(include_transitive=True)) == deps

    def test_direct_only(self) -> None:
        """Test direct only."""
        deps = [ResolvedDependency.of('g', 'a', '1'), ResolvedDependency.of('g', 'b', '2', direct=False)]
        result = _run(StaticDependencySource(deps).dependencies(include_transitive=False))
        assert [d.identity.key for d in result] == ['g:a']


class TestPomDependencySource:
    """Tests for PomDependencySource."""

    def test_direct_dependencies(self, tmp_path: Path) -> None:
        """Test direct dependencies."""
        _install(tmp_path / 'm2', 'lib', 'a', '1.0', _dep('lib', 'c', '3.0'))
        project = _pom('app', 'app', '1', _dep('lib', 'a', '1.0'), _dep('lib', 'b', '2.0'))
        deps = _resolve(tmp_path, project, transitive=False)
        assert _coords(deps) == {'lib:a': '1.0', 'lib:b': '2.0'}
        assert all(d.direct for d in deps)

    def test_transitive_closure(self, tmp_path: Path) -> None:
        """Test transitive closure."""
        repo = tmp_path / 'm2'
        _install(repo, 'lib', 'a', '1.0', _dep('lib', 'c', '3.0'))
        _install(repo, 'lib', 'c', '3.0', _dep('lib', 'd', '4.0'))
        _install(repo, 'lib', 'd', '4.0')
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'a', '1.0')))
        assert _coords(deps) == {'lib:a': '1.0', 'lib:c': '3.0', 'lib:d': '4.0'}
        assert [d.direct for d in deps] == [True, False, False]

    def test_nearest_wins(self, tmp_path: Path) -> None:
        """The first version reached breadth-first is kept."""
        repo = tmp_path / 'm2'
        _install(repo, 'lib', 'a', '1', _dep('lib', 'shared', '1.0'))
        _install(repo, 'lib', 'b', '1', _dep('lib', 'shared', '2.0'))
        _install(repo, 'lib', 'shared', '1.0')
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'a', '1'), _dep('lib', 'b', '1')))
        assert _coords(deps)['lib:shared'] == '1.0'

    def test_direct_beats_transitive(self, tmp_path: Path) -> None:
        """Test direct beats transitive."""
        repo = tmp_path / 'm2'
        _install(repo, 'lib', 'a', '1', _dep('lib', 'b', '0.9'))
        _install(repo, 'lib', 'b', '1.0')
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'a', '1'), _dep('lib', 'b', '1.0')))
        assert _coords(deps)['lib:b'] == '1.0'

    def test_optional_and_test_scope_not_inherited(self, tmp_path: Path) -> None:
        """Test optional and test scope not inherited."""
        _install(
            tmp_path / 'm2',
            'lib',
            'a',
            '1',
            _dep('lib', 'opt', '1', extra='<optional>true</optional>'),
            _dep('lib', 'junit', '4', scope='test'),
            _dep('lib', 'servlet', '3', scope='provided'),
        )
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'a', '1')))
        assert _coords(deps) == {'lib:a': '1'}

    def test_exclusions(self, tmp_path: Path) -> None:
        """Test exclusions."""
        repo = tmp_path / 'm2'
        _install(repo, 'lib', 'a', '1', _dep('log', 'noisy', '1'), _dep('lib', 'kept', '1'))
        exclusion = '<exclusions><exclusion><groupId>log</groupId><artifactId>*</artifactId></exclusion></exclusions>'
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'a', '1', extra=exclusion)))
        assert set(_coords(deps)) == {'lib:a', 'lib:kept'}

    def test_scope_filter(self, tmp_path: Path) -> None:
        """Test scope filter."""
        project = _pom('app', 'app', '1', _dep('lib', 'a', '1'), _dep('lib', 'junit', '4', scope='test'))
        deps = _resolve(tmp_path, project, transitive=False, include_scopes=('compile', 'runtime'))
        assert set(_coords(deps)) == {'lib:a'}

    def test_test_scope_propagates(self, tmp_path: Path) -> None:
        """Children of a test dependency are test-scoped."""
        _install(tmp_path / 'm2', 'lib', 'junit', '4', _dep('lib', 'hamcrest', '1.3'))
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'junit', '4', scope='test')))
        assert {d.identity.key: d.scope for d in deps} == {'lib:junit': 'test', 'lib:hamcrest': 'test'}

    def test_managed_and_property_versions(self, tmp_path: Path) -> None:
        """Test managed and property versions."""
        head = (
            '<properties><b.version>2.5</b.version></properties>'
            '<dependencyManagement><dependencies>'
            + _dep('lib', 'a', '1.1')
            + _dep('lib', 'c', '9.0')
            + '</dependencies></dependencyManagement>'
        )
        _install(tmp_path / 'm2', 'lib', 'a', '1.1', _dep('lib', 'c', '3.0'))
        project = _pom('app', 'app', '1', _dep('lib', 'a'), _dep('lib', 'b', '${b.version}'), head=head)
        deps = _resolve(tmp_path, project)
        assert _coords(deps) == {'lib:a': '1.1', 'lib:b': '2.5', 'lib:c': '9.0'}

    def test_unresolved_version_skipped(self, tmp_path: Path) -> None:
        """Each dependency without a usable version is skipped with a warning."""
        project = _pom('app', 'app', '1', _dep('lib', 'a', '${nope}'), _dep('lib', 'b'))
        reporter = _Warnings()
        assert _resolve(tmp_path, project, reporter=reporter) == []
        assert reporter.events == ['dependency_version_unresolved'] * 2

    def test_unresolved_version_quiet(self, tmp_path: Path) -> None:
        """Test unresolved version quiet."""
        project = _pom('app', 'app', '1', _dep('lib', 'a', '${nope}'))
        reporter = _Warnings()
        assert _resolve(tmp_path, project, reporter=reporter, quiet=True) == []
        assert reporter.events == []

    def test_unloadable_dependency_still_reported(self, tmp_path: Path) -> None:
        """A dependency whose POM is missing is listed but not expanded."""
        deps = _resolve(tmp_path, _pom('app', 'app', '1', _dep('lib', 'ghost', '1')))
        assert _coords(deps) == {'lib:ghost': '1'}

    def test_local_parent_pom(self, tmp_path: Path) -> None:
        """A parent in ../pom.xml supplies managed versions."""
        parent = (
            '<project><groupId>app</groupId><artifactId>parent</artifactId><version>1</version>'
            '<dependencyManagement><dependencies>'
            + _dep('lib', 'a', '5.0')
            + '</dependencies></dependencyManagement></project>'
        )
        (tmp_path / 'pom.xml').write_text(parent, encoding='utf-8')
        head = '<parent><groupId>app</groupId><artifactId>parent</artifactId><version>1</version></parent>'
        deps = _resolve(tmp_path, _pom('app', 'module', '1', _dep('lib', 'a'), head=head), transitive=False)
        assert _coords(deps) == {'lib:a': '5.0'}

    def test_project_pom_missing(self, tmp_path: Path) -> None:
        """Test project pom missing."""

        async def _go() -> None:
            async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404))) as client:
                source = PomDependencySource(tmp_path / 'pom.xml', PomResolver([], client=client))
                await source.dependencies(include_transitive=True)

        with pytest.raises(ProjectBuildingError):
            _run(_go())
