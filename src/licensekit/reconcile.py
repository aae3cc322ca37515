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

"""Reconcile the project's dependencies against known license data.

Three sources of truth meet here:

    ┌───────────────────────────┬──────────────────────────────────────────┐
    │ Source                    │ Role                                     │
    ├───────────────────────────┼──────────────────────────────────────────┤
    │ licenses summary output   │ Written by the previous run.  If it      │
    │ (target/licenses.xml)     │ exists it is the cache, and nothing in   │
    │                           │ it is downloaded again.                  │
    ├───────────────────────────┼──────────────────────────────────────────┤
    │ licenses summary file     │ Hand-curated overrides.  Only read when  │
    │ (src/licenses.xml)        │ there is no summary output yet; every    │
    │                           │ entry is downloaded on that cold start.  │
    ├───────────────────────────┼──────────────────────────────────────────┤
    │ dependency source         │ What the build resolved right now.       │
    └───────────────────────────┴──────────────────────────────────────────┘

Per dependency, keyed by ``group:artifact`` (never by version)::

    key in cache? ──yes──→ reuse entry, refresh its version      (cached)
         │
         no
         ↓
    resolve descriptor ──fails──→ warn, leave out of the summary  (dropped)
         │
         ok
         ↓
    download each license whose file is not there yet            (fetched)

Cache hits are all settled before the first descriptor is resolved, so
the cache is never read while it could change.  Fresh dependencies are
resolved under a semaphore (``concurrency``; ``1`` by default), and a
per-file-name lock keeps two dependencies that share a license file
from transferring it twice.

Only failing to read or write a summary document is fatal (:class:`RunError`).
Everything else ends up as a :class:`DependencyOutcome` or
:class:`LicenseDownloadResult` in the returned :class:`RunReport`.

Usage::

    config = load_config(Path('.'))
    report = asyncio.run(download_licenses(config))
    print(report.fetched, report.cached, report.dropped)
"""

from __future__ import annotations

import asyncio
import enum
import functools
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import httpx

from licensekit._types import DependencyIdentity, DependencyProject, LicenseRecord, ResolvedDependency
from licensekit.config import LicenseKitConfig
from licensekit.dependencies import DependencySource, PomDependencySource
from licensekit.download import download_license
from licensekit.errors import (
    InvalidUrlError,
    MalformedSummaryError,
    NotFoundError,
    ProjectBuildingError,
    RunError,
    SummaryWriteError,
    TransferError,
)
from licensekit.logging import Reporter, StructlogReporter
from licensekit.naming import license_file_name
from licensekit.net import http_client
from licensekit.pom import PomResolver
from licensekit.summary import load_license_summary, write_license_summary

__all__ = [
    'DependencyOutcome',
    'DependencyStatus',
    'LicenseDownloadResult',
    'LicenseFetcher',
    'LicenseReconciler',
    'LicenseStatus',
    'RunReport',
    'download_licenses',
]

#: ``(url, destination) -> None``; raises the transfer errors of
#: :func:`licensekit.download.download_license`.
Downloader = Callable[[str, Path], Awaitable[None]]


class LicenseFetcher(Protocol):
    """Resolves a dependency's declared licenses from its descriptor."""

    async def resolve_licenses(self, identity: DependencyIdentity, version: str) -> DependencyProject:
        """Raises :class:`ProjectBuildingError` if the descriptor cannot be built."""
        ...


# ── Result values ────────────────────────────────────────────────────


class LicenseStatus(enum.Enum):
    """What happened to one license record."""

    DOWNLOADED = 'downloaded'
    ALREADY_PRESENT = 'already-present'
    INVALID_URL = 'invalid-url'
    NOT_FOUND = 'not-found'
    TRANSFER_FAILED = 'transfer-failed'


@dataclass(frozen=True)
class LicenseDownloadResult:
    """Outcome of the download step for one license record.

    Attributes:
        license: The record.
        status: What happened.
        file_name: Derived file name; empty if the URL was invalid.
        detail: Error text for the failure statuses.
    """

    license: LicenseRecord
    status: LicenseStatus
    file_name: str = ''
    detail: str = ''

    @property
    def ok(self) -> bool:
        """``True`` if the license file is on disk."""
        return self.status in (LicenseStatus.DOWNLOADED, LicenseStatus.ALREADY_PRESENT)


class DependencyStatus(enum.Enum):
    """How a dependency was handled."""

    SEEDED = 'seeded'
    CACHED = 'cached'
    FETCHED = 'fetched'
    DROPPED = 'dropped'


@dataclass(frozen=True)
class DependencyOutcome:
    """Outcome of reconciling one dependency.

    Attributes:
        coordinates: ``group:artifact:version`` as supplied.
        status: How it was handled.
        project: The entry written to the summary; ``None`` if dropped.
        licenses: Per-license download results (empty when cached).
        detail: Why the dependency was dropped.
    """

    coordinates: str
    status: DependencyStatus
    project: DependencyProject | None = None
    licenses: tuple[LicenseDownloadResult, ...] = ()
    detail: str = ''


@dataclass
class RunReport:
    """Everything a run did.

    Attributes:
        entries: The entries written to the summary, in output order.
        outcomes: One outcome per processed dependency.
        seeded: Outcomes of the cold-start pass over the override file.
        summary_path: Where the summary was written.
    """

    entries: list[DependencyProject] = field(default_factory=list)
    outcomes: list[DependencyOutcome] = field(default_factory=list)
    seeded: list[DependencyOutcome] = field(default_factory=list)
    summary_path: Path | None = None

    def _count(self, status: DependencyStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def cached(self) -> int:
        """Dependencies served from the previous summary or overrides."""
        return self._count(DependencyStatus.CACHED)

    @property
    def fetched(self) -> int:
        """Dependencies whose descriptor was resolved this run."""
        return self._count(DependencyStatus.FETCHED)

    @property
    def dropped(self) -> int:
        """Dependencies left out because their descriptor failed."""
        return self._count(DependencyStatus.DROPPED)

    def license_results(self) -> list[LicenseDownloadResult]:
        """Every license result, cold-start pass included."""
        return [r for o in (*self.seeded, *self.outcomes) for r in o.licenses]


# ── Reconciler ───────────────────────────────────────────────────────


class LicenseReconciler:
    """Runs one download-licenses pass.

    Args:
        config: Resolved settings.
        source: Supplies the project's dependencies.
        fetcher: Resolves licenses for dependencies missing from the cache.
        downloader: Transfers one license URL to a file.
        reporter: Receives warnings and debug notes.
    """

    def __init__(
        self,
        config: LicenseKitConfig,
        *,
        source: DependencySource,
        fetcher: LicenseFetcher,
        downloader: Downloader,
        reporter: Reporter | None = None,
    ) -> None:
        self.config = config
        self.source = source
        self.fetcher = fetcher
        self.downloader = downloader
        self.reporter: Reporter = reporter if reporter is not None else StructlogReporter()
        self._file_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def quiet(self) -> bool:
        """Whether missing/invalid-license warnings are suppressed."""
        return self.config.quiet

    async def run(self) -> RunReport:
        """Reconcile, download, and write the summary.

        Raises:
            RunError: If a summary document cannot be read or written,
                the output directories cannot be created, or the
                project's dependencies cannot be determined.
        """
        report = RunReport(summary_path=self.config.licenses_summary_output_file)
        self._prepare_directories()
        cache = await self.load_cache(report)

        try:
            deps = await self.source.dependencies(include_transitive=self.config.include_transitive_dependencies)
        except ProjectBuildingError as exc:
            raise RunError(f'Unable to determine project dependencies: {exc}') from exc

        # Last occurrence wins for duplicate identities; first position is kept.
        latest: dict[str, ResolvedDependency] = {}
        for dep in deps:
            latest[dep.identity.key] = dep

        slots: dict[str, DependencyOutcome | None] = {}
        fresh: list[ResolvedDependency] = []
        for key, dep in latest.items():
            self.reporter.debug('checking_licenses', dependency=str(dep))
            cached = cache.get(key)
            if cached is not None:
                slots[key] = DependencyOutcome(str(dep), DependencyStatus.CACHED, cached.with_version(dep.version))
            else:
                slots[key] = None
                fresh.append(dep)

        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def _limited(dep: ResolvedDependency) -> DependencyOutcome:
            async with semaphore:
                return await self.reconcile_fresh(dep)

        for outcome_dep, outcome in zip(fresh, await asyncio.gather(*(_limited(d) for d in fresh)), strict=True):
            slots[outcome_dep.identity.key] = outcome

        for outcome in slots.values():
            if outcome is None:
                continue
            report.outcomes.append(outcome)
            if outcome.project is not None:
                report.entries.append(outcome.project)

        try:
            write_license_summary(report.entries, self.config.licenses_summary_output_file)
        except SummaryWriteError as exc:
            raise RunError('Unable to write license summary file.') from exc
        return report

    def _prepare_directories(self) -> None:
        try:
            self.config.licenses_output_directory.mkdir(parents=True, exist_ok=True)
            self.config.licenses_summary_output_file.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RunError(f'Unable to create output directories: {exc}') from exc

    async def load_cache(self, report: RunReport | None = None) -> dict[str, DependencyProject]:
        """Build the ``group:artifact`` → entry map for this run.

        The previous summary output wins outright.  Without one, the
        override file is loaded and every entry in it is downloaded
        immediately.

        Raises:
            RunError: If the document exists but cannot be parsed.
        """
        cache: dict[str, DependencyProject] = {}
        output = self.config.licenses_summary_output_file
        overrides = self.config.licenses_summary_file

        if output.exists():
            for entry in self._load(output):
                cache[entry.key] = entry
            return cache

        if overrides.exists():
            entries = self._load(overrides)
            self.reporter.debug('overrides_loaded', count=len(entries), path=str(overrides))
            for entry in entries:
                self.reporter.debug('downloading_licenses', dependency=str(entry))
                results = await self.download_project_licenses(entry)
                if report is not None:
                    report.seeded.append(DependencyOutcome(str(entry), DependencyStatus.SEEDED, entry, results))
                cache[entry.key] = entry
        return cache

    @staticmethod
    def _load(path: Path) -> list[DependencyProject]:
        try:
            return load_license_summary(path)
        except (MalformedSummaryError, OSError) as exc:
            raise RunError(f'Unable to parse license summary file {path}.') from exc

    async def reconcile_fresh(self, dep: ResolvedDependency) -> DependencyOutcome:
        """Resolve and download licenses for a dependency not in the cache."""
        try:
            project = await self.fetcher.resolve_licenses(dep.identity, dep.version)
        except ProjectBuildingError as exc:
            if not self.quiet:
                self.reporter.warn('unable_to_build_project', dependency=str(dep), reason=exc.reason)
            return DependencyOutcome(str(dep), DependencyStatus.DROPPED, detail=str(exc))

        self.reporter.debug('downloading_licenses', dependency=str(project))
        results = await self.download_project_licenses(project)
        return DependencyOutcome(str(dep), DependencyStatus.FETCHED, project, results)

    async def download_project_licenses(self, project: DependencyProject) -> tuple[LicenseDownloadResult, ...]:
        """Download every license of *project* that is not on disk yet.

        Each record is handled on its own; a failure is reported and
        the next record is still tried.
        """
        if not project.licenses:
            if not self.quiet:
                self.reporter.warn('no_license_information', dependency=str(project))
            return ()

        results: list[LicenseDownloadResult] = []
        for record in project.licenses:
            result = await self.download_license(record)
            self._report(project, result)
            results.append(result)
        return tuple(results)

    async def download_license(self, record: LicenseRecord) -> LicenseDownloadResult:
        """Download one license unless a file with its derived name exists."""
        try:
            file_name = license_file_name(record)
        except InvalidUrlError as exc:
            return LicenseDownloadResult(record, LicenseStatus.INVALID_URL, detail=str(exc))

        dest = self.config.licenses_output_directory / file_name
        async with self._file_locks[file_name]:
            try:
                if dest.exists():
                    return LicenseDownloadResult(record, LicenseStatus.ALREADY_PRESENT, file_name)
                await self.downloader(record.url, dest)
            except InvalidUrlError as exc:
                return LicenseDownloadResult(record, LicenseStatus.INVALID_URL, file_name, str(exc))
            except NotFoundError as exc:
                return LicenseDownloadResult(record, LicenseStatus.NOT_FOUND, file_name, str(exc))
            except TransferError as exc:
                return LicenseDownloadResult(record, LicenseStatus.TRANSFER_FAILED, file_name, exc.reason)
            except OSError as exc:
                # e.g. a derived name longer than the filesystem allows.
                return LicenseDownloadResult(record, LicenseStatus.TRANSFER_FAILED, file_name, str(exc))
        return LicenseDownloadResult(record, LicenseStatus.DOWNLOADED, file_name)

    def _report(self, project: DependencyProject, result: LicenseDownloadResult) -> None:
        dependency = str(project)
        url = result.license.url
        if result.status is LicenseStatus.INVALID_URL:
            if not self.quiet:
                self.reporter.warn('invalid_license_url', dependency=dependency, url=url)
        elif result.status is LicenseStatus.NOT_FOUND:
            if not self.quiet:
                self.reporter.warn('license_not_found', dependency=dependency, url=url)
        elif result.status is LicenseStatus.TRANSFER_FAILED:
            self.reporter.warn('license_download_failed', dependency=dependency, url=url, error=result.detail)
        elif result.status is LicenseStatus.DOWNLOADED:
            self.reporter.debug('license_downloaded', dependency=dependency, file=result.file_name)


# ── Entry point ──────────────────────────────────────────────────────


async def download_licenses(
    config: LicenseKitConfig,
    *,
    source: DependencySource | None = None,
    reporter: Reporter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RunReport:
    """Run download-licenses with the stock collaborators.

    POMs come from ``config.repositories`` (and the local repository),
    license files are fetched over HTTP, and, unless *source* is given,
    dependencies are read from ``config.pom_file``.

    Raises:
        RunError: See :meth:`LicenseReconciler.run`.
    """
    if reporter is None:
        reporter = StructlogReporter()
    async with http_client(
        pool_size=max(config.concurrency, 2),
        timeout=config.timeout,
        transport=transport,
    ) as client:
        resolver = PomResolver(
            config.repositories,
            client=client,
            local_repository=config.local_repository,
        )
        if source is None:
            pom_file = config.pom_file if config.pom_file is not None else config.basedir / 'pom.xml'
            source = PomDependencySource(
                pom_file,
                resolver,
                include_scopes=config.include_scopes,
                reporter=reporter,
                quiet=config.quiet,
            )
        reconciler = LicenseReconciler(
            config,
            source=source,
            fetcher=resolver,
            downloader=functools.partial(download_license, client=client),
            reporter=reporter,
        )
        return await reconciler.run()
