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

"""Command-line entry point.

Usage::

    licensekit download-licenses                  # uses ./pom.xml and ./licensekit.toml
    licensekit download-licenses --quiet --no-transitive
    licensekit download-licenses --basedir ../service --concurrency 8 --json-log
    licensekit init                                # write default settings

Exit codes:
    0  Success.
    1  The run aborted (summary unreadable/unwritable, project POM missing).
    2  Invalid configuration or usage.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.table import Table

from licensekit import __version__
from licensekit.config import CONFIG_FILE_NAME, load_config, write_config_template
from licensekit.errors import ConfigError, RunError
from licensekit.logging import configure_logging, get_logger
from licensekit.reconcile import LicenseStatus, RunReport, download_licenses

log = get_logger('licensekit.cli')


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='licensekit',
        description="Download the license files of a Maven project's dependencies.",
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    sub = parser.add_subparsers(dest='command')

    run = sub.add_parser('download-licenses', help='Resolve licenses and download license files.')
    run.add_argument('--basedir', type=Path, default=Path('.'), help='Project base directory.')
    run.add_argument('--config', type=Path, help=f'Config file (default: {CONFIG_FILE_NAME} or pyproject.toml).')
    run.add_argument('--pom', dest='pom_file', type=Path, help='Project POM (default: <basedir>/pom.xml).')
    run.add_argument('--licenses-summary-file', type=Path, help='Hand-curated license overrides.')
    run.add_argument('--licenses-output-directory', type=Path, help='Directory for downloaded license files.')
    run.add_argument('--licenses-summary-output-file', type=Path, help='Generated license summary.')
    run.add_argument(
        '--quiet',
        action='store_const',
        const=True,
        default=None,
        help="Don't warn about missing or bad license information.",
    )
    run.add_argument(
        '--no-transitive',
        dest='include_transitive_dependencies',
        action='store_const',
        const=False,
        default=None,
        help='Only process direct dependencies.',
    )
    run.add_argument(
        '--repository',
        dest='repositories',
        action='append',
        metavar='URL',
        help='Maven repository to search for POMs (repeatable; replaces the configured list).',
    )
    run.add_argument('--concurrency', type=int, help='Dependencies resolved in parallel.')
    run.add_argument('--timeout', type=float, help='HTTP timeout in seconds.')
    run.add_argument('-v', '--verbose', action='store_true', help='Debug logging.')
    run.add_argument('--json-log', action='store_true', help='Log JSON lines instead of console output.')

    init = sub.add_parser('init', help='Write default settings to a config file.')
    init.add_argument(
        'path',
        type=Path,
        nargs='?',
        default=Path(CONFIG_FILE_NAME),
        help=f'Target file; a pyproject.toml gets a [tool.licensekit] table (default: {CONFIG_FILE_NAME}).',
    )
    return parser


def _print_report(report: RunReport, console: Console) -> None:
    statuses = [r.status for r in report.license_results()]
    table = Table(title='License download summary', show_header=True, header_style='bold')
    table.add_column('Item')
    table.add_column('Count', justify='right')
    table.add_row('Dependencies (cached)', str(report.cached))
    table.add_row('Dependencies (fetched)', str(report.fetched))
    table.add_row('Dependencies (dropped)', str(report.dropped))
    table.add_row('Overrides seeded', str(len(report.seeded)))
    table.add_row('License files downloaded', str(statuses.count(LicenseStatus.DOWNLOADED)))
    table.add_row('License files already present', str(statuses.count(LicenseStatus.ALREADY_PRESENT)))
    failed = len(statuses) - statuses.count(LicenseStatus.DOWNLOADED) - statuses.count(LicenseStatus.ALREADY_PRESENT)
    table.add_row('License files failed', str(failed))
    console.print(table)
    if report.summary_path is not None:
        console.print(f'Summary written to [bold]{report.summary_path}[/bold]')


def _run_download(args: argparse.Namespace, console: Console) -> int:
    if args.concurrency is not None and args.concurrency < 1:
        log.error('invalid_option', option='--concurrency', value=args.concurrency)
        return 2
    overrides = {
        'pom_file': args.pom_file,
        'licenses_summary_file': args.licenses_summary_file,
        'licenses_output_directory': args.licenses_output_directory,
        'licenses_summary_output_file': args.licenses_summary_output_file,
        'quiet': args.quiet,
        'include_transitive_dependencies': args.include_transitive_dependencies,
        'repositories': args.repositories,
        'concurrency': args.concurrency,
        'timeout': args.timeout,
    }
    try:
        config = load_config(args.basedir, config_file=args.config, overrides=overrides)
    except ConfigError as exc:
        log.error('invalid_configuration', errors=exc.errors)
        return 2

    try:
        report = asyncio.run(download_licenses(config))
    except RunError as exc:
        cause = exc.__cause__
        log.error('run_failed', error=str(exc), cause=str(cause) if cause else None)
        return 1
    _print_report(report, console)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Parse *argv* and run the chosen command; returns the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    console = Console()

    if args.command == 'init':
        configure_logging()
        try:
            changed = write_config_template(args.path)
        except ConfigError as exc:
            log.error('invalid_configuration', errors=exc.errors)
            return 2
        except OSError as exc:
            log.error('config_write_failed', path=str(args.path), error=str(exc))
            return 1
        console.print(f'{"Updated" if changed else "Unchanged"}: {args.path}')
        return 0

    if args.command != 'download-licenses':
        parser.print_help(sys.stderr)
        return 2

    configure_logging(verbose=args.verbose, json_log=args.json_log)
    return _run_download(args, console)


if __name__ == '__main__':
    sys.exit(main())
