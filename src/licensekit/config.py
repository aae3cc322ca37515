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

"""Configuration for licensekit.

Values are layered, lowest precedence first::

    built-in defaults
      → licensekit.toml  (or [tool.licensekit] in pyproject.toml)
        → command-line flags

Example ``licensekit.toml``::

    licenses-summary-file = "src/licenses.xml"
    licenses-output-directory = "target/licenses"
    licenses-summary-output-file = "target/licenses.xml"
    quiet = false
    include-transitive-dependencies = true
    repositories = ["https://repo.maven.apache.org/maven2"]
    concurrency = 4

The Maven-style camelCase spellings (``licensesOutputDirectory``) are
accepted as aliases.  Relative paths resolve against the project base
directory.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Final

import tomlkit
import tomlkit.exceptions
import tomlkit.items

from licensekit.errors import ConfigError
from licensekit.pom import DEFAULT_REPOSITORY

CONFIG_FILE_NAME: Final[str] = 'licensekit.toml'
PYPROJECT_TABLE: Final[str] = 'licensekit'

_PATH_FIELDS: Final[frozenset[str]] = frozenset(
    {
        'licenses_summary_file',
        'licenses_output_directory',
        'licenses_summary_output_file',
        'local_repository',
        'pom_file',
    }
)

_CAMEL_ALIASES: Final[dict[str, str]] = {
    'licensesSummaryFile': 'licenses_summary_file',
    'licensesOutputDirectory': 'licenses_output_directory',
    'licensesSummaryOutputFile': 'licenses_summary_output_file',
    'includeTransitiveDependencies': 'include_transitive_dependencies',
    'localRepository': 'local_repository',
    'includeScopes': 'include_scopes',
    'pomFile': 'pom_file',
}

__all__ = [
    'CONFIG_FILE_NAME',
    'LicenseKitConfig',
    'find_config_file',
    'load_config',
    'write_config_template',
]


@dataclass(frozen=True)
class LicenseKitConfig:
    """Resolved settings for a download-licenses run.

    Attributes:
        basedir: Project base directory.
        licenses_summary_file: Hand-curated override document (input only).
        licenses_output_directory: Where license files are downloaded.
        licenses_summary_output_file: Generated summary; also next run's cache.
        quiet: Suppress warnings about missing or bad licenses.
        include_transitive_dependencies: Process the full transitive
            set instead of direct dependencies only.
        pom_file: The project's ``pom.xml``.
        repositories: Remote repositories searched for POMs, in order.
        local_repository: Local repository checked before the remotes,
            or ``None`` to skip it.
        include_scopes: Dependency scopes to process.
        concurrency: Dependencies fetched at once; ``1`` is fully
            sequential.
        timeout: Per-request HTTP timeout in seconds.
    """

    basedir: Path
    licenses_summary_file: Path
    licenses_output_directory: Path
    licenses_summary_output_file: Path
    quiet: bool = False
    include_transitive_dependencies: bool = True
    pom_file: Path | None = None
    repositories: tuple[str, ...] = (DEFAULT_REPOSITORY,)
    local_repository: Path | None = None
    include_scopes: tuple[str, ...] = ('compile', 'runtime', 'provided', 'system', 'test')
    concurrency: int = 1
    timeout: float = 30.0

    @classmethod
    def defaults(cls, basedir: Path) -> LicenseKitConfig:
        """Defaults for a project rooted at *basedir*."""
        basedir = basedir.resolve()
        return cls(
            basedir=basedir,
            licenses_summary_file=basedir / 'src' / 'licenses.xml',
            licenses_output_directory=basedir / 'target' / 'licenses',
            licenses_summary_output_file=basedir / 'target' / 'licenses.xml',
            pom_file=basedir / 'pom.xml',
            local_repository=Path.home() / '.m2' / 'repository',
        )


# ── Validation ───────────────────────────────────────────────────────

_FIELD_TYPES: Final[dict[str, type | tuple[type, ...]]] = {
    'licenses_summary_file': str,
    'licenses_output_directory': str,
    'licenses_summary_output_file': str,
    'quiet': bool,
    'include_transitive_dependencies': bool,
    'pom_file': str,
    'repositories': list,
    'local_repository': (str, bool),
    'include_scopes': list,
    'concurrency': int,
    'timeout': (int, float),
}


def _canonical_key(key: str) -> str:
    return _CAMEL_ALIASES.get(key, key.replace('-', '_'))


def _coerce(raw: dict[str, Any], basedir: Path, source: str) -> dict[str, Any]:
    """Validate a raw TOML table and convert it to dataclass field values.

    Raises:
        ConfigError: Listing every invalid key or value.
    """
    errors: list[str] = []
    values: dict[str, Any] = {}
    for key, value in raw.items():
        name = _canonical_key(key)
        expected = _FIELD_TYPES.get(name)
        if expected is None:
            errors.append(f'{source}: unknown key {key!r}')
            continue
        # bool is an int subclass; never accept it for numeric fields.
        if not isinstance(value, expected) or (isinstance(value, bool) and name in ('concurrency', 'timeout')):
            errors.append(f'{source}: {key!r} has the wrong type ({type(value).__name__})')
            continue
        if name in ('repositories', 'include_scopes'):
            if not all(isinstance(v, str) and v for v in value):
                errors.append(f'{source}: {key!r} must be a list of non-empty strings')
                continue
            value = tuple(value)
        elif name == 'local_repository':
            if value is True or value == '':
                errors.append(f'{source}: {key!r} must be a path, or false to disable')
                continue
            value = None if value is False else _resolve_path(value, basedir)
        elif name in _PATH_FIELDS:
            value = _resolve_path(value, basedir)
        elif name == 'concurrency' and value < 1:
            errors.append(f'{source}: {key!r} must be at least 1')
            continue
        elif name == 'timeout':
            if value <= 0:
                errors.append(f'{source}: {key!r} must be positive')
                continue
            value = float(value)
        values[name] = value
    if errors:
        raise ConfigError(errors)
    return values


def _resolve_path(value: str | Path, basedir: Path) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else basedir / path


# ── Loading ──────────────────────────────────────────────────────────


def find_config_file(basedir: Path) -> Path | None:
    """Return ``licensekit.toml`` or a ``pyproject.toml`` with a ``[tool.licensekit]`` table."""
    candidate = basedir / CONFIG_FILE_NAME
    if candidate.is_file():
        return candidate
    pyproject = basedir / 'pyproject.toml'
    if pyproject.is_file():
        try:
            with pyproject.open('rb') as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError):
            return None
        if PYPROJECT_TABLE in data.get('tool', {}):
            return pyproject
    return None


def _read_table(path: Path) -> dict[str, Any]:
    try:
        with path.open('rb') as f:
            data = tomllib.load(f)
    except OSError as exc:
        raise ConfigError([f'{path}: {exc.strerror or exc}']) from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError([f'{path}: {exc}']) from exc
    if path.name == 'pyproject.toml':
        table = data.get('tool', {}).get(PYPROJECT_TABLE, {})
        if not isinstance(table, dict):
            raise ConfigError([f'{path}: [tool.{PYPROJECT_TABLE}] must be a table'])
        return table
    return data


def load_config(
    basedir: Path,
    *,
    config_file: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> LicenseKitConfig:
    """Build the effective configuration.

    Args:
        basedir: Project base directory.
        config_file: Explicit config file; when ``None`` one is
            discovered with :func:`find_config_file`.
        overrides: Field values from the command line.  ``None`` values
            are ignored; paths may be relative to the current directory.

    Raises:
        ConfigError: If the config file is unreadable or invalid.
    """
    config = LicenseKitConfig.defaults(basedir)
    path = config_file if config_file is not None else find_config_file(config.basedir)
    if path is not None:
        config = replace(config, **_coerce(_read_table(path), config.basedir, str(path)))

    if overrides:
        known = {f.name for f in fields(LicenseKitConfig)}
        updates: dict[str, Any] = {}
        for name, value in overrides.items():
            if value is None:
                continue
            if name not in known:
                raise ConfigError([f'unknown option {name!r}'])
            if name in _PATH_FIELDS:
                value = Path(value).expanduser().resolve()
            elif name in ('repositories', 'include_scopes'):
                value = tuple(value)
            updates[name] = value
        config = replace(config, **updates)
    return config


# ── Template writer ──────────────────────────────────────────────────


def _ensure_tool_table(doc: tomlkit.TOMLDocument) -> tomlkit.items.Table:
    """Ensure ``[tool.licensekit]`` exists in a pyproject document.

    Returns:
        The ``[tool.licensekit]`` table (created if absent).
    """
    if 'tool' not in doc:
        doc.add(tomlkit.nl())
        doc.add('tool', tomlkit.table(is_super_table=True))
    tool = doc['tool']
    if PYPROJECT_TABLE not in tool:  # type: ignore[operator]  # tomlkit
        tool.add(PYPROJECT_TABLE, tomlkit.table())  # type: ignore[union-attr]  # tomlkit
    return tool[PYPROJECT_TABLE]  # type: ignore[index,return-value]  # tomlkit


def write_config_template(path: Path) -> bool:
    """Write the default settings into *path*, keeping existing content.

    For a ``pyproject.toml`` the settings go under ``[tool.licensekit]``;
    any other path is treated as a standalone ``licensekit.toml``.  Keys
    already present are left untouched.  Comments survive the edit.

    Returns:
        ``True`` if the file changed.

    Raises:
        ConfigError: If the existing file is not valid TOML.
    """
    text = path.read_text(encoding='utf-8') if path.is_file() else ''
    try:
        doc = tomlkit.parse(text)
    except tomlkit.exceptions.ParseError as exc:
        raise ConfigError([f'{path}: {exc}']) from exc
    table: tomlkit.TOMLDocument | tomlkit.items.Table
    table = _ensure_tool_table(doc) if path.name == 'pyproject.toml' else doc

    template: dict[str, Any] = {
        'licenses-summary-file': 'src/licenses.xml',
        'licenses-output-directory': 'target/licenses',
        'licenses-summary-output-file': 'target/licenses.xml',
        'quiet': False,
        'include-transitive-dependencies': True,
        'repositories': [DEFAULT_REPOSITORY],
        'concurrency': 1,
    }
    present = {_canonical_key(k) for k in table}
    changed = False
    for key, value in template.items():
        if _canonical_key(key) not in present:
            table.add(key, value)
            changed = True

    if changed:
        path.write_text(tomlkit.dumps(doc), encoding='utf-8')
    return changed
