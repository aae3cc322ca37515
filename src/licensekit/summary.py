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

"""Read and write license summary documents.

The same XML shape serves as the generated summary (the cache that
makes repeated builds cheap) and as the hand-curated override file::

    <licenseSummary>
      <dependencies>
        <dependency>
          <groupId>org.example</groupId>
          <artifactId>widget</artifactId>
          <version>1.0</version>
          <licenses>
            <license>
              <name>Apache 2.0</name>
              <url>https://www.apache.org/licenses/LICENSE-2.0</url>
            </license>
          </licenses>
        </dependency>
      </dependencies>
    </licenseSummary>

``version`` and ``name`` are optional.  License order is preserved on
both read and write.  Text values are stripped of surrounding
whitespace on read, so a padded ``name`` or ``url`` comes back trimmed
after a write and read; a name that is only whitespace reads as no name.

Usage::

    from licensekit.summary import load_license_summary, write_license_summary

    entries = load_license_summary(Path('target/licenses.xml'))
    write_license_summary(entries, Path('target/licenses.xml'))
"""

from __future__ import annotations

import os
import tempfile
import xml.etree.ElementTree as ET  # noqa: N817, S405
from collections.abc import Iterable
from pathlib import Path
from typing import IO

from licensekit._types import DependencyIdentity, DependencyProject, LicenseRecord
from licensekit._xml import child_text, local_name, path_children, safe_xml_parser
from licensekit.errors import MalformedSummaryError, SummaryWriteError
from licensekit.logging import get_logger

log = get_logger('licensekit.summary')

ROOT_TAG = 'licenseSummary'

__all__ = [
    'load_license_summary',
    'parse_license_summary',
    'write_license_summary',
]


def parse_license_summary(stream: IO[bytes] | IO[str]) -> list[DependencyProject]:
    """Parse a summary document into entries, in document order.

    Args:
        stream: An open file (binary or text) positioned at the start
            of the document.

    Returns:
        One :class:`DependencyProject` per ``<dependency>`` element.

    Raises:
        MalformedSummaryError: If the document is not well-formed XML
            or a required field is missing.
    """
    try:
        tree = ET.parse(stream, parser=safe_xml_parser())  # noqa: S314
    except ET.ParseError as exc:
        raise MalformedSummaryError(f'not well-formed XML ({exc})') from exc

    root = tree.getroot()
    if local_name(root.tag) != ROOT_TAG:
        raise MalformedSummaryError(f'expected <{ROOT_TAG}> root element, found <{local_name(root.tag)}>')

    entries: list[DependencyProject] = []
    for index, dep in enumerate(path_children(root, 'dependencies', 'dependency')):
        entries.append(_parse_dependency(dep, index))
    return entries


def _parse_dependency(dep: ET.Element, index: int) -> DependencyProject:
    group_id = child_text(dep, 'groupId')
    artifact_id = child_text(dep, 'artifactId')
    if not group_id or not artifact_id:
        raise MalformedSummaryError(f'dependency #{index + 1} is missing groupId or artifactId')

    licenses: list[LicenseRecord] = []
    for lic in path_children(dep, 'licenses', 'license'):
        url = child_text(lic, 'url')
        if not url:
            raise MalformedSummaryError(f'a license of {group_id}:{artifact_id} has no <url>')
        # An empty <name/> counts as no name.
        name = child_text(lic, 'name') or None
        licenses.append(LicenseRecord(url=url, name=name))

    return DependencyProject(
        identity=DependencyIdentity(group_id, artifact_id),
        version=child_text(dep, 'version'),
        licenses=tuple(licenses),
    )


def load_license_summary(path: Path) -> list[DependencyProject]:
    """Open *path* and parse it with :func:`parse_license_summary`.

    Raises:
        MalformedSummaryError: If the document is malformed; the error
            carries *path*.
        OSError: If the file cannot be opened.
    """
    with path.open('rb') as fh:
        try:
            entries = parse_license_summary(fh)
        except MalformedSummaryError as exc:
            raise MalformedSummaryError(str(exc), path=path) from exc
    log.debug('summary_loaded', path=str(path), entries=len(entries))
    return entries


def _build_tree(entries: Iterable[DependencyProject]) -> ET.ElementTree:
    root = ET.Element(ROOT_TAG)
    deps_elem = ET.SubElement(root, 'dependencies')
    for entry in entries:
        dep = ET.SubElement(deps_elem, 'dependency')
        ET.SubElement(dep, 'groupId').text = entry.identity.group_id
        ET.SubElement(dep, 'artifactId').text = entry.identity.artifact_id
        ET.SubElement(dep, 'version').text = entry.version
        lics = ET.SubElement(dep, 'licenses')
        for record in entry.licenses:
            lic = ET.SubElement(lics, 'license')
            if record.name is not None:
                ET.SubElement(lic, 'name').text = record.name
            ET.SubElement(lic, 'url').text = record.url
    tree = ET.ElementTree(root)
    ET.indent(tree, space='  ')
    return tree


def write_license_summary(entries: Iterable[DependencyProject], path: Path) -> None:
    """Serialize *entries* to *path*, creating parent directories.

    The document is written to a temporary sibling and moved into
    place, so a failed write never leaves a truncated summary behind.

    Raises:
        SummaryWriteError: If the file or its directory cannot be
            written.
    """
    entries = list(entries)
    tree = _build_tree(entries)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'wb') as fh:
                tree.write(fh, encoding='UTF-8', xml_declaration=True)
                fh.write(b'\n')
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise SummaryWriteError(f'Unable to write license summary {path}: {exc}') from exc
    log.debug('summary_written', path=str(path), entries=len(entries))
