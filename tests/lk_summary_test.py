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

"""Tests for the license summary reader and writer."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from licensekit._types import DependencyIdentity, DependencyProject, LicenseRecord
from licensekit.errors import MalformedSummaryError, SummaryWriteError
from licensekit.summary import load_license_summary, parse_license_summary, write_license_summary

# ── Fixtures ─────────────────────────────────────────────────────────

_SUMMARY = b"""\
<?xml version="1.0" encoding="UTF-8"?>
<licenseSummary>
  <dependencies>
    <dependency>
      <groupId>org.apache.commons</groupId>
      <artifactId>commons-lang3</artifactId>
      <version>3.14.0</version>
      <licenses>
        <license>
          <name>Apache-2.0</name>
          <url>https://www.apache.org/licenses/LICENSE-2.0.txt</url>
        </license>
      </licenses>
    </dependency>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>dual</artifactId>
      <licenses>
        <license>
          <url> https://example.com/GPL </url>
        </license>
        <license>
          <name></name>
          <url>https://example.com/MIT</url>
        </license>
      </licenses>
    </dependency>
    <dependency>
      <groupId>org.example</groupId>
      <artifactId>bare</artifactId>
      <version>0.1</version>
    </dependency>
  </dependencies>
</licenseSummary>
"""


def _project(group: str, artifact: str, version: str, *licenses: LicenseRecord) -> DependencyProject:
    return DependencyProject(DependencyIdentity(group, artifact), version, tuple(licenses))


# ── parse_license_summary ────────────────────────────────────────────


class TestParseLicenseSummary:
    """Tests for parse_license_summary()."""

    def test_parses_entries_in_order(self) -> None:
        """Test parses entries in order."""
        entries = parse_license_summary(io.BytesIO(_SUMMARY))
        assert [e.key for e in entries] == [
            'org.apache.commons:commons-lang3',
            'org.example:dual',
            'org.example:bare',
        ]

    def test_fields(self) -> None:
        """Test fields."""
        first = parse_license_summary(io.BytesIO(_SUMMARY))[0]
        assert first.version == '3.14.0'
        assert first.licenses == (LicenseRecord(url='https://www.apache.org/licenses/LICENSE-2.0.txt', name='Apache-2.0'),)

    def test_optional_version_and_name(self) -> None:
        """Missing version is empty; missing or empty name is None."""
        dual = parse_license_summary(io.BytesIO(_SUMMARY))[1]
        assert dual.version == ''
        assert dual.licenses == (
            LicenseRecord(url='https://example.com/GPL'),
            LicenseRecord(url='https://example.com/MIT'),
        )

    def test_no_licenses_element(self) -> None:
        """Test no licenses element."""
        bare = parse_license_summary(io.BytesIO(_SUMMARY))[2]
        assert bare.licenses == ()

    def test_text_stream(self) -> None:
        """Text streams are accepted too."""
        entries = parse_license_summary(io.StringIO(_SUMMARY.decode().replace('encoding="UTF-8"', '')))
        assert len(entries) == 3

    def test_empty_summary(self) -> None:
        """Test empty summary."""
        assert parse_license_summary(io.BytesIO(b'<licenseSummary/>')) == []

    def test_not_xml(self) -> None:
        """Test not xml."""
        with pytest.raises(MalformedSummaryError, match='not well-formed'):
            parse_license_summary(io.BytesIO(b'<licenseSummary><dependencies>'))

    def test_wrong_root(self) -> None:
        """Test wrong root."""
        with pytest.raises(MalformedSummaryError, match='licenseSummary'):
            parse_license_summary(io.BytesIO(b'<project/>'))

    def test_missing_artifact_id(self) -> None:
        """Test missing artifact id."""
        doc = b'<licenseSummary><dependencies><dependency><groupId>g</groupId></dependency></dependencies></licenseSummary>'
        with pytest.raises(MalformedSummaryError, match='dependency #1'):
            parse_license_summary(io.BytesIO(doc))

    def test_license_without_url(self) -> None:
        """Test license without url."""
        doc = (
            b'<licenseSummary><dependencies><dependency>'
            b'<groupId>g</groupId><artifactId>a</artifactId>'
            b'<licenses><license><name>MIT</name></license></licenses>'
            b'</dependency></dependencies></licenseSummary>'
        )
        with pytest.raises(MalformedSummaryError, match='g:a'):
            parse_license_summary(io.BytesIO(doc))


# ── load / write ─────────────────────────────────────────────────────


class TestLoadLicenseSummary:
    """Tests for load_license_summary()."""

    def test_loads_file(self, tmp_path: Path) -> None:
        """Test loads file."""
        path = tmp_path / 'licenses.xml'
        path.write_bytes(_SUMMARY)
        assert len(load_license_summary(path)) == 3

    def test_error_carries_path(self, tmp_path: Path) -> None:
        """Test error carries path."""
        path = tmp_path / 'licenses.xml'
        path.write_text('garbage', encoding='utf-8')
        with pytest.raises(MalformedSummaryError) as info:
            load_license_summary(path)
        assert info.value.path == path
        assert str(path) in str(info.value)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test missing file."""
        with pytest.raises(OSError):
            load_license_summary(tmp_path / 'nope.xml')


class TestWriteLicenseSummary:
    """Tests for write_license_summary()."""

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        """Test creates parent directories."""
        path = tmp_path / 'target' / 'nested' / 'licenses.xml'
        write_license_summary([_project('g', 'a', '1.0')], path)
        assert path.is_file()
        assert not [p for p in path.parent.iterdir() if p.name.endswith('.tmp')]

    def test_omits_missing_name(self, tmp_path: Path) -> None:
        """Test omits missing name."""
        path = tmp_path / 'licenses.xml'
        write_license_summary([_project('g', 'a', '1.0', LicenseRecord(url='https://x/LICENSE'))], path)
        text = path.read_text(encoding='utf-8')
        assert '<name>' not in text
        assert '<url>https://x/LICENSE</url>' in text

    def test_round_trip(self, tmp_path: Path) -> None:
        """Parsing written output reproduces keys, versions, and license lists."""
        entries = [
            _project(
                'org.example',
                'multi',
                '2.1',
                LicenseRecord(url='https://x/GPL-2.0', name='GPL <2.0> & friends'),
                LicenseRecord(url='https://x/MIT'),
            ),
            _project('org.example', 'none', ''),
            _project('io.other', 'thing', '1.0-SNAPSHOT', LicenseRecord(url='https://y/LICENSE?x=1&y=2', name='Y')),
        ]
        path = tmp_path / 'licenses.xml'
        write_license_summary(entries, path)
        assert {e.key: e for e in load_license_summary(path)} == {e.key: e for e in entries}

    def test_overwrites(self, tmp_path: Path) -> None:
        """Test overwrites."""
        path = tmp_path / 'licenses.xml'
        write_license_summary([_project('g', 'a', '1.0')], path)
        write_license_summary([_project('g', 'b', '2.0')], path)
        assert [e.key for e in load_license_summary(path)] == ['g:b']

    def test_unwritable(self, tmp_path: Path) -> None:
        """A file where the parent directory should be is a write error."""
        blocker = tmp_path / 'target'
        blocker.write_text('', encoding='utf-8')
        with pytest.raises(SummaryWriteError):
            write_license_summary([], blocker / 'licenses.xml')

    def test_padded_text_is_trimmed(self, tmp_path: Path) -> None:
        """Surrounding whitespace in names and URLs is dropped on read."""
        path = tmp_path / 'licenses.xml'
        padded = LicenseRecord(url='  https://example.com/MIT \n', name=' MIT ')
        blank = LicenseRecord(url='https://example.com/BSD', name='   ')
        write_license_summary([_project('g', 'a', '1.0', padded, blank)], path)
        (entry,) = load_license_summary(path)
        assert entry.licenses == (
            LicenseRecord(url='https://example.com/MIT', name='MIT'),
            LicenseRecord(url='https://example.com/BSD'),
        )
