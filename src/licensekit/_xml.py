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

"""XML helpers shared by the summary store and the POM reader.

Maven POMs are usually namespaced (``http://maven.apache.org/POM/4.0.0``)
but not always, and hand-written summary files never are.  The helpers
here look children up by local name so callers never deal with the
``{namespace}tag`` form.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET  # noqa: N817, S405
from collections.abc import Iterator


def safe_xml_parser() -> ET.XMLParser:
    """Return an XMLParser with external entity resolution disabled."""
    return ET.XMLParser()  # noqa: S314


def safe_fromstring(text: str | bytes) -> ET.Element:
    """Parse an XML document with a hardened parser."""
    return ET.fromstring(text, parser=safe_xml_parser())  # noqa: S314


def local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from *tag*."""
    return tag.rsplit('}', 1)[-1]


def child(elem: ET.Element, name: str) -> ET.Element | None:
    """Return the first direct child called *name*, ignoring namespaces."""
    for sub in elem:
        if isinstance(sub.tag, str) and local_name(sub.tag) == name:
            return sub
    return None


def children(elem: ET.Element, name: str) -> Iterator[ET.Element]:
    """Yield every direct child called *name*, ignoring namespaces."""
    for sub in elem:
        if isinstance(sub.tag, str) and local_name(sub.tag) == name:
            yield sub


def child_text(elem: ET.Element, name: str) -> str:
    """Stripped text of the child called *name*, or ``''``."""
    sub = child(elem, name)
    if sub is None or sub.text is None:
        return ''
    return sub.text.strip()


def path_children(elem: ET.Element, *path: str) -> Iterator[ET.Element]:
    """Walk ``path[:-1]`` as single children and yield every ``path[-1]``.

    ``path_children(pom, 'licenses', 'license')`` yields each
    ``<license>`` under ``<licenses>``.
    """
    node: ET.Element | None = elem
    for name in path[:-1]:
        node = child(node, name)
        if node is None:
            return
    yield from children(node, path[-1])
