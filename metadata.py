"""
Metadata reader.

Reality-mesh exports ship a ``metadata.xml`` next to the tiles, e.g.::

    <ModelMetadata version="1">
        <SRS>EPSG:32650</SRS>
        <SRSOrigin>498521.128782858,389878.045102646,545.188</SRSOrigin>
    </ModelMetadata>

The tile vertices are stored relative to ``SRSOrigin``; adding the origin back
gives coordinates in the SRS.
"""
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Sequence

import numpy as np
from pyproj import CRS
from pyproj.exceptions import CRSError

from config import ORIGIN_FIELD, SRS_FIELD
from objErrors import MalformedMetadata

_SEPARATOR = re.compile(r"\s*,\s*")


@dataclass(frozen=True)
class Offset:
    """Translation vector added to every vertex."""
    x: float
    y: float
    z: float

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "Offset":
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)

    @cached_property
    def vector(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    def negated(self) -> "Offset":
        return Offset(-self.x, -self.y, -self.z)

    def __str__(self):
        return f"({self.x!r}, {self.y!r}, {self.z!r})"


@dataclass(frozen=True)
class MetadataRecord:
    offset: Offset
    srs: Optional[str] = None
    source: Optional[str] = None


def _local_name(tag):
    # '{namespace}SRSOrigin' -> 'SRSOrigin'
    return tag.rsplit('}', 1)[-1]


def _find_text(root, field):
    for element in root.iter():
        if isinstance(element.tag, str) and _local_name(element.tag) == field:
            return (element.text or "").strip()
    return None


def _parse_root(text):
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedMetadata(f"Metadata is not valid XML: {e}") from e


def _parse_triple(value, field):
    if not value:
        raise MalformedMetadata(f"Field '{field}' is empty")

    parts = [p for p in _SEPARATOR.split(value) if p]
    if len(parts) != 3:
        raise MalformedMetadata(
            f"Field '{field}' must hold three comma-separated numbers, got {len(parts)}: '{value}'"
        )

    try:
        numbers = [float(p) for p in parts]
    except ValueError as e:
        raise MalformedMetadata(f"Field '{field}' has a non-numeric component: '{value}'") from e

    if not np.isfinite(numbers).all():
        raise MalformedMetadata(f"Field '{field}' has a non-finite component: '{value}'")

    return Offset.from_values(numbers)


def parse_offset(text, field=ORIGIN_FIELD):
    """
    Extract the origin offset from the text of a metadata document.

    Args:
        text (str): Content of the metadata document
        field (str): Element holding the comma-separated x,y,z triple

    Returns:
        Offset: Parsed translation vector

    Raises:
        MalformedMetadata: document is not XML, the field is missing, or it
            does not hold exactly three numbers
    """
    return _offset_from_root(_parse_root(text), field)


def _offset_from_root(root, field):
    value = _find_text(root, field)
    if value is None:
        raise MalformedMetadata(f"Field '{field}' not found in metadata")
    return _parse_triple(value, field)


def parse_metadata(text, field=ORIGIN_FIELD, source=None):
    """Parse the offset and, when present, the SRS definition."""
    root = _parse_root(text)
    offset = _offset_from_root(root, field)
    srs = _find_text(root, SRS_FIELD) or None
    return MetadataRecord(offset=offset, srs=srs, source=source)


def read_metadata(path, field=ORIGIN_FIELD):
    """Read and parse a metadata document from disk."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except OSError as e:
        raise MalformedMetadata(f"Cannot read metadata '{path}': {e}") from e
    return parse_metadata(text, field, source=str(path))


def describe_srs(srs):
    """Return a readable CRS name for an SRS definition, or the definition itself."""
    if not srs:
        return "unknown SRS"
    try:
        return CRS.from_user_input(srs).name
    except CRSError:
        return srs
