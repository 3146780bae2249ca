from __future__ import annotations

import numpy as np
import pytest

from conftest import metadata_xml
from metadata import Offset, describe_srs, parse_metadata, parse_offset, read_metadata
from objErrors import MalformedMetadata
from transformobj import translate_line


def test_parse_offset_returns_exact_components():
    offset = parse_offset(metadata_xml("498521.12878285768,389878.04510264623,545.18800000022418"))

    assert offset == Offset(498521.12878285768, 389878.04510264623, 545.18800000022418)
    assert offset.vector.dtype.name == "float64"


def test_parse_offset_accepts_spaces_and_negative_numbers():
    assert parse_offset(metadata_xml(" -1.5 , 2e3,0 ")) == Offset(-1.5, 2000.0, 0.0)


def test_parse_offset_ignores_namespaces():
    text = '<m:ModelMetadata xmlns:m="urn:test"><m:SRSOrigin>4,5,6</m:SRSOrigin></m:ModelMetadata>'

    assert parse_offset(text) == Offset(4.0, 5.0, 6.0)


@pytest.mark.parametrize("origin", ["1,2", "1,2,3,4", "1,abc,3", "", "1,,3", "nan,0,0"])
def test_parse_offset_rejects_bad_triples(origin):
    with pytest.raises(MalformedMetadata):
        parse_offset(metadata_xml(origin))


def test_parse_offset_missing_field():
    with pytest.raises(MalformedMetadata, match="not found"):
        parse_offset("<ModelMetadata><SRS>EPSG:4326</SRS></ModelMetadata>")


def test_parse_offset_not_xml():
    with pytest.raises(MalformedMetadata):
        parse_offset("SRSOrigin=1,2,3")


def test_translate_then_negated_offset_is_identity():
    offset = parse_offset(metadata_xml("498521.128782858,389878.045102646,545.188"))

    there = translate_line("v -12.345678 98.7654321 0.001", offset)
    back = translate_line(there, offset.negated())

    x, y, z = (float(v) for v in back.split()[1:])
    assert x == pytest.approx(-12.345678, rel=1e-9)
    assert y == pytest.approx(98.7654321, rel=1e-9)
    assert z == pytest.approx(0.001, rel=1e-9, abs=1e-9)


def test_parse_metadata_reads_srs(tmp_path):
    path = tmp_path / "metadata.xml"
    path.write_text(metadata_xml("1,2,3", srs="EPSG:32650"), encoding="utf-8")

    record = read_metadata(path)

    assert record.offset == Offset(1.0, 2.0, 3.0)
    assert record.srs == "EPSG:32650"
    assert record.source == str(path)


def test_parse_metadata_without_srs():
    record = parse_metadata("<ModelMetadata><SRSOrigin>0,0,0</SRSOrigin></ModelMetadata>")

    assert record.srs is None


def test_read_metadata_missing_file(tmp_path):
    with pytest.raises(MalformedMetadata):
        read_metadata(tmp_path / "metadata.xml")


def test_describe_srs():
    assert "UTM zone 50N" in describe_srs("EPSG:32650")
    assert describe_srs("not-a-crs") == "not-a-crs"
    assert describe_srs(None) == "unknown SRS"


def test_offset_vector_is_float64_and_reused():
    offset = Offset(498521.128782858, 389878.045102646, 545.188)

    assert offset.vector.dtype == np.float64
    assert offset.vector is offset.vector
    assert offset.vector.tolist() == [498521.128782858, 389878.045102646, 545.188]


@pytest.mark.parametrize("origin", ["nan,0,0", "0,inf,0", "0,0,-inf"])
def test_parse_offset_rejects_non_finite(origin):
    with pytest.raises(MalformedMetadata, match="non-finite"):
        parse_offset(metadata_xml(origin))
