from __future__ import annotations

from pathlib import Path

import pytest

from metadata import Offset

METADATA_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<ModelMetadata version="1">
    <SRS>{srs}</SRS>
    <SRSOrigin>{origin}</SRSOrigin>
    <Texture>
        <ColorSource>Visible</ColorSource>
    </Texture>
</ModelMetadata>
"""


def metadata_xml(origin="1,2,3", srs="EPSG:32650") -> str:
    return METADATA_TEMPLATE.format(origin=origin, srs=srs)


def write_obj(path: Path, lines: list[str], newline: str = "\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes("".join(line + newline for line in lines).encode("utf-8"))
    return path


def cube_lines(vertices: int = 10) -> list[str]:
    lines = ["# test mesh", "mtllib a.mtl", "o block"]
    lines += [f"v {i}.5 {i * 2}.25 {i * 3}.125" for i in range(vertices)]
    lines += ["vt 0.5 0.5", "vn 0 0 1", "usemtl m0", "f 1/1/1 2/1/1 3/1/1", ""]
    return lines


@pytest.fixture
def offset() -> Offset:
    return Offset(1.0, 2.0, 3.0)


@pytest.fixture
def srs_offset() -> Offset:
    return Offset(498521.128782858, 389878.045102646, 545.188)


@pytest.fixture
def mesh_dir(tmp_path: Path) -> Path:
    (tmp_path / "metadata.xml").write_text(metadata_xml("1,2,3"), encoding="utf-8")
    write_obj(tmp_path / "Data" / "Tile_0" / "a.obj", cube_lines(10))
    return tmp_path
