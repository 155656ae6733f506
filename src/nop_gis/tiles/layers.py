from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import HTTPException

GEOJSON = "geojson"
MVT = "mvt"


@dataclass(frozen=True)
class LayerConfig:
    name: str
    table: str
    code_column: str
    properties: tuple[str, ...]
    requires_filter: bool
    encodings: frozenset[str]
    multi: bool
    label: str
    mvt_view: str | None = None
    mvt_properties: tuple[str, ...] = field(default_factory=tuple)


LAYERS: dict[str, LayerConfig] = {
    "desas": LayerConfig(
        name="desas",
        table="desas",
        code_column="d_kd_kel",
        properties=("d_kd_kel", "d_nm_kel"),
        requires_filter=False,
        encodings=frozenset({GEOJSON}),
        multi=True,
        label="Desa",
    ),
    "bloks": LayerConfig(
        name="bloks",
        table="bloks",
        code_column="d_blok",
        properties=("d_blok",),
        requires_filter=True,
        encodings=frozenset({GEOJSON}),
        multi=False,
        label="Blok",
    ),
    "nops": LayerConfig(
        name="nops",
        table="nops",
        code_column="d_nop",
        properties=("d_nop", "d_luas"),
        requires_filter=True,
        encodings=frozenset({GEOJSON, MVT}),
        multi=True,
        label="NOP",
        mvt_view="nops_mvt",
        mvt_properties=("d_nop", "d_luas"),
    ),
    "bangunans": LayerConfig(
        name="bangunans",
        table="bangunans",
        code_column="d_nop",
        properties=("d_nop",),
        requires_filter=True,
        encodings=frozenset({GEOJSON, MVT}),
        multi=True,
        label="Bangunan",
        mvt_view="bangunans_mvt",
        mvt_properties=("d_nop",),
    ),
}

# Polygon type names used by the save form.
POLYGON_TYPES: dict[str, str] = {
    "nop": "nops",
    "blok": "bloks",
    "bangunan": "bangunans",
}


def get_layer(name: str, encoding: str | None = None) -> LayerConfig:
    layer = LAYERS.get(name)
    if layer is None or (encoding is not None and encoding not in layer.encodings):
        raise HTTPException(
            status_code=404,
            detail={"reason": "Unknown layer", "layer": name, "encoding": encoding},
        )
    return layer
