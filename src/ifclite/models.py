"""Pydantic v2 models for parsed documents, representation items and options."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

KNOWN_SCHEMAS: frozenset[str] = frozenset(
    {
        "IFC2X3",
        "IFC4",
        "IFC4X1",
        "IFC4X2",
        "IFC4X3",
        "IFC4X3_TC1",
        "IFC4X3_ADD1",
        "IFC4X3_ADD2",
    }
)

DEFAULT_SCHEMA = "IFC4X3_ADD2"


class Entity(BaseModel):
    """One ``#id=TYPE(args);`` statement.

    ``args`` are raw tokens, uninterpreted. ``shape`` is filled in by the
    classification step (see :mod:`ifclite.classify`) with the id of the
    product-definition-shape the entity carries, if any.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    type: str
    args: tuple[str, ...] = ()
    raw: str = ""
    shape: int | None = None

    def arg(self, index: int) -> str | None:
        """Return the raw token at ``index``, or None past the end."""
        if 0 <= index < len(self.args):
            return self.args[index]
        return None


class SkippedStatement(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    index: int
    text: str
    reason: str


class StepDocument(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    header: str = ""
    schemas: tuple[str, ...] = ()
    entities: tuple[Entity, ...] = ()
    skipped: tuple[SkippedStatement, ...] = ()


# --- Representation items -------------------------------------------------
#
# Each supported geometry entity family maps onto exactly one variant; any
# other type tag becomes UnsupportedItem.


class _Item(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    type: str


class TriangulatedFaceSet(_Item):
    kind: Literal["triangulated_face_set"] = "triangulated_face_set"
    coordinates: int | None
    coord_index: tuple[tuple[int, ...], ...] = ()


class PolygonalFaceSet(_Item):
    kind: Literal["polygonal_face_set"] = "polygonal_face_set"
    coordinates: int | None
    faces: tuple[int, ...] = ()


class FacetedBrep(_Item):
    kind: Literal["faceted_brep"] = "faceted_brep"
    shells: tuple[int, ...] = ()


class ExtrudedAreaSolid(_Item):
    kind: Literal["extruded_area_solid"] = "extruded_area_solid"
    swept_area: int | None
    position: int | None = None
    direction: int | None = None
    depth: float | None = None


class BooleanResult(_Item):
    kind: Literal["boolean_result"] = "boolean_result"
    operator: str | None = None
    first_operand: int | None = None
    second_operand: int | None = None


class MappedItem(_Item):
    kind: Literal["mapped_item"] = "mapped_item"
    source: int | None = None
    target: int | None = None


class UnsupportedItem(_Item):
    kind: Literal["unsupported"] = "unsupported"


RepresentationItem = Annotated[
    Union[
        TriangulatedFaceSet,
        PolygonalFaceSet,
        FacetedBrep,
        ExtrudedAreaSolid,
        BooleanResult,
        MappedItem,
        UnsupportedItem,
    ],
    Field(discriminator="kind"),
]


# --- Options ----------------------------------------------------------------


class ImportOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    circle_segments: int = Field(default=32, ge=3)
    compute_normals: bool = True
    apply_object_placement: bool = True
    representation_identifiers: tuple[str, ...] = ("Body",)


class ExportOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    schema_name: str = DEFAULT_SCHEMA
    application: str = "ifclite"
    timestamp: datetime | None = None
    precision: int = Field(default=6, ge=1, le=15)

    @field_validator("schema_name")
    @classmethod
    def _upper_schema(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("schema_name must not be empty")
        return value
