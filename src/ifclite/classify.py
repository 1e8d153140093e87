"""Classification of parsed entities: shapes on products, variants for geometry items."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from ifclite.models import (
    BooleanResult,
    Entity,
    ExtrudedAreaSolid,
    FacetedBrep,
    MappedItem,
    PolygonalFaceSet,
    RepresentationItem,
    StepDocument,
    TriangulatedFaceSet,
    UnsupportedItem,
)
from ifclite.tokens import parse_enum, parse_float, parse_int_tuples, parse_reference, parse_reference_list

PRODUCT_DEFINITION_SHAPE = "IFCPRODUCTDEFINITIONSHAPE"

# IfcProduct.Representation is the seventh attribute of every product type.
_PRODUCT_REPRESENTATION_ARG = 6


def _triangulated_face_set(entity: Entity) -> TriangulatedFaceSet:
    # Coordinates, Normals, Closed, CoordIndex, ...
    return TriangulatedFaceSet(
        id=entity.id,
        type=entity.type,
        coordinates=parse_reference(entity.arg(0)),
        coord_index=tuple(parse_int_tuples(entity.arg(3))),
    )


def _polygonal_face_set(entity: Entity) -> PolygonalFaceSet:
    # Coordinates, Closed, Faces, PnIndex
    return PolygonalFaceSet(
        id=entity.id,
        type=entity.type,
        coordinates=parse_reference(entity.arg(0)),
        faces=tuple(parse_reference_list(entity.arg(2))),
    )


def _faceted_brep(entity: Entity) -> FacetedBrep:
    outer = parse_reference(entity.arg(0))
    return FacetedBrep(id=entity.id, type=entity.type, shells=(outer,) if outer is not None else ())


def _shell_model(entity: Entity) -> FacetedBrep:
    return FacetedBrep(
        id=entity.id, type=entity.type, shells=tuple(parse_reference_list(entity.arg(0)))
    )


def _extruded_area_solid(entity: Entity) -> ExtrudedAreaSolid:
    return ExtrudedAreaSolid(
        id=entity.id,
        type=entity.type,
        swept_area=parse_reference(entity.arg(0)),
        position=parse_reference(entity.arg(1)),
        direction=parse_reference(entity.arg(2)),
        depth=parse_float(entity.arg(3)),
    )


def _boolean_result(entity: Entity) -> BooleanResult:
    return BooleanResult(
        id=entity.id,
        type=entity.type,
        operator=parse_enum(entity.arg(0)),
        first_operand=parse_reference(entity.arg(1)),
        second_operand=parse_reference(entity.arg(2)),
    )


def _mapped_item(entity: Entity) -> MappedItem:
    return MappedItem(
        id=entity.id,
        type=entity.type,
        source=parse_reference(entity.arg(0)),
        target=parse_reference(entity.arg(1)),
    )


ITEM_CLASSIFIERS: dict[str, Callable[[Entity], RepresentationItem]] = {
    "IFCTRIANGULATEDFACESET": _triangulated_face_set,
    "IFCTRIANGULATEDIRREGULARNETWORK": _triangulated_face_set,
    "IFCPOLYGONALFACESET": _polygonal_face_set,
    "IFCFACETEDBREP": _faceted_brep,
    "IFCFACETEDBREPWITHVOIDS": _faceted_brep,
    "IFCSHELLBASEDSURFACEMODEL": _shell_model,
    "IFCFACEBASEDSURFACEMODEL": _shell_model,
    "IFCEXTRUDEDAREASOLID": _extruded_area_solid,
    "IFCBOOLEANRESULT": _boolean_result,
    "IFCBOOLEANCLIPPINGRESULT": _boolean_result,
    "IFCMAPPEDITEM": _mapped_item,
}


def classify_item(entity: Entity) -> RepresentationItem:
    """Map an entity onto its representation-item variant."""
    classifier = ITEM_CLASSIFIERS.get(entity.type)
    if classifier is None:
        return UnsupportedItem(id=entity.id, type=entity.type)
    return classifier(entity)


@dataclass
class EntityIndex:
    """Per-call lookup structure over one document's entities.

    Owns the id map, the product shape classification and a cache of
    classified representation items; create one per import.
    """

    by_id: dict[int, Entity]
    _items: dict[int, RepresentationItem] = field(default_factory=dict)

    @classmethod
    def from_document(cls, document: StepDocument) -> EntityIndex:
        by_id = {entity.id: entity for entity in document.entities}
        for entity_id, entity in list(by_id.items()):
            shape = _shape_reference(entity, by_id)
            if shape is not None:
                by_id[entity_id] = entity.model_copy(update={"shape": shape})
        return cls(by_id=by_id)

    def get(self, entity_id: int | None) -> Entity | None:
        if entity_id is None:
            return None
        return self.by_id.get(entity_id)

    def item(self, entity_id: int) -> RepresentationItem | None:
        """Classified variant for ``entity_id``; None when the id is unknown."""
        cached = self._items.get(entity_id)
        if cached is not None:
            return cached
        entity = self.by_id.get(entity_id)
        if entity is None:
            return None
        variant = classify_item(entity)
        self._items[entity_id] = variant
        return variant


def _shape_reference(entity: Entity, by_id: dict[int, Entity]) -> int | None:
    ref = parse_reference(entity.arg(_PRODUCT_REPRESENTATION_ARG))
    if ref is None:
        return None
    target = by_id.get(ref)
    if target is None or target.type != PRODUCT_DEFINITION_SHAPE:
        return None
    return ref
