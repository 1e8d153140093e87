"""Geometry interpreter: representation items to triangle meshes.

Each supported representation kind is handled by one method, selected by the
item's classified variant (see :mod:`ifclite.classify`). Every branch either
returns a mesh in the item's local coordinates or reports the item as absent;
malformed input never propagates as an exception.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from ifclite.classify import EntityIndex
from ifclite.errors import GeometryError
from ifclite.models import (
    BooleanResult,
    Entity,
    ExtrudedAreaSolid,
    FacetedBrep,
    ImportOptions,
    MappedItem,
    PolygonalFaceSet,
    RepresentationItem,
    TriangulatedFaceSet,
    UnsupportedItem,
)
from ifclite.placement import (
    cartesian_point,
    direction,
    frame_from_axis2placement,
    frame_from_operator,
)
from ifclite.tessellation import (
    MeshData,
    circle_profile,
    extrude_profile,
    fan_triangulate,
    make_mesh,
    merge_meshes,
    rectangle_profile,
    strip_closing_point,
    transform_mesh,
)
from ifclite.tokens import (
    parse_enum,
    parse_float,
    parse_float_tuples,
    parse_int_tuple,
    parse_reference,
    parse_reference_list,
    unquote,
)
from ifclite.warning_policy import (
    CYCLE_DETECTED,
    UNRESOLVED_REFERENCE,
    UNSUPPORTED_ITEM,
    WarningPolicy,
    emit_warning,
)

SHAPE_REPRESENTATION_TYPES: frozenset[str] = frozenset(
    {"IFCSHAPEREPRESENTATION", "IFCTOPOLOGYREPRESENTATION", "IFCSTYLEDREPRESENTATION"}
)

# Mapped items and shape representations may nest; deeper chains are absent.
MAX_ITEM_NESTING = 64

_RECTANGLE_PROFILES = frozenset(
    {"IFCRECTANGLEPROFILEDEF", "IFCROUNDEDRECTANGLEPROFILEDEF", "IFCRECTANGLEHOLLOWPROFILEDEF"}
)
_CIRCLE_PROFILES = frozenset({"IFCCIRCLEPROFILEDEF", "IFCCIRCLEHOLLOWPROFILEDEF"})
_ARBITRARY_PROFILES = frozenset(
    {"IFCARBITRARYCLOSEDPROFILEDEF", "IFCARBITRARYPROFILEDEFWITHVOIDS"}
)


@dataclass
class GeometryInterpreter:
    """Resolves representation items of one document into meshes.

    ``resolving`` holds the ids of items currently being resolved; an item
    met again while it is still on that path is reported as a cycle and
    treated as absent. Create one interpreter per import.
    """

    index: EntityIndex
    options: ImportOptions = field(default_factory=ImportOptions)
    policy: WarningPolicy | None = None
    resolving: set[int] = field(default_factory=set)

    def __post_init__(self) -> None:
        self._handlers: dict[type, Callable[[RepresentationItem], MeshData | None]] = {
            TriangulatedFaceSet: self._triangulated_face_set,
            PolygonalFaceSet: self._polygonal_face_set,
            FacetedBrep: self._faceted_brep,
            ExtrudedAreaSolid: self._extruded_area_solid,
            MappedItem: self._mapped_item,
            UnsupportedItem: self._unsupported,
        }

    # -- entry points ---------------------------------------------------------

    def resolve_item(self, item_id: int | None) -> MeshData | None:
        """Mesh for one representation item, or None when it is unavailable."""
        if item_id is None:
            return None
        if item_id in self.resolving:
            emit_warning(CYCLE_DETECTED, f"Item #{item_id} references itself", policy=self.policy)
            return None

        variant = self.index.item(item_id)
        if variant is None:
            emit_warning(
                UNRESOLVED_REFERENCE, f"Representation item #{item_id} not found", policy=self.policy
            )
            return None

        if isinstance(variant, BooleanResult):
            # The second operand is never subtracted or united, so a boolean
            # chain collapses onto the item at the bottom of its first operands.
            return self.resolve_item(self._boolean_base(variant))

        if len(self.resolving) >= MAX_ITEM_NESTING:
            emit_warning(
                UNSUPPORTED_ITEM,
                f"#{item_id} {variant.type}: nested more than {MAX_ITEM_NESTING} items deep",
                policy=self.policy,
            )
            return None

        self.resolving.add(item_id)
        try:
            mesh = self._handlers[type(variant)](variant)
        except GeometryError as e:
            emit_warning(UNSUPPORTED_ITEM, f"#{item_id} {variant.type}: {e}", policy=self.policy)
            return None
        finally:
            self.resolving.discard(item_id)

        if mesh is None or mesh.is_empty:
            return None
        return mesh

    def _boolean_base(self, item: BooleanResult) -> int | None:
        """First non-boolean item reached by following first operands."""
        seen = {item.id}
        current = item.first_operand
        while current is not None:
            variant = self.index.item(current)
            if not isinstance(variant, BooleanResult):
                return current
            if current in seen:
                emit_warning(
                    CYCLE_DETECTED,
                    f"First operands of boolean #{item.id} loop back to #{current}",
                    policy=self.policy,
                )
                return None
            seen.add(current)
            current = variant.first_operand
        return None

    def resolve_representation(self, representation_id: int | None) -> MeshData | None:
        """Merged mesh of all items of a shape representation."""
        entity = self.index.get(representation_id)
        if entity is None or entity.type not in SHAPE_REPRESENTATION_TYPES:
            return None
        meshes = [
            mesh
            for mesh in (self.resolve_item(ref) for ref in parse_reference_list(entity.arg(3)))
            if mesh is not None
        ]
        return merge_meshes(meshes) if meshes else None

    def resolve_shape(self, shape_id: int | None) -> MeshData | None:
        """Mesh of a product-definition-shape.

        Representations whose identifier is in
        ``options.representation_identifiers`` are tried first; the others are
        used only when the preferred ones yield no geometry.
        """
        entity = self.index.get(shape_id)
        if entity is None:
            return None

        wanted = {name.upper() for name in self.options.representation_identifiers}
        preferred: list[int] = []
        others: list[int] = []
        for ref in parse_reference_list(entity.arg(2)):
            representation = self.index.get(ref)
            if representation is None:
                emit_warning(
                    UNRESOLVED_REFERENCE, f"Representation #{ref} not found", policy=self.policy
                )
                continue
            identifier = unquote(representation.arg(1)).upper()
            (preferred if identifier in wanted else others).append(ref)

        for group in (preferred, others):
            meshes = [
                mesh for mesh in (self.resolve_representation(ref) for ref in group) if mesh is not None
            ]
            if meshes:
                return merge_meshes(meshes)
        return None

    # -- helpers --------------------------------------------------------------

    def _require(self, entity_id: int | None, what: str) -> Entity:
        entity = self.index.get(entity_id)
        if entity is None:
            raise GeometryError(f"missing {what} (#{entity_id})")
        return entity

    def _point_list(self, entity_id: int | None) -> np.ndarray:
        entity = self._require(entity_id, "point list")
        if not entity.type.startswith("IFCCARTESIANPOINTLIST"):
            raise GeometryError(f"expected a cartesian point list, got {entity.type}")
        points = [(list(p) + [0.0, 0.0, 0.0])[:3] for p in parse_float_tuples(entity.arg(0))]
        return np.asarray(points, dtype=np.float64).reshape(-1, 3)

    # -- variants -------------------------------------------------------------

    def _triangulated_face_set(self, item: TriangulatedFaceSet) -> MeshData:
        points = self._point_list(item.coordinates)
        triangles = [tuple(i - 1 for i in tri) for tri in item.coord_index if len(tri) == 3]
        return make_mesh(points, triangles)

    def _polygonal_face_set(self, item: PolygonalFaceSet) -> MeshData:
        points = self._point_list(item.coordinates)
        triangles: list[tuple[int, int, int]] = []
        for face_id in item.faces:
            face = self.index.get(face_id)
            if face is None or not face.type.startswith("IFCINDEXEDPOLYGONALFACE"):
                continue
            loop = parse_int_tuple(face.arg(0))
            if loop is None or len(loop) < 3:
                continue
            triangles.extend(fan_triangulate([i - 1 for i in loop]))
        return make_mesh(points, triangles)

    def _faceted_brep(self, item: FacetedBrep) -> MeshData:
        points: list[tuple[float, float, float]] = []
        point_index: dict[tuple[float, float, float], int] = {}
        triangles: list[tuple[int, int, int]] = []

        def index_of(coords: np.ndarray) -> int:
            key = (float(coords[0]), float(coords[1]), float(coords[2]))
            idx = point_index.get(key)
            if idx is None:
                idx = len(points)
                point_index[key] = idx
                points.append(key)
            return idx

        for shell_id in item.shells:
            shell = self.index.get(shell_id)
            if shell is None:
                continue
            for face_id in parse_reference_list(shell.arg(0)):
                face = self.index.get(face_id)
                if face is None:
                    continue
                for bound_id in parse_reference_list(face.arg(0)):
                    loop = self._polyloop(bound_id, index_of)
                    if loop is not None:
                        triangles.extend(fan_triangulate(loop))

        if not triangles:
            raise GeometryError("no polygon loops with at least three points")
        return make_mesh(points, triangles)

    def _polyloop(self, bound_id: int, index_of: Callable[[np.ndarray], int]) -> list[int] | None:
        bound = self.index.get(bound_id)
        if bound is None:
            return None
        loop_entity = self.index.get(parse_reference(bound.arg(0)))
        if loop_entity is None or loop_entity.type != "IFCPOLYLOOP":
            return None

        loop: list[int] = []
        for point_id in parse_reference_list(loop_entity.arg(0)):
            coords = cartesian_point(self.index.get(point_id))
            if coords is None:
                continue
            idx = index_of(coords)
            if not loop or loop[-1] != idx:
                loop.append(idx)
        if len(loop) > 1 and loop[0] == loop[-1]:
            loop.pop()
        if len(set(loop)) < 3:
            return None
        if parse_enum(bound.arg(1)) == "F":
            loop.reverse()
        return loop

    def _extruded_area_solid(self, item: ExtrudedAreaSolid) -> MeshData:
        if item.depth is None or item.depth == 0.0:
            raise GeometryError("extrusion depth missing or zero")
        profile = self._profile(item.swept_area)

        extrusion_dir = np.array([0.0, 0.0, 1.0])
        if item.direction is not None:
            ratios = direction(self.index.get(item.direction))
            if ratios is None:
                raise GeometryError(f"invalid extrusion direction #{item.direction}")
            length = float(np.linalg.norm(ratios))
            if length == 0.0:
                raise GeometryError("zero-length extrusion direction")
            extrusion_dir = ratios / length

        mesh = extrude_profile(profile, extrusion_dir * item.depth)
        return transform_mesh(mesh, frame_from_axis2placement(self.index.by_id, item.position))

    def _profile(self, profile_id: int | None) -> np.ndarray:
        """Closed 2-D outline of a profile definition in its own XY plane."""
        entity = self._require(profile_id, "profile")

        if entity.type in _RECTANGLE_PROFILES:
            x_dim = parse_float(entity.arg(3))
            y_dim = parse_float(entity.arg(4))
            if x_dim is None or y_dim is None or x_dim <= 0 or y_dim <= 0:
                raise GeometryError(f"invalid rectangle dimensions in #{entity.id}")
            return self._place_profile(entity, rectangle_profile(x_dim, y_dim))

        if entity.type in _CIRCLE_PROFILES:
            radius = parse_float(entity.arg(3))
            if radius is None or radius <= 0:
                raise GeometryError(f"invalid circle radius in #{entity.id}")
            outline = circle_profile(radius, self.options.circle_segments)
            return self._place_profile(entity, outline)

        if entity.type == "IFCELLIPSEPROFILEDEF":
            semi1 = parse_float(entity.arg(3))
            semi2 = parse_float(entity.arg(4))
            if semi1 is None or semi2 is None or semi1 <= 0 or semi2 <= 0:
                raise GeometryError(f"invalid ellipse semi-axes in #{entity.id}")
            outline = circle_profile(1.0, self.options.circle_segments) * np.array([semi1, semi2])
            return self._place_profile(entity, outline)

        if entity.type in _ARBITRARY_PROFILES:
            return self._curve_points(parse_reference(entity.arg(2)))

        raise GeometryError(f"unsupported profile {entity.type}")

    def _place_profile(self, entity: Entity, outline: np.ndarray) -> np.ndarray:
        frame = frame_from_axis2placement(self.index.by_id, parse_reference(entity.arg(2)))
        if frame.is_identity:
            return outline
        lifted = np.column_stack([outline, np.zeros(len(outline))])
        return frame.apply(lifted)[:, :2]

    def _curve_points(self, curve_id: int | None) -> np.ndarray:
        curve = self._require(curve_id, "profile curve")
        if curve.type == "IFCPOLYLINE":
            points = []
            for point_id in parse_reference_list(curve.arg(0)):
                coords = cartesian_point(self.index.get(point_id))
                if coords is not None:
                    points.append((float(coords[0]), float(coords[1])))
        elif curve.type == "IFCINDEXEDPOLYCURVE":
            point_list = self._require(parse_reference(curve.arg(0)), "curve points")
            points = [(p[0], p[1]) for p in parse_float_tuples(point_list.arg(0)) if len(p) >= 2]
        else:
            raise GeometryError(f"unsupported profile curve {curve.type}")

        points = strip_closing_point(points)
        if len(points) < 3:
            raise GeometryError(f"profile curve #{curve.id} has fewer than three points")
        return np.asarray(points, dtype=np.float64)

    def _mapped_item(self, item: MappedItem) -> MeshData | None:
        source = self._require(item.source, "representation map")
        if source.type != "IFCREPRESENTATIONMAP":
            raise GeometryError(f"expected a representation map, got {source.type}")

        mesh = self.resolve_representation(parse_reference(source.arg(1)))
        if mesh is None:
            return None

        origin = frame_from_axis2placement(self.index.by_id, parse_reference(source.arg(0)))
        target = frame_from_operator(self.index.by_id, item.target)
        return transform_mesh(mesh, target.compose(origin))

    def _unsupported(self, item: UnsupportedItem) -> MeshData | None:
        raise GeometryError("unsupported representation item")


def resolve_item(
    item_id: int | None,
    index: EntityIndex,
    resolving: set[int] | None = None,
    options: ImportOptions | None = None,
    *,
    policy: WarningPolicy | None = None,
) -> MeshData | None:
    """Resolve a single representation item with a throwaway interpreter."""
    interpreter = GeometryInterpreter(
        index=index,
        options=options or ImportOptions(),
        policy=policy,
        resolving=resolving if resolving is not None else set(),
    )
    return interpreter.resolve_item(item_id)
