"""Spatial graph builder: relationship entities to a host scene tree."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from ifclite.classify import EntityIndex
from ifclite.geometry import GeometryInterpreter
from ifclite.models import Entity, ImportOptions, StepDocument
from ifclite.placement import frame_from_local_placement
from ifclite.scene import DefaultNodeFactory, NodeFactory
from ifclite.tessellation import MeshData, compute_normals, transform_mesh
from ifclite.tokens import parse_reference, parse_reference_list, unquote
from ifclite.warning_policy import (
    CYCLE_DETECTED,
    UNRESOLVED_REFERENCE,
    WarningPolicy,
    emit_warning,
)

ROOT_TYPE = "IFCPROJECT"
PLACEHOLDER_NAME = "IFC Model"
UNKNOWN_NAME = "Unknown"

# Relationship type -> (parent argument, children argument).
RELATIONSHIP_ROLES: dict[str, tuple[int, int]] = {
    "IFCRELAGGREGATES": (4, 5),
    "IFCRELNESTS": (4, 5),
    "IFCRELCONTAINEDINSPATIALSTRUCTURE": (5, 4),
}

_NAME_ARG = 2
_OBJECT_PLACEMENT_ARG = 5


def collect_adjacency(entities: Iterator[Entity] | tuple[Entity, ...]) -> dict[int, list[int]]:
    """One pass over the entities building ``parent id -> [child ids]``.

    Children are appended in relationship order, then in list order.
    """
    adjacency: dict[int, list[int]] = {}
    for entity in entities:
        roles = RELATIONSHIP_ROLES.get(entity.type)
        if roles is None:
            continue
        parent_arg, children_arg = roles
        parent = parse_reference(entity.arg(parent_arg))
        if parent is None:
            continue
        adjacency.setdefault(parent, []).extend(parse_reference_list(entity.arg(children_arg)))
    return adjacency


def find_root(index: EntityIndex) -> int | None:
    """Id of the first project entity in file order."""
    for entity_id, entity in index.by_id.items():
        if entity.type == ROOT_TYPE:
            return entity_id
    return None


def node_name(entity: Entity | None) -> str:
    """``"<TYPE> - <label>"``, bare ``<TYPE>`` without a label, ``"Unknown"`` when absent."""
    if entity is None:
        return UNKNOWN_NAME
    label = unquote(entity.arg(_NAME_ARG)) if len(entity.args) > _NAME_ARG else ""
    return f"{entity.type} - {label}" if label else entity.type


@dataclass
class _Frame:
    entity_id: int
    node: Any
    children: Iterator[int]


@dataclass
class TreeBuilder:
    """Builds one scene tree; create one per import."""

    document: StepDocument
    factory: NodeFactory = field(default_factory=DefaultNodeFactory)
    options: ImportOptions = field(default_factory=ImportOptions)
    policy: WarningPolicy | None = None

    def __post_init__(self) -> None:
        self.index = EntityIndex.from_document(self.document)
        self.adjacency = collect_adjacency(self.index.by_id.values())
        self.interpreter = GeometryInterpreter(
            index=self.index, options=self.options, policy=self.policy
        )
        self.arena: dict[int, Any] = {}

    def build(self) -> Any:
        root_id = find_root(self.index)
        if root_id is None:
            return self.factory.container(PLACEHOLDER_NAME)

        root, is_leaf = self._make_node(root_id)
        if is_leaf:
            return root

        stack = [_Frame(root_id, root, iter(self.adjacency.get(root_id, ())))]
        on_path = {root_id}

        while stack:
            frame = stack[-1]
            child_id = next(frame.children, None)
            if child_id is None:
                stack.pop()
                on_path.discard(frame.entity_id)
                continue

            if child_id in self.arena:
                if child_id in on_path:
                    emit_warning(
                        CYCLE_DETECTED,
                        f"#{child_id} is its own ancestor under #{frame.entity_id}; branch skipped",
                        policy=self.policy,
                    )
                continue

            child, is_leaf = self._make_node(child_id)
            frame.node.add(child)
            if not is_leaf:
                stack.append(_Frame(child_id, child, iter(self.adjacency.get(child_id, ()))))
                on_path.add(child_id)

        return root

    def _make_node(self, entity_id: int) -> tuple[Any, bool]:
        """Create the node for ``entity_id``; the flag is True for geometry leaves."""
        entity = self.index.get(entity_id)
        if entity is None:
            emit_warning(
                UNRESOLVED_REFERENCE, f"Related entity #{entity_id} not found", policy=self.policy
            )
        name = node_name(entity)

        mesh = self._product_mesh(entity) if entity is not None else None
        if mesh is not None:
            node = self.factory.geometry(name, mesh.positions, mesh.indices, mesh.normals)
            self.arena[entity_id] = node
            return node, True

        node = self.factory.container(name)
        self.arena[entity_id] = node
        return node, False

    def _product_mesh(self, entity: Entity) -> MeshData | None:
        if entity.shape is None:
            return None
        mesh = self.interpreter.resolve_shape(entity.shape)
        if mesh is None:
            return None
        if self.options.apply_object_placement:
            placement = frame_from_local_placement(
                self.index.by_id, parse_reference(entity.arg(_OBJECT_PLACEMENT_ARG))
            )
            mesh = transform_mesh(mesh, placement)
        if self.options.compute_normals:
            mesh = MeshData(
                positions=mesh.positions, indices=mesh.indices, normals=compute_normals(mesh)
            )
        return mesh


def build_tree(
    document: StepDocument,
    *,
    factory: NodeFactory | None = None,
    options: ImportOptions | None = None,
    policy: WarningPolicy | None = None,
) -> Any:
    """Build the scene tree rooted at the document's project.

    Without a project an empty placeholder container named ``"IFC Model"`` is
    returned. Entities whose shape resolves to geometry become leaves; every
    other reachable entity becomes a container, even when its geometry failed.
    """
    builder = TreeBuilder(
        document=document,
        factory=factory or DefaultNodeFactory(),
        options=options or ImportOptions(),
        policy=policy,
    )
    return builder.build()
