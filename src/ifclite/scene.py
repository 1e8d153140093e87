"""Scene-tree collaborators: the protocols the codec talks to, plus default nodes.

The importer only ever creates nodes through a :class:`NodeFactory` and the
exporter only ever reads them through a :class:`SceneAccessor`, so a host
application can plug in its own node classes. :class:`ContainerNode` and
:class:`GeometryNode` are the defaults.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import numpy as np

from ifclite.tessellation import MeshData


@runtime_checkable
class ContainerLike(Protocol):
    def add(self, child: Any) -> None: ...


class NodeFactory(Protocol):
    """Creates host scene nodes during import."""

    def container(self, name: str) -> ContainerLike: ...

    def geometry(
        self,
        name: str,
        positions: np.ndarray,
        indices: np.ndarray,
        normals: np.ndarray | None = None,
    ) -> Any: ...


class SceneAccessor(Protocol):
    """Reads host scene nodes during export."""

    def name(self, node: Any) -> str: ...

    def children(self, node: Any) -> Sequence[Any] | None:
        """Child nodes of a container; None for a leaf."""
        ...

    def mesh(self, node: Any) -> MeshData | None: ...


@dataclass
class ContainerNode:
    name: str
    children: list[ContainerNode | GeometryNode] = field(default_factory=list)

    def add(self, child: ContainerNode | GeometryNode) -> None:
        self.children.append(child)


@dataclass
class GeometryNode:
    name: str
    positions: np.ndarray  # (N, 3) float64
    indices: np.ndarray  # (M,) int64
    normals: np.ndarray | None = None

    @property
    def mesh(self) -> MeshData:
        return MeshData(positions=self.positions, indices=self.indices, normals=self.normals)


class DefaultNodeFactory:
    def container(self, name: str) -> ContainerNode:
        return ContainerNode(name=name)

    def geometry(
        self,
        name: str,
        positions: np.ndarray,
        indices: np.ndarray,
        normals: np.ndarray | None = None,
    ) -> GeometryNode:
        return GeometryNode(name=name, positions=positions, indices=indices, normals=normals)


class DefaultSceneAccessor:
    """Accessor for :class:`ContainerNode` / :class:`GeometryNode` trees."""

    def name(self, node: Any) -> str:
        return str(getattr(node, "name", "") or "")

    def children(self, node: Any) -> Sequence[Any] | None:
        if isinstance(node, ContainerNode):
            return node.children
        return None

    def mesh(self, node: Any) -> MeshData | None:
        if not isinstance(node, GeometryNode):
            return None
        mesh = node.mesh
        if mesh.is_empty:
            return None
        return mesh


def iter_nodes(
    root: Any, accessor: SceneAccessor | None = None
) -> Iterator[tuple[int, Any]]:
    """Pre-order walk yielding ``(depth, node)`` pairs."""
    accessor = accessor or DefaultSceneAccessor()
    stack: list[tuple[int, Any]] = [(0, root)]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        children = accessor.children(node) or ()
        for child in reversed(list(children)):
            stack.append((depth + 1, child))
