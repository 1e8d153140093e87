"""Exchange writer: scene tree to physical-file text.

Every reference in the output points to an entity emitted earlier, so the
file can be read back in a single forward pass.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import numpy as np

from ifclite.models import ExportOptions
from ifclite.scene import DefaultSceneAccessor, SceneAccessor
from ifclite.tessellation import MeshData
from ifclite.tokens import format_real, quote

NULL = "$"
GUID_LENGTH = 22


def deterministic_guid(prefix: str, number: int) -> str:
    """22-character global id: ``prefix`` followed by zero-padded ``number``."""
    digits = str(number)
    return prefix + digits.rjust(GUID_LENGTH - len(prefix), "0")


def reference_list(refs: Sequence[str]) -> str:
    return "(" + ",".join(refs) + ")"


@dataclass
class IdAllocator:
    """Entity ids for one write call: 1, 2, 3, ..."""

    last: int = 0

    def next(self) -> int:
        self.last += 1
        return self.last


@dataclass
class StepWriter:
    """Buffers the data section of one output file."""

    options: ExportOptions = field(default_factory=ExportOptions)
    ids: IdAllocator = field(default_factory=IdAllocator)
    lines: list[str] = field(default_factory=list)

    def entity(self, type_name: str, *args: str) -> str:
        """Append ``#id=TYPE(args);`` and return its ``#id`` reference."""
        ref = f"#{self.ids.next()}"
        self.lines.append(f"{ref}={type_name}({','.join(args)});")
        return ref

    def peek_id(self) -> int:
        """Id the next :meth:`entity` call will receive."""
        return self.ids.last + 1

    def real(self, value: float) -> str:
        return format_real(float(value), self.options.precision)

    def point_list(self, positions: np.ndarray) -> str:
        rows = (
            "(" + ",".join(self.real(v) for v in point) + ")"
            for point in np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        )
        return "(" + ",".join(rows) + ")"

    @staticmethod
    def coord_index(indices: np.ndarray) -> str:
        triangles = np.asarray(indices, dtype=np.int64).reshape(-1, 3) + 1
        return "(" + ",".join(f"({a},{b},{c})" for a, b, c in triangles) + ")"

    def render(self, document_name: str) -> str:
        """Full file text: header, buffered data section, trailer."""
        schema = self.options.schema_name
        application = quote(self.options.application)
        timestamp = self.options.timestamp or datetime.now(timezone.utc)
        header = [
            "ISO-10303-21;",
            "HEADER;",
            f"FILE_DESCRIPTION(({quote(f'ViewDefinition [{schema}]')}),'2;1');",
            f"FILE_NAME({quote(document_name + '.ifc')},"
            f"{quote(timestamp.isoformat(timespec='seconds'))},"
            f"({application}),({application}),{application},{application},'');",
            f"FILE_SCHEMA(({quote(schema)}));",
            "ENDSEC;",
            "DATA;",
        ]
        footer = ["ENDSEC;", "END-ISO-10303-21;"]
        return "\n".join(header + self.lines + footer) + "\n"


@dataclass
class _Shared:
    context: str
    placement: str


class TreeWriter:
    """Writes one scene tree; create one per export."""

    def __init__(self, accessor: SceneAccessor, options: ExportOptions) -> None:
        self.accessor = accessor
        self.writer = StepWriter(options=options)

    def write(self, root: Any, document_name: str) -> str:
        w = self.writer
        origin = w.entity("IFCCARTESIANPOINT", "(0.,0.,0.)")
        world_axis = w.entity("IFCAXIS2PLACEMENT3D", origin, NULL, NULL)
        context = w.entity(
            "IFCGEOMETRICREPRESENTATIONCONTEXT", NULL, "'Model'", "3", "1.E-5", world_axis, NULL
        )
        units = w.entity("IFCUNITASSIGNMENT", "()")

        site_placement = w.entity("IFCLOCALPLACEMENT", NULL, world_axis)
        building_placement = w.entity("IFCLOCALPLACEMENT", site_placement, world_axis)
        storey_placement = w.entity("IFCLOCALPLACEMENT", building_placement, world_axis)

        project = w.entity(
            "IFCPROJECT",
            quote(deterministic_guid("0$PROJ", 0)),
            NULL,
            quote(document_name),
            NULL,
            NULL,
            NULL,
            NULL,
            reference_list([context]),
            units,
        )
        site = w.entity(
            "IFCSITE",
            quote(deterministic_guid("0$SITE", 0)),
            NULL,
            quote(f"{document_name} Site"),
            NULL,
            NULL,
            site_placement,
            NULL,
            NULL,
            ".ELEMENT.",
            NULL,
            NULL,
            NULL,
            NULL,
            NULL,
        )
        building = w.entity(
            "IFCBUILDING",
            quote(deterministic_guid("0$BLDG", 0)),
            NULL,
            quote(f"{document_name} Building"),
            NULL,
            NULL,
            building_placement,
            NULL,
            NULL,
            ".ELEMENT.",
            NULL,
            NULL,
            NULL,
        )
        storey = self._storey(quote(f"{document_name} Storey"), storey_placement, "0$STRY")

        shared = _Shared(context=context, placement=storey_placement)
        self._relate(storey, [root], shared)

        self._aggregate(project, [site], "Project Aggregates")
        self._aggregate(site, [building], "Site Aggregates")
        self._aggregate(building, [storey], "Building Aggregates")
        return w.render(document_name)

    def _storey(self, name: str, placement: str, prefix: str = "0$NODE") -> str:
        w = self.writer
        return w.entity(
            "IFCBUILDINGSTOREY",
            quote(deterministic_guid(prefix, w.peek_id())),
            NULL,
            name,
            NULL,
            NULL,
            placement,
            NULL,
            NULL,
            ".ELEMENT.",
            "0.",
        )

    def _relate(self, parent: str, nodes: Sequence[Any], shared: _Shared) -> None:
        """Emit ``nodes`` below ``parent`` followed by the relationships linking them."""
        containers: list[str] = []
        leaves: list[str] = []
        for node in nodes:
            children = self.accessor.children(node)
            if children is None:
                leaves.append(self._element(node, shared))
                continue
            container = self._storey(quote(self.accessor.name(node)), shared.placement)
            self._relate(container, list(children), shared)
            containers.append(container)

        if containers:
            self._aggregate(parent, containers, "Aggregates")
        if leaves:
            w = self.writer
            w.entity(
                "IFCRELCONTAINEDINSPATIALSTRUCTURE",
                quote(deterministic_guid("0$REL", w.peek_id())),
                NULL,
                quote("Containment"),
                NULL,
                reference_list(leaves),
                parent,
            )

    def _aggregate(self, parent: str, children: Sequence[str], name: str) -> str:
        w = self.writer
        return w.entity(
            "IFCRELAGGREGATES",
            quote(deterministic_guid("0$REL", w.peek_id())),
            NULL,
            quote(name),
            NULL,
            parent,
            reference_list(children),
        )

    def _element(self, node: Any, shared: _Shared) -> str:
        representation = self._representation(self.accessor.mesh(node), shared)
        w = self.writer
        return w.entity(
            "IFCBUILDINGELEMENTPROXY",
            quote(deterministic_guid("0$ELEM", w.peek_id())),
            NULL,
            quote(self.accessor.name(node)),
            NULL,
            NULL,
            shared.placement,
            representation or NULL,
            NULL,
            NULL,
        )

    def _representation(self, mesh: MeshData | None, shared: _Shared) -> str | None:
        if mesh is None or mesh.is_empty:
            return None
        w = self.writer
        point_list = w.entity("IFCCARTESIANPOINTLIST3D", w.point_list(mesh.positions))
        face_set = w.entity(
            "IFCTRIANGULATEDFACESET", point_list, NULL, ".T.", w.coord_index(mesh.indices), NULL
        )
        shape = w.entity(
            "IFCSHAPEREPRESENTATION",
            shared.context,
            "'Body'",
            "'Tessellation'",
            reference_list([face_set]),
        )
        return w.entity("IFCPRODUCTDEFINITIONSHAPE", NULL, NULL, reference_list([shape]))


def write_tree(
    root: Any,
    document_name: str,
    *,
    accessor: SceneAccessor | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Serialise ``root`` (and everything below it) as physical-file text.

    The tree hangs under a fixed site, building and storey chain. Containers
    become building storeys related by aggregation; leaves become building
    element proxies contained in their parent. Leaves without a mesh are
    still written, with no representation.
    """
    writer = TreeWriter(accessor or DefaultSceneAccessor(), options or ExportOptions())
    return writer.write(root, document_name)
