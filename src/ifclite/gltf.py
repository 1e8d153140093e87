"""GLB preview of an imported scene tree via pygltflib."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import numpy as np
import pygltflib

from ifclite.errors import ExportError
from ifclite.scene import DefaultSceneAccessor, SceneAccessor
from ifclite.tessellation import MeshData, compute_normals

# IFC models are Z-up, glTF is Y-up: rotate the root -90 degrees about X.
_Z_UP_TO_Y_UP = [-math.sin(math.pi / 4), 0.0, 0.0, math.cos(math.pi / 4)]


def export_glb(root: Any, output_path: Path, *, accessor: SceneAccessor | None = None) -> None:
    """Write ``root`` as a binary glTF file.

    Containers become nodes with children; leaves with a mesh become mesh
    nodes with POSITION, NORMAL and indices.
    """
    try:
        gltf = build_gltf(root, accessor=accessor)
        output_path.write_bytes(b"".join(gltf.save_to_bytes()))
    except Exception as e:
        if isinstance(e, ExportError):
            raise
        raise ExportError(f"Failed to export GLB: {e}") from e


def build_gltf(root: Any, *, accessor: SceneAccessor | None = None) -> pygltflib.GLTF2:
    """Build the glTF2 structure for a scene tree."""
    accessor = accessor or DefaultSceneAccessor()
    gltf = pygltflib.GLTF2(
        scene=0,
        scenes=[pygltflib.Scene(nodes=[])],
        nodes=[],
        meshes=[],
        accessors=[],
        bufferViews=[],
        buffers=[],
    )
    blob_data = bytearray()

    root_idx = _add_node(gltf, accessor.name(root))
    gltf.nodes[root_idx].rotation = list(_Z_UP_TO_Y_UP)
    gltf.scenes[0].nodes = [root_idx]

    stack: list[tuple[Any, int]] = [(root, root_idx)]
    while stack:
        node, node_idx = stack.pop()
        children = accessor.children(node)
        if children is None:
            mesh = accessor.mesh(node)
            if mesh is not None and not mesh.is_empty:
                gltf.nodes[node_idx].mesh = _add_mesh(
                    gltf, blob_data, accessor.name(node), mesh
                )
            continue

        child_indices = []
        for child in children:
            child_idx = _add_node(gltf, accessor.name(child))
            child_indices.append(child_idx)
            stack.append((child, child_idx))
        if child_indices:
            gltf.nodes[node_idx].children = child_indices

    gltf.buffers = [pygltflib.Buffer(byteLength=len(blob_data))]
    gltf.set_binary_blob(bytes(blob_data))
    return gltf


def _add_node(gltf: pygltflib.GLTF2, name: str) -> int:
    gltf.nodes.append(pygltflib.Node(name=name or None))
    return len(gltf.nodes) - 1


def _add_view(gltf: pygltflib.GLTF2, blob_data: bytearray, data: bytes, target: int) -> int:
    offset = len(blob_data)
    blob_data.extend(data)
    # Keep every view 4-byte aligned.
    blob_data.extend(b"\x00" * ((4 - len(blob_data) % 4) % 4))
    gltf.bufferViews.append(
        pygltflib.BufferView(buffer=0, byteOffset=offset, byteLength=len(data), target=target)
    )
    return len(gltf.bufferViews) - 1


def _add_mesh(gltf: pygltflib.GLTF2, blob_data: bytearray, name: str, mesh: MeshData) -> int:
    positions = mesh.positions.astype(np.float32)
    normals = mesh.normals if mesh.normals is not None else compute_normals(mesh)
    normals = normals.astype(np.float32)
    indices = mesh.indices.astype(np.uint32)

    pos_bv_idx = _add_view(gltf, blob_data, positions.tobytes(), pygltflib.ARRAY_BUFFER)
    gltf.accessors.append(
        pygltflib.Accessor(
            bufferView=pos_bv_idx,
            byteOffset=0,
            componentType=pygltflib.FLOAT,
            count=len(positions),
            type=pygltflib.VEC3,
            max=positions.max(axis=0).tolist(),
            min=positions.min(axis=0).tolist(),
        )
    )
    pos_acc_idx = len(gltf.accessors) - 1

    norm_bv_idx = _add_view(gltf, blob_data, normals.tobytes(), pygltflib.ARRAY_BUFFER)
    gltf.accessors.append(
        pygltflib.Accessor(
            bufferView=norm_bv_idx,
            byteOffset=0,
            componentType=pygltflib.FLOAT,
            count=len(normals),
            type=pygltflib.VEC3,
        )
    )
    norm_acc_idx = len(gltf.accessors) - 1

    idx_bv_idx = _add_view(gltf, blob_data, indices.tobytes(), pygltflib.ELEMENT_ARRAY_BUFFER)
    gltf.accessors.append(
        pygltflib.Accessor(
            bufferView=idx_bv_idx,
            byteOffset=0,
            componentType=pygltflib.UNSIGNED_INT,
            count=len(indices),
            type=pygltflib.SCALAR,
        )
    )
    idx_acc_idx = len(gltf.accessors) - 1

    primitive = pygltflib.Primitive(
        attributes=pygltflib.Attributes(POSITION=pos_acc_idx, NORMAL=norm_acc_idx),
        indices=idx_acc_idx,
    )
    gltf.meshes.append(pygltflib.Mesh(name=name or None, primitives=[primitive]))
    return len(gltf.meshes) - 1
