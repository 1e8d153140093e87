"""Deterministic mesh generation helpers shared by the geometry interpreter."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ifclite.errors import GeometryError
from ifclite.placement import Frame


@dataclass
class MeshData:
    """Tessellated mesh geometry."""

    positions: np.ndarray  # (N, 3) float64
    indices: np.ndarray  # (M,) int64, M % 3 == 0
    normals: np.ndarray | None = None  # (N, 3) float64

    @classmethod
    def empty(cls) -> MeshData:
        return cls(
            positions=np.zeros((0, 3), dtype=np.float64),
            indices=np.zeros(0, dtype=np.int64),
        )

    @property
    def point_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0 or self.triangle_count == 0


def make_mesh(points: Sequence[Sequence[float]] | np.ndarray, triangles: Sequence[Sequence[int]]) -> MeshData:
    """Build a MeshData, dropping triangles that reference missing points."""
    positions = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    n_points = len(positions)
    kept = [
        tri
        for tri in triangles
        if len(tri) == 3 and all(0 <= int(i) < n_points for i in tri)
    ]
    indices = np.asarray(kept, dtype=np.int64).reshape(-1)
    return MeshData(positions=positions, indices=indices)


def fan_triangulate(loop: Sequence[int]) -> list[tuple[int, int, int]]:
    """Fan-triangulate a polygon index loop from its first vertex.

    Only correct for convex or near-planar loops.
    """
    return [(loop[0], loop[i], loop[i + 1]) for i in range(1, len(loop) - 1)]


def strip_closing_point(points: list[tuple[float, ...]]) -> list[tuple[float, ...]]:
    """Drop a final point that repeats the first one."""
    if len(points) > 1 and np.allclose(points[0], points[-1]):
        return points[:-1]
    return points


def rectangle_profile(x_dim: float, y_dim: float) -> np.ndarray:
    """Four corners of an ``x_dim`` by ``y_dim`` rectangle centred on the origin."""
    hx = x_dim / 2
    hy = y_dim / 2
    return np.array([(-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy)], dtype=np.float64)


def circle_profile(radius: float, segments: int = 32) -> np.ndarray:
    """Regular ``segments``-gon approximating a circle centred on the origin."""
    angles = [2.0 * math.pi * seg / segments for seg in range(segments)]
    return np.array([(radius * math.cos(a), radius * math.sin(a)) for a in angles], dtype=np.float64)


def signed_area(profile: np.ndarray) -> float:
    """Shoelace area of a 2-D polygon; positive when counter-clockwise."""
    x = profile[:, 0]
    y = profile[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def extrude_profile(profile: np.ndarray, extrusion: np.ndarray) -> MeshData:
    """Sweep a closed 2-D profile (in local XY) along ``extrusion``.

    The result has a bottom ring of n points followed by a top ring of n
    points; bottom and top caps are fan-triangulated and every side quad is
    split into two triangles, giving ``2 * (n - 2) + 2 * n`` triangles.
    """
    if len(profile) < 3:
        raise GeometryError(f"Profile needs at least 3 points, got {len(profile)}")
    if signed_area(profile) < 0:
        profile = profile[::-1]

    n = len(profile)
    bottom = np.column_stack([profile, np.zeros(n, dtype=np.float64)])
    top = bottom + np.asarray(extrusion, dtype=np.float64)

    # Caps face outwards for a positive extrusion along +z.
    triangles: list[tuple[int, int, int]] = []
    for a, b, c in fan_triangulate(list(range(n))):
        triangles.append((a, c, b))
    for a, b, c in fan_triangulate(list(range(n, 2 * n))):
        triangles.append((a, b, c))
    for i in range(n):
        j = (i + 1) % n
        triangles.append((i, j, n + j))
        triangles.append((i, n + j, n + i))

    return make_mesh(np.vstack([bottom, top]), triangles)


def transform_mesh(mesh: MeshData, frame: Frame) -> MeshData:
    """Apply ``frame`` to every point; normals are dropped (recompute after)."""
    if frame.is_identity:
        return mesh
    return MeshData(positions=frame.apply(mesh.positions), indices=mesh.indices.copy())


def merge_meshes(meshes: Sequence[MeshData]) -> MeshData:
    """Concatenate meshes, offsetting each one's indices past the previous points."""
    all_positions = []
    all_indices = []
    vertex_offset = 0

    for md in meshes:
        all_positions.append(md.positions)
        all_indices.append(md.indices + vertex_offset)
        vertex_offset += md.point_count

    if not all_positions:
        return MeshData.empty()

    return MeshData(
        positions=np.concatenate(all_positions, axis=0),
        indices=np.concatenate(all_indices, axis=0),
    )


def compute_normals(mesh: MeshData) -> np.ndarray:
    """Per-point normals: face normals accumulated per point, then normalised.

    Points whose accumulated normal has zero length keep a zero normal.
    """
    normals = np.zeros_like(mesh.positions)
    if mesh.triangle_count == 0:
        return normals

    tris = mesh.indices.reshape(-1, 3)
    v0 = mesh.positions[tris[:, 0]]
    v1 = mesh.positions[tris[:, 1]]
    v2 = mesh.positions[tris[:, 2]]
    face_normals = np.cross(v1 - v0, v2 - v0)

    for corner in range(3):
        np.add.at(normals, tris[:, corner], face_normals)

    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > 0
    normals[nonzero] /= lengths[nonzero][:, None]
    return normals
