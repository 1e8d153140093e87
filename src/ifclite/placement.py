"""Placement frames: axis placements, transformation operators, placement chains."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

import numpy as np

from ifclite.models import Entity
from ifclite.tokens import parse_float, parse_float_tuple, parse_reference

_X = np.array([1.0, 0.0, 0.0])
_Y = np.array([0.0, 1.0, 0.0])
_Z = np.array([0.0, 0.0, 1.0])


@dataclass(frozen=True)
class Frame:
    """An affine frame: ``world = origin + local @ matrix``.

    ``matrix`` rows are the frame's x, y and z axes expressed in the parent
    system, each multiplied by that axis' scale factor.
    """

    origin: np.ndarray  # (3,) float64
    matrix: np.ndarray  # (3, 3) float64

    @classmethod
    def identity(cls) -> Frame:
        return cls(origin=np.zeros(3, dtype=np.float64), matrix=np.eye(3, dtype=np.float64))

    @classmethod
    def from_axes(
        cls,
        origin: np.ndarray | None = None,
        axis: np.ndarray | None = None,
        ref_direction: np.ndarray | None = None,
        scale: tuple[float, float, float] = (1.0, 1.0, 1.0),
    ) -> Frame:
        """Build a frame from a z axis and an x seed, re-orthonormalising both."""
        x, y, z = orthonormal_axes(axis, ref_direction)
        matrix = np.stack([x, y, z]) * np.asarray(scale, dtype=np.float64)[:, None]
        if origin is None:
            origin = np.zeros(3, dtype=np.float64)
        return cls(origin=np.asarray(origin, dtype=np.float64), matrix=matrix)

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self.origin, 0.0) and np.allclose(self.matrix, np.eye(3)))

    def apply(self, points: np.ndarray) -> np.ndarray:
        """Map an (N, 3) array of local points into the parent system."""
        if len(points) == 0:
            return np.asarray(points, dtype=np.float64).reshape(0, 3)
        return self.origin + np.asarray(points, dtype=np.float64) @ self.matrix

    def apply_vector(self, vector: np.ndarray) -> np.ndarray:
        """Map a direction (no translation) into the parent system."""
        return np.asarray(vector, dtype=np.float64) @ self.matrix

    def compose(self, child: Frame) -> Frame:
        """Return the frame of ``child`` (given in this frame) in the parent system."""
        return Frame(
            origin=self.apply(child.origin[None, :])[0],
            matrix=child.matrix @ self.matrix,
        )


def _normalize(vector: np.ndarray) -> np.ndarray:
    length = float(np.linalg.norm(vector))
    if length == 0.0 or not np.isfinite(length):
        return np.full(3, np.nan)
    return vector / length


def orthonormal_axes(
    axis: np.ndarray | None, ref_direction: np.ndarray | None
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Derive an orthonormal (x, y, z) triple from a z axis and an x seed.

    z x seed defines y and y x z defines x. When the derived axes are not
    finite (missing, zero-length or parallel inputs) the static world frame is
    returned.
    """
    z = _normalize(np.asarray(axis, dtype=np.float64)) if axis is not None else _Z.copy()
    seed = np.asarray(ref_direction, dtype=np.float64) if ref_direction is not None else _X
    y = _normalize(np.cross(z, seed))
    x = np.cross(y, z)
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y)) and np.all(np.isfinite(z))):
        return _X.copy(), _Y.copy(), _Z.copy()
    return x, y, z


def _vec3(values: tuple[float, ...] | None) -> np.ndarray | None:
    if values is None:
        return None
    padded = (list(values) + [0.0, 0.0, 0.0])[:3]
    return np.array(padded, dtype=np.float64)


def cartesian_point(entity: Entity | None) -> np.ndarray | None:
    """Coordinates of an ``IFCCARTESIANPOINT`` (2-D points get z = 0)."""
    if entity is None or entity.type != "IFCCARTESIANPOINT":
        return None
    return _vec3(parse_float_tuple(entity.arg(0)))


def direction(entity: Entity | None) -> np.ndarray | None:
    """Direction ratios of an ``IFCDIRECTION`` (2-D directions get z = 0)."""
    if entity is None or entity.type != "IFCDIRECTION":
        return None
    return _vec3(parse_float_tuple(entity.arg(0)))


def _ref(by_id: Mapping[int, Entity], token: str | None) -> Entity | None:
    ref = parse_reference(token)
    return by_id.get(ref) if ref is not None else None


def frame_from_axis2placement(by_id: Mapping[int, Entity], placement_id: int | None) -> Frame:
    """Frame of an ``IFCAXIS2PLACEMENT3D`` / ``IFCAXIS2PLACEMENT2D``.

    Absent or unknown placements resolve to the identity frame.
    """
    entity = by_id.get(placement_id) if placement_id is not None else None
    if entity is None:
        return Frame.identity()

    origin = cartesian_point(_ref(by_id, entity.arg(0)))
    if entity.type == "IFCAXIS2PLACEMENT3D":
        axis = direction(_ref(by_id, entity.arg(1)))
        ref_direction = direction(_ref(by_id, entity.arg(2)))
        return Frame.from_axes(origin, axis, ref_direction)
    if entity.type == "IFCAXIS2PLACEMENT2D":
        ref_direction = direction(_ref(by_id, entity.arg(1)))
        return Frame.from_axes(origin, None, ref_direction)
    return Frame.identity()


def frame_from_operator(by_id: Mapping[int, Entity], operator_id: int | None) -> Frame:
    """Frame of a cartesian transformation operator (uniform or non-uniform scale)."""
    entity = by_id.get(operator_id) if operator_id is not None else None
    if entity is None or not entity.type.startswith("IFCCARTESIANTRANSFORMATIONOPERATOR"):
        return Frame.identity()

    axis1 = direction(_ref(by_id, entity.arg(0)))
    origin = cartesian_point(_ref(by_id, entity.arg(2)))
    scale = parse_float(entity.arg(3))
    if scale is None:
        scale = 1.0

    axis3 = None
    scale2 = scale3 = scale
    if entity.type.startswith("IFCCARTESIANTRANSFORMATIONOPERATOR3D"):
        axis3 = direction(_ref(by_id, entity.arg(4)))
        if entity.type.endswith("NONUNIFORM"):
            scale2 = parse_float(entity.arg(5)) or scale
            scale3 = parse_float(entity.arg(6)) or scale
    elif entity.type.endswith("NONUNIFORM"):
        scale2 = parse_float(entity.arg(4)) or scale

    return Frame.from_axes(origin, axis3, axis1, scale=(scale, scale2, scale3))


def frame_from_local_placement(by_id: Mapping[int, Entity], placement_id: int | None) -> Frame:
    """World frame of an ``IFCLOCALPLACEMENT`` chain.

    Follows ``PlacementRelTo`` upwards; a cycle in the chain stops the walk.
    Other placement kinds (grid, linear) resolve to the identity frame.
    """
    chain: list[Frame] = []
    seen: set[int] = set()
    current = placement_id
    while current is not None and current not in seen:
        seen.add(current)
        entity = by_id.get(current)
        if entity is None or entity.type != "IFCLOCALPLACEMENT":
            break
        chain.append(frame_from_axis2placement(by_id, parse_reference(entity.arg(1))))
        current = parse_reference(entity.arg(0))

    world = Frame.identity()
    for frame in reversed(chain):
        world = world.compose(frame)
    return world
