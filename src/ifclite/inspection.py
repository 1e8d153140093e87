"""Inspection reports for parsed documents and their scene trees."""

from __future__ import annotations

from collections import Counter
from io import StringIO
from typing import Any

import numpy as np
from ruamel.yaml import YAML

from ifclite import __version__
from ifclite.models import StepDocument
from ifclite.scene import DefaultSceneAccessor, SceneAccessor, iter_nodes


def inspect_document(
    document: StepDocument, root: Any, *, accessor: SceneAccessor | None = None
) -> dict[str, object]:
    """Return a deterministic report on a document and the tree built from it."""
    accessor = accessor or DefaultSceneAccessor()

    tree: list[dict[str, object]] = []
    containers = 0
    leaves = 0
    triangles = 0
    lows: list[np.ndarray] = []
    highs: list[np.ndarray] = []

    for depth, node in iter_nodes(root, accessor):
        if accessor.children(node) is not None:
            containers += 1
            tree.append({"depth": depth, "name": accessor.name(node), "kind": "container"})
            continue
        leaves += 1
        mesh = accessor.mesh(node)
        entry: dict[str, object] = {"depth": depth, "name": accessor.name(node), "kind": "geometry"}
        if mesh is not None and not mesh.is_empty:
            entry["points"] = mesh.point_count
            entry["triangles"] = mesh.triangle_count
            triangles += mesh.triangle_count
            lows.append(mesh.positions.min(axis=0))
            highs.append(mesh.positions.max(axis=0))
        tree.append(entry)

    if lows:
        bounds = {
            "min": _to_list(np.min(np.stack(lows), axis=0)),
            "max": _to_list(np.max(np.stack(highs), axis=0)),
        }
    else:
        bounds = {"min": [0.0, 0.0, 0.0], "max": [0.0, 0.0, 0.0]}

    type_counts = Counter(entity.type for entity in document.entities)

    return {
        "summary": {
            "ifclite_version": __version__,
            "schemas": list(document.schemas),
            "entity_count": len(document.entities),
            "skipped_count": len(document.skipped),
            "container_count": containers,
            "geometry_count": leaves,
            "triangle_count": triangles,
            "bounds": bounds,
        },
        "entity_types": {name: type_counts[name] for name in sorted(type_counts)},
        "skipped": [
            {"index": s.index, "reason": s.reason, "text": s.text} for s in document.skipped
        ],
        "tree": tree,
    }


def render_text(payload: dict[str, object]) -> str:
    """Render human-readable text output for an inspection report."""
    lines: list[str] = []

    summary = payload["summary"]
    bounds = summary["bounds"]
    lines.append("summary:")
    lines.append(f"  ifclite_version: {summary['ifclite_version']}")
    lines.append(f"  schemas: {', '.join(summary['schemas']) or '-'}")
    lines.append(f"  entity_count: {summary['entity_count']}")
    lines.append(f"  skipped_count: {summary['skipped_count']}")
    lines.append(f"  container_count: {summary['container_count']}")
    lines.append(f"  geometry_count: {summary['geometry_count']}")
    lines.append(f"  triangle_count: {summary['triangle_count']}")
    lines.append(f"  bounds.min: {_fmt_vec(bounds['min'])}")
    lines.append(f"  bounds.max: {_fmt_vec(bounds['max'])}")

    lines.append("entity_types:")
    entity_types = payload.get("entity_types", {})
    if entity_types:
        for name, count in entity_types.items():
            lines.append(f"  {name}: {count}")
    else:
        lines.append("  {}")

    skipped = payload.get("skipped", [])
    if skipped:
        lines.append("skipped:")
        for entry in skipped:
            lines.append(f"  - index: {entry['index']} reason: {entry['reason']}")

    lines.append("tree:")
    for entry in payload.get("tree", []):
        indent = "  " * (entry["depth"] + 1)
        suffix = f" [{entry['triangles']} triangles]" if "triangles" in entry else ""
        lines.append(f"{indent}{entry['name']}{suffix}")

    return "\n".join(lines) + "\n"


def render_yaml(payload: dict[str, object]) -> str:
    """Render an inspection report as block-style YAML."""
    yml = YAML(typ="rt")
    yml.default_flow_style = False
    stream = StringIO()
    yml.dump(payload, stream)
    return stream.getvalue()


def _to_list(vec: np.ndarray) -> list[float]:
    return [float(v) for v in vec.tolist()]


def _fmt_vec(vec: object) -> str:
    if not isinstance(vec, list):
        return str(vec)
    return "[" + ", ".join(f"{float(v):.6g}" for v in vec) + "]"
