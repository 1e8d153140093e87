"""Import/export facade: parse + build, and write."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ifclite.builder import build_tree
from ifclite.models import ExportOptions, ImportOptions
from ifclite.parser import parse_step
from ifclite.scene import NodeFactory, SceneAccessor
from ifclite.warning_policy import WarningPolicy
from ifclite.writer import write_tree

IFC_FILE_EXTENSIONS: tuple[str, ...] = (".ifc", ".ifczip")
IFC_PRIMARY_FILE_EXTENSION = ".ifc"


def import_step(
    source: str | Path,
    *,
    factory: NodeFactory | None = None,
    options: ImportOptions | None = None,
    policy: WarningPolicy | None = None,
) -> Any:
    """Parse file text (or a file path) and build its scene tree."""
    document = parse_step(source, policy=policy)
    return build_tree(document, factory=factory, options=options, policy=policy)


def export_step(
    root: Any,
    document_name: str,
    *,
    accessor: SceneAccessor | None = None,
    options: ExportOptions | None = None,
) -> str:
    """Serialise a scene tree to file text."""
    return write_tree(root, document_name, accessor=accessor, options=options)
