"""ifclite: a lightweight reader and writer for IFC physical files."""

from ifclite.builder import build_tree
from ifclite.errors import DiagnosticError, ExportError, GeometryError, IfcLiteError, ParseError
from ifclite.models import ExportOptions, ImportOptions, StepDocument
from ifclite.parser import parse_step
from ifclite.scene import ContainerNode, GeometryNode
from ifclite.service import (
    IFC_FILE_EXTENSIONS,
    IFC_PRIMARY_FILE_EXTENSION,
    export_step,
    import_step,
)
from ifclite.warning_policy import WarningPolicy
from ifclite.writer import write_tree

__version__ = "0.1.0"

__all__ = [
    "IFC_FILE_EXTENSIONS",
    "IFC_PRIMARY_FILE_EXTENSION",
    "ContainerNode",
    "DiagnosticError",
    "ExportError",
    "ExportOptions",
    "GeometryError",
    "GeometryNode",
    "IfcLiteError",
    "ImportOptions",
    "ParseError",
    "StepDocument",
    "WarningPolicy",
    "__version__",
    "build_tree",
    "export_step",
    "import_step",
    "parse_step",
    "write_tree",
]
