"""Custom exception hierarchy for the ifclite codec."""


class IfcLiteError(Exception):
    """Base exception for all ifclite errors."""


class ParseError(IfcLiteError):
    """Raised when the source document cannot be read."""


class GeometryError(IfcLiteError):
    """Raised when a representation item is malformed or cannot be tessellated."""


class DiagnosticError(IfcLiteError):
    """Raised when a diagnostic is escalated to an error by the warning policy."""


class ExportError(IfcLiteError):
    """Raised when writing an output file fails."""
