"""Coded diagnostics for the permissive import path.

Reading never fails on bad content: the parser, geometry interpreter and tree
builder report what they dropped as an :class:`IfcLiteWarning` carrying one
of the codes below, and carry on. A :class:`WarningPolicy` lets a caller
silence a code or turn it into a :class:`~ifclite.errors.DiagnosticError`.

==== ========================= ==============================================
Code Emitted by                Meaning
==== ========================= ==============================================
W01  ``parser.parse_step``     statement is not ``#id=TYPE(args)``; skipped
W02  ``geometry``, ``builder`` reference to an id with no entity
W03  ``geometry``              item unsupported, malformed or nested too deep
W04  ``geometry``, ``builder`` item or spatial node is its own ancestor
W05  ``parser.parse_step``     ``FILE_SCHEMA`` missing or not a known schema
W06  ``parser.parse_step``     id declared twice; the later one is kept
==== ========================= ==============================================
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from ifclite.errors import DiagnosticError

MALFORMED_STATEMENT = "W01"
UNRESOLVED_REFERENCE = "W02"
UNSUPPORTED_ITEM = "W03"
CYCLE_DETECTED = "W04"
UNKNOWN_SCHEMA = "W05"
DUPLICATE_ID = "W06"

KNOWN_CODES: frozenset[str] = frozenset(
    {
        MALFORMED_STATEMENT,
        UNRESOLVED_REFERENCE,
        UNSUPPORTED_ITEM,
        CYCLE_DETECTED,
        UNKNOWN_SCHEMA,
        DUPLICATE_ID,
    }
)


class IfcLiteWarning(UserWarning):
    """A dropped statement, reference or item; ``code`` says which kind."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(f"[{code}] {message}")


@dataclass(frozen=True)
class WarningPolicy:
    """Per-import handling of diagnostic codes.

    Pass the same policy to ``parse_step`` and ``build_tree`` (or once to
    ``import_step``) so every stage honours it. ``suppress`` wins over
    ``warn_as_error`` when a code is in both.
    """

    warn_as_error: frozenset[str] = frozenset()
    suppress: frozenset[str] = frozenset()


def emit_warning(code: str, message: str, *, policy: WarningPolicy | None = None) -> None:
    """Report one dropped piece of input under ``code``.

    Raises:
        DiagnosticError: If ``policy`` escalates ``code``.
    """
    if policy is not None:
        if code in policy.suppress:
            return
        if code in policy.warn_as_error:
            raise DiagnosticError(f"[{code}] {message}")

    warnings.warn(IfcLiteWarning(code, message), stacklevel=2)


def parse_code_list(raw: str) -> frozenset[str]:
    """Parse ``--warn-as-error`` / ``--suppress-warning`` values such as ``"W01,W04"``.

    Raises ``ValueError`` for a code outside W01 to W06.
    """
    codes: set[str] = set()
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        if token not in KNOWN_CODES:
            raise ValueError(f"Unknown warning code: {token!r} (known: {sorted(KNOWN_CODES)})")
        codes.add(token)
    return frozenset(codes)
