"""Parsing of physical-file text into a :class:`StepDocument`."""

from __future__ import annotations

import re
from pathlib import Path

from ifclite.errors import ParseError
from ifclite.models import KNOWN_SCHEMAS, Entity, SkippedStatement, StepDocument
from ifclite.tokens import split_statements, split_top_level, unquote
from ifclite.warning_policy import (
    DUPLICATE_ID,
    MALFORMED_STATEMENT,
    UNKNOWN_SCHEMA,
    WarningPolicy,
    emit_warning,
)

ENTITY_RE = re.compile(r"^#(\d+)\s*=\s*([A-Za-z][A-Za-z0-9_]*)\s*\((.*)\)$", re.DOTALL)
FILE_SCHEMA_RE = re.compile(r"FILE_SCHEMA\s*\(\s*\((.*?)\)\s*\)\s*;", re.IGNORECASE | re.DOTALL)

# Matched on the original text: str.upper() can change its length (e.g.
# "ß" to "SS"), so offsets into an upper-cased copy would be wrong.
DATA_RE = re.compile(r"DATA;", re.IGNORECASE)
ENDSEC_RE = re.compile(r"ENDSEC;", re.IGNORECASE)
HEADER_RE = re.compile(r"HEADER;", re.IGNORECASE)


def _read_source_text(source: str | Path) -> str:
    """Read file content from a path, or treat the input as raw file text."""
    if isinstance(source, Path):
        try:
            return source.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ParseError(f"Cannot read file: {e}") from e
    return source


def extract_data_section(text: str) -> str:
    """Return the text between ``DATA;`` and the last ``ENDSEC;``."""
    start = DATA_RE.search(text)
    ends = list(ENDSEC_RE.finditer(text))
    if start is None or not ends or ends[-1].start() <= start.start():
        return ""
    return text[start.end() : ends[-1].start()]


def extract_header_section(text: str) -> str:
    """Return the ``HEADER;`` section up to (not including) ``DATA;``."""
    header = HEADER_RE.search(text)
    data = DATA_RE.search(text)
    if header is None or data is None or data.start() <= header.start():
        return ""
    return text[header.start() : data.start()].strip()


def extract_schemas(text: str) -> tuple[str, ...]:
    """Return the schema names declared by ``FILE_SCHEMA((...));``."""
    match = FILE_SCHEMA_RE.search(text)
    if not match:
        return ()
    names = (unquote(token).upper() for token in split_top_level(match.group(1)))
    return tuple(name for name in names if name)


def parse_statement(statement: str) -> Entity | None:
    """Parse one ``#id=TYPE(args)`` statement; None when it has another shape."""
    match = ENTITY_RE.match(statement.strip())
    if not match:
        return None
    return Entity(
        id=int(match.group(1)),
        type=match.group(2).upper(),
        args=tuple(split_top_level(match.group(3))),
        raw=statement,
    )


def parse_step(source: str | Path, *, policy: WarningPolicy | None = None) -> StepDocument:
    """Parse a physical file from a string or file path.

    Parsing is permissive: statements that are not ``#id=TYPE(args)`` shaped
    are skipped and recorded in ``StepDocument.skipped``; the rest of the file
    still parses. When an id is declared twice the later declaration wins.

    Raises:
        ParseError: If ``source`` is a path that cannot be read.
    """
    text = _read_source_text(source)
    schemas = extract_schemas(text)
    _check_schemas(schemas, policy)

    by_id: dict[int, Entity] = {}
    statement_index: dict[int, int] = {}
    skipped: list[SkippedStatement] = []

    for index, statement in enumerate(split_statements(extract_data_section(text))):
        entity = parse_statement(statement)
        if entity is None:
            skipped.append(
                SkippedStatement(index=index, text=statement, reason="not an entity instance")
            )
            emit_warning(
                MALFORMED_STATEMENT,
                f"Skipped statement {index}: {_abbreviate(statement)}",
                policy=policy,
            )
            continue

        previous = by_id.get(entity.id)
        if previous is not None:
            skipped.append(
                SkippedStatement(
                    index=statement_index[entity.id],
                    text=previous.raw,
                    reason=f"duplicate id #{entity.id}, replaced by statement {index}",
                )
            )
            emit_warning(
                DUPLICATE_ID,
                f"Entity #{entity.id} declared more than once; keeping the last declaration",
                policy=policy,
            )
        by_id[entity.id] = entity
        statement_index[entity.id] = index

    return StepDocument(
        header=extract_header_section(text),
        schemas=schemas,
        entities=tuple(by_id.values()),
        skipped=tuple(skipped),
    )


def _check_schemas(schemas: tuple[str, ...], policy: WarningPolicy | None) -> None:
    if not schemas:
        emit_warning(UNKNOWN_SCHEMA, "No FILE_SCHEMA declaration found", policy=policy)
        return
    for name in schemas:
        if name not in KNOWN_SCHEMAS:
            emit_warning(UNKNOWN_SCHEMA, f"Unknown schema {name!r}", policy=policy)


def _abbreviate(statement: str, limit: int = 80) -> str:
    flat = " ".join(statement.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."
