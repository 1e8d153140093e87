"""Click CLI entry point for the ifclite codec."""

from __future__ import annotations

import json
from pathlib import Path

import click

from ifclite import __version__
from ifclite.builder import build_tree
from ifclite.errors import IfcLiteError
from ifclite.gltf import export_glb
from ifclite.inspection import inspect_document, render_text, render_yaml
from ifclite.models import ExportOptions
from ifclite.parser import parse_step
from ifclite.service import IFC_FILE_EXTENSIONS, IFC_PRIMARY_FILE_EXTENSION, export_step
from ifclite.warning_policy import WarningPolicy, parse_code_list


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    """Parse CLI warning options into a WarningPolicy, or None if unset."""
    if warn_as_error is None and suppress_warning is None:
        return None
    try:
        wae = parse_code_list(warn_as_error) if warn_as_error else frozenset()
        sup = parse_code_list(suppress_warning) if suppress_warning else frozenset()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return WarningPolicy(warn_as_error=wae, suppress=sup)


def _document_stem(path: Path) -> str:
    """File name without its IFC extension."""
    name = path.name
    for suffix in IFC_FILE_EXTENSIONS:
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _warning_options(func):
    func = click.option(
        "--suppress-warning",
        "suppress_warning",
        type=str,
        default=None,
        help="Comma-separated W-codes to suppress (e.g. W03).",
    )(func)
    func = click.option(
        "--warn-as-error",
        "warn_as_error",
        type=str,
        default=None,
        help="Comma-separated W-codes to treat as errors (e.g. W01,W02).",
    )(func)
    return func


@click.group()
@click.version_option(version=__version__, prog_name="ifclite")
def main() -> None:
    """ifclite: read, inspect and write IFC physical files."""


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json", "yaml"]),
    default="text",
    show_default=True,
    help="Inspection output format.",
)
@_warning_options
def inspect(
    input_file: Path,
    output_format: str = "text",
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Summarise a file: schemas, entity types, skipped statements and the spatial tree."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    try:
        document = parse_step(input_file, policy=policy)
        root = build_tree(document, policy=policy)
    except IfcLiteError as e:
        raise click.ClickException(str(e))

    payload = inspect_document(document, root)
    if output_format == "json":
        click.echo(json.dumps(payload, indent=2))
    elif output_format == "yaml":
        click.echo(render_yaml(payload), nl=False)
    else:
        click.echo(render_text(payload), nl=False)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output GLB file path. Defaults to input name with .glb extension.",
)
@_warning_options
def glb(
    input_file: Path,
    output: Path | None,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Import a file and write its scene tree as a GLB preview."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    if output is None:
        output = input_file.parent / f"{_document_stem(input_file)}.glb"

    try:
        document = parse_step(input_file, policy=policy)
        root = build_tree(document, policy=policy)
        export_glb(root, output)
    except IfcLiteError as e:
        raise click.ClickException(str(e))
    click.echo(f"Exported: {output}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file path. Defaults to '<name>.roundtrip.ifc' next to the input.",
)
@click.option(
    "--name",
    "document_name",
    type=str,
    default=None,
    help="Document name written to the header. Defaults to the input file name.",
)
@click.option(
    "--schema",
    "schema_name",
    type=str,
    default=None,
    help="Schema name for FILE_SCHEMA (default IFC4X3_ADD2).",
)
@_warning_options
def roundtrip(
    input_file: Path,
    output: Path | None,
    document_name: str | None = None,
    schema_name: str | None = None,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Import a file and export its scene tree again."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    stem = _document_stem(input_file)
    if output is None:
        output = input_file.parent / f"{stem}.roundtrip{IFC_PRIMARY_FILE_EXTENSION}"

    try:
        options = ExportOptions(schema_name=schema_name) if schema_name else ExportOptions()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--schema") from e

    try:
        document = parse_step(input_file, policy=policy)
        root = build_tree(document, policy=policy)
        text = export_step(root, document_name or stem, options=options)
    except IfcLiteError as e:
        raise click.ClickException(str(e))

    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot write {output}: {e}") from e
    click.echo(f"Exported: {output}")
