"""Tests for physical-file parsing."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest

from ifclite.errors import DiagnosticError, ParseError
from ifclite.parser import (
    extract_data_section,
    extract_header_section,
    extract_schemas,
    parse_statement,
    parse_step,
)
from ifclite.tokens import unquote
from ifclite.warning_policy import IfcLiteWarning, WarningPolicy


def _codes(records) -> list[str]:
    return [r.message.code for r in records if issubclass(r.category, IfcLiteWarning)]


class TestSections:
    def test_data_section(self):
        text = "HEADER;ENDSEC;DATA;#1=A();ENDSEC;END-ISO-10303-21;"
        assert extract_data_section(text) == "#1=A();"

    def test_data_section_case_insensitive(self):
        assert extract_data_section("data;#1=A();endsec;") == "#1=A();"

    def test_missing_data_section(self):
        assert extract_data_section("HEADER;ENDSEC;") == ""

    def test_header_section(self, minimal_project_ifc):
        header = extract_header_section(minimal_project_ifc)
        assert header.startswith("HEADER;")
        assert "FILE_SCHEMA" in header
        assert "IFCPROJECT" not in header

    def test_expanding_characters_before_data(self):
        text = (
            "HEADER;\n"
            f"FILE_NAME('m.ifc','',('{'Strauß' * 10}'),('ﬁrm'),'','','');\n"
            "ENDSEC;\n"
            "DATA;\n"
            "#1=IFCPROJECT('p',$,'Demo',$,$,$,$,$,$);\n"
            "ENDSEC;\n"
            "END-ISO-10303-21;\n"
        )
        assert extract_data_section(text).strip() == "#1=IFCPROJECT('p',$,'Demo',$,$,$,$,$,$);"
        assert extract_header_section(text).endswith("ENDSEC;")

    def test_non_ascii_header_keeps_entities(self, make_ifc):
        text = make_ifc("#1=IFCPROJECT('p',$,'Demo',$,$,$,$,$,$);").replace(
            "('tester')", "('" + "Strauß" * 10 + "')"
        )
        doc = parse_step(text)
        assert [e.type for e in doc.entities] == ["IFCPROJECT"]
        assert doc.skipped == ()

    def test_schemas(self):
        assert extract_schemas("FILE_SCHEMA(('ifc4'));") == ("IFC4",)
        assert extract_schemas("FILE_SCHEMA(('IFC2X3','IFC4'));") == ("IFC2X3", "IFC4")
        assert extract_schemas("no schema here") == ()


class TestParseStatement:
    def test_entity(self):
        entity = parse_statement("#12= IfcProject('g',$,'Demo')")
        assert entity is not None
        assert entity.id == 12
        assert entity.type == "IFCPROJECT"
        assert entity.args == ("'g'", "$", "'Demo'")

    def test_not_an_entity(self):
        assert parse_statement("FILE_SCHEMA(('IFC4'))") is None
        assert parse_statement("#x=A()") is None

    def test_arg_past_end(self):
        entity = parse_statement("#1=A(1)")
        assert entity.arg(0) == "1"
        assert entity.arg(5) is None


class TestParseStep:
    def test_minimal_project(self, minimal_project_ifc):
        doc = parse_step(minimal_project_ifc)
        assert doc.schemas == ("IFC4",)
        assert len(doc.entities) == 1
        project = doc.entities[0]
        assert project.type == "IFCPROJECT"
        assert unquote(project.arg(2)) == "Demo"
        assert doc.skipped == ()

    def test_malformed_statement_skipped(self, make_ifc):
        text = make_ifc("#1=IFCPROJECT('g',$,'Demo',$,$,$,$,$);\ngarbage here;\n#2=IFCSITE('s');")
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            doc = parse_step(text)
        assert [e.id for e in doc.entities] == [1, 2]
        assert len(doc.skipped) == 1
        assert doc.skipped[0].text == "garbage here"
        assert doc.skipped[0].index == 1
        assert _codes(w) == ["W01"]

    def test_literal_with_semicolon_and_quote(self, make_ifc):
        doc = parse_step(make_ifc("#1=IFCPROJECT('g',$,'A;B ''C''',$,$,$,$,$);"))
        assert unquote(doc.entities[0].arg(2)) == "A;B 'C'"

    def test_duplicate_id_later_wins(self, make_ifc):
        text = make_ifc("#1=IFCWALL('first');\n#1=IFCSLAB('second');")
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            doc = parse_step(text)
        assert len(doc.entities) == 1
        assert doc.entities[0].type == "IFCSLAB"
        assert doc.skipped[0].reason == "duplicate id #1, replaced by statement 1"
        assert "W06" in _codes(w)

    def test_duplicate_records_replaced_statement(self, make_ifc):
        text = make_ifc("#2=IFCWALL('a');\n#1=IFCWALL('first');\n#1=IFCSLAB('second');")
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            doc = parse_step(text)
        (skipped,) = doc.skipped
        assert skipped.index == 1
        assert skipped.text == "#1=IFCWALL('first')"

    def test_unknown_schema_warns(self, make_ifc):
        with pytest.warns(IfcLiteWarning, match=r"\[W05\].*IFC9"):
            doc = parse_step(make_ifc("#1=IFCPROJECT('g');", schema="IFC9"))
        assert len(doc.entities) == 1

    def test_missing_schema_warns(self):
        with pytest.warns(IfcLiteWarning, match=r"\[W05\]"):
            doc = parse_step("DATA;#1=IFCPROJECT('g');ENDSEC;")
        assert doc.schemas == ()
        assert len(doc.entities) == 1

    def test_strict_policy_raises(self, make_ifc):
        policy = WarningPolicy(warn_as_error=frozenset({"W01"}))
        with pytest.raises(DiagnosticError, match=r"\[W01\]"):
            parse_step(make_ifc("nonsense;"), policy=policy)

    def test_empty_input(self):
        with pytest.warns(IfcLiteWarning):
            doc = parse_step("")
        assert doc.entities == ()

    def test_reads_path(self, tmp_path, minimal_project_ifc):
        path = tmp_path / "demo.ifc"
        path.write_text(minimal_project_ifc, encoding="utf-8")
        doc = parse_step(path)
        assert doc.entities[0].type == "IFCPROJECT"

    def test_unreadable_path(self, tmp_path):
        with pytest.raises(ParseError, match="Cannot read file"):
            parse_step(Path(tmp_path / "missing.ifc"))
