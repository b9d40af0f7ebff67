"""
Unit tests for payload parsers
"""

import json
from pathlib import Path

import pytest

from core.exceptions import ParseError
from ingestion.fetcher import ArchiveContents
from ingestion.formats import JsonListFormat, DelimitedTextFormat, ArchivedMarkupFormat
from ingestion.formats.archive import element_to_dict, flatten, unflatten
from ingestion.mappers.maires import DATE_COLUMNS
import xml.etree.ElementTree as ET


# ============================================================================
# JSON lists
# ============================================================================

def test_json_list_under_field_unwraps_items(deputes_payload):
    fmt = JsonListFormat(field="deputes", item_key="depute")

    result = fmt.parse(json.dumps(deputes_payload).encode())

    assert len(result) == 3
    assert result.records[0]["slug"] == "anne-martin"
    assert result.failures == []


def test_json_top_level_list(senateurs_payload):
    result = JsonListFormat().parse(json.dumps(senateurs_payload))

    assert [r["matricule"] for r in result.records] == ["19001A", "19002B", ""]


def test_json_non_object_items_are_failures():
    result = JsonListFormat().parse(b'[{"a": 1}, 42, "text", {"b": 2}]')

    assert len(result.records) == 2
    assert [f.position for f in result.failures] == [1, 2]


def test_json_missing_field_raises():
    with pytest.raises(ParseError) as exc_info:
        JsonListFormat(field="deputes").parse(b'{"senateurs": []}')

    assert exc_info.value.context["expected_field"] == "deputes"


def test_json_object_where_list_expected_raises():
    with pytest.raises(ParseError):
        JsonListFormat().parse(b'{"not": "a list"}')


def test_json_invalid_document_raises():
    with pytest.raises(ParseError):
        JsonListFormat().parse(b"<html>Service indisponible</html>")


@pytest.mark.parametrize("raw", [b"", b"   \n", None])
def test_json_empty_payload_is_empty_result(raw):
    result = JsonListFormat(field="deputes").parse(raw)

    assert result.records == []
    assert result.failures == []


# ============================================================================
# Delimited text
# ============================================================================

def test_delimited_rows_with_bom_and_dates(maires_csv):
    fmt = DelimitedTextFormat(delimiter=";", date_columns=DATE_COLUMNS)

    result = fmt.parse(maires_csv)

    assert len(result.records) == 4
    first = result.records[0]
    assert "Code du département" in first
    assert first["Code de la commune"] == "01001"
    assert first["Date de naissance"] == "1961-04-12"
    assert first["Date de début du mandat"] == "2020-05-18"


def test_delimited_invalid_date_becomes_none(maires_csv):
    fmt = DelimitedTextFormat(delimiter=";", date_columns=DATE_COLUMNS)

    result = fmt.parse(maires_csv)
    payan = next(r for r in result.records if r["Nom de l'élu"] == "PAYAN")

    assert payan["Date de naissance"] is None
    assert payan["Date de début de la fonction"] == "2020-12-21"


def test_delimited_malformed_rows_are_failures(maires_csv):
    result = DelimitedTextFormat(delimiter=";").parse(maires_csv)

    assert [f.position for f in result.failures] == [6, 7]
    assert result.failures[0].reason == "Expected 12 fields, got 13"
    assert result.failures[1].reason == "Row has fewer fields than the header"
    names = [r["Nom de l'élu"] for r in result.records]
    assert "MOREAU" not in names
    assert "ESTROSI" not in names


def test_delimited_short_row_is_failure():
    result = DelimitedTextFormat(delimiter=";").parse("a;b;c\n1;2;3\n4;5\n6;7;8\n")

    assert result.records == [{"a": "1", "b": "2", "c": "3"}, {"a": "6", "b": "7", "c": "8"}]
    assert len(result.failures) == 1
    assert result.failures[0].position == 3


def test_delimited_failures_point_at_payload_lines():
    raw = "a;b;c\n1;2;3\n4;5;6;7\n\n8;9\n10;11;12\n"

    result = DelimitedTextFormat(delimiter=";").parse(raw)

    assert [r["a"] for r in result.records] == ["1", "10"]
    assert [(f.position, f.reason) for f in result.failures] == [
        (3, "Expected 3 fields, got 4"),
        (5, "Row has fewer fields than the header"),
    ]


def test_delimited_keeps_leading_zeros_and_empty_cells():
    raw = "code;nom;note\n01001;Abergement;\n"

    result = DelimitedTextFormat(delimiter=";").parse(raw)

    assert result.records == [{"code": "01001", "nom": "Abergement", "note": ""}]


def test_delimited_header_only():
    result = DelimitedTextFormat(delimiter=";").parse("code;nom\n")

    assert result.records == []
    assert result.failures == []


def test_delimited_empty_payload():
    assert DelimitedTextFormat().parse(b"").records == []


# ============================================================================
# Archives
# ============================================================================

def test_element_to_dict_handles_attributes_and_repeats():
    element = ET.fromstring(
        '<acteur><uid xsi:type="IdActeur_type" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">PA1</uid>'
        "<mandat><id>1</id></mandat><mandat><id>2</id></mandat><vide/></acteur>"
    )

    data = element_to_dict(element)

    assert data["uid"] == {"@type": "IdActeur_type", "#text": "PA1"}
    assert data["mandat"] == [{"id": "1"}, {"id": "2"}]
    assert data["vide"] is None


def test_flatten_and_unflatten():
    nested = {"etatCivil": {"ident": {"nom": "Martin"}}, "mandats": {"mandat": {"typeOrgane": "ASSEMBLEE"}}, "vide": {}}

    flat = flatten(nested)

    assert flat["etatCivil.ident.nom"] == "Martin"
    assert flat["vide"] is None
    assert unflatten(flat, "mandats.mandat") == {"typeOrgane": "ASSEMBLEE"}
    assert unflatten(flat, "adresses") is None


def write_contents(root: Path, files):
    contents = ArchiveContents(root=root)
    for name, text in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        contents.files.append(path)
    contents.files.sort()
    return contents


def test_archive_parses_json_and_xml(tmp_path):
    contents = write_contents(tmp_path, {
        "acteur/PA1.json": json.dumps({"acteur": {"uid": "PA1", "etatCivil": {"ident": {"nom": "Martin"}}}}),
        "acteur/PA3.xml": '<acteur xmlns="http://schemas.assemblee-nationale.fr/referentiel"><uid>PA3</uid></acteur>',
        "README.txt": "ignored",
    })

    result = ArchivedMarkupFormat().parse(contents)

    assert result.failures == []
    by_uid = {r["uid"]: r for r in result.records}
    assert by_uid["PA1"]["etatCivil.ident.nom"] == "Martin"
    assert by_uid["PA1"]["_kind"] == "acteur"
    assert by_uid["PA1"]["_entry"] == "acteur/PA1.json"
    assert by_uid["PA3"]["_kind"] == "acteur"


def test_archive_unreadable_documents_are_failures(tmp_path):
    contents = write_contents(tmp_path, {
        "acteur/broken.json": "{not json",
        "acteur/broken.xml": "<acteur>",
        "acteur/list.json": "[1, 2]",
    })
    contents.failed_entries.append("acteur/corrupt.json")

    result = ArchivedMarkupFormat().parse(contents)

    assert result.records == []
    assert sorted(f.entry for f in result.failures) == [
        "acteur/broken.json",
        "acteur/broken.xml",
        "acteur/corrupt.json",
        "acteur/list.json",
    ]
