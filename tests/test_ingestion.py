import io

import pytest
from openpyxl import Workbook

from compliance_service.app.exceptions import MalformedInputError, NotFoundError
from compliance_service.app.services import ingestion_service, template_service, validation_service


def test_normalize_json_reports_parser_error():
    with pytest.raises(MalformedInputError) as exc:
        ingestion_service.normalize_json('{"name": "broken",')
    assert exc.value.message.startswith("Invalid JSON")


def test_normalize_json_passes_any_shape_through():
    assert ingestion_service.normalize_json(b'[1, 2, 3]') == [1, 2, 3]
    assert ingestion_service.normalize_json('"just text"') == "just text"


def test_normalize_json_rejects_empty_body():
    with pytest.raises(MalformedInputError):
        ingestion_service.normalize_json(b"")


@pytest.mark.parametrize("header, expected", [
    ("Title *", "title"),
    ("Questions (comma-separated)", "questions_comma_separated"),
    ("Evidence Examples (comma-separated)", "evidence_examples_comma_separated"),
    ("  Order No ", "order_no"),
    ("Level", "level"),
    (None, ""),
])
def test_normalize_header(header, expected):
    assert ingestion_service.normalize_header(header) == expected


def test_three_level_rows_build_one_node_per_level():
    info = {"name": "Excel FW", "hierarchy_type": "three_level", "level3_name": "Subcontrol"}
    rows = [
        {"level": 1, "title": "Cat A", "order": 1},
        {"level": 2, "title": "Ctrl A1", "order": 1},
        {"level": 3, "title": "Sub A1.1", "order": 1},
    ]
    framework = ingestion_service.normalize_excel(info, rows)

    assert len(framework["structure"]) == 1
    level1 = framework["structure"][0]
    assert level1["title"] == "Cat A"
    assert len(level1["items"]) == 1
    assert len(level1["items"][0]["items"]) == 1
    assert level1["items"][0]["items"][0]["title"] == "Sub A1.1"

    parsed = validation_service.check(framework)
    assert parsed.leaf_count() == 1


def test_info_defaults_and_flags():
    framework = ingestion_service.normalize_excel(
        {"name": "FW", "hierarchy_type": "two_level", "is_organizational": "Yes"}, []
    )
    assert framework["version"] == "1.0.0"
    assert framework["is_organizational"] is True
    assert framework["hierarchy"]["level1_name"] == "Category"
    assert framework["hierarchy"]["level2_name"] == "Control"
    assert framework["hierarchy"]["level3_name"] is None

    framework = ingestion_service.normalize_excel({"name": "FW", "is_organizational": "no"}, [])
    assert framework["is_organizational"] is False


def test_rows_without_parent_or_title_are_dropped():
    rows = [
        {"level": 2, "title": "Orphan control"},
        {"level": 1, "title": "Cat"},
        {"level": 3, "title": "Orphan subcontrol"},
        {"level": 2, "title": ""},
        {"level": "", "title": "No level"},
        {"level": 2, "title": "Ctrl"},
    ]
    framework = ingestion_service.normalize_excel({"name": "FW", "hierarchy_type": "two_level"}, rows)
    assert [n["title"] for n in framework["structure"]] == ["Cat"]
    assert [n["title"] for n in framework["structure"][0]["items"]] == ["Ctrl"]


def test_list_columns_are_split_on_commas():
    rows = [
        {"Level": "1", "Title *": "Cat"},
        {
            "Level": "2",
            "Order": "3",
            "Title *": "Ctrl",
            "Summary": "Short",
            "Questions (comma-separated)": "Is it done?, Who owns it? ,",
            "Evidence Examples (comma-separated)": "Policy",
        },
    ]
    framework = ingestion_service.normalize_excel({"Name": "FW", "Hierarchy Type": "two_level"}, rows)
    control = framework["structure"][0]["items"][0]
    assert control["order_no"] == 3
    assert control["summary"] == "Short"
    assert control["questions"] == ["Is it done?", "Who owns it?"]
    assert control["evidence_examples"] == ["Policy"]
    assert "order_no" not in framework["structure"][0]


def test_normalize_excel_requires_info_and_structure():
    with pytest.raises(MalformedInputError):
        ingestion_service.normalize_excel(None, [])
    with pytest.raises(MalformedInputError):
        ingestion_service.normalize_excel({"name": "FW"}, None)


def test_read_workbook_accepts_the_downloadable_template():
    content = ingestion_service.read_workbook(template_service.build_excel_template())

    assert content.info["name"] == "My Custom Framework"
    assert content.info["hierarchy_type"] == "two_level"
    assert len(content.structure) == 5

    parsed = validation_service.check(ingestion_service.normalize_excel(content.info, content.structure))
    assert [l1.title for l1 in parsed.structure] == ["Access Control", "Audit and Accountability"]
    assert parsed.leaf_count() == 3
    assert parsed.structure[0].items[1].evidence_examples == [
        "Account management procedures", "User access reviews", "Termination checklists"
    ]


def test_read_workbook_rejects_non_excel_bytes():
    with pytest.raises(MalformedInputError):
        ingestion_service.read_workbook(b"definitely not a zip file")


def test_read_workbook_requires_both_sheets():
    workbook = Workbook()
    workbook.active.title = "Framework Info"
    buffer = io.BytesIO()
    workbook.save(buffer)

    with pytest.raises(MalformedInputError) as exc:
        ingestion_service.read_workbook(buffer.getvalue())
    assert "Structure" in exc.value.message


def test_template_as_is_is_trusted():
    normalized = ingestion_service.normalize_template("dora")
    assert normalized.trusted is True
    assert normalized.framework["name"] == "DORA"


def test_customized_template_goes_through_json_path():
    normalized = ingestion_service.normalize_template(
        "dora", customize=True, customized_json='{"name": "My DORA"}'
    )
    assert normalized.trusted is False
    assert normalized.framework == {"name": "My DORA"}

    with pytest.raises(MalformedInputError):
        ingestion_service.normalize_template("dora", customize=True, customized_json="{oops")


def test_unknown_template():
    with pytest.raises(NotFoundError):
        ingestion_service.normalize_template("no-such-template")
