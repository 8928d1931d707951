import pytest

from compliance_service.app.exceptions import FrameworkValidationError
from compliance_service.app.services import validation_service

from .conftest import THREE_LEVEL_FRAMEWORK, TWO_LEVEL_FRAMEWORK, framework_data


def test_valid_frameworks_have_no_errors():
    assert validation_service.validate(TWO_LEVEL_FRAMEWORK) == []
    assert validation_service.validate(THREE_LEVEL_FRAMEWORK) == []


def test_two_level_control_with_nested_items_is_named():
    data = framework_data()
    data["structure"][0]["items"][0]["items"] = [{"title": "Sub1"}]

    errors = validation_service.validate(data)

    assert len(errors) == 1
    assert "Ctrl1" in errors[0]
    assert "Level 1[1] > Level 2[1]" in errors[0]


def test_all_errors_are_collected():
    data = {
        "name": "",
        "hierarchy": {"type": "four_level", "level1_name": "", "level2_name": "Control"},
        "structure": [],
    }
    errors = validation_service.validate(data)

    assert "Framework name is required" in errors
    assert 'Hierarchy type must be "two_level" or "three_level"' in errors
    assert any(e.startswith("Level 1 name is required") for e in errors)
    assert "Structure must contain at least one level 1 item" in errors


@pytest.mark.parametrize("garbage", [None, [], "framework", 42, {"structure": "nope", "hierarchy": []}])
def test_garbage_input_yields_errors_not_exceptions(garbage):
    errors = validation_service.validate(garbage)
    assert errors


def test_three_level_needs_level3_name():
    data = framework_data(THREE_LEVEL_FRAMEWORK)
    del data["hierarchy"]["level3_name"]
    assert validation_service.validate(data) == ["Level 3 name is required for three-level hierarchies"]


def test_node_level_type_checks():
    data = framework_data()
    data["structure"].append({"title": "", "order_no": True, "items": "not a list"})
    data["structure"][0]["items"][1]["questions"] = "one question"
    data["structure"][0]["items"][1]["order_no"] = "2"

    errors = validation_service.validate(data)

    assert "Level 1[2]: title is required" in errors
    assert "Level 1[2]: order_no must be a whole number" in errors
    assert "Level 1[2]: items must be an array" in errors
    assert "Level 1[1] > Level 2[2]: questions must be a list of strings" in errors
    assert "Level 1[1] > Level 2[2]: order_no must be a whole number" in errors


def test_duplicate_and_gapped_order_numbers_are_accepted():
    data = framework_data()
    data["structure"][0]["items"][0]["order_no"] = 5
    data["structure"][0]["items"][1]["order_no"] = 5
    assert validation_service.validate(data) == []


def test_is_organizational_must_be_boolean():
    errors = validation_service.validate(framework_data(is_organizational="true"))
    assert errors == ["is_organizational must be true or false"]


def test_check_returns_typed_tree():
    parsed = validation_service.check(framework_data(version=None, description=None))

    assert parsed.version == "1.0.0"
    assert parsed.is_organizational is False
    assert parsed.leaf_count() == 2
    assert [item.title for item in parsed.structure[0].items] == ["Ctrl1", "Ctrl2"]


def test_check_counts_level3_leaves():
    assert validation_service.check(THREE_LEVEL_FRAMEWORK).leaf_count() == 3


def test_check_raises_with_every_error():
    with pytest.raises(FrameworkValidationError) as exc:
        validation_service.check({"hierarchy": {"type": "two_level"}})
    assert exc.value.message == "Validation failed"
    assert len(exc.value.errors) >= 3
