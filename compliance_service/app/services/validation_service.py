"""
Structural validation of a raw framework dictionary.

The input is whatever the user typed into a JSON editor or a spreadsheet, so
every check tolerates wrong types and keeps going: callers get the full list
of problems in one response instead of fixing them one at a time.
"""
import logging
from typing import Any, List, Mapping

from pydantic import ValidationError

from .. import schemas
from ..exceptions import FrameworkValidationError

logger = logging.getLogger(__name__)

HIERARCHY_TYPES = tuple(t.value for t in schemas.HierarchyType)
LEAF_TEXT_FIELDS = ("description", "summary")
LEAF_LIST_FIELDS = ("questions", "evidence_examples")


def _is_text(value) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_order_no(value) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


def _check_node(node, label: str, text_fields, list_fields) -> List[str]:
    errors = []
    if not _is_text(node.get("title")):
        errors.append(f"{label}: title is required")
    order_no = node.get("order_no")
    if order_no is not None and not _is_order_no(order_no):
        errors.append(f"{label}: order_no must be a whole number")
    for key in text_fields:
        if node.get(key) is not None and not isinstance(node[key], str):
            errors.append(f"{label}: {key} must be a string")
    for key in list_fields:
        value = node.get(key)
        if value is None:
            continue
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            errors.append(f"{label}: {key} must be a list of strings")
    metadata = node.get("metadata")
    if metadata is not None and not isinstance(metadata, Mapping):
        errors.append(f"{label}: metadata must be an object")
    return errors


def _validate_level2(node, label: str, hierarchy_type) -> List[str]:
    if not isinstance(node, Mapping):
        return [f"{label}: must be an object"]
    errors = _check_node(node, label, LEAF_TEXT_FIELDS, LEAF_LIST_FIELDS)
    items = node.get("items")
    if items is None:
        return errors
    if not isinstance(items, list):
        errors.append(f"{label}: items must be an array")
        return errors

    if hierarchy_type == schemas.HierarchyType.TWO_LEVEL.value:
        if items:
            title = node.get("title")
            errors.append(
                f'{label} "{title}": has {len(items)} nested items but the hierarchy is two_level; '
                f'use three_level or remove the nested items'
            )
        return errors

    for index, child in enumerate(items, start=1):
        child_label = f"{label} > Level 3[{index}]"
        if not isinstance(child, Mapping):
            errors.append(f"{child_label}: must be an object")
            continue
        errors.extend(_check_node(child, child_label, LEAF_TEXT_FIELDS, LEAF_LIST_FIELDS))
        if child.get("items"):
            errors.append(f"{child_label}: level 3 items cannot have nested items")
    return errors


def _validate_level1(node, label: str, hierarchy_type) -> List[str]:
    if not isinstance(node, Mapping):
        return [f"{label}: must be an object"]
    errors = _check_node(node, label, ("description",), ())
    items = node.get("items")
    if items is None:
        return errors
    if not isinstance(items, list):
        errors.append(f"{label}: items must be an array")
        return errors
    for index, child in enumerate(items, start=1):
        errors.extend(_validate_level2(child, f"{label} > Level 2[{index}]", hierarchy_type))
    return errors


def validate(data: Any) -> List[str]:
    """
    Returns every structural problem found in `data`; an empty list means the
    definition can be persisted.
    """
    if not isinstance(data, Mapping):
        return ["Framework definition must be a JSON object"]

    errors = []
    if not _is_text(data.get("name")):
        errors.append("Framework name is required")
    for key in ("description", "version"):
        if data.get(key) is not None and not isinstance(data[key], str):
            errors.append(f"Framework {key} must be a string")
    if data.get("is_organizational") is not None and not isinstance(data["is_organizational"], bool):
        errors.append("is_organizational must be true or false")

    hierarchy_type = None
    hierarchy = data.get("hierarchy")
    if not isinstance(hierarchy, Mapping):
        errors.append("Hierarchy configuration is required")
    else:
        hierarchy_type = hierarchy.get("type")
        if hierarchy_type not in HIERARCHY_TYPES:
            errors.append('Hierarchy type must be "two_level" or "three_level"')
            hierarchy_type = None
        if not _is_text(hierarchy.get("level1_name")):
            errors.append("Level 1 name is required (e.g., Category, Article, Clause)")
        if not _is_text(hierarchy.get("level2_name")):
            errors.append("Level 2 name is required (e.g., Control, Requirement, Section)")
        level3_name = hierarchy.get("level3_name")
        if hierarchy_type == schemas.HierarchyType.THREE_LEVEL.value:
            if not _is_text(level3_name):
                errors.append("Level 3 name is required for three-level hierarchies")
        elif level3_name is not None and not isinstance(level3_name, str):
            errors.append("Level 3 name must be a string")

    structure = data.get("structure")
    if not isinstance(structure, list):
        errors.append("Structure array is required")
    elif not structure:
        errors.append("Structure must contain at least one level 1 item")
    else:
        for index, node in enumerate(structure, start=1):
            errors.extend(_validate_level1(node, f"Level 1[{index}]", hierarchy_type))

    return errors


def _without_nulls(value):
    if isinstance(value, Mapping):
        return {k: _without_nulls(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_without_nulls(v) for v in value]
    return value


def _format_pydantic_error(error) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def to_parsed_framework(data: Any) -> schemas.ParsedFramework:
    """Converts a raw definition into the typed tree. Explicit nulls mean 'use the default'."""
    try:
        return schemas.ParsedFramework.model_validate(_without_nulls(data))
    except ValidationError as e:
        raise FrameworkValidationError([_format_pydantic_error(err) for err in e.errors()])


def check(data: Any) -> schemas.ParsedFramework:
    """Validates `data` and returns the typed tree, or raises with every error found."""
    errors = validate(data)
    if errors:
        logger.info(f"Framework definition rejected with {len(errors)} validation errors")
        raise FrameworkValidationError(errors)
    return to_parsed_framework(data)
