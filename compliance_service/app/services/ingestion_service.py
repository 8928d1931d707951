"""
Turns each supported input format into the same raw framework dictionary.

- JSON text is parsed and passed through unchanged.
- Spreadsheet rows (either pre-read by the client or read here from an
  uploaded `.xlsx`) are walked top to bottom and nested by their Level column.
- Template library entries are copied, or replaced by the user's edited JSON.

Nothing here validates structure; that is `validation_service`'s job.
"""
import io
import json
import logging
import re
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from ..exceptions import MalformedInputError
from . import template_service

logger = logging.getLogger(__name__)

ORDER_COLUMNS = ("order_no", "order")
QUESTION_COLUMNS = ("questions_comma_separated", "questions")
EVIDENCE_COLUMNS = ("evidence_examples_comma_separated", "evidence_examples")
TRUE_VALUES = {"true", "yes", "1"}

DEFAULT_VERSION = "1.0.0"
DEFAULT_LEVEL1_NAME = "Category"
DEFAULT_LEVEL2_NAME = "Control"


@dataclass
class WorkbookContent:
    """The two sheets of an import workbook, read into plain rows."""
    info: Dict[str, str] = field(default_factory=dict)
    structure: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class NormalizedInput:
    framework: Any
    # Library templates taken as-is skip validation
    trusted: bool = False

# --- JSON ---

def normalize_json(text) -> Any:
    """Parses JSON text. The parsed value is returned whatever its shape."""
    if text is None:
        raise MalformedInputError("Invalid JSON: empty request body")
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedInputError(f"Invalid JSON: {e}")
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Invalid JSON: {e}")

# --- Spreadsheet ---

def normalize_header(value) -> str:
    """
    'Title *' -> 'title', 'Questions (comma-separated)' -> 'questions_comma_separated',
    'Order No' -> 'order_no'.
    """
    if value is None:
        return ""
    key = str(value).strip().lower()
    key = re.sub(r"[^\w\s-]", "", key)
    key = re.sub(r"[\s-]+", "_", key)
    return key.strip("_")


def _cell_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _parse_int(value) -> Optional[int]:
    text = _cell_text(value)
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


def _split_list(value) -> Optional[List[str]]:
    parts = [part.strip() for part in _cell_text(value).split(",")]
    parts = [part for part in parts if part]
    return parts or None


def _first(row: Mapping[str, str], columns) -> str:
    for column in columns:
        if row.get(column):
            return row[column]
    return ""


def read_workbook(data: bytes) -> WorkbookContent:
    """
    Reads the 'Framework Info' (Field | Value) and 'Structure' sheets of an
    uploaded workbook. Structure rows without a level or title are skipped.
    """
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise MalformedInputError(f"Failed to parse Excel file: {e}")

    try:
        for sheet_name in (template_service.INFO_SHEET, template_service.STRUCTURE_SHEET):
            if sheet_name not in workbook.sheetnames:
                raise MalformedInputError(f'Sheet "{sheet_name}" not found in workbook')

        content = WorkbookContent()
        for row in workbook[template_service.INFO_SHEET].iter_rows(min_row=2, values_only=True):
            if not row:
                continue
            key = normalize_header(row[0])
            if key:
                content.info[key] = _cell_text(row[1]) if len(row) > 1 else ""

        headers = None
        for row in workbook[template_service.STRUCTURE_SHEET].iter_rows(values_only=True):
            if headers is None:
                headers = [normalize_header(cell) for cell in row]
                continue
            record = {header: _cell_text(cell) for header, cell in zip(headers, row) if header}
            if record.get("level") and record.get("title"):
                content.structure.append(record)
    finally:
        workbook.close()

    logger.info(f"Read workbook with {len(content.info)} info fields and {len(content.structure)} structure rows")
    return content


def normalize_excel(info, structure) -> Dict[str, Any]:
    """
    Builds the framework dictionary from Info fields and ordered Structure
    rows. Each Level 2 row attaches to the most recent Level 1 row and each
    Level 3 row to the most recent Level 2 row; rows with no such parent are
    dropped.
    """
    if not isinstance(info, Mapping) or not isinstance(structure, list):
        raise MalformedInputError("Missing info or structure data")

    fields = {normalize_header(key): _cell_text(value) for key, value in info.items()}
    framework = {
        "name": fields.get("name", ""),
        "description": fields.get("description") or None,
        "version": fields.get("version") or DEFAULT_VERSION,
        "is_organizational": fields.get("is_organizational", "").lower() in TRUE_VALUES,
        "hierarchy": {
            "type": fields.get("hierarchy_type", "").lower(),
            "level1_name": fields.get("level1_name") or DEFAULT_LEVEL1_NAME,
            "level2_name": fields.get("level2_name") or DEFAULT_LEVEL2_NAME,
            "level3_name": fields.get("level3_name") or None,
        },
        "structure": [],
    }

    current_level1 = None
    current_level2 = None
    dropped = 0
    for raw_row in structure:
        if not isinstance(raw_row, Mapping):
            dropped += 1
            continue
        row = {normalize_header(key): _cell_text(value) for key, value in raw_row.items()}
        level = _parse_int(row.get("level"))
        title = row.get("title", "")
        if level is None or not title:
            dropped += 1
            continue

        node = {"title": title, "description": row.get("description") or None}
        order_no = _parse_int(_first(row, ORDER_COLUMNS))
        if order_no is not None:
            node["order_no"] = order_no

        if level == 1:
            node["items"] = []
            framework["structure"].append(node)
            current_level1 = node
            current_level2 = None
        elif level == 2 and current_level1 is not None:
            node.update(_leaf_fields(row))
            node["items"] = []
            current_level1["items"].append(node)
            current_level2 = node
        elif level == 3 and current_level2 is not None:
            node.update(_leaf_fields(row))
            current_level2["items"].append(node)
        else:
            dropped += 1

    if dropped:
        logger.info(f"Dropped {dropped} structure rows with no level, no title or no parent row")
    return framework


def _leaf_fields(row: Mapping[str, str]) -> Dict[str, Any]:
    return {
        "summary": row.get("summary") or None,
        "questions": _split_list(_first(row, QUESTION_COLUMNS)),
        "evidence_examples": _split_list(_first(row, EVIDENCE_COLUMNS)),
    }

# --- Template library ---

def normalize_template(template_id: str, customize: bool = False, customized_json: Optional[str] = None) -> NormalizedInput:
    """
    Library templates imported as-is are trusted. A customised template is
    the user's edited JSON and goes through the same checks as a JSON import.
    """
    if not isinstance(template_id, str) or not template_id.strip():
        raise MalformedInputError("Template id is required")
    if not isinstance(customize, bool):
        raise MalformedInputError("customize must be true or false")
    if customized_json is not None and not isinstance(customized_json, str):
        raise MalformedInputError("customizedJson must be a JSON string")
    template = template_service.get_template(template_id)
    if not customize:
        return NormalizedInput(framework=template["framework"], trusted=True)
    if customized_json is None:
        customized_json = json.dumps(template["framework"])
    return NormalizedInput(framework=normalize_json(customized_json), trusted=False)
