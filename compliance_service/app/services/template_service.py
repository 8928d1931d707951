"""
Template library and the downloadable spreadsheet import template.

Library entries are bundled JSON files under `app/templates/`. Each holds a
pre-validated framework definition plus the catalogue data the import dialog
shows (category, tags).
"""
import copy
import io
import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from .. import schemas
from ..exceptions import NotFoundError

logger = logging.getLogger(__name__)

LIBRARY_DIR = Path(__file__).resolve().parent.parent / "templates"

INFO_SHEET = "Framework Info"
STRUCTURE_SHEET = "Structure"
INSTRUCTIONS_SHEET = "Instructions"

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLSX_TEMPLATE_FILENAME = "custom_framework_template.xlsx"

HEADER_FILL = PatternFill(fill_type="solid", fgColor="FF13715B")
HEADER_FONT = Font(bold=True, color="FFFFFFFF")

# --- Template library ---

@lru_cache(maxsize=1)
def _load_library() -> Dict[str, Dict[str, Any]]:
    library = {}
    for path in sorted(LIBRARY_DIR.glob("*.json")):
        with path.open(encoding="utf-8") as f:
            entry = json.load(f)
        library[entry["id"]] = entry
    logger.info(f"Loaded {len(library)} framework templates from {LIBRARY_DIR}")
    return library


def _summary(entry: Dict[str, Any]) -> schemas.TemplateSummary:
    framework = entry["framework"]
    structure = framework.get("structure", [])
    level2_items = [l2 for l1 in structure for l2 in l1.get("items", [])]
    if framework["hierarchy"]["type"] == schemas.HierarchyType.THREE_LEVEL.value:
        leaf_count = sum(len(l2.get("items", [])) for l2 in level2_items)
    else:
        leaf_count = len(level2_items)
    return schemas.TemplateSummary(
        id=entry["id"],
        name=entry["name"],
        description=entry["description"],
        category=entry["category"],
        tags=entry.get("tags", []),
        hierarchy_type=framework["hierarchy"]["type"],
        level1_count=len(structure),
        leaf_count=leaf_count,
    )


def list_templates(category: Optional[str] = None, query: Optional[str] = None) -> List[schemas.TemplateSummary]:
    """
    Lists library entries, optionally filtered by category and by a
    case-insensitive search over name, description and tags.
    """
    needle = query.strip().lower() if query else ""
    results = []
    for entry in _load_library().values():
        if category and category != "all" and entry["category"] != category:
            continue
        if needle:
            haystack = [entry["name"], entry["description"], *entry.get("tags", [])]
            if not any(needle in text.lower() for text in haystack):
                continue
        results.append(_summary(entry))
    return sorted(results, key=lambda t: t.name)


def list_categories() -> List[str]:
    return sorted({entry["category"] for entry in _load_library().values()})


def get_template(template_id: str) -> Dict[str, Any]:
    """Returns a copy of a library entry so callers may edit it freely."""
    entry = _load_library().get(template_id)
    if entry is None:
        raise NotFoundError(f"Template '{template_id}' not found", resource="template")
    return copy.deepcopy(entry)


def get_template_detail(template_id: str) -> schemas.TemplateDetail:
    entry = get_template(template_id)
    return schemas.TemplateDetail(**_summary(entry).model_dump(), framework=entry["framework"])

# --- Spreadsheet template ---

INSTRUCTIONS = [
    "CUSTOM FRAMEWORK IMPORT TEMPLATE",
    "",
    "INSTRUCTIONS:",
    f"1. Fill out the '{INFO_SHEET}' sheet with your framework details",
    f"2. Fill out the '{STRUCTURE_SHEET}' sheet with your framework hierarchy",
    "3. Save this file and upload it via the plugin",
    "",
    "HIERARCHY TYPES:",
    "- two_level: Category -> Control (e.g., GDPR Articles -> Requirements)",
    "- three_level: Category -> Control -> Subcontrol (e.g., NIST Functions -> Categories -> Subcategories)",
    "",
    "STRUCTURE SHEET FORMAT:",
    "- Level 1 = top-level items (Categories, Articles, Clauses, etc.)",
    "- Level 2 = second-level items (Controls, Requirements, Sections, etc.)",
    "- Level 3 = third-level items (Subcontrols) - only for three_level hierarchy",
    "- Rows are read top to bottom: a Level 2 row belongs to the Level 1 row above it,",
    "  a Level 3 row to the Level 2 row above it",
    "",
    "TIPS:",
    "- Use order values to control display order; rows keep file order on ties",
    "- Questions and Evidence Examples can be comma-separated lists",
    "- Leave optional fields blank if not needed",
]

INFO_ROWS = [
    ("Field", "Value", "Description"),
    ("name", "My Custom Framework", "Name of your framework (required)"),
    ("description", "A comprehensive compliance framework for...", "Description of the framework"),
    ("version", "1.0.0", "Version number (optional)"),
    ("is_organizational", "false", "true = organizational, false = project-level"),
    ("hierarchy_type", "two_level", "two_level or three_level"),
    ("level1_name", "Category", "Name for level 1 items (e.g., Category, Article, Clause)"),
    ("level2_name", "Control", "Name for level 2 items (e.g., Control, Requirement, Section)"),
    ("level3_name", "", "Name for level 3 items (only for three_level hierarchy)"),
]

STRUCTURE_HEADERS = [
    ("Level", 8),
    ("Order", 8),
    ("Title *", 50),
    ("Description", 60),
    ("Summary", 50),
    ("Questions (comma-separated)", 60),
    ("Evidence Examples (comma-separated)", 60),
]

STRUCTURE_EXAMPLE_ROWS = [
    (1, 1, "Access Control", "Controls related to access management", "", "", ""),
    (2, 1, "AC-1: Access Control Policy", "Establish and maintain access control policy",
     "Define who can access what resources",
     "Is there a documented access control policy?,Who is responsible for access control?",
     "Access control policy document,Policy review logs"),
    (2, 2, "AC-2: Account Management", "Manage system accounts throughout their lifecycle",
     "Procedures for account provisioning and deprovisioning",
     "How are accounts provisioned?,How are accounts deprovisioned?",
     "Account management procedures,User access reviews,Termination checklists"),
    (1, 2, "Audit and Accountability", "Controls for audit logging and accountability", "", "", ""),
    (2, 1, "AU-1: Audit Policy", "Establish audit and accountability policy",
     "Define what events are logged and how",
     "What events are being logged?,How long are logs retained?",
     "Audit policy,Log retention schedule"),
]


def _style_header(sheet):
    for cell in sheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
    sheet.freeze_panes = "A2"


def build_excel_template() -> bytes:
    """
    Builds the `.xlsx` import template: an instructions sheet plus the two
    sheets the spreadsheet importer reads, pre-filled with example rows.
    """
    workbook = Workbook()

    instructions = workbook.active
    instructions.title = INSTRUCTIONS_SHEET
    instructions.column_dimensions["A"].width = 100
    for line in INSTRUCTIONS:
        instructions.append([line])
    instructions["A1"].font = Font(bold=True)

    info = workbook.create_sheet(INFO_SHEET)
    for row in INFO_ROWS:
        info.append(list(row))
    for column, width in zip("ABC", (25, 60, 50)):
        info.column_dimensions[column].width = width
    _style_header(info)

    structure = workbook.create_sheet(STRUCTURE_SHEET)
    structure.append([header for header, _ in STRUCTURE_HEADERS])
    for row in STRUCTURE_EXAMPLE_ROWS:
        structure.append(list(row))
    for column, (_, width) in zip("ABCDEFG", STRUCTURE_HEADERS):
        structure.column_dimensions[column].width = width
    _style_header(structure)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
