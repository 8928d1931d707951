"""
The import pipeline: normalise an input, validate it, persist it.

Every entry point ends in `import_framework`, so JSON, spreadsheets and
library templates produce identical frameworks from identical content.
"""
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from .. import schemas
from ..exceptions import FrameworkValidationError
from . import framework_service, ingestion_service, validation_service

logger = logging.getLogger(__name__)


def import_framework(db: Session, tenant_id: str, plugin_key: str, raw: Any, trusted: bool = False) -> schemas.ImportResult:
    """
    Validates and persists a raw framework definition. `trusted` input (a
    library template taken as-is) skips the structural checks.
    """
    try:
        if trusted:
            parsed = validation_service.to_parsed_framework(raw)
        else:
            parsed = validation_service.check(raw)
    except FrameworkValidationError as e:
        logger.info(f"Import for tenant {tenant_id} via '{plugin_key}' failed validation: {e.errors}")
        raise

    result = framework_service.persist(db, tenant_id, parsed, plugin_key)
    verb = "updated" if result.replaced else "imported"
    return schemas.ImportResult(
        framework_id=result.framework_id,
        items_created=result.items_created,
        replaced=result.replaced,
        message=f'Framework "{parsed.name.strip()}" {verb} successfully with {result.items_created} items',
    )


def import_json(db: Session, tenant_id: str, plugin_key: str, text) -> schemas.ImportResult:
    return import_framework(db, tenant_id, plugin_key, ingestion_service.normalize_json(text))


def import_excel_rows(
    db: Session,
    tenant_id: str,
    plugin_key: str,
    info: Any,
    structure: Any,
) -> schemas.ImportResult:
    """Imports spreadsheet rows the client already read from the workbook."""
    raw = ingestion_service.normalize_excel(info, structure)
    return import_framework(db, tenant_id, plugin_key, raw)


def import_workbook(db: Session, tenant_id: str, plugin_key: str, data: bytes) -> schemas.ImportResult:
    """Imports an uploaded `.xlsx` file."""
    content = ingestion_service.read_workbook(data)
    raw = ingestion_service.normalize_excel(content.info, content.structure)
    return import_framework(db, tenant_id, plugin_key, raw)


def import_template(
    db: Session,
    tenant_id: str,
    plugin_key: str,
    template_id: Any,
    customize: Any = False,
    customized_json: Optional[Any] = None,
) -> schemas.ImportResult:
    normalized = ingestion_service.normalize_template(template_id, customize, customized_json)
    return import_framework(db, tenant_id, plugin_key, normalized.framework, trusted=normalized.trusted)
