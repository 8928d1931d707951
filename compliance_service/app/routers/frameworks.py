"""
API router for a plugin's framework definitions: listing, detail, deletion,
and the import routes (JSON, spreadsheet, template library).

Import routes report failures as `{success: false, message, errors?}` so the
import dialog can render every validation error at once.
"""
from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from ..config import settings
from ..database import get_db
from ..dependencies import get_framework_plugin, get_import_plugin, get_tenant_id
from ..exceptions import FrameworkServiceError
from ..services import framework_service, import_service, template_service
from ..services.plugin_service import FrameworkPlugin
from .. import schemas
from .errors import http_error, import_database_failure, import_failure

router = APIRouter(
    prefix="/plugins/{plugin_key}",
    tags=["Frameworks"]
)

# --- Framework Definitions ---

@router.get("/frameworks", response_model=List[schemas.FrameworkSummaryResponse])
def list_frameworks(
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return framework_service.list_frameworks(db, tenant_id, plugin.key)

@router.get("/frameworks/{framework_id}", response_model=schemas.FrameworkDetailResponse)
def get_framework(
    framework_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Get a framework's full structure and the projects tracking it, each with
    its overall progress.
    """
    try:
        return framework_service.get_framework_detail(db, tenant_id, framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.delete("/frameworks/{framework_id}", status_code=204)
def delete_framework(
    framework_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Deletes a framework and its structure. Fails with 409 while any project
    still has the framework attached.
    """
    try:
        framework_service.delete_framework(db, tenant_id, framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)
    return Response(status_code=204)

# --- Import Endpoints ---

@router.post("/import", response_model=schemas.ImportResult)
async def import_framework(
    request: Request,
    plugin: FrameworkPlugin = Depends(get_import_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Import a framework from a JSON definition sent as the request body.
    The body is read raw so unparsable JSON is reported like any other
    import error.
    """
    body = await request.body()
    try:
        return await run_in_threadpool(import_service.import_json, db, tenant_id, plugin.key, body)
    except FrameworkServiceError as e:
        return import_failure(e)
    except SQLAlchemyError as e:
        return import_database_failure(e)

@router.post("/import-excel", response_model=schemas.ImportResult)
def import_excel(
    payload: schemas.ExcelImportRequest,
    plugin: FrameworkPlugin = Depends(get_import_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Import a framework from spreadsheet rows already read by the client:
    `info` holds the Framework Info fields, `structure` the Structure rows.
    """
    try:
        return import_service.import_excel_rows(db, tenant_id, plugin.key, payload.info, payload.structure)
    except FrameworkServiceError as e:
        return import_failure(e)
    except SQLAlchemyError as e:
        return import_database_failure(e)

@router.post("/import-excel/upload", response_model=schemas.ImportResult, summary="Import Excel Workbook")
def import_excel_upload(
    file: UploadFile = File(..., description="An .xlsx workbook with 'Framework Info' and 'Structure' sheets."),
    plugin: FrameworkPlugin = Depends(get_import_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    max_bytes = settings.MAX_IMPORT_FILE_SIZE_MB * 1024 * 1024
    # One byte past the limit is enough to reject the file
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=413, detail=f"File exceeds the {settings.MAX_IMPORT_FILE_SIZE_MB} MB import limit."
        )
    try:
        return import_service.import_workbook(db, tenant_id, plugin.key, data)
    except FrameworkServiceError as e:
        return import_failure(e)
    except SQLAlchemyError as e:
        return import_database_failure(e)

@router.get("/template")
def download_excel_template(plugin: FrameworkPlugin = Depends(get_import_plugin)):
    """
    Downloads the `.xlsx` import template with the 'Framework Info' and
    'Structure' sheets pre-labeled.
    """
    return Response(
        content=template_service.build_excel_template(),
        media_type=template_service.XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{template_service.XLSX_TEMPLATE_FILENAME}"'},
    )

# --- Template Library ---

@router.get("/templates", response_model=List[schemas.TemplateSummary])
def list_templates(
    category: Optional[str] = Query(None, description="Only templates in this category ('all' for every category)."),
    query: Optional[str] = Query(None, description="Search name, description and tags."),
    plugin: FrameworkPlugin = Depends(get_import_plugin),
):
    return template_service.list_templates(category=category, query=query)

@router.get("/templates/{template_id}", response_model=schemas.TemplateDetail)
def get_template(template_id: str, plugin: FrameworkPlugin = Depends(get_import_plugin)):
    try:
        return template_service.get_template_detail(template_id)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.post("/import-template", response_model=schemas.ImportResult)
def import_template(
    payload: schemas.TemplateImportRequest,
    plugin: FrameworkPlugin = Depends(get_import_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Import a framework from the template library, either as-is or from the
    user's edited copy of the template JSON.
    """
    try:
        return import_service.import_template(
            db, tenant_id, plugin.key, payload.template_id, payload.customize, payload.customized_json
        )
    except FrameworkServiceError as e:
        return import_failure(e)
    except SQLAlchemyError as e:
        return import_database_failure(e)
