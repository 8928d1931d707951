"""
API router for a plugin's frameworks as seen from projects: attaching and
detaching, per-project structure with implementation state, progress, and
updates to implementation rows.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from ..database import get_db
from ..dependencies import get_framework_plugin, get_tenant_id
from ..exceptions import FrameworkServiceError
from ..services import association_service, implementation_service, progress_service
from ..services.plugin_service import FrameworkPlugin
from .. import schemas
from .errors import http_error

router = APIRouter(
    prefix="/plugins/{plugin_key}",
    tags=["Project Frameworks"]
)

# --- Associations ---

@router.post("/add-to-project", response_model=schemas.AttachResponse)
def add_to_project(
    payload: schemas.AssociationRequest,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """
    Attach a framework to a project.

    This creates a 'Not started' implementation row for every tracked node of
    the framework. Attaching twice returns the existing association.
    """
    try:
        return association_service.attach(db, tenant_id, payload.project_id, payload.framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.post("/remove-from-project", response_model=schemas.DetachResponse)
def remove_from_project(
    payload: schemas.AssociationRequest,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    try:
        return association_service.detach(db, tenant_id, payload.project_id, payload.framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.get("/projects/{project_id}/custom-frameworks", response_model=List[schemas.ProjectFrameworkEntry])
def list_project_frameworks(
    project_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    try:
        return association_service.list_project_frameworks(db, tenant_id, project_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

# --- Per-project structure and progress ---

@router.get("/projects/{project_id}/frameworks/{framework_id}", response_model=schemas.ProjectFrameworkResponse)
def get_project_framework(
    project_id: UUID,
    framework_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    try:
        return implementation_service.get_project_framework(db, tenant_id, project_id, framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.get("/projects/{project_id}/frameworks/{framework_id}/progress", response_model=schemas.FrameworkProgress)
def get_progress(
    project_id: UUID,
    framework_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    try:
        return progress_service.get_progress(db, tenant_id, project_id, framework_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.get("/projects/{project_id}/progress", response_model=List[schemas.FrameworkProgressEntry])
def get_project_progress(
    project_id: UUID,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Progress of every framework this plugin has attached to the project."""
    try:
        return progress_service.get_project_rollup(db, tenant_id, project_id, plugin.key)
    except FrameworkServiceError as e:
        raise http_error(e)

# --- Implementation rows ---

def _update(db, tenant_id, implementation_id, level, changes, plugin):
    try:
        return implementation_service.update_implementation(
            db, tenant_id, implementation_id, level, changes, plugin.key
        )
    except FrameworkServiceError as e:
        raise http_error(e)

@router.patch("/level2/{implementation_id}", response_model=schemas.ImplementationState)
def update_level2_implementation(
    implementation_id: UUID,
    changes: schemas.ImplementationUpdate,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return _update(db, tenant_id, implementation_id, 2, changes, plugin)

@router.patch("/level3/{implementation_id}", response_model=schemas.ImplementationState)
def update_level3_implementation(
    implementation_id: UUID,
    changes: schemas.ImplementationUpdate,
    plugin: FrameworkPlugin = Depends(get_framework_plugin),
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return _update(db, tenant_id, implementation_id, 3, changes, plugin)
