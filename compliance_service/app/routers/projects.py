"""
API router for host projects, the targets frameworks are attached to.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from ..database import get_db
from ..dependencies import get_tenant_id
from ..exceptions import FrameworkServiceError
from ..services import progress_service, project_service
from .. import schemas
from .errors import http_error

router = APIRouter(
    prefix="/projects",
    tags=["Projects"]
)

@router.post("/", response_model=schemas.ProjectResponse, status_code=201)
def create_project(
    project: schemas.ProjectCreate,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    return project_service.to_response(project_service.create_project(db, tenant_id, project))

@router.get("/", response_model=List[schemas.ProjectResponse])
def list_projects(
    skip: int = 0,
    limit: int = 100,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    projects = project_service.list_projects(db, tenant_id, skip=skip, limit=limit)
    return [project_service.to_response(project) for project in projects]

@router.get("/{project_id}", response_model=schemas.ProjectResponse)
def get_project(project_id: UUID, tenant_id: str = Depends(get_tenant_id), db: Session = Depends(get_db)):
    try:
        return project_service.to_response(project_service.get_project(db, tenant_id, project_id))
    except FrameworkServiceError as e:
        raise http_error(e)

@router.post("/{project_id}/system-frameworks", response_model=schemas.ProjectResponse)
def add_system_framework(
    project_id: UUID,
    link: schemas.SystemFrameworkLink,
    tenant_id: str = Depends(get_tenant_id),
    db: Session = Depends(get_db),
):
    """Enable a built-in framework on the project."""
    try:
        project = project_service.add_system_framework(db, tenant_id, project_id, link.framework_key)
        return project_service.to_response(project)
    except FrameworkServiceError as e:
        raise http_error(e)

@router.get("/{project_id}/framework-progress", response_model=List[schemas.FrameworkProgressEntry])
def get_framework_progress(project_id: UUID, tenant_id: str = Depends(get_tenant_id), db: Session = Depends(get_db)):
    """Progress of every plugin-provided framework attached to the project."""
    try:
        return progress_service.get_project_rollup(db, tenant_id, project_id)
    except FrameworkServiceError as e:
        raise http_error(e)
