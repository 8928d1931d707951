"""
Service layer for the host project registry: the projects frameworks get
attached to, and their built-in framework links.
"""
import logging
from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from .. import models, schemas
from ..exceptions import NotFoundError

logger = logging.getLogger(__name__)


def to_response(project: models.Project) -> schemas.ProjectResponse:
    return schemas.ProjectResponse(
        id=project.id,
        project_title=project.project_title,
        is_organizational=project.is_organizational,
        created_at=project.created_at,
        system_frameworks=sorted(link.framework_key for link in project.system_frameworks),
    )


def create_project(db: Session, tenant_id: str, project: schemas.ProjectCreate) -> models.Project:
    db_project = models.Project(
        tenant_id=tenant_id,
        project_title=project.project_title,
        is_organizational=project.is_organizational,
    )
    for key in dict.fromkeys(project.system_frameworks):
        db_project.system_frameworks.append(models.ProjectSystemFramework(framework_key=key))
    db.add(db_project)
    db.commit()
    db.refresh(db_project)
    logger.info(f"Created project '{db_project.project_title}' ({db_project.id}) for tenant {tenant_id}")
    return db_project


def list_projects(db: Session, tenant_id: str, skip: int = 0, limit: int = 100) -> List[models.Project]:
    return db.query(models.Project).filter(
        models.Project.tenant_id == tenant_id
    ).order_by(models.Project.created_at).offset(skip).limit(limit).all()


def get_project(db: Session, tenant_id: str, project_id: UUID) -> models.Project:
    project = db.query(models.Project).filter(
        models.Project.id == project_id,
        models.Project.tenant_id == tenant_id,
    ).first()
    if project is None:
        raise NotFoundError("Project not found", resource="project")
    return project


def add_system_framework(db: Session, tenant_id: str, project_id: UUID, framework_key: str) -> models.Project:
    """Links a built-in framework to a project. Linking it twice is a no-op."""
    project = get_project(db, tenant_id, project_id)
    if framework_key not in {link.framework_key for link in project.system_frameworks}:
        project.system_frameworks.append(models.ProjectSystemFramework(framework_key=framework_key))
        db.commit()
        db.refresh(project)
    return project


def count_frameworks(db: Session, project_id: UUID) -> int:
    """Built-in plus plugin-provided frameworks currently on the project."""
    system = db.query(models.ProjectSystemFramework).filter(
        models.ProjectSystemFramework.project_id == project_id
    ).count()
    plugin = db.query(models.ProjectFrameworkAssociation).filter(
        models.ProjectFrameworkAssociation.project_id == project_id
    ).count()
    return system + plugin
