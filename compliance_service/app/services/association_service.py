"""
Service layer for attaching frameworks to projects and detaching them.

Attaching fans the framework's structure out into one implementation row per
tracked node, all in the same transaction as the association itself.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..exceptions import ConflictError, LastFrameworkError, NotFoundError, ScopeMismatchError
from . import framework_service, project_service

logger = logging.getLogger(__name__)

NOT_STARTED = schemas.StatusEnum.NOT_STARTED.value


def find_association(db: Session, project_id: UUID, framework_id: UUID) -> Optional[models.ProjectFrameworkAssociation]:
    return db.query(models.ProjectFrameworkAssociation).filter(
        models.ProjectFrameworkAssociation.project_id == project_id,
        models.ProjectFrameworkAssociation.framework_id == framework_id,
    ).first()


def get_association(db: Session, tenant_id: str, project_id: UUID, framework_id: UUID, plugin_key: str) -> models.ProjectFrameworkAssociation:
    framework = framework_service.get_framework(db, tenant_id, framework_id, plugin_key)
    project = project_service.get_project(db, tenant_id, project_id)
    association = find_association(db, project.id, framework.id)
    if association is None:
        raise NotFoundError("Framework is not attached to this project", resource="project_framework")
    return association


def _attach_response(db: Session, association: models.ProjectFrameworkAssociation, already_attached: bool) -> schemas.AttachResponse:
    counts = dict(
        db.query(models.Implementation.level, func.count(models.Implementation.id))
        .filter(models.Implementation.project_framework_id == association.id)
        .group_by(models.Implementation.level)
        .all()
    )
    level2_count = counts.get(2, 0)
    level3_count = counts.get(3, 0)
    if already_attached:
        message = "Framework is already attached to this project"
    else:
        message = f"Framework added to project with {level2_count} level 2 and {level3_count} level 3 items to track"
    return schemas.AttachResponse(
        project_framework_id=association.id,
        level2_count=level2_count,
        level3_count=level3_count,
        already_attached=already_attached,
        message=message,
    )


def attach(db: Session, tenant_id: str, project_id: UUID, framework_id: UUID, plugin_key: str) -> schemas.AttachResponse:
    """
    Attaches a framework to a project and creates its implementation rows.
    Attaching an already attached framework returns the existing association.
    """
    framework = framework_service.get_framework(db, tenant_id, framework_id, plugin_key)
    project = project_service.get_project(db, tenant_id, project_id)

    existing = find_association(db, project.id, framework.id)
    if existing is not None:
        return _attach_response(db, existing, already_attached=True)

    if framework.is_organizational and not project.is_organizational:
        raise ScopeMismatchError("Organizational frameworks can only be added to organizational projects")
    if not framework.is_organizational and project.is_organizational:
        raise ScopeMismatchError("Project-level frameworks cannot be added to organizational projects")

    try:
        association = models.ProjectFrameworkAssociation(project_id=project.id, framework_id=framework.id)
        db.add(association)
        db.flush()
        db.add_all([
            models.Implementation(
                project_framework_id=association.id, level=level, node_id=node_id, status=NOT_STARTED
            )
            for level, node_id, _ in framework_service.iter_tracked_nodes(framework)
        ])
        db.commit()
    except IntegrityError:
        # A concurrent attach of the same pair won the race
        db.rollback()
        existing = find_association(db, project_id, framework_id)
        if existing is None:
            raise ConflictError("Could not attach framework to project")
        return _attach_response(db, existing, already_attached=True)

    logger.info(f"Attached framework {framework.id} to project {project.id} for tenant {tenant_id}")
    return _attach_response(db, association, already_attached=False)


def detach(db: Session, tenant_id: str, project_id: UUID, framework_id: UUID, plugin_key: str) -> schemas.DetachResponse:
    """
    Removes a framework from a project along with its implementation rows.
    A project must keep at least one framework, built-in or plugin-provided.
    """
    framework = framework_service.get_framework(db, tenant_id, framework_id, plugin_key)
    project = project_service.get_project(db, tenant_id, project_id)

    association = find_association(db, project.id, framework.id)
    if association is None:
        return schemas.DetachResponse(removed=False, message="Framework is not attached to this project")

    if project_service.count_frameworks(db, project.id) <= 1:
        raise LastFrameworkError(
            "Cannot remove the only framework from a project. At least one framework must remain."
        )

    db.delete(association)
    db.commit()
    logger.info(f"Detached framework {framework.id} from project {project.id} for tenant {tenant_id}")
    return schemas.DetachResponse(removed=True, message="Framework removed from project")


def list_project_frameworks(db: Session, tenant_id: str, project_id: UUID, plugin_key: str) -> List[schemas.ProjectFrameworkEntry]:
    project = project_service.get_project(db, tenant_id, project_id)
    rows = (
        db.query(models.ProjectFrameworkAssociation, models.Framework)
        .join(models.Framework, models.Framework.id == models.ProjectFrameworkAssociation.framework_id)
        .filter(
            models.ProjectFrameworkAssociation.project_id == project.id,
            models.Framework.plugin_key == plugin_key,
        )
        .order_by(models.ProjectFrameworkAssociation.added_at.desc())
        .all()
    )
    return [
        schemas.ProjectFrameworkEntry(
            project_framework_id=association.id,
            framework_id=framework.id,
            added_at=association.added_at,
            name=framework.name,
            description=framework.description,
            is_organizational=framework.is_organizational,
            hierarchy_type=framework.hierarchy_type,
            level_1_name=framework.level_1_name,
            level_2_name=framework.level_2_name,
            level_3_name=framework.level_3_name,
        )
        for association, framework in rows
    ]
