"""
Progress aggregation over implementation rows.

Counts are computed in SQL per (association, level). An item is completed
when its status is Implemented or Audited, and assigned when it has an owner.
"""
import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from .. import models, schemas
from . import association_service, project_service

logger = logging.getLogger(__name__)


def make_bucket(total, completed, assigned) -> schemas.ProgressBucket:
    total = int(total or 0)
    completed = int(completed or 0)
    percentage = (completed * 100) // total if total else 0
    return schemas.ProgressBucket(
        total=total, completed=completed, assigned=int(assigned or 0), percentage=percentage
    )


def _level_bucket(db: Session, project_framework_id: UUID, level: int) -> schemas.ProgressBucket:
    Implementation = models.Implementation
    total, completed, assigned = db.query(
        func.count(Implementation.id),
        func.sum(case((Implementation.status.in_(schemas.COMPLETED_STATUSES), 1), else_=0)),
        func.sum(case((Implementation.owner.isnot(None), 1), else_=0)),
    ).filter(
        Implementation.project_framework_id == project_framework_id,
        Implementation.level == level,
    ).one()
    return make_bucket(total, completed, assigned)


def progress_for_association(db: Session, association: models.ProjectFrameworkAssociation) -> schemas.FrameworkProgress:
    """
    Level 2 progress always; Level 3 progress for three-level frameworks.
    `overall` is the leaf level's bucket.
    """
    level2 = _level_bucket(db, association.id, 2)
    level3 = _level_bucket(db, association.id, 3) if association.framework.is_three_level else None
    return schemas.FrameworkProgress(
        level2=level2,
        level3=level3,
        overall=level3 if level3 is not None else level2,
    )


def get_progress(db: Session, tenant_id: str, project_id: UUID, framework_id: UUID, plugin_key: str) -> schemas.FrameworkProgress:
    association = association_service.get_association(db, tenant_id, project_id, framework_id, plugin_key)
    return progress_for_association(db, association)


def get_project_rollup(db: Session, tenant_id: str, project_id: UUID, plugin_key: Optional[str] = None) -> List[schemas.FrameworkProgressEntry]:
    """Progress for every framework attached to a project, optionally limited to one plugin's."""
    project = project_service.get_project(db, tenant_id, project_id)
    query = (
        db.query(models.ProjectFrameworkAssociation)
        .join(models.Framework, models.Framework.id == models.ProjectFrameworkAssociation.framework_id)
        .filter(models.ProjectFrameworkAssociation.project_id == project.id)
    )
    if plugin_key is not None:
        query = query.filter(models.Framework.plugin_key == plugin_key)

    entries = []
    for association in query.order_by(models.ProjectFrameworkAssociation.added_at).all():
        entries.append(schemas.FrameworkProgressEntry(
            framework_id=association.framework_id,
            project_framework_id=association.id,
            name=association.framework.name,
            hierarchy_type=association.framework.hierarchy_type,
            progress=progress_for_association(db, association),
        ))
    return entries
