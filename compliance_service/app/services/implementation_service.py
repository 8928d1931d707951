"""
Service layer for per-project implementation tracking: the project view of a
framework and updates to individual implementation rows.
"""
import logging
from typing import Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..exceptions import MalformedInputError, NotFoundError
from . import association_service

logger = logging.getLogger(__name__)


def _state(implementation: Optional[models.Implementation]) -> Optional[schemas.ImplementationState]:
    if implementation is None:
        return None
    return schemas.ImplementationState(
        id=implementation.id,
        level=implementation.level,
        status=implementation.status,
        owner=implementation.owner,
        reviewer=implementation.reviewer,
        approver=implementation.approver,
        due_date=implementation.due_date,
        implementation_details=implementation.implementation_details,
        evidence_links=implementation.evidence_links or [],
        feedback_links=implementation.feedback_links or [],
        auditor_feedback=implementation.auditor_feedback,
        linked_risks=sorted(risk.risk_id for risk in implementation.risks),
        updated_at=implementation.updated_at,
    )


def _leaf_node(node, implementation, cls, **extra):
    return cls(
        id=node.id,
        title=node.title,
        description=node.description,
        summary=node.summary,
        questions=node.questions,
        evidence_examples=node.evidence_examples,
        order_no=node.order_no,
        implementation=_state(implementation),
        **extra,
    )


def get_project_framework(db: Session, tenant_id: str, project_id: UUID, framework_id: UUID, plugin_key: str) -> schemas.ProjectFrameworkResponse:
    """
    The framework's ordered tree as one project sees it, with each tracked
    node carrying that project's implementation state.
    """
    association = association_service.get_association(db, tenant_id, project_id, framework_id, plugin_key)
    framework = association.framework

    implementations = db.query(models.Implementation).options(
        selectinload(models.Implementation.risks)
    ).filter(models.Implementation.project_framework_id == association.id).all()
    by_node: Dict[Tuple[int, UUID], models.Implementation] = {
        (impl.level, impl.node_id): impl for impl in implementations
    }

    structure = []
    for level1 in framework.structure:
        level2_nodes = []
        for level2 in level1.items:
            level3_nodes = []
            if framework.is_three_level:
                level3_nodes = [
                    _leaf_node(level3, by_node.get((3, level3.id)), schemas.ProjectLevel3Node)
                    for level3 in level2.items
                ]
            level2_nodes.append(_leaf_node(
                level2, by_node.get((2, level2.id)), schemas.ProjectLevel2Node, items=level3_nodes
            ))
        structure.append(schemas.ProjectLevel1Node(
            id=level1.id,
            title=level1.title,
            description=level1.description,
            order_no=level1.order_no,
            items=level2_nodes,
        ))

    return schemas.ProjectFrameworkResponse(
        project_framework_id=association.id,
        framework_id=framework.id,
        project_id=association.project_id,
        name=framework.name,
        description=framework.description,
        version=framework.version,
        is_organizational=framework.is_organizational,
        hierarchy_type=framework.hierarchy_type,
        level_1_name=framework.level_1_name,
        level_2_name=framework.level_2_name,
        level_3_name=framework.level_3_name,
        structure=structure,
    )


def get_implementation(db: Session, tenant_id: str, implementation_id: UUID, level: int, plugin_key: str) -> models.Implementation:
    implementation = (
        db.query(models.Implementation)
        .join(
            models.ProjectFrameworkAssociation,
            models.ProjectFrameworkAssociation.id == models.Implementation.project_framework_id,
        )
        .join(models.Framework, models.Framework.id == models.ProjectFrameworkAssociation.framework_id)
        .filter(
            models.Implementation.id == implementation_id,
            models.Implementation.level == level,
            models.Framework.tenant_id == tenant_id,
            models.Framework.plugin_key == plugin_key,
        )
        .first()
    )
    if implementation is None:
        raise NotFoundError(f"Level {level} implementation not found", resource="implementation")
    return implementation


def update_implementation(
    db: Session,
    tenant_id: str,
    implementation_id: UUID,
    level: int,
    changes: schemas.ImplementationUpdate,
    plugin_key: str,
) -> schemas.ImplementationState:
    """
    Applies a partial update. Only fields present in the request change; an
    explicit null clears a field. Risk links are added before removals.
    """
    implementation = get_implementation(db, tenant_id, implementation_id, level, plugin_key)

    data = changes.model_dump(exclude_unset=True)
    risks_to_add = data.pop("risks_to_add", None) or []
    risks_to_remove = data.pop("risks_to_remove", None) or []
    if not data and not risks_to_add and not risks_to_remove:
        raise MalformedInputError("No fields to update")

    if "status" in data:
        if data["status"] is None:
            raise MalformedInputError("Status cannot be cleared")
        data["status"] = schemas.StatusEnum(data["status"]).value
    for key, value in data.items():
        setattr(implementation, key, value)

    linked = {risk.risk_id for risk in implementation.risks}
    for risk_id in dict.fromkeys(risks_to_add):
        if risk_id not in linked:
            implementation.risks.append(models.ImplementationRisk(risk_id=risk_id))
            linked.add(risk_id)
    removals = set(risks_to_remove)
    for risk in list(implementation.risks):
        if risk.risk_id in removals:
            implementation.risks.remove(risk)

    db.commit()
    db.refresh(implementation)
    logger.info(f"Updated level {level} implementation {implementation_id} fields {sorted(data)}")
    return _state(implementation)
