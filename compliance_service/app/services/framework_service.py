"""
Service layer for framework definitions: persisting a parsed framework tree,
reading it back, and deleting it.

Re-importing a framework with the name of one the same plugin already owns
replaces that framework's structure in place. Projects that track it keep
their implementation rows for every node whose title path survives.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..exceptions import ConflictError, FrameworkInUseError, NotFoundError, ScopeMismatchError

logger = logging.getLogger(__name__)

NOT_STARTED = schemas.StatusEnum.NOT_STARTED.value

# (level, title path, occurrence of that path) identifies a node across re-imports
NodeKey = Tuple[int, Tuple[str, ...], int]


@dataclass
class PersistResult:
    framework_id: UUID
    items_created: int
    replaced: bool

# --- Tree helpers ---

def _display_order(nodes):
    # Freshly built collections are in declaration order until reloaded
    return sorted(nodes, key=lambda node: (node.order_no, node.position))


def iter_tracked_nodes(framework: models.Framework) -> Iterator[Tuple[int, UUID, NodeKey]]:
    """
    Yields (level, node_id, key) for every node a project tracks: all Level 2
    nodes, plus all Level 3 nodes when the framework has three levels.
    """
    seen: Dict[Tuple[int, Tuple[str, ...]], int] = {}

    def key_for(level, path):
        occurrence = seen.get((level, path), 0)
        seen[(level, path)] = occurrence + 1
        return (level, path, occurrence)

    for level1 in _display_order(framework.structure):
        for level2 in _display_order(level1.items):
            path = (level1.title, level2.title)
            yield 2, level2.id, key_for(2, path)
            if not framework.is_three_level:
                continue
            for level3 in _display_order(level2.items):
                yield 3, level3.id, key_for(3, path + (level3.title,))


def _order(order_no: Optional[int], position: int) -> int:
    return order_no if order_no is not None else position


def _build_structure(framework: models.Framework, parsed: schemas.ParsedFramework):
    three_level = parsed.hierarchy.type == schemas.HierarchyType.THREE_LEVEL
    for l1_pos, l1 in enumerate(parsed.structure, start=1):
        level1 = models.Level1Node(
            title=l1.title,
            description=l1.description,
            order_no=_order(l1.order_no, l1_pos),
            position=l1_pos,
            extra_metadata=l1.metadata or None,
        )
        for l2_pos, l2 in enumerate(l1.items, start=1):
            level2 = models.Level2Node(
                title=l2.title,
                description=l2.description,
                summary=l2.summary,
                questions=l2.questions,
                evidence_examples=l2.evidence_examples,
                order_no=_order(l2.order_no, l2_pos),
                position=l2_pos,
                extra_metadata=l2.metadata or None,
            )
            if three_level:
                for l3_pos, l3 in enumerate(l2.items, start=1):
                    level2.items.append(models.Level3Node(
                        title=l3.title,
                        description=l3.description,
                        summary=l3.summary,
                        questions=l3.questions,
                        evidence_examples=l3.evidence_examples,
                        order_no=_order(l3.order_no, l3_pos),
                        position=l3_pos,
                        extra_metadata=l3.metadata or None,
                    ))
            level1.items.append(level2)
        framework.structure.append(level1)


def _apply_header(framework: models.Framework, parsed: schemas.ParsedFramework, name: str):
    framework.name = name
    framework.description = parsed.description
    framework.version = parsed.version
    framework.is_organizational = parsed.is_organizational
    framework.hierarchy_type = parsed.hierarchy.type.value
    framework.level_1_name = parsed.hierarchy.level1_name
    framework.level_2_name = parsed.hierarchy.level2_name
    framework.level_3_name = parsed.hierarchy.level3_name


def _resync_implementations(framework: models.Framework, old_keys: Dict[Tuple[int, UUID], NodeKey]) -> Tuple[int, int, int]:
    """
    Points each association's implementation rows at the rebuilt nodes.
    Rows whose node vanished are removed; new nodes get fresh rows.
    """
    new_nodes = {key: (level, node_id) for level, node_id, key in iter_tracked_nodes(framework)}
    kept = purged = created = 0
    for association in framework.project_links:
        claimed = set()
        for implementation in list(association.implementations):
            key = old_keys.get((implementation.level, implementation.node_id))
            target = new_nodes.get(key) if key is not None else None
            if target is None or target in claimed:
                association.implementations.remove(implementation)
                purged += 1
                continue
            implementation.node_id = target[1]
            claimed.add(target)
            kept += 1
        for level, node_id in new_nodes.values():
            if (level, node_id) not in claimed:
                association.implementations.append(
                    models.Implementation(level=level, node_id=node_id, status=NOT_STARTED)
                )
                created += 1
    return kept, purged, created

# --- Persistence ---

def find_by_name(db: Session, tenant_id: str, name: str) -> Optional[models.Framework]:
    """Case-insensitive lookup, so 'GDPR' and 'gdpr' are the same framework."""
    return db.query(models.Framework).filter(
        models.Framework.tenant_id == tenant_id,
        func.lower(models.Framework.name) == name.strip().lower(),
    ).first()


def persist(db: Session, tenant_id: str, parsed: schemas.ParsedFramework, plugin_key: str) -> PersistResult:
    """
    Writes a validated framework in a single transaction. A framework with
    the same name owned by this plugin is replaced; one owned by another
    plugin is a conflict.
    """
    name = parsed.name.strip()
    existing = find_by_name(db, tenant_id, name)
    if existing is not None and existing.plugin_key != plugin_key:
        raise ConflictError(
            f'A framework named "{existing.name}" is already provided by the "{existing.plugin_key}" plugin'
        )
    # Attached projects must keep the framework's scope
    if existing is not None and existing.project_links and existing.is_organizational != parsed.is_organizational:
        scope = "organizational" if existing.is_organizational else "project-level"
        raise ScopeMismatchError(
            f'Framework "{existing.name}" is {scope} and attached to {len(existing.project_links)} project(s); '
            f"detach it before changing is_organizational"
        )

    try:
        if existing is None:
            framework = models.Framework(tenant_id=tenant_id, plugin_key=plugin_key)
            db.add(framework)
            old_keys = {}
        else:
            framework = existing
            old_keys = {(level, node_id): key for level, node_id, key in iter_tracked_nodes(framework)}
            framework.structure.clear()
            db.flush()

        _apply_header(framework, parsed, name)
        _build_structure(framework, parsed)
        db.flush()

        if existing is not None:
            kept, purged, created = _resync_implementations(framework, old_keys)
            logger.info(
                f"Re-import of '{name}' kept {kept}, purged {purged} and created {created} implementation rows"
            )
        framework_id = framework.id
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Framework '{name}' collided with an existing row for tenant {tenant_id}: {e}")
        raise ConflictError(f'A framework named "{name}" already exists')
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to persist framework '{name}' for tenant {tenant_id}: {e}", exc_info=True)
        raise

    items_created = parsed.leaf_count()
    logger.info(
        f"{'Replaced' if existing is not None else 'Created'} framework '{name}' ({framework_id}) "
        f"for tenant {tenant_id} with {items_created} items"
    )
    return PersistResult(framework_id=framework_id, items_created=items_created, replaced=existing is not None)

# --- Reads ---

def get_framework(db: Session, tenant_id: str, framework_id: UUID, plugin_key: Optional[str] = None) -> models.Framework:
    query = db.query(models.Framework).filter(
        models.Framework.id == framework_id,
        models.Framework.tenant_id == tenant_id,
    )
    if plugin_key is not None:
        query = query.filter(models.Framework.plugin_key == plugin_key)
    framework = query.first()
    if framework is None:
        raise NotFoundError("Framework not found", resource="framework")
    return framework


def _count_by_framework(query, framework_ids) -> Dict[UUID, int]:
    return dict(
        query.filter(models.Level1Node.framework_id.in_(framework_ids))
        .group_by(models.Level1Node.framework_id)
        .all()
    )


def list_frameworks(db: Session, tenant_id: str, plugin_key: str) -> List[schemas.FrameworkSummaryResponse]:
    """
    Lists a plugin's frameworks, newest first, with node counts per level.
    """
    frameworks = db.query(models.Framework).filter(
        models.Framework.tenant_id == tenant_id,
        models.Framework.plugin_key == plugin_key,
    ).order_by(models.Framework.created_at.desc()).all()
    if not frameworks:
        return []

    ids = [f.id for f in frameworks]
    level1_counts = _count_by_framework(
        db.query(models.Level1Node.framework_id, func.count(models.Level1Node.id)), ids
    )
    level2_counts = _count_by_framework(
        db.query(models.Level1Node.framework_id, func.count(models.Level2Node.id))
        .join(models.Level2Node, models.Level2Node.level1_id == models.Level1Node.id), ids
    )
    level3_counts = _count_by_framework(
        db.query(models.Level1Node.framework_id, func.count(models.Level3Node.id))
        .join(models.Level2Node, models.Level2Node.level1_id == models.Level1Node.id)
        .join(models.Level3Node, models.Level3Node.level2_id == models.Level2Node.id), ids
    )

    results = []
    for framework in frameworks:
        summary = schemas.FrameworkSummaryResponse.model_validate(framework)
        summary.level1_count = level1_counts.get(framework.id, 0)
        summary.level2_count = level2_counts.get(framework.id, 0)
        summary.level3_count = level3_counts.get(framework.id, 0)
        results.append(summary)
    return results


def get_framework_detail(db: Session, tenant_id: str, framework_id: UUID, plugin_key: str) -> schemas.FrameworkDetailResponse:
    """
    The framework's full ordered tree plus every project tracking it, each
    with its overall progress.
    """
    from . import progress_service  # Avoid circular import

    framework = get_framework(db, tenant_id, framework_id, plugin_key)
    detail = schemas.FrameworkDetailResponse.model_validate(framework)
    links = sorted(framework.project_links, key=lambda link: link.added_at)
    detail.linked_projects = [
        schemas.LinkedProject(
            project_framework_id=link.id,
            project_id=link.project_id,
            added_at=link.added_at,
            project_title=link.project.project_title,
            is_organizational=link.project.is_organizational,
            progress=progress_service.progress_for_association(db, link),
        )
        for link in links
    ]
    return detail


def delete_framework(db: Session, tenant_id: str, framework_id: UUID, plugin_key: str) -> None:
    """
    Deletes a framework and its structure. Refused while any project still
    has it attached.
    """
    framework = get_framework(db, tenant_id, framework_id, plugin_key)
    if framework.project_links:
        raise FrameworkInUseError(
            f"Cannot delete framework that is in use by {len(framework.project_links)} project(s). "
            "Remove it from all projects first."
        )
    name = framework.name
    db.delete(framework)
    db.commit()
    logger.info(f"Deleted framework '{name}' ({framework_id}) for tenant {tenant_id}")
