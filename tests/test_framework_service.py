import pytest

from compliance_service.app import models, schemas
from compliance_service.app.exceptions import (
    ConflictError,
    FrameworkInUseError,
    NotFoundError,
    ScopeMismatchError,
)
from compliance_service.app.services import (
    association_service,
    framework_service,
    implementation_service,
    validation_service,
)

from .conftest import CUSTOM, OTHER_TENANT, TENANT, THREE_LEVEL_FRAMEWORK, framework_data


def persist(db, data, tenant_id=TENANT, plugin_key=CUSTOM):
    return framework_service.persist(db, tenant_id, validation_service.check(data), plugin_key)


def test_persist_round_trips_structure(db):
    result = persist(db, framework_data())

    assert result.items_created == 2
    assert result.replaced is False

    detail = framework_service.get_framework_detail(db, TENANT, result.framework_id, CUSTOM)
    assert detail.name == "Test FW"
    assert detail.version == "1.0.0"
    assert detail.hierarchy_type == schemas.HierarchyType.TWO_LEVEL
    assert [l1.title for l1 in detail.structure] == ["C1"]
    assert [(l2.title, l2.order_no) for l2 in detail.structure[0].items] == [("Ctrl1", 1), ("Ctrl2", 2)]
    assert detail.linked_projects == []


def test_order_no_ties_keep_declaration_order(db):
    data = framework_data(structure=[
        {"title": "A", "order_no": 2, "items": [{"title": "a"}]},
        {"title": "B", "items": [{"title": "b"}]},
        {"title": "C", "order_no": 1, "items": [{"title": "c"}]},
    ])
    result = persist(db, data)

    framework = framework_service.get_framework(db, TENANT, result.framework_id)
    assert [node.title for node in framework.structure] == ["C", "A", "B"]


def test_list_frameworks_counts_levels(db):
    persist(db, framework_data())
    persist(db, THREE_LEVEL_FRAMEWORK)
    persist(db, framework_data(name="Other plugin FW"), plugin_key="dora")

    summaries = {s.name: s for s in framework_service.list_frameworks(db, TENANT, CUSTOM)}

    assert set(summaries) == {"Test FW", "Layered FW"}
    assert (summaries["Test FW"].level1_count, summaries["Test FW"].level2_count, summaries["Test FW"].level3_count) == (1, 2, 0)
    assert (summaries["Layered FW"].level1_count, summaries["Layered FW"].level2_count, summaries["Layered FW"].level3_count) == (1, 2, 3)


def test_reimport_replaces_framework_with_same_name(db):
    first = persist(db, framework_data())
    data = framework_data(name="test fw", description="Second version")
    data["structure"][0]["items"].append({"title": "Ctrl3"})

    second = persist(db, data)

    assert second.replaced is True
    assert second.framework_id == first.framework_id
    assert second.items_created == 3
    assert db.query(models.Framework).count() == 1
    framework = framework_service.get_framework(db, TENANT, first.framework_id)
    assert framework.description == "Second version"
    assert [node.title for node in framework.structure[0].items] == ["Ctrl1", "Ctrl2", "Ctrl3"]


def test_reimport_keeps_implementation_state_for_surviving_nodes(db, make_project):
    result = persist(db, framework_data())
    project = make_project(system_frameworks=["eu-ai-act"])
    association_service.attach(db, TENANT, project.id, result.framework_id, CUSTOM)

    view = implementation_service.get_project_framework(db, TENANT, project.id, result.framework_id, CUSTOM)
    ctrl1_impl = view.structure[0].items[0].implementation
    implementation_service.update_implementation(
        db, TENANT, ctrl1_impl.id, 2,
        schemas.ImplementationUpdate(status="Implemented", owner="alice"), CUSTOM,
    )

    data = framework_data()
    data["structure"][0]["items"] = [{"title": "Ctrl3"}, {"title": "Ctrl1"}]
    persist(db, data)

    view = implementation_service.get_project_framework(db, TENANT, project.id, result.framework_id, CUSTOM)
    states = {item.title: item.implementation for item in view.structure[0].items}
    assert set(states) == {"Ctrl1", "Ctrl3"}
    assert states["Ctrl1"].id == ctrl1_impl.id
    assert states["Ctrl1"].status == schemas.StatusEnum.IMPLEMENTED
    assert states["Ctrl1"].owner == "alice"
    assert states["Ctrl3"].status == schemas.StatusEnum.NOT_STARTED
    assert db.query(models.Implementation).count() == 2


def test_name_owned_by_another_plugin_conflicts(db):
    persist(db, framework_data(), plugin_key="dora")
    with pytest.raises(ConflictError):
        persist(db, framework_data())


def test_frameworks_are_tenant_scoped(db):
    result = persist(db, framework_data())
    other = persist(db, framework_data(), tenant_id=OTHER_TENANT)

    assert other.framework_id != result.framework_id
    assert other.replaced is False
    with pytest.raises(NotFoundError):
        framework_service.get_framework(db, OTHER_TENANT, result.framework_id)
    assert framework_service.list_frameworks(db, OTHER_TENANT, CUSTOM)[0].id == other.framework_id


def test_get_framework_is_plugin_scoped(db):
    result = persist(db, framework_data())
    with pytest.raises(NotFoundError):
        framework_service.get_framework(db, TENANT, result.framework_id, "dora")


def test_delete_removes_tree(db):
    result = persist(db, THREE_LEVEL_FRAMEWORK)

    framework_service.delete_framework(db, TENANT, result.framework_id, CUSTOM)

    assert db.query(models.Framework).count() == 0
    assert db.query(models.Level1Node).count() == 0
    assert db.query(models.Level2Node).count() == 0
    assert db.query(models.Level3Node).count() == 0


def test_delete_refused_while_attached(db, make_project):
    result = persist(db, framework_data())
    project = make_project()
    association_service.attach(db, TENANT, project.id, result.framework_id, CUSTOM)

    with pytest.raises(FrameworkInUseError):
        framework_service.delete_framework(db, TENANT, result.framework_id, CUSTOM)
    assert db.query(models.Framework).count() == 1


def test_detail_lists_linked_projects_with_progress(db, make_project):
    result = persist(db, framework_data())
    project = make_project(title="Alpha")
    association_service.attach(db, TENANT, project.id, result.framework_id, CUSTOM)

    detail = framework_service.get_framework_detail(db, TENANT, result.framework_id, CUSTOM)

    assert len(detail.linked_projects) == 1
    linked = detail.linked_projects[0]
    assert linked.project_title == "Alpha"
    assert linked.progress.overall.total == 2
    assert linked.progress.overall.percentage == 0


def test_reimport_cannot_change_scope_while_attached(db, make_project):
    result = persist(db, framework_data(is_organizational=False))
    project = make_project(is_organizational=False)
    association_service.attach(db, TENANT, project.id, result.framework_id, CUSTOM)

    data = framework_data(is_organizational=True, description="Now organizational")
    with pytest.raises(ScopeMismatchError):
        persist(db, data)

    framework = framework_service.get_framework(db, TENANT, result.framework_id)
    assert framework.is_organizational is False
    assert framework.description is None
    assert db.query(models.Implementation).count() == 2


def test_reimport_can_change_scope_when_unattached(db):
    result = persist(db, framework_data(is_organizational=False))

    persist(db, framework_data(is_organizational=True))

    framework = framework_service.get_framework(db, TENANT, result.framework_id)
    assert framework.is_organizational is True
