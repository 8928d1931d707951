import pytest

from compliance_service.app import models, schemas
from compliance_service.app.exceptions import (
    LastFrameworkError,
    MalformedInputError,
    NotFoundError,
    ScopeMismatchError,
)
from compliance_service.app.services import (
    association_service,
    framework_service,
    implementation_service,
    progress_service,
    validation_service,
)

from .conftest import CUSTOM, OTHER_TENANT, TENANT, THREE_LEVEL_FRAMEWORK, framework_data


def persist(db, data, plugin_key=CUSTOM):
    return framework_service.persist(db, TENANT, validation_service.check(data), plugin_key)


def leaf_ids(db, project_id, framework_id):
    view = implementation_service.get_project_framework(db, TENANT, project_id, framework_id, CUSTOM)
    return [item.implementation.id for item in view.structure[0].items]


def set_status(db, implementation_id, status, level=2, **fields):
    return implementation_service.update_implementation(
        db, TENANT, implementation_id, level, schemas.ImplementationUpdate(status=status, **fields), CUSTOM
    )


def test_import_attach_and_complete_one_control(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()

    attached = association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    assert attached.level2_count == 2
    assert attached.level3_count == 0
    assert attached.already_attached is False

    progress = progress_service.get_progress(db, TENANT, project.id, framework_id, CUSTOM)
    assert (progress.overall.total, progress.overall.completed, progress.overall.percentage) == (2, 0, 0)
    assert progress.level3 is None

    set_status(db, leaf_ids(db, project.id, framework_id)[0], "Implemented")

    progress = progress_service.get_progress(db, TENANT, project.id, framework_id, CUSTOM)
    assert progress.overall.completed == 1
    assert progress.overall.percentage == 50


@pytest.mark.parametrize("framework_org, project_org", [(True, False), (False, True)])
def test_scope_mismatch(db, make_project, framework_org, project_org):
    framework_id = persist(db, framework_data(is_organizational=framework_org)).framework_id
    project = make_project(is_organizational=project_org)

    with pytest.raises(ScopeMismatchError):
        association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    assert db.query(models.ProjectFrameworkAssociation).count() == 0
    assert db.query(models.Implementation).count() == 0


def test_organizational_framework_on_organizational_project(db, make_project):
    framework_id = persist(db, framework_data(is_organizational=True)).framework_id
    project = make_project(is_organizational=True)
    assert association_service.attach(db, TENANT, project.id, framework_id, CUSTOM).level2_count == 2


def test_attach_is_idempotent(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()

    first = association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    second = association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)

    assert second.already_attached is True
    assert second.project_framework_id == first.project_framework_id
    assert db.query(models.Implementation).count() == 2


def test_attach_unknown_project_or_framework(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()

    with pytest.raises(NotFoundError):
        association_service.attach(db, TENANT, project.id, project.id, CUSTOM)
    with pytest.raises(NotFoundError):
        association_service.attach(db, TENANT, framework_id, framework_id, CUSTOM)
    with pytest.raises(NotFoundError):
        association_service.attach(db, OTHER_TENANT, project.id, framework_id, CUSTOM)


def test_three_level_fan_out_and_progress(db, make_project):
    framework_id = persist(db, THREE_LEVEL_FRAMEWORK).framework_id
    project = make_project()

    attached = association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    assert (attached.level2_count, attached.level3_count) == (2, 3)

    view = implementation_service.get_project_framework(db, TENANT, project.id, framework_id, CUSTOM)
    subcontrol = view.structure[0].items[0].items[0]
    assert subcontrol.title == "GV-1.1"
    set_status(db, subcontrol.implementation.id, "Audited", level=3, owner="bob")

    progress = progress_service.get_progress(db, TENANT, project.id, framework_id, CUSTOM)
    assert progress.level2.total == 2
    assert progress.level2.completed == 0
    assert progress.level3.total == 3
    assert progress.level3.completed == 1
    assert progress.level3.assigned == 1
    assert progress.level3.percentage == 33
    assert progress.overall == progress.level3


def test_only_implemented_and_audited_count_as_completed(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()
    association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    first, second = leaf_ids(db, project.id, framework_id)

    set_status(db, first, "Awaiting approval", owner="carol")
    set_status(db, second, "Needs rework")

    progress = progress_service.get_progress(db, TENANT, project.id, framework_id, CUSTOM)
    assert progress.overall.completed == 0
    assert progress.overall.assigned == 1
    assert progress.overall.percentage == 0


def test_empty_bucket_has_zero_percentage():
    assert progress_service.make_bucket(0, 0, 0).percentage == 0
    assert progress_service.make_bucket(3, 2, 0).percentage == 66


def test_detach_sole_framework_is_refused(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()
    association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)

    with pytest.raises(LastFrameworkError):
        association_service.detach(db, TENANT, project.id, framework_id, CUSTOM)
    assert db.query(models.Implementation).count() == 2


def test_detach_with_another_framework_deletes_rows(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project(system_frameworks=["iso-42001"])
    association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)

    result = association_service.detach(db, TENANT, project.id, framework_id, CUSTOM)

    assert result.removed is True
    assert db.query(models.ProjectFrameworkAssociation).count() == 0
    assert db.query(models.Implementation).count() == 0


def test_detach_absent_association_is_a_no_op(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()

    result = association_service.detach(db, TENANT, project.id, framework_id, CUSTOM)
    assert result.removed is False


def test_rollup_and_project_framework_list(db, make_project):
    two_level_id = persist(db, framework_data()).framework_id
    three_level_id = persist(db, THREE_LEVEL_FRAMEWORK).framework_id
    project = make_project()
    association_service.attach(db, TENANT, project.id, two_level_id, CUSTOM)
    association_service.attach(db, TENANT, project.id, three_level_id, CUSTOM)

    rollup = {entry.name: entry for entry in progress_service.get_project_rollup(db, TENANT, project.id, CUSTOM)}
    assert rollup["Test FW"].progress.overall.total == 2
    assert rollup["Layered FW"].progress.overall.total == 3

    listed = association_service.list_project_frameworks(db, TENANT, project.id, CUSTOM)
    assert {entry.framework_id for entry in listed} == {two_level_id, three_level_id}
    assert association_service.list_project_frameworks(db, TENANT, project.id, "dora") == []


def test_update_implementation_fields_and_risks(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()
    association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    implementation_id = leaf_ids(db, project.id, framework_id)[0]

    state = implementation_service.update_implementation(
        db, TENANT, implementation_id, 2,
        schemas.ImplementationUpdate(
            reviewer="dan",
            evidence_links=[{"name": "policy.pdf", "url": "https://example.com/policy.pdf"}],
            risks_to_add=["risk-1", "risk-2"],
        ),
        CUSTOM,
    )
    assert state.status == schemas.StatusEnum.NOT_STARTED
    assert state.reviewer == "dan"
    assert state.evidence_links[0]["name"] == "policy.pdf"
    assert state.linked_risks == ["risk-1", "risk-2"]

    state = implementation_service.update_implementation(
        db, TENANT, implementation_id, 2, schemas.ImplementationUpdate(risks_to_remove=["risk-1"]), CUSTOM
    )
    assert state.linked_risks == ["risk-2"]
    assert state.reviewer == "dan"


def test_update_implementation_errors(db, make_project):
    framework_id = persist(db, framework_data()).framework_id
    project = make_project()
    association_service.attach(db, TENANT, project.id, framework_id, CUSTOM)
    implementation_id = leaf_ids(db, project.id, framework_id)[0]

    with pytest.raises(MalformedInputError):
        implementation_service.update_implementation(
            db, TENANT, implementation_id, 2, schemas.ImplementationUpdate(), CUSTOM
        )
    with pytest.raises(NotFoundError):
        set_status(db, implementation_id, "Draft", level=3)
    with pytest.raises(NotFoundError):
        implementation_service.update_implementation(
            db, OTHER_TENANT, implementation_id, 2, schemas.ImplementationUpdate(status="Draft"), CUSTOM
        )
