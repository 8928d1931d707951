import copy

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from compliance_service.app import models, schemas
from compliance_service.app.database import enable_sqlite_foreign_keys, get_db
from compliance_service.app.main import app
from compliance_service.app.services import project_service

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
CUSTOM = "custom-framework-import"

TWO_LEVEL_FRAMEWORK = {
    "name": "Test FW",
    "hierarchy": {"type": "two_level", "level1_name": "Category", "level2_name": "Control"},
    "structure": [
        {"title": "C1", "items": [{"title": "Ctrl1"}, {"title": "Ctrl2"}]},
    ],
}

THREE_LEVEL_FRAMEWORK = {
    "name": "Layered FW",
    "description": "Functions, categories and subcategories",
    "version": "2.1",
    "is_organizational": False,
    "hierarchy": {
        "type": "three_level",
        "level1_name": "Function",
        "level2_name": "Category",
        "level3_name": "Subcategory",
    },
    "structure": [
        {
            "title": "Govern",
            "order_no": 1,
            "items": [
                {
                    "title": "GV-1",
                    "order_no": 1,
                    "questions": ["Is there a policy?"],
                    "items": [
                        {"title": "GV-1.1", "order_no": 1},
                        {"title": "GV-1.2", "order_no": 2},
                    ],
                },
                {"title": "GV-2", "order_no": 2, "items": [{"title": "GV-2.1", "order_no": 1}]},
            ],
        },
    ],
}


def framework_data(base=TWO_LEVEL_FRAMEWORK, **changes):
    data = copy.deepcopy(base)
    data.update(changes)
    return data


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_foreign_keys)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def make_project(db):
    def _make(title="Project", is_organizational=False, system_frameworks=(), tenant_id=TENANT):
        return project_service.create_project(db, tenant_id, schemas.ProjectCreate(
            project_title=title,
            is_organizational=is_organizational,
            system_frameworks=list(system_frameworks),
        ))
    return _make
