from __future__ import annotations

"""Functional test bootstrap.

Engine and ordering tests run against a fresh ``InMemoryDocumentStore`` per
test. SQL store tests use a file-backed SQLite database under pytest's
``tmp_path`` with the project migrations applied. Route tests build the
FastAPI app via the factory with an injected store and configuration.
"""

import os

import pytest

# App config must not pick up a developer's DATABASE_URL or backend choice
os.environ["STORE_BACKEND"] = "memory"

from fastapi.testclient import TestClient

from app.config import AppConfig, DatabaseConfig
from app.db.base import dispose_engine, get_engine
from app.db.migrations_runner import apply_migrations
from app.logic import events
from app.logic.cascade_delete import CascadeDeleteEngine
from app.logic.inmemory_state import InMemoryDocumentStore
from app.logic.repository_entities import SqlDocumentStore
from app.main import create_app
from app.models.collections import Collection

ACTOR = "user-1"


@pytest.fixture(autouse=True)
def clear_events():
    events.EVENT_BUFFER.clear()
    yield
    events.EVENT_BUFFER.clear()


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def engine(store: InMemoryDocumentStore) -> CascadeDeleteEngine:
    return CascadeDeleteEngine(store)


@pytest.fixture()
def sql_store(tmp_path):
    eng = get_engine(f"sqlite:///{tmp_path / 'lifecycle.db'}")
    apply_migrations(eng)
    yield SqlDocumentStore(eng)
    dispose_engine()


@pytest.fixture()
def app_config() -> AppConfig:
    return AppConfig(store_backend="memory", database=DatabaseConfig(dsn="sqlite+pysqlite:///:memory:"))


@pytest.fixture()
def client(store: InMemoryDocumentStore, app_config: AppConfig) -> TestClient:
    app = create_app(store=store, config=app_config)
    with TestClient(app) as c:
        yield c


def seed_project_tree(
    store,
    project_id: str = "p1",
    weld_logs: int = 2,
    welds_per_log: int = 3,
) -> dict:
    """Seed a project with participants, weld logs, welds, sections and documents.

    Works with any store offering ``create``. Returns the seeded ids per
    collection.
    """
    ids: dict = {c: [] for c in (
        Collection.PROJECT_PARTICIPANTS,
        Collection.WELD_LOGS,
        Collection.WELDS,
        Collection.PROJECT_DOCUMENT_SECTIONS,
        Collection.PROJECT_DOCUMENTS,
        Collection.WELD_LOG_DOCUMENTS,
    )}
    store.create(Collection.PROJECTS, {"name": "Project"}, entity_id=project_id)
    store.create(Collection.PROJECT_PARTICIPANTS, {"projectId": project_id, "userId": ACTOR}, entity_id=f"{project_id}-pp")
    ids[Collection.PROJECT_PARTICIPANTS].append(f"{project_id}-pp")
    for i in range(weld_logs):
        wl = f"{project_id}-wl{i}"
        store.create(Collection.WELD_LOGS, {"projectId": project_id}, entity_id=wl)
        ids[Collection.WELD_LOGS].append(wl)
        for j in range(welds_per_log):
            w = f"{wl}-w{j}"
            store.create(Collection.WELDS, {"projectId": project_id, "weldLogId": wl}, entity_id=w)
            ids[Collection.WELDS].append(w)
        d = f"{wl}-doc"
        store.create(Collection.WELD_LOG_DOCUMENTS, {"projectId": project_id, "weldLogId": wl}, entity_id=d)
        ids[Collection.WELD_LOG_DOCUMENTS].append(d)
    store.create(Collection.PROJECT_DOCUMENT_SECTIONS, {"projectId": project_id, "order": 1000}, entity_id=f"{project_id}-s1")
    ids[Collection.PROJECT_DOCUMENT_SECTIONS].append(f"{project_id}-s1")
    store.create(
        Collection.PROJECT_DOCUMENTS,
        {"projectId": project_id, "sectionId": f"{project_id}-s1", "order": 1000},
        entity_id=f"{project_id}-d1",
    )
    ids[Collection.PROJECT_DOCUMENTS].append(f"{project_id}-d1")
    return ids
