"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from docflow.engine.store import SQLiteStore
from docflow.engine.workflow import NodeType, Workflow, WorkflowRegistry

INVOICE_DOC_TYPE = 1
DRAFT = 10
SUBMITTED = 20
APPROVED = 30
SUBMIT = 1
APPROVE = 2
REWORK = 3


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Provide a path for a temporary database."""
    return tmp_path / "state" / "docflow.sqlite3"


@pytest.fixture
def store(db_path: Path) -> SQLiteStore:
    """Provide a store with the engine schema in place."""
    store = SQLiteStore(db_path, timeout=5.0)
    store.ensure_schema()
    return store


@pytest.fixture
def registry(store: SQLiteStore) -> WorkflowRegistry:
    """Provide a registry backed by the temporary store."""
    return WorkflowRegistry(store)


@pytest.fixture
def invoice_workflow(registry: WorkflowRegistry) -> Workflow:
    """Provide a small invoice workflow: draft -> submitted -> approved, with rework."""
    wid = registry.new(None, "acme.invoice", INVOICE_DOC_TYPE, DRAFT)
    registry.add_node(
        None, INVOICE_DOC_TYPE, DRAFT, wid, "Draft", NodeType.BEGIN, {SUBMIT: SUBMITTED}
    )
    registry.add_node(
        None,
        INVOICE_DOC_TYPE,
        SUBMITTED,
        wid,
        "Submitted",
        NodeType.BRANCH,
        {APPROVE: APPROVED, REWORK: DRAFT},
    )
    return registry.get(wid)
