"""FastAPI app factory.

Endpoints are intentionally thin wrappers over the workflow registry.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docflow import __version__
from docflow.engine.errors import (
    AlreadyAppliedError,
    DocflowError,
    DuplicateError,
    IllegalActionError,
    InvalidArgumentError,
    NotFoundError,
    TypeMismatchError,
)
from docflow.engine.logging import configure_logging
from docflow.engine.workflow import (
    DocEvent,
    MailboxNotifier,
    Node,
    NotificationIntent,
    Workflow,
    WorkflowRegistry,
)
from docflow.server.config import ServerSettings
from docflow.server.models import (
    ApiNode,
    ApiWorkflow,
    ApplyEventRequest,
    ApplyEventResult,
    NewEventRequest,
    NewNodeRequest,
    NewWorkflowRequest,
)

logger = logging.getLogger(__name__)


def _status_for(exc: DocflowError) -> int:
    if isinstance(exc, InvalidArgumentError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (AlreadyAppliedError, DuplicateError)):
        return 409
    if isinstance(exc, (IllegalActionError, TypeMismatchError)):
        return 422
    return 503


def _to_api_workflow(w: Workflow) -> ApiWorkflow:
    return ApiWorkflow(id=w.id, name=w.name, doc_type=w.doc_type, begin_state=w.begin_state)


def _to_api_node(n: Node) -> ApiNode:
    return ApiNode(
        id=n.id,
        workflow_id=n.workflow_id,
        name=n.name,
        doc_type=n.doc_type,
        state=n.state,
        type=n.node_type,
        transitions=dict(n.transitions),
    )


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    settings = settings if settings is not None else ServerSettings()
    configure_logging(settings.log_level)

    store = settings.open_store()
    store.ensure_schema()
    registry = WorkflowRegistry(store)
    mailbox = MailboxNotifier(store)

    app = FastAPI(
        title="docflow",
        version=__version__,
        description="REST API over the docflow workflow engine.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    # Expose settings and the registry for request handlers that want them.
    app.state.settings = settings
    app.state.registry = registry

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocflowError)
    def _docflow_error(_request: Request, exc: DocflowError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error("Store failure", extra={"error": str(exc)})
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/workflows", response_model=list[ApiWorkflow])
    def list_workflows(offset: int = 0, limit: int = 0) -> list[ApiWorkflow]:
        return [_to_api_workflow(w) for w in registry.list(offset, limit)]

    @app.post("/api/workflows", response_model=ApiWorkflow, status_code=201)
    def new_workflow(req: NewWorkflowRequest) -> ApiWorkflow:
        wid = registry.new(None, req.name, req.doc_type, req.begin_state)
        return _to_api_workflow(registry.get(wid))

    @app.get("/api/workflows/{workflow_id}", response_model=ApiWorkflow)
    def get_workflow(workflow_id: int) -> ApiWorkflow:
        return _to_api_workflow(registry.get(workflow_id))

    @app.get("/api/workflows/{workflow_id}/nodes", response_model=list[ApiNode])
    def list_nodes(workflow_id: int) -> list[ApiNode]:
        return [_to_api_node(n) for n in registry.nodes(workflow_id)]

    @app.post("/api/workflows/{workflow_id}/nodes", response_model=ApiNode, status_code=201)
    def add_node(workflow_id: int, req: NewNodeRequest) -> ApiNode:
        nid = registry.add_node(
            None, req.doc_type, req.state, workflow_id, req.name, req.type, req.transitions
        )
        return _to_api_node(registry.node_store.get(nid))

    @app.post("/api/events", response_model=DocEvent, status_code=201)
    def new_event(req: NewEventRequest) -> DocEvent:
        eid = registry.events.new(None, req.doc_type, req.state, req.action, req.text)
        return registry.events.get(eid)

    @app.get("/api/events/{event_id}", response_model=DocEvent)
    def get_event(event_id: int) -> DocEvent:
        return registry.events.get(event_id)

    @app.get("/api/events/{event_id}/notifications", response_model=list[NotificationIntent])
    def list_notifications(event_id: int) -> list[NotificationIntent]:
        registry.events.get(event_id)
        return mailbox.list_for_event(event_id)

    @app.post(
        "/api/workflows/{workflow_id}/events/{event_id}/apply",
        response_model=ApplyEventResult,
    )
    def apply_event(workflow_id: int, event_id: int, req: ApplyEventRequest) -> ApplyEventResult:
        workflow = registry.get(workflow_id)
        event = registry.events.get(event_id)
        new_state = workflow.apply_event(None, event, req.recipients)
        return ApplyEventResult(event_id=event.id, from_state=event.state, to_state=new_state)

    return app
