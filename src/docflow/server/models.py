"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field

from docflow.engine.workflow import NodeType


class ApiWorkflow(BaseModel):
    id: int
    name: str
    doc_type: int
    begin_state: int


class NewWorkflowRequest(BaseModel):
    name: str
    doc_type: int
    begin_state: int


class ApiNode(BaseModel):
    id: int
    workflow_id: int
    name: str
    doc_type: int
    state: int
    type: NodeType
    transitions: dict[int, int]


class NewNodeRequest(BaseModel):
    doc_type: int
    state: int
    name: str
    type: NodeType = NodeType.LINEAR
    transitions: dict[int, int] = Field(default_factory=dict)


class NewEventRequest(BaseModel):
    doc_type: int
    state: int
    action: int
    text: str = ""


class ApplyEventRequest(BaseModel):
    recipients: list[int] = Field(default_factory=list)


class ApplyEventResult(BaseModel):
    event_id: int
    from_state: int
    to_state: int
