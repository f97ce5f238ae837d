"""Workflow domain: definitions, transition tables and event application.

- :class:`WorkflowRegistry` creates workflows and registers their nodes
- :class:`Workflow` applies document events
- :class:`Node` resolves an event against its transition table
"""

from docflow.engine.workflow.events import DocEventStore
from docflow.engine.workflow.models import DocEvent, EventStatus, NodeType, NotificationIntent
from docflow.engine.workflow.node import Node, NodeStore
from docflow.engine.workflow.notifications import MailboxNotifier, Notifier
from docflow.engine.workflow.registry import WorkflowRegistry
from docflow.engine.workflow.transitions import Transition, TransitionTable
from docflow.engine.workflow.workflow import Workflow

__all__ = [
    "DocEvent",
    "DocEventStore",
    "EventStatus",
    "MailboxNotifier",
    "Node",
    "NodeStore",
    "NodeType",
    "NotificationIntent",
    "Notifier",
    "Transition",
    "TransitionTable",
    "Workflow",
    "WorkflowRegistry",
]
