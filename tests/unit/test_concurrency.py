"""Concurrent application of the same event."""

from __future__ import annotations

import threading

from docflow.engine.errors import AlreadyAppliedError
from docflow.engine.workflow import EventStatus, MailboxNotifier, Workflow, WorkflowRegistry


def test_racing_appliers_yield_one_success(
    registry: WorkflowRegistry, invoice_workflow: Workflow
) -> None:
    event = registry.events.get(registry.events.new(None, 1, 10, 1))
    workers = 4
    barrier = threading.Barrier(workers)
    results: list[object] = []
    lock = threading.Lock()

    def apply() -> None:
        barrier.wait()
        try:
            outcome: object = invoice_workflow.apply_event(None, event, [7])
        except AlreadyAppliedError as e:
            outcome = e
        with lock:
            results.append(outcome)

    threads = [threading.Thread(target=apply) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    successes = [r for r in results if r == 20]
    rejections = [r for r in results if isinstance(r, AlreadyAppliedError)]
    assert len(successes) == 1
    assert len(rejections) == workers - 1
    assert registry.events.get(event.id).status == EventStatus.APPLIED
    assert len(MailboxNotifier(registry.store).list_for_event(event.id)) == 1
