"""Tests for the event bus and project locks."""

from __future__ import annotations

import asyncio

from repopolisher.core.events import EventBus, EventType
from repopolisher.core.locks import ProjectLocks


class TestEventBus:
    def test_typed_and_any_handlers(self):
        bus = EventBus()
        typed, everything = [], []
        bus.subscribe(EventType.PR_CREATED, typed.append)
        bus.on_any(everything.append)

        bus.publish(EventType.PR_CREATED, "drafts", {"draft_id": "d1"})
        bus.publish(EventType.PR_DELETED, "drafts", {"draft_id": "d1"})

        assert [e.type for e in typed] == [EventType.PR_CREATED]
        assert [e.type for e in everything] == [EventType.PR_CREATED, EventType.PR_DELETED]
        assert typed[0].payload == {"draft_id": "d1"}
        assert typed[0].source == "drafts"

    def test_event_fields(self):
        event = EventBus().publish(EventType.PROJECT_ADDED, "projects", {})
        assert event.id
        assert event.timestamp.tzinfo is not None
        assert event.type.value == "project.added"

    def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(EventType.ISSUE_UPDATED, seen.append)
        unsubscribe()
        unsubscribe()
        bus.publish(EventType.ISSUE_UPDATED, "analysis", {})
        assert seen == []

    def test_failing_handler_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(EventType.ANALYSIS_FAILED, broken)
        bus.on_any(seen.append)
        bus.publish(EventType.ANALYSIS_FAILED, "analysis", {"error": "x"})

        assert len(seen) == 1


class TestProjectLocks:
    def test_same_lock_per_project(self):
        locks = ProjectLocks()
        assert locks.for_project("p1") is locks.for_project("p1")
        assert locks.for_project("p1") is not locks.for_project("p2")

    async def test_serializes_same_project(self):
        locks = ProjectLocks()
        order = []

        async def worker(name: str):
            async with locks.for_project("p1"):
                order.append(f"{name}:in")
                await asyncio.sleep(0)
                order.append(f"{name}:out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a:in", "a:out", "b:in", "b:out"]
