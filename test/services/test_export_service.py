import asyncio
import json
from unittest import TestCase, IsolatedAsyncioTestCase

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.attendance import Attendance
from app.models.tracked_date import TrackedDate
from app.models.user import User
from app.services.export_service import EXPORT_JOB_ID, ExportSink, build_snapshot


class FakeScheduler:
    def __init__(self):
        self.jobs = []

    def add_job(self, func, **kwargs):
        self.jobs.append((func, kwargs))


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, autoflush=False)

    db = session_factory()
    alice = User(name="Alice", reg_no="21BCE0001", email="alice@example.com")
    tracked_date = TrackedDate(date_string="2025-03-02")
    db.add_all([alice, tracked_date])
    db.commit()
    db.add(Attendance(user_id=alice.id, date_id=tracked_date.id, coming="COMING"))
    db.commit()
    db.close()
    return session_factory


class TestBuildSnapshot(TestCase):
    def test_snapshot_contains_all_tables(self):
        db = make_session_factory()()
        snapshot = build_snapshot(db)
        db.close()

        self.assertEqual(snapshot["dates"], [{"id": 1, "date_string": "2025-03-02"}])
        self.assertEqual(snapshot["users"], [{"id": 1, "name": "Alice", "reg_no": "21BCE0001", "email": "alice@example.com"}])
        self.assertEqual(snapshot["attendance"], [{
            "user_id": 1,
            "date_id": 1,
            "coming": "COMING",
            "applied": "NOT APPLIED",
            "attendance_1": "ABSENT",
            "attendance_2": "ABSENT",
            "is_locked": 0,
        }])


class TestExportTrigger(TestCase):
    def test_disabled_without_url(self):
        scheduler = FakeScheduler()
        sink = ExportSink(url="", scheduler=scheduler)

        sink.trigger()

        self.assertFalse(sink.enabled)
        self.assertEqual(scheduler.jobs, [])

    def test_trigger_schedules_single_coalesced_job(self):
        scheduler = FakeScheduler()
        sink = ExportSink(url="https://example.com/hook", scheduler=scheduler)

        sink.trigger()

        func, kwargs = scheduler.jobs[0]
        self.assertEqual(func, sink.push)
        self.assertEqual(kwargs["id"], EXPORT_JOB_ID)
        self.assertTrue(kwargs["replace_existing"])


class TestExportPush(IsolatedAsyncioTestCase):
    async def test_push_posts_snapshot(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append((request.method, str(request.url), json.loads(request.content)))
            return httpx.Response(200, text="ok")

        sink = ExportSink(
            url="https://example.com/hook",
            scheduler=FakeScheduler(),
            session_factory=make_session_factory(),
            transport=httpx.MockTransport(handler),
        )

        self.assertTrue(await sink.push())

        method, url, body = received[0]
        self.assertEqual((method, url), ("POST", "https://example.com/hook"))
        self.assertEqual(set(body), {"dates", "users", "attendance"})
        self.assertEqual(body["users"][0]["email"], "alice@example.com")

    async def test_push_failure_is_swallowed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        sink = ExportSink(
            url="https://example.com/hook",
            scheduler=FakeScheduler(),
            session_factory=make_session_factory(),
            transport=httpx.MockTransport(handler),
        )

        with self.assertLogs("app.services.export_service", level="ERROR"):
            self.assertFalse(await sink.push())


class SlowSink(ExportSink):
    """전송에 시간이 걸리는 내보내기"""

    def __init__(self, scheduler):
        super().__init__(url="https://example.com/hook", scheduler=scheduler)
        self.runs = 0
        self.started = asyncio.Event()

    async def push(self) -> bool:
        self.runs += 1
        self.started.set()
        await asyncio.sleep(0.3)
        return True


class TestExportWithScheduler(IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.scheduler = AsyncIOScheduler()
        self.scheduler.start()

    async def asyncTearDown(self):
        self.scheduler.shutdown(wait=False)

    async def test_change_during_push_is_exported_again(self):
        sink = SlowSink(self.scheduler)

        sink.trigger()
        await asyncio.wait_for(sink.started.wait(), timeout=2)
        sink.trigger()
        await asyncio.sleep(1.0)

        self.assertEqual(sink.runs, 2)
