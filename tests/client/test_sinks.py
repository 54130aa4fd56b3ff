"""Tests for the local store and HTTP sinks."""

import json
from datetime import UTC, datetime
from unittest.mock import MagicMock

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from devtrack.client.events import EventRecord
from devtrack.client.http_sink import HttpEventSink, to_submission
from devtrack.client.store import LocalEventStore
from devtrack.core.errors import EventPersistenceError


def make_record(**overrides) -> EventRecord:
    fields = {
        "file": "/src/demo/main.rs",
        "activity": "save",
        "language": "rust",
        "project": "demo",
        "project_path": "/src/demo",
        "editor": "editorX",
        "branch_name": "main",
        "metadata": "None",
        "duration": 0,
        "timestamp": datetime(2026, 5, 1, 10, 0, tzinfo=UTC),
    }
    fields.update(overrides)
    return EventRecord(**fields)


@pytest.fixture
def store(tmp_path):
    store = LocalEventStore(f"sqlite:///{tmp_path / 'nested' / 'events.db'}")
    yield store
    store.close()


class TestLocalEventStore:
    """SQLite store of the editor agent."""

    def test_write_and_read_back(self, store):
        store.write(make_record())
        store.write(make_record(activity="typing", duration=4, metadata="User was actively typing"))

        rows = store.recent()

        assert [r.activity for r in rows] == ["typing", "save"]
        assert rows[0].duration == 4
        assert rows[0].meta == "User was actively typing"
        assert rows[1].timestamp == "2026-05-01T10:00:00+00:00"
        assert rows[1].branch_name == "main"

    def test_recent_limit(self, store):
        for _ in range(5):
            store.write(make_record())
        assert len(store.recent(limit=2)) == 2

    def test_locked_database_is_retryable(self, store):
        store._session_maker = MagicMock()
        store._session_maker.begin.side_effect = OperationalError(
            "INSERT", {}, Exception("database is locked")
        )

        with pytest.raises(EventPersistenceError) as exc_info:
            store.write(make_record())

        assert exc_info.value.retryable
        assert exc_info.value.record.file == "/src/demo/main.rs"

    def test_constraint_failure_is_not_retryable(self, store):
        store._session_maker = MagicMock()
        store._session_maker.begin.side_effect = IntegrityError(
            "INSERT", {}, Exception("NOT NULL constraint failed")
        )

        with pytest.raises(EventPersistenceError) as exc_info:
            store.write(make_record())

        assert not exc_info.value.retryable


class TestHttpEventSink:
    """Delivery to POST /events."""

    def test_submission_mapping(self):
        body = to_submission(make_record(duration=7))

        assert body == {
            "timestamp": "2026-05-01T10:00:00+00:00",
            "duration": 7,
            "activity_type": "save",
            "app_name": "editorX",
            "entity_name": "/src/demo/main.rs",
            "entity_type": "file",
            "project_name": "demo",
            "project_path": "/src/demo",
            "branch_name": "main",
            "language_name": "rust",
        }

    def test_posts_to_events_endpoint(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json="Event recorded")

        sink = HttpEventSink(
            "http://collector:8000/",
            client=httpx.Client(transport=httpx.MockTransport(handler)),
        )
        sink.write(make_record())

        assert len(requests) == 1
        assert str(requests[0].url) == "http://collector:8000/events"
        assert json.loads(requests[0].content)["activity_type"] == "save"

    @pytest.mark.parametrize(
        ("status_code", "retryable"),
        [(503, True), (500, True), (429, True), (422, False), (400, False)],
    )
    def test_error_status(self, status_code, retryable):
        sink = HttpEventSink(
            "http://collector",
            client=httpx.Client(
                transport=httpx.MockTransport(lambda request: httpx.Response(status_code, json={"detail": "nope"}))
            ),
        )

        with pytest.raises(EventPersistenceError) as exc_info:
            sink.write(make_record())

        assert exc_info.value.retryable is retryable
        assert str(status_code) in str(exc_info.value)

    def test_connection_error_is_retryable(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        sink = HttpEventSink("http://collector", client=httpx.Client(transport=httpx.MockTransport(refuse)))

        with pytest.raises(EventPersistenceError) as exc_info:
            sink.write(make_record())

        assert exc_info.value.retryable
