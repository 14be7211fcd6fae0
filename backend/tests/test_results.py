import asyncio
import json
from datetime import datetime, timedelta

import httpx
import pytest

from conftest import StepClock
from visionscreen.engine.color import ColorVisionSession
from visionscreen.engine.errors import PersistenceError
from visionscreen.models import TestRecord
from visionscreen.results import (
    SqlHistory,
    SqlResultSink,
    SupabaseHistory,
    SupabaseResultSink,
    delete_result,
    get_history_store,
    get_result_sink,
    list_results,
    range_start,
    record_to_dict,
    result_to_row,
)
from visionscreen.settings import settings


@pytest.fixture
def color_result():
    session = ColorVisionSession(clock=StepClock())
    session.start()
    for answer in ["12", "3", "5", "29", "15"]:
        session.respond(answer)
    return session.result()


def _record(db, username, test_type, created_at):
    row = TestRecord(
        username=username,
        test_type=test_type,
        questions="[]",
        answers="[]",
        correct_answers="[]",
        metrics="{}",
        created_at=created_at,
    )
    db.add(row)
    db.commit()
    return row


def test_row_matches_stored_shape(color_result):
    row = result_to_row("screener", color_result)
    assert row["test_type"] == "color_blindness"
    assert row["questions"][1] == {"id": 2, "type": "protanopia", "correct_answer": "8"}
    assert row["correct_answers"] == ["12", "8", "6", "29", "15"]
    assert row["answers"][1]["response"] == "3"
    assert row["metrics"]["deficiency_flags"] == ["protanopia", "deuteranopia"]
    json.dumps(row)


def test_sql_sink_writes_one_row(db, color_result):
    saved = asyncio.run(SqlResultSink(db).submit("screener", color_result))
    rows = db.query(TestRecord).all()
    assert len(rows) == 1
    assert saved["id"] == rows[0].id
    stored = record_to_dict(rows[0])
    assert stored["metrics"]["kind"] == "color_blindness"
    assert len(stored["answers"]) == 5


def test_history_is_newest_first_and_scoped_to_user(db):
    now = datetime(2024, 3, 31, 12, 0)
    older = _record(db, "screener", "letter_acuity", now - timedelta(days=3))
    newer = _record(db, "screener", "color_blindness", now - timedelta(days=1))
    _record(db, "someone_else", "letter_acuity", now - timedelta(days=1))

    rows = list_results(db, "screener", now=now)
    assert [r.id for r in rows] == [newer.id, older.id]
    only_acuity = list_results(db, "screener", test_type="letter_acuity", now=now)
    assert [r.id for r in only_acuity] == [older.id]


def test_history_range_filter(db):
    now = datetime(2024, 3, 31, 12, 0)
    _record(db, "screener", "letter_acuity", now - timedelta(days=20))
    _record(db, "screener", "letter_acuity", now - timedelta(days=200))
    _record(db, "screener", "letter_acuity", now - timedelta(days=3 * 365))

    assert len(list_results(db, "screener", date_range="1m", now=now)) == 1
    assert len(list_results(db, "screener", date_range="1y", now=now)) == 2
    assert len(list_results(db, "screener", date_range="5y", now=now)) == 3
    assert len(list_results(db, "screener", date_range="all", now=now)) == 3


def test_month_arithmetic_clamps_to_month_end():
    assert range_start("1m", datetime(2024, 3, 31)) == datetime(2024, 2, 29)
    assert range_start("1y", datetime(2024, 2, 29)) == datetime(2023, 2, 28)
    assert range_start("1m", datetime(2024, 1, 15)) == datetime(2023, 12, 15)


def test_delete_only_touches_own_rows(db):
    mine = _record(db, "screener", "letter_acuity", datetime.utcnow())
    assert not delete_result(db, "someone_else", mine.id)
    assert delete_result(db, "screener", mine.id)
    assert not delete_result(db, "screener", mine.id)


@pytest.fixture
def supabase_settings(monkeypatch):
    monkeypatch.setattr(settings, "supabase_url", "https://example.supabase.co")
    monkeypatch.setattr(settings, "supabase_key", "anon-key")


def test_supabase_sink_posts_to_rest_endpoint(supabase_settings, color_result):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers["apikey"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=[{"id": 42}])

    saved = asyncio.run(SupabaseResultSink(transport=httpx.MockTransport(handler)).submit("screener", color_result))
    assert saved == {"id": 42}
    assert seen["url"] == "https://example.supabase.co/rest/v1/tests"
    assert seen["apikey"] == "anon-key"
    assert seen["body"]["test_type"] == "color_blindness"


def test_supabase_failure_surfaces_as_persistence_error(supabase_settings, color_result):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={"message": "unavailable"})

    sink = SupabaseResultSink(transport=httpx.MockTransport(handler))
    with pytest.raises(PersistenceError):
        asyncio.run(sink.submit("screener", color_result))
    assert len(calls) == 1


def test_supabase_sink_without_configuration(monkeypatch, color_result):
    monkeypatch.setattr(settings, "supabase_url", None)
    with pytest.raises(PersistenceError):
        asyncio.run(SupabaseResultSink().submit("screener", color_result))


def test_supabase_history_queries_the_table_it_writes(supabase_settings):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json=[
                {
                    "id": 7,
                    "username": "screener",
                    "test_type": "letter_acuity",
                    "questions": ["C", "D"],
                    "answers": [],
                    "correct_answers": ["C", "D"],
                    "metrics": {"kind": "letter_acuity", "best_denominator": 40},
                    "created_at": "2024-03-30T09:15:00+00:00",
                }
            ],
        )

    history = SupabaseHistory(transport=httpx.MockTransport(handler))
    records = asyncio.run(
        history.fetch("screener", date_range="1m", test_type="letter_acuity", now=datetime(2024, 3, 31, 12, 0))
    )

    assert seen["method"] == "GET"
    assert seen["url"] == "https://example.supabase.co/rest/v1/tests"
    assert seen["params"] == {
        "select": "*",
        "username": "eq.screener",
        "created_at": "gt.2024-02-29T12:00:00",
        "test_type": "eq.letter_acuity",
        "order": "created_at.desc",
    }
    assert records == [
        {
            "id": 7,
            "test_type": "letter_acuity",
            "questions": ["C", "D"],
            "answers": [],
            "correct_answers": ["C", "D"],
            "metrics": {"kind": "letter_acuity", "best_denominator": 40},
            "created_at": "2024-03-30T09:15:00+00:00",
        }
    ]


def test_supabase_history_delete_is_scoped_to_user(supabase_settings):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        removed = [{"id": 7}] if request.url.params["id"] == "eq.7" else []
        return httpx.Response(200, json=removed)

    history = SupabaseHistory(transport=httpx.MockTransport(handler))
    assert asyncio.run(history.remove("screener", 7)) is True
    assert asyncio.run(history.remove("screener", 8)) is False
    assert requests[0].method == "DELETE"
    assert dict(requests[0].url.params) == {"id": "eq.7", "username": "eq.screener"}


def test_supabase_history_failure_surfaces_as_persistence_error(supabase_settings):
    history = SupabaseHistory(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    with pytest.raises(PersistenceError):
        asyncio.run(history.fetch("screener"))


def test_history_store_follows_the_result_store(db, monkeypatch):
    assert isinstance(get_history_store(db), SqlHistory)
    assert isinstance(get_result_sink(db), SqlResultSink)
    monkeypatch.setattr(settings, "result_store", "supabase")
    assert isinstance(get_history_store(db), SupabaseHistory)
    assert isinstance(get_result_sink(db), SupabaseResultSink)
