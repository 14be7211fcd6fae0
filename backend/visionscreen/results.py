"""Persistence collaborator: where finished test results go and how they come back."""

from __future__ import annotations

import calendar
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .engine.errors import PersistenceError
from .engine.types import TestKind, TestResult
from .models import TestRecord
from .settings import settings
from .supabase_client import SupabaseClient

logger = logging.getLogger(__name__)

DATE_RANGES = ("1m", "1y", "5y", "all")


def result_to_row(username: str, result: TestResult) -> Dict[str, Any]:
    trials = result.trials
    if result.test_type is TestKind.COLOR_BLINDNESS:
        questions: List[Any] = [
            {"id": t.plate_id, "type": t.plate_type, "correct_answer": t.expected} for t in trials
        ]
    else:
        questions = [t.expected for t in trials]
    return {
        "username": username,
        "test_type": result.test_type.value,
        "questions": questions,
        "answers": [t.model_dump(mode="json", exclude_none=True) for t in trials],
        "correct_answers": [t.expected for t in trials],
        "metrics": result.metrics.model_dump(mode="json"),
        "created_at": result.created_at.isoformat(),
    }


def record_to_dict(row: TestRecord) -> Dict[str, Any]:
    return {
        "id": row.id,
        "test_type": row.test_type,
        "questions": json.loads(row.questions),
        "answers": json.loads(row.answers),
        "correct_answers": json.loads(row.correct_answers),
        "metrics": json.loads(row.metrics),
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


class SqlResultSink:
    def __init__(self, db: Session) -> None:
        self.db = db

    async def submit(self, username: str, result: TestResult) -> Dict[str, Any]:
        row_data = result_to_row(username, result)
        row = TestRecord(
            username=username,
            test_type=row_data["test_type"],
            questions=json.dumps(row_data["questions"]),
            answers=json.dumps(row_data["answers"]),
            correct_answers=json.dumps(row_data["correct_answers"]),
            metrics=json.dumps(row_data["metrics"]),
            created_at=result.created_at,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Failed to save %s result for %s: %s", row_data["test_type"], username, err)
            raise PersistenceError("Failed to save test results. Please try again.", cause=err) from err
        return {"id": row.id}


def _open_client(transport: Optional[httpx.AsyncBaseTransport]) -> SupabaseClient:
    try:
        return SupabaseClient(transport=transport)
    except ValueError as err:
        raise PersistenceError(str(err), cause=err) from err


class SupabaseResultSink:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def submit(self, username: str, result: TestResult) -> Dict[str, Any]:
        row_data = result_to_row(username, result)
        client = _open_client(self._transport)
        try:
            saved = await client.insert(row_data)
        except httpx.HTTPError as err:
            logger.error("Supabase insert failed for %s: %s", username, err)
            raise PersistenceError("Failed to save test results. Please try again.", cause=err) from err
        finally:
            await client.aclose()
        return {"id": saved.get("id")}


def get_result_sink(db: Session):
    if settings.result_store == "supabase":
        return SupabaseResultSink()
    return SqlResultSink(db)


def _subtract_months(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def range_start(date_range: str, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    if date_range == "1y":
        return _subtract_months(now, 12)
    if date_range == "5y":
        return _subtract_months(now, 60)
    if date_range == "all":
        return datetime(1970, 1, 1)
    return _subtract_months(now, 1)


def list_results(
    db: Session,
    username: str,
    *,
    date_range: str = "1m",
    test_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> List[TestRecord]:
    query = db.query(TestRecord).filter(
        TestRecord.username == username,
        TestRecord.created_at > range_start(date_range, now),
    )
    if test_type:
        query = query.filter(TestRecord.test_type == test_type)
    return query.order_by(TestRecord.created_at.desc()).all()


def delete_result(db: Session, username: str, record_id: int) -> bool:
    row = db.query(TestRecord).filter(TestRecord.id == record_id, TestRecord.username == username).first()
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


def _decode(value: Any) -> Any:
    return json.loads(value) if isinstance(value, str) else value


def remote_row_to_dict(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": row.get("id"),
        "test_type": row.get("test_type"),
        "questions": _decode(row.get("questions")),
        "answers": _decode(row.get("answers")),
        "correct_answers": _decode(row.get("correct_answers")),
        "metrics": _decode(row.get("metrics")),
        "created_at": row.get("created_at"),
    }


class SqlHistory:
    def __init__(self, db: Session) -> None:
        self.db = db

    async def fetch(
        self,
        username: str,
        *,
        date_range: str = "1m",
        test_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        rows = list_results(self.db, username, date_range=date_range, test_type=test_type, now=now)
        return [record_to_dict(row) for row in rows]

    async def remove(self, username: str, record_id: int) -> bool:
        return delete_result(self.db, username, record_id)


class SupabaseHistory:
    """History read back from the same PostgREST table the Supabase sink writes to."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._transport = transport

    async def fetch(
        self,
        username: str,
        *,
        date_range: str = "1m",
        test_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        filters = {
            "username": f"eq.{username}",
            "created_at": f"gt.{range_start(date_range, now).isoformat()}",
        }
        if test_type:
            filters["test_type"] = f"eq.{test_type}"
        client = _open_client(self._transport)
        try:
            rows = await client.select(filters, order="created_at.desc")
        except httpx.HTTPError as err:
            logger.error("Supabase history query failed for %s: %s", username, err)
            raise PersistenceError("Failed to load test history. Please try again.", cause=err) from err
        finally:
            await client.aclose()
        return [remote_row_to_dict(row) for row in rows]

    async def remove(self, username: str, record_id: int) -> bool:
        client = _open_client(self._transport)
        try:
            removed = await client.delete({"id": f"eq.{record_id}", "username": f"eq.{username}"})
        except httpx.HTTPError as err:
            logger.error("Supabase delete of %s failed for %s: %s", record_id, username, err)
            raise PersistenceError("Failed to delete test result. Please try again.", cause=err) from err
        finally:
            await client.aclose()
        return bool(removed)


def get_history_store(db: Session):
    if settings.result_store == "supabase":
        return SupabaseHistory()
    return SqlHistory(db)
