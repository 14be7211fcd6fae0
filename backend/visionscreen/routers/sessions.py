from __future__ import annotations
import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from .calibration import get_calibration_profile
from ..cleanup import purge_stale_sessions
from ..db import get_db
from ..engine.errors import NotCalibratedError, PersistenceError, SessionStateError
from ..engine.factory import create_session
from ..engine.plates import describe_deficiencies
from ..engine.session import TestSession
from ..engine.types import ColorMetrics, TestKind
from ..results import get_result_sink
from ..settings import settings


router = APIRouter(prefix="/tests", tags=["tests"])
logger = logging.getLogger(__name__)


TEST_CATALOG = [
    {"test_type": TestKind.LETTER_ACUITY.value, "title": "Letter Acuity Test", "requires_calibration": True},
    {"test_type": TestKind.CONTRAST_LIGHT.value, "title": "Light Contrast Test", "requires_calibration": False},
    {"test_type": TestKind.CONTRAST_DARK.value, "title": "Dark Contrast Test", "requires_calibration": False},
    {"test_type": TestKind.COLOR_BLINDNESS.value, "title": "Color Vision Test", "requires_calibration": False},
]


class RespondRequest(BaseModel):
    answer: Optional[str] = None


_sessions: Dict[str, TestSession] = {}
# session_id -> stored record id, once the result has been written
_saved: Dict[str, Any] = {}


def _session_options(kind: TestKind) -> Dict[str, Any]:
    if kind is TestKind.LETTER_ACUITY:
        return {"viewing_distance_inches": settings.viewing_distance_inches}
    if kind.is_contrast:
        return {"num_trials": settings.num_test_letters, "max_reversals": settings.max_reversals}
    return {"threshold_ratio": settings.deficiency_threshold_ratio}


def _get_session(session_id: str, user: User) -> TestSession:
    session = _sessions.get(session_id)
    if not session or session.owner != user.username:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _result_payload(session: TestSession) -> Dict[str, Any]:
    result = session.result()
    payload: Dict[str, Any] = {"result": result.model_dump(mode="json")}
    if isinstance(result.metrics, ColorMetrics):
        payload["summary"] = describe_deficiencies(result.metrics.deficiency_flags)
    return payload


async def _save(session: TestSession, username: str, db: Session) -> Dict[str, Any]:
    try:
        saved = await get_result_sink(db).submit(username, session.result())
    except PersistenceError as err:
        logger.warning("Result for session %s computed but not saved: %s", session.session_id, err)
        return {"saved": False, "record_id": None, "save_error": str(err)}
    _saved[session.session_id] = saved.get("id")
    return {"saved": True, "record_id": saved.get("id"), "save_error": None}


@router.get("")
async def list_tests():
    return TEST_CATALOG


@router.post("/{kind}/start")
async def start_session(kind: TestKind, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    purged = purge_stale_sessions(_sessions, max_age=timedelta(minutes=settings.session_ttl_minutes))
    for sid in [sid for sid in _saved if sid not in _sessions]:
        _saved.pop(sid, None)
    if purged:
        logger.info("Purged %d abandoned sessions", purged)

    density = None
    if kind is TestKind.LETTER_ACUITY:
        profile = get_calibration_profile(db, user.username)
        density = profile.pixels_per_inch if profile.is_calibrated else None
    session = create_session(kind, density=density, owner=user.username, **_session_options(kind))
    try:
        stimulus = session.start()
    except NotCalibratedError as err:
        raise HTTPException(status_code=409, detail=str(err)) from err
    _sessions[session.session_id] = session
    return {
        "session_id": session.session_id,
        "test_type": kind.value,
        "status": session.status.value,
        "stimulus": stimulus.model_dump(mode="json"),
    }


@router.post("/session/{session_id}/respond")
async def respond(session_id: str, req: RespondRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = _get_session(session_id, user)
    try:
        trial = session.respond(req.answer)
    except SessionStateError as err:
        raise HTTPException(status_code=400, detail=str(err)) from err

    payload = session.snapshot()
    payload["ignored"] = trial is None
    payload["last_trial"] = (
        {"correct": trial.correct, "expected": trial.expected, "response_time_ms": trial.response_time_ms}
        if trial
        else None
    )
    if session.is_complete and trial is not None:
        payload.update(_result_payload(session))
        payload.update(await _save(session, user.username, db))
    return payload


@router.get("/session/{session_id}")
async def get_state(session_id: str, user: User = Depends(get_current_user)):
    session = _get_session(session_id, user)
    payload = session.snapshot()
    if session.is_complete:
        payload.update(_result_payload(session))
        payload["saved"] = session_id in _saved
        payload["record_id"] = _saved.get(session_id)
    return payload


@router.post("/session/{session_id}/save")
async def retry_save(session_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = _get_session(session_id, user)
    if not session.is_complete:
        raise HTTPException(status_code=400, detail="Session has not completed")
    if session_id in _saved:
        raise HTTPException(status_code=409, detail="Result already saved")
    outcome = await _save(session, user.username, db)
    if not outcome["saved"]:
        raise HTTPException(status_code=502, detail=outcome["save_error"])
    return outcome
