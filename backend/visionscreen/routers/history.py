from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from ..db import get_db
from ..engine.errors import PersistenceError
from ..engine.types import TestKind
from ..results import DATE_RANGES, get_history_store


router = APIRouter(prefix="/history", tags=["history"])


@router.get("")
async def get_history(
    date_range: str = Query(default="1m", alias="range"),
    test_type: Optional[TestKind] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if date_range not in DATE_RANGES:
        raise HTTPException(status_code=400, detail=f"range must be one of {list(DATE_RANGES)}")
    try:
        records = await get_history_store(db).fetch(
            user.username,
            date_range=date_range,
            test_type=test_type.value if test_type else None,
        )
    except PersistenceError as err:
        raise HTTPException(status_code=502, detail=str(err)) from err
    sections = {kind.value: [] for kind in TestKind}
    for record in records:
        sections.setdefault(record["test_type"], []).append(record)
    return {"range": date_range, "total": len(records), "sections": sections}


@router.delete("/{record_id}")
async def remove_result(record_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        removed = await get_history_store(db).remove(user.username, record_id)
    except PersistenceError as err:
        raise HTTPException(status_code=502, detail=str(err)) from err
    if not removed:
        raise HTTPException(status_code=404, detail="Test result not found")
    return {"ok": True}
