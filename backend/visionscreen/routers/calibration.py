from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from .auth import User, get_current_user
from ..db import get_db
from ..engine.calibration import CARD_HEIGHT_INCHES, CalibrationProfile, compute_density
from ..engine.errors import OutOfRangeError
from ..models import AuthUser
from ..settings import settings


router = APIRouter(prefix="/calibration", tags=["calibration"])
logger = logging.getLogger(__name__)


class CalibrationRequest(BaseModel):
    pixel_height: float = Field(gt=0, description="On-screen height of the reference object in pixels")
    reference_inches: float = Field(default=CARD_HEIGHT_INCHES, gt=0, description="Physical height of the reference object")


def _user_row(db: Session, username: str) -> AuthUser:
    row = db.get(AuthUser, username)
    if row is None:
        raise HTTPException(status_code=404, detail="User not found")
    return row


def get_calibration_profile(db: Session, username: str) -> CalibrationProfile:
    row = db.get(AuthUser, username)
    return CalibrationProfile(pixels_per_inch=row.calibrated_ppi if row else None)


@router.get("", response_model=CalibrationProfile)
async def read_calibration(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return get_calibration_profile(db, user.username)


@router.post("", response_model=CalibrationProfile)
async def calibrate(req: CalibrationRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    row = _user_row(db, user.username)
    try:
        density = compute_density(
            req.pixel_height,
            req.reference_inches,
            min_ppi=settings.min_ppi,
            max_ppi=settings.max_ppi,
        )
    except OutOfRangeError as err:
        raise HTTPException(status_code=422, detail="The calculated PPI seems incorrect. Please try again.") from err
    row.calibrated_ppi = density
    db.add(row)
    db.commit()
    logger.info("Stored calibration %.2f ppi for %s", density, user.username)
    return CalibrationProfile(pixels_per_inch=density)


@router.delete("", response_model=CalibrationProfile)
async def clear_calibration(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    row = _user_row(db, user.username)
    row.calibrated_ppi = None
    db.add(row)
    db.commit()
    return CalibrationProfile(pixels_per_inch=None)
