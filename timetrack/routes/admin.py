# timetrack/routes/admin.py
"""
Maintenance routes for supervisors.
"""

import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timetrack.auth.auth import get_privileged_actor
from timetrack.core.config import REPROCESS_BATCH_SIZE
from timetrack.core.models import ReprocessResult
from timetrack.core.reprocess import ReprocessMode, reprocess
from timetrack.database.database import Employee, get_db

router = APIRouter(prefix="/admin", tags=["admin"])


class ReprocessRequest(BaseModel):
    mode: ReprocessMode = "missing_segments"
    start_date: datetime.date | None = None
    end_date: datetime.date | None = None
    batch_size: int = Field(default=REPROCESS_BATCH_SIZE, ge=1, le=1000)


@router.post("/reprocess", response_model=ReprocessResult)
def reprocess_segments(
    body: ReprocessRequest,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return reprocess(db, body.mode, body.start_date, body.end_date, body.batch_size)
