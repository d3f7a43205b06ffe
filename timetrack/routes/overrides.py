# timetrack/routes/overrides.py
"""
Daily override routes - set and remove manual category totals.
"""

import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from timetrack.auth.auth import get_current_actor, get_privileged_actor
from timetrack.core.models import DayTotals, OverrideResult
from timetrack.core.overrides import apply_override, delete_override
from timetrack.core.policy import is_privileged
from timetrack.database.database import Employee, SegmentCategory, get_db

router = APIRouter(prefix="/overrides", tags=["overrides"])


class OverrideRequest(BaseModel):
    category: SegmentCategory
    value: float


@router.put("/{employee_id}/{work_date}", response_model=OverrideResult)
def put_override(
    employee_id: int,
    work_date: datetime.date,
    body: OverrideRequest,
    actor: Employee = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """
    Set one category of a day.

    Permissions:
    - Supervisors: any employee, may exceed the clocked span (warning returned)
    - Employees: only themselves, within the clocked span
    """
    if not is_privileged(actor) and actor.id != employee_id:
        raise HTTPException(status_code=403, detail="Not authorized to override hours of other employees")

    return apply_override(db, employee_id, work_date, body.category, body.value, actor=actor)


@router.delete("/{employee_id}/{work_date}", response_model=DayTotals)
def remove_override(
    employee_id: int,
    work_date: datetime.date,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return delete_override(db, employee_id, work_date, actor=actor)
