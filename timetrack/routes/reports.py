# timetrack/routes/reports.py
"""
Reporting routes - category totals per employee and date range.
"""

import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from timetrack.auth.auth import get_current_actor
from timetrack.core.aggregation import aggregate, day_status
from timetrack.core.models import AggregateReport
from timetrack.core.policy import is_privileged
from timetrack.database.database import Employee, get_db

router = APIRouter(prefix="/reports", tags=["reports"])


def _check_access(actor: Employee, employee_id: int) -> None:
    if not is_privileged(actor) and actor.id != employee_id:
        raise HTTPException(status_code=403, detail="Not authorized to view hours of other employees")


@router.get("/{employee_id}", response_model=AggregateReport)
def get_report(
    employee_id: int,
    start: datetime.date,
    end: datetime.date,
    approved_only: bool = False,
    actor: Employee = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Totals per day and for the range. approved_only gives the payroll view."""
    _check_access(actor, employee_id)
    return aggregate(db, employee_id, start, end, approved_only=approved_only)


@router.get("/{employee_id}/{work_date}/status")
def get_day_status(
    employee_id: int,
    work_date: datetime.date,
    actor: Employee = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    _check_access(actor, employee_id)
    return {
        "employee_id": employee_id,
        "work_date": work_date,
        "status": day_status(db, employee_id, work_date),
    }
