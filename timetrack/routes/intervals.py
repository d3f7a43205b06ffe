# timetrack/routes/intervals.py
"""
Work interval approval routes - approve, edit, recalculate, delete, team batches.
"""

import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from timetrack.auth.auth import get_privileged_actor
from timetrack.core import approval
from timetrack.core.models import ApprovalOutcome, BatchResult, RecalculationResult
from timetrack.core.recalculation import recalculate
from timetrack.database.database import Employee, get_db

router = APIRouter(tags=["intervals"])


class ApproveRequest(BaseModel):
    notes: str | None = None


class EditRequest(BaseModel):
    clock_in: datetime.datetime | None = None
    clock_out: datetime.datetime | None = None


class RecalculateRequest(EditRequest):
    final_mode: bool = True


class TeamApproveRequest(BaseModel):
    week_id: str
    day_of_week: int | None = Field(default=None, ge=0, le=6)


class TeamEditRequest(BaseModel):
    week_id: str
    day_of_week: int = Field(ge=0, le=6)
    start_time: datetime.time | None = None
    end_time: datetime.time | None = None


@router.post("/intervals/{interval_id}/approve", response_model=ApprovalOutcome)
def approve_interval(
    interval_id: int,
    body: ApproveRequest | None = None,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return approval.approve(db, interval_id, actor=actor, notes=body.notes if body else None)


@router.post("/intervals/{interval_id}/edit", response_model=RecalculationResult)
def edit_interval(
    interval_id: int,
    body: EditRequest,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return approval.edit(db, interval_id, body.clock_in, body.clock_out, actor=actor)


@router.post("/intervals/{interval_id}/recalculate", response_model=RecalculationResult)
def recalculate_interval(
    interval_id: int,
    body: RecalculateRequest,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return recalculate(db, interval_id, body.clock_in, body.clock_out, final_mode=body.final_mode, actor=actor)


@router.delete("/intervals/{interval_id}", status_code=204)
def delete_interval(
    interval_id: int,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    approval.delete(db, interval_id, actor=actor)


@router.post("/teams/{team_id}/approve", response_model=BatchResult)
def approve_team(
    team_id: int,
    body: TeamApproveRequest,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return approval.approve_all(db, team_id, body.week_id, body.day_of_week, actor=actor)


@router.post("/teams/{team_id}/edit", response_model=BatchResult)
def edit_team(
    team_id: int,
    body: TeamEditRequest,
    actor: Employee = Depends(get_privileged_actor),
    db: Session = Depends(get_db),
):
    return approval.edit_team(
        db,
        team_id,
        body.week_id,
        body.day_of_week,
        start_time=body.start_time,
        end_time=body.end_time,
        actor=actor,
    )
