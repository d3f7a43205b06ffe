# timetrack/database/database.py
"""
SQLAlchemy database setup and models.
"""

import enum
import os
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

DATABASE_URL = os.getenv("TIMETRACK_DATABASE_URL", "sqlite:///./timetrack.db")

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EmployeeRole(str, enum.Enum):
    EMPLOYEE = "employee"
    TEAM_LEAD = "team_lead"
    COORDINATOR = "coordinator"
    ADMIN = "admin"


class ApprovalStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"


class SegmentCategory(str, enum.Enum):
    """Payroll categories a segment of work time can fall into."""

    REGULAR = "regular"
    NIGHT = "night"
    SATURDAY = "saturday"
    SUNDAY = "sunday"
    HOLIDAY = "holiday"
    PASSENGER = "passenger"
    DRIVING = "driving"
    EQUIPMENT = "equipment"


class ShiftHint(str, enum.Enum):
    """Classification given at clock-in. Anything but NORMAL is special duty."""

    NORMAL = "normal"
    DRIVING = "driving"
    PASSENGER = "passenger"
    EQUIPMENT = "equipment"


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)

    members = relationship("Employee", back_populates="team")


class Employee(Base):
    """Employee known to the engine. Identity itself lives in the external auth service."""

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(SQLEnum(EmployeeRole), default=EmployeeRole.EMPLOYEE, nullable=False)
    team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow)

    team = relationship("Team", back_populates="members")
    intervals = relationship("WorkInterval", foreign_keys="WorkInterval.employee_id", back_populates="employee")


class WorkInterval(Base):
    """One clock-in / clock-out pair. clock_out_time is NULL while the interval is open."""

    __tablename__ = "work_intervals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    clock_in_time = Column(DateTime, nullable=False, index=True)
    clock_out_time = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)  # carries the shift hint, e.g. "Tip: Condus"
    approval_status = Column(SQLEnum(ApprovalStatus), default=ApprovalStatus.PENDING_REVIEW, nullable=False)
    approved_at = Column(DateTime, nullable=True)
    approved_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    approval_notes = Column(Text, nullable=True)
    was_edited_by_admin = Column(Boolean, default=False, nullable=False)
    original_clock_in_time = Column(DateTime, nullable=True)
    original_clock_out_time = Column(DateTime, nullable=True)
    # boundaries the day overrides were last reconciled against (final runs only)
    reconciled_clock_in_time = Column(DateTime, nullable=True)
    reconciled_clock_out_time = Column(DateTime, nullable=True)
    needs_reprocessing = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="intervals")
    approver = relationship("Employee", foreign_keys=[approved_by])
    segments = relationship(
        "Segment",
        back_populates="interval",
        cascade="all, delete-orphan",
        order_by="Segment.start_time",
    )

    @property
    def is_open(self) -> bool:
        return self.clock_out_time is None

    def __repr__(self):
        return (
            f"<WorkInterval(id={self.id}, employee_id={self.employee_id}, "
            f"{self.clock_in_time} -> {self.clock_out_time}, status={self.approval_status})>"
        )


class Segment(Base):
    """Categorized sub-interval of a WorkInterval."""

    __tablename__ = "segments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    interval_id = Column(Integer, ForeignKey("work_intervals.id", ondelete="CASCADE"), nullable=False, index=True)
    segment_type = Column(SQLEnum(SegmentCategory), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    hours_decimal = Column(Float, nullable=False)

    interval = relationship("WorkInterval", back_populates="segments")

    def __repr__(self):
        return f"<Segment({self.segment_type.value} {self.start_time} -> {self.end_time}, {self.hours_decimal}h)>"


class DailyOverride(Base):
    """Per employee and calendar day category totals entered (or generated) in place of segments."""

    __tablename__ = "daily_overrides"
    __table_args__ = (UniqueConstraint("employee_id", "work_date", name="uq_daily_override_employee_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False)
    hours_regular = Column(Float, default=0.0, nullable=False)
    hours_night = Column(Float, default=0.0, nullable=False)
    hours_saturday = Column(Float, default=0.0, nullable=False)
    hours_sunday = Column(Float, default=0.0, nullable=False)
    hours_holiday = Column(Float, default=0.0, nullable=False)
    hours_passenger = Column(Float, default=0.0, nullable=False)
    hours_driving = Column(Float, default=0.0, nullable=False)
    hours_equipment = Column(Float, default=0.0, nullable=False)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    def get_hours(self, category: SegmentCategory) -> float:
        return getattr(self, f"hours_{category.value}") or 0.0

    def set_hours(self, category: SegmentCategory, value: float) -> None:
        setattr(self, f"hours_{category.value}", value)

    def __repr__(self):
        return f"<DailyOverride(employee_id={self.employee_id}, work_date={self.work_date}, notes={self.notes!r})>"


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    actor_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    action = Column(String(50), nullable=False)
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(String(50), nullable=False)
    details = Column(JSON, default=dict)
    created_at = Column(DateTime, default=_utcnow)


class Holiday(Base):
    """Ad-hoc non-working day on top of the legal holiday calendar."""

    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False, unique=True)
    name = Column(String(100), nullable=True)


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
