"""Domain models for the team planning system."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from enum import StrEnum
from typing import Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

# Calendar assignments use whole days, timeline assignments use epoch milliseconds.
Boundary = Union[int, date]
TimeShift = Union[int, timedelta]


def same_boundary_kind(boundary: object, reference: Boundary) -> bool:
    """True if both are timestamps or both are calendar dates."""
    if isinstance(reference, int):
        return isinstance(boundary, int) and not isinstance(boundary, bool)
    return isinstance(boundary, date) and not isinstance(boundary, datetime)


class ResizeEdge(StrEnum):
    START = "start"
    END = "end"

    @classmethod
    def _missing_(cls, value: object) -> ResizeEdge | None:
        # Timeline widgets report edges as left/right.
        if isinstance(value, str):
            return {"left": cls.START, "right": cls.END}.get(value.lower())
        return None


class RejectionReason(StrEnum):
    NOT_FOUND = "not_found"
    INVALID_RANGE = "invalid_range"
    BOUNDARY_ORDER_VIOLATION = "boundary_order_violation"
    OVERLAP_CONFLICT = "overlap_conflict"


class HistoryEntryType(StrEnum):
    CREATED = "created"
    DELETED = "deleted"
    RESIZED = "resized"
    SHIFTED = "shifted"
    MOVED = "moved"
    REJECTED = "rejected"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class TeamMember(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(default_factory=_new_id)
    name: str = Field(validation_alias=AliasChoices("name", "title"))


class Project(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = Field(default_factory=_new_id)
    name: str
    color: str | None = None


class Assignment(BaseModel):
    """One team member's commitment to one project over a closed interval.

    ``start`` and ``end`` are both occupied. A single-day calendar assignment
    has ``start == end``. Instances are frozen; edits produce copies.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    id: str = Field(default_factory=_new_id)
    team_member_id: str = Field(
        validation_alias=AliasChoices(
            "team_member_id", "teamMemberId", "group_id", "groupId", "group"
        )
    )
    project_id: str = Field(
        validation_alias=AliasChoices("project_id", "projectId", "project")
    )
    start: Boundary = Field(
        validation_alias=AliasChoices("start", "startDate", "start_date", "start_time")
    )
    end: Boundary = Field(
        validation_alias=AliasChoices("end", "endDate", "end_date", "end_time")
    )

    @model_validator(mode="after")
    def _valid_interval(self) -> Assignment:
        if not same_boundary_kind(self.end, self.start):
            raise ValueError("start and end must both be dates or both be timestamps")
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self

    @property
    def is_timestamp(self) -> bool:
        return isinstance(self.start, int)

    @property
    def lane_order_key(self) -> tuple[Boundary, str]:
        return (self.start, self.id)

    def overlaps(self, start: Boundary, end: Boundary) -> bool:
        """Closed-interval intersection; touching endpoints overlap."""
        return start <= self.end and end >= self.start

    def shifted(self, delta: TimeShift) -> Assignment:
        return self.model_copy(update={"start": self.start + delta, "end": self.end + delta})


class HistoryEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    assignment_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: HistoryEntryType
    payload: dict = Field(default_factory=dict)


class PlanDocument(BaseModel):
    """Import/export shape: lanes, projects and timeline items."""

    groups: list[TeamMember] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    items: list[Assignment] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Resize outcomes
# ---------------------------------------------------------------------------


class ResizeApplied(BaseModel):
    ok: Literal[True] = True
    assignments: list[Assignment]
    resized_id: str
    shifted_ids: list[str] = Field(default_factory=list)
    time_shift: TimeShift | None = None


class ResizeRejected(BaseModel):
    ok: Literal[False] = False
    reason: RejectionReason
    message: str
    assignments: list[Assignment]


ResizeResult = Union[ResizeApplied, ResizeRejected]


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateTeamMemberRequest(BaseModel):
    name: str = Field(min_length=1)


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1)
    color: str | None = None


class CreateAssignmentRequest(BaseModel):
    team_member_id: str
    project_id: str
    start: Boundary
    end: Boundary | None = None


class ResizeRequest(BaseModel):
    edge: ResizeEdge
    boundary: Boundary
    cascade: bool | None = None


class MoveRequest(BaseModel):
    team_member_id: str
    start: Boundary


class ToggleDayRequest(BaseModel):
    team_member_id: str
    day: date
    project_id: str | None = None


class ToggleDayResponse(BaseModel):
    action: Literal["created", "removed"]
    assignment: Assignment


class DragEndRequest(BaseModel):
    assignment_id: str
    end: date


class OverlapResponse(BaseModel):
    overlapping: bool
    conflicting_ids: list[str] = Field(default_factory=list)
