"""Domain events emitted when the assignment store changes."""

from __future__ import annotations

from pydantic import BaseModel

from team_planner.domain.models import Boundary, RejectionReason, ResizeEdge, TimeShift


class AssignmentCreated(BaseModel):
    """Fired when a new Assignment is committed to the store."""

    assignment_id: str
    team_member_id: str


class AssignmentDeleted(BaseModel):
    """Fired after an assignment is removed, directly or by a lane/project cascade."""

    assignment_id: str
    team_member_id: str


class AssignmentResized(BaseModel):
    """Fired after a resize (and its cascade) has been committed."""

    assignment_id: str
    edge: ResizeEdge
    start: Boundary
    end: Boundary
    shifted_ids: list[str] = []
    time_shift: TimeShift | None = None


class AssignmentMoved(BaseModel):
    """Fired when an assignment changes lane or start while keeping its duration."""

    assignment_id: str
    from_team_member_id: str
    to_team_member_id: str
    start: Boundary
    end: Boundary


class AssignmentRejected(BaseModel):
    """Fired when a mutation on an existing assignment was refused."""

    assignment_id: str
    reason: RejectionReason
    message: str
