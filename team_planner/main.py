"""FastAPI application: entry point for the team planning service."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import FastAPI, HTTPException

from team_planner.config.settings import get_settings
from team_planner.domain.bus import EventBus
from team_planner.domain.handlers import HandlerRegistry
from team_planner.domain.models import (
    Assignment,
    Boundary,
    CreateAssignmentRequest,
    CreateProjectRequest,
    CreateTeamMemberRequest,
    DragEndRequest,
    HistoryEntry,
    MoveRequest,
    OverlapResponse,
    PlanDocument,
    Project,
    RejectionReason,
    ResizeApplied,
    ResizeRequest,
    TeamMember,
    ToggleDayRequest,
    ToggleDayResponse,
    same_boundary_kind,
)
from team_planner.repos.memory import (
    AssignmentRepository,
    HistoryRepository,
    create_project_repository,
    create_team_member_repository,
)
from team_planner.services.overlap import (
    find_overlapping,
    is_date_overlapping,
    is_range_overlapping,
)
from team_planner.services.planning import (
    AssignmentConflictError,
    NotFoundError,
    PlanningError,
    PlanValidationError,
    PlanningService,
    ResizeRejectedError,
)
from team_planner.utils.logging_config import setup_logging

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

logger.info("Starting %s (cascade_on_resize=%s)", settings.app_name, settings.cascade_on_resize)

app = FastAPI(title=settings.app_name)

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
assignment_repo = AssignmentRepository()
team_member_repo = create_team_member_repository(seed=settings.seed_sample_data)
project_repo = create_project_repository(seed=settings.seed_sample_data)
history_repo = HistoryRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    assignment_repo=assignment_repo,
    history_repo=history_repo,
)

planning = PlanningService(
    bus=event_bus,
    assignment_repo=assignment_repo,
    team_member_repo=team_member_repo,
    project_repo=project_repo,
    cascade_on_resize=settings.cascade_on_resize,
)

_REASON_STATUS = {
    RejectionReason.NOT_FOUND: 404,
    RejectionReason.INVALID_RANGE: 422,
    RejectionReason.BOUNDARY_ORDER_VIOLATION: 422,
    RejectionReason.OVERLAP_CONFLICT: 409,
}


def _http_error(exc: PlanningError) -> HTTPException:
    """Translate a refused planning operation into an HTTP error."""
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, AssignmentConflictError):
        return HTTPException(
            status_code=409,
            detail={"message": str(exc), "conflicting_ids": exc.conflicting_ids},
        )
    if isinstance(exc, ResizeRejectedError):
        return HTTPException(
            status_code=_REASON_STATUS[exc.reason],
            detail={"reason": str(exc.reason), "message": str(exc)},
        )
    if isinstance(exc, PlanValidationError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ── Team members & projects ───────────────────────────────────────────


@app.get("/team-members", response_model=list[TeamMember])
def list_team_members() -> list[TeamMember]:
    return team_member_repo.list_all()


@app.post("/team-members", response_model=TeamMember, status_code=201)
def add_team_member(body: CreateTeamMemberRequest) -> TeamMember:
    return planning.add_team_member(body.name.strip())


@app.delete("/team-members/{team_member_id}")
def delete_team_member(team_member_id: str) -> dict:
    """Delete a team member together with all of their assignments."""
    try:
        removed = planning.delete_team_member(team_member_id)
    except PlanningError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted", "removed_assignment_ids": removed}


@app.get("/projects", response_model=list[Project])
def list_projects() -> list[Project]:
    return project_repo.list_all()


@app.post("/projects", response_model=Project, status_code=201)
def add_project(body: CreateProjectRequest) -> Project:
    return planning.add_project(body.name.strip(), body.color)


@app.delete("/projects/{project_id}")
def delete_project(project_id: str) -> dict:
    try:
        removed = planning.delete_project(project_id)
    except PlanningError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted", "removed_assignment_ids": removed}


# ── Assignments ───────────────────────────────────────────────────────


@app.get("/assignments", response_model=list[Assignment])
def list_assignments(team_member_id: str | None = None) -> list[Assignment]:
    """Return all assignments, or one team member's lane in start order."""
    if team_member_id is not None:
        return assignment_repo.list_lane(team_member_id)
    return assignment_repo.list_all()


@app.post("/assignments", response_model=Assignment, status_code=201)
def create_assignment(body: CreateAssignmentRequest) -> Assignment:
    try:
        return planning.create_assignment(
            body.team_member_id, body.project_id, body.start, body.end
        )
    except PlanningError as exc:
        raise _http_error(exc) from exc


@app.get("/assignments/{assignment_id}", response_model=Assignment)
def get_assignment(assignment_id: str) -> Assignment:
    try:
        return planning.get_assignment(assignment_id)
    except PlanningError as exc:
        raise _http_error(exc) from exc


@app.delete("/assignments/{assignment_id}")
def delete_assignment(assignment_id: str) -> dict:
    try:
        planning.delete_assignment(assignment_id)
    except PlanningError as exc:
        raise _http_error(exc) from exc
    return {"status": "deleted"}


@app.post("/assignments/{assignment_id}/resize", response_model=ResizeApplied)
def resize_assignment(assignment_id: str, body: ResizeRequest) -> ResizeApplied:
    """Move one edge of an assignment; a right-edge move shifts later work in the lane."""
    try:
        return planning.resize(assignment_id, body.edge, body.boundary, body.cascade)
    except PlanningError as exc:
        raise _http_error(exc) from exc


@app.post("/assignments/{assignment_id}/move", response_model=Assignment)
def move_assignment(assignment_id: str, body: MoveRequest) -> Assignment:
    try:
        return planning.move(assignment_id, body.team_member_id, body.start)
    except PlanningError as exc:
        raise _http_error(exc) from exc


@app.get("/assignments/{assignment_id}/history", response_model=list[HistoryEntry])
def get_assignment_history(assignment_id: str) -> list[HistoryEntry]:
    """Return the change history of an assignment, including deleted ones."""
    entries = history_repo.list_for_assignment(assignment_id)
    if not entries and assignment_repo.get(assignment_id) is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return entries


# ── Calendar grid ─────────────────────────────────────────────────────


@app.post("/calendar/toggle", response_model=ToggleDayResponse)
def toggle_calendar_day(body: ToggleDayRequest) -> ToggleDayResponse:
    """Click on a day cell: remove the covering assignment or create a one-day one."""
    try:
        action, assignment = planning.toggle_day(
            body.team_member_id, body.day, body.project_id
        )
    except PlanningError as exc:
        raise _http_error(exc) from exc
    return ToggleDayResponse(action=action, assignment=assignment)


@app.post("/calendar/drag-end", response_model=ResizeApplied)
def drag_calendar_end(body: DragEndRequest) -> ResizeApplied:
    try:
        return planning.drag_end(body.assignment_id, body.end)
    except PlanningError as exc:
        raise _http_error(exc) from exc


# ── Overlap queries ───────────────────────────────────────────────────


def _comparable(snapshot: list[Assignment], boundary: Boundary | None) -> list[Assignment]:
    # Calendar lanes and timestamp lanes never overlap each other.
    if boundary is None:
        return snapshot
    return [a for a in snapshot if same_boundary_kind(boundary, a.start)]


@app.get("/overlap/date", response_model=OverlapResponse)
def check_date_overlap(
    team_member_id: str | None = None, day: date | None = None
) -> OverlapResponse:
    """Speculative check; incomplete selections answer ``overlapping: false``."""
    snapshot = _comparable(assignment_repo.list_all(), day)
    conflicts = find_overlapping(day, day, snapshot, team_member_id)
    return OverlapResponse(
        overlapping=is_date_overlapping(day, snapshot, team_member_id),
        conflicting_ids=[c.id for c in conflicts],
    )


@app.get("/overlap/range", response_model=OverlapResponse)
def check_range_overlap(
    team_member_id: str | None = None,
    start: Boundary | None = None,
    end: Boundary | None = None,
    exclude_assignment_id: str | None = None,
) -> OverlapResponse:
    if start is not None and end is not None and not same_boundary_kind(end, start):
        raise HTTPException(status_code=422, detail="start and end use different time units")
    snapshot = _comparable(assignment_repo.list_all(), start)
    conflicts = find_overlapping(
        start, end, snapshot, team_member_id, exclude_assignment_id
    )
    return OverlapResponse(
        overlapping=is_range_overlapping(
            start, end, snapshot, team_member_id, exclude_assignment_id
        ),
        conflicting_ids=[c.id for c in conflicts],
    )


# ── Import / export ───────────────────────────────────────────────────


@app.get("/plan", response_model=PlanDocument)
def export_plan() -> PlanDocument:
    return planning.export_plan()


@app.put("/plan", response_model=PlanDocument)
def import_plan(document: PlanDocument) -> PlanDocument:
    """Replace the whole plan with an imported document."""
    try:
        return planning.import_plan(document)
    except PlanningError as exc:
        raise _http_error(exc) from exc
