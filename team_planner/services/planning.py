"""Planning service: owns the assignment store and drives the overlap and resize rules.

Every mutation reads a snapshot from the repositories, computes the new state
with the pure overlap/resize functions, commits it in one step and publishes a
domain event. The service is single-writer: callers apply one mutation at a time.
"""

from __future__ import annotations

import logging
from datetime import date

from pydantic import ValidationError

from team_planner.domain.bus import EventBus
from team_planner.domain.events import (
    AssignmentCreated,
    AssignmentDeleted,
    AssignmentMoved,
    AssignmentRejected,
    AssignmentResized,
)
from team_planner.domain.models import (
    Assignment,
    Boundary,
    PlanDocument,
    Project,
    RejectionReason,
    ResizeApplied,
    ResizeEdge,
    ResizeRejected,
    TeamMember,
    same_boundary_kind,
)
from team_planner.repos.memory import (
    AssignmentRepository,
    ProjectRepository,
    TeamMemberRepository,
)
from team_planner.services.overlap import find_overlapping
from team_planner.services.resize import resize_edge

logger = logging.getLogger(__name__)


class PlanningError(Exception):
    """Base class for refused planning operations."""


class NotFoundError(PlanningError):
    pass


class PlanValidationError(PlanningError):
    pass


class AssignmentConflictError(PlanningError):
    def __init__(self, message: str, conflicting_ids: list[str]) -> None:
        super().__init__(message)
        self.conflicting_ids = conflicting_ids


class ResizeRejectedError(PlanningError):
    def __init__(self, rejection: ResizeRejected) -> None:
        super().__init__(rejection.message)
        self.reason = rejection.reason
        self.rejection = rejection


class PlanningService:
    def __init__(
        self,
        bus: EventBus,
        assignment_repo: AssignmentRepository,
        team_member_repo: TeamMemberRepository,
        project_repo: ProjectRepository,
        cascade_on_resize: bool = True,
    ) -> None:
        self.bus = bus
        self.assignment_repo = assignment_repo
        self.team_member_repo = team_member_repo
        self.project_repo = project_repo
        self.cascade_on_resize = cascade_on_resize

    # ------------------------------------------------------------------
    # Team members and projects
    # ------------------------------------------------------------------

    def add_team_member(self, name: str) -> TeamMember:
        member = TeamMember(name=name)
        self.team_member_repo.add(member)
        return member

    def delete_team_member(self, team_member_id: str) -> list[str]:
        """Delete a team member and their whole lane. Returns removed assignment ids."""
        self._require_team_member(team_member_id)
        removed = [a.id for a in self.assignment_repo.delete_for_team_member(team_member_id)]
        self.team_member_repo.delete(team_member_id)
        for assignment_id in removed:
            self.bus.publish(
                AssignmentDeleted(assignment_id=assignment_id, team_member_id=team_member_id)
            )
        logger.info(
            "Deleted team member %s and %d assignment(s)", team_member_id, len(removed)
        )
        return removed

    def add_project(self, name: str, color: str | None = None) -> Project:
        project = Project(name=name, color=color)
        self.project_repo.add(project)
        return project

    def delete_project(self, project_id: str) -> list[str]:
        """Delete a project and every assignment to it. Returns removed assignment ids."""
        if self.project_repo.get(project_id) is None:
            raise NotFoundError("Project not found")
        doomed = self.assignment_repo.delete_for_project(project_id)
        self.project_repo.delete(project_id)
        for a in doomed:
            self.bus.publish(
                AssignmentDeleted(assignment_id=a.id, team_member_id=a.team_member_id)
            )
        return [a.id for a in doomed]

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def get_assignment(self, assignment_id: str) -> Assignment:
        assignment = self.assignment_repo.get(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    def create_assignment(
        self,
        team_member_id: str,
        project_id: str,
        start: Boundary,
        end: Boundary | None = None,
    ) -> Assignment:
        """Create an assignment; ``end`` defaults to ``start`` (a single day)."""
        self._require_team_member(team_member_id)
        if self.project_repo.get(project_id) is None:
            raise NotFoundError("Project not found")

        try:
            assignment = Assignment(
                team_member_id=team_member_id,
                project_id=project_id,
                start=start,
                end=start if end is None else end,
            )
        except ValidationError as exc:
            raise PlanValidationError(str(exc)) from exc
        self._require_lane_kind(team_member_id, assignment.start)

        conflicts = find_overlapping(
            assignment.start,
            assignment.end,
            self.assignment_repo.list_all(),
            team_member_id,
        )
        if conflicts:
            message = (
                f"Range {assignment.start} - {assignment.end} for team member "
                f"{team_member_id} is already covered by an existing assignment"
            )
            logger.warning("Cannot create assignment: %s", message)
            raise AssignmentConflictError(message, [c.id for c in conflicts])

        self.assignment_repo.add(assignment)
        self.bus.publish(
            AssignmentCreated(assignment_id=assignment.id, team_member_id=team_member_id)
        )
        return assignment

    def delete_assignment(self, assignment_id: str) -> Assignment:
        assignment = self.get_assignment(assignment_id)
        self.assignment_repo.delete(assignment_id)
        self.bus.publish(
            AssignmentDeleted(
                assignment_id=assignment_id, team_member_id=assignment.team_member_id
            )
        )
        return assignment

    def resize(
        self,
        assignment_id: str,
        edge: ResizeEdge | str,
        boundary: Boundary,
        cascade: bool | None = None,
    ) -> ResizeApplied:
        """Resize one edge; commits the resized and shifted assignments together."""
        if cascade is None:
            cascade = self.cascade_on_resize
        edge = ResizeEdge(edge)

        result = resize_edge(
            assignment_id, edge, boundary, self.assignment_repo.list_all(), cascade=cascade
        )
        if isinstance(result, ResizeRejected):
            logger.warning(
                "Resize of %s (%s edge) rejected: %s", assignment_id, edge, result.message
            )
            if result.reason is not RejectionReason.NOT_FOUND:
                self.bus.publish(
                    AssignmentRejected(
                        assignment_id=assignment_id,
                        reason=result.reason,
                        message=result.message,
                    )
                )
            raise ResizeRejectedError(result)

        self.assignment_repo.replace_all(result.assignments)
        resized = self.assignment_repo.get(assignment_id)
        self.bus.publish(
            AssignmentResized(
                assignment_id=assignment_id,
                edge=edge,
                start=resized.start,
                end=resized.end,
                shifted_ids=result.shifted_ids,
                time_shift=result.time_shift,
            )
        )
        if result.shifted_ids:
            logger.info(
                "Resize of %s shifted %d later assignment(s) by %s",
                assignment_id,
                len(result.shifted_ids),
                result.time_shift,
            )
        return result

    def move(self, assignment_id: str, team_member_id: str, start: Boundary) -> Assignment:
        """Move an assignment to another lane and/or start, keeping its duration and id."""
        original = self.get_assignment(assignment_id)
        self._require_team_member(team_member_id)
        if not same_boundary_kind(start, original.start):
            raise PlanValidationError("Start does not match the assignment's time unit")
        self._require_lane_kind(team_member_id, start)

        end = start + (original.end - original.start)
        conflicts = find_overlapping(
            start, end, self.assignment_repo.list_all(), team_member_id, assignment_id
        )
        if conflicts:
            message = (
                f"Cannot move assignment: range {start} - {end} overlaps with an "
                f"existing assignment for team member {team_member_id}"
            )
            logger.warning(message)
            self.bus.publish(
                AssignmentRejected(
                    assignment_id=assignment_id,
                    reason=RejectionReason.OVERLAP_CONFLICT,
                    message=message,
                )
            )
            raise AssignmentConflictError(message, [c.id for c in conflicts])

        moved = original.model_copy(
            update={"team_member_id": team_member_id, "start": start, "end": end}
        )
        self.assignment_repo.add(moved)
        self.bus.publish(
            AssignmentMoved(
                assignment_id=assignment_id,
                from_team_member_id=original.team_member_id,
                to_team_member_id=team_member_id,
                start=start,
                end=end,
            )
        )
        return moved

    # ------------------------------------------------------------------
    # Calendar grid operations
    # ------------------------------------------------------------------

    def toggle_day(
        self, team_member_id: str, day: date, project_id: str | None = None
    ) -> tuple[str, Assignment]:
        """Remove the assignment covering ``day`` or create a single-day one.

        Returns ``("removed", assignment)`` or ``("created", assignment)``.
        """
        self._require_team_member(team_member_id)
        self._require_lane_kind(team_member_id, day)
        covering = find_overlapping(day, day, self._lane(team_member_id), team_member_id)
        if covering:
            return "removed", self.delete_assignment(covering[0].id)

        if project_id is None:
            project = self.project_repo.first()
            if project is None:
                logger.warning("No projects available to assign")
                raise NotFoundError("No projects available to assign")
            project_id = project.id
        return "created", self.create_assignment(team_member_id, project_id, day, day)

    def drag_end(self, assignment_id: str, new_end: date) -> ResizeApplied:
        """Move a calendar assignment's end date without cascading.

        An end dropped before the start snaps back to the start.
        """
        original = self.get_assignment(assignment_id)
        if same_boundary_kind(new_end, original.start) and new_end < original.start:
            logger.warning("Cannot drag end date before start date; snapping to start")
            new_end = original.start
        return self.resize(assignment_id, ResizeEdge.END, new_end, cascade=False)

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def export_plan(self) -> PlanDocument:
        return PlanDocument(
            groups=self.team_member_repo.list_all(),
            projects=self.project_repo.list_all(),
            items=self.assignment_repo.list_all(),
        )

    def import_plan(self, document: PlanDocument) -> PlanDocument:
        """Replace the whole plan after checking references and lane disjointness."""
        member_ids = {m.id for m in document.groups}
        project_ids = {p.id for p in document.projects}
        seen: set[str] = set()
        for item in document.items:
            if item.id in seen:
                raise PlanValidationError(f"Duplicate assignment id {item.id}")
            seen.add(item.id)
            if item.team_member_id not in member_ids:
                raise PlanValidationError(
                    f"Assignment {item.id} references unknown team member {item.team_member_id}"
                )
            if item.project_id not in project_ids:
                raise PlanValidationError(
                    f"Assignment {item.id} references unknown project {item.project_id}"
                )

        for member_id in member_ids:
            lane_items = [i for i in document.items if i.team_member_id == member_id]
            if lane_items and any(
                not same_boundary_kind(i.start, lane_items[0].start) for i in lane_items
            ):
                raise PlanValidationError(
                    f"Team member {member_id} mixes calendar dates and timestamps"
                )
            for item in lane_items:
                clash = find_overlapping(item.start, item.end, lane_items, member_id, item.id)
                if clash:
                    raise PlanValidationError(
                        f"Assignment {item.id} overlaps with {clash[0].id}"
                    )

        self.team_member_repo.clear()
        for member in document.groups:
            self.team_member_repo.add(member)
        self.project_repo.clear()
        for project in document.projects:
            self.project_repo.add(project)
        self.assignment_repo.replace_all(document.items)
        for item in document.items:
            self.bus.publish(
                AssignmentCreated(assignment_id=item.id, team_member_id=item.team_member_id)
            )
        logger.info(
            "Imported plan with %d team member(s), %d project(s), %d assignment(s)",
            len(document.groups),
            len(document.projects),
            len(document.items),
        )
        return self.export_plan()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lane(self, team_member_id: str) -> list[Assignment]:
        return self.assignment_repo.list_lane(team_member_id)

    def _require_team_member(self, team_member_id: str) -> TeamMember:
        member = self.team_member_repo.get(team_member_id)
        if member is None:
            raise NotFoundError("Team member not found")
        return member

    def _require_lane_kind(self, team_member_id: str, boundary: Boundary) -> None:
        # A lane holds either calendar dates or timestamps, never both.
        for existing in self._lane(team_member_id):
            if not same_boundary_kind(boundary, existing.start):
                raise PlanValidationError(
                    f"Team member {team_member_id} is planned in a different time unit"
                )
