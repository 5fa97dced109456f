"""Domain event handlers that record the assignment change history."""

from __future__ import annotations

from team_planner.domain.bus import EventBus
from team_planner.domain.events import (
    AssignmentCreated,
    AssignmentDeleted,
    AssignmentMoved,
    AssignmentRejected,
    AssignmentResized,
)
from team_planner.domain.models import HistoryEntry, HistoryEntryType
from team_planner.repos.memory import AssignmentRepository, HistoryRepository


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        assignment_repo: AssignmentRepository,
        history_repo: HistoryRepository,
    ) -> None:
        self.bus = bus
        self.assignment_repo = assignment_repo
        self.history_repo = history_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(AssignmentCreated, self.on_assignment_created)
        self.bus.subscribe(AssignmentDeleted, self.on_assignment_deleted)
        self.bus.subscribe(AssignmentResized, self.on_assignment_resized)
        self.bus.subscribe(AssignmentMoved, self.on_assignment_moved)
        self.bus.subscribe(AssignmentRejected, self.on_assignment_rejected)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_assignment_created(self, event: AssignmentCreated) -> None:
        stored = self.assignment_repo.get(event.assignment_id)
        if stored is None:
            return

        self.history_repo.add(
            HistoryEntry(
                assignment_id=stored.id,
                type=HistoryEntryType.CREATED,
                payload={
                    "team_member_id": stored.team_member_id,
                    "project_id": stored.project_id,
                    "start": str(stored.start),
                    "end": str(stored.end),
                },
            )
        )

    def on_assignment_deleted(self, event: AssignmentDeleted) -> None:
        # The record is already gone from the store; history outlives it.
        self.history_repo.add(
            HistoryEntry(
                assignment_id=event.assignment_id,
                type=HistoryEntryType.DELETED,
                payload={"team_member_id": event.team_member_id},
            )
        )

    def on_assignment_resized(self, event: AssignmentResized) -> None:
        # 1. The resized assignment itself
        self.history_repo.add(
            HistoryEntry(
                assignment_id=event.assignment_id,
                type=HistoryEntryType.RESIZED,
                payload={
                    "edge": str(event.edge),
                    "start": str(event.start),
                    "end": str(event.end),
                    "shifted_ids": event.shifted_ids,
                },
            )
        )

        # 2. One entry per cascaded assignment
        for shifted_id in event.shifted_ids:
            shifted = self.assignment_repo.get(shifted_id)
            if shifted is None:
                continue
            self.history_repo.add(
                HistoryEntry(
                    assignment_id=shifted_id,
                    type=HistoryEntryType.SHIFTED,
                    payload={
                        "caused_by": event.assignment_id,
                        "time_shift": str(event.time_shift),
                        "start": str(shifted.start),
                        "end": str(shifted.end),
                    },
                )
            )

    def on_assignment_moved(self, event: AssignmentMoved) -> None:
        self.history_repo.add(
            HistoryEntry(
                assignment_id=event.assignment_id,
                type=HistoryEntryType.MOVED,
                payload={
                    "from_team_member_id": event.from_team_member_id,
                    "to_team_member_id": event.to_team_member_id,
                    "start": str(event.start),
                    "end": str(event.end),
                },
            )
        )

    def on_assignment_rejected(self, event: AssignmentRejected) -> None:
        self.history_repo.add(
            HistoryEntry(
                assignment_id=event.assignment_id,
                type=HistoryEntryType.REJECTED,
                payload={"reason": str(event.reason), "message": event.message},
            )
        )
