"""Tests for the planning service, the event bus and the change history."""

from __future__ import annotations

from datetime import date

import pytest

from team_planner.domain.bus import EventBus
from team_planner.domain.events import AssignmentCreated
from team_planner.domain.handlers import HandlerRegistry
from team_planner.domain.models import (
    Assignment,
    HistoryEntryType,
    PlanDocument,
    Project,
    RejectionReason,
    TeamMember,
)
from team_planner.repos.memory import (
    AssignmentRepository,
    HistoryRepository,
    ProjectRepository,
    TeamMemberRepository,
    create_project_repository,
    create_team_member_repository,
)
from team_planner.services.planning import (
    AssignmentConflictError,
    NotFoundError,
    PlanningService,
    PlanValidationError,
    ResizeRejectedError,
)


@pytest.fixture()
def env():
    """Fresh bus + repos + registry + service for each test."""
    bus = EventBus()
    assignment_repo = AssignmentRepository()
    team_member_repo = TeamMemberRepository()
    project_repo = ProjectRepository()
    history_repo = HistoryRepository()

    registry = HandlerRegistry(
        bus=bus, assignment_repo=assignment_repo, history_repo=history_repo
    )
    service = PlanningService(
        bus=bus,
        assignment_repo=assignment_repo,
        team_member_repo=team_member_repo,
        project_repo=project_repo,
    )
    team_member_repo.add(TeamMember(id="tm1", name="Alice"))
    team_member_repo.add(TeamMember(id="tm2", name="Bob"))
    project_repo.add(Project(id="proj1", name="Project Alpha"))
    project_repo.add(Project(id="proj2", name="Project Beta"))

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.assignment_repo = assignment_repo
    e.team_member_repo = team_member_repo
    e.project_repo = project_repo
    e.history_repo = history_repo
    e.registry = registry
    e.service = service
    return e


def _history_types(env, assignment_id: str) -> list[HistoryEntryType]:
    return [e.type for e in env.history_repo.list_for_assignment(assignment_id)]


# ---------------------------------------------------------------------------
# Creating and deleting
# ---------------------------------------------------------------------------


def test_create_single_day_assignment(env):
    assignment = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))

    assert assignment.start == assignment.end == date(2024, 8, 5)
    assert env.assignment_repo.get(assignment.id) == assignment
    assert _history_types(env, assignment.id) == [HistoryEntryType.CREATED]


def test_create_overlapping_assignment_is_refused(env):
    existing = env.service.create_assignment(
        "tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7)
    )

    with pytest.raises(AssignmentConflictError) as exc_info:
        env.service.create_assignment("tm1", "proj2", date(2024, 8, 7), date(2024, 8, 9))

    assert exc_info.value.conflicting_ids == [existing.id]
    assert len(env.assignment_repo.list_all()) == 1


def test_same_days_for_another_team_member_are_allowed(env):
    env.service.create_assignment("tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7))
    env.service.create_assignment("tm2", "proj1", date(2024, 8, 5), date(2024, 8, 7))
    assert len(env.assignment_repo.list_all()) == 2


def test_create_requires_known_member_and_project(env):
    with pytest.raises(NotFoundError):
        env.service.create_assignment("nobody", "proj1", date(2024, 8, 5))
    with pytest.raises(NotFoundError):
        env.service.create_assignment("tm1", "nothing", date(2024, 8, 5))


def test_create_rejects_inverted_range(env):
    with pytest.raises(PlanValidationError):
        env.service.create_assignment("tm1", "proj1", date(2024, 8, 7), date(2024, 8, 5))


def test_lane_cannot_mix_time_units(env):
    env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    with pytest.raises(PlanValidationError):
        env.service.create_assignment("tm1", "proj1", 1_000, 2_000)


def test_delete_assignment_keeps_history(env):
    assignment = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))

    env.service.delete_assignment(assignment.id)

    assert env.assignment_repo.get(assignment.id) is None
    assert _history_types(env, assignment.id) == [
        HistoryEntryType.CREATED,
        HistoryEntryType.DELETED,
    ]


def test_delete_team_member_cascades_to_lane(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    b = env.service.create_assignment("tm2", "proj1", date(2024, 8, 5))

    removed = env.service.delete_team_member("tm1")

    assert removed == [a.id]
    assert env.team_member_repo.get("tm1") is None
    assert [x.id for x in env.assignment_repo.list_all()] == [b.id]


def test_delete_project_cascades_to_assignments(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    b = env.service.create_assignment("tm1", "proj2", date(2024, 8, 8))

    removed = env.service.delete_project("proj1")

    assert removed == [a.id]
    assert [x.id for x in env.assignment_repo.list_all()] == [b.id]
    assert _history_types(env, a.id) == [HistoryEntryType.CREATED, HistoryEntryType.DELETED]


# ---------------------------------------------------------------------------
# Resizing
# ---------------------------------------------------------------------------


def test_resize_commits_cascade_and_records_shift_history(env):
    a = env.service.create_assignment("tm1", "proj1", 10, 20)
    b = env.service.create_assignment("tm1", "proj2", 25, 30)

    result = env.service.resize(a.id, "end", 23)

    assert result.shifted_ids == [b.id]
    stored_b = env.assignment_repo.get(b.id)
    assert (stored_b.start, stored_b.end) == (28, 33)
    assert HistoryEntryType.RESIZED in _history_types(env, a.id)
    shifted = [
        e
        for e in env.history_repo.list_for_assignment(b.id)
        if e.type == HistoryEntryType.SHIFTED
    ]
    assert len(shifted) == 1
    assert shifted[0].payload["caused_by"] == a.id


def test_resize_cascade_can_be_disabled(env):
    env.service.cascade_on_resize = False
    a = env.service.create_assignment("tm1", "proj1", 10, 20)
    b = env.service.create_assignment("tm1", "proj2", 25, 30)

    env.service.resize(a.id, "end", 23)

    assert env.assignment_repo.get(b.id) == b


def test_rejected_resize_is_raised_and_recorded(env):
    a = env.service.create_assignment("tm1", "proj1", 10, 20)
    before = env.assignment_repo.list_all()

    with pytest.raises(ResizeRejectedError) as exc_info:
        env.service.resize(a.id, "end", 5)

    assert exc_info.value.reason == RejectionReason.INVALID_RANGE
    assert env.assignment_repo.list_all() == before
    assert _history_types(env, a.id)[-1] == HistoryEntryType.REJECTED


def test_resize_unknown_assignment(env):
    with pytest.raises(ResizeRejectedError) as exc_info:
        env.service.resize("missing", "end", 5)
    assert exc_info.value.reason == RejectionReason.NOT_FOUND
    assert env.history_repo.list_for_assignment("missing") == []


# ---------------------------------------------------------------------------
# Moving
# ---------------------------------------------------------------------------


def test_move_to_other_lane_keeps_duration_and_id(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7))

    moved = env.service.move(a.id, "tm2", date(2024, 8, 12))

    assert moved.id == a.id
    assert moved.team_member_id == "tm2"
    assert (moved.start, moved.end) == (date(2024, 8, 12), date(2024, 8, 14))
    assert HistoryEntryType.MOVED in _history_types(env, a.id)


def test_move_onto_existing_work_is_refused(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7))
    env.service.create_assignment("tm2", "proj1", date(2024, 8, 12), date(2024, 8, 12))

    with pytest.raises(AssignmentConflictError):
        env.service.move(a.id, "tm2", date(2024, 8, 10))

    assert env.assignment_repo.get(a.id) == a


def test_move_within_own_lane_ignores_itself(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7))
    moved = env.service.move(a.id, "tm1", date(2024, 8, 6))
    assert (moved.start, moved.end) == (date(2024, 8, 6), date(2024, 8, 8))


# ---------------------------------------------------------------------------
# Calendar operations
# ---------------------------------------------------------------------------


def test_toggle_creates_then_removes(env):
    action, created = env.service.toggle_day("tm1", date(2024, 8, 5))
    assert action == "created"
    assert created.project_id == "proj1"

    action, removed = env.service.toggle_day("tm1", date(2024, 8, 5))
    assert action == "removed"
    assert removed.id == created.id
    assert env.assignment_repo.list_all() == []


def test_toggle_inside_multi_day_assignment_removes_whole_block(env):
    block = env.service.create_assignment(
        "tm1", "proj2", date(2024, 8, 5), date(2024, 8, 9)
    )
    action, removed = env.service.toggle_day("tm1", date(2024, 8, 7))
    assert action == "removed"
    assert removed.id == block.id


def test_toggle_without_projects(env):
    env.project_repo.clear()
    with pytest.raises(NotFoundError):
        env.service.toggle_day("tm1", date(2024, 8, 5))


def test_toggle_day_on_timestamp_lane_is_refused(env):
    env.service.create_assignment("tm1", "proj1", 10, 20)
    with pytest.raises(PlanValidationError):
        env.service.toggle_day("tm1", date(2024, 8, 5))
    assert len(env.assignment_repo.list_all()) == 1


def test_drag_end_extends_without_cascade(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    b = env.service.create_assignment("tm1", "proj1", date(2024, 8, 9))

    env.service.drag_end(a.id, date(2024, 8, 7))

    assert env.assignment_repo.get(a.id).end == date(2024, 8, 7)
    assert env.assignment_repo.get(b.id) == b


def test_drag_end_onto_next_assignment_is_refused(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    env.service.create_assignment("tm1", "proj1", date(2024, 8, 9))

    with pytest.raises(ResizeRejectedError) as exc_info:
        env.service.drag_end(a.id, date(2024, 8, 9))

    assert exc_info.value.reason == RejectionReason.OVERLAP_CONFLICT
    assert env.assignment_repo.get(a.id).end == date(2024, 8, 5)


def test_drag_end_before_start_snaps_to_start(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5), date(2024, 8, 7))
    env.service.drag_end(a.id, date(2024, 8, 1))
    stored = env.assignment_repo.get(a.id)
    assert stored.start == stored.end == date(2024, 8, 5)


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


def test_import_timeline_document(env):
    document = PlanDocument.model_validate(
        {
            "groups": [{"id": 1, "title": "Alice"}, {"id": 2, "title": "Bob"}],
            "projects": [{"id": "p1", "name": "Alpha"}],
            "items": [
                {"id": 1, "group": 1, "project": "p1", "start_time": 0, "end_time": 10},
                {"id": 2, "group": 1, "project": "p1", "start_time": 20, "end_time": 30},
            ],
        }
    )

    exported = env.service.import_plan(document)

    assert [m.name for m in exported.groups] == ["Alice", "Bob"]
    assert [a.id for a in env.assignment_repo.list_lane("1")] == ["1", "2"]
    assert _history_types(env, "1") == [HistoryEntryType.CREATED]


def test_import_rejects_overlapping_lane(env):
    document = PlanDocument(
        groups=[TeamMember(id="g", name="G")],
        projects=[Project(id="p", name="P")],
        items=[
            Assignment(id="x", team_member_id="g", project_id="p", start=0, end=10),
            Assignment(id="y", team_member_id="g", project_id="p", start=10, end=20),
        ],
    )
    with pytest.raises(PlanValidationError):
        env.service.import_plan(document)
    assert env.team_member_repo.get("tm1") is not None


def test_import_rejects_unknown_references(env):
    document = PlanDocument(
        groups=[TeamMember(id="g", name="G")],
        projects=[],
        items=[Assignment(id="x", team_member_id="g", project_id="p", start=0, end=10)],
    )
    with pytest.raises(PlanValidationError):
        env.service.import_plan(document)


def test_export_round_trips_store(env):
    a = env.service.create_assignment("tm1", "proj1", date(2024, 8, 5))
    exported = env.service.export_plan()
    assert exported.items == [a]
    assert {m.id for m in exported.groups} == {"tm1", "tm2"}


# ---------------------------------------------------------------------------
# Bus and seed data
# ---------------------------------------------------------------------------


def test_created_event_for_missing_assignment_is_ignored(env):
    env.bus.publish(AssignmentCreated(assignment_id="ghost", team_member_id="tm1"))
    assert env.history_repo.list_for_assignment("ghost") == []


def test_seeded_repositories():
    members = create_team_member_repository(seed=True)
    projects = create_project_repository(seed=True)
    assert [m.name for m in members.list_all()] == ["Alice", "Bob", "Charlie"]
    assert projects.first().id == "proj1"
    assert create_team_member_repository().list_all() == []
