"""In-memory repositories for team members, projects, assignments and history."""

from __future__ import annotations

from collections.abc import Iterable

from team_planner.domain.models import Assignment, HistoryEntry, Project, TeamMember


class TeamMemberRepository:
    """Dict-backed store for TeamMember instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, TeamMember] = {}

    def add(self, member: TeamMember) -> None:
        self._store[member.id] = member

    def get(self, member_id: str) -> TeamMember | None:
        return self._store.get(member_id)

    def list_all(self) -> list[TeamMember]:
        return list(self._store.values())

    def delete(self, member_id: str) -> None:
        self._store.pop(member_id, None)

    def clear(self) -> None:
        self._store.clear()


class ProjectRepository:
    """Dict-backed store for Project instances, keyed by id.

    Insertion order is kept; the first project is the default for calendar clicks.
    """

    def __init__(self) -> None:
        self._store: dict[str, Project] = {}

    def add(self, project: Project) -> None:
        self._store[project.id] = project

    def get(self, project_id: str) -> Project | None:
        return self._store.get(project_id)

    def first(self) -> Project | None:
        return next(iter(self._store.values()), None)

    def list_all(self) -> list[Project]:
        return list(self._store.values())

    def delete(self, project_id: str) -> None:
        self._store.pop(project_id, None)

    def clear(self) -> None:
        self._store.clear()


class AssignmentRepository:
    """Dict-backed store for Assignment instances, keyed by id.

    Assignments are frozen, so updates replace whole records.
    """

    def __init__(self) -> None:
        self._store: dict[str, Assignment] = {}

    def add(self, assignment: Assignment) -> None:
        self._store[assignment.id] = assignment

    def get(self, assignment_id: str) -> Assignment | None:
        return self._store.get(assignment_id)

    def list_all(self) -> list[Assignment]:
        return list(self._store.values())

    def list_lane(self, team_member_id: str) -> list[Assignment]:
        """Return a team member's assignments ordered by start, then id."""
        return sorted(
            (a for a in self._store.values() if a.team_member_id == team_member_id),
            key=lambda a: a.lane_order_key,
        )

    def replace_all(self, assignments: Iterable[Assignment]) -> None:
        """Swap in a whole snapshot at once."""
        self._store = {a.id: a for a in assignments}

    def delete(self, assignment_id: str) -> None:
        self._store.pop(assignment_id, None)

    def delete_for_team_member(self, team_member_id: str) -> list[Assignment]:
        """Delete every assignment in a lane (cascade). Returns the removed records."""
        return self._delete_where(lambda a: a.team_member_id == team_member_id)

    def delete_for_project(self, project_id: str) -> list[Assignment]:
        return self._delete_where(lambda a: a.project_id == project_id)

    def _delete_where(self, predicate) -> list[Assignment]:
        to_remove = [a for a in self._store.values() if predicate(a)]
        for a in to_remove:
            del self._store[a.id]
        return to_remove


class HistoryRepository:
    """List-backed store for HistoryEntry instances."""

    def __init__(self) -> None:
        self._entries: list[HistoryEntry] = []

    def add(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def list_for_assignment(self, assignment_id: str) -> list[HistoryEntry]:
        return sorted(
            [e for e in self._entries if e.assignment_id == assignment_id],
            key=lambda e: e.timestamp,
        )

    def clear(self) -> None:
        self._entries.clear()


# ---------------------------------------------------------------------------
# Seed data – the sample team and projects of the planning board
# ---------------------------------------------------------------------------


def _seed_team(repo: TeamMemberRepository) -> None:
    for member_id, name in (("1", "Alice"), ("2", "Bob"), ("3", "Charlie")):
        repo.add(TeamMember(id=member_id, name=name))


def _seed_projects(repo: ProjectRepository) -> None:
    repo.add(Project(id="proj1", name="Project Alpha", color="#FFD700"))
    repo.add(Project(id="proj2", name="Project Beta", color="#ADFF2F"))
    repo.add(Project(id="proj3", name="Project Gamma", color="#87CEFA"))


def create_team_member_repository(seed: bool = False) -> TeamMemberRepository:
    """Return a TeamMemberRepository, optionally pre-loaded with sample data."""
    repo = TeamMemberRepository()
    if seed:
        _seed_team(repo)
    return repo


def create_project_repository(seed: bool = False) -> ProjectRepository:
    """Return a ProjectRepository, optionally pre-loaded with sample data."""
    repo = ProjectRepository()
    if seed:
        _seed_projects(repo)
    return repo
