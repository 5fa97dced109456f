"""Service for detecting overlapping assignments within a team member's lane."""

from __future__ import annotations

from collections.abc import Iterable

from team_planner.domain.models import Assignment, Boundary


def lane(assignments: Iterable[Assignment], team_member_id: str) -> list[Assignment]:
    """Return the team member's assignments ordered by start, ties broken by id."""
    return sorted(
        (a for a in assignments if a.team_member_id == team_member_id),
        key=lambda a: a.lane_order_key,
    )


def find_overlapping(
    start: Boundary | None,
    end: Boundary | None,
    assignments: Iterable[Assignment] | None,
    team_member_id: str | None,
    exclude_assignment_id: str | None = None,
) -> list[Assignment]:
    """Return the lane's assignments that intersect ``[start, end]``.

    Overlap rule: conflict if start <= existing.end AND end >= existing.start.
    Exact boundary touches ARE conflicts. A missing (``None``) input means
    nothing can be compared, so the result is empty.
    """
    if start is None or end is None or assignments is None or team_member_id is None:
        return []
    return [
        a
        for a in assignments
        if a.id != exclude_assignment_id
        and a.team_member_id == team_member_id
        and a.overlaps(start, end)
    ]


def is_range_overlapping(
    start: Boundary | None,
    end: Boundary | None,
    assignments: Iterable[Assignment] | None,
    team_member_id: str | None,
    exclude_assignment_id: str | None = None,
) -> bool:
    return bool(
        find_overlapping(start, end, assignments, team_member_id, exclude_assignment_id)
    )


def is_date_overlapping(
    day: Boundary | None,
    assignments: Iterable[Assignment] | None,
    team_member_id: str | None,
) -> bool:
    """True if ``day`` falls inside any of the team member's assignments."""
    return is_range_overlapping(day, day, assignments, team_member_id)
