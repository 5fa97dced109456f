"""Service for resizing an assignment edge and cascading the change along its lane.

A right-edge resize moves every later assignment in the same lane by the same
amount the edge moved, so spacing and durations are kept. Left-edge resizes
only touch the resized assignment. Rejections are returned, never raised, and
the input snapshot is never modified.
"""

from __future__ import annotations

from collections.abc import Sequence

from team_planner.domain.models import (
    Assignment,
    Boundary,
    RejectionReason,
    ResizeApplied,
    ResizeEdge,
    ResizeRejected,
    ResizeResult,
    same_boundary_kind,
)
from team_planner.services.overlap import find_overlapping


def _reject(
    reason: RejectionReason, message: str, assignments: Sequence[Assignment]
) -> ResizeRejected:
    return ResizeRejected(reason=reason, message=message, assignments=list(assignments))


def resize_edge(
    assignment_id: str,
    edge: ResizeEdge | str,
    new_boundary: Boundary,
    assignments: Sequence[Assignment],
    *,
    cascade: bool = True,
) -> ResizeResult:
    """Move one edge of an assignment to ``new_boundary``.

    Returns :class:`ResizeApplied` with the complete updated snapshot, or
    :class:`ResizeRejected` carrying the reason and the untouched snapshot.

    Timestamp intervals must keep a positive length (``end > start``). Calendar
    intervals are whole days, so ``end == start`` is a valid one-day assignment
    and only ``end < start`` is refused.
    """
    edge = ResizeEdge(edge)
    original = next((a for a in assignments if a.id == assignment_id), None)
    if original is None:
        return _reject(
            RejectionReason.NOT_FOUND,
            f"Assignment {assignment_id} not found",
            assignments,
        )

    if not same_boundary_kind(new_boundary, original.start):
        return _reject(
            RejectionReason.INVALID_RANGE,
            f"Boundary {new_boundary!r} does not match the assignment's time unit",
            assignments,
        )

    new_start = new_boundary if edge is ResizeEdge.START else original.start
    new_end = new_boundary if edge is ResizeEdge.END else original.end

    if original.is_timestamp:
        if new_end <= new_start:
            return _reject(
                RejectionReason.INVALID_RANGE,
                "End time cannot be before or equal to start time",
                assignments,
            )
    elif new_end < new_start:
        moved = "end before start" if edge is ResizeEdge.END else "start after end"
        return _reject(
            RejectionReason.BOUNDARY_ORDER_VIOLATION,
            f"Cannot move {moved} ({new_start} - {new_end})",
            assignments,
        )

    resized = original.model_copy(update={"start": new_start, "end": new_end})

    time_shift = None
    shifted_ids: list[str] = []
    if edge is ResizeEdge.END and cascade:
        time_shift = new_end - original.end
        shifted_ids = [
            a.id
            for a in assignments
            if a.team_member_id == original.team_member_id
            and a.id != original.id
            and a.start >= original.end
        ]

    shift_targets = set(shifted_ids)
    updated: list[Assignment] = []
    try:
        for a in assignments:
            if a.id == original.id:
                updated.append(resized)
            elif a.id in shift_targets:
                updated.append(a.shifted(time_shift))
            else:
                updated.append(a)
    except OverflowError:
        return _reject(
            RejectionReason.INVALID_RANGE,
            "Shifting later assignments moves them out of the supported date range",
            assignments,
        )

    conflicts = find_overlapping(
        new_start, new_end, updated, original.team_member_id, original.id
    )
    if conflicts:
        return _reject(
            RejectionReason.OVERLAP_CONFLICT,
            f"New range {new_start} - {new_end} overlaps with "
            + ", ".join(c.id for c in conflicts),
            assignments,
        )

    return ResizeApplied(
        assignments=updated,
        resized_id=original.id,
        shifted_ids=shifted_ids,
        time_shift=time_shift,
    )
