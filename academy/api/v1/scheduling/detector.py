"""
Weekly conflict detection.

Works on day-of-week + time-of-day only. Concrete sessions must be normalized with
DatedCommitment.to_weekly() (or a schedule expanded to dates) before they are
compared; the detector never reasons about calendar dates.
"""

from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from pydantic import BaseModel, computed_field

from academy.core.enums import CommitmentSource, ConflictKind, DayOfWeek
from academy.core.intervals import (
    TimeSlot,
    WeeklySchedule,
    contains,
    overlaps,
    validate_schedule,
    validate_slot,
    weekly_from_dated,
)


class WeeklyCommitment(BaseModel):
    """An existing obligation of one person on a day of the week."""

    owner_id: UUID
    day: DayOfWeek
    slot: TimeSlot
    source: CommitmentSource = CommitmentSource.WEEKLY
    reference_id: Optional[UUID] = None  # commitment row or session id
    label: Optional[str] = None


class DatedCommitment(BaseModel):
    """An obligation on a concrete date, e.g. a materialized session."""

    owner_id: UUID
    starts_at: datetime
    ends_at: datetime
    reference_id: Optional[UUID] = None
    label: Optional[str] = None

    def to_weekly(self) -> WeeklyCommitment:
        day, slot = weekly_from_dated(self.starts_at, self.ends_at)
        return WeeklyCommitment(
            owner_id=self.owner_id,
            day=day,
            slot=slot,
            source=CommitmentSource.SESSION,
            reference_id=self.reference_id,
            label=self.label,
        )


class Conflict(BaseModel):
    kind: ConflictKind = ConflictKind.OVERLAP
    day: DayOfWeek
    candidate_slot: TimeSlot
    # None for an availability gap on a day with no availability at all
    existing_slot: Optional[TimeSlot] = None
    owner_id: UUID
    source: Optional[CommitmentSource] = None
    reference_id: Optional[UUID] = None
    label: Optional[str] = None

    @computed_field
    @property
    def message(self) -> str:
        if self.kind == ConflictKind.OUTSIDE_AVAILABILITY:
            if self.existing_slot is None:
                return "No availability set for this day"
            return "Class time is outside of teacher availability"
        if self.label:
            return f'Conflicts with existing class "{self.label}"'
        return "Conflicts with an existing commitment"


def _sort_key(conflict: Conflict):
    existing = conflict.existing_slot.sort_key if conflict.existing_slot else (-1, -1)
    return (
        int(conflict.day),
        conflict.candidate_slot.sort_key,
        existing,
        str(conflict.owner_id),
        conflict.kind.value,
        conflict.source.value if conflict.source else "",
        str(conflict.reference_id or ""),
        conflict.label or "",
    )


def find_conflicts(candidate: WeeklySchedule, existing: Iterable[WeeklyCommitment]) -> List[Conflict]:
    """
    Report every (candidate slot, existing commitment) pair that overlaps on the same day.

    A candidate slot overlapping two commitments yields two conflicts, and a slot identical
    to an existing one is a duplicate booking, so it conflicts too. The result is sorted,
    so the order of `existing` does not matter.

    Raises:
        InvalidInterval: the candidate schedule or an existing slot is malformed.
    """
    validate_schedule(candidate)

    by_day: Dict[DayOfWeek, List[WeeklyCommitment]] = defaultdict(list)
    for commitment in existing:
        validate_slot(commitment.slot)
        by_day[commitment.day].append(commitment)

    conflicts: List[Conflict] = []
    for day, slots in candidate.days():
        for commitment in by_day.get(day, ()):
            for slot in slots:
                if overlaps(slot, commitment.slot):
                    conflicts.append(
                        Conflict(
                            day=day,
                            candidate_slot=slot,
                            existing_slot=commitment.slot,
                            owner_id=commitment.owner_id,
                            source=commitment.source,
                            reference_id=commitment.reference_id,
                            label=commitment.label,
                        )
                    )
    conflicts.sort(key=_sort_key)
    return conflicts


def find_availability_gaps(
    candidate: WeeklySchedule,
    availability: WeeklySchedule,
    owner_id: UUID,
) -> List[Conflict]:
    """Candidate slots not fully inside one of the owner's availability slots for that day."""
    validate_schedule(candidate)
    validate_schedule(availability)

    gaps: List[Conflict] = []
    for day, slots in candidate.days():
        windows = availability.slots(day)
        for slot in slots:
            if not windows:
                gaps.append(
                    Conflict(kind=ConflictKind.OUTSIDE_AVAILABILITY, day=day, candidate_slot=slot, owner_id=owner_id)
                )
                continue
            if any(contains(window, slot) for window in windows):
                continue
            # Report against the nearest window so the UI can show what is available
            nearest = min(windows, key=lambda w: abs(w.sort_key[0] - slot.sort_key[0]))
            gaps.append(
                Conflict(
                    kind=ConflictKind.OUTSIDE_AVAILABILITY,
                    day=day,
                    candidate_slot=slot,
                    existing_slot=nearest,
                    owner_id=owner_id,
                )
            )
    gaps.sort(key=_sort_key)
    return gaps
