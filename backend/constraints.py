"""
Placement constraints.

Every constraint answers one question for a candidate (slot, requirement)
pair: None when the placement is fine, otherwise a reason string. Hard
constraints block Phase1 placement; soft ones only steer it.
"""

from collections import Counter
from typing import Optional

from grid import ScheduleGrid
from models import Requirement, Slot


class Constraint:
    tag = 'constraint'
    hard = True

    def check(self, slot: Slot, req: Requirement, grid: ScheduleGrid,
              day_usage: Optional[dict] = None) -> Optional[str]:
        raise NotImplementedError


class TeacherConflict(Constraint):
    """Teacher already teaches another class at the same day and period."""
    tag = 'teacher-conflict'

    def check(self, slot, req, grid, day_usage=None):
        count = grid.teacher_count(req.teacher.id, slot.day, slot.period)
        if slot.teacher is not None and slot.teacher.id == req.teacher.id:
            count -= 1
        if count > 0:
            return f"{req.teacher.name} already teaches another class on {slot.day} period {slot.period}"
        return None


class ClassroomConflict(Constraint):
    """Subject needs a special room and none of that type is free."""
    tag = 'classroom-conflict'

    def check(self, slot, req, grid, day_usage=None):
        subject = req.subject
        if not subject.requires_special_room:
            return None
        # a room held by the slot itself becomes free when the slot is overwritten
        if slot.classroom is not None and slot.classroom.type == subject.room_type:
            return None
        if grid.free_classroom(subject.room_type, slot.day, slot.period) is None:
            return f"No free '{subject.room_type}' room on {slot.day} period {slot.period}"
        return None


class AssignmentRestriction(Constraint):
    """Required-level restrictions: the teacher may only teach inside those windows.

    Recommended-level restrictions are informational and never block.
    """
    tag = 'assignment-restriction'

    def check(self, slot, req, grid, day_usage=None):
        windows = req.teacher.required_restrictions
        if not windows:
            return None
        if any(w.covers(slot.day, slot.period) for w in windows):
            return None
        allowed = '; '.join(f"{w.day} {','.join(str(p) for p in w.periods)}" for w in windows)
        return f"{req.teacher.name} may only be assigned in: {allowed}"


class ConsecutivePeriod(Constraint):
    """Same subject in the adjacent period of the same class."""
    tag = 'consecutive-period'
    hard = False

    def check(self, slot, req, grid, day_usage=None):
        for neighbour in grid.adjacent_slots(slot):
            if neighbour.subject is not None and neighbour.subject.id == req.subject.id:
                return f"{req.subject.name} already in period {neighbour.period} on {slot.day}"
        return None


class DaySpread(Constraint):
    """Same subject already placed that day for the class (only for 2+ weekly hours)."""
    tag = 'day-spread'
    hard = False

    def check(self, slot, req, grid, day_usage=None):
        if req.required_hours < 2:
            return None
        if day_usage is not None:
            days = day_usage.get((req.grade, req.section, req.subject.id), ())
            placed = slot.day in days
        else:
            placed = any(
                s.day == slot.day and s is not slot
                and s.subject is not None and s.subject.id == req.subject.id
                for s in grid.slots_for_class(req.grade, req.section)
            )
        if placed:
            return f"{req.subject.name} already scheduled on {slot.day} for {req.grade}-{req.section}"
        return None


def default_constraints() -> list[Constraint]:
    return [
        TeacherConflict(),
        ClassroomConflict(),
        AssignmentRestriction(),
        ConsecutivePeriod(),
        DaySpread(),
    ]


class ConstraintSet:
    def __init__(self, constraints: Optional[list] = None):
        self.constraints: list[Constraint] = (
            list(constraints) if constraints is not None else default_constraints()
        )
        # failures per constraint tag, plus total number of checks
        self.stats: Counter = Counter()

    @property
    def hard(self) -> list[Constraint]:
        return [c for c in self.constraints if c.hard]

    @property
    def soft(self) -> list[Constraint]:
        return [c for c in self.constraints if not c.hard]

    def _failures(self, constraints, slot, req, grid, day_usage) -> list[tuple]:
        failures = []
        for constraint in constraints:
            self.stats['totalChecks'] += 1
            reason = constraint.check(slot, req, grid, day_usage)
            if reason is not None:
                self.stats[constraint.tag] += 1
                failures.append((constraint, reason))
        return failures

    def hard_failures(self, slot, req, grid, day_usage=None) -> list[tuple]:
        return self._failures(self.hard, slot, req, grid, day_usage)

    def soft_failures(self, slot, req, grid, day_usage=None) -> list[tuple]:
        return self._failures(self.soft, slot, req, grid, day_usage)

    def check(self, slot, req, grid, day_usage=None, include_soft: bool = True) -> list[tuple]:
        """All failing (constraint, reason) pairs for the placement."""
        constraints = self.constraints if include_soft else self.hard
        return self._failures(constraints, slot, req, grid, day_usage)

    def is_allowed(self, slot, req, grid, day_usage=None, include_soft: bool = True) -> bool:
        constraints = self.constraints if include_soft else self.hard
        for constraint in constraints:
            self.stats['totalChecks'] += 1
            if constraint.check(slot, req, grid, day_usage) is not None:
                self.stats[constraint.tag] += 1
                return False
        return True

    def violation_tags(self, slot, req, grid) -> list[str]:
        """Tags of hard constraints a forced placement breaks."""
        return [c.tag for c, _ in self._failures(self.hard, slot, req, grid, None)]
