"""
Two-phase slot assignment.

Phase1 places requirements under the constraint set, choosing uniformly at
random among the slots that pass. Whatever cannot be placed goes on a
backlog. Phase2 then fills the grid regardless of constraints: first the
backlog, then every slot still empty. Forced placements carry violation tags
so the trade-offs stay visible.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional

from catalog import requirements_by_class, requirements_by_teacher
from constraints import ConstraintSet
from grid import ScheduleGrid
from models import FORCED, FORCED_OVERWRITE, Requirement, Slot, Teacher

logger = logging.getLogger(__name__)

NO_EMPTY_SLOT = 'no-empty-slot'


@dataclass
class BacklogEntry:
    requirement: Requirement
    missing_hours: int
    reasons: list = field(default_factory=list)  # constraint tags that blocked placement


def _classroom_for(req: Requirement, slot: Slot, grid: ScheduleGrid):
    if not req.subject.requires_special_room:
        return None
    return grid.free_classroom(req.subject.room_type, slot.day, slot.period)


def _phase1_candidates(req: Requirement, grid: ScheduleGrid, constraints: ConstraintSet,
                       day_usage: dict, tolerant_mode: bool) -> list[Slot]:
    empty = grid.empty_slots(req.grade, req.section)
    hard_ok = [s for s in empty if constraints.is_allowed(s, req, grid, day_usage, include_soft=False)]
    preferred = [s for s in hard_ok if not constraints.soft_failures(s, req, grid, day_usage)]
    if preferred:
        return preferred
    # soft constraints are preferences: relax them before giving up on the slot search
    if tolerant_mode:
        return hard_ok
    return []


def _blocking_reasons(req: Requirement, grid: ScheduleGrid, constraints: ConstraintSet,
                      day_usage: dict) -> list[str]:
    empty = grid.empty_slots(req.grade, req.section)
    if not empty:
        return [NO_EMPTY_SLOT]
    tags = set()
    for slot in empty:
        for constraint, _ in constraints.check(slot, req, grid, day_usage):
            tags.add(constraint.tag)
    return sorted(tags)


def assign_phase1(requirements: list[Requirement], grid: ScheduleGrid, constraints: ConstraintSet,
                  teacher_order: list[Teacher], rng: random.Random, tolerant_mode: bool = True,
                  day_usage: Optional[dict] = None, log: Optional[logging.Logger] = None) -> list[BacklogEntry]:
    """Constraint-respecting randomized placement.

    Args:
        requirements: Requirements for this attempt (assigned_hours is updated in place)
        grid: Fresh grid for this attempt
        constraints: Hard and soft checks
        teacher_order: Teachers in processing order (difficulty-ranked or shuffled)
        rng: Injected random source
        tolerant_mode: Fall back to hard-only filtering when soft checks rule out every slot
        day_usage: (grade, section, subject_id) -> set of days already used

    Returns the backlog of requirements that could not be fully placed.
    Exhaustion is an expected outcome, never an exception.
    """
    log = log or logger
    day_usage = day_usage if day_usage is not None else {}
    by_teacher = requirements_by_teacher(requirements)
    backlog: list[BacklogEntry] = []

    for teacher in teacher_order:
        for req in by_teacher.get(teacher.id, []):
            while req.assigned_hours < req.required_hours:
                candidates = _phase1_candidates(req, grid, constraints, day_usage, tolerant_mode)
                if not candidates:
                    reasons = _blocking_reasons(req, grid, constraints, day_usage)
                    backlog.append(BacklogEntry(requirement=req, missing_hours=req.remaining, reasons=reasons))
                    log.debug(f"Phase1 backlog: {req.label()} missing {req.remaining}h ({', '.join(reasons)})")
                    break

                slot = rng.choice(candidates)
                grid.occupy(slot, req.teacher, req.subject, _classroom_for(req, slot, grid))
                req.assigned_hours += 1
                day_usage.setdefault((req.grade, req.section, req.subject.id), set()).add(slot.day)
                log.debug(f"Phase1 placed {req.label()} on {slot.day} period {slot.period}")

    return backlog


def _force(grid: ScheduleGrid, constraints: ConstraintSet, slot: Slot, req: Requirement, marker: str) -> None:
    tags = [marker] + constraints.violation_tags(slot, req, grid)
    grid.occupy(slot, req.teacher, req.subject, _classroom_for(req, slot, grid), tags)
    if req.assigned_hours < req.required_hours:
        req.assigned_hours += 1


def _sweep_requirement(candidates: list[Requirement], slot: Slot, grid: ScheduleGrid,
                       rng: random.Random) -> Requirement:
    """Largest deficit first; among equals prefer a teacher free at that time."""
    largest = max(r.remaining for r in candidates)
    if largest > 0:
        pool = [r for r in candidates if r.remaining == largest]
        free = [r for r in pool if not grid.teacher_busy(r.teacher.id, slot.day, slot.period)]
        return (free or pool)[0]
    free = [r for r in candidates if not grid.teacher_busy(r.teacher.id, slot.day, slot.period)]
    return rng.choice(free or candidates)


def force_assign_phase2(requirements: list[Requirement], backlog: list[BacklogEntry], grid: ScheduleGrid,
                        constraints: ConstraintSet, rng: random.Random,
                        log: Optional[logging.Logger] = None) -> list[Slot]:
    """Fill every slot, ignoring constraints.

    Returns the slots that could not be filled because no requirement exists
    for their grade/section at all.
    """
    log = log or logger

    # Backlog pass
    for entry in backlog:
        req = entry.requirement
        for _ in range(entry.missing_hours):
            empty = grid.empty_slots(req.grade, req.section)
            if empty:
                slot = rng.choice(empty)
                _force(grid, constraints, slot, req, FORCED)
                log.debug(f"Phase2 forced {req.label()} on {slot.day} period {slot.period}")
                continue

            occupied = grid.occupied_slots(req.grade, req.section)
            if not occupied:
                break
            slot = rng.choice(occupied)
            previous = f"{slot.teacher.name}/{slot.subject.name}"
            # the previous occupant's requirement keeps its count
            grid.clear(slot)
            _force(grid, constraints, slot, req, FORCED_OVERWRITE)
            log.debug(f"Phase2 overwrote {previous} with {req.label()} on {slot.day} period {slot.period}")

    # Final sweep
    by_class = requirements_by_class(requirements)
    unfillable: list[Slot] = []
    for slot in grid:
        if grid.is_occupied(slot):
            continue
        candidates = by_class.get(slot.class_key)
        if not candidates:
            unfillable.append(slot)
            continue
        req = _sweep_requirement(candidates, slot, grid, rng)
        _force(grid, constraints, slot, req, FORCED)

    if unfillable:
        classes = sorted({f"{s.grade}-{s.section}" for s in unfillable})
        log.debug(f"{len(unfillable)} slot(s) unfillable: no teacher covers {', '.join(classes)}")

    return unfillable
