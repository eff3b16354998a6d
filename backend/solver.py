"""
School Timetable Solver - two-phase randomized placement with restarts.

Each attempt builds a fresh grid and requirement catalog, places requirements
under hard and soft constraints (Phase1), force-fills whatever is left
(Phase2) and scores the result. The best attempt is kept, ranked by
(violation count ascending, quality score descending).
"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Optional
from dataclasses import dataclass, field

from assigner import assign_phase1, force_assign_phase2
from catalog import build_requirements
from constraints import ConstraintSet
from difficulty import difficulty_report, rank_teachers
from grid import ScheduleGrid
from models import Teacher, parse_classrooms, parse_subjects, parse_teachers
from school_config import Configuration, normalize_config
from validator import ValidationResult, validate_timetable

logger = logging.getLogger(__name__)

# Constants
DEFAULT_MAX_ATTEMPTS = 5
MAX_ATTEMPTS_LIMIT = 50
ORDERINGS = ('difficulty', 'random')


class AttemptState(str, Enum):
    INIT = 'INIT'
    GRID_READY = 'GRID_READY'
    PHASE1 = 'PHASE1'
    PHASE2 = 'PHASE2'
    SCORED = 'SCORED'


@dataclass
class AttemptResult:
    attempt: int
    violation_count: int = 0
    quality_score: float = 0.0
    filled_count: int = 0
    total_slots: int = 0
    grid: Optional[ScheduleGrid] = None
    requirements: list = field(default_factory=list)
    backlog: list = field(default_factory=list)
    unfillable: list = field(default_factory=list)
    validation: Optional[ValidationResult] = None
    constraint_stats: dict = field(default_factory=dict)
    state: AttemptState = AttemptState.INIT


def attempt_sort_key(result: AttemptResult) -> tuple:
    """Lower is better: fewest violations, then highest quality."""
    return (result.violation_count, -result.quality_score)


def run_attempt(attempt: int, config: Configuration, teachers: list[Teacher], subjects: list,
                classrooms: list, teacher_order: list[Teacher], rng: random.Random,
                tolerant_mode: bool = True, log: Optional[logging.Logger] = None) -> AttemptResult:
    """One full INIT -> GRID_READY -> PHASE1 -> PHASE2 -> SCORED run on fresh state."""
    log = log or logger
    result = AttemptResult(attempt=attempt)

    grid = ScheduleGrid(config, classrooms)
    requirements = build_requirements(teachers, subjects, config)
    constraints = ConstraintSet()
    result.state = AttemptState.GRID_READY
    log.debug(f"Attempt {attempt}: {result.state.value} ({grid.total_slots} slots, {len(requirements)} requirements)")

    backlog = assign_phase1(requirements, grid, constraints, teacher_order, rng,
                            tolerant_mode=tolerant_mode, log=log)
    result.state = AttemptState.PHASE1
    log.debug(f"Attempt {attempt}: {result.state.value} done, filled {grid.filled_count}, "
              f"backlog {sum(e.missing_hours for e in backlog)}h")

    unfillable = force_assign_phase2(requirements, backlog, grid, constraints, rng, log=log)
    result.state = AttemptState.PHASE2
    log.debug(f"Attempt {attempt}: {result.state.value} done, filled {grid.filled_count}/{grid.total_slots}")

    validation = validate_timetable(grid, teachers, requirements, backlog)
    result.grid = grid
    result.requirements = requirements
    result.backlog = backlog
    result.unfillable = unfillable
    result.validation = validation
    result.constraint_stats = dict(constraints.stats)
    result.filled_count = grid.filled_count
    result.total_slots = grid.total_slots
    result.violation_count = grid.violation_count
    result.quality_score = validation.overall_score
    result.state = AttemptState.SCORED
    return result


def run_with_retries(run: Callable[[int], AttemptResult], max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                     max_time_seconds: Optional[float] = None, on_progress: Optional[Callable] = None,
                     log: Optional[logging.Logger] = None) -> tuple[Optional[AttemptResult], int]:
    """Run up to max_attempts attempts and keep the best.

    Stops early on a zero-violation attempt. The time budget is only checked
    between attempts, and the first attempt always runs.

    Returns (best_attempt, attempts_used).
    """
    log = log or logger
    start_time = time.time()
    best: Optional[AttemptResult] = None
    attempts_used = 0

    for attempt in range(1, max_attempts + 1):
        elapsed = time.time() - start_time
        if max_time_seconds is not None and attempt > 1 and elapsed >= max_time_seconds:
            log.info(f"Time budget of {max_time_seconds}s spent after {attempts_used} attempt(s)")
            break

        if on_progress:
            on_progress(attempt, max_attempts, f'Running attempt {attempt}/{max_attempts}...')

        result = run(attempt)
        attempts_used = attempt
        log.info(f"Attempt {attempt}/{max_attempts}: {result.violation_count} violations, "
                 f"quality {result.quality_score}")

        if best is None or attempt_sort_key(result) < attempt_sort_key(best):
            best = result

        if result.violation_count == 0:
            log.info(f"Attempt {attempt} has no violations, stopping early")
            break

    return best, attempts_used


def _clamp_attempts(value) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_ATTEMPTS
    return max(1, min(MAX_ATTEMPTS_LIMIT, n))


def _input_error(missing: list[str], elapsed: float) -> dict:
    return {
        'success': False,
        'message': f"Cannot generate a timetable: no {' and no '.join(missing)} provided.",
        'grid': [],
        'classSchedules': {},
        'teacherSchedules': {},
        'statistics': {
            'totalSlots': 0,
            'filledSlots': 0,
            'violationCount': 0,
            'retryAttemptsUsed': 0,
            'qualityScore': 0.0,
            'unfillableSlots': 0,
            'elapsedSeconds': elapsed,
        },
        'diagnostics': {'missingInputs': missing},
    }


def generate_timetable(
    settings,
    teachers: list,
    subjects: list,
    classrooms: Optional[list] = None,
    *,
    max_retry_attempts: int = DEFAULT_MAX_ATTEMPTS,
    tolerant_mode: bool = True,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    ordering: str = 'difficulty',
    max_time_seconds: Optional[float] = None,
    on_progress: Optional[Callable] = None,
    log: Optional[logging.Logger] = None,
) -> dict:
    """Generate a complete weekly timetable.

    Args:
        settings: Raw school settings dict, or a Configuration
        teachers / subjects / classrooms: Dicts (API payload) or model instances
        max_retry_attempts: Number of full attempts (clamped to 1..50)
        tolerant_mode: Let Phase1 relax soft constraints before deferring to Phase2
        seed / rng: Random source; pass the same seed for reproducible grids
        ordering: 'difficulty' (hardest teachers first) or 'random'
        max_time_seconds: Wall-clock budget checked between attempts
        on_progress: Callback (current, total, message)
        log: Logger to trace into instead of this module's logger

    Returns a dict with success, message, grid, classSchedules,
    teacherSchedules, statistics and diagnostics.
    """
    log = log or logger
    start_time = time.time()

    teacher_objs = parse_teachers(teachers)
    subject_objs = parse_subjects(subjects)
    classroom_objs = parse_classrooms(classrooms)

    missing = []
    if not teacher_objs:
        missing.append('teachers')
    if not subject_objs:
        missing.append('subjects')
    if missing:
        log.warning(f"Timetable generation rejected: missing {', '.join(missing)}")
        return _input_error(missing, time.time() - start_time)

    config = normalize_config(settings)
    rng = rng or random.Random(seed)
    max_attempts = _clamp_attempts(max_retry_attempts)
    if ordering not in ORDERINGS:
        log.warning(f"Unknown ordering '{ordering}', using 'difficulty'")
        ordering = 'difficulty'

    log.info(f"=== GENERATE === Teachers: {len(teacher_objs)}, Subjects: {len(subject_objs)}, "
             f"Classrooms: {len(classroom_objs)}, Classes: {len(config.class_keys)}, Attempts: {max_attempts}")

    # Ranking is shared by every attempt; only the random choices differ
    ranked = rank_teachers(teacher_objs, subject_objs, config)

    def run(attempt: int) -> AttemptResult:
        order = ranked if ordering == 'difficulty' else rng.sample(ranked, len(ranked))
        return run_attempt(attempt, config, teacher_objs, subject_objs, classroom_objs, order, rng,
                           tolerant_mode=tolerant_mode, log=log)

    best, attempts_used = run_with_retries(run, max_attempts, max_time_seconds, on_progress, log)

    class_schedules, teacher_schedules = best.grid.build_schedules()
    validation = best.validation
    elapsed = time.time() - start_time

    if best.unfillable:
        log.warning(f"{len(best.unfillable)} slot(s) left empty: no requirement covers their class")

    log.info(f"=== GENERATE RESULT === Attempt {best.attempt} kept: {best.filled_count}/{best.total_slots} filled, "
             f"{best.violation_count} violations, quality {best.quality_score}, {elapsed:.1f}s")

    return {
        'success': True,
        'message': (f"Filled {best.filled_count}/{best.total_slots} slots with {best.violation_count} "
                    f"forced placement(s) (best of {attempts_used} attempt(s), {elapsed:.1f}s)"),
        'grid': best.grid.to_slot_list(),
        'classSchedules': class_schedules,
        'teacherSchedules': teacher_schedules,
        'statistics': {
            'totalSlots': best.total_slots,
            'filledSlots': best.filled_count,
            'violationCount': best.violation_count,
            'retryAttemptsUsed': attempts_used,
            'qualityScore': best.quality_score,
            'unfillableSlots': len(best.unfillable),
            'elapsedSeconds': elapsed,
        },
        'diagnostics': {
            'violations': [v.to_dict() for v in validation.violations],
            'unmetRequirements': validation.unmet_requirements,
            'unfillableSlots': [
                {'day': s.day, 'period': s.period, 'grade': s.grade, 'section': s.section}
                for s in best.unfillable
            ],
            'qualityMetrics': validation.quality_metrics.to_dict(),
            'teacherDifficulties': difficulty_report(teacher_objs, subject_objs, config),
            'capacity': validation.capacity,
            'constraintStats': best.constraint_stats,
            'suggestions': validation.suggestions,
            'configuration': config.to_dict(),
        },
    }
