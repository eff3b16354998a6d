"""
Post-hoc timetable analysis: violations, quality metrics, unmet requirements,
capacity checks and advisory suggestions.
"""

import statistics
from dataclasses import dataclass, field
from typing import Optional

from catalog import requirements_by_class
from difficulty import available_hours
from grid import ScheduleGrid
from models import Requirement, Slot, Teacher
from school_config import Configuration

CRITICAL = 'critical'
MAJOR = 'major'
MINOR = 'minor'

SEVERITY_PENALTY = {CRITICAL: 5.0, MAJOR: 3.0, MINOR: 1.0}
LOAD_BALANCE_WEIGHT = 20.0

# Suggestion thresholds
LOW_LOAD_BALANCE = 0.5
LOW_UTILIZATION = 50.0
MANY_FORCED_RATIO = 0.2


@dataclass
class Violation:
    type: str  # teacher_conflict | subject_mismatch | time_restriction | classroom_conflict
    severity: str
    description: str
    affected_slots: list = field(default_factory=list)
    suggested_fix: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'type': self.type,
            'severity': self.severity,
            'description': self.description,
            'affectedSlots': self.affected_slots,
            'suggestedFix': self.suggested_fix,
        }


@dataclass
class QualityMetrics:
    assignment_completion_rate: float
    teacher_utilization_rate: float
    subject_distribution_balance: float
    constraint_violation_count: int
    load_balance_score: float

    def to_dict(self) -> dict:
        return {
            'assignmentCompletionRate': self.assignment_completion_rate,
            'teacherUtilizationRate': self.teacher_utilization_rate,
            'subjectDistributionBalance': self.subject_distribution_balance,
            'constraintViolationCount': self.constraint_violation_count,
            'loadBalanceScore': self.load_balance_score,
        }


@dataclass
class ValidationResult:
    is_valid: bool
    overall_score: float
    violations: list
    quality_metrics: QualityMetrics
    unmet_requirements: list
    capacity: dict
    suggestions: list

    def to_dict(self) -> dict:
        return {
            'isValid': self.is_valid,
            'overallScore': self.overall_score,
            'violations': [v.to_dict() for v in self.violations],
            'qualityMetrics': self.quality_metrics.to_dict(),
            'unmetRequirements': self.unmet_requirements,
            'capacity': self.capacity,
            'suggestions': self.suggestions,
        }


def _slot_ref(slot: Slot) -> dict:
    return {'day': slot.day, 'period': slot.period, 'grade': slot.grade, 'section': slot.section}


def percentage(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    return round(numerator / denominator * 100, 2)


def balance_score(counts: list) -> float:
    """1 - coefficient of variation, clamped to [0, 1]. Fewer than two values is perfectly balanced."""
    if len(counts) < 2:
        return 1.0
    mean = statistics.mean(counts)
    if mean == 0:
        return 1.0
    cv = statistics.pstdev(counts) / mean
    return round(max(0.0, min(1.0, 1.0 - cv)), 4)


def find_violations(grid: ScheduleGrid) -> list[Violation]:
    violations = []
    config = grid.config

    # Teacher double-booking
    for day in config.days:
        for period in range(1, config.periods_for(day) + 1):
            by_teacher: dict[str, list[Slot]] = {}
            for slot in grid.slots_at(day, period):
                if slot.teacher is not None:
                    by_teacher.setdefault(slot.teacher.id, []).append(slot)
            for slots in by_teacher.values():
                if len(slots) > 1:
                    violations.append(Violation(
                        type='teacher_conflict',
                        severity=CRITICAL,
                        description=f"{slots[0].teacher.name} teaches {len(slots)} classes on {day} period {period}",
                        affected_slots=[_slot_ref(s) for s in slots],
                        suggested_fix='Move one of the lessons to another period',
                    ))

    for slot in grid:
        if not grid.is_occupied(slot):
            continue
        teacher, subject = slot.teacher, slot.subject

        if not teacher.can_teach(subject):
            violations.append(Violation(
                type='subject_mismatch',
                severity=MAJOR,
                description=f"{teacher.name} is not qualified for {subject.name}",
                affected_slots=[_slot_ref(slot)],
                suggested_fix=f"Assign a teacher who can teach {subject.name}",
            ))

        windows = teacher.required_restrictions
        if windows and not any(w.covers(slot.day, slot.period) for w in windows):
            violations.append(Violation(
                type='time_restriction',
                severity=MINOR,
                description=f"{teacher.name} placed outside required window on {slot.day} period {slot.period}",
                affected_slots=[_slot_ref(slot)],
                suggested_fix='Widen the teacher restriction or add another teacher for this subject',
            ))

        if subject.requires_special_room and slot.classroom is None:
            violations.append(Violation(
                type='classroom_conflict',
                severity=MINOR,
                description=f"{subject.name} has no '{subject.room_type}' room on {slot.day} period {slot.period}",
                affected_slots=[_slot_ref(slot)],
                suggested_fix=f"Add a '{subject.room_type}' room",
            ))

    return violations


def calculate_quality_metrics(grid: ScheduleGrid, teachers: list[Teacher],
                              violations: list[Violation]) -> QualityMetrics:
    teacher_hours: dict[str, int] = {}
    subject_hours: dict[str, int] = {}
    for slot in grid:
        if grid.is_occupied(slot):
            teacher_hours[slot.teacher.id] = teacher_hours.get(slot.teacher.id, 0) + 1
            subject_hours[slot.subject.id] = subject_hours.get(slot.subject.id, 0) + 1

    return QualityMetrics(
        assignment_completion_rate=percentage(grid.filled_count, grid.total_slots),
        teacher_utilization_rate=percentage(len(teacher_hours), len(teachers)),
        subject_distribution_balance=balance_score(list(subject_hours.values())),
        constraint_violation_count=len(violations),
        load_balance_score=balance_score(list(teacher_hours.values())),
    )


def calculate_overall_score(metrics: QualityMetrics, violations: list[Violation]) -> float:
    score = 100.0
    for v in violations:
        score -= SEVERITY_PENALTY.get(v.severity, 0.0)
    score -= (1.0 - metrics.load_balance_score) * LOAD_BALANCE_WEIGHT
    return round(max(0.0, min(100.0, score)), 2)


def analyze_unmet_requirements(backlog: list) -> list[dict]:
    """Report what Phase1 could not place under constraints, and why."""
    report = []
    for entry in backlog:
        req = entry.requirement
        report.append({
            'teacherId': req.teacher.id,
            'teacherName': req.teacher.name,
            'subjectId': req.subject.id,
            'subjectName': req.subject.name,
            'grade': req.grade,
            'section': req.section,
            'requiredHours': req.required_hours,
            'assignedHours': req.required_hours - entry.missing_hours,
            'missingHours': entry.missing_hours,
            'blockingReasons': list(entry.reasons),
            'stillMissingAfterForce': max(0, req.remaining),
        })
    return report


def analyze_capacity(requirements: list[Requirement], teachers: list[Teacher],
                     config: Configuration) -> dict:
    teacher_overload = []
    for teacher in teachers:
        needed = sum(r.required_hours for r in requirements if r.teacher.id == teacher.id)
        available = available_hours(teacher, config)
        if needed > available:
            teacher_overload.append({'teacherId': teacher.id, 'teacherName': teacher.name,
                                     'requiredHours': needed, 'availableHours': available})

    by_class = requirements_by_class(requirements)
    class_overload, class_underload, uncovered = [], [], []
    for (grade, section) in config.class_keys:
        reqs = by_class.get((grade, section), [])
        if not reqs:
            uncovered.append({'grade': grade, 'section': section})
            continue
        # co-taught subjects count once per class
        hours = {}
        for r in reqs:
            hours[r.subject.id] = max(hours.get(r.subject.id, 0), r.required_hours)
        needed = sum(hours.values())
        if needed > config.weekly_slots:
            class_overload.append({'grade': grade, 'section': section,
                                   'requiredHours': needed, 'weeklySlots': config.weekly_slots})
        elif needed < config.weekly_slots:
            class_underload.append({'grade': grade, 'section': section,
                                    'requiredHours': needed, 'weeklySlots': config.weekly_slots})

    return {
        'teacherOverload': teacher_overload,
        'classOverload': class_overload,
        'classUnderload': class_underload,
        'uncoveredClasses': uncovered,
    }


def build_suggestions(violations: list[Violation], metrics: QualityMetrics, unmet: list[dict],
                      capacity: dict, forced_slots: int = 0, total_slots: int = 0) -> list[str]:
    suggestions = []

    conflicts = [v for v in violations if v.type == 'teacher_conflict']
    if conflicts:
        suggestions.append(
            f"{len(conflicts)} teacher double-booking(s): add teachers for the busiest subjects or reduce their hours"
        )

    missing_by_subject: dict[str, int] = {}
    for item in unmet:
        missing_by_subject[item['subjectName']] = missing_by_subject.get(item['subjectName'], 0) + item['missingHours']
    for subject, hours in sorted(missing_by_subject.items(), key=lambda kv: -kv[1]):
        suggestions.append(f"{subject}: {hours} hour(s) could not be placed without breaking constraints; "
                           f"consider another qualified teacher")

    for item in capacity.get('teacherOverload', []):
        suggestions.append(f"{item['teacherName']} needs {item['requiredHours']}h but is available "
                           f"{item['availableHours']}h: redistribute classes")
    for item in capacity.get('classOverload', []):
        suggestions.append(f"Class {item['grade']}-{item['section']} needs {item['requiredHours']}h "
                           f"but has {item['weeklySlots']} periods: reduce weekly hours")
    for item in capacity.get('uncoveredClasses', []):
        suggestions.append(f"Class {item['grade']}-{item['section']} has no teacher: "
                           f"assign teachers for this grade")
    underloaded = capacity.get('classUnderload', [])
    if underloaded:
        suggestions.append(f"{len(underloaded)} class(es) have fewer required hours than periods; "
                           f"spare periods were filled by forced assignments")

    if total_slots and forced_slots / total_slots > MANY_FORCED_RATIO:
        suggestions.append(f"{forced_slots} of {total_slots} slots were forced: review teacher "
                           f"restrictions and subject hours")
    if metrics.load_balance_score < LOW_LOAD_BALANCE:
        suggestions.append('Teacher loads are uneven: spread classes more evenly across teachers')
    if metrics.teacher_utilization_rate < LOW_UTILIZATION:
        suggestions.append('Fewer than half of the teachers are scheduled: check their subjects and grades')

    return suggestions


def validate_timetable(grid: ScheduleGrid, teachers: list[Teacher], requirements: list[Requirement],
                       backlog: Optional[list] = None) -> ValidationResult:
    violations = find_violations(grid)
    metrics = calculate_quality_metrics(grid, teachers, violations)
    unmet = analyze_unmet_requirements(backlog or [])
    capacity = analyze_capacity(requirements, teachers, grid.config)
    suggestions = build_suggestions(
        violations, metrics, unmet, capacity,
        forced_slots=grid.violation_count, total_slots=grid.total_slots,
    )
    return ValidationResult(
        is_valid=not any(v.severity == CRITICAL for v in violations),
        overall_score=calculate_overall_score(metrics, violations),
        violations=violations,
        quality_metrics=metrics,
        unmet_requirements=unmet,
        capacity=capacity,
        suggestions=suggestions,
    )
