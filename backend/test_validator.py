import pytest

from assigner import BacklogEntry
from catalog import build_requirements
from difficulty import available_hours, rank_teachers, subject_load, teacher_difficulty
from grid import ScheduleGrid
from validator import (
    CRITICAL,
    QualityMetrics,
    Violation,
    analyze_capacity,
    analyze_unmet_requirements,
    balance_score,
    calculate_overall_score,
    find_violations,
    validate_timetable,
)


def _metrics(load_balance=1.0):
    return QualityMetrics(
        assignment_completion_rate=100.0,
        teacher_utilization_rate=100.0,
        subject_distribution_balance=1.0,
        constraint_violation_count=0,
        load_balance_score=load_balance,
    )


@pytest.mark.parametrize('counts,expected', [
    ([2, 2, 2], 1.0),
    ([1, 3], 0.5),
    ([5], 1.0),
    ([], 1.0),
    ([0, 0], 1.0),
    ([0, 10], 0.0),
])
def test_balance_score(counts, expected):
    assert balance_score(counts) == expected


def test_overall_score_penalties_and_clamp():
    assert calculate_overall_score(_metrics(), []) == 100.0
    assert calculate_overall_score(_metrics(0.5), []) == 90.0

    mixed = [Violation('teacher_conflict', 'critical', 'x'), Violation('subject_mismatch', 'major', 'x'),
             Violation('time_restriction', 'minor', 'x')]
    assert calculate_overall_score(_metrics(), mixed) == 91.0

    many = [Violation('teacher_conflict', CRITICAL, 'x')] * 30
    assert calculate_overall_score(_metrics(), many) == 0.0


def test_find_violations_reports_each_kind(make_config, make_teacher, make_subject):
    grid = ScheduleGrid(make_config(sections=2))
    sato = make_teacher('sato', ['math'], restrictions=[('Mon', (1,), 'required')])
    ito = make_teacher('ito', ['eng'])
    math, science = make_subject('math', 3), make_subject('sci', 2, room_type='lab')

    grid.occupy(grid.get('Mon', 1, 1, '1'), sato, math)
    grid.occupy(grid.get('Mon', 1, 1, '2'), sato, math)
    grid.occupy(grid.get('Tue', 2, 1, '1'), ito, math)
    grid.occupy(grid.get('Wed', 3, 1, '1'), ito, science)
    grid.occupy(grid.get('Thu', 1, 1, '1'), sato, math)

    by_type = {}
    for v in find_violations(grid):
        by_type.setdefault(v.type, []).append(v)

    assert len(by_type['teacher_conflict']) == 1
    assert by_type['teacher_conflict'][0].severity == CRITICAL
    assert len(by_type['teacher_conflict'][0].affected_slots) == 2
    assert len(by_type['subject_mismatch']) == 2
    assert [v.affected_slots[0]['day'] for v in by_type['time_restriction']] == ['Thu']
    assert len(by_type['classroom_conflict']) == 1


def test_unmet_requirements_keep_blocking_reasons(make_config, make_teacher, make_subject):
    config = make_config()
    req = build_requirements([make_teacher('t1', ['math'])], [make_subject('math', 4)], config)[0]
    req.assigned_hours = 4
    entry = BacklogEntry(requirement=req, missing_hours=2, reasons=['teacher-conflict'])

    [item] = analyze_unmet_requirements([entry])
    assert item['assignedHours'] == 2
    assert item['missingHours'] == 2
    assert item['blockingReasons'] == ['teacher-conflict']
    assert item['stillMissingAfterForce'] == 0


def test_capacity_flags_overload_and_uncovered(make_config, make_teacher, make_subject):
    config = make_config(days=('Mon',), periods=4, grades=(1, 2))
    teacher = make_teacher('t1', ['math'], grades=(1,), restrictions=[('Mon', (1,), 'required')])
    reqs = build_requirements([teacher], [make_subject('math', 6, grades=(1, 2))], config)

    capacity = analyze_capacity(reqs, [teacher], config)
    assert capacity['teacherOverload'] == [
        {'teacherId': 't1', 'teacherName': 'T1', 'requiredHours': 6, 'availableHours': 3}
    ]
    assert capacity['classOverload'][0]['requiredHours'] == 6
    assert capacity['uncoveredClasses'] == [{'grade': 2, 'section': '1'}]


def test_validate_timetable_suggests_covering_empty_class(make_config, make_teacher, make_subject):
    config = make_config(days=('Mon',), periods=2, grades=(1, 2))
    teacher = make_teacher('t1', ['math'], grades=(1,))
    reqs = build_requirements([teacher], [make_subject('math', 2, grades=(1, 2))], config)
    grid = ScheduleGrid(config)
    grid.occupy(grid.get('Mon', 1, 1, '1'), teacher, reqs[0].subject)
    grid.occupy(grid.get('Mon', 2, 1, '1'), teacher, reqs[0].subject)

    result = validate_timetable(grid, [teacher], reqs)
    assert result.is_valid
    assert result.quality_metrics.assignment_completion_rate == 50.0
    assert any('2-1' in s for s in result.suggestions)
    assert result.to_dict()['overallScore'] == 100.0


def test_available_hours_subtracts_required_windows(make_config, make_teacher):
    config = make_config()
    restricted = make_teacher('t1', ['math'], restrictions=[('Mon', (1, 2), 'required'),
                                                            ('Tue', (1,), 'recommended')])
    assert available_hours(restricted, config) == 28
    assert available_hours(make_teacher('t2', ['math']), config) == 30


def test_difficulty_ranks_scarce_teachers_first(make_config, make_teacher, make_subject):
    config = make_config(grades=(1, 2), sections=2)
    subjects = [make_subject('math', {1: 4, 2: 3}, grades=(1, 2)), make_subject('art', 1, grades=(1, 2))]
    shared_a, shared_b = make_teacher('a', ['art']), make_teacher('b', ['art'])
    solo = make_teacher('m', ['math'])
    teachers = [shared_a, shared_b, solo]

    assert subject_load(subjects[0], config) == 4 * 2 + 3 * 2
    assert teacher_difficulty(solo, teachers, subjects, config) == pytest.approx(14 / 30)
    assert teacher_difficulty(shared_a, teachers, subjects, config) == pytest.approx(2 / 30)
    assert [t.id for t in rank_teachers(teachers, subjects, config)] == ['m', 'a', 'b']
