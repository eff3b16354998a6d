from catalog import (
    build_requirements,
    required_hours_for,
    requirements_by_class,
    requirements_by_teacher,
)
from models import Subject, parse_subject, parse_teacher


def test_required_hours_per_grade_and_numeric():
    per_grade = Subject(id='math', name='Math', grades=[1, 2], weekly_hours={1: 4, 2: 3})
    numeric = Subject(id='pe', name='PE', grades=[1, 2], weekly_hours=2)
    assert required_hours_for(per_grade, 1) == 4
    assert required_hours_for(per_grade, 2) == 3
    assert required_hours_for(numeric, 2) == 2


def test_grade_agnostic_subject_falls_back_to_other_grade():
    agnostic = Subject(id='music', name='Music', grades=[], weekly_hours={1: 2})
    specific = Subject(id='art', name='Art', grades=[1, 2], weekly_hours={1: 2})
    assert required_hours_for(agnostic, 3) == 2
    assert required_hours_for(specific, 2) == 0


def test_one_requirement_per_teacher_subject_grade_section(make_config, make_teacher, make_subject):
    config = make_config(grades=(1, 2), sections=2)
    teachers = [make_teacher('t1', ['math', 'sci'])]
    subjects = [make_subject('math', {1: 4, 2: 3}, grades=(1, 2)), make_subject('sci', 2, grades=(2,))]

    reqs = build_requirements(teachers, subjects, config)
    keys = [(r.subject.id, r.grade, r.section, r.required_hours) for r in reqs]
    assert keys == [
        ('math', 1, '1', 4), ('math', 1, '2', 4),
        ('math', 2, '1', 3), ('math', 2, '2', 3),
        ('sci', 2, '1', 2), ('sci', 2, '2', 2),
    ]
    assert all(r.assigned_hours == 0 for r in reqs)


def test_zero_hour_and_ineligible_requirements_are_omitted(make_config, make_teacher, make_subject):
    config = make_config(grades=(1, 2))
    teachers = [make_teacher('t1', ['math'], grades=(2,)), make_teacher('t2', ['art'])]
    subjects = [make_subject('math', 3, grades=(1, 2)), make_subject('art', {1: 2}, grades=(1, 2))]

    reqs = build_requirements(teachers, subjects, config)
    assert [(r.teacher.id, r.subject.id, r.grade) for r in reqs] == [('t1', 'math', 2), ('t2', 'art', 1)]


def test_subjects_resolve_by_name_and_unknown_are_skipped(make_config, make_teacher, make_subject):
    config = make_config()
    teachers = [make_teacher('t1', ['Math', 'history'])]
    reqs = build_requirements(teachers, [make_subject('math', 2)], config)
    assert len(reqs) == 1
    assert reqs[0].subject.id == 'math'


def test_grouping_helpers(make_config, make_teacher, make_subject):
    config = make_config(sections=2)
    teachers = [make_teacher('t1', ['math']), make_teacher('t2', ['pe'])]
    subjects = [make_subject('math', 3), make_subject('pe', 2)]
    reqs = build_requirements(teachers, subjects, config)

    by_teacher = requirements_by_teacher(reqs)
    assert list(by_teacher) == ['t1', 't2']
    assert len(by_teacher['t1']) == 2

    by_class = requirements_by_class(reqs)
    assert {r.subject.id for r in by_class[(1, '1')]} == {'math', 'pe'}


def test_parsers_accept_api_payload():
    teacher = parse_teacher({
        'id': 't1', 'name': 'Sato', 'subjectIds': ['math'], 'grades': ['1', 2],
        'restrictions': [{'day': 'Mon', 'periods': [1, 2], 'level': '必須'},
                         {'day': 'Tue', 'periods': [3], 'level': 'recommended'}],
    })
    assert teacher.grades == [1, 2]
    assert [r.level for r in teacher.restrictions] == ['required', 'recommended']
    assert len(teacher.required_restrictions) == 1

    subject = parse_subject({'id': 'sci', 'name': 'Science', 'weeklyHours': {'1': 3},
                             'requiresSpecialRoom': True, 'roomType': 'lab'})
    assert subject.weekly_hours == {1: 3}
    assert subject.requires_special_room
    assert subject.room_type == 'lab'

    assert parse_teacher({'name': ''}) is None


def test_empty_collections_fall_through_to_next_spelling():
    subject = parse_subject({'id': 'pe', 'name': 'PE', 'weeklyHoursByGrade': {}, 'weeklyHours': 3,
                             'grades': [], 'applicableGrades': [1, 2]})
    assert subject.weekly_hours == 3
    assert subject.grades == [1, 2]

    teacher = parse_teacher({'id': 't1', 'name': 'Sato', 'subjectIds': [], 'teachableSubjectIds': ['pe'],
                             'grades': [], 'eligibleGrades': [2]})
    assert teacher.subject_ids == ['pe']
    assert teacher.grades == [2]
