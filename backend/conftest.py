"""Shared fixtures for the timetable engine tests."""

import random

import pytest

from models import Classroom, Restriction, Subject, Teacher
from school_config import normalize_config


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def make_config():
    """Small single-grade layout by default: 5 days x 6 periods, grade 1 with one section."""
    def _make(days=('Mon', 'Tue', 'Wed', 'Thu', 'Fri'), periods=6, grades=(1,), sections=1, **extra):
        raw = {
            'days': list(days),
            'periodsPerDay': periods,
            'grades': list(grades),
            'sectionsByGrade': {g: sections for g in grades},
        }
        raw.update(extra)
        return normalize_config(raw)
    return _make


@pytest.fixture
def make_teacher():
    def _make(teacher_id, subjects, grades=(), restrictions=()):
        return Teacher(
            id=teacher_id,
            name=teacher_id.title(),
            subject_ids=list(subjects),
            grades=list(grades),
            restrictions=[Restriction(day=d, periods=tuple(p), level=lvl) for d, p, lvl in restrictions],
        )
    return _make


@pytest.fixture
def make_subject():
    def _make(subject_id, hours, grades=(1,), room_type=None):
        return Subject(
            id=subject_id,
            name=subject_id.title(),
            grades=list(grades),
            weekly_hours=hours,
            requires_special_room=room_type is not None,
            room_type=room_type,
        )
    return _make


@pytest.fixture
def school():
    """A two-grade school as the API would send it (camelCase dicts)."""
    settings = {
        'days': ['Mon', 'Tue', 'Wed', 'Thu', 'Fri'],
        'periodsPerDay': 5,
        'grades': [1, 2],
        'sectionsByGrade': {'1': ['A', 'B'], '2': ['A', 'B']},
    }
    subjects = [
        {'id': 'math', 'name': 'Math', 'grades': [1, 2], 'weeklyHours': {'1': 5, '2': 4}},
        {'id': 'eng', 'name': 'English', 'grades': [1, 2], 'weeklyHours': 4},
        {'id': 'sci', 'name': 'Science', 'grades': [1, 2], 'weeklyHours': 3,
         'requiresSpecialRoom': True, 'roomType': 'lab'},
        {'id': 'art', 'name': 'Art', 'grades': [1, 2], 'weeklyHours': 2,
         'requiresSpecialRoom': True, 'roomType': 'art'},
        {'id': 'pe', 'name': 'PE', 'grades': [1, 2], 'weeklyHours': 3},
    ]
    teachers = [
        {'id': 'sato', 'name': 'Sato', 'subjectIds': ['math'], 'grades': [1]},
        {'id': 'suzuki', 'name': 'Suzuki', 'subjectIds': ['math'], 'grades': [2]},
        {'id': 'tanaka', 'name': 'Tanaka', 'subjectIds': ['eng']},
        {'id': 'ito', 'name': 'Ito', 'subjectIds': ['sci', 'art']},
        {'id': 'kato', 'name': 'Kato', 'subjectIds': ['PE'],
         'restrictions': [{'day': 'Fri', 'periods': [5], 'level': 'recommended'}]},
    ]
    classrooms = [
        {'id': 'lab1', 'name': 'Lab 1', 'type': 'lab'},
        {'id': 'art1', 'name': 'Art Room', 'type': 'art'},
    ]
    return settings, teachers, subjects, classrooms


@pytest.fixture
def lab():
    return Classroom(id='lab1', name='Lab 1', type='lab')
