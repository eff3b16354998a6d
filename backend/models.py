"""
Data model for the timetable engine.

Inputs (teachers, subjects, classrooms) arrive as dicts from the API layer
with camelCase keys; the parse_* helpers turn them into dataclasses.
"""

import logging
from typing import Optional, Union
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

REQUIRED = 'required'
RECOMMENDED = 'recommended'

# Accepted spellings of restriction levels, including the Japanese UI labels
LEVEL_ALIASES = {
    'required': REQUIRED,
    'mandatory': REQUIRED,
    '必須': REQUIRED,
    'recommended': RECOMMENDED,
    'preferred': RECOMMENDED,
    '推奨': RECOMMENDED,
}

FORCED = 'forced'
FORCED_OVERWRITE = 'forced-overwrite'


@dataclass(frozen=True)
class Restriction:
    day: str
    periods: tuple
    level: str = REQUIRED

    @property
    def is_required(self) -> bool:
        return self.level == REQUIRED

    def covers(self, day: str, period: int) -> bool:
        return day == self.day and period in self.periods


@dataclass
class Teacher:
    id: str
    name: str
    subject_ids: list = field(default_factory=list)  # subject ids or names
    grades: list = field(default_factory=list)  # empty = any grade
    restrictions: list = field(default_factory=list)

    @property
    def required_restrictions(self) -> list:
        return [r for r in self.restrictions if r.is_required]

    def can_teach(self, subject: 'Subject') -> bool:
        return subject.id in self.subject_ids or subject.name in self.subject_ids

    def teaches_grade(self, grade: int) -> bool:
        return not self.grades or grade in self.grades


@dataclass
class Subject:
    id: str
    name: str
    grades: list = field(default_factory=list)  # empty = grade-agnostic
    weekly_hours: Union[int, dict] = 0  # int, or {grade: hours}
    requires_special_room: bool = False
    room_type: Optional[str] = None


@dataclass
class Classroom:
    id: str
    name: str
    type: str


@dataclass
class Requirement:
    """One obligation: place `required_hours` of subject for a class."""
    teacher: Teacher
    subject: Subject
    grade: int
    section: str
    required_hours: int
    assigned_hours: int = 0

    @property
    def remaining(self) -> int:
        return self.required_hours - self.assigned_hours

    @property
    def class_key(self) -> tuple:
        return (self.grade, self.section)

    def label(self) -> str:
        return f"{self.teacher.name}/{self.subject.name} {self.grade}-{self.section}"


@dataclass
class Slot:
    day: str
    period: int
    grade: int
    section: str
    subject: Optional[Subject] = None
    teacher: Optional[Teacher] = None
    classroom: Optional[Classroom] = None
    violation_tags: list = field(default_factory=list)

    @property
    def key(self) -> tuple:
        return (self.day, self.period, self.grade, self.section)

    @property
    def class_key(self) -> tuple:
        return (self.grade, self.section)

    @property
    def is_forced(self) -> bool:
        return FORCED in self.violation_tags or FORCED_OVERWRITE in self.violation_tags

    def to_dict(self) -> dict:
        return {
            'day': self.day,
            'period': self.period,
            'grade': self.grade,
            'section': self.section,
            'subjectId': self.subject.id if self.subject else None,
            'subjectName': self.subject.name if self.subject else None,
            'teacherId': self.teacher.id if self.teacher else None,
            'teacherName': self.teacher.name if self.teacher else None,
            'classroomId': self.classroom.id if self.classroom else None,
            'violationTags': list(self.violation_tags),
        }


# Parsing helpers

def _pick(data: dict, *keys, default=None):
    """Return the first key present in data (camelCase and snake_case spellings).

    None and empty collections fall through to the next spelling.
    """
    for key in keys:
        value = data.get(key)
        if value is None or (isinstance(value, (list, tuple, dict)) and not value):
            continue
        return value
    return default


def _to_int(value, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _int_list(values) -> list:
    if not isinstance(values, (list, tuple, set)):
        return []
    result = []
    for v in values:
        n = _to_int(v, -1)
        if n >= 0 and n not in result:
            result.append(n)
    return result


def parse_restriction(data) -> Optional[Restriction]:
    if isinstance(data, Restriction):
        return data
    if not isinstance(data, dict):
        return None
    day = _pick(data, 'day', 'restrictedDay', 'restricted_day')
    if not day:
        return None
    periods = tuple(p for p in _int_list(_pick(data, 'periods', 'restrictedPeriods', 'restricted_periods', default=[])) if p > 0)
    raw_level = str(_pick(data, 'level', 'restrictionLevel', 'restriction_level', default=REQUIRED)).strip().lower()
    level = LEVEL_ALIASES.get(raw_level)
    if level is None:
        logger.warning(f"Unknown restriction level '{raw_level}' on {day}; treating as recommended")
        level = RECOMMENDED
    return Restriction(day=str(day), periods=periods, level=level)


def parse_teacher(data) -> Optional[Teacher]:
    if isinstance(data, Teacher):
        return data
    if not isinstance(data, dict):
        return None
    teacher_id = _pick(data, 'id', 'name')
    if teacher_id is None or str(teacher_id).strip() == '':
        return None
    restrictions = []
    for raw in _pick(data, 'restrictions', 'assignmentRestrictions', 'assignment_restrictions', default=[]) or []:
        restriction = parse_restriction(raw)
        if restriction is not None:
            restrictions.append(restriction)
    raw_subjects = _pick(data, 'subjectIds', 'subject_ids', 'teachableSubjectIds', 'teachable_subject_ids',
                         'subjects', default=[])
    subject_ids = [str(s) for s in raw_subjects or []]
    return Teacher(
        id=str(teacher_id),
        name=str(_pick(data, 'name', default=teacher_id)),
        subject_ids=subject_ids,
        grades=_int_list(_pick(data, 'grades', 'eligibleGrades', 'eligible_grades', default=[])),
        restrictions=restrictions,
    )


def parse_weekly_hours(raw) -> Union[int, dict]:
    if isinstance(raw, dict):
        hours = {}
        for grade, value in raw.items():
            g = _to_int(grade, -1)
            if g >= 0:
                hours[g] = max(0, _to_int(value, 0))
        return hours
    return max(0, _to_int(raw, 0))


def parse_subject(data) -> Optional[Subject]:
    if isinstance(data, Subject):
        return data
    if not isinstance(data, dict):
        return None
    subject_id = _pick(data, 'id', 'name')
    if subject_id is None or str(subject_id).strip() == '':
        return None
    room_type = _pick(data, 'roomType', 'room_type', 'classroomType', 'classroom_type')
    return Subject(
        id=str(subject_id),
        name=str(_pick(data, 'name', default=subject_id)),
        grades=_int_list(_pick(data, 'grades', 'applicableGrades', 'applicable_grades', 'targetGrades', default=[])),
        weekly_hours=parse_weekly_hours(_pick(data, 'weeklyHoursByGrade', 'weeklyHours', 'weekly_hours', default=0)),
        requires_special_room=bool(_pick(data, 'requiresSpecialRoom', 'requires_special_room',
                                         'requiresSpecialClassroom', default=False)),
        room_type=str(room_type) if room_type else None,
    )


def parse_classroom(data) -> Optional[Classroom]:
    if isinstance(data, Classroom):
        return data
    if not isinstance(data, dict):
        return None
    room_id = _pick(data, 'id', 'name')
    if room_id is None:
        return None
    return Classroom(
        id=str(room_id),
        name=str(_pick(data, 'name', default=room_id)),
        type=str(_pick(data, 'type', 'roomType', 'room_type', default='')),
    )


def _parse_all(items, parser, kind: str) -> list:
    parsed = []
    for i, item in enumerate(items or []):
        obj = parser(item)
        if obj is None:
            logger.warning(f"Skipping malformed {kind} #{i + 1}: {item!r}")
            continue
        parsed.append(obj)
    return parsed


def parse_teachers(items) -> list[Teacher]:
    return _parse_all(items, parse_teacher, 'teacher')


def parse_subjects(items) -> list[Subject]:
    return _parse_all(items, parse_subject, 'subject')


def parse_classrooms(items) -> list[Classroom]:
    return _parse_all(items, parse_classroom, 'classroom')
