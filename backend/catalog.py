"""
RequirementCatalog - derive the (teacher, subject, grade, section, hours)
obligations the scheduler has to place.
"""

import logging
from collections import OrderedDict
from typing import Optional

from models import Requirement, Subject, Teacher
from school_config import Configuration

logger = logging.getLogger(__name__)


def required_hours_for(subject: Subject, grade: int) -> int:
    """Weekly hours of subject for one grade.

    Per-grade value first, then a single numeric value. A grade-agnostic
    subject (no grades listed) with no value for this grade falls back to any
    other grade's configured value.
    """
    hours = subject.weekly_hours
    if isinstance(hours, dict):
        value = hours.get(grade, 0)
        if value > 0:
            return value
        if not subject.grades:
            for other in sorted(hours):
                if hours[other] > 0:
                    return hours[other]
        return 0
    return hours if isinstance(hours, int) else 0


def find_subject(subjects: list[Subject], ref: str) -> Optional[Subject]:
    """Resolve a teacher's subject reference by id, then by name."""
    for subject in subjects:
        if subject.id == ref:
            return subject
    for subject in subjects:
        if subject.name == ref:
            return subject
    return None


def subject_grades(subject: Subject, config: Configuration) -> list[int]:
    """Configured grades the subject applies to (all grades when agnostic)."""
    if not subject.grades:
        return list(config.grades)
    return [g for g in config.grades if g in subject.grades]


def teacher_subjects(teacher: Teacher, subjects: list[Subject], warn: bool = True) -> list[Subject]:
    resolved = []
    for ref in teacher.subject_ids:
        subject = find_subject(subjects, ref)
        if subject is None:
            if warn:
                logger.warning(f"Subject '{ref}' not found (teacher: {teacher.name})")
            continue
        if subject not in resolved:
            resolved.append(subject)
    return resolved


def build_requirements(teachers: list[Teacher], subjects: list[Subject],
                       config: Configuration) -> list[Requirement]:
    requirements = []
    for teacher in teachers:
        for subject in teacher_subjects(teacher, subjects):
            for grade in subject_grades(subject, config):
                if not teacher.teaches_grade(grade):
                    continue
                hours = required_hours_for(subject, grade)
                if hours <= 0:
                    continue
                for section in config.sections(grade):
                    requirements.append(Requirement(
                        teacher=teacher,
                        subject=subject,
                        grade=grade,
                        section=section,
                        required_hours=hours,
                    ))

    logger.debug(f"Built {len(requirements)} requirements from {len(teachers)} teachers")
    return requirements


def requirements_by_teacher(requirements: list[Requirement]) -> 'OrderedDict[str, list[Requirement]]':
    grouped: OrderedDict = OrderedDict()
    for req in requirements:
        grouped.setdefault(req.teacher.id, []).append(req)
    return grouped


def requirements_by_class(requirements: list[Requirement]) -> dict[tuple, list[Requirement]]:
    grouped: dict = {}
    for req in requirements:
        grouped.setdefault(req.class_key, []).append(req)
    return grouped
