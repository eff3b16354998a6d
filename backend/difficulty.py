"""
Teacher placement difficulty.

difficulty = sum over the teacher's subjects of
             (weekly hours the subject needs across its grades and sections
              / number of teachers able to teach it)
             / hours the teacher is available in a week

Scarce, heavily restricted teachers come first so they get first pick of
favorable slots in Phase1.
"""

from catalog import required_hours_for, subject_grades, teacher_subjects
from models import Subject, Teacher
from school_config import Configuration


def available_hours(teacher: Teacher, config: Configuration) -> int:
    """Weekly slots minus periods named by required-level restrictions (floor 1)."""
    restricted = sum(len(r.periods) for r in teacher.required_restrictions)
    return max(1, config.weekly_slots - restricted)


def subject_load(subject: Subject, config: Configuration) -> int:
    """Weekly hours the subject needs across all its grades and sections."""
    return sum(
        required_hours_for(subject, grade) * len(config.sections(grade))
        for grade in subject_grades(subject, config)
    )


def teacher_difficulty(teacher: Teacher, teachers: list[Teacher], subjects: list[Subject],
                       config: Configuration) -> float:
    total = 0.0
    for subject in teacher_subjects(teacher, subjects, warn=False):
        teacher_count = sum(1 for t in teachers if t.can_teach(subject))
        if teacher_count == 0:
            continue
        total += subject_load(subject, config) / teacher_count
    return total / available_hours(teacher, config)


def rank_teachers(teachers: list[Teacher], subjects: list[Subject],
                  config: Configuration) -> list[Teacher]:
    """Hardest-to-place first; sorted() is stable so ties keep input order."""
    scores = {t.id: teacher_difficulty(t, teachers, subjects, config) for t in teachers}
    return sorted(teachers, key=lambda t: -scores[t.id])


def difficulty_report(teachers: list[Teacher], subjects: list[Subject],
                      config: Configuration) -> list[dict]:
    report = []
    for teacher in rank_teachers(teachers, subjects, config):
        report.append({
            'teacherId': teacher.id,
            'teacherName': teacher.name,
            'difficulty': round(teacher_difficulty(teacher, teachers, subjects, config), 4),
            'availableHours': available_hours(teacher, config),
            'subjectCount': len(teacher_subjects(teacher, subjects, warn=False)),
        })
    return report
