"""
School layout configuration.

normalize_config() is the single place where raw school settings are checked.
Everything downstream works with a frozen Configuration and never re-validates.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType

logger = logging.getLogger(__name__)

# Defaults
DEFAULT_DAYS = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat')
DEFAULT_PERIODS_PER_DAY = 6
DEFAULT_GRADES = (1, 2, 3)
DEFAULT_SECTION_COUNTS = {1: 4, 2: 4, 3: 3}
FALLBACK_SECTION_COUNT = 4

SATURDAY_NAMES = {'sat', 'saturday', '土', '土曜', '土曜日'}


def is_saturday(day: str) -> bool:
    return day.strip().lower() in SATURDAY_NAMES


@dataclass(frozen=True)
class Configuration:
    days: tuple = DEFAULT_DAYS
    periods_per_day: int = DEFAULT_PERIODS_PER_DAY
    saturday_periods: int = DEFAULT_PERIODS_PER_DAY
    grades: tuple = DEFAULT_GRADES
    sections_by_grade: dict = field(default_factory=dict)

    def __post_init__(self):
        # read-only view so grid dimensions cannot change after normalization
        object.__setattr__(self, 'sections_by_grade', MappingProxyType(dict(self.sections_by_grade)))

    def periods_for(self, day: str) -> int:
        return self.saturday_periods if is_saturday(day) else self.periods_per_day

    def sections(self, grade: int) -> tuple:
        return self.sections_by_grade.get(grade, ())

    @property
    def weekly_slots(self) -> int:
        """Number of periods in one class's week."""
        return sum(self.periods_for(day) for day in self.days)

    @property
    def class_keys(self) -> list:
        return [(g, s) for g in self.grades for s in self.sections(g)]

    def to_dict(self) -> dict:
        return {
            'days': list(self.days),
            'periodsPerDay': self.periods_per_day,
            'saturdayPeriods': self.saturday_periods,
            'grades': list(self.grades),
            'sectionsByGrade': {str(g): list(s) for g, s in self.sections_by_grade.items()},
        }


def _safe_int(value, default: int, minimum: int = 1, name: str = '') -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        logger.debug(f"Config '{name}': boolean {value!r} replaced with {default}")
        return default
    try:
        parsed = int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.debug(f"Config '{name}': invalid value {value!r} replaced with {default}")
        return default
    if parsed < minimum:
        logger.debug(f"Config '{name}': {parsed} below {minimum}, replaced with {default}")
        return default
    return parsed


def _get(raw: dict, *keys):
    for key in keys:
        if key in raw:
            return raw[key]
    return None


def _normalize_days(value) -> tuple:
    if isinstance(value, (list, tuple)):
        days = []
        for d in value:
            if isinstance(d, str) and d.strip() and d.strip() not in days:
                days.append(d.strip())
        if days:
            return tuple(days)
    if value is not None:
        logger.debug(f"Config 'days': invalid value {value!r}, using defaults")
    return DEFAULT_DAYS


def _normalize_grades(value) -> tuple:
    if isinstance(value, (list, tuple)):
        grades = []
        for g in value:
            n = _safe_int(g, -1, minimum=0, name='grades')
            if n >= 0 and n not in grades:
                grades.append(n)
        if grades:
            return tuple(grades)
    if value is not None:
        logger.debug(f"Config 'grades': invalid value {value!r}, using defaults")
    return DEFAULT_GRADES


def _section_names(value) -> tuple:
    """Accept a list of section names or a section count."""
    if isinstance(value, (list, tuple)):
        names = []
        for s in value:
            name = str(s).strip()
            if name and name not in names:
                names.append(name)
        return tuple(names)
    count = _safe_int(value, 0, minimum=1, name='sections')
    return tuple(str(i + 1) for i in range(count))


def _normalize_sections(raw: dict, grades: tuple) -> dict:
    by_grade = _get(raw, 'sectionsByGrade', 'sections_by_grade', 'classesPerGrade', 'classes_per_grade')
    explicit = {}
    if isinstance(by_grade, dict):
        for key, value in by_grade.items():
            grade = _safe_int(key, -1, minimum=0, name='sectionsByGrade')
            names = _section_names(value)
            if grade >= 0 and names:
                explicit[grade] = names

    sections = {}
    for grade in grades:
        if grade in explicit:
            sections[grade] = explicit[grade]
            continue
        # Legacy per-grade counts: grade1Classes, grade2Classes, ...
        count = _get(raw, f'grade{grade}Classes', f'grade{grade}_classes')
        default_count = DEFAULT_SECTION_COUNTS.get(grade, FALLBACK_SECTION_COUNT)
        count = _safe_int(count, default_count, minimum=1, name=f'grade{grade}Classes')
        sections[grade] = tuple(str(i + 1) for i in range(count))
    return sections


def normalize_config(raw=None) -> Configuration:
    """Build a fully-defaulted Configuration from raw school settings.

    Accepts None, a dict using camelCase or snake_case keys, or an existing
    Configuration (returned unchanged). Never raises: missing or invalid
    values are replaced with defaults.
    """
    if isinstance(raw, Configuration):
        return raw
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning(f"School settings of type {type(raw).__name__} ignored, using defaults")
        raw = {}

    days = _normalize_days(_get(raw, 'days'))
    periods_per_day = _safe_int(
        _get(raw, 'periodsPerDay', 'periods_per_day', 'dailyPeriods', 'daily_periods'),
        DEFAULT_PERIODS_PER_DAY, minimum=1, name='periodsPerDay'
    )
    saturday_periods = _safe_int(
        _get(raw, 'saturdayPeriods', 'saturday_periods'),
        periods_per_day, minimum=0, name='saturdayPeriods'
    )
    grades = _normalize_grades(_get(raw, 'grades'))
    sections = _normalize_sections(raw, grades)

    config = Configuration(
        days=days,
        periods_per_day=periods_per_day,
        saturday_periods=saturday_periods,
        grades=grades,
        sections_by_grade=sections,
    )
    logger.debug(f"Normalized config: {config.to_dict()}")
    return config

