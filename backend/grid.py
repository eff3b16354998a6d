"""
ScheduleGrid - storage for one attempt's weekly slot matrix.

One Slot per (day, period, grade, section). The grid only stores and mutates
slots; constraint logic lives in constraints.py.
"""

from collections import Counter, defaultdict
from typing import Optional

from models import Classroom, Slot, Subject, Teacher
from school_config import Configuration


class ScheduleGrid:
    def __init__(self, config: Configuration, classrooms: Optional[list] = None):
        self.config = config
        self.classrooms: list[Classroom] = list(classrooms or [])
        self._slots: dict[tuple, Slot] = {}
        self._by_class: dict[tuple, list[Slot]] = defaultdict(list)
        self._by_time: dict[tuple, list[Slot]] = defaultdict(list)
        # (day, period) -> teacher id / classroom id -> number of slots using it
        self._teacher_load: dict[tuple, Counter] = defaultdict(Counter)
        self._room_usage: dict[tuple, Counter] = defaultdict(Counter)

        for day in config.days:
            for period in range(1, config.periods_for(day) + 1):
                for grade in config.grades:
                    for section in config.sections(grade):
                        slot = Slot(day=day, period=period, grade=grade, section=section)
                        self._slots[slot.key] = slot
                        self._by_class[(grade, section)].append(slot)
                        self._by_time[(day, period)].append(slot)

    def __iter__(self):
        return iter(self._slots.values())

    def __len__(self) -> int:
        return len(self._slots)

    def get(self, day: str, period: int, grade: int, section: str) -> Optional[Slot]:
        return self._slots.get((day, period, grade, section))

    def slots_for_class(self, grade: int, section: str) -> list[Slot]:
        return list(self._by_class.get((grade, section), []))

    def slots_at(self, day: str, period: int) -> list[Slot]:
        return list(self._by_time.get((day, period), []))

    def empty_slots(self, grade: Optional[int] = None, section: Optional[str] = None) -> list[Slot]:
        if grade is None:
            return [s for s in self._slots.values() if not self.is_occupied(s)]
        return [s for s in self._by_class.get((grade, section), []) if not self.is_occupied(s)]

    def occupied_slots(self, grade: int, section: str) -> list[Slot]:
        return [s for s in self._by_class.get((grade, section), []) if self.is_occupied(s)]

    def adjacent_slots(self, slot: Slot) -> list[Slot]:
        """Same class, same day, one period before and after."""
        neighbours = []
        for period in (slot.period - 1, slot.period + 1):
            other = self.get(slot.day, period, slot.grade, slot.section)
            if other is not None:
                neighbours.append(other)
        return neighbours

    # Mutation primitives

    @staticmethod
    def is_occupied(slot: Slot) -> bool:
        return slot.teacher is not None and slot.subject is not None

    def occupy(self, slot: Slot, teacher: Teacher, subject: Subject,
               classroom: Optional[Classroom] = None, violation_tags=()) -> None:
        if self.is_occupied(slot):
            raise ValueError(f"Slot {slot.key} is already occupied; clear it first")
        slot.teacher = teacher
        slot.subject = subject
        slot.classroom = classroom
        slot.violation_tags = list(violation_tags)
        self._teacher_load[(slot.day, slot.period)][teacher.id] += 1
        if classroom is not None:
            self._room_usage[(slot.day, slot.period)][classroom.id] += 1

    def clear(self, slot: Slot) -> None:
        if slot.teacher is not None:
            load = self._teacher_load[(slot.day, slot.period)]
            load[slot.teacher.id] -= 1
            if load[slot.teacher.id] <= 0:
                del load[slot.teacher.id]
        if slot.classroom is not None:
            usage = self._room_usage[(slot.day, slot.period)]
            usage[slot.classroom.id] -= 1
            if usage[slot.classroom.id] <= 0:
                del usage[slot.classroom.id]
        slot.teacher = None
        slot.subject = None
        slot.classroom = None
        slot.violation_tags = []

    # Occupancy lookups

    def teacher_count(self, teacher_id: str, day: str, period: int) -> int:
        return self._teacher_load.get((day, period), Counter()).get(teacher_id, 0)

    def teacher_busy(self, teacher_id: str, day: str, period: int) -> bool:
        return self.teacher_count(teacher_id, day, period) > 0

    def rooms_of_type(self, room_type: Optional[str]) -> list[Classroom]:
        return [c for c in self.classrooms if c.type == room_type]

    def free_classroom(self, room_type: Optional[str], day: str, period: int) -> Optional[Classroom]:
        usage = self._room_usage.get((day, period), Counter())
        for room in self.rooms_of_type(room_type):
            if usage.get(room.id, 0) == 0:
                return room
        return None

    # Summaries

    @property
    def total_slots(self) -> int:
        return len(self._slots)

    @property
    def filled_count(self) -> int:
        return sum(1 for s in self._slots.values() if self.is_occupied(s))

    @property
    def violation_count(self) -> int:
        return sum(1 for s in self._slots.values() if s.violation_tags)

    def to_slot_list(self) -> list[dict]:
        return [s.to_dict() for s in self._slots.values()]

    def build_schedules(self) -> tuple[dict, dict]:
        """Return (class_schedules, teacher_schedules) views of the grid.

        class_schedules:   {"<grade>-<section>": {day: {period: entry}}}
        teacher_schedules: {teacher_id: {day: {period: entry}}}
        """
        class_schedules: dict = {}
        teacher_schedules: dict = {}

        for (grade, section) in self.config.class_keys:
            class_schedules[f"{grade}-{section}"] = {
                day: {p: None for p in range(1, self.config.periods_for(day) + 1)}
                for day in self.config.days
            }

        for slot in self._slots.values():
            if not self.is_occupied(slot):
                continue
            class_schedules[f"{slot.grade}-{slot.section}"][slot.day][slot.period] = {
                'teacherId': slot.teacher.id,
                'teacherName': slot.teacher.name,
                'subjectName': slot.subject.name,
                'classroomId': slot.classroom.id if slot.classroom else None,
                'forced': slot.is_forced,
            }
            schedule = teacher_schedules.setdefault(slot.teacher.id, {
                day: {p: None for p in range(1, self.config.periods_for(day) + 1)}
                for day in self.config.days
            })
            entry = {
                'grade': slot.grade,
                'section': slot.section,
                'subjectName': slot.subject.name,
            }
            existing = schedule[slot.day][slot.period]
            if existing is None:
                schedule[slot.day][slot.period] = entry
            elif isinstance(existing, list):
                existing.append(entry)
            else:
                # double-booked (forced placement): keep every class taught at this time
                schedule[slot.day][slot.period] = [existing, entry]

        return class_schedules, teacher_schedules
