from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Department(Enum):
    INFO = "INFO"
    GEII = "GEII"
    RT = "RT"


class EventType(Enum):
    CM = "CM"  # lecture
    TD = "TD"  # tutorial
    TP = "TP"  # lab
    OTHER = "OTHER"


# group == 0 marks a whole-year session group ("S1".."S4").
SESSION_GROUP = 0


@dataclass(frozen=True)
class Promo:
    year: int
    department: Department
    group: int

    def __post_init__(self):
        if not isinstance(self.department, Department):
            raise ValueError(f"Unknown department: {self.department!r}")
        for name in ("year", "group"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"Promo.{name} must be an int, got {value!r}")

    @property
    def is_session_group(self) -> bool:
        return self.group == SESSION_GROUP

    def __str__(self) -> str:
        return f"{self.year}-{self.department.value}-{self.group}"


@dataclass(frozen=True)
class Event:
    summary: str
    start: datetime  # institution-local, tz-aware
    end: datetime
    location: str
    lesson: str
    group: str       # raw label, e.g. "2-INFO-S1"
    teacher: Optional[str] = None
    event_type: EventType = EventType.OTHER

    @property
    def is_graded(self) -> bool:
        lowered = self.summary.lower()
        return "eval" in lowered or "moodle" in lowered
