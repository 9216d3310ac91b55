"""Per-student view models handed to the rendering layer."""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Any

from models.entities import Student


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    UNASSIGNED = "unassigned"


class TravelStatus(str, Enum):
    KNOWN = "known"
    UNREACHABLE = "unreachable"
    MISSING = "missing"


@dataclass(frozen=True)
class CentreTravelTime:
    centre_id: str
    status: TravelStatus
    seconds: Optional[float] = None

    @property
    def minutes(self) -> Optional[float]:
        return self.seconds / 60 if self.seconds is not None else None

    def to_payload(self) -> Dict[str, Any]:
        return {'centre_id': self.centre_id, 'status': self.status.value, 'seconds': self.seconds}


@dataclass(frozen=True)
class StudentView:
    student: Student
    status: AssignmentStatus
    centre_id: Optional[str] = None
    travel_times: Optional[List[CentreTravelTime]] = None

    @property
    def is_assigned(self) -> bool:
        return self.status is AssignmentStatus.ASSIGNED

    def travel_time_to(self, centre_id: str) -> Optional[CentreTravelTime]:
        for row in self.travel_times or []:
            if row.centre_id == centre_id:
                return row
        return None

    def to_payload(self) -> Dict[str, Any]:
        payload = self.student.to_payload()
        payload['status'] = self.status.value
        payload['centre_id'] = self.centre_id
        payload['travel_times'] = (
            [row.to_payload() for row in self.travel_times] if self.travel_times is not None else None
        )
        return payload
