"""Data models for centres, students and backend results."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any


class StudentCategory(str, Enum):
    PWD = "pwd"
    FEMALE = "female"
    MALE = "male"  # general bucket


@dataclass(frozen=True)
class Centre:
    centre_id: str
    lat: float
    lon: float
    max_capacity: int
    has_wheelchair_access: bool = False
    is_female_only: bool = False

    @property
    def point(self):
        return (self.lat, self.lon)

    def to_payload(self) -> Dict[str, Any]:
        return {
            'centre_id': self.centre_id,
            'lat': self.lat,
            'lon': self.lon,
            'max_capacity': self.max_capacity,
            'has_wheelchair_access': self.has_wheelchair_access,
            'is_female_only': self.is_female_only,
        }


@dataclass(frozen=True)
class Student:
    student_id: str
    lat: float
    lon: float
    category: StudentCategory

    @property
    def point(self):
        return (self.lat, self.lon)

    def to_payload(self) -> Dict[str, Any]:
        return {
            'student_id': self.student_id,
            'lat': self.lat,
            'lon': self.lon,
            'category': self.category.value,
        }


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def contains(self, lat: float, lon: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def to_payload(self) -> Dict[str, float]:
        return {
            'min_lat': self.min_lat,
            'min_lon': self.min_lon,
            'max_lat': self.max_lat,
            'max_lon': self.max_lon,
        }


@dataclass(frozen=True)
class Catchment:
    """Circle students are drawn from, plus the box used to sample it."""
    centre_lat: float
    centre_lon: float
    radius_meters: float
    bounds: BoundingBox

    @property
    def centre(self):
        return (self.centre_lat, self.centre_lon)


@dataclass
class GraphBuildResult:
    nodes_count: int
    edges_count: int
    timing: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AllotmentResult:
    assignments: Dict[str, str]
    travel_matrix: Optional[Dict[str, Dict[str, Any]]] = None
    timing: Dict[str, Any] = field(default_factory=dict)

    @property
    def assigned_count(self) -> int:
        return len(self.assignments)


@dataclass
class PathResult:
    student_id: str
    centre_id: str
    points: List[tuple]
