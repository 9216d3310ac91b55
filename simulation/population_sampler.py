"""Synthetic student population generated inside the centres' catchment."""
import bisect
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from configurations.config import Config
from core.errors import NoCatchmentError
from models.entities import Catchment, Centre, Student, StudentCategory
from tools.geo_math import bounding_box, centroid, normalize_longitude, planar_distance_meters

DistributionSpec = Sequence[Tuple[Union[StudentCategory, str], float]]


class CategoryPartition:
    """Ordered (cumulative_threshold, category) pairs over [0, 1).

    A draw r belongs to the first bucket whose threshold is strictly
    greater than r. The last bucket always ends at 1.0 and absorbs any
    remainder left by the configured proportions.
    """

    def __init__(self, distribution: DistributionSpec):
        if not distribution:
            raise ValueError("Category distribution must contain at least one category")

        thresholds: List[Tuple[float, StudentCategory]] = []
        proportions = []
        for category, proportion in distribution:
            if proportion < 0:
                raise ValueError(f"Negative proportion {proportion} for category {category}")
            proportions.append(proportion)
            thresholds.append((math.fsum(proportions), StudentCategory(category)))

        if thresholds[-1][0] > 1 + 1e-9:
            raise ValueError(f"Category proportions sum to {thresholds[-1][0]:.4f}, expected <= 1")

        thresholds[-1] = (1.0, thresholds[-1][1])
        self.thresholds = thresholds
        self._bounds = [bound for bound, _ in thresholds]

    @classmethod
    def default(cls) -> "CategoryPartition":
        return cls(Config.CATEGORY_DISTRIBUTION)

    def resolve(self, r: float) -> StudentCategory:
        if not 0 <= r < 1:
            raise ValueError(f"Category draw must lie in [0, 1), got {r}")
        index = bisect.bisect_right(self._bounds, r)
        return self.thresholds[index][1]


class SamplingTermination(str, Enum):
    SATISFIED = "satisfied"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


@dataclass
class SampleResult:
    students: List[Student]
    catchment: Optional[Catchment]
    attempts: int
    requested: int
    termination: SamplingTermination

    @property
    def degraded(self) -> bool:
        return self.termination is SamplingTermination.ATTEMPTS_EXHAUSTED


class PopulationSampler:
    def __init__(self, rng: Optional[np.random.Generator] = None, seed: Optional[int] = None,
                 padding_factor: float = Config.CATCHMENT_PADDING_FACTOR,
                 min_radius_meters: float = Config.MIN_CATCHMENT_RADIUS_METERS,
                 attempt_multiplier: int = Config.SAMPLING_ATTEMPT_MULTIPLIER):
        if rng is None:
            rng = np.random.default_rng(seed if seed is not None else Config.RANDOM_SEED)
        self.rng = rng
        self.padding_factor = padding_factor
        self.min_radius_meters = min_radius_meters
        self.attempt_multiplier = attempt_multiplier

    def reseed(self, seed: Optional[int]) -> None:
        self.rng = np.random.default_rng(seed)

    def catchment_for(self, centres: Sequence[Centre]) -> Catchment:
        """Circle around the centres' centroid, padded and floored at the minimum radius."""
        if not centres:
            raise NoCatchmentError("No centres defined; there is no region to sample students from")

        centre_point = centroid(c.point for c in centres)
        max_distance = max(planar_distance_meters(centre_point, c.point) for c in centres)
        radius = max(max_distance * self.padding_factor, self.min_radius_meters)

        return Catchment(
            centre_lat=centre_point[0],
            centre_lon=centre_point[1],
            radius_meters=radius,
            bounds=bounding_box(centre_point, radius),
        )

    def sample(self, centres: Sequence[Centre], count: int,
               category_distribution: Union[CategoryPartition, DistributionSpec, None] = None) -> SampleResult:
        """Rejection-sample `count` students inside the catchment.

        Sampling stops early once attempts (accepted plus rejected) reach
        attempt_multiplier * count; the result is then marked degraded
        instead of raising.
        """
        catchment = self.catchment_for(centres)
        if count < 0:
            raise ValueError(f"Student count must be non-negative, got {count}")

        partition = self._partition(category_distribution)
        bounds = catchment.bounds
        lat_span = bounds.max_lat - bounds.min_lat
        lon_span = bounds.max_lon - bounds.min_lon

        students: List[Student] = []
        max_attempts = count * self.attempt_multiplier
        attempts = 0

        while len(students) < count and attempts < max_attempts:
            lat = bounds.min_lat + self.rng.random() * lat_span
            lon = bounds.min_lon + self.rng.random() * lon_span
            attempts += 1

            if planar_distance_meters(catchment.centre, (lat, lon)) > catchment.radius_meters:
                continue

            category = partition.resolve(self.rng.random())
            students.append(Student(
                student_id=f"student_{len(students) + 1}",
                lat=lat,
                lon=normalize_longitude(lon),
                category=category,
            ))

        if len(students) < count:
            termination = SamplingTermination.ATTEMPTS_EXHAUSTED
            logger.warning(f"Sampling stopped after {attempts} attempts with {len(students)}/{count} students")
        else:
            termination = SamplingTermination.SATISFIED

        logger.info(
            f"Simulated {len(students)} students within a {catchment.radius_meters:.0f}m radius "
            f"around centre centroid ({catchment.centre_lat:.4f}, {catchment.centre_lon:.4f})"
        )

        return SampleResult(
            students=students,
            catchment=catchment,
            attempts=attempts,
            requested=count,
            termination=termination,
        )

    def generate(self, centres: Sequence[Centre], count: int,
                 category_distribution: Union[CategoryPartition, DistributionSpec, None] = None) -> List[Student]:
        return self.sample(centres, count, category_distribution).students

    def _partition(self, category_distribution) -> CategoryPartition:
        if category_distribution is None:
            return CategoryPartition.default()
        if isinstance(category_distribution, CategoryPartition):
            return category_distribution
        return CategoryPartition(category_distribution)
