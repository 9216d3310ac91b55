"""Merge allotment results and travel-time diagnostics into per-student views."""
import math
from collections.abc import Mapping
from numbers import Real
from typing import Dict, List, Optional, Sequence, Any

import pandas as pd
from loguru import logger

from configurations.config import Config
from core.errors import DanglingReferenceError
from models.entities import Centre, Student
from models.view_models import AssignmentStatus, CentreTravelTime, StudentView, TravelStatus


class MalformedCellError(ValueError):
    """A travel-time cell holds something that is not a travel time."""


class AssignmentDiagnosticsMerger:
    def __init__(self, unreachable_threshold: float = Config.UNREACHABLE_TRAVEL_TIME_SECONDS):
        self.unreachable_threshold = unreachable_threshold

    def classify(self, centre_id: str, value: Any) -> CentreTravelTime:
        """Classify one matrix cell.

        None means the cell was never computed. Infinity or anything at or
        above the threshold means no route exists; backends emit either form.
        """
        if value is None:
            return CentreTravelTime(centre_id, TravelStatus.MISSING)
        if isinstance(value, bool) or not isinstance(value, Real):
            raise MalformedCellError(f"Non-numeric travel time {value!r}")

        seconds = float(value)
        if math.isnan(seconds):
            raise MalformedCellError("Travel time is NaN")
        if math.isinf(seconds) and seconds > 0:
            return CentreTravelTime(centre_id, TravelStatus.UNREACHABLE)
        if seconds < 0:
            raise MalformedCellError(f"Negative travel time {seconds}")
        if seconds >= self.unreachable_threshold:
            return CentreTravelTime(centre_id, TravelStatus.UNREACHABLE)

        return CentreTravelTime(centre_id, TravelStatus.KNOWN, seconds)

    def merge(self, students: Sequence[Student], centres: Sequence[Centre],
              assignments: Dict[str, str],
              travel_matrix: Optional[Dict[str, Dict[str, Any]]] = None) -> List[StudentView]:
        """Build one view per student, in student order.

        A dangling assignment raises DanglingReferenceError. Bad diagnostic
        cells are skipped and reported as MISSING.
        """
        centres_by_id = {centre.centre_id: centre for centre in centres}
        skipped_cells = 0
        views = []

        for student in students:
            centre_id = assignments.get(student.student_id)
            if centre_id is not None:
                if centre_id not in centres_by_id:
                    raise DanglingReferenceError(student.student_id, centre_id)
                status = AssignmentStatus.ASSIGNED
            else:
                status = AssignmentStatus.UNASSIGNED

            travel_times = None
            if travel_matrix is not None:
                travel_times, skipped = self._travel_rows(student.student_id, centres, travel_matrix)
                skipped_cells += skipped

            views.append(StudentView(
                student=student,
                status=status,
                centre_id=centre_id,
                travel_times=travel_times,
            ))

        if travel_matrix is not None:
            unknown_ids = set(travel_matrix) - {student.student_id for student in students}
            if unknown_ids:
                logger.warning(f"Ignored diagnostics for {len(unknown_ids)} unknown students")
        if skipped_cells:
            logger.warning(f"Skipped {skipped_cells} malformed travel-time cells")

        return views

    def _travel_rows(self, student_id: str, centres: Sequence[Centre],
                     travel_matrix: Dict[str, Dict[str, Any]]):
        row = travel_matrix.get(student_id)
        skipped = 0

        if row is None:
            row = {}
        elif not isinstance(row, Mapping):
            logger.warning(f"Diagnostics row for {student_id} is not a mapping; skipping it")
            row = {}
            skipped += 1

        rows = []
        for centre in centres:
            try:
                rows.append(self.classify(centre.centre_id, row.get(centre.centre_id)))
            except MalformedCellError as e:
                logger.debug(f"Skipping cell {student_id}/{centre.centre_id}: {e}")
                rows.append(CentreTravelTime(centre.centre_id, TravelStatus.MISSING))
                skipped += 1

        return rows, skipped

    def summarize(self, views: Sequence[StudentView], centres: Sequence[Centre]) -> pd.DataFrame:
        """One row per centre with its load and capacity utilization."""
        loads = {centre.centre_id: 0 for centre in centres}
        for view in views:
            if view.is_assigned:
                loads[view.centre_id] = loads.get(view.centre_id, 0) + 1

        summary_data = []
        for centre in centres:
            assigned = loads[centre.centre_id]
            summary_data.append({
                'centre_id': centre.centre_id,
                'assigned': assigned,
                'max_capacity': centre.max_capacity,
                'utilization': assigned / centre.max_capacity if centre.max_capacity else 0.0,
            })

        summary_df = pd.DataFrame(summary_data, columns=['centre_id', 'assigned', 'max_capacity', 'utilization'])
        unassigned = sum(1 for view in views if not view.is_assigned)
        logger.info(f"Summarized {len(summary_data)} centres, {unassigned} students unassigned")
        return summary_df

    def over_capacity(self, views: Sequence[StudentView], centres: Sequence[Centre]) -> List[str]:
        """Centres holding more students than their max_capacity."""
        summary_df = self.summarize(views, centres)
        over = summary_df[summary_df['assigned'] > summary_df['max_capacity']]
        if len(over):
            logger.error(f"Capacity exceeded at {len(over)} centres")
        return over['centre_id'].tolist()
