"""Orchestrates backend calls and applies their results to the session."""
import asyncio
from typing import Dict, Optional, Any

from loguru import logger

from core.errors import BackendError, StaleResponseError, WorkflowPreconditionError
from core.session import AllotmentSession
from models.entities import AllotmentResult, BoundingBox, GraphBuildResult, PathResult
from services.backend_client import AllotmentBackendClient


class AllotmentWorkflow:
    """Blocking backend calls run in worker threads; session updates stay on the caller's thread."""

    def __init__(self, session: AllotmentSession, client: AllotmentBackendClient):
        self.session = session
        self.client = client

    async def build_graph(self, bounds: Optional[BoundingBox] = None,
                          graph_detail: Optional[str] = None) -> Optional[GraphBuildResult]:
        """Build the road graph; defaults to the centres' catchment box.

        Returns None when a newer request superseded this one.
        """
        self.session.state.require_build_graph()
        bounds = bounds or self.session.catchment().bounds
        centres = list(self.session.centres)

        ticket = self.session.begin(AllotmentSession.BUILD_GRAPH)
        result = await asyncio.to_thread(self.client.build_graph, bounds, centres, graph_detail)

        try:
            self.session.apply_graph_built(ticket, result)
        except StaleResponseError as e:
            logger.warning(str(e))
            return None
        return result

    async def run_allotment(self) -> Optional[AllotmentResult]:
        self.session.state.require_run_allotment()
        students = list(self.session.students)

        ticket = self.session.begin(AllotmentSession.RUN_ALLOTMENT)
        result = await asyncio.to_thread(self.client.run_allotment, students)

        try:
            self.session.apply_allotment(ticket, result)
        except StaleResponseError as e:
            logger.warning(str(e))
            return None
        return result

    async def show_path(self, student_id: str) -> PathResult:
        """Shortest path from a student to the centre it was assigned to."""
        self.session.state.require_show_path()

        student = self.session.find_student(student_id)
        if student is None:
            raise KeyError(student_id)
        centre_id = self.session.assignments.get(student_id)
        if centre_id is None:
            raise WorkflowPreconditionError("show path", f"{student_id} has no recorded assignment")
        centre = self.session.find_centre(centre_id)

        points = await asyncio.to_thread(self.client.get_path, student.point, centre.point)
        if not points:
            raise BackendError('get path', f"No path found between {student_id} and {centre_id}")

        logger.info(f"Path found with {len(points)} points")
        return PathResult(student_id=student_id, centre_id=centre_id, points=points)

    async def export_diagnostics(self) -> Dict[str, Any]:
        self.session.state.require_show_path()
        report = await asyncio.to_thread(self.client.export_diagnostics)
        logger.success("Diagnostic report received")
        return report

    async def run_parallel_dijkstra(self) -> Dict[str, Any]:
        if not self.session.state.graph_built:
            raise WorkflowPreconditionError("run parallel dijkstra", "build the graph first")
        report = await asyncio.to_thread(self.client.run_parallel_dijkstra)
        logger.info(f"Parallel Dijkstra processed {report.get('centres_processed', 0)} centres")
        return report
