"""Session holding centres, students, allotment results and workflow milestones."""
from typing import Dict, List, Optional, Any

from loguru import logger

from allotment.diagnostics_merger import AssignmentDiagnosticsMerger
from core.errors import DanglingReferenceError, StaleResponseError
from core.workflow_state import WorkflowState
from models.entities import AllotmentResult, Catchment, Centre, GraphBuildResult, Student, StudentCategory
from models.view_models import StudentView
from simulation.population_sampler import PopulationSampler, SampleResult


class RequestSequencer:
    """Monotonic tickets per operation; only the newest ticket may apply."""

    def __init__(self):
        self._counter = 0
        self._latest: Dict[str, int] = {}

    def issue(self, operation: str) -> int:
        self._counter += 1
        self._latest[operation] = self._counter
        return self._counter

    def check(self, operation: str, ticket: int) -> None:
        latest = self._latest.get(operation)
        if latest != ticket:
            raise StaleResponseError(operation, ticket, latest if latest is not None else -1)

    def invalidate(self, operation: str) -> None:
        """Make the outstanding ticket for one operation stale."""
        self._latest.pop(operation, None)

    def invalidate_all(self) -> None:
        """Make every outstanding ticket stale."""
        self._latest.clear()


class AllotmentSession:
    """Single owned session; collections are replaced wholesale, never patched."""

    BUILD_GRAPH = "build_graph"
    RUN_ALLOTMENT = "run_allotment"

    def __init__(self, sampler: Optional[PopulationSampler] = None,
                 merger: Optional[AssignmentDiagnosticsMerger] = None):
        self.sampler = sampler or PopulationSampler()
        self.merger = merger or AssignmentDiagnosticsMerger()
        self.state = WorkflowState()
        self.sequencer = RequestSequencer()

        self.centres: List[Centre] = []
        self.students: List[Student] = []
        self.assignments: Dict[str, str] = {}
        self.travel_matrix: Optional[Dict[str, Dict[str, Any]]] = None
        self.last_sample: Optional[SampleResult] = None
        self.last_graph: Optional[GraphBuildResult] = None

    # Centres

    def add_centre(self, lat: float, lon: float, max_capacity: int,
                   has_wheelchair_access: bool = False, is_female_only: bool = False) -> Centre:
        if max_capacity < 0:
            raise ValueError(f"max_capacity must be non-negative, got {max_capacity}")

        centre = Centre(
            centre_id=f"centre_{len(self.centres) + 1}",
            lat=lat,
            lon=lon,
            max_capacity=max_capacity,
            has_wheelchair_access=has_wheelchair_access,
            is_female_only=is_female_only,
        )
        self.centres = self.centres + [centre]
        self.state.mark_centres_defined()

        logger.info(f"Added {centre.centre_id} at [{lat}, {lon}]")
        return centre

    def clear_centres(self) -> None:
        """Drop centres and everything computed from them."""
        self.centres = []
        self.students = []
        self.assignments = {}
        self.travel_matrix = None
        self.last_sample = None
        self.last_graph = None
        self.state.reset()
        self.sequencer.invalidate_all()
        logger.info("Cleared all centres")

    def find_centre(self, centre_id: str) -> Optional[Centre]:
        return next((c for c in self.centres if c.centre_id == centre_id), None)

    def catchment(self) -> Catchment:
        return self.sampler.catchment_for(self.centres)

    # Students

    def simulate_students(self, count: int, distribution=None) -> SampleResult:
        self.state.require_simulate()
        result = self.sampler.sample(self.centres, count, distribution)

        self.students = list(result.students)
        self.assignments = {}
        self.travel_matrix = None
        self.last_sample = result
        self.state.mark_students_ready(bool(self.students))
        self.sequencer.invalidate(self.RUN_ALLOTMENT)
        return result

    def find_student(self, student_id: str) -> Optional[Student]:
        return next((s for s in self.students if s.student_id == student_id), None)

    # Backend results

    def begin(self, operation: str) -> int:
        return self.sequencer.issue(operation)

    def apply_graph_built(self, ticket: int, result: GraphBuildResult) -> None:
        self.sequencer.check(self.BUILD_GRAPH, ticket)
        self.state.mark_graph_built()
        self.last_graph = result
        logger.success(f"Graph built: {result.nodes_count} nodes, {result.edges_count} edges")

    def apply_allotment(self, ticket: int, result: AllotmentResult) -> None:
        """Adopt an allotment result, or reject it whole if it references unknown entities."""
        self.sequencer.check(self.RUN_ALLOTMENT, ticket)
        self.state.require_run_allotment()
        self._validate_assignments(result.assignments)

        self.assignments = dict(result.assignments)
        self.travel_matrix = result.travel_matrix
        self.state.mark_allotment_ready()
        logger.success(f"Allotment complete: {result.assigned_count} students assigned to centres")

    def _validate_assignments(self, assignments: Dict[str, str]) -> None:
        student_ids = {s.student_id for s in self.students}
        centre_ids = {c.centre_id for c in self.centres}
        for student_id, centre_id in assignments.items():
            if student_id not in student_ids:
                raise DanglingReferenceError(student_id, centre_id, reason=f"unknown student {student_id}")
            if centre_id not in centre_ids:
                raise DanglingReferenceError(student_id, centre_id, reason=f"unknown centre {centre_id}")

    # Views

    def student_views(self) -> List[StudentView]:
        return self.merger.merge(self.students, self.centres, self.assignments, self.travel_matrix)

    def stats(self) -> Dict[str, int]:
        counts = {category: 0 for category in StudentCategory}
        for student in self.students:
            counts[student.category] += 1

        return {
            'centres': len(self.centres),
            'students': len(self.students),
            'assigned': len(self.assignments),
            'pwd': counts[StudentCategory.PWD],
            'female': counts[StudentCategory.FEMALE],
            'general': counts[StudentCategory.MALE],
        }
