"""Workflow milestones gating which backend operations are legal."""
from enum import Enum

from loguru import logger

from core.errors import WorkflowPreconditionError


class WorkflowStage(str, Enum):
    EMPTY = "empty"
    CENTRES_DEFINED = "centres_defined"
    GRAPH_BUILT = "graph_built"
    STUDENTS_READY = "students_ready"
    ALLOTMENT_READY = "allotment_ready"


class WorkflowState:
    """Milestone flags for the current data set.

    graph_built and has_students are independent; an allotment needs both.
    Invariant: has_assignments implies graph_built and has_students.
    """

    def __init__(self):
        self.has_centres = False
        self.graph_built = False
        self.has_students = False
        self.has_assignments = False

    @property
    def stage(self) -> WorkflowStage:
        if self.has_assignments:
            return WorkflowStage.ALLOTMENT_READY
        if self.has_students:
            return WorkflowStage.STUDENTS_READY
        if self.graph_built:
            return WorkflowStage.GRAPH_BUILT
        if self.has_centres:
            return WorkflowStage.CENTRES_DEFINED
        return WorkflowStage.EMPTY

    def can_build_graph(self) -> bool:
        return self.has_centres

    def can_simulate(self) -> bool:
        return self.has_centres

    def can_run_allotment(self) -> bool:
        return self.graph_built and self.has_students

    def can_show_path(self) -> bool:
        return self.has_assignments

    def require_build_graph(self) -> None:
        if not self.can_build_graph():
            raise WorkflowPreconditionError("build graph", "add at least one test centre first")

    def require_simulate(self) -> None:
        if not self.can_simulate():
            raise WorkflowPreconditionError("simulate students", "add at least one test centre first")

    def require_run_allotment(self) -> None:
        if not self.graph_built:
            raise WorkflowPreconditionError("run allotment", "build the graph first")
        if not self.has_students:
            raise WorkflowPreconditionError("run allotment", "simulate students first")

    def require_show_path(self) -> None:
        if not self.can_show_path():
            raise WorkflowPreconditionError("show path", "run the allotment first")

    def mark_centres_defined(self) -> None:
        self.has_centres = True

    def mark_graph_built(self) -> None:
        self.require_build_graph()
        self.graph_built = True
        logger.debug(f"Workflow stage: {self.stage.value}")

    def mark_students_ready(self, has_students: bool = True) -> None:
        """Record a new population; any previous allotment refers to the old one."""
        self.require_simulate()
        self.has_students = has_students
        self.has_assignments = False
        logger.debug(f"Workflow stage: {self.stage.value}")

    def mark_allotment_ready(self) -> None:
        self.require_run_allotment()
        self.has_assignments = True
        logger.debug(f"Workflow stage: {self.stage.value}")

    def reset(self) -> None:
        self.has_centres = False
        self.graph_built = False
        self.has_students = False
        self.has_assignments = False

    def to_payload(self) -> dict:
        return {
            'stage': self.stage.value,
            'graph_built': self.graph_built,
            'has_students': self.has_students,
            'has_assignments': self.has_assignments,
            'can_build_graph': self.can_build_graph(),
            'can_simulate': self.can_simulate(),
            'can_run_allotment': self.can_run_allotment(),
            'can_show_path': self.can_show_path(),
        }
