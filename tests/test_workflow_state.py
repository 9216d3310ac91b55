"""Tests for workflow milestone gating."""
import pytest
from core.errors import WorkflowPreconditionError
from core.workflow_state import WorkflowStage, WorkflowState


class TestWorkflowState:
    def setup_method(self):
        self.state = WorkflowState()

    def test_starts_empty(self):
        assert self.state.stage is WorkflowStage.EMPTY
        assert not self.state.can_build_graph()
        assert not self.state.can_simulate()
        assert not self.state.can_run_allotment()
        assert not self.state.can_show_path()

    def test_centres_enable_graph_and_simulation(self):
        self.state.mark_centres_defined()
        assert self.state.stage is WorkflowStage.CENTRES_DEFINED
        assert self.state.can_build_graph()
        assert self.state.can_simulate()
        assert not self.state.can_run_allotment()

    def test_graph_requires_centres(self):
        with pytest.raises(WorkflowPreconditionError) as exc_info:
            self.state.mark_graph_built()
        assert "test centre" in str(exc_info.value)
        assert not self.state.graph_built

    def test_allotment_needs_graph_and_students(self):
        self.state.mark_centres_defined()
        self.state.mark_students_ready()
        assert self.state.stage is WorkflowStage.STUDENTS_READY
        assert not self.state.can_run_allotment()

        with pytest.raises(WorkflowPreconditionError, match="build the graph"):
            self.state.mark_allotment_ready()

        self.state.mark_graph_built()
        assert self.state.can_run_allotment()

    def test_students_without_graph_named_in_error(self):
        self.state.mark_centres_defined()
        self.state.mark_graph_built()
        with pytest.raises(WorkflowPreconditionError, match="simulate students"):
            self.state.require_run_allotment()

    def test_graph_and_students_in_either_order(self):
        self.state.mark_centres_defined()
        self.state.mark_graph_built()
        assert self.state.stage is WorkflowStage.GRAPH_BUILT
        self.state.mark_students_ready()
        self.state.mark_allotment_ready()
        assert self.state.stage is WorkflowStage.ALLOTMENT_READY
        assert self.state.can_show_path()

    def test_new_population_drops_assignments(self):
        self.state.mark_centres_defined()
        self.state.mark_graph_built()
        self.state.mark_students_ready()
        self.state.mark_allotment_ready()

        self.state.mark_students_ready()
        assert not self.state.has_assignments
        assert self.state.graph_built
        assert not self.state.can_show_path()

    def test_reset_clears_everything(self):
        self.state.mark_centres_defined()
        self.state.mark_graph_built()
        self.state.mark_students_ready()
        self.state.mark_allotment_ready()

        self.state.reset()
        assert self.state.stage is WorkflowStage.EMPTY
        assert not self.state.can_run_allotment()
        assert not self.state.can_show_path()

    def test_assignments_imply_graph_and_students(self):
        self.state.mark_centres_defined()
        self.state.mark_graph_built()
        self.state.mark_students_ready()
        self.state.mark_allotment_ready()
        assert self.state.has_assignments
        assert self.state.graph_built and self.state.has_students

    def test_payload_lists_guards(self):
        payload = self.state.to_payload()
        assert payload['stage'] == 'empty'
        assert payload['can_run_allotment'] is False
