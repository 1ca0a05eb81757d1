"""
Тесты для сущности ExecutionRun.
"""

import pytest

from workflow_engine.core.errors import ValidationError
from workflow_engine.domain.execution_context.entities import ExecutionRun
from workflow_engine.domain.execution_context.value_objects import ExecutionPhase, ExecutionState
from workflow_engine.domain.model_context.value_objects import NodeStatus


@pytest.fixture
def run():
    return ExecutionRun.start_new("model-1", "alice", ["input", "process", "output"])


class TestExecutionRunState:
    """Тесты состояний запуска"""

    def test_new_run_is_initializing(self, run):
        assert run.state == ExecutionState.INITIALIZING
        assert run.id.startswith("run-")
        assert run.node_status("process") == NodeStatus.IDLE

    def test_running_sets_started_at(self, run):
        run.transition_to(ExecutionState.RUNNING)

        assert run.started_at is not None
        assert run.finished_at is None

    def test_recovering_counts(self, run):
        """Тест: каждый переход в recovering увеличивает recovery_count"""
        run.transition_to(ExecutionState.RUNNING)
        run.transition_to(ExecutionState.RECOVERING)
        run.transition_to(ExecutionState.RUNNING)
        run.transition_to(ExecutionState.RECOVERING)

        assert run.recovery_count == 2

    def test_terminal_state_is_final(self, run):
        """Тест: из терминального состояния выйти нельзя"""
        run.transition_to(ExecutionState.RUNNING)
        run.transition_to(ExecutionState.CANCELLED)

        assert run.is_terminal
        assert run.finished_at is not None
        with pytest.raises(ValidationError):
            run.transition_to(ExecutionState.RUNNING)

    def test_pause_requires_running(self, run):
        with pytest.raises(ValidationError):
            run.transition_to(ExecutionState.PAUSED)

    def test_same_state_is_noop(self, run):
        run.transition_to(ExecutionState.INITIALIZING)

        assert run.state == ExecutionState.INITIALIZING


class TestExecutionRunProgress:
    """Тесты фаз и прогресса"""

    def test_progress_follows_completed_phases(self, run):
        assert run.progress_percentage == 0

        run.complete_phase(ExecutionPhase.DEPENDENCY_ANALYSIS)
        run.complete_phase(ExecutionPhase.CONTEXT_SETUP)

        assert run.progress_percentage == 40

    def test_phase_attempts_and_retries(self, run):
        assert run.begin_phase_attempt(ExecutionPhase.NODE_EXECUTION) == 1
        run.record_phase_retry(ExecutionPhase.NODE_EXECUTION)
        assert run.begin_phase_attempt(ExecutionPhase.NODE_EXECUTION) == 2

        assert run.current_phase == ExecutionPhase.NODE_EXECUTION
        assert run.retry_count(ExecutionPhase.NODE_EXECUTION) == 1

    def test_skip_unfinished_nodes(self, run):
        """Тест: незавершенные узлы помечаются пропущенными"""
        run.set_node_status("input", NodeStatus.COMPLETED)
        run.set_node_status("process", NodeStatus.FAILED)

        run.skip_unfinished_nodes()

        assert run.skipped_nodes == {"output"}
        assert run.completed_nodes == ["input"]
        assert run.failed_nodes == ["process"]

    def test_to_dict(self, run):
        run.transition_to(ExecutionState.RUNNING)
        run.complete_phase(ExecutionPhase.DEPENDENCY_ANALYSIS)

        data = run.to_dict()

        assert data["state"] == "running"
        assert data["completed_phases"] == ["dependency-analysis"]
        assert data["depth"] == 0
