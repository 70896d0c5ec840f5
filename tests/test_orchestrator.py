"""
Tests for stage orchestration and progress reporting.
"""

import pytest

from edbox.core.models.errors import BackendError, ErrorKind, PipelineFailed
from edbox.core.models.stages import PartialResult, StageStatus
from edbox.pipeline.orchestrator import PipelineState, PipelineStep, StageOrchestrator


def _returning(fields):
    async def run(partial, report):
        return fields
    return run


def _failing(error):
    async def run(partial, report):
        raise error
    return run


class TestStageOrchestrator:
    def test_initial_snapshot_is_emitted(self, progress_log):
        StageOrchestrator(["A", "B"], progress_log.append)

        assert len(progress_log) == 1
        assert [s.status for s in progress_log[0]] == [StageStatus.PENDING, StageStatus.PENDING]
        assert progress_log[0][0].message == "Waiting to start..."

    def test_unknown_stage_update_is_ignored(self, progress_log):
        orchestrator = StageOrchestrator(["A"], progress_log.append)
        orchestrator.update("Z", StageStatus.RUNNING, "nope", 50)

        assert len(progress_log) == 1
        assert orchestrator.stage("A").status == StageStatus.PENDING

    def test_update_clamps_percentage(self):
        orchestrator = StageOrchestrator(["A"])
        orchestrator.update("A", StageStatus.RUNNING, "going", 150)
        assert orchestrator.stage("A").percentage == 100
        orchestrator.update("A", StageStatus.RUNNING, "going", -5)
        assert orchestrator.stage("A").percentage == 0

    def test_report_never_moves_backwards(self):
        orchestrator = StageOrchestrator(["A"])
        orchestrator.report("A", "item 2", 50)
        orchestrator.report("A", "item 1 again", 25)

        stage = orchestrator.stage("A")
        assert stage.percentage == 50
        assert stage.message == "item 1 again"

    def test_snapshots_are_copies(self, progress_log):
        orchestrator = StageOrchestrator(["A"], progress_log.append)
        snapshot = orchestrator.snapshot()
        snapshot[0].message = "changed"
        assert orchestrator.stage("A").message == "Waiting to start..."


@pytest.mark.asyncio
class TestOrchestratorRun:
    async def test_successful_run_merges_fields(self, progress_log):
        orchestrator = StageOrchestrator(["A", "B"], progress_log.append)
        steps = [
            PipelineStep("A", "A running", lambda p: f"A got {p['x']}", _returning({"x": 1})),
            PipelineStep("B", "B running", "B done", _returning({"y": 2})),
        ]

        partial = await orchestrator.run(steps)

        assert partial.fields == {"x": 1, "y": 2}
        assert partial.completed_stages == ["A", "B"]
        assert orchestrator.state == PipelineState.DONE

        final = progress_log[-1]
        assert [s.status for s in final] == [StageStatus.COMPLETE, StageStatus.COMPLETE]
        assert [s.percentage for s in final] == [100, 100]
        assert final[0].message == "A got 1"

    async def test_running_snapshot_precedes_completion(self, progress_log):
        orchestrator = StageOrchestrator(["A"], progress_log.append)
        await orchestrator.run([PipelineStep("A", "A running", "A done", _returning({}), running_percentage=30)])

        statuses = [(s[0].status, s[0].percentage) for s in progress_log]
        assert statuses == [
            (StageStatus.PENDING, 0),
            (StageStatus.RUNNING, 30),
            (StageStatus.COMPLETE, 100),
        ]

    async def test_seed_partial_is_extended(self):
        orchestrator = StageOrchestrator(["A"])
        seed = PartialResult(fields={"format": "Mastery Ladder"})
        partial = await orchestrator.run([PipelineStep("A", "r", "c", _returning({"x": 1}))], seed)
        assert partial.fields == {"format": "Mastery Ladder", "x": 1}

    async def test_failure_short_circuits(self, progress_log):
        calls = []

        async def later(partial, report):
            calls.append("C")
            return {}

        cause = BackendError("quota exhausted", ErrorKind.QUOTA)
        orchestrator = StageOrchestrator(["A", "B", "C"], progress_log.append)
        steps = [
            PipelineStep("A", "r", "c", _returning({"x": 1})),
            PipelineStep("B", "r", "c", _failing(cause)),
            PipelineStep("C", "r", "c", later),
        ]

        with pytest.raises(PipelineFailed) as exc_info:
            await orchestrator.run(steps)

        assert exc_info.value.failed_stage == "B"
        assert exc_info.value.cause is cause
        assert calls == []
        assert orchestrator.state == PipelineState.FAILED
        assert orchestrator.failed_stage == "B"

        final = progress_log[-1]
        assert final[0].status == StageStatus.COMPLETE
        assert final[1].status == StageStatus.ERROR
        assert final[1].message == "quota exhausted"
        assert final[1].percentage == 30
        assert final[2].status == StageStatus.PENDING

    async def test_per_item_progress_reaches_observer(self, progress_log):
        async def items(partial, report):
            for i in range(1, 5):
                report(f"item {i}/4", i * 25)
            return {}

        orchestrator = StageOrchestrator(["A"], progress_log.append)
        await orchestrator.run([PipelineStep("A", "r", "c", items, running_percentage=0)])

        running = [s[0] for s in progress_log if s[0].status == StageStatus.RUNNING]
        assert [s.percentage for s in running] == [0, 25, 50, 75, 100]
        assert running[-1].message == "item 4/4"
