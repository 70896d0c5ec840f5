"""
Stage orchestration with progress reporting.

The orchestrator runs an ordered list of steps, merges each step's fields
into a `PartialResult`, and hands the consumer a full snapshot of every
stage after each transition. The first failing step halts the run.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..core.models.errors import PipelineFailed
from ..core.models.stages import PartialResult, Stage, StageStatus
from ..utils.logging import StageLogger


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[List[Stage]], None]
Reporter = Callable[[str, int], None]
StepRunner = Callable[[PartialResult, Reporter], Awaitable[Dict[str, Any]]]


class PipelineState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineStep:
    """
    One stage of a pipeline.

    `run` receives the accumulated result and a reporter for per-item
    progress, and returns the fields to merge.
    """

    name: str
    running_message: str
    complete_message: Union[str, Callable[[PartialResult], str]]
    run: StepRunner
    running_percentage: int = 30


def _clamp(percentage: int) -> int:
    return max(0, min(100, int(percentage)))


class StageOrchestrator:
    """
    Owns the stage records of one pipeline run.

    Args:
        stage_names: Stage names in execution order
        on_progress: Observer called synchronously with a copy of every stage
        run_id: Identifier used in logs
        pipeline: Pipeline name used in logs
    """

    def __init__(
        self,
        stage_names: Sequence[str],
        on_progress: Optional[ProgressCallback] = None,
        run_id: Optional[str] = None,
        pipeline: Optional[str] = None
    ):
        self.stages: List[Stage] = [Stage(name=name) for name in stage_names]
        self._positions = {name: i for i, name in enumerate(stage_names)}
        self.on_progress = on_progress
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.stage_logger = StageLogger(self.run_id, pipeline)

        self._state = PipelineState.NOT_STARTED
        self.current_stage: Optional[str] = None
        self.failed_stage: Optional[str] = None
        self.error: Optional[Exception] = None

        self._emit()

    @property
    def state(self) -> PipelineState:
        return self._state

    def snapshot(self) -> List[Stage]:
        return [stage.model_copy(deep=True) for stage in self.stages]

    def stage(self, name: str) -> Stage:
        return self.stages[self._positions[name]]

    def _emit(self):
        if self.on_progress is not None:
            self.on_progress(self.snapshot())

    def update(self, name: str, status: StageStatus, message: str, percentage: int):
        """Replace a stage record and notify the observer."""
        position = self._positions.get(name)
        if position is None:
            logger.warning(f"[{self.run_id}] ignoring update for unknown stage '{name}'")
            return
        self.stages[position] = Stage(
            name=name,
            status=status,
            message=message,
            percentage=_clamp(percentage)
        )
        self._emit()

    def report(self, name: str, message: str, percentage: int):
        """Per-item progress for a running stage; never moves backwards."""
        current = self.stage(name)
        percentage = max(current.percentage, _clamp(percentage))
        self.stage_logger.log_stage_progress(name, percentage, message)
        self.update(name, StageStatus.RUNNING, message, percentage)

    async def run(self, steps: Sequence[PipelineStep], partial: Optional[PartialResult] = None) -> PartialResult:
        """
        Run the steps in order.

        Returns:
            The accumulated result with every step's fields merged

        Raises:
            PipelineFailed: A step raised; later steps were not started
        """
        partial = partial if partial is not None else PartialResult()
        self._state = PipelineState.RUNNING

        for step in steps:
            self.current_stage = step.name
            self.update(step.name, StageStatus.RUNNING, step.running_message, step.running_percentage)
            self.stage_logger.log_stage_start(step.name)
            started = time.time()

            def reporter(message: str, percentage: int, _name: str = step.name):
                self.report(_name, message, percentage)

            try:
                fields = await step.run(partial, reporter)
            except Exception as e:
                self.stage_logger.log_stage_error(step.name, e)
                self.update(step.name, StageStatus.ERROR, str(e) or type(e).__name__,
                            self.stage(step.name).percentage)
                self._state = PipelineState.FAILED
                self.failed_stage = step.name
                self.error = e
                raise PipelineFailed(step.name, e) from e

            partial.merge(step.name, fields or {})
            message = step.complete_message(partial) if callable(step.complete_message) else step.complete_message
            self.update(step.name, StageStatus.COMPLETE, message, 100)
            self.stage_logger.log_stage_complete(step.name, time.time() - started)

        self.current_stage = None
        self._state = PipelineState.DONE
        return partial
