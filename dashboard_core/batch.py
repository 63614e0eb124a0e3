"""
Sequential execution of an agent's tool-call batch with per-step status.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, List, Optional

from pydantic import BaseModel

from dashboard_core.executor import ToolExecutor
from dashboard_core.tools import ToolCall, ToolResult

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    ERROR = "error"


class BatchStep(BaseModel):
    call: ToolCall
    status: StepStatus = StepStatus.PENDING
    result: Optional[ToolResult] = None


ProgressCallback = Callable[[List[BatchStep]], None]


class BatchRunner:
    """
    Runs calls strictly in order: each step's effects are applied before the
    next begins. A failed step is marked ``error`` and the batch continues.
    """

    def __init__(self, executor: ToolExecutor, step_delay: float = 0.0):
        self.executor = executor
        self.step_delay = step_delay

    async def run(self, calls: List[ToolCall], on_progress: Optional[ProgressCallback] = None) -> List[BatchStep]:
        steps = [BatchStep(call=call) for call in calls]
        self._notify(on_progress, steps)

        for step in steps:
            step.status = StepStatus.RUNNING
            self._notify(on_progress, steps)
            if self.step_delay > 0:
                await asyncio.sleep(self.step_delay)

            try:
                result = await self.executor.execute(step.call)
            except Exception as e:
                logger.error(f"[{step.call.name}] Unexpected failure: {e}", exc_info=True)
                result = ToolResult(success=False, error=str(e))

            step.result = result
            step.status = StepStatus.DONE if result.success else StepStatus.ERROR
            self._notify(on_progress, steps)

        failed = sum(1 for s in steps if s.status == StepStatus.ERROR)
        logger.info(f"Batch finished: {len(steps) - failed}/{len(steps)} steps succeeded")
        return steps

    @staticmethod
    def _notify(on_progress: Optional[ProgressCallback], steps: List[BatchStep]):
        if on_progress is None:
            return
        try:
            on_progress(steps)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")


def is_complete(steps: List[BatchStep]) -> bool:
    return bool(steps) and all(s.status in (StepStatus.DONE, StepStatus.ERROR) for s in steps)
