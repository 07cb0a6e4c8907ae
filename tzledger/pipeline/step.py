#!filepath: tzledger/pipeline/step.py
from __future__ import annotations

from tzledger.observability.instrumentation import Instrumentation, NoOpInstrumentation
from tzledger.pipeline.context import PipelineContext


class PipelineStep:
    """
    Pipeline Step 基类

    职责：
      1. orchestration（调用 engine / client / store）
      2. 提供 Step 级时间语义边界

    - Step 本身不进入 timeline，leaf timer 由 Step 内部决定
    - Instrumentation 可选；Step 行为不依赖 inst 是否存在
    """

    stage: str = ""

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self, name: str | None = None):
        """leaf timer，记录到 timeline"""
        return self.inst.timer(name or self.step_name)

    async def run(self, ctx: PipelineContext) -> PipelineContext:
        raise NotImplementedError
