#!filepath: tzledger/pipeline/pipeline.py
from __future__ import annotations

import asyncio

from tzledger.observability.instrumentation import Instrumentation
from tzledger.pipeline.context import PipelineContext
from tzledger.pipeline.step import PipelineStep
from tzledger.utils.errors import PipelineAbort
from tzledger.utils.filesystem import FileSystem
from tzledger.utils.logger import logs

__all__ = ["DataPipeline", "PipelineAbort"]


class DataPipeline:
    """
    DataPipeline = 调度器

    - 按顺序执行 Step（同一个事件循环）
    - Step 内部可以并发（asyncio.gather），Step 之间严格串行：
      下游 Step 开始时，上游的所有请求都已完成
    - PipelineAbort → 记录原因并停止；其他异常原样抛出
    """

    def __init__(self, steps: list[PipelineStep], inst: Instrumentation):
        self.steps = steps
        self.inst = inst

    async def run_async(self, ctx: PipelineContext) -> PipelineContext:
        logs.info(f"[Pipeline] ====== START {ctx.label} ======")
        FileSystem.ensure_dir(ctx.data_dir)

        for step in self.steps:
            logs.info(f"[Pipeline] -> {step.step_name}")
            try:
                ctx = await step.run(ctx)
            except PipelineAbort as e:
                ctx.abort_pipeline = True
                ctx.abort_reason = str(e)
                logs.warning(f"[Pipeline] aborted at {step.step_name}: {e}")
                break
            logs.info(f"[Pipeline] <- {step.step_name} done")

        self.inst.generate_timeline_report(ctx.label)
        logs.info(f"[Pipeline] ====== END {ctx.label} ======")
        return ctx

    def run(self, ctx: PipelineContext) -> PipelineContext:
        return asyncio.run(self.run_async(ctx))
