"""Sequential, fail-fast execution of the build pipeline."""
from enum import Enum
import os
import time
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from calculator_site.common.exceptions import PipelineError, StageFailedError
from calculator_site.common.logger import logger
from calculator_site.pipeline.stages import CommandRunner, PipelineConfig, Stage, default_stages


class StageStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class StageResult(BaseModel):
    """Outcome of one stage."""

    name: str
    status: StageStatus
    returncode: Optional[int] = None
    duration: float = Field(default=0.0, ge=0.0, description="Wall clock time in seconds")
    message: str = ""


class PipelineResult(BaseModel):
    """Outcome of a pipeline run, one entry per stage in execution order."""

    stages: List[StageResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(stage.status == StageStatus.SUCCESS for stage in self.stages)

    @property
    def failed_stage(self) -> Optional[StageResult]:
        """First stage that failed, if any."""
        return next((stage for stage in self.stages if stage.status == StageStatus.FAILED), None)


class Pipeline(BaseModel):
    """
    Build pipeline running its stages strictly in order.

    Lifecycle:
        - Each stage starts only after the previous one succeeded
        - The first failing stage stops the run; later stages are reported as skipped
        - Nothing is retried
    """

    # Allow arbitrary types like CommandRunner and Stage
    model_config = ConfigDict(arbitrary_types_allowed=True)

    config: PipelineConfig
    runner: CommandRunner = Field(default_factory=CommandRunner, description="Executes external commands")
    stages: List[Stage] = Field(default_factory=default_stages, description="Stages in execution order")
    environ: Optional[Dict[str, str]] = Field(
        default=None, description="Environment used to resolve credentials (defaults to os.environ)"
    )

    def run(self) -> PipelineResult:
        """
        Run every stage until one fails.

        :return: Per-stage results
        :rtype: PipelineResult
        """
        environ = dict(os.environ) if self.environ is None else self.environ
        results: List[StageResult] = []
        failed = False

        logger.info(f"🚀 Pipeline started for {self.config.image_ref}")

        for stage in self.stages:
            if failed:
                logger.info(f"⏭️ Stage skipped: {stage.name}")
                results.append(StageResult(name=stage.name, status=StageStatus.SKIPPED))
                continue

            logger.info(f"🚧 Stage started: {stage.name}")
            start = time.monotonic()
            try:
                outcome = stage.run(self.config, self.runner, environ)
            except PipelineError as exc:
                failed = True
                returncode = exc.returncode if isinstance(exc, StageFailedError) else None
                logger.error(f"🚧❌ Stage failed: {stage.name}: {exc}")
                results.append(
                    StageResult(
                        name=stage.name,
                        status=StageStatus.FAILED,
                        returncode=returncode,
                        duration=time.monotonic() - start,
                        message=str(exc),
                    )
                )
                continue

            logger.info(f"🚧✅ Stage finished: {stage.name}")
            results.append(
                StageResult(
                    name=stage.name,
                    status=StageStatus.SUCCESS,
                    returncode=outcome.returncode,
                    duration=time.monotonic() - start,
                )
            )

        result = PipelineResult(stages=results)
        if result.succeeded:
            logger.info(f"🚀✅ Pipeline succeeded, pushed {self.config.image_ref}")
        elif result.failed_stage is not None:
            logger.error(f"🚀❌ Pipeline failed at stage {result.failed_stage.name}")
        return result
