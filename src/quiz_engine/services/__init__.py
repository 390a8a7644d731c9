"""Application services."""

from quiz_engine.services.analytics import AnalyticsService, compute_reward_score
from quiz_engine.services.driver import PipelineDriver, StepRunResult, run_pipeline_tick
from quiz_engine.services.job_store import JobStore
from quiz_engine.services.personas import PersonaStore
from quiz_engine.services.refinement import RefinementService

__all__ = [
    "AnalyticsService",
    "JobStore",
    "PersonaStore",
    "PipelineDriver",
    "RefinementService",
    "StepRunResult",
    "compute_reward_score",
    "run_pipeline_tick",
]
