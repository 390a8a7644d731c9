"""Celery job definitions."""

from quiz_engine.jobs.tasks import (
    collect_analytics_task,
    pipeline_tick_task,
    refresh_analytics_task,
    run_refinement_task,
    run_step_task,
)

__all__ = [
    "collect_analytics_task",
    "pipeline_tick_task",
    "refresh_analytics_task",
    "run_refinement_task",
    "run_step_task",
]
