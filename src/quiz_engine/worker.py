"""Celery worker configuration."""

from celery import Celery

from quiz_engine.config import settings
from quiz_engine.logging import setup_logging

# Setup logging before anything else
setup_logging()

# Create Celery app
celery_app = Celery(
    "quiz_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=600,  # 10 minutes max
    task_soft_time_limit=540,  # 9 minutes soft limit
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Result backend
    result_expires=86400,  # 24 hours
    # Task routing
    task_routes={
        "pipeline.run_step": {"queue": "high"},
        "pipeline.tick": {"queue": "high"},
        "analytics.collect": {"queue": "low"},
        "analytics.refresh": {"queue": "low"},
        "refinement.run": {"queue": "learning"},
    },
    # Beat scheduler (one bounded batch per trigger)
    beat_schedule={
        "generate-content-5m": {
            "task": "pipeline.run_step",
            "schedule": 300.0,  # 5 minutes
            "args": (1,),
            "options": {"queue": "high"},
        },
        "render-frames-5m": {
            "task": "pipeline.run_step",
            "schedule": 300.0,
            "args": (2,),
            "options": {"queue": "high"},
        },
        "assemble-video-5m": {
            "task": "pipeline.run_step",
            "schedule": 300.0,
            "args": (3,),
            "options": {"queue": "high"},
        },
        "publish-video-15m": {
            "task": "pipeline.run_step",
            "schedule": 900.0,  # 15 minutes
            "args": (4,),
            "options": {"queue": "high"},
        },
        # Analytics collection - every 6 hours
        "collect-analytics-6h": {
            "task": "analytics.collect",
            "schedule": 21600.0,
            "args": (),
            "options": {"queue": "low"},
        },
        # Content refinement - daily
        "refine-content-daily": {
            "task": "refinement.run",
            "schedule": 86400.0,  # 24 hours
            "args": (),
            "options": {"queue": "learning"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["quiz_engine.jobs"])
