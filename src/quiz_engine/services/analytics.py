"""Analytics collection and aggregation.

Performance snapshots are append-only: collecting again for a video adds a
row, and every query works on the latest snapshot per published video.
Groups smaller than ``min_sample_count`` are flagged ``low_confidence``; the
refinement engine never acts on them.
"""

import math
import statistics
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quiz_engine.adapters.metrics.base import MetricsProvider, VideoMetrics
from quiz_engine.config import settings
from quiz_engine.db.models import AnalyticsRecordModel, JobModel
from quiz_engine.domain.enums import AudioTrack, JobPhase, RefinementDimension, TimingBucket
from quiz_engine.domain.models import GroupStats
from quiz_engine.logging import get_logger
from quiz_engine.services.job_store import store_guard
from quiz_engine.services.providers import get_metrics_provider
from quiz_engine.utils import run_async

logger = get_logger(__name__)


def timing_bucket_for(moment: datetime, tz_name: str | None = None) -> TimingBucket:
    """Daypart of ``moment`` in the analytics timezone. Naive values are UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    local = moment.astimezone(ZoneInfo(tz_name or settings.analytics_timezone))
    return TimingBucket.from_hour(local.hour)


def compute_reward_score(
    views: int,
    likes: int,
    comments: int,
    completion_rate: float | None,
) -> float:
    """Compute a normalized [0, 1] performance score for one video.

    Formula:
        reward = 0.3 * views_score + 0.3 * engagement_score + 0.4 * retention_score

    Where:
        - views_score: log10(views) / 6, capped at 1 (1M views)
        - engagement_score: (likes + comments) / views / 0.15, capped at 1
        - retention_score: completion_rate / 60, capped at 1; 0.5 when unknown

    Args:
        views: Total view count.
        likes: Total likes.
        comments: Total comments.
        completion_rate: Average percentage of the video watched (0-100).

    Returns:
        Reward score between 0 and 1.
    """
    if views <= 0:
        return 0.0

    views_score = min(math.log10(max(views, 1)) / 6, 1.0)
    engagement_score = min((likes + comments) / views / 0.15, 1.0)
    retention = 30.0 if completion_rate is None else completion_rate
    retention_score = min(max(retention, 0.0) / 60, 1.0)

    reward = 0.3 * views_score + 0.3 * engagement_score + 0.4 * retention_score
    return round(min(max(reward, 0.0), 1.0), 4)


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def aggregate_groups(
    records: Iterable[AnalyticsRecordModel],
    dimension: RefinementDimension | str,
    min_sample_count: int | None = None,
) -> list[GroupStats]:
    """Group records by one attribute and summarise each group.

    Groups are ordered by mean reward (descending), then value, so equal
    inputs always produce the same list.
    """
    attribute = str(dimension)
    threshold = settings.min_sample_count if min_sample_count is None else min_sample_count
    buckets: dict[str, list[AnalyticsRecordModel]] = defaultdict(list)
    for record in records:
        buckets[str(getattr(record, attribute))].append(record)

    groups = []
    for value, members in buckets.items():
        rewards = [m.reward_score for m in members]
        groups.append(
            GroupStats(
                dimension=attribute,
                value=value,
                count=len(members),
                mean_reward=statistics.fmean(rewards),
                mean_engagement_rate=statistics.fmean(m.engagement_rate for m in members),
                mean_views=statistics.fmean(m.views for m in members),
                stddev_reward=statistics.pstdev(rewards) if len(rewards) > 1 else 0.0,
                low_confidence=len(members) < threshold,
            )
        )
    groups.sort(key=lambda g: (-g.mean_reward, g.value))
    return groups


class AnalyticsService:
    """Collects video metrics and answers grouped performance queries."""

    def __init__(
        self,
        session: Session,
        metrics_provider: MetricsProvider | None = None,
        min_sample_count: int | None = None,
    ) -> None:
        self.session = session
        self._metrics = metrics_provider
        self.min_sample_count = (
            settings.min_sample_count if min_sample_count is None else min_sample_count
        )

    @property
    def metrics(self) -> MetricsProvider:
        if self._metrics is None:
            self._metrics = get_metrics_provider()
        return self._metrics

    # -------------------------------------------------------------------------
    # Collection
    # -------------------------------------------------------------------------

    def _uncollected_jobs(self, account_id: str | None, persona: str | None) -> list[JobModel]:
        recorded = select(AnalyticsRecordModel.job_id)
        query = (
            select(JobModel)
            .where(JobModel.status == str(JobPhase.COMPLETED), JobModel.id.not_in(recorded))
            .order_by(JobModel.updated_at, JobModel.id)
        )
        if account_id:
            query = query.where(JobModel.account_id == account_id)
        if persona:
            query = query.where(JobModel.persona == persona)

        with store_guard(self.session, "find_uncollected_jobs"):
            rows = self.session.execute(query).scalars().all()
        return [row for row in rows if (row.data or {}).get("published_id")]

    def _append_record(
        self,
        metrics: VideoMetrics,
        *,
        job_id: Any,
        account_id: str,
        persona: str,
        category: str,
        format: str,
        timing_bucket: str,
        audio_track: str,
        published_at: datetime | None,
    ) -> AnalyticsRecordModel:
        record = AnalyticsRecordModel(
            job_id=job_id,
            published_id=metrics.published_id,
            account_id=account_id,
            persona=persona,
            category=category,
            format=format,
            timing_bucket=timing_bucket,
            audio_track=audio_track,
            views=metrics.views,
            likes=metrics.likes,
            comments=metrics.comments,
            watch_time_seconds=metrics.watch_time_seconds,
            avg_view_duration_seconds=metrics.avg_view_duration_seconds,
            completion_rate=metrics.completion_rate,
            engagement_rate=round(metrics.engagement_rate, 4),
            reward_score=compute_reward_score(
                metrics.views, metrics.likes, metrics.comments, metrics.completion_rate
            ),
            published_at=published_at,
            collected_at=metrics.fetched_at or datetime.now(UTC),
        )
        with store_guard(self.session, "append_analytics_record"):
            self.session.add(record)
            self.session.commit()
        return record

    def collect(
        self,
        account_id: str | None = None,
        persona: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Record metrics for published videos that have none yet.

        A failed fetch is counted and skipped; it never aborts the batch.

        Returns:
            Dict with ``collected``, ``errors`` and ``more_videos_to_collect``.
        """
        limit = settings.analytics_collect_limit if limit is None else limit
        pending = self._uncollected_jobs(account_id, persona)
        batch = pending[:limit]

        logger.info(
            "analytics_collect_started",
            account_id=account_id,
            persona=persona,
            videos=len(batch),
            backlog=len(pending),
        )

        collected = 0
        errors = 0
        for job in batch:
            data = job.data or {}
            published_id = data["published_id"]
            try:
                metrics = run_async(self.metrics.fetch_performance(published_id))
            except Exception as e:
                errors += 1
                logger.error(
                    "analytics_fetch_failed",
                    job_id=str(job.id),
                    published_id=published_id,
                    error=str(e),
                )
                continue

            published_at = _parse_timestamp(data.get("published_at")) or job.updated_at
            self._append_record(
                metrics,
                job_id=job.id,
                account_id=job.account_id,
                persona=job.persona,
                category=job.category,
                format=str(data.get("format") or data.get("content", {}).get("format", "mcq")),
                timing_bucket=str(timing_bucket_for(published_at)),
                audio_track=str(data.get("audio_track") or AudioTrack.TRACK_1),
                published_at=published_at,
            )
            collected += 1

        result = {
            "collected": collected,
            "errors": errors,
            "more_videos_to_collect": len(pending) > len(batch),
        }
        logger.info("analytics_collect_completed", **result)
        return result

    def refresh(
        self,
        account_id: str | None = None,
        persona: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Append a fresh snapshot for videos that already have one.

        Videos with the oldest latest snapshot are refreshed first.
        """
        limit = settings.analytics_collect_limit if limit is None else limit
        latest = sorted(
            self.latest_records(account_id, persona),
            key=lambda r: (r.collected_at, r.id),
        )[:limit]

        refreshed = 0
        errors = 0
        for previous in latest:
            try:
                metrics = run_async(self.metrics.fetch_performance(previous.published_id))
            except Exception as e:
                errors += 1
                logger.error(
                    "analytics_refresh_failed",
                    published_id=previous.published_id,
                    error=str(e),
                )
                continue

            self._append_record(
                metrics,
                job_id=previous.job_id,
                account_id=previous.account_id,
                persona=previous.persona,
                category=previous.category,
                format=previous.format,
                timing_bucket=previous.timing_bucket,
                audio_track=previous.audio_track,
                published_at=previous.published_at,
            )
            refreshed += 1

        logger.info("analytics_refresh_completed", refreshed=refreshed, errors=errors)
        return {"refreshed": refreshed, "errors": errors}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def latest_records(
        self,
        account_id: str | None = None,
        persona: str | None = None,
        since: datetime | None = None,
    ) -> Sequence[AnalyticsRecordModel]:
        """Latest snapshot per published video, ordered by persona then video id.

        With ``since``, videos whose latest snapshot was collected earlier are
        left out.
        """
        latest_ids = select(func.max(AnalyticsRecordModel.id)).group_by(
            AnalyticsRecordModel.published_id
        )
        query = (
            select(AnalyticsRecordModel)
            .where(AnalyticsRecordModel.id.in_(latest_ids))
            .order_by(AnalyticsRecordModel.persona, AnalyticsRecordModel.published_id)
        )
        if account_id:
            query = query.where(AnalyticsRecordModel.account_id == account_id)
        if persona:
            query = query.where(AnalyticsRecordModel.persona == persona)
        if since is not None:
            query = query.where(AnalyticsRecordModel.collected_at >= since)

        with store_guard(self.session, "latest_analytics_records"):
            return self.session.execute(query).scalars().all()

    def _breakdown(
        self,
        dimension: RefinementDimension | str,
        account_id: str | None,
        persona: str | None,
    ) -> dict[str, Any]:
        records = self.latest_records(account_id, persona)
        groups = aggregate_groups(records, dimension, self.min_sample_count)
        return {
            "dimension": str(dimension),
            "total_videos": len(records),
            "min_sample_count": self.min_sample_count,
            "groups": [g.to_dict() for g in groups],
        }

    def get_audio_analytics(
        self, account_id: str | None = None, persona: str | None = None
    ) -> dict[str, Any]:
        """Performance grouped by background audio track."""
        return self._breakdown(RefinementDimension.AUDIO, account_id, persona)

    def get_format_analytics(
        self, account_id: str | None = None, persona: str | None = None
    ) -> dict[str, Any]:
        """Performance grouped by quiz format."""
        return self._breakdown(RefinementDimension.FORMAT, account_id, persona)

    def get_timing_analytics(
        self, account_id: str | None = None, persona: str | None = None
    ) -> dict[str, Any]:
        """Performance grouped by upload daypart."""
        return self._breakdown(RefinementDimension.TIMING, account_id, persona)

    def get_category_analytics(
        self, account_id: str | None = None, persona: str | None = None
    ) -> dict[str, Any]:
        """Performance grouped by quiz category (topic)."""
        return self._breakdown("category", account_id, persona)

    def get_analytics_summary(
        self, account_id: str | None = None, persona: str | None = None
    ) -> dict[str, Any]:
        """Top-level rollup across accounts, personas and every dimension."""
        records = self.latest_records(account_id, persona)
        summary: dict[str, Any] = {
            "total_videos": len(records),
            "total_views": sum(r.views for r in records),
            "avg_views": round(statistics.fmean(r.views for r in records), 2) if records else 0.0,
            "avg_engagement_rate": (
                round(statistics.fmean(r.engagement_rate for r in records), 4) if records else 0.0
            ),
            "avg_reward": (
                round(statistics.fmean(r.reward_score for r in records), 4) if records else 0.0
            ),
            "min_sample_count": self.min_sample_count,
            "by_account": [
                g.to_dict() for g in aggregate_groups(records, "account_id", self.min_sample_count)
            ],
            "by_persona": [
                g.to_dict() for g in aggregate_groups(records, "persona", self.min_sample_count)
            ],
            "by_category": [
                g.to_dict() for g in aggregate_groups(records, "category", self.min_sample_count)
            ],
        }

        best: dict[str, str | None] = {}
        for dimension in RefinementDimension:
            groups = aggregate_groups(records, dimension, self.min_sample_count)
            summary[str(dimension)] = [g.to_dict() for g in groups]
            confident = [g for g in groups if not g.low_confidence]
            best[str(dimension)] = confident[0].value if confident else None
        summary["best"] = best
        return summary
