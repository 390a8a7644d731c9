"""Tests for analytics collection and aggregation."""

from datetime import UTC, datetime, timedelta

import pytest

from quiz_engine.adapters.metrics.base import (
    MetricsProvider,
    MetricsUnavailableError,
    VideoMetrics,
)
from quiz_engine.domain.enums import TimingBucket
from quiz_engine.services.analytics import (
    AnalyticsService,
    aggregate_groups,
    compute_reward_score,
    timing_bucket_for,
)


class ScriptedMetricsProvider(MetricsProvider):
    """Returns configured view counts and fails for listed ids."""

    def __init__(self, views: dict[str, int] | None = None, failing: set[str] | None = None):
        self.views = views or {}
        self.failing = failing or set()
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "scripted"

    async def fetch_performance(self, published_id: str) -> VideoMetrics:
        self.calls.append(published_id)
        if published_id in self.failing:
            raise MetricsUnavailableError(f"quota exceeded for {published_id}")
        views = self.views.get(published_id, 1000)
        return VideoMetrics(
            published_id=published_id,
            fetched_at=datetime.now(UTC),
            views=views,
            likes=views // 20,
            comments=views // 100,
            completion_rate=45.0,
        )


class TestRewardScore:
    def test_zero_views_scores_zero(self) -> None:
        assert compute_reward_score(0, 10, 10, 90.0) == 0.0

    def test_score_is_bounded(self) -> None:
        assert compute_reward_score(10_000_000, 10_000_000, 0, 100.0) == 1.0
        assert 0.0 < compute_reward_score(100, 1, 0, None) < 1.0

    def test_more_engagement_scores_higher(self) -> None:
        low = compute_reward_score(1000, 10, 0, 40.0)
        high = compute_reward_score(1000, 100, 10, 40.0)
        assert high > low


class TestTimingBucket:
    def test_buckets_use_analytics_timezone(self) -> None:
        # 01:00 UTC is 06:30 in Asia/Kolkata
        assert timing_bucket_for(datetime(2026, 1, 1, 1, 0, tzinfo=UTC)) == TimingBucket.MORNING
        # 18:00 UTC is 23:30 in Asia/Kolkata
        assert timing_bucket_for(datetime(2026, 1, 1, 18, 0, tzinfo=UTC)) == TimingBucket.NIGHT

    def test_naive_datetimes_are_utc(self) -> None:
        assert timing_bucket_for(datetime(2026, 1, 1, 8, 0)) == TimingBucket.AFTERNOON

    def test_explicit_timezone(self) -> None:
        moment = datetime(2026, 1, 1, 19, 0, tzinfo=UTC)
        assert timing_bucket_for(moment, "UTC") == TimingBucket.EVENING


class TestCollect:
    def test_collect_skips_failures_and_continues(self, db_session, make_published_job) -> None:
        for published_id in ("vid_a", "vid_b", "vid_c"):
            make_published_job(db_session, published_id=published_id)
        provider = ScriptedMetricsProvider(failing={"vid_b"})
        service = AnalyticsService(db_session, metrics_provider=provider)

        result = service.collect()

        assert result == {"collected": 2, "errors": 1, "more_videos_to_collect": False}
        assert sorted(r.published_id for r in service.latest_records()) == ["vid_a", "vid_c"]

        # Only the failed video is attempted again
        provider.calls.clear()
        service.collect()
        assert provider.calls == ["vid_b"]

    def test_collect_respects_limit(self, db_session, make_published_job) -> None:
        for _ in range(3):
            make_published_job(db_session)
        service = AnalyticsService(db_session, metrics_provider=ScriptedMetricsProvider())

        result = service.collect(limit=2)

        assert result["collected"] == 2
        assert result["more_videos_to_collect"] is True
        assert service.collect(limit=2)["more_videos_to_collect"] is False

    def test_collect_ignores_unfinished_and_unpublished_jobs(
        self, db_session, make_published_job
    ) -> None:
        from quiz_engine.services.job_store import JobStore

        JobStore(db_session).create_job("english_vocab_builder", "eng_vocab_idioms", "easy")
        job = make_published_job(db_session)
        job.data = {"format": "mcq"}
        db_session.commit()

        result = AnalyticsService(db_session, metrics_provider=ScriptedMetricsProvider()).collect()
        assert result["collected"] == 0

    def test_collect_records_dimensions(self, db_session, make_published_job) -> None:
        make_published_job(
            db_session,
            persona="brain_health_tips",
            fmt="quick_tip",
            audio_track="2.mp3",
            published_at=datetime(2026, 3, 1, 13, 0, tzinfo=UTC),
            published_id="vid_dims",
            account_id="acct-9",
            category="brain_food",
        )
        service = AnalyticsService(db_session, metrics_provider=ScriptedMetricsProvider())
        service.collect()

        (record,) = service.latest_records()
        assert record.persona == "brain_health_tips"
        assert record.account_id == "acct-9"
        assert record.category == "brain_food"
        assert record.format == "quick_tip"
        assert record.audio_track == "2.mp3"
        assert record.timing_bucket == "evening"  # 18:30 IST
        assert record.engagement_rate == pytest.approx(6.0)
        assert 0.0 < record.reward_score <= 1.0

    def test_collect_filters_by_persona(self, db_session, make_published_job) -> None:
        make_published_job(db_session, persona="brain_health_tips")
        make_published_job(db_session, persona="eye_health_tips")
        service = AnalyticsService(db_session, metrics_provider=ScriptedMetricsProvider())

        assert service.collect(persona="eye_health_tips")["collected"] == 1
        assert [r.persona for r in service.latest_records()] == ["eye_health_tips"]

    def test_zero_limit_collects_nothing(self, db_session, make_published_job) -> None:
        make_published_job(db_session)
        provider = ScriptedMetricsProvider()

        result = AnalyticsService(db_session, metrics_provider=provider).collect(limit=0)

        assert result == {"collected": 0, "errors": 0, "more_videos_to_collect": True}
        assert provider.calls == []


class TestSnapshots:
    def test_refresh_appends_and_queries_use_latest(self, db_session, make_published_job) -> None:
        make_published_job(db_session, published_id="vid_x")
        provider = ScriptedMetricsProvider(views={"vid_x": 100})
        service = AnalyticsService(db_session, metrics_provider=provider)
        service.collect()

        provider.views["vid_x"] = 5000
        assert service.refresh() == {"refreshed": 1, "errors": 0}

        from sqlalchemy import func, select

        from quiz_engine.db.models import AnalyticsRecordModel

        total_rows = db_session.execute(
            select(func.count()).select_from(AnalyticsRecordModel)
        ).scalar_one()
        assert total_rows == 2

        (latest,) = service.latest_records()
        assert latest.views == 5000
        assert service.get_analytics_summary()["total_views"] == 5000


class TestBreakdowns:
    def test_groups_below_minimum_are_low_confidence(self, db_session, add_record) -> None:
        for _ in range(5):
            add_record(db_session, fmt="mcq", reward=0.4)
        for _ in range(2):
            add_record(db_session, fmt="challenge", reward=0.9)

        breakdown = AnalyticsService(db_session, min_sample_count=5).get_format_analytics()

        groups = {g["value"]: g for g in breakdown["groups"]}
        assert breakdown["total_videos"] == 7
        assert groups["mcq"]["low_confidence"] is False
        assert groups["challenge"]["low_confidence"] is True
        assert groups["challenge"]["count"] == 2

    def test_groups_are_ordered_by_mean_reward(self, db_session, add_record) -> None:
        add_record(db_session, audio_track="1.mp3", reward=0.2)
        add_record(db_session, audio_track="2.mp3", reward=0.8)
        add_record(db_session, audio_track="3.mp3", reward=0.5)

        groups = AnalyticsService(db_session).get_audio_analytics()["groups"]
        assert [g["value"] for g in groups] == ["2.mp3", "3.mp3", "1.mp3"]

    def test_summary_best_ignores_low_confidence(self, db_session, add_record) -> None:
        for _ in range(5):
            add_record(db_session, timing_bucket="morning", reward=0.5)
        add_record(db_session, timing_bucket="night", reward=0.99)

        summary = AnalyticsService(db_session, min_sample_count=5).get_analytics_summary()

        assert summary["best"]["timing_bucket"] == "morning"
        assert summary["total_videos"] == 6
        assert [g["value"] for g in summary["by_persona"]] == ["english_vocab_builder"]

    def test_empty_summary(self, db_session) -> None:
        summary = AnalyticsService(db_session).get_analytics_summary()
        assert summary["total_videos"] == 0
        assert summary["best"] == {"format": None, "timing_bucket": None, "audio_track": None}

    def test_aggregate_groups_by_account(self, db_session, add_record) -> None:
        a = add_record(db_session, account_id="acct-a", reward=0.3)
        b = add_record(db_session, account_id="acct-b", reward=0.6)

        groups = aggregate_groups([a, b], "account_id", min_sample_count=1)
        assert [(g.value, g.count) for g in groups] == [("acct-b", 1), ("acct-a", 1)]

    def test_category_breakdown(self, db_session, add_record) -> None:
        for _ in range(3):
            add_record(db_session, category="eng_vocab_idioms", reward=0.7)
        add_record(db_session, category="eng_vocab_synonyms", reward=0.2)

        breakdown = AnalyticsService(db_session, min_sample_count=2).get_category_analytics()

        assert breakdown["dimension"] == "category"
        assert [(g["value"], g["low_confidence"]) for g in breakdown["groups"]] == [
            ("eng_vocab_idioms", False),
            ("eng_vocab_synonyms", True),
        ]
        summary = AnalyticsService(db_session).get_analytics_summary()
        assert {g["value"] for g in summary["by_category"]} == {
            "eng_vocab_idioms",
            "eng_vocab_synonyms",
        }

    def test_latest_records_since_drops_old_videos(self, db_session, add_record) -> None:
        add_record(db_session, collected_at=datetime.now(UTC) - timedelta(days=90))
        recent = add_record(db_session)

        service = AnalyticsService(db_session)
        since = datetime.now(UTC) - timedelta(days=30)

        assert [r.published_id for r in service.latest_records(since=since)] == [
            recent.published_id
        ]
        assert len(service.latest_records()) == 2
