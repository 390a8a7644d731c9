"""Content refinement: turn analytics into persona configuration changes.

For every persona and every tunable dimension (format, timing bucket, audio
track) each value with enough samples is scored by its relative reward lift
over the persona's other videos:

    delta = (group_mean - rest_mean) / max(|rest_mean|, EPSILON)

Candidates are ranked by delta, then sample count, then value. The top
candidate is accepted only if it has at least ``min_sample_count`` samples and
``delta >= min_significance_margin``. The ranking depends on analytics data
alone, not on the current configuration, so re-running with unchanged data
yields the same recommendations and applying them again is a no-op.

Only videos whose latest snapshot was collected within ``window_days`` take
part, so old uploads stop steering the configuration.
"""

import statistics
from collections import defaultdict
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from quiz_engine.config import settings
from quiz_engine.db.models import AnalyticsRecordModel, RefinementReportModel
from quiz_engine.domain.enums import ConfigSource, RecommendationStatus, RefinementDimension
from quiz_engine.domain.models import GroupStats, PersonaConfig, Recommendation
from quiz_engine.errors import ConcurrentUpdateError, PersonaNotFoundError
from quiz_engine.logging import get_logger
from quiz_engine.services.analytics import AnalyticsService, aggregate_groups
from quiz_engine.services.job_store import store_guard
from quiz_engine.services.personas import PersonaStore

logger = get_logger(__name__)

EPSILON = 1e-6


def _mean(values: Sequence[float]) -> float:
    return statistics.fmean(values) if values else 0.0


class RefinementService:
    """Ranks persona configuration candidates and applies accepted ones."""

    def __init__(
        self,
        session: Session,
        analytics: AnalyticsService | None = None,
        min_sample_count: int | None = None,
        min_significance_margin: float | None = None,
        window_days: int | None = None,
    ) -> None:
        self.session = session
        self.min_sample_count = (
            settings.min_sample_count if min_sample_count is None else min_sample_count
        )
        self.min_significance_margin = (
            settings.min_significance_margin
            if min_significance_margin is None
            else min_significance_margin
        )
        self.window_days = (
            settings.refinement_window_days if window_days is None else window_days
        )
        self.analytics = analytics or AnalyticsService(
            session, min_sample_count=self.min_sample_count
        )
        self.personas = PersonaStore(session)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_dimension(
        self,
        persona: str,
        records: Sequence[AnalyticsRecordModel],
        dimension: RefinementDimension,
    ) -> list[Recommendation]:
        """Score every value of one dimension for one persona."""
        attribute = str(dimension)
        groups = aggregate_groups(records, dimension, self.min_sample_count)

        scored: list[tuple[GroupStats, float | None]] = []
        low_confidence: list[Recommendation] = []
        for group in groups:
            if group.low_confidence:
                low_confidence.append(
                    Recommendation(
                        persona=persona,
                        dimension=dimension,
                        value=group.value,
                        status=RecommendationStatus.LOW_CONFIDENCE,
                        delta=None,
                        count=group.count,
                        mean_reward=group.mean_reward,
                        reason=f"{group.count} samples, below {self.min_sample_count}",
                    )
                )
                continue

            rest = [r.reward_score for r in records if str(getattr(r, attribute)) != group.value]
            if not rest:
                scored.append((group, None))
                continue
            rest_mean = _mean(rest)
            delta = (group.mean_reward - rest_mean) / max(abs(rest_mean), EPSILON)
            scored.append((group, delta))

        # Values with nothing to compare against rank last
        scored.sort(
            key=lambda item: (
                item[1] is None,
                -(item[1] or 0.0),
                -item[0].count,
                item[0].value,
            )
        )

        results: list[Recommendation] = []
        for rank, (group, delta) in enumerate(scored):
            if delta is None:
                status = RecommendationStatus.REJECTED
                reason = "no other values to compare against"
            elif rank > 0:
                status = RecommendationStatus.REJECTED
                reason = f"outranked by {scored[0][0].value}"
            elif delta < self.min_significance_margin:
                status = RecommendationStatus.REJECTED
                reason = f"lift {delta:.1%} below margin {self.min_significance_margin:.0%}"
            else:
                status = RecommendationStatus.ACCEPTED
                reason = f"lift {delta:.1%} over {group.count} samples"

            results.append(
                Recommendation(
                    persona=persona,
                    dimension=dimension,
                    value=group.value,
                    status=status,
                    delta=delta,
                    count=group.count,
                    mean_reward=group.mean_reward,
                    reason=reason,
                )
            )
        return results + sorted(low_confidence, key=lambda r: r.value)

    def evaluate(
        self, records: Sequence[AnalyticsRecordModel]
    ) -> dict[str, list[Recommendation]]:
        """Recommendations for every persona present in ``records``, by persona name."""
        by_persona: dict[str, list[AnalyticsRecordModel]] = defaultdict(list)
        for record in records:
            by_persona[record.persona].append(record)

        return {
            persona: [
                rec
                for dimension in RefinementDimension
                for rec in self.evaluate_dimension(persona, by_persona[persona], dimension)
            ]
            for persona in sorted(by_persona)
        }

    # -------------------------------------------------------------------------
    # Report
    # -------------------------------------------------------------------------

    def _topic_insights(self, records: Sequence[AnalyticsRecordModel]) -> dict[str, Any]:
        """Category breakdown for one persona. Informational only, never applied."""
        groups = aggregate_groups(records, "category", self.min_sample_count)
        confident = [g for g in groups if not g.low_confidence]
        return {
            "categories": [g.to_dict() for g in groups],
            "best_category": confident[0].value if confident else None,
            "worst_category": confident[-1].value if len(confident) > 1 else None,
        }

    def build_report(
        self,
        records: Sequence[AnalyticsRecordModel],
        recommendations: dict[str, list[Recommendation]],
    ) -> dict[str, Any]:
        """Assemble the refinement report. Contains no current-config values."""
        by_account: dict[str, list[AnalyticsRecordModel]] = defaultdict(list)
        for record in records:
            by_account[record.account_id].append(record)

        account_insights = []
        for account_id in sorted(by_account):
            account_records = by_account[account_id]
            personas = sorted({r.persona for r in account_records})
            persona_insights = []
            for persona in personas:
                persona_records = [r for r in account_records if r.persona == persona]
                persona_insights.append(
                    {
                        "persona": persona,
                        "total_videos": len(persona_records),
                        "avg_reward": round(_mean([r.reward_score for r in persona_records]), 4),
                        "avg_engagement_rate": round(
                            _mean([r.engagement_rate for r in persona_records]), 4
                        ),
                        "avg_views": round(_mean([r.views for r in persona_records]), 2),
                        "topic_insights": self._topic_insights(persona_records),
                        "recommendations": [
                            f"{rec.dimension}={rec.value}"
                            for rec in recommendations.get(persona, [])
                            if rec.status == RecommendationStatus.ACCEPTED
                        ],
                    }
                )
            account_insights.append(
                {
                    "account_id": account_id,
                    "personas": personas,
                    "total_videos": len(account_records),
                    "avg_engagement_rate": round(
                        _mean([r.engagement_rate for r in account_records]), 4
                    ),
                    "avg_views": round(_mean([r.views for r in account_records]), 2),
                    "persona_insights": persona_insights,
                }
            )

        flat = [rec for persona in sorted(recommendations) for rec in recommendations[persona]]
        accepted = sorted(
            (r for r in flat if r.status == RecommendationStatus.ACCEPTED),
            key=lambda r: (-(r.delta or 0.0), r.persona, str(r.dimension)),
        )

        best: dict[str, list[str]] = {}
        worst: dict[str, list[str]] = {}
        for dimension in RefinementDimension:
            confident = [
                g
                for g in aggregate_groups(records, dimension, self.min_sample_count)
                if not g.low_confidence
            ]
            best[str(dimension)] = [g.value for g in confident[:3]]
            worst[str(dimension)] = [g.value for g in reversed(confident[-3:])]

        confident_formats = [
            g
            for g in aggregate_groups(records, RefinementDimension.FORMAT, self.min_sample_count)
            if not g.low_confidence
        ]
        optimal_engagement = max((g.mean_engagement_rate for g in confident_formats), default=0.0)

        return {
            "report_date": datetime.now(UTC).isoformat(),
            "total_videos": len(records),
            "min_sample_count": self.min_sample_count,
            "min_significance_margin": self.min_significance_margin,
            "window_days": self.window_days,
            "account_insights": account_insights,
            "global_insights": {
                "best_performing": best,
                "worst_performing": worst,
                "optimal_engagement_rate": round(optimal_engagement, 4),
                "recommended_improvements": [
                    {"rank": rank, **rec.to_dict()} for rank, rec in enumerate(accepted, start=1)
                ],
            },
            "recommendations": [rec.to_dict() for rec in flat],
        }

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def apply(
        self,
        recommendations: dict[str, list[Recommendation]],
        configs: dict[str, PersonaConfig],
    ) -> dict[str, Any]:
        """Write accepted recommendations that differ from the committed config.

        Each persona is one conditional update against the version read at the
        start of the run; losing a race skips that persona for this run.
        """
        updated = 0
        applied: list[dict[str, Any]] = []
        skipped: list[dict[str, str]] = []

        for persona in sorted(recommendations):
            accepted = [
                rec
                for rec in recommendations[persona]
                if rec.status == RecommendationStatus.ACCEPTED
            ]
            if not accepted:
                continue

            config = configs.get(persona)
            if config is None:
                skipped.append({"persona": persona, "reason": "no persona configuration"})
                logger.warning("refinement_persona_missing", persona=persona)
                continue

            changes = {
                rec.dimension.config_field: rec.value
                for rec in accepted
                if config.value_for(rec.dimension) != rec.value
            }
            if not changes:
                continue

            try:
                new_config = self.personas.update_config(
                    persona, changes, config.version, ConfigSource.REFINEMENT
                )
            except ConcurrentUpdateError as e:
                skipped.append({"persona": persona, "reason": str(e)})
                logger.warning("refinement_persona_conflict", persona=persona, error=str(e))
                continue
            except (PersonaNotFoundError, ValueError) as e:
                skipped.append({"persona": persona, "reason": str(e)})
                logger.warning("refinement_change_rejected", persona=persona, error=str(e))
                continue

            updated += 1
            applied.append(
                {
                    "persona": persona,
                    "changes": changes,
                    "previous": {field: getattr(config, field) for field in changes},
                    "version": new_config.version,
                }
            )

        return {"updated": updated, "recommendations": applied, "skipped": skipped}

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def perform_content_refinement(self) -> dict[str, Any]:
        """Run one refinement pass: evaluate, report, apply, store the report.

        Returns:
            Dict with ``applied`` ({updated, recommendations, skipped}) and ``report``.
        """
        started = datetime.now(UTC)
        since = started - timedelta(days=self.window_days)
        records = self.analytics.latest_records(since=since)
        configs = {c.persona: c for c in self.personas.list_configs()}

        recommendations = self.evaluate(records)
        report = self.build_report(records, recommendations)
        applied = self.apply(recommendations, configs)

        with store_guard(self.session, "store_refinement_report"):
            self.session.add(
                RefinementReportModel(
                    report_date=datetime.fromisoformat(report["report_date"]),
                    report=report,
                    applied=applied,
                )
            )
            self.session.commit()

        duration_ms = int((datetime.now(UTC) - started).total_seconds() * 1000)
        logger.info(
            "refinement_completed",
            personas_analyzed=len(recommendations),
            recommendations=len(report["recommendations"]),
            accepted=len(report["global_insights"]["recommended_improvements"]),
            personas_updated=applied["updated"],
            duration_ms=duration_ms,
        )
        return {
            "applied": applied,
            "report": report,
            "stats": {
                "personas_analyzed": len(recommendations),
                "recommendations_generated": len(report["recommendations"]),
                "personas_updated": applied["updated"],
                "duration_ms": duration_ms,
            },
        }

    def get_refinement_summary(self) -> dict[str, Any] | None:
        """Latest stored report, without recomputing anything."""
        with store_guard(self.session, "get_refinement_summary"):
            row = self.session.execute(
                select(RefinementReportModel)
                .order_by(RefinementReportModel.report_date.desc())
                .limit(1)
            ).scalar_one_or_none()
        if row is None:
            return None
        return {"report": row.report, "applied": row.applied}

    def list_reports(self, limit: int = 10) -> list[dict[str, Any]]:
        """Report history, newest first."""
        with store_guard(self.session, "list_refinement_reports"):
            rows = self.session.execute(
                select(RefinementReportModel)
                .order_by(RefinementReportModel.report_date.desc())
                .limit(limit)
            ).scalars()
            return [
                {
                    "id": str(row.id),
                    "report_date": row.report["report_date"],
                    "personas_updated": row.applied.get("updated", 0),
                    "recommended_improvements": len(
                        row.report["global_insights"]["recommended_improvements"]
                    ),
                }
                for row in rows
            ]
