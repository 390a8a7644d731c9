"""Tests for adapter implementations."""

from pathlib import Path

import httpx
import pytest

from quiz_engine.adapters.content.llm import (
    LLMContentGenerator,
    build_prompt,
    extract_json_object,
)
from quiz_engine.adapters.metrics.base import MetricsUnavailableError
from quiz_engine.adapters.metrics.youtube import YouTubeMetricsProvider
from quiz_engine.adapters.publisher.base import PublishRequest
from quiz_engine.domain.models import InvalidContentError, PersonaConfig, QuizContent

CONFIG = PersonaConfig(
    persona="brain_health_tips",
    display_name="Brain Health Tips",
    categories=("brain_food",),
    format="quick_tip",
    timing_profile="evening",
    audio_track="2.mp3",
)


@pytest.mark.asyncio
async def test_content_stub_is_deterministic(content_generator) -> None:
    """Same persona, category and difficulty give the same question."""
    first = await content_generator.generate("brain_health_tips", "brain_food", "easy", CONFIG)
    second = await content_generator.generate("brain_health_tips", "brain_food", "easy", CONFIG)

    assert first.success is True
    assert first.content == second.content
    assert first.content.format == "quick_tip"
    assert first.content.answer in first.content.options


@pytest.mark.asyncio
async def test_content_stub_health_check(content_generator) -> None:
    assert await content_generator.health_check() is True


class TestLLMContent:
    def test_extract_json_from_fenced_reply(self) -> None:
        reply = 'Sure!\n```json\n{"question": "q", "options": {"A": "1"}}\n```'
        assert extract_json_object(reply) == {"question": "q", "options": {"A": "1"}}

    @pytest.mark.parametrize("reply", ["no json here", "{not: valid}", "} backwards {"])
    def test_extract_json_rejects_garbage(self, reply: str) -> None:
        with pytest.raises(InvalidContentError):
            extract_json_object(reply)

    def test_prompt_uses_category_name_and_format(self) -> None:
        prompt = build_prompt("brain_health_tips", "brain_food", "hard", CONFIG)

        assert "Brain-Healthy Foods & Nutrition" in prompt
        assert "Difficulty: hard" in prompt
        assert "quick tip" in prompt

    def test_prompt_for_unknown_persona_falls_back_to_key(self) -> None:
        prompt = build_prompt("cooking_tips", "knives", "easy", CONFIG)
        assert "Topic: knives" in prompt

    @pytest.mark.asyncio
    async def test_missing_api_key_is_not_retryable(self, monkeypatch) -> None:
        from quiz_engine.config import settings

        monkeypatch.setattr(settings, "llm_api_key", None)
        generator = LLMContentGenerator()

        result = await generator.generate("brain_health_tips", "brain_food", "easy", CONFIG)

        assert result.success is False
        assert result.retryable is False
        assert await generator.health_check() is False


@pytest.mark.asyncio
async def test_renderer_stub_writes_frames_and_video(frame_renderer, tmp_path: Path) -> None:
    content = QuizContent(
        question="q?",
        options={"A": "x", "B": "y"},
        answer="A",
        explanation="because",
        format="mcq",
    )

    rendered = await frame_renderer.render_frames(content, "job-1")
    assert rendered.success is True
    assert len(rendered.frames.frame_paths) == 3
    assert all(Path(p).exists() for p in rendered.frames.frame_paths)

    assembled = await frame_renderer.assemble(rendered.frames, "3.mp3", "job-1")
    assert assembled.success is True
    assert assembled.video_path.exists()
    assert assembled.video_path.read_bytes().endswith(b"3.mp3")
    assert assembled.duration_seconds == 15.0


@pytest.mark.asyncio
async def test_publisher_stub(publisher_adapter, tmp_path: Path) -> None:
    request = PublishRequest(video_path=tmp_path / "quiz.mp4", title="Quiz", account_id="acct-1")

    response = await publisher_adapter.publish(request)

    assert response.success is True
    assert response.published_id.startswith("stub_")
    assert response.url.endswith(response.published_id)


@pytest.mark.asyncio
async def test_metrics_stub_is_stable_per_video(metrics_provider) -> None:
    first = await metrics_provider.fetch_performance("vid_1")
    second = await metrics_provider.fetch_performance("vid_1")

    assert (first.views, first.likes, first.comments) == (
        second.views,
        second.likes,
        second.comments,
    )
    assert 100 <= first.views <= 10000
    assert first.engagement_rate > 0


class TestYouTubeMetrics:
    @staticmethod
    def _client(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_fetch_statistics(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["id"] == "abc123"
            assert request.url.params["key"] == "yt-key"
            return httpx.Response(
                200,
                json={
                    "items": [
                        {"statistics": {"viewCount": "2000", "likeCount": "90", "commentCount": "10"}}
                    ]
                },
            )

        provider = YouTubeMetricsProvider(api_key="yt-key", client=self._client(handler))
        metrics = await provider.fetch_performance("abc123")

        assert (metrics.views, metrics.likes, metrics.comments) == (2000, 90, 10)
        assert metrics.engagement_rate == pytest.approx(5.0)
        assert metrics.completion_rate is None

    @pytest.mark.asyncio
    async def test_unknown_video(self) -> None:
        provider = YouTubeMetricsProvider(
            api_key="yt-key",
            client=self._client(lambda request: httpx.Response(200, json={"items": []})),
        )
        with pytest.raises(MetricsUnavailableError):
            await provider.fetch_performance("missing")

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        provider = YouTubeMetricsProvider(
            api_key="yt-key",
            client=self._client(lambda request: httpx.Response(403, text="quotaExceeded")),
        )
        with pytest.raises(MetricsUnavailableError):
            await provider.fetch_performance("abc123")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch) -> None:
        from quiz_engine.config import settings

        monkeypatch.setattr(settings, "youtube_api_key", None)

        with pytest.raises(MetricsUnavailableError):
            await YouTubeMetricsProvider().fetch_performance("abc123")
