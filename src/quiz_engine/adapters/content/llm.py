"""Quiz content generator backed by an OpenAI-compatible chat completions API."""

import json
from typing import Any

import httpx

from quiz_engine.adapters.content.base import ContentGenerator, ContentResult
from quiz_engine.config import settings
from quiz_engine.domain.models import InvalidContentError, PersonaConfig, QuizContent
from quiz_engine.logging import get_logger
from quiz_engine.presets import get_preset

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You write single-question quizzes for vertical short videos. "
    "Reply with one JSON object and nothing else."
)

FORMAT_GUIDANCE: dict[str, str] = {
    "mcq": "A multiple-choice question with four options A-D.",
    "true_false": "A true/false statement; use options A (True) and B (False).",
    "quick_tip": "A quick tip framed as a question with four options A-D.",
    "common_mistake": "Ask which option shows the common mistake; four options A-D.",
    "quick_fix": "Ask which option fixes a common error; four options A-D.",
    "usage_demo": "Ask which sentence uses the word correctly; four options A-D.",
    "challenge": "A harder challenge question with four options A-D.",
    "before_after": "Ask which 'after' version improves the 'before'; four options A-D.",
    "simplified_word": "Ask for the simpler word with the same meaning; four options A-D.",
}


def build_prompt(persona: str, category: str, difficulty: str, config: PersonaConfig) -> str:
    """Build the user prompt for one quiz question."""
    preset = get_preset(persona)
    category_name = preset.category_name(category) if preset else category
    guidance = FORMAT_GUIDANCE.get(config.format, FORMAT_GUIDANCE["mcq"])
    return (
        f"Channel: {config.display_name}\n"
        f"Topic: {category_name}\n"
        f"Difficulty: {difficulty}\n"
        f"Format: {guidance}\n\n"
        'Return JSON: {"question": str, "options": {"A": str, "B": str, ...}, '
        '"answer": "<option letter>", "explanation": str}'
    )


def extract_json_object(text: str) -> dict[str, Any]:
    """Extract the outermost JSON object from a model reply.

    Models sometimes wrap the object in prose or code fences.

    Raises:
        InvalidContentError: If no parseable object is present.
    """
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last < first:
        raise InvalidContentError("no JSON object in response")
    try:
        data = json.loads(text[first : last + 1])
    except json.JSONDecodeError as e:
        raise InvalidContentError(f"JSON parsing failed: {e}") from e
    if not isinstance(data, dict):
        raise InvalidContentError("response JSON is not an object")
    return data


class LLMContentGenerator(ContentGenerator):
    """Generates quiz content through a chat completions endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key or settings.llm_api_key
        self.model = model or settings.llm_model
        self.base_url = (base_url or settings.llm_base_url).rstrip("/")
        self.timeout = timeout

        if not self.api_key:
            logger.warning("llm_api_key_not_configured")

    @property
    def name(self) -> str:
        return f"llm:{self.model}"

    async def generate(
        self,
        persona: str,
        category: str,
        difficulty: str,
        config: PersonaConfig,
    ) -> ContentResult:
        """Generate a quiz question and validate its structure."""
        if not self.api_key:
            return ContentResult(
                success=False,
                error_message="LLM API key not configured",
                retryable=False,
            )

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(persona, category, difficulty, config)},
            ],
            "temperature": 0.8,
            "max_tokens": 800,
            "response_format": {"type": "json_object"},
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        logger.debug("llm_content_request", model=self.model, persona=persona, category=category)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers=headers,
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error("llm_content_http_error", status=status_code, body=e.response.text[:500])
            return ContentResult(
                success=False,
                error_message=f"Content API error: {status_code}",
                retryable=status_code not in (400, 401, 403, 404),
            )
        except httpx.HTTPError as e:
            logger.error("llm_content_request_failed", error=str(e))
            return ContentResult(success=False, error_message=f"Content API unreachable: {e}")

        reply = data["choices"][0]["message"]["content"]
        try:
            content = QuizContent.from_dict(extract_json_object(reply), format=config.format)
        except InvalidContentError as e:
            # A fresh sample usually fixes malformed output
            logger.warning("llm_content_invalid", error=str(e), persona=persona)
            return ContentResult(success=False, error_message=f"Invalid content: {e}")

        usage = data.get("usage", {})
        logger.info(
            "llm_content_generated",
            model=self.model,
            persona=persona,
            tokens_used=usage.get("total_tokens", 0),
        )
        return ContentResult(
            success=True,
            content=content,
            metadata={"provider": self.name, "model": data.get("model", self.model)},
        )

    async def health_check(self) -> bool:
        """Check if the chat completions API is reachable."""
        if not self.api_key:
            return False

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(
                    f"{self.base_url}/models",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error("llm_health_check_failed", error=str(e))
            return False
