from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol, cast

from openai import AsyncOpenAI, OpenAIError

from backend.app.config import DEFAULT_GENERATION_MODEL
from backend.app.services.outcome import Outcome
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("reelmark.thoughts")

SYSTEM_INSTRUCTION = (
    "You are a helpful AI that generates tags and descriptions for video references.\n"
    "When given a thought about a video and its title, generate:\n"
    "1. 2-3 relevant tags (short, keyword-style)\n"
    "2. A brief, insightful addition to the description that connects the thought "
    "to the video's topic.\n"
    "Format your response as JSON with 'tags' array and 'description' string."
)
FALLBACK_DESCRIPTION_PREFIX = "New insight: "
FALLBACK_EXCERPT_LENGTH = 50


@dataclass(frozen=True)
class GeneratedFragment:
    tags: tuple[str, ...]
    description_text: str


class TextGenerator(Protocol):
    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str | None:
        ...


class ThoughtGenerationError(Exception):
    def __init__(self, error_code: str) -> None:
        super().__init__(error_code)
        self.error_code = error_code


class OpenAITextGenerator:
    def __init__(
        self,
        *,
        api_key: str,
        model: str = DEFAULT_GENERATION_MODEL,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)

    async def complete_json(self, *, system_prompt: str, user_prompt: str) -> str | None:
        completion = await self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content


def build_user_prompt(thought: str, video_title: str) -> str:
    return f'Video Title: "{video_title}"\nThought: "{thought}"'


def fallback_fragment(thought: str) -> GeneratedFragment:
    """Deterministic fragment used whenever generation is unavailable.

    Mirrors what a user would jot down by hand: the first word becomes the tag
    and the first fifty characters become the description.
    """
    words = thought.split()
    tags = (words[0],) if words else ()
    excerpt = thought[:FALLBACK_EXCERPT_LENGTH]
    return GeneratedFragment(
        tags=tags,
        description_text=f"{FALLBACK_DESCRIPTION_PREFIX}{excerpt}...",
    )


def parse_generated_fragment(raw_content: str | None) -> GeneratedFragment:
    if raw_content is None or not raw_content.strip():
        raise ThoughtGenerationError("empty_response")
    try:
        parsed = json.loads(raw_content)
    except json.JSONDecodeError as exc:
        raise ThoughtGenerationError("invalid_json") from exc
    if not isinstance(parsed, dict):
        raise ThoughtGenerationError("invalid_payload")
    payload = cast(dict[str, Any], parsed)

    raw_tags = payload.get("tags")
    if raw_tags is None:
        raw_tags = []
    if not isinstance(raw_tags, list):
        raise ThoughtGenerationError("invalid_tags")
    tags: list[str] = []
    # Generated values are kept verbatim; tag dedup downstream is exact-match.
    for raw_tag in cast(list[object], raw_tags):
        if isinstance(raw_tag, str) and raw_tag.strip():
            tags.append(raw_tag)

    description = payload.get("description")
    if description is None:
        description = ""
    if not isinstance(description, str):
        raise ThoughtGenerationError("invalid_description")

    return GeneratedFragment(tags=tuple(tags), description_text=description)


class ThoughtProcessor:
    def __init__(
        self,
        generator: TextGenerator | None,
        *,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._generator = generator
        self._telemetry = telemetry or TelemetryClient.disabled()

    @property
    def generation_configured(self) -> bool:
        return self._generator is not None

    async def process(self, thought: str, video_title: str) -> Outcome[GeneratedFragment]:
        with self._telemetry.measure("thought.process.finish") as outcome_attributes:
            try:
                fragment = await self._generate(thought, video_title)
            except ThoughtGenerationError as exc:
                LOGGER.warning("thought generation degraded to fallback error=%s", exc.error_code)
                outcome_attributes.update(ok=False, error_code=exc.error_code)
                return Outcome.degraded(fallback_fragment(thought), error_code=exc.error_code)

            outcome_attributes.update(ok=True, tag_count=len(fragment.tags))
            return Outcome.succeeded(fragment)

    async def _generate(self, thought: str, video_title: str) -> GeneratedFragment:
        if self._generator is None:
            raise ThoughtGenerationError("generation_unconfigured")
        try:
            raw_content = await self._generator.complete_json(
                system_prompt=SYSTEM_INSTRUCTION,
                user_prompt=build_user_prompt(thought, video_title),
            )
        except OpenAIError as exc:
            raise ThoughtGenerationError(f"provider_error:{type(exc).__name__}") from exc
        except Exception as exc:
            LOGGER.debug("text generator raised", exc_info=True)
            raise ThoughtGenerationError(f"generator_error:{type(exc).__name__}") from exc
        return parse_generated_fragment(raw_content)
