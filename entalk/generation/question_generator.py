"""
Question generators used to backfill short decks.

Two implementations share one contract: generate() never raises and always
returns exactly the requested number of questions.

- TemplateQuestionGenerator: deterministic, offline templates
- GeminiQuestionGenerator: Google Generative AI, falling back to templates on
  any failure (missing key, network error, timeout, unusable reply)
"""
from __future__ import annotations

import random
from collections.abc import Collection, Sequence
from typing import Protocol

from loguru import logger

from config import get_settings
from entalk.decks.models import (
    ALL_CATEGORIES,
    ALL_PHASES,
    Category,
    DeckPhase,
    GeneratedQuestion,
    normalize_text,
)

from .parsing import ParseFallback, ParseOk, parse_question_list
from .prompts import build_gap_prompt, build_novelty_prompt, get_system_prompt


class QuestionGenerator(Protocol):
    """Source of new question texts for a deck."""

    def generate(
        self,
        categories: Sequence[Category],
        phases: Sequence[DeckPhase],
        count: int,
        *,
        topic: str | None = None,
        exclude: Collection[str] | None = None,
    ) -> list[GeneratedQuestion]: ...

    def generate_novelty(
        self, count: int, *, exclude: Collection[str] | None = None
    ) -> list[GeneratedQuestion]: ...


# =============================================================================
# Deterministic templates
# =============================================================================

CATEGORY_TEMPLATES: dict[Category, tuple[str, ...]] = {
    Category.ICEBREAKER: (
        "What is the first thing that comes to mind when you hear about {topic}?",
        "How would you describe {topic} to someone you just met?",
        "What is one fun fact you know about {topic}?",
    ),
    Category.PERSONAL: (
        "How has {topic} shown up in your own life?",
        "What is your favourite memory connected to {topic}?",
        "Who in your life would enjoy talking about {topic}, and why?",
    ),
    Category.OPINION: (
        "What is your honest opinion about {topic}?",
        "Do you think {topic} is changing for the better or for the worse?",
        "What do most people get wrong about {topic}?",
    ),
    Category.HYPOTHETICAL: (
        "If you could change one thing about {topic}, what would it be?",
        "If {topic} disappeared tomorrow, what would you miss most?",
        "If you had to teach a class on {topic}, what would the first lesson be?",
    ),
    Category.REFLECTIVE: (
        "What has {topic} taught you about yourself?",
        "How has your view of {topic} changed over the years?",
        "What would your younger self think about {topic} today?",
    ),
    Category.CULTURAL: (
        "How do people in your culture think about {topic}?",
        "Is there a tradition in your country connected to {topic}?",
        "How is {topic} different between countries you know?",
    ),
}

PHASE_PREFIXES: dict[DeckPhase, str] = {
    DeckPhase.WARM_UP: "To warm up: ",
    DeckPhase.PERSONAL: "About you: ",
    DeckPhase.REFLECTIVE: "Take a moment: ",
    DeckPhase.CHALLENGE: "Challenge: ",
}

NOVELTY_FALLBACKS: tuple[str, ...] = (
    "If your life had a soundtrack, which song would be playing right now?",
    "What's the strangest talent you have that few people know about?",
    "If you could instantly become an expert in something, what would it be?",
    "What's the most unusual food combination you enjoy?",
    "If you could have dinner with any fictional character, who would it be?",
)


class TemplateQuestionGenerator:
    """
    Deterministic question templates.

    Categories and phases are assigned round-robin. Each text interpolates the
    topic, picks a category-specific template and carries a phase lead-in.
    Texts are unique within a call and never match anything in ``exclude``
    (compared after normalize_text); clashes get a numbered suffix.
    """

    def __init__(self, default_topic: str | None = None, rng: random.Random | None = None):
        self.default_topic = default_topic or get_settings().default_topic
        self._rng = rng or random.Random()

    @staticmethod
    def _unique(base: str, label: str, taken: set[str]) -> str:
        text = base
        n = 1
        while normalize_text(text) in taken:
            n += 1
            text = f"{base} ({label}, #{n})"
        taken.add(normalize_text(text))
        return text

    def generate(
        self,
        categories: Sequence[Category],
        phases: Sequence[DeckPhase],
        count: int,
        *,
        topic: str | None = None,
        exclude: Collection[str] | None = None,
    ) -> list[GeneratedQuestion]:
        if count <= 0:
            return []
        categories = list(categories) or list(ALL_CATEGORIES)
        phases = list(phases) or list(ALL_PHASES)
        topic = topic or self.default_topic
        taken = {normalize_text(t) for t in exclude or ()}

        results: list[GeneratedQuestion] = []
        for i in range(count):
            category = categories[i % len(categories)]
            phase = phases[i % len(phases)]
            templates = CATEGORY_TEMPLATES[category]
            template = templates[(i // len(categories)) % len(templates)]
            text = self._unique(
                PHASE_PREFIXES[phase] + template.format(topic=topic), category.value, taken
            )
            results.append(GeneratedQuestion(text=text, category=category, deck_phase=phase))

        logger.debug(f"Template generator produced {len(results)} questions about '{topic}'")
        return results

    def generate_novelty(
        self, count: int, *, exclude: Collection[str] | None = None
    ) -> list[GeneratedQuestion]:
        """Curated unusual questions with random category/phase tags."""
        taken = {normalize_text(t) for t in exclude or ()}
        return [
            GeneratedQuestion(
                text=self._unique(NOVELTY_FALLBACKS[i % len(NOVELTY_FALLBACKS)], "novelty", taken),
                category=self._rng.choice(ALL_CATEGORIES),
                deck_phase=self._rng.choice(ALL_PHASES),
            )
            for i in range(max(0, count))
        ]


# =============================================================================
# Gemini
# =============================================================================


class GeminiQuestionGenerator:
    """
    AI-backed question generator.

    Calls are bounded by a request timeout. Failures are logged and answered
    from the template generator, so deck generation never blocks on the AI
    service.
    """

    MAX_OUTPUT_TOKENS = 1000

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout: float | None = None,
        temperature: float | None = None,
        fallback: TemplateQuestionGenerator | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the generator.

        Args:
            api_key: Gemini API key (uses settings if not provided)
            model_name: Model to use (uses settings if not provided)
            timeout: Request timeout in seconds (uses settings if not provided)
            temperature: Sampling temperature (uses settings if not provided)
            fallback: Template generator used whenever the AI call fails
            rng: Random source for novelty tag assignment
        """
        settings = get_settings()
        self.api_key = api_key or settings.gemini_api_key
        self.model_name = model_name or settings.ai_model
        self.timeout = timeout if timeout is not None else settings.ai_timeout_seconds
        self.temperature = temperature if temperature is not None else settings.ai_temperature
        self.fallback = fallback or TemplateQuestionGenerator(settings.default_topic)
        self._rng = rng or random.Random()
        self._models: dict[bool, object] = {}

    def _model(self, novelty: bool):
        """Lazy-load a Gemini model per system prompt."""
        if novelty not in self._models:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._models[novelty] = genai.GenerativeModel(
                model_name=self.model_name,
                system_instruction=get_system_prompt(novelty),
            )
        return self._models[novelty]

    def _call_llm(self, prompt: str, novelty: bool = False) -> str | None:
        """Call Gemini API."""
        if not self.api_key:
            logger.warning("Gemini API key not configured; using template questions")
            return None
        try:
            response = self._model(novelty).generate_content(
                prompt,
                generation_config={
                    "temperature": 1.0 if novelty else self.temperature,
                    "max_output_tokens": self.MAX_OUTPUT_TOKENS,
                },
                request_options={"timeout": self.timeout},
            )
            if response.text:
                return response.text

            logger.warning("Empty response from Gemini")
            return None

        except Exception as e:
            logger.error(f"Gemini API error: {e}")
            return None

    def _parse(self, content: str | None) -> list[str]:
        result = parse_question_list(content)
        if isinstance(result, ParseOk):
            return result.questions
        if isinstance(result, ParseFallback) and content:
            logger.warning(
                f"Could not parse Gemini reply as JSON ({result.reason}); "
                f"salvaged {len(result.questions)} question lines"
            )
        return result.questions

    @staticmethod
    def _fresh(texts: list[str], exclude: Collection[str] | None) -> list[str]:
        """Drop texts already taken or repeated within the reply."""
        taken = {normalize_text(t) for t in exclude or ()}
        fresh = []
        for text in texts:
            key = normalize_text(text)
            if key in taken:
                continue
            taken.add(key)
            fresh.append(text)
        if len(fresh) < len(texts):
            logger.debug(f"Dropped {len(texts) - len(fresh)} duplicate Gemini questions")
        return fresh

    def generate(
        self,
        categories: Sequence[Category],
        phases: Sequence[DeckPhase],
        count: int,
        *,
        topic: str | None = None,
        exclude: Collection[str] | None = None,
    ) -> list[GeneratedQuestion]:
        if count <= 0:
            return []
        categories = list(categories) or list(ALL_CATEGORIES)
        phases = list(phases) or list(ALL_PHASES)
        topic = topic or self.fallback.default_topic

        logger.info(
            f"Generating {count} questions about '{topic}' for categories "
            f"{[c.value for c in categories]} and phases {[p.value for p in phases]}"
        )
        texts = self._parse(self._call_llm(build_gap_prompt(categories, phases, count, topic)))
        texts = self._fresh(texts, exclude)

        generated = [
            GeneratedQuestion(
                text=text,
                category=categories[i % len(categories)],
                deck_phase=phases[i % len(phases)],
            )
            for i, text in enumerate(texts[:count])
        ]
        if len(generated) < count:
            missing = count - len(generated)
            logger.info(f"Falling back to {missing} template questions")
            taken = set(exclude or ()) | {g.text for g in generated}
            generated.extend(
                self.fallback.generate(categories, phases, missing, topic=topic, exclude=taken)
            )
        return generated

    def generate_novelty(
        self, count: int, *, exclude: Collection[str] | None = None
    ) -> list[GeneratedQuestion]:
        """Unusual free-standing questions with random category/phase tags."""
        if count <= 0:
            return []
        texts = self._parse(self._call_llm(build_novelty_prompt(count), novelty=True))
        generated = [
            GeneratedQuestion(
                text=text,
                category=self._rng.choice(ALL_CATEGORIES),
                deck_phase=self._rng.choice(ALL_PHASES),
            )
            for text in self._fresh(texts, exclude)[:count]
        ]
        if len(generated) < count:
            taken = set(exclude or ()) | {g.text for g in generated}
            generated.extend(
                self.fallback.generate_novelty(count - len(generated), exclude=taken)
            )
        return generated


def build_question_generator(settings=None) -> QuestionGenerator:
    """Gemini when a key is configured, templates otherwise."""
    settings = settings or get_settings()
    fallback = TemplateQuestionGenerator(settings.default_topic)
    if settings.has_ai_configured():
        return GeminiQuestionGenerator(
            api_key=settings.gemini_api_key,
            model_name=settings.ai_model,
            timeout=settings.ai_timeout_seconds,
            temperature=settings.ai_temperature,
            fallback=fallback,
        )
    return fallback
