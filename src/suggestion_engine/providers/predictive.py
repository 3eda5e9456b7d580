"""Predictive provider.

Asks the LLM to predict completions shaped by the user's style and
language proficiency rather than by the conversation.
"""

from suggestion_engine.core.types import ContextSnapshot, SuggestionSource

from .base import SuggestionPrompt
from .llm_backed import LLMBackedProvider


PREDICTIVE_PROMPT = """You are a prediction engine that completes what the user is writing.

USER CONTEXT:
- Preferred style: {personality} (formality {formality:.2f})
- Language proficiency: {proficiency:.2f}

PREDICTION CONTEXT:
- Topic: {topic}
- Phase: {phase}

TASK:
Generate {max_suggestions} predictions for the text: "{text}"
Source language: {source_language}
Target language: {target_language}

Each prediction should:
1. Complete the text naturally
2. Match the user's style
3. Use vocabulary suited to their proficiency

Return JSON format:
{{
  "predictions": [
    {{
      "suggested_text": "completed text suggestion",
      "confidence": 0.92,
      "reasoning": "why this prediction is appropriate",
      "context_relevance": 0.88,
      "alternatives": ["alternative 1", "alternative 2"]
    }}
  ]
}}"""


class PredictiveProvider(LLMBackedProvider):
    """Style-aware LLM completions."""

    provider_id = "predictive"
    source = SuggestionSource.PREDICTIVE
    payload_key = "predictions"

    def build_prompt(self, prompt: SuggestionPrompt, snapshot: ContextSnapshot) -> str:
        return PREDICTIVE_PROMPT.format(
            personality=prompt.personality_type.value,
            formality=prompt.formality,
            proficiency=prompt.proficiency,
            topic=snapshot.topic,
            phase=snapshot.phase.value,
            max_suggestions=prompt.max_suggestions,
            text=prompt.text,
            source_language=prompt.source_language,
            target_language=prompt.target_language,
        )
