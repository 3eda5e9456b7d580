"""Neural context provider.

Asks the LLM for continuations that fit the conversation flow: topic,
phase, emotional tone and the most recent messages.
"""

from suggestion_engine.core.types import ContextSnapshot, SuggestionSource

from .base import SuggestionPrompt
from .llm_backed import LLMBackedProvider


NEURAL_PROMPT = """Generate context-aware suggestions based on conversation flow.

CONVERSATION CONTEXT:
- Conversation ID: {conversation_id}
{context}

INPUT ({mode}): "{text}"
Source language: {source_language}
Target language: {target_language}

Generate up to {max_suggestions} contextually relevant suggestions in {target_language}.

Focus on:
1. Conversation continuity
2. Topic relevance
3. Emotional consistency
4. Natural progression

Return JSON format:
{{
  "suggestions": [
    {{
      "suggested_text": "suggestion text",
      "confidence": 0.9,
      "reasoning": "why this suggestion fits the conversation",
      "context_relevance": 0.85,
      "alternatives": ["alternative 1", "alternative 2"]
    }}
  ]
}}"""


class NeuralContextProvider(LLMBackedProvider):
    """Conversation-aware LLM suggestions.

    Usage:
        provider = NeuralContextProvider(llm=GroqLLM())
        suggestions = await provider.call(prompt, snapshot, timeout=1.5)
    """

    provider_id = "neural"
    source = SuggestionSource.NEURAL
    payload_key = "suggestions"

    def build_prompt(self, prompt: SuggestionPrompt, snapshot: ContextSnapshot) -> str:
        return NEURAL_PROMPT.format(
            conversation_id=snapshot.conversation_id,
            context=snapshot.describe(),
            mode="partial, complete it" if prompt.is_partial else "complete message",
            text=prompt.text,
            source_language=prompt.source_language,
            target_language=prompt.target_language,
            max_suggestions=prompt.max_suggestions,
        )
