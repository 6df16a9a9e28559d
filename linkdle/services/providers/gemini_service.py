# linkdle/services/providers/gemini_service.py
import json
import logging
from typing import Any, Dict, List

import google.generativeai as genai

from linkdle.core.config import settings
from linkdle.core.errors import ProviderError
from linkdle.models.validation import (
    CreativeRelationships,
    GenerativeJudgment,
    StrictRelationships,
    WordRelationships,
)

logger = logging.getLogger("linkdle.services.providers.gemini")

CONNECTION_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isValid": {"type": "BOOLEAN", "description": "Whether a reasonable player would accept the two words as connected."},
        "relationshipType": {"type": "STRING", "description": "One of: synonym, antonym, contextual, figurative, association, semantic, conceptual, creative."},
        "creativity": {"type": "INTEGER", "description": "How surprising the connection is, 0 (obvious) to 20 (brilliant). 0 if invalid."},
        "reason": {"type": "STRING", "description": "A brief explanation for the decision."}
    },
    "required": ["isValid", "relationshipType", "creativity"]
}

_WORD_LIST = {"type": "ARRAY", "items": {"type": "STRING"}}

RELATIONSHIPS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "strict": {
            "type": "OBJECT",
            "properties": {"synonyms": _WORD_LIST, "antonyms": _WORD_LIST, "contextual": _WORD_LIST},
            "required": ["synonyms", "antonyms", "contextual"]
        },
        "creative": {
            "type": "OBJECT",
            "properties": {"figurative": _WORD_LIST, "associations": _WORD_LIST},
            "required": ["figurative", "associations"]
        }
    },
    "required": ["strict", "creative"]
}


def _clean_words(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [w.strip().lower() for w in raw if isinstance(w, str) and w.strip().isalpha()]


def parse_connection_judgment(text: str) -> GenerativeJudgment:
    """Parses the model's pair judgment. Anything malformed is a negative judgment."""
    try:
        judgment = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Gemini connection judgment was not JSON: {e}. Response: {text!r}")
        return GenerativeJudgment(is_valid=False, reason=f"JSON decode error: {e}")
    if not isinstance(judgment, dict):
        return GenerativeJudgment(is_valid=False, reason="Judgment was not a JSON object.")

    is_valid = judgment.get("isValid")
    if not isinstance(is_valid, bool):
        return GenerativeJudgment(
            is_valid=False,
            reason=f"'isValid' was missing or not a boolean (type: {type(is_valid).__name__}).",
        )

    creativity = judgment.get("creativity")
    if isinstance(creativity, bool) or not isinstance(creativity, (int, float)):
        creativity = 0
    creativity = max(0, min(settings.MAX_CREATIVITY, int(creativity)))
    if not is_valid:
        creativity = 0

    relationship_type = judgment.get("relationshipType")
    return GenerativeJudgment(
        is_valid=is_valid,
        relationship_type=relationship_type.strip().lower() if isinstance(relationship_type, str) else None,
        creativity=creativity,
        reason=judgment.get("reason") if isinstance(judgment.get("reason"), str) else None,
    )


def parse_word_relationships(word: str, text: str) -> WordRelationships:
    """Parses the model's relationship set for one word. Anything malformed is an empty set."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"Gemini relationship set for '{word}' was not JSON: {e}")
        return WordRelationships(word=word)
    if not isinstance(data, dict):
        return WordRelationships(word=word)

    strict = data.get("strict") if isinstance(data.get("strict"), dict) else {}
    creative = data.get("creative") if isinstance(data.get("creative"), dict) else {}
    return WordRelationships(
        word=word,
        strict=StrictRelationships(
            synonyms=_clean_words(strict.get("synonyms")),
            antonyms=_clean_words(strict.get("antonyms")),
            contextual=_clean_words(strict.get("contextual")),
        ),
        creative=CreativeRelationships(
            figurative=_clean_words(creative.get("figurative")),
            associations=_clean_words(creative.get("associations")),
        ),
    )


class GeminiService:
    """Generative judge for word connections, backed by Gemini structured JSON output."""

    name = "generative"

    def __init__(self, api_key: str = settings.GEMINI_API_KEY, model_name: str = settings.GEMINI_MODEL_NAME):
        self.api_key = api_key
        self.model_name = model_name
        self._model = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "YOUR_GEMINI_API_KEY_HERE"

    def _get_model(self):
        if not self.is_configured:
            raise ProviderError(self.name, "GEMINI_API_KEY is not configured")
        if self._model is None:
            try:
                genai.configure(api_key=self.api_key)
                self._model = genai.GenerativeModel(self.model_name)
            except Exception as e:
                raise ProviderError(self.name, f"client configuration error: {e}") from e
        return self._model

    async def _generate(self, prompt: str, schema: Dict[str, Any]) -> str:
        model = self._get_model()
        generation_config = {
            "response_mime_type": "application/json",
            "response_schema": schema,
        }
        try:
            response = await model.generate_content_async(prompt, generation_config=generation_config)
            return response.text
        except Exception as e:
            raise ProviderError(self.name, f"generate_content failed: {e}") from e

    async def judge_connection(self, word1: str, word2: str) -> GenerativeJudgment:
        prompt = f"""
You are the judge of a word-chain puzzle. Players build a chain from a start word to an end word,
and every consecutive pair of words must be meaningfully connected. Connections may be strict
(synonym, antonym, shared context) or creative (figurative, cultural or free association).
Don't be too harsh: if most people would see the link once it is explained, it is valid.

            Previous word: "{word1}"
            Submitted word: "{word2}"

            Respond with:
            - "isValid": (boolean) true if the words are connected.
            - "relationshipType": (string) the closest of synonym, antonym, contextual, figurative,
              association, semantic, conceptual, creative.
            - "creativity": (integer) 0 (obvious) to 20 (brilliant, surprising). 0 if "isValid" is false.
            - "reason": (string) one sentence explaining the link, or why there is none.

            Example: "ocean" -> "sea": isValid=true, relationshipType="synonym", creativity=3.
            Example: "ocean" -> "story": isValid=true, relationshipType="figurative", creativity=14,
            reason="Sailors' tales; an ocean of stories."
            Example: "ocean" -> "stapler": isValid=false, relationshipType="creative", creativity=0.
"""
        text = await self._generate(prompt, CONNECTION_RESPONSE_SCHEMA)
        judgment = parse_connection_judgment(text)
        logger.info(f"Gemini judgment for '{word1}' -> '{word2}': Valid={judgment.is_valid}, Creativity={judgment.creativity}, Reason='{judgment.reason}'")
        return judgment

    async def word_relationships(self, word: str) -> WordRelationships:
        prompt = f"""
List single English words related to "{word}" for a word-association puzzle.
Group them as:
- strict.synonyms, strict.antonyms, strict.contextual (words that commonly appear in the same context)
- creative.figurative (metaphorical or idiomatic links), creative.associations (cultural or free associations)
Use lowercase single words only, at most 10 per list.
"""
        text = await self._generate(prompt, RELATIONSHIPS_RESPONSE_SCHEMA)
        return parse_word_relationships(word, text)
