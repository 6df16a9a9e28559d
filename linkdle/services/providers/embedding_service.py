# linkdle/services/providers/embedding_service.py
import logging
from typing import List

import google.generativeai as genai

from linkdle.core.config import settings
from linkdle.core.errors import ProviderError

logger = logging.getLogger("linkdle.services.providers.embedding")


class EmbeddingService:
    """Fixed-length word vectors from the Gemini embedding model."""

    name = "embedding"

    def __init__(self, api_key: str = settings.GEMINI_API_KEY, model_name: str = settings.GEMINI_EMBEDDING_MODEL, dimensions: int = settings.EMBEDDING_DIMENSIONS):
        self.api_key = api_key
        self.model_name = model_name
        self.dimensions = dimensions
        self._configured = False

    async def embed(self, word: str) -> List[float]:
        if not self.api_key or self.api_key == "YOUR_GEMINI_API_KEY_HERE":
            raise ProviderError(self.name, "GEMINI_API_KEY is not configured")
        if not self._configured:
            genai.configure(api_key=self.api_key)
            self._configured = True
        try:
            result = await genai.embed_content_async(
                model=self.model_name,
                content=word,
                task_type="semantic_similarity",
                output_dimensionality=self.dimensions,
            )
        except Exception as e:
            raise ProviderError(self.name, f"embed_content failed for '{word}': {e}") from e

        vector = result.get("embedding") if isinstance(result, dict) else None
        if not vector or not all(isinstance(x, (int, float)) for x in vector):
            raise ProviderError(self.name, f"no usable embedding returned for '{word}'")
        return [float(x) for x in vector]
