# linkdle/services/providers/dictionary_service.py
import logging
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from linkdle.core.config import settings
from linkdle.core.errors import ProviderError
from linkdle.models.validation import DictionaryEntry

logger = logging.getLogger("linkdle.services.providers.dictionary")


class DictionaryService:
    """Headword lookups against a dictionaryapi.dev compatible endpoint."""

    name = "dictionary"

    def __init__(self, base_url: str = settings.DICTIONARY_API_URL, timeout: float = settings.PROVIDER_TIMEOUT_SECONDS, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def lookup(self, word: str) -> Optional[DictionaryEntry]:
        """Returns the first entry for `word`, or None when the dictionary has no such headword."""
        url = f"{self.base_url}/{quote(word)}"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"request for '{word}' failed: {e}") from e

        if response.status_code == 404:
            logger.debug(f"Dictionary has no entry for '{word}'.")
            return None
        if response.status_code != 200:
            raise ProviderError(self.name, f"unexpected status {response.status_code} for '{word}'")

        try:
            data = response.json()
            return DictionaryEntry.model_validate(data[0])
        except (ValueError, IndexError, KeyError, TypeError, ValidationError) as e:
            raise ProviderError(self.name, f"malformed entry for '{word}': {e}") from e
