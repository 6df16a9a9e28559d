# linkdle/services/providers/conceptnet_service.py
import logging
from typing import Any, Dict, Optional

import httpx

from linkdle.core.config import settings
from linkdle.core.errors import ProviderError

logger = logging.getLogger("linkdle.services.providers.conceptnet")


def _node(word: str) -> str:
    return f"/c/en/{word}"


class ConceptNetService:
    """Relatedness scores and relation labels from the ConceptNet web API."""

    name = "conceptnet"

    def __init__(self, base_url: str = settings.CONCEPTNET_API_URL, timeout: float = settings.PROVIDER_TIMEOUT_SECONDS, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _get_json(self, path: str, params: Dict[str, str]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"{path} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, f"{path} returned non-JSON body: {e}") from e

    async def relatedness(self, word1: str, word2: str) -> float:
        data = await self._get_json("/relatedness", {"node1": _node(word1), "node2": _node(word2)})
        value = data.get("value")
        if not isinstance(value, (int, float)):
            raise ProviderError(self.name, f"relatedness response without numeric value: {data!r}")
        return float(value)

    async def relation_label(self, word1: str, word2: str) -> Optional[str]:
        """Label of the first edge joining the two concepts, e.g. 'RelatedTo' or 'IsA'."""
        data = await self._get_json("/query", {"node": _node(word1), "other": _node(word2)})
        edges = data.get("edges") or []
        if not edges:
            return None
        rel = edges[0].get("rel") or {}
        return rel.get("label")
