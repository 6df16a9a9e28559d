# linkdle/services/relationship_resolver.py
import asyncio
import logging
import math
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from linkdle.core.config import settings
from linkdle.core.errors import ProviderError
from linkdle.models.enums import CascadeStage, RelationshipKind
from linkdle.models.validation import (
    DictionaryEntry,
    GenerativeJudgment,
    RelationshipMatch,
    WordRelationships,
)
from linkdle.services.cache import TTLCache

logger = logging.getLogger("linkdle.services.relationship_resolver")  # Logger for this module


class DictionaryProvider(Protocol):
    async def lookup(self, word: str) -> Optional[DictionaryEntry]: ...

class EmbeddingProvider(Protocol):
    async def embed(self, word: str) -> List[float]: ...

class ConceptualGraphProvider(Protocol):
    async def relatedness(self, word1: str, word2: str) -> float: ...
    async def relation_label(self, word1: str, word2: str) -> Optional[str]: ...

class GenerativeProvider(Protocol):
    async def judge_connection(self, word1: str, word2: str) -> GenerativeJudgment: ...
    async def word_relationships(self, word: str) -> WordRelationships: ...


def clamp_creativity(value: float) -> int:
    return max(0, min(settings.MAX_CREATIVITY, int(value)))


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    if len(vec1) != len(vec2):
        raise ProviderError("embedding", f"vector length mismatch ({len(vec1)} vs {len(vec2)})")
    dot_product = sum(a * b for a, b in zip(vec1, vec2))
    norm1 = math.sqrt(sum(a * a for a in vec1))
    norm2 = math.sqrt(sum(b * b for b in vec2))
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return dot_product / (norm1 * norm2)


def shared_letters(word1: str, word2: str) -> int:
    return len(set(word1) & set(word2))


def letter_overlap_match(word1: str, word2: str) -> Optional[RelationshipMatch]:
    """The offline fallback: words sharing enough distinct letters count as connected."""
    overlap = shared_letters(word1, word2)
    if overlap < settings.LETTER_OVERLAP_MIN:
        return None
    creativity = settings.LETTER_OVERLAP_HIGH_CREATIVITY if overlap > settings.LETTER_OVERLAP_MIN else settings.LETTER_OVERLAP_LOW_CREATIVITY
    return RelationshipMatch(
        kind=RelationshipKind.LETTER_OVERLAP,
        creativity=creativity,
        stage=CascadeStage.LETTER_OVERLAP,
        label=f"{overlap} shared letters",
    )


def _mentions(texts: List[str], word: str) -> bool:
    pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
    return any(pattern.search(text) for text in texts)


_GENERATIVE_KINDS = {kind.value: kind for kind in RelationshipKind if kind is not RelationshipKind.LETTER_OVERLAP}

StageFn = Callable[[str, str], Awaitable[Optional[RelationshipMatch]]]


class RelationshipResolver:
    """
    Decides whether two normalized words are connected, and how creatively.

    Sources are consulted strictly in order and the first one that accepts wins:
    dictionary relations, embedding similarity, ConceptNet relatedness, the generative
    judge, then the offline letter-overlap rule. A source that fails or times out is
    logged and skipped; it never aborts the cascade.

    The caches are owned by the caller (see GameService) so several resolvers, or a
    test, can share or isolate them explicitly.
    """

    def __init__(
        self,
        dictionary: DictionaryProvider,
        embeddings: EmbeddingProvider,
        conceptnet: ConceptualGraphProvider,
        generative: GenerativeProvider,
        existence_cache: TTLCache[bool],
        relationship_cache: TTLCache[Any],
        embedding_cache: TTLCache[List[float]],
        timeout: float = settings.PROVIDER_TIMEOUT_SECONDS,
    ):
        self.dictionary = dictionary
        self.embeddings = embeddings
        self.conceptnet = conceptnet
        self.generative = generative
        self.existence_cache = existence_cache
        self.relationship_cache = relationship_cache
        self.embedding_cache = embedding_cache
        self.timeout = timeout
        self.stages: List[Tuple[CascadeStage, StageFn]] = [
            (CascadeStage.DICTIONARY, self._dictionary_stage),
            (CascadeStage.EMBEDDING, self._embedding_stage),
            (CascadeStage.CONCEPTNET, self._conceptnet_stage),
            (CascadeStage.GENERATIVE, self._generative_stage),
            (CascadeStage.LETTER_OVERLAP, self._letter_overlap_stage),
        ]

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        return await asyncio.wait_for(awaitable, timeout=self.timeout)

    # --- Cached provider access ---

    async def _dictionary_entry(self, word: str) -> Optional[DictionaryEntry]:
        async def load() -> Optional[Dict[str, Any]]:
            entry = await self._bounded(self.dictionary.lookup(word))
            return entry.model_dump() if entry is not None else None

        raw = await self.relationship_cache.get_or_load(f"dictionary:{word}", load)
        return DictionaryEntry.model_validate(raw) if raw else None

    async def word_exists(self, word: str) -> bool:
        """
        True when `word` is a dictionary headword.

        Raises ProviderError (or TimeoutError) when the dictionary cannot be reached; such
        outcomes are not cached so the next submission retries.
        """
        async def load() -> bool:
            return await self._dictionary_entry(word) is not None

        return await self.existence_cache.get_or_load(word, load)

    async def _embedding(self, word: str) -> List[float]:
        async def load() -> List[float]:
            return await self._bounded(self.embeddings.embed(word))

        return await self.embedding_cache.get_or_load(word, load)

    async def _judgment(self, word1: str, word2: str) -> GenerativeJudgment:
        async def load() -> Dict[str, Any]:
            judgment = await self._bounded(self.generative.judge_connection(word1, word2))
            return judgment.model_dump()

        raw = await self.relationship_cache.get_or_load(f"judgment:{word1}:{word2}", load)
        return GenerativeJudgment.model_validate(raw)

    async def explore(self, word: str) -> WordRelationships:
        """The generative provider's relationship set for a single word (word explorer)."""
        async def load() -> Dict[str, Any]:
            relationships = await self._bounded(self.generative.word_relationships(word))
            return relationships.model_dump()

        raw = await self.relationship_cache.get_or_load(f"generative:{word}", load)
        return WordRelationships.model_validate(raw)

    # --- Cascade stages ---

    async def _dictionary_stage(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        entry1 = await self._dictionary_entry(word1)
        if entry1 is not None:
            if word2 in entry1.synonyms():
                return RelationshipMatch(kind=RelationshipKind.SYNONYM, creativity=settings.SYNONYM_CREATIVITY, stage=CascadeStage.DICTIONARY)
            if word2 in entry1.antonyms():
                return RelationshipMatch(kind=RelationshipKind.ANTONYM, creativity=settings.ANTONYM_CREATIVITY, stage=CascadeStage.DICTIONARY)
            if _mentions(entry1.definition_texts(), word2):
                return RelationshipMatch(kind=RelationshipKind.CONTEXTUAL, creativity=settings.CONTEXTUAL_CREATIVITY, stage=CascadeStage.DICTIONARY, label=f"'{word2}' appears in the definition of '{word1}'")

        entry2 = await self._dictionary_entry(word2)
        if entry2 is not None and _mentions(entry2.definition_texts(), word1):
            return RelationshipMatch(kind=RelationshipKind.CONTEXTUAL, creativity=settings.CONTEXTUAL_CREATIVITY, stage=CascadeStage.DICTIONARY, label=f"'{word1}' appears in the definition of '{word2}'")
        return None

    async def _embedding_stage(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        # The two lookups are independent; only the stages themselves are ordered.
        vec1, vec2 = await asyncio.gather(self._embedding(word1), self._embedding(word2))
        similarity = cosine_similarity(vec1, vec2)
        logger.debug(f"Embedding similarity '{word1}' ~ '{word2}' = {similarity:.3f}")
        if similarity < settings.EMBEDDING_SIMILARITY_THRESHOLD:
            return None

        if similarity > 0.8:
            label = "Strong semantic"
        elif similarity > 0.7:
            label = "Metaphorical"
        else:
            label = "Contextual"
        return RelationshipMatch(
            kind=RelationshipKind.SEMANTIC,
            creativity=clamp_creativity(math.floor(similarity * settings.EMBEDDING_CREATIVITY_SCALE)),
            stage=CascadeStage.EMBEDDING,
            label=label,
        )

    async def _conceptnet_stage(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        async def load() -> Dict[str, Any]:
            strength = await self._bounded(self.conceptnet.relatedness(word1, word2))
            label = None
            if strength >= settings.CONCEPTNET_RELATEDNESS_THRESHOLD:
                try:
                    label = await self._bounded(self.conceptnet.relation_label(word1, word2))
                except (ProviderError, asyncio.TimeoutError) as e:
                    logger.warning(f"ConceptNet label lookup failed for '{word1}' -> '{word2}': {e}")
            return {"relatedness": strength, "label": label}

        result = await self.relationship_cache.get_or_load(f"conceptnet:{word1}:{word2}", load)
        strength = result["relatedness"]
        if strength < settings.CONCEPTNET_RELATEDNESS_THRESHOLD:
            return None
        return RelationshipMatch(
            kind=RelationshipKind.CONCEPTUAL,
            creativity=clamp_creativity(math.floor(strength * settings.CONCEPTNET_CREATIVITY_SCALE)),
            stage=CascadeStage.CONCEPTNET,
            label=result.get("label") or "Conceptual",
        )

    async def _generative_stage(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        judgment = await self._judgment(word1, word2)
        if judgment.is_valid is not True:
            return None
        kind = _GENERATIVE_KINDS.get(judgment.relationship_type or "", RelationshipKind.CREATIVE)
        return RelationshipMatch(
            kind=kind,
            creativity=clamp_creativity(judgment.creativity),
            stage=CascadeStage.GENERATIVE,
            label=judgment.reason,
        )

    async def _letter_overlap_stage(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        return letter_overlap_match(word1, word2)

    # --- Cascade ---

    async def resolve(self, word1: str, word2: str) -> Optional[RelationshipMatch]:
        """Returns the first accepting stage's match, or None when every stage declines."""
        for stage, evaluate in self.stages:
            try:
                match = await evaluate(word1, word2)
            except (ProviderError, asyncio.TimeoutError) as e:
                logger.warning(f"Stage '{stage.value}' unavailable for '{word1}' -> '{word2}': {e!r}")
                continue
            except Exception as e:
                logger.exception(f"Stage '{stage.value}' failed unexpectedly for '{word1}' -> '{word2}': {e}")
                continue
            if match is not None:
                logger.info(f"'{word1}' -> '{word2}' accepted by stage '{stage.value}' as {match.kind.value} (creativity {match.creativity}).")
                return match
        logger.info(f"No relationship found between '{word1}' and '{word2}'.")
        return None
