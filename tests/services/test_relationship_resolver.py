# tests/services/test_relationship_resolver.py
import asyncio
import pytest
from unittest.mock import AsyncMock

from linkdle.core.errors import ProviderError
from linkdle.models.enums import CascadeStage, RelationshipKind
from linkdle.models.validation import GenerativeJudgment, StrictRelationships, WordRelationships
from linkdle.services.cache import TTLCache
from linkdle.services.relationship_resolver import (
    RelationshipResolver,
    cosine_similarity,
    letter_overlap_match,
    shared_letters,
)


def build_resolver(providers, clock, timeout=8.0) -> RelationshipResolver:
    return RelationshipResolver(
        dictionary=providers.dictionary,
        embeddings=providers.embeddings,
        conceptnet=providers.conceptnet,
        generative=providers.generative,
        existence_cache=TTLCache("dictionary", 100, 3600, clock=clock),
        relationship_cache=TTLCache("relationships", 100, 3600, clock=clock),
        embedding_cache=TTLCache("embeddings", 100, 3600, clock=clock),
        timeout=timeout,
    )


# --- Pure helpers ---

def test_shared_letters_counts_distinct_letters():
    assert shared_letters("bear", "bare") == 4
    assert shared_letters("book", "kobo") == 3
    assert shared_letters("ocean", "stapler") == 2

def test_letter_overlap_thresholds():
    assert letter_overlap_match("ocean", "book") is None

    four = letter_overlap_match("bear", "bare")
    assert four.kind is RelationshipKind.LETTER_OVERLAP
    assert four.creativity == 5

    five = letter_overlap_match("stone", "onset")
    assert five.creativity == 10
    assert five.stage is CascadeStage.LETTER_OVERLAP

def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.8, 0.6]) == pytest.approx(0.8)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0

def test_cosine_similarity_rejects_mismatched_vectors():
    with pytest.raises(ProviderError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


# --- Cascade ---

@pytest.mark.asyncio
async def test_dictionary_synonym_short_circuits_cascade(providers, clock):
    resolver = build_resolver(providers, clock)
    match = await resolver.resolve("ocean", "sea")

    assert match.kind is RelationshipKind.SYNONYM
    assert match.creativity == 5
    assert match.stage is CascadeStage.DICTIONARY
    providers.embeddings.embed.assert_not_awaited()
    providers.conceptnet.relatedness.assert_not_awaited()
    providers.generative.judge_connection.assert_not_awaited()

@pytest.mark.asyncio
async def test_dictionary_antonym_and_definition_mentions(providers, clock):
    resolver = build_resolver(providers, clock)

    antonym = await resolver.resolve("light", "dark")
    assert antonym.kind is RelationshipKind.ANTONYM
    assert antonym.creativity == 7

    # "story" appears in the definition of "book"
    contextual = await resolver.resolve("story", "book")
    assert contextual.kind is RelationshipKind.CONTEXTUAL
    assert contextual.creativity == 10

@pytest.mark.asyncio
async def test_embedding_stage_scales_similarity(providers, clock):
    vectors = {"sea": [1.0, 0.0], "wave": [0.77, 0.638]}
    providers.embeddings.embed = AsyncMock(side_effect=lambda word: vectors[word])
    resolver = build_resolver(providers, clock)

    match = await resolver.resolve("sea", "wave")
    assert match.stage is CascadeStage.EMBEDDING
    assert match.kind is RelationshipKind.SEMANTIC
    assert match.creativity == 15
    assert match.label == "Metaphorical"
    providers.conceptnet.relatedness.assert_not_awaited()

    # Vectors are cached per word.
    await resolver.resolve("sea", "wave")
    assert providers.embeddings.embed.await_count == 2

@pytest.mark.asyncio
async def test_embedding_below_threshold_falls_through(providers, clock):
    vectors = {"sea": [1.0, 0.0], "stapler": [0.0, 1.0]}
    providers.embeddings.embed = AsyncMock(side_effect=lambda word: vectors[word])
    resolver = build_resolver(providers, clock)

    await resolver.resolve("sea", "stapler")
    providers.conceptnet.relatedness.assert_awaited_once_with("sea", "stapler")

@pytest.mark.asyncio
async def test_conceptnet_stage(providers, clock):
    providers.conceptnet.relatedness = AsyncMock(return_value=0.62)
    providers.conceptnet.relation_label = AsyncMock(return_value="RelatedTo")
    resolver = build_resolver(providers, clock)

    match = await resolver.resolve("sea", "boat")
    assert match.stage is CascadeStage.CONCEPTNET
    assert match.kind is RelationshipKind.CONCEPTUAL
    assert match.creativity == 9
    assert match.label == "RelatedTo"
    providers.generative.judge_connection.assert_not_awaited()

@pytest.mark.asyncio
async def test_conceptnet_label_failure_keeps_match(providers, clock):
    providers.conceptnet.relatedness = AsyncMock(return_value=0.9)
    providers.conceptnet.relation_label = AsyncMock(side_effect=ProviderError("conceptnet", "down"))
    resolver = build_resolver(providers, clock)

    match = await resolver.resolve("sea", "boat")
    assert match.creativity == 13
    assert match.label == "Conceptual"

@pytest.mark.asyncio
async def test_generative_stage_maps_kind_and_clamps_creativity(providers, clock):
    providers.generative.judge_connection = AsyncMock(
        return_value=GenerativeJudgment(is_valid=True, relationship_type="figurative", creativity=25, reason="Poetic.")
    )
    resolver = build_resolver(providers, clock)

    match = await resolver.resolve("sea", "story")
    assert match.stage is CascadeStage.GENERATIVE
    assert match.kind is RelationshipKind.FIGURATIVE
    assert match.creativity == 20
    assert match.label == "Poetic."

@pytest.mark.asyncio
async def test_generative_unknown_type_is_creative(providers, clock):
    providers.generative.judge_connection = AsyncMock(
        return_value=GenerativeJudgment(is_valid=True, relationship_type="pun", creativity=12)
    )
    resolver = build_resolver(providers, clock)
    match = await resolver.resolve("sea", "story")
    assert match.kind is RelationshipKind.CREATIVE

@pytest.mark.asyncio
async def test_every_provider_failing_falls_back_to_letter_overlap(providers, clock):
    providers.dictionary.lookup = AsyncMock(side_effect=ProviderError("dictionary", "down"))
    providers.generative.judge_connection = AsyncMock(side_effect=ProviderError("generative", "down"))
    resolver = build_resolver(providers, clock)

    match = await resolver.resolve("stone", "onset")
    assert match.stage is CascadeStage.LETTER_OVERLAP
    assert match.creativity == 10

    assert await resolver.resolve("ocean", "book") is None

@pytest.mark.asyncio
async def test_unexpected_stage_error_does_not_abort_cascade(providers, clock):
    providers.conceptnet.relatedness = AsyncMock(side_effect=KeyError("value"))
    resolver = build_resolver(providers, clock)
    match = await resolver.resolve("sea", "story")
    assert match.stage is CascadeStage.GENERATIVE

@pytest.mark.asyncio
async def test_slow_provider_times_out_and_cascade_continues(providers, clock):
    async def slow_relatedness(word1, word2):
        await asyncio.sleep(5)
        return 1.0

    providers.conceptnet.relatedness = AsyncMock(side_effect=slow_relatedness)
    resolver = build_resolver(providers, clock, timeout=0.05)

    match = await resolver.resolve("sea", "story")
    assert match.stage is CascadeStage.GENERATIVE

@pytest.mark.asyncio
async def test_creativity_always_within_range(providers, clock):
    providers.conceptnet.relatedness = AsyncMock(return_value=3.0)
    resolver = build_resolver(providers, clock)
    match = await resolver.resolve("sea", "boat")
    assert 0 <= match.creativity <= 20


# --- Cached lookups ---

@pytest.mark.asyncio
async def test_word_exists_is_cached(providers, clock):
    resolver = build_resolver(providers, clock)
    assert await resolver.word_exists("ocean") is True
    assert await resolver.word_exists("qwxz") is False
    assert await resolver.word_exists("ocean") is True
    assert await resolver.word_exists("qwxz") is False
    assert providers.dictionary.lookup.await_count == 2

@pytest.mark.asyncio
async def test_word_exists_outage_is_not_cached(providers, clock):
    providers.dictionary.lookup = AsyncMock(side_effect=ProviderError("dictionary", "down"))
    resolver = build_resolver(providers, clock)
    with pytest.raises(ProviderError):
        await resolver.word_exists("ocean")
    assert "ocean" not in resolver.existence_cache

@pytest.mark.asyncio
async def test_explore_caches_relationship_sets(providers, clock):
    providers.generative.word_relationships = AsyncMock(
        return_value=WordRelationships(word="ocean", strict=StrictRelationships(synonyms=["sea"]))
    )
    resolver = build_resolver(providers, clock)

    first = await resolver.explore("ocean")
    second = await resolver.explore("ocean")
    assert first.strict.synonyms == ["sea"]
    assert second == first
    providers.generative.word_relationships.assert_awaited_once_with("ocean")
