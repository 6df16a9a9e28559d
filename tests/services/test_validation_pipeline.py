# tests/services/test_validation_pipeline.py
import asyncio
import pytest
from unittest.mock import AsyncMock

from linkdle.core.errors import InputError, ProviderError
from linkdle.models.enums import CascadeStage, RelationshipKind
from linkdle.services.validation_pipeline import DEFAULT_RULES, RuleKind, normalize_word

NOT_FOUND = "Word not found in dictionary"
DUPLICATE = "Cannot use the same word twice"
NO_RELATIONSHIP = "Words must either share at least 4 letters or have a valid relationship"


def test_normalize_word():
    assert normalize_word("Ocean ") == "ocean"
    assert normalize_word("  BOOK") == "book"
    with pytest.raises(InputError, match="Word cannot be empty"):
        normalize_word("   ")
    with pytest.raises(InputError, match="Word must contain only letters"):
        normalize_word("sea2")
    with pytest.raises(InputError, match="Word must contain only letters"):
        normalize_word("ice cream")

def test_default_rules_are_ordered_by_priority():
    assert [rule.kind for rule in DEFAULT_RULES] == [RuleKind.DICTIONARY_EXISTS, RuleKind.NOT_REPEATED, RuleKind.CONNECTED]
    assert [rule.priority for rule in DEFAULT_RULES] == [1, 2, 3]

@pytest.mark.asyncio
async def test_accepts_dictionary_synonym(game_service, providers):
    outcome = await game_service.pipeline.validate("ocean", "sea")

    assert outcome.accepted is True
    assert outcome.reason is None
    assert outcome.edge.from_word == "ocean"
    assert outcome.edge.to_word == "sea"
    assert outcome.edge.kind is RelationshipKind.SYNONYM
    assert outcome.edge.source is CascadeStage.DICTIONARY
    assert outcome.edge.is_direct_jump is False
    providers.embeddings.embed.assert_not_awaited()
    providers.conceptnet.relatedness.assert_not_awaited()
    providers.generative.judge_connection.assert_not_awaited()

@pytest.mark.asyncio
async def test_edge_serializes_with_from_and_to(game_service):
    outcome = await game_service.pipeline.validate("ocean", "sea")
    data = outcome.model_dump(by_alias=True)
    assert data["edge"]["from"] == "ocean"
    assert data["edge"]["to"] == "sea"

@pytest.mark.asyncio
async def test_input_errors_never_reach_providers(game_service, providers):
    empty = await game_service.pipeline.validate("ocean", "")
    digits = await game_service.pipeline.validate("ocean", "sea2")

    assert empty.accepted is False
    assert empty.reason == "Word cannot be empty"
    assert digits.reason == "Word must contain only letters"
    providers.dictionary.lookup.assert_not_awaited()

@pytest.mark.asyncio
async def test_unknown_word_is_rejected_first(game_service, providers):
    outcome = await game_service.pipeline.validate("ocean", "qwxz")
    assert outcome.accepted is False
    assert outcome.reason == NOT_FOUND
    providers.generative.judge_connection.assert_not_awaited()

@pytest.mark.asyncio
async def test_repeated_word_is_rejected_before_relationship_lookup(game_service, providers):
    outcome = await game_service.pipeline.validate("ocean", "Ocean ")
    assert outcome.accepted is False
    assert outcome.reason == DUPLICATE
    providers.embeddings.embed.assert_not_awaited()
    providers.conceptnet.relatedness.assert_not_awaited()
    providers.generative.judge_connection.assert_not_awaited()

@pytest.mark.asyncio
async def test_unrelated_words_are_rejected(game_service):
    outcome = await game_service.pipeline.validate("ocean", "stapler")
    assert outcome.accepted is False
    assert outcome.reason == NO_RELATIONSHIP

@pytest.mark.asyncio
async def test_letter_overlap_connects_when_nothing_else_does(game_service):
    outcome = await game_service.pipeline.validate("bear", "bare")
    assert outcome.accepted is True
    assert outcome.edge.kind is RelationshipKind.LETTER_OVERLAP
    assert outcome.edge.creativity == 5

@pytest.mark.asyncio
async def test_normalizes_submission(game_service):
    outcome = await game_service.pipeline.validate(" Sea", "Ocean ")
    assert outcome.accepted is False # "sea" has no relation back to "ocean" in the test dictionary

    forward = await game_service.pipeline.validate("OCEAN", " sea ")
    assert forward.accepted is True
    assert forward.edge.from_word == "ocean"
    assert forward.edge.to_word == "sea"

@pytest.mark.asyncio
async def test_repeated_validation_is_idempotent_and_cached(game_service, providers):
    first = await game_service.pipeline.validate("sea", "story")
    lookups = providers.dictionary.lookup.await_count
    judgments = providers.generative.judge_connection.await_count

    second = await game_service.pipeline.validate("sea", "story")

    assert first == second
    assert first.edge.kind is RelationshipKind.FIGURATIVE
    assert first.edge.creativity == 15
    assert providers.dictionary.lookup.await_count == lookups
    assert providers.generative.judge_connection.await_count == judgments == 1

@pytest.mark.asyncio
async def test_end_word_flag_is_part_of_cache_key(game_service):
    await game_service.pipeline.validate("story", "book", is_attempting_end_word=True)
    await game_service.pipeline.validate("story", "book", is_attempting_end_word=False)
    assert "story|book|1" in game_service.validation_cache
    assert "story|book|0" in game_service.validation_cache

@pytest.mark.asyncio
async def test_concurrent_validations_share_one_generative_call(game_service, providers):
    judge = providers.generative.judge_connection.side_effect

    async def slow_judge(word1, word2):
        await asyncio.sleep(0.01)
        return judge(word1, word2)

    providers.generative.judge_connection.side_effect = slow_judge

    outcomes = await asyncio.gather(
        game_service.pipeline.validate("sea", "story"),
        game_service.pipeline.validate("sea", "story"),
        game_service.pipeline.validate("sea", "story"),
    )
    assert all(o.accepted for o in outcomes)
    assert outcomes[0] == outcomes[1] == outcomes[2]
    assert providers.generative.judge_connection.await_count == 1

@pytest.mark.asyncio
async def test_direct_jump_is_flagged_per_call(game_service):
    jump = await game_service.pipeline.validate("ocean", "sea", submitted_previous="story")
    assert jump.accepted is True
    assert jump.edge.is_direct_jump is True

    # The cached outcome for the same pair is unaffected by the earlier jump.
    regular = await game_service.pipeline.validate("ocean", "sea", submitted_previous="ocean")
    assert regular.edge.is_direct_jump is False

@pytest.mark.asyncio
async def test_dictionary_outage_rejects_without_caching(game_service, providers):
    working_lookup = providers.dictionary.lookup
    providers.dictionary.lookup = AsyncMock(side_effect=ProviderError("dictionary", "down"))

    outcome = await game_service.pipeline.validate("ocean", "sea")
    assert outcome.accepted is False
    assert outcome.reason == NOT_FOUND
    assert "ocean|sea|0" not in game_service.validation_cache

    providers.dictionary.lookup = working_lookup
    recovered = await game_service.pipeline.validate("ocean", "sea")
    assert recovered.accepted is True

@pytest.mark.asyncio
async def test_dictionary_rule_runs_before_repeat_rule(game_service):
    outcome = await game_service.pipeline.validate("qwxz", "qwxz")
    assert outcome.reason == NOT_FOUND
