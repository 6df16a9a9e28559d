# linkdle/services/validation_pipeline.py
import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from linkdle.core.errors import (
    ChainError,
    DuplicateError,
    InputError,
    NoRelationshipError,
    NotFoundError,
    ProviderError,
)
from linkdle.models.validation import RelationshipEdge, RelationshipMatch, ValidationOutcome
from linkdle.services.cache import LoadCancelledError, TTLCache
from linkdle.services.relationship_resolver import RelationshipResolver

logger = logging.getLogger("linkdle.services.validation_pipeline")  # Logger for this module

WORD_PATTERN = re.compile(r"^[a-zA-Z]+$")


def normalize_word(word: Optional[str]) -> str:
    """Lowercases and trims a submission. Raises InputError for empty or non-alphabetic input."""
    clean = (word or "").strip().lower()
    if not clean:
        raise InputError("Word cannot be empty")
    if not WORD_PATTERN.match(clean):
        raise InputError("Word must contain only letters")
    return clean


class RuleKind(str, Enum):
    DICTIONARY_EXISTS = "dictionary_exists"
    NOT_REPEATED = "not_repeated"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ValidationRule:
    priority: int
    kind: RuleKind


DEFAULT_RULES: List[ValidationRule] = [
    ValidationRule(priority=1, kind=RuleKind.DICTIONARY_EXISTS),
    ValidationRule(priority=2, kind=RuleKind.NOT_REPEATED),
    ValidationRule(priority=3, kind=RuleKind.CONNECTED),
]


class _TransientRejection(Exception):
    """A rejection caused by a provider outage; returned to callers but never cached."""

    def __init__(self, outcome: ValidationOutcome):
        super().__init__(outcome.reason)
        self.outcome = outcome


class ValidationPipeline:
    """
    Decides whether `candidate` may follow `previous_word` in a chain.

    Rules run in priority order and the first rejection is returned immediately:
      1. the candidate is a dictionary headword
      2. the candidate differs from the previous word
      3. the two words are connected (RelationshipResolver, letter overlap included)

    Full outcomes are memoized per (previous_word, candidate, is_attempting_end_word), and
    concurrent validations of the same triple share a single run.
    """

    def __init__(self, resolver: RelationshipResolver, outcome_cache: TTLCache[ValidationOutcome], rules: Optional[List[ValidationRule]] = None):
        self.resolver = resolver
        self.outcome_cache = outcome_cache
        self.rules = sorted(rules or DEFAULT_RULES, key=lambda rule: rule.priority)

    @staticmethod
    def cache_key(previous_word: str, candidate: str, is_attempting_end_word: bool) -> str:
        return f"{previous_word}|{candidate}|{int(is_attempting_end_word)}"

    async def validate(
        self,
        previous_word: str,
        candidate: str,
        is_attempting_end_word: bool = False,
        submitted_previous: Optional[str] = None,
    ) -> ValidationOutcome:
        """
        Always returns a well-formed outcome. `previous_word` is the chain's actual last word;
        `submitted_previous` is the word the client claimed to extend from. When the two
        differ the accepted edge is marked as a direct jump.
        """
        try:
            word = normalize_word(candidate)
            previous = normalize_word(previous_word)
        except InputError as e:
            logger.info(f"Rejected input '{candidate}': {e.reason}")
            return ValidationOutcome.reject(e.reason)

        key = self.cache_key(previous, word, is_attempting_end_word)
        try:
            outcome = await self.outcome_cache.get_or_load(
                key, lambda: self._run_rules(previous, word, is_attempting_end_word)
            )
        except _TransientRejection as e:
            outcome = e.outcome

        if outcome.accepted and submitted_previous is not None and submitted_previous.strip().lower() != previous:
            outcome = ValidationOutcome.accept(outcome.edge.model_copy(update={"is_direct_jump": True}))
        return outcome

    async def _run_rules(self, previous: str, word: str, is_attempting_end_word: bool) -> ValidationOutcome:
        logger.debug(f"Validating '{previous}' -> '{word}' (end word attempt: {is_attempting_end_word}).")
        match: Optional[RelationshipMatch] = None
        for rule in self.rules:
            try:
                result = await self._evaluate(rule, previous, word)
            except ChainError as e:
                logger.info(f"'{previous}' -> '{word}' rejected by rule {rule.priority} ({rule.kind.value}): {e.reason}")
                return ValidationOutcome.reject(e.reason)
            if result is not None:
                match = result

        if match is None:
            # Every configured rule passed without producing a relationship.
            return ValidationOutcome.reject(NoRelationshipError().reason)
        edge = RelationshipEdge(
            from_word=previous,
            to_word=word,
            kind=match.kind,
            creativity=match.creativity,
            is_direct_jump=False,
            source=match.stage,
            label=match.label,
        )
        return ValidationOutcome.accept(edge)

    async def _evaluate(self, rule: ValidationRule, previous: str, word: str) -> Optional[RelationshipMatch]:
        if rule.kind is RuleKind.DICTIONARY_EXISTS:
            try:
                exists = await self.resolver.word_exists(word)
            except (ProviderError, LoadCancelledError, asyncio.TimeoutError) as e:
                logger.warning(f"Dictionary unavailable while checking '{word}': {e!r}")
                raise _TransientRejection(ValidationOutcome.reject(NotFoundError().reason)) from e
            if not exists:
                raise NotFoundError()
            return None

        if rule.kind is RuleKind.NOT_REPEATED:
            if word == previous:
                raise DuplicateError()
            return None

        if rule.kind is RuleKind.CONNECTED:
            match = await self.resolver.resolve(previous, word)
            if match is None:
                raise NoRelationshipError()
            return match

        raise ValueError(f"Unknown validation rule kind: {rule.kind}")
