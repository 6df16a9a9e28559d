# tests/conftest.py
import pytest
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from linkdle.main import app
from linkdle.db.base import Base
from linkdle.api import deps
from linkdle.core.errors import ProviderError
from linkdle.models.validation import (
    DictionaryDefinition,
    DictionaryEntry,
    DictionaryMeaning,
    GenerativeJudgment,
    WordRelationships,
)
from linkdle.services.game_service import GameService

SQLALCHEMY_DATABASE_URL_TEST = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL_TEST,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create tables once for the entire test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """
    Provides a clean, isolated database session for each test function
    by using transactions and rollbacks.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# --- Fake providers ---

def make_entry(word, synonyms=(), antonyms=(), definitions=()):
    return DictionaryEntry(
        word=word,
        meanings=[DictionaryMeaning(
            partOfSpeech="noun",
            definitions=[DictionaryDefinition(definition=d) for d in definitions],
            synonyms=list(synonyms),
            antonyms=list(antonyms),
        )],
    )

DICTIONARY = {
    "ocean": make_entry("ocean", synonyms=["sea", "main"], definitions=["A very large expanse of salt water."]),
    "sea": make_entry("sea", definitions=["The expanse of salt water that covers most of the earth's surface."]),
    "story": make_entry("story", synonyms=["tale"], definitions=["An account of imaginary or real people and events."]),
    "book": make_entry("book", definitions=["A written or printed work consisting of pages; a long story."]),
    "tale": make_entry("tale", definitions=["A fictitious or true narrative."]),
    "light": make_entry("light", antonyms=["dark"], definitions=["The natural agent that makes things visible."]),
    "dark": make_entry("dark", definitions=["With little or no light."]),
    "stapler": make_entry("stapler", definitions=["A device for fastening sheets of paper together."]),
    "bear": make_entry("bear", definitions=["A large heavy mammal with thick fur."]),
    "bare": make_entry("bare", definitions=["Not clothed or covered."]),
    "stone": make_entry("stone", definitions=["Hard solid mineral matter."]),
    "onset": make_entry("onset", definitions=["The beginning of something unpleasant."]),
}

# Pairs the generative judge accepts; everything else is judged unconnected.
JUDGMENTS = {
    ("sea", "story"): GenerativeJudgment(is_valid=True, relationship_type="figurative", creativity=15, reason="Sea shanties tell stories."),
}


@pytest.fixture
def providers():
    """
    Provider doubles: a small in-memory dictionary, embeddings and ConceptNet that are
    offline, and a generative judge that only knows the pairs in JUDGMENTS.
    """
    dictionary = MagicMock()
    dictionary.lookup = AsyncMock(side_effect=lambda word: DICTIONARY.get(word))

    embeddings = MagicMock()
    embeddings.embed = AsyncMock(side_effect=ProviderError("embedding", "offline"))

    conceptnet = MagicMock()
    conceptnet.relatedness = AsyncMock(side_effect=ProviderError("conceptnet", "offline"))
    conceptnet.relation_label = AsyncMock(return_value=None)

    generative = MagicMock()
    generative.judge_connection = AsyncMock(
        side_effect=lambda w1, w2: JUDGMENTS.get((w1, w2), GenerativeJudgment(is_valid=False, reason="No link."))
    )
    generative.word_relationships = AsyncMock(side_effect=lambda word: WordRelationships(word=word))

    return SimpleNamespace(dictionary=dictionary, embeddings=embeddings, conceptnet=conceptnet, generative=generative)


class FakeClock:
    """Manually advanced stand-in for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def game_service(providers, clock) -> GameService:
    return GameService(
        dictionary=providers.dictionary,
        embeddings=providers.embeddings,
        conceptnet=providers.conceptnet,
        generative=providers.generative,
        clock=clock,
    )


@pytest.fixture
def client(game_service) -> TestClient:
    """
    TestClient wired to the fake-provider GameService. Not used as a context manager, so
    the lifespan (real providers, on-disk cache snapshots) never runs.
    """
    app.dependency_overrides[deps.get_game_service] = lambda: game_service
    yield TestClient(app)
    app.dependency_overrides.pop(deps.get_game_service, None)


def pytest_configure(config):
    """
    Hook to configure logging levels before tests are run.
    This silences noisy third-party libraries.
    """
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
