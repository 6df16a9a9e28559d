# linkdle/models/validation.py
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from linkdle.models.enums import CascadeStage, RelationshipKind

class RelationshipMatch(BaseModel):
    """What a single cascade stage found between two words."""
    model_config = ConfigDict(frozen=True)

    kind: RelationshipKind
    creativity: int = Field(ge=0, le=20)
    stage: CascadeStage
    label: Optional[str] = None # Provider wording, e.g. "Metaphorical" or ConceptNet's "RelatedTo"

class RelationshipEdge(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_word: str = Field(alias="from")
    to_word: str = Field(alias="to")
    kind: RelationshipKind
    creativity: int = Field(ge=0, le=20)
    is_direct_jump: bool = False
    source: CascadeStage
    label: Optional[str] = None

class ValidationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    accepted: bool
    reason: Optional[str] = None
    edge: Optional[RelationshipEdge] = None

    @model_validator(mode="after")
    def _accepted_iff_edge(self):
        if self.accepted and (self.edge is None or self.reason is not None):
            raise ValueError("An accepted outcome carries an edge and no reason.")
        if not self.accepted and (self.edge is not None or not self.reason):
            raise ValueError("A rejected outcome carries a reason and no edge.")
        return self

    @classmethod
    def accept(cls, edge: RelationshipEdge) -> "ValidationOutcome":
        return cls(accepted=True, edge=edge)

    @classmethod
    def reject(cls, reason: str) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason)

class StrictRelationships(BaseModel):
    synonyms: List[str] = []
    antonyms: List[str] = []
    contextual: List[str] = []

class CreativeRelationships(BaseModel):
    figurative: List[str] = []
    associations: List[str] = []

class WordRelationships(BaseModel):
    """Everything a provider knows a word is related to, grouped by strictness."""
    word: str
    strict: StrictRelationships = StrictRelationships()
    creative: CreativeRelationships = CreativeRelationships()

class GenerativeJudgment(BaseModel):
    is_valid: bool = False
    relationship_type: Optional[str] = None
    creativity: int = 0
    reason: Optional[str] = None

class DictionaryDefinition(BaseModel):
    definition: str = ""
    synonyms: List[str] = []
    antonyms: List[str] = []

class DictionaryMeaning(BaseModel):
    partOfSpeech: str = ""
    definitions: List[DictionaryDefinition] = []
    synonyms: List[str] = []
    antonyms: List[str] = []

class DictionaryEntry(BaseModel):
    """The subset of a dictionaryapi.dev entry the cascade needs."""
    word: str
    meanings: List[DictionaryMeaning] = []

    def synonyms(self) -> List[str]:
        found = []
        for meaning in self.meanings:
            found.extend(meaning.synonyms)
            for definition in meaning.definitions:
                found.extend(definition.synonyms)
        return [w.lower() for w in found]

    def antonyms(self) -> List[str]:
        found = []
        for meaning in self.meanings:
            found.extend(meaning.antonyms)
            for definition in meaning.definitions:
                found.extend(definition.antonyms)
        return [w.lower() for w in found]

    def definition_texts(self) -> List[str]:
        return [d.definition for m in self.meanings for d in m.definitions if d.definition]
