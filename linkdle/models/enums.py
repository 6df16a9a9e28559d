from enum import Enum

class RelationshipKind(str, Enum):
    SYNONYM = "synonym"
    ANTONYM = "antonym"
    CONTEXTUAL = "contextual"
    FIGURATIVE = "figurative"
    ASSOCIATION = "association"
    SEMANTIC = "semantic"
    CONCEPTUAL = "conceptual"
    CREATIVE = "creative"
    LETTER_OVERLAP = "letter-overlap"

class CascadeStage(str, Enum):
    """Relationship sources, in the order the resolver consults them."""
    DICTIONARY = "dictionary"
    EMBEDDING = "embedding"
    CONCEPTNET = "conceptnet"
    GENERATIVE = "generative"
    LETTER_OVERLAP = "letter_overlap"

class ChainStatus(str, Enum):
    BUILDING = "building"
    COMPLETED = "completed"
