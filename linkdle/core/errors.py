# linkdle/core/errors.py
"""
Error taxonomy for chain validation.

ChainError subclasses are user-facing rejections: their message is shown to the
player verbatim as the ValidationOutcome reason. ProviderError never reaches the
player; a cascade stage that raises it simply declines to match.
"""


class ChainError(Exception):
    """A rejection the player should see."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InputError(ChainError):
    pass


class NotFoundError(ChainError):
    def __init__(self, reason: str = "Word not found in dictionary"):
        super().__init__(reason)


class DuplicateError(ChainError):
    def __init__(self, reason: str = "Cannot use the same word twice"):
        super().__init__(reason)


class NoRelationshipError(ChainError):
    def __init__(self, reason: str = "Words must either share at least 4 letters or have a valid relationship"):
        super().__init__(reason)


class ProviderError(Exception):
    """Network, timeout or parse failure from an external relationship provider."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ChainStateError(Exception):
    """An operation that the session's current state does not allow."""


class SessionNotFoundError(LookupError):
    """No live game session has the requested id."""
