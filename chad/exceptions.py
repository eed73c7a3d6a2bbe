"""
Exception hierarchy for the Chad assistant.

Everything raised on purpose inherits from ChadError so bot handlers can
catch broad or specific failures at the edge.
"""


class ChadError(Exception):
    """Base exception for all application errors."""


class ValidationError(ChadError):
    """Raised when user input is missing or out of range. Client-fixable."""


class CompletionServiceError(ChadError):
    """Raised when the completion service fails or returns nothing usable."""


class MacroEstimateError(ChadError):
    """Raised when a macro estimate cannot be parsed or is not numeric."""


class NotFoundError(ChadError):
    """Raised when a record does not exist or does not belong to the user."""


class ChatTurnError(ChadError):
    """Raised when a chat turn fails. The user's message is already saved."""
