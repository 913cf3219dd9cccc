"""Exception types shared across the app."""


class AuraLearnError(Exception):
    """Base class for every error the app reports to the user."""


class ValidationError(AuraLearnError):
    """User input was missing or out of range; nothing was attempted."""


class GenerationError(AuraLearnError):
    """A call to the generation service failed or returned unusable output."""


class DocumentError(AuraLearnError):
    """A document could not be parsed, uploaded or processed."""


class ChatBusyError(AuraLearnError):
    """A reply is already streaming into this conversation."""
